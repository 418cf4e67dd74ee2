from .clinic import ClinicService
from .links import OwnershipLinks, normalize_ids

__all__ = ["ClinicService", "OwnershipLinks", "normalize_ids"]
