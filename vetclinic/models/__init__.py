from .owner import Owner
from .pet import Pet
from .visit import Visit
from .ownership import Ownership

__all__ = ["Owner", "Pet", "Visit", "Ownership"]
