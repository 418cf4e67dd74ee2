from .dispatch import ACTIONS, api_bp

# handler modules register their actions on import
from . import exports, owners, pets, visits  # noqa: E402,F401

__all__ = ["ACTIONS", "api_bp"]
