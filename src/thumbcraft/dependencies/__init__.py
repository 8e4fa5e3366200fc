"""FastAPI dependencies."""

from .auth import AuthenticatedUser, require_auth
from .profile import get_or_create_profile, record_usage

__all__ = ["AuthenticatedUser", "get_or_create_profile", "record_usage", "require_auth"]
