from .base import AuthenticationBackend
from .radius_auth import RADIUSAuthBackend

__all__ = ["AuthenticationBackend", "RADIUSAuthBackend"]
