"""
Abstract Authentication Backend Base Class
"""

from abc import ABC, abstractmethod
from typing import Any


class AuthenticationBackend(ABC):
    """Abstract login backend used by the administrative login path"""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def authenticate(self, username: str, password: str, **kwargs) -> bool:
        """
        Authenticate user credentials

        Args:
            username: Username to authenticate
            password: Password to verify
            **kwargs: Additional authentication parameters

        Returns:
            bool: True if authentication successful, False otherwise
        """

    @abstractmethod
    def get_user_attributes(self, username: str) -> dict[str, Any]:
        """
        Get user attributes for authorization

        Returns:
            Dict containing user attributes such as groups
        """

    def is_available(self) -> bool:
        """Check if backend is available and configured properly"""
        return True

    def get_user_groups(self, username: str) -> list[str]:
        """Group memberships known for ``username`` (possibly empty)."""
        attrs = self.get_user_attributes(username)
        return list(attrs.get("groups", []))

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"

    def __repr__(self) -> str:
        return self.__str__()
