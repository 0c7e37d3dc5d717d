"""Base classes for the authentication framework.

This module defines the data models shared by the authentication backends
and the abstract backend interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID


class AuthProvider(str, Enum):
    """Authentication provider types."""
    API_KEY = "api_key"
    JWT = "jwt"


class Role(str, Enum):
    """Roles known to the API."""
    USER = "user"
    SERVICE = "service"
    ADMIN = "admin"


@dataclass
class User:
    """Authenticated caller.

    Attributes:
        id: Unique user identifier
        email: User email address
        username: User login name
        roles: Roles assigned to the caller
        auth_provider: Authentication provider used
        metadata: Additional attributes (e.g. API key name)
        is_service_account: Whether this caller authenticated with an API key
    """
    id: UUID
    email: str | None = None
    username: str | None = None
    roles: list[str] = field(default_factory=list)
    auth_provider: AuthProvider = AuthProvider.JWT
    metadata: dict[str, Any] = field(default_factory=dict)
    is_service_account: bool = False

    def has_role(self, role: str) -> bool:
        """Check if user has a specific role. Admin implies every role."""
        return role in self.roles or Role.ADMIN.value in self.roles

    def to_dict(self) -> dict[str, Any]:
        """Convert user to dictionary representation."""
        return {
            "id": str(self.id),
            "email": self.email,
            "username": self.username,
            "roles": self.roles,
            "auth_provider": self.auth_provider.value,
            "is_service_account": self.is_service_account,
        }


@dataclass
class Credentials:
    """Authentication credentials."""
    provider: AuthProvider
    token: str | None = None
    api_key: str | None = None


@dataclass
class AuthResult:
    """Result of authentication attempt.

    Attributes:
        success: Whether authentication succeeded
        user: Authenticated user (if success)
        error: Error message (if failed)
        error_code: Error code for programmatic handling
    """
    success: bool
    user: User | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success_result(cls, user: User) -> "AuthResult":
        """Create a successful authentication result."""
        return cls(success=True, user=user)

    @classmethod
    def failure_result(cls, error: str, error_code: str = "AUTH_FAILED") -> "AuthResult":
        """Create a failed authentication result."""
        return cls(success=False, error=error, error_code=error_code)


class AuthenticationBackend(ABC):
    """Abstract base class for authentication backends."""

    @property
    @abstractmethod
    def provider_type(self) -> AuthProvider:
        """Return the authentication provider type."""
        ...

    @abstractmethod
    async def authenticate(self, credentials: Credentials) -> AuthResult:
        """Authenticate using the provided credentials.

        Args:
            credentials: Authentication credentials

        Returns:
            AuthResult containing authentication outcome
        """
        ...
