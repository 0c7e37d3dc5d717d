"""Authentication for the CineJournal API."""

from cinejournal.auth.api_key import APIKeyAuth, generate_api_key
from cinejournal.auth.base import AuthProvider, AuthResult, Credentials, Role, User
from cinejournal.auth.dependencies import (
    AuthManager,
    get_auth_manager,
    get_current_user,
    require_role,
    require_service,
)
from cinejournal.auth.jwt import JWTHandler, TokenPayload

__all__ = [
    "APIKeyAuth",
    "generate_api_key",
    "AuthProvider",
    "AuthResult",
    "Credentials",
    "Role",
    "User",
    "AuthManager",
    "get_auth_manager",
    "get_current_user",
    "require_role",
    "require_service",
    "JWTHandler",
    "TokenPayload",
]
