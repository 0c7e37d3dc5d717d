"""FastAPI dependencies for authentication and authorization.

Users authenticate with a JWT bearer token. Service callers (ingestion jobs,
operators triggering cleanup) authenticate with an ``X-API-Key`` header.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cinejournal.auth.api_key import APIKeyAuth
from cinejournal.auth.base import AuthProvider, AuthResult, Credentials, Role, User
from cinejournal.auth.jwt import JWTHandler
from cinejournal.config import get_settings

# Security scheme for FastAPI
security = HTTPBearer(auto_error=False)


class AuthManager:
    """Coordinates the JWT and API key backends."""

    def __init__(self, jwt_handler: JWTHandler, api_key_auth: APIKeyAuth):
        self.jwt_handler = jwt_handler
        self.api_key_auth = api_key_auth

    @classmethod
    def from_settings(cls) -> "AuthManager":
        security_settings = get_settings().security
        return cls(
            jwt_handler=JWTHandler(
                secret_key=security_settings.secret_key,
                algorithm=security_settings.algorithm,
                access_token_expire_minutes=security_settings.access_token_expire_minutes,
            ),
            api_key_auth=APIKeyAuth(security_settings.service_api_keys),
        )

    async def authenticate_request(
        self,
        credentials: HTTPAuthorizationCredentials | None = None,
        api_key: str | None = None,
    ) -> AuthResult:
        """Authenticate an incoming request.

        Tries the API key first, then the bearer token.

        Args:
            credentials: Bearer token credentials
            api_key: API key header value

        Returns:
            Authentication result
        """
        if api_key:
            result = await self.api_key_auth.authenticate(
                Credentials(provider=AuthProvider.API_KEY, api_key=api_key)
            )
            if result.success:
                return result

        if credentials and credentials.credentials:
            result = await self.jwt_handler.authenticate(
                Credentials(provider=AuthProvider.JWT, token=credentials.credentials)
            )
            if result.success:
                return result

        return AuthResult.failure_result("Authentication required", "AUTH_REQUIRED")


# Global auth manager
_auth_manager: AuthManager | None = None


def get_auth_manager() -> AuthManager:
    """Get global auth manager instance."""
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager.from_settings()
    return _auth_manager


def set_auth_manager(manager: AuthManager | None) -> None:
    """Replace the global auth manager (None resets it)."""
    global _auth_manager
    _auth_manager = manager


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    """Get current authenticated caller from request.

    Raises:
        HTTPException: 401 if authentication fails
    """
    api_key = request.headers.get(get_settings().security.api_key_header)
    result = await get_auth_manager().authenticate_request(
        credentials=credentials,
        api_key=api_key,
    )

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.error or "Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return result.user


def require_role(role: str):
    """Create dependency to require a specific role.

    Args:
        role: Required role

    Returns:
        Dependency function
    """
    async def check(user: User = Depends(get_current_user)) -> User:
        if not user.has_role(role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {role}",
            )
        return user

    return check


require_service = require_role(Role.SERVICE.value)
