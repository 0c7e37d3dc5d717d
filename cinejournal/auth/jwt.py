"""JWT token handling for user authentication."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from cinejournal.auth.base import AuthProvider, AuthResult, AuthenticationBackend, Credentials, User

DEFAULT_ALGORITHM = "HS256"
DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES = 30


@dataclass
class TokenPayload:
    """Decoded JWT token payload.

    Attributes:
        sub: Subject (user ID)
        email: User email
        username: User login name
        roles: User roles
        iat: Issued at timestamp
        exp: Expiration timestamp
        jti: JWT ID (unique token identifier)
    """
    sub: UUID
    email: Optional[str] = None
    username: Optional[str] = None
    roles: List[str] = field(default_factory=list)
    iat: Optional[datetime] = None
    exp: Optional[datetime] = None
    jti: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert payload to dictionary for JWT encoding."""
        return {
            "sub": str(self.sub),
            "email": self.email,
            "username": self.username,
            "roles": self.roles,
            "iat": int(self.iat.timestamp()) if self.iat else None,
            "exp": int(self.exp.timestamp()) if self.exp else None,
            "jti": self.jti,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create payload from decoded JWT dictionary."""
        iat = data.get("iat")
        exp = data.get("exp")
        if isinstance(iat, (int, float)):
            iat = datetime.fromtimestamp(iat, tz=timezone.utc)
        if isinstance(exp, (int, float)):
            exp = datetime.fromtimestamp(exp, tz=timezone.utc)

        return cls(
            sub=UUID(data["sub"]),
            email=data.get("email"),
            username=data.get("username"),
            roles=data.get("roles") or [],
            iat=iat,
            exp=exp,
            jti=data.get("jti"),
        )


class JWTHandler(AuthenticationBackend):
    """Creates and verifies signed access tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = DEFAULT_ALGORITHM,
        access_token_expire_minutes: int = DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES,
    ):
        """Initialize JWT handler.

        Args:
            secret_key: Secret key for signing tokens
            algorithm: JWT algorithm to use
            access_token_expire_minutes: Access token lifetime in minutes
        """
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    @property
    def provider_type(self) -> AuthProvider:
        return AuthProvider.JWT

    def create_access_token(
        self,
        user_id: UUID,
        email: Optional[str] = None,
        username: Optional[str] = None,
        roles: Optional[List[str]] = None,
        expires: Optional[timedelta] = None,
    ) -> str:
        """Create a signed access token.

        Args:
            user_id: User identifier
            email: User email address
            username: User login name
            roles: User roles
            expires: Custom lifetime

        Returns:
            Encoded JWT token string
        """
        now = datetime.now(timezone.utc)
        lifetime = expires or timedelta(minutes=self.access_token_expire_minutes)

        payload = TokenPayload(
            sub=user_id,
            email=email,
            username=username,
            roles=roles or ["user"],
            iat=now,
            exp=now + lifetime,
            jti=secrets.token_hex(16),
        )
        return jwt.encode(payload.to_dict(), self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> TokenPayload:
        """Verify and decode a JWT token.

        Raises:
            JWTError: If token is invalid or expired
        """
        try:
            payload_dict = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise JWTError("Token has expired") from e
        if "sub" not in payload_dict:
            raise JWTError("Token has no subject")
        return TokenPayload.from_dict(payload_dict)

    async def authenticate(self, credentials: Credentials) -> AuthResult:
        """Authenticate a bearer token."""
        if not credentials.token:
            return AuthResult.failure_result("Bearer token is required", "MISSING_TOKEN")

        try:
            payload = self.verify_token(credentials.token)
        except (JWTError, ValueError) as e:
            return AuthResult.failure_result(str(e), "INVALID_TOKEN")

        return AuthResult.success_result(
            User(
                id=payload.sub,
                email=payload.email,
                username=payload.username,
                roles=payload.roles,
                auth_provider=AuthProvider.JWT,
            )
        )
