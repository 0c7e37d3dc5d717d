"""API key authentication for service callers.

Ingestion jobs and operators call the bulk update and cleanup endpoints with
an ``X-API-Key`` header. Keys are configured in plain text and kept only as
SHA-256 hashes in memory.
"""

import hashlib
import hmac
import secrets
import uuid
from typing import Iterable

from cinejournal.auth.base import AuthProvider, AuthResult, AuthenticationBackend, Credentials, Role, User

# Stable namespace so a key maps to the same service user id across restarts
SERVICE_USER_NAMESPACE = uuid.UUID("6f1c7a52-3d0e-4b8e-9a55-1f0d2c4b7e91")


def hash_key(api_key: str) -> str:
    """SHA-256 hex digest of an API key."""
    return hashlib.sha256(api_key.encode()).hexdigest()


class APIKeyAuth(AuthenticationBackend):
    """Authenticates service callers against a set of configured keys.

    Example:
        auth = APIKeyAuth(["sk_live_..."])
        result = await auth.authenticate(
            Credentials(provider=AuthProvider.API_KEY, api_key="sk_live_...")
        )
    """

    def __init__(self, api_keys: Iterable[str] = ()):
        self._key_hashes = {hash_key(k) for k in api_keys if k}

    @property
    def provider_type(self) -> AuthProvider:
        return AuthProvider.API_KEY

    def register_key(self, api_key: str) -> None:
        """Allow an additional key."""
        self._key_hashes.add(hash_key(api_key))

    async def authenticate(self, credentials: Credentials) -> AuthResult:
        """Authenticate using API key."""
        if not credentials.api_key:
            return AuthResult.failure_result("API key is required", "MISSING_API_KEY")

        key_hash = hash_key(credentials.api_key)
        if not any(hmac.compare_digest(key_hash, known) for known in self._key_hashes):
            return AuthResult.failure_result("Invalid API key", "INVALID_API_KEY")

        user = User(
            id=uuid.uuid5(SERVICE_USER_NAMESPACE, key_hash),
            username="service",
            roles=[Role.SERVICE.value],
            auth_provider=AuthProvider.API_KEY,
            metadata={"api_key_hash_prefix": key_hash[:8]},
            is_service_account=True,
        )
        return AuthResult.success_result(user)


def generate_api_key(prefix: str = "sk", length: int = 48) -> str:
    """Generate a new secure API key.

    Example:
        >>> generate_api_key("sk_live", 48)
        'sk_live_aB3x9K...'
    """
    random_part = secrets.token_urlsafe(length)
    random_part = random_part.replace("-", "").replace("_", "")[:length]
    return f"{prefix}_{random_part}"
