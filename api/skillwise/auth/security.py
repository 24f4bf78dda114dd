"""Security utilities.

Provides:
- Secret hashing with Argon2id (account passwords and Childlock passwords)
- JWT access token creation and validation
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from skillwise.config.settings import get_settings


# Argon2id parameters (OWASP recommended)
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,
    parallelism=1,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a secret using Argon2id.

    The returned hash embeds the salt and parameters:

        >>> hash_password("open-sesame").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check ``password`` against a stored Argon2id hash.

    A missing or malformed hash never verifies.
    """
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Claims, typically ``{"sub": user_id, "email": ..., "role": ...}``
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT carrying the claims plus ``exp``, ``iat`` and
        ``type="access"``.
    """
    settings = get_settings()

    now = datetime.now(UTC)
    to_encode = {
        **data,
        "exp": now
        + (
            expires_delta
            or timedelta(minutes=settings.auth_access_token_expire_minutes)
        ),
        "iat": now,
        "type": "access",
    }
    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        JWTError: If the signature or expiry is invalid, the token is not an
            access token, or the subject claim is missing.
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)
    if not payload.get("sub"):
        msg = "Token missing subject"
        raise JWTError(msg)

    return payload
