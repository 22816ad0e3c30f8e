"""Security utilities for authentication.

Provides:
- Password hashing with Argon2id (OWASP recommended)
- Guarded verification of plaintext values left by the legacy system
- JWT access tokens carrying the principal kind
"""

import hmac
from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from src.auth.permissions import PrincipalKind
from src.config.settings import get_settings


# Argon2id configuration (OWASP recommended parameters)
# https://cheatsheetseries.owasp.org/cheatsheets/Password_Storage_Cheat_Sheet.html
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,  # 19 MiB
    parallelism=1,
    hash_len=32,
    salt_len=16,
)

ARGON2_PREFIX = "$argon2"


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Example:
        >>> hash_password("my-secure-password1").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def is_password_hash(value: str | None) -> bool:
    """Whether a stored value is an Argon2 hash (as opposed to legacy plaintext)."""
    return bool(value) and value.startswith(ARGON2_PREFIX)


def verify_password(
    password: str,
    stored: str | None,
    allow_legacy_plaintext: bool = False,
) -> tuple[bool, str | None]:
    """Verify a password against the stored credential.

    Stored values that are not Argon2 hashes are plaintext leftovers from the
    legacy system. They are rejected unless ``allow_legacy_plaintext`` is set;
    with the flag on, a matching legacy value is accepted once and a fresh
    hash is returned so the caller can replace it.

    Returns:
        Tuple of (is_valid, new_hash). ``new_hash`` is set when the stored
        value must be replaced (legacy plaintext or outdated parameters).
    """
    if not stored:
        return False, None

    if not is_password_hash(stored):
        if allow_legacy_plaintext and hmac.compare_digest(
            stored.encode("utf-8"), password.encode("utf-8")
        ):
            return True, hash_password(password)
        return False, None

    try:
        _password_hasher.verify(stored, password)
    except (VerificationError, InvalidHashError):
        return False, None

    if _password_hasher.check_needs_rehash(stored):
        return True, hash_password(password)

    return True, None


def create_access_token(
    principal_id: str,
    kind: PrincipalKind | str,
    email: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT access token.

    Claims:
        - sub: principal id
        - kind: principal kind (student, instructor, admin)
        - email
        - exp / iat
        - type: "access"
    """
    settings = get_settings()

    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)
    )
    claims: dict[str, Any] = {
        "sub": str(principal_id),
        "kind": PrincipalKind(kind).value,
        "email": email,
        "exp": expire,
        "iat": now,
        "type": "access",
    }

    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates signature, expiry, token type and the kind claim.

    Raises:
        JWTError: If the token is invalid, expired or malformed.
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

    try:
        PrincipalKind(payload.get("kind"))
    except ValueError as e:
        msg = "Invalid principal kind claim"
        raise JWTError(msg) from e

    if not payload.get("sub"):
        msg = "Token missing subject"
        raise JWTError(msg)

    return payload
