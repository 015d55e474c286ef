"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt handles salting
itself and its check runs in constant time for a given work factor.
Passwords are truncated to 72 bytes (bcrypt's limit).

`burn_password_check()` runs a full bcrypt check against a throwaway hash
so that a login for an unknown username costs the same as a wrong
password for a real one.
"""

from typing import Optional

import bcrypt

from floodgate.config import settings

_dummy_hash: Optional[bytes] = None


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:72]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt (`$2b$...`)."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def burn_password_check(password: str) -> None:
    """Spend one bcrypt check on a hash nobody owns."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("floodgate-dummy-password").encode("utf-8")
    bcrypt.checkpw(_encode(password), _dummy_hash)
