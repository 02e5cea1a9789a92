"""Password hashing for the admin login."""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2.

    Args:
        password: The password to hash

    Returns:
        The hashed password string
    """
    ph = PasswordHasher()
    return ph.hash(password)


def verify_password(password: str, hash_value: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        password: The password to verify
        hash_value: The hash to verify against

    Returns:
        True if the password matches, False otherwise
    """
    ph = PasswordHasher()
    try:
        ph.verify(hash_value, password)
        return True
    except (VerificationError, InvalidHashError):
        return False
