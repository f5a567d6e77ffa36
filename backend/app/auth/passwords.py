"""Password hashing with bcrypt."""

import secrets

import bcrypt

# bcrypt ignores (4.x) or rejects (5.x) anything past this
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt.

    Raises:
        ValueError: If the password is longer than MAX_PASSWORD_BYTES
    """
    encoded = password.encode()
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash.

    Malformed hashes and over-long passwords are treated as a mismatch.
    """
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def random_password() -> str:
    """Unguessable password for accounts created through an external identity."""
    return secrets.token_urlsafe(24)
