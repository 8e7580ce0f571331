"""
Pulseboard - Password Hashing Utilities

bcrypt hashing with a configurable work factor (BCRYPT_ROUNDS).

Security:
- Never log or expose plaintext passwords
- bcrypt includes salt automatically
- Hashes are upgraded on login when the configured work factor rises
"""

import bcrypt


# bcrypt only looks at the first 72 bytes; longer inputs are rejected upstream
MAX_PASSWORD_BYTES = 72
DEFAULT_ROUNDS = 12


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """
    Hash a password using bcrypt.

    Example:
        >>> hash_password("SecureP@ss123", rounds=4).startswith("$2b$04$")
        True
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a password against a bcrypt hash in constant time.

    Returns False for malformed hashes instead of raising.
    """
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def needs_rehash(hashed_password: str, target_rounds: int = DEFAULT_ROUNDS) -> bool:
    """
    Whether a stored hash was produced with fewer rounds than configured.

    bcrypt hash format is $2b$<rounds>$<salt+digest>.
    """
    try:
        rounds = int(hashed_password.split("$")[2])
    except (ValueError, IndexError):
        return True
    return rounds < target_rounds
