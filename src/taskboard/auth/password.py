"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor comes from settings (default 10 rounds, ~50ms per hash).

Hashes created with a different work factor still verify, and are
re-hashed with the current factor on the next successful login.
"""

from typing import Optional

import bcrypt

from taskboard.config import settings

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$<rounds>$". Two hashes of the same
    password never compare equal.
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash (constant-time via checkpw)."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


def is_hashed(value: str) -> bool:
    """True when value looks like a bcrypt hash ($2a$/$2b$/$2y$)."""
    return (
        isinstance(value, str)
        and len(value) == 60
        and value[:4] in ("$2a$", "$2b$", "$2y$")
    )


def hash_rounds(password_hash: str) -> Optional[int]:
    """Extract the work factor from a bcrypt hash, or None if unparsable."""
    if not is_hashed(password_hash):
        return None
    try:
        return int(password_hash[4:6])
    except ValueError:
        return None


def needs_rehash(password_hash: str, rounds: Optional[int] = None) -> bool:
    """Check whether a stored hash was made with a different work factor."""
    return hash_rounds(password_hash) != (rounds or settings.bcrypt_rounds)
