"""
Password Hashing

Salted scrypt hashes stored as a single self-describing string:
``scrypt$<n>$<salt>$<hex digest>``.
"""

import hashlib
import hmac
import secrets
from typing import List, Optional, Tuple

from .config import get_config


SCHEME = "scrypt"


def _generate_salt() -> str:
    """Generate random salt for password hashing"""
    return secrets.token_hex(16)


def _scrypt(password: str, salt: str, n: int) -> str:
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=n, r=8, p=1
    ).hex()


def hash_password(password: str, n: Optional[int] = None) -> str:
    """Hash a password with a fresh salt"""
    n = n or get_config().password_hash_n
    salt = _generate_salt()
    return f"{SCHEME}${n}${salt}${_scrypt(password, salt, n)}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored hash"""
    if not isinstance(password, str) or not isinstance(password_hash, str):
        return False

    parts = password_hash.split('$')
    if len(parts) != 4 or parts[0] != SCHEME:
        return False

    _, n, salt, digest = parts
    try:
        expected = _scrypt(password, salt, int(n))
    except ValueError:
        return False

    return hmac.compare_digest(expected, digest)


def validate_password(password: str, min_length: Optional[int] = None) -> Tuple[bool, List[str]]:
    """
    Apply the password policy.

    Returns:
        (is_valid, violations)
    """
    min_length = min_length or get_config().password_min_length
    violations = []

    if not isinstance(password, str):
        return False, ["Password must be a string"]

    if len(password) < min_length:
        violations.append(f"Password must be {min_length} characters or longer")

    return len(violations) == 0, violations


def generate_reset_token() -> str:
    return secrets.token_urlsafe(32)
