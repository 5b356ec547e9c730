"""Password hashing with PBKDF2-HMAC-SHA256.

Stored format: pbkdf2_sha256$<iterations>$<salt b64>$<hash b64>
"""
import base64
import binascii
import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 390000
SALT_BYTES = 16


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str) -> str:
    """Hash a plain text password with a fresh random salt."""
    salt = os.urandom(SALT_BYTES)
    derived = _kdf(salt, ITERATIONS).derive(password.encode())
    return "$".join([
        ALGORITHM,
        str(ITERATIONS),
        base64.b64encode(salt).decode(),
        base64.b64encode(derived).decode(),
    ])


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a plain text password against a stored hash.

    Malformed or corrupt hashes never match.
    """
    try:
        algorithm, iterations, salt_b64, hash_b64 = stored_hash.split("$")
    except (AttributeError, ValueError):
        return False
    if algorithm != ALGORITHM:
        return False

    try:
        rounds = int(iterations)
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
    except (binascii.Error, ValueError):
        return False
    if not 0 < rounds <= ITERATIONS * 10:
        return False

    try:
        kdf = _kdf(salt, rounds)
    except (ValueError, OverflowError):
        return False

    try:
        kdf.verify(password.encode(), expected)
    except InvalidKey:
        return False
    return True
