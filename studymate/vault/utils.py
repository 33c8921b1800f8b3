"""
Vault utilities: random tokens, StudyMate API keys, masking, password hashing.
"""
import hmac
import secrets

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .crypto import KDF_ITERATIONS, KEY_LENGTH, SALT_SIZE

API_KEY_PREFIX = "sm_"
MASK_CHAR = "*"
VISIBLE_CHARS = 4


def generate_token(length: int = 32) -> str:
    """Return ``length`` random bytes as a hex string."""
    return secrets.token_hex(length)


def generate_api_key() -> str:
    """Generate a StudyMate API key (``sm_`` + 64 hex characters)."""
    return API_KEY_PREFIX + secrets.token_hex(32)


def mask_api_key(api_key: str) -> str:
    """Mask an API key for display, keeping the last 4 characters.

    Keys of 8 characters or fewer are masked entirely.
    """
    if len(api_key) <= 8:
        return MASK_CHAR * len(api_key)
    masked_length = len(api_key) - VISIBLE_CHARS
    return MASK_CHAR * masked_length + api_key[-VISIBLE_CHARS:]


def hash_password(password: str, salt: str | None = None) -> tuple[str, str]:
    """Hash a password with PBKDF2-HMAC-SHA256.

    Args:
        password: Plaintext password.
        salt: Hex salt; a random 16-byte salt is generated when omitted.

    Returns:
        Tuple of (hash_hex, salt_hex).
    """
    password_salt = secrets.token_hex(SALT_SIZE) if salt is None else salt
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=password_salt.encode("utf-8"),
        iterations=KDF_ITERATIONS,
    )
    digest = kdf.derive(password.encode("utf-8"))
    return digest.hex(), password_salt


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    """Check a password against a stored hash in constant time.

    A stored hash that is not valid hex never matches.
    """
    computed, _ = hash_password(password, salt)
    try:
        return hmac.compare_digest(
            bytes.fromhex(computed), bytes.fromhex(password_hash),
        )
    except ValueError:
        return False
