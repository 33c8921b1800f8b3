"""
Vault Crypto Core: Key derivation, envelope codec, encryption/decryption.

Each stored API key is sealed independently:
    PBKDF2-HMAC-SHA256(master_secret, salt, 100000) → AES-256-GCM → envelope

Envelope layout (base64-encoded for storage):
    [salt 16B][nonce 16B][tag 16B][ciphertext ...]

Security Note:
    Never log plaintext, derived keys or envelope values.
    Salt and nonce are fresh per encryption; nothing here is cached.
"""
import os
import base64
import binascii
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import DecryptionError, FormatError

logger = logging.getLogger("studymate.vault")

SALT_SIZE = 16
NONCE_SIZE = 16
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256
KDF_ITERATIONS = 100_000

HEADER_SIZE = SALT_SIZE + NONCE_SIZE + TAG_SIZE


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(master_secret: str, salt: bytes) -> bytes:
    """Derive a 32-byte encryption key using PBKDF2-HMAC-SHA256.

    Args:
        master_secret: Process-wide secret string.
        salt: Per-record random salt (16 bytes).

    Returns:
        32-byte derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(master_secret.encode("utf-8"))


# ---------------------------------------------------------------------------
# Envelope codec
# ---------------------------------------------------------------------------

def pack(salt: bytes, nonce: bytes, tag: bytes, ciphertext: bytes) -> bytes:
    """Concatenate the envelope fields.

    Format: [salt 16B][nonce 16B][tag 16B][ciphertext]
    """
    if len(salt) != SALT_SIZE or len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
        raise FormatError(
            f"Envelope header fields must be {SALT_SIZE}/{NONCE_SIZE}/{TAG_SIZE} bytes"
        )
    return salt + nonce + tag + ciphertext


def unpack(data: bytes) -> tuple[bytes, bytes, bytes, bytes]:
    """Split an envelope into (salt, nonce, tag, ciphertext).

    Raises:
        FormatError: If data is shorter than the fixed header.
    """
    if len(data) < HEADER_SIZE:
        raise FormatError(
            f"Envelope too short: {len(data)} bytes (minimum {HEADER_SIZE})"
        )
    salt = data[:SALT_SIZE]
    nonce = data[SALT_SIZE:SALT_SIZE + NONCE_SIZE]
    tag = data[SALT_SIZE + NONCE_SIZE:HEADER_SIZE]
    ciphertext = data[HEADER_SIZE:]
    return salt, nonce, tag, ciphertext


def encode_envelope(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_envelope(envelope: str) -> bytes:
    """Base64-decode a stored envelope.

    Raises:
        FormatError: If the value is not valid base64.
    """
    try:
        return base64.b64decode(envelope, validate=True)
    except (binascii.Error, ValueError, TypeError) as err:
        raise FormatError("Envelope is not valid base64") from err


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def seal(plaintext: bytes, master_secret: str) -> bytes:
    """Encrypt plaintext into a packed (not yet base64) envelope."""
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    key = derive_key(master_secret, salt)
    # AESGCM appends the 16-byte tag to the ciphertext.
    sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return pack(salt, nonce, tag, ciphertext)


def open_sealed(data: bytes, master_secret: str) -> bytes:
    """Authenticate and decrypt a packed envelope.

    Raises:
        FormatError: If the envelope is shorter than its header.
        DecryptionError: If tag verification fails.
    """
    salt, nonce, tag, ciphertext = unpack(data)
    key = derive_key(master_secret, salt)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as err:
        raise DecryptionError() from err
