"""Credential Vault: Encryption at rest for users' AI provider API keys.

Security Note (Threat Model):
    Envelopes are useless without the master secret (ENCRYPTION_KEY).
    Rotating the master secret invalidates every stored envelope; there
    is no re-encryption path. Plaintext keys exist in process memory only
    for the duration of the request that uses them.
"""

from .credential_vault import CredentialVault
from .config import VaultConfig, load_master_secret, generate_master_secret
from .utils import (
    generate_token,
    generate_api_key,
    mask_api_key,
    hash_password,
    verify_password,
)

__all__ = [
    "CredentialVault",
    "VaultConfig",
    "load_master_secret",
    "generate_master_secret",
    "generate_token",
    "generate_api_key",
    "mask_api_key",
    "hash_password",
    "verify_password",
]
