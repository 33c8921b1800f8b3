"""
CredentialVault: Encryption at rest for users' third-party API keys.

Provides the public API of the vault:
- ``encrypt(plaintext)``: seal a secret into a base64 envelope
- ``decrypt(envelope)``: authenticate and open an envelope
- ``from_config()`` / ``from_env()``: construction at the composition root

The vault holds only the master secret. It performs no I/O and keeps no
decrypted values, so a single instance can be shared by every request
handler, thread or task.

Security Note:
    Never log plaintext or envelope values. Decryption failures are opaque:
    a wrong master secret and a corrupted envelope raise the same error.
"""
import logging

from ..exceptions import DecryptionError
from .config import VaultConfig, check_master_secret
from .crypto import (
    seal,
    open_sealed,
    encode_envelope,
    decode_envelope,
)

logger = logging.getLogger("studymate.vault")


class CredentialVault:
    """Seals and opens API key envelopes with a single master secret.

    Construction validates the secret, so a misconfigured process fails
    at startup rather than on first use.
    """

    __slots__ = ("_master_secret",)

    def __init__(self, master_secret: str):
        self._master_secret = check_master_secret(master_secret)

    def __repr__(self) -> str:
        return "<CredentialVault>"

    @classmethod
    def from_config(cls, config: VaultConfig) -> "CredentialVault":
        return cls(config.master_secret)

    @classmethod
    def from_env(cls) -> "CredentialVault":
        """Build a vault from ENCRYPTION_KEY.

        Raises:
            ConfigurationError: If ENCRYPTION_KEY is missing or too short.
        """
        return cls.from_config(VaultConfig.from_env())

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string value.

        Args:
            plaintext: Secret to protect (any unicode string, may be empty).

        Returns:
            Base64 envelope ``salt ‖ nonce ‖ tag ‖ ciphertext``.
        """
        data = seal(plaintext.encode("utf-8"), self._master_secret)
        return encode_envelope(data)

    def decrypt(self, envelope: str) -> str:
        """Decrypt an envelope produced by :meth:`encrypt`.

        Args:
            envelope: Base64 envelope string.

        Returns:
            Original plaintext.

        Raises:
            FormatError: If the envelope is not base64 or shorter than 48 bytes.
            DecryptionError: If authentication fails.
        """
        data = decode_envelope(envelope)
        plaintext = open_sealed(data, self._master_secret)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as err:
            raise DecryptionError() from err
