"""
Secret material for API keys.

Two representations of every raw secret are kept:
  - a SHA-256 digest, used to authenticate incoming requests
  - a Fernet ciphertext (AES-128-CBC + HMAC-SHA256), used only for explicit reveal

The Fernet key is derived from the configured encryption secret and injected
through the constructor, so each environment (and each test) can use its own.
"""

import base64
import hashlib
import secrets

from cryptography.fernet import Fernet, InvalidToken

SECRET_BYTES = 24  # 48 hex chars
DEFAULT_PREFIX = "sk_live_"


def generate_raw_secret(prefix: str = DEFAULT_PREFIX) -> str:
    """Return a fresh secret: ``<prefix><48 hex chars>``."""
    return f"{prefix}{secrets.token_hex(SECRET_BYTES)}"


def hash_secret(raw_secret: str) -> str:
    """Return SHA-256 hex digest of the raw secret."""
    return hashlib.sha256(raw_secret.encode()).hexdigest()


class SecretCipher:
    """
    Reversible encryption for API key secrets.

    Each encryption uses a random IV, so encrypting the same secret twice
    yields different ciphertexts.
    """

    def __init__(self, encryption_secret: str):
        """
        Initialize the cipher.

        Args:
            encryption_secret: Process-level secret the Fernet key is derived from
        """
        if not encryption_secret:
            raise ValueError("Encryption secret must not be empty")
        digest = hashlib.sha256(encryption_secret.encode()).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a string value.

        Returns:
            URL-safe base64 Fernet token
        """
        if not plaintext:
            raise ValueError("Cannot encrypt empty string")
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str) -> str:
        """
        Decrypt a Fernet token.

        Raises:
            ValueError: If the token is corrupt or was encrypted under another key
        """
        if not token:
            raise ValueError("Invalid encrypted data")
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            raise ValueError("Decryption failed - invalid key or corrupted data")
