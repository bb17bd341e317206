"""
OAuth token encryption at rest
"""
import base64
import logging
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..config import CALENDAR_ENCRYPTION_KEY
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Fixed, non-secret salt (16 bytes)
TOKEN_SALT = bytes.fromhex("deadbeefdeadbeefdeadbeefdeadbeef")
KDF_ITERATIONS = 100_000


class TokenCipher:
    """Symmetric encrypt/decrypt of OAuth tokens keyed by the configured secret"""

    def __init__(self, encryption_key: Optional[str]):
        if not encryption_key:
            raise ConfigurationError("CALENDAR_ENCRYPTION_KEY is not set")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=TOKEN_SALT,
            iterations=KDF_ITERATIONS,
        )
        key = base64.urlsafe_b64encode(kdf.derive(encryption_key.encode()))
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        if not plaintext:
            return plaintext
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        if not ciphertext:
            return ciphertext
        return self._fernet.decrypt(ciphertext.encode()).decode()


@lru_cache(maxsize=1)
def get_token_cipher() -> TokenCipher:
    """Process-wide cipher built from configuration"""
    cipher = TokenCipher(CALENDAR_ENCRYPTION_KEY)
    logger.info("🔐 Token encryption initialized")
    return cipher
