"""
Settings encryption — encrypt / decrypt connector tokens at rest.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
Only the token fields of a connector's settings are encrypted; ``expires_at``
stays readable so expiry can be inspected from SQL.

If no key is configured, encryption is **disabled** and tokens are stored
as plaintext (with a warning).  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

_SECRET_FIELDS = ("access_token", "refresh_token")


class SettingsCipher:
    """Encrypts the secret fields of a connector settings dict."""

    def __init__(self, key: Optional[str]) -> None:
        self._fernet: Optional[Fernet] = None
        if not key:
            logger.warning(
                "TOKEN_ENCRYPTION_KEY not set — connector tokens will be stored as plaintext."
            )
            return
        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)
        logger.info("Token encryption enabled (Fernet/AES-128-CBC)")

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def encrypt_token(self, plaintext: str) -> str:
        if self._fernet is None or not plaintext:
            return plaintext
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt_token(self, ciphertext: str) -> str:
        """
        Decrypt a token read from the database.

        Tokens stored before encryption was enabled are not valid Fernet
        tokens and are returned as-is.
        """
        if self._fernet is None or not ciphertext:
            return ciphertext
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            return ciphertext

    def encrypt_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(settings)
        for key in _SECRET_FIELDS:
            if out.get(key):
                out[key] = self.encrypt_token(out[key])
        return out

    def decrypt_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(settings)
        for key in _SECRET_FIELDS:
            if out.get(key):
                out[key] = self.decrypt_token(out[key])
        return out
