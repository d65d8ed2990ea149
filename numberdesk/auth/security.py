import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

KEY_FILENAME = "master.key"


def _read_or_create_key(key_path: str) -> bytes:
    if os.path.exists(key_path):
        with open(key_path, "rb") as f:
            return f.read()

    key = Fernet.generate_key()
    os.makedirs(os.path.dirname(os.path.abspath(key_path)), exist_ok=True)
    fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(key)
    logger.info("created operator session key at %s", key_path)
    return key


class TokenCipher:
    """
    Seals the operator bearer token for storage at rest.

    The Fernet key lives beside the session database, readable by the owner
    only. Losing or replacing the key makes a sealed token unreadable; that
    reads as "no session", so the operator simply signs in again.
    """

    def __init__(self, key_path: Optional[str] = None):
        self.key_path = key_path or os.path.join(os.path.expanduser("~"), ".numberdesk", KEY_FILENAME)
        self._fernet = Fernet(_read_or_create_key(self.key_path))

    def encrypt_token(self, token: str) -> str:
        if not token:
            raise ValueError("refusing to seal an empty session token")
        return self._fernet.encrypt(token.encode()).decode()

    def decrypt_token(self, sealed: str) -> Optional[str]:
        if not sealed:
            return None
        try:
            return self._fernet.decrypt(sealed.encode()).decode() or None
        except InvalidToken:
            logger.warning("stored session token could not be unsealed with %s", self.key_path)
            return None
