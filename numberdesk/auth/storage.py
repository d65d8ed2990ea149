import os
import sqlite3
from datetime import datetime
from typing import Optional

from .models import AuthSession
from .security import TokenCipher


class CredentialStorage:
    """Persists the single operator session, token encrypted at rest."""

    def __init__(self, db_path: str, cipher: TokenCipher):
        self.db_path = db_path
        self.cipher = cipher
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self):
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        conn = self._connect()
        cursor = conn.cursor()
        # slot is pinned to 1: there is exactly one operator session per process.
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS operator_session (
                slot INTEGER PRIMARY KEY CHECK (slot = 1),
                access_token TEXT NOT NULL,
                expires_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()
        conn.close()

    def save(self, session: AuthSession) -> None:
        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute("""
            INSERT OR REPLACE INTO operator_session (slot, access_token, expires_at, updated_at)
            VALUES (1, ?, ?, ?)
        """, (
            self.cipher.encrypt_token(session.token),
            session.expires_at.isoformat(),
            datetime.now().isoformat(),
        ))
        conn.commit()
        conn.close()

    def load(self) -> Optional[AuthSession]:
        conn = self._connect()
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT access_token, expires_at FROM operator_session WHERE slot = 1")
        row = cursor.fetchone()
        conn.close()

        if not row:
            return None

        token = self.cipher.decrypt_token(row["access_token"])
        if not token:
            return None

        try:
            expires_at = datetime.fromisoformat(row["expires_at"])
        except (TypeError, ValueError):
            return None

        return AuthSession(token=token, expires_at=expires_at)

    def clear(self) -> None:
        conn = self._connect()
        conn.execute("DELETE FROM operator_session")
        conn.commit()
        conn.close()
