from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class AuthSession(BaseModel):
    token: str  # Decrypted operator bearer token
    expires_at: datetime

    @classmethod
    def issue(cls, token: str, ttl_hours: float, now: Optional[datetime] = None) -> "AuthSession":
        now = now or datetime.now()
        return cls(token=token, expires_at=now + timedelta(hours=ttl_hours))

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        if not self.token:
            return False
        return (now or datetime.now()) < self.expires_at
