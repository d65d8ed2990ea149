from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

TOKEN_DISPLAY_THRESHOLD = 30


def elide_token(token: str, threshold: int = TOKEN_DISPLAY_THRESHOLD) -> str:
    """Display form of an upstream token: first 15 ... last 10 when long."""
    if len(token) <= threshold:
        return token
    return f"{token[:15]}...{token[-10:]}"


class LoginStatus(str, Enum):
    UNATTEMPTED = "unattempted"
    SUCCESS = "success"
    FAILED = "failed"


class DerivedIdentity(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None


class Profile(BaseModel):
    id: int
    name: str
    auth_token: str
    username: Optional[str] = None
    email: Optional[str] = None
    session_expires: Optional[datetime] = None
    is_active: bool = False
    is_logged_in: bool = False
    login_status: LoginStatus = LoginStatus.UNATTEMPTED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_attempt: Optional[datetime] = None

    @field_validator("login_status", mode="before")
    @classmethod
    def _normalize_login_status(cls, value):
        # Backends report 'pending', '' or null before the first attempt.
        if isinstance(value, LoginStatus):
            return value
        if isinstance(value, str) and value.lower() in {"success", "failed"}:
            return value.lower()
        return LoginStatus.UNATTEMPTED

    @property
    def identity(self) -> Optional[DerivedIdentity]:
        if not self.username and not self.email:
            return None
        return DerivedIdentity(username=self.username, email=self.email)

    @property
    def display_token(self) -> str:
        return elide_token(self.auth_token)


class LoginResult(BaseModel):
    success: bool = False
    message: Optional[str] = None


class ProfileOutcomeStatus(str, Enum):
    LOGGED_IN = "logged_in"        # saved, upstream login succeeded
    LOGIN_FAILED = "login_failed"  # saved, upstream login failed
    SAVED = "saved"                # saved, no login attempted
    FAILED = "failed"              # the mutation itself failed


class ProfileOutcome(BaseModel):
    status: ProfileOutcomeStatus
    message: str
    profile: Optional[Profile] = None
    login_result: Optional[LoginResult] = None

    @property
    def saved(self) -> bool:
        return self.status != ProfileOutcomeStatus.FAILED
