import logging
import threading
from typing import Callable, List, Optional

from .models import AuthSession
from .storage import CredentialStorage

logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class SessionStore:
    """
    Owner of the process-wide AuthSession.

    Explicit login/logout and the gateway's implicit invalidation on a 401 all
    go through `_write`, so concurrent writers converge on one state. Listeners
    are told about flips of the authenticated signal, never about no-op writes.
    """

    def __init__(self, storage: CredentialStorage, ttl_hours: float = 24.0):
        self.storage = storage
        self.ttl_hours = ttl_hours
        self._lock = threading.Lock()
        self._session: Optional[AuthSession] = None
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def load(self) -> bool:
        """Adopt whatever credential is persisted. No remote validation."""
        session = self.storage.load()
        if session is not None and not session.is_valid():
            logger.info("persisted operator session expired at %s", session.expires_at.isoformat())
            session = None
        self._write(session, reason="restored" if session else "nothing persisted")
        return session is not None

    def current(self) -> Optional[AuthSession]:
        with self._lock:
            session = self._session
        if session is not None and not session.is_valid():
            self._write(None, reason="expired")
            return None
        return session

    def bearer_token(self) -> Optional[str]:
        session = self.current()
        return session.token if session else None

    @property
    def authenticated(self) -> bool:
        return self.current() is not None

    def establish(self, token: str) -> AuthSession:
        session = AuthSession.issue(token, self.ttl_hours)
        self._write(session, reason="login")
        return session

    def invalidate(self, reason: str = "logout") -> None:
        self._write(None, reason=reason)

    def _write(self, session: Optional[AuthSession], reason: str) -> None:
        with self._lock:
            was_authenticated = self._session is not None
            if session is None:
                self.storage.clear()
            else:
                self.storage.save(session)
            self._session = session
            now_authenticated = session is not None

        if was_authenticated == now_authenticated:
            return

        logger.info("operator session %s (%s)", "established" if now_authenticated else "cleared", reason)
        for listener in list(self._listeners):
            try:
                listener(now_authenticated)
            except Exception:
                logger.exception("session listener failed")
