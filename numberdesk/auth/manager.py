import logging
from typing import Optional

from numberdesk.api.admin import AdminAPI
from numberdesk.config import OPERATOR_PREFIX
from numberdesk.errors import AuthorizationError, GatewayError
from numberdesk.navigation import ViewContext
from numberdesk.notify import Notifier

from .models import SessionState
from .store import SessionStore

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Operator authentication lifecycle: bootstrap, login, logout.

    The session itself lives in SessionStore; this class only drives the
    explicit transitions and never raises past its boundary.
    """

    def __init__(
        self,
        store: SessionStore,
        api: AdminAPI,
        notifier: Notifier,
        view: Optional[ViewContext] = None,
    ):
        self.store = store
        self.api = api
        self.notifier = notifier
        self.view = view
        self._bootstrapped = False
        self._authenticating = False

    @property
    def authenticated(self) -> bool:
        return self.store.authenticated

    @property
    def state(self) -> SessionState:
        if self._authenticating:
            return SessionState.AUTHENTICATING
        if self.store.authenticated:
            return SessionState.AUTHENTICATED
        return SessionState.UNAUTHENTICATED

    def bootstrap(self) -> bool:
        """
        Adopt a persisted token, if any. Runs once per process; later calls
        just report the current signal. The token is not checked remotely -
        a stale one is discovered by the gateway's 401 handling.
        """
        if self._bootstrapped:
            return self.authenticated
        self._bootstrapped = True
        restored = self.store.load()
        logger.info("bootstrap: %s", "restored persisted session" if restored else "no session")
        return restored

    async def login(self, username: str, password: str) -> bool:
        if self._authenticating:
            self.notifier.error("Login already in progress")
            return False
        if not username.strip() or not password:
            self.notifier.error("Username and password are required")
            return False

        self._authenticating = True
        try:
            response = await self.api.login(username, password)
        except AuthorizationError as e:
            # 401s are silent at the gateway; the login form still needs a reason.
            self.notifier.error(e.detail or "Login failed")
            return False
        except GatewayError as e:
            logger.info("login failed: %s", e.message)
            return False
        finally:
            self._authenticating = False

        token = response.get("access_token") if isinstance(response, dict) else None
        if not token:
            self.notifier.error("Login failed")
            return False

        self.store.establish(token)
        self.notifier.success("Login successful!")
        if self.view is not None and self.view.at_login:
            self.view.navigate(OPERATOR_PREFIX)
        return True

    def logout(self) -> None:
        """Clear the session. Safe to call when already logged out."""
        self.store.invalidate(reason="logout")
        self.notifier.success("Logged out successfully")
