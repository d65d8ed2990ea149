"""
Composition root for the operator console.

    async with NumberDesk(load_settings()) as desk:
        await desk.session.login("admin", "secret")
        await desk.ranges.create("96777xxxxXXXX", "favorites")
        await desk.timers.start_category_timer("favorites", 5)
"""

import logging
from typing import Optional

import httpx

from numberdesk.api.admin import AdminAPI
from numberdesk.api.public import PublicAPI
from numberdesk.auth.manager import SessionManager
from numberdesk.auth.security import TokenCipher
from numberdesk.auth.storage import CredentialStorage
from numberdesk.auth.store import SessionStore
from numberdesk.config import Settings, load_settings
from numberdesk.dashboard import Dashboard
from numberdesk.gateway import Gateway
from numberdesk.navigation import ViewContext
from numberdesk.notify import Notifier
from numberdesk.profiles.registry import ProfileRegistry
from numberdesk.ranges.store import CategoryStore
from numberdesk.timers.orchestrator import TimerOrchestrator

logger = logging.getLogger(__name__)


class NumberDesk:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        view: Optional[ViewContext] = None,
        notifier: Optional[Notifier] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or load_settings()
        self.notifier = notifier or Notifier()
        self.view = view or ViewContext()

        self.storage = CredentialStorage(self.settings.db_path, TokenCipher(self.settings.key_path))
        self.session_store = SessionStore(self.storage, ttl_hours=self.settings.session_ttl_hours)

        self.gateway = Gateway(
            self.settings.api_url,
            self.session_store,
            self.notifier,
            view=self.view,
            timeout=self.settings.request_timeout,
            transport=transport,
        )
        self.admin = AdminAPI(self.gateway)
        self.public = PublicAPI(self.settings.api_url, timeout=self.settings.request_timeout, transport=transport)

        self.session = SessionManager(self.session_store, self.admin, self.notifier, view=self.view)
        self.profiles = ProfileRegistry(self.admin, self.notifier)
        self.ranges = CategoryStore(self.admin, self.notifier)
        self.dashboard = Dashboard(self.admin, self.public, self.profiles, self.ranges, self.notifier)
        self.timers = TimerOrchestrator(
            self.admin,
            self.session_store,
            self.dashboard,
            self.ranges,
            self.notifier,
            poll_interval=self.settings.poll_interval_seconds,
        )

    async def open(self, poll: bool = True) -> "NumberDesk":
        """Restore the persisted session; with `poll`, start following it with the full-refresh poll."""
        self.session.bootstrap()
        if poll:
            await self.timers.start()
        logger.info("console ready against %s (authenticated=%s)", self.settings.api_url, self.session.authenticated)
        return self

    async def close(self) -> None:
        await self.timers.close()
        await self.gateway.aclose()
        await self.public.aclose()

    async def __aenter__(self) -> "NumberDesk":
        return await self.open()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
