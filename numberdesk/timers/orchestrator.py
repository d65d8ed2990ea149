"""
Timer orchestration.

Two kinds of timers run on the event loop:
  - one job per category. The recurring fetch itself runs on the backend
    (POST /api/admin/timer/start|stop); locally each running job has a
    trigger task that re-reads that category's partition once per period.
  - the fixed full-refresh poll: every `poll_interval` seconds, while the
    operator is authenticated, the whole dashboard is refreshed as a batch.

Handles live in one registry keyed by category plus a singleton for the
poll. Logout cancels every handle; re-authentication creates a fresh poll
handle and never revives an old one. `close()` cancels and awaits them all.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from numberdesk.api.admin import AdminAPI
from numberdesk.auth.store import SessionStore
from numberdesk.config import TIMER_DEFAULT_MINUTES, TIMER_MAX_MINUTES, TIMER_MIN_MINUTES
from numberdesk.dashboard import Dashboard
from numberdesk.errors import GatewayError, ValidationError
from numberdesk.notify import Notifier
from numberdesk.outcome import Outcome
from numberdesk.ranges.models import Category
from numberdesk.ranges.store import CategoryStore

logger = logging.getLogger(__name__)


@dataclass
class TimerJob:
    category: Category
    interval_minutes: int
    running: bool = True
    started_at: datetime = field(default_factory=datetime.now)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def coerce_interval(raw: Any, default: int = TIMER_DEFAULT_MINUTES) -> int:
    """
    Read the leading integer of operator input, so "5.5" and "7min" give 5 and 7.
    No leading integer, or 0, gives `default`.
    """
    if raw is None:
        return default
    match = _LEADING_INT.match(str(raw))
    if match is None:
        return default
    return int(match.group(1)) or default


def validate_interval(minutes: Any) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationError(f"Timer interval must be a whole number of minutes, got {minutes!r}")
    if not TIMER_MIN_MINUTES <= minutes <= TIMER_MAX_MINUTES:
        raise ValidationError(
            f"Timer interval must be between {TIMER_MIN_MINUTES} and {TIMER_MAX_MINUTES} minutes"
        )
    return minutes


class TimerOrchestrator:
    def __init__(
        self,
        api: AdminAPI,
        session: SessionStore,
        dashboard: Dashboard,
        ranges: CategoryStore,
        notifier: Notifier,
        poll_interval: float = 30.0,
        seconds_per_minute: float = 60.0,
    ):
        self.api = api
        self.session = session
        self.dashboard = dashboard
        self.ranges = ranges
        self.notifier = notifier
        self.poll_interval = poll_interval
        self.seconds_per_minute = seconds_per_minute

        self.jobs: Dict[Category, TimerJob] = {}
        self._handles: Dict[Category, asyncio.Task] = {}
        self._locks: Dict[Category, asyncio.Lock] = {c: asyncio.Lock() for c in Category}
        self._poll_task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._closed = False

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        """Follow the authenticated signal; poll right away if already signed in."""
        self._closed = False
        if self._unsubscribe is None:
            self._unsubscribe = self.session.subscribe(self._on_auth_change)
        if self.session.authenticated:
            self._start_poll()

    async def close(self) -> None:
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = [t for t in [self._poll_task, *self._handles.values()] if t is not None]
        self._cancel_all()
        current = asyncio.current_task()
        pending = [t for t in tasks if t is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _on_auth_change(self, authenticated: bool) -> None:
        if self._closed:
            return
        if authenticated:
            self._start_poll()
        else:
            logger.info("session ended; cancelling poll and %d category trigger(s)", len(self._handles))
            self._cancel_all()

    def _cancel_all(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        for task in self._handles.values():
            task.cancel()
        for job in self.jobs.values():
            job.running = False
        self._handles.clear()
        self.jobs.clear()

    # -- full-refresh poll -------------------------------------------------

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def _start_poll(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("no running event loop; full-refresh poll not started")
            return
        self._poll_task = loop.create_task(self._poll_loop(), name="numberdesk-full-refresh")

    async def _poll_loop(self) -> None:
        while True:
            if self.session.authenticated:
                try:
                    await self.dashboard.refresh()
                except Exception:
                    logger.exception("full refresh failed")
            await asyncio.sleep(self.poll_interval)

    # -- category jobs -----------------------------------------------------

    def job(self, category: Any) -> Optional[TimerJob]:
        return self.jobs.get(Category.parse(category))

    def running_jobs(self) -> Dict[str, int]:
        return {c.value: job.interval_minutes for c, job in self.jobs.items() if job.running}

    async def start_category_timer(self, category: Any, interval_minutes: Any = TIMER_DEFAULT_MINUTES) -> Outcome:
        """Start (or replace) the job for one category. Other categories are untouched."""
        try:
            category = Category.parse(category)
            minutes = validate_interval(interval_minutes)
        except ValidationError as e:
            return self._rejected(e.message)
        except ValueError as e:
            return self._rejected(str(e))

        async with self._locks[category]:
            try:
                await self.api.start_timer(category.value, minutes)
            except GatewayError as e:
                # Prior job, if any, is left exactly as it was.
                return Outcome.failure(f"Failed to start timer: {e.message}")

            if self._closed or not self.session.authenticated:
                logger.info("timer for %s started but session ended; no local trigger", category.value)
                return Outcome.success(f"Timer started for {category.value}")

            self._drop(category)
            job = TimerJob(category=category, interval_minutes=minutes)
            self.jobs[category] = job
            self._handles[category] = asyncio.get_running_loop().create_task(
                self._category_loop(category, minutes),
                name=f"numberdesk-timer-{category.value}",
            )

        self.notifier.success(f"Timer started for {category.value}")
        return Outcome.success(f"Timer started for {category.value}", data=job)

    async def stop_category_timer(self, category: Any) -> Outcome:
        """Stop one category's job. Stopping a category with no job is a success."""
        try:
            category = Category.parse(category)
        except ValueError as e:
            return self._rejected(str(e))

        async with self._locks[category]:
            try:
                await self.api.stop_timer(category.value)
            except GatewayError as e:
                return Outcome.failure(f"Failed to stop timer: {e.message}")
            self._drop(category)

        self.notifier.success(f"Timer stopped for {category.value}")
        return Outcome.success(f"Timer stopped for {category.value}")

    def _drop(self, category: Category) -> None:
        task = self._handles.pop(category, None)
        if task is not None:
            task.cancel()
        job = self.jobs.pop(category, None)
        if job is not None:
            job.running = False

    async def _category_loop(self, category: Category, minutes: int) -> None:
        period = minutes * self.seconds_per_minute
        while True:
            await asyncio.sleep(period)
            await self.ranges.refresh_category(category)

    def _rejected(self, message: str) -> Outcome:
        self.notifier.error(message)
        return Outcome.failure(message)
