import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from numberdesk.api.admin import AdminAPI
from numberdesk.api.public import PublicAPI
from numberdesk.errors import NumberDeskError
from numberdesk.notify import Notifier
from numberdesk.outcome import Outcome
from numberdesk.profiles.registry import ProfileRegistry
from numberdesk.ranges.store import CategoryStore

logger = logging.getLogger(__name__)

SAMPLE_LIMIT = 10


class Balance(BaseModel):
    success: bool = False
    today_balance: float = 0.0
    today_otp: int = 0
    today_date: Optional[str] = None
    total_balance: float = 0.0


class Dashboard:
    """Everything the operator console shows, refreshed as one batch."""

    def __init__(
        self,
        api: AdminAPI,
        public: PublicAPI,
        profiles: ProfileRegistry,
        ranges: CategoryStore,
        notifier: Notifier,
    ):
        self.api = api
        self.public = public
        self.profiles = profiles
        self.ranges = ranges
        self.notifier = notifier
        self.balance: Optional[Balance] = None
        self.sample_numbers: List[Dict[str, Any]] = []
        self.refresh_count = 0
        self._listeners: List[Callable[["Dashboard"], None]] = []

    def subscribe(self, callback: Callable[["Dashboard"], None]) -> None:
        """Called after every completed batch refresh."""
        self._listeners.append(callback)

    async def refresh(self) -> bool:
        """Profiles, all range partitions, balance and sample numbers, concurrently."""
        results = await asyncio.gather(
            self.profiles.refresh(),
            self.ranges.refresh(),
            self._refresh_balance(),
            self._refresh_samples(),
        )
        self.refresh_count += 1
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.exception("dashboard listener failed")
        return all(results)

    async def _refresh_balance(self) -> bool:
        try:
            data = await self.api.get_balance()
        except NumberDeskError as e:
            logger.info("balance refresh failed: %s", e.message)
            return False
        if isinstance(data, dict) and data.get("success"):
            self.balance = Balance.model_validate(data)
        return True

    async def _refresh_samples(self) -> bool:
        try:
            data = await self.api.get_test_numbers()
        except NumberDeskError as e:
            logger.info("sample number refresh failed: %s", e.message)
            return False
        if isinstance(data, dict) and data.get("success"):
            self.sample_numbers = list(data.get("working_numbers") or [])[:SAMPLE_LIMIT]
        return True

    async def apply_range(self, value: str) -> Outcome:
        """Fetch a number for a range straight from the public surface."""
        if not (value or "").strip():
            self.notifier.error("Please enter a number range")
            return Outcome.failure("Please enter a number range")
        try:
            result = await self.public.fetch_number_with_range(value.strip())
        except NumberDeskError as e:
            logger.info("range fetch failed: %s", e.message)
            self.notifier.error("Failed to fetch number")
            return Outcome.failure("Failed to fetch number")
        self.notifier.success("Number fetched successfully!")
        return Outcome.success("Number fetched successfully!", data=result)

    async def fetch_number(self) -> Outcome:
        try:
            result = await self.public.fetch_number()
        except NumberDeskError as e:
            logger.info("number fetch failed: %s", e.message)
            self.notifier.error("Failed to fetch number")
            return Outcome.failure("Failed to fetch number")
        self.notifier.success("Number fetched successfully!")
        return Outcome.success("Number fetched successfully!", data=result)

    async def health(self) -> Outcome:
        try:
            return Outcome.success("healthy", data=await self.public.health_check())
        except NumberDeskError as e:
            return Outcome.failure(e.message)

    async def overview(self) -> Outcome:
        """The backend's own counters for the operator dashboard."""
        try:
            data = await self.api.get_dashboard()
        except NumberDeskError as e:
            return Outcome.failure(e.message)
        return Outcome.success("dashboard loaded", data=data if isinstance(data, dict) else {})

    def summary(self) -> Dict[str, Any]:
        active = self.profiles.active_profile
        return {
            "profiles": len(self.profiles.profiles),
            "active_profile": active.name if active else None,
            "favorites": len(self.ranges.favorites),
            "recents": len(self.ranges.recents),
            "special": len(self.ranges.special),
            "today_balance": self.balance.today_balance if self.balance else None,
            "today_otp": self.balance.today_otp if self.balance else None,
            "total_balance": self.balance.total_balance if self.balance else None,
            "sample_numbers": [n.get("test_number") for n in self.sample_numbers if isinstance(n, dict)],
        }
