import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from numberdesk.api.admin import AdminAPI
from numberdesk.errors import GatewayError
from numberdesk.notify import Notifier
from numberdesk.outcome import Outcome

from .models import Category, CategoryEntry

logger = logging.getLogger(__name__)


def _parse_entries(items: Any) -> List[CategoryEntry]:
    entries = []
    for item in items or []:
        try:
            entries.append(CategoryEntry.model_validate(item))
        except ValueError as e:
            logger.warning("skipping malformed range entry %r: %s", item, e)
    return entries


class CategoryStore:
    """
    Range entries partitioned into favorites / recents / special.

    All three partitions are held at once so switching tabs needs no request.
    Every mutation is followed by a full re-list of all three; local state is
    never patched in place.
    """

    def __init__(self, api: AdminAPI, notifier: Notifier):
        self.api = api
        self.notifier = notifier
        self.partitions: Dict[Category, List[CategoryEntry]] = {c: [] for c in Category}

    @property
    def favorites(self) -> List[CategoryEntry]:
        return self.partitions[Category.FAVORITES]

    @property
    def recents(self) -> List[CategoryEntry]:
        return self.partitions[Category.RECENTS]

    @property
    def special(self) -> List[CategoryEntry]:
        return self.partitions[Category.SPECIAL]

    async def list(self, category: Optional[Any] = None) -> List[CategoryEntry]:
        """Direct read, filtered server-side when a category is given. [] on failure."""
        try:
            name = Category.parse(category).value if category is not None else None
        except ValueError as e:
            self.notifier.error(str(e))
            return []
        try:
            return _parse_entries(await self.api.get_ranges(name))
        except GatewayError as e:
            logger.info("range list failed: %s", e.message)
            return []

    async def refresh(self) -> bool:
        """Re-read all three partitions concurrently. Applied only if all succeed."""
        categories = list(Category)
        results = await asyncio.gather(
            *(self.api.get_ranges(c.value) for c in categories),
            return_exceptions=True,
        )

        fresh: Dict[Category, List[CategoryEntry]] = {}
        for category, result in zip(categories, results):
            if isinstance(result, GatewayError):
                logger.info("range refresh failed for %s: %s", category.value, result.message)
                return False
            if isinstance(result, BaseException):
                raise result
            fresh[category] = _parse_entries(result)

        self.partitions = fresh
        return True

    async def refresh_category(self, category: Any) -> bool:
        category = Category.parse(category)
        try:
            items = await self.api.get_ranges(category.value)
        except GatewayError as e:
            logger.info("range refresh failed for %s: %s", category.value, e.message)
            return False
        self.partitions = {**self.partitions, category: _parse_entries(items)}
        return True

    async def create(self, value: str, category: Any, auxiliary: Optional[Dict[str, Any]] = None) -> Outcome:
        value = (value or "").strip()
        if not value:
            return self._rejected("Please enter a number range")
        try:
            category = Category.parse(category)
        except ValueError as e:
            return self._rejected(str(e))

        payload = {
            "range_value": value,
            "category": category.value,
            "extra_data": auxiliary if auxiliary is not None else {"timestamp": datetime.now().isoformat()},
        }
        try:
            created = await self.api.create_range(payload)
        except GatewayError as e:
            return Outcome.failure(f"Failed to add range: {e.message}")

        await self.refresh()
        self.notifier.success(f"Added to {category.value}")
        parsed = _parse_entries([created]) if isinstance(created, dict) else []
        return Outcome.success(f"Added to {category.value}", data=parsed[0] if parsed else None)

    async def update(
        self,
        entry_id: int,
        value: Optional[str] = None,
        category: Optional[Any] = None,
        auxiliary: Optional[Dict[str, Any]] = None,
    ) -> Outcome:
        payload: Dict[str, Any] = {}
        if value is not None:
            value = value.strip()
            if not value:
                return self._rejected("Please enter a number range")
            payload["range_value"] = value
        if category is not None:
            try:
                payload["category"] = Category.parse(category).value
            except ValueError as e:
                return self._rejected(str(e))
        if auxiliary is not None:
            payload["extra_data"] = auxiliary
        if not payload:
            return self._rejected("Nothing to update")

        try:
            await self.api.update_range(entry_id, payload)
        except GatewayError as e:
            return Outcome.failure(f"Failed to update range: {e.message}")

        await self.refresh()
        self.notifier.success("Range updated")
        return Outcome.success("Range updated")

    async def remove(self, entry_id: int) -> Outcome:
        try:
            await self.api.delete_range(entry_id)
        except GatewayError as e:
            return Outcome.failure(f"Failed to delete range: {e.message}")

        await self.refresh()
        self.notifier.success("Range deleted")
        return Outcome.success("Range deleted")

    def _rejected(self, message: str) -> Outcome:
        self.notifier.error(message)
        return Outcome.failure(message)
