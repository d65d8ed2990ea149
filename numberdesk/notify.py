import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    level: str  # 'success' | 'error'
    message: str
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    """Operator-facing notification channel (the toasts of the web console)."""

    def __init__(self):
        self.history: List[Notification] = []
        self._subscribers: List[Callable[[Notification], None]] = []

    def subscribe(self, callback: Callable[[Notification], None]) -> None:
        self._subscribers.append(callback)

    def success(self, message: str) -> None:
        logger.info(message)
        self._emit(Notification("success", message))

    def error(self, message: str) -> None:
        logger.warning(message)
        self._emit(Notification("error", message))

    def clear(self) -> None:
        self.history.clear()

    @property
    def errors(self) -> List[str]:
        return [n.message for n in self.history if n.level == "error"]

    @property
    def messages(self) -> List[str]:
        return [n.message for n in self.history]

    def _emit(self, notification: Notification) -> None:
        self.history.append(notification)
        for callback in list(self._subscribers):
            try:
                callback(notification)
            except Exception:
                logger.exception("notification subscriber failed")
