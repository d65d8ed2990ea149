from typing import Callable, List, Optional

from numberdesk.config import LOGIN_PATH, OPERATOR_PREFIX


class ViewContext:
    """Where the operator currently is, and how to send them elsewhere."""

    def __init__(self, path: str = OPERATOR_PREFIX, on_navigate: Optional[Callable[[str], None]] = None):
        self.path = path
        self.history: List[str] = []
        self._on_navigate = on_navigate

    @property
    def is_operator(self) -> bool:
        return self.path.startswith(OPERATOR_PREFIX)

    @property
    def at_login(self) -> bool:
        return self.path == LOGIN_PATH

    def navigate(self, path: str) -> None:
        self.history.append(path)
        self.path = path
        if self._on_navigate is not None:
            self._on_navigate(path)
