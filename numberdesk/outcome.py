from typing import Any

from pydantic import BaseModel


class Outcome(BaseModel):
    """What a component hands back instead of raising."""

    ok: bool
    message: str = ""
    data: Any = None

    @classmethod
    def success(cls, message: str = "", data: Any = None) -> "Outcome":
        return cls(ok=True, message=message, data=data)

    @classmethod
    def failure(cls, message: str) -> "Outcome":
        return cls(ok=False, message=message)
