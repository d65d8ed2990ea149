from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    FAVORITES = "favorites"
    RECENTS = "recents"
    SPECIAL = "special"

    @classmethod
    def parse(cls, value) -> "Category":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(c.value for c in cls)
            raise ValueError(f"Unknown category '{value}'. Expected one of: {allowed}") from None


class CategoryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    value: str = Field(alias="range_value")
    category: Category
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    auxiliary: Optional[Dict[str, Any]] = Field(default=None, alias="extra_data")
