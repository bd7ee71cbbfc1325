"""
Setting model: a small key/value store for process-wide state.

Holds the basket recipe blob and the assembled-basket counter. Values are
JSON text; ``version`` increases on every write so callers can detect
that someone else saved in between.
"""

import json
from typing import Any

from sqlalchemy import Column, Integer, String, Text

from .base import BaseModel


class Setting(BaseModel):
    """
    Setting model for named JSON values.

    Attributes:
        key: Unique setting name
        value: JSON-encoded value
        version: Write counter, starts at 1
    """

    __tablename__ = "settings"

    key = Column(String(100), nullable=False, unique=True, index=True)
    value = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    def get_value(self) -> Any:
        """Decode and return the stored JSON value."""
        return json.loads(self.value)

    def set_value(self, value: Any) -> None:
        """Encode ``value`` as JSON and bump the version."""
        self.value = json.dumps(value, sort_keys=True)
        self.version = (self.version or 0) + 1

    def __repr__(self) -> str:
        return f"Setting(key='{self.key}', version={self.version})"
