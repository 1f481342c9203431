"""Event — immutable log record handed to structured log sinks."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Literal

EventType = Literal["request", "error"]


@dataclass(frozen=True)
class Event:
    """A single request or error occurrence."""

    id: str
    type: EventType
    date: datetime
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def to_dict(self) -> dict[str, Any]:
        """Flatten into JSON-friendly fields, rendering the request as method/url."""
        payload: dict[str, Any] = {}
        for key, value in self.data.items():
            if key == "request":
                payload["method"] = value.method
                payload["url"] = str(value.url)
            else:
                payload[key] = value
        return {
            "id": self.id,
            "type": self.type,
            "date": self.date.isoformat(),
            **payload,
        }
