"""RequestContext — per-request state container."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from starlette.requests import Request


@dataclass
class RequestContext:
    """Per-request record threaded through a middleware chain.

    ``data`` holds route-supplied parameters and is frozen into a read-only
    mapping at construction. ``state`` is shared scratch space: each
    middleware writes its own keys and may read what earlier ones wrote.
    """

    request: Request
    data: Mapping[str, Any] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.data, MappingProxyType):
            self.data = MappingProxyType(dict(self.data))
