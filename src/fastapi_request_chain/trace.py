"""ChainTrace and TraceEntry — debug execution recording."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


@dataclass(frozen=True)
class TraceEntry:
    """Single middleware execution record.

    ``duration_ms`` is inclusive: it covers everything downstream of the
    middleware as well, since the chain nests.
    """

    middleware_name: str
    duration_ms: float
    outcome: Literal["OK", "SHORT_CIRCUIT", "FAILED"]
    reason: str | None = None


@dataclass
class ChainTrace:
    """Structured record of a single chain execution.

    Entries are appended as middleware return, innermost first.
    """

    entries: list[TraceEntry] = field(default_factory=list)
    total_duration_ms: float = 0.0
    outcome: Literal["OK", "ERROR"] = "OK"
    error: Exception | None = None
