"""Operational utilities for Kid Brokerage."""

from __future__ import annotations

import json
from collections import deque
from pathlib import Path
from typing import Deque, Optional, Tuple

from .models import utcnow


class StructuredLogger:
    """Record account activity as JSON-able dicts, optionally as JSON lines on disk."""

    def __init__(self, *, path: Path | None = None, keep: int = 500) -> None:
        self.path = path
        self._entries: Deque[dict] = deque(maxlen=keep)

    def log(self, event_type: str, **fields: object) -> dict:
        entry = {"timestamp": utcnow().isoformat(), "event": event_type, **fields}
        self._entries.append(entry)
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, default=str) + "\n")
        return entry

    def tail(self, limit: int = 50) -> Tuple[dict, ...]:
        if limit <= 0:
            return ()
        return tuple(self._entries)[-limit:]

    def events(self, event_type: Optional[str] = None) -> Tuple[dict, ...]:
        return tuple(entry for entry in self._entries if event_type is None or entry["event"] == event_type)


__all__ = ["StructuredLogger"]
