# runtime/diagnostics.py
"""
Runtime-diagnostic feed.

The process supervisor (dev server, dependency install) lives outside the
engine. It appends raw stderr/stdout lines here from its own thread; the
context analyzer reads them and the orchestrator clears them after a run
that completed cleanly.
"""
from __future__ import annotations

import threading
from typing import Iterable, List


class DiagnosticFeed:
    def __init__(self, lines: Iterable[str] = ()) -> None:
        self._lock  = threading.Lock()
        self._lines: List[str] = [l for l in lines if l and l.strip()]

    def append(self, line: str) -> None:
        if not line or not line.strip():
            return
        with self._lock:
            self._lines.append(line.rstrip("\n"))

    def extend(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.append(line)

    def snapshot(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
