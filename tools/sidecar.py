# tools/sidecar.py
"""
Sidecar snapshot: `.ai-context.json` next to the generated project.

Holds cross-run counters only. Page and component listings are never
stored here; they are rebuilt from disk on every analysis.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from agent.logger import log
from runtime.state import ContextMetadata

SIDECAR_NAME = ".ai-context.json"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Sidecar:
    def __init__(self, project_root: str | Path) -> None:
        self.path = Path(project_root) / SIDECAR_NAME

    def load(self) -> Optional[ContextMetadata]:
        """Return the stored metadata, or None when the file is absent or unreadable."""
        if not self.path.is_file():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning(f"Sidecar unreadable ({e}); starting new metadata.")
            return None
        return ContextMetadata.from_dict(data.get("metadata"))

    def load_or_new(self) -> ContextMetadata:
        meta = self.load()
        if meta is None:
            ts = _now()
            meta = ContextMetadata(created_at=ts, last_modified=ts)
        return meta

    def save(self, meta: ContextMetadata) -> None:
        if not self.path.parent.is_dir():
            # Project tree is gone; nothing to annotate.
            log.debug(f"Sidecar skipped, no project at {self.path.parent}")
            return
        try:
            self.path.write_text(
                json.dumps({"metadata": meta.to_dict()}, indent=2), encoding="utf-8"
            )
        except OSError as e:
            log.warning(f"Failed to save sidecar: {e}")

    def record_action(self, action: str, details: str) -> ContextMetadata:
        """Bump the mutation counter after a successful store write."""
        meta = self.load_or_new()
        meta.last_modified    = _now()
        meta.total_iterations += 1
        meta.last_action      = action
        meta.last_details     = details
        self.save(meta)
        return meta

    def bump_applied(self) -> int:
        """Advance the cross-run MODIFY counter. Call only after an applied run."""
        meta = self.load_or_new()
        meta.applied_iterations += 1
        meta.last_modified = _now()
        self.save(meta)
        return meta.applied_iterations

    def applied_iterations(self) -> int:
        meta = self.load()
        return meta.applied_iterations if meta else 0
