# agent/context.py
"""
Context Analyzer: rebuilds a ProjectContext from the live artifact tree.

Pages and components are always re-read from disk. The sidecar supplies
only run-spanning metadata, and runtime diagnostics come from the feed the
process supervisor fills.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Set

from agent.logger import log
from runtime.config import AgentConfig
from runtime.diagnostics import DiagnosticFeed
from runtime.state import ComponentSummary, DetectedErrors, PageSummary, ProjectContext
from tools.artifact_store import ArtifactStore
from tools.sidecar import Sidecar

BUILTIN_TAGS = {"Link", "Image", "Head", "Script", "Fragment"}

_TAG_REF   = re.compile(r"<([A-Z][A-Za-z0-9]*)")
_IMPORT    = re.compile(r"\bimport\s+([^'\";]+?)\s+from\s+['\"]")
_LOCAL_DEF = re.compile(r"\b(?:function|class|const|let|var)\s+([A-Z][A-Za-z0-9]*)")
_MISSING_MODULE = re.compile(r"Cannot find module ['\"](.+?)['\"]")


# ── Static check ──────────────────────────────────────────────────────────────

def _imported_names(content: str) -> Set[str]:
    names: Set[str] = set()
    for m in _IMPORT.finditer(content):
        clause = m.group(1)
        braced = re.search(r"\{([^}]*)\}", clause)
        if braced:
            for part in braced.group(1).split(","):
                part = part.strip()
                if part:
                    names.add(part.split(" as ")[-1].strip())
            clause = clause.replace(braced.group(0), "")
        for part in clause.split(","):
            part = part.strip()
            if not part:
                continue
            if part.startswith("*"):
                names.add(part.split(" as ")[-1].strip())
            else:
                names.add(part)
    return names


def check_markup_imports(content: str) -> List[str]:
    """
    Flag capitalized tags that are neither imported nor defined in the file.
    Shallow and textual: tags inside strings or comments count too.
    """
    known = _imported_names(content) | set(_LOCAL_DEF.findall(content)) | BUILTIN_TAGS
    issues: List[str] = []
    seen: Set[str] = set()
    for tag in _TAG_REF.findall(content):
        if tag in known or tag in seen:
            continue
        seen.add(tag)
        issues.append(f"Missing import for {tag}")
    return issues


# ── Runtime diagnostics ───────────────────────────────────────────────────────

def categorize_diagnostics(lines: Iterable[str]) -> DetectedErrors:
    errs = DetectedErrors()
    for line in lines:
        if "Module not found" in line or "Cannot find module" in line:
            m = _MISSING_MODULE.search(line)
            errs.missing_import.append(m.group(1) if m else line)
        elif "is not defined" in line or "ReferenceError" in line:
            errs.missing_component.append(line)
        elif "Error:" in line or "Failed to compile" in line:
            errs.build_error.append(line)
        else:
            errs.other.append(line)
    return errs


# ── Analyzer ──────────────────────────────────────────────────────────────────

class ContextAnalyzer:
    def __init__(self, store: ArtifactStore, sidecar: Optional[Sidecar] = None,
                 feed: Optional[DiagnosticFeed] = None,
                 config: Optional[AgentConfig] = None) -> None:
        self.store   = store
        self.sidecar = sidecar or Sidecar(store.root)
        self.feed    = feed if feed is not None else DiagnosticFeed()
        self.config  = config or AgentConfig()

    def _read(self, path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            log.warning(f"[yellow]Skipping unreadable artifact {path}: {e}[/yellow]")
            return None

    def analyze(self) -> Optional[ProjectContext]:
        if not self.store.root.is_dir():
            log.info("No existing project found")
            return None

        pages: List[PageSummary] = []
        for name, path in self.store.list_pages():
            content = self._read(path)
            if content is None:
                continue
            pages.append(PageSummary(
                name=name,
                path=self.store.rel(path),
                content_preview=content[: self.config.page_preview_chars],
                detected_issues=check_markup_imports(content),
            ))

        components: List[ComponentSummary] = []
        for name, path in self.store.list_components():
            content = self._read(path)
            if content is None:
                continue
            components.append(ComponentSummary(
                name=name,
                path=self.store.rel(path),
                content_preview=content[: self.config.component_preview_chars],
                detected_issues=check_markup_imports(content),
            ))

        errors = categorize_diagnostics(self.feed.snapshot())
        meta   = self.sidecar.load_or_new()
        self.sidecar.save(meta)

        log.info(
            f"[cyan]Context: {len(pages)} pages, {len(components)} components, "
            f"{errors.count()} diagnostics[/cyan]"
        )
        return ProjectContext(pages=pages, components=components,
                              detected_errors=errors, metadata=meta)
