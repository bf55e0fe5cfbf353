# tools/artifact_store.py
"""
Filesystem-backed artifact tree for the generated project.

Layout:
  app/page.js            root page (names "home", "/", "index")
  app/<name>/page.js     named page, one level deep
  components/<Name>.js   component

Every artifact is a leaf file. Upstream tooling has been seen creating a
*directory* where a page file belongs (app/page.js/), so each write first
heals the target: a directory at the leaf path is removed, a file where a
parent directory belongs is removed, then the content is written with
exclusive-create semantics and read back byte-for-byte.
"""
from __future__ import annotations

import re
import shutil
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from agent.errors import ArtifactNotFoundError, ArtifactWriteError
from agent.logger import log
from tools.splice import splice_section

ROOT_PAGE_NAMES = {"home", "/", "index"}
ROOT_PAGE_NAME  = "home"
PAGES_DIR       = "app"
COMPONENTS_DIR  = "components"
ENTRY_FILE      = "page.js"
COMPONENT_EXT   = ".js"
IGNORE_DIRS     = {"node_modules", ".next"}

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class ArtifactKind(str, Enum):
    PAGE      = "page"
    COMPONENT = "component"


def _clean_name(name: str) -> str:
    if name is not None and not isinstance(name, str):
        raise ArtifactWriteError(f"Artifact name must be text, got {type(name).__name__}")
    n = (name or "").strip()
    if n.endswith(COMPONENT_EXT):
        n = n[: -len(COMPONENT_EXT)]
    if n not in ROOT_PAGE_NAMES:
        n = n.strip("/")
    return n


class ArtifactStore:
    def __init__(self, project_root: str | Path) -> None:
        self.root = Path(project_root)

    # ── Addressing ────────────────────────────────────────────────────────────

    @property
    def pages_dir(self) -> Path:
        return self.root / PAGES_DIR

    @property
    def components_dir(self) -> Path:
        return self.root / COMPONENTS_DIR

    def is_root_page(self, name: str) -> bool:
        return _clean_name(name) in ROOT_PAGE_NAMES

    def page_path(self, name: str) -> Path:
        n = _clean_name(name)
        if n in ROOT_PAGE_NAMES:
            return self.pages_dir / ENTRY_FILE
        if not _NAME_RE.match(n):
            raise ArtifactWriteError(f"Invalid page name: {name!r}")
        return self.pages_dir / n / ENTRY_FILE

    def component_path(self, name: str) -> Path:
        n = _clean_name(name)
        if not _NAME_RE.match(n):
            raise ArtifactWriteError(f"Invalid component name: {name!r}")
        return self.components_dir / f"{n}{COMPONENT_EXT}"

    def path_for(self, kind: ArtifactKind, name: str) -> Path:
        if kind == ArtifactKind.PAGE:
            return self.page_path(name)
        return self.component_path(name)

    def rel(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    # ── Conflict healing + verified write ─────────────────────────────────────

    def _heal_parents(self, path: Path) -> None:
        """Any non-directory sitting where a parent directory belongs is removed."""
        rel_parents = list(path.relative_to(self.root).parents)[::-1]
        for rel_parent in rel_parents:
            p = self.root / rel_parent
            if p.is_symlink() or (p.exists() and not p.is_dir()):
                log.warning(f"[yellow]Removing file blocking directory: {self.rel(p) or p}[/yellow]")
                p.unlink()

    def _heal_leaf(self, path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            log.warning(f"[yellow]Directory found at artifact path {self.rel(path)}, removing it[/yellow]")
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            log.debug(f"Replacing existing artifact {self.rel(path)}")
            path.unlink()

    def _write_leaf(self, path: Path, content: str) -> str:
        if not isinstance(content, str):
            raise ArtifactWriteError(f"Content for {self.rel(path)} must be text")
        # Encode before anything on disk is touched, so bad text keeps the old file.
        try:
            data = content.encode("utf-8")
        except UnicodeError as e:
            raise ArtifactWriteError(f"Content for {self.rel(path)} is not valid UTF-8 text: {e}") from e

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._heal_parents(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._heal_leaf(path)
        except OSError as e:
            raise ArtifactWriteError(f"Failed to write {self.rel(path)}: {e}") from e

        try:
            with open(path, "xb") as fh:
                fh.write(data)
            written = path.read_bytes()
        except OSError as e:
            path.unlink(missing_ok=True)
            raise ArtifactWriteError(f"Failed to write {self.rel(path)}: {e}") from e

        if written != data:
            raise ArtifactWriteError(
                f"Write verification failed for {self.rel(path)}: content mismatch"
            )
        log.debug(f"Wrote {self.rel(path)} ({len(content)} chars)")
        return self.rel(path)

    # ── Mutations ─────────────────────────────────────────────────────────────

    def write_page(self, name: str, content: str) -> str:
        """Create or overwrite a page. Returns its project-relative path."""
        return self._write_leaf(self.page_path(name), content)

    def write_component(self, name: str, content: str) -> str:
        return self._write_leaf(self.component_path(name), content)

    def update_page(self, name: str, section: str, position: Optional[str] = None) -> str:
        """
        Splice `section` into an existing page. The page must exist;
        write_page creates pages.
        """
        path = self.page_path(name)
        if not path.is_file():
            raise ArtifactNotFoundError(
                f"Page {self.rel(path)} does not exist. Use createPage instead."
            )
        try:
            existing = path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ArtifactWriteError(f"Cannot read {self.rel(path)}: {e}") from e
        updated, reason = splice_section(existing, section, position)
        if updated is None:
            raise ArtifactWriteError(
                f"Cannot update {self.rel(path)} at position {position!r}: {reason}"
            )
        return self._write_leaf(path, updated)

    def delete_all(self) -> bool:
        """Remove the whole project tree. Returns False when it was already absent."""
        if not self.root.exists() and not self.root.is_symlink():
            log.info(f"No existing project at {self.root} (fresh start)")
            return False
        if self.root.is_dir() and not self.root.is_symlink():
            shutil.rmtree(self.root)
        else:
            self.root.unlink()
        log.info(f"[yellow]Deleted project tree {self.root}[/yellow]")
        return True

    # ── Reads ─────────────────────────────────────────────────────────────────

    def exists(self, kind: ArtifactKind, name: str) -> bool:
        try:
            return self.path_for(kind, name).is_file()
        except ArtifactWriteError:
            return False

    def read(self, kind: ArtifactKind, name: str) -> str:
        path = self.path_for(kind, name)
        if not path.is_file():
            raise ArtifactNotFoundError(f"No {kind.value} artifact {self.rel(path)}")
        return path.read_bytes().decode("utf-8")

    def list_pages(self) -> List[Tuple[str, Path]]:
        """Root page first, then first-level named pages in name order."""
        out: List[Tuple[str, Path]] = []
        if not self.pages_dir.is_dir():
            return out
        root_page = self.pages_dir / ENTRY_FILE
        if root_page.is_file():
            out.append((ROOT_PAGE_NAME, root_page))
        for entry in sorted(self.pages_dir.iterdir()):
            if not entry.is_dir() or entry.name in IGNORE_DIRS:
                continue
            page = entry / ENTRY_FILE
            if page.is_file():
                out.append((entry.name, page))
        return out

    def list_components(self) -> List[Tuple[str, Path]]:
        if not self.components_dir.is_dir():
            return []
        return [
            (p.stem, p)
            for p in sorted(self.components_dir.iterdir())
            if p.is_file() and p.suffix == COMPONENT_EXT
        ]
