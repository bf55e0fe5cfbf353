# agent/dispatch.py
"""
Action Dispatcher: one Decision -> one Artifact Store operation.

Handlers return tool result dicts and never raise for store failures:
  {"success": True,  "message": ..., "file_path": ...}
  {"success": False, "error": ...}
"""
from __future__ import annotations

from typing import Callable, Dict

from agent.errors import ArtifactWriteError
from agent.logger import log
from agent.parse import BODY_KEYS
from runtime.state import Action, Decision
from tools.artifact_store import ArtifactKind, ArtifactStore
from tools.sidecar import Sidecar
from tools.splice import DEFAULT_POSITION


def _body(action: Action, params: dict) -> str:
    for key in BODY_KEYS.get(action, ()):
        if params.get(key):
            return params[key]
    return ""


def _non_text_param(action: Action, params: dict) -> str | None:
    """First of name, body or position that the model sent as a non-string."""
    for key in ("name", *BODY_KEYS.get(action, ()), "position"):
        value = params.get(key)
        if value is not None and not isinstance(value, str):
            return key
    return None


class ActionDispatcher:
    def __init__(self, store: ArtifactStore, sidecar: Sidecar | None = None) -> None:
        self.store   = store
        self.sidecar = sidecar or Sidecar(store.root)
        self._handlers: Dict[Action, Callable[[dict], dict]] = {
            Action.CREATE_PAGE:      self._create_page,
            Action.CREATE_COMPONENT: self._create_component,
            Action.UPDATE_PAGE:      self._update_page,
            Action.FIX_ERROR:        self._fix_error,
        }

    # ── Handlers ──────────────────────────────────────────────────────────────

    def _create_page(self, p: dict) -> dict:
        name = p["name"]
        rel  = self.store.write_page(name, _body(Action.CREATE_PAGE, p))
        where = "root home page" if self.store.is_root_page(name) else "page"
        self.sidecar.record_action("page_created", rel)
        return {"success": True, "message": f"Created {where} {rel}", "file_path": rel}

    def _create_component(self, p: dict) -> dict:
        rel = self.store.write_component(p["name"], _body(Action.CREATE_COMPONENT, p))
        self.sidecar.record_action("component_created", rel)
        return {"success": True, "message": f"Created component {rel}", "file_path": rel}

    def _update_page(self, p: dict) -> dict:
        position = p.get("position") or DEFAULT_POSITION
        rel = self.store.update_page(p["name"], _body(Action.UPDATE_PAGE, p), position)
        self.sidecar.record_action("page_updated", f"{rel} ({position})")
        return {"success": True, "message": f"Updated {rel} at {position}", "file_path": rel}

    def _fix_error(self, p: dict) -> dict:
        name    = p["name"]
        content = _body(Action.FIX_ERROR, p)
        if self.store.exists(ArtifactKind.COMPONENT, name):
            rel = self.store.write_component(name, content)
        else:
            rel = self.store.write_page(name, content)
        self.sidecar.record_action("error_fixed", rel)
        return {"success": True, "message": f"Fixed {rel}", "file_path": rel}

    # ── Entry point ───────────────────────────────────────────────────────────

    def dispatch(self, decision: Decision) -> dict:
        handler = self._handlers.get(decision.action)
        if handler is None:
            return {"success": False, "error": f"Unknown tool: {decision.action.value}"}

        params = decision.params or {}
        if not params.get("name") or not _body(decision.action, params):
            return {"success": False, "error": "Missing required parameter: name or content"}
        bad = _non_text_param(decision.action, params)
        if bad:
            return {"success": False, "error": f"Parameter '{bad}' must be a string"}

        log.info(f"[cyan]{decision.action.value} → {params['name']}[/cyan]")
        try:
            result = handler(params)
        except ArtifactWriteError as e:
            log.error(f"[red]{decision.action.value} failed: {e}[/red]")
            return {"success": False, "error": str(e)}

        log.info(f"[green]{result['message']}[/green]")
        return result
