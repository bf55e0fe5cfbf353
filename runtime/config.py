# runtime/config.py
"""
Agent configuration.

Precedence: environment > .sitewright/agent_config.json > defaults.
The JSON file is optional and re-read by every load_config() call, so a
long-lived client picks up edits without a restart.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from agent.logger import log

CONFIG_DIR = ".sitewright"


@dataclass
class AgentConfig:
    project_root: str = "output/site-project"

    # Loop bounds. The two caps are independent of each other.
    max_reasoning_iterations: int = 10
    modify_iteration_cap: int = 5
    history_window: int = 6

    # Context analyzer
    page_preview_chars: int = 200
    component_preview_chars: int = 150

    # FRESH completion guard
    min_root_page_chars: int = 500

    # Completion budgets
    reasoning_max_tokens: int = 4000
    plan_max_tokens: int = 2000

    @property
    def root(self) -> Path:
        return Path(self.project_root)


_ENV_MAP = {
    "SITEWRIGHT_PROJECT_ROOT":   ("project_root", str),
    "SITEWRIGHT_MAX_ITERATIONS": ("max_reasoning_iterations", int),
    "SITEWRIGHT_MODIFY_CAP":     ("modify_iteration_cap", int),
}


def _cfg_path(base: Optional[str] = None) -> Path:
    return Path(base or os.getcwd()) / CONFIG_DIR / "agent_config.json"


def _apply_file(cfg: AgentConfig, path: Path) -> AgentConfig:
    if not path.exists():
        return cfg
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.warning(f"Agent config read error ({e}); using defaults.")
        return cfg

    known = {f.name for f in fields(cfg)}
    for key, val in data.items():
        if key not in known:
            log.debug(f"Ignoring unknown agent config key: {key}")
            continue
        setattr(cfg, key, str(val) if key == "project_root" else int(val))
    return cfg


def _apply_env(cfg: AgentConfig) -> AgentConfig:
    for env_key, (attr, cast) in _ENV_MAP.items():
        val = os.getenv(env_key)
        if val:
            setattr(cfg, attr, cast(val))
    return cfg


def load_config(base: Optional[str] = None) -> AgentConfig:
    cfg = _apply_file(AgentConfig(), _cfg_path(base))
    cfg = _apply_env(cfg)
    if cfg.max_reasoning_iterations < 1:
        raise ValueError("max_reasoning_iterations must be >= 1")
    if cfg.modify_iteration_cap < 0:
        raise ValueError("modify_iteration_cap must be >= 0")
    return cfg


def save_config(cfg: AgentConfig, base: Optional[str] = None) -> Path:
    p = _cfg_path(base)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps({f.name: getattr(cfg, f.name) for f in fields(cfg)}, indent=2),
                 encoding="utf-8")
    log.info(f"[green]Agent config saved: {p}[/green]")
    return p
