# agent/llm.py
"""
Completion service client: Anthropic / OpenAI-compatible endpoints
(local llama.cpp, Ollama, LM Studio, OpenAI, OpenRouter, Groq, ...).

One request per call. Failures are not retried here; they come back as a
Completion with `error` set so the caller decides what a failure means.

Config: .sitewright/llm_config.json (auto-created, re-read on every call so
a provider switch takes effect without a restart).
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from agent.logger import log

# ── Default config ─────────────────────────────────────────────────────────────
_DEFAULT_CFG: dict = {
    "provider":    "anthropic",
    "model":       "claude-sonnet-4-20250514",
    "api_key":     "",
    "base_url":    "https://api.anthropic.com",
    "max_tokens":  4000,
    "temperature": 0.2,
    "timeout":     180,
    "_presets": {
        "anthropic":  {"base_url": "https://api.anthropic.com",        "model": "claude-sonnet-4-20250514"},
        "openai":     {"base_url": "https://api.openai.com/v1",        "model": "gpt-4o"},
        "openrouter": {"base_url": "https://openrouter.ai/api/v1",     "model": "anthropic/claude-3.5-sonnet"},
        "groq":       {"base_url": "https://api.groq.com/openai/v1",   "model": "llama-3.1-70b-versatile"},
        "local":      {"base_url": "http://127.0.0.1:8080/v1",         "model": "local"},
        "ollama":     {"base_url": "http://127.0.0.1:11434/v1",        "model": "qwen2.5-coder:7b"},
        "lmstudio":   {"base_url": "http://127.0.0.1:1234/v1",         "model": "local"},
    },
}

_ENV_KEYS = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY",
             "openrouter": "OPENROUTER_API_KEY", "groq": "GROQ_API_KEY"}


@dataclass
class Completion:
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ServiceError(RuntimeError):
    """Provider answered with an error payload or an unusable shape."""


# ── Config ─────────────────────────────────────────────────────────────────────

def _cfg_path() -> Path:
    return Path(os.getcwd()) / ".sitewright" / "llm_config.json"


def _load_config() -> dict:
    p = _cfg_path()
    if not p.exists():
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(_DEFAULT_CFG, indent=2), encoding="utf-8")
        log.info(f"[cyan]Created LLM config: {p}[/cyan]")
    try:
        cfg: dict = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.warning(f"Config read error ({e}); using defaults.")
        cfg = dict(_DEFAULT_CFG)

    prov   = cfg.get("provider", "anthropic")
    preset = _DEFAULT_CFG["_presets"].get(prov, {})
    if not cfg.get("base_url"):
        cfg["base_url"] = preset.get("base_url", "")
    if not cfg.get("model"):
        cfg["model"] = preset.get("model", "local")
    if not cfg.get("api_key") and prov in _ENV_KEYS:
        cfg["api_key"] = os.getenv(_ENV_KEYS[prov], "")
    return cfg


def save_config(cfg: dict) -> None:
    """Write config. Takes effect on the next complete() call."""
    p = _cfg_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(cfg, indent=2), encoding="utf-8")
    log.info(f"[green]Config saved: {cfg.get('provider')}/{cfg.get('model')}[/green]")


# ── Provider calls ─────────────────────────────────────────────────────────────

def _error_message(r: requests.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        return f"HTTP {r.status_code}: {r.text[:200]}"
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict):
        return err.get("message") or json.dumps(err)
    return f"HTTP {r.status_code}: {err or data}"


def _anthropic(cfg: dict, prompt: str, max_tokens: int) -> str:
    api_key = cfg.get("api_key", "")
    if not api_key:
        raise ServiceError("Anthropic requires api_key (llm_config.json or ANTHROPIC_API_KEY)")
    url = cfg["base_url"].rstrip("/") + "/v1/messages"
    r = requests.post(
        url,
        headers={"x-api-key": api_key, "anthropic-version": "2023-06-01",
                 "Content-Type": "application/json"},
        json={"model": cfg.get("model"),
              "max_tokens": max_tokens,
              "temperature": float(cfg.get("temperature", 0.2)),
              "messages": [{"role": "user", "content": prompt}]},
        timeout=int(cfg.get("timeout", 180)),
    )
    if r.status_code >= 400:
        raise ServiceError(_error_message(r))
    data = r.json()
    if data.get("error"):
        raise ServiceError(data["error"].get("message", str(data["error"])))
    blocks = [b.get("text", "") for b in data.get("content") or [] if b.get("type") == "text"]
    if not blocks:
        raise ServiceError(f"Unexpected response shape: {list(data.keys())}")
    return "\n".join(blocks).strip()


def _openai_compat(cfg: dict, prompt: str, max_tokens: int) -> str:
    url     = cfg["base_url"].rstrip("/") + "/chat/completions"
    api_key = cfg.get("api_key", "")
    headers: dict = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    payload = {
        "model":       cfg.get("model", "local"),
        "messages":    [{"role": "user", "content": prompt}],
        "max_tokens":  max_tokens,
        "temperature": float(cfg.get("temperature", 0.2)),
    }
    r = requests.post(url, headers=headers, json=payload,
                      timeout=int(cfg.get("timeout", 180)))
    if r.status_code >= 400:
        raise ServiceError(_error_message(r))
    data = r.json()
    if "choices" in data and data["choices"]:
        return (data["choices"][0]["message"]["content"] or "").strip()
    raise ServiceError(f"Unexpected response shape: {list(data.keys())}")


# ── Public API ─────────────────────────────────────────────────────────────────

def complete(prompt: str, max_tokens: Optional[int] = None) -> Completion:
    """
    Single-shot completion. Never raises for service or transport failures.
    """
    cfg      = _load_config()
    provider = cfg.get("provider", "anthropic").lower()
    budget   = int(max_tokens or cfg.get("max_tokens", 4000))

    log.debug(f"LLM call → {provider}/{cfg.get('model')} ({len(prompt)} chars)")
    try:
        if provider == "anthropic":
            text = _anthropic(cfg, prompt, budget)
        else:
            text = _openai_compat(cfg, prompt, budget)
    except requests.Timeout:
        log.error("LLM timeout")
        return Completion(error="Completion service timed out")
    except (requests.RequestException, ServiceError, ValueError, KeyError) as e:
        log.error(f"LLM error: {e}")
        return Completion(error=str(e))

    log.debug(f"LLM reply ({len(text)} chars)")
    return Completion(text=text)


def get_model_info() -> dict:
    cfg = _load_config()
    return {
        "provider": cfg.get("provider", "anthropic"),
        "model":    cfg.get("model", "unknown"),
        "base_url": cfg.get("base_url", ""),
    }
