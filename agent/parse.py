# agent/parse.py
"""
Free-text reply -> Decision.

Expected reply shape:

    Thought: ...
    Action: createPage | createComponent | updatePage | fixError | finish
    Params: {"name": "...", "content": "..."}
    Final Answer: ...        (finish only)

Models rarely follow that exactly. Params may span several lines, sit in a
code fence, or carry unescaped newlines, so parsing is line-oriented and
falls back to regex extraction over the whole reply. parse_decision never
raises: anything it cannot turn into a usable non-finish Decision becomes
a FINISH Decision with an explanatory final answer.
"""
from __future__ import annotations

import json
import re
from typing import Optional

from agent.errors import DecisionParseError
from agent.logger import log
from runtime.state import Action, Decision

PARAMS_ERROR = "Error: Could not parse required parameters from AI response"

_ACTIONS = {
    "createpage":      Action.CREATE_PAGE,
    "createcomponent": Action.CREATE_COMPONENT,
    "updatepage":      Action.UPDATE_PAGE,
    "fixerror":        Action.FIX_ERROR,
    "finish":          Action.FINISH,
}

# Keys that carry the artifact body, per action. First present key wins.
BODY_KEYS = {
    Action.CREATE_PAGE:      ("content",),
    Action.CREATE_COMPONENT: ("content",),
    Action.UPDATE_PAGE:      ("section", "content"),
    Action.FIX_ERROR:        ("content",),
}

_FENCE       = re.compile(r"```(?:json)?\s*")
_FLAT_OBJECT = re.compile(r'\{[^{}]*"name"[^{}]*"(?:content|section)"[^{}]*\}', re.DOTALL)
_NAME_FIELD  = re.compile(r'"name"\s*:\s*"([^"]*)"')
_BODY_FIELD  = re.compile(r'"(content|section)"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
_POS_FIELD   = re.compile(r'"position"\s*:\s*"([^"]*)"')


# ── Helpers ───────────────────────────────────────────────────────────────────

def _brace_depth(text: str) -> int:
    """Net '{' minus '}' outside JSON string literals."""
    depth, in_str, escaped = 0, False, False
    for ch in text:
        if escaped:
            escaped = False
        elif in_str and ch == "\\":
            escaped = True
        elif ch == '"':
            in_str = not in_str
        elif not in_str and ch == "{":
            depth += 1
        elif not in_str and ch == "}":
            depth -= 1
    return depth


def _closed(buf: str) -> bool:
    return "{" in buf and _brace_depth(buf) <= 0


def _unescape(raw: str) -> str:
    try:
        return json.loads('"' + raw + '"', strict=False)
    except ValueError:
        return (raw.replace("\\n", "\n").replace("\\t", "\t")
                   .replace('\\"', '"').replace("\\\\", "\\"))


def _load_object(buf: str) -> Optional[dict]:
    buf = _FENCE.sub("", buf).strip()
    if not buf:
        return None
    try:
        obj = json.loads(buf, strict=False)
    except ValueError:
        return None
    return obj if isinstance(obj, dict) else None


def _extract_params(text: str) -> Optional[dict]:
    """Regex fallback over the whole reply."""
    m = _FLAT_OBJECT.search(text)
    if m:
        obj = _load_object(m.group(0))
        if obj:
            return obj

    name = _NAME_FIELD.search(text)
    body = _BODY_FIELD.search(text)
    if not (name and body):
        return None
    out = {"name": name.group(1), body.group(1): _unescape(body.group(2))}
    pos = _POS_FIELD.search(text)
    if pos:
        out["position"] = pos.group(1)
    return out


def _normalize_action(raw: str) -> Optional[Action]:
    token = raw.split("(", 1)[0]
    return _ACTIONS.get(re.sub(r"[^a-z]", "", token.lower()))


def has_required_params(action: Action, params: dict) -> bool:
    if not isinstance(params, dict) or not params.get("name"):
        return False
    return any(params.get(k) for k in BODY_KEYS.get(action, ()))


def _require_params(action: Action, params: dict, text: str) -> dict:
    if has_required_params(action, params):
        return params
    extracted = _extract_params(text)
    if extracted and has_required_params(action, extracted):
        log.debug(f"Params recovered by regex fallback for {action.value}")
        return extracted
    raise DecisionParseError(PARAMS_ERROR)


# ── Public API ────────────────────────────────────────────────────────────────

def parse_decision(text: str) -> Decision:
    thought, raw_action, final = "", "", ""
    params: dict = {}
    params_seen = False

    lines = (text or "").split("\n")
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if line.startswith("Thought:"):
            thought = line[len("Thought:"):].strip()
        elif line.startswith("Action:"):
            raw_action = line[len("Action:"):].strip()
        elif line.startswith("Params:"):
            params_seen = True
            buf = line[len("Params:"):].strip()
            # Greedy: keep consuming lines until the object closes.
            j = i
            while j + 1 < len(lines) and not _closed(buf):
                nxt = lines[j + 1].strip()
                if "{" not in buf and nxt and not nxt.startswith(("```", "{")):
                    break
                j += 1
                buf += "\n" + lines[j]
            i = j
            params = _load_object(buf) or _extract_params(text) or {}
        elif line.startswith("Final Answer:"):
            final = line[len("Final Answer:"):].strip()
        i += 1

    action = _normalize_action(raw_action) if raw_action else None
    if action is None:
        if raw_action:
            log.warning(f"[yellow]Unknown action {raw_action!r}; treating as finish[/yellow]")
            final = final or f"Error: Unknown action '{raw_action}'"
        elif not final:
            final = "Error: No action in AI response"
        return Decision(thought=thought, action=Action.FINISH, final_answer=final)

    if action == Action.FINISH:
        return Decision(thought=thought, action=action, params=params, final_answer=final)

    try:
        params = _require_params(action, params, text)
    except DecisionParseError as e:
        log.warning(f"[yellow]{e} (action={action.value}, params line seen={params_seen})[/yellow]")
        return Decision(thought=thought, action=Action.FINISH, final_answer=str(e))

    return Decision(thought=thought, action=action, params=params, final_answer=final)
