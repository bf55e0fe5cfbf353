# agent/planner.py
"""
Plan Generator: instruction (+ project context in MODIFY) -> one free-text,
human-reviewable plan. No structural parsing of the reply.

Three prompt variants:
  FRESH               whole-site plan
  MODIFY              feature-request plan seeded with page/component names
  MODIFY with errors  error-fix plan seeded with the categorized diagnostics
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Optional

from agent.llm import Completion, complete as default_complete
from agent.logger import log
from runtime.config import AgentConfig
from runtime.state import ProjectContext


@dataclass
class PlanResult:
    ok: bool
    text: str = ""
    error: Optional[str] = None


def needs_error_fix(context: Optional[ProjectContext]) -> bool:
    """Actionable diagnostics only; uncategorized output does not switch variants."""
    if context is None:
        return False
    errs = context.detected_errors
    return bool(errs.missing_import or errs.missing_component or errs.build_error)


def fresh_prompt(instruction: str) -> str:
    return f"""Create a Next.js 14 website plan.

REQUEST: {instruction}

Create a detailed plan showing:
1. Pages to CREATE (home page and other pages)
2. Components to CREATE (all reusable components)
3. Design approach
4. Features to include

Format:
PROJECT PLAN

Goal: [brief description]

PAGES TO CREATE:
- [each page with a brief description]

COMPONENTS TO CREATE:
- [each component with its purpose]

DESIGN:
- [style, colors, layout approach]

FEATURES:
- [key features to implement]

Create the plan:"""


def modify_prompt(instruction: str, context: ProjectContext) -> str:
    pages      = ", ".join(p.name for p in context.pages) or "(none)"
    components = ", ".join(c.name for c in context.components) or "(none)"
    return f"""Modify an existing Next.js project.

CURRENT STATE:
- Pages: {pages}
- Components: {components}

REQUEST: {instruction}

Create a plan:
1. What to MODIFY
2. What to CREATE
3. Components needed

Format:
PLAN
Goal: [brief]
MODIFY: [list]
CREATE: [list]
COMPONENTS: [list]
IMPACT: [brief]"""


def error_fix_prompt(instruction: str, context: ProjectContext) -> str:
    errors = json.dumps(context.detected_errors.to_dict(), indent=2)
    return f"""Fix errors in a Next.js project.

CONTEXT: {len(context.pages)} pages, {len(context.components)} components

REQUEST: {instruction}

ERRORS:
{errors}

Create a fix plan:
1. Components to CREATE
2. Files to MODIFY
3. Expected outcome

Format:
FIX PLAN
Goal: [brief]
MODIFY: [list]
CREATE: [list]
OUTCOME: [brief]"""


class PlanGenerator:
    def __init__(self, complete: Optional[Callable[..., Completion]] = None,
                 config: Optional[AgentConfig] = None) -> None:
        self.complete = complete or default_complete
        self.config   = config or AgentConfig()

    def build_prompt(self, instruction: str, context: Optional[ProjectContext]) -> str:
        if context is None:
            return fresh_prompt(instruction)
        if needs_error_fix(context):
            return error_fix_prompt(instruction, context)
        return modify_prompt(instruction, context)

    def plan(self, instruction: str, context: Optional[ProjectContext] = None) -> PlanResult:
        variant = "fresh" if context is None else ("error-fix" if needs_error_fix(context) else "modify")
        log.info(f"[bold magenta]Planning ({variant})...[/bold magenta]")

        reply = self.complete(self.build_prompt(instruction, context),
                              max_tokens=self.config.plan_max_tokens)
        if reply.error:
            log.error(f"[red]Plan generation failed: {reply.error}[/red]")
            return PlanResult(ok=False, error=f"Error generating plan: {reply.error}")

        text = (reply.text or "").strip()
        if not text:
            return PlanResult(ok=False, error="Error generating plan: empty reply")

        log.debug(f"Plan:\n{text}")
        return PlanResult(ok=True, text=text)
