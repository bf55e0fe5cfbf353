# agent/decide.py
"""
Reasoning Engine: one completion call per loop iteration.

The prompt is a mode-specific header, the last few history entries rendered
one line each, then the response-format directive that parse_decision
expects. A completion-service error becomes a terminal FINISH decision; it
is never retried here.
"""
from __future__ import annotations

from typing import Callable, List, Optional

from agent.errors import CompletionServiceError
from agent.llm import Completion, complete as default_complete
from agent.logger import log
from agent.parse import parse_decision
from runtime.config import AgentConfig
from runtime.state import Action, Decision, HistoryEntry, HistoryKind, Mode

CompleteFn = Callable[..., Completion]


# ── Prompt pieces ─────────────────────────────────────────────────────────────

FRESH_HEADER = """Create a Next.js 14 project from scratch.

Tools:
1. createPage(name, content) - create a page
   - name="home" is the main landing page (app/page.js)
   - any other name ("about", "contact") becomes app/<name>/page.js
2. createComponent(name, content) - create a reusable component in components/<Name>.js

EXECUTION ORDER:
1. FIRST create ALL components the site needs (Header, Hero, Features, Footer, ...)
2. THEN create the home page with name="home", importing and using every component
3. THEN create any other requested pages

RULES:
- Import components as: import ComponentName from '../components/ComponentName'
- Add "use client" to files that use hooks or interactivity
- Style with Tailwind CSS
- Every file exports a default function
- Write complete, working code. No placeholders.
"""

MODIFY_HEADER = """Modify an existing Next.js 14 project.

Tools:
1. createPage(name, content) - REPLACE an entire page (name="home" is app/page.js)
2. updatePage(name, section, position) - ADD a section to an existing page
   - position: "before_closing" (default), "after_opening", "replace" or "append"
3. createComponent(name, content) - create or replace a component
4. fixError(name, content) - rewrite a broken component or page with corrected full content

WHEN TO USE EACH TOOL:
- Prefer updatePage for incremental changes (new sections, testimonials, CTA)
- Use createPage only for a full page redesign
- Create components BEFORE any page uses them

RULES:
- Import components as: import ComponentName from '../components/ComponentName'
- Add "use client" to files that use hooks or interactivity
- Keep existing content unless the request says otherwise
"""

RESPONSE_FORMAT = """
Response format:

Thought: [your reasoning]
Action: [createPage|createComponent|updatePage|fixError|finish]
Params: {"name": "filename", "content": "code with \\n for newlines"}
Final Answer: [only when Action is finish]

FORMATTING RULES:
1. Params is valid JSON on ONE line
2. Use \\n for newlines and \\" for quotes inside strings
3. No markdown code blocks
4. Params must have "name" and "content" (updatePage: "name", "section", optional "position")
"""

FRESH_REMINDER = """
CHECK BEFORE FINISHING:
- Is the home page created with name="home"?
- Does it import and use every component?
- Is it complete, not a placeholder?
Only answer finish after the home page is done.
"""


def render_history(history: List[HistoryEntry], window: int) -> str:
    """One compact line per entry, most recent `window` entries only."""
    out: List[str] = []
    for entry in history[-window:] if window > 0 else []:
        if entry.kind == HistoryKind.REASON:
            out.append(f"Thought: {entry.content}")
        elif entry.kind == HistoryKind.ACT:
            name = (entry.params or {}).get("name", "")
            out.append(f"Action: {entry.tool}({name})")
        elif entry.kind == HistoryKind.OBSERVE:
            res = entry.content or {}
            msg = (res.get("error") or res.get("message") or "") if isinstance(res, dict) else str(res)
            out.append(f"Result: {msg[:100]}")
        elif entry.kind == HistoryKind.NOTE:
            out.append(f"System: {entry.content}")
    return "\n".join(out)


# ── Engine ────────────────────────────────────────────────────────────────────

class ReasoningEngine:
    def __init__(self, complete: Optional[CompleteFn] = None,
                 config: Optional[AgentConfig] = None) -> None:
        self.complete = complete or default_complete
        self.config   = config or AgentConfig()

    def build_prompt(self, instruction: str, history: List[HistoryEntry], mode: Mode) -> str:
        header = FRESH_HEADER if mode == Mode.FRESH else MODIFY_HEADER
        prompt = f"{header}\nRequest: {instruction}\n"

        recent = render_history(history, self.config.history_window)
        if recent:
            prompt += f"\nRecent Actions:\n{recent}\n"

        prompt += RESPONSE_FORMAT
        if mode == Mode.FRESH:
            prompt += FRESH_REMINDER
        return prompt + "\nRespond now:"

    def _call(self, prompt: str) -> str:
        reply = self.complete(prompt, max_tokens=self.config.reasoning_max_tokens)
        if reply.error:
            raise CompletionServiceError(reply.error)
        return reply.text

    def decide(self, instruction: str, history: List[HistoryEntry], mode: Mode) -> Decision:
        prompt = self.build_prompt(instruction, history, mode)
        log.debug(f"Reasoning prompt ({len(prompt)} chars):\n{prompt}")
        try:
            text = self._call(prompt)
        except CompletionServiceError as e:
            log.error(f"[red]Completion service error: {e}[/red]")
            return Decision(
                thought="Error occurred while reasoning",
                action=Action.FINISH,
                final_answer=f"API Error: {e}",
                service_error=True,
            )

        log.debug(f"Reasoning reply:\n{text}")
        decision = parse_decision(text)
        log.debug(f"Parsed decision: {decision.to_dict()}")
        return decision
