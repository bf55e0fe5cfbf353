# agent/loop.py
"""
Agent Orchestrator.

    PLANNING -> AWAITING_CONFIRMATION -> EXECUTING -> COMPLETE | FAILED | CAP_REACHED

run() is called twice per change: once without confirmation to get a plan,
then again with confirmed=True (or auto_fix=True, which skips the gate) to
execute. Every outcome comes back as a RunResult. Only an invalid mode raises.

Execution is a capped reason/act/observe loop:
  - FINISH stops the loop, except in FRESH mode while the root page is
    missing, still the placeholder, or too short. Then a NOTE is appended
    and the loop goes on.
  - A failed observation stops the loop. No retry at this layer.
  - Running out of iterations is a normal completion with a truncated history.
"""
from __future__ import annotations

from typing import Callable, List, Optional, Union

from agent.context import ContextAnalyzer
from agent.decide import ReasoningEngine
from agent.dispatch import ActionDispatcher
from agent.errors import (
    ArtifactNotFoundError, ArtifactWriteError, IterationCapReached,
    NoExistingProjectError, UserInputError,
)
from agent.llm import Completion
from agent.logger import log
from agent.planner import PlanGenerator
from runtime.config import AgentConfig
from runtime.diagnostics import DiagnosticFeed
from runtime.state import (
    HistoryEntry, HistoryKind, Mode, ProjectContext, RunResult, StopReason,
)
from tools import scaffold
from tools.artifact_store import ROOT_PAGE_NAME, ArtifactKind, ArtifactStore
from tools.sidecar import Sidecar

_MODE_ALIASES = {"new": Mode.FRESH, "iterate": Mode.MODIFY}


def coerce_mode(mode: Union[Mode, str]) -> Mode:
    if isinstance(mode, Mode):
        return mode
    if not isinstance(mode, str):
        raise ValueError(f"Invalid mode: {mode!r}")
    key = mode.strip().lower()
    return _MODE_ALIASES.get(key) or Mode(key)


class Orchestrator:
    def __init__(self, config: Optional[AgentConfig] = None,
                 complete: Optional[Callable[..., Completion]] = None,
                 feed: Optional[DiagnosticFeed] = None) -> None:
        self.config     = config or AgentConfig()
        self.store      = ArtifactStore(self.config.root)
        self.sidecar    = Sidecar(self.config.root)
        self.feed       = feed if feed is not None else DiagnosticFeed()
        self.analyzer   = ContextAnalyzer(self.store, self.sidecar, self.feed, self.config)
        self.planner    = PlanGenerator(complete, self.config)
        self.engine     = ReasoningEngine(complete, self.config)
        self.dispatcher = ActionDispatcher(self.store, self.sidecar)
        self.context: Optional[ProjectContext] = None

    # ── Guards ────────────────────────────────────────────────────────────────

    def _check_instruction(self, instruction) -> str:
        if not isinstance(instruction, str) or not instruction.strip():
            raise UserInputError("Instruction is required")
        return instruction.strip()

    def _check_cap(self, iteration_count: int) -> None:
        cap = self.config.modify_iteration_cap
        if iteration_count >= cap:
            raise IterationCapReached(
                f"Maximum iterations ({cap}) reached. Consider regenerating the project."
            )

    def _require_project(self) -> ProjectContext:
        context = self.analyzer.analyze()
        if context is None or not context.pages:
            raise NoExistingProjectError(
                "No existing project found. Generate a project first or switch to fresh mode."
            )
        return context

    def _root_page_problem(self) -> Optional[str]:
        """Why the root page does not count as done yet, or None."""
        try:
            content = self.store.read(ArtifactKind.PAGE, ROOT_PAGE_NAME)
        except ArtifactNotFoundError:
            return "Home page does not exist."
        if scaffold.is_placeholder(content):
            return "Home page still has placeholder."
        if len(content) < self.config.min_root_page_chars:
            return f"Home page is incomplete ({len(content)} chars)."
        return None

    # ── Phases ────────────────────────────────────────────────────────────────

    def _plan_phase(self, instruction: str, mode: Mode) -> RunResult:
        context = None
        if mode == Mode.MODIFY:
            try:
                context = self._require_project()
            except NoExistingProjectError as e:
                log.warning(f"[yellow]{e}[/yellow]")
                return RunResult.failed(str(e), needs_new_project=True)

        plan = self.planner.plan(instruction, context)
        if not plan.ok:
            return RunResult.failed(plan.error or "Error generating plan")

        self.context = context
        log.info("[bold]Plan ready; awaiting confirmation[/bold]")
        return RunResult.awaiting(plan.text, mode, instruction, context)

    def _reset_project(self) -> Optional[str]:
        """Clear and re-scaffold for a confirmed FRESH run. Returns an error or None."""
        log.info("[bold]Fresh project: clearing previous output[/bold]")
        try:
            self.store.delete_all()
        except OSError as e:
            return f"Failed to delete existing project: {e}"
        try:
            scaffold.materialize(self.store.root, self.store)
        except (OSError, ArtifactWriteError) as e:
            return f"Failed to initialize project: {e}"
        return None

    def _execute(self, instruction: str, mode: Mode) -> RunResult:
        cap = self.config.max_reasoning_iterations
        history: List[HistoryEntry] = [HistoryEntry(HistoryKind.USER_INSTRUCTION, instruction)]
        stop = StopReason.ITERATION_CAP
        iteration = 0

        while iteration < cap:
            iteration += 1
            log.info(f"[bold blue]── Iteration {iteration}/{cap} ──[/bold blue]")

            decision = self.engine.decide(instruction, history, mode)
            history.append(HistoryEntry(HistoryKind.REASON, decision.thought, iteration=iteration))
            log.info(f"Thought: {decision.thought}")

            if decision.is_finish:
                if decision.service_error:
                    history.append(HistoryEntry(HistoryKind.COMPLETE, decision.final_answer,
                                                iteration=iteration))
                    stop = StopReason.SERVICE_ERROR
                    break

                if mode == Mode.FRESH:
                    problem = self._root_page_problem()
                    if problem:
                        log.warning(f"[yellow]Finish rejected: {problem}[/yellow]")
                        history.append(HistoryEntry(
                            HistoryKind.NOTE,
                            f"{problem} Must create home page with name='home'",
                            iteration=iteration,
                        ))
                        continue

                history.append(HistoryEntry(HistoryKind.COMPLETE, decision.final_answer,
                                            iteration=iteration))
                stop = StopReason.FINISHED
                log.info("[green]Task marked complete[/green]")
                break

            history.append(HistoryEntry(HistoryKind.ACT, tool=decision.action.value,
                                        params=dict(decision.params), iteration=iteration))
            observation = self.dispatcher.dispatch(decision)
            history.append(HistoryEntry(HistoryKind.OBSERVE, observation, iteration=iteration))

            if not observation.get("success"):
                log.error(f"[red]Observation error: {observation.get('error')}[/red]")
                stop = StopReason.OBSERVATION_ERROR
                break

            self.context = self.analyzer.analyze()
        else:
            log.warning(f"[yellow]Reasoning cap ({cap}) reached without finish[/yellow]")

        result = RunResult.complete(history, iteration, mode, stop)
        if result.applied:
            self.feed.clear()
            if mode == Mode.MODIFY:
                applied = self.sidecar.bump_applied()
                log.info(f"Applied iterations: {applied}/{self.config.modify_iteration_cap}")
        log.info(f"[bold green]Run complete: {iteration} iterations ({stop.value})[/bold green]")
        return result

    # ── Entry point ───────────────────────────────────────────────────────────

    def run(self, instruction: str, mode: Union[Mode, str], iteration_count: int = 0,
            confirmed: bool = False, auto_fix: bool = False) -> RunResult:
        mode = coerce_mode(mode)
        log.info(
            f"[bold]run mode={mode.value} iteration_count={iteration_count} "
            f"confirmed={confirmed} auto_fix={auto_fix}[/bold]"
        )
        try:
            instruction = self._check_instruction(instruction)
            if mode == Mode.MODIFY:
                self._check_cap(iteration_count)
        except UserInputError as e:
            return RunResult.failed(str(e))
        except IterationCapReached as e:
            log.warning(f"[yellow]{e}[/yellow]")
            return RunResult.cap_reached(str(e))

        if not confirmed and not auto_fix:
            return self._plan_phase(instruction, mode)

        if mode == Mode.FRESH and confirmed:
            error = self._reset_project()
            if error:
                log.error(f"[red]{error}[/red]")
                return RunResult.failed(error)

        return self._execute(instruction, mode)
