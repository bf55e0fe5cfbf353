# runtime/session.py
"""
Plan/confirm protocol on top of the Orchestrator.

The session holds at most one PendingPlan. The plan, instruction, mode and
iteration count are captured when the plan is generated, so a confirm
replays exactly what was reviewed instead of trusting the caller to resend
the same fields. Submitting a new instruction replaces any pending plan.
"""
from __future__ import annotations

from typing import Callable, Optional, Union

from agent.llm import Completion
from agent.logger import log
from agent.loop import Orchestrator, coerce_mode
from runtime.config import AgentConfig
from runtime.diagnostics import DiagnosticFeed
from runtime.state import DetectedErrors, Mode, PendingPlan, RunResult, RunStatus


def fix_instruction(errors: DetectedErrors) -> str:
    lines = ["Fix the following errors:"]
    if errors.missing_import:
        lines.append(f"- Missing imports: {', '.join(errors.missing_import)}")
    if errors.missing_component:
        lines.append(f"- Missing components: {len(errors.missing_component)} issues")
        lines.extend(f"  {e}" for e in errors.missing_component[:5])
    if errors.build_error:
        lines.append(f"- Build errors: {len(errors.build_error)} issues")
        lines.extend(f"  {e}" for e in errors.build_error[:5])
    if errors.other:
        lines.append(f"- Other output: {len(errors.other)} lines")
    return "\n".join(lines)


class Session:
    def __init__(self, orchestrator: Optional[Orchestrator] = None,
                 config: Optional[AgentConfig] = None,
                 complete: Optional[Callable[..., Completion]] = None,
                 feed: Optional[DiagnosticFeed] = None) -> None:
        self.orchestrator = orchestrator or Orchestrator(config, complete, feed)
        self.pending: Optional[PendingPlan] = None

    @property
    def iteration_count(self) -> int:
        """Applied MODIFY runs so far, as recorded in the sidecar."""
        return self.orchestrator.sidecar.applied_iterations()

    def submit(self, instruction: str, mode: Union[Mode, str]) -> RunResult:
        mode  = coerce_mode(mode)
        count = self.iteration_count if mode == Mode.MODIFY else 0
        result = self.orchestrator.run(instruction, mode, count)

        if result.status == RunStatus.AWAITING_CONFIRMATION:
            if self.pending is not None:
                log.info("Replacing the plan that was awaiting confirmation")
            self.pending = PendingPlan(
                plan=result.plan, instruction=result.instruction, mode=result.mode,
                iteration_count=count, context=result.context,
            )
        return result

    def confirm(self) -> RunResult:
        if self.pending is None:
            return RunResult.failed("No plan awaiting confirmation")
        pending, self.pending = self.pending, None
        log.info(f"[bold]Confirmed {pending.mode.value} plan[/bold]")
        return self.orchestrator.run(pending.instruction, pending.mode,
                                     pending.iteration_count, confirmed=True)

    def cancel(self) -> Optional[PendingPlan]:
        pending, self.pending = self.pending, None
        if pending is not None:
            log.info("Plan cancelled")
        return pending

    def auto_fix(self) -> Optional[RunResult]:
        """
        Run MODIFY over the current runtime diagnostics without a confirmation
        step. Returns None when there is no project or nothing to fix.
        """
        context = self.orchestrator.analyzer.analyze()
        if context is None or not context.pages:
            log.info("Auto-fix skipped: no project")
            return None
        if not context.detected_errors.has_errors:
            log.info("Auto-fix skipped: no errors detected")
            return None

        instruction = fix_instruction(context.detected_errors)
        log.info(f"[bold yellow]Auto-fix:[/bold yellow] {instruction}")
        return self.orchestrator.run(instruction, Mode.MODIFY, self.iteration_count,
                                     auto_fix=True)

    # ── Persistence of the pending plan ───────────────────────────────────────

    def snapshot(self) -> Optional[dict]:
        return self.pending.to_dict() if self.pending else None

    def restore(self, data: Optional[dict]) -> None:
        self.pending = PendingPlan.from_dict(data) if data else None
