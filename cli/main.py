# cli/main.py
"""
Terminal client.

Commands:
  sitewright new "<instruction>" [--yes]       # plan, confirm, build from scratch
  sitewright modify "<instruction>" [--yes]    # plan, confirm, edit the project
  sitewright analyze                           # print the project context as JSON
  sitewright fix --diagnostics FILE            # auto-fix from captured dev-server output
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.text import Text

from runtime.config import load_config
from runtime.diagnostics import DiagnosticFeed
from runtime.session import Session
from runtime.state import HistoryKind, RunResult, RunStatus

console = Console()

_STATUS_STYLE = {
    RunStatus.AWAITING_CONFIRMATION: "cyan",
    RunStatus.COMPLETE:              "green",
    RunStatus.FAILED:                "red",
    RunStatus.CAP_REACHED:           "yellow",
}


def _session(feed: Optional[DiagnosticFeed] = None) -> Session:
    return Session(config=load_config(), feed=feed)


def _history_lines(result: RunResult) -> List[str]:
    lines: List[str] = []
    for h in result.history:
        if h.kind == HistoryKind.ACT:
            lines.append(f"[{h.iteration}] {h.tool}({(h.params or {}).get('name', '')})")
        elif h.kind == HistoryKind.OBSERVE:
            res = h.content or {}
            mark = "ok" if res.get("success") else "error"
            lines.append(f"    {mark}: {res.get('message') or res.get('error', '')}")
        elif h.kind == HistoryKind.NOTE:
            lines.append(f"    note: {h.content}")
        elif h.kind == HistoryKind.COMPLETE and h.content:
            lines.append(f"done: {h.content}")
    return lines


def render(result: RunResult) -> None:
    style = _STATUS_STYLE.get(result.status, "white")
    if result.status == RunStatus.AWAITING_CONFIRMATION:
        body = result.plan or ""
        title = f"Plan ({result.mode.value})"
    elif result.status == RunStatus.COMPLETE:
        body = "\n".join(_history_lines(result)) or "(no actions)"
        title = f"Complete: {result.iterations} iterations, {result.stop_reason.value}"
    else:
        body = result.error or ""
        if result.needs_new_project:
            body += "\n\nRun `sitewright new` to create a project."
        if result.suggest_regenerate:
            body += "\n\nConsider regenerating with `sitewright new`."
        title = result.status.value
    console.print(Panel(Text(body), title=title, border_style=style))


def _exit_code(result: Optional[RunResult]) -> int:
    if result is None:
        return 0
    return 0 if result.status in (RunStatus.COMPLETE, RunStatus.AWAITING_CONFIRMATION) else 1


# ─────────────────────────────────────────────────────────────────────────────
# commands
# ─────────────────────────────────────────────────────────────────────────────

def cmd_plan_and_run(args: argparse.Namespace) -> int:
    session = _session()
    result  = session.submit(args.instruction, "fresh" if args.command == "new" else "modify")
    render(result)
    if result.status != RunStatus.AWAITING_CONFIRMATION:
        return _exit_code(result)

    if not args.yes and not Confirm.ask("Apply this plan?", console=console, default=True):
        session.cancel()
        console.print("Cancelled.")
        return 0

    result = session.confirm()
    render(result)
    return _exit_code(result)


def cmd_analyze(args: argparse.Namespace) -> int:
    session = _session()
    context = session.orchestrator.analyzer.analyze()
    if context is None:
        console.print("No project found.", style="red")
        return 1
    print(json.dumps(context.to_dict(), indent=2))
    return 0


def cmd_fix(args: argparse.Namespace) -> int:
    path = Path(args.diagnostics)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        console.print(f"Cannot read diagnostics: {e}", style="red", markup=False)
        return 1

    session = _session(DiagnosticFeed(lines))
    result  = session.auto_fix()
    if result is None:
        console.print("Nothing to fix.")
        return 0
    render(result)
    return _exit_code(result)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitewright",
        description="Describe a website, review the plan, let the agent build it.",
    )
    sub = parser.add_subparsers(dest="command")

    for name, help_text in (("new", "Build a new project from scratch"),
                            ("modify", "Change the existing project")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("instruction", help="what to build or change")
        p.add_argument("--yes", "-y", action="store_true", help="apply the plan without asking")

    sub.add_parser("analyze", help="Print the current project context")

    fp = sub.add_parser("fix", help="Auto-fix from captured runtime diagnostics")
    fp.add_argument("--diagnostics", required=True,
                    help="file with one diagnostic line per line")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args   = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    dispatch = {
        "new":     cmd_plan_and_run,
        "modify":  cmd_plan_and_run,
        "analyze": cmd_analyze,
        "fix":     cmd_fix,
    }
    return dispatch[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
