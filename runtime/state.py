# runtime/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Mode(str, Enum):
    FRESH  = "fresh"    # discard the project, then build
    MODIFY = "modify"   # edit the existing project


class Action(str, Enum):
    CREATE_PAGE      = "createPage"
    CREATE_COMPONENT = "createComponent"
    UPDATE_PAGE      = "updatePage"
    FIX_ERROR        = "fixError"
    FINISH           = "finish"


class HistoryKind(str, Enum):
    USER_INSTRUCTION = "user_instruction"
    REASON           = "reason"
    ACT              = "act"
    OBSERVE          = "observe"
    COMPLETE         = "complete"
    NOTE             = "note"


class RunStatus(str, Enum):
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    COMPLETE              = "COMPLETE"
    FAILED                = "FAILED"
    CAP_REACHED           = "CAP_REACHED"


class StopReason(str, Enum):
    FINISHED          = "finished"
    ITERATION_CAP     = "iteration_cap"
    OBSERVATION_ERROR = "observation_error"
    SERVICE_ERROR     = "service_error"


# ── Reasoning ─────────────────────────────────────────────────────────────────

@dataclass
class Decision:
    thought: str = ""
    action: Action = Action.FINISH
    params: Dict[str, Any] = field(default_factory=dict)
    final_answer: str = ""
    service_error: bool = False

    @property
    def is_finish(self) -> bool:
        return self.action == Action.FINISH

    def to_dict(self) -> dict:
        return {
            "thought":     self.thought,
            "action":      self.action.value,
            "params":      dict(self.params),
            "finalAnswer": self.final_answer,
        }


@dataclass
class HistoryEntry:
    kind: HistoryKind
    content: Any = None
    tool: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    iteration: int = 0

    def to_dict(self) -> dict:
        out: Dict[str, Any] = {"type": self.kind.value, "iteration": self.iteration}
        if self.kind == HistoryKind.ACT:
            out["tool"]   = self.tool
            out["params"] = dict(self.params or {})
        else:
            out["content"] = self.content
        return out


# ── Project context ───────────────────────────────────────────────────────────

@dataclass
class PageSummary:
    name: str
    path: str
    content_preview: str = ""
    detected_issues: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name, "path": self.path,
            "contentPreview": self.content_preview,
            "detectedIssues": list(self.detected_issues),
        }


@dataclass
class ComponentSummary(PageSummary):
    pass


@dataclass
class DetectedErrors:
    missing_import: List[str] = field(default_factory=list)
    missing_component: List[str] = field(default_factory=list)
    build_error: List[str] = field(default_factory=list)
    other: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any((self.missing_import, self.missing_component,
                    self.build_error, self.other))

    def count(self) -> int:
        return (len(self.missing_import) + len(self.missing_component)
                + len(self.build_error) + len(self.other))

    def to_dict(self) -> dict:
        return {
            "missingImport":    list(self.missing_import),
            "missingComponent": list(self.missing_component),
            "buildError":       list(self.build_error),
            "other":            list(self.other),
        }


@dataclass
class ContextMetadata:
    created_at: str = ""
    last_modified: str = ""
    total_iterations: int = 0
    last_action: Optional[str] = None
    last_details: Optional[str] = None
    applied_iterations: int = 0

    _KEYS = {
        "created_at":         "createdAt",
        "last_modified":      "lastModified",
        "total_iterations":   "totalIterations",
        "last_action":        "lastAction",
        "last_details":       "lastDetails",
        "applied_iterations": "appliedIterations",
    }

    def to_dict(self) -> dict:
        return {wire: getattr(self, attr) for attr, wire in self._KEYS.items()}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ContextMetadata":
        data = data or {}
        kwargs = {attr: data[wire] for attr, wire in cls._KEYS.items() if wire in data}
        meta = cls(**kwargs)
        meta.total_iterations   = int(meta.total_iterations or 0)
        meta.applied_iterations = int(meta.applied_iterations or 0)
        return meta


@dataclass
class ProjectContext:
    pages: List[PageSummary] = field(default_factory=list)
    components: List[ComponentSummary] = field(default_factory=list)
    detected_errors: DetectedErrors = field(default_factory=DetectedErrors)
    metadata: ContextMetadata = field(default_factory=ContextMetadata)

    def to_dict(self) -> dict:
        return {
            "pages":          [p.to_dict() for p in self.pages],
            "components":     [c.to_dict() for c in self.components],
            "detectedErrors": self.detected_errors.to_dict(),
            "metadata":       self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectContext":
        def _summary(kind, d: dict):
            return kind(
                name=d.get("name", ""), path=d.get("path", ""),
                content_preview=d.get("contentPreview", ""),
                detected_issues=list(d.get("detectedIssues") or []),
            )

        errs = data.get("detectedErrors") or {}
        return cls(
            pages=[_summary(PageSummary, p) for p in data.get("pages") or []],
            components=[_summary(ComponentSummary, c) for c in data.get("components") or []],
            detected_errors=DetectedErrors(
                missing_import=list(errs.get("missingImport") or []),
                missing_component=list(errs.get("missingComponent") or []),
                build_error=list(errs.get("buildError") or []),
                other=list(errs.get("other") or []),
            ),
            metadata=ContextMetadata.from_dict(data.get("metadata")),
        )


# ── Run results ───────────────────────────────────────────────────────────────

@dataclass
class RunResult:
    """
    Terminal result of one orchestration call. Build it through the four
    constructors below so a result never mixes fields of two shapes.
    """
    status: RunStatus
    plan: Optional[str] = None
    mode: Optional[Mode] = None
    instruction: Optional[str] = None
    context: Optional[ProjectContext] = None
    history: List[HistoryEntry] = field(default_factory=list)
    iterations: int = 0
    stop_reason: Optional[StopReason] = None
    error: Optional[str] = None
    needs_new_project: bool = False
    suggest_regenerate: bool = False

    @classmethod
    def awaiting(cls, plan: str, mode: Mode, instruction: str,
                 context: Optional[ProjectContext] = None) -> "RunResult":
        return cls(RunStatus.AWAITING_CONFIRMATION, plan=plan, mode=mode,
                   instruction=instruction, context=context)

    @classmethod
    def complete(cls, history: List[HistoryEntry], iterations: int, mode: Mode,
                 stop_reason: StopReason = StopReason.FINISHED) -> "RunResult":
        return cls(RunStatus.COMPLETE, history=list(history), iterations=iterations,
                   mode=mode, stop_reason=stop_reason)

    @classmethod
    def failed(cls, error: str, needs_new_project: bool = False) -> "RunResult":
        return cls(RunStatus.FAILED, error=error, needs_new_project=needs_new_project)

    @classmethod
    def cap_reached(cls, error: str) -> "RunResult":
        return cls(RunStatus.CAP_REACHED, error=error, suggest_regenerate=True)

    @property
    def applied(self) -> bool:
        """True when the run completed and its writes stand."""
        return (self.status == RunStatus.COMPLETE
                and self.stop_reason in (StopReason.FINISHED, StopReason.ITERATION_CAP))

    def to_dict(self) -> dict:
        if self.status == RunStatus.AWAITING_CONFIRMATION:
            out = {"status": self.status.value, "plan": self.plan,
                   "mode": self.mode.value, "instruction": self.instruction}
            if self.context is not None:
                out["context"] = self.context.to_dict()
            return out
        if self.status == RunStatus.COMPLETE:
            return {
                "status":     self.status.value,
                "history":    [h.to_dict() for h in self.history],
                "iterations": self.iterations,
                "mode":       self.mode.value,
                "stopReason": self.stop_reason.value if self.stop_reason else None,
            }
        if self.status == RunStatus.FAILED:
            out = {"status": self.status.value, "error": self.error}
            if self.needs_new_project:
                out["needsNewProject"] = True
            return out
        return {"status": self.status.value, "error": self.error,
                "suggestRegenerate": True}


@dataclass
class PendingPlan:
    """A plan waiting for confirm/cancel. Serializable across calls."""
    plan: str
    instruction: str
    mode: Mode
    iteration_count: int = 0
    context: Optional[ProjectContext] = None

    def to_dict(self) -> dict:
        out = {
            "plan": self.plan, "instruction": self.instruction,
            "mode": self.mode.value, "iterationCount": self.iteration_count,
        }
        if self.context is not None:
            out["context"] = self.context.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "PendingPlan":
        ctx = data.get("context")
        return cls(
            plan=data["plan"],
            instruction=data["instruction"],
            mode=Mode(data["mode"]),
            iteration_count=int(data.get("iterationCount", 0)),
            context=ProjectContext.from_dict(ctx) if ctx else None,
        )
