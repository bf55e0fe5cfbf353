from runtime.state import (
    ContextMetadata, HistoryEntry, HistoryKind, Mode, PendingPlan, ProjectContext,
    PageSummary, RunResult, StopReason,
)


def test_each_result_shape_has_only_its_keys():
    history = [HistoryEntry(HistoryKind.USER_INSTRUCTION, "x")]
    shapes = {
        "AWAITING_CONFIRMATION": RunResult.awaiting("plan", Mode.FRESH, "x"),
        "COMPLETE":              RunResult.complete(history, 1, Mode.MODIFY),
        "FAILED":                RunResult.failed("boom"),
        "CAP_REACHED":           RunResult.cap_reached("limit"),
    }
    keys = {name: set(r.to_dict()) for name, r in shapes.items()}

    assert keys["AWAITING_CONFIRMATION"] == {"status", "plan", "mode", "instruction"}
    assert keys["COMPLETE"] == {"status", "history", "iterations", "mode", "stopReason"}
    assert keys["FAILED"] == {"status", "error"}
    assert keys["CAP_REACHED"] == {"status", "error", "suggestRegenerate"}
    for name, r in shapes.items():
        assert r.to_dict()["status"] == name


def test_applied_only_for_finished_or_capped_runs():
    assert RunResult.complete([], 1, Mode.MODIFY).applied
    assert RunResult.complete([], 10, Mode.MODIFY, StopReason.ITERATION_CAP).applied
    assert not RunResult.complete([], 1, Mode.MODIFY, StopReason.OBSERVATION_ERROR).applied
    assert not RunResult.complete([], 1, Mode.MODIFY, StopReason.SERVICE_ERROR).applied
    assert not RunResult.failed("x").applied


def test_pending_plan_round_trip():
    ctx = ProjectContext(
        pages=[PageSummary("home", "app/page.js", "<div>", ["Missing import for Hero"])],
        metadata=ContextMetadata(created_at="a", last_modified="b", total_iterations=3),
    )
    plan = PendingPlan("PLAN", "Add FAQ", Mode.MODIFY, 2, ctx)
    again = PendingPlan.from_dict(plan.to_dict())

    assert again == plan
    assert plan.to_dict()["iterationCount"] == 2


def test_metadata_tolerates_partial_sidecar():
    meta = ContextMetadata.from_dict({"totalIterations": "4", "lastAction": "page_created"})
    assert meta.total_iterations == 4
    assert meta.applied_iterations == 0
    assert meta.to_dict()["lastAction"] == "page_created"
