import pytest

from agent.llm import Completion
from agent.loop import Orchestrator
from runtime.config import AgentConfig
from runtime.diagnostics import DiagnosticFeed
from runtime.state import HistoryKind, Mode, RunStatus, StopReason
from tools.artifact_store import ArtifactKind
from tools.scaffold import PLACEHOLDER_PAGE

from conftest import BIG_HOME, HERO, ScriptedLLM, act_reply, finish_reply


def _kinds(result):
    return [h.kind for h in result.history]


# ── Planning phase ────────────────────────────────────────────────────────────

def test_fresh_plan_awaits_confirmation_without_touching_disk(config):
    llm = ScriptedLLM(["PROJECT PLAN"])
    result = Orchestrator(config, llm).run("Bakery site", Mode.FRESH)

    assert result.status == RunStatus.AWAITING_CONFIRMATION
    assert result.to_dict() == {
        "status": "AWAITING_CONFIRMATION", "plan": "PROJECT PLAN",
        "mode": "fresh", "instruction": "Bakery site",
    }
    assert not config.root.exists()


def test_modify_plan_carries_context(config, existing_project):
    llm = ScriptedLLM(["PLAN"])
    result = Orchestrator(config, llm).run("Add FAQ", "modify")

    assert result.status == RunStatus.AWAITING_CONFIRMATION
    out = result.to_dict()
    assert out["mode"] == "modify"
    assert [p["name"] for p in out["context"]["pages"]] == ["home"]


def test_modify_without_project_signals_new_project(config):
    llm = ScriptedLLM(["PLAN"])
    result = Orchestrator(config, llm).run("Add FAQ", Mode.MODIFY)

    assert result.to_dict() == {
        "status": "FAILED",
        "error": "No existing project found. Generate a project first or switch to fresh mode.",
        "needsNewProject": True,
    }
    assert llm.calls == 0


def test_modify_cap_short_circuits(config, existing_project):
    llm = ScriptedLLM(["PLAN"])
    result = Orchestrator(config, llm).run("Add FAQ", Mode.MODIFY, iteration_count=5,
                                           confirmed=True)

    assert result.status == RunStatus.CAP_REACHED
    assert result.to_dict()["suggestRegenerate"] is True
    assert "Maximum iterations (5)" in result.error
    assert llm.calls == 0


def test_empty_instruction_is_rejected(config):
    llm = ScriptedLLM()
    result = Orchestrator(config, llm).run("   ", Mode.FRESH, confirmed=True)

    assert result.to_dict() == {"status": "FAILED", "error": "Instruction is required"}
    assert llm.calls == 0
    assert not config.root.exists()


def test_invalid_mode_raises(config):
    with pytest.raises(ValueError):
        Orchestrator(config, ScriptedLLM()).run("x", "rebuild")


def test_plan_failure_is_failed_result(config):
    llm = ScriptedLLM([Completion(error="rate limited")])
    result = Orchestrator(config, llm).run("Bakery", Mode.FRESH)
    assert result.status == RunStatus.FAILED
    assert result.error == "Error generating plan: rate limited"


# ── Execution ─────────────────────────────────────────────────────────────────

def test_fresh_confirmed_clears_before_first_write(config, existing_project):
    store = existing_project
    store.write_page("old", "<div>stale</div>")
    store.write_component("Old", "stale")

    llm = ScriptedLLM([
        act_reply("createComponent", name="Hero", content=HERO),
        act_reply("createPage", name="home", content=BIG_HOME),
        finish_reply(),
    ])
    orch = Orchestrator(config, llm)

    calls = []
    real_delete, real_page = orch.store.delete_all, orch.store.write_page
    orch.store.delete_all = lambda: calls.append("delete") or real_delete()
    orch.store.write_page = lambda *a: calls.append("write") or real_page(*a)

    result = orch.run("Bakery site", Mode.FRESH, confirmed=True)

    assert calls[0] == "delete"
    assert result.status == RunStatus.COMPLETE
    assert result.stop_reason == StopReason.FINISHED
    assert result.iterations == 3
    assert not (config.root / "app" / "old").exists()
    assert not (config.root / "components" / "Old.js").exists()
    assert (config.root / "package.json").is_file()
    assert [p.name for p in orch.context.pages] == ["home"]
    assert orch.store.read(ArtifactKind.PAGE, "home") == BIG_HOME


def test_complete_shape(config):
    llm = ScriptedLLM([act_reply("createPage", name="home", content=BIG_HOME), finish_reply("ok")])
    result = Orchestrator(config, llm).run("Bakery", Mode.FRESH, confirmed=True)

    out = result.to_dict()
    assert set(out) == {"status", "history", "iterations", "mode", "stopReason"}
    assert out["history"][0] == {"type": "user_instruction", "iteration": 0, "content": "Bakery"}
    assert out["history"][2]["type"] == "act"
    assert out["history"][2]["tool"] == "createPage"
    assert out["history"][-1] == {"type": "complete", "iteration": 2, "content": "ok"}


def test_fresh_guard_rejects_finish_on_placeholder(config):
    llm = ScriptedLLM([
        finish_reply("done already"),
        act_reply("createPage", name="home", content=BIG_HOME),
        finish_reply("done now"),
    ])
    orch = Orchestrator(config, llm)
    result = orch.run("Bakery", Mode.FRESH, confirmed=True)

    assert result.status == RunStatus.COMPLETE
    assert result.stop_reason == StopReason.FINISHED
    assert _kinds(result) == [
        HistoryKind.USER_INSTRUCTION,
        HistoryKind.REASON, HistoryKind.NOTE,
        HistoryKind.REASON, HistoryKind.ACT, HistoryKind.OBSERVE,
        HistoryKind.REASON, HistoryKind.COMPLETE,
    ]
    assert "placeholder" in result.history[2].content
    # The correction is shown back to the engine on the next turn
    assert "System: Home page still has placeholder." in llm.prompts[1]


def test_fresh_guard_rejects_short_root_page(tmp_path):
    config = AgentConfig(project_root=str(tmp_path / "site"), max_reasoning_iterations=3)
    llm = ScriptedLLM([
        act_reply("createPage", name="home", content="<div>tiny</div>"),
        finish_reply(),
        finish_reply(),
    ])
    result = Orchestrator(config, llm).run("Bakery", Mode.FRESH, confirmed=True)

    notes = [h.content for h in result.history if h.kind == HistoryKind.NOTE]
    assert len(notes) == 2
    assert "incomplete" in notes[0]
    assert result.stop_reason == StopReason.ITERATION_CAP


def test_fresh_guard_is_bounded_by_cap(tmp_path):
    config = AgentConfig(project_root=str(tmp_path / "site"), max_reasoning_iterations=3)
    llm = ScriptedLLM([finish_reply()] * 10)
    result = Orchestrator(config, llm).run("Bakery", Mode.FRESH, confirmed=True)

    assert result.status == RunStatus.COMPLETE
    assert result.stop_reason == StopReason.ITERATION_CAP
    assert result.iterations == 3
    assert llm.calls == 3
    assert _kinds(result).count(HistoryKind.NOTE) == 3
    assert (config.root / "app" / "page.js").read_text(encoding="utf-8") == PLACEHOLDER_PAGE


def test_hard_cap_reports_success_with_truncated_history(tmp_path):
    config = AgentConfig(project_root=str(tmp_path / "site"), max_reasoning_iterations=2)
    llm = ScriptedLLM([
        act_reply("createComponent", name=f"C{i}", content="<div/>") for i in range(5)
    ])
    orch = Orchestrator(config, llm)
    orch.store.write_page("home", BIG_HOME)

    result = orch.run("More components", Mode.MODIFY, auto_fix=True)

    assert result.status == RunStatus.COMPLETE
    assert result.stop_reason == StopReason.ITERATION_CAP
    assert result.iterations == 2
    assert result.applied
    assert [c.name for c in orch.context.components] == ["C0", "C1"]


def test_observation_error_halts_loop(config, existing_project):
    feed = DiagnosticFeed(["Failed to compile."])
    llm = ScriptedLLM([
        act_reply("updatePage", name="contact", section="<p>hi</p>"),
        act_reply("createComponent", name="Never", content="x"),
    ])
    orch = Orchestrator(config, llm, feed)
    result = orch.run("Add to contact", Mode.MODIFY, confirmed=True)

    assert result.status == RunStatus.COMPLETE
    assert result.stop_reason == StopReason.OBSERVATION_ERROR
    assert result.iterations == 1
    assert llm.calls == 1
    obs = result.history[-1]
    assert obs.kind == HistoryKind.OBSERVE
    assert "does not exist" in obs.content["error"]
    assert not result.applied
    # Nothing was applied, so diagnostics and the cross-run counter stand
    assert len(feed) == 1
    assert orch.sidecar.applied_iterations() == 0


def test_service_error_terminates_run(config):
    llm = ScriptedLLM([Completion(error="invalid x-api-key")])
    result = Orchestrator(config, llm).run("Bakery", Mode.FRESH, confirmed=True)

    assert result.stop_reason == StopReason.SERVICE_ERROR
    assert result.iterations == 1
    assert result.history[-1].kind == HistoryKind.COMPLETE
    assert result.history[-1].content == "API Error: invalid x-api-key"
    assert HistoryKind.NOTE not in _kinds(result)


def test_modify_apply_updates_counters_and_clears_diagnostics(config, existing_project):
    feed = DiagnosticFeed(["ReferenceError: Footer is not defined"])
    llm = ScriptedLLM([
        act_reply("createComponent", name="Footer", content="<footer/>"),
        act_reply("updatePage", name="home", section="<Footer />"),
        finish_reply(),
    ])
    orch = Orchestrator(config, llm, feed)
    result = orch.run("Add a footer", Mode.MODIFY, iteration_count=0, confirmed=True)

    assert result.applied
    assert len(feed) == 0
    assert orch.sidecar.applied_iterations() == 1
    meta = orch.sidecar.load()
    assert meta.total_iterations == 2
    assert meta.last_action == "page_updated"
    home = orch.store.read(ArtifactKind.PAGE, "home")
    assert home.index("<Footer />") < home.rindex("</main>")


def test_fix_error_prefers_existing_component(config, existing_project):
    llm = ScriptedLLM([
        act_reply("fixError", name="Hero", content="export default function Hero() { return null }"),
        act_reply("fixError", name="about", content="<div>About</div>"),
        finish_reply(),
    ])
    orch = Orchestrator(config, llm)
    orch.run("Fix", Mode.MODIFY, auto_fix=True)

    assert "return null" in orch.store.read(ArtifactKind.COMPONENT, "Hero")
    assert orch.store.read(ArtifactKind.PAGE, "about") == "<div>About</div>"


def test_auto_fix_bypasses_confirmation(config, existing_project):
    llm = ScriptedLLM([finish_reply("nothing to do")])
    result = Orchestrator(config, llm).run("Fix errors", Mode.MODIFY, auto_fix=True)

    assert result.status == RunStatus.COMPLETE
    assert llm.calls == 1
    assert "Modify an existing Next.js 14 project" in llm.prompts[0]


def test_non_string_name_is_an_observation_error(config, existing_project):
    llm = ScriptedLLM([act_reply("createPage", name=404, content="<div>x</div>")])
    result = Orchestrator(config, llm).run("Add a 404 page", Mode.MODIFY, confirmed=True)

    assert result.status == RunStatus.COMPLETE
    assert result.stop_reason == StopReason.OBSERVATION_ERROR
    assert result.history[-1].content == {
        "success": False, "error": "Parameter 'name' must be a string",
    }
    assert not (existing_project.root / "app" / "404").exists()


def test_non_string_position_is_an_observation_error(config, existing_project):
    before = existing_project.read(ArtifactKind.PAGE, "home")
    llm = ScriptedLLM([act_reply("updatePage", name="home", section="<p>hi</p>", position=1)])
    result = Orchestrator(config, llm).run("Add a line", Mode.MODIFY, confirmed=True)

    assert result.stop_reason == StopReason.OBSERVATION_ERROR
    assert "position" in result.history[-1].content["error"]
    assert existing_project.read(ArtifactKind.PAGE, "home") == before


def test_unencodable_content_keeps_old_component(config, existing_project):
    before = existing_project.read(ArtifactKind.COMPONENT, "Hero")
    llm = ScriptedLLM([act_reply("createComponent", name="Hero", content="<span>\ud83d</span>")])
    result = Orchestrator(config, llm).run("Redo the hero", Mode.MODIFY, confirmed=True)

    assert result.stop_reason == StopReason.OBSERVATION_ERROR
    assert "not valid UTF-8" in result.history[-1].content["error"]
    assert existing_project.read(ArtifactKind.COMPONENT, "Hero") == before
