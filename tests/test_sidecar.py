import json

from runtime.diagnostics import DiagnosticFeed
from runtime.state import ContextMetadata
from tools.sidecar import SIDECAR_NAME, Sidecar


def test_record_action_bumps_counter(tmp_path):
    car = Sidecar(tmp_path)
    car.record_action("page_created", "app/page.js")
    meta = car.record_action("component_created", "components/Hero.js")

    assert meta.total_iterations == 2
    data = json.loads((tmp_path / SIDECAR_NAME).read_text(encoding="utf-8"))
    assert data["metadata"]["totalIterations"] == 2
    assert data["metadata"]["lastAction"] == "component_created"
    assert data["metadata"]["lastDetails"] == "components/Hero.js"
    assert "pages" not in data


def test_applied_counter_is_separate(tmp_path):
    car = Sidecar(tmp_path)
    assert car.applied_iterations() == 0
    car.record_action("page_updated", "app/page.js")
    assert car.bump_applied() == 1
    assert car.applied_iterations() == 1
    assert car.load().total_iterations == 1


def test_save_skipped_when_project_absent(tmp_path):
    car = Sidecar(tmp_path / "gone")
    car.save(ContextMetadata(created_at="t", last_modified="t"))
    assert not (tmp_path / "gone").exists()
    assert car.load() is None


def test_unreadable_sidecar_starts_fresh(tmp_path):
    (tmp_path / SIDECAR_NAME).write_text("garbage", encoding="utf-8")
    car = Sidecar(tmp_path)
    assert car.load() is None
    assert car.load_or_new().total_iterations == 0


def test_diagnostic_feed_ignores_blank_lines():
    feed = DiagnosticFeed(["", "  ", "Failed to compile."])
    feed.append("\n")
    feed.extend(["Error: x\n", ""])

    assert feed.snapshot() == ["Failed to compile.", "Error: x"]
    feed.clear()
    assert len(feed) == 0
