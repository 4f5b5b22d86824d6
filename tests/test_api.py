"""
Tests for Reviewer: vault wiring, host events, filters and autosave.
"""

import json
import logging
import time
from pathlib import Path

import pytest

from respace.api import DueSummary, Reviewer
from respace.filters import Connector, Filter
from respace.types import DailyLimitInfo


def _write(vault: Path, rel: str, text: str = "# note\n") -> Path:
    path = vault / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def vault(tmp_path, monkeypatch) -> Path:
    monkeypatch.delenv("RESPACE_STORE_PATH", raising=False)
    monkeypatch.delenv("RESPACE_VAULT", raising=False)
    root = tmp_path / "vault"
    _write(root, "work/plan.md", "---\ntags: [work]\nstatus: active\n---\nPlan\n")
    _write(root, "work/ideas.md", "---\ntags: [work, personal]\nstatus: paused\n---\n")
    _write(root, "home/garden.md", "---\ntags: [personal]\nstatus: active\n---\n")
    _write(root, "home/todo.txt", "not markdown")
    _write(root, ".obsidian/workspace.md", "hidden")
    return root


@pytest.fixture
def rv(vault, clock):
    reviewer = Reviewer(vault, clock=clock)
    yield reviewer
    reviewer.close()


class TestSetup:

    def test_creates_config_and_data_file(self, rv, vault):
        assert (vault / ".respace" / "respace.toml").exists()
        data = json.loads((vault / "spaced-repetition-data.json").read_text())
        assert data["items"] == []

    def test_state_survives_reopen(self, vault, clock):
        with Reviewer(vault, clock=clock) as first:
            first.track("work/plan.md")
            first.update_review("work/plan.md", "good")
        with Reviewer(vault, clock=clock) as second:
            assert second.is_tracked("work/plan.md")
            assert second.get_daily_limit_info().used == 1

    def test_ops_log(self, vault, clock):
        with Reviewer(vault, clock=clock, ops_log=True) as reviewer:
            reviewer.track("work/plan.md")
        log = (vault / ".respace" / "respace-ops.log").read_text()
        assert "Tracking work/plan.md" in log

    def test_invalid_config_releases_ops_log(self, vault, clock):
        store = vault / ".respace"
        store.mkdir()
        (store / "respace.toml").write_text("[review]\nnew_items_per_day = 0\n")
        before = list(logging.getLogger("respace").handlers)
        with pytest.raises(ValueError):
            Reviewer(vault, clock=clock, ops_log=True)
        assert logging.getLogger("respace").handlers == before


class TestTrackPaths:

    def test_directory_tracks_markdown_recursively(self, rv, vault):
        result = rv.track_paths([vault])
        assert result.changed == ["home/garden.md", "work/ideas.md", "work/plan.md"]
        assert result.errors == []

    def test_single_file_and_already_tracked(self, rv, vault):
        rv.track_paths([vault / "work" / "plan.md"])
        result = rv.track_paths([vault / "work"])
        assert result.changed == ["work/ideas.md"]
        assert result.skipped == ["work/plan.md"]

    def test_non_markdown_ignored(self, rv, vault):
        result = rv.track_paths([vault / "home" / "todo.txt"])
        assert result.changed == []
        assert rv.get_all() == []

    def test_missing_and_outside_paths_reported(self, rv, vault, tmp_path):
        outside = _write(tmp_path, "outside.md")
        result = rv.track_paths([vault / "nope.md", outside])
        assert len(result.errors) == 2

    def test_untrack_directory(self, rv, vault):
        rv.track_paths([vault])
        result = rv.untrack_paths([vault / "work"])
        assert sorted(result.changed) == ["work/ideas.md", "work/plan.md"]
        assert [i.path for i in rv.get_all()] == ["home/garden.md"]


class TestHostEvents:

    def test_rename_retracks_under_new_id(self, rv, vault):
        rv.track("work/plan.md")
        rv.update_review("work/plan.md", "good")
        assert rv.rename("work/plan.md", "work/plan-2026.md") is True
        assert not rv.is_tracked("work/plan.md")
        item = rv.store.get("work/plan-2026.md")
        assert item.is_new is True

    def test_rename_untracked_is_ignored(self, rv):
        assert rv.rename("work/plan.md", "elsewhere.md") is False
        assert rv.get_all() == []

    def test_delete(self, rv):
        rv.track("work/plan.md")
        assert rv.delete("work/plan.md") is True
        assert rv.delete("work/plan.md") is False

    def test_cleanup_uses_vault(self, rv, vault):
        rv.track_paths([vault])
        (vault / "work" / "ideas.md").unlink()
        assert rv.cleanup() == 1
        assert not rv.is_tracked("work/ideas.md")


class TestFilteredDue:

    def test_filter_by_list_property(self, rv, vault):
        rv.track_paths([vault])
        due = rv.get_due([Filter("tags", "work")])
        assert sorted(i.path for i in due) == ["work/ideas.md", "work/plan.md"]

    def test_and_or_policy(self, rv, vault):
        rv.track_paths([vault])
        chain = [
            Filter("status", "paused"),
            Filter("tags", "personal", Connector.OR),
        ]
        parity = sorted(i.path for i in rv.get_due(chain))
        folded = sorted(i.path for i in rv.get_due(chain, short_circuit=False))
        assert parity == ["work/ideas.md"]
        assert folded == ["home/garden.md", "work/ideas.md"]

    def test_summary_counts(self, rv, vault):
        rv.set_new_items_per_day(1)
        rv.track_paths([vault])
        summary = rv.due_summary([Filter("tags", "work")])
        assert summary.total == 3
        assert summary.due == 1
        assert summary.limit.remaining == 1

        rv.set_new_items_per_day(5)
        summary = rv.due_summary([Filter("tags", "personal")])
        assert summary.new_in_filtered == 2
        assert not summary.over_budget

    def test_capped_queue_is_never_over_budget(self, rv, vault):
        rv.track_paths([vault])
        rv.update_review("work/plan.md", "good")
        rv.set_new_items_per_day(1)
        summary = rv.due_summary()
        assert summary.limit.remaining == 0
        assert summary.new_in_filtered == 0
        assert not summary.over_budget

    @pytest.mark.parametrize("limit,new,expected", [
        (DailyLimitInfo(used=3, limit=5, remaining=2), 4, True),
        (DailyLimitInfo(used=3, limit=5, remaining=2), 2, False),
        (DailyLimitInfo(used=3, limit=-1, remaining=-1), 50, False),
    ])
    def test_over_budget_flag(self, limit, new, expected):
        summary = DueSummary(total=10, due=8, filtered=6, new_in_filtered=new, limit=limit)
        assert summary.over_budget is expected

    def test_limit_saved_to_config(self, rv, vault):
        rv.set_new_items_per_day(-1)
        assert "new_items_per_day = -1" in (vault / ".respace" / "respace.toml").read_text()
        assert rv.get_daily_limit_info().remaining == -1

    def test_properties(self, rv, vault):
        rv.track_paths([vault])
        assert rv.property_names() == ["status", "tags"]
        assert rv.property_values("status") == ["active", "paused"]


class TestAutosave:

    def test_background_save(self, rv, vault):
        rv.track("work/plan.md")
        data_file = vault / "spaced-repetition-data.json"
        data_file.unlink()
        rv.start_autosave(0.05)
        deadline = time.time() + 5
        while not data_file.exists() and time.time() < deadline:
            time.sleep(0.02)
        rv.stop_autosave()
        assert "work/plan.md" in data_file.read_text()

    def test_autosave_failure_is_logged(self, rv, caplog, monkeypatch):
        def broken_write(path, content):
            raise OSError("disk full")
        monkeypatch.setattr(rv.store._gateway, "write", broken_write)
        assert rv.autosave() is False
        assert "Error in automatic save" in caplog.text

    def test_close_is_idempotent(self, vault, clock):
        reviewer = Reviewer(vault, clock=clock)
        reviewer.start_autosave(60)
        reviewer.close()
        reviewer.close()
