import json
from datetime import date

import pytest
from pydantic import ValidationError

from config import STORAGE_KEY
from json_io import export_state_json
from state_store import PlanStore
from storage import MemoryStorage


class FailingWrites(MemoryStorage):
    def set(self, key, value):
        raise OSError("quota exceeded")

    def remove(self, key):
        raise OSError("unavailable")


def _saved(storage) -> dict:
    return json.loads(storage.get(STORAGE_KEY))


def test_starts_with_defaults_when_storage_empty(storage) -> None:
    store = PlanStore(storage)
    assert len(store.state.rows) == 5
    assert store.state.goal.target_percent == 80


def test_loads_saved_snapshot(storage, sample_state) -> None:
    storage.set(STORAGE_KEY, export_state_json(sample_state))
    assert PlanStore(storage).state == sample_state


def test_malformed_snapshot_falls_back_to_defaults(storage) -> None:
    storage.set(STORAGE_KEY, "[1, 2, 3]")
    store = PlanStore(storage)
    assert len(store.state.rows) == 5


def test_saved_snapshot_without_rows_gets_starter_rows(storage) -> None:
    storage.set(
        STORAGE_KEY,
        json.dumps({"cabecalho": {"projeto": "P"}, "linhas": [], "metas": {"targetPercent": 60}}),
    )
    store = PlanStore(storage)
    assert [r.number for r in store.state.rows] == [1, 2, 3, 4, 5]
    assert store.state.header.project == "P"
    assert store.state.goal.target_percent == 60


def test_every_mutation_is_persisted(storage) -> None:
    store = PlanStore(storage)
    store.update_header("projeto", "Backbone")
    assert _saved(storage)["cabecalho"]["projeto"] == "Backbone"

    row_id = store.state.rows[0].id
    store.update_row(row_id, "status", "done")
    assert _saved(storage)["linhas"][0]["status"] == "concluido"

    store.update_goal(targetPercent=90, target_date="2024-12-31")
    assert _saved(storage)["metas"] == {"targetPercent": 90, "targetDate": "2024-12-31"}


def test_scenario_two_done_then_add_row(storage) -> None:
    store = PlanStore(storage)
    for row in store.state.rows[:2]:
        store.update_row(row.id, "status", "concluido")
    assert store.metrics(date(2024, 1, 1)).completion_percent == 40

    new_row = store.add_row()
    assert new_row.number == 6
    assert new_row.priority == "media" and new_row.status == "nao_iniciado"
    assert store.metrics(date(2024, 1, 1)).completion_percent == 33


@pytest.mark.parametrize("position", [0, 2, 4])
def test_remove_row_renumbers(storage, position) -> None:
    store = PlanStore(storage)
    victim = store.state.rows[position].id
    store.remove_row(victim)
    assert [r.number for r in store.state.rows] == [1, 2, 3, 4]
    assert victim not in {r.id for r in store.state.rows}
    assert [r["numero"] for r in _saved(storage)["linhas"]] == [1, 2, 3, 4]


def test_unknown_row_raises_key_error(storage) -> None:
    store = PlanStore(storage)
    with pytest.raises(KeyError):
        store.remove_row("missing")
    with pytest.raises(KeyError):
        store.update_row("missing", "acao", "x")


def test_invalid_edit_leaves_state_unchanged(storage) -> None:
    store = PlanStore(storage)
    before = store.state
    with pytest.raises(ValidationError):
        store.update_row(before.rows[0].id, "status", "blocked")
    with pytest.raises(ValueError):
        store.update_row(before.rows[0].id, "id", "new-id")
    assert store.state is before


def test_import_replaces_state_atomically(storage, sample_state) -> None:
    store = PlanStore(storage)
    before = store.state

    bad = store.import_json(json.dumps([1, 2]))
    assert not bad.ok
    assert store.state is before

    good = store.import_json(export_state_json(sample_state))
    assert good.ok
    assert store.state == sample_state
    assert _saved(storage)["cabecalho"]["projeto"] == sample_state.header.project


def test_import_without_goal_keeps_current_goal(storage) -> None:
    store = PlanStore(storage)
    store.update_goal(target_percent=65)
    result = store.import_json(json.dumps({"cabecalho": {"projeto": "X"}, "linhas": []}))
    assert result.ok
    assert store.state.goal.target_percent == 65
    assert store.state.rows == []


def test_reset_requires_confirmation(storage) -> None:
    store = PlanStore(storage)
    store.update_header("project", "Keep me")

    assert store.reset(confirmed=False) is False
    assert store.state.header.project == "Keep me"
    assert storage.get(STORAGE_KEY) is not None

    assert store.reset(confirmed=True) is True
    assert store.state.header.project == ""
    assert len(store.state.rows) == 5
    assert store.state.goal.target_percent == 80
    assert storage.get(STORAGE_KEY) is None


def test_storage_failures_are_ignored() -> None:
    store = PlanStore(FailingWrites())
    store.update_header("project", "In memory only")
    assert store.state.header.project == "In memory only"
    assert store.reset(confirmed=True)


def test_subscribers_see_every_change(storage) -> None:
    store = PlanStore(storage)
    seen = []
    unsubscribe = store.subscribe(lambda state: seen.append(len(state.rows)))

    store.add_row()
    store.remove_row(store.state.rows[0].id)
    assert seen == [6, 5]

    unsubscribe()
    store.add_row()
    assert seen == [6, 5]


def test_metrics_use_injected_clock(storage, sample_state) -> None:
    storage.set(STORAGE_KEY, export_state_json(sample_state))
    store = PlanStore(storage, clock=lambda: date(2024, 1, 16))
    assert store.metrics().pacing.expected_progress_today == 40
