import json
from datetime import date

from json_io import (
    export_filename,
    export_state_json,
    import_state_json,
    read_state_file,
    write_state_file,
)
from plan_models import Goal, PlanState


def test_export_uses_snapshot_keys(sample_state) -> None:
    data = json.loads(export_state_json(sample_state))
    assert set(data) == {"cabecalho", "linhas", "metas"}
    assert data["cabecalho"]["inicio"] == "2024-01-01"
    assert data["cabecalho"]["status"] == "em_andamento"
    assert data["linhas"][1]["prazo"] == ""
    assert data["linhas"][0]["numero"] == 1
    assert data["metas"] == {"targetPercent": 80, "targetDate": "2024-01-31"}


def test_export_keeps_unicode_readable(sample_state) -> None:
    text = export_state_json(sample_state)
    assert "Migração" in text
    assert "\n  " in text  # indented


def test_roundtrip_reproduces_state(sample_state) -> None:
    result = import_state_json(export_state_json(sample_state))
    assert result.ok, result.error
    assert result.state == sample_state


def test_roundtrip_empty_rows_and_unicode() -> None:
    state = PlanState.model_validate(
        {"cabecalho": {"projeto": "Ação ✓ 日本"}, "linhas": [], "metas": {"targetPercent": 55.5}}
    )
    result = import_state_json(export_state_json(state))
    assert result.ok
    assert result.state == state
    assert result.state.rows == []


def test_missing_goal_keeps_current_goal() -> None:
    current = Goal(targetPercent=60, targetDate="2024-05-01")
    text = json.dumps({"cabecalho": {}, "linhas": []})
    result = import_state_json(text, current_goal=current)
    assert result.ok
    assert result.state.goal == current


def test_top_level_array_is_rejected() -> None:
    result = import_state_json(json.dumps([{"cabecalho": {}, "linhas": []}]))
    assert not result.ok
    assert result.state is None
    assert result.error


def test_missing_rows_is_rejected() -> None:
    assert not import_state_json(json.dumps({"cabecalho": {}})).ok
    assert not import_state_json(json.dumps({"cabecalho": {}, "linhas": {}})).ok
    assert not import_state_json(json.dumps({"cabecalho": "x", "linhas": []})).ok


def test_malformed_json_is_rejected() -> None:
    result = import_state_json("{not json")
    assert not result.ok
    assert "JSON" in result.error


def test_invalid_row_value_is_rejected() -> None:
    text = json.dumps({"cabecalho": {}, "linhas": [{"id": "a", "status": "whatever"}]})
    result = import_state_json(text)
    assert not result.ok
    assert "linhas" in result.error


def test_export_filename() -> None:
    assert export_filename(date(2026, 3, 9)) == "plano_acao_tbn_2026-03-09.json"


def test_file_roundtrip(tmp_path, sample_state) -> None:
    path = write_state_file(tmp_path / "plan.json", sample_state)
    result = read_state_file(path)
    assert result.ok
    assert result.state == sample_state


def test_missing_file_is_an_error_result(tmp_path) -> None:
    result = read_state_file(tmp_path / "nope.json")
    assert not result.ok


def test_import_ignores_stored_row_numbers() -> None:
    payload = {
        "cabecalho": {},
        "linhas": [{"id": "a", "numero": 0}, {"id": "b", "numero": None}, {"id": "c", "numero": -4}],
    }
    result = import_state_json(json.dumps(payload))
    assert result.ok, result.error
    assert [(r.id, r.number) for r in result.state.rows] == [("a", 1), ("b", 2), ("c", 3)]
