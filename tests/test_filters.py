from config import FILTER_ALL, UNASSIGNED_OWNER
from filters import filter_rows


def _ids(rows) -> list:
    return [r.id for r in rows]


def test_no_filters_returns_everything(sample_state) -> None:
    out = filter_rows(sample_state.rows, status=FILTER_ALL, owner=FILTER_ALL, search="")
    assert out == list(sample_state.rows)


def test_status_filter(sample_state) -> None:
    assert _ids(filter_rows(sample_state.rows, status="concluido")) == ["a"]


def test_owner_filter_uses_trimmed_label(sample_state) -> None:
    assert _ids(filter_rows(sample_state.rows, owner="Ana")) == ["a", "d"]
    assert _ids(filter_rows(sample_state.rows, owner=UNASSIGNED_OWNER)) == ["c"]


def test_search_is_case_insensitive_across_fields(sample_state) -> None:
    assert _ids(filter_rows(sample_state.rows, search="FORNECEDOR")) == ["d"]
    assert _ids(filter_rows(sample_state.rows, search="bruno")) == ["b"]
    assert _ids(filter_rows(sample_state.rows, search="documentação")) == ["c"]


def test_filters_combine_and_keep_order(sample_state) -> None:
    out = filter_rows(sample_state.rows, status="atrasado", owner="Ana", search="failover")
    assert _ids(out) == ["d"]
    out = filter_rows(sample_state.rows, owner="Ana", search="zzz")
    assert out == []


def test_filtering_does_not_touch_input(sample_state) -> None:
    rows = list(sample_state.rows)
    filter_rows(rows, status="concluido")
    assert rows == list(sample_state.rows)
