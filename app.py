from __future__ import annotations

# =============================================================================
# app.py (Streamlit UI)
#
# One page:
#   - Header card (project, owner, department, start date, overall status)
#   - Goal panel (target %, target date, pacing)
#   - Filter bar + editable action table
#   - Charts (progress per owner, actions per status / priority)
#   - Export/import JSON, Excel download, reset
#
# The page never mutates data itself: every edit goes through the PlanStore,
# which validates, saves to disk and hands back the new plan.
# =============================================================================
import logging
from datetime import date
from typing import Any, Dict, List

import pandas as pd
import streamlit as st
from pydantic import ValidationError

from config import APP_SUBTITLE, APP_TITLE, DATA_DIR, FILTER_ALL, TBN_BLUE, TBN_ORANGE
from date_utils import coerce_date, format_date
from excel_io import excel_filename, rows_dataframe, write_plan_excel_bytes
from filters import filter_rows
from json_io import export_filename
from metrics import pacing_message
from plan_models import (
    PRIORITY_LABELS,
    PRIORITY_OPTIONS,
    STATUS_LABELS,
    STATUS_OPTIONS,
    normalize_priority,
    normalize_status,
)
from state_store import PlanStore
from storage import FileStorage

logger = logging.getLogger(__name__)

# Editor column -> Row field
_EDITABLE_COLUMNS = {
    "acao": "action",
    "responsavel": "owner",
    "prazo": "deadline",
    "prioridade": "priority",
    "status": "status",
    "observacoes": "notes",
}


# ----------------------------
# Session helpers
# ----------------------------


def _get_store() -> PlanStore:
    """One PlanStore per browser session, backed by the on-disk snapshot."""
    if "_store" not in st.session_state:
        st.session_state["_store"] = PlanStore(FileStorage(DATA_DIR))
    return st.session_state["_store"]


def _epoch() -> int:
    return int(st.session_state.get("_data_epoch", 0))


def _bump_epoch() -> int:
    """Increment the epoch so keyed widgets re-mount with the new plan's values."""
    st.session_state["_data_epoch"] = _epoch() + 1
    return _epoch()


def _mark_upload_changed() -> None:
    st.session_state["_upload_changed"] = True


def _editor_frame(rows) -> pd.DataFrame:
    """Rows prepared for st.data_editor: labels for enums, text dates, delete column."""
    df = rows_dataframe(rows)
    df["prazo"] = df["prazo"].apply(format_date)
    df["prioridade"] = df["prioridade"].map(PRIORITY_LABELS)
    df["status"] = df["status"].map(STATUS_LABELS)
    for c in ("acao", "responsavel", "observacoes", "id"):
        df[c] = df[c].astype("string").fillna("")
    df.insert(0, "__delete__", False)
    return df


def _normalize_cell(field: str, value: Any) -> Any:
    if field == "deadline":
        return coerce_date(value)
    if field == "priority":
        return normalize_priority(value)
    if field == "status":
        return normalize_status(value)
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value)


def _apply_row_edits(store: PlanStore, edited: pd.DataFrame) -> List[str]:
    """Push changed cells into the store. Returns human-readable errors."""
    errors: List[str] = []
    for record in edited.to_dict(orient="records"):
        row_id = str(record.get("id") or "")
        try:
            row = store.state.row_by_id(row_id)
        except KeyError:
            continue
        for col, field in _EDITABLE_COLUMNS.items():
            try:
                new_value = _normalize_cell(field, record.get(col))
            except ValueError as e:
                errors.append(f"Linha {row.number}: {e}")
                continue
            if new_value == getattr(row, field):
                continue
            try:
                row = store.update_row(row_id, field, new_value)
            except ValidationError as ve:
                for err in ve.errors():
                    errors.append(f"Linha {row.number}: {col} — {err.get('msg', 'valor inválido')}")
    return errors


def _inject_css() -> None:
    st.markdown(
        f"""
<style>
  div.block-container {{ padding-top: 1.2rem; }}
  h1 {{ color: {TBN_BLUE}; }}
  .stDownloadButton button, .stButton button {{ padding: 0.55rem 0.9rem; }}
  footer {{ visibility: hidden; }}
  @media print {{
    [data-testid="stSidebar"], .stDownloadButton, .stButton, [data-testid="stFileUploader"] {{ display: none !important; }}
  }}
</style>
        """,
        unsafe_allow_html=True,
    )


# ----------------------------
# Sections
# ----------------------------


def _header_section(store: PlanStore, completion: int) -> None:
    header = store.state.header
    epoch = _epoch()

    c1, c2, c3, c4 = st.columns(4)
    values: Dict[str, Any] = {
        "project": c1.text_input(
            "Projeto / Reunião", value=header.project, key=f"hdr_project_{epoch}",
            placeholder="Ex.: Migração backbone – Bairro X",
        ),
        "owner": c2.text_input(
            "Responsável principal", value=header.owner, key=f"hdr_owner_{epoch}",
            placeholder="Ex.: Gleidson / Fabiane / Marcelo",
        ),
        "department": c3.text_input(
            "Departamento", value=header.department, key=f"hdr_department_{epoch}",
            placeholder="Ex.: Operações / Comercial / Financeiro",
        ),
        "start_date": c4.date_input(
            "Data de início", value=header.start_date, key=f"hdr_start_{epoch}", format="YYYY-MM-DD",
        ),
    }

    s1, s2 = st.columns(2)
    status_values = [v for v, _ in STATUS_OPTIONS]
    values["overall_status"] = s1.selectbox(
        "Status geral",
        options=status_values,
        index=status_values.index(header.overall_status),
        format_func=STATUS_LABELS.get,
        key=f"hdr_status_{epoch}",
    )
    with s2:
        st.markdown("% de conclusão")
        st.progress(completion / 100, text=f"{completion}% concluído")

    for field, value in values.items():
        if value != getattr(header, field):
            store.update_header(field, value)


def _goal_section(store: PlanStore) -> None:
    goal = store.state.goal
    epoch = _epoch()

    st.subheader("Meta do projeto")
    g1, g2 = st.columns(2)
    target_percent = g1.number_input(
        "% alvo de conclusão", min_value=0.0, max_value=100.0, value=float(goal.target_percent),
        step=1.0, key=f"goal_percent_{epoch}",
    )
    target_date = g2.date_input("Data-alvo", value=goal.target_date, key=f"goal_date_{epoch}", format="YYYY-MM-DD")
    if target_percent != goal.target_percent or target_date != goal.target_date:
        store.update_goal(target_percent=target_percent, target_date=target_date)

    m = store.metrics()
    pacing = m.pacing

    st.progress(m.completion_percent / 100, text=f"{m.completion_percent}% concluído • meta {pacing.target:g}%")

    k1, k2, k3 = st.columns(3)
    k1.metric(
        "Situação",
        pacing_message(pacing),
        delta=(f"esperado hoje: {pacing.expected_progress_today}%" if pacing.defined else None),
        delta_color="off",
    )
    k2.metric("Dias restantes", pacing.days_remaining if pacing.days_remaining is not None else "—")
    k3.metric(
        "Ritmo necessário",
        f"{pacing.required_daily_rate:.1f}%/dia" if pacing.defined else "—",
        help=f"para alcançar {pacing.target:g}% até a data",
    )


def _rows_section(store: PlanStore) -> None:
    st.subheader("Ações")
    m = store.metrics()

    f1, f2, f3 = st.columns([1, 1, 2])
    status_filter = f1.selectbox(
        "Filtrar por status",
        options=[FILTER_ALL] + [v for v, _ in STATUS_OPTIONS],
        format_func=lambda v: "Todos" if v == FILTER_ALL else STATUS_LABELS[v],
    )
    owner_filter = f2.selectbox(
        "Filtrar responsável",
        options=[FILTER_ALL] + m.unique_owners,
        format_func=lambda v: "Todos" if v == FILTER_ALL else v,
    )
    search = f3.text_input("Buscar", placeholder="Ação, responsável, observações...")

    visible = filter_rows(store.state.rows, status=status_filter, owner=owner_filter, search=search)
    edited = st.data_editor(
        _editor_frame(visible),
        num_rows="fixed",
        use_container_width=True,
        hide_index=True,
        disabled=["numero", "id"],
        column_config={
            "__delete__": st.column_config.CheckboxColumn("remover", help="Marque e clique em 'Remover marcadas'."),
            "numero": st.column_config.NumberColumn("Nº"),
            "acao": st.column_config.TextColumn("Ação / Etapa", width="large"),
            "responsavel": st.column_config.TextColumn("Responsável"),
            "prazo": st.column_config.TextColumn("Prazo", help="Data no formato AAAA-MM-DD (ex.: 2026-01-15)."),
            "prioridade": st.column_config.SelectboxColumn("Prioridade", options=[label for _, label in PRIORITY_OPTIONS]),
            "status": st.column_config.SelectboxColumn("Status", options=[label for _, label in STATUS_OPTIONS]),
            "observacoes": st.column_config.TextColumn("Observações", width="large"),
            "id": None,
        },
        key=f"rows_editor_{_epoch()}",
    )

    errors = _apply_row_edits(store, edited)
    for e in errors:
        st.error(e)

    b1, b2, _ = st.columns([1, 1, 3])
    if b1.button("+ Adicionar ação", use_container_width=True):
        store.add_row()
        _bump_epoch()
        st.rerun()
    if b2.button("Remover marcadas", use_container_width=True):
        for row_id in edited.loc[edited["__delete__"].apply(lambda v: v is True), "id"]:
            store.remove_row(str(row_id))
        _bump_epoch()
        st.rerun()


def _charts_section(store: PlanStore) -> None:
    m = store.metrics()

    st.subheader("Progresso por responsável")
    st.caption("Percentual de ações concluídas por responsável")
    if m.progress_by_owner:
        st.bar_chart(
            pd.DataFrame({"percentual": [p.percent for p in m.progress_by_owner]}, index=[p.name for p in m.progress_by_owner]),
            color=TBN_BLUE,
        )

    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Ações por status")
        if m.counts_by_status:
            st.bar_chart(
                pd.DataFrame({"ações": [t.count for t in m.counts_by_status]}, index=[t.label for t in m.counts_by_status]),
                color=TBN_ORANGE,
            )
    with c2:
        st.subheader("Ações por prioridade")
        if m.counts_by_priority:
            st.bar_chart(
                pd.DataFrame({"ações": [t.count for t in m.counts_by_priority]}, index=[t.label for t in m.counts_by_priority]),
                color=TBN_BLUE,
            )


def _sidebar(store: PlanStore) -> None:
    today = date.today()
    with st.sidebar:
        st.header("Arquivo")

        st.download_button(
            "Exportar JSON",
            data=store.export_json().encode("utf-8"),
            file_name=export_filename(today),
            mime="application/json",
            use_container_width=True,
        )

        try:
            xlsx_bytes = write_plan_excel_bytes(store.state, today)
        except Exception as e:
            logger.warning(f"Excel export failed: {e}")
            xlsx_bytes = b""
        st.download_button(
            "Baixar Excel (impressão)",
            data=xlsx_bytes,
            file_name=excel_filename(today),
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            use_container_width=True,
            disabled=(xlsx_bytes == b""),
        )

        uploaded = st.file_uploader(
            "Importar JSON",
            type=["json"],
            key=f"json_uploader_{st.session_state.get('_uploader_epoch', 0)}",
            on_change=_mark_upload_changed,
        )
        if uploaded is not None and st.session_state.get("_upload_changed"):
            st.session_state["_upload_changed"] = False
            result = store.import_json(uploaded.getvalue().decode("utf-8", errors="replace"))
            if result.ok:
                st.session_state["_uploader_epoch"] = int(st.session_state.get("_uploader_epoch", 0)) + 1
                _bump_epoch()
                st.rerun()
            else:
                st.error(result.error)

        st.divider()
        confirm = st.checkbox("Tenho certeza que desejo limpar todo o plano", key=f"reset_confirm_{_epoch()}")
        if st.button("Limpar", use_container_width=True, disabled=not confirm):
            if store.reset(confirmed=confirm):
                _bump_epoch()
                st.rerun()

        st.divider()
        st.caption("Legenda: ✅ Concluído • ⚙️ Em andamento • 🕒 Atrasado • 🚀 Prioritário")
        st.caption("Para gestão à vista, baixe o Excel ou use a impressão do navegador.")


def main() -> None:
    """Streamlit entry point."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    st.set_page_config(page_title=APP_TITLE, page_icon="📋", layout="wide")
    _inject_css()

    st.title(APP_TITLE)
    st.caption(APP_SUBTITLE)

    store = _get_store()
    _sidebar(store)

    _header_section(store, store.metrics().completion_percent)
    st.divider()
    _goal_section(store)
    st.divider()
    _rows_section(store)
    st.divider()
    _charts_section(store)

    st.caption(f"TBN Telecom • Plano de Ação • {date.today().year}")


if __name__ == "__main__":
    main()
