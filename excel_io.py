from __future__ import annotations

# =============================================================================
# excel_io.py (print-ready workbook + read back)
#
# The workbook is the "wall copy" of the plan:
#   - Cabecalho: header fields, goal and current completion (key/value)
#   - Acoes: one line per action, with status/priority dropdowns
#   - Resumo: progress per owner and status/priority tallies
#
# It can also be read back, so a plan edited in Excel can be loaded again.
# =============================================================================
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

import pandas as pd
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.worksheet.datavalidation import DataValidation
from pydantic import ValidationError

from config import EXCEL_FILE_PREFIX
from date_utils import coerce_date
from metrics import compute_metrics
from plan_models import PRIORITY_OPTIONS, STATUS_OPTIONS, Goal, Header, PlanState, Row

HEADER_SHEET = "Cabecalho"
ROWS_SHEET = "Acoes"
SUMMARY_SHEET = "Resumo"

HEADER_KEYS = [
    "projeto",
    "responsavel",
    "departamento",
    "inicio",
    "status",
    "targetPercent",
    "targetDate",
    "conclusao",  # computed; ignored when reading
]

ROW_COLUMNS = [
    "numero",
    "acao",
    "responsavel",
    "prazo",
    "prioridade",
    "status",
    "observacoes",
    "id",
]

_DATE_KEYS = {"inicio", "targetDate"}
_HEADER_FILL = PatternFill(start_color="DCE6F5", end_color="DCE6F5", fill_type="solid")


def excel_filename(today: date) -> str:
    return f"{EXCEL_FILE_PREFIX}{today.isoformat()}.xlsx"


def _is_blank(value: Any) -> bool:
    """True if value is None/NaN/NaT/pd.NA or an empty/whitespace string."""
    if value is None:
        return True
    try:
        if pd.isna(value):
            return True
    except (TypeError, ValueError):
        pass
    if isinstance(value, str):
        return value.strip() == ""
    return False


def rows_dataframe(rows: List[Row]) -> pd.DataFrame:
    """Rows as a DataFrame with ROW_COLUMNS (snapshot names, python dates)."""
    records = [r.model_dump(by_alias=True) for r in rows]
    df = pd.DataFrame(records, columns=ROW_COLUMNS)
    return df[ROW_COLUMNS]


def rows_from_dataframe(df: pd.DataFrame) -> List[Row]:
    """
    Rebuild Row models from an (edited) DataFrame.

    Blank cells become field defaults. Lines where every cell is blank are
    dropped. Raises pydantic.ValidationError on invalid values.
    """
    out: List[Row] = []
    for record in df.to_dict(orient="records"):
        clean = {k: (None if _is_blank(v) else v) for k, v in record.items() if k in ROW_COLUMNS}
        if all(v is None for v in clean.values()):
            continue
        # Numbers follow list position.
        clean["numero"] = len(out) + 1
        out.append(Row.model_validate({k: v for k, v in clean.items() if v is not None}))
    return out


def _write_text(cell, value: Any) -> None:
    """Assign a value; text stays text even when it looks like a formula."""
    cell.value = value
    if isinstance(value, str):
        cell.data_type = "s"


def _style_header_row(ws) -> None:
    for c in ws[1]:
        c.font = Font(bold=True)
        c.fill = _HEADER_FILL
        c.alignment = Alignment(horizontal="left")
    ws.freeze_panes = "A2"


def build_plan_workbook() -> Workbook:
    """Create the empty workbook: sheets, header rows, dropdowns and formats."""
    wb = Workbook()
    wb.remove(wb.active)

    # Header sheet
    ws = wb.create_sheet(HEADER_SHEET)
    ws.append(["campo", "valor"])
    _style_header_row(ws)
    for key in HEADER_KEYS:
        ws.append([key, None])
    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 48

    key_to_row = {ws.cell(row=r, column=1).value: r for r in range(2, ws.max_row + 1)}
    status_formula = '"' + ",".join(v for v, _ in STATUS_OPTIONS) + '"'
    dv_header_status = DataValidation(type="list", formula1=status_formula, allow_blank=False)
    ws.add_data_validation(dv_header_status)
    dv_header_status.add(ws.cell(row=key_to_row["status"], column=2))
    for k in _DATE_KEYS:
        ws.cell(row=key_to_row[k], column=2).number_format = "yyyy-mm-dd"

    # Actions sheet
    ws_a = wb.create_sheet(ROWS_SHEET)
    ws_a.append(ROW_COLUMNS)
    _style_header_row(ws_a)
    col_widths = {
        "A": 8,  # numero
        "B": 48,  # acao
        "C": 22,  # responsavel
        "D": 14,  # prazo
        "E": 14,  # prioridade
        "F": 16,  # status
        "G": 40,  # observacoes
        "H": 38,  # id
    }
    for col, w in col_widths.items():
        ws_a.column_dimensions[col].width = w

    priority_formula = '"' + ",".join(v for v, _ in PRIORITY_OPTIONS) + '"'
    dv_priority = DataValidation(type="list", formula1=priority_formula, allow_blank=True)
    dv_status = DataValidation(type="list", formula1=status_formula, allow_blank=True)
    ws_a.add_data_validation(dv_priority)
    ws_a.add_data_validation(dv_status)
    dv_priority.add("E2:E1000")
    dv_status.add("F2:F1000")

    # Summary sheet (filled by write_plan_excel_bytes)
    wb.create_sheet(SUMMARY_SHEET)

    return wb


def write_plan_excel_bytes(state: PlanState, today: Optional[date] = None) -> bytes:
    """Serialize the plan into an .xlsx workbook (raw bytes, ready for a download button)."""
    wb = build_plan_workbook()
    metrics = compute_metrics(state, today or date.today())

    # -----------------
    # Header + goal
    # -----------------
    ws = wb[HEADER_SHEET]
    key_to_row = {ws.cell(row=r, column=1).value: r for r in range(2, ws.max_row + 1)}
    header = state.header.model_dump(by_alias=True)
    goal = state.goal.model_dump(by_alias=True)
    values: Dict[str, Any] = {**header, **goal, "conclusao": metrics.completion_percent}
    for k in HEADER_KEYS:
        v = values.get(k)
        _write_text(ws.cell(row=key_to_row[k], column=2), None if _is_blank(v) else v)

    # -----------------
    # Actions
    # -----------------
    ws_a = wb[ROWS_SHEET]
    for r, record in enumerate(rows_dataframe(state.rows).to_dict(orient="records"), start=2):
        for col, c in enumerate(ROW_COLUMNS, start=1):
            _write_text(ws_a.cell(row=r, column=col), None if _is_blank(record[c]) else record[c])
    for r in range(2, ws_a.max_row + 1):
        ws_a.cell(row=r, column=4).number_format = "yyyy-mm-dd"  # prazo

    # -----------------
    # Summary
    # -----------------
    ws_s = wb[SUMMARY_SHEET]
    ws_s.append(["responsavel", "concluidas", "total", "percentual"])
    _style_header_row(ws_s)
    for p in metrics.progress_by_owner:
        ws_s.append([p.name, p.completed, p.total, p.percent])
    ws_s.append([])
    ws_s.append(["status", "acoes"])
    for t in metrics.counts_by_status:
        ws_s.append([t.label, t.count])
    ws_s.append([])
    ws_s.append(["prioridade", "acoes"])
    for t in metrics.counts_by_priority:
        ws_s.append([t.label, t.count])
    ws_s.column_dimensions["A"].width = 28

    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def read_plan_excel(excel_bytes: bytes) -> PlanState:
    """
    Read a workbook written by write_plan_excel_bytes() back into a PlanState.

    Raises ValueError with a readable message when the file isn't a workbook,
    a required sheet is missing or a value doesn't validate.
    """
    try:
        wb = load_workbook(BytesIO(excel_bytes), data_only=True)
    except Exception as e:
        raise ValueError(f"Unable to read .xlsx file. Make sure it's an Excel workbook (.xlsx). Details: {e}") from e

    required_sheets = {HEADER_SHEET, ROWS_SHEET}
    missing = required_sheets - set(wb.sheetnames)
    if missing:
        raise ValueError(f"Missing required sheet(s): {', '.join(sorted(missing))}. Expected: {HEADER_SHEET}, {ROWS_SHEET}.")

    values: Dict[str, Any] = {}
    for row in wb[HEADER_SHEET].iter_rows(min_row=2, values_only=True):
        if not row or row[0] is None:
            continue
        key = str(row[0]).strip()
        if key:
            values[key] = row[1] if len(row) > 1 else None

    for k in _DATE_KEYS:
        if isinstance(values.get(k), datetime):
            values[k] = values[k].date()

    try:
        rows_df = pd.read_excel(BytesIO(excel_bytes), sheet_name=ROWS_SHEET, engine="openpyxl", dtype=object)
    except Exception as e:
        raise ValueError(f"Unable to parse the {ROWS_SHEET} sheet. Details: {e}") from e

    for col in ROW_COLUMNS:
        if col not in rows_df.columns:
            rows_df[col] = pd.NA
    rows_df = rows_df[ROW_COLUMNS]
    rows_df["prazo"] = rows_df["prazo"].apply(coerce_date)

    header_fields = {k: values.get(k) for k in ("projeto", "responsavel", "departamento", "inicio", "status")}
    goal_fields = {k: values[k] for k in ("targetPercent", "targetDate") if not _is_blank(values.get(k))}

    try:
        return PlanState(
            header=Header.model_validate(header_fields),
            rows=rows_from_dataframe(rows_df),
            goal=Goal.model_validate(goal_fields),
        )
    except ValidationError as ve:
        issues = []
        for err in ve.errors():
            loc = ".".join(str(x) for x in err.get("loc", []))
            issues.append(f"{loc} — {err.get('msg', 'Invalid value')}")
        raise ValueError("Invalid plan workbook: " + "; ".join(issues)) from ve
