from __future__ import annotations

# ---------------------------------------------------------------------------
# JSON snapshot import/export.
#
# The snapshot is the whole plan: {"cabecalho": ..., "linhas": [...], "metas": ...}.
# Export always succeeds. Import never raises: it returns an ImportResult so
# the caller can show the reason and keep the current plan untouched.
# ---------------------------------------------------------------------------
import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from config import EXPORT_FILE_PREFIX
from plan_models import Goal, PlanState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    ok: bool
    state: Optional[PlanState] = None
    error: Optional[str] = None


def state_to_dict(state: PlanState) -> dict:
    """Snapshot dict with the persisted keys and ISO date strings."""
    return state.model_dump(mode="json", by_alias=True)


def export_state_json(state: PlanState) -> str:
    return json.dumps(state_to_dict(state), indent=2, ensure_ascii=False)


def export_filename(today: date) -> str:
    return f"{EXPORT_FILE_PREFIX}{today.isoformat()}.json"


def _format_validation_error(ve: ValidationError) -> str:
    parts = []
    for err in ve.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def state_from_dict(data: Any, current_goal: Optional[Goal] = None) -> ImportResult:
    """Validate an already-parsed snapshot."""
    if not isinstance(data, dict):
        return ImportResult(ok=False, error="Arquivo inválido: esperado um objeto com 'cabecalho' e 'linhas'.")
    header = data.get("cabecalho")
    rows = data.get("linhas")
    if not isinstance(header, dict) or not isinstance(rows, list):
        return ImportResult(ok=False, error="Arquivo inválido: esperado um objeto com 'cabecalho' e 'linhas'.")

    goal = data.get("metas")
    if goal is None:
        goal = current_goal if current_goal is not None else Goal()
    elif not isinstance(goal, dict):
        return ImportResult(ok=False, error="Arquivo inválido: 'metas' deve ser um objeto.")

    try:
        state = PlanState.model_validate({"cabecalho": header, "linhas": rows, "metas": goal})
    except ValidationError as ve:
        return ImportResult(ok=False, error=f"Arquivo inválido: {_format_validation_error(ve)}")
    return ImportResult(ok=True, state=state)


def import_state_json(text: Union[str, bytes], current_goal: Optional[Goal] = None) -> ImportResult:
    """
    Parse snapshot text.

    Requires a top-level object holding a "cabecalho" object and a "linhas"
    array. "metas" is optional; when missing, ``current_goal`` is kept.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.info("Rejected JSON import: %s", e)
        return ImportResult(ok=False, error=f"Erro ao ler JSON: {e}")

    result = state_from_dict(data, current_goal)
    if not result.ok:
        logger.info("Rejected JSON import: %s", result.error)
    return result


def write_state_file(path: Union[str, Path], state: PlanState) -> Path:
    """Write the snapshot to disk (UTF-8) and return the path."""
    p = Path(path)
    p.write_text(export_state_json(state), encoding="utf-8")
    return p


def read_state_file(path: Union[str, Path], current_goal: Optional[Goal] = None) -> ImportResult:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return ImportResult(ok=False, error=f"Erro ao ler arquivo: {e}")
    return import_state_json(text, current_goal)
