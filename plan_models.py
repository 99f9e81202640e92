from __future__ import annotations

# ---------------------------------------------------------------------------
# Pydantic models for the action plan:
#   - Header: the plan's singleton header card
#   - Row: one action line
#   - Goal: target percent + target date used for pacing
#   - PlanState: everything above; the unit of persistence/export/import
#
# Python code uses English field names. The aliases are the keys of the
# persisted/exported JSON snapshot, and the enum values are the snapshot's
# tokens, so files written by earlier versions of the plan load unchanged.
# ---------------------------------------------------------------------------
import unicodedata
import uuid
from datetime import date
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from config import DEFAULT_ROW_COUNT, DEFAULT_TARGET_PERCENT
from date_utils import coerce_date, format_date

Status = Literal["nao_iniciado", "em_andamento", "concluido", "atrasado"]
Priority = Literal["alta", "media", "baixa"]

STATUS_NOT_STARTED = "nao_iniciado"
STATUS_IN_PROGRESS = "em_andamento"
STATUS_DONE = "concluido"
STATUS_LATE = "atrasado"

PRIORITY_HIGH = "alta"
PRIORITY_MEDIUM = "media"
PRIORITY_LOW = "baixa"

# Display order matters: charts and tallies follow it.
STATUS_OPTIONS: List[Tuple[str, str]] = [
    (STATUS_NOT_STARTED, "🔴 Não iniciado"),
    (STATUS_IN_PROGRESS, "🟡 Em andamento"),
    (STATUS_DONE, "🟢 Concluído"),
    (STATUS_LATE, "🕒 Atrasado"),
]

PRIORITY_OPTIONS: List[Tuple[str, str]] = [
    (PRIORITY_HIGH, "Alta"),
    (PRIORITY_MEDIUM, "Média"),
    (PRIORITY_LOW, "Baixa"),
]

STATUS_LABELS: Dict[str, str] = dict(STATUS_OPTIONS)
PRIORITY_LABELS: Dict[str, str] = dict(PRIORITY_OPTIONS)

# Normalized token -> canonical value. Labels normalize to the same tokens
# as the Portuguese values, so "🟢 Concluído" is accepted too.
_STATUS_SYNONYMS = {
    "nao iniciado": STATUS_NOT_STARTED,
    "not started": STATUS_NOT_STARTED,
    "em andamento": STATUS_IN_PROGRESS,
    "in progress": STATUS_IN_PROGRESS,
    "concluido": STATUS_DONE,
    "done": STATUS_DONE,
    "atrasado": STATUS_LATE,
    "late": STATUS_LATE,
}

_PRIORITY_SYNONYMS = {
    "alta": PRIORITY_HIGH,
    "high": PRIORITY_HIGH,
    "media": PRIORITY_MEDIUM,
    "medium": PRIORITY_MEDIUM,
    "baixa": PRIORITY_LOW,
    "low": PRIORITY_LOW,
}


def _normalize_token(value: Any) -> str:
    s = str(value or "").strip().lower()
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = s.replace("_", " ").replace("-", " ")
    s = "".join(ch for ch in s if ch.isalnum() or ch == " ")
    return " ".join(s.split())


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN
        return True
    return isinstance(value, str) and not value.strip()


def normalize_status(value: Any, default: str = STATUS_NOT_STARTED) -> str:
    """Map a status spelling (token, English name or label) to its canonical value."""
    if _is_blank(value):
        return default
    token = _normalize_token(value)
    if token in _STATUS_SYNONYMS:
        return _STATUS_SYNONYMS[token]
    allowed = ", ".join(v for v, _ in STATUS_OPTIONS)
    raise ValueError(f"status must be one of: {allowed} (got {value!r}).")


def normalize_priority(value: Any, default: str = PRIORITY_MEDIUM) -> str:
    """Map a priority spelling (token, English name or label) to its canonical value."""
    if _is_blank(value):
        return default
    token = _normalize_token(value)
    if token in _PRIORITY_SYNONYMS:
        return _PRIORITY_SYNONYMS[token]
    allowed = ", ".join(v for v, _ in PRIORITY_OPTIONS)
    raise ValueError(f"priority must be one of: {allowed} (got {value!r}).")


def clamp_percent(value: Any) -> float:
    """Numeric percent in [0, 100]; anything non-numeric counts as 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:
        return 0.0
    return max(0.0, min(100.0, number))


def _text(value: Any) -> str:
    if _is_blank(value) and not isinstance(value, str):
        return ""
    return str(value)


def new_row_id() -> str:
    return str(uuid.uuid4())


class Header(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    project: str = Field(default="", alias="projeto")
    owner: str = Field(default="", alias="responsavel")
    department: str = Field(default="", alias="departamento")
    start_date: Optional[date] = Field(default=None, alias="inicio")
    overall_status: Status = Field(default=STATUS_NOT_STARTED, alias="status")

    @field_validator("project", "owner", "department", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("start_date", mode="before")
    @classmethod
    def _coerce_start(cls, v: Any) -> Optional[date]:
        return coerce_date(v)

    @field_validator("overall_status", mode="before")
    @classmethod
    def _normalize_status(cls, v: Any) -> str:
        return normalize_status(v)

    @field_serializer("start_date", when_used="json")
    def _dump_start(self, v: Optional[date]) -> str:
        return format_date(v)


class Row(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_row_id)
    number: int = Field(default=1, ge=1, alias="numero")
    action: str = Field(default="", alias="acao")
    owner: str = Field(default="", alias="responsavel")
    deadline: Optional[date] = Field(default=None, alias="prazo")
    priority: Priority = Field(default=PRIORITY_MEDIUM, alias="prioridade")
    status: Status = Field(default=STATUS_NOT_STARTED)
    notes: str = Field(default="", alias="observacoes")

    @field_validator("id", mode="before")
    @classmethod
    def _id_or_new(cls, v: Any) -> str:
        # Rows typed into the editor (or hand-written files) may lack an id.
        if _is_blank(v):
            return new_row_id()
        return str(v).strip()

    @field_validator("action", "owner", "notes", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("deadline", mode="before")
    @classmethod
    def _coerce_deadline(cls, v: Any) -> Optional[date]:
        return coerce_date(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, v: Any) -> str:
        return normalize_priority(v)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v: Any) -> str:
        return normalize_status(v)

    @field_serializer("deadline", when_used="json")
    def _dump_deadline(self, v: Optional[date]) -> str:
        return format_date(v)

    @property
    def is_done(self) -> bool:
        return self.status == STATUS_DONE


class Goal(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    target_percent: float = Field(default=DEFAULT_TARGET_PERCENT, alias="targetPercent")
    target_date: Optional[date] = Field(default=None, alias="targetDate")

    @field_validator("target_percent", mode="before")
    @classmethod
    def _clamp_target(cls, v: Any) -> float:
        return clamp_percent(v)

    @field_validator("target_date", mode="before")
    @classmethod
    def _coerce_target_date(cls, v: Any) -> Optional[date]:
        return coerce_date(v)

    @field_serializer("target_percent", when_used="json")
    def _dump_target(self, v: float) -> Any:
        # 80 rather than 80.0 in the snapshot
        return int(v) if float(v).is_integer() else v

    @field_serializer("target_date", when_used="json")
    def _dump_target_date(self, v: Optional[date]) -> str:
        return format_date(v)


class PlanState(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    header: Header = Field(default_factory=Header, alias="cabecalho")
    rows: List[Row] = Field(default_factory=list, alias="linhas")
    goal: Goal = Field(default_factory=Goal, alias="metas")

    @model_validator(mode="before")
    @classmethod
    def _ignore_stored_numbers(cls, data: Any) -> Any:
        # Incoming "numero" values are never trusted; list position wins.
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for key in ("linhas", "rows"):
            rows = out.get(key)
            if isinstance(rows, list):
                out[key] = [
                    {**{k: v for k, v in r.items() if k != "number"}, "numero": idx}
                    if isinstance(r, dict)
                    else r
                    for idx, r in enumerate(rows, start=1)
                ]
        return out

    @field_validator("rows", mode="after")
    @classmethod
    def _renumber(cls, rows: List[Row]) -> List[Row]:
        """Row numbers always follow list position (1-based, contiguous)."""
        return [
            r if r.number == idx else r.model_copy(update={"number": idx})
            for idx, r in enumerate(rows, start=1)
        ]

    @model_validator(mode="after")
    def _ids_unique(self) -> "PlanState":
        seen = set()
        for r in self.rows:
            if r.id in seen:
                raise ValueError(f"duplicate row id: {r.id}")
            seen.add(r.id)
        return self

    def row_by_id(self, row_id: str) -> Row:
        for r in self.rows:
            if r.id == row_id:
                return r
        raise KeyError(f"Unknown row id: {row_id}")


def blank_row(number: int) -> Row:
    """A new empty action line (medium priority, not started)."""
    return Row(number=number)


def default_state(goal: Optional[Goal] = None) -> PlanState:
    """Blank header, DEFAULT_ROW_COUNT blank rows and the default goal."""
    rows = [blank_row(i + 1) for i in range(DEFAULT_ROW_COUNT)]
    return PlanState(header=Header(), rows=rows, goal=goal or Goal())


def resolve_field(model_cls: type[BaseModel], name: str) -> str:
    """Accept either the Python field name or its snapshot alias ("acao" -> "action")."""
    fields = model_cls.model_fields
    if name in fields:
        return name
    for field_name, info in fields.items():
        if info.alias == name:
            return field_name
    raise ValueError(f"Unknown {model_cls.__name__} field: {name!r}")
