from __future__ import annotations

# ---------------------------------------------------------------------------
# PlanStore: the single owner of the plan.
#
# Every mutation builds a new, validated PlanState (the models are frozen),
# saves it under one storage key and notifies subscribers so derived values
# can be recomputed. A rejected edit (unknown field, invalid value, unknown
# row) raises before anything changes.
# ---------------------------------------------------------------------------
import logging
from datetime import date
from typing import Any, Callable, List, Optional

from config import STORAGE_KEY
from json_io import ImportResult, export_state_json, import_state_json
from metrics import PlanMetrics, compute_metrics
from plan_models import Goal, Header, PlanState, Row, blank_row, default_state, resolve_field
from storage import KeyValueStorage, safe_remove, safe_set

logger = logging.getLogger(__name__)

Listener = Callable[[PlanState], None]

_READ_ONLY_ROW_FIELDS = {"id", "number"}


class PlanStore:
    """
    Owns the current PlanState and keeps storage in sync with it.

    Args:
        storage: Key-value store holding the JSON snapshot.
        key: Storage key of the snapshot.
        clock: Returns "today" for goal pacing.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = STORAGE_KEY,
        clock: Callable[[], date] = date.today,
    ):
        self.storage = storage
        self.key = key
        self.clock = clock
        self._listeners: List[Listener] = []
        self._state = self._load()

    # -----------------
    # Read side
    # -----------------
    @property
    def state(self) -> PlanState:
        return self._state

    def metrics(self, today: Optional[date] = None) -> PlanMetrics:
        return compute_metrics(self._state, today or self.clock())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(state)`` after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -----------------
    # Mutations
    # -----------------
    def update_header(self, field: str, value: Any) -> Header:
        name = resolve_field(Header, field)
        header = Header.model_validate({**self._state.header.model_dump(), name: value})
        self._commit(self._state.model_copy(update={"header": header}))
        return header

    def update_row(self, row_id: str, field: str, value: Any) -> Row:
        name = resolve_field(Row, field)
        if name in _READ_ONLY_ROW_FIELDS:
            raise ValueError(f"Row field {name!r} can't be edited.")

        rows = list(self._state.rows)
        idx = self._index_of(row_id)
        row = Row.model_validate({**rows[idx].model_dump(), name: value})
        rows[idx] = row
        self._commit(self._state.model_copy(update={"rows": rows}))
        return row

    def add_row(self) -> Row:
        """Append a blank row numbered after the last one."""
        row = blank_row(len(self._state.rows) + 1)
        self._commit(self._rebuild(rows=[*self._state.rows, row]))
        return row

    def remove_row(self, row_id: str) -> None:
        """Delete a row; the rows after it move up one number."""
        self._index_of(row_id)
        self._commit(self._rebuild(rows=[r for r in self._state.rows if r.id != row_id]))

    def update_goal(self, **fields: Any) -> Goal:
        """Replace goal fields, e.g. ``update_goal(target_percent=90)``."""
        updates = {resolve_field(Goal, k): v for k, v in fields.items()}
        goal = Goal.model_validate({**self._state.goal.model_dump(), **updates})
        self._commit(self._state.model_copy(update={"goal": goal}))
        return goal

    def replace_state(self, state: PlanState) -> None:
        self._commit(state)

    def import_json(self, text: str) -> ImportResult:
        """Replace the whole plan from snapshot text; the plan is untouched on failure."""
        result = import_state_json(text, current_goal=self._state.goal)
        if result.ok and result.state is not None:
            self._commit(result.state)
            logger.info("Imported plan with %d row(s)", len(result.state.rows))
        return result

    def export_json(self) -> str:
        return export_state_json(self._state)

    def reset(self, *, confirmed: bool) -> bool:
        """
        Start over with a blank plan and drop the saved snapshot.

        Destructive: does nothing unless the caller passes ``confirmed=True``.
        """
        if not confirmed:
            return False
        self._state = default_state()
        safe_remove(self.storage, self.key)
        logger.info("Plan reset to defaults")
        self._notify()
        return True

    # -----------------
    # Internals
    # -----------------
    def _load(self) -> PlanState:
        try:
            raw = self.storage.get(self.key)
        except Exception as e:
            logger.debug(f"Storage read failed for {self.key!r}: {e}")
            raw = None
        if not raw:
            return default_state()

        result = import_state_json(raw)
        if not result.ok or result.state is None:
            logger.debug(f"Ignoring saved snapshot: {result.error}")
            return default_state()
        if not result.state.rows:
            # An emptied plan reopens with the blank starter rows.
            return result.state.model_copy(update={"rows": default_state().rows})
        return result.state

    def _index_of(self, row_id: str) -> int:
        for idx, r in enumerate(self._state.rows):
            if r.id == row_id:
                return idx
        raise KeyError(f"Unknown row id: {row_id}")

    def _rebuild(self, *, rows: List[Row]) -> PlanState:
        # Full validation: renumbers rows and checks id uniqueness.
        return PlanState(header=self._state.header, rows=rows, goal=self._state.goal)

    def _commit(self, state: PlanState) -> None:
        self._state = state
        safe_set(self.storage, self.key, export_state_json(state))
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)
