"""
Configuration and constants for the action plan tracker.

Everything here is a plain module-level constant. The only value that can be
overridden is DATA_DIR (set PLANO_ACAO_DATA_DIR), which the Streamlit page uses
for its on-disk key-value store.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final


def _get_default_data_dir() -> Path:
    if env_dir := os.environ.get("PLANO_ACAO_DATA_DIR"):
        return Path(env_dir).expanduser()
    return Path.home() / ".plano_acao"


# Persistence
STORAGE_KEY: Final[str] = "tbn_plano_acao_v3"
DATA_DIR: Final[Path] = _get_default_data_dir()

# Plan defaults
DEFAULT_ROW_COUNT: Final[int] = 5
DEFAULT_TARGET_PERCENT: Final[float] = 80.0

# Label shown for rows without an owner (grouping + filtering)
UNASSIGNED_OWNER: Final[str] = "— Sem responsável —"

# Filter value meaning "no filter"
FILTER_ALL: Final[str] = "all"

# Export
EXPORT_FILE_PREFIX: Final[str] = "plano_acao_tbn_"
EXCEL_FILE_PREFIX: Final[str] = "plano_acao_tbn_"

# Branding
APP_TITLE: Final[str] = "Plano de Ação TBN"
APP_SUBTITLE: Final[str] = "Gestão à vista • Edição rápida • Salvamento automático"
TBN_BLUE: Final[str] = "#004AAD"
TBN_ORANGE: Final[str] = "#FF7A00"
