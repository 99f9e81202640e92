import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plan_models import PlanState, default_state  # noqa: E402
from storage import MemoryStorage  # noqa: E402


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def sample_state() -> PlanState:
    return PlanState.model_validate(
        {
            "cabecalho": {
                "projeto": "Migração backbone – Bairro X",
                "responsavel": "Fabiane",
                "departamento": "Operações",
                "inicio": "2024-01-01",
                "status": "em_andamento",
            },
            "linhas": [
                {"id": "a", "numero": 1, "acao": "Instalar OLT", "responsavel": "Ana", "prazo": "2024-01-10",
                 "prioridade": "alta", "status": "concluido", "observacoes": "ok"},
                {"id": "b", "numero": 2, "acao": "Configurar VLANs", "responsavel": "Bruno", "prazo": "",
                 "prioridade": "media", "status": "em_andamento", "observacoes": "aguardando janela"},
                {"id": "c", "numero": 3, "acao": "Revisar documentação", "responsavel": "", "prazo": "2024-02-01",
                 "prioridade": "baixa", "status": "nao_iniciado", "observacoes": ""},
                {"id": "d", "numero": 4, "acao": "Testar failover", "responsavel": " Ana ", "prazo": "",
                 "prioridade": "alta", "status": "atrasado", "observacoes": "Depende do fornecedor"},
            ],
            "metas": {"targetPercent": 80, "targetDate": "2024-01-31"},
        }
    )


@pytest.fixture
def blank_plan() -> PlanState:
    return default_state()
