# src/compliance_pipeline/core/pipeline/types.py
"""
Tipos canônicos do pipeline de conformidade.

Os tipos aqui definidos representam:
    - o conjunto fixo de etapas e seus nomes canônicos
    - os estados possíveis de cada etapa
    - a chave de execução (produto, etapa)
    - o desfecho de uma chamada remota
    - o produto, na visão restrita que o core lê e escreve

Princípios fundamentais:
    - Enums possuem valores textuais canônicos (serializáveis em JSON)
    - Chaves são tuplas tipadas com igualdade por valor, nunca strings
      montadas ad hoc
    - Nenhuma lógica de execução vive neste módulo

Limites explícitos:
    - Não valida transições (ver `status.StepStatusVector`)
    - Não decide elegibilidade (ver `gate`)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .status import StepStatusVector


STEP_COUNT = 5

STEP_NAMES = (
    "decomposition",
    "assessment",
    "element_identification",
    "description_generation",
    "update_tracking",
)

STEP_TITLES = (
    "Product Decomposition",
    "Compliance Assessment",
    "Identify Compliance Elements",
    "Generate Compliance Descriptions",
    "Track Compliance Updates",
)

UPDATE_TRACKING_STEP = 4


def validate_step(step: int) -> int:
    """Retorna `step` se for um índice de etapa válido (0..4)."""
    if isinstance(step, bool) or not isinstance(step, int) or not 0 <= step < STEP_COUNT:
        raise ValueError(f"step must be an int in [0, {STEP_COUNT - 1}], got {step!r}")
    return step


class StepState(str, Enum):
    """
    Estado de uma etapa no vetor de status do produto.

    Estados definidos:
        - PENDING: estado inicial; nunca executada ou devolvida para reexecução
        - RUNNING: execução remota em andamento
        - COMPLETED: concluída; libera a etapa seguinte
        - FAILED: falhou; pode ser disparada novamente
        - NEEDS_REVIEW: concluída com pendência de revisão humana;
          bloqueia a etapa seguinte até aprovação

    Invariantes:
        - O valor textual é estável e canônico (persistido pelo store externo)
    """
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    NEEDS_REVIEW = "needs_review"


class ExecutionKey(NamedTuple):
    """Identidade de uma execução em andamento: (produto, etapa)."""
    product_id: str
    step: int

    def __str__(self) -> str:
        return f"{self.product_id}#step{self.step}"


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Desfecho imutável de uma chamada à capacidade remota de execução.

    Campos:
        - status: success | failure
        - payload: resultado opaco da etapa (para a etapa 4, um dict com
          `compliance_updates`)
        - needs_review: quando True e status == success, a etapa termina em
          NEEDS_REVIEW em vez de COMPLETED
        - error: mensagem textual da falha, quando houver
    """
    status: ExecutionStatus
    payload: Any = None
    needs_review: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    @classmethod
    def success(cls, payload: Any = None, *, needs_review: bool = False) -> "ExecutionOutcome":
        return cls(status=ExecutionStatus.SUCCESS, payload=payload, needs_review=needs_review)

    @classmethod
    def failure(cls, error: str, payload: Any = None) -> "ExecutionOutcome":
        return cls(status=ExecutionStatus.FAILURE, payload=payload, error=error)


@dataclass
class Product:
    """
    Visão do produto restrita aos campos de status.

    O produto pertence ao sistema externo; o core só lê e escreve
    `statuses` e `results`. `results[i]` é o payload opaco da etapa i;
    apenas o da etapa 4 é interpretado (lista `compliance_updates`).
    """
    id: str
    statuses: "StepStatusVector"
    name: str = ""
    results: List[Any] = field(default_factory=lambda: [None] * STEP_COUNT)
    meta: Dict[str, Any] = field(default_factory=dict)

    def result(self, step: int) -> Any:
        return self.results[validate_step(step)]
