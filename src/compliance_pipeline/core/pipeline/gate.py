# src/compliance_pipeline/core/pipeline/gate.py
"""
Gate de elegibilidade das etapas.

Funções puras sobre um snapshot do vetor de status: não há efeitos
colaterais e o resultado depende apenas do snapshot recebido, então
podem ser chamadas concorrentemente.

Regras:
    - etapa 0: elegível sse status[0] ∈ {pending, failed}
    - etapa i ∈ 1..4: elegível sse status[i-1] == completed
      e status[i] ∈ {pending, failed}
    - needs_review nunca é elegível: precisa ser aprovada (vira completed)
      ou rejeitada de volta para pending/failed

Invariante:
    - can_run(v, i) para i > 0 implica v[i-1] == completed
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

from .status import StepStatusVector
from .types import STEP_COUNT, StepState, validate_step


RUNNABLE_STATES = frozenset({StepState.PENDING, StepState.FAILED})

StatusSnapshot = Union[Iterable[StepState], StepStatusVector]


def _states(statuses: StatusSnapshot) -> List[StepState]:
    states = [StepState(s) for s in statuses]
    if len(states) != STEP_COUNT:
        raise ValueError(f"status vector must have {STEP_COUNT} entries, got {len(states)}")
    return states


def gate_reason(statuses: StatusSnapshot, step: int) -> Optional[str]:
    """
    Explica por que a etapa não é elegível; None quando é.

    O texto é estável e vai para o Audit Log junto da decisão.
    """
    validate_step(step)
    states = _states(statuses)
    current = states[step]

    if step > 0 and states[step - 1] != StepState.COMPLETED:
        return f"predecessor_{states[step - 1].value}"
    if current == StepState.NEEDS_REVIEW:
        return "awaiting_review"
    if current not in RUNNABLE_STATES:
        return f"step_{current.value}"
    return None


def can_run(statuses: StatusSnapshot, step: int) -> bool:
    return gate_reason(statuses, step) is None


def runnable_steps(statuses: StatusSnapshot) -> List[int]:
    states = _states(statuses)
    return [step for step in range(STEP_COUNT) if gate_reason(states, step) is None]


def next_runnable_step(statuses: StatusSnapshot) -> Optional[int]:
    """Primeira etapa elegível, da esquerda para a direita."""
    steps = runnable_steps(statuses)
    return steps[0] if steps else None
