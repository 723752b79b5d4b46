# src/compliance_pipeline/core/pipeline/status.py
"""
StepStatusVector — vetor de status de cinco posições de um produto.

É a fonte de verdade em que leitores confiam: a única restrição imposta
aqui é a de desbloqueio da esquerda para a direita. Elegibilidade para
disparo (pending/failed, needs_review bloqueado) é responsabilidade do
gate no momento da admissão.

Invariantes:
    - Sempre existem exatamente STEP_COUNT posições
    - Nenhuma etapa i > 0 passa a RUNNING ou COMPLETED sem a etapa i-1 COMPLETED

Limites explícitos:
    - Não decide se uma etapa pode ser disparada
    - Não persiste o vetor (ver `store`)
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from compliance_pipeline.core.exceptions import InvalidTransition

from .types import STEP_COUNT, STEP_NAMES, StepState, validate_step


_UNLOCKING = frozenset({StepState.RUNNING, StepState.COMPLETED})


class StepStatusVector:
    """
    Vetor mutável de `StepState`, com mutação restrita a `set`.

    Exemplo:
        >>> v = StepStatusVector()
        >>> v.set(0, StepState.RUNNING)
        >>> v.set(1, StepState.RUNNING)
        Traceback (most recent call last):
        ...
        compliance_pipeline.core.exceptions.InvalidTransition: ...
    """

    __slots__ = ("_states",)

    def __init__(self, states: Optional[Iterable[Union[StepState, str]]] = None):
        if states is None:
            self._states: List[StepState] = [StepState.PENDING] * STEP_COUNT
            return

        parsed = [StepState(s) for s in states]
        if len(parsed) != STEP_COUNT:
            raise ValueError(f"status vector must have {STEP_COUNT} entries, got {len(parsed)}")

        for step in range(1, STEP_COUNT):
            if parsed[step] in _UNLOCKING and parsed[step - 1] != StepState.COMPLETED:
                raise InvalidTransition(
                    message=f"Vetor inconsistente: etapa {step} em '{parsed[step].value}' "
                    f"com etapa {step - 1} em '{parsed[step - 1].value}'",
                    details={"states": [s.value for s in parsed], "step": step},
                )
        self._states = parsed

    def get(self, step: int) -> StepState:
        return self._states[validate_step(step)]

    def set(self, step: int, state: Union[StepState, str]) -> None:
        """
        Define o estado de uma etapa.

        Raises:
            ValueError: Se `step` ou `state` forem inválidos.
            InvalidTransition: Se a etapa for movida para RUNNING ou COMPLETED
                com a predecessora diferente de COMPLETED (etapa 0 isenta).
        """
        validate_step(step)
        state = StepState(state)

        if step > 0 and state in _UNLOCKING and self._states[step - 1] != StepState.COMPLETED:
            previous = self._states[step - 1]
            raise InvalidTransition(
                message=f"Etapa {step} ({STEP_NAMES[step]}) não pode ir para '{state.value}': "
                f"etapa {step - 1} está '{previous.value}'",
                details={
                    "step": step,
                    "from": self._states[step].value,
                    "to": state.value,
                    "predecessor_state": previous.value,
                },
                hint="Conclua ou aprove a etapa anterior antes de destravar esta.",
            )

        self._states[step] = state

    def snapshot(self) -> Tuple[StepState, ...]:
        return tuple(self._states)

    def to_list(self) -> List[str]:
        return [s.value for s in self._states]

    @classmethod
    def from_list(cls, values: Sequence[Union[StepState, str]]) -> "StepStatusVector":
        return cls(values)

    def copy(self) -> "StepStatusVector":
        clone = StepStatusVector()
        clone._states = list(self._states)
        return clone

    def __getitem__(self, step: int) -> StepState:
        return self.get(step)

    def __iter__(self) -> Iterator[StepState]:
        return iter(self._states)

    def __len__(self) -> int:
        return STEP_COUNT

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StepStatusVector):
            return self._states == other._states
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"StepStatusVector({self.to_list()!r})"
