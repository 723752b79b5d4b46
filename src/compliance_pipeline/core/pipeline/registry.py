# src/compliance_pipeline/core/pipeline/registry.py
"""
Registro de executores por etapa.

O sistema original expõe um endpoint de execução por etapa
(`execute-step0` … `execute-step4`) e um de parada por etapa. O
`ExecutorRegistry` modela isso: cada etapa recebe exatamente um
executor e o próprio registry satisfaz o protocolo `StepExecutor`,
despachando pela etapa.

Invariantes:
    - Cada etapa possui no máximo um executor registrado
    - Nenhum executor inválido é aceito

Limites explícitos:
    - Não executa nada por conta própria
    - Não interage com a guarda ou com o store
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .executor import StepExecutor
from .types import STEP_COUNT, STEP_NAMES, ExecutionOutcome, validate_step


class DuplicateExecutorError(ValueError):
    """Já existe executor registrado para a etapa."""


class MissingExecutorError(LookupError):
    """Nenhum executor registrado para a etapa disparada."""


@dataclass
class ExecutorRegistry:
    """
    Registro canônico de executores, indexado por etapa (0..4).

    Exemplo:
        registry = ExecutorRegistry()
        registry.register(0, decomposition_client)
        ...
        engine = ComplianceEngine(executor=registry, ...)
    """

    _executors: Dict[int, StepExecutor] = field(default_factory=dict, init=False, repr=False)

    def register(self, step: int, executor: StepExecutor) -> None:
        validate_step(step)
        if not isinstance(executor, StepExecutor):
            raise TypeError("executor must implement execute(product_id, step) and stop(product_id, step)")

        if step in self._executors:
            raise DuplicateExecutorError(f"Duplicate executor for step {step} ({STEP_NAMES[step]})")

        self._executors[step] = executor

    def get(self, step: int) -> StepExecutor:
        validate_step(step)
        if step not in self._executors:
            raise MissingExecutorError(f"No executor registered for step {step} ({STEP_NAMES[step]})")
        return self._executors[step]

    def steps(self) -> List[int]:
        return sorted(self._executors)

    def is_complete(self) -> bool:
        return len(self._executors) == STEP_COUNT

    async def execute(self, product_id: str, step: int) -> ExecutionOutcome:
        return await self.get(step).execute(product_id, step)

    async def stop(self, product_id: str, step: int) -> None:
        await self.get(step).stop(product_id, step)
