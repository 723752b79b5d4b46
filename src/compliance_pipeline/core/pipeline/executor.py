# src/compliance_pipeline/core/pipeline/executor.py
"""
Contrato da capacidade remota de execução de etapas.

A execução de cada etapa (decomposição, avaliação, ...) acontece fora do
core, tipicamente por uma chamada HTTP de longa duração. O core apenas
aguarda o desfecho e pode pedir a parada.

Princípios fundamentais:
    - Executores não conhecem o Engine, o gate nem a guarda
    - Conformidade é garantida por duck typing (@runtime_checkable)
    - Falhas podem ser sinalizadas por `ExecutionOutcome.failure(...)` ou
      por exceção; o Engine trata ambas como ExecutionFailure

Limites explícitos:
    - Não define política de retry da chamada remota
    - Não escreve no vetor de status
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .types import ExecutionOutcome


@runtime_checkable
class StepExecutor(Protocol):
    """
    Capacidade remota de execução.

    Invariantes esperados:
        - `execute` pode ser longo; o chamador apenas o aguarda
        - `stop` é idempotente e seguro mesmo se a execução já terminou
    """

    async def execute(self, product_id: str, step: int) -> ExecutionOutcome:
        """Executa a etapa e devolve seu desfecho."""
        ...

    async def stop(self, product_id: str, step: int) -> None:
        """Solicita a interrupção de uma execução em andamento."""
        ...
