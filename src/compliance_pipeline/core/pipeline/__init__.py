# src/compliance_pipeline/core/pipeline/__init__.py
"""
# Pipeline Core — Compliance Pipeline

Contratos e estruturas fundamentais do pipeline fixo de cinco etapas.

## Componentes

- **types**: `StepState`, `ExecutionKey`, `ExecutionOutcome`, `Product`
- **status**: `StepStatusVector` (única restrição: desbloqueio da esquerda
  para a direita)
- **gate**: `can_run`, `gate_reason`, `runnable_steps`, `next_runnable_step`
- **guard**: `ExecutionGuard` (uma execução por (produto, etapa))
- **executor**: `StepExecutor` (Protocol da capacidade remota)
- **registry**: `ExecutorRegistry` (um executor por etapa)
- **store**: `StatusStore` (Protocol) e `InMemoryStatusStore`
- **context**: `EngineContext` (configuração e log estruturado)

## Invariantes

- Nenhuma etapa i > 0 fica `running`/`completed` sem i-1 `completed`
- No máximo uma execução em andamento por `ExecutionKey`
- O gate é puro: depende apenas do snapshot recebido
"""

from .context import EngineContext
from .executor import StepExecutor
from .gate import can_run, gate_reason, next_runnable_step, runnable_steps
from .guard import ExecutionGuard, InFlight
from .registry import DuplicateExecutorError, ExecutorRegistry, MissingExecutorError
from .status import StepStatusVector
from .store import InMemoryStatusStore, ProductNotFound, StatusStore
from .types import (
    STEP_COUNT,
    STEP_NAMES,
    STEP_TITLES,
    UPDATE_TRACKING_STEP,
    ExecutionKey,
    ExecutionOutcome,
    ExecutionStatus,
    Product,
    StepState,
)

__all__ = [
    "EngineContext",
    "StepExecutor",
    "can_run",
    "gate_reason",
    "next_runnable_step",
    "runnable_steps",
    "ExecutionGuard",
    "InFlight",
    "DuplicateExecutorError",
    "ExecutorRegistry",
    "MissingExecutorError",
    "StepStatusVector",
    "InMemoryStatusStore",
    "ProductNotFound",
    "StatusStore",
    "STEP_COUNT",
    "STEP_NAMES",
    "STEP_TITLES",
    "UPDATE_TRACKING_STEP",
    "ExecutionKey",
    "ExecutionOutcome",
    "ExecutionStatus",
    "Product",
    "StepState",
]
