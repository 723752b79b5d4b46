# tests/conftest.py
"""
Fixtures compartilhados para testes do Compliance Pipeline.

Este módulo define fixtures reutilizáveis que fornecem:
- configuração efetiva determinística (defaults embarcados)
- contexto do Engine com timestamp fixo (EngineContext)
- store em memória com um produto de teste
- sink de notificações em memória
- uma capacidade remota de execução falsa e controlável

O objetivo destas fixtures é permitir testes do core (config, pipeline,
updates, notifications, engine e traceability) sem depender de:
- rede ou serviços remotos
- variáveis de ambiente
- UI

Decisões arquiteturais:
    - A capacidade remota falsa usa duck typing (satisfaz `StepExecutor`
      sem herança)
    - Execuções podem ser "seguradas" até liberação explícita, para
      testar cancelamento, duplicidade e timeout sem sleeps arbitrários
    - Imports do core são realizados de forma lazy para melhorar a
      clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture realiza I/O
    - Nenhuma fixture contém lógica de domínio

Limites explícitos:
    - Não substituir testes de integração com serviços reais
"""

import asyncio
from datetime import datetime, timezone

import pytest


PRODUCT_ID = "prod-1"
PRODUCT_NAME = "Smart Thermostat"


class FakeExecutor:
    """
    Capacidade remota de execução controlada pelo teste.

    - `outcomes[step]`: ExecutionOutcome, exceção (levantada) ou callable
      `(product_id, step) -> ExecutionOutcome`; default é sucesso
    - `hold(step)`: a próxima execução da etapa aguarda `release(step)`
    - `calls` / `stops`: chamadas recebidas, na ordem
    """

    def __init__(self):
        self.outcomes = {}
        self.calls = []
        self.stops = []
        self.stop_error = None
        self._held = set()
        self._release = {}
        self._started = {}

    def _event(self, table, step):
        if step not in table:
            table[step] = asyncio.Event()
        return table[step]

    def hold(self, step):
        self._held.add(step)

    def release(self, step):
        self._event(self._release, step).set()

    async def wait_started(self, step):
        await asyncio.wait_for(self._event(self._started, step).wait(), 1.0)

    async def execute(self, product_id, step):
        from compliance_pipeline.core.pipeline.types import ExecutionOutcome

        self.calls.append((product_id, step))
        self._event(self._started, step).set()
        if step in self._held:
            await self._event(self._release, step).wait()

        outcome = self.outcomes.get(step)
        if outcome is None:
            return ExecutionOutcome.success({"step": step})
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(product_id, step)
        return outcome

    async def stop(self, product_id, step):
        self.stops.append((product_id, step))
        if self.stop_error is not None:
            raise self.stop_error


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine_config() -> dict:
    """
    Configuração efetiva resolvida a partir dos defaults embarcados.

    Returns:
        dict: cópia independente por teste (pode ser alterada livremente).
    """
    from compliance_pipeline.core.config import load_default_config

    return load_default_config()


@pytest.fixture
def engine_ctx(engine_config, fixed_now):
    """
    EngineContext determinístico para testes.

    Decisões arquiteturais:
        - `created_at` é fixo para garantir determinismo do Audit Log
        - A configuração é injetada explicitamente via fixture
    """
    from compliance_pipeline.core.pipeline.context import EngineContext

    return EngineContext(config=engine_config, created_at=fixed_now, meta={"source": "pytest"})


@pytest.fixture
def store():
    """Store em memória com um único produto, todas as etapas `pending`."""
    from compliance_pipeline.core.pipeline.store import InMemoryStatusStore

    s = InMemoryStatusStore()
    s.create(PRODUCT_ID, name=PRODUCT_NAME)
    return s


@pytest.fixture
def sink():
    from compliance_pipeline.core.notifications import InMemoryNotificationSink

    return InMemoryNotificationSink()


@pytest.fixture
def FakeExecutorType():
    """Classe (não instância) do fake, para testes que precisam especializá-lo."""
    return FakeExecutor


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def make_engine(store, executor, sink, engine_ctx):
    """
    Factory de ComplianceEngine sobre as fixtures compartilhadas.

    Aceita overrides nomeados (ex.: `ctx=...`, `guard=...`) para testes
    que precisam de configuração diferente ou guarda compartilhada.
    """
    from compliance_pipeline.core.engine import ComplianceEngine

    def _make(**overrides):
        kwargs = {"store": store, "executor": executor, "notifier": sink, "ctx": engine_ctx}
        kwargs.update(overrides)
        return ComplianceEngine(**kwargs)

    return _make
