# tests/core/engine/test_engine_cancel.py
"""
Testes de cancelamento e timeout no ComplianceEngine.

Invariante de vivacidade: um produto nunca fica permanentemente "em
execução" por causa de um caminho de saída não tratado. A guarda é
liberada no sucesso, na falha, no cancelamento do usuário, no timeout e
no cancelamento da tarefa do chamador.

Os testes asseguram que:
- `cancel` libera a guarda imediatamente e restaura o estado anterior
  ao disparo (`pending` ou `failed`), nunca deixando `running`
- a capacidade remota recebe `stop`
- cancelamento não conta como falha nem gera notificação de erro
- um resultado tardio, após o cancelamento, é descartado
- timeout configurado vira `failed` com EXECUTION_TIMEOUT
"""

import asyncio

import pytest

try:
    from compliance_pipeline.core.engine import TriggerOutcome
    from compliance_pipeline.core.exceptions import CancellationRequested
    from compliance_pipeline.core.notifications import NotificationKind
    from compliance_pipeline.core.pipeline.types import ExecutionOutcome, StepState
    from compliance_pipeline.core.traceability import STEP_CANCELLED
except Exception as e:  # noqa: BLE001
    TriggerOutcome = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None

PID = "prod-1"


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing engine cancellation API. Implement:\n"
            "- src/compliance_pipeline/core/engine/engine.py (ComplianceEngine.cancel)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_cancel_releases_lock_and_restores_pending(make_engine, executor, sink):
    """
    Verifica o cancelamento de uma execução em andamento.

    Invariantes:
        - A guarda é liberada antes mesmo de a execução remota encerrar
        - O status volta ao valor pré-disparo
        - A capacidade remota recebe exatamente um `stop`
    """
    _require_imports()
    engine = make_engine()
    executor.hold(0)

    async def scenario():
        task = asyncio.ensure_future(engine.trigger(PID, 0))
        await executor.wait_started(0)

        assert await engine.cancel(PID, 0) is True
        assert engine.is_running(PID, 0) is False
        assert engine.status(PID)[0] == StepState.PENDING
        return await task

    result = asyncio.run(scenario())

    assert result.outcome == TriggerOutcome.CANCELLED
    assert result.state == StepState.PENDING
    assert result.error["type"] == "CANCELLATION_REQUESTED"
    assert executor.stops == [(PID, 0)]
    assert sink.of_kind(NotificationKind.ERROR) == []
    assert len(engine.audit.events_of(STEP_CANCELLED)) == 1

    with pytest.raises(CancellationRequested):
        result.raise_for_outcome()


def test_cancel_then_retrigger_succeeds(make_engine, executor):
    _require_imports()
    engine = make_engine()
    executor.hold(0)

    async def scenario():
        task = asyncio.ensure_future(engine.trigger(PID, 0))
        await executor.wait_started(0)
        await engine.cancel(PID, 0)
        await task

        executor.release(0)
        return await engine.trigger(PID, 0)

    assert asyncio.run(scenario()).outcome == TriggerOutcome.COMPLETED
    assert engine.status(PID)[0] == StepState.COMPLETED


def test_cancel_restores_failed_pre_state(make_engine, executor, store):
    _require_imports()
    engine = make_engine()
    store.update(PID, lambda p: p.statuses.set(0, StepState.FAILED))
    executor.hold(0)

    async def scenario():
        task = asyncio.ensure_future(engine.trigger(PID, 0))
        await executor.wait_started(0)
        await engine.cancel(PID, 0)
        return await task

    result = asyncio.run(scenario())
    assert result.state == StepState.FAILED
    assert engine.status(PID)[0] == StepState.FAILED


def test_cancel_when_not_running_is_noop(make_engine, executor):
    _require_imports()
    engine = make_engine()

    assert asyncio.run(engine.cancel(PID, 0)) is False
    assert executor.stops == []


def test_late_result_after_cancel_is_discarded(store, sink, make_engine, FakeExecutorType):
    _require_imports()

    class _StubbornExecutor(FakeExecutorType):
        """Capacidade remota que ignora o abort e devolve um resultado tardio."""

        async def execute(self, product_id, step):
            self.calls.append((product_id, step))
            self._event(self._started, step).set()
            try:
                await self._event(self._release, step).wait()
            except asyncio.CancelledError:
                pass
            return ExecutionOutcome.success({"late": True})

    stubborn = _StubbornExecutor()
    engine = make_engine(executor=stubborn)

    async def scenario():
        task = asyncio.ensure_future(engine.trigger(PID, 0))
        await stubborn.wait_started(0)
        await engine.cancel(PID, 0)
        return await task

    result = asyncio.run(scenario())

    assert result.outcome == TriggerOutcome.CANCELLED
    assert engine.status(PID)[0] == StepState.PENDING
    assert store.load(PID).result(0) is None
    assert sink.events == []


def test_remote_stop_failure_is_logged_not_raised(make_engine, executor, engine_ctx):
    _require_imports()
    engine = make_engine()
    executor.hold(0)
    executor.stop_error = RuntimeError("stop endpoint unreachable")

    async def scenario():
        task = asyncio.ensure_future(engine.trigger(PID, 0))
        await executor.wait_started(0)
        cancelled = await engine.cancel(PID, 0)
        await task
        return cancelled

    assert asyncio.run(scenario()) is True
    assert engine.is_running(PID, 0) is False
    assert engine_ctx.warnings[(PID, 0)] == ["remote stop failed: stop endpoint unreachable"]
    assert any(ev["level"] == "WARNING" for ev in engine_ctx.events)


def test_timeout_sets_failed_and_stops_remote(make_engine, executor, engine_config, sink):
    """
    Com `engine.execution_timeout_seconds` configurado, uma execução que
    não responde a tempo vira `failed` com EXECUTION_TIMEOUT, a capacidade
    remota recebe `stop` e a guarda é liberada.
    """
    _require_imports()
    engine_config["engine"]["execution_timeout_seconds"] = 0.05
    engine = make_engine()
    executor.hold(0)

    result = asyncio.run(engine.trigger(PID, 0))

    assert result.outcome == TriggerOutcome.FAILED
    assert result.error["type"] == "EXECUTION_TIMEOUT"
    assert result.error["details"]["timeout_seconds"] == 0.05
    assert executor.stops == [(PID, 0)]
    assert engine.status(PID)[0] == StepState.FAILED
    assert engine.is_running(PID, 0) is False
    assert sink.last().type == NotificationKind.ERROR


def test_caller_task_cancellation_restores_and_propagates(make_engine, executor):
    """
    Se a tarefa que aguarda o disparo é cancelada (ex.: desligamento),
    o estado é restaurado, a guarda liberada e o cancelamento propaga.
    """
    _require_imports()
    engine = make_engine()
    executor.hold(0)

    async def scenario():
        task = asyncio.ensure_future(engine.trigger(PID, 0))
        await executor.wait_started(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert engine.status(PID)[0] == StepState.PENDING
    assert engine.is_running(PID, 0) is False
