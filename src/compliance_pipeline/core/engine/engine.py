# src/compliance_pipeline/core/engine/engine.py
"""
Engine de orquestração do pipeline de conformidade.

Fluxo de um disparo (manual ou agendado):
    1. ExecutionGuard admite (produto, etapa) — check-and-set atômico
    2. Gate avaliado sobre o snapshot mais recente do store, na mesma
       escrita atômica que move a etapa para RUNNING
    3. A capacidade remota é aguardada (outras admissões seguem livres)
    4. O desfecho é gravado no vetor de status; na etapa 4 o payload é
       comparado ao anterior pelo UpdateDiffEngine
    5. A NotificationPolicy decide os eventos, entregues uma vez ao sink
    6. A guarda é liberada em qualquer caminho de saída

Guardrails:
- Falha remota (desfecho `failure`, exceção ou timeout) vira FAILED com
  ErrorPayload estruturado; não propaga como crash.
- Cancelamento do usuário libera a guarda e restaura o estado anterior
  ao disparo; não conta como falha.
- InvalidTransition nunca é silenciado.
"""

from __future__ import annotations

import asyncio
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from compliance_pipeline.core import errors
from compliance_pipeline.core.config import validate_config
from compliance_pipeline.core.exceptions import (
    AdmissionDenied,
    CancellationRequested,
    ExecutionFailure,
    InvalidTransition,
)
from compliance_pipeline.core.notifications import (
    InMemoryNotificationSink,
    NotificationContext,
    NotificationEvent,
    NotificationPolicy,
    NotificationSink,
)
from compliance_pipeline.core.pipeline.context import EngineContext
from compliance_pipeline.core.pipeline.executor import StepExecutor
from compliance_pipeline.core.pipeline.gate import gate_reason, next_runnable_step, runnable_steps
from compliance_pipeline.core.pipeline.guard import ExecutionGuard, InFlight
from compliance_pipeline.core.pipeline.store import StatusStore
from compliance_pipeline.core.pipeline.types import (
    STEP_COUNT,
    UPDATE_TRACKING_STEP,
    ExecutionKey,
    ExecutionOutcome,
    Product,
    StepState,
    validate_step,
)
from compliance_pipeline.core.traceability import (
    ENGINE_STARTED,
    NOTIFICATION_EMITTED,
    RERUN_REQUESTED,
    REVIEW_APPROVED,
    REVIEW_REJECTED,
    STEP_CANCELLED,
    STEP_EXECUTED,
    STEP_RERUN,
    AuditSink,
    create_audit_log,
    record_gate_decision,
    record_transition,
)
from compliance_pipeline.core.traceability.audit import utcnow
from compliance_pipeline.core.updates import DiffResult, UpdateDiffEngine, extract_updates
from compliance_pipeline.version import __version__


_UNSET: Any = object()


class TriggerOutcome(str, Enum):
    COMPLETED = "completed"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DENIED_GATE = "denied_gate"
    DENIED_IN_FLIGHT = "denied_in_flight"


@dataclass(frozen=True)
class TriggerResult:
    """Resultado de um disparo, consumido pela camada de apresentação."""

    product_id: str
    step: int
    outcome: TriggerOutcome
    state: Optional[StepState] = None
    diff: Optional[DiffResult] = None
    error: Optional[Dict[str, Any]] = None
    notifications: Tuple[NotificationEvent, ...] = field(default_factory=tuple)

    @property
    def key(self) -> ExecutionKey:
        return ExecutionKey(self.product_id, self.step)

    @property
    def admitted(self) -> bool:
        return self.outcome not in (TriggerOutcome.DENIED_GATE, TriggerOutcome.DENIED_IN_FLIGHT)

    def raise_for_outcome(self) -> "TriggerResult":
        """Converte desfechos não bem-sucedidos nas exceções tipadas do core."""
        message = (self.error or {}).get("message") or self.outcome.value
        details = dict((self.error or {}).get("details") or {})
        details.setdefault("outcome", self.outcome.value)
        if not self.admitted:
            raise AdmissionDenied(message=message, details=details, hint=(self.error or {}).get("hint"))
        if self.outcome == TriggerOutcome.FAILED:
            raise ExecutionFailure(message=message, details=details, hint=(self.error or {}).get("hint"))
        if self.outcome == TriggerOutcome.CANCELLED:
            raise CancellationRequested(message=message, details=details)
        return self


class ComplianceEngine:
    """
    Engine canônico do pipeline (gate + guarda + execução + diff + política).

    Args:
        store: Store externo dos vetores de status.
        executor: Capacidade remota de execução (ou um ExecutorRegistry).
        ctx: Contexto com configuração efetiva; defaults embarcados se omitido.
        notifier: Sink de notificações; em memória se omitido.
        audit: Sink de auditoria; um AuditLog em memória se omitido.
        guard: Guarda compartilhada (permite vários Engines sobre o mesmo conjunto).
    """

    def __init__(
        self,
        *,
        store: StatusStore,
        executor: StepExecutor,
        ctx: Optional[EngineContext] = None,
        notifier: Optional[NotificationSink] = None,
        audit: Optional[AuditSink] = None,
        guard: Optional[ExecutionGuard] = None,
    ):
        self.ctx: EngineContext = ctx if ctx is not None else EngineContext.from_defaults()
        self.store = store
        self.executor = executor
        self.guard = guard if guard is not None else ExecutionGuard()
        self.notifier: NotificationSink = notifier if notifier is not None else InMemoryNotificationSink()
        self.audit: AuditSink = audit if audit is not None else create_audit_log(
            started_at=self.ctx.created_at,
            version=__version__,
            config_hash=self.ctx.config_hash,
        )
        validate_config(self.ctx.config)
        self.policy = NotificationPolicy(self.ctx.config)
        self.differ = UpdateDiffEngine(self.ctx.config)

        self._audit(ENGINE_STARTED, payload={"version": __version__, "config_hash": self.ctx.config_hash})

    # ------------------------------------------------------------------
    # Rastreabilidade
    # ------------------------------------------------------------------
    def _audit(
        self,
        event_type: str,
        *,
        product_id: Optional[str] = None,
        step: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.ctx.audit_enabled():
            self.audit.record(event_type, ts=utcnow(), product_id=product_id, step=step, payload=payload)

    def _record_gate(self, product_id: str, step: int, *, reason: Optional[str], source: str) -> None:
        if self.ctx.audit_enabled():
            record_gate_decision(
                self.audit,
                product_id=product_id,
                step=step,
                allowed=reason is None,
                reason=reason,
                source=source,
            )

    def _record_transition(
        self,
        product_id: str,
        step: int,
        from_state: StepState,
        to_state: StepState,
        *,
        cause: str,
        **extra: Any,
    ) -> None:
        if from_state == to_state:
            return
        self.ctx.log(
            product_id=product_id,
            step=step,
            level="INFO",
            message=f"{from_state.value} -> {to_state.value}",
            cause=cause,
        )
        if self.ctx.audit_enabled():
            record_transition(
                self.audit,
                product_id=product_id,
                step=step,
                from_state=from_state.value,
                to_state=to_state.value,
                cause=cause,
                extra=extra or None,
            )

    def _emit(self, event: Optional[NotificationEvent], emitted: List[NotificationEvent]) -> None:
        """Entrega o evento ao sink uma única vez; sem retry."""
        if event is None:
            return
        key = ExecutionKey(event.product_id, event.step)
        try:
            self.notifier.emit(event)
        except Exception as exc:
            # entrega é responsabilidade do sink; o status já foi gravado
            self.ctx.log(
                product_id=event.product_id,
                step=event.step,
                level="ERROR",
                message=f"notification sink failed: {exc}",
                notification_type=event.type.value,
            )
            self.ctx.add_warning(key=key, message=f"notification not delivered: {event.type.value}")
            return
        emitted.append(event)
        self._audit(
            NOTIFICATION_EMITTED,
            product_id=event.product_id,
            step=event.step,
            payload={"type": event.type.value, "priority": event.priority.value},
        )

    # ------------------------------------------------------------------
    # Consultas (UI)
    # ------------------------------------------------------------------
    def status(self, product_id: str) -> Tuple[StepState, ...]:
        return self.store.load(product_id).statuses.snapshot()

    def runnable_steps(self, product_id: str) -> List[int]:
        return runnable_steps(self.store.load(product_id).statuses)

    def is_running(self, product_id: str, step: int) -> bool:
        return self.guard.is_in_flight(ExecutionKey(product_id, validate_step(step)))

    # ------------------------------------------------------------------
    # Disparo
    # ------------------------------------------------------------------
    async def trigger(self, product_id: str, step: int, *, source: str = "manual") -> TriggerResult:
        """
        Dispara uma etapa.

        Returns:
            TriggerResult: nunca levanta por falha remota, cancelamento ou
            admissão negada; use `raise_for_outcome()` para o estilo exceção.

        Raises:
            InvalidTransition: violação do invariante de desbloqueio.
            ProductNotFound: produto desconhecido pelo store.
        """
        key = ExecutionKey(product_id, validate_step(step))

        handle = self.guard.acquire(key)
        if handle is None:
            self._record_gate(product_id, step, reason="in_flight", source=source)
            self.ctx.log(product_id=product_id, step=step, level="INFO", message="admission denied: already running")
            return TriggerResult(
                product_id=product_id,
                step=step,
                outcome=TriggerOutcome.DENIED_IN_FLIGHT,
                state=StepState.RUNNING,
                error=errors.admission_denied(product_id=product_id, step=step).to_dict(),
            )

        try:
            return await self._run_admitted(handle, source=source)
        finally:
            self.guard.settle(handle)

    async def advance(self, product_id: str, *, source: str = "scheduled") -> Optional[TriggerResult]:
        """Dispara a primeira etapa elegível do produto; None se nenhuma estiver."""
        step = next_runnable_step(self.store.load(product_id).statuses)
        if step is None:
            self.ctx.log(product_id=product_id, step=None, level="DEBUG", message="no runnable step")
            return None
        return await self.trigger(product_id, step, source=source)

    async def _run_admitted(self, handle: InFlight, *, source: str) -> TriggerResult:
        product_id, step = handle.key
        decision: Dict[str, Any] = {}

        def begin(p: Product) -> None:
            reason = gate_reason(p.statuses, step)
            decision["reason"] = reason
            decision["pre_state"] = p.statuses.get(step)
            decision["rerun"] = p.statuses.get(step) == StepState.FAILED or p.results[step] is not None
            if reason is None:
                p.statuses.set(step, StepState.RUNNING)

        product = self.store.update(product_id, begin)
        reason = decision["reason"]
        pre_state: StepState = decision["pre_state"]
        self._record_gate(product_id, step, reason=reason, source=source)

        if reason is not None:
            return TriggerResult(
                product_id=product_id,
                step=step,
                outcome=TriggerOutcome.DENIED_GATE,
                state=pre_state,
                error=errors.gate_closed(product_id=product_id, step=step, reason=reason).to_dict(),
            )

        handle.meta["pre_state"] = pre_state
        self._audit(
            STEP_RERUN if decision["rerun"] else STEP_EXECUTED,
            product_id=product_id,
            step=step,
            payload={"source": source, "previous_state": pre_state.value},
        )
        self._record_transition(product_id, step, pre_state, StepState.RUNNING, cause="trigger", source=source)

        notify_ctx = NotificationContext(product_id=product_id, step=step, product_name=product.name)

        if handle.cancelled:
            return self._cancelled_result(handle)

        try:
            outcome = await self._execute(handle)
            if not isinstance(outcome, ExecutionOutcome):
                raise TypeError(
                    f"executor must return ExecutionOutcome, got {type(outcome).__name__}"
                )
        except asyncio.CancelledError:
            if handle.cancelled:
                return self._cancelled_result(handle)
            # a tarefa do chamador foi cancelada: restaura e propaga
            self._restore(product_id, step, pre_state, cause="task_cancelled")
            raise
        except asyncio.TimeoutError:
            timeout = self.ctx.execution_timeout()
            await self._stop_quietly(product_id, step)
            error = errors.execution_timeout(product_id=product_id, step=step, timeout_seconds=timeout)
            return self._finish_failure(handle, ExecutionOutcome.failure(error.message), error.to_dict(), notify_ctx)
        except Exception as exc:
            error = errors.from_exception(exc, product_id=product_id, step=step)
            outcome = ExecutionOutcome.failure(str(exc) or exc.__class__.__name__)
            return self._finish_failure(handle, outcome, error.to_dict(), notify_ctx)

        if not outcome.ok:
            error = errors.execution_failure(product_id=product_id, step=step, exc_message=outcome.error)
            return self._finish_failure(handle, outcome, error.to_dict(), notify_ctx)

        return self._finish_success(handle, outcome, notify_ctx)

    async def _execute(self, handle: InFlight) -> ExecutionOutcome:
        product_id, step = handle.key
        task = asyncio.ensure_future(self.executor.execute(product_id, step))
        handle.on_abort(task.cancel)

        timeout = self.ctx.execution_timeout()
        if timeout is not None:
            return await asyncio.wait_for(task, timeout)
        return await task

    # ------------------------------------------------------------------
    # Desfechos
    # ------------------------------------------------------------------
    def _finish_success(
        self,
        handle: InFlight,
        outcome: ExecutionOutcome,
        notify_ctx: NotificationContext,
    ) -> TriggerResult:
        product_id, step = handle.key
        target = StepState.NEEDS_REVIEW if outcome.needs_review else StepState.COMPLETED
        captured: Dict[str, Any] = {}

        def finish(p: Product) -> None:
            if handle.cancelled:
                return
            captured["previous_payload"] = p.results[step]
            p.statuses.set(step, target)
            p.results[step] = outcome.payload
            p.meta.get("last_errors", {}).pop(str(step), None)
            captured["written"] = True

        self.store.update(product_id, finish)
        if not captured.get("written"):
            return self._cancelled_result(handle)

        self._record_transition(product_id, step, StepState.RUNNING, target, cause="execution_succeeded")

        emitted: List[NotificationEvent] = []
        self._emit(self.policy.decide_step_outcome(outcome, notify_ctx), emitted)

        diff: Optional[DiffResult] = None
        if step == UPDATE_TRACKING_STEP:
            diff = self.differ.diff(
                extract_updates(captured["previous_payload"]),
                extract_updates(outcome.payload),
            )
            self.ctx.log(
                product_id=product_id,
                step=step,
                level="INFO",
                message="compliance updates compared",
                **diff.to_dict(),
            )
            self._emit(self.policy.decide_update_change(diff, notify_ctx), emitted)

        return TriggerResult(
            product_id=product_id,
            step=step,
            outcome=TriggerOutcome.NEEDS_REVIEW if outcome.needs_review else TriggerOutcome.COMPLETED,
            state=target,
            diff=diff,
            notifications=tuple(emitted),
        )

    def _finish_failure(
        self,
        handle: InFlight,
        outcome: ExecutionOutcome,
        error: Dict[str, Any],
        notify_ctx: NotificationContext,
    ) -> TriggerResult:
        product_id, step = handle.key
        captured: Dict[str, Any] = {}

        def fail(p: Product) -> None:
            if handle.cancelled:
                return
            p.statuses.set(step, StepState.FAILED)
            p.meta.setdefault("last_errors", {})[str(step)] = error
            captured["written"] = True

        self.store.update(product_id, fail)
        if not captured.get("written"):
            return self._cancelled_result(handle)

        self.ctx.log(
            product_id=product_id,
            step=step,
            level="ERROR",
            message=error.get("message", "execution failed"),
            error_type=error.get("type"),
        )
        self._record_transition(
            product_id, step, StepState.RUNNING, StepState.FAILED, cause="execution_failed", error_type=error.get("type")
        )

        emitted: List[NotificationEvent] = []
        self._emit(self.policy.decide_step_outcome(outcome, notify_ctx, error=error), emitted)

        return TriggerResult(
            product_id=product_id,
            step=step,
            outcome=TriggerOutcome.FAILED,
            state=StepState.FAILED,
            error=error,
            notifications=tuple(emitted),
        )

    def _cancelled_result(self, handle: InFlight) -> TriggerResult:
        product_id, step = handle.key
        pre_state = handle.meta.get("pre_state")
        if pre_state is not None and not handle.meta.get("restored"):
            # cancel() chegou antes de o estado pré-execução ser conhecido
            self._restore(product_id, step, pre_state, cause="cancelled")
            handle.meta["restored"] = True
        return TriggerResult(
            product_id=product_id,
            step=step,
            outcome=TriggerOutcome.CANCELLED,
            state=self.store.load(product_id).statuses.get(step),
            error=errors.cancellation_requested(product_id=product_id, step=step).to_dict(),
        )

    def _restore(self, product_id: str, step: int, pre_state: StepState, *, cause: str) -> None:
        restored: Dict[str, bool] = {}

        def restore(p: Product) -> None:
            if p.statuses.get(step) == StepState.RUNNING:
                p.statuses.set(step, pre_state)
                restored["done"] = True

        self.store.update(product_id, restore)
        if restored:
            self._record_transition(product_id, step, StepState.RUNNING, pre_state, cause=cause)

    # ------------------------------------------------------------------
    # Cancelamento
    # ------------------------------------------------------------------
    async def cancel(self, product_id: str, step: int) -> bool:
        """
        Interrompe a execução em andamento de (produto, etapa).

        Libera a guarda imediatamente, restaura o estado anterior ao disparo
        e pede `stop` à capacidade remota. Seguro mesmo se a execução já
        terminou; sobre uma chave fora de execução é no-op (retorna False).
        """
        key = ExecutionKey(product_id, validate_step(step))
        handle = self.guard.cancel(key)
        if handle is None:
            return False

        pre_state = handle.meta.get("pre_state")
        if pre_state is not None:
            self._restore(product_id, step, pre_state, cause="cancelled")
            handle.meta["restored"] = True

        self._audit(STEP_CANCELLED, product_id=product_id, step=step, payload={"restored_to": getattr(pre_state, "value", None)})
        await self._stop_quietly(product_id, step)
        return True

    async def _stop_quietly(self, product_id: str, step: int) -> None:
        try:
            await self.executor.stop(product_id, step)
        except Exception as exc:
            # a guarda já foi liberada; a falha do stop remoto fica registrada
            self.ctx.log(product_id=product_id, step=step, level="WARNING", message=f"remote stop failed: {exc}")
            self.ctx.add_warning(key=ExecutionKey(product_id, step), message=f"remote stop failed: {exc}")

    # ------------------------------------------------------------------
    # Reexecução e revisão (ações externas)
    # ------------------------------------------------------------------
    def request_rerun(self, product_id: str, step: int) -> List[int]:
        """
        Devolve a etapa e todas as posteriores para PENDING.

        Necessário para reexecutar etapas COMPLETED/NEEDS_REVIEW (o gate só
        admite pending/failed). Payloads de resultado são preservados, de
        modo que o diff da etapa 4 continue comparando com o último run.
        Também recupera etapas presas em RUNNING sem execução em andamento
        (ex.: após reinício do processo).

        Returns:
            List[int]: etapas efetivamente alteradas.

        Raises:
            AdmissionDenied: se alguma etapa afetada estiver em execução.
        """
        validate_step(step)
        changed: List[Tuple[int, StepState]] = []

        with ExitStack() as stack:
            for s in range(step, STEP_COUNT):
                stack.enter_context(self.guard.hold(ExecutionKey(product_id, s)))

            def reset(p: Product) -> None:
                changed.clear()
                for s in range(STEP_COUNT - 1, step - 1, -1):
                    current = p.statuses.get(s)
                    if current != StepState.PENDING:
                        p.statuses.set(s, StepState.PENDING)
                        changed.append((s, current))

            self.store.update(product_id, reset)

        self._audit(
            RERUN_REQUESTED,
            product_id=product_id,
            step=step,
            payload={"reset_steps": sorted(s for s, _ in changed)},
        )
        for s, previous in sorted(changed):
            self._record_transition(product_id, s, previous, StepState.PENDING, cause="rerun_requested")
        return sorted(s for s, _ in changed)

    def approve(self, product_id: str, step: int, *, payload: Any = _UNSET, reviewer: Optional[str] = None) -> None:
        """
        Ação de revisão: NEEDS_REVIEW → COMPLETED, opcionalmente substituindo
        o payload de resultado pela versão editada pelo revisor.

        Raises:
            InvalidTransition: se a etapa não estiver em NEEDS_REVIEW.
        """
        validate_step(step)

        def promote(p: Product) -> None:
            current = p.statuses.get(step)
            if current != StepState.NEEDS_REVIEW:
                raise InvalidTransition(
                    message=f"Etapa {step} não está aguardando revisão (estado '{current.value}')",
                    details={"product_id": product_id, "step": step, "state": current.value},
                )
            p.statuses.set(step, StepState.COMPLETED)
            if payload is not _UNSET:
                p.results[step] = payload

        self.store.update(product_id, promote)
        self._audit(
            REVIEW_APPROVED,
            product_id=product_id,
            step=step,
            payload={"reviewer": reviewer, "payload_replaced": payload is not _UNSET},
        )
        self._record_transition(product_id, step, StepState.NEEDS_REVIEW, StepState.COMPLETED, cause="review_approved")

    def reject(
        self,
        product_id: str,
        step: int,
        *,
        to: StepState = StepState.PENDING,
        reviewer: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        """
        Ação de revisão: NEEDS_REVIEW → PENDING (ou FAILED).

        A etapa volta a ser elegível e precisa ser disparada explicitamente.

        Raises:
            ValueError: se `to` não for PENDING nem FAILED.
            InvalidTransition: se a etapa não estiver em NEEDS_REVIEW.
        """
        validate_step(step)
        to = StepState(to)
        if to not in (StepState.PENDING, StepState.FAILED):
            raise ValueError(f"reject target must be pending or failed, got {to.value!r}")

        def demote(p: Product) -> None:
            current = p.statuses.get(step)
            if current != StepState.NEEDS_REVIEW:
                raise InvalidTransition(
                    message=f"Etapa {step} não está aguardando revisão (estado '{current.value}')",
                    details={"product_id": product_id, "step": step, "state": current.value},
                )
            p.statuses.set(step, to)

        self.store.update(product_id, demote)
        self._audit(
            REVIEW_REJECTED,
            product_id=product_id,
            step=step,
            payload={"reviewer": reviewer, "reason": reason, "to": to.value},
        )
        self._record_transition(product_id, step, StepState.NEEDS_REVIEW, to, cause="review_rejected")
