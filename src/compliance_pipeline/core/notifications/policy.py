# src/compliance_pipeline/core/notifications/policy.py
"""
NotificationPolicy — transforma desfechos em zero ou um evento.

Regras:
    - Diff da etapa 4 sem novos nem alterados → nenhum evento
    - Diff com mudanças → um evento `update_change` com
      `{new_updates_count, changed_updates_count, is_update_change: True}`
    - Conclusão de qualquer etapa (0..4) → evento `success`
    - Falha de qualquer etapa → evento `error` com prioridade alta

A política é pura: só constrói eventos. Quem os entrega ao sink (uma
única vez por avaliação) é o Engine.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from compliance_pipeline.core.pipeline.types import STEP_TITLES, ExecutionOutcome
from compliance_pipeline.core.updates.diff import DiffResult

from .events import NotificationContext, NotificationEvent, NotificationKind, Priority


_DEFAULT_PRIORITIES = {
    NotificationKind.SUCCESS: Priority.MEDIUM,
    NotificationKind.ERROR: Priority.HIGH,
    NotificationKind.UPDATE_CHANGE: Priority.MEDIUM,
}


def _label(ctx: NotificationContext) -> str:
    return ctx.product_name or ctx.product_id


class NotificationPolicy:
    """
    Política de notificação parametrizada pela seção `notifications`.

    Com `notifications.enabled: false` nenhuma decisão produz evento.
    """

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        section = ((config or {}).get("notifications", {}) or {})
        self.enabled = bool(section.get("enabled", True))
        configured = section.get("priorities", {}) or {}
        self.priorities: Dict[NotificationKind, Priority] = {
            kind: Priority(configured.get(kind.value, default.value))
            for kind, default in _DEFAULT_PRIORITIES.items()
        }

    def decide_update_change(self, diff: DiffResult, ctx: NotificationContext) -> Optional[NotificationEvent]:
        if not self.enabled:
            return None
        if diff.new_count == 0 and diff.changed_count == 0:
            return None

        parts = []
        if diff.new_count:
            parts.append(f"{diff.new_count} new")
        if diff.changed_count:
            parts.append(f"{diff.changed_count} changed")

        return NotificationEvent(
            type=NotificationKind.UPDATE_CHANGE,
            title=f"Compliance updates changed: {_label(ctx)}",
            message=f"{' and '.join(parts)} compliance update(s) found for {_label(ctx)}",
            product_id=ctx.product_id,
            product_name=ctx.product_name,
            step=ctx.step,
            priority=self.priorities[NotificationKind.UPDATE_CHANGE],
            metadata={
                "new_updates_count": diff.new_count,
                "changed_updates_count": diff.changed_count,
                "is_update_change": True,
                "affected_keys": sorted(diff.affected_keys),
            },
        )

    def decide_step_outcome(
        self,
        outcome: ExecutionOutcome,
        ctx: NotificationContext,
        *,
        error: Optional[Dict[str, Any]] = None,
    ) -> Optional[NotificationEvent]:
        """
        Evento de conclusão ou falha de etapa, independente do diff.

        Args:
            outcome: Desfecho da execução.
            ctx: Produto e etapa.
            error: ErrorPayload serializado, anexado aos metadados em falhas.
        """
        if not self.enabled:
            return None

        step_title = f"Step {ctx.step} ({STEP_TITLES[ctx.step]})"

        if outcome.ok:
            metadata: Dict[str, Any] = {"needs_review": outcome.needs_review}
            suffix = " and needs review" if outcome.needs_review else ""
            return NotificationEvent(
                type=NotificationKind.SUCCESS,
                title=f"{step_title} completed",
                message=f"{step_title} completed for {_label(ctx)}{suffix}",
                product_id=ctx.product_id,
                product_name=ctx.product_name,
                step=ctx.step,
                priority=self.priorities[NotificationKind.SUCCESS],
                metadata=metadata,
            )

        metadata = {"error": error} if error is not None else {}
        reason = outcome.error or "unknown error"
        return NotificationEvent(
            type=NotificationKind.ERROR,
            title=f"{step_title} failed",
            message=f"{step_title} failed for {_label(ctx)}: {reason}",
            product_id=ctx.product_id,
            product_name=ctx.product_name,
            step=ctx.step,
            priority=self.priorities[NotificationKind.ERROR],
            metadata=metadata,
        )
