"""
Compliance Pipeline — Canonical Error Structures (v1)

Padrão canônico de erros do core. Erros fazem parte do contrato
operacional: vão para o payload de resultado de etapas que falham, para
os metadados de notificações de erro e para o Audit Log, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import (
    AdmissionDenied,
    CancellationRequested,
    ExecutionFailure,
    InvalidTransition,
    PipelineException,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador
    - decision_required: indica que a etapa aguarda decisão humana
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

INVALID_TRANSITION = "INVALID_TRANSITION"
ADMISSION_DENIED = "ADMISSION_DENIED"
GATE_CLOSED = "GATE_CLOSED"
EXECUTION_FAILURE = "EXECUTION_FAILURE"
EXECUTION_TIMEOUT = "EXECUTION_TIMEOUT"
CANCELLATION_REQUESTED = "CANCELLATION_REQUESTED"

_EXCEPTION_CODES = {
    InvalidTransition: INVALID_TRANSITION,
    AdmissionDenied: ADMISSION_DENIED,
    ExecutionFailure: EXECUTION_FAILURE,
    CancellationRequested: CANCELLATION_REQUESTED,
}


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def gate_closed(
    *,
    product_id: str,
    step: int,
    reason: str,
    hint: str = "Conclua ou aprove a etapa anterior antes de disparar esta etapa.",
) -> ErrorPayload:
    return ErrorPayload(
        type=GATE_CLOSED,
        message="Etapa não está liberada para execução",
        details={"product_id": product_id, "step": step, "reason": reason},
        hint=hint,
        decision_required=False,
    )


def admission_denied(
    *,
    product_id: str,
    step: int,
    hint: str = "Aguarde a execução em andamento terminar ou solicite a parada.",
) -> ErrorPayload:
    return ErrorPayload(
        type=ADMISSION_DENIED,
        message="Etapa já está em execução",
        details={"product_id": product_id, "step": step},
        hint=hint,
        decision_required=False,
    )


def execution_failure(
    *,
    product_id: str,
    step: int,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "A etapa pode ser disparada novamente; nenhum retry automático é aplicado.",
) -> ErrorPayload:
    return ErrorPayload(
        type=EXECUTION_FAILURE,
        message="Falha na execução remota da etapa",
        details={
            "product_id": product_id,
            "step": step,
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
        decision_required=False,
    )


def execution_timeout(
    *,
    product_id: str,
    step: int,
    timeout_seconds: float,
    hint: str = "Aumente engine.execution_timeout_seconds ou dispare a etapa novamente.",
) -> ErrorPayload:
    return ErrorPayload(
        type=EXECUTION_TIMEOUT,
        message="Execução remota excedeu o tempo limite",
        details={"product_id": product_id, "step": step, "timeout_seconds": timeout_seconds},
        hint=hint,
        decision_required=False,
    )


def cancellation_requested(*, product_id: str, step: int) -> ErrorPayload:
    return ErrorPayload(
        type=CANCELLATION_REQUESTED,
        message="Execução interrompida pelo usuário",
        details={"product_id": product_id, "step": step},
        hint=None,
        decision_required=False,
    )


def from_exception(exc: Exception, *, product_id: str, step: int) -> ErrorPayload:
    """Converte exceções em ErrorPayload.

    Regras:
    - PipelineException: já vem com message/details/hint/decision_required;
      o código vem do catálogo (nome da classe para subclasses fora dele).
    - Outras exceções: encapsular como EXECUTION_FAILURE sem expor stack trace.
    """
    if isinstance(exc, PipelineException):
        details = dict(exc.details or {})
        details.setdefault("product_id", product_id)
        details.setdefault("step", step)
        return ErrorPayload(
            type=_EXCEPTION_CODES.get(type(exc), exc.__class__.__name__),
            message=str(exc) or "Erro de execução",
            details=details,
            hint=exc.hint,
            decision_required=bool(exc.decision_required),
        )

    return execution_failure(
        product_id=product_id,
        step=step,
        exc_type=exc.__class__.__name__,
        exc_message=str(exc) or None,
    )
