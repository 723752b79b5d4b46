"""
Compliance Pipeline — Canonical Exceptions (v1)

Exceções tipadas internas do core.

Objetivo:
- Distinguir erros de programação (InvalidTransition) de situações
  esperadas e recuperáveis (AdmissionDenied, CancellationRequested)
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar ValueError/RuntimeError genéricos nos guardrails do pipeline

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- A mensagem é curta e humana.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class PipelineException(Exception):
    """Base class para exceções internas do pipeline.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None
    decision_required: bool = False

    def __str__(self) -> str:  # pragma: no cover
        return self.message


@dataclass(eq=False)
class InvalidTransition(PipelineException):
    """Tentativa de destravar uma etapa sem a predecessora `completed`.

    Erro de programação ou de corrida; nunca é ignorado silenciosamente.
    """


@dataclass(eq=False)
class AdmissionDenied(PipelineException):
    """Já existe execução em andamento para o mesmo (produto, etapa)."""


@dataclass(eq=False)
class ExecutionFailure(PipelineException):
    """A chamada remota falhou, levantou exceção ou excedeu o timeout."""


@dataclass(eq=False)
class CancellationRequested(PipelineException):
    """Parada solicitada pelo usuário; não conta como falha."""
