# src/compliance_pipeline/core/pipeline/context.py
"""
Contexto operacional do Engine.

O `EngineContext` concentra a configuração efetiva e o log estruturado
de operação do core. Substitui o estado ambiente da aplicação original
(atualizado por vários handlers de UI) por um objeto explícito, passado
por referência ao Engine.

Responsabilidades do módulo:
    - Manter configuração resolvida e seu hash
    - Registrar eventos de log estruturados (sempre com produto e etapa)
    - Coletar warnings não fatais por ExecutionKey

Limites explícitos:
    - Não substitui o Audit Log (decisões de gate e transições vão para
      o `AuditSink`)
    - Não persiste nada automaticamente
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

from compliance_pipeline.core.config import compute_config_hash, load_default_config, validate_config

from .types import ExecutionKey


DEFAULT_MAX_LOG_EVENTS = 1000


@dataclass
class EngineContext:
    """
    Contexto compartilhado pelo Engine durante toda a sua vida.

    Invariantes:
        - Logs incluem sempre `product_id`, `step`, `level` e `timestamp` UTC
        - Warnings são agrupados por ExecutionKey
        - `events` e cada lista de warnings guardam no máximo
          `engine.max_log_events` entradas (as mais antigas são descartadas)

    Raises:
        InvalidConfigValueError: Se a configuração recebida for inválida.
    """
    config: Dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    meta: Dict[str, Any] = field(default_factory=dict)

    events: Deque[Dict[str, Any]] = field(default_factory=deque, init=False)
    warnings: Dict[ExecutionKey, List[str]] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        validate_config(self.config)
        self.events = deque(maxlen=self.max_log_events())

    @classmethod
    def from_defaults(cls, **meta: Any) -> "EngineContext":
        return cls(config=load_default_config(), meta=dict(meta))

    @property
    def config_hash(self) -> str:
        return compute_config_hash(self.config)

    # -----------------------------
    # Config accessors
    # -----------------------------
    def section(self, name: str) -> Dict[str, Any]:
        return (self.config or {}).get(name, {}) or {}

    def execution_timeout(self) -> Optional[float]:
        return self.section("engine").get("execution_timeout_seconds")

    def notifications_enabled(self) -> bool:
        return bool(self.section("notifications").get("enabled", True))

    def audit_enabled(self) -> bool:
        return bool(self.section("audit").get("enabled", True))

    def max_log_events(self) -> int:
        return self.section("engine").get("max_log_events") or DEFAULT_MAX_LOG_EVENTS

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, product_id: str, step: Optional[int], level: str, message: str, **extra: Any) -> None:
        event = {
            "product_id": product_id,
            "step": step,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, key: ExecutionKey, message: str) -> None:
        key = ExecutionKey(*key)
        messages = self.warnings.setdefault(key, [])
        messages.append(message)
        overflow = len(messages) - self.max_log_events()
        if overflow > 0:
            del messages[:overflow]
