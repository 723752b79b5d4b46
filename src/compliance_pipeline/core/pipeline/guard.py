# src/compliance_pipeline/core/pipeline/guard.py
"""
ExecutionGuard — conjunto de execuções em andamento por (produto, etapa).

É o único estado mutável compartilhado do core. Toda mutação passa por
`admit`/`release` (e `cancel`, que libera), protegidas por um lock, de
modo que disparos concorrentes vindos de fontes diferentes (ação do
usuário, retry agendado, re-render da UI) vejam exatamente uma admissão.

Responsabilidades do módulo:
    - Check-and-set atômico de admissão
    - Liberação incondicional e escopada (`hold`)
    - Sinalização de cancelamento para quem está executando

Decisões arquiteturais:
    - Cada admissão cria um `InFlight` (handle); a saída de `hold` só
      libera o próprio handle, nunca um handle admitido depois de um cancel
    - `is_in_flight` é apenas informativo; admissão nunca deve ser decidida
      por leitura prévia

Limites explícitos:
    - Não conhece o vetor de status nem o gate
    - Não chama a capacidade remota (callbacks de abort são registrados
      por quem executa)
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from compliance_pipeline.core.exceptions import AdmissionDenied

from .types import ExecutionKey


AbortCallback = Callable[[], Any]


@dataclass(eq=False)
class InFlight:
    """
    Handle de uma admissão.

    `meta` guarda dados do chamador (ex.: o estado pré-execução da etapa)
    que o cancelamento precisa para restaurar o status.
    """
    key: ExecutionKey
    meta: Dict[str, Any] = field(default_factory=dict)
    cancelled: bool = False
    _callbacks: List[AbortCallback] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def on_abort(self, callback: AbortCallback) -> None:
        """Registra um callback; se já cancelado, executa imediatamente."""
        with self._lock:
            if not self.cancelled:
                self._callbacks.append(callback)
                return
        callback()

    def _abort(self) -> None:
        with self._lock:
            self.cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


class ExecutionGuard:
    """
    Conjunto tipado de `ExecutionKey` em andamento.

    Seguro sob invocação concorrente (threads ou tarefas asyncio).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: Dict[ExecutionKey, InFlight] = {}

    # -----------------------------
    # Admissão
    # -----------------------------
    def acquire(self, key: ExecutionKey) -> Optional[InFlight]:
        """Admite `key` e retorna seu handle, ou None se já estiver em andamento."""
        key = ExecutionKey(*key)
        with self._lock:
            if key in self._in_flight:
                return None
            handle = InFlight(key=key)
            self._in_flight[key] = handle
            return handle

    def admit(self, key: ExecutionKey) -> bool:
        return self.acquire(key) is not None

    def release(self, key: ExecutionKey) -> None:
        with self._lock:
            self._in_flight.pop(ExecutionKey(*key), None)

    def settle(self, handle: InFlight) -> bool:
        """
        Libera `key` apenas se ainda pertence a `handle`.

        Returns:
            bool: False quando o handle já foi cancelado ou substituído.
        """
        with self._lock:
            if self._in_flight.get(handle.key) is not handle:
                return False
            del self._in_flight[handle.key]
            return not handle.cancelled

    @contextmanager
    def hold(self, key: ExecutionKey) -> Iterator[InFlight]:
        """
        Aquisição escopada: admite na entrada e libera na saída, em qualquer
        caminho (retorno, exceção, cancelamento de tarefa).

        Raises:
            AdmissionDenied: Se `key` já estiver em andamento.
        """
        handle = self.acquire(key)
        if handle is None:
            key = ExecutionKey(*key)
            raise AdmissionDenied(
                message=f"Execução já em andamento para {key}",
                details={"product_id": key.product_id, "step": key.step},
                hint="Aguarde a conclusão ou solicite a parada da etapa.",
            )
        try:
            yield handle
        finally:
            self.settle(handle)

    # -----------------------------
    # Cancelamento e leitura
    # -----------------------------
    def cancel(self, key: ExecutionKey) -> Optional[InFlight]:
        """
        Libera `key` imediatamente e dispara os callbacks de abort do handle.

        Chamar sobre uma chave que não está em andamento é no-op (retorna None).
        """
        with self._lock:
            handle = self._in_flight.pop(ExecutionKey(*key), None)
        if handle is None:
            return None
        handle._abort()
        return handle

    def is_in_flight(self, key: ExecutionKey) -> bool:
        with self._lock:
            return ExecutionKey(*key) in self._in_flight

    def in_flight(self) -> List[ExecutionKey]:
        with self._lock:
            return sorted(self._in_flight)

    def __len__(self) -> int:
        with self._lock:
            return len(self._in_flight)
