# src/compliance_pipeline/core/engine/__init__.py
"""
Engine do Compliance Pipeline.

Orquestrador central do pipeline fixo de cinco etapas por produto:
avalia o gate, admite a execução na guarda, aguarda a capacidade remota,
grava o desfecho no vetor de status e decide as notificações.

Princípios fundamentais:
    - Admissão é decidida por check-and-set atômico, nunca por leitura prévia
    - Falhas remotas viram estado `failed`, não crash
    - Nenhuma decisão silenciosa: gate, transições e cancelamentos vão
      para o Audit Log

Limites explícitos:
    - Não implementa as etapas (a capacidade remota é externa)
    - Não entrega notificações
    - Não depende de UI
"""

from .engine import ComplianceEngine, TriggerOutcome, TriggerResult

__all__ = ["ComplianceEngine", "TriggerOutcome", "TriggerResult"]
