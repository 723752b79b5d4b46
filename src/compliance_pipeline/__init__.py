# src/compliance_pipeline/__init__.py
"""
Compliance Pipeline — núcleo de estado e detecção de mudanças para o
acompanhamento de conformidade de produtos manufaturados.

Cada produto percorre um pipeline fixo de cinco etapas:
    0. decomposition            → decomposição do produto em componentes
    1. assessment               → avaliação de conformidade
    2. element_identification   → identificação de elementos regulatórios
    3. description_generation   → geração de descrições dos elementos
    4. update_tracking          → acompanhamento de atualizações regulatórias

Arquitetura em alto nível:
    - core.config        → carregamento, merge e hashing de configuração
    - core.pipeline      → vetor de status, gate, guarda de execução, store
    - core.updates       → canonicalização e diff de atualizações regulatórias
    - core.notifications → política de notificação (decide, não entrega)
    - core.engine        → orquestração de triggers, cancelamento e revisão
    - core.traceability  → Audit Log de decisões de gate e transições

Limites explícitos:
    - Não persiste produtos (o store é um colaborador externo)
    - Não implementa transporte HTTP nem entrega de notificações
    - Não contém regras de autenticação ou renderização
"""
# src/compliance_pipeline/__init__.py
from .core.engine import ComplianceEngine, TriggerOutcome, TriggerResult
from .core.pipeline.types import ExecutionKey, ExecutionOutcome, StepState
from .version import __version__

__all__ = [
    "ComplianceEngine",
    "TriggerOutcome",
    "TriggerResult",
    "ExecutionKey",
    "ExecutionOutcome",
    "StepState",
    "__version__",
]
