# src/compliance_pipeline/core/updates/diff.py
"""
UpdateDiffEngine — classificação de atualizações regulatórias entre runs.

Compara o conjunto de atualizações recém-obtido com o anteriormente
armazenado e classifica cada registro atual como novo, alterado ou
inalterado, para evitar notificar a cada reexecução da etapa 4.

Algoritmo (v1):
    1. `previous` ausente ou vazio → resultado zerado (a primeira carga de
       atualizações de um produto não é notícia). `current` ausente ou
       vazio → resultado zerado.
    2. Mapa chave canônica → registro, sobre `previous` (o último vence).
    3. Para cada registro de `current`:
         - chave ausente no mapa → novo
         - chave presente e algum campo comparado difere → alterado
         - caso contrário → inalterado (descartado)
       Um registro idêntico (nos campos comparados) a qualquer registro
       anterior da mesma chave é inalterado, mesmo que não seja o último;
       assim `diff(X, X)` é sempre vazio.
    4. Contagens agregadas + união das chaves afetadas.

Reconhecimento por identidade (`diff.identity_fallback`, ativo por
padrão): um registro cuja chave canônica não existe no run anterior, mas
cuja identidade `regulation | title | date` existe (e não é vazia), é a
mesma atualização com a descrição reescrita; é classificado como
alterado em vez de novo.

Duplicatas de chave dentro de `current` são tratadas de forma
independente, cada uma comparada ao único registro anterior da chave.

Decisões arquiteturais:
    - Campos comparados são configuráveis (`diff.compare_fields`), com
      default `description` e `impact`; mudar o conjunto altera o volume
      de notificações
    - Comparação textual exata, sem normalização de espaços ou caixa
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .records import (
    DEFAULT_PREFIX_LENGTH,
    RecordLike,
    UpdateRecord,
    canonical_key,
    identity_key,
    normalize_records,
)


DEFAULT_COMPARE_FIELDS: Tuple[str, ...] = ("description", "impact")

_EMPTY_IDENTITY = "||"


@dataclass(frozen=True)
class DiffResult:
    """Resultado derivado (não persistido) de uma comparação."""
    new_count: int = 0
    changed_count: int = 0
    affected_keys: FrozenSet[str] = field(default_factory=frozenset)
    new_keys: FrozenSet[str] = field(default_factory=frozenset)
    changed_keys: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def has_changes(self) -> bool:
        return self.new_count > 0 or self.changed_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "new_count": self.new_count,
            "changed_count": self.changed_count,
            "affected_keys": sorted(self.affected_keys),
        }


EMPTY_DIFF = DiffResult()


def diff_updates(
    previous: Optional[Iterable[RecordLike]],
    current: Optional[Iterable[RecordLike]],
    *,
    compare_fields: Sequence[str] = DEFAULT_COMPARE_FIELDS,
    prefix_length: int = DEFAULT_PREFIX_LENGTH,
    identity_fallback: bool = True,
) -> DiffResult:
    """
    Classifica os registros de `current` contra `previous`.

    Args:
        previous: Atualizações armazenadas no run anterior (ou None).
        current: Atualizações do run atual.
        compare_fields: Campos cuja diferença caracteriza "alterado".
        prefix_length: Tamanho do prefixo da descrição na chave canônica.
        identity_fallback: Reconhece descrições reescritas pela identidade.

    Returns:
        DiffResult: contagens e chaves afetadas.
    """
    old = normalize_records(previous)
    new = normalize_records(current)
    if not old or not new:
        return EMPTY_DIFF

    def signature(record: UpdateRecord) -> Tuple[str, ...]:
        return tuple(record.field_value(f) for f in compare_fields)

    by_key: Dict[str, UpdateRecord] = {}
    seen: Dict[str, Set[Tuple[str, ...]]] = {}
    by_identity: Dict[str, UpdateRecord] = {}
    for record in old:
        key = canonical_key(record, prefix_length=prefix_length)
        by_key[key] = record
        seen.setdefault(key, set()).add(signature(record))
        if identity_fallback and identity_key(record) != _EMPTY_IDENTITY:
            by_identity[identity_key(record)] = record

    new_count = 0
    changed_count = 0
    new_keys = set()
    changed_keys = set()

    for record in new:
        key = canonical_key(record, prefix_length=prefix_length)
        stored = by_key.get(key)
        if stored is None:
            stored = by_identity.get(identity_key(record))

        if stored is None:
            new_count += 1
            new_keys.add(key)
            continue

        if signature(record) in seen.get(key, ()):
            continue
        if signature(record) != signature(stored):
            changed_count += 1
            changed_keys.add(key)

    return DiffResult(
        new_count=new_count,
        changed_count=changed_count,
        affected_keys=frozenset(new_keys | changed_keys),
        new_keys=frozenset(new_keys),
        changed_keys=frozenset(changed_keys),
    )


def highlight(
    records: Optional[Iterable[RecordLike]],
    result: DiffResult,
    *,
    prefix_length: int = DEFAULT_PREFIX_LENGTH,
) -> List[UpdateRecord]:
    """Registros de `records` cuja chave está em `result.affected_keys`, na ordem original."""
    return [
        record
        for record in normalize_records(records)
        if canonical_key(record, prefix_length=prefix_length) in result.affected_keys
    ]


class UpdateDiffEngine:
    """
    `diff_updates` parametrizado pela seção `diff` da configuração.

    Args:
        config: Configuração efetiva (usa `diff.compare_fields` e
            `diff.description_prefix_length` quando presentes).
    """

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        diff_cfg = ((config or {}).get("diff", {}) or {})
        self.compare_fields: Tuple[str, ...] = tuple(
            diff_cfg.get("compare_fields") or DEFAULT_COMPARE_FIELDS
        )
        self.prefix_length: int = int(diff_cfg.get("description_prefix_length") or DEFAULT_PREFIX_LENGTH)
        self.identity_fallback: bool = bool(diff_cfg.get("identity_fallback", True))

    def diff(
        self,
        previous: Optional[Iterable[RecordLike]],
        current: Optional[Iterable[RecordLike]],
    ) -> DiffResult:
        return diff_updates(
            previous,
            current,
            compare_fields=self.compare_fields,
            prefix_length=self.prefix_length,
            identity_fallback=self.identity_fallback,
        )

    def highlight(self, records: Optional[Iterable[RecordLike]], result: DiffResult) -> List[UpdateRecord]:
        return highlight(records, result, prefix_length=self.prefix_length)
