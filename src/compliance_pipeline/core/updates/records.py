# src/compliance_pipeline/core/updates/records.py
"""
UpdateRecord — atualização regulatória canonicalizada.

Os registros chegam do payload da etapa 4 (`compliance_updates`) como
dicionários livres, com aliases herdados de versões anteriores da API
(`name` em vez de `regulation`, `update_date` em vez de `date`) e campos
possivelmente nulos. Este módulo normaliza esses registros e define a
chave canônica que identifica "a mesma atualização lógica" entre runs.

Chave canônica:
    regulation | title | date | description[:100]

Limites explícitos:
    - Não compara registros (ver `diff`)
    - Não valida datas nem conteúdo regulatório
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union


DEFAULT_PREFIX_LENGTH = 100

UPDATES_PAYLOAD_KEY = "compliance_updates"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _first(data: Mapping[str, Any], *keys: str) -> str:
    """Primeiro valor não vazio entre `keys` (ordem de preferência)."""
    for k in keys:
        value = _text(data.get(k))
        if value:
            return value
    return ""


@dataclass(frozen=True)
class UpdateRecord:
    """
    Atualização regulatória imutável.

    Campos não informados são string vazia. `extra` preserva o restante do
    registro original (deadline, status, validity, ...) sem participar da
    chave canônica.
    """
    regulation: str = ""
    title: str = ""
    date: str = ""
    description: str = ""
    impact: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UpdateRecord":
        known = {"regulation", "name", "title", "date", "update_date", "description", "impact"}
        return cls(
            regulation=_first(data, "regulation", "name"),
            title=_text(data.get("title")),
            date=_first(data, "update_date", "date"),
            description=_text(data.get("description")),
            impact=_text(data.get("impact")),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def field_value(self, name: str) -> str:
        """Valor textual de um campo comparável, incluindo os de `extra`."""
        if name in ("regulation", "title", "date", "description", "impact"):
            return getattr(self, name)
        return _text(self.extra.get(name))

    def canonical_key(self, prefix_length: int = DEFAULT_PREFIX_LENGTH) -> str:
        return canonical_key(self, prefix_length=prefix_length)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update(
            {
                "regulation": self.regulation,
                "title": self.title,
                "date": self.date,
                "description": self.description,
                "impact": self.impact,
            }
        )
        return data


RecordLike = Union[UpdateRecord, Mapping[str, Any]]


def as_record(item: RecordLike) -> UpdateRecord:
    if isinstance(item, UpdateRecord):
        return item
    if isinstance(item, Mapping):
        return UpdateRecord.from_mapping(item)
    raise TypeError(f"update record must be a mapping or UpdateRecord, got {type(item).__name__}")


def canonical_key(item: RecordLike, *, prefix_length: int = DEFAULT_PREFIX_LENGTH) -> str:
    record = as_record(item)
    return "|".join(
        (record.regulation, record.title, record.date, record.description[:prefix_length])
    )


def identity_key(item: RecordLike) -> str:
    """
    Identidade sem a descrição: `regulation | title | date`.

    Usada pelo diff para reconhecer uma atualização cuja descrição foi
    reescrita (e, portanto, mudou de chave canônica).
    """
    record = as_record(item)
    return "|".join((record.regulation, record.title, record.date))


def normalize_records(items: Optional[Iterable[Optional[RecordLike]]]) -> List[UpdateRecord]:
    """Normaliza registros; entradas `None` são ignoradas."""
    if not items:
        return []
    return [as_record(item) for item in items if item is not None]


def extract_updates(payload: Any) -> Optional[List[UpdateRecord]]:
    """
    Lê `compliance_updates` de um payload de resultado da etapa 4.

    O payload vem da capacidade remota e é tolerado como está: um
    `compliance_updates` que não é lista conta como ausente, e entradas que
    não são mapeamentos (ex.: `None`) são descartadas.

    Returns:
        None quando o payload não contém a lista (etapa nunca executada ou
        payload de outro formato); caso contrário, a lista normalizada.
    """
    if isinstance(payload, Mapping):
        updates = payload.get(UPDATES_PAYLOAD_KEY)
    elif isinstance(payload, (list, tuple)):
        updates = payload
    else:
        return None

    if not isinstance(updates, (list, tuple)):
        return None
    return normalize_records([u for u in updates if isinstance(u, (UpdateRecord, Mapping))])
