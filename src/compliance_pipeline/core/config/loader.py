# src/compliance_pipeline/core/config/loader.py
"""
Loader canônico de configuração do Compliance Pipeline.

A configuração efetiva é resolvida a partir de:
    - um arquivo de defaults (obrigatório; por padrão o embarcado no pacote)
    - um arquivo local de overrides (opcional)
    - um dicionário de overrides em memória (opcional, usado por testes e
      por integradores que já possuem configuração materializada)

Responsabilidades do módulo:
    - Carregar YAML ou JSON
    - Validar o tipo raiz
    - Resolver a configuração final via deep-merge
    - Validar os valores consumidos pelo core (`validate_config`)

Invariantes:
    - O arquivo de defaults é obrigatório
    - O resultado é sempre um dicionário puro (`dict`)
    - Overrides nunca mutam os defaults

Limites explícitos:
    - Não persiste configuração nem hash
    - Não interage com Engine ou Steps
"""

from pathlib import Path
from typing import Any, Dict, Optional
import json

import yaml  # PyYAML

from .merge import deep_merge
from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidConfigValueError,
    UnsupportedConfigFormatError,
)


DEFAULTS_PATH = Path(__file__).with_name("pipeline.defaults.yaml")

_PRIORITIES = {"low", "medium", "high"}
_PRIORITY_KINDS = ("success", "error", "update_change")


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Lê um arquivo de configuração e valida sua estrutura básica.

    Arquivos vazios são interpretados como dicionários vazios.

    Raises:
        DefaultsNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se a extensão não for suportada.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise DefaultsNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Valida os valores da configuração efetiva consumidos pelo core.

    Regras (v1):
        - `engine.execution_timeout_seconds`: None ou número positivo
        - `engine.max_log_events`: inteiro positivo
        - `notifications.priorities.*`: low | medium | high
        - `diff.compare_fields`: lista não vazia de strings
        - `diff.description_prefix_length`: inteiro positivo
        - `diff.identity_fallback`: booleano

    Chaves ausentes são aceitas (o core aplica o default documentado).

    Returns:
        Dict[str, Any]: A própria configuração, para encadeamento.

    Raises:
        InvalidConfigValueError: Na primeira violação encontrada.
    """
    engine_cfg = config.get("engine", {}) or {}
    timeout = engine_cfg.get("execution_timeout_seconds")
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise InvalidConfigValueError(
                f"engine.execution_timeout_seconds deve ser positivo ou null, recebido: {timeout!r}"
            )

    max_events = engine_cfg.get("max_log_events")
    if max_events is not None:
        if isinstance(max_events, bool) or not isinstance(max_events, int) or max_events <= 0:
            raise InvalidConfigValueError(
                f"engine.max_log_events deve ser inteiro positivo, recebido: {max_events!r}"
            )

    priorities = ((config.get("notifications", {}) or {}).get("priorities", {}) or {})
    for kind in _PRIORITY_KINDS:
        value = priorities.get(kind)
        if value is not None and value not in _PRIORITIES:
            raise InvalidConfigValueError(
                f"notifications.priorities.{kind} inválida: {value!r} "
                f"(esperado um de {sorted(_PRIORITIES)})"
            )

    diff_cfg = config.get("diff", {}) or {}
    fields = diff_cfg.get("compare_fields")
    if fields is not None:
        if (
            not isinstance(fields, list)
            or not fields
            or not all(isinstance(f, str) and f.strip() for f in fields)
        ):
            raise InvalidConfigValueError(
                f"diff.compare_fields deve ser lista não vazia de strings, recebido: {fields!r}"
            )

    fallback = diff_cfg.get("identity_fallback")
    if fallback is not None and not isinstance(fallback, bool):
        raise InvalidConfigValueError(
            f"diff.identity_fallback deve ser booleano, recebido: {fallback!r}"
        )

    prefix = diff_cfg.get("description_prefix_length")
    if prefix is not None:
        if isinstance(prefix, bool) or not isinstance(prefix, int) or prefix <= 0:
            raise InvalidConfigValueError(
                f"diff.description_prefix_length deve ser inteiro positivo, recebido: {prefix!r}"
            )

    return config


def load_config(
    *,
    defaults_path: Optional[str] = None,
    local_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva do pipeline.

    Política de resolução:
        defaults  <  arquivo local (se existir)  <  overrides em memória

    Args:
        defaults_path (Optional[str]): Arquivo de defaults; quando omitido,
            usa `DEFAULTS_PATH` (embarcado no pacote).
        local_path (Optional[str]): Overrides locais; ignorado se não existir.
        overrides (Optional[Dict[str, Any]]): Overrides já materializados.

    Returns:
        Dict[str, Any]: Configuração final validada.

    Raises:
        DefaultsNotFoundError: Se o arquivo de defaults não existir.
        UnsupportedConfigFormatError: Se o formato não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo não for um dicionário.
        ConfigTypeConflictError: Se ocorrer conflito estrutural durante o merge.
        InvalidConfigValueError: Se algum valor for inaceitável para o core.
    """
    defaults_file = Path(defaults_path) if defaults_path is not None else DEFAULTS_PATH
    effective = _load_file(defaults_file)

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    if overrides:
        effective = deep_merge(effective, overrides)

    return validate_config(effective)


def load_default_config() -> Dict[str, Any]:
    """Configuração efetiva usando apenas os defaults embarcados."""
    return load_config()
