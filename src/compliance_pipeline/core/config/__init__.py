# src/compliance_pipeline/core/config/__init__.py
"""
Camada de configuração do Compliance Pipeline.

A configuração é resolvida a partir de um arquivo de defaults (embarcado
no pacote ou informado explicitamente) e de overrides locais opcionais,
sempre via deep-merge determinístico.

Responsabilidades do pacote:
    - Carregamento de YAML/JSON (defaults + overrides locais)
    - Deep-merge determinístico
    - Validação estrutural das chaves consumidas pelo core
    - Hash canônico para o Audit Log

Limites explícitos:
    - Não decide políticas de execução
    - Não interage com Engine ou Steps diretamente
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidConfigValueError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import DEFAULTS_PATH, load_config, load_default_config, validate_config
from .merge import deep_merge

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "InvalidConfigValueError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "DEFAULTS_PATH",
    "load_config",
    "load_default_config",
    "validate_config",
    "deep_merge",
]
