# src/compliance_pipeline/core/config/errors.py
"""
Exceções canônicas da camada de configuração.

Todas herdam de `ConfigError` e representam violações estruturais
detectadas antes de qualquer trigger ser processado. Nenhuma delas
representa falha de execução de etapa.
"""


class ConfigError(Exception):
    """Base para erros de carregamento, merge ou validação de configuração."""


class DefaultsNotFoundError(ConfigError):
    """
    O arquivo de defaults não existe no caminho informado.

    Sem defaults não existe configuração efetiva válida; o loader não
    tenta criar nem inferir um arquivo substituto.
    """


class UnsupportedConfigFormatError(ConfigError):
    """Extensão de arquivo fora de YAML (.yaml, .yml) ou JSON (.json)."""


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz do arquivo não é um mapa chave-valor."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo:
        - base:     {"diff": {"description_prefix_length": 100}}
        - override: {"diff": "off"}

    Nenhum merge parcial é produzido em caso de conflito.
    """


class InvalidConfigValueError(ConfigError):
    """
    Valor com tipo correto no merge, mas inaceitável para o core.

    Exemplos: prioridade fora de low/medium/high, `compare_fields` vazio,
    `description_prefix_length` não positivo, timeout negativo.
    """
