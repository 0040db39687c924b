"""
Configurações para o driver de get-apply-set.

Precedência: padrões < variáveis de ambiente < arquivo YAML < linha de comando.
"""
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.utils import get_env_int, get_env_str
from store.client import build_locator, parse_locator


# Cache alvo
STORE_HOST = get_env_str("STORE_HOST", "localhost")
STORE_PORT = get_env_int("STORE_PORT", 8080)

# Execução
KEY = get_env_str("KEY", "get-apply-set")
ITERATIONS = get_env_int("ITERATIONS", 100)
METHOD = get_env_str("METHOD", "atomic")
CONCURRENCY = get_env_int("CONCURRENCY", 2)

# Expiração das escritas em segundos (um dia)
DEFAULT_EXPIRATION = get_env_int("EXPIRATION", 86400)

# Timeout de cada requisição HTTP ao cache
REQUEST_TIMEOUT = 10.0


class RunConfig(BaseModel):
    """Configuração imutável de uma execução, passada por valor a cada worker."""
    host: str = STORE_HOST
    port: int = STORE_PORT
    locator: Optional[str] = None  # sobrescreve host/port (ex.: memory://local)
    key: str = KEY
    iterations: int = Field(ITERATIONS, ge=0)
    method: str = METHOD
    concurrency: int = Field(CONCURRENCY, ge=1)
    expiration: int = Field(DEFAULT_EXPIRATION, ge=0)
    max_attempts: Optional[int] = Field(None, ge=1)

    model_config = ConfigDict(frozen=True)

    @field_validator("locator")
    @classmethod
    def check_locator(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_locator(value)
        return value

    @property
    def store_locator(self) -> str:
        return self.locator or build_locator(self.host, self.port)


def load_config(path: Optional[str] = None, **overrides: Any) -> RunConfig:
    """
    Carrega a configuração da execução.

    Args:
        path: Arquivo YAML opcional com as mesmas chaves de RunConfig.
        overrides: Valores vindos da linha de comando; None é ignorado.

    Returns:
        RunConfig validada.
    """
    values: Dict[str, Any] = {}

    if path:
        with open(path, "r") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"YAML inválido em {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Arquivo de configuração inválido: {path}")
        values.update(data)

    values.update({name: value for name, value in overrides.items() if value is not None})
    return RunConfig(**values)
