"""
Modelos de dados do protocolo HTTP do cache versionado.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class StoreResult(str, Enum):
    """Resultados possíveis de uma escrita (mesmos nomes das respostas do memcached)."""
    STORED = "STORED"
    NOT_STORED = "NOT_STORED"
    EXISTS = "EXISTS"
    NOT_FOUND = "NOT_FOUND"
    DELETED = "DELETED"


class WriteRequest(BaseModel):
    """Modelo para SET e ADD."""
    value: str
    ttl: int = Field(0, ge=0)  # segundos; 0 = sem expiração


class CasRequest(BaseModel):
    """Modelo para compare-and-swap."""
    value: str
    ttl: int = Field(0, ge=0)
    version: int


class WriteResponse(BaseModel):
    """Modelo para resposta de qualquer escrita ou remoção."""
    result: StoreResult
    version: Optional[int] = None  # versão atribuída quando result == STORED


class ItemResponse(BaseModel):
    """Modelo para resposta de leitura (GET / GETS)."""
    key: str
    value: str
    version: int


class HealthResponse(BaseModel):
    """Modelo para resposta de verificação de saúde."""
    status: str = "healthy"
