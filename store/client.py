"""
Conexões com o cache versionado.

Toda conexão oferece o mesmo contrato (delete, get, gets, set, add, cas) e é
usada por um único worker. Duas implementações:

- HttpStoreConnection: fala com o servidor de store/main.py via HTTP.
- MemoryStoreConnection: acessa um VersionedStore do próprio processo,
  com latência opcional para imitar a ida e volta pela rede.
"""
import logging
import threading
import time
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qs, quote, urlparse

import httpx

from common.communication import HttpClient
from common.exceptions import (
    InvalidKeyError,
    StoreConnectionError,
    StoreError,
    TransientStoreError
)
from common.models import ItemResponse, StoreResult, WriteResponse
from store.store import VersionedStore, validate_key

logger = logging.getLogger(__name__)

# Caches em memória compartilhados por nome dentro do processo
_memory_stores: Dict[str, VersionedStore] = {}
_memory_stores_lock = threading.Lock()


def get_memory_store(name: str = "default") -> VersionedStore:
    """
    Obtém (criando se necessário) o cache em memória com o nome dado.

    Todas as conexões memory://<name> enxergam o mesmo cache.
    """
    with _memory_stores_lock:
        if name not in _memory_stores:
            _memory_stores[name] = VersionedStore(logging.getLogger(f"store.memory.{name}"))
        return _memory_stores[name]


def reset_memory_stores():
    """Descarta todos os caches em memória."""
    with _memory_stores_lock:
        _memory_stores.clear()


def build_locator(host: str, port: int) -> str:
    return f"http://{host}:{port}"


def parse_locator(locator: str) -> Tuple[str, str, float]:
    """
    Valida um localizador sem abrir conexão.

    Args:
        locator: http://host:port ou memory://nome[?latency=segundos]

    Returns:
        (esquema, alvo, latência): o alvo é a URL base para http(s) e o nome
        do cache para memory.

    Raises:
        ValueError: Esquema desconhecido, host ausente ou latência inválida.
    """
    parsed = urlparse(locator)

    if parsed.scheme in ("http", "https"):
        if not parsed.netloc:
            raise ValueError(f"Localizador sem host: {locator}")
        return parsed.scheme, f"{parsed.scheme}://{parsed.netloc}", 0.0

    if parsed.scheme == "memory":
        raw_latency = parse_qs(parsed.query).get("latency", ["0"])[0]
        try:
            latency = float(raw_latency)
        except ValueError:
            raise ValueError(f"Latência inválida em {locator}: {raw_latency!r}") from None
        if latency < 0:
            raise ValueError(f"Latência negativa em {locator}")
        return parsed.scheme, parsed.netloc or "default", latency

    raise ValueError(f"Esquema de localizador não suportado: {locator}")


class StoreConnection:
    """
    Contrato mínimo que as estratégias de atualização exigem do cache.
    """

    def delete(self, key: str) -> bool:
        """Remove a chave. Retorna False se ela já estava ausente."""
        raise NotImplementedError

    def get(self, key: str) -> Optional[str]:
        """Retorna o valor ou None se a chave estiver ausente."""
        raise NotImplementedError

    def gets(self, key: str) -> Optional[Tuple[str, int]]:
        """Retorna (valor, versão) ou None se a chave estiver ausente."""
        raise NotImplementedError

    def set(self, key: str, value: str, ttl: int = 0) -> bool:
        """Escrita incondicional."""
        raise NotImplementedError

    def add(self, key: str, value: str, ttl: int = 0) -> bool:
        """Escreve somente se a chave estiver ausente."""
        raise NotImplementedError

    def cas(self, key: str, value: str, ttl: int, version: int) -> bool:
        """Escreve somente se a versão ainda for a atual. False se obsoleta ou ausente."""
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class MemoryStoreConnection(StoreConnection):
    """
    Conexão com um VersionedStore do próprio processo.
    """

    def __init__(self, store: VersionedStore, latency: float = 0.0):
        """
        Args:
            store: Cache compartilhado.
            latency: Segundos de espera antes de cada operação.
        """
        self.store = store
        self.latency = latency
        self.closed = False

    def _round_trip(self):
        if self.closed:
            raise StoreConnectionError("Conexão fechada")
        if self.latency:
            time.sleep(self.latency)

    def delete(self, key: str) -> bool:
        self._round_trip()
        return self.store.delete(key) == StoreResult.DELETED

    def get(self, key: str) -> Optional[str]:
        self._round_trip()
        return self.store.get(key)

    def gets(self, key: str) -> Optional[Tuple[str, int]]:
        self._round_trip()
        return self.store.gets(key)

    def set(self, key: str, value: str, ttl: int = 0) -> bool:
        self._round_trip()
        result, _ = self.store.set(key, value, ttl)
        return result == StoreResult.STORED

    def add(self, key: str, value: str, ttl: int = 0) -> bool:
        self._round_trip()
        result, _ = self.store.add(key, value, ttl)
        return result == StoreResult.STORED

    def cas(self, key: str, value: str, ttl: int, version: int) -> bool:
        self._round_trip()
        result, _ = self.store.cas(key, value, ttl, version)
        return result == StoreResult.STORED

    def close(self):
        self.closed = True


class HttpStoreConnection(StoreConnection):
    """
    Conexão HTTP com o servidor de cache.
    """

    def __init__(self, base_url: str = "", timeout: float = 10.0, client: Optional[httpx.Client] = None):
        """
        Args:
            base_url: URL do servidor (ex.: http://localhost:8080).
            timeout: Timeout de cada requisição em segundos.
            client: Cliente httpx já construído, usado no lugar de um novo.
        """
        self.http = HttpClient(base_url, timeout=timeout, client=client)

    @staticmethod
    def _path(prefix: str, key: str) -> str:
        validate_key(key)
        return f"/{prefix}/{quote(key, safe='')}"

    @staticmethod
    def _raise_for_status(status: int, body: Dict) -> None:
        detail = body.get("detail", body)
        if status == 400:
            raise InvalidKeyError(str(detail))
        if status >= 500:
            raise TransientStoreError(f"Erro do servidor ({status}): {detail}", status=status)
        raise StoreError(f"Resposta inesperada ({status}): {detail}")

    def _write(self, method: str, path: str, payload: Dict) -> StoreResult:
        status, body = self.http.request(method, path, json=payload)
        if status != 200:
            self._raise_for_status(status, body)
        return WriteResponse(**body).result

    def delete(self, key: str) -> bool:
        status, body = self.http.delete(self._path("items", key))
        if status != 200:
            self._raise_for_status(status, body)
        return WriteResponse(**body).result == StoreResult.DELETED

    def gets(self, key: str) -> Optional[Tuple[str, int]]:
        status, body = self.http.get(self._path("items", key))
        if status == 404:
            return None
        if status != 200:
            self._raise_for_status(status, body)
        item = ItemResponse(**body)
        return item.value, item.version

    def get(self, key: str) -> Optional[str]:
        item = self.gets(key)
        return item[0] if item else None

    def set(self, key: str, value: str, ttl: int = 0) -> bool:
        result = self._write("PUT", self._path("items", key), {"value": value, "ttl": ttl})
        return result == StoreResult.STORED

    def add(self, key: str, value: str, ttl: int = 0) -> bool:
        result = self._write("POST", self._path("add", key), {"value": value, "ttl": ttl})
        return result == StoreResult.STORED

    def cas(self, key: str, value: str, ttl: int, version: int) -> bool:
        result = self._write("POST", self._path("cas", key), {"value": value, "ttl": ttl, "version": version})
        return result == StoreResult.STORED

    def close(self):
        self.http.close()


def connect(locator: str, timeout: float = 10.0) -> StoreConnection:
    """
    Abre uma nova conexão a partir de um localizador.

    Args:
        locator: http://host:port ou memory://nome[?latency=segundos]
        timeout: Timeout das requisições HTTP em segundos.

    Returns:
        Conexão exclusiva do chamador.

    Raises:
        ValueError: Localizador inválido (ver parse_locator).
    """
    scheme, target, latency = parse_locator(locator)

    if scheme == "memory":
        return MemoryStoreConnection(get_memory_store(target), latency=latency)
    return HttpStoreConnection(target, timeout=timeout)
