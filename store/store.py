"""
Implementação do cache versionado (semântica de memcached).
"""
import logging
import threading
import time
from typing import Callable, Dict, Any, Optional, Tuple

from common.exceptions import InvalidKeyError
from common.metrics import store_metrics
from common.models import StoreResult

MAX_KEY_LENGTH = 250


def validate_key(key: str) -> str:
    """
    Valida uma chave segundo as regras do memcached.

    Args:
        key: Chave a validar.

    Returns:
        A própria chave.

    Raises:
        InvalidKeyError: Chave vazia, longa demais ou com espaços/caracteres de controle.
    """
    if not isinstance(key, str) or not key:
        raise InvalidKeyError("A chave não pode ser vazia")
    if len(key.encode("utf-8")) > MAX_KEY_LENGTH:
        raise InvalidKeyError(f"Chave com mais de {MAX_KEY_LENGTH} bytes")
    if any(ch.isspace() or ord(ch) < 32 or ord(ch) == 127 for ch in key):
        raise InvalidKeyError(f"Chave contém espaço ou caractere de controle: {key!r}")
    return key


class VersionedStore:
    """
    Cache em memória em que cada escrita recebe uma nova versão.

    As versões saem de um único contador crescente, portanto uma versão
    nunca é reutilizada, nem depois de DELETE seguido de ADD.
    """
    def __init__(self, logger: Optional[logging.Logger] = None, clock: Callable[[], float] = time.time):
        """
        Inicializa o cache.

        Args:
            logger: Logger configurado.
            clock: Fonte de tempo em segundos (substituível nos testes de expiração).
        """
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock

        # {key: (value, version, expires_at)}
        self.items: Dict[str, Tuple[str, int, Optional[float]]] = {}

        self.lock = threading.Lock()
        self.last_version = 0

        # Contadores locais para /status
        self.counters = {"get": 0, "set": 0, "add": 0, "cas": 0, "delete": 0, "evictions": 0}

    def _next_version(self) -> int:
        self.last_version += 1
        return self.last_version

    def _expires_at(self, ttl: int) -> Optional[float]:
        if ttl < 0:
            raise ValueError("ttl não pode ser negativo")
        return self.clock() + ttl if ttl else None

    def _live_item(self, key: str) -> Optional[Tuple[str, int, Optional[float]]]:
        # Chamado com o lock adquirido
        item = self.items.get(key)
        if item is None:
            return None
        expires_at = item[2]
        if expires_at is not None and expires_at <= self.clock():
            del self.items[key]
            self.counters["evictions"] += 1
            store_metrics["evictions"].inc()
            self.logger.debug(f"Item {key} expirado e removido")
            return None
        return item

    def _count(self, operation: str, result: str):
        self.counters[operation] += 1
        store_metrics["operations"].labels(operation=operation, result=result).inc()

    def gets(self, key: str) -> Optional[Tuple[str, int]]:
        """
        Lê um item junto com sua versão.

        Returns:
            Tupla (value, version) ou None se a chave estiver ausente.
        """
        validate_key(key)
        with self.lock:
            item = self._live_item(key)
            self._count("get", "hit" if item else "miss")
            if item is None:
                return None
            return item[0], item[1]

    def get(self, key: str) -> Optional[str]:
        item = self.gets(key)
        return item[0] if item else None

    def set(self, key: str, value: str, ttl: int = 0) -> Tuple[StoreResult, int]:
        """
        Escrita incondicional.

        Returns:
            Tupla (STORED, nova versão).
        """
        validate_key(key)
        with self.lock:
            version = self._next_version()
            self.items[key] = (value, version, self._expires_at(ttl))
            self._count("set", StoreResult.STORED.value)
        return StoreResult.STORED, version

    def add(self, key: str, value: str, ttl: int = 0) -> Tuple[StoreResult, Optional[int]]:
        """
        Escreve somente se a chave estiver ausente.

        Returns:
            (STORED, nova versão) ou (NOT_STORED, None).
        """
        validate_key(key)
        with self.lock:
            if self._live_item(key) is not None:
                self._count("add", StoreResult.NOT_STORED.value)
                return StoreResult.NOT_STORED, None
            version = self._next_version()
            self.items[key] = (value, version, self._expires_at(ttl))
            self._count("add", StoreResult.STORED.value)
        return StoreResult.STORED, version

    def cas(self, key: str, value: str, ttl: int, version: int) -> Tuple[StoreResult, Optional[int]]:
        """
        Compare-and-swap: escreve somente se a versão ainda for a atual.

        Returns:
            (STORED, nova versão), (EXISTS, None) se a versão estiver obsoleta
            ou (NOT_FOUND, None) se a chave não existir.
        """
        validate_key(key)
        with self.lock:
            item = self._live_item(key)
            if item is None:
                self._count("cas", StoreResult.NOT_FOUND.value)
                return StoreResult.NOT_FOUND, None
            if item[1] != version:
                self._count("cas", StoreResult.EXISTS.value)
                self.logger.debug(f"CAS rejeitado para {key}: versão {version}, atual {item[1]}")
                return StoreResult.EXISTS, None
            new_version = self._next_version()
            self.items[key] = (value, new_version, self._expires_at(ttl))
            self._count("cas", StoreResult.STORED.value)
        return StoreResult.STORED, new_version

    def delete(self, key: str) -> StoreResult:
        """
        Remove uma chave. Remover uma chave ausente não é erro.

        Returns:
            DELETED ou NOT_FOUND.
        """
        validate_key(key)
        with self.lock:
            if self._live_item(key) is None:
                self._count("delete", StoreResult.NOT_FOUND.value)
                return StoreResult.NOT_FOUND
            del self.items[key]
            self._count("delete", StoreResult.DELETED.value)
        return StoreResult.DELETED

    def get_status(self) -> Dict[str, Any]:
        """
        Obtém o status atual do cache.

        Returns:
            Status do cache.
        """
        with self.lock:
            return {
                "role": "store",
                "items": len(self.items),
                "last_version": self.last_version,
                "operations": dict(self.counters),
                "timestamp": int(self.clock() * 1000)
            }
