"""
Estratégias de get-apply-set sobre uma única chave do cache.

NonAtomicStrategy lê, calcula e escreve sem verificar versão: duas
atualizações concorrentes podem ler o mesmo valor e uma delas se perde.
Ela existe para tornar a corrida observável.

AtomicStrategy usa controle de concorrência otimista: lê o valor com a
versão e só escreve se a versão ainda for a atual (CAS), ou, com a chave
ausente, só se ela continuar ausente (ADD). Qualquer rejeição recomeça do
zero, sem espera entre tentativas.
"""
import logging
from typing import Dict, Optional, Type

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_none
)

from common.exceptions import (
    AddConflict,
    RetryLimitExceeded,
    TransientStoreError,
    VersionConflict
)
from common.metrics import strategy_metrics
from get_apply_set.config import DEFAULT_EXPIRATION
from get_apply_set.sequencer import Sequencer, next_value
from store.client import StoreConnection

logger = logging.getLogger(__name__)

CONFLICT_KINDS = {
    VersionConflict: "version",
    AddConflict: "add",
    TransientStoreError: "transient",
}


class Strategy:
    """
    Uma forma de aplicar o sequenciador ao valor armazenado em `key`.

    Instâncias são chamáveis: strategy(conn, key, sequencer).
    """
    name = ""

    def __init__(self, ttl: int = DEFAULT_EXPIRATION):
        """
        Args:
            ttl: Expiração em segundos usada em todas as escritas.
        """
        self.ttl = ttl

    def update(self, conn: StoreConnection, key: str, sequencer: Sequencer = next_value) -> str:
        """
        Aplica uma atualização.

        Returns:
            O valor escrito.
        """
        raise NotImplementedError

    def __call__(self, conn: StoreConnection, key: str, sequencer: Sequencer = next_value) -> str:
        return self.update(conn, key, sequencer)

    def __repr__(self):
        return f"{type(self).__name__}(ttl={self.ttl})"


class NonAtomicStrategy(Strategy):
    """Leitura seguida de escrita incondicional. Sujeita a atualizações perdidas."""
    name = "nonatomic"

    def update(self, conn: StoreConnection, key: str, sequencer: Sequencer = next_value) -> str:
        current = conn.get(key)
        value = sequencer(current)
        conn.set(key, value, self.ttl)
        strategy_metrics["updates"].labels(strategy=self.name).inc()
        return value


class AtomicStrategy(Strategy):
    """
    Laço de CAS com re-tentativa.

    Cada saída bem-sucedida corresponde a exatamente uma escrita aceita,
    baseada na versão observada naquele momento.
    """
    name = "atomic"

    RETRYABLE = (VersionConflict, AddConflict, TransientStoreError)

    def __init__(self, ttl: int = DEFAULT_EXPIRATION, max_attempts: Optional[int] = None):
        """
        Args:
            ttl: Expiração em segundos usada em todas as escritas.
            max_attempts: Limite de tentativas por atualização. None = sem limite.
        """
        super().__init__(ttl)
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts deve ser pelo menos 1")
        self.max_attempts = max_attempts

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_never if self.max_attempts is None else stop_after_attempt(self.max_attempts),
            wait=wait_none(),
            retry=retry_if_exception_type(self.RETRYABLE),
            after=self._record_conflict
        )

    @staticmethod
    def _record_conflict(retry_state):
        error = retry_state.outcome.exception()
        kind = CONFLICT_KINDS.get(type(error), "transient")
        strategy_metrics["conflicts"].labels(kind=kind).inc()
        logger.debug(f"Tentativa {retry_state.attempt_number} descartada ({kind}): {error}")

    def _attempt(self, conn: StoreConnection, key: str, sequencer: Sequencer) -> str:
        item = conn.gets(key)

        if item is None:
            value = sequencer(None)
            if not conn.add(key, value, self.ttl):
                raise AddConflict(f"Chave {key} criada por outro worker")
            return value

        current, version = item
        value = sequencer(current)
        if not conn.cas(key, value, self.ttl, version):
            raise VersionConflict(f"Versão {version} de {key} obsoleta")
        return value

    def update(self, conn: StoreConnection, key: str, sequencer: Sequencer = next_value) -> str:
        try:
            for attempt in self._retrying():
                with attempt:
                    value = self._attempt(conn, key, sequencer)
        except RetryError as e:
            logger.error(f"Limite de {self.max_attempts} tentativas excedido para {key}")
            raise RetryLimitExceeded(key, self.max_attempts) from e.last_attempt.exception()

        strategy_metrics["updates"].labels(strategy=self.name).inc()
        return value

    def __repr__(self):
        return f"{type(self).__name__}(ttl={self.ttl}, max_attempts={self.max_attempts})"


STRATEGIES: Dict[str, Type[Strategy]] = {
    AtomicStrategy.name: AtomicStrategy,
    NonAtomicStrategy.name: NonAtomicStrategy,
}


def get_strategy(name: str, **kwargs) -> Strategy:
    """
    Constrói a estratégia registrada com o nome dado.

    Raises:
        ValueError: Nome desconhecido.
    """
    if name not in STRATEGIES:
        raise ValueError(f"Estratégia desconhecida: {name}. Opções: {'|'.join(sorted(STRATEGIES))}")
    return STRATEGIES[name](**kwargs)
