"""
Oráculo e verificador.

O valor esperado é obtido repetindo o sequenciador concurrency x iterations
vezes a partir da ausência, sem consultar o cache. O valor observado é uma
leitura simples depois que todos os workers terminaram.
"""
import logging
from typing import Optional

from pydantic import BaseModel

from common.logging import LEVELS
from get_apply_set.sequencer import Sequencer, iterate, next_value, position
from store.client import StoreConnection

logger = logging.getLogger(__name__)


class Verification(BaseModel):
    """Comparação entre o valor esperado e o valor observado."""
    strategy: str = ""
    expected: Optional[str] = None
    actual: Optional[str] = None

    @property
    def matches(self) -> bool:
        return self.expected == self.actual

    def lost_updates(self) -> Optional[int]:
        """
        Quantas atualizações faltam no valor observado.

        Só faz sentido para o sequenciador padrão; retorna None quando algum
        dos valores não pertence à sequência padrão.
        """
        try:
            return position(self.expected) - position(self.actual)
        except ValueError:
            return None

    def report(self) -> str:
        return f"expected: {self.expected}, actual: {self.actual}"


def expected_value(concurrency: int, iterations: int, sequencer: Sequencer = next_value) -> Optional[str]:
    """Valor final esperado para concurrency x iterations atualizações sem perdas."""
    return iterate(concurrency * iterations, sequencer)


def verify(conn: StoreConnection, key: str, concurrency: int, iterations: int,
           sequencer: Sequencer = next_value, strategy: str = "") -> Verification:
    """
    Compara o oráculo com o valor armazenado em `key`.

    Args:
        conn: Conexão usada para a leitura final.
        key: Chave compartilhada.
        concurrency: Número de workers da execução.
        iterations: Atualizações por worker.
        sequencer: Sequenciador usado na execução.
        strategy: Nome da estratégia, apenas informativo.

    Returns:
        Verification com os dois valores.
    """
    verification = Verification(
        strategy=strategy,
        expected=expected_value(concurrency, iterations, sequencer),
        actual=conn.get(key)
    )

    if verification.matches:
        logger.info(f"Verificação OK ({strategy}): {verification.report()}")
    else:
        logger.log(LEVELS["IMPORTANT"], f"Divergência ({strategy}): {verification.report()}, "
                   f"atualizações perdidas: {verification.lost_updates()}")
    return verification
