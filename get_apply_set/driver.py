"""
Driver concorrente: N workers, cada um com sua própria conexão, aplicando a
mesma estratégia sobre a mesma chave.
"""
import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable

from pydantic import BaseModel

from common.metrics import driver_metrics
from get_apply_set.sequencer import Sequencer, next_value
from get_apply_set.strategies import Strategy
from store.client import StoreConnection, connect

logger = logging.getLogger(__name__)

Connector = Callable[[str], StoreConnection]


class RunSummary(BaseModel):
    """Resumo de uma execução concluída."""
    strategy: str
    concurrency: int
    iterations: int
    updates: int
    duration_seconds: float


def repeat(worker_id: int, connector: Connector, locator: str, key: str, iterations: int,
           strategy: Strategy, sequencer: Sequencer, stop: threading.Event) -> int:
    """
    Corpo de um worker: abre a própria conexão e chama a estratégia `iterations` vezes.

    Args:
        worker_id: Identificador do worker, usado apenas nos logs.
        connector: Fábrica de conexões.
        locator: Localizador do cache.
        key: Chave compartilhada.
        iterations: Número de atualizações a aplicar.
        strategy: Estratégia de atualização.
        sequencer: Sequenciador aplicado a cada atualização.
        stop: Sinalizado quando outro worker falhou.

    Returns:
        Número de atualizações aplicadas.
    """
    conn = None
    done = 0
    try:
        conn = connector(locator)
        for _ in range(iterations):
            if stop.is_set():
                logger.warning(f"Worker {worker_id} interrompido após {done} atualizações")
                break
            strategy(conn, key, sequencer)
            done += 1
    except Exception as e:
        logger.error(f"Worker {worker_id} falhou após {done} atualizações: {e}")
        driver_metrics["worker_failures"].labels(error=type(e).__name__).inc()
        raise
    finally:
        if conn is not None:
            conn.close()

    logger.debug(f"Worker {worker_id} concluiu {done} atualizações")
    return done


def run_concurrent(concurrency: int, strategy: Strategy, locator: str, key: str, iterations: int,
                   sequencer: Sequencer = next_value, connector: Connector = connect) -> RunSummary:
    """
    Executa `concurrency` workers em paralelo sobre `key`.

    A chave é removida uma vez antes de qualquer worker começar. A função só
    retorna depois que todos os workers terminam. Se algum worker falhar, os
    demais param na próxima iteração e o primeiro erro é re-lançado.

    Args:
        concurrency: Número de workers (threads).
        strategy: Estratégia chamada como strategy(conn, key, sequencer).
        locator: Localizador do cache, repassado por valor a cada worker.
        key: Chave compartilhada.
        iterations: Atualizações por worker.
        sequencer: Sequenciador de valores.
        connector: Fábrica de conexões (uma conexão nova por worker).

    Returns:
        RunSummary da execução.
    """
    if concurrency < 1:
        raise ValueError("concurrency deve ser pelo menos 1")
    if iterations < 0:
        raise ValueError("iterations não pode ser negativo")

    strategy_name = strategy.name or type(strategy).__name__

    with connector(locator) as conn:
        conn.delete(key)

    logger.info(f"Iniciando {concurrency} workers x {iterations} iterações ({strategy_name}) sobre {key}")

    stop = threading.Event()
    start = time.time()

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="gas-worker") as executor:
        futures = [
            executor.submit(repeat, worker_id, connector, locator, key, iterations, strategy, sequencer, stop)
            for worker_id in range(1, concurrency + 1)
        ]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        first_error = next((f.exception() for f in done if f.exception() is not None), None)
        if first_error is not None:
            stop.set()

    duration = time.time() - start

    if first_error is not None:
        driver_metrics["runs"].labels(strategy=strategy_name, status="failed").inc()
        raise first_error

    driver_metrics["runs"].labels(strategy=strategy_name, status="completed").inc()
    summary = RunSummary(
        strategy=strategy_name,
        concurrency=concurrency,
        iterations=iterations,
        updates=sum(f.result() for f in futures),
        duration_seconds=duration
    )
    logger.info(f"Execução concluída: {summary.updates} atualizações em {duration:.3f}s")
    return summary
