"""
Testes unitários para o driver concorrente.
"""
import threading

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from common.exceptions import StoreConnectionError
from get_apply_set.driver import RunSummary, run_concurrent
from get_apply_set.sequencer import next_value, nth_value
from get_apply_set.strategies import AtomicStrategy, NonAtomicStrategy
from get_apply_set.verifier import expected_value, verify
from store.client import HttpStoreConnection, MemoryStoreConnection, connect


def worker_failures(error):
    return REGISTRY.get_sample_value("gas_driver_worker_failures_total", {"error": error}) or 0


@pytest.mark.parametrize("concurrency", [1, 2, 8])
@pytest.mark.parametrize("iterations", [1, 10, 100])
def test_atomic_is_race_free(memory_locator, concurrency, iterations):
    """O laço de CAS termina sempre no valor do oráculo, para qualquer intercalação."""
    # Act
    summary = run_concurrent(concurrency, AtomicStrategy(), memory_locator, "counter", iterations)

    # Assert
    with connect(memory_locator) as conn:
        verification = verify(conn, "counter", concurrency, iterations)
    assert verification.matches, verification.report()
    assert verification.actual == nth_value(concurrency * iterations)
    assert summary.updates == concurrency * iterations


def test_atomic_is_race_free_with_network_latency():
    locator = "memory://slow?latency=0.0005"

    run_concurrent(4, AtomicStrategy(), locator, "counter", 25)

    with connect(locator) as conn:
        assert conn.get("counter") == expected_value(4, 25)


def test_end_to_end_two_workers_five_iterations(memory_locator):
    # Act
    summary = run_concurrent(2, AtomicStrategy(), memory_locator, "counter", 5, next_value)

    # Assert
    with connect(memory_locator) as conn:
        verification = verify(conn, "counter", 2, 5, strategy="atomic")
    assert isinstance(summary, RunSummary)
    assert summary.strategy == "atomic"
    assert summary.updates == 10
    assert verification.expected == "19"
    assert verification.actual == "19"
    assert verification.report() == "expected: 19, actual: 19"


def test_nonatomic_exposes_lost_updates():
    """
    Sob contenção a estratégia ingênua perde atualizações. Se nenhuma de
    várias execuções perder nada, o teste deixou de exercitar a corrida.
    """
    locator = "memory://race?latency=0.001"
    outcomes = []

    for _ in range(5):
        run_concurrent(2, NonAtomicStrategy(), locator, "counter", 50)
        with connect(locator) as conn:
            verification = verify(conn, "counter", 2, 50, strategy="nonatomic")
        outcomes.append(verification)
        if not verification.matches:
            break

    assert any(not v.matches for v in outcomes), "Nenhuma atualização perdida em 5 execuções"
    lost = [v.lost_updates() for v in outcomes if not v.matches]
    assert all(count > 0 for count in lost), "O valor observado nunca passa do esperado"


def test_key_is_deleted_before_workers_start(memory_store, memory_locator):
    # Arrange
    memory_store.set("counter", "not-a-number")

    # Act
    run_concurrent(2, AtomicStrategy(), memory_locator, "counter", 3)

    # Assert
    assert memory_store.get("counter") == expected_value(2, 3)


def test_zero_iterations_leaves_key_absent(memory_store, memory_locator):
    memory_store.set("counter", "7")

    summary = run_concurrent(3, AtomicStrategy(), memory_locator, "counter", 0)

    with connect(memory_locator) as conn:
        verification = verify(conn, "counter", 3, 0)
    assert summary.updates == 0
    assert verification.expected is None
    assert verification.actual is None
    assert verification.matches


def test_each_worker_opens_its_own_connection(memory_store, memory_locator):
    # Arrange
    opened = []
    lock = threading.Lock()
    worker_threads = set()

    class TrackingConnection(MemoryStoreConnection):
        def gets(self, key):
            with lock:
                worker_threads.add((threading.current_thread().name, id(self)))
            return super().gets(key)

    def connector(locator):
        conn = TrackingConnection(memory_store)
        with lock:
            opened.append(conn)
        return conn

    # Act
    run_concurrent(4, AtomicStrategy(), memory_locator, "counter", 5, connector=connector)

    # Assert
    assert len(opened) == 4 + 1, "Uma conexão por worker mais a do DELETE inicial"
    assert len({id(conn) for conn in opened}) == len(opened)
    assert all(conn.closed for conn in opened), "Todas as conexões devem ser fechadas"
    threads_per_connection = {}
    for thread_name, conn_id in worker_threads:
        threads_per_connection.setdefault(conn_id, set()).add(thread_name)
    assert all(len(names) == 1 for names in threads_per_connection.values()), \
        "Nenhuma conexão pode ser compartilhada entre workers"


def test_worker_failure_propagates(memory_store, memory_locator):
    # Arrange
    opened = []

    class DroppingConnection(MemoryStoreConnection):
        def __init__(self, store, fail_after):
            super().__init__(store)
            self.remaining = fail_after

        def gets(self, key):
            if self.remaining == 0:
                raise StoreConnectionError("connection reset")
            self.remaining -= 1
            return super().gets(key)

    def connector(locator):
        # O primeiro worker perde a conexão cedo; os outros funcionariam
        conn = DroppingConnection(memory_store, fail_after=2 if len(opened) == 1 else 10 ** 6)
        opened.append(conn)
        return conn

    # Act / Assert
    with pytest.raises(StoreConnectionError):
        run_concurrent(2, AtomicStrategy(), memory_locator, "counter", 1000, connector=connector)

    assert all(conn.closed for conn in opened)


def test_connect_failure_in_worker_propagates(memory_store, memory_locator, caplog):
    # Arrange
    calls = []

    def connector(locator):
        calls.append(locator)
        if len(calls) > 1:
            raise StoreConnectionError("unreachable")
        return MemoryStoreConnection(memory_store)

    before = worker_failures("StoreConnectionError")

    # Act
    with pytest.raises(StoreConnectionError):
        run_concurrent(2, AtomicStrategy(), memory_locator, "counter", 5, connector=connector)

    # Assert
    assert worker_failures("StoreConnectionError") > before, "Falha ao conectar deve contar como falha do worker"
    assert any("falhou" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize("concurrency,iterations", [(0, 1), (1, -1)])
def test_invalid_run_parameters(memory_locator, concurrency, iterations):
    with pytest.raises(ValueError):
        run_concurrent(concurrency, AtomicStrategy(), memory_locator, "counter", iterations)


def test_atomic_over_http(store_app, store):
    """Os mesmos workers, agora falando HTTP com o servidor de cache."""
    # Arrange
    def connector(locator):
        return HttpStoreConnection(client=TestClient(store_app))

    # Act
    run_concurrent(2, AtomicStrategy(), "http://testserver", "counter", 10, connector=connector)

    # Assert
    assert store.get("counter") == expected_value(2, 10)
