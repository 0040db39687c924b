"""
Configuração global para testes.
Contém fixtures compartilhadas entre testes unitários e de integração.
"""
def pytest_addoption(parser):
    """Adicionar opções específicas para testes de integração."""
    parser.addoption(
        "--runintegration", action="store_true", default=False, help="Executar testes de integração"
    )

import logging

import pytest
from fastapi.testclient import TestClient

from store.client import get_memory_store, reset_memory_stores
from store.main import create_app
from store.store import VersionedStore

# Configurar logging para testes
logging.basicConfig(level=logging.INFO)


class FakeClock:
    """Relógio controlado manualmente para testes de expiração."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_memory_stores():
    """Cada teste começa sem caches em memória compartilhados."""
    reset_memory_stores()
    yield
    reset_memory_stores()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    """Cache isolado, fora do registro de caches em memória."""
    return VersionedStore()


@pytest.fixture
def memory_locator():
    return "memory://test"


@pytest.fixture
def memory_store(memory_locator):
    """Cache compartilhado por todas as conexões com memory_locator."""
    return get_memory_store("test")


@pytest.fixture
def store_app(store):
    return create_app(store)


@pytest.fixture
def api_client(store_app):
    """Cliente HTTP em processo para o servidor de cache."""
    with TestClient(store_app) as client:
        yield client
