"""
Ponto de entrada da aplicação FastAPI para o servidor de cache versionado.
"""
import time
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from common.exceptions import InvalidKeyError
from common.models import (
    CasRequest,
    HealthResponse,
    ItemResponse,
    StoreResult,
    WriteRequest,
    WriteResponse
)
from store.config import DEFAULT_TTL, HOST, PORT
from store.store import VersionedStore

# Configurar logging estruturado
log = structlog.get_logger()


def create_app(store: Optional[VersionedStore] = None) -> FastAPI:
    """
    Cria a aplicação FastAPI ligada a um cache.

    Args:
        store: Cache a ser servido; um novo é criado se omitido.

    Returns:
        Aplicação FastAPI.
    """
    app = FastAPI(title="Versioned Store", description="Cache chave-valor com CAS")
    app.state.store = store or VersionedStore()
    app.state.start_time = time.time()

    @app.exception_handler(InvalidKeyError)
    async def invalid_key_handler(request: Request, exc: InvalidKeyError):
        log.warning("Invalid key", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/items/{key:path}", response_model=ItemResponse)
    async def get_item(key: str):
        """Endpoint de leitura (GET e GETS do memcached)"""
        item = app.state.store.gets(key)
        if item is None:
            raise HTTPException(status_code=404, detail=f"Chave {key} não encontrada")
        value, version = item
        return ItemResponse(key=key, value=value, version=version)

    @app.put("/items/{key:path}", response_model=WriteResponse)
    async def set_item(key: str, request: WriteRequest):
        """Endpoint de escrita incondicional"""
        result, version = app.state.store.set(key, request.value, request.ttl or DEFAULT_TTL)
        log.debug("Set", key=key, version=version)
        return WriteResponse(result=result, version=version)

    @app.delete("/items/{key:path}", response_model=WriteResponse)
    async def delete_item(key: str):
        """Endpoint de remoção; remover chave ausente não é erro"""
        result = app.state.store.delete(key)
        log.debug("Delete", key=key, result=result.value)
        return WriteResponse(result=result)

    @app.post("/add/{key:path}", response_model=WriteResponse)
    async def add_item(key: str, request: WriteRequest):
        """Endpoint de escrita condicionada à ausência da chave"""
        result, version = app.state.store.add(key, request.value, request.ttl or DEFAULT_TTL)
        log.debug("Add", key=key, result=result.value, version=version)
        return WriteResponse(result=result, version=version)

    @app.post("/cas/{key:path}", response_model=WriteResponse)
    async def cas_item(key: str, request: CasRequest):
        """Endpoint de compare-and-swap"""
        result, version = app.state.store.cas(key, request.value, request.ttl or DEFAULT_TTL, request.version)
        if result != StoreResult.STORED:
            log.debug("CAS rejected", key=key, result=result.value, expected_version=request.version)
        return WriteResponse(result=result, version=version)

    @app.get("/status")
    async def get_status():
        """Retorna informações sobre o estado atual do cache"""
        status = app.state.store.get_status()
        status["uptime_seconds"] = time.time() - app.state.start_time
        return status

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Endpoint para verificação de saúde"""
        return HealthResponse()

    @app.get("/metrics")
    async def metrics():
        """Expõe métricas no formato Prometheus"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()


def run():
    log.info("Store starting up", host=HOST, port=PORT)
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    run()
