"""
Módulo de comunicação HTTP compartilhado entre componentes.
"""
import logging
from typing import Dict, Any, Optional, Tuple

import httpx

from common.exceptions import StoreConnectionError

logger = logging.getLogger("communication")

class HttpClient:
    """
    Cliente HTTP síncrono para comunicação com o servidor de cache.

    Características:
    1. Suporte a timeouts configuráveis
    2. Uma conexão keep-alive por instância (cada worker tem a sua)
    3. Serialização/desserialização automática de JSON

    Falhas de transporte (conexão recusada, timeout, conexão derrubada) são
    convertidas em StoreConnectionError. Respostas HTTP de erro não são
    exceções: o chamador recebe o status e decide.
    """

    def __init__(self, base_url: str = "", timeout: float = 10.0, max_connections: int = 1,
                 client: Optional[httpx.Client] = None):
        """
        Inicializa o cliente HTTP.

        Args:
            base_url: URL base do servidor (ex.: http://localhost:8080)
            timeout: Timeout padrão para requisições em segundos
            max_connections: Número máximo de conexões concorrentes
            client: Cliente httpx já construído (ex.: TestClient do FastAPI)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.limits = httpx.Limits(max_connections=max_connections)
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """
        Obtém o cliente HTTP, criando-o se necessário.

        Returns:
            httpx.Client: Cliente HTTP síncrono
        """
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                limits=self.limits
            )
        return self._client

    def close(self):
        """Fecha o cliente HTTP."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Tuple[int, Dict[str, Any]]:
        """
        Executa uma requisição e devolve o status com o corpo JSON.

        Args:
            method: Método HTTP (GET, PUT, POST, DELETE)
            path: Caminho relativo à URL base
            json: Corpo a ser enviado como JSON

        Returns:
            Tupla (status, corpo)

        Raises:
            StoreConnectionError: Se o servidor estiver inacessível
        """
        try:
            response = self.client.request(method, path, json=json)
        except httpx.TransportError as e:
            logger.error(f"Falha de transporte em {method} {path}: {e}")
            raise StoreConnectionError(f"{method} {self.base_url}{path}: {e}") from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {"detail": response.text}
        return response.status_code, body

    def get(self, path: str) -> Tuple[int, Dict[str, Any]]:
        return self.request("GET", path)

    def put(self, path: str, json: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        return self.request("PUT", path, json=json)

    def post(self, path: str, json: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        return self.request("POST", path, json=json)

    def delete(self, path: str) -> Tuple[int, Dict[str, Any]]:
        return self.request("DELETE", path)
