"""
Cache chave-valor versionado com semântica de memcached.

Responsabilidades:
- Ler itens com sua versão (GET / GETS)
- Escritas incondicionais (SET), condicionadas à ausência (ADD) e à versão (CAS)
- Expiração por TTL
- Servir tudo isso via HTTP (store.main) e localmente (store.client)
"""

__version__ = "1.0.0"
