"""
Configurações para o servidor de cache.
"""
from common.utils import get_env_int, get_env_str


# Configurações do servidor
HOST = get_env_str("HOST", "0.0.0.0")
PORT = get_env_int("PORT", 8080)

# TTL aplicado quando o cliente não informa nenhum (0 = sem expiração)
DEFAULT_TTL = get_env_int("DEFAULT_TTL", 0)
