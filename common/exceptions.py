"""
Hierarquia de erros compartilhada entre o cliente do cache e as estratégias de atualização.
"""


class StoreError(Exception):
    """Erro base para qualquer falha envolvendo o cache."""


class StoreConnectionError(StoreError):
    """O cache está inacessível ou a conexão caiu. Sempre fatal."""


class TransientStoreError(StoreError):
    """
    O cache respondeu, mas com uma falha do lado do servidor.

    A estratégia atômica trata este erro como mais uma razão para tentar de novo.
    """

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


class InvalidKeyError(StoreError, ValueError):
    """A chave não respeita as regras de chave do memcached."""


class ParseError(StoreError, ValueError):
    """
    Valor armazenado não é a codificação de um inteiro.

    Indica uma atualização perdida ou corrompida; nunca deve ser re-tentado.
    """

    def __init__(self, value):
        super().__init__(f"Valor armazenado não é um inteiro: {value!r}")
        self.value = value


class VersionConflict(StoreError):
    """CAS rejeitado: a versão lida já não é a versão atual da chave."""


class AddConflict(StoreError):
    """ADD rejeitado: outro worker criou a chave primeiro."""


class RetryLimitExceeded(StoreError):
    """O laço de CAS atingiu o limite de tentativas configurado."""

    def __init__(self, key: str, attempts: int):
        super().__init__(f"Limite de {attempts} tentativas excedido para a chave {key!r}")
        self.key = key
        self.attempts = attempts
