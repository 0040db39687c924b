"""
Sequência determinística de valores aplicada ao contador compartilhado.

    next(ausente) = 0
    next(i)       = i + 3 se i for par, i + 1 se for ímpar

Começando da ausência: 0, 3, 4, 7, 8, 11, 12, ...
"""
import re
from typing import Callable, Optional

from common.exceptions import ParseError

# Sinal opcional seguido de dígitos ASCII; int() sozinho aceitaria espaços e "_"
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

Sequencer = Callable[[Optional[str]], str]


def next_int(value: int) -> int:
    if value % 2 == 0:
        return value + 3
    return value + 1


def parse_value(value) -> int:
    """
    Converte o valor armazenado em inteiro.

    Raises:
        ParseError: O valor não é a codificação de um inteiro.
    """
    if isinstance(value, bytes):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError:
            raise ParseError(value) from None
    if not isinstance(value, str) or not _INTEGER_RE.fullmatch(value):
        raise ParseError(value)
    return int(value)


def next_value(current: Optional[str]) -> str:
    """
    Calcula o próximo valor da sequência.

    Args:
        current: Valor atual ou None se a chave estiver ausente.

    Returns:
        Próximo valor, codificado como string.
    """
    if current is None:
        return "0"
    return str(next_int(parse_value(current)))


def iterate(count: int, sequencer: Sequencer = next_value) -> Optional[str]:
    """Aplica o sequenciador `count` vezes partindo da ausência."""
    value = None
    for _ in range(count):
        value = sequencer(value)
    return value


def nth_value(count: int) -> Optional[str]:
    """
    Forma fechada de iterate(count) para o sequenciador padrão.

    Depois de n aplicações o valor é 2(n-1) para n ímpar e 2n-1 para n par.
    """
    if count < 0:
        raise ValueError("count não pode ser negativo")
    if count == 0:
        return None
    if count % 2:
        return str(2 * (count - 1))
    return str(2 * count - 1)


def position(value: Optional[str]) -> int:
    """
    Inversa de nth_value: quantas aplicações produzem `value`.

    Raises:
        ParseError: O valor não é um inteiro.
        ValueError: O valor não pertence à sequência.
    """
    if value is None:
        return 0
    number = parse_value(value)
    count = number // 2 + 1 if number % 2 == 0 else (number + 1) // 2
    if count < 1 or nth_value(count) != str(number):
        raise ValueError(f"{value!r} não pertence à sequência")
    return count
