"""
Testes unitários para o sequenciador de valores.
"""
import pytest

from common.exceptions import ParseError
from get_apply_set.sequencer import iterate, next_int, next_value, nth_value, parse_value, position


def test_next_value_from_absent():
    """Ausência produz o primeiro valor da sequência."""
    assert next_value(None) == "0"


@pytest.mark.parametrize("current,expected", [
    ("0", "3"),
    ("3", "4"),
    ("4", "7"),
    ("18", "21"),
    ("19", "20"),
    ("-2", "1"),
    ("-3", "-2"),
    ("+6", "9"),
])
def test_next_value_even_and_odd(current, expected):
    assert next_value(current) == expected


def test_sequence_is_strictly_increasing_without_fixed_point():
    for i in range(-100, 100):
        assert next_int(i) > i, f"next({i}) deve ser maior que {i}"


def test_trace_of_ten_updates():
    """Traço das dez primeiras aplicações a partir da ausência."""
    trace = []
    value = None
    for _ in range(10):
        value = next_value(value)
        trace.append(value)

    assert trace == ["0", "3", "4", "7", "8", "11", "12", "15", "16", "19"]


@pytest.mark.parametrize("garbage", ["", "abc", " 1", "1 ", "1_000", "1.5", "0x10", "٣", "--1"])
def test_next_value_rejects_non_integer(garbage):
    with pytest.raises(ParseError) as exc_info:
        next_value(garbage)

    assert exc_info.value.value == garbage


def test_parse_value_accepts_ascii_bytes():
    assert parse_value(b"42") == 42
    assert next_value(b"4") == "7"

    with pytest.raises(ParseError):
        parse_value(b"\xff")


def test_closed_form_matches_replay():
    for count in range(0, 80):
        assert nth_value(count) == iterate(count), f"Forma fechada diverge em n={count}"


def test_closed_form_rejects_negative():
    with pytest.raises(ValueError):
        nth_value(-1)


def test_iterate_with_custom_sequencer():
    def plus_one(value):
        return "1" if value is None else str(int(value) + 1)

    assert iterate(0, plus_one) is None
    assert iterate(5, plus_one) == "5"


def test_position_is_inverse_of_closed_form():
    assert position(None) == 0
    for count in range(1, 80):
        assert position(nth_value(count)) == count


@pytest.mark.parametrize("value", ["1", "2", "5", "-1"])
def test_position_rejects_values_outside_sequence(value):
    with pytest.raises(ValueError):
        position(value)
