"""
Testes unitários para o oráculo e o verificador.
"""
import pytest

from get_apply_set.sequencer import nth_value
from get_apply_set.verifier import Verification, expected_value, verify
from store.client import connect


def test_expected_value_replays_sequencer():
    assert expected_value(2, 5) == "19"
    assert expected_value(1, 1) == "0"
    assert expected_value(3, 0) is None


@pytest.mark.parametrize("concurrency,iterations", [(1, 1), (2, 10), (8, 100)])
def test_expected_value_matches_closed_form(concurrency, iterations):
    assert expected_value(concurrency, iterations) == nth_value(concurrency * iterations)


def test_expected_value_with_custom_sequencer():
    def double(value):
        return "1" if value is None else str(int(value) * 2)

    assert expected_value(2, 3, double) == "32"


def test_verify_does_not_depend_on_store_for_expected(memory_store, memory_locator):
    # Arrange
    memory_store.set("counter", "19")

    # Act
    with connect(memory_locator) as conn:
        verification = verify(conn, "counter", 2, 5, strategy="atomic")

    # Assert
    assert verification.matches
    assert verification.strategy == "atomic"
    assert verification.lost_updates() == 0


def test_verify_reports_mismatch(memory_store, memory_locator):
    memory_store.set("counter", "8")

    with connect(memory_locator) as conn:
        verification = verify(conn, "counter", 2, 5, strategy="nonatomic")

    assert not verification.matches
    assert verification.report() == "expected: 19, actual: 8"
    assert verification.lost_updates() == 5


def test_verify_with_absent_key(memory_locator):
    with connect(memory_locator) as conn:
        verification = verify(conn, "counter", 1, 1)

    assert verification.actual is None
    assert verification.report() == "expected: 0, actual: None"
    assert verification.lost_updates() == 1


def test_lost_updates_unknown_for_values_outside_sequence():
    assert Verification(expected="19", actual="5").lost_updates() is None
    assert Verification(expected="19", actual="garbage").lost_updates() is None
