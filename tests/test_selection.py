"""
Tests for largest-first coin selection.
"""

from __future__ import annotations

import pytest

from chanfee.errors import InsufficientFunds
from chanfee.models import ScriptType, UnspentOutput
from chanfee.selection import eligible_utxos, select_coins


def test_selects_largest_first(scenario_utxos: list[UnspentOutput]) -> None:
    """Test that the largest UTXO is selected first."""
    selection = select_coins(scenario_utxos, amount=60_000, fee=1_000)

    assert [u.value for u in selection.utxos] == [100_000]
    assert selection.total_value == 100_000
    assert selection.change_value == 39_000
    assert selection.fee == 1_000


def test_accumulates_until_covered(scenario_utxos: list[UnspentOutput]) -> None:
    """Test accumulating UTXOs until amount + fee is covered."""
    selection = select_coins(scenario_utxos, amount=120_000, fee=2_330)

    assert [u.value for u in selection.utxos] == [100_000, 50_000]
    assert selection.change_value == 150_000 - 120_000 - 2_330


def test_unordered_input(scenario_utxos: list[UnspentOutput]) -> None:
    """Test selection from unsorted input."""
    shuffled = [scenario_utxos[2], scenario_utxos[0], scenario_utxos[1]]
    selection = select_coins(shuffled, amount=120_000, fee=2_330)

    assert [u.value for u in selection.utxos] == [100_000, 50_000]


def test_ties_keep_input_order() -> None:
    """Test that equal values keep their input order."""
    utxos = [
        UnspentOutput(value=10_000, txid="first"),
        UnspentOutput(value=20_000, txid="big"),
        UnspentOutput(value=10_000, txid="second"),
        UnspentOutput(value=10_000, txid="third"),
    ]

    selection = select_coins(utxos, amount=35_000, fee=0)

    assert [u.txid for u in selection.utxos] == ["big", "first", "second"]


def test_exact_match_has_zero_change() -> None:
    """Test an exact match leaves no change."""
    utxos = [UnspentOutput(value=50_000)]
    selection = select_coins(utxos, amount=50_000, fee=0)

    assert selection.change_value == 0
    assert len(selection.utxos) == 1


def test_insufficient_funds(scenario_utxos: list[UnspentOutput]) -> None:
    """Test InsufficientFunds when the balance is too low."""
    with pytest.raises(InsufficientFunds) as exc_info:
        select_coins(scenario_utxos, amount=180_000, fee=1)

    assert exc_info.value.needed == 180_001
    assert exc_info.value.available == 180_000


def test_empty_utxo_set() -> None:
    """Test InsufficientFunds for an empty wallet."""
    with pytest.raises(InsufficientFunds) as exc_info:
        select_coins([], amount=1, fee=0)

    assert exc_info.value.available == 0


def test_does_not_mutate_input(scenario_utxos: list[UnspentOutput]) -> None:
    """Test that the caller's list is not reordered."""
    original = list(scenario_utxos)
    reversed_utxos = list(reversed(scenario_utxos))
    select_coins(reversed_utxos, amount=10_000, fee=0)

    assert reversed_utxos == list(reversed(original))


def test_min_confirmations_filters_outputs() -> None:
    """Test that unconfirmed UTXOs are skipped."""
    utxos = [
        UnspentOutput(value=100_000, confirmations=0),
        UnspentOutput(value=60_000, confirmations=3),
        UnspentOutput(value=40_000, confirmations=None),
    ]

    selection = select_coins(utxos, amount=50_000, fee=0, min_confirmations=1)

    assert [u.value for u in selection.utxos] == [60_000]


def test_min_confirmations_can_cause_insufficient_funds() -> None:
    """Test that filtering can leave too little to spend."""
    utxos = [
        UnspentOutput(value=100_000, confirmations=0),
        UnspentOutput(value=10_000, confirmations=6),
    ]

    with pytest.raises(InsufficientFunds):
        select_coins(utxos, amount=50_000, fee=0, min_confirmations=1)


def test_eligible_utxos_keeps_order() -> None:
    """Test that the eligibility filter keeps input order."""
    utxos = [
        UnspentOutput(value=1, confirmations=2, script_type=ScriptType.P2TR),
        UnspentOutput(value=2, confirmations=0),
        UnspentOutput(value=3, confirmations=5),
    ]

    assert [u.value for u in eligible_utxos(utxos, 1)] == [1, 3]
    assert [u.value for u in eligible_utxos(utxos, 0)] == [1, 2, 3]
