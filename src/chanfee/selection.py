"""
Largest-first coin selection.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from chanfee.errors import InsufficientFunds
from chanfee.models import CoinSelection, UnspentOutput


def eligible_utxos(
    utxos: Sequence[UnspentOutput], min_confirmations: int = 0
) -> list[UnspentOutput]:
    """Filter out outputs below the confirmation policy, keeping input order."""
    if min_confirmations <= 0:
        return list(utxos)
    return [utxo for utxo in utxos if (utxo.confirmations or 0) >= min_confirmations]


def select_coins(
    utxos: Sequence[UnspentOutput],
    amount: int,
    fee: int,
    min_confirmations: int = 0,
) -> CoinSelection:
    """
    Select UTXOs covering amount + fee.

    Uses greedy largest-first selection. Outputs of equal value keep their
    original list order, so the selection is deterministic.

    Args:
        utxos: Available outputs
        amount: Channel amount in sats
        fee: Current fee estimate in sats
        min_confirmations: Minimum confirmations for an output to be spent

    Returns:
        CoinSelection with the selected outputs in selection order

    Raises:
        InsufficientFunds: If all eligible outputs together fall short
    """
    target = amount + fee
    eligible = eligible_utxos(utxos, min_confirmations)

    # sort() is stable, reverse=True keeps equal values in list order
    eligible.sort(key=lambda u: u.value, reverse=True)

    selected: list[UnspentOutput] = []
    total = 0

    for utxo in eligible:
        selected.append(utxo)
        total += utxo.value
        if total >= target:
            break

    if total < target:
        raise InsufficientFunds(needed=target, available=total)

    logger.trace(f"Selected {len(selected)} of {len(eligible)} UTXOs for {target} sats")

    return CoinSelection(
        utxos=selected,
        total_value=total,
        change_value=total - target,
        fee=fee,
    )
