"""
Exceptions raised by the fee projection engine and its boundary helpers.
"""

from __future__ import annotations


class FeeProjectionError(Exception):
    """Base class for all fee projection errors."""


class InvalidInput(FeeProjectionError, ValueError):
    """Request rejected before any tier was processed."""


class InsufficientFunds(FeeProjectionError):
    """The eligible UTXO set cannot cover amount + fee."""

    def __init__(self, needed: int, available: int):
        self.needed = needed
        self.available = available
        super().__init__(f"Insufficient funds: need {needed} sats, have {available} sats")


class NoInputsSelected(FeeProjectionError):
    """Size estimation was asked to size a transaction without inputs."""


class ConvergenceFailure(FeeProjectionError):
    """Fee and coin selection did not reach a fixed point within the round limit."""

    def __init__(self, label: str, rounds: int, last_fee: int):
        self.label = label
        self.rounds = rounds
        self.last_fee = last_fee
        super().__init__(
            f"Fee for tier {label!r} did not converge after {rounds} rounds "
            f"(last fee {last_fee} sats)"
        )


class FeeSourceError(Exception):
    """Fee-rate tiers could not be fetched or parsed."""
