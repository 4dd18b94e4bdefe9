"""
Fee projection data models.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from chanfee.errors import FeeProjectionError, InvalidInput


class ScriptType(str, Enum):
    P2WPKH = "p2wpkh"
    P2TR = "p2tr"
    NP2WPKH = "np2wpkh"  # P2SH-wrapped P2WPKH
    P2PKH = "p2pkh"
    P2WSH = "p2wsh"  # funding outputs only, witness size of a spend is unknown

    @property
    def is_witness(self) -> bool:
        return self is not ScriptType.P2PKH

    @property
    def is_spendable_input(self) -> bool:
        return self is not ScriptType.P2WSH

    @classmethod
    def from_lnd_address_type(cls, address_type: int | str) -> ScriptType:
        """
        Map an lnrpc AddressType (numeric code or enum name) to a script type.

        The UNUSED_* variants describe the same script as their used
        counterparts.
        """
        if isinstance(address_type, str):
            code = LND_ADDRESS_TYPE_NAMES.get(address_type.upper())
            if code is None:
                raise InvalidInput(f"Unknown LND address type: {address_type}")
        else:
            code = address_type

        if code in (0, 2):
            return cls.P2WPKH
        if code in (1, 3):
            return cls.NP2WPKH
        if code in (4, 5):
            return cls.P2TR
        raise InvalidInput(f"Unknown LND address type: {address_type}")


LND_ADDRESS_TYPE_NAMES: dict[str, int] = {
    "WITNESS_PUBKEY_HASH": 0,
    "NESTED_PUBKEY_HASH": 1,
    "UNUSED_WITNESS_PUBKEY_HASH": 2,
    "UNUSED_NESTED_PUBKEY_HASH": 3,
    "TAPROOT_PUBKEY": 4,
    "UNUSED_TAPROOT_PUBKEY": 5,
}


@dataclass(frozen=True)
class UnspentOutput:
    """Snapshot of a wallet UTXO as far as fee projection needs it"""

    value: int
    script_type: ScriptType = ScriptType.P2WPKH
    confirmations: int | None = None  # None is treated as unconfirmed
    txid: str = ""
    vout: int = 0

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True)
class FundingRequest:
    """Channel amount to fund and the UTXO eligibility policy"""

    amount: int
    min_confirmations: int = 0


@dataclass(frozen=True)
class FeeRateTier:
    """Named confirmation-priority bucket with its fee rate in sat/vbyte"""

    label: str
    sat_per_vbyte: int | float


@dataclass
class CoinSelection:
    """Result of coin selection"""

    utxos: list[UnspentOutput]
    total_value: int
    change_value: int
    fee: int


@dataclass
class ProjectedFee:
    """Converged fee projection for a single tier."""

    total_fee: int
    sat_per_vbyte: int | float
    vsize: int
    selected: tuple[UnspentOutput, ...]
    change_value: int
    has_change: bool
    rounds: int

    @property
    def selected_value(self) -> int:
        return sum(utxo.value for utxo in self.selected)

    @property
    def input_count(self) -> int:
        return len(self.selected)

    @property
    def dust_folded(self) -> int:
        """Leftover value paid to miners because a change output would be dust."""
        return 0 if self.has_change else self.change_value

    def as_tuple(self) -> tuple[int, int | float]:
        return self.total_fee, self.sat_per_vbyte


@dataclass
class FeeProjectionResult:
    """
    Per-tier projections keyed by tier label.

    Both mappings keep the caller-supplied tier order. A label appears in
    exactly one of them.
    """

    fees: dict[str, ProjectedFee] = field(default_factory=dict)
    errors: dict[str, FeeProjectionError] = field(default_factory=dict)
    tier_order: list[str] = field(default_factory=list)

    def __getitem__(self, label: str) -> ProjectedFee:
        return self.fees[label]

    def __contains__(self, label: object) -> bool:
        return label in self.fees

    def __iter__(self) -> Iterator[str]:
        return iter(self.fees)

    def __len__(self) -> int:
        return len(self.fees)

    @property
    def labels(self) -> list[str]:
        return list(self.tier_order)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, dict]:
        fees = {
            label: {
                "total_fee": projected.total_fee,
                "sat_per_vbyte": projected.sat_per_vbyte,
                "vsize": projected.vsize,
                "inputs": projected.input_count,
                "change": projected.change_value if projected.has_change else 0,
            }
            for label, projected in self.fees.items()
        }
        errors = {label: str(error) for label, error in self.errors.items()}
        return {"fees": fees, "errors": errors}
