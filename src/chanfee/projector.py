"""
Fee projection for channel funding transactions.

For every fee-rate tier the projector iterates coin selection and size
estimation until the selection no longer changes when the recomputed fee is
added to the target. Tiers are independent of each other: a tier that cannot
be funded is reported in the result without affecting the others.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from loguru import logger

from chanfee.constants import (
    DEFAULT_MAX_CONVERGENCE_ROUNDS,
    SEED_INPUT_COUNT,
    STANDARD_DUST_LIMIT,
)
from chanfee.errors import (
    ConvergenceFailure,
    FeeProjectionError,
    InsufficientFunds,
    InvalidInput,
)
from chanfee.models import (
    CoinSelection,
    FeeProjectionResult,
    FeeRateTier,
    FundingRequest,
    ProjectedFee,
    ScriptType,
    UnspentOutput,
)
from chanfee.selection import eligible_utxos, select_coins
from chanfee.vsize import estimate_vsize, fee_for_vsize

if TYPE_CHECKING:
    from chanfee.config import Settings

TierInput = Sequence[FeeRateTier] | Mapping[str, int | float]


class FeeProjector:
    """
    Projects the fee of a channel funding transaction per fee-rate tier.

    The funding transaction spends the selected UTXOs into a P2WSH funding
    output and a change output. The fee is always sized with the change
    output in place; when the leftover would be dust the change output is
    dropped and the leftover goes to the miners on top of the projected fee.
    """

    def __init__(
        self,
        dust_threshold: int = STANDARD_DUST_LIMIT,
        max_rounds: int = DEFAULT_MAX_CONVERGENCE_ROUNDS,
        change_script_type: ScriptType = ScriptType.P2TR,
        funding_script_type: ScriptType = ScriptType.P2WSH,
        seed_input_count: int = SEED_INPUT_COUNT,
    ):
        if max_rounds < 1:
            raise InvalidInput(f"max_rounds must be at least 1, got {max_rounds}")
        self.dust_threshold = dust_threshold
        self.max_rounds = max_rounds
        self.change_script_type = change_script_type
        self.funding_script_type = funding_script_type
        self.seed_input_count = seed_input_count

    @classmethod
    def from_settings(cls, settings: Settings) -> FeeProjector:
        return cls(
            dust_threshold=settings.dust_threshold,
            max_rounds=settings.max_convergence_rounds,
            change_script_type=settings.change_script_type,
        )

    def _vsize(self, inputs: Sequence[UnspentOutput | ScriptType]) -> int:
        return estimate_vsize(
            inputs,
            has_change=True,
            funding_script_type=self.funding_script_type,
            change_script_type=self.change_script_type,
        )

    def seed_fee(self, sat_per_vbyte: int | float) -> int:
        """Fee of a typical P2WPKH transaction, the first estimate of every tier."""
        seed_inputs = [ScriptType.P2WPKH] * self.seed_input_count
        return fee_for_vsize(self._vsize(seed_inputs), sat_per_vbyte)

    def floor_fee(self, eligible: Sequence[UnspentOutput], sat_per_vbyte: int | float) -> int:
        """
        Lower bound of the fee for any selection from eligible.

        Largest-first selection always spends the largest output, so no
        selection is cheaper than spending it alone.
        """
        if not eligible:
            return 0
        largest = max(eligible, key=lambda u: u.value)
        return fee_for_vsize(self._vsize([largest]), sat_per_vbyte)

    def converge_tier(
        self,
        utxos: Sequence[UnspentOutput],
        request: FundingRequest,
        tier: FeeRateTier,
    ) -> ProjectedFee:
        """
        Find the fee and selection for a single tier.

        Raises:
            InsufficientFunds: If no selection covers amount + its own fee
            ConvergenceFailure: If the selection is still changing after max_rounds
        """
        rate = tier.sat_per_vbyte
        eligible = eligible_utxos(utxos, request.min_confirmations)

        restarted = False
        fee = self.seed_fee(rate)
        try:
            selection = select_coins(eligible, request.amount, fee)
        except InsufficientFunds:
            restarted = True
            # The seed may overestimate; restart from the cheapest possible spend
            fee = self.floor_fee(eligible, rate)
            logger.debug(f"[{tier.label}] seed fee unaffordable, restarting from {fee} sats")
            selection = select_coins(eligible, request.amount, fee)

        for rounds in range(1, self.max_rounds + 1):
            vsize = self._vsize(selection.utxos)
            fee = fee_for_vsize(vsize, rate)
            logger.debug(
                f"[{tier.label}] round {rounds}: {len(selection.utxos)} inputs, "
                f"{vsize} vB, fee {fee} sats"
            )

            try:
                reselection = select_coins(eligible, request.amount, fee)
            except InsufficientFunds:
                if restarted:
                    raise
                restarted = True
                fee = self.floor_fee(eligible, rate)
                selection = select_coins(eligible, request.amount, fee)
                continue

            if len(reselection.utxos) == len(selection.utxos):
                return self._projected(reselection, tier, vsize, rounds)
            selection = reselection

        logger.error(
            f"[{tier.label}] fee did not converge after {self.max_rounds} rounds "
            f"({len(selection.utxos)} inputs, fee {fee} sats)"
        )
        raise ConvergenceFailure(tier.label, self.max_rounds, fee)

    def _projected(
        self, selection: CoinSelection, tier: FeeRateTier, vsize: int, rounds: int
    ) -> ProjectedFee:
        return ProjectedFee(
            total_fee=selection.fee,
            sat_per_vbyte=tier.sat_per_vbyte,
            vsize=vsize,
            selected=tuple(selection.utxos),
            change_value=selection.change_value,
            has_change=selection.change_value >= self.dust_threshold,
            rounds=rounds,
        )

    def _project_tier(
        self,
        utxos: Sequence[UnspentOutput],
        request: FundingRequest,
        tier: FeeRateTier,
    ) -> ProjectedFee | FeeProjectionError:
        try:
            return self.converge_tier(utxos, request, tier)
        except InsufficientFunds as e:
            logger.warning(f"[{tier.label}] {e}")
            return e
        except ConvergenceFailure as e:
            return e

    def project(
        self,
        utxos: Sequence[UnspentOutput],
        request: FundingRequest | int,
        tiers: TierInput,
    ) -> FeeProjectionResult:
        """
        Project the funding fee for every tier.

        Args:
            utxos: Wallet UTXO snapshot
            request: FundingRequest, or the channel amount in sats
            tiers: FeeRateTier sequence, or mapping of tier label to sat/vbyte

        Returns:
            FeeProjectionResult in tier order

        Raises:
            InvalidInput: If the request is rejected before any tier is processed
        """
        snapshot, funding, tier_list = self._prepare(utxos, request, tiers)
        outcomes = [self._project_tier(snapshot, funding, tier) for tier in tier_list]
        return self._collect(tier_list, outcomes)

    async def project_async(
        self,
        utxos: Sequence[UnspentOutput],
        request: FundingRequest | int,
        tiers: TierInput,
    ) -> FeeProjectionResult:
        """Same as project(), evaluating tiers concurrently in worker threads."""
        snapshot, funding, tier_list = self._prepare(utxos, request, tiers)
        outcomes = await asyncio.gather(
            *(
                asyncio.to_thread(self._project_tier, snapshot, funding, tier)
                for tier in tier_list
            )
        )
        return self._collect(tier_list, list(outcomes))

    def _prepare(
        self,
        utxos: Sequence[UnspentOutput],
        request: FundingRequest | int,
        tiers: TierInput,
    ) -> tuple[tuple[UnspentOutput, ...], FundingRequest, list[FeeRateTier]]:
        funding = request if isinstance(request, FundingRequest) else FundingRequest(request)
        tier_list = normalize_tiers(tiers)
        snapshot = tuple(utxos)
        validate_request(snapshot, funding, tier_list)
        logger.debug(
            f"Projecting funding fee for {funding.amount} sats over {len(snapshot)} UTXOs, "
            f"{len(tier_list)} tiers"
        )
        return snapshot, funding, tier_list

    def _collect(
        self,
        tiers: list[FeeRateTier],
        outcomes: list[ProjectedFee | FeeProjectionError],
    ) -> FeeProjectionResult:
        result = FeeProjectionResult(tier_order=[tier.label for tier in tiers])
        for tier, outcome in zip(tiers, outcomes):
            if isinstance(outcome, ProjectedFee):
                result.fees[tier.label] = outcome
            else:
                result.errors[tier.label] = outcome
        return result


def normalize_tiers(tiers: TierInput) -> list[FeeRateTier]:
    """Accept FeeRateTier objects or a label -> rate mapping, keeping order."""
    if isinstance(tiers, Mapping):
        return [FeeRateTier(label=label, sat_per_vbyte=rate) for label, rate in tiers.items()]

    tier_list = list(tiers)
    for tier in tier_list:
        if not isinstance(tier, FeeRateTier):
            raise InvalidInput(f"Expected FeeRateTier, got {type(tier).__name__}")
    return tier_list


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_request(
    utxos: Sequence[UnspentOutput],
    request: FundingRequest,
    tiers: Sequence[FeeRateTier],
) -> None:
    """
    Reject malformed input before any tier is processed.

    Raises:
        InvalidInput: On a non-positive amount, an empty or malformed tier set,
            or malformed UTXO entries
    """
    if not _is_int(request.amount) or request.amount <= 0:
        raise InvalidInput(f"Amount must be a positive number of sats, got {request.amount!r}")
    if not _is_int(request.min_confirmations) or request.min_confirmations < 0:
        raise InvalidInput(
            f"min_confirmations must be a non-negative integer, got {request.min_confirmations!r}"
        )

    if not tiers:
        raise InvalidInput("At least one fee-rate tier is required")

    seen: set[str] = set()
    for tier in tiers:
        if not isinstance(tier.label, str) or not tier.label:
            raise InvalidInput(f"Tier label must be a non-empty string, got {tier.label!r}")
        if tier.label in seen:
            raise InvalidInput(f"Duplicate tier label: {tier.label}")
        seen.add(tier.label)

        rate = tier.sat_per_vbyte
        if isinstance(rate, bool) or not isinstance(rate, int | float):
            raise InvalidInput(f"Fee rate for {tier.label} must be a number, got {rate!r}")
        if not math.isfinite(rate) or rate < 0:
            raise InvalidInput(f"Fee rate for {tier.label} must be >= 0, got {rate}")

    for index, utxo in enumerate(utxos):
        if not isinstance(utxo, UnspentOutput):
            raise InvalidInput(f"UTXO #{index} is not an UnspentOutput: {utxo!r}")
        if not _is_int(utxo.value) or utxo.value < 0:
            raise InvalidInput(f"UTXO #{index} has invalid value {utxo.value!r}")
        if not isinstance(utxo.script_type, ScriptType) or not utxo.script_type.is_spendable_input:
            raise InvalidInput(f"UTXO #{index} has unsupported script type {utxo.script_type!r}")
        if utxo.confirmations is not None and (
            not _is_int(utxo.confirmations) or utxo.confirmations < 0
        ):
            raise InvalidInput(
                f"UTXO #{index} has invalid confirmations {utxo.confirmations!r}"
            )


def project_fees(
    utxos: Sequence[UnspentOutput],
    amount: FundingRequest | int,
    tiers: TierInput,
    **kwargs,
) -> FeeProjectionResult:
    """
    Project the channel funding fee per tier.

    Keyword arguments are passed to FeeProjector.
    """
    return FeeProjector(**kwargs).project(utxos, amount, tiers)


async def project_fees_async(
    utxos: Sequence[UnspentOutput],
    amount: FundingRequest | int,
    tiers: TierInput,
    **kwargs,
) -> FeeProjectionResult:
    return await FeeProjector(**kwargs).project_async(utxos, amount, tiers)
