"""
chanfee - Channel funding fee projection

Projects the on-chain fee of a channel funding transaction for a set of
fee-rate tiers, given the wallet's unspent outputs.
"""

__version__ = "0.1.0"

from chanfee.constants import DEFAULT_TIER_LABELS, STANDARD_DUST_LIMIT
from chanfee.errors import (
    ConvergenceFailure,
    FeeProjectionError,
    FeeSourceError,
    InsufficientFunds,
    InvalidInput,
    NoInputsSelected,
)
from chanfee.fee_source import MempoolFeeSource, RecommendedFees
from chanfee.models import (
    CoinSelection,
    FeeProjectionResult,
    FeeRateTier,
    FundingRequest,
    ProjectedFee,
    ScriptType,
    UnspentOutput,
)
from chanfee.projector import FeeProjector, project_fees, project_fees_async
from chanfee.selection import select_coins
from chanfee.vsize import estimate_vsize, estimate_weight, fee_for_vsize

__all__ = [
    "CoinSelection",
    "ConvergenceFailure",
    "DEFAULT_TIER_LABELS",
    "estimate_vsize",
    "estimate_weight",
    "fee_for_vsize",
    "FeeProjectionError",
    "FeeProjectionResult",
    "FeeProjector",
    "FeeRateTier",
    "FeeSourceError",
    "FundingRequest",
    "InsufficientFunds",
    "InvalidInput",
    "MempoolFeeSource",
    "NoInputsSelected",
    "project_fees",
    "project_fees_async",
    "ProjectedFee",
    "RecommendedFees",
    "ScriptType",
    "select_coins",
    "STANDARD_DUST_LIMIT",
    "UnspentOutput",
]
