"""
Virtual size estimation for channel funding transactions.

The transaction structure:
- Inputs: the selected wallet UTXOs
- Outputs: the P2WSH funding output + an optional change output
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from decimal import Decimal

from chanfee.constants import (
    BASE_INPUT_SIZE,
    BASE_OUTPUT_SIZE,
    NP2WPKH_SCRIPTSIG_SIZE,
    P2PKH_SCRIPTPUBKEY_SIZE,
    P2PKH_SCRIPTSIG_SIZE,
    P2SH_SCRIPTPUBKEY_SIZE,
    P2TR_KEYSPEND_WITNESS_WEIGHT,
    P2TR_SCRIPTPUBKEY_SIZE,
    P2WPKH_SCRIPTPUBKEY_SIZE,
    P2WPKH_WITNESS_WEIGHT,
    P2WSH_SCRIPTPUBKEY_SIZE,
    SEGWIT_MARKER_FLAG_WEIGHT,
    TX_VERSION_LOCKTIME_SIZE,
    WITNESS_SCALE_FACTOR,
)
from chanfee.errors import InvalidInput, NoInputsSelected
from chanfee.models import ScriptType, UnspentOutput

INPUT_WEIGHTS: dict[ScriptType, int] = {
    ScriptType.P2WPKH: BASE_INPUT_SIZE * WITNESS_SCALE_FACTOR + P2WPKH_WITNESS_WEIGHT,
    ScriptType.P2TR: BASE_INPUT_SIZE * WITNESS_SCALE_FACTOR + P2TR_KEYSPEND_WITNESS_WEIGHT,
    ScriptType.NP2WPKH: (BASE_INPUT_SIZE + NP2WPKH_SCRIPTSIG_SIZE) * WITNESS_SCALE_FACTOR
    + P2WPKH_WITNESS_WEIGHT,
    ScriptType.P2PKH: (BASE_INPUT_SIZE + P2PKH_SCRIPTSIG_SIZE) * WITNESS_SCALE_FACTOR,
}

OUTPUT_SIZES: dict[ScriptType, int] = {
    ScriptType.P2WPKH: BASE_OUTPUT_SIZE + P2WPKH_SCRIPTPUBKEY_SIZE,
    ScriptType.P2WSH: BASE_OUTPUT_SIZE + P2WSH_SCRIPTPUBKEY_SIZE,
    ScriptType.P2TR: BASE_OUTPUT_SIZE + P2TR_SCRIPTPUBKEY_SIZE,
    ScriptType.NP2WPKH: BASE_OUTPUT_SIZE + P2SH_SCRIPTPUBKEY_SIZE,
    ScriptType.P2PKH: BASE_OUTPUT_SIZE + P2PKH_SCRIPTPUBKEY_SIZE,
}


def varint_size(n: int) -> int:
    """Size in bytes of n encoded as a Bitcoin varint."""
    if n < 0xFD:
        return 1
    elif n <= 0xFFFF:
        return 3
    elif n <= 0xFFFFFFFF:
        return 5
    else:
        return 9


def input_weight(script_type: ScriptType) -> int:
    """Weight in WU of a signed input spending an output of the given type."""
    try:
        return INPUT_WEIGHTS[script_type]
    except KeyError:
        raise InvalidInput(
            f"Cannot estimate the spend size of a {script_type.value} output"
        ) from None


def output_size(script_type: ScriptType) -> int:
    """Serialized size in bytes of an output paying to the given type."""
    return OUTPUT_SIZES[script_type]


def _script_types(inputs: Iterable[UnspentOutput | ScriptType]) -> list[ScriptType]:
    return [inp if isinstance(inp, ScriptType) else inp.script_type for inp in inputs]


def estimate_weight(
    inputs: Sequence[UnspentOutput | ScriptType],
    has_change: bool,
    funding_script_type: ScriptType = ScriptType.P2WSH,
    change_script_type: ScriptType = ScriptType.P2TR,
) -> int:
    """
    Estimate the weight of a signed funding transaction.

    Args:
        inputs: Selected UTXOs, or bare script types
        has_change: Whether a change output is present
        funding_script_type: Script type of the channel funding output
        change_script_type: Script type of the change output

    Returns:
        Transaction weight in weight units

    Raises:
        NoInputsSelected: If inputs is empty
    """
    script_types = _script_types(inputs)
    if not script_types:
        raise NoInputsSelected("Cannot estimate the size of a transaction without inputs")

    outputs = [funding_script_type]
    if has_change:
        outputs.append(change_script_type)

    base_size = (
        TX_VERSION_LOCKTIME_SIZE + varint_size(len(script_types)) + varint_size(len(outputs))
    )
    weight = base_size * WITNESS_SCALE_FACTOR
    weight += sum(input_weight(st) for st in script_types)
    weight += sum(output_size(st) for st in outputs) * WITNESS_SCALE_FACTOR

    if any(st.is_witness for st in script_types):
        weight += SEGWIT_MARKER_FLAG_WEIGHT
        # Each legacy input still needs an empty witness stack
        weight += sum(1 for st in script_types if not st.is_witness)

    return weight


def estimate_vsize(
    inputs: Sequence[UnspentOutput | ScriptType],
    has_change: bool,
    funding_script_type: ScriptType = ScriptType.P2WSH,
    change_script_type: ScriptType = ScriptType.P2TR,
) -> int:
    """Estimate the virtual size in vbytes, rounded up."""
    weight = estimate_weight(inputs, has_change, funding_script_type, change_script_type)
    return -(-weight // WITNESS_SCALE_FACTOR)


def fee_for_vsize(vsize: int, sat_per_vbyte: int | float) -> int:
    """Total fee in sats for vsize vbytes at the given rate, rounded up."""
    return math.ceil(Decimal(vsize) * Decimal(str(sat_per_vbyte)))
