"""
Tests for virtual size estimation.
"""

from __future__ import annotations

import pytest

from chanfee.errors import InvalidInput, NoInputsSelected
from chanfee.models import ScriptType, UnspentOutput
from chanfee.vsize import (
    estimate_vsize,
    estimate_weight,
    fee_for_vsize,
    input_weight,
    output_size,
    varint_size,
)


class TestVarintSize:
    """Tests for varint size calculation."""

    def test_sizes(self) -> None:
        """Test varint sizes at each boundary."""
        assert varint_size(0) == 1
        assert varint_size(252) == 1
        assert varint_size(253) == 3
        assert varint_size(65535) == 3
        assert varint_size(65536) == 5
        assert varint_size(4294967296) == 9


class TestSizeTables:
    """Tests for per-input and per-output sizes."""

    def test_input_weights(self) -> None:
        """Test input weights per script type."""
        assert input_weight(ScriptType.P2WPKH) == 273
        assert input_weight(ScriptType.P2TR) == 230
        assert input_weight(ScriptType.NP2WPKH) == 365
        assert input_weight(ScriptType.P2PKH) == 596

    def test_legacy_input_heavier_than_witness(self) -> None:
        """Test that legacy inputs weigh more than segwit ones."""
        assert input_weight(ScriptType.P2PKH) > input_weight(ScriptType.NP2WPKH)
        assert input_weight(ScriptType.NP2WPKH) > input_weight(ScriptType.P2WPKH)
        assert input_weight(ScriptType.P2WPKH) > input_weight(ScriptType.P2TR)

    def test_p2wsh_input_rejected(self) -> None:
        """Test that P2WSH inputs cannot be sized."""
        with pytest.raises(InvalidInput):
            input_weight(ScriptType.P2WSH)

    def test_output_sizes(self) -> None:
        """Test output sizes per script type."""
        assert output_size(ScriptType.P2WSH) == 43
        assert output_size(ScriptType.P2TR) == 43
        assert output_size(ScriptType.P2WPKH) == 31


class TestEstimateVsize:
    """Tests for funding transaction size estimates."""

    def test_two_p2wpkh_inputs_with_change(self) -> None:
        """Test a two-input P2WPKH transaction with change."""
        inputs = [ScriptType.P2WPKH, ScriptType.P2WPKH]
        # 40 base + 2 marker/flag + 2 * 273 inputs + 2 * 43 * 4 outputs
        assert estimate_weight(inputs, has_change=True) == 932
        assert estimate_vsize(inputs, has_change=True) == 233

    def test_single_input_rounds_up(self) -> None:
        """Test that vsize rounds the weight up."""
        assert estimate_weight([ScriptType.P2WPKH], has_change=True) == 659
        assert estimate_vsize([ScriptType.P2WPKH], has_change=True) == 165

    def test_without_change(self) -> None:
        """Test a transaction without change."""
        assert estimate_vsize([ScriptType.P2WPKH], has_change=False) == 122

    def test_change_output_adds_size(self) -> None:
        """Test that change adds one output's size."""
        inputs = [ScriptType.P2WPKH]
        with_change = estimate_vsize(inputs, has_change=True)
        without_change = estimate_vsize(inputs, has_change=False)
        assert with_change - without_change == 43

    def test_p2wpkh_change_output(self) -> None:
        """Test sizing with a P2WPKH change output."""
        size = estimate_weight(
            [ScriptType.P2WPKH], has_change=True, change_script_type=ScriptType.P2WPKH
        )
        assert size == 659 - 12 * 4

    def test_taproot_input(self) -> None:
        """Test a taproot keyspend input."""
        assert estimate_vsize([ScriptType.P2TR], has_change=True) == 154

    def test_nested_segwit_input(self) -> None:
        """Test a nested segwit input."""
        assert estimate_vsize([ScriptType.NP2WPKH], has_change=True) == 188

    def test_legacy_only_has_no_witness_overhead(self) -> None:
        """Test that a legacy-only transaction has no marker/flag."""
        # 40 base + 596 input + 344 outputs, no marker/flag
        assert estimate_weight([ScriptType.P2PKH], has_change=True) == 980
        assert estimate_vsize([ScriptType.P2PKH], has_change=True) == 245

    def test_mixed_legacy_and_witness(self) -> None:
        """Test mixing legacy and segwit inputs."""
        # The legacy input carries an empty witness stack
        weight = estimate_weight([ScriptType.P2PKH, ScriptType.P2WPKH], has_change=True)
        assert weight == 40 + 2 + 596 + 1 + 273 + 344
        assert estimate_vsize([ScriptType.P2PKH, ScriptType.P2WPKH], has_change=True) == 314

    def test_accepts_unspent_outputs(self) -> None:
        """Test sizing UnspentOutput objects directly."""
        utxos = [
            UnspentOutput(value=10_000, script_type=ScriptType.P2TR),
            UnspentOutput(value=20_000, script_type=ScriptType.P2WPKH),
        ]
        assert estimate_vsize(utxos, has_change=True) == estimate_vsize(
            [ScriptType.P2TR, ScriptType.P2WPKH], has_change=True
        )

    def test_large_input_count_uses_wider_varint(self) -> None:
        """Test the varint width change at 253 inputs."""
        small = estimate_weight([ScriptType.P2WPKH] * 252, has_change=True)
        large = estimate_weight([ScriptType.P2WPKH] * 253, has_change=True)
        assert large - small == 273 + 2 * 4

    def test_no_inputs(self) -> None:
        """Test NoInputsSelected for an empty input list."""
        with pytest.raises(NoInputsSelected):
            estimate_vsize([], has_change=True)

    def test_deterministic(self) -> None:
        """Test that estimates are repeatable."""
        inputs = [ScriptType.P2TR, ScriptType.NP2WPKH, ScriptType.P2WPKH]
        assert estimate_vsize(inputs, True) == estimate_vsize(list(inputs), True)


class TestFeeForVsize:
    """Tests for fee rounding."""

    def test_integer_rate(self) -> None:
        """Test the fee at an integer rate."""
        assert fee_for_vsize(233, 10) == 2330

    def test_fractional_rate_rounds_up(self) -> None:
        """Test that fractional fees round up."""
        assert fee_for_vsize(165, 1.5) == 248

    def test_float_rate_without_binary_error(self) -> None:
        """Test that float rates avoid binary rounding error."""
        # 0.1 * 30 is 3.0000000000000004 in binary floating point
        assert fee_for_vsize(30, 0.1) == 3

    def test_zero_rate(self) -> None:
        """Test a zero rate."""
        assert fee_for_vsize(500, 0) == 0
