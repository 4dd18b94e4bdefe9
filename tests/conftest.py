"""
Test configuration for chanfee tests.
"""

from __future__ import annotations

import pytest

from chanfee.models import ScriptType, UnspentOutput


@pytest.fixture
def scenario_utxos() -> list[UnspentOutput]:
    """Three P2WPKH outputs of 100k, 50k and 30k sats."""
    return [
        UnspentOutput(value=100_000, script_type=ScriptType.P2WPKH, confirmations=6, txid="aa"),
        UnspentOutput(value=50_000, script_type=ScriptType.P2WPKH, confirmations=6, txid="bb"),
        UnspentOutput(value=30_000, script_type=ScriptType.P2WPKH, confirmations=6, txid="cc"),
    ]


@pytest.fixture
def equal_utxos() -> list[UnspentOutput]:
    """Five P2WPKH outputs of 50k sats each."""
    return [
        UnspentOutput(value=50_000, script_type=ScriptType.P2WPKH, confirmations=1, vout=i)
        for i in range(5)
    ]
