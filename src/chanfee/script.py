"""
Script type classification for wallet outputs.

Supports:
- P2WPKH (bc1q... 42 chars, tb1q..., bcrt1q...)
- P2WSH (bc1q... 62 chars)
- P2TR (bc1p...)
- P2SH (3..., 2...), assumed to wrap P2WPKH
- P2PKH (1..., m..., n...)
"""

from __future__ import annotations

import base58
import bech32

from chanfee.errors import InvalidInput
from chanfee.models import ScriptType

BECH32_HRPS = ("bcrt", "bc", "tb")


def script_type_from_scriptpubkey(scriptpubkey: str | bytes) -> ScriptType:
    """Classify a scriptPubKey given as hex or raw bytes."""
    if isinstance(scriptpubkey, str):
        try:
            script = bytes.fromhex(scriptpubkey)
        except ValueError as e:
            raise InvalidInput(f"Invalid scriptPubKey hex: {scriptpubkey}") from e
    else:
        script = scriptpubkey

    # P2WPKH: OP_0 <20-byte-pubkeyhash>
    if len(script) == 22 and script[0] == 0x00 and script[1] == 0x14:
        return ScriptType.P2WPKH
    # P2WSH: OP_0 <32-byte-scripthash>
    if len(script) == 34 and script[0] == 0x00 and script[1] == 0x20:
        return ScriptType.P2WSH
    # P2TR: OP_1 <32-byte-pubkey>
    if len(script) == 34 and script[0] == 0x51 and script[1] == 0x20:
        return ScriptType.P2TR
    # P2SH: OP_HASH160 <20-byte-scripthash> OP_EQUAL
    if len(script) == 23 and script[0] == 0xA9 and script[1] == 0x14 and script[22] == 0x87:
        return ScriptType.NP2WPKH
    # P2PKH: OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG
    if (
        len(script) == 25
        and script[:3] == bytes([0x76, 0xA9, 0x14])
        and script[23:] == bytes([0x88, 0xAC])
    ):
        return ScriptType.P2PKH

    raise InvalidInput(f"Unsupported scriptPubKey: {script.hex()}")


def script_type_from_address(address: str) -> ScriptType:
    """Classify a mainnet, testnet or regtest address."""
    lowered = address.lower()
    for hrp in BECH32_HRPS:
        if lowered.startswith(hrp + "1"):
            witver, witprog = bech32.decode(hrp, lowered)
            if witver is None or witprog is None:
                raise InvalidInput(f"Invalid bech32 address: {address}")
            if witver == 0 and len(witprog) == 20:
                return ScriptType.P2WPKH
            if witver == 0 and len(witprog) == 32:
                return ScriptType.P2WSH
            if witver == 1 and len(witprog) == 32:
                return ScriptType.P2TR
            raise InvalidInput(f"Unsupported witness version {witver} in {address}")

    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise InvalidInput(f"Invalid address: {address}") from e

    version = decoded[0]
    if version in (0x00, 0x6F):  # Mainnet/Testnet P2PKH
        return ScriptType.P2PKH
    if version in (0x05, 0xC4):  # Mainnet/Testnet P2SH
        return ScriptType.NP2WPKH

    raise InvalidInput(f"Unknown address version: {version}")
