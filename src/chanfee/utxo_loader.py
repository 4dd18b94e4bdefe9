"""
Load wallet UTXO exports into UnspentOutput snapshots.

Supported formats:
- LND `lncli listunspent` JSON ({"utxos": [...]})
- Bitcoin Core `listunspent` JSON (list with BTC "amount" fields)
- Plain JSON list with "value" in sats and "script_type"
"""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from loguru import logger

from chanfee.constants import SATS_PER_BTC
from chanfee.errors import InvalidInput
from chanfee.models import ScriptType, UnspentOutput
from chanfee.script import script_type_from_address, script_type_from_scriptpubkey


def _to_int(value: Any, field: str) -> int:
    # lncli prints int64 fields as strings
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Invalid {field}: {value!r}") from e


def btc_to_sats(amount: Any) -> int:
    """Convert a BTC amount (float, str or Decimal) to sats without float rounding."""
    try:
        sats = Decimal(str(amount)) * SATS_PER_BTC
    except InvalidOperation as e:
        raise InvalidInput(f"Invalid BTC amount: {amount!r}") from e
    if not sats.is_finite():
        raise InvalidInput(f"BTC amount is not a finite number: {amount!r}")
    if sats != sats.to_integral_value():
        raise InvalidInput(f"BTC amount has sub-satoshi precision: {amount!r}")
    return int(sats)


def _parse_outpoint(outpoint: Any) -> tuple[str, int]:
    if isinstance(outpoint, dict):
        return outpoint.get("txid_str", ""), _to_int(outpoint.get("output_index", 0), "vout")
    if isinstance(outpoint, str) and ":" in outpoint:
        txid, vout = outpoint.rsplit(":", 1)
        return txid, _to_int(vout, "vout")
    return "", 0


def _classify(entry: dict[str, Any], script_key: str) -> ScriptType:
    if entry.get(script_key):
        return script_type_from_scriptpubkey(entry[script_key])
    if entry.get("address"):
        return script_type_from_address(entry["address"])
    raise InvalidInput(f"UTXO entry has no script type information: {entry}")


def load_lnd_utxos(data: dict[str, Any]) -> list[UnspentOutput]:
    """Parse the output of `lncli listunspent`."""
    entries = data.get("utxos")
    if not isinstance(entries, list):
        raise InvalidInput("LND UTXO export must contain a 'utxos' list")

    utxos = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise InvalidInput(f"Malformed UTXO entry: {entry!r}")

        if "address_type" in entry:
            script_type = ScriptType.from_lnd_address_type(entry["address_type"])
        else:
            script_type = _classify(entry, "pk_script")

        txid, vout = _parse_outpoint(entry.get("outpoint"))
        utxos.append(
            UnspentOutput(
                value=_to_int(entry.get("amount_sat"), "amount_sat"),
                script_type=script_type,
                confirmations=_to_int(entry.get("confirmations", 0), "confirmations"),
                txid=txid,
                vout=vout,
            )
        )
    return utxos


def load_core_utxos(entries: list[dict[str, Any]]) -> list[UnspentOutput]:
    """Parse the output of Bitcoin Core `listunspent`."""
    utxos = []
    for entry in entries:
        if not isinstance(entry, dict) or "amount" not in entry:
            raise InvalidInput(f"Malformed UTXO entry: {entry!r}")
        utxos.append(
            UnspentOutput(
                value=btc_to_sats(entry["amount"]),
                script_type=_classify(entry, "scriptPubKey"),
                confirmations=_to_int(entry.get("confirmations", 0), "confirmations"),
                txid=entry.get("txid", ""),
                vout=_to_int(entry.get("vout", 0), "vout"),
            )
        )
    return utxos


def load_plain_utxos(entries: list[dict[str, Any]]) -> list[UnspentOutput]:
    """Parse a list of {"value", "script_type", "confirmations"} entries."""
    utxos = []
    for entry in entries:
        if not isinstance(entry, dict) or "value" not in entry:
            raise InvalidInput(f"Malformed UTXO entry: {entry!r}")
        try:
            script_type = ScriptType(entry.get("script_type", ScriptType.P2WPKH.value))
        except ValueError as e:
            raise InvalidInput(f"Unknown script type: {entry.get('script_type')!r}") from e
        confirmations = entry.get("confirmations")
        if confirmations is not None:
            confirmations = _to_int(confirmations, "confirmations")
        utxos.append(
            UnspentOutput(
                value=_to_int(entry["value"], "value"),
                script_type=script_type,
                confirmations=confirmations,
                txid=entry.get("txid", ""),
                vout=_to_int(entry.get("vout", 0), "vout"),
            )
        )
    return utxos


def load_utxos(data: Any) -> list[UnspentOutput]:
    """Detect the export format and parse it."""
    if isinstance(data, dict):
        return load_lnd_utxos(data)
    if isinstance(data, list):
        if not data:
            return []
        if all(isinstance(entry, dict) and "value" in entry for entry in data):
            return load_plain_utxos(data)
        return load_core_utxos(data)
    raise InvalidInput(f"Unrecognized UTXO export of type {type(data).__name__}")


def load_utxo_file(path: Path) -> list[UnspentOutput]:
    """Read and parse a UTXO export file."""
    try:
        data = json.loads(path.read_bytes())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInput(f"UTXO file {path} is not valid JSON: {e}") from e

    utxos = load_utxos(data)
    logger.info(f"Loaded {len(utxos)} UTXOs ({sum(u.value for u in utxos):,} sats) from {path}")
    return utxos
