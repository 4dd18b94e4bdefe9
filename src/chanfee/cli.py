"""
Command-line interface for channel-open fee projection.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from chanfee.config import Settings, get_settings
from chanfee.errors import FeeSourceError, InvalidInput
from chanfee.fee_source import MempoolFeeSource
from chanfee.models import FeeProjectionResult, FeeRateTier, FundingRequest
from chanfee.projector import FeeProjector
from chanfee.utxo_loader import load_utxo_file

app = typer.Typer(
    name="chanfee",
    help="Project the on-chain fee of a channel funding transaction",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def parse_tier(option: str) -> FeeRateTier:
    """Parse a 'label=rate' tier option."""
    label, sep, rate = option.partition("=")
    label = label.strip()
    if not sep or not label:
        raise InvalidInput(f"Tier must be given as label=sat_per_vbyte, got {option!r}")
    try:
        value = float(rate)
    except ValueError as e:
        raise InvalidInput(f"Invalid fee rate in tier {option!r}") from e
    return FeeRateTier(label=label, sat_per_vbyte=int(value) if value.is_integer() else value)


def format_projection(result: FeeProjectionResult, amount: int) -> str:
    lines = [
        f"=== Channel Funding Fee Projection ({amount:,} sats) ===",
        f"{'Tier':<16}{'sat/vB':>10}{'vbytes':>10}{'Fee (sats)':>14}{'Inputs':>8}{'Change':>14}",
    ]
    for label in result.labels:
        if label in result.fees:
            projected = result.fees[label]
            change = f"{projected.change_value:,}" if projected.has_change else "-"
            lines.append(
                f"{label:<16}{projected.sat_per_vbyte:>10}{projected.vsize:>10}"
                f"{projected.total_fee:>14,}{projected.input_count:>8}{change:>14}"
            )
        else:
            lines.append(f"{label:<16}  ERROR: {result.errors[label]}")
    return "\n".join(lines)


async def _fetch_tiers(settings: Settings) -> list[FeeRateTier]:
    source = MempoolFeeSource(base_url=settings.mempool_api_url, timeout=settings.request_timeout)
    return await source.get_tiers()


async def _project(
    settings: Settings,
    utxos_file: Path,
    request: FundingRequest,
    tiers: list[FeeRateTier],
) -> FeeProjectionResult:
    utxos = load_utxo_file(utxos_file)
    if not tiers:
        tiers = await _fetch_tiers(settings)
    projector = FeeProjector.from_settings(settings)
    return await projector.project_async(utxos, request, tiers)


@app.command()
def project(
    utxos_file: Annotated[
        Path,
        typer.Option(
            "--utxos",
            "-u",
            help="UTXO export (lncli listunspent, bitcoin-cli listunspent or plain JSON)",
        ),
    ],
    amount: Annotated[int, typer.Option("--amount", "-a", help="Channel amount in sats")],
    tier: Annotated[
        list[str] | None,
        typer.Option(
            "--tier",
            "-t",
            help="Fee tier as label=sat_per_vbyte, repeatable. Fetched from mempool if omitted",
        ),
    ] = None,
    min_confirmations: Annotated[
        int | None,
        typer.Option("--min-confirmations", "-c", help="Only spend UTXOs with this many confs"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Output JSON")] = False,
    log_level: Annotated[str | None, typer.Option("--log-level", "-l")] = None,
) -> None:
    """Project the funding fee for each fee-rate tier."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    if not utxos_file.exists():
        logger.error(f"UTXO file not found: {utxos_file}")
        raise typer.Exit(1)

    if min_confirmations is None:
        min_confirmations = settings.min_confirmations

    try:
        tiers = [parse_tier(option) for option in tier or []]
        request = FundingRequest(amount=amount, min_confirmations=min_confirmations)
        result = asyncio.run(_project(settings, utxos_file, request, tiers))
    except InvalidInput as e:
        logger.error(f"Invalid input: {e}")
        raise typer.Exit(1)
    except FeeSourceError as e:
        logger.error(f"Failed to fetch fee rates: {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        typer.echo(format_projection(result, amount))

    if not result.fees:
        raise typer.Exit(1)


@app.command()
def tiers(
    log_level: Annotated[str | None, typer.Option("--log-level", "-l")] = None,
) -> None:
    """Show the recommended fee-rate tiers from the configured mempool API."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    try:
        fetched = asyncio.run(_fetch_tiers(settings))
    except FeeSourceError as e:
        logger.error(f"Failed to fetch fee rates: {e}")
        raise typer.Exit(1)

    for fee_tier in fetched:
        typer.echo(f"{fee_tier.label:<16}{fee_tier.sat_per_vbyte:>8} sat/vB")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
