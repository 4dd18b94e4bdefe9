"""
Fee-rate tiers from the mempool.space recommended fees API.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chanfee.constants import (
    ECONOMY_FEE,
    FASTEST_FEE,
    HALF_HOUR_FEE,
    HOUR_FEE,
    MINIMUM_FEE,
)
from chanfee.errors import FeeSourceError
from chanfee.models import FeeRateTier

# Timeout for fee API calls (seconds)
DEFAULT_TIMEOUT = 30.0

RECOMMENDED_FEES_PATH = "/v1/fees/recommended"


class RecommendedFees(BaseModel):
    """Response of GET /v1/fees/recommended, rates in sat/vbyte."""

    model_config = ConfigDict(populate_by_name=True)

    fastest_fee: float = Field(..., ge=0, alias="fastestFee")
    half_hour_fee: float = Field(..., ge=0, alias="halfHourFee")
    hour_fee: float = Field(..., ge=0, alias="hourFee")
    economy_fee: float = Field(..., ge=0, alias="economyFee")
    minimum_fee: float = Field(..., ge=0, alias="minimumFee")

    def to_tiers(self) -> list[FeeRateTier]:
        """Tiers from fastest to cheapest."""
        rates = (
            (FASTEST_FEE, self.fastest_fee),
            (HALF_HOUR_FEE, self.half_hour_fee),
            (HOUR_FEE, self.hour_fee),
            (ECONOMY_FEE, self.economy_fee),
            (MINIMUM_FEE, self.minimum_fee),
        )
        # Whole-number rates stay ints so fees print without a decimal point
        return [
            FeeRateTier(label=label, sat_per_vbyte=int(rate) if rate.is_integer() else rate)
            for label, rate in rates
        ]


class MempoolFeeSource:
    """
    Fetches recommended fee rates from a mempool.space compatible API.

    Both an async and a blocking interface are offered; they issue the same
    request and return the same tiers.
    """

    def __init__(
        self,
        base_url: str = "https://mempool.space/api",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}{RECOMMENDED_FEES_PATH}"

    def _parse(self, data: Any) -> list[FeeRateTier]:
        try:
            fees = RecommendedFees.model_validate(data)
        except ValidationError as e:
            raise FeeSourceError(f"Invalid fee response from {self.url}: {e}") from e
        tiers = fees.to_tiers()
        logger.debug(
            "Fetched fee rates: " + ", ".join(f"{t.label}={t.sat_per_vbyte}" for t in tiers)
        )
        return tiers

    async def get_tiers(self) -> list[FeeRateTier]:
        """
        Fetch the recommended fee tiers.

        Raises:
            FeeSourceError: On connection, HTTP or payload errors
        """
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport

        try:
            async with httpx.AsyncClient(**kwargs) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Fee request timed out: {self.url} - {e}")
            raise FeeSourceError(f"Timed out fetching fee rates from {self.url}") from e
        except httpx.HTTPError as e:
            logger.error(f"Fee request failed: {self.url} - {e}")
            raise FeeSourceError(f"Could not fetch fee rates from {self.url}: {e}") from e
        except ValueError as e:
            raise FeeSourceError(f"Invalid JSON from {self.url}") from e

        return self._parse(data)

    def get_tiers_sync(self) -> list[FeeRateTier]:
        """Blocking variant of get_tiers()."""
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport

        try:
            with httpx.Client(**kwargs) as client:
                response = client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Fee request timed out: {self.url} - {e}")
            raise FeeSourceError(f"Timed out fetching fee rates from {self.url}") from e
        except httpx.HTTPError as e:
            logger.error(f"Fee request failed: {self.url} - {e}")
            raise FeeSourceError(f"Could not fetch fee rates from {self.url}: {e}") from e
        except ValueError as e:
            raise FeeSourceError(f"Invalid JSON from {self.url}") from e

        return self._parse(data)
