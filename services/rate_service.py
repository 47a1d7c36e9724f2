"""
services/rate_service.py
-------------------------
USD -> TWD market rate with an in-memory TTL cache and a configured
fallback when the rate API is unreachable.

A failed fetch is remembered for FX_RETRY_SECONDS: until then lookups
answer from the last good rate (or the fallback if there never was one)
without touching the network.
"""

import time
from typing import Optional

import httpx

from config import (
    DEFAULT_USD_TWD_RATE,
    FX_API_URL,
    FX_CACHE_TTL_SECONDS,
    FX_RETRY_SECONDS,
    HOME_CURRENCY,
)
from models.settings import Settings
from services.metrics import effective_rate
from utils.logger import get_logger

logger = get_logger(__name__)


class ExchangeRateService:
    """Market rate lookups. A failed fetch never raises."""

    def __init__(self, client: Optional[httpx.Client] = None, url: str = FX_API_URL,
                 fallback: float = DEFAULT_USD_TWD_RATE, ttl_seconds: int = FX_CACHE_TTL_SECONDS,
                 retry_seconds: int = FX_RETRY_SECONDS, timeout: float = 5.0):
        self._client = client
        self.url = url
        self.fallback = fallback
        self.ttl_seconds = ttl_seconds
        self.retry_seconds = retry_seconds
        self.timeout = timeout
        self._cached: Optional[tuple[float, float]] = None  # (rate, fetched_at)
        self._retry_at = 0.0

    def market_rate(self) -> float:
        """Current USD->TWD rate: cached, freshly fetched, last known, or the fallback."""
        now = time.monotonic()
        if self._cached is not None:
            rate, fetched_at = self._cached
            if now - fetched_at < self.ttl_seconds:
                return rate

        if now < self._retry_at:
            return self._last_known()

        rate = self._fetch()
        if rate is None:
            self._retry_at = time.monotonic() + self.retry_seconds
            last_known = self._last_known()
            logger.warning(f"Using USD/{HOME_CURRENCY} rate {last_known}, next fetch in {self.retry_seconds}s")
            return last_known
        self._cached = (rate, time.monotonic())
        self._retry_at = 0.0
        return rate

    def effective_rate(self, settings: Optional[Settings]) -> float:
        """The user's manual override if set, else the market rate."""
        override = effective_rate(settings, 0.0)
        return override if override > 0 else self.market_rate()

    def _last_known(self) -> float:
        """The last fetched rate, however old, else the configured fallback."""
        return self._cached[0] if self._cached is not None else self.fallback

    def _fetch(self) -> Optional[float]:
        try:
            if self._client is not None:
                response = self._client.get(self.url, timeout=self.timeout)
            else:
                response = httpx.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            rate = float(response.json()["rates"][HOME_CURRENCY])
        except httpx.TimeoutException:
            logger.warning(f"Timeout fetching USD/{HOME_CURRENCY} rate")
            return None
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to fetch USD/{HOME_CURRENCY} rate: {e}")
            return None
        if rate <= 0:
            logger.error(f"Rate API returned a non-positive rate: {rate}")
            return None
        logger.info(f"Fetched USD/{HOME_CURRENCY} rate: {rate}")
        return rate


# Shared instance so the cache survives across handlers
exchange_rates = ExchangeRateService()
