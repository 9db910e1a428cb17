"""
Currency normalisation.

Amounts are converted with rates from an exchange-rate provider. A failed
lookup raises ExternalLookupError; aggregates use convert_or_fallback,
which keeps the unconverted amount and logs a warning instead.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Protocol, Tuple

import httpx

from salesdesk.config import Settings, get_settings
from salesdesk.errors import ExternalLookupError, ValidationError
from salesdesk.utils.money import normalize_currency, to_decimal

logger = logging.getLogger(__name__)


class ExchangeRateProvider(Protocol):
    async def rate(self, from_currency: str, to_currency: str, as_of: Optional[date] = None) -> Decimal:
        ...


class HttpExchangeRateProvider:
    """
    Rate provider backed by an exchangerate.host-compatible API.

    GET {base_url}/latest?base=EUR&symbols=USD -> {"rates": {"USD": 1.08}}
    Historical lookups use /{YYYY-MM-DD} instead of /latest. Rates are
    cached per (from, to, day) for the life of the provider.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self._cache: Dict[Tuple[str, str, date], Decimal] = {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.exchange_rate_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def rate(self, from_currency: str, to_currency: str, as_of: Optional[date] = None) -> Decimal:
        day = as_of or date.today()
        key = (from_currency, to_currency, day)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        base_url = self.settings.exchange_rate_api_url.rstrip("/")
        endpoint = "latest" if as_of is None else as_of.isoformat()
        params = {"base": from_currency, "symbols": to_currency}
        if self.settings.exchange_rate_api_key:
            params["access_key"] = self.settings.exchange_rate_api_key

        retries = max(self.settings.exchange_rate_retries, 1)
        last_error: Optional[Exception] = None
        for _ in range(retries):
            try:
                response = await self._get_client().get(f"{base_url}/{endpoint}", params=params)
                response.raise_for_status()
                payload = response.json()
                rate_value = (payload.get("rates") or {}).get(to_currency)
                if rate_value is None:
                    raise ValueError("Missing rate in provider payload")
                parsed = to_decimal(rate_value)
                if parsed <= 0:
                    raise ValueError("Invalid rate in provider payload")
                self._cache[key] = parsed
                return parsed
            except (httpx.HTTPError, ValueError, InvalidOperation) as exc:
                last_error = exc
                continue
        raise ExternalLookupError(
            f"Failed to fetch rate for {from_currency}/{to_currency}: {last_error}"
        )


class CurrencyNormalizer:
    """Converts amounts into a target currency, defaulting missing codes to the base currency."""

    def __init__(self, provider: ExchangeRateProvider, base_currency: str) -> None:
        self.provider = provider
        self.base_currency = normalize_currency(base_currency, base_currency)

    async def convert(
        self,
        amount: Decimal,
        from_currency: Optional[str],
        to_currency: Optional[str],
        as_of: Optional[date] = None,
    ) -> Decimal:
        """
        Convert ``amount`` between currencies.

        Same currency returns ``amount`` untouched. Provider failures are
        raised as ExternalLookupError.
        """
        source = normalize_currency(from_currency, self.base_currency)
        target = normalize_currency(to_currency, self.base_currency)
        if source == target:
            return amount
        try:
            rate = await self.provider.rate(source, target, as_of)
        except ExternalLookupError:
            raise
        except Exception as exc:
            raise ExternalLookupError(f"Rate lookup {source}/{target} failed: {exc}") from exc
        return to_decimal(amount) * rate

    async def convert_or_fallback(
        self,
        amount: Decimal,
        from_currency: Optional[str],
        to_currency: Optional[str],
        as_of: Optional[date] = None,
    ) -> Tuple[Decimal, bool]:
        """
        Convert, keeping the original amount when the lookup fails.

        Returns:
            (amount, converted) where converted is False on fallback
        """
        try:
            return await self.convert(amount, from_currency, to_currency, as_of), True
        except (ExternalLookupError, ValidationError) as exc:
            logger.warning(f"Using unconverted amount {amount} {from_currency}: {exc.message}")
            return amount, False


_normalizer: Optional[CurrencyNormalizer] = None


def get_currency_normalizer() -> CurrencyNormalizer:
    """FastAPI dependency for the shared normalizer."""
    global _normalizer
    if _normalizer is None:
        settings = get_settings()
        _normalizer = CurrencyNormalizer(HttpExchangeRateProvider(settings), settings.base_currency)
    return _normalizer
