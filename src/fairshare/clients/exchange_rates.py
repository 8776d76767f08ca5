"""Exchange rate API client (Frankfurter-compatible ``/latest`` endpoint)."""

import logging
from datetime import UTC, datetime
from decimal import Decimal

import httpx

from ..exceptions import ExchangeRateError, ValidationError
from ..exchange import ExchangeRate, normalize_currency_code
from ..money import to_scaled

logger = logging.getLogger(__name__)


class ExchangeRateClient:
    """Client for fetching live exchange rates.

    Instances are callable with ``(base, quote)`` so they can be handed
    straight to ``ExchangeRateCache`` as its fetcher.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the exchange rate client."""
        self.base_url = base_url
        self.client = httpx.Client(
            base_url=base_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def __call__(self, base_currency: str, quote_currency: str) -> ExchangeRate:
        return self.get_rate(base_currency, quote_currency)

    def get_rate(self, base_currency: str, quote_currency: str) -> ExchangeRate:
        """
        Fetch the latest rate from ``base_currency`` to ``quote_currency``.

        Args:
            base_currency: Currency being converted from (e.g. "EUR")
            quote_currency: Currency being converted to (e.g. "USD")

        Returns:
            The fetched rate, scaled

        Raises:
            ExchangeRateError: If the request fails or the quote is missing
                or malformed
        """
        base = normalize_currency_code(base_currency)
        quote = normalize_currency_code(quote_currency)

        try:
            response = self.client.get("/latest", params={"from": base, "to": quote})
            response.raise_for_status()
            data = response.json(parse_float=Decimal)
        except httpx.HTTPError as e:
            raise ExchangeRateError(
                f"Failed to fetch exchange rate {base} -> {quote}: {e}"
            ) from e
        except ValueError as e:
            raise ExchangeRateError(
                f"Invalid exchange rate response for {base} -> {quote}: {e}"
            ) from e

        rates = data.get("rates") or {}
        if quote not in rates:
            raise ExchangeRateError(f"Response has no {quote} rate for base {base}")

        try:
            rate_scaled = to_scaled(Decimal(str(rates[quote])))
        except (ArithmeticError, ValidationError) as e:
            raise ExchangeRateError(
                f"Invalid {quote} rate for base {base}: {rates[quote]!r}"
            ) from e

        rate = ExchangeRate(
            base_currency_code=normalize_currency_code(data.get("base", base)),
            quote_currency_code=quote,
            rate_scaled=rate_scaled,
            fetched_at=datetime.now(UTC),
        )

        logger.debug(f"Fetched {base} -> {quote}: {rates[quote]}")
        return rate
