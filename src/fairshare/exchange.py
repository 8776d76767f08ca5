"""Currency conversion with snapshot rates, plus a TTL cache for rate lookups.

Conversion itself is a pure function of an already-scaled rate. The cache
sits in front of whatever actually fetches rates (see
``clients.exchange_rates``) and never invents a rate: it returns a fresh one,
a last-known one when the fetch fails, or raises.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict

from .exceptions import ExchangeRateError, ExchangeRateUnavailableError
from .money import SCALE, ScaledInt, multiply_scaled
from .splits import normalize_exact_split

logger = logging.getLogger(__name__)

DEFAULT_RATE_TTL = timedelta(hours=12)


def apply_exchange_rate(amount_scaled: int, rate_scaled: int) -> int:
    """Convert a scaled amount with a scaled rate (truncated toward zero)."""
    return multiply_scaled(amount_scaled, rate_scaled)


def convert_shares(
    shares_scaled: Sequence[int], rate_scaled: int, total_in_main_scaled: int
) -> list[int]:
    """
    Convert per-participant shares to the main currency.

    Converting each share on its own can leak a few units to truncation, so
    the converted shares are normalized to sum to the converted total.
    """
    converted = [apply_exchange_rate(s, rate_scaled) for s in shares_scaled]
    return normalize_exact_split(converted, total_in_main_scaled)


def normalize_currency_code(currency_code: str) -> str:
    return currency_code.strip().upper()


class ExchangeRate(BaseModel):
    """A fetched rate: 1 unit of base buys ``rate_scaled / SCALE`` of quote."""

    model_config = ConfigDict(frozen=True)

    base_currency_code: str
    quote_currency_code: str
    rate_scaled: ScaledInt
    fetched_at: datetime


RateFetcher = Callable[[str, str], ExchangeRate]


class ExchangeRateCache:
    """In-memory rate cache with TTL-based freshness and last-known fallback."""

    def __init__(
        self,
        fetcher: RateFetcher,
        ttl: timedelta = DEFAULT_RATE_TTL,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the cache around a rate fetcher."""
        self.fetcher = fetcher
        self.ttl = ttl
        self._clock = clock or (lambda: datetime.now(UTC))
        self._rates: dict[str, ExchangeRate] = {}

    @staticmethod
    def cache_key(base_currency: str, quote_currency: str) -> str:
        return f"{base_currency}:{quote_currency}"

    def is_stale(self, rate: ExchangeRate) -> bool:
        return self._clock() - rate.fetched_at > self.ttl

    def put(self, rate: ExchangeRate) -> None:
        """Store a rate, e.g. one restored from persistent storage."""
        key = self.cache_key(
            normalize_currency_code(rate.base_currency_code),
            normalize_currency_code(rate.quote_currency_code),
        )
        self._rates[key] = rate

    def get_rate(self, base_currency: str, quote_currency: str) -> ExchangeRate:
        """
        Get a rate from ``base_currency`` to ``quote_currency``.

        Returns:
            A fresh cached rate, a newly fetched rate, or the last-known rate
            when fetching fails

        Raises:
            ExchangeRateUnavailableError: If fetching fails and nothing is cached
        """
        base = normalize_currency_code(base_currency)
        quote = normalize_currency_code(quote_currency)

        if base == quote:
            return ExchangeRate(
                base_currency_code=base,
                quote_currency_code=quote,
                rate_scaled=SCALE,
                fetched_at=self._clock(),
            )

        key = self.cache_key(base, quote)
        cached = self._rates.get(key)

        if cached and not self.is_stale(cached):
            logger.debug(f"Cache hit for {key}")
            return cached

        try:
            fetched = self.fetcher(base, quote)
        except ExchangeRateError as e:
            if cached:
                logger.warning(
                    f"Failed to refresh rate {key}, using last-known rate "
                    f"from {cached.fetched_at.isoformat()}: {e}"
                )
                return cached
            raise ExchangeRateUnavailableError(base, quote) from e

        self._rates[key] = fetched
        logger.info(f"Fetched rate {key} = {fetched.rate_scaled}")
        return fetched

    def prefetch(self, pairs: Iterable[tuple[str, str]]) -> None:
        """Warm the cache for (base, quote) pairs; failures are only logged."""
        unique: dict[str, tuple[str, str]] = {}
        for base_currency, quote_currency in pairs:
            base = normalize_currency_code(base_currency)
            quote = normalize_currency_code(quote_currency)
            if base != quote:
                unique.setdefault(self.cache_key(base, quote), (base, quote))

        for base, quote in unique.values():
            try:
                self.get_rate(base, quote)
            except ExchangeRateUnavailableError as e:
                logger.warning(f"Prefetch skipped: {e}")


def resolve_rate_for_edit(
    original_currency: str,
    edited_currency: str,
    main_currency: str,
    original_rate_scaled: int,
    cache: ExchangeRateCache,
) -> int:
    """
    Pick the rate to store when an expense is edited.

    Keeps the expense's snapshot rate while its currency is unchanged, so an
    edit never silently revalues history.
    """
    if normalize_currency_code(original_currency) == normalize_currency_code(
        edited_currency
    ):
        return original_rate_scaled
    return cache.get_rate(edited_currency, main_currency).rate_scaled
