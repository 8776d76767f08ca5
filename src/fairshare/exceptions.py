"""Custom exceptions for FairShare."""

from enum import StrEnum


class FairShareError(Exception):
    """Base exception for all FairShare errors."""

    pass


class ConfigurationError(FairShareError):
    """Raised when configuration is invalid or missing."""

    pass


class ValidationErrorCode(StrEnum):
    """Stable codes carried by validation failures."""

    NULL_OR_UNDEFINED = "NULL_OR_UNDEFINED"
    INVALID_TYPE = "INVALID_TYPE"
    DUPLICATE_ID = "DUPLICATE_ID"
    REFERENCED_ID_NOT_FOUND = "REFERENCED_ID_NOT_FOUND"
    DIVISION_BY_ZERO = "DIVISION_BY_ZERO"
    NEGATIVE_VALUE = "NEGATIVE_VALUE"
    INVALID_PERCENTAGE = "INVALID_PERCENTAGE"
    INVALID_PERCENTAGE_SUM = "INVALID_PERCENTAGE_SUM"
    EMPTY_STRING = "EMPTY_STRING"
    INVALID_LENGTH = "INVALID_LENGTH"
    INVALID_EMAIL = "INVALID_EMAIL"
    SHARE_SUM_MISMATCH = "SHARE_SUM_MISMATCH"
    CONVERSION_MISMATCH = "CONVERSION_MISMATCH"


class ValidationError(FairShareError):
    """Raised when an input guard fails.

    Carries a stable ``code`` and the offending ``field`` so callers can build
    a precise message without parsing the text.
    """

    def __init__(
        self,
        message: str,
        code: ValidationErrorCode,
        field: str | None = None,
    ):
        self.code = code
        self.field = field
        super().__init__(message)


class ExchangeRateError(FairShareError):
    """Raised when an exchange rate cannot be fetched."""

    pass


class ExchangeRateUnavailableError(ExchangeRateError):
    """Raised when a rate fetch fails and no last-known rate exists."""

    def __init__(self, base_currency: str, quote_currency: str):
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        super().__init__(
            f"No exchange rate available for {base_currency} -> {quote_currency}"
        )


class SettlementError(FairShareError):
    """Raised when a computed ledger entry breaks an internal invariant."""

    pass
