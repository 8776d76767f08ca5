"""Input guards for the money and settlement engine.

Each ``assert_*`` function raises a ``ValidationError`` carrying a stable code
and the offending field name. They have no side effects; the caller decides
whether a failure is fatal.
"""

import math
import re
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any, TypeVar

from .exceptions import ValidationError, ValidationErrorCode
from .exchange import apply_exchange_rate
from .models import Expense, Ledger, Member
from .money import sum_scaled

T = TypeVar("T")

PERCENTAGE_SUM_TOLERANCE = Decimal("0.01")

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

Number = int | float | Decimal

__all__ = [
    "PERCENTAGE_SUM_TOLERANCE",
    "ValidationError",
    "ValidationErrorCode",
    "assert_defined",
    "assert_no_duplicate_ids",
    "assert_member_references_exist",
    "assert_positive_number",
    "assert_non_negative_number",
    "assert_non_negative_scaled",
    "assert_non_zero",
    "assert_percentage",
    "assert_percentages",
    "assert_non_empty_string",
    "assert_valid_email",
    "assert_shares_match_total",
    "assert_unique_share_members",
    "assert_conversion_matches_rate",
    "is_valid_email",
    "normalize_email",
    "validate_ledger",
]


def _require_number(value: Any, field_name: str) -> Decimal:
    """Return ``value`` as a Decimal, rejecting bools, non-numbers and NaN/inf."""
    if isinstance(value, bool) or not isinstance(value, int | float | Decimal):
        raise ValidationError(
            f"{field_name} must be a valid number",
            ValidationErrorCode.INVALID_TYPE,
            field_name,
        )
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(
                f"{field_name} must be a valid number",
                ValidationErrorCode.INVALID_TYPE,
                field_name,
            )
        return Decimal(str(value))
    decimal_value = Decimal(value)
    if not decimal_value.is_finite():
        raise ValidationError(
            f"{field_name} must be a valid number",
            ValidationErrorCode.INVALID_TYPE,
            field_name,
        )
    return decimal_value


def assert_defined(value: T | None, field_name: str) -> T:
    """Return ``value`` unchanged, or raise if it is None."""
    if value is None:
        raise ValidationError(
            f"{field_name} cannot be null or undefined",
            ValidationErrorCode.NULL_OR_UNDEFINED,
            field_name,
        )
    return value


def assert_no_duplicate_ids(items: Iterable[Any], item_type: str) -> None:
    """Ensure every item's ``id`` attribute is unique."""
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            raise ValidationError(
                f"Duplicate {item_type} id: {item.id}",
                ValidationErrorCode.DUPLICATE_ID,
                "id",
            )
        seen.add(item.id)


def assert_member_references_exist(
    expenses: Iterable[Expense], members: Iterable[Member]
) -> None:
    """Ensure every payer and share member resolves to a known member."""
    member_ids = {m.id for m in members}
    for expense in expenses:
        if expense.payer_member_id not in member_ids:
            raise ValidationError(
                f"Expense {expense.id} references non-existent payer: "
                f"{expense.payer_member_id}",
                ValidationErrorCode.REFERENCED_ID_NOT_FOUND,
                "payer_member_id",
            )
        for share in expense.shares:
            if share.member_id not in member_ids:
                raise ValidationError(
                    f"Expense {expense.id} share references non-existent member: "
                    f"{share.member_id}",
                    ValidationErrorCode.REFERENCED_ID_NOT_FOUND,
                    "member_id",
                )


def assert_positive_number(value: Number, field_name: str) -> None:
    if _require_number(value, field_name) <= 0:
        raise ValidationError(
            f"{field_name} must be positive",
            ValidationErrorCode.NEGATIVE_VALUE,
            field_name,
        )


def assert_non_negative_number(value: Number, field_name: str) -> None:
    if _require_number(value, field_name) < 0:
        raise ValidationError(
            f"{field_name} cannot be negative",
            ValidationErrorCode.NEGATIVE_VALUE,
            field_name,
        )


def assert_non_negative_scaled(value: int, field_name: str) -> None:
    """Guard for scaled-integer money values; floats are a type error here."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{field_name} must be a scaled integer",
            ValidationErrorCode.INVALID_TYPE,
            field_name,
        )
    if value < 0:
        raise ValidationError(
            f"{field_name} cannot be negative",
            ValidationErrorCode.NEGATIVE_VALUE,
            field_name,
        )


def assert_non_zero(value: Number, field_name: str) -> None:
    if _require_number(value, field_name) == 0:
        raise ValidationError(
            f"{field_name} cannot be zero",
            ValidationErrorCode.DIVISION_BY_ZERO,
            field_name,
        )


def assert_percentage(value: Number, field_name: str) -> None:
    percent = _require_number(value, field_name)
    if percent < 0 or percent > 100:
        raise ValidationError(
            f"{field_name} must be between 0 and 100",
            ValidationErrorCode.INVALID_PERCENTAGE,
            field_name,
        )


def assert_percentages(percentages: Sequence[Number]) -> None:
    """
    Validate a percentage split.

    Each value must lie in [0, 100] and together they must sum to 100 within
    ``PERCENTAGE_SUM_TOLERANCE``.
    """
    for i, percent in enumerate(percentages):
        assert_percentage(percent, f"percentages[{i}]")

    total = sum(
        (_require_number(p, "percentages") for p in percentages), Decimal("0")
    )
    if abs(Decimal("100") - total) > PERCENTAGE_SUM_TOLERANCE:
        raise ValidationError(
            f"Percentages must sum to 100%, got {total}",
            ValidationErrorCode.INVALID_PERCENTAGE_SUM,
            "percentages",
        )


def assert_non_empty_string(value: Any, field_name: str) -> None:
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name} must be a string",
            ValidationErrorCode.INVALID_TYPE,
            field_name,
        )
    if not value.strip():
        raise ValidationError(
            f"{field_name} cannot be empty",
            ValidationErrorCode.EMPTY_STRING,
            field_name,
        )


def is_valid_email(value: Any) -> bool:
    """Syntactic email check: ``local@domain.tld`` with no whitespace."""
    if not isinstance(value, str):
        return False
    trimmed = value.strip()
    if not trimmed:
        return False
    return _EMAIL_PATTERN.match(trimmed) is not None


def assert_valid_email(value: Any, field_name: str = "email") -> None:
    if not is_valid_email(value):
        raise ValidationError(
            f"{field_name} is not a valid email address",
            ValidationErrorCode.INVALID_EMAIL,
            field_name,
        )


def normalize_email(value: str | None) -> str | None:
    """Trim and lowercase an email; blank or non-string input gives None."""
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized or None


def assert_shares_match_total(expense: Expense) -> None:
    """Ensure an expense's shares sum exactly to its totals in both currencies."""
    original_sum = sum_scaled(s.share_amount_scaled for s in expense.shares)
    if original_sum != expense.total_amount_scaled:
        raise ValidationError(
            f"Expense {expense.id} shares sum to {original_sum}, "
            f"expected {expense.total_amount_scaled}",
            ValidationErrorCode.SHARE_SUM_MISMATCH,
            "share_amount_scaled",
        )
    main_sum = sum_scaled(s.share_in_main_scaled for s in expense.shares)
    if main_sum != expense.total_in_main_scaled:
        raise ValidationError(
            f"Expense {expense.id} main-currency shares sum to {main_sum}, "
            f"expected {expense.total_in_main_scaled}",
            ValidationErrorCode.SHARE_SUM_MISMATCH,
            "share_in_main_scaled",
        )


def assert_unique_share_members(expense: Expense) -> None:
    """Ensure a member holds at most one share of an expense."""
    seen: set[str] = set()
    for share in expense.shares:
        if share.member_id in seen:
            raise ValidationError(
                f"Expense {expense.id} has more than one share for member "
                f"{share.member_id}",
                ValidationErrorCode.DUPLICATE_ID,
                "shares",
            )
        seen.add(share.member_id)


def assert_conversion_matches_rate(expense: Expense) -> None:
    """Ensure the stored main-currency total is the snapshot rate applied once."""
    expected = apply_exchange_rate(
        expense.total_amount_scaled, expense.exchange_rate_to_main_scaled
    )
    if expense.total_in_main_scaled != expected:
        raise ValidationError(
            f"Expense {expense.id} total in main currency is "
            f"{expense.total_in_main_scaled}, expected {expected} at rate "
            f"{expense.exchange_rate_to_main_scaled}",
            ValidationErrorCode.CONVERSION_MISMATCH,
            "total_in_main_scaled",
        )


def validate_ledger(ledger: Ledger) -> None:
    """
    Run every ledger-level guard.

    Checks unique ids, one share per member, referential integrity,
    non-negative amounts, snapshot conversions, exact
    share sums, and that transfers carry exactly one share.

    Raises:
        ValidationError: On the first violation found
    """
    assert_non_empty_string(ledger.main_currency_code, "main_currency_code")
    assert_no_duplicate_ids(ledger.members, "member")
    assert_no_duplicate_ids(ledger.expenses, "expense")
    assert_member_references_exist(ledger.expenses, ledger.members)

    for expense in ledger.expenses:
        assert_non_empty_string(expense.currency_code, "currency_code")
        assert_non_negative_scaled(expense.total_amount_scaled, "total_amount_scaled")
        assert_non_negative_scaled(
            expense.exchange_rate_to_main_scaled, "exchange_rate_to_main_scaled"
        )
        assert_non_negative_scaled(
            expense.total_in_main_scaled, "total_in_main_scaled"
        )
        for share in expense.shares:
            assert_non_negative_scaled(
                share.share_amount_scaled, "share_amount_scaled"
            )
            assert_non_negative_scaled(
                share.share_in_main_scaled, "share_in_main_scaled"
            )
        if expense.is_transfer and len(expense.shares) != 1:
            raise ValidationError(
                f"Transfer {expense.id} must have exactly one share, "
                f"got {len(expense.shares)}",
                ValidationErrorCode.INVALID_LENGTH,
                "shares",
            )
        assert_unique_share_members(expense)
        assert_conversion_matches_rate(expense)
        assert_shares_match_total(expense)
