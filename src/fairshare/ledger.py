"""Build ledger entries from user input.

These functions are the only place shares and main-currency amounts are
computed. Once built, an ``Expense`` carries its snapshot rate and converted
amounts for good.
"""

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from .exceptions import SettlementError, ValidationError, ValidationErrorCode
from .exchange import apply_exchange_rate, convert_shares, normalize_currency_code
from .models import Expense, ExpenseShare, PaymentType, Settlement, SplitType
from .money import SCALE, sum_scaled
from .splits import ExactSplit, PercentageSplit, SplitSpec, split_amount, split_type_of
from .validation import (
    assert_non_empty_string,
    assert_non_negative_scaled,
    assert_percentages,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def _check_participants(participant_ids: Sequence[str]) -> None:
    if not participant_ids:
        raise ValidationError(
            "An expense needs at least one participant",
            ValidationErrorCode.INVALID_LENGTH,
            "participant_ids",
        )
    seen: set[str] = set()
    for member_id in participant_ids:
        assert_non_empty_string(member_id, "participant_ids")
        if member_id in seen:
            raise ValidationError(
                f"Duplicate participant id: {member_id}",
                ValidationErrorCode.DUPLICATE_ID,
                "participant_ids",
            )
        seen.add(member_id)


def _check_split(split: SplitSpec) -> None:
    if isinstance(split, PercentageSplit):
        assert_percentages(split.percentages)
    elif isinstance(split, ExactSplit):
        for i, amount in enumerate(split.amounts_scaled):
            assert_non_negative_scaled(amount, f"amounts_scaled[{i}]")


def build_expense(
    *,
    group_id: str,
    payer_member_id: str,
    participant_ids: Sequence[str],
    currency_code: str,
    total_amount_scaled: int,
    exchange_rate_to_main_scaled: int,
    split: SplitSpec,
    description: str | None = None,
    expense_id: str | None = None,
    created_at: datetime | None = None,
) -> Expense:
    """
    Create a shared expense with shares in both currencies.

    Args:
        group_id: Group the expense belongs to
        payer_member_id: Member who paid
        participant_ids: Members sharing the cost, in split order
        currency_code: Currency the expense was paid in
        total_amount_scaled: Total in that currency
        exchange_rate_to_main_scaled: Snapshot rate to the group's main currency
        split: Equal, percentage or exact split specification
        description: Optional free-text description
        expense_id: Id to use; a random one is generated if omitted
        created_at: Creation time; defaults to now (UTC)

    Returns:
        The expense, with shares summing exactly to both totals

    Raises:
        ValidationError: If any input is malformed, or explicit amounts are
            too far from the total to normalize
    """
    assert_non_empty_string(group_id, "group_id")
    assert_non_empty_string(payer_member_id, "payer_member_id")
    assert_non_empty_string(currency_code, "currency_code")
    assert_non_negative_scaled(total_amount_scaled, "total_amount_scaled")
    assert_non_negative_scaled(
        exchange_rate_to_main_scaled, "exchange_rate_to_main_scaled"
    )
    _check_participants(participant_ids)
    _check_split(split)

    shares = split_amount(total_amount_scaled, split, len(participant_ids))
    if sum_scaled(shares) != total_amount_scaled:
        raise ValidationError(
            f"Split amounts sum to {sum_scaled(shares)}, "
            f"expected {total_amount_scaled}",
            ValidationErrorCode.SHARE_SUM_MISMATCH,
            "split",
        )

    total_in_main = apply_exchange_rate(
        total_amount_scaled, exchange_rate_to_main_scaled
    )
    shares_in_main = convert_shares(
        shares, exchange_rate_to_main_scaled, total_in_main
    )
    if sum_scaled(shares_in_main) != total_in_main:
        raise SettlementError(
            f"Converted shares sum to {sum_scaled(shares_in_main)}, "
            f"expected {total_in_main}"
        )

    expense = Expense(
        id=expense_id or _new_id(),
        group_id=group_id,
        description=description,
        payer_member_id=payer_member_id,
        currency_code=normalize_currency_code(currency_code),
        total_amount_scaled=total_amount_scaled,
        exchange_rate_to_main_scaled=exchange_rate_to_main_scaled,
        total_in_main_scaled=total_in_main,
        created_at=created_at or datetime.now(UTC),
        payment_type=PaymentType.EXPENSE,
        split_type=split_type_of(split),
        shares=tuple(
            ExpenseShare(
                member_id=member_id,
                share_amount_scaled=share,
                share_in_main_scaled=share_in_main,
            )
            for member_id, share, share_in_main in zip(
                participant_ids, shares, shares_in_main, strict=True
            )
        ),
    )

    logger.debug(
        f"Built expense {expense.id}: {len(expense.shares)} shares, "
        f"total in main {total_in_main}"
    )
    return expense


def build_transfer(
    *,
    group_id: str,
    from_member_id: str,
    to_member_id: str,
    currency_code: str,
    amount_scaled: int,
    exchange_rate_to_main_scaled: int = SCALE,
    description: str | None = None,
    expense_id: str | None = None,
    created_at: datetime | None = None,
) -> Expense:
    """
    Create a direct payment from one member to another.

    A transfer has a single share: the amount credited to the recipient.
    """
    assert_non_empty_string(group_id, "group_id")
    assert_non_empty_string(from_member_id, "from_member_id")
    assert_non_empty_string(to_member_id, "to_member_id")
    assert_non_empty_string(currency_code, "currency_code")
    assert_non_negative_scaled(amount_scaled, "amount_scaled")
    assert_non_negative_scaled(
        exchange_rate_to_main_scaled, "exchange_rate_to_main_scaled"
    )

    total_in_main = apply_exchange_rate(amount_scaled, exchange_rate_to_main_scaled)

    return Expense(
        id=expense_id or _new_id(),
        group_id=group_id,
        description=description,
        payer_member_id=from_member_id,
        currency_code=normalize_currency_code(currency_code),
        total_amount_scaled=amount_scaled,
        exchange_rate_to_main_scaled=exchange_rate_to_main_scaled,
        total_in_main_scaled=total_in_main,
        created_at=created_at or datetime.now(UTC),
        payment_type=PaymentType.TRANSFER,
        split_type=SplitType.EXACT,
        shares=(
            ExpenseShare(
                member_id=to_member_id,
                share_amount_scaled=amount_scaled,
                share_in_main_scaled=total_in_main,
            ),
        ),
    )


def settlement_to_transfer(
    settlement: Settlement,
    *,
    group_id: str,
    main_currency_code: str,
    expense_id: str | None = None,
    created_at: datetime | None = None,
) -> Expense:
    """Record a computed settlement as a main-currency transfer."""
    return build_transfer(
        group_id=group_id,
        from_member_id=settlement.from_member.id,
        to_member_id=settlement.to_member.id,
        currency_code=main_currency_code,
        amount_scaled=settlement.amount_scaled,
        description=(
            f"Settlement: {settlement.from_member.name} → {settlement.to_member.name}"
        ),
        expense_id=expense_id,
        created_at=created_at,
    )
