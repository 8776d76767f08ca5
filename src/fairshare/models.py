"""Pydantic domain models for FairShare."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ValidationError, ValidationErrorCode
from .money import ScaledInt

# ============================================================================
# Ledger Models
# ============================================================================


class PaymentType(StrEnum):
    """Distinguishes shared expenses from direct person-to-person transfers."""

    EXPENSE = "expense"
    TRANSFER = "transfer"


class SplitType(StrEnum):
    """How an expense was split; kept so the expense can be edited later."""

    EQUAL = "equal"
    PERCENTAGE = "percentage"
    EXACT = "exact"


class Member(BaseModel):
    """A group member."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str | None = None


class ExpenseShare(BaseModel):
    """One member's portion of an expense, in both currencies."""

    model_config = ConfigDict(frozen=True)

    member_id: str
    share_amount_scaled: ScaledInt  # original currency
    share_in_main_scaled: ScaledInt  # group main currency
    id: str | None = None


class Expense(BaseModel):
    """
    A payment event recorded in a group.

    The main-currency total is computed once from the snapshot rate when the
    expense is created or edited, and is never re-derived from a newer rate.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    group_id: str
    payer_member_id: str
    currency_code: str
    total_amount_scaled: ScaledInt
    exchange_rate_to_main_scaled: ScaledInt
    total_in_main_scaled: ScaledInt
    created_at: datetime
    shares: tuple[ExpenseShare, ...] = ()
    description: str | None = None
    payment_type: PaymentType = PaymentType.EXPENSE
    split_type: SplitType = SplitType.EQUAL

    @property
    def is_transfer(self) -> bool:
        return self.payment_type == PaymentType.TRANSFER


class Ledger(BaseModel):
    """A snapshot of one group's members and expenses."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    main_currency_code: str
    members: tuple[Member, ...] = ()
    expenses: tuple[Expense, ...] = ()

    def ordered_expenses(self) -> list[Expense]:
        """Expenses sorted by creation time (stable for equal timestamps)."""
        return sorted(self.expenses, key=lambda e: e.created_at)

    def get_member(self, member_id: str) -> Member:
        """Look up a member by id."""
        for member in self.members:
            if member.id == member_id:
                return member
        raise ValidationError(
            f"Member {member_id} not in group {self.group_id}",
            ValidationErrorCode.REFERENCED_ID_NOT_FOUND,
            "member_id",
        )


# ============================================================================
# Computed Models
# ============================================================================


class Settlement(BaseModel):
    """A recommended payment from one member to another (never persisted)."""

    model_config = ConfigDict(frozen=True)

    from_member: Member
    to_member: Member
    amount_scaled: ScaledInt = Field(gt=0)

    def key(self) -> tuple[str, str, int]:
        """Identity of the transfer: (payer id, payee id, amount)."""
        return (self.from_member.id, self.to_member.id, self.amount_scaled)


class SimplificationStep(BaseModel):
    """
    One frame of the simplification trace.

    ``highlighted_indices`` point at settlements about to be merged;
    ``result_indices`` point at settlements just produced by a merge.
    """

    model_config = ConfigDict(frozen=True)

    settlements: tuple[Settlement, ...]
    highlighted_indices: tuple[int, ...] = ()
    result_indices: tuple[int, ...] = ()
