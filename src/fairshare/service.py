"""Service layer that composes validation, balances and the settlement solver.

Every method is a pure function of the ledger it is given; the service only
holds settings (such as the simplify preference).
"""

import logging
from datetime import datetime

from .balances import compute_balances
from .config import Settings
from .ledger import settlement_to_transfer
from .models import Ledger, Settlement, SimplificationStep
from .money import format_currency
from .settlement import (
    compute_settlements_no_simplify,
    compute_settlements_simplified,
    compute_simplification_steps,
)
from .validation import validate_ledger

logger = logging.getLogger(__name__)


class SettlementService:
    """Service for computing balances and settlements for a group ledger."""

    def __init__(self, settings: Settings):
        """Initialize the settlement service."""
        self.settings = settings

    def validate(self, ledger: Ledger) -> None:
        """Reject malformed ledgers before any computation."""
        validate_ledger(ledger)

    def balances(self, ledger: Ledger) -> dict[str, int]:
        """
        Compute net balances for every member.

        Returns:
            Mapping of member id to scaled balance (positive = is owed)
        """
        self.validate(ledger)
        return compute_balances(ledger.ordered_expenses(), ledger.members)

    def settle(self, ledger: Ledger, simplify: bool | None = None) -> list[Settlement]:
        """
        Compute settlements for a ledger.

        Args:
            ledger: The group ledger
            simplify: Use greedy netting; defaults to ``settings.prefer_simplified``

        Returns:
            Settlements, every amount positive
        """
        self.validate(ledger)

        if simplify is None:
            simplify = self.settings.prefer_simplified

        expenses = ledger.ordered_expenses()
        if simplify:
            settlements = compute_settlements_simplified(expenses, ledger.members)
        else:
            settlements = compute_settlements_no_simplify(expenses, ledger.members)

        total = sum(s.amount_scaled for s in settlements)
        logger.info(
            f"Computed {len(settlements)} settlements "
            f"({'simplified' if simplify else 'pairwise'}) for group "
            f"{ledger.group_id}, total "
            f"{format_currency(total, self.settings.currency_symbol)} "
            f"{ledger.main_currency_code}"
        )

        return settlements

    def explain(self, ledger: Ledger) -> list[SimplificationStep]:
        """Trace how pairwise debts net down to the simplified settlements."""
        self.validate(ledger)
        steps = compute_simplification_steps(ledger.ordered_expenses(), ledger.members)

        if len(steps) <= 1:
            logger.info("Settlements are already minimal, nothing to explain")

        return steps

    def record_settlement(
        self,
        ledger: Ledger,
        settlement: Settlement,
        created_at: datetime | None = None,
    ) -> Ledger:
        """
        Record a settlement as a transfer and return the updated ledger.

        The input ledger is not modified.

        Raises:
            ValidationError: If either side of the settlement is not a member
        """
        ledger.get_member(settlement.from_member.id)
        ledger.get_member(settlement.to_member.id)

        transfer = settlement_to_transfer(
            settlement,
            group_id=ledger.group_id,
            main_currency_code=ledger.main_currency_code,
            created_at=created_at,
        )

        logger.info(
            f"Recorded transfer {transfer.id}: {settlement.from_member.name} -> "
            f"{settlement.to_member.name} "
            f"{format_currency(settlement.amount_scaled, self.settings.currency_symbol)}"
        )

        return ledger.model_copy(update={"expenses": (*ledger.expenses, transfer)})
