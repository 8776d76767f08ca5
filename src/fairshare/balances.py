"""Fold a ledger into one net balance per member, in the main currency."""

from collections.abc import Iterable, Mapping

from .models import Expense, Member


def compute_balances(
    expenses: Iterable[Expense], members: Iterable[Member]
) -> dict[str, int]:
    """
    Compute each member's net balance.

    The payer is credited with the expense's main-currency total and every
    share member is debited with their main-currency share. Transfers are
    folded in the same way, which nets a real payment against the payer's debt.

    Positive means the member is owed money; negative means they owe.
    The values always sum to zero.

    Args:
        expenses: Ledger entries (any order)
        members: Group members; every member gets an entry, even at zero

    Returns:
        Mapping of member id to scaled balance, in member order
    """
    balances: dict[str, int] = {member.id: 0 for member in members}

    for expense in expenses:
        payer_id = expense.payer_member_id
        balances[payer_id] = balances.get(payer_id, 0) + expense.total_in_main_scaled

        for share in expense.shares:
            balances[share.member_id] = (
                balances.get(share.member_id, 0) - share.share_in_main_scaled
            )

    return balances


def balances_are_settled(balances: Mapping[str, int]) -> bool:
    """True when nobody owes or is owed anything."""
    return all(balance == 0 for balance in balances.values())
