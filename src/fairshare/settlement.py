"""Settlement solver: who pays whom, pairwise or greedily netted.

Two algorithms are offered:

- ``compute_settlements_no_simplify`` keeps the per-expense origin of every
  debt and only sums debts between the same (debtor, creditor) pair.
- ``compute_settlements_simplified`` works from net balances and greedily
  matches the largest debtor with the largest creditor, separately inside
  each group of members linked by debts. It is a heuristic for a small
  number of transfers, not a proven minimum.

``compute_simplification_steps`` replays how the first list collapses into
the second, for animation.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .balances import compute_balances
from .models import Expense, Member, Settlement, SimplificationStep

logger = logging.getLogger(__name__)


def compute_settlements_no_simplify(
    expenses: Iterable[Expense], members: Iterable[Member]
) -> list[Settlement]:
    """
    Compute pairwise debts without netting.

    Every non-payer share becomes a debt from the share member to the payer.
    Debts for the same ordered pair are summed; opposite-direction debts are
    both kept (A owes B 10 and B owes A 4 stay as two settlements).

    Args:
        expenses: Ledger entries, in the order they should be read
        members: Group members

    Returns:
        Settlements in order of first appearance
    """
    member_map = {m.id: m for m in members}
    debts: dict[tuple[str, str], int] = {}

    for expense in expenses:
        payer_id = expense.payer_member_id

        for share in expense.shares:
            # Paying for yourself creates no debt
            if share.member_id == payer_id or share.share_in_main_scaled == 0:
                continue

            key = (share.member_id, payer_id)
            debts[key] = debts.get(key, 0) + share.share_in_main_scaled

    settlements = []
    for (debtor_id, creditor_id), amount in debts.items():
        if amount <= 0 or debtor_id not in member_map or creditor_id not in member_map:
            continue
        settlements.append(
            Settlement(
                from_member=member_map[debtor_id],
                to_member=member_map[creditor_id],
                amount_scaled=amount,
            )
        )

    return settlements


@dataclass
class _Party:
    member: Member
    remaining: int


def settle_balances(
    balances: Mapping[str, int], members: Iterable[Member]
) -> list[Settlement]:
    """
    Greedily factor a balance vector into positive transfers.

    Debtors and creditors are each ordered by size, largest first; ties keep
    member order. The current largest debtor pays the current largest creditor
    ``min(debt, credit)``, and whichever side reaches zero advances.
    """
    member_map = {m.id: m for m in members}
    debtors: list[_Party] = []
    creditors: list[_Party] = []

    for member_id, balance in balances.items():
        member = member_map.get(member_id)
        if member is None:
            continue
        if balance < 0:
            debtors.append(_Party(member, -balance))
        elif balance > 0:
            creditors.append(_Party(member, balance))

    # list.sort is stable with reverse=True, so equal amounts keep member order
    debtors.sort(key=lambda p: p.remaining, reverse=True)
    creditors.sort(key=lambda p: p.remaining, reverse=True)

    settlements = []
    debtor_idx = 0
    creditor_idx = 0

    while debtor_idx < len(debtors) and creditor_idx < len(creditors):
        debtor = debtors[debtor_idx]
        creditor = creditors[creditor_idx]

        amount = min(debtor.remaining, creditor.remaining)
        settlements.append(
            Settlement(
                from_member=debtor.member,
                to_member=creditor.member,
                amount_scaled=amount,
            )
        )

        debtor.remaining -= amount
        creditor.remaining -= amount

        if debtor.remaining == 0:
            debtor_idx += 1
        if creditor.remaining == 0:
            creditor_idx += 1

    return settlements


def _debt_groups(
    expenses: Sequence[Expense], members: Sequence[Member]
) -> list[list[Member]]:
    """
    Partition members into groups connected by at least one debt.

    A payer and every member holding a non-zero share of their expense end up
    in the same group. Groups are listed in order of their first member, and
    members keep their order within a group.
    """
    parent = {m.id: m.id for m in members}

    def find(member_id: str) -> str:
        while parent[member_id] != member_id:
            parent[member_id] = parent[parent[member_id]]
            member_id = parent[member_id]
        return member_id

    for expense in expenses:
        payer_id = expense.payer_member_id
        if payer_id not in parent:
            continue
        for share in expense.shares:
            if share.member_id not in parent or share.share_in_main_scaled == 0:
                continue
            parent[find(share.member_id)] = find(payer_id)

    groups: dict[str, list[Member]] = {}
    for member in members:
        groups.setdefault(find(member.id), []).append(member)
    return list(groups.values())


def compute_settlements_simplified(
    expenses: Iterable[Expense], members: Iterable[Member]
) -> list[Settlement]:
    """
    Compute a small set of transfers from the members' net balances.

    Balances inside each debt group sum to zero, so each group is settled on
    its own. A group of k members then needs at most k - 1 transfers, which
    is never more than the pairwise debts already linking them.
    """
    expenses = list(expenses)
    members = list(members)
    balances = compute_balances(expenses, members)

    settlements = []
    for group in _debt_groups(expenses, members):
        group_balances = {m.id: balances[m.id] for m in group}
        settlements.extend(settle_balances(group_balances, group))
    return settlements


def apply_settlements(
    balances: Mapping[str, int], settlements: Iterable[Settlement]
) -> dict[str, int]:
    """Balances after every settlement has been paid (payer up, payee down)."""
    result = dict(balances)
    for s in settlements:
        result[s.from_member.id] = result.get(s.from_member.id, 0) + s.amount_scaled
        result[s.to_member.id] = result.get(s.to_member.id, 0) - s.amount_scaled
    return result


def balances_from_settlements(
    settlements: Iterable[Settlement], members: Iterable[Member]
) -> dict[str, int]:
    """Net balances implied by a list of outstanding settlements."""
    balances = {m.id: 0 for m in members}
    for s in settlements:
        balances[s.from_member.id] = balances.get(s.from_member.id, 0) - s.amount_scaled
        balances[s.to_member.id] = balances.get(s.to_member.id, 0) + s.amount_scaled
    return balances


# ============================================================================
# Simplification Trace
# ============================================================================


def _same_settlements(a: Sequence[Settlement], b: Sequence[Settlement]) -> bool:
    """Order-insensitive comparison of two settlement lists."""
    return sorted(s.key() for s in a) == sorted(s.key() for s in b)


def _is_reducible(a: Settlement, b: Settlement) -> bool:
    a_from, a_to = a.from_member.id, a.to_member.id
    b_from, b_to = b.from_member.id, b.to_member.id

    if a_from == b_from and a_to == b_to:
        return True
    if a_from == b_to and a_to == b_from:
        return True
    return a_to == b_from or b_to == a_from


def _find_reducible_pair(settlements: Sequence[Settlement]) -> tuple[int, int] | None:
    for i in range(len(settlements)):
        for j in range(i + 1, len(settlements)):
            if _is_reducible(settlements[i], settlements[j]):
                return i, j
    return None


def _route_through(first: Settlement, second: Settlement) -> list[Settlement]:
    """Shortcut A -> B -> C: A pays C directly for the overlapping amount."""
    direct = min(first.amount_scaled, second.amount_scaled)
    produced = []

    if first.amount_scaled > direct:
        produced.append(
            first.model_copy(update={"amount_scaled": first.amount_scaled - direct})
        )
    if second.amount_scaled > direct:
        produced.append(
            second.model_copy(update={"amount_scaled": second.amount_scaled - direct})
        )

    produced.append(
        Settlement(
            from_member=first.from_member,
            to_member=second.to_member,
            amount_scaled=direct,
        )
    )
    return produced


def _merge(a: Settlement, b: Settlement) -> list[Settlement]:
    """Replace a reducible pair with the settlements it nets down to."""
    a_from, a_to = a.from_member.id, a.to_member.id
    b_from, b_to = b.from_member.id, b.to_member.id

    # Same direction: A -> B twice
    if a_from == b_from and a_to == b_to:
        return [a.model_copy(update={"amount_scaled": a.amount_scaled + b.amount_scaled})]

    # Opposite direction: A -> B against B -> A
    if a_from == b_to and a_to == b_from:
        net = a.amount_scaled - b.amount_scaled
        if net > 0:
            return [a.model_copy(update={"amount_scaled": net})]
        if net < 0:
            return [b.model_copy(update={"amount_scaled": -net})]
        return []

    if a_to == b_from:
        return _route_through(a, b)
    return _route_through(b, a)


def _result_indices_in(
    target: Sequence[Settlement], produced: Sequence[Settlement]
) -> tuple[int, ...]:
    """Positions of ``produced`` settlements within ``target``."""
    used: set[int] = set()
    indices = []
    for p in produced:
        for idx, t in enumerate(target):
            if idx not in used and t.key() == p.key():
                used.add(idx)
                indices.append(idx)
                break
    return tuple(sorted(indices))


def compute_simplification_steps(
    expenses: Iterable[Expense], members: Iterable[Member]
) -> list[SimplificationStep]:
    """
    Trace the pairwise settlement list collapsing into the simplified one.

    Step 0 is the pairwise list. Each reduction adds two steps: the current
    list with the pair about to be merged highlighted, then the new list with
    the produced settlements (appended at the end) marked as results. Pairs
    reduce when they share a direction, oppose each other, or chain through a
    common member. If the reduced list still differs from the greedy result,
    one last rebalance step highlights everything and the final step shows the
    greedy list.

    Returns:
        Ordered steps whose last entry equals ``compute_settlements_simplified``.
        A single step means there is nothing to explain.
    """
    expenses = list(expenses)
    members = list(members)

    current = compute_settlements_no_simplify(expenses, members)
    target = compute_settlements_simplified(expenses, members)

    steps = [SimplificationStep(settlements=tuple(current))]

    if _same_settlements(current, target):
        return steps

    while (pair := _find_reducible_pair(current)) is not None:
        i, j = pair
        steps.append(
            SimplificationStep(settlements=tuple(current), highlighted_indices=(i, j))
        )

        produced = _merge(current[i], current[j])
        current = [s for idx, s in enumerate(current) if idx not in (i, j)] + produced

        start = len(current) - len(produced)
        steps.append(
            SimplificationStep(
                settlements=tuple(current),
                result_indices=tuple(range(start, len(current))),
            )
        )

    if not _same_settlements(current, target):
        steps.append(
            SimplificationStep(
                settlements=tuple(current),
                highlighted_indices=tuple(range(len(current))),
            )
        )
        steps.append(
            SimplificationStep(
                settlements=tuple(target),
                result_indices=tuple(range(len(target))),
            )
        )
    elif [s.key() for s in current] != [s.key() for s in target]:
        # Same transfers in a different order: show them in the greedy order
        last = steps[-1]
        produced = [last.settlements[idx] for idx in last.result_indices]
        steps[-1] = SimplificationStep(
            settlements=tuple(target),
            result_indices=_result_indices_in(target, produced),
        )

    logger.debug(f"Simplification trace has {len(steps)} steps")
    return steps
