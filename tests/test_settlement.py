"""Tests for the settlement solver."""

import random
from datetime import UTC, datetime

import pytest

from fairshare.balances import compute_balances
from fairshare.ledger import settlement_to_transfer
from fairshare.models import Expense, ExpenseShare, Member
from fairshare.money import SCALE
from fairshare.settlement import (
    apply_settlements,
    balances_from_settlements,
    compute_settlements_no_simplify,
    compute_settlements_simplified,
    settle_balances,
)

ALICE = Member(id="a", name="Alice")
BOB = Member(id="b", name="Bob")
CHARLIE = Member(id="c", name="Charlie")
DANA = Member(id="d", name="Dana")
MEMBERS = [ALICE, BOB, CHARLIE, DANA]


def make_expense(id: str, payer: str, shares: dict[str, int]) -> Expense:
    """Create a main-currency expense whose total is the sum of its shares."""
    total = sum(shares.values())
    return Expense(
        id=id,
        group_id="group-1",
        payer_member_id=payer,
        currency_code="USD",
        total_amount_scaled=total,
        exchange_rate_to_main_scaled=SCALE,
        total_in_main_scaled=total,
        created_at=datetime(2026, 1, 15, 12, 0, tzinfo=UTC),
        shares=tuple(
            ExpenseShare(member_id=m, share_amount_scaled=a, share_in_main_scaled=a)
            for m, a in shares.items()
        ),
    )


def keys(settlements) -> list[tuple[str, str, int]]:
    return [s.key() for s in settlements]


@pytest.fixture
def three_way_dinner():
    """Alice pays 9000 split equally among Alice, Bob and Charlie."""
    return [make_expense("e1", "a", {"a": 3000, "b": 3000, "c": 3000})]


@pytest.fixture
def debt_cycle():
    """A owes B, B owes C, C owes A, 1000 each."""
    return [
        make_expense("e1", "b", {"a": 1000}),
        make_expense("e2", "c", {"b": 1000}),
        make_expense("e3", "a", {"c": 1000}),
    ]


@pytest.fixture
def messy_ledger():
    return [
        make_expense("e1", "a", {"a": 33334, "b": 33333, "c": 33333}),
        make_expense("e2", "b", {"a": 12345, "c": 6789, "d": 10000}),
        make_expense("e3", "c", {"b": 99999, "d": 1}),
        make_expense("e4", "d", {"a": 25000, "b": 25000, "c": 25000, "d": 25000}),
        make_expense("e5", "a", {"b": 4000}),
    ]


class TestNoSimplify:
    """Pairwise debts without netting."""

    def test_three_way_dinner(self, three_way_dinner):
        settlements = compute_settlements_no_simplify(three_way_dinner, MEMBERS)
        assert keys(settlements) == [("b", "a", 3000), ("c", "a", 3000)]

    def test_sums_same_pair_across_expenses(self):
        expenses = [
            make_expense("e1", "a", {"b": 1000}),
            make_expense("e2", "a", {"b": 2500, "c": 500}),
        ]

        settlements = compute_settlements_no_simplify(expenses, MEMBERS)

        assert keys(settlements) == [("b", "a", 3500), ("c", "a", 500)]

    def test_keeps_reciprocal_debts(self):
        """B owes A 10 and A owes B 4: both stay, nothing is cancelled."""
        expenses = [
            make_expense("e1", "a", {"b": 100000}),
            make_expense("e2", "b", {"a": 40000}),
        ]

        settlements = compute_settlements_no_simplify(expenses, MEMBERS)

        assert keys(settlements) == [("b", "a", 100000), ("a", "b", 40000)]

    def test_skips_payer_share_and_zero_shares(self):
        expenses = [make_expense("e1", "a", {"a": 5000, "b": 0, "c": 5000})]

        settlements = compute_settlements_no_simplify(expenses, MEMBERS)

        assert keys(settlements) == [("c", "a", 5000)]

    def test_debt_cycle_has_three_entries(self, debt_cycle):
        assert len(compute_settlements_no_simplify(debt_cycle, MEMBERS)) == 3

    def test_empty_ledger(self):
        assert compute_settlements_no_simplify([], MEMBERS) == []

    def test_unknown_members_are_skipped(self):
        expenses = [make_expense("e1", "a", {"ghost": 1000, "b": 1000})]

        settlements = compute_settlements_no_simplify(expenses, MEMBERS)

        assert keys(settlements) == [("b", "a", 1000)]


class TestSimplified:
    """Greedy netting from balances."""

    def test_three_way_dinner_is_already_minimal(self, three_way_dinner):
        simplified = compute_settlements_simplified(three_way_dinner, MEMBERS)
        pairwise = compute_settlements_no_simplify(three_way_dinner, MEMBERS)

        assert keys(simplified) == [("b", "a", 3000), ("c", "a", 3000)]
        assert keys(simplified) == keys(pairwise)

    def test_debt_cycle_settles_to_nothing(self, debt_cycle):
        assert compute_settlements_simplified(debt_cycle, MEMBERS) == []

    def test_reciprocal_debts_net(self):
        expenses = [
            make_expense("e1", "a", {"b": 100000}),
            make_expense("e2", "b", {"a": 40000}),
        ]

        settlements = compute_settlements_simplified(expenses, MEMBERS)

        assert keys(settlements) == [("b", "a", 60000)]

    def test_largest_debtor_pays_largest_creditor(self):
        balances = {"a": -50000, "b": -100000, "c": 80000, "d": 70000}

        settlements = settle_balances(balances, MEMBERS)

        assert keys(settlements) == [
            ("b", "c", 80000),
            ("b", "d", 20000),
            ("a", "d", 50000),
        ]

    def test_ties_keep_member_order(self):
        balances = {"a": 10000, "b": 10000, "c": -10000, "d": -10000}

        settlements = settle_balances(balances, MEMBERS)

        assert keys(settlements) == [("c", "a", 10000), ("d", "b", 10000)]

    def test_all_zero_balances(self):
        expenses = [
            make_expense("e1", "a", {"a": 5000}),
            make_expense("e2", "b", {"b": 7000}),
        ]

        assert compute_settlements_simplified(expenses, MEMBERS) == []
        assert compute_settlements_no_simplify(expenses, MEMBERS) == []

    def test_single_member(self):
        expenses = [make_expense("e1", "a", {"a": 5000})]
        assert compute_settlements_simplified(expenses, [ALICE]) == []

    def test_every_amount_positive(self, messy_ledger):
        settlements = compute_settlements_simplified(messy_ledger, MEMBERS)
        assert settlements
        assert all(s.amount_scaled > 0 for s in settlements)

    def test_never_more_transfers_than_pairwise(
        self, three_way_dinner, debt_cycle, messy_ledger
    ):
        for expenses in (three_way_dinner, debt_cycle, messy_ledger):
            simplified = compute_settlements_simplified(expenses, MEMBERS)
            pairwise = compute_settlements_no_simplify(expenses, MEMBERS)
            assert len(simplified) <= len(pairwise)


class TestSeparateDebtGroups:
    """Members who never share an expense are settled apart."""

    EVE = Member(id="e", name="Eve")

    def test_two_groups_keep_pairwise_count(self):
        """Bob covers Alice and Charlie, Eve covers Dana: three transfers."""
        members = [*MEMBERS, self.EVE]
        expenses = [
            make_expense("e1", "b", {"a": 30000, "c": 20000}),
            make_expense("e2", "e", {"d": 40000}),
        ]

        simplified = compute_settlements_simplified(expenses, members)

        assert keys(simplified) == [
            ("a", "b", 30000),
            ("c", "b", 20000),
            ("d", "e", 40000),
        ]
        pairwise = compute_settlements_no_simplify(expenses, members)
        assert len(simplified) <= len(pairwise)

    def test_groups_listed_in_member_order(self):
        """Each group settles on its own, listed by its first member."""
        expenses = [
            make_expense("e1", "d", {"a": 20000}),
            make_expense("e2", "c", {"b": 10000}),
        ]

        simplified = compute_settlements_simplified(expenses, MEMBERS)

        assert keys(simplified) == [("a", "d", 20000), ("b", "c", 10000)]

    @pytest.mark.parametrize("seed", range(30))
    def test_never_more_transfers_than_pairwise(self, seed):
        rng = random.Random(seed)
        members = [*MEMBERS, self.EVE, Member(id="f", name="Finn")]
        expenses = []
        for i in range(rng.randint(1, 6)):
            payer = rng.choice(members)
            participants = rng.sample(members, rng.randint(1, 3))
            expenses.append(
                make_expense(
                    f"e{i}",
                    payer.id,
                    {m.id: rng.randint(0, 50000) for m in participants},
                )
            )

        simplified = compute_settlements_simplified(expenses, members)
        pairwise = compute_settlements_no_simplify(expenses, members)
        balances = compute_balances(expenses, members)

        assert len(simplified) <= len(pairwise)
        assert all(v == 0 for v in apply_settlements(balances, simplified).values())


class TestRoundTrip:
    """Settlements are a valid factorization of the balance vector."""

    def test_settlements_reconstruct_balances(self, messy_ledger):
        balances = compute_balances(messy_ledger, MEMBERS)
        settlements = compute_settlements_simplified(messy_ledger, MEMBERS)

        assert balances_from_settlements(settlements, MEMBERS) == balances

    def test_pairwise_settlements_reconstruct_balances(self, messy_ledger):
        balances = compute_balances(messy_ledger, MEMBERS)
        settlements = compute_settlements_no_simplify(messy_ledger, MEMBERS)

        assert balances_from_settlements(settlements, MEMBERS) == balances

    def test_paying_settlements_zeroes_balances(self, messy_ledger):
        balances = compute_balances(messy_ledger, MEMBERS)
        settlements = compute_settlements_simplified(messy_ledger, MEMBERS)

        after = apply_settlements(balances, settlements)

        assert all(v == 0 for v in after.values())

    def test_recorded_transfers_settle_the_group(self, messy_ledger):
        """Materializing every settlement as a transfer leaves nothing owed."""
        settlements = compute_settlements_simplified(messy_ledger, MEMBERS)
        transfers = [
            settlement_to_transfer(s, group_id="group-1", main_currency_code="USD")
            for s in settlements
        ]

        ledger = messy_ledger + transfers

        assert compute_settlements_simplified(ledger, MEMBERS) == []
        assert all(v == 0 for v in compute_balances(ledger, MEMBERS).values())

    def test_recording_one_transfer_reduces_pair(self, three_way_dinner):
        bob_pays = compute_settlements_simplified(three_way_dinner, MEMBERS)[0]
        transfer = settlement_to_transfer(
            bob_pays, group_id="group-1", main_currency_code="USD"
        )

        remaining = compute_settlements_simplified(
            three_way_dinner + [transfer], MEMBERS
        )

        assert keys(remaining) == [("c", "a", 3000)]
