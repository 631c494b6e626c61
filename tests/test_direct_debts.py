"""Tests for direct debts and viewer-relative balances (private groups)."""

import pytest

from groupsplit.balances import calculate_balances, simplify_debts
from groupsplit.direct_debts import (
    PairLedger,
    calculate_direct_debts,
    calculate_relative_balances,
)
from groupsplit.models import Debt, Expense, Member, Payment
from groupsplit.visibility import debts_visible_to


def make_expense(
    id: str, amount: float, paid_by: str, participants: list[str], **kwargs
) -> Expense:
    """Create an equally split expense unless split fields are given."""
    return Expense(
        id=id,
        group_id="g1",
        description=id,
        amount=amount,
        paid_by=paid_by,
        participants=participants,
        **kwargs,
    )


def debt(from_member: str, to_member: str, amount: float) -> Debt:
    return Debt(from_member=from_member, to_member=to_member, amount=amount)


@pytest.fixture
def members():
    """Amatxu, Joanna and Maikel."""
    return [
        Member(id="u-amatxu", name="Amatxu"),
        Member(id="u-joanna", name="Joanna"),
        Member(id="u-maikel", name="Maikel"),
    ]


@pytest.fixture
def namesakes():
    """Two members called Ann, plus Bob."""
    return [
        Member(id="u-a1", name="Ann"),
        Member(id="u-a2", name="Ann"),
        Member(id="u-bob", name="Bob"),
    ]


@pytest.fixture
def regalo():
    """Joanna pays 20 for Joanna and Maikel."""
    return make_expense("regalo", 20, "u-joanna", ["u-joanna", "u-maikel"])


@pytest.fixture
def mk():
    """Maikel pays 20 for Amatxu and Maikel."""
    return make_expense("mk", 20, "u-maikel", ["u-amatxu", "u-maikel"])


@pytest.fixture
def chuches():
    """Amatxu pays 30 for everyone."""
    return make_expense("chuches", 30, "u-amatxu", ["u-amatxu", "u-joanna", "u-maikel"])


class TestPairLedger:
    """Signed pairwise accumulation."""

    def test_opposite_directions_net(self):
        ledger = PairLedger()
        ledger.add("b", "a", 10)
        ledger.add("a", "b", 4)

        assert list(ledger) == [("b", "a", 6)]

    def test_self_debt_ignored(self):
        ledger = PairLedger()
        ledger.add("a", "a", 10)

        assert list(ledger) == []


class TestCalculateDirectDebts:
    """Per-transaction pairwise obligations."""

    def test_joanna_view(self, members, regalo, chuches):
        """Joanna cannot see MK, so nothing is netted through it."""
        debts = calculate_direct_debts(members, [regalo, chuches])

        assert debts == [
            debt("Maikel", "Joanna", 10),
            debt("Joanna", "Amatxu", 10),
            debt("Maikel", "Amatxu", 10),
        ]

    def test_maikel_view_nets_same_pair(self, members, regalo, mk, chuches):
        """MK and Chuches cancel between Maikel and Amatxu."""
        debts = calculate_direct_debts(members, [regalo, mk, chuches])

        assert debts == [
            debt("Maikel", "Joanna", 10),
            debt("Joanna", "Amatxu", 10),
        ]

    def test_differs_from_simplified_debts(self, members, regalo, mk, chuches):
        everything = [regalo, mk, chuches]

        simplified = simplify_debts(calculate_balances(members, everything))
        direct = calculate_direct_debts(members, [regalo, chuches])

        assert simplified == [debt("Maikel", "Amatxu", 10)]
        assert len(direct) == 3

    def test_same_pair_accumulates(self, members, regalo):
        second = make_expense("cake", 8, "u-joanna", ["u-joanna", "u-maikel"])

        debts = calculate_direct_debts(members, [regalo, second])

        assert debts == [debt("Maikel", "Joanna", 14)]

    def test_payer_share_not_a_debt(self, members):
        expenses = [make_expense("solo", 20, "u-joanna", ["u-joanna"])]

        assert calculate_direct_debts(members, expenses) == []

    def test_full_payment_clears_pair(self, members, regalo, chuches):
        payments = [Payment(from_member="Maikel", to_member="Joanna", amount=10)]

        debts = calculate_direct_debts(members, [regalo, chuches], payments)

        assert debt("Maikel", "Joanna", 10) not in debts
        assert len(debts) == 2

    def test_partial_payment_reduces_pair(self, members, regalo):
        payments = [Payment(from_member="Maikel", to_member="Joanna", amount=4)]

        debts = calculate_direct_debts(members, [regalo], payments)

        assert debts == [debt("Maikel", "Joanna", 6)]

    def test_overpayment_reverses_direction(self, members, regalo):
        payments = [Payment(from_member="Maikel", to_member="Joanna", amount=15)]

        debts = calculate_direct_debts(members, [regalo], payments)

        assert debts == [debt("Joanna", "Maikel", 5)]

    def test_unmatched_payment_ignored(self, members, regalo):
        payments = [Payment(from_member="Maikel", to_member="Nobody", amount=10)]

        debts = calculate_direct_debts(members, [regalo], payments)

        assert debts == [debt("Maikel", "Joanna", 10)]

    def test_payment_resolves_first_member_with_name(self, namesakes):
        expenses = [
            make_expense(
                "e",
                14,
                "u-bob",
                ["u-a1", "u-a2"],
                split_mode="amounts",
                split_data={"u-a1": 10, "u-a2": 4},
            )
        ]
        payments = [Payment(from_member="Ann", to_member="Bob", amount=10)]

        debts = calculate_direct_debts(namesakes, expenses, payments)

        assert debts == [debt("Ann", "Bob", 4)]

    def test_negligible_amounts_dropped(self, members):
        expenses = [
            make_expense(
                "tip",
                1,
                "u-joanna",
                ["u-joanna", "u-maikel"],
                split_mode="amounts",
                split_data={"u-joanna": 0.995, "u-maikel": 0.005},
            )
        ]

        assert calculate_direct_debts(members, expenses) == []

    def test_amounts_rounded_to_cents(self, members):
        expenses = [
            make_expense("e", 10, "u-amatxu", ["u-amatxu", "u-joanna", "u-maikel"])
        ]

        debts = calculate_direct_debts(members, expenses)

        assert [d.amount for d in debts] == [3.33, 3.33]

    def test_weighted_split(self, members):
        expenses = [
            make_expense(
                "rent",
                90,
                "u-amatxu",
                ["u-amatxu", "u-joanna", "u-maikel"],
                split_mode="shares",
                split_data={"u-joanna": 2},
            )
        ]

        debts = calculate_direct_debts(members, expenses)

        assert debts == [debt("Joanna", "Amatxu", 45), debt("Maikel", "Amatxu", 22.5)]

    def test_only_viewer_debts_surface(self, members, regalo, chuches):
        direct = calculate_direct_debts(members, [regalo, chuches])

        shown = debts_visible_to(direct, "Joanna")

        assert debt("Maikel", "Amatxu", 10) in direct
        assert debt("Maikel", "Amatxu", 10) not in shown
        assert all(d.involves("Joanna") for d in shown)


class TestCalculateRelativeBalances:
    """Balances relative to a single viewer."""

    def test_joanna_view(self, members):
        direct = [debt("Maikel", "Joanna", 10), debt("Joanna", "Amatxu", 10)]

        balances = calculate_relative_balances(members, direct, "Joanna")
        nets = {b.member_name: b.net_balance for b in balances}

        assert nets == {"Amatxu": 10, "Joanna": 0, "Maikel": -10}

    def test_viewer_is_negated_sum_of_others(self, members, regalo, mk, chuches):
        direct = calculate_direct_debts(members, [regalo, mk, chuches])

        balances = calculate_relative_balances(members, direct, "Maikel")
        viewer = next(b for b in balances if b.member_name == "Maikel")
        others = [b for b in balances if b.member_name != "Maikel"]

        assert viewer.net_balance == pytest.approx(-sum(b.net_balance for b in others))
        assert viewer.net_balance == pytest.approx(-10)

    def test_debts_between_others_ignored(self, members):
        direct = [debt("Maikel", "Amatxu", 25)]

        balances = calculate_relative_balances(members, direct, "Joanna")

        assert all(b.net_balance == 0 for b in balances)

    def test_paid_and_owed_columns(self, members):
        direct = [debt("Maikel", "Joanna", 10), debt("Joanna", "Amatxu", 4)]

        joanna = calculate_relative_balances(members, direct, "Joanna")[1]

        assert joanna.total_paid == 10
        assert joanna.total_owed == 4
        assert joanna.net_balance == 6

    def test_viewer_row_is_first_member_with_name(self, namesakes):
        direct = [debt("Bob", "Ann", 10)]

        balances = calculate_relative_balances(namesakes, direct, "Ann")
        nets = {b.member_id: b.net_balance for b in balances}

        assert nets == {"u-a1": 10, "u-a2": 0, "u-bob": -10}
