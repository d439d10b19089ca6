import random
from decimal import Decimal

import pytest

from settleup.db.models import SplitRole, SplitRow
from settleup.services.balances import Balance, aggregate_balances
from settleup.services.settlement import Settlement, optimize

EPS = Decimal("0.01")


def balances_of(values: dict[int, str]) -> dict[int, Balance]:
    return {user_id: Balance(user_id, Decimal(value)) for user_id, value in values.items()}


def apply(balances: dict[int, Balance], settlements: list[Settlement]) -> dict[int, Decimal]:
    after = {user_id: balance.net_amount for user_id, balance in balances.items()}
    for s in settlements:
        after[s.from_user] += s.amount
        after[s.to_user] -= s.amount
    return after


def whole_unit_ledger(seed: int, users: int = 8, expenses: int = 30) -> list[SplitRow]:
    rng = random.Random(seed)
    rows: list[SplitRow] = []
    for expense_id in range(1, expenses + 1):
        payer_id = rng.randint(1, users)
        debtors = rng.sample(range(1, users + 1), rng.randint(1, users))
        shares = [Decimal(rng.randint(1, 500)) for _ in debtors]
        rows.append(SplitRow(expense_id, payer_id, sum(shares, Decimal("0")), SplitRole.PAYER))
        rows.extend(SplitRow(expense_id, uid, share, SplitRole.DEBTOR) for uid, share in zip(debtors, shares))
    return rows


def test_settle_balances():
    balances = balances_of({1: "500", 2: "-300", 3: "-200"})

    transfers = optimize(balances)

    assert transfers == [
        Settlement(from_user=2, to_user=1, amount=Decimal("300")),
        Settlement(from_user=3, to_user=1, amount=Decimal("200")),
    ]
    assert sum(t.amount for t in transfers) == Decimal("500")
    assert all(value == 0 for value in apply(balances, transfers).values())


def test_even_split_settles_with_two_transfers():
    rows = [
        SplitRow(1, 1, Decimal("90"), SplitRole.PAYER),
        SplitRow(1, 1, Decimal("30"), SplitRole.DEBTOR),
        SplitRow(1, 2, Decimal("30"), SplitRole.DEBTOR),
        SplitRow(1, 3, Decimal("30"), SplitRole.DEBTOR),
    ]

    assert optimize(aggregate_balances(rows)) == [
        Settlement(from_user=2, to_user=1, amount=Decimal("30.00")),
        Settlement(from_user=3, to_user=1, amount=Decimal("30.00")),
    ]


def test_largest_debtor_is_matched_with_largest_creditor():
    balances = balances_of({1: "10", 2: "70", 3: "-25", 4: "-55"})

    assert optimize(balances) == [
        Settlement(from_user=4, to_user=2, amount=Decimal("55")),
        Settlement(from_user=3, to_user=2, amount=Decimal("15")),
        Settlement(from_user=3, to_user=1, amount=Decimal("10")),
    ]


def test_equal_amounts_are_ordered_by_user_id():
    balances = balances_of({5: "50", 2: "50", 9: "-100"})

    assert optimize(balances) == [
        Settlement(from_user=9, to_user=2, amount=Decimal("50")),
        Settlement(from_user=9, to_user=5, amount=Decimal("50")),
    ]


def test_balance_equal_to_tolerance_is_settled():
    assert optimize(balances_of({1: "0.01", 2: "-0.01"}), EPS) == []


def test_balance_above_tolerance_is_not_settled():
    tolerance = Decimal("0.005")
    balances = balances_of({1: "0.006", 2: "-0.006"})

    assert optimize(balances, tolerance) == [Settlement(from_user=2, to_user=1, amount=Decimal("0.01"))]


def test_balances_are_rounded_before_partition():
    # 0.011 rounds to exactly the tolerance
    assert optimize(balances_of({1: "0.011", 2: "-0.011"}), EPS) == []
    assert optimize(balances_of({1: "0.015", 2: "-0.015"}), EPS) == [
        Settlement(from_user=2, to_user=1, amount=Decimal("0.02"))
    ]


def test_zero_tolerance_terminates():
    balances = balances_of({1: "10", 2: "-4", 3: "-6"})

    transfers = optimize(balances, Decimal("0"))

    assert transfers == [
        Settlement(from_user=3, to_user=1, amount=Decimal("6")),
        Settlement(from_user=2, to_user=1, amount=Decimal("4")),
    ]


def test_negative_tolerance_is_rejected():
    with pytest.raises(ValueError):
        optimize(balances_of({1: "1", 2: "-1"}), Decimal("-0.01"))


def test_unbalanced_input_leaves_remainder_unsettled():
    balances = balances_of({1: "10", 2: "-25"})

    assert optimize(balances) == [Settlement(from_user=2, to_user=1, amount=Decimal("10"))]


def test_empty_balances():
    assert optimize({}) == []


@pytest.mark.parametrize("seed", range(20))
def test_settlements_empty_every_balance(seed):
    balances = aggregate_balances(whole_unit_ledger(seed))

    transfers = optimize(balances, EPS)

    assert all(abs(value) <= EPS for value in apply(balances, transfers).values())
    assert all(t.from_user != t.to_user for t in transfers)
    assert all(t.amount > EPS for t in transfers)
    nonzero = sum(1 for b in balances.values() if abs(b.rounded) > EPS)
    assert len(transfers) <= max(0, nonzero - 1)


@pytest.mark.parametrize("seed", range(5))
def test_optimize_is_deterministic(seed):
    balances = aggregate_balances(whole_unit_ledger(seed))

    first = [(t.from_user, t.to_user, str(t.amount)) for t in optimize(balances)]
    second = [(t.from_user, t.to_user, str(t.amount)) for t in optimize(dict(reversed(balances.items())))]

    assert first == second
