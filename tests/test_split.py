from decimal import Decimal

import pytest

from settleup.db.models import SplitRole, SplitRow
from settleup.services.balances import aggregate_balances
from settleup.services.split import (
    SplitMismatchError,
    SplitShare,
    build_expense_rows,
    build_multi_payer_rows,
    split_amount,
)


def test_split_amount_even():
    shares = split_amount(Decimal("100"), [1, 2, 3, 4])
    assert shares == {1: Decimal("25.00"), 2: Decimal("25.00"), 3: Decimal("25.00"), 4: Decimal("25.00")}


def test_split_amount_remainder():
    shares = split_amount(Decimal("10.01"), [1, 2, 3])
    assert sum(shares.values()) == Decimal("10.01")
    assert shares == {1: Decimal("3.34"), 2: Decimal("3.34"), 3: Decimal("3.33")}


def test_split_amount_ignores_duplicates():
    assert split_amount("9", [1, 2, 2, 3]) == {1: Decimal("3.00"), 2: Decimal("3.00"), 3: Decimal("3.00")}


def test_split_amount_rejects_bad_input():
    with pytest.raises(ValueError):
        split_amount(Decimal("-1"), [1])
    with pytest.raises(ValueError):
        split_amount(Decimal("1"), [])


def test_build_expense_rows():
    rows = build_expense_rows(1, "90", [1, 2, 3])

    assert rows[0] == SplitShare(user_id=1, amount=Decimal("90.00"), role=SplitRole.PAYER)
    assert [r.user_id for r in rows[1:]] == [1, 2, 3]
    assert all(r.role is SplitRole.DEBTOR for r in rows[1:])
    assert sum(r.amount for r in rows[1:]) == Decimal("90.00")


def test_build_multi_payer_rows():
    rows = build_multi_payer_rows([(1, "60"), (2, "40")], "100", [1, 2, 3, 4])

    assert rows[:2] == [
        SplitShare(user_id=1, amount=Decimal("60.00"), role=SplitRole.PAYER),
        SplitShare(user_id=2, amount=Decimal("40.00"), role=SplitRole.PAYER),
    ]
    assert [(r.user_id, r.amount) for r in rows[2:]] == [
        (1, Decimal("25.00")),
        (2, Decimal("25.00")),
        (3, Decimal("25.00")),
        (4, Decimal("25.00")),
    ]


def test_multi_payer_rows_feed_proportional_balances():
    rows = build_multi_payer_rows([(1, "60"), (2, "40")], "100", [1, 2, 3, 4])
    balances = aggregate_balances(SplitRow(7, r.user_id, r.amount, r.role) for r in rows)

    assert {uid: b.rounded for uid, b in balances.items()} == {
        1: Decimal("35.00"),
        2: Decimal("15.00"),
        3: Decimal("-25.00"),
        4: Decimal("-25.00"),
    }


def test_multi_payer_rows_merge_repeated_payer():
    rows = build_multi_payer_rows([(1, "30"), (1, "20")], "50", [1, 2])
    assert rows[0] == SplitShare(user_id=1, amount=Decimal("50.00"), role=SplitRole.PAYER)
    assert len([r for r in rows if r.role is SplitRole.PAYER]) == 1


def test_multi_payer_rows_accept_difference_within_tolerance():
    rows = build_multi_payer_rows([(1, "33.33"), (2, "33.33"), (3, "33.33")], "100", [1, 2, 3])
    assert sum(r.amount for r in rows if r.role is SplitRole.DEBTOR) == Decimal("100.00")


def test_multi_payer_rows_reject_mismatch():
    with pytest.raises(SplitMismatchError):
        build_multi_payer_rows([(1, "60"), (2, "30")], "100", [1, 2])
    with pytest.raises(ValueError):
        build_multi_payer_rows([], "100", [1, 2])
