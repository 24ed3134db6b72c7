import pytest

import reconcile
from errors import ValidationError
from models import Transaction


def _t(amount, method="CASH", n=0):
    return Transaction(
        id=f"T{n}", batch_id="B", member_id="M", member_name="M", fellowship="Thyatira",
        amount=amount, method=method, timestamp="2025-01-12T00:00:00.000Z", officer_id="1",
    )


def test_balanced_count():
    txns = [_t(120, n=1), _t(75.5, n=2), _t(500, method="MOMO", n=3)]
    r = reconcile.reconcile(txns, {100: 1, 50: 1, 20: 2, 5: 1, 0.5: 1})
    assert r.system_cash == 195.5
    assert r.physical_cash == 195.5
    assert r.variance == 0
    assert r.is_balanced
    assert r.message == reconcile.BALANCED_MSG


def test_shortage_and_overage_messages():
    txns = [_t(100)]
    short = reconcile.reconcile(txns, {50: 1})
    assert short.variance == -50
    assert not short.is_balanced
    assert "Shortage" in short.message

    over = reconcile.reconcile(txns, {100: 1, 1: 1})
    assert over.variance == 1
    assert "Overage" in over.message


def test_epsilon():
    assert reconcile.Reconciliation(10, 10.009, 0.009).is_balanced
    assert not reconcile.Reconciliation(10, 10.01, 0.01).is_balanced
    assert not reconcile.Reconciliation(10, 9.98, -0.02).is_balanced


def test_non_cash_only_batch_balances_on_empty_count():
    r = reconcile.reconcile([_t(40, method="CHECK")], {d: 0 for d in reconcile.DENOMINATIONS})
    assert r.is_balanced


@pytest.mark.parametrize("counts", [{100: -1}, {100: 1.5}, {"x": 1}, {0: 3}, {20: True}])
def test_bad_counts_rejected(counts):
    with pytest.raises(ValidationError):
        reconcile.physical_cash(counts)
