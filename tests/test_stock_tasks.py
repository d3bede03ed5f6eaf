"""Tests for the background stock-limit check."""
import pytest

from stockroom.models.product import Product
from stockroom.tasks.stock_tasks import evaluate_stock_limits


@pytest.mark.parametrize("quantity, expected", [
    (1, "below_low_limit"),
    (5, "ok"),
    (20, "ok"),
    (21, "above_high_limit"),
])
def test_evaluate_stock_limits(db_session, quantity, expected):
    db_session.add(Product(id=1, name="Lija", quantity=quantity, price=1.0, low_limit=5, high_limit=20))
    db_session.commit()

    result = evaluate_stock_limits(db_session, 1)

    assert result["status"] == expected
    assert result["quantity"] == quantity


def test_evaluate_missing_product(db_session):
    assert evaluate_stock_limits(db_session, 99) == {"status": "missing", "product_id": 99}
