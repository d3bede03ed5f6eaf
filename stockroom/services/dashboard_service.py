from sqlalchemy.orm import Session
from sqlalchemy import func

from stockroom.models.movement import InventoryMovement
from stockroom.models.product import Product


class DashboardService:
    """Inventory aggregates for the dashboard screen."""

    def __init__(self, db: Session):
        self.db = db

    def summary(self, top_n: int = 5) -> dict:
        """
        Compute the dashboard figures.

        Args:
            top_n: How many products to include in the most/least moved rankings

        Returns:
            Dictionary with stock value per product, low/high limit breaches
            and the most and least moved products (sum of movement quantities
            of both types)
        """
        products = self.db.query(Product).populate_existing().order_by(Product.id).all()
        names = {p.id: p.name for p in products}

        stock_value = [
            {"product_id": p.id, "name": p.name, "value": float(p.price) * p.quantity}
            for p in products
        ]
        below_low_limit = [
            {
                "product_id": p.id,
                "name": p.name,
                "quantity": p.quantity,
                "limit": p.low_limit,
                "difference": p.low_limit - p.quantity,
            }
            for p in products if p.quantity < p.low_limit
        ]
        above_high_limit = [
            {
                "product_id": p.id,
                "name": p.name,
                "quantity": p.quantity,
                "limit": p.high_limit,
                "difference": p.quantity - p.high_limit,
            }
            for p in products if p.quantity > p.high_limit
        ]

        totals = (
            self.db.query(InventoryMovement.product_id, func.sum(InventoryMovement.quantity))
            .group_by(InventoryMovement.product_id)
            .all()
        )
        moved = [
            {"product_id": product_id, "name": names.get(product_id, ""), "moved": int(total)}
            for product_id, total in totals
        ]
        # Ties broken by product id so the rankings are stable
        most_moved = sorted(moved, key=lambda m: (-m["moved"], m["product_id"]))[:top_n]
        least_moved = sorted(moved, key=lambda m: (m["moved"], m["product_id"]))[:top_n]

        return {
            "stock_value": stock_value,
            "below_low_limit": below_low_limit,
            "above_high_limit": above_high_limit,
            "most_moved": most_moved,
            "least_moved": least_moved,
        }
