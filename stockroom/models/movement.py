from sqlalchemy import Column, Integer, String, DateTime, Enum, CheckConstraint
from sqlalchemy.sql import func
import enum

from stockroom.database import Base


class MovementType(str, enum.Enum):
    """Direction of a stock movement."""
    IN = "in"
    OUT = "out"


class InventoryMovement(Base):
    """
    Immutable record of a stock change against one product.

    The sign of the change is carried by `movement_type`; `quantity` is
    always the positive magnitude. Rows are only ever inserted by the ledger
    and removed by a revert.

    Attributes:
        id: Unique identifier assigned at insertion
        product_id: Weak reference to the affected product
        movement_type: `in` (stock increase) or `out` (stock decrease)
        quantity: Magnitude of the change
        user_id: Weak reference to the acting user
        created_at: Insertion timestamp, assigned by the database
    """
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, nullable=False, index=True)
    movement_type = Column(
        Enum(MovementType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    quantity = Column(Integer, nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_movement_quantity_positive'),
    )

    def __repr__(self):
        return (
            f"<InventoryMovement(id={self.id}, product_id={self.product_id}, "
            f"type='{self.movement_type}', quantity={self.quantity})>"
        )
