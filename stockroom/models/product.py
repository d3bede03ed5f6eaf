from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, CheckConstraint

from stockroom.database import Base


class Product(Base):
    """
    Product model representing a tracked stock item.

    Attributes:
        id: Unique identifier for the product
        name: Product name
        description: Free text description
        category_id: Weak reference to a category (lookup only)
        quantity: Current stock level, mutated only by the inventory ledger
        price: Unit price (must be non-negative)
        low_limit: Stock level under which the product is considered low
        high_limit: Stock level over which the product is considered overstocked
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    # No non-negative constraint: outgoing movements may drive stock below zero
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    low_limit = Column(Integer, nullable=False, default=0)
    high_limit = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint('price >= 0', name='check_price_non_negative'),
        CheckConstraint('low_limit <= high_limit', name='check_limits_ordered'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', quantity={self.quantity})>"
