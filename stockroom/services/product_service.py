from sqlalchemy.orm import Session
from typing import Optional, List
import math
import logging

from stockroom.models.category import Category
from stockroom.models.product import Product
from stockroom.schemas.product import ProductCreate
from stockroom.services.errors import ValidationFailedError
from stockroom.utils.cache import cache_service

logger = logging.getLogger(__name__)


class ProductService:
    """
    Service class for Product operations.

    This service handles:
    - Creating new products
    - Reading products (with caching)
    - Listing products

    Stock quantity is changed only by the inventory ledger, never here.
    """

    CACHE_PREFIX = "product"

    def __init__(self, db: Session):
        self.db = db

    def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product.

        Args:
            product_data: Product creation data

        Returns:
            Created product instance

        Raises:
            ValidationFailedError: Limits out of order or unknown category
        """
        if product_data.low_limit > product_data.high_limit:
            raise ValidationFailedError("low_limit must be less than or equal to high_limit")

        if product_data.category_id is not None:
            category = self.db.get(Category, product_data.category_id)
            if category is None:
                raise ValidationFailedError(f"Category with ID {product_data.category_id} not found")

        product = Product(
            name=product_data.name,
            description=product_data.description,
            category_id=product_data.category_id,
            quantity=product_data.quantity,
            price=product_data.price,
            low_limit=product_data.low_limit,
            high_limit=product_data.high_limit,
        )
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)

        logger.info(f"Product #{product.id} '{product.name}' created with quantity {product.quantity}")
        return product

    def get_by_id(self, product_id: int) -> Optional[dict]:
        """
        Get product details from cache or database.

        Args:
            product_id: Product ID to look up

        Returns:
            Product data as dictionary or None
        """
        cached = cache_service.get(self.CACHE_PREFIX, str(product_id))
        if cached:
            return cached

        product = self.db.get(Product, product_id, populate_existing=True)
        if product is None:
            return None

        product_dict = self._to_dict(product)
        cache_service.set(self.CACHE_PREFIX, str(product_id), product_dict)
        return product_dict

    def get_all(
        self,
        page: int = 1,
        page_size: int = 10,
        search: str = None
    ) -> tuple[List[Product], int, int]:
        """
        Get paginated list of products.

        Returns:
            Tuple of (products list, total count, total pages)
        """
        query = self.db.query(Product)

        if search:
            query = query.filter(Product.name.ilike(f"%{search}%"))

        total = query.count()
        total_pages = math.ceil(total / page_size) if total > 0 else 1

        offset = (page - 1) * page_size
        products = (
            query.populate_existing()
            .order_by(Product.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )

        return products, total, total_pages

    @staticmethod
    def _to_dict(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "description": product.description,
            "category_id": product.category_id,
            "quantity": product.quantity,
            "price": float(product.price),
            "low_limit": product.low_limit,
            "high_limit": product.high_limit,
        }
