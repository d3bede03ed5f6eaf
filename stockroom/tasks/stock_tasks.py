import logging

from stockroom.tasks.celery_app import celery_app
from stockroom.database import SessionLocal
from stockroom.models.product import Product

logger = logging.getLogger(__name__)


def evaluate_stock_limits(db, product_id: int) -> dict:
    """
    Compare a product's stock level against its low/high limits.

    Returns:
        Dictionary with the product id, its quantity and one of the statuses
        'below_low_limit', 'above_high_limit', 'ok' or 'missing'
    """
    product = db.get(Product, product_id, populate_existing=True)

    if product is None:
        logger.warning(f"Stock check skipped: product #{product_id} not found")
        return {"status": "missing", "product_id": product_id}

    result = {
        "product_id": product.id,
        "quantity": product.quantity,
        "low_limit": product.low_limit,
        "high_limit": product.high_limit,
    }

    if product.quantity < product.low_limit:
        logger.warning(
            f"Product #{product.id} '{product.name}' is {product.low_limit - product.quantity} "
            f"units below its low limit ({product.low_limit})"
        )
        result["status"] = "below_low_limit"
    elif product.quantity > product.high_limit:
        logger.warning(
            f"Product #{product.id} '{product.name}' is {product.quantity - product.high_limit} "
            f"units above its high limit ({product.high_limit})"
        )
        result["status"] = "above_high_limit"
    else:
        result["status"] = "ok"

    return result


@celery_app.task(bind=True, name="check_stock_limits")
def check_stock_limits(self, product_id: int) -> dict:
    """
    Background check run after every accepted movement or revert.

    Args:
        product_id: ID of the product whose quantity just changed

    Returns:
        Result of evaluate_stock_limits
    """
    db = SessionLocal()

    try:
        return evaluate_stock_limits(db, product_id)
    except Exception as e:
        logger.error(f"Error checking stock limits of product #{product_id}: {e}")
        raise self.retry(exc=e, countdown=30, max_retries=3)
    finally:
        db.close()
