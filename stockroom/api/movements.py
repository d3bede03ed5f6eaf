from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
import math
import logging

from stockroom.database import get_db
from stockroom.services.data_store import SqlDataStore
from stockroom.services.errors import LedgerError
from stockroom.services.identity import IdentityProvider, get_identity
from stockroom.services.ledger_service import LedgerService
from stockroom.schemas.movement import (
    MovementCreate,
    MovementResponse,
    MovementLogEntry,
    MovementListResponse,
)
from stockroom.tasks.stock_tasks import check_stock_limits

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/movements", tags=["Movements"])


def get_ledger(
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity),
) -> LedgerService:
    return LedgerService(SqlDataStore(db), identity)


def _enqueue_stock_check(product_id: int) -> None:
    try:
        check_stock_limits.delay(product_id)
    except Exception as e:
        logger.error(f"Could not enqueue stock check for product #{product_id}: {e}")


def _http_error(e: LedgerError) -> HTTPException:
    headers = {"WWW-Authenticate": "Bearer"} if e.status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=e.status_code, detail=e.message, headers=headers)


@router.post(
    "/",
    response_model=MovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a stock movement",
    description="""
    Register a stock entry ('in') or exit ('out') for a product, identified by
    its scanned or typed ID. The product quantity is adjusted and a movement
    is logged on behalf of the authenticated user.

    Stock may go negative unless the service runs with the 'reject'
    negative stock policy.
    """
)
def record_movement(
    movement_data: MovementCreate,
    ledger: LedgerService = Depends(get_ledger),
):
    """
    Record a movement.

    - **product_id**: Product to adjust (required)
    - **movement_type**: 'in' or 'out' (required)
    - **quantity**: Positive number of units (required)
    """
    try:
        movement = ledger.record_movement(
            movement_data.product_id,
            movement_data.movement_type,
            movement_data.quantity,
        )
    except LedgerError as e:
        raise _http_error(e)

    _enqueue_stock_check(movement["product_id"])
    return movement


@router.get(
    "/",
    response_model=MovementListResponse,
    summary="Movement log",
    description="Movements ordered from most recent, with the username and product name of each."
)
def list_movements(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    ledger: LedgerService = Depends(get_ledger),
):
    """Get paginated movement log."""
    total = ledger.store.count("inventory_movements")
    total_pages = math.ceil(total / page_size) if total > 0 else 1

    listing = ledger.list_movements(limit=page_size, offset=(page - 1) * page_size)

    return MovementListResponse(
        items=[MovementLogEntry.model_validate(row) for row in listing],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.delete(
    "/{movement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revert a movement",
    description="""
    Delete a movement and apply its inverse to the product quantity.

    No sign-in is required, matching the mobile client's undo action.
    Reverting an id that is already gone returns 404.
    """
)
def revert_movement(
    movement_id: int,
    ledger: LedgerService = Depends(get_ledger),
):
    """Revert a movement."""
    try:
        reverted = ledger.revert_movement(movement_id)
    except LedgerError as e:
        raise _http_error(e)

    _enqueue_stock_check(reverted["product_id"])
    return None
