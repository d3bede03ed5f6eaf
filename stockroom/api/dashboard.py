from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockroom.database import get_db
from stockroom.services.dashboard_service import DashboardService
from stockroom.schemas.dashboard import DashboardResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "/",
    response_model=DashboardResponse,
    summary="Inventory dashboard",
    description="Stock value per product, limit breaches and most/least moved products."
)
def dashboard(
    top_n: int = Query(5, ge=1, le=50, description="Size of the most/least moved rankings"),
    db: Session = Depends(get_db)
):
    return DashboardService(db).summary(top_n=top_n)
