from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime

from stockroom.models.movement import MovementType


class MovementCreate(BaseModel):
    """Schema for recording a stock entry or exit (scanned or typed product ID)."""
    product_id: int = Field(..., description="ID of the product being moved")
    movement_type: MovementType = Field(..., description="'in' for entries, 'out' for exits")
    quantity: int = Field(..., gt=0, description="Number of units moved")


class MovementResponse(BaseModel):
    """Schema for a recorded movement."""
    id: int
    product_id: int
    movement_type: MovementType
    quantity: int
    user_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MovementLogEntry(MovementResponse):
    """Movement with the display names of its user and product."""
    username: str = ""
    product_name: str = ""


class MovementListResponse(BaseModel):
    """Schema for paginated movement log response."""
    items: list[MovementLogEntry]
    total: int
    page: int
    page_size: int
    total_pages: int
