from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional


class ProductBase(BaseModel):
    """Base schema for Product with common attributes."""
    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    category_id: Optional[int] = Field(None, description="Category the product belongs to")
    price: float = Field(..., ge=0, description="Unit price (non-negative)")
    low_limit: int = Field(0, description="Low stock limit")
    high_limit: int = Field(0, description="High stock limit")


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    quantity: int = Field(0, description="Initial stock level")

    @model_validator(mode="after")
    def check_limits(self):
        if self.low_limit > self.high_limit:
            raise ValueError("low_limit must be less than or equal to high_limit")
        return self


class ProductResponse(ProductBase):
    """Schema for product response including all fields."""
    id: int
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    """Schema for paginated product list response."""
    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
