from pydantic import BaseModel


class StockValue(BaseModel):
    product_id: int
    name: str
    value: float


class LimitBreach(BaseModel):
    product_id: int
    name: str
    quantity: int
    limit: int
    difference: int


class MovedProduct(BaseModel):
    product_id: int
    name: str
    moved: int


class DashboardResponse(BaseModel):
    """Inventory aggregates shown on the dashboard screen."""
    stock_value: list[StockValue]
    below_low_limit: list[LimitBreach]
    above_high_limit: list[LimitBreach]
    most_moved: list[MovedProduct]
    least_moved: list[MovedProduct]
