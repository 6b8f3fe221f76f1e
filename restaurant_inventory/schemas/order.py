from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from restaurant_inventory.models.order import OrderStatus


class OrderItemRequest(BaseModel):
    """Schema for a single item in the order request."""
    menu_item_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)


class OrderRequest(BaseModel):
    """Schema for the full order placement request body."""
    customer_name: Optional[str] = Field(None, max_length=100)
    table_number: Optional[int] = Field(None, gt=0)
    items: List[OrderItemRequest]


class OrderStatusUpdate(BaseModel):
    """Schema for updating an order status."""
    status: OrderStatus


class ProcessInventoryRequest(BaseModel):
    skip_inventory_check: bool = Field(False, description="Deduct even when stock is short (manual override).")


class OrderSummaryResponse(BaseModel):
    order_id: int
    status: OrderStatus
    total_amount: Decimal
    message: str


class OrderItemResponse(BaseModel):
    """Schema for an item inside the detailed order response."""
    menu_item_id: int
    name: str
    quantity: int
    price: str  # Use string for Decimal type serialization


class OrderDetailResponse(BaseModel):
    """Schema for fetching detailed order information."""
    id: int
    status: OrderStatus
    customer_name: Optional[str] = None
    table_number: Optional[int] = None
    total_amount: Decimal
    items: List[OrderItemResponse]
    created_at: str
