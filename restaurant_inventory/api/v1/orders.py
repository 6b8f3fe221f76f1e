import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from restaurant_inventory.core.exceptions import (
    InsufficientInventoryError,
    InventoryError,
    OrderNotFoundError,
    ReconciliationFailedError,
)
from restaurant_inventory.models.order import OrderStatus
from restaurant_inventory.schemas.order import (
    OrderDetailResponse,
    OrderRequest,
    OrderStatusUpdate,
    OrderSummaryResponse,
    ProcessInventoryRequest,
)
from restaurant_inventory.schemas.response import Pagination, SuccessResponse
from restaurant_inventory.services.order_service import (
    cancel_order,
    get_order_by_id,
    list_orders,
    place_order,
    update_order_status,
)
from restaurant_inventory.services.reconciler import check_availability, reconcile

router = APIRouter()
log = logging.getLogger("uvicorn")


def _summary(order, message: str) -> dict:
    return OrderSummaryResponse(
        order_id=order.id,
        status=order.status,
        total_amount=order.total_amount,
        message=message,
    ).model_dump()


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_order_endpoint(request_data: OrderRequest):
    """
    Places a new order in 'pending'. Inventory is deducted later, when the
    order is served or paid.
    """
    try:
        items_data = [
            {"menu_item_id": item.menu_item_id, "quantity": item.quantity}
            for item in request_data.items
        ]
        if not items_data:
            raise HTTPException(status_code=400, detail="Order must contain items.")

        order = await place_order(
            items_data,
            customer_name=request_data.customer_name,
            table_number=request_data.table_number,
        )
        log.info(f"Order {order.id} placed successfully.")
        return SuccessResponse(data=_summary(order, "Order placed."))
    except (InventoryError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error placing order: {e}")
        raise HTTPException(status_code=500, detail="Server failed to place order.")


@router.get("/", response_model=SuccessResponse)
async def list_orders_endpoint(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    orders, total = await list_orders(status=status_filter, page=page, limit=limit)
    data = {
        "orders": [_summary(o, f"Order is {o.status.value}") for o in orders],
        "pagination": Pagination.build(page, limit, total).model_dump(),
    }
    return SuccessResponse(data=data)


@router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_endpoint(order_id: int):
    """Fetches details for a specific order."""
    order = await get_order_by_id(order_id)
    if not order:
        raise OrderNotFoundError(order_id, f"Order #{order_id} not found")

    # Prepare items data for clean output using the response schema
    items = [
        {
            "menu_item_id": i.menu_item_id,
            "name": i.menu_item.name,
            "quantity": i.quantity,
            "price": str(i.unit_price),
        }
        for i in order.items
    ]
    data = OrderDetailResponse(
        id=order.id,
        status=order.status,
        customer_name=order.customer_name,
        table_number=order.table_number,
        total_amount=order.total_amount,
        items=items,
        created_at=str(order.created_at),
    ).model_dump()
    return SuccessResponse(data=data)


@router.patch("/{order_id}/status", response_model=SuccessResponse)
async def update_status_endpoint(order_id: int, payload: OrderStatusUpdate):
    """
    Updates status (e.g. 'preparing', 'served', 'paid').
    Moving to served/paid deducts ingredients; a shortage leaves the status unchanged (400).
    """
    try:
        order = await update_order_status(order_id, payload.status)
        return SuccessResponse(data=_summary(order, f"Order status successfully updated to {order.status.value}"))
    except (InventoryError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error updating order status: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update order status.")


@router.post("/{order_id}/cancel", response_model=SuccessResponse)
async def cancel_order_endpoint(order_id: int):
    """Cancels an order that has not been served or paid."""
    try:
        order = await cancel_order(order_id)
        return SuccessResponse(data=_summary(order, "Order cancelled."))
    except (InventoryError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error cancelling order: {e}")
        raise HTTPException(status_code=500, detail="Server failed to cancel order.")


@router.post("/{order_id}/process-inventory", response_model=SuccessResponse)
async def process_inventory_endpoint(order_id: int, payload: Optional[ProcessInventoryRequest] = None):
    """
    Manually runs the reconciliation for an order.
    `skip_inventory_check` forces the deduction even when stock is short.
    """
    skip = payload.skip_inventory_check if payload else False
    result = await reconcile(order_id, skip_inventory_check=skip)
    if not result.success:
        if result.has_shortage:
            raise InsufficientInventoryError(result.message, shortages=result.shortages)
        raise ReconciliationFailedError(result.message, issues=[e.model_dump() for e in result.errors])
    return SuccessResponse(data=result.model_dump())


@router.get("/{order_id}/inventory-check", response_model=SuccessResponse)
async def inventory_check_endpoint(order_id: int):
    """Dry run: what the order would consume and whether stock suffices."""
    availability = await check_availability(order_id)
    return SuccessResponse(data={"order_id": order_id, **availability.model_dump()})
