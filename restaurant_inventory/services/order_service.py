import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from tortoise.transactions import in_transaction

from restaurant_inventory.core.exceptions import (
    InsufficientInventoryError,
    InvalidStatusTransitionError,
    InventoryError,
    OrderNotFoundError,
    StoreError,
    ValidationError,
)
from restaurant_inventory.models.order import (
    FULFILLMENT_STATUSES,
    STATUS_TRANSITIONS,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
)
from restaurant_inventory.services.reconciler import reconcile

log = logging.getLogger("order_service")


async def place_order(
    items: List[Dict],
    customer_name: Optional[str] = None,
    table_number: Optional[int] = None,
) -> Order:
    """
    Creates the Order header and its OrderItem lines atomically.
    Inventory is not touched here: it is deducted when the order is served or paid.
    """
    if not items:
        raise ValidationError([{"field": "items", "message": "Order must contain at least one item"}])

    errors = []
    for index, it in enumerate(items):
        qty = it.get("quantity")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            errors.append({"field": f"items[{index}].quantity", "message": "Quantity must be a positive integer"})
    if errors:
        raise ValidationError(errors)

    async with in_transaction() as conn:
        menu_item_ids = [int(it["menu_item_id"]) for it in items]
        menu_items = await MenuItem.filter(id__in=menu_item_ids, is_active=True).using_db(conn)
        menu_map = {m.id: m for m in menu_items}

        missing = sorted({mid for mid in menu_item_ids if mid not in menu_map})
        if missing:
            raise ValidationError([
                {"field": "items", "message": f"Menu item {mid} not found or inactive"} for mid in missing
            ])

        # 1. Create the Order header
        order = await Order.create(
            customer_name=customer_name,
            table_number=table_number,
            status=OrderStatus.PENDING,
            total_amount=Decimal("0"),
            using_db=conn,
        )

        total = Decimal("0")
        for it in items:
            menu = menu_map[int(it["menu_item_id"])]
            qty = it["quantity"]
            line_total = menu.price * qty
            total += line_total

            # 2. Create Order Item line
            await OrderItem.create(
                order=order,
                menu_item=menu,
                quantity=qty,
                unit_price=menu.price,
                line_total=line_total,
                using_db=conn,
            )

        order.total_amount = total
        await order.save(using_db=conn)

    log.info(f"Order #{order.id} placed with {len(items)} item(s), total {total}.")
    return order


async def get_order_by_id(order_id: int) -> Optional[Order]:
    """Fetches order details with items, including the menu item name/price."""
    # Pre-fetch related entities to minimize DB queries (N+1 avoidance)
    return await Order.get_or_none(id=order_id).prefetch_related('items', 'items__menu_item')


async def list_orders(status: Optional[OrderStatus] = None, page: int = 1, limit: int = 20) -> Tuple[List[Order], int]:
    query = Order.all()
    if status is not None:
        query = query.filter(status=status)
    total = await query.count()
    orders = await query.order_by("-created_at", "-id").offset((page - 1) * limit).limit(limit)
    return orders, total


async def _lock_order(order_id: int, conn: Any) -> Order:
    order = await Order.filter(id=order_id).using_db(conn).select_for_update().first()
    if not order:
        raise OrderNotFoundError(order_id, f"Order #{order_id} not found")
    return order


def _check_transition(current: OrderStatus, new_status: OrderStatus) -> None:
    if new_status not in STATUS_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            f"Cannot change order status from '{current.value}' to '{new_status.value}'"
        )


async def _deduct_for_fulfillment(order_id: int, conn: Any) -> None:
    """
    Runs the reconciler inside the status-change transaction.
    A shortage aborts the status change; an itemless order does not. Any other
    inventory error is raised as StoreError so the caller drops the partial
    deduction and applies the status change alone.
    """
    try:
        result = await reconcile(order_id, conn=conn)
    except OrderNotFoundError:
        log.warning(f"Order #{order_id} has no items; status changes without inventory deduction.")
        return
    except (InsufficientInventoryError, StoreError):
        raise
    except InventoryError as e:
        log.error(f"Inventory deduction for order #{order_id} rejected: {e}")
        raise StoreError(f"Failed to process inventory for order #{order_id}", details=e.details) from e

    if result.has_shortage:
        raise InsufficientInventoryError(
            f"Insufficient inventory to fulfill order #{order_id}",
            shortages=result.shortages,
        )
    if not result.success:
        log.warning(f"Inventory not deducted for order #{order_id}: {result.message}")


async def _set_status_only(order_id: int, new_status: OrderStatus) -> Order:
    async with in_transaction() as conn:
        order = await _lock_order(order_id, conn)
        _check_transition(order.status, new_status)
        order.status = new_status
        await order.save(update_fields=["status", "updated_at"], using_db=conn)
    return order


async def update_order_status(order_id: int, new_status: OrderStatus) -> Order:
    """
    Updates order status and enforces the state machine.

    Crossing into served/paid from a non-fulfilled status deducts inventory in the
    same transaction. served -> paid does not deduct again. Insufficient stock
    rolls the status change back; a store failure during deduction is logged and
    the status still changes.
    """
    new_status = OrderStatus(new_status)
    try:
        async with in_transaction() as conn:
            order = await _lock_order(order_id, conn)
            old_status = order.status
            _check_transition(old_status, new_status)

            if new_status in FULFILLMENT_STATUSES and old_status not in FULFILLMENT_STATUSES:
                await _deduct_for_fulfillment(order_id, conn)

            order.status = new_status
            await order.save(update_fields=["status", "updated_at"], using_db=conn)
    except StoreError as e:
        log.error(f"Inventory processing for order #{order_id} failed, applying status change only: {e}")
        return await _set_status_only(order_id, new_status)

    log.info(f"Order #{order_id} status: {old_status.value} -> {new_status.value}")
    return order


async def cancel_order(order_id: int) -> Order:
    """Cancels an order that has not been fulfilled. No stock was deducted yet, so none is restored."""
    async with in_transaction() as conn:
        order = await _lock_order(order_id, conn)

        # Validation: Cannot cancel once served/paid or already cancelled
        if order.status in FULFILLMENT_STATUSES or order.status == OrderStatus.CANCELLED:
            raise InvalidStatusTransitionError(f"Cannot cancel order in status {order.status.value}")

        order.status = OrderStatus.CANCELLED
        await order.save(update_fields=["status", "updated_at"], using_db=conn)

    log.info(f"Order #{order_id} cancelled.")
    return order
