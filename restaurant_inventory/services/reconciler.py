"""
Order Fulfillment Reconciler.

Turns a fulfilled order into ingredient consumption: resolves requirements under
row locks, refuses on shortage, otherwise writes one `sale` ledger row per
product. Every write of one reconciliation shares one transaction, so either all
line items take effect or none do.
"""
import logging
from typing import Any, List

from tortoise.exceptions import BaseORMException
from tortoise.transactions import in_transaction

from restaurant_inventory.core.config import RECONCILE_REJECT_DUPLICATES
from restaurant_inventory.core.exceptions import (
    OrderNotFoundError,
    ProductNotFoundError,
    StoreError,
    ValidationError,
)
from restaurant_inventory.models.inventory import InventoryTransaction, ReferenceType, TransactionType
from restaurant_inventory.models.order import OrderItem
from restaurant_inventory.schemas.inventory import (
    AvailabilityResult,
    ReconciliationIssue,
    ReconciliationResult,
    TransactionRecord,
)
from restaurant_inventory.services.alert_service import log_stock_alerts
from restaurant_inventory.services.availability import resolve
from restaurant_inventory.services.ledger import MAX_NOTES_LENGTH, record_transaction

log = logging.getLogger("reconciler")


async def get_order_items(order_id: int, conn: Any = None) -> List[OrderItem]:
    return await OrderItem.filter(order_id=order_id).using_db(conn).order_by("id")


async def check_availability(order_id: int) -> AvailabilityResult:
    """Dry run of the sufficiency check for an order. Writes nothing."""
    items = await get_order_items(order_id)
    if not items:
        raise OrderNotFoundError(order_id)
    return await resolve(items)


def _shortage_result(order_id: int, availability: AvailabilityResult) -> ReconciliationResult:
    errors = [
        ReconciliationIssue(
            type="insufficient_inventory",
            message=f"Insufficient {s.product_name}: need {s.required}, have {s.available}",
            details={
                "product_id": s.product_id,
                "product_name": s.product_name,
                "required": s.required,
                "available": s.available,
                "shortage": s.shortage,
            },
        )
        for s in availability.insufficient
    ]
    return ReconciliationResult(
        order_id=order_id,
        success=False,
        errors=errors,
        message=f"Insufficient inventory for order #{order_id}",
    )


async def _already_reconciled(order_id: int, conn: Any) -> bool:
    return await InventoryTransaction.filter(
        transaction_type=TransactionType.SALE,
        reference_type=ReferenceType.ORDER,
        reference_id=order_id,
    ).using_db(conn).exists()


def _sale_note(order_id: int, ingredient_names: List[str], product_name: str) -> str:
    note = f"Order #{order_id} - {', '.join(ingredient_names)} ({product_name})"
    if len(note) <= MAX_NOTES_LENGTH:
        return note
    return note[:MAX_NOTES_LENGTH - 3] + "..."


async def _reconcile_in(order_id: int, items: List[OrderItem], skip_inventory_check: bool, conn: Any) -> ReconciliationResult:
    if RECONCILE_REJECT_DUPLICATES and await _already_reconciled(order_id, conn):
        log.warning(f"Order #{order_id} already has sale entries in the ledger. Skipping.")
        return ReconciliationResult(
            order_id=order_id,
            success=False,
            errors=[ReconciliationIssue(
                type="already_reconciled",
                message=f"Inventory for order #{order_id} has already been deducted",
            )],
            message=f"Order #{order_id} already reconciled",
        )

    availability = await resolve(items, conn=conn, lock=True)

    if not availability.is_valid:
        if not skip_inventory_check:
            log.info(f"Order #{order_id} blocked: {len(availability.insufficient)} product(s) short.")
            return _shortage_result(order_id, availability)
        short = ", ".join(f"{s.product_name} (short {s.shortage})" for s in availability.insufficient)
        log.warning(f"OVERRIDE: inventory check skipped for order #{order_id}; stock will go negative for {short}")

    transactions = []
    for line in availability.ingredient_quantities:
        transaction = await record_transaction(
            line.product_id,
            TransactionType.SALE,
            -line.required,
            reference_type=ReferenceType.ORDER,
            reference_id=order_id,
            notes=_sale_note(order_id, line.ingredient_names, line.product_name),
            conn=conn,
        )
        transactions.append(TransactionRecord.model_validate(transaction))

    await log_stock_alerts([t.product_id for t in transactions], conn=conn)
    return ReconciliationResult(
        order_id=order_id,
        success=True,
        transactions=transactions,
        message=f"Inventory deducted for order #{order_id} ({len(transactions)} product(s))",
    )


async def reconcile(order_id: int, skip_inventory_check: bool = False, conn: Any = None) -> ReconciliationResult:
    """
    Deducts the ingredients of a fulfilled order.

    Missing or itemless orders raise OrderNotFoundError. Shortages come back as a
    `success=False` result with one `insufficient_inventory` error per product and
    no writes. When `conn` is given the work joins the caller's transaction and
    store failures raise StoreError so the caller rolls back. Standalone calls
    roll back on their own and report a `processing_error` result instead.
    """
    items = await get_order_items(order_id, conn)
    if not items:
        raise OrderNotFoundError(order_id)

    if conn is not None:
        try:
            return await _reconcile_in(order_id, items, skip_inventory_check, conn)
        except (BaseORMException, ProductNotFoundError, ValidationError) as e:
            log.error(f"Inventory deduction for order #{order_id} failed: {e}")
            raise StoreError(f"Failed to process inventory for order #{order_id}", details=str(e)) from e

    try:
        async with in_transaction() as conn:
            result = await _reconcile_in(order_id, items, skip_inventory_check, conn)
    except (BaseORMException, ProductNotFoundError, ValidationError, StoreError) as e:
        log.error(f"Inventory deduction for order #{order_id} failed and was rolled back: {e}")
        return ReconciliationResult(
            order_id=order_id,
            success=False,
            errors=[ReconciliationIssue(
                type="processing_error",
                message="Failed to process inventory deduction",
                details={"error": str(e)},
            )],
            message=f"Inventory processing failed for order #{order_id}",
        )

    if result.success:
        log.info(f"Order #{order_id} reconciled: {len(result.transactions)} ledger entries written.")
    return result
