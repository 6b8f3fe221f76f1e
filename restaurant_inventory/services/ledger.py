"""
Inventory Ledger: the append-only record of every quantity change.

`record_transaction` is the only write primitive. It pairs the relative update of
`products.current_quantity` with the insert of one ledger row, inside the caller's
transaction when `conn` is given or inside a fresh one otherwise. Restock, adjust
and waste are operator-facing flavours built on top of it.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from tortoise.exceptions import IntegrityError, OperationalError
from tortoise.transactions import in_transaction

from restaurant_inventory.core.exceptions import (
    DuplicateProductError,
    InsufficientInventoryError,
    ProductNotFoundError,
    StoreError,
    ValidationError,
)
from restaurant_inventory.models.inventory import InventoryTransaction, ReferenceType, TransactionType
from restaurant_inventory.models.product import Product
from restaurant_inventory.schemas.inventory import LedgerAudit, ProductCreate
from restaurant_inventory.services.product_store import (
    apply_quantity_delta,
    ensure_unique_name,
    get_product,
    lock_products,
    to_quantity,
)

log = logging.getLogger("inventory_ledger")

MAX_NOTES_LENGTH = 1000
REFERENCE_ID_REQUIRED = (ReferenceType.ORDER, ReferenceType.RECIPE)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _validate_transaction(
    product_id: Any,
    transaction_type: Any,
    quantity_change: Any,
    reference_type: Any,
    reference_id: Any,
    notes: Any,
) -> List[Dict[str, str]]:
    """Collects every violated field instead of stopping at the first one."""
    errors = []
    if not _is_positive_int(product_id):
        errors.append({"field": "product_id", "message": "Product ID must be a positive integer"})

    try:
        TransactionType(transaction_type)
    except ValueError:
        valid = ", ".join(t.value for t in TransactionType)
        errors.append({"field": "transaction_type", "message": f"Transaction type must be one of: {valid}"})

    try:
        to_quantity(quantity_change)
    except ValueError:
        errors.append({"field": "quantity_change", "message": "Quantity change must be a valid number"})

    ref_type = None
    if reference_type is not None:
        try:
            ref_type = ReferenceType(reference_type)
        except ValueError:
            valid = ", ".join(t.value for t in ReferenceType)
            errors.append({"field": "reference_type", "message": f"Reference type must be one of: {valid}"})

    if reference_id is not None and not _is_positive_int(reference_id):
        errors.append({"field": "reference_id", "message": "Reference ID must be a positive integer"})
    elif reference_id is None and ref_type in REFERENCE_ID_REQUIRED:
        errors.append({
            "field": "reference_id",
            "message": f"Reference ID is required for reference type '{ref_type.value}'",
        })

    if notes is not None and (not isinstance(notes, str) or len(notes) > MAX_NOTES_LENGTH):
        errors.append({"field": "notes", "message": f"Notes must be text of at most {MAX_NOTES_LENGTH} characters"})
    return errors


async def _write_transaction(
    product_id: int,
    transaction_type: TransactionType,
    delta: Decimal,
    reference_type: Optional[ReferenceType],
    reference_id: Optional[int],
    notes: Optional[str],
    conn: Any,
) -> InventoryTransaction:
    # Quantity first: a missing product aborts before the ledger insert
    await apply_quantity_delta(product_id, delta, conn)
    return await InventoryTransaction.create(
        product_id=product_id,
        transaction_type=transaction_type,
        quantity_change=delta,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        using_db=conn,
    )


async def record_transaction(
    product_id: int,
    transaction_type: Any,
    quantity_change: Any,
    reference_type: Any = None,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
    conn: Any = None,
) -> InventoryTransaction:
    """
    Applies `quantity_change` to the product and appends the matching ledger row.

    With `conn` the write joins the caller's transaction and store errors propagate
    untouched so the caller decides the rollback. Without `conn` a transaction is
    opened here and store failures surface as StoreError. No non-negativity guard
    is applied at this level.
    """
    errors = _validate_transaction(product_id, transaction_type, quantity_change, reference_type, reference_id, notes)
    if errors:
        raise ValidationError(errors)

    args = (
        product_id,
        TransactionType(transaction_type),
        to_quantity(quantity_change),
        ReferenceType(reference_type) if reference_type is not None else None,
        reference_id,
        notes,
    )
    if conn is not None:
        return await _write_transaction(*args, conn=conn)

    try:
        async with in_transaction() as conn:
            return await _write_transaction(*args, conn=conn)
    except (IntegrityError, OperationalError) as e:
        log.error(f"Ledger write for product {product_id} failed and was rolled back: {e}")
        raise StoreError("Failed to record inventory transaction", details=str(e)) from e


async def _locked_product(product_id: int, conn: Any) -> Product:
    locked = await lock_products([product_id], conn)
    if product_id not in locked:
        raise ProductNotFoundError(product_id)
    return locked[product_id]


async def create_product(data: ProductCreate) -> Tuple[Product, Optional[InventoryTransaction]]:
    """
    Creates a product at zero stock and books any initial quantity as an opening
    restock, so the ledger sum matches the cached quantity from the first row.
    """
    try:
        opening = to_quantity(data.current_quantity)
    except ValueError:
        raise ValidationError([{"field": "current_quantity", "message": "Opening stock must be a valid quantity"}])
    try:
        async with in_transaction() as conn:
            await ensure_unique_name(data.name, conn=conn)
            product = await Product.create(
                **data.model_dump(exclude={"current_quantity"}),
                current_quantity=Decimal("0"),
                using_db=conn,
            )
            transaction = None
            if opening > 0:
                transaction = await _write_transaction(
                    product.id, TransactionType.RESTOCK, opening,
                    ReferenceType.MANUAL, None, "Opening stock", conn,
                )
            product = await get_product(product.id, conn)
    except IntegrityError as e:
        # Lost a race with a concurrent create of the same name
        raise DuplicateProductError("Product name already exists. Product names must be unique.") from e

    log.info(f"Product {product.id} ({product.name}) created with opening stock {opening} {product.unit_of_measure}.")
    return product, transaction


async def restock(
    product_id: int,
    amount: Any,
    notes: Optional[str] = None,
    reference_id: Optional[int] = None,
) -> Tuple[Product, InventoryTransaction]:
    """Adds stock. The sign of `amount` is ignored: restock always increases quantity."""
    try:
        quantity = abs(to_quantity(amount))
    except ValueError:
        raise ValidationError([{"field": "quantity", "message": "Quantity must be a valid number"}])
    if quantity == 0:
        raise ValidationError([{"field": "quantity", "message": "Restock quantity must be greater than zero"}])

    async with in_transaction() as conn:
        transaction = await record_transaction(
            product_id,
            TransactionType.RESTOCK,
            quantity,
            reference_type=ReferenceType.MANUAL,
            reference_id=reference_id,
            notes=notes or f"Restock: +{quantity} units",
            conn=conn,
        )
        product = await get_product(product_id, conn)

    log.info(f"Restocked product {product_id} by {quantity}. New quantity: {product.current_quantity}")
    return product, transaction


async def _guarded_change(
    product_id: int,
    delta: Decimal,
    transaction_type: TransactionType,
    notes: str,
    reference_id: Optional[int] = None,
) -> Tuple[Product, InventoryTransaction]:
    """Locks the product, refuses a change that would leave negative stock, then records it."""
    async with in_transaction() as conn:
        product = await _locked_product(product_id, conn)
        new_quantity = product.current_quantity + delta
        if new_quantity < 0:
            raise InsufficientInventoryError(
                f"Change would result in negative inventory: {product.current_quantity} + ({delta}) = {new_quantity}",
                shortages=[{
                    "product_id": product.id,
                    "product_name": product.name,
                    "required": -delta,
                    "available": product.current_quantity,
                    "shortage": -new_quantity,
                }],
            )
        transaction = await record_transaction(
            product_id,
            transaction_type,
            delta,
            reference_type=ReferenceType.MANUAL,
            reference_id=reference_id,
            notes=notes,
            conn=conn,
        )
        product = await get_product(product_id, conn)
    return product, transaction


async def adjust(
    product_id: int,
    delta: Any,
    notes: Optional[str] = None,
    reference_id: Optional[int] = None,
) -> Tuple[Product, InventoryTransaction]:
    """Signed manual correction (e.g. after a physical count)."""
    try:
        quantity = to_quantity(delta)
    except ValueError:
        raise ValidationError([{"field": "quantity_change", "message": "Quantity change must be a valid number"}])
    if quantity == 0:
        raise ValidationError([{"field": "quantity_change", "message": "Adjustment cannot be zero"}])

    sign = "+" if quantity > 0 else ""
    product, transaction = await _guarded_change(
        product_id,
        quantity,
        TransactionType.ADJUSTMENT,
        notes or f"Manual adjustment: {sign}{quantity} units",
        reference_id=reference_id,
    )
    log.info(f"Adjusted product {product_id} by {quantity}. New quantity: {product.current_quantity}")
    return product, transaction


async def record_waste(product_id: int, amount: Any, notes: Optional[str] = None) -> Tuple[Product, InventoryTransaction]:
    """Spoiled or discarded stock. Always a decrease."""
    try:
        quantity = abs(to_quantity(amount))
    except ValueError:
        raise ValidationError([{"field": "quantity", "message": "Quantity must be a valid number"}])
    if quantity == 0:
        raise ValidationError([{"field": "quantity", "message": "Waste quantity must be greater than zero"}])

    product, transaction = await _guarded_change(
        product_id, -quantity, TransactionType.WASTE, notes or f"Waste: -{quantity} units"
    )
    log.info(f"Recorded waste of {quantity} for product {product_id}. New quantity: {product.current_quantity}")
    return product, transaction


# ---------------- Queries ----------------

def _filtered_transactions(
    product_id: Optional[int] = None,
    transaction_type: Optional[TransactionType] = None,
    reference_type: Optional[ReferenceType] = None,
    reference_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    query = InventoryTransaction.all()
    if product_id is not None:
        query = query.filter(product_id=product_id)
    if transaction_type is not None:
        query = query.filter(transaction_type=transaction_type)
    if reference_type is not None:
        query = query.filter(reference_type=reference_type)
    if reference_id is not None:
        query = query.filter(reference_id=reference_id)
    if start_date is not None:
        query = query.filter(created_at__gte=start_date)
    if end_date is not None:
        query = query.filter(created_at__lte=end_date)
    return query


async def list_transactions(page: int = 1, limit: int = 50, **filters) -> Tuple[List[InventoryTransaction], int]:
    """Newest first. Returns one page and the total row count for the same filters."""
    query = _filtered_transactions(**filters)
    total = await query.count()
    rows = await query.order_by("-created_at", "-id").offset((page - 1) * limit).limit(limit)
    return rows, total


async def count_transactions(**filters) -> int:
    return await _filtered_transactions(**filters).count()


async def get_transaction(transaction_id: int) -> Optional[InventoryTransaction]:
    return await InventoryTransaction.get_or_none(id=transaction_id)


async def audit_product_balance(product_id: int) -> LedgerAudit:
    """Offline check: the ledger sum should equal the cached quantity on the product."""
    product = await get_product(product_id)
    changes = await InventoryTransaction.filter(product_id=product_id).values_list("quantity_change", flat=True)
    ledger_total = sum((to_quantity(c) for c in changes), Decimal("0"))
    current = to_quantity(product.current_quantity)
    drift = current - ledger_total
    if drift:
        log.warning(f"Ledger drift on product {product_id}: cached {current}, ledger {ledger_total}")
    return LedgerAudit(
        product_id=product_id,
        current_quantity=current,
        ledger_total=ledger_total,
        drift=drift,
        consistent=drift == 0,
    )
