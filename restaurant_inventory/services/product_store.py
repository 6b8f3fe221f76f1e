"""
Product Store: owns the on-hand quantity and stocking thresholds of every product.

Quantity is never written as a literal computed in Python. `apply_quantity_delta`
issues `current_quantity = current_quantity + delta` so the store evaluates the
change against committed state. Callers pair every delta with a ledger row
inside the same transaction (see services/ledger.py).
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tortoise import timezone
from tortoise.expressions import F, Q

from restaurant_inventory.core.config import MAX_QUANTITY, QUANTITY_PLACES
from restaurant_inventory.core.exceptions import (
    DuplicateProductError,
    ProductInUseError,
    ProductNotFoundError,
)
from restaurant_inventory.models.inventory import InventoryTransaction
from restaurant_inventory.models.product import Product
from restaurant_inventory.models.recipe import RecipeIngredientProduct

log = logging.getLogger("product_store")

SORTABLE_FIELDS = ("name", "current_quantity", "low_stock_threshold", "cost_per_unit", "created_at")


def to_quantity(value: Any) -> Decimal:
    """Converts user/ORM input into a fixed-precision quantity. Floats go through str() to avoid binary noise."""
    if isinstance(value, bool):
        raise ValueError("Quantity must be a number")
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
        if not quantity.is_finite() or abs(quantity) >= MAX_QUANTITY:
            raise ValueError(f"Invalid quantity: {value!r}")
        return quantity.quantize(QUANTITY_PLACES)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid quantity: {value!r}")


async def get_product(product_id: int, conn: Any = None) -> Product:
    product = await Product.get_or_none(id=product_id).using_db(conn)
    if not product:
        raise ProductNotFoundError(product_id)
    return product


async def lock_products(product_ids: Iterable[int], conn: Any) -> Dict[int, Product]:
    """
    Row-locks the given products for the rest of the caller's transaction.
    Ids are locked in ascending order so concurrent reconciliations cannot deadlock.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    products = await Product.filter(id__in=ids).using_db(conn).order_by("id").select_for_update()
    return {p.id: p for p in products}


async def apply_quantity_delta(product_id: int, delta: Decimal, conn: Any) -> None:
    """Relative update evaluated by the database. Raises ProductNotFoundError if no row matched."""
    updated = await Product.filter(id=product_id).using_db(conn).update(
        current_quantity=F("current_quantity") + delta,
        updated_at=timezone.now(),
    )
    if not updated:
        raise ProductNotFoundError(product_id)


async def ensure_unique_name(name: str, exclude_id: Optional[int] = None, conn: Any = None) -> None:
    query = Product.filter(name=name).using_db(conn)
    if exclude_id is not None:
        query = query.exclude(id=exclude_id)
    if await query.exists():
        raise DuplicateProductError("Product name already exists. Product names must be unique.")


def _filtered_products(
    search: Optional[str] = None,
    unit: Optional[str] = None,
    low_stock: bool = False,
    out_of_stock: bool = False,
):
    query = Product.all()
    if search:
        query = query.filter(Q(name__icontains=search) | Q(description__icontains=search))
    if unit:
        query = query.filter(unit_of_measure=unit)
    if low_stock:
        # Column-to-column comparison goes through an annotation
        query = query.annotate(
            headroom=F("current_quantity") - F("low_stock_threshold")
        ).filter(headroom__lte=0, current_quantity__gt=0)
    if out_of_stock:
        query = query.filter(current_quantity__lte=0)
    return query


async def list_products(
    search: Optional[str] = None,
    unit: Optional[str] = None,
    low_stock: bool = False,
    out_of_stock: bool = False,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "name",
    sort_order: str = "ASC",
) -> Tuple[List[Product], int]:
    """Returns one page of products plus the total count for the same filters."""
    if sort_by not in SORTABLE_FIELDS:
        raise ValueError(f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}")
    ordering = sort_by if sort_order.upper() == "ASC" else f"-{sort_by}"

    query = _filtered_products(search, unit, low_stock, out_of_stock)
    total = await query.count()
    products = await query.order_by(ordering, "id").offset((page - 1) * limit).limit(limit)
    return products, total


async def update_product(product_id: int, changes: Dict[str, Any]) -> Product:
    """Partial update of descriptive fields and thresholds. `current_quantity` is never accepted here."""
    changes = {k: v for k, v in changes.items() if k != "current_quantity"}
    product = await get_product(product_id)
    if changes.get("name") and changes["name"] != product.name:
        await ensure_unique_name(changes["name"], exclude_id=product_id)
    if not changes:
        return product
    product.update_from_dict(changes)
    await product.save(update_fields=[*changes.keys(), "updated_at"])
    return product


async def delete_product(product_id: int) -> None:
    """Products referenced by ledger rows or recipe links cannot be removed."""
    product = await get_product(product_id)
    if await InventoryTransaction.filter(product_id=product_id).exists():
        raise ProductInUseError(
            f"Product {product_id} has inventory transactions and cannot be deleted."
        )
    if await RecipeIngredientProduct.filter(product_id=product_id).exists():
        raise ProductInUseError(
            f"Product {product_id} is linked to recipe ingredients and cannot be deleted."
        )
    await product.delete()
    log.info(f"Product {product_id} ({product.name}) deleted.")
