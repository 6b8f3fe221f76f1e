"""
Availability Resolver.

Expands order line items through the ingredient map into per-product
requirements and compares them against current stock. Pure read: calling it
any number of times changes nothing.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from restaurant_inventory.core.config import QUANTITY_PLACES
from restaurant_inventory.models.product import Product
from restaurant_inventory.schemas.inventory import AvailabilityResult, ProductRequirement, Shortage
from restaurant_inventory.services.product_store import lock_products, to_quantity
from restaurant_inventory.services.recipe_links import get_menu_item_conversions

log = logging.getLogger("availability")


async def resolve(order_items: Iterable[Any], conn: Any = None, lock: bool = False) -> AvailabilityResult:
    """
    `order_items` are objects exposing `menu_item_id` and `quantity` (OrderItem rows
    or request items). With `lock=True` the touched products are row-locked in the
    caller's transaction, so the stock read here stays valid for the following write.
    """
    required: Dict[int, Decimal] = {}
    requirement_lines: Dict[int, Dict[str, Any]] = {}

    for item in order_items:
        conversions = await get_menu_item_conversions(item.menu_item_id, conn=conn)
        if not conversions:
            log.debug(f"Menu item {item.menu_item_id} consumes no tracked products.")
        for conversion in conversions:
            amount = conversion.quantity_per_serving * item.quantity
            # The same product may be reached from several items or ingredients
            required[conversion.product_id] = required.get(conversion.product_id, Decimal("0")) + amount

            line = requirement_lines.setdefault(conversion.product_id, {
                "product_name": conversion.product_name,
                "unit": conversion.unit_of_measure,
                "ingredient_names": [],
            })
            if conversion.ingredient_name not in line["ingredient_names"]:
                line["ingredient_names"].append(conversion.ingredient_name)

    if lock:
        products = await lock_products(required.keys(), conn)
    else:
        rows = await Product.filter(id__in=list(required.keys())).using_db(conn) if required else []
        products = {p.id: p for p in rows}

    insufficient: List[Shortage] = []
    ingredient_quantities: List[ProductRequirement] = []
    for product_id in sorted(required):
        needed = required[product_id].quantize(QUANTITY_PLACES)
        required[product_id] = needed
        product = products.get(product_id)
        available = to_quantity(product.current_quantity) if product else Decimal("0")
        line = requirement_lines[product_id]

        ingredient_quantities.append(ProductRequirement(
            product_id=product_id,
            product_name=line["product_name"],
            unit=line["unit"],
            ingredient_names=line["ingredient_names"],
            required=needed,
            available=available,
        ))
        if needed > available:
            insufficient.append(Shortage(
                product_id=product_id,
                product_name=line["product_name"],
                required=needed,
                available=available,
                shortage=needed - available,
                unit=line["unit"],
            ))

    return AvailabilityResult(
        required_by_product=required,
        insufficient=insufficient,
        ingredient_quantities=ingredient_quantities,
    )
