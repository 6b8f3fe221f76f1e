"""
Recipe-Ingredient-Product Map.

Read side: `get_menu_item_conversions` turns a menu item into the list of
(product, quantity per serving) pairs the Availability Resolver expands.
Write side: link management for the back office.
"""
import logging
from typing import Any, Dict, List

from tortoise.exceptions import IntegrityError

from restaurant_inventory.core.exceptions import DuplicateLinkError, LinkNotFoundError, ValidationError
from restaurant_inventory.models.order import MenuItem
from restaurant_inventory.models.product import Product
from restaurant_inventory.models.recipe import RecipeIngredient, RecipeIngredientProduct
from restaurant_inventory.schemas.recipe import LinkRequest, ProductConversion, RecipeLinkDetail
from restaurant_inventory.services.product_store import to_quantity

log = logging.getLogger("recipe_links")


async def get_menu_item_conversions(menu_item_id: int, conn: Any = None) -> List[ProductConversion]:
    """
    Products one serving of the menu item consumes, in ingredient order.
    Unknown menu items, items without a recipe and recipes without links all map to [].
    """
    menu_item = await MenuItem.get_or_none(id=menu_item_id).using_db(conn)
    if not menu_item or menu_item.recipe_id is None:
        return []

    rows = await (
        RecipeIngredientProduct.filter(recipe_ingredient__recipe_id=menu_item.recipe_id)
        .using_db(conn)
        .order_by("recipe_ingredient__order_index", "id")
        .values(
            "product_id",
            "quantity_per_serving",
            product_name="product__name",
            unit_of_measure="product__unit_of_measure",
            ingredient_name="recipe_ingredient__name",
        )
    )
    return [
        ProductConversion(
            product_id=row["product_id"],
            quantity_per_serving=to_quantity(row["quantity_per_serving"]),
            product_name=row["product_name"],
            ingredient_name=row["ingredient_name"],
            unit_of_measure=row["unit_of_measure"],
        )
        for row in rows
    ]


def _validate_link(data: LinkRequest) -> List[Dict[str, str]]:
    errors = []
    if not data.recipe_ingredient_id or data.recipe_ingredient_id < 1:
        errors.append({"field": "recipe_ingredient_id", "message": "Recipe ingredient ID must be a positive integer"})
    if not data.product_id or data.product_id < 1:
        errors.append({"field": "product_id", "message": "Product ID must be a positive integer"})
    try:
        quantity = to_quantity(data.quantity_per_serving)
        if quantity <= 0:
            raise ValueError
    except ValueError:
        errors.append({"field": "quantity_per_serving", "message": "Quantity per serving must be a positive number"})
    return errors


async def create_link(data: LinkRequest) -> RecipeIngredientProduct:
    errors = _validate_link(data)
    if errors:
        raise ValidationError(errors)

    missing = []
    if not await RecipeIngredient.exists(id=data.recipe_ingredient_id):
        missing.append(f"recipe ingredient {data.recipe_ingredient_id}")
    if not await Product.exists(id=data.product_id):
        missing.append(f"product {data.product_id}")
    if missing:
        raise LinkNotFoundError(f"Referenced entities not found: {', '.join(missing)}")

    if await RecipeIngredientProduct.exists(
        recipe_ingredient_id=data.recipe_ingredient_id, product_id=data.product_id
    ):
        raise DuplicateLinkError("This ingredient is already linked to this product")

    try:
        link = await RecipeIngredientProduct.create(
            recipe_ingredient_id=data.recipe_ingredient_id,
            product_id=data.product_id,
            quantity_per_serving=to_quantity(data.quantity_per_serving),
        )
    except IntegrityError as e:
        raise DuplicateLinkError("This ingredient is already linked to this product") from e

    log.info(
        f"Linked ingredient {data.recipe_ingredient_id} to product {data.product_id} "
        f"({link.quantity_per_serving} per serving)."
    )
    return link


async def list_recipe_links(recipe_id: int) -> List[RecipeLinkDetail]:
    rows = await (
        RecipeIngredientProduct.filter(recipe_ingredient__recipe_id=recipe_id)
        .order_by("recipe_ingredient__order_index", "id")
        .values(
            "id",
            "recipe_ingredient_id",
            "product_id",
            "quantity_per_serving",
            ingredient_name="recipe_ingredient__name",
            product_name="product__name",
            unit_of_measure="product__unit_of_measure",
            current_quantity="product__current_quantity",
        )
    )
    return [
        RecipeLinkDetail(
            **{
                **row,
                "quantity_per_serving": to_quantity(row["quantity_per_serving"]),
                "current_quantity": to_quantity(row["current_quantity"]),
            }
        )
        for row in rows
    ]


async def delete_link(link_id: int) -> None:
    deleted = await RecipeIngredientProduct.filter(id=link_id).delete()
    if not deleted:
        raise LinkNotFoundError(f"Link {link_id} not found")
    log.info(f"Recipe link {link_id} deleted.")
