"""Recipes and menu items: the minimal catalog the ingredient map hangs off."""
import logging

from tortoise.transactions import in_transaction

from restaurant_inventory.core.exceptions import LinkNotFoundError
from restaurant_inventory.models.order import MenuItem
from restaurant_inventory.models.recipe import Recipe, RecipeIngredient
from restaurant_inventory.schemas.recipe import MenuItemRequest, RecipeRequest, RecipeResponse

log = logging.getLogger("catalog_service")


async def create_recipe(data: RecipeRequest) -> RecipeResponse:
    """Creates the recipe and its ingredients in list order (`order_index` follows the list)."""
    async with in_transaction() as conn:
        recipe = await Recipe.create(
            name=data.name, category=data.category, servings=data.servings, using_db=conn
        )
        ingredient_ids = []
        for index, ingredient in enumerate(data.ingredients):
            row = await RecipeIngredient.create(
                recipe=recipe,
                name=ingredient.name,
                quantity=ingredient.quantity,
                unit=ingredient.unit,
                order_index=index,
                using_db=conn,
            )
            ingredient_ids.append(row.id)

    log.info(f"Recipe {recipe.id} ({recipe.name}) created with {len(ingredient_ids)} ingredient(s).")
    return RecipeResponse(
        id=recipe.id,
        name=recipe.name,
        category=recipe.category,
        servings=recipe.servings,
        ingredient_ids=ingredient_ids,
    )


async def create_menu_item(data: MenuItemRequest) -> MenuItem:
    if data.recipe_id is not None and not await Recipe.exists(id=data.recipe_id):
        raise LinkNotFoundError(f"Recipe {data.recipe_id} not found")
    menu_item = await MenuItem.create(**data.model_dump())
    log.info(f"Menu item {menu_item.id} ({menu_item.name}) created.")
    return menu_item
