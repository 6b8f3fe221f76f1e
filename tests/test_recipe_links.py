from decimal import Decimal

import pytest

from restaurant_inventory.core.exceptions import DuplicateLinkError, LinkNotFoundError, ValidationError
from restaurant_inventory.schemas.recipe import LinkRequest, MenuItemRequest, RecipeIngredientRequest, RecipeRequest
from restaurant_inventory.services import catalog_service, recipe_links


async def _recipe():
    return await catalog_service.create_recipe(RecipeRequest(
        name="Margherita Pizza",
        ingredients=[RecipeIngredientRequest(name="Dough"), RecipeIngredientRequest(name="Cheese")],
    ))


@pytest.mark.asyncio
async def test_invalid_link_reports_all_fields(db):
    with pytest.raises(ValidationError) as exc:
        await recipe_links.create_link(LinkRequest(recipe_ingredient_id=0, quantity_per_serving=Decimal("-1")))

    assert {e["field"] for e in exc.value.errors} == {"recipe_ingredient_id", "product_id", "quantity_per_serving"}


@pytest.mark.asyncio
async def test_link_to_missing_entities(db):
    with pytest.raises(LinkNotFoundError) as exc:
        await recipe_links.create_link(LinkRequest(recipe_ingredient_id=5, product_id=6, quantity_per_serving=1))

    assert "recipe ingredient 5" in exc.value.message
    assert "product 6" in exc.value.message


@pytest.mark.asyncio
async def test_create_list_and_delete_links(make_product):
    dough = await make_product("Pizza Dough Balls", quantity="50", unit="pieces")
    cheese = await make_product("Fresh Mozzarella", quantity="15")
    recipe = await _recipe()
    dough_id, cheese_id = recipe.ingredient_ids

    await recipe_links.create_link(LinkRequest(recipe_ingredient_id=cheese_id, product_id=cheese.id, quantity_per_serving="0.125"))
    link = await recipe_links.create_link(LinkRequest(recipe_ingredient_id=dough_id, product_id=dough.id, quantity_per_serving="1"))

    with pytest.raises(DuplicateLinkError):
        await recipe_links.create_link(LinkRequest(recipe_ingredient_id=dough_id, product_id=dough.id, quantity_per_serving="2"))

    links = await recipe_links.list_recipe_links(recipe.id)
    assert [entry.ingredient_name for entry in links] == ["Dough", "Cheese"]
    assert links[1].quantity_per_serving == Decimal("0.125")
    assert links[1].current_quantity == Decimal("15")

    await recipe_links.delete_link(link.id)
    assert len(await recipe_links.list_recipe_links(recipe.id)) == 1
    with pytest.raises(LinkNotFoundError):
        await recipe_links.delete_link(link.id)


@pytest.mark.asyncio
async def test_menu_item_conversions_through_catalog(make_product):
    cheese = await make_product("Fresh Mozzarella", quantity="15")
    recipe = await _recipe()
    await recipe_links.create_link(
        LinkRequest(recipe_ingredient_id=recipe.ingredient_ids[1], product_id=cheese.id, quantity_per_serving="0.125")
    )
    menu_item = await catalog_service.create_menu_item(
        MenuItemRequest(name="Margherita", price=Decimal("11.50"), recipe_id=recipe.id)
    )

    conversions = await recipe_links.get_menu_item_conversions(menu_item.id)

    assert len(conversions) == 1
    assert conversions[0].product_id == cheese.id


@pytest.mark.asyncio
async def test_menu_item_with_unknown_recipe(db):
    with pytest.raises(LinkNotFoundError):
        await catalog_service.create_menu_item(MenuItemRequest(name="Ghost", price=Decimal("1"), recipe_id=77))
