from decimal import Decimal

import pytest
import pytest_asyncio

from restaurant_inventory.core.db import close_db, init_db
from restaurant_inventory.models.order import MenuItem
from restaurant_inventory.models.recipe import Recipe, RecipeIngredient, RecipeIngredientProduct
from restaurant_inventory.schemas.inventory import ProductCreate
from restaurant_inventory.services.ledger import create_product
from restaurant_inventory.services.order_service import place_order


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh SQLite database file per test."""
    await init_db(db_url=f"sqlite://{tmp_path / 'test.sqlite3'}", generate_schemas=True)
    yield
    await close_db()


@pytest.fixture
def make_product(db):
    async def _make(name, quantity="0", unit="kg", threshold="10", cost=None):
        product, _ = await create_product(ProductCreate(
            name=name,
            unit_of_measure=unit,
            current_quantity=Decimal(quantity),
            low_stock_threshold=Decimal(threshold),
            cost_per_unit=Decimal(cost) if cost is not None else None,
        ))
        return product
    return _make


@pytest.fixture
def make_menu_item(db):
    """Menu item backed by a recipe whose ingredients are linked to `links` = [(ingredient, product, per_serving)]."""
    async def _make(name, links, price="10.00"):
        recipe = await Recipe.create(name=name)
        for index, (ingredient_name, product, per_serving) in enumerate(links):
            ingredient = await RecipeIngredient.create(recipe=recipe, name=ingredient_name, order_index=index)
            await RecipeIngredientProduct.create(
                recipe_ingredient=ingredient,
                product=product,
                quantity_per_serving=Decimal(per_serving),
            )
        return await MenuItem.create(name=name, price=Decimal(price), recipe=recipe)
    return _make


@pytest.fixture
def make_order(db):
    async def _make(*lines):
        return await place_order([{"menu_item_id": m.id, "quantity": q} for m, q in lines])
    return _make
