# scripts/seed_data.py
import asyncio
import logging
from decimal import Decimal

from restaurant_inventory.core.config import LOG_FORMAT
from restaurant_inventory.core.db import close_db, init_db
from restaurant_inventory.models.order import MenuItem
from restaurant_inventory.models.product import Product
from restaurant_inventory.models.recipe import Recipe, RecipeIngredient, RecipeIngredientProduct
from restaurant_inventory.schemas.inventory import ProductCreate
from restaurant_inventory.services.ledger import create_product

log = logging.getLogger("seed_data")

PRODUCTS = [
    ("Pizza Dough Balls", "pieces", "50", "10", "0.75"),
    ("Tomato Sauce", "l", "20", "5", "3.20"),
    ("Fresh Mozzarella", "kg", "15", "3", "12.50"),
    ("Flour", "kg", "100", "20", "0.90"),
    ("Fresh Basil", "g", "500", "100", "0.05"),
    ("Cola Syrup", "l", "10", "2", "6.00"),
]

# recipe name, category, menu price, [(ingredient, product, quantity per serving)]
RECIPES = [
    ("Margherita Pizza", "food", "11.50", [
        ("Dough", "Pizza Dough Balls", "1"),
        ("Sauce", "Tomato Sauce", "0.12"),
        ("Cheese", "Fresh Mozzarella", "0.125"),
        ("Basil", "Fresh Basil", "5"),
    ]),
    ("Flatbread", "food", "6.00", [
        ("Flour", "Flour", "0.5"),
    ]),
    ("Cola", "drink", "2.50", [
        ("Syrup", "Cola Syrup", "0.05"),
    ]),
]


async def seed():
    products = {}
    for name, unit, qty, threshold, cost in PRODUCTS:
        product = await Product.get_or_none(name=name)
        if not product:
            # Opening stock goes through the ledger
            product, _ = await create_product(ProductCreate(
                name=name,
                unit_of_measure=unit,
                current_quantity=Decimal(qty),
                low_stock_threshold=Decimal(threshold),
                cost_per_unit=Decimal(cost),
            ))
        products[name] = product
    log.info(f"Products: {', '.join(f'{p.name}={p.id}' for p in products.values())}")

    for recipe_name, category, price, ingredients in RECIPES:
        recipe, created = await Recipe.get_or_create(name=recipe_name, defaults={"category": category, "servings": 1})
        if created:
            for index, (ingredient_name, product_name, per_serving) in enumerate(ingredients):
                ingredient = await RecipeIngredient.create(recipe=recipe, name=ingredient_name, order_index=index)
                await RecipeIngredientProduct.create(
                    recipe_ingredient=ingredient,
                    product=products[product_name],
                    quantity_per_serving=Decimal(per_serving),
                )
        menu_item, _ = await MenuItem.get_or_create(
            name=recipe_name, defaults={"price": Decimal(price), "recipe": recipe, "category": category}
        )
        log.info(f"Menu item: {menu_item.name} ({menu_item.id})")

    log.info("Inventory seeded.")


async def main():
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    await init_db()
    await seed()
    await close_db()

if __name__ == "__main__":
    asyncio.run(main())
