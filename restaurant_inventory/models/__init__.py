# restaurant_inventory/models/__init__.py
from .product import Product
from .inventory import InventoryTransaction, TransactionType, ReferenceType
from .recipe import Recipe, RecipeIngredient, RecipeIngredientProduct
from .order import Order, OrderItem, OrderStatus, MenuItem

# Export all models
__all__ = [
    "Product",
    "InventoryTransaction",
    "TransactionType",
    "ReferenceType",
    "Recipe",
    "RecipeIngredient",
    "RecipeIngredientProduct",
    "Order",
    "OrderItem",
    "OrderStatus",
    "MenuItem",
]
