from enum import Enum
from tortoise import fields, models


class TransactionType(str, Enum):
    SALE = "sale"
    RESTOCK = "restock"
    ADJUSTMENT = "adjustment"
    WASTE = "waste"


class ReferenceType(str, Enum):
    ORDER = "order"
    MANUAL = "manual"
    RECIPE = "recipe"


class InventoryTransaction(models.Model):
    """
    Append-only ledger row: "this quantity delta happened to this product, because of
    this reference, at this time". Positive quantity_change increases stock.
    Rows are never updated or deleted.
    """
    id = fields.IntField(primary_key=True)
    product = fields.ForeignKeyField(
        "models.Product", related_name="transactions", on_delete=fields.RESTRICT
    )
    transaction_type = fields.CharEnumField(TransactionType, max_length=20)
    quantity_change = fields.DecimalField(max_digits=10, decimal_places=3)
    reference_type = fields.CharEnumField(ReferenceType, max_length=20, null=True)
    reference_id = fields.IntField(null=True)
    notes = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "inventory_transactions"
        ordering = ["-created_at", "-id"]
        indexes = [
            ("product_id",),
            ("transaction_type",),
            ("reference_type", "reference_id"),  # "what did order N consume"
            ("created_at",),
        ]
