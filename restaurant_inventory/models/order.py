from enum import Enum
from tortoise import fields, models


class OrderStatus(str, Enum):
    PENDING = "pending"      # Initial state
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"        # Fulfillment-triggering
    PAID = "paid"            # Fulfillment-triggering
    CANCELLED = "cancelled"


FULFILLMENT_STATUSES = (OrderStatus.SERVED, OrderStatus.PAID)

# Allowed forward moves of the order state machine
STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED, OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.SERVED, OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.SERVED, OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.SERVED: {OrderStatus.PAID},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELLED: set(),
}


class MenuItem(models.Model):
    id = fields.IntField(primary_key=True)
    recipe = fields.ForeignKeyField("models.Recipe", related_name="menu_items", null=True, on_delete=fields.SET_NULL)
    name = fields.CharField(max_length=100)
    price = fields.DecimalField(max_digits=10, decimal_places=2)
    category = fields.CharField(max_length=50, null=True)
    is_active = fields.BooleanField(default=True)

    class Meta:
        table = "menu_items"
        indexes = [
            ("recipe_id",),
            ("is_active",),
        ]


class Order(models.Model):
    id = fields.IntField(primary_key=True)
    customer_name = fields.CharField(max_length=100, null=True)
    table_number = fields.IntField(null=True)
    status = fields.CharEnumField(OrderStatus, max_length=20, default=OrderStatus.PENDING)
    total_amount = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        indexes = [
            ("status",),                 # Status-based filtering
            ("created_at",),             # Time-based queries
            ("status", "created_at"),    # Composite: status with time
        ]


class OrderItem(models.Model):
    id = fields.IntField(primary_key=True)
    order = fields.ForeignKeyField("models.Order", related_name="items", on_delete=fields.CASCADE)
    menu_item = fields.ForeignKeyField("models.MenuItem", related_name="order_items")
    quantity = fields.IntField()
    unit_price = fields.DecimalField(max_digits=10, decimal_places=2)
    line_total = fields.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        table = "order_items"
        indexes = [
            ("order_id",),              # Order line items
            ("menu_item_id",),          # Menu item popularity
        ]
