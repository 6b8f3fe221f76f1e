from tortoise import fields, models


class Product(models.Model):
    """
    A stock-keeping unit. `current_quantity` is a cached running total of the
    product's ledger rows and is only ever changed together with a ledger insert.
    """
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=200, unique=True)
    description = fields.TextField(null=True)
    unit_of_measure = fields.CharField(max_length=50)
    current_quantity = fields.DecimalField(max_digits=10, decimal_places=3, default=0)
    low_stock_threshold = fields.DecimalField(max_digits=10, decimal_places=3, default=10)
    cost_per_unit = fields.DecimalField(max_digits=10, decimal_places=2, null=True)
    supplier_info = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "products"
        indexes = [
            ("current_quantity", "low_stock_threshold"),  # Alert queries
            ("unit_of_measure",),
        ]

    @property
    def stock_status(self) -> str:
        if self.current_quantity <= 0:
            return "out_of_stock"
        if self.current_quantity <= self.low_stock_threshold:
            return "low_stock"
        return "in_stock"
