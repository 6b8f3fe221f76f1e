"""Low-stock and out-of-stock alerts derived from the Product Store."""
import logging
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from restaurant_inventory.models.product import Product
from restaurant_inventory.schemas.inventory import DashboardSummary, StockAlert

log = logging.getLogger("alert_service")

LOW_STOCK = "low_stock"
OUT_OF_STOCK = "out_of_stock"


def severity_for(current: Decimal, threshold: Optional[Decimal]) -> str:
    if current <= 0:
        return "critical"
    if not threshold:
        return "medium"
    ratio = current / threshold
    if ratio <= Decimal("0.2"):
        return "critical"
    if ratio <= Decimal("0.5"):
        return "high"
    return "medium"


def classify(product: Product) -> Optional[str]:
    """Returns the alert type for a product, or None when it is adequately stocked."""
    if product.current_quantity <= 0:
        return OUT_OF_STOCK
    if product.current_quantity <= product.low_stock_threshold:
        return LOW_STOCK
    return None


def build_alert(product: Product, alert_type: str) -> StockAlert:
    if alert_type == OUT_OF_STOCK:
        message = f"{product.name} is out of stock"
    else:
        message = (
            f"{product.name} is running low "
            f"({product.current_quantity} {product.unit_of_measure} left, threshold {product.low_stock_threshold})"
        )
    return StockAlert(
        id=product.id,
        name=product.name,
        current_quantity=product.current_quantity,
        low_stock_threshold=product.low_stock_threshold,
        unit_of_measure=product.unit_of_measure,
        alert_type=alert_type,
        severity=severity_for(product.current_quantity, product.low_stock_threshold),
        message=message,
    )


async def _alerts(alert_type: str) -> List[StockAlert]:
    # Compared in Python: decimal columns are not reliably comparable across backends
    products = await Product.all().order_by("name")
    return [build_alert(p, alert_type) for p in products if classify(p) == alert_type]


async def get_low_stock_alerts() -> List[StockAlert]:
    return await _alerts(LOW_STOCK)


async def get_out_of_stock_alerts() -> List[StockAlert]:
    return await _alerts(OUT_OF_STOCK)


def alert_summary(out_of_stock: int, low_stock: int) -> str:
    if not out_of_stock and not low_stock:
        return "All products are adequately stocked"
    parts = []
    if out_of_stock:
        parts.append(f"{out_of_stock} product{'s' if out_of_stock != 1 else ''} out of stock")
    if low_stock:
        parts.append(f"{low_stock} product{'s' if low_stock != 1 else ''} running low")
    return ", ".join(parts)


async def get_dashboard() -> DashboardSummary:
    products = await Product.all().order_by("name")
    low, out = [], []
    total_value = Decimal("0")
    for product in products:
        if product.cost_per_unit is not None and product.current_quantity > 0:
            total_value += product.current_quantity * product.cost_per_unit
        alert_type = classify(product)
        if alert_type == OUT_OF_STOCK:
            out.append(build_alert(product, alert_type))
        elif alert_type == LOW_STOCK:
            low.append(build_alert(product, alert_type))

    return DashboardSummary(
        total_products=len(products),
        low_stock_count=len(low),
        out_of_stock_count=len(out),
        total_inventory_value=total_value.quantize(Decimal("0.01")),
        low_stock_alerts=low,
        out_of_stock_alerts=out,
        alert_summary=alert_summary(len(out), len(low)),
    )


async def log_stock_alerts(product_ids: Iterable[int], conn: Any = None) -> List[StockAlert]:
    """Logs an alert for every given product that is now low or out of stock."""
    ids = list(set(product_ids))
    if not ids:
        return []
    alerts = []
    for product in await Product.filter(id__in=ids).using_db(conn).order_by("id"):
        alert_type = classify(product)
        if alert_type:
            alert = build_alert(product, alert_type)
            log.warning(f"ALERT [{alert.severity}]: {alert.message}")
            alerts.append(alert)
    return alerts
