from decimal import Decimal
from types import SimpleNamespace

import pytest

from restaurant_inventory.services import alert_service, ledger


def product(quantity, threshold="10"):
    return SimpleNamespace(
        id=1,
        name="Flour",
        unit_of_measure="kg",
        current_quantity=Decimal(quantity),
        low_stock_threshold=Decimal(threshold),
    )


@pytest.mark.parametrize("quantity, expected", [
    ("0", "critical"),
    ("-2", "critical"),
    ("2", "critical"),
    ("5", "high"),
    ("8", "medium"),
])
def test_severity(quantity, expected):
    assert alert_service.severity_for(Decimal(quantity), Decimal("10")) == expected


def test_classify_boundaries():
    assert alert_service.classify(product("0")) == alert_service.OUT_OF_STOCK
    assert alert_service.classify(product("10")) == alert_service.LOW_STOCK
    assert alert_service.classify(product("10.001")) is None


def test_alert_summary_text():
    assert alert_service.alert_summary(0, 0) == "All products are adequately stocked"
    assert alert_service.alert_summary(2, 1) == "2 products out of stock, 1 product running low"
    assert alert_service.alert_summary(0, 3) == "3 products running low"


@pytest.mark.asyncio
async def test_dashboard(make_product):
    await make_product("Flour", quantity="100", cost="0.90")
    await make_product("Fresh Mozzarella", quantity="2", threshold="3", cost="12.50")
    await make_product("Fresh Basil", quantity="0", unit="g")

    dashboard = await alert_service.get_dashboard()

    assert dashboard.total_products == 3
    assert dashboard.low_stock_count == 1
    assert dashboard.out_of_stock_count == 1
    assert dashboard.low_stock_alerts[0].name == "Fresh Mozzarella"
    assert dashboard.out_of_stock_alerts[0].severity == "critical"
    assert dashboard.total_inventory_value == Decimal("115.00")
    assert dashboard.alert_summary == "1 product out of stock, 1 product running low"


@pytest.mark.asyncio
async def test_alert_lists_follow_stock_changes(make_product):
    flour = await make_product("Flour", quantity="12")
    assert await alert_service.get_low_stock_alerts() == []

    await ledger.adjust(flour.id, "-4")
    low = await alert_service.get_low_stock_alerts()
    assert [a.id for a in low] == [flour.id]

    await ledger.record_waste(flour.id, "8")
    assert await alert_service.get_low_stock_alerts() == []
    out = await alert_service.get_out_of_stock_alerts()
    assert [a.id for a in out] == [flour.id]
