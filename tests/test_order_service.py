from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from restaurant_inventory.core.exceptions import (
    InsufficientInventoryError,
    InvalidStatusTransitionError,
    StoreError,
    ValidationError,
)
from restaurant_inventory.models.inventory import InventoryTransaction, TransactionType
from restaurant_inventory.models.order import Order, OrderStatus
from restaurant_inventory.services import ledger, product_store
from restaurant_inventory.services.order_service import (
    cancel_order,
    list_orders,
    place_order,
    update_order_status,
)

# --- CORE MOCKING UTILITIES ---

class AsyncContextManagerMock:
    """Mocks 'async with in_transaction() as conn:' to fulfill the async context manager protocol."""
    async def __aenter__(self):
        # Returns a mock connection object
        return object()
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


def create_mock_queryset(final_return_value):
    """
    Creates a mock supporting Tortoise-style chaining: every chained call returns
    the mock itself and `.first()` resolves to the final value.
    """
    chainable_mock = MagicMock()
    chainable_mock.using_db.return_value = chainable_mock
    chainable_mock.select_for_update.return_value = chainable_mock
    chainable_mock.first = AsyncMock(return_value=final_return_value)
    return chainable_mock


@pytest.fixture
def mock_order_paid():
    """Mock Order object in a final state (PAID) that should block transitions."""
    mock_order = MagicMock()
    mock_order.id = 17
    mock_order.status = OrderStatus.PAID
    mock_order.save = AsyncMock()
    return mock_order


# --- TESTS (mocked ORM) ---

@pytest.mark.asyncio
@patch('restaurant_inventory.services.order_service.reconcile', new_callable=AsyncMock)
@patch('restaurant_inventory.services.order_service.in_transaction', new_callable=MagicMock)
async def test_rejection_of_final_state_transition(mock_in_transaction, mock_reconcile, mock_order_paid):
    mock_in_transaction.return_value = AsyncContextManagerMock()

    with patch.object(Order, 'filter', MagicMock(return_value=create_mock_queryset(mock_order_paid))):
        with pytest.raises(InvalidStatusTransitionError):
            await update_order_status(mock_order_paid.id, OrderStatus.PREPARING)

    mock_order_paid.save.assert_not_called()
    mock_reconcile.assert_not_called()


@pytest.mark.asyncio
@patch('restaurant_inventory.services.order_service.reconcile', new_callable=AsyncMock)
@patch('restaurant_inventory.services.order_service.in_transaction', new_callable=MagicMock)
async def test_non_fulfillment_transition_does_not_reconcile(mock_in_transaction, mock_reconcile):
    mock_in_transaction.return_value = AsyncContextManagerMock()
    mock_order = MagicMock(id=3, status=OrderStatus.PENDING, save=AsyncMock())

    with patch.object(Order, 'filter', MagicMock(return_value=create_mock_queryset(mock_order))):
        updated = await update_order_status(3, OrderStatus.PREPARING)

    assert updated.status == OrderStatus.PREPARING
    mock_order.save.assert_called_once()
    mock_reconcile.assert_not_called()


# --- TESTS (database) ---

@pytest.mark.asyncio
async def test_served_deducts_and_paid_does_not_repeat(make_product, make_menu_item, make_order):
    flour = await make_product("Flour", quantity="100")
    pizza = await make_menu_item("Pizza", [("Dough", flour, "0.5")], price="9.50")
    order = await make_order((pizza, 2))
    assert order.total_amount == Decimal("19.00")

    served = await update_order_status(order.id, OrderStatus.SERVED)
    assert served.status == OrderStatus.SERVED
    assert (await product_store.get_product(flour.id)).current_quantity == Decimal("99.0")

    paid = await update_order_status(order.id, OrderStatus.PAID)
    assert paid.status == OrderStatus.PAID
    assert await InventoryTransaction.filter(transaction_type=TransactionType.SALE).count() == 1
    assert (await product_store.get_product(flour.id)).current_quantity == Decimal("99.0")


@pytest.mark.asyncio
async def test_direct_to_paid_deducts_once(make_product, make_menu_item, make_order):
    flour = await make_product("Flour", quantity="100")
    pizza = await make_menu_item("Pizza", [("Dough", flour, "0.5")])
    order = await make_order((pizza, 2))

    await update_order_status(order.id, OrderStatus.PAID)

    assert await InventoryTransaction.filter(transaction_type=TransactionType.SALE).count() == 1


@pytest.mark.asyncio
async def test_insufficient_stock_keeps_previous_status(make_product, make_menu_item, make_order):
    cheese = await make_product("Fresh Mozzarella", quantity="5")
    pizza = await make_menu_item("Pizza", [("Cheese", cheese, "1")])
    order = await make_order((pizza, 6))

    with pytest.raises(InsufficientInventoryError) as exc:
        await update_order_status(order.id, OrderStatus.SERVED)

    assert exc.value.shortages[0]["shortage"] == Decimal("1")
    assert (await Order.get(id=order.id)).status == OrderStatus.PENDING
    assert (await product_store.get_product(cheese.id)).current_quantity == Decimal("5")


@pytest.mark.asyncio
async def test_itemless_order_still_transitions(db):
    order = await Order.create()

    updated = await update_order_status(order.id, OrderStatus.SERVED)

    assert updated.status == OrderStatus.SERVED
    assert await InventoryTransaction.all().count() == 0


@pytest.mark.asyncio
async def test_store_failure_still_transitions(make_product, make_menu_item, make_order):
    flour = await make_product("Flour", quantity="100")
    pizza = await make_menu_item("Pizza", [("Dough", flour, "0.5")])
    order = await make_order((pizza, 2))

    with patch(
        'restaurant_inventory.services.order_service.reconcile',
        new=AsyncMock(side_effect=StoreError("Failed to process inventory")),
    ):
        updated = await update_order_status(order.id, OrderStatus.SERVED)

    assert updated.status == OrderStatus.SERVED
    assert (await Order.get(id=order.id)).status == OrderStatus.SERVED
    assert (await product_store.get_product(flour.id)).current_quantity == Decimal("100")


@pytest.mark.asyncio
async def test_same_status_is_rejected(make_product, make_menu_item, make_order):
    flour = await make_product("Flour", quantity="100")
    pizza = await make_menu_item("Pizza", [("Dough", flour, "0.5")])
    order = await make_order((pizza, 1))

    with pytest.raises(InvalidStatusTransitionError):
        await update_order_status(order.id, OrderStatus.PENDING)


@pytest.mark.asyncio
async def test_cancel_only_before_fulfillment(make_product, make_menu_item, make_order):
    flour = await make_product("Flour", quantity="100")
    pizza = await make_menu_item("Pizza", [("Dough", flour, "0.5")])
    open_order = await make_order((pizza, 1))
    served_order = await make_order((pizza, 1))
    await update_order_status(served_order.id, OrderStatus.SERVED)

    cancelled = await cancel_order(open_order.id)
    assert cancelled.status == OrderStatus.CANCELLED

    with pytest.raises(InvalidStatusTransitionError):
        await cancel_order(served_order.id)


@pytest.mark.asyncio
async def test_place_order_rejects_unknown_menu_items(db):
    with pytest.raises(ValidationError):
        await place_order([{"menu_item_id": 404, "quantity": 1}])


@pytest.mark.asyncio
async def test_list_orders_by_status(make_product, make_menu_item, make_order):
    flour = await make_product("Flour", quantity="100")
    pizza = await make_menu_item("Pizza", [("Dough", flour, "0.5")])
    first = await make_order((pizza, 1))
    await make_order((pizza, 1))
    await update_order_status(first.id, OrderStatus.PREPARING)

    orders, total = await list_orders(status=OrderStatus.PENDING)
    assert total == 1
    assert orders[0].id != first.id

    _, total = await list_orders()
    assert total == 2


@pytest.mark.asyncio
async def test_place_order_rejects_non_positive_quantities(make_product, make_menu_item):
    flour = await make_product("Flour", quantity="100")
    pizza = await make_menu_item("Pizza", [("Dough", flour, "0.5")])

    with pytest.raises(ValidationError) as exc:
        await place_order([
            {"menu_item_id": pizza.id, "quantity": -4},
            {"menu_item_id": pizza.id, "quantity": 0},
            {"menu_item_id": pizza.id, "quantity": 1},
        ])

    assert [e["field"] for e in exc.value.errors] == ["items[0].quantity", "items[1].quantity"]
    assert await Order.all().count() == 0


@pytest.mark.asyncio
async def test_served_with_many_long_ingredient_names(make_product, make_menu_item, make_order):
    flour = await make_product("Flour", quantity="100")
    links = [(f"{index}" + "d" * 189, flour, "0.5") for index in range(6)]
    pizza = await make_menu_item("Pizza", links)
    order = await make_order((pizza, 1))

    served = await update_order_status(order.id, OrderStatus.SERVED)

    assert served.status == OrderStatus.SERVED
    assert (await product_store.get_product(flour.id)).current_quantity == Decimal("97")
    sale = await InventoryTransaction.get(transaction_type=TransactionType.SALE)
    assert len(sale.notes) <= 1000
    assert sale.notes.startswith(f"Order #{order.id} - 0dd")


@pytest.mark.asyncio
async def test_rejected_deduction_still_transitions_without_partial_writes(make_product, make_menu_item, make_order):
    flour = await make_product("Flour", quantity="100")
    cheese = await make_product("Fresh Mozzarella", quantity="10")
    pizza = await make_menu_item("Pizza", [("Dough", flour, "0.5"), ("Cheese", cheese, "0.5")])
    order = await make_order((pizza, 2))

    real_record = ledger.record_transaction
    calls = []

    async def rejecting_second_write(*args, **kwargs):
        calls.append(args)
        if len(calls) == 2:
            raise ValidationError([{"field": "notes", "message": "Notes too long"}])
        return await real_record(*args, **kwargs)

    with patch("restaurant_inventory.services.reconciler.record_transaction", side_effect=rejecting_second_write):
        updated = await update_order_status(order.id, OrderStatus.SERVED)

    assert updated.status == OrderStatus.SERVED
    assert (await Order.get(id=order.id)).status == OrderStatus.SERVED
    assert await InventoryTransaction.filter(transaction_type=TransactionType.SALE).count() == 0
    assert (await product_store.get_product(flour.id)).current_quantity == Decimal("100")
