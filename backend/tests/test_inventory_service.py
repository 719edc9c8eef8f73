import uuid
from types import SimpleNamespace

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

import services.inventory_service as inventory_service
from db.inventory.item import InventoryItem
from db.inventory.movement import InventoryMovement
from db.menu_item import MenuItem
from services.inventory_service import NOT_FOUND, InventoryService
from tests.factories import make_inventory_item, make_menu_item


def line(menu_item, quantity):
    return SimpleNamespace(menu_item_id=menu_item.id, quantity=quantity)


async def stock_of(db, item):
    refreshed = await db.get(InventoryItem, item.id, populate_existing=True)
    return refreshed.current_stock


async def test_deducts_test_burger_for_quantity_three(db):
    patty = await make_inventory_item(db, "Burger Patty", current_stock=50)
    bun = await make_inventory_item(db, "Burger Bun", current_stock=30)
    burger = await make_menu_item(
        db, "Test Burger", [("Burger Patty", 1, "pieces"), ("Burger Bun", 1, "pieces")]
    )

    result = await InventoryService(db).deduct_main_ingredients([line(burger, 3)])

    assert result.success is True
    assert result.errors == []
    assert len(result.deductions) == 2
    assert all(d.order_quantity == 3 for d in result.deductions)
    assert [d.ingredient for d in result.deductions] == ["Burger Patty", "Burger Bun"]
    assert await stock_of(db, patty) == 47
    assert await stock_of(db, bun) == 27


async def test_deduction_reports_previous_and_new_stock(db):
    await make_inventory_item(db, "Tomato", current_stock=10, min_stock=5)
    salad = await make_menu_item(db, "Garden Salad", [("Tomato", 2, "pieces")])

    result = await InventoryService(db).deduct_main_ingredients([line(salad, 2)])

    entry = result.deductions[0]
    assert entry.menu_item == "Garden Salad"
    assert entry.quantity_deducted == 4
    assert entry.previous_stock == 10
    assert entry.new_stock == 6
    assert entry.unit == "pieces"


async def test_deduction_above_minimum_is_not_low_stock(db):
    await make_inventory_item(db, "Tomato", current_stock=10, min_stock=5)
    salad = await make_menu_item(db, "Garden Salad", [("Tomato", 4, "pieces")])
    service = InventoryService(db)

    await service.deduct_main_ingredients([line(salad, 1)])
    alerts = await service.get_low_stock_alerts()

    assert alerts.success is True
    assert alerts.low_stock_items == []


async def test_insufficient_ingredient_does_not_block_others(db):
    lettuce = await make_inventory_item(db, "Lettuce", current_stock=3)
    bun = await make_inventory_item(db, "Burger Bun", current_stock=30)
    burger = await make_menu_item(db, "Test Burger", [("Lettuce", 5, "leaves"), ("Burger Bun", 1, "pieces")])

    result = await InventoryService(db).deduct_main_ingredients([line(burger, 1)])

    assert result.success is False
    assert [d.ingredient for d in result.deductions] == ["Burger Bun"]
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.menu_item == "Test Burger"
    assert error.ingredient == "Lettuce"
    assert error.error == "Insufficient stock. Available: 3 pieces, Required: 5 leaves"
    assert await stock_of(db, lettuce) == 3
    assert await stock_of(db, bun) == 29


async def test_unknown_ingredient_is_reported_and_skipped(db):
    bun = await make_inventory_item(db, "Burger Bun", current_stock=30)
    burger = await make_menu_item(db, "Test Burger", [("Unicorn Meat", 1, "pieces"), ("Burger Bun", 1, "pieces")])
    service = InventoryService(db)

    deduction = await service.deduct_main_ingredients([line(burger, 1)])
    check = await service.check_inventory_availability([line(burger, 1)])

    assert deduction.errors[0].ingredient == "Unicorn Meat"
    assert deduction.errors[0].error == NOT_FOUND
    assert len(deduction.deductions) == 1
    assert await stock_of(db, bun) == 29

    assert check.success is True
    assert check.all_available is False
    assert check.warnings[0].ingredient == "Unicorn Meat"
    assert check.warnings[0].warning == NOT_FOUND
    assert [a.ingredient for a in check.availability] == ["Burger Bun"]


async def test_matching_is_case_insensitive(db):
    patty = await make_inventory_item(db, "Burger Patty", current_stock=10)
    burger = await make_menu_item(db, "Shouty Burger", [("BURGER PATTY", 1, "pieces")])

    result = await InventoryService(db).deduct_main_ingredients([line(burger, 2)])

    assert result.success is True
    assert await stock_of(db, patty) == 8


async def test_deleted_menu_item_and_empty_recipe_are_skipped(db):
    water = await make_menu_item(db, "Still Water", category="beverage")
    ghost = SimpleNamespace(menu_item_id=uuid.uuid4(), quantity=1)

    result = await InventoryService(db).deduct_main_ingredients([ghost, line(water, 4)])

    assert result.success is True
    assert result.deductions == []
    assert result.errors == []


async def test_repeated_ingredient_lines_deduct_separately(db):
    cheese = await make_inventory_item(db, "Cheese Slice", current_stock=10)
    double = await make_menu_item(db, "Double Cheese", [("Cheese Slice", 1, "slices"), ("Cheese Slice", 2, "slices")])

    result = await InventoryService(db).deduct_main_ingredients([line(double, 1)])

    assert len(result.deductions) == 2
    assert await stock_of(db, cheese) == 7


async def test_deduction_writes_audit_movements(db):
    await make_inventory_item(db, "Burger Patty", current_stock=50)
    burger = await make_menu_item(db, "Test Burger", [("Burger Patty", 1, "pieces")])
    order_id = uuid.uuid4()

    await InventoryService(db).deduct_main_ingredients([line(burger, 3)], order_id=order_id)

    movement = (await db.execute(select(InventoryMovement))).scalar_one()
    assert movement.source_type == "order"
    assert movement.source_id == order_id
    assert movement.change == -3
    assert (movement.previous_stock, movement.new_stock) == (50, 47)
    assert movement.reason == "Delivered order: Test Burger x3"


async def test_failed_ingredient_writes_no_movement(db):
    await make_inventory_item(db, "Lettuce", current_stock=1)
    salad = await make_menu_item(db, "Garden Salad", [("Lettuce", 5, "leaves")])

    await InventoryService(db).deduct_main_ingredients([line(salad, 1)])

    assert (await db.execute(select(InventoryMovement))).scalars().all() == []


async def test_infrastructure_failure_becomes_single_error(db, monkeypatch):
    burger = await make_menu_item(db, "Test Burger", [("Burger Patty", 1, "pieces")])

    async def broken(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(inventory_service, "get_main_ingredients", broken)

    result = await InventoryService(db).deduct_main_ingredients([line(burger, 1)])

    assert result.success is False
    assert result.deductions == []
    assert len(result.errors) == 1
    assert result.errors[0].menu_item is None
    assert result.errors[0].error == "Failed to process inventory deductions: connection reset"


async def test_database_error_on_one_ingredient_keeps_going(db, monkeypatch):
    patty = await make_inventory_item(db, "Burger Patty", current_stock=50)
    bun = await make_inventory_item(db, "Burger Bun", current_stock=30)
    burger = await make_menu_item(db, "Test Burger", [("Burger Patty", 1, "pieces"), ("Burger Bun", 1, "pieces")])
    real_decrement = inventory_service.decrement_if_sufficient

    async def flaky(session, inventory_item_id, quantity):
        if inventory_item_id == patty.id:
            raise SQLAlchemyError("deadlock detected")
        return await real_decrement(session, inventory_item_id, quantity)

    monkeypatch.setattr(inventory_service, "decrement_if_sufficient", flaky)

    result = await InventoryService(db).deduct_main_ingredients([line(burger, 1)])

    assert result.success is False
    assert result.errors[0].ingredient == "Burger Patty"
    assert "deadlock detected" in result.errors[0].error
    assert [d.ingredient for d in result.deductions] == ["Burger Bun"]
    assert await stock_of(db, patty) == 50
    assert await stock_of(db, bun) == 29


async def test_availability_check_is_read_only_and_idempotent(db):
    patty = await make_inventory_item(db, "Burger Patty", current_stock=50, min_stock=10)
    lettuce = await make_inventory_item(db, "Lettuce", current_stock=3, min_stock=10)
    burger = await make_menu_item(db, "Test Burger", [("Burger Patty", 1, "pieces"), ("Lettuce", 2, "leaves")])
    service = InventoryService(db)

    first = await service.check_inventory_availability([line(burger, 2)])
    second = await service.check_inventory_availability([line(burger, 2)])

    assert first == second
    assert first.success is True
    assert first.all_available is False
    patty_entry, lettuce_entry = first.availability
    assert (patty_entry.required, patty_entry.available, patty_entry.is_available) == (2, 50, True)
    assert patty_entry.stock_status == "good"
    assert (lettuce_entry.required, lettuce_entry.available, lettuce_entry.is_available) == (4, 3, False)
    assert lettuce_entry.stock_status == "critical"
    assert first.warnings[0].warning == "Insufficient stock. Available: 3, Required: 4"
    assert await stock_of(db, patty) == 50
    assert await stock_of(db, lettuce) == 3


async def test_availability_check_all_available(db):
    await make_inventory_item(db, "Burger Patty", current_stock=50)
    burger = await make_menu_item(db, "Test Burger", [("Burger Patty", 1, "pieces")])

    result = await InventoryService(db).check_inventory_availability([line(burger, 1)])

    assert result.all_available is True
    assert result.warnings == []


async def test_availability_check_failure_is_reported(db, monkeypatch):
    burger = await make_menu_item(db, "Test Burger", [("Burger Patty", 1, "pieces")])

    async def broken(*args, **kwargs):
        raise RuntimeError("timeout")

    monkeypatch.setattr(inventory_service, "find_inventory_item", broken)

    result = await InventoryService(db).check_inventory_availability([line(burger, 1)])

    assert result.success is False
    assert result.all_available is False
    assert result.availability == []
    assert result.warnings[0].warning == "Failed to check inventory availability: timeout"


async def test_low_stock_alerts_only_list_items_at_or_below_minimum(db):
    await make_inventory_item(db, "A", current_stock=2, min_stock=10)
    await make_inventory_item(db, "B", current_stock=20, min_stock=10)

    alerts = await InventoryService(db).get_low_stock_alerts()

    assert alerts.success is True
    assert [i.name for i in alerts.low_stock_items] == ["A"]
    assert alerts.low_stock_items[0].stock_status == "critical"


async def test_low_stock_alerts_sorted_most_depleted_first(db):
    await make_inventory_item(db, "Milk", current_stock=8, min_stock=10)
    await make_inventory_item(db, "Eggs", current_stock=10, min_stock=10)
    await make_inventory_item(db, "Flour", current_stock=1, min_stock=10)
    await make_inventory_item(db, "Saffron", current_stock=0, min_stock=5, is_active=False)

    alerts = await InventoryService(db).get_low_stock_alerts()

    assert [i.name for i in alerts.low_stock_items] == ["Flour", "Milk", "Eggs"]
    assert [i.stock_status for i in alerts.low_stock_items] == ["critical", "low", "low"]


async def drop_table(engine, name):
    async with engine.begin() as conn:
        await conn.execute(text(f"DROP TABLE {name}"))


async def test_failed_recipe_query_leaves_session_usable(db, engine):
    await make_inventory_item(db, "Burger Patty", current_stock=50)
    burger = await make_menu_item(db, "Test Burger", [("Burger Patty", 1, "pieces")])
    await drop_table(engine, "menu_item_ingredients")

    result = await InventoryService(db).deduct_main_ingredients([line(burger, 1)])

    assert result.success is False
    assert result.errors[0].error.startswith("Failed to process inventory deductions:")
    assert not db.in_transaction()
    assert (await db.execute(select(InventoryItem.current_stock))).scalar_one() == 50


async def test_failed_availability_query_leaves_session_usable(db, engine):
    burger = await make_menu_item(db, "Test Burger", [("Burger Patty", 1, "pieces")])
    await drop_table(engine, "inventory_items")

    result = await InventoryService(db).check_inventory_availability([line(burger, 1)])

    assert result.success is False
    assert result.warnings[0].warning.startswith("Failed to check inventory availability:")
    assert not db.in_transaction()
    assert (await db.execute(select(MenuItem.name))).scalar_one() == "Test Burger"


async def test_failed_low_stock_query_leaves_session_usable(db, engine):
    await make_menu_item(db, "Test Burger")
    await drop_table(engine, "inventory_items")

    alerts = await InventoryService(db).get_low_stock_alerts()

    assert alerts.success is False
    assert alerts.error
    assert not db.in_transaction()
    assert (await db.execute(select(MenuItem.name))).scalar_one() == "Test Burger"


async def test_fractional_deduction_reports_exact_stock_levels(db):
    syrup = await make_inventory_item(db, "Vanilla Syrup", current_stock=1.1, unit="liters")
    latte = await make_menu_item(db, "Vanilla Latte", [("Vanilla Syrup", 0.7, "liters")])

    result = await InventoryService(db).deduct_main_ingredients([line(latte, 1)])

    entry = result.deductions[0]
    assert (entry.previous_stock, entry.new_stock, entry.quantity_deducted) == (1.1, 0.4, 0.7)
    movement = (await db.execute(select(InventoryMovement))).scalar_one()
    assert (movement.previous_stock, movement.new_stock, movement.change) == (1.1, 0.4, -0.7)
    assert await stock_of(db, syrup) == pytest.approx(0.4)


async def test_exact_fractional_remainder_can_be_used_up(db):
    cream = await make_inventory_item(db, "Whipped Cream", current_stock=0.3, unit="liters")
    sundae = await make_menu_item(db, "Sundae", [("Whipped Cream", 0.1, "liters")])
    service = InventoryService(db)

    check = await service.check_inventory_availability([line(sundae, 3)])
    result = await service.deduct_main_ingredients([line(sundae, 3)])

    assert check.all_available is True
    assert result.success is True
    assert result.deductions[0].new_stock == 0
    assert await stock_of(db, cream) == 0
