import asyncio
import os
import sys
from pathlib import Path

"""
Seed demo data (staff users, inventory, menu with main-ingredient recipes).

Safe to re-run: rows are matched by email / name and updated in place.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from db.database import async_session_maker, create_db_and_tables
from db.inventory.item import InventoryItem
from db.menu_item import MenuItem, MenuItemIngredient
from db.users import User

from fastapi_users.password import PasswordHelper


password_helper = PasswordHelper()

DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "changeme123")

STAFF = [
    ("Admin User", "admin@cafe.local", "admin"),
    ("John Employee", "employee@cafe.local", "employee"),
    ("Mike Delivery", "delivery@cafe.local", "delivery"),
]

# name, category, current, min, max, unit, cost per unit
INVENTORY = [
    ("Burger Patty", "meat", 50, 10, 100, "pieces", 1.80),
    ("Burger Bun", "grains", 30, 10, 80, "pieces", 0.40),
    ("Lettuce", "produce", 40, 15, 100, "leaves", 0.05),
    ("Pizza Dough", "grains", 20, 5, 40, "pieces", 0.90),
    ("Mozzarella", "dairy", 5, 2, 10, "kg", 9.50),
    ("Romaine Lettuce", "produce", 12, 4, 30, "heads", 1.10),
    ("Chicken Wings", "meat", 8, 3, 20, "kg", 6.20),
    ("Oranges", "produce", 60, 20, 150, "pieces", 0.35),
    ("Cold Brew Coffee", "beverages", 10, 4, 25, "liters", 4.00),
    ("Milk", "dairy", 12, 6, 30, "liters", 1.20),
]

# name, category, price, prep minutes, vegetarian, vegan, spice, [(ingredient, qty, unit)]
MENU = [
    ("Classic Burger", "main-course", 12.99, 15, False, False, "mild",
     [("Burger Patty", 1, "pieces"), ("Burger Bun", 1, "pieces"), ("Lettuce", 2, "leaves")]),
    ("Veggie Delight Pizza", "main-course", 14.99, 20, True, False, "mild",
     [("Pizza Dough", 1, "pieces"), ("Mozzarella", 0.15, "kg")]),
    ("Caesar Salad", "appetizer", 9.99, 8, True, False, "mild",
     [("Romaine Lettuce", 1, "heads")]),
    ("Spicy Chicken Wings", "appetizer", 11.99, 18, False, False, "hot",
     [("Chicken Wings", 0.4, "kg")]),
    ("Fresh Orange Juice", "beverage", 4.99, 3, True, True, "mild",
     [("Oranges", 3, "pieces")]),
    ("Iced Coffee", "beverage", 3.99, 2, True, False, "mild",
     [("Cold Brew Coffee", 0.25, "liters"), ("Milk", 0.1, "liters")]),
]


async def get_or_create_user(session, name: str, email: str, role: str) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        user.role = role
        return user

    user = User(
        email=email,
        hashed_password=password_helper.hash(DEMO_PASSWORD),
        is_active=True,
        is_superuser=False,
        is_verified=True,
        name=name,
        role=role,
    )
    session.add(user)
    await session.flush()
    return user


async def upsert_inventory_item(session, name, category, current, minimum, maximum, unit, cost) -> InventoryItem:
    result = await session.execute(
        select(InventoryItem).where(
            func.lower(InventoryItem.name) == name.lower(),
            InventoryItem.is_active.is_(True),
        )
    )
    item = result.scalars().first()
    if not item:
        item = InventoryItem(name=name, is_active=True)
        session.add(item)

    item.category = category
    item.current_stock = current
    item.min_stock = minimum
    item.max_stock = maximum
    item.unit = unit
    item.cost_per_unit = cost
    item.supplier = "Demo Supplier"
    await session.flush()
    return item


async def upsert_menu_item(session, name, category, price, prep, vegetarian, vegan, spice, recipe) -> MenuItem:
    result = await session.execute(
        select(MenuItem)
        .options(selectinload(MenuItem.main_ingredients))
        .where(func.lower(MenuItem.name) == name.lower())
    )
    menu_item = result.scalars().first()
    if not menu_item:
        menu_item = MenuItem(name=name, main_ingredients=[])
        session.add(menu_item)

    menu_item.description = f"{name} from the demo menu"
    menu_item.category = category
    menu_item.price = price
    menu_item.preparation_time = prep
    menu_item.is_vegetarian = vegetarian
    menu_item.is_vegan = vegan
    menu_item.spice_level = spice
    menu_item.is_available = True
    menu_item.ingredients = [ingredient.lower() for ingredient, _, _ in recipe]
    menu_item.allergens = []

    # Replace the recipe
    menu_item.main_ingredients.clear()
    await session.flush()
    menu_item.main_ingredients.extend(
        MenuItemIngredient(position=i, name=ingredient, quantity=qty, unit=unit)
        for i, (ingredient, qty, unit) in enumerate(recipe)
    )
    await session.flush()
    return menu_item


async def seed_session(session) -> dict:
    """Seed everything inside the caller's transaction; returns row counts."""
    for name, email, role in STAFF:
        await get_or_create_user(session, name, email, role)
    for row in INVENTORY:
        await upsert_inventory_item(session, *row)
    for row in MENU:
        await upsert_menu_item(session, *row)
    return {"users": len(STAFF), "inventory_items": len(INVENTORY), "menu_items": len(MENU)}


async def seed():
    await create_db_and_tables()
    async with async_session_maker() as session:
        async with session.begin():
            counts = await seed_session(session)
    print(f"Seeded {counts['users']} users, {counts['inventory_items']} inventory items, "
          f"{counts['menu_items']} menu items (password: {DEMO_PASSWORD})")


if __name__ == "__main__":
    asyncio.run(seed())
