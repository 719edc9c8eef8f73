"""
Resolve menu-item recipes to inventory records.

Recipes reference inventory by free-text name rather than by id, so staff can
edit menus and stock independently. Matching is exact and case-insensitive,
restricted to active inventory items. Results are returned as plain tuples so
callers can keep using them after a session rollback expires ORM state.
"""
from typing import List, NamedTuple, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db.inventory.item import InventoryItem
from db.menu_item import MenuItem


class MainIngredient(NamedTuple):
    name: str
    quantity: float
    unit: str


class Recipe(NamedTuple):
    menu_item_id: UUID
    menu_item_name: str
    main_ingredients: List[MainIngredient]


async def get_main_ingredients(db: AsyncSession, menu_item_id: UUID) -> Optional[Recipe]:
    """Load a menu item's main ingredients in recipe order; None if the menu item does not exist."""
    result = await db.execute(
        select(MenuItem)
        .options(selectinload(MenuItem.main_ingredients))
        .where(MenuItem.id == menu_item_id)
        .execution_options(populate_existing=True)
    )
    menu_item = result.scalar_one_or_none()
    if menu_item is None:
        return None

    return Recipe(
        menu_item_id=menu_item.id,
        menu_item_name=menu_item.name,
        main_ingredients=[
            MainIngredient(name=mi.name, quantity=float(mi.quantity), unit=mi.unit)
            for mi in menu_item.main_ingredients
        ],
    )


async def find_inventory_item(db: AsyncSession, name: str) -> Optional[InventoryItem]:
    """
    Find the active inventory item whose name equals `name`, ignoring case.

    No trimming, partial or fuzzy matching. Always re-reads the row so
    current_stock reflects the database rather than the session's identity map.
    """
    result = await db.execute(
        select(InventoryItem)
        .where(
            func.lower(InventoryItem.name) == name.lower(),
            InventoryItem.is_active.is_(True),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()
