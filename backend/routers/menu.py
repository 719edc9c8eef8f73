import logging
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import require_employee
from db.database import get_async_session
from db.menu_item import MenuItem as MenuItemModel, MenuItemIngredient as MenuItemIngredientModel
from db.users import User
from schemas.menu import AvailabilityUpdate, MenuCategory, MenuItemCreate, MenuItemUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_menu_item(db: AsyncSession, menu_item_id: UUID) -> Optional[MenuItemModel]:
    result = await db.execute(
        select(MenuItemModel)
        .options(selectinload(MenuItemModel.main_ingredients))
        .where(MenuItemModel.id == menu_item_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_menu_item_or_404(db: AsyncSession, menu_item_id: UUID) -> MenuItemModel:
    menu_item = await _load_menu_item(db, menu_item_id)
    if not menu_item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Menu item with id {menu_item_id} not found"
        )
    return menu_item


def _recipe_rows(payload: MenuItemCreate) -> List[MenuItemIngredientModel]:
    # Keep the submitted order; duplicates are kept as separate lines
    return [
        MenuItemIngredientModel(position=i, name=mi.name, quantity=mi.quantity, unit=mi.unit)
        for i, mi in enumerate(payload.main_ingredients)
    ]


@router.get("/", response_model=List[Dict])
async def get_menu_items(
    category: Optional[MenuCategory] = None,
    available: Optional[bool] = None,
    vegetarian: Optional[bool] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """Browse the menu (public)"""
    stmt = select(MenuItemModel).options(selectinload(MenuItemModel.main_ingredients))
    if category:
        stmt = stmt.where(MenuItemModel.category == category)
    if available is not None:
        stmt = stmt.where(MenuItemModel.is_available.is_(available))
    if vegetarian is not None:
        stmt = stmt.where(MenuItemModel.is_vegetarian.is_(vegetarian))
    if search:
        stmt = stmt.where(func.lower(MenuItemModel.name).like(f"%{search.strip().lower()}%"))

    result = await db.execute(stmt.order_by(MenuItemModel.category, func.lower(MenuItemModel.name)))
    return [item.to_schema for item in result.scalars().all()]


@router.get("/categories", response_model=List[str])
async def get_menu_categories(db: AsyncSession = Depends(get_async_session)):
    """Categories that currently have at least one available item"""
    result = await db.execute(
        select(MenuItemModel.category)
        .where(MenuItemModel.is_available.is_(True))
        .distinct()
        .order_by(MenuItemModel.category)
    )
    return list(result.scalars().all())


@router.get("/{menu_item_id}", response_model=Dict)
async def get_menu_item(menu_item_id: UUID, db: AsyncSession = Depends(get_async_session)):
    """Get a single menu item by ID"""
    menu_item = await _get_menu_item_or_404(db, menu_item_id)
    return menu_item.to_schema


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    payload: MenuItemCreate,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session)
):
    """Create a new menu item with its main-ingredient recipe"""
    try:
        data = payload.model_dump(exclude={"main_ingredients"})
        menu_item = MenuItemModel(**data)
        menu_item.main_ingredients = _recipe_rows(payload)
        db.add(menu_item)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception("Error creating menu item")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating menu item: {str(e)}"
        )

    menu_item = await _load_menu_item(db, menu_item.id)
    return menu_item.to_schema


@router.put("/{menu_item_id}", response_model=Dict)
async def update_menu_item(
    menu_item_id: UUID,
    payload: MenuItemUpdate,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session)
):
    """Update a menu item; the main-ingredient recipe is replaced as a whole"""
    menu_item = await _get_menu_item_or_404(db, menu_item_id)

    try:
        for field, value in payload.model_dump(exclude={"main_ingredients"}).items():
            setattr(menu_item, field, value)

        # delete-orphan cascade removes the old recipe lines
        menu_item.main_ingredients.clear()
        await db.flush()
        menu_item.main_ingredients.extend(_recipe_rows(payload))

        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception("Error updating menu item %s", menu_item_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating menu item: {str(e)}"
        )

    menu_item = await _load_menu_item(db, menu_item_id)
    return menu_item.to_schema


@router.patch("/{menu_item_id}/availability", response_model=Dict)
async def set_menu_item_availability(
    menu_item_id: UUID,
    payload: AvailabilityUpdate,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session)
):
    menu_item = await _get_menu_item_or_404(db, menu_item_id)
    menu_item.is_available = payload.is_available
    await db.commit()

    menu_item = await _load_menu_item(db, menu_item_id)
    return menu_item.to_schema


@router.delete("/{menu_item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_menu_item(
    menu_item_id: UUID,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session)
):
    """Delete a menu item; items referenced by existing orders cannot be deleted"""
    menu_item = await _get_menu_item_or_404(db, menu_item_id)

    try:
        await db.delete(menu_item)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Menu item is referenced by existing orders; mark it unavailable instead"
        )
