import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.movement import InventoryMovement as InventoryMovementModel
from db.inventory.stock import CRITICAL_RATIO, LOW_RATIO, add_movement
from db.users import User
from schemas.inventory import (
    InventoryCategory,
    InventoryItemCreate,
    InventoryItemListResponse,
    InventoryItemUpdate,
    LowStockAlerts,
    StockStatus,
)
from services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _stock_status_clause(stock_status: str):
    # SQL mirror of db.inventory.stock.stock_status
    cur = InventoryItemModel.current_stock
    mn = InventoryItemModel.min_stock
    if stock_status == "critical":
        return and_(mn > 0, cur <= mn * CRITICAL_RATIO)
    if stock_status == "low":
        return and_(mn > 0, cur > mn * CRITICAL_RATIO, cur <= mn * LOW_RATIO)
    return or_(mn <= 0, cur > mn * LOW_RATIO)


async def _get_item_or_404(db: AsyncSession, item_id: UUID) -> InventoryItemModel:
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
    return model


@router.get("/items", response_model=InventoryItemListResponse)
async def list_inventory_items(
    category: Optional[InventoryCategory] = None,
    stock_status: Optional[StockStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    """
    List active inventory items sorted by name.

    - category filters on the item category.
    - stock_status filters on the derived critical/low/good tier (applied before pagination).
    """
    filters = [InventoryItemModel.is_active.is_(True)]
    if category:
        filters.append(InventoryItemModel.category == category)
    if stock_status:
        filters.append(_stock_status_clause(stock_status))

    total = (await db.execute(select(func.count()).select_from(InventoryItemModel).where(*filters))).scalar_one()

    res = await db.execute(
        select(InventoryItemModel)
        .where(*filters)
        .order_by(func.lower(InventoryItemModel.name).asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "items": [it.to_schema for it in res.scalars().all()],
        "page": page,
        "limit": limit,
        "total": int(total),
        "pages": math.ceil(total / limit) if total else 0,
    }


@router.get("/items/{item_id}", response_model=Dict)
async def get_inventory_item(
    item_id: UUID,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    model = await _get_item_or_404(db, item_id)
    return model.to_schema


@router.post("/items", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    model = InventoryItemModel(**payload.model_dump(), is_active=True)
    db.add(model)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An active inventory item named '{payload.name}' already exists",
        )
    await db.refresh(model)
    logger.info("Inventory item %s (%s) created by %s", model.id, model.name, user.id)
    return model.to_schema


@router.put("/items/{item_id}", response_model=Dict)
async def update_inventory_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Update the provided fields of an inventory item.

    - max_stock must stay >= min_stock after the update.
    - Setting current_stock records an adjustment movement; a positive value also stamps last_restocked.
    """
    model = await _get_item_or_404(db, item_id)
    data = payload.model_dump(exclude_unset=True)

    final_min = data.get("min_stock", model.min_stock)
    final_max = data.get("max_stock", model.max_stock)
    if final_max is not None and final_min is not None and final_max < final_min:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Maximum stock must be greater than or equal to minimum stock",
        )

    previous_stock = float(model.current_stock)
    for field, value in data.items():
        setattr(model, field, value)

    new_stock = data.get("current_stock")
    if new_stock is not None:
        if new_stock > 0:
            model.last_restocked = _utcnow()
        if float(new_stock) != previous_stock:
            add_movement(
                db,
                inventory_item_id=model.id,
                previous_stock=previous_stock,
                new_stock=float(new_stock),
                reason="Manual stock adjustment",
                source_type="adjustment",
                created_by_user_id=user.id,
            )

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An active inventory item with this name already exists",
        )
    await db.refresh(model)
    return model.to_schema


@router.delete("/items/{item_id}", response_model=Dict)
async def soft_delete_inventory_item(
    item_id: UUID,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    model = await _get_item_or_404(db, item_id)
    model.is_active = False
    await db.commit()
    logger.info("Inventory item %s deactivated by %s", item_id, user.id)
    return {"message": "Inventory item deleted successfully"}


@router.get("/low-stock", response_model=LowStockAlerts)
async def low_stock_alerts(
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    return await InventoryService(db).get_low_stock_alerts()


@router.get("/movements", response_model=List[Dict])
async def list_movements(
    inventory_item_id: Optional[UUID] = None,
    source_type: Optional[str] = None,
    source_id: Optional[UUID] = None,
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    """Most recent stock movements first."""
    stmt = select(InventoryMovementModel)
    if inventory_item_id:
        stmt = stmt.where(InventoryMovementModel.inventory_item_id == inventory_item_id)
    if source_type:
        stmt = stmt.where(InventoryMovementModel.source_type == source_type)
    if source_id:
        stmt = stmt.where(InventoryMovementModel.source_id == source_id)

    res = await db.execute(stmt.order_by(InventoryMovementModel.created_at.desc()).limit(limit))
    return [m.to_schema for m in res.scalars().all()]
