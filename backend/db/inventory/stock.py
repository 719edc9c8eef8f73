from typing import Optional
from uuid import UUID

from sqlalchemy import case, update
from sqlalchemy.ext.asyncio import AsyncSession

from .item import InventoryItem
from .movement import InventoryMovement


CRITICAL_RATIO = 0.5
LOW_RATIO = 1.0

# Stock is stored as Float. Quantities are reported at STOCK_DECIMALS and
# compared with STOCK_TOLERANCE so that e.g. 0.3 covers 3 x 0.1.
STOCK_DECIMALS = 6
STOCK_TOLERANCE = 1e-9


def round_stock(value: float) -> float:
    return round(float(value), STOCK_DECIMALS)


def has_enough(available: float, required: float) -> bool:
    return float(available) + STOCK_TOLERANCE >= float(required)


def stock_status(current_stock: float, min_stock: float) -> str:
    """
    Tier an item by current/min stock ratio.

    - <= 0.5 -> 'critical'
    - <= 1.0 -> 'low'
    - otherwise (or when min_stock is 0) -> 'good'
    """
    current = float(current_stock or 0)
    minimum = float(min_stock or 0)
    if minimum <= 0:
        return "good"
    ratio = current / minimum
    if ratio <= CRITICAL_RATIO:
        return "critical"
    if ratio <= LOW_RATIO:
        return "low"
    return "good"


async def decrement_if_sufficient(
    db: AsyncSession,
    inventory_item_id: UUID,
    quantity: float,
) -> Optional[float]:
    """
    Atomically subtract `quantity` from an active item's current_stock.

    The predicate `current_stock >= quantity` (within STOCK_TOLERANCE) is evaluated
    by the database in the same statement as the write, so two concurrent deliveries
    cannot both take the last units. A remainder inside the tolerance is stored as 0.
    Returns the new stock rounded to STOCK_DECIMALS, or None when the row did not
    qualify (insufficient stock, deactivated, or deleted in the meantime).
    """
    remaining = InventoryItem.current_stock - quantity
    stmt = (
        update(InventoryItem)
        .where(
            InventoryItem.id == inventory_item_id,
            InventoryItem.is_active.is_(True),
            InventoryItem.current_stock >= quantity - STOCK_TOLERANCE,
        )
        .values(current_stock=case((remaining < 0, 0.0), else_=remaining))
        .returning(InventoryItem.current_stock)
        .execution_options(synchronize_session=False)
    )
    row = (await db.execute(stmt)).first()
    if row is None:
        return None
    return round_stock(row.current_stock)


def add_movement(
    db: AsyncSession,
    *,
    inventory_item_id: UUID,
    previous_stock: float,
    new_stock: float,
    reason: Optional[str],
    source_type: Optional[str],
    source_id: Optional[UUID] = None,
    created_by_user_id: Optional[UUID] = None,
) -> InventoryMovement:
    movement = InventoryMovement(
        inventory_item_id=inventory_item_id,
        change=round_stock(float(new_stock) - float(previous_stock)),
        previous_stock=float(previous_stock),
        new_stock=float(new_stock),
        reason=reason,
        source_type=source_type,
        source_id=source_id,
        created_by_user_id=created_by_user_id,
    )
    db.add(movement)
    return movement
