import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import ADMIN, DELIVERY, require_delivery, require_employee
from db.database import get_async_session
from db.menu_item import MenuItem as MenuItemModel
from db.order import DELIVERED, Order as OrderModel, OrderItem as OrderItemModel
from db.users import User
from schemas.inventory import AvailabilityResult, DeductionResult, LowStockAlerts
from schemas.orders import (
    AssignDeliveryRequest,
    DeliverRequest,
    InventoryCheckRequest,
    OrderCreate,
    OrderCreateResponse,
    OrderItemRead,
    OrderListResponse,
    OrderRead,
    OrderStatus,
    OrderStatusResponse,
    OrderStatusUpdate,
    OrderType,
)
from services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter()

WALK_IN_PREP_MINUTES = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_order_number() -> str:
    return f"ORD-{_utcnow():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def _serialize_order(o: OrderModel) -> OrderRead:
    return OrderRead(
        id=o.id,
        order_number=o.order_number,
        status=o.status,
        order_type=o.order_type,
        table_number=o.table_number,
        delivery_address=o.delivery_address,
        payment_method=o.payment_method,
        customer_id=o.customer_id,
        customer_name=o.customer_name,
        customer_phone=o.customer_phone,
        customer_email=o.customer_email,
        assigned_to_id=o.assigned_to_id,
        notes=o.notes,
        special_instructions=o.special_instructions,
        estimated_delivery_time=o.estimated_delivery_time,
        actual_delivery_time=o.actual_delivery_time,
        items=[
            OrderItemRead(
                id=it.id,
                menu_item_id=it.menu_item_id,
                menu_item_name=it.menu_item.name if it.menu_item else None,
                quantity=int(it.quantity),
                price=float(it.price),
                special_instructions=it.special_instructions,
            )
            for it in (o.items or [])
        ],
    )


async def _load_order(db: AsyncSession, order_id: UUID) -> Optional[OrderModel]:
    res = await db.execute(
        select(OrderModel)
        .options(selectinload(OrderModel.items).selectinload(OrderItemModel.menu_item))
        .where(OrderModel.id == order_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def _get_order_or_404(db: AsyncSession, order_id: UUID) -> OrderModel:
    order = await _load_order(db, order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


async def _deduct_for_order(db: AsyncSession, order: OrderModel, user_id: UUID) -> Optional[DeductionResult]:
    """Run the ingredient deduction for a delivered order; never fails the caller."""
    order_id = order.id
    order_number = order.order_number
    try:
        result = await InventoryService(db).deduct_main_ingredients(
            list(order.items), order_id=order_id, user_id=user_id
        )
    except Exception:
        logger.exception("Failed to deduct inventory for order %s", order_number)
        await db.rollback()
        return None

    logger.info(
        "Inventory deduction for order %s: success=%s deductions=%d errors=%d",
        order_number,
        result.success,
        len(result.deductions),
        len(result.errors),
    )
    if result.errors:
        logger.warning("Inventory deduction warnings for order %s: %s", order_number, [e.model_dump() for e in result.errors])
    return result


async def _apply_status_change(
    db: AsyncSession,
    order: OrderModel,
    new_status: str,
    notes: Optional[str],
    user: User,
) -> OrderStatusResponse:
    """
    Persist the status change first, then deduct inventory if the order just became delivered.

    Deduction runs once per order: re-sending 'delivered' does not deduct again.
    """
    order_id = order.id
    user_id = user.id
    just_delivered = new_status == DELIVERED and order.status != DELIVERED

    order.status = new_status
    if notes:
        order.notes = notes
    if just_delivered:
        order.actual_delivery_time = _utcnow()
    await db.commit()

    inventory_deduction = None
    if just_delivered:
        logger.info("Order %s marked as delivered. Starting inventory deduction...", order.order_number)
        inventory_deduction = await _deduct_for_order(db, order, user_id)

    order = await _load_order(db, order_id)
    return OrderStatusResponse(
        message="Order status updated successfully",
        order=_serialize_order(order),
        inventory_deduction=inventory_deduction,
    )


@router.post("/", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Place a walk-in order on behalf of a customer.

    - All menu items must exist and be available.
    - The ingredient availability check is attached as `inventory_check`; it warns but never blocks.
    """
    menu_ids = {it.menu_item_id for it in payload.items}
    res = await db.execute(
        select(MenuItemModel).where(MenuItemModel.id.in_(menu_ids), MenuItemModel.is_available.is_(True))
    )
    # Snapshot before the inventory check, which may roll the session back
    price_by_id = {m.id: float(m.price) for m in res.scalars().all()}
    user_id = user.id
    if len(price_by_id) != len(menu_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Some menu items are not available")

    inventory_check = await InventoryService(db).check_inventory_availability(payload.items)
    if not inventory_check.all_available:
        logger.warning("Placing order with inventory warnings: %s", [w.model_dump() for w in inventory_check.warnings])

    order = OrderModel(
        order_number=_new_order_number(),
        customer_name=payload.customer_info.name,
        customer_phone=payload.customer_info.phone,
        customer_email=payload.customer_info.email,
        status="order placed",
        order_type=payload.order_type,
        table_number=payload.table_number if payload.order_type == "dine in" else None,
        delivery_address=payload.delivery_address if payload.order_type == "delivery" else None,
        payment_method=payload.payment_method,
        special_instructions=payload.special_instructions,
        created_by_id=user_id,
        estimated_delivery_time=_utcnow() + timedelta(minutes=WALK_IN_PREP_MINUTES),
        items=[
            OrderItemModel(
                menu_item_id=it.menu_item_id,
                quantity=it.quantity,
                price=price_by_id[it.menu_item_id],
                special_instructions=it.special_instructions,
            )
            for it in payload.items
        ],
    )
    db.add(order)
    try:
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception("Order creation failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to create order: {e}")

    order = await _load_order(db, order.id)
    return OrderCreateResponse(
        message="Order created successfully",
        order=_serialize_order(order),
        inventory_check=inventory_check,
    )


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    order_type: Optional[OrderType] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session),
):
    filters = []
    if status_filter:
        filters.append(OrderModel.status == status_filter)
    if order_type:
        filters.append(OrderModel.order_type == order_type)

    total = (await db.execute(select(func.count()).select_from(OrderModel).where(*filters))).scalar_one()
    res = await db.execute(
        select(OrderModel)
        .options(selectinload(OrderModel.items).selectinload(OrderItemModel.menu_item))
        .where(*filters)
        .order_by(OrderModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "orders": [_serialize_order(o) for o in res.scalars().all()],
        "page": page,
        "limit": limit,
        "total": int(total),
        "pages": math.ceil(total / limit) if total else 0,
    }


@router.post("/check-inventory", response_model=AvailabilityResult)
async def check_inventory(
    payload: InventoryCheckRequest,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session),
):
    """Dry-run the ingredient deduction for a prospective order"""
    return await InventoryService(db).check_inventory_availability(payload.items)


@router.get("/inventory/low-stock", response_model=LowStockAlerts)
async def low_stock_alerts(
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session),
):
    return await InventoryService(db).get_low_stock_alerts()


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: UUID,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session),
):
    order = await _get_order_or_404(db, order_id)
    return _serialize_order(order)


@router.patch("/{order_id}/status", response_model=OrderStatusResponse)
async def update_order_status(
    order_id: UUID,
    payload: OrderStatusUpdate,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Change an order's status.

    Moving to 'delivered' deducts the main ingredients from inventory. The
    status change is saved even if the deduction partly or wholly fails; the
    outcome is returned in `inventory_deduction`.
    """
    order = await _get_order_or_404(db, order_id)
    return await _apply_status_change(db, order, payload.status, payload.notes, user)


@router.patch("/{order_id}/assign", response_model=OrderRead)
async def assign_delivery_person(
    order_id: UUID,
    payload: AssignDeliveryRequest,
    user: User = Depends(require_employee),
    db: AsyncSession = Depends(get_async_session),
):
    order = await _get_order_or_404(db, order_id)
    res = await db.execute(select(User).where(User.id == payload.delivery_person_id))
    person = res.scalar_one_or_none()
    if not person or person.role != DELIVERY or not person.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid delivery person")

    order.assigned_to_id = person.id
    await db.commit()
    order = await _load_order(db, order_id)
    return _serialize_order(order)


@router.patch("/{order_id}/deliver", response_model=OrderStatusResponse)
async def mark_delivered(
    order_id: UUID,
    payload: DeliverRequest,
    user: User = Depends(require_delivery),
    db: AsyncSession = Depends(get_async_session),
):
    """Delivery person confirms hand-over; same inventory deduction as a status update"""
    order = await _get_order_or_404(db, order_id)
    if order.assigned_to_id != user.id and not (user.is_superuser or user.role == ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Order is not assigned to you")
    if order.status == "cancelled":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cancelled orders cannot be delivered")

    return await _apply_status_change(db, order, DELIVERED, payload.notes, user)
