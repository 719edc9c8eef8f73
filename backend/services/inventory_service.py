import logging
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.inventory.item import InventoryItem
from db.inventory.stock import add_movement, decrement_if_sufficient, has_enough, round_stock, stock_status
from schemas.inventory import (
    AvailabilityEntry,
    AvailabilityResult,
    AvailabilityWarning,
    DeductionEntry,
    DeductionError,
    DeductionResult,
    LowStockAlerts,
    LowStockItem,
)
from services.recipe_resolver import MainIngredient, find_inventory_item, get_main_ingredients

logger = logging.getLogger(__name__)

NOT_FOUND = "Inventory item not found"


def _fmt(x: float) -> str:
    return f"{float(x):g}"


def _snapshot_lines(order_items: Iterable) -> List[Tuple[UUID, int]]:
    # Copy ids/quantities up front; a rollback later would expire ORM rows.
    return [(item.menu_item_id, int(item.quantity)) for item in order_items]


class InventoryService:
    """
    Inventory deduction and availability engine.

    Order items are any objects exposing `menu_item_id` and `quantity`.
    None of the public methods raise: every failure mode is reported in the
    returned result object.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _rollback(self) -> None:
        """Leave the caller's session usable after a failed statement."""
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after inventory failure failed")

    async def deduct_main_ingredients(
        self,
        order_items: Iterable,
        order_id: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
    ) -> DeductionResult:
        """
        Subtract each recipe ingredient's `quantity * order quantity` from stock.

        All-or-nothing per ingredient, not per order: a missing or short
        ingredient is recorded in `errors` and the rest are still deducted.
        Every successful deduction is committed on its own and is never rolled
        back by a later failure.
        """
        deductions: List[DeductionEntry] = []
        errors: List[DeductionError] = []

        try:
            lines = _snapshot_lines(order_items)
            logger.info("Deducting main ingredients for order %s (%d line(s))", order_id, len(lines))

            for menu_item_id, order_quantity in lines:
                recipe = await get_main_ingredients(self.db, menu_item_id)
                if recipe is None:
                    logger.warning("Menu item %s not found; skipping deduction", menu_item_id)
                    continue
                if not recipe.main_ingredients:
                    continue

                for ingredient in recipe.main_ingredients:
                    required = round_stock(ingredient.quantity * order_quantity)
                    try:
                        entry, error = await self._deduct_ingredient(
                            recipe.menu_item_name,
                            ingredient,
                            required,
                            order_quantity,
                            order_id=order_id,
                            user_id=user_id,
                        )
                    except SQLAlchemyError as e:
                        await self.db.rollback()
                        logger.exception(
                            "Deduction of %s for %s failed", ingredient.name, recipe.menu_item_name
                        )
                        errors.append(
                            DeductionError(menu_item=recipe.menu_item_name, ingredient=ingredient.name, error=str(e))
                        )
                        continue

                    if error is not None:
                        errors.append(error)
                    else:
                        deductions.append(entry)

            logger.info(
                "Inventory deduction for order %s: %d deducted, %d error(s)",
                order_id,
                len(deductions),
                len(errors),
            )
            return DeductionResult(success=not errors, deductions=deductions, errors=errors)

        except Exception as e:
            logger.exception("Error in deduct_main_ingredients for order %s", order_id)
            await self._rollback()
            return DeductionResult(
                success=False,
                deductions=[],
                errors=[DeductionError(error=f"Failed to process inventory deductions: {e}")],
            )

    async def _deduct_ingredient(
        self,
        menu_item_name: str,
        ingredient: MainIngredient,
        required: float,
        order_quantity: int,
        *,
        order_id: Optional[UUID],
        user_id: Optional[UUID],
    ) -> Tuple[Optional[DeductionEntry], Optional[DeductionError]]:
        inventory_item = await find_inventory_item(self.db, ingredient.name)
        if inventory_item is None:
            logger.warning("No active inventory item named %r (menu item %s)", ingredient.name, menu_item_name)
            return None, DeductionError(menu_item=menu_item_name, ingredient=ingredient.name, error=NOT_FOUND)

        inventory_item_id = inventory_item.id
        available = round_stock(inventory_item.current_stock)
        inventory_unit = inventory_item.unit

        new_stock = await decrement_if_sufficient(self.db, inventory_item_id, required)
        if new_stock is None:
            logger.warning(
                "Insufficient stock for %s: available %s, required %s", ingredient.name, _fmt(available), _fmt(required)
            )
            return None, DeductionError(
                menu_item=menu_item_name,
                ingredient=ingredient.name,
                error=(
                    f"Insufficient stock. Available: {_fmt(available)} {inventory_unit}, "
                    f"Required: {_fmt(required)} {ingredient.unit}"
                ),
            )

        previous_stock = round_stock(new_stock + required)
        add_movement(
            self.db,
            inventory_item_id=inventory_item_id,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reason=f"Delivered order: {menu_item_name} x{order_quantity}",
            source_type="order",
            source_id=order_id,
            created_by_user_id=user_id,
        )
        await self.db.commit()

        return (
            DeductionEntry(
                menu_item=menu_item_name,
                ingredient=ingredient.name,
                quantity_deducted=required,
                unit=ingredient.unit,
                previous_stock=previous_stock,
                new_stock=new_stock,
                order_quantity=order_quantity,
            ),
            None,
        )

    async def check_inventory_availability(self, order_items: Iterable) -> AvailabilityResult:
        """
        Dry run of the deduction: report per-ingredient sufficiency without writing.

        `warnings` collects both missing and insufficient ingredients;
        `all_available` is true only when there are none.
        """
        availability: List[AvailabilityEntry] = []
        warnings: List[AvailabilityWarning] = []

        try:
            for menu_item_id, order_quantity in _snapshot_lines(order_items):
                recipe = await get_main_ingredients(self.db, menu_item_id)
                if recipe is None or not recipe.main_ingredients:
                    continue

                for ingredient in recipe.main_ingredients:
                    required = round_stock(ingredient.quantity * order_quantity)

                    inventory_item = await find_inventory_item(self.db, ingredient.name)
                    if inventory_item is None:
                        warnings.append(
                            AvailabilityWarning(
                                menu_item=recipe.menu_item_name, ingredient=ingredient.name, warning=NOT_FOUND
                            )
                        )
                        continue

                    available = round_stock(inventory_item.current_stock)
                    is_available = has_enough(available, required)
                    availability.append(
                        AvailabilityEntry(
                            menu_item=recipe.menu_item_name,
                            ingredient=ingredient.name,
                            required=required,
                            available=available,
                            unit=ingredient.unit,
                            is_available=is_available,
                            stock_status=stock_status(inventory_item.current_stock, inventory_item.min_stock),
                        )
                    )
                    if not is_available:
                        warnings.append(
                            AvailabilityWarning(
                                menu_item=recipe.menu_item_name,
                                ingredient=ingredient.name,
                                warning=f"Insufficient stock. Available: {_fmt(available)}, Required: {_fmt(required)}",
                            )
                        )

            return AvailabilityResult(
                success=True,
                availability=availability,
                warnings=warnings,
                all_available=not warnings,
            )

        except Exception as e:
            logger.exception("Error in check_inventory_availability")
            await self._rollback()
            return AvailabilityResult(
                success=False,
                availability=[],
                warnings=[AvailabilityWarning(warning=f"Failed to check inventory availability: {e}")],
                all_available=False,
            )

    async def get_low_stock_alerts(self) -> LowStockAlerts:
        """Active items at or below their minimum, most depleted first."""
        try:
            result = await self.db.execute(
                select(InventoryItem)
                .where(
                    InventoryItem.is_active.is_(True),
                    InventoryItem.current_stock <= InventoryItem.min_stock,
                )
                .order_by(InventoryItem.current_stock.asc(), func.lower(InventoryItem.name).asc())
                .execution_options(populate_existing=True)
            )
            return LowStockAlerts(
                success=True,
                low_stock_items=[
                    LowStockItem(
                        id=item.id,
                        name=item.name,
                        current_stock=float(item.current_stock),
                        min_stock=float(item.min_stock),
                        unit=item.unit,
                        stock_status=item.stock_status,
                        category=item.category,
                    )
                    for item in result.scalars().all()
                ],
            )
        except Exception as e:
            logger.exception("Error in get_low_stock_alerts")
            await self._rollback()
            return LowStockAlerts(success=False, low_stock_items=[], error=str(e))
