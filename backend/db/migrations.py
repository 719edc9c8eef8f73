"""Database migration utilities"""
import logging

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

ACTIVE_NAME_INDEX = "ux_inventory_items_active_name"


async def ensure_active_inventory_name_index(engine: AsyncEngine) -> bool:
    """
    Create the case-insensitive unique index on active inventory names.

    create_all() only builds indexes together with new tables, so databases whose
    inventory_items table predates the index need it added here. Safe to run on
    every startup. Returns False when existing duplicate active names prevent it.
    """
    try:
        async with engine.begin() as conn:
            active_predicate = "is_active" if conn.dialect.name == "postgresql" else "is_active = 1"
            await conn.execute(
                text(f"""
                    CREATE UNIQUE INDEX IF NOT EXISTS {ACTIVE_NAME_INDEX}
                    ON inventory_items (lower(name))
                    WHERE {active_predicate}
                """)
            )
    except DBAPIError as e:
        logger.warning(
            "Could not create %s (%s); deactivate or rename duplicate active inventory items",
            ACTIVE_NAME_INDEX,
            e.orig,
        )
        return False
    return True
