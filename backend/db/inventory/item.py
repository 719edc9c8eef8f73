import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, Float, Index, String, Text, Uuid, func
from sqlalchemy.orm import relationship

from ..database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(100), nullable=False)
    # 'ingredients' | 'beverages' | 'dairy' | 'produce' | 'meat' | 'grains' | 'spices' | 'packaging' | 'cleaning' | 'other'
    category = Column(Text, nullable=False, index=True)

    current_stock = Column(Float, nullable=False, default=0)
    min_stock = Column(Float, nullable=False, default=0)
    max_stock = Column(Float, nullable=False, default=0)
    unit = Column(String(20), nullable=False)
    cost_per_unit = Column(Float, nullable=False, default=0)

    supplier = Column(String(100), nullable=True)
    supplier_phone = Column(String, nullable=True)
    supplier_email = Column(String, nullable=True)
    expiry_date = Column(Date, nullable=True)
    last_restocked = Column(DateTime, nullable=True, server_default=func.now())
    notes = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    movements = relationship("InventoryMovement", back_populates="inventory_item", cascade="all, delete-orphan")

    __table_args__ = (
        # Recipes match by name, so at most one active row per name (case-insensitive).
        Index(
            "ux_inventory_items_active_name",
            func.lower(name),
            unique=True,
            postgresql_where=is_active,
            sqlite_where=is_active,
        ),
        Index("ix_inventory_items_stock_levels", current_stock, min_stock),
    )

    @property
    def stock_status(self) -> str:
        from .stock import stock_status

        return stock_status(self.current_stock, self.min_stock)

    @property
    def total_value(self) -> float:
        return float(self.current_stock or 0) * float(self.cost_per_unit or 0)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "current_stock": float(self.current_stock),
            "min_stock": float(self.min_stock),
            "max_stock": float(self.max_stock),
            "unit": self.unit,
            "cost_per_unit": float(self.cost_per_unit),
            "supplier": self.supplier,
            "supplier_phone": self.supplier_phone,
            "supplier_email": self.supplier_email,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "last_restocked": self.last_restocked.isoformat() if self.last_restocked else None,
            "notes": self.notes,
            "is_active": bool(self.is_active),
            "stock_status": self.stock_status,
            "total_value": self.total_value,
        }
