import uuid
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import relationship
from .database import Base


ORDER_STATUSES = (
    "pending",
    "order placed",
    "cooking in progress",
    "ready for pickup",
    "out for delivery",
    "delivered",
    "cancelled",
)
DELIVERED = "delivered"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_number = Column(String, nullable=False, unique=True)

    customer_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    # Walk-in customers without an account
    customer_name = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)

    status = Column(Text, nullable=False, default="pending", index=True)
    order_type = Column(Text, nullable=False)  # dine in|delivery|take away
    table_number = Column(Integer, nullable=True)
    delivery_address = Column(Text, nullable=True)
    payment_method = Column(Text, nullable=False)  # cash|card|digital-wallet

    assigned_to_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    notes = Column(String(500), nullable=True)
    special_instructions = Column(String(500), nullable=True)
    estimated_delivery_time = Column(DateTime, nullable=True)
    actual_delivery_time = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Uuid(as_uuid=True), ForeignKey("menu_items.id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)  # menu price at the time of ordering
    special_instructions = Column(String(200), nullable=True)

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem")
