from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime

from .inventory import AvailabilityResult, DeductionResult


OrderStatus = Literal[
    "pending",
    "order placed",
    "cooking in progress",
    "ready for pickup",
    "out for delivery",
    "delivered",
    "cancelled",
]
OrderType = Literal["dine in", "delivery", "take away"]
PaymentMethod = Literal["cash", "card", "digital-wallet"]


class OrderLineItem(BaseModel):
    menu_item_id: UUID
    quantity: int = Field(ge=1)


class OrderItemCreate(OrderLineItem):
    special_instructions: Optional[str] = Field(default=None, max_length=200)


class CustomerInfo(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Customer name is required")
        return v


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(min_length=1)
    order_type: OrderType
    table_number: Optional[int] = None
    delivery_address: Optional[str] = None
    payment_method: PaymentMethod
    customer_info: CustomerInfo
    special_instructions: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _table_for_dine_in(self):
        if self.order_type == "dine in" and (self.table_number is None or self.table_number < 1):
            raise ValueError("Table number is required and must be a positive integer for dine in orders")
        if self.order_type == "delivery" and not (self.delivery_address or "").strip():
            raise ValueError("Delivery address is required for delivery orders")
        return self


class InventoryCheckRequest(BaseModel):
    items: List[OrderLineItem] = Field(min_length=1)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = Field(default=None, max_length=500)


class DeliverRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=500)


class OrderItemRead(BaseModel):
    id: UUID
    menu_item_id: UUID
    menu_item_name: Optional[str] = None
    quantity: int
    price: float
    special_instructions: Optional[str] = None


class OrderRead(BaseModel):
    id: UUID
    order_number: str
    status: str
    order_type: str
    table_number: Optional[int] = None
    delivery_address: Optional[str] = None
    payment_method: str
    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    assigned_to_id: Optional[UUID] = None
    notes: Optional[str] = None
    special_instructions: Optional[str] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    items: List[OrderItemRead]


class OrderCreateResponse(BaseModel):
    message: str
    order: OrderRead
    inventory_check: AvailabilityResult


class OrderStatusResponse(BaseModel):
    message: str
    order: OrderRead
    inventory_deduction: Optional[DeductionResult] = None


class OrderListResponse(BaseModel):
    orders: List[OrderRead]
    page: int
    limit: int
    total: int
    pages: int


class AssignDeliveryRequest(BaseModel):
    delivery_person_id: UUID
