from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


InventoryCategory = Literal[
    "ingredients",
    "beverages",
    "dairy",
    "produce",
    "meat",
    "grains",
    "spices",
    "packaging",
    "cleaning",
    "other",
]
StockStatus = Literal["critical", "low", "good"]


class InventoryItemCreate(BaseModel):
    name: str = Field(max_length=100)
    category: InventoryCategory
    current_stock: float = Field(ge=0)
    min_stock: float = Field(ge=0)
    max_stock: float = Field(ge=0)
    unit: str = Field(max_length=20)
    cost_per_unit: float = Field(ge=0)
    supplier: Optional[str] = Field(default=None, max_length=100)
    supplier_phone: Optional[str] = None
    supplier_email: Optional[str] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("category", mode="before")
    @classmethod
    def _lower_category(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("name", "unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @model_validator(mode="after")
    def _max_not_below_min(self):
        if self.max_stock < self.min_stock:
            raise ValueError("Maximum stock must be greater than or equal to minimum stock")
        return self


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    category: Optional[InventoryCategory] = None
    current_stock: Optional[float] = Field(default=None, ge=0)
    min_stock: Optional[float] = Field(default=None, ge=0)
    max_stock: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None, max_length=20)
    cost_per_unit: Optional[float] = Field(default=None, ge=0)
    supplier: Optional[str] = Field(default=None, max_length=100)
    supplier_phone: Optional[str] = None
    supplier_email: Optional[str] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("category", mode="before")
    @classmethod
    def _lower_category(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("name", "unit")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = (v or "").strip()
        if not v:
            raise ValueError("cannot be empty")
        return v


class InventoryItemListResponse(BaseModel):
    items: List[dict]
    page: int
    limit: int
    total: int
    pages: int


# --- Engine results (transient, never persisted) ---


class DeductionEntry(BaseModel):
    menu_item: str
    ingredient: str
    quantity_deducted: float
    unit: str
    previous_stock: float
    new_stock: float
    order_quantity: int


class DeductionError(BaseModel):
    menu_item: Optional[str] = None
    ingredient: Optional[str] = None
    error: str


class DeductionResult(BaseModel):
    success: bool
    deductions: List[DeductionEntry] = []
    errors: List[DeductionError] = []


class AvailabilityEntry(BaseModel):
    menu_item: str
    ingredient: str
    required: float
    available: float
    unit: str
    is_available: bool
    stock_status: StockStatus


class AvailabilityWarning(BaseModel):
    menu_item: Optional[str] = None
    ingredient: Optional[str] = None
    warning: str


class AvailabilityResult(BaseModel):
    success: bool
    availability: List[AvailabilityEntry] = []
    warnings: List[AvailabilityWarning] = []
    all_available: bool


class LowStockItem(BaseModel):
    id: UUID
    name: str
    current_stock: float
    min_stock: float
    unit: str
    stock_status: StockStatus
    category: str


class LowStockAlerts(BaseModel):
    success: bool
    low_stock_items: List[LowStockItem] = []
    error: Optional[str] = None
