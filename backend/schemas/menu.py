from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional


MenuCategory = Literal["appetizer", "main-course", "dessert", "beverage", "special"]
Allergen = Literal["gluten", "dairy", "nuts", "eggs", "soy", "shellfish", "fish"]
SpiceLevel = Literal["mild", "medium", "hot", "extra-hot"]


# One recipe line: amount of an inventory item used per ONE unit of the menu item
class MainIngredientInput(BaseModel):
    name: str
    quantity: float = Field(ge=0)
    unit: str

    @field_validator("name", "unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class MenuItemCreate(BaseModel):
    name: str = Field(max_length=100)
    description: str = Field(max_length=500)
    price: float = Field(ge=0)
    category: MenuCategory
    image_url: Optional[str] = None
    ingredients: List[str] = []
    main_ingredients: List[MainIngredientInput] = []
    allergens: List[Allergen] = []
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    spice_level: SpiceLevel = "mild"
    preparation_time: int = Field(ge=1)
    is_available: bool = True

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Menu item name is required")
        return v

    @field_validator("ingredients")
    @classmethod
    def _strip_ingredients(cls, v: List[str]) -> List[str]:
        return [s.strip() for s in v if s and s.strip()]


class MenuItemUpdate(MenuItemCreate):
    pass


class AvailabilityUpdate(BaseModel):
    is_available: bool
