import uuid
from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import relationship
from .database import Base


class MenuItem(Base):
    """MenuItem model - a dish or drink with an ordered recipe of main ingredients"""
    __tablename__ = "menu_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    price = Column(Float, nullable=False)
    category = Column(Text, nullable=False, index=True)  # appetizer|main-course|dessert|beverage|special
    image_url = Column(String, nullable=True)

    # Display-only ingredient/allergen lists; not tracked against inventory
    ingredients = Column(JSON, nullable=False, default=list)
    allergens = Column(JSON, nullable=False, default=list)

    is_vegetarian = Column(Boolean, nullable=False, default=False)
    is_vegan = Column(Boolean, nullable=False, default=False)
    is_gluten_free = Column(Boolean, nullable=False, default=False)
    spice_level = Column(Text, nullable=False, default="mild")  # mild|medium|hot|extra-hot
    preparation_time = Column(Integer, nullable=False)  # minutes
    is_available = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    main_ingredients = relationship(
        "MenuItemIngredient",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="MenuItemIngredient.position",
    )

    @property
    def to_schema(self):
        """Convert MenuItem model to schema dictionary format"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "category": self.category,
            "image_url": self.image_url,
            "ingredients": list(self.ingredients or []),
            "allergens": list(self.allergens or []),
            "is_vegetarian": bool(self.is_vegetarian),
            "is_vegan": bool(self.is_vegan),
            "is_gluten_free": bool(self.is_gluten_free),
            "spice_level": self.spice_level,
            "preparation_time": self.preparation_time,
            "is_available": bool(self.is_available),
            "main_ingredients": [
                {"name": mi.name, "quantity": float(mi.quantity), "unit": mi.unit}
                for mi in self.main_ingredients
            ],
        }


class MenuItemIngredient(Base):
    """One main ingredient of a menu item's recipe, matched to inventory by name"""
    __tablename__ = "menu_item_ingredients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    menu_item_id = Column(Uuid(as_uuid=True), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    name = Column(String, nullable=False)
    quantity = Column(Float, nullable=False)  # per ONE unit of the menu item
    unit = Column(String, nullable=False)

    menu_item = relationship("MenuItem", back_populates="main_ingredients")
