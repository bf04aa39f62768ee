import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, Numeric, String, func
from sqlalchemy.orm import relationship

from storefront.core.database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), index=True, nullable=False)
    name = Column(String(120), nullable=False)
    unit = Column(String(20), nullable=False, default="pcs")
    current_stock = Column(Float, nullable=False, default=0)
    cost_per_unit = Column(Numeric(10, 2), nullable=False, default=0)
    min_stock_alert = Column(Float, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class RecipeItem(Base):
    __tablename__ = "recipe_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), index=True, nullable=False)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), index=True, nullable=False)
    inventory_item_id = Column(String(36), ForeignKey("inventory_items.id"), index=True, nullable=False)
    quantity = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    menu_item = relationship("MenuItem", back_populates="recipe_items")
    inventory_item = relationship("InventoryItem")
