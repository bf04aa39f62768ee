import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func

from storefront.core.database import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # One restaurant per owner identity issued by the auth backend.
    owner_id = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(120), nullable=False)
    slug = Column(String(140), unique=True, index=True, nullable=False)
    city = Column(String(80), nullable=True)

    theme_color = Column(String(30), nullable=True)
    secondary_color = Column(String(30), nullable=True)
    font = Column(String(40), nullable=True)
    hero_image_url = Column(Text, nullable=True)
    hero_title = Column(String(160), nullable=True)
    hero_subtitle = Column(String(255), nullable=True)
    about_us = Column(Text, nullable=True)

    address = Column(Text, nullable=True)
    phone_number = Column(String(30), nullable=True)
    whatsapp_number = Column(String(30), nullable=True)
    opening_hours = Column(String(120), nullable=True)
    google_maps_url = Column(Text, nullable=True)
    upi_id = Column(String(80), nullable=True)

    is_accepting_orders = Column(Boolean, nullable=False, default=True)
    total_tables = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
