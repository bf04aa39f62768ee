import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from storefront.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (Index("ix_orders_restaurant_created", "restaurant_id", "created_at"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), index=True, nullable=False)

    customer_name = Column(String(120), nullable=False, default="")
    customer_phone = Column(String(30), nullable=False, default="")
    customer_address = Column(Text, nullable=False, default="")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Snapshot of the cart at checkout; never rewritten after insert.
    order_details = Column(JSONB().with_variant(sa.JSON(), "sqlite"), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default="pending")  # pending / confirmed / preparing / out_for_delivery / delivered / cancelled
    payment_method = Column(String(10), nullable=False, default="COD")  # COD / UPI
    order_type = Column(String(20), nullable=False, default="DELIVERY")  # DELIVERY / DINE_IN
    table_number = Column(Integer, nullable=True)

    # Python-side default keeps sub-second ordering for "newest first".
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
