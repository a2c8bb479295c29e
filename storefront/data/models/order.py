from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from storefront.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    # nieprzezroczysty identyfikator uzytkownika (auth poza serwisem)
    user_id = Column(Integer, nullable=False, index=True)

    status = Column(String, nullable=False, default="PENDING")  # PENDING, PURCHASED, CANCELLED
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
