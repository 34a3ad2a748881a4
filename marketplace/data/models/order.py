from sqlalchemy import Column, String, DateTime, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid

from marketplace.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_number = Column(String(40), nullable=False, unique=True)
    buyer_id = Column(String(64), nullable=False, index=True)
    cart_id = Column(String(36), nullable=True)

    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="NGN")

    payment_status = Column(String(20), nullable=False, default="pending")  # pending, completed, failed
    order_status = Column(String(20), nullable=False, default="pending")  # pending, confirmed, cancelled
    # ustawiana raz przy inicjalizacji platnosci, potem tylko do odczytu
    payment_reference = Column(String(128), nullable=True, unique=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )
