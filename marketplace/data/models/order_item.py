from sqlalchemy import Column, Integer, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
import uuid

from marketplace.data.database import Base


class OrderItemModel(Base):
    """Migawka ceny i tworcy z chwili zlozenia zamowienia. Bez edycji."""

    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    artwork_id = Column(String(36), nullable=False)
    creator_id = Column(String(64), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
