from sqlalchemy import Boolean, Column, String, DateTime, JSON, Text
from datetime import datetime, timezone
import uuid

from marketplace.data.database import Base


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)

    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(512), nullable=True)
    order_id = Column(String(36), nullable=True)
    artwork_id = Column(String(36), nullable=True)
    data = Column(JSON, nullable=False, default=dict)

    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
