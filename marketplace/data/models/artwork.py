from sqlalchemy import Boolean, Column, String, Numeric
import uuid

from marketplace.data.database import Base


class ArtworkModel(Base):
    __tablename__ = "artworks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    creator_id = Column(String(64), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
