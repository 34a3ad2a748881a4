from sqlalchemy import Column, String, DateTime, Numeric, UniqueConstraint
from datetime import datetime, timezone
import uuid

from marketplace.data.database import Base


class WalletTransactionModel(Base):
    """
    Append-only dziennik portfela. Saldo = suma wpisow, nigdy nie jest przechowywane.
    amount to zawsze wartosc dodatnia, znak wynika z transaction_type.
    """

    __tablename__ = "wallet_transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    transaction_type = Column(String(10), nullable=False)  # credit, debit
    status = Column(String(20), nullable=False, default="completed")  # pending, completed
    description = Column(String(255), nullable=False, default="")
    reference = Column(String(128), nullable=False, index=True)  # ORDER_<order_id>

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "reference", "transaction_type", name="u_wallet_user_reference_type"),
    )
