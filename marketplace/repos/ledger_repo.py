# marketplace/repos/ledger_repo.py
from decimal import Decimal
from typing import List

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from marketplace.data.models.wallet_transaction import WalletTransactionModel
from marketplace.domain.enums import TransactionStatus, TransactionType
from marketplace.utils.money import quantize_amount


class LedgerRepo:
    """
    Dziennik portfela - tylko insert i odczyt.
    Korekty to nowe wpisy debit, nigdy update/delete.
    """

    def __init__(self, db: Session):
        self.db = db

    def has_entry(self, user_id: str, reference: str, transaction_type: str) -> bool:
        return self.db.execute(
            select(WalletTransactionModel.id).where(
                WalletTransactionModel.user_id == user_id,
                WalletTransactionModel.reference == reference,
                WalletTransactionModel.transaction_type == transaction_type,
            )
        ).first() is not None

    def append_entry(
        self,
        user_id: str,
        amount: Decimal,
        transaction_type: str,
        description: str,
        reference: str,
        status: str = TransactionStatus.COMPLETED.value,
    ) -> WalletTransactionModel:
        # bez commita, wpis jest czescia transakcji wywolujacego
        entry = WalletTransactionModel(
            user_id=user_id,
            amount=quantize_amount(amount),
            transaction_type=transaction_type,
            status=status,
            description=description,
            reference=reference,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_balance(self, user_id: str) -> Decimal:
        signed = case(
            (WalletTransactionModel.transaction_type == TransactionType.CREDIT.value, WalletTransactionModel.amount),
            else_=-WalletTransactionModel.amount,
        )
        total = self.db.execute(
            select(func.coalesce(func.sum(signed), 0)).where(
                WalletTransactionModel.user_id == user_id,
                WalletTransactionModel.status == TransactionStatus.COMPLETED.value,
            )
        ).scalar_one()
        return quantize_amount(total)

    def list_entries(self, user_id: str, limit: int = 50) -> List[WalletTransactionModel]:
        return list(
            self.db.execute(
                select(WalletTransactionModel)
                .where(WalletTransactionModel.user_id == user_id)
                .order_by(WalletTransactionModel.created_at.desc())
                .limit(limit)
            ).scalars().all()
        )

    def list_by_reference(self, reference: str) -> List[WalletTransactionModel]:
        return list(
            self.db.execute(
                select(WalletTransactionModel)
                .where(WalletTransactionModel.reference == reference)
                .order_by(WalletTransactionModel.created_at)
            ).scalars().all()
        )
