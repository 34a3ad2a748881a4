# marketplace/services/wallet_service.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from marketplace.data.models.wallet_transaction import WalletTransactionModel
from marketplace.domain.enums import TransactionStatus, TransactionType
from marketplace.repos.ledger_repo import LedgerRepo
from marketplace.utils.references import ledger_reference
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class WalletService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepo(db)

    def get_wallet(self, user_id: str, limit: int = 50) -> Dict[str, Any]:
        return {
            "user_id": user_id,
            "balance": self.ledger.get_balance(user_id),
            "transactions": self.ledger.list_entries(user_id, limit),
        }

    def reverse_order_credits(self, order_id: str, reason: str) -> List[WalletTransactionModel]:
        """
        Korekta (zwrot / chargeback): dla kazdego uznania z referencja ORDER_<id>
        dopisuje przeciwny wpis debit z ta sama referencja. Oryginalne wpisy
        zostaja bez zmian. Idempotentne po kluczu (user, reference, type).
        """
        reference = ledger_reference(order_id)
        credits = [
            e for e in self.ledger.list_by_reference(reference)
            if e.transaction_type == TransactionType.CREDIT.value
            and e.status == TransactionStatus.COMPLETED.value
        ]

        reversals = []
        try:
            for credit in credits:
                if self.ledger.has_entry(credit.user_id, reference, TransactionType.DEBIT.value):
                    logger.info(f"Reversal {reference} for user {credit.user_id} exists, skipping")
                    continue
                reversals.append(
                    self.ledger.append_entry(
                        user_id=credit.user_id,
                        amount=credit.amount,
                        transaction_type=TransactionType.DEBIT.value,
                        description=f"Reversal: {reason}",
                        reference=reference,
                    )
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Reversed {len(reversals)} credit(s) for order {order_id}")
        return reversals
