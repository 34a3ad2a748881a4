# marketplace/services/settlement_service.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.domain.enums import GatewayStatus, PaymentStatus, TransactionType
from marketplace.domain.errors import OrderNotFoundError, SettlementError
from marketplace.domain.schemas import CreatorCredit, SettlementResult, VerifiedTransaction
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.ledger_repo import LedgerRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.notification_service import NotificationService
from marketplace.services.paystack_client import PaystackClient
from marketplace.utils.money import from_minor_units, quantize_amount
from marketplace.utils.references import ledger_reference
from marketplace.utils.retry import gateway_retry
from marketplace.utils.settings import (
    RECONCILE_BATCH_SIZE,
    RECONCILE_MAX_AGE_MINUTES,
    RECONCILE_MIN_AGE_MINUTES,
)
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

# statusy bramki, po ktorych zamowienie jest anulowane
TERMINAL_FAILURE_STATUSES = {GatewayStatus.FAILED.value, GatewayStatus.ABANDONED.value}


class SettlementService:
    """
    Rozliczenie platnosci: weryfikacja w bramce -> claim zamowienia ->
    uznanie portfeli tworcow -> zamkniecie koszyka -> powiadomienia.

    Bezpieczne do wielokrotnego i wspolbieznego wywolania dla tej samej
    referencji (redirect, webhook, sweep). Jedynym punktem serializacji jest
    warunkowy update wiersza zamowienia (OrderRepo.claim_settlement).
    """

    def __init__(
        self,
        db: Session,
        gateway: PaystackClient | None = None,
        notifier: NotificationService | None = None,
    ):
        self.db = db
        self.orders = OrderRepo(db)
        self.ledger = LedgerRepo(db)
        self.carts = CartRepo(db)
        self.gateway = gateway or PaystackClient()
        self.notifier = notifier or NotificationService(db)

    @gateway_retry()
    def _verify(self, reference: str) -> VerifiedTransaction:
        return self.gateway.verify_transaction(reference)

    def settle_payment(self, reference: str) -> SettlementResult:
        logger.info(f"Settling payment {reference}")

        # 1. weryfikacja (read-only, przy bledzie nic nie zostalo zapisane)
        verification = self._verify(reference)

        # 2. platnosc nieudana
        if verification.status != GatewayStatus.SUCCESS.value:
            return self._settle_unsuccessful(reference, verification)

        # 3. zamowienie dla referencji
        order = self.orders.get_order_by_reference(reference)
        if not order:
            logger.error(f"Payment {reference} verified but no order matches it")
            raise OrderNotFoundError(f"No order found for payment reference {reference}", reference)

        # 4. idempotencja, przed jakakolwiek mutacja
        if order.payment_status == PaymentStatus.COMPLETED.value:
            logger.info(f"Order {order.id} already settled, reference {reference}")
            return self._already_processed(order, reference)

        paid = from_minor_units(verification.amount_minor)
        if paid != quantize_amount(order.total_amount):
            logger.warning(
                f"Amount mismatch for order {order.id}: gateway {paid}, stored {order.total_amount}"
            )

        # 5-7. claim + ledger + koszyk w jednej transakcji
        try:
            if not self.orders.claim_settlement(order.id):
                self.db.rollback()
                order = self.orders.reload_order(order.id)
                logger.info(f"Order {order.id} settled by a concurrent caller, reference {reference}")
                return self._already_processed(order, reference)

            items = self.orders.get_items(order.id)
            credits = self._credit_creators(order, items)

            cart_id = verification.metadata.get("cart_id") or order.cart_id
            if cart_id and not self.carts.complete_cart(cart_id):
                logger.info(f"Cart {cart_id} missing or already completed")

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Settlement of order {order.id} failed, rolled back")
            raise

        logger.info(
            f"Order {order.id} settled: {len(credits)} creator credit(s), reference {reference}"
        )

        # 8. powiadomienia poza kontraktem atomowosci
        self._notify_settled(order, items, credits)

        # 9.
        return SettlementResult(
            success=True,
            order_id=order.id,
            amount=paid,
            status=GatewayStatus.SUCCESS.value,
            reference=verification.reference,
            credits=[CreatorCredit(creator_id=c, amount=a) for c, a in credits.items()],
        )

    def _settle_unsuccessful(self, reference: str, verification: VerifiedTransaction) -> SettlementResult:
        status = verification.status
        order = self.orders.get_order_by_reference(reference)

        if not order:
            # referencja spoza systemu - no-op
            logger.info(f"Payment {reference} is '{status}' and matches no order")
            return SettlementResult(success=False, status=status, reference=reference)

        if status not in TERMINAL_FAILURE_STATUSES:
            logger.info(f"Payment {reference} for order {order.id} not completed yet: '{status}'")
            return SettlementResult(
                success=False,
                order_id=order.id,
                amount=quantize_amount(order.total_amount),
                status=status,
                reference=reference,
            )

        try:
            marked = self.orders.mark_failed(order.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if marked:
            logger.info(f"Order {order.id} cancelled, payment {reference} is '{status}'")
            self._safe_notify(self.notifier.notify_payment_failed, order, reference)
        else:
            logger.warning(
                f"Payment {reference} reported '{status}' but order {order.id} is no longer pending"
            )

        return SettlementResult(
            success=False,
            order_id=order.id,
            amount=quantize_amount(order.total_amount),
            status=status,
            reference=reference,
        )

    def _already_processed(self, order: OrderModel, reference: str) -> SettlementResult:
        return SettlementResult(
            success=True,
            order_id=order.id,
            amount=quantize_amount(order.total_amount),
            status="already_processed",
            reference=reference,
            already_processed=True,
        )

    def _credit_creators(self, order: OrderModel, items: List[OrderItemModel]) -> Dict[str, Decimal]:
        """
        Grupuje pozycje po tworcy i dopisuje po jednym wpisie credit na tworce.
        Ceny z pozycji zamowienia (migawka), nie z aktualnego katalogu.
        """
        totals: Dict[str, Decimal] = {}
        for item in items:
            if not item.creator_id:
                continue
            line = quantize_amount(item.unit_price) * item.quantity
            totals[item.creator_id] = totals.get(item.creator_id, Decimal("0.00")) + line

        reference = ledger_reference(order.id)
        credited: Dict[str, Decimal] = {}
        for creator_id, amount in totals.items():
            if amount <= 0:
                continue
            #druga linia obrony: wpis juz istnieje -> pomijamy
            if self.ledger.has_entry(creator_id, reference, TransactionType.CREDIT.value):
                logger.info(f"Ledger entry {reference} for creator {creator_id} exists, skipping")
                continue
            self.ledger.append_entry(
                user_id=creator_id,
                amount=amount,
                transaction_type=TransactionType.CREDIT.value,
                description=f"Payment for order #{order.order_number or order.id[:8]}",
                reference=reference,
            )
            credited[creator_id] = quantize_amount(amount)

        return credited

    def _notify_settled(self, order: OrderModel, items: List[OrderItemModel], credits: Dict[str, Decimal]):
        self._safe_notify(self.notifier.notify_order_confirmed, order)

        for creator_id, amount in credits.items():
            artwork_id = next((i.artwork_id for i in items if i.creator_id == creator_id), None)
            self._safe_notify(self.notifier.notify_creator_sale, order, creator_id, amount, artwork_id)

    def _safe_notify(self, fn, *args):
        try:
            fn(*args)
        except Exception:
            # rozliczenie jest juz zacommitowane, blad powiadomienia tylko logujemy
            self.db.rollback()
            logger.exception(f"Notification {getattr(fn, '__name__', fn)} failed")

    def reconcile_pending(self, now: datetime | None = None) -> Dict[str, int]:
        """
        Sweep zamowien pending z referencja, ktorych nie rozliczyl ani
        redirect, ani webhook. Blad pojedynczego zamowienia nie przerywa sweepu.
        """
        now = now or datetime.now(timezone.utc)
        orders = self.orders.list_pending_for_reconciliation(
            older_than=now - timedelta(minutes=RECONCILE_MIN_AGE_MINUTES),
            newer_than=now - timedelta(minutes=RECONCILE_MAX_AGE_MINUTES),
            limit=RECONCILE_BATCH_SIZE,
        )
        references = [o.payment_reference for o in orders]

        summary = {"checked": 0, "settled": 0, "failed": 0, "pending": 0, "errors": 0}
        for reference in references:
            summary["checked"] += 1
            try:
                result = self.settle_payment(reference)
            except SettlementError as e:
                self.db.rollback()
                summary["errors"] += 1
                logger.warning(f"Reconcile {reference}: {e.kind} {e.message}")
                continue
            except Exception as e:
                self.db.rollback()
                summary["errors"] += 1
                logger.error(f"Reconcile {reference}: unexpected error {e}")
                continue

            if result.success:
                summary["settled"] += 1
            elif result.status in TERMINAL_FAILURE_STATUSES:
                summary["failed"] += 1
            else:
                summary["pending"] += 1

        logger.info(f"Reconcile finished: {summary}")
        return summary
