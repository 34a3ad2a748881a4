# marketplace/services/checkout_service.py
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.domain.enums import CartStatus, OrderStatus, PaymentStatus
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.paystack_client import PaystackClient
from marketplace.utils.money import quantize_amount, to_minor_units
from marketplace.utils.references import checkout_reference, generate_order_number
from marketplace.utils.settings import CURRENCY
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """
    Serwis odpowiedzialny za utworzenie zamowienia z koszyka i
    inicjalizacje transakcji w bramce. Producent stanu, ktory
    konsumuje SettlementService.
    """

    def __init__(self, db: Session, gateway: PaystackClient | None = None):
        self.db = db
        self.orders = OrderRepo(db)
        self.carts = CartRepo(db)
        self.gateway = gateway or PaystackClient()

    def initialize_payment(self, user_id: str, cart_id: str, email: str) -> Dict[str, Any]:
        """
        Use Case: checkout koszyka.

        1. Weryfikuje koszyk (aktywny, nalezy do uzytkownika, niepusty)
        2. Oblicza total z aktualnych pozycji
        3. Tworzy zamowienie pending/pending
        4. Zapisuje niezmienne pozycje zamowienia (kompensacja: usuniecie zamowienia)
        5. Inicjalizuje transakcje w bramce i zapisuje referencje
        """
        cart = self.carts.get_cart(cart_id)

        if not cart or cart.status != CartStatus.ACTIVE.value:
            raise LookupError("Cart not found or already processed")

        if cart.user_id != user_id:
            raise PermissionError("Cart belongs to another user")

        cart_items = self.carts.get_cart_items(cart_id)
        if not cart_items:
            raise ValueError("Cart is empty")

        # migawka ceny i tworcy w tej chwili
        lines = []
        for item in cart_items:
            artwork = self.carts.get_artwork(item.artwork_id)
            if not artwork:
                raise ValueError(f"Artwork {item.artwork_id} no longer exists")
            lines.append((item, artwork.creator_id))

        total = sum((quantize_amount(i.unit_price) * i.quantity for i, _ in lines), Decimal("0.00"))
        if total <= 0:
            raise ValueError("Cart total must be positive")

        order = self.orders.create_order(
            OrderModel(
                order_number=generate_order_number(),
                buyer_id=user_id,
                cart_id=cart_id,
                total_amount=total,
                currency=CURRENCY,
                payment_status=PaymentStatus.PENDING.value,
                order_status=OrderStatus.PENDING.value,
            )
        )
        order_id = order.id
        logger.info(f"Order {order_id} ({order.order_number}) created from cart {cart_id}, total {total}")

        try:
            self.orders.add_items(
                OrderItemModel(
                    order_id=order_id,
                    artwork_id=item.artwork_id,
                    creator_id=creator_id,
                    quantity=item.quantity,
                    unit_price=quantize_amount(item.unit_price),
                )
                for item, creator_id in lines
            )
        except Exception:
            self.db.rollback()
            logger.error(f"Failed to store items of order {order_id}, deleting order")
            self.orders.delete_order(order_id)
            raise

        reference = checkout_reference(order_id)
        try:
            transaction = self.gateway.initialize_transaction(
                email=email,
                amount_minor=to_minor_units(total),
                reference=reference,
                metadata={
                    "order_id": order_id,
                    "user_id": user_id,
                    "cart_id": cart_id,
                    "custom_fields": [
                        {"display_name": "Order ID", "variable_name": "order_id", "value": order_id},
                    ],
                },
            )
        except Exception:
            logger.error(f"Gateway initialization failed for order {order_id}, cancelling")
            self.orders.mark_failed(order_id)
            self.orders.commit()
            raise

        self.orders.set_payment_reference(order_id, transaction.reference)

        return {
            "authorization_url": transaction.authorization_url,
            "access_code": transaction.access_code,
            "reference": transaction.reference,
            "order_id": order_id,
            "order_number": order.order_number,
        }
