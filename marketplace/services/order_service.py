# marketplace/services/order_service.py
from sqlalchemy.orm import Session

from marketplace.repos.order_repo import OrderRepo


class OrderService:
    """
    Odczyt zamowien (Query). Zapis robia CheckoutService i SettlementService.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def get_order(self, order_id: str, user_id: str):
        order = self.repo.get_order(order_id)

        if not order:
            raise ValueError("Order not found")

        if order.buyer_id != user_id:
            raise PermissionError("Order belongs to another user")

        return {
            "id": order.id,
            "order_number": order.order_number,
            "buyer_id": order.buyer_id,
            "total_amount": order.total_amount,
            "currency": order.currency,
            "payment_status": order.payment_status,
            "order_status": order.order_status,
            "payment_reference": order.payment_reference,
            "created_at": order.created_at,
            "items": self.repo.get_items(order.id),
        }
