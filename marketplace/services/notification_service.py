# marketplace/services/notification_service.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from marketplace.celery_worker import celery_app
from marketplace.data.models.notification import NotificationModel
from marketplace.data.models.order import OrderModel
from marketplace.domain.enums import NotificationType
from marketplace.repos.notification_repo import NotificationRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _order_ref(order: OrderModel) -> str:
    return order.order_number or order.id[:8]


class NotificationService:
    """
    Powiadomienia best-effort (at-most-once, bez kolejki ponowien).
    notify() nigdy nie rzuca wyjatku do wywolujacego.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepo(db)

    def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        data: Dict[str, Any] | None = None,
        link: str | None = None,
        order_id: str | None = None,
        artwork_id: str | None = None,
    ) -> NotificationModel | None:
        try:
            notification = self.repo.create(
                NotificationModel(
                    user_id=user_id,
                    type=type,
                    title=title,
                    message=message,
                    data=data or {},
                    link=link,
                    order_id=order_id,
                    artwork_id=artwork_id,
                )
            )
        except Exception:
            self.db.rollback()
            logger.exception(f"[NOTIFICATION] Failed to store '{type}' notification for user {user_id}")
            return None

        try:
            deliver_notification_task.delay(notification.id)
        except Exception:
            # powiadomienie jest w bazie, push jest opcjonalny
            logger.exception(f"[NOTIFICATION] Failed to enqueue push for notification {notification.id}")

        return notification

    # triggery

    def notify_order_confirmed(self, order: OrderModel):
        return self.notify(
            order.buyer_id,
            NotificationType.ORDER.value,
            "Order Confirmed!",
            f"Your order #{_order_ref(order)} has been confirmed and is being processed.",
            data={
                "order_id": order.id,
                "amount": str(order.total_amount),
                "status": order.order_status,
            },
            link=f"/orders/{order.id}",
            order_id=order.id,
        )

    def notify_creator_sale(self, order: OrderModel, creator_id: str, amount: Decimal, artwork_id: str | None = None):
        return self.notify(
            creator_id,
            NotificationType.SALE.value,
            "New Sale!",
            f"You have a new sale from order #{_order_ref(order)}",
            data={"order_id": order.id, "artwork_id": artwork_id, "amount": str(amount)},
            link="/dashboard/creator/sales",
            order_id=order.id,
            artwork_id=artwork_id,
        )

    def notify_payment_failed(self, order: OrderModel, reference: str):
        return self.notify(
            order.buyer_id,
            NotificationType.PAYMENT.value,
            "Payment Failed",
            f"Payment for order #{_order_ref(order)} failed. Please try again.",
            data={"order_id": order.id, "reference": reference},
            order_id=order.id,
        )

    # query

    def list_notifications(self, user_id: str, limit: int = 20, unread_only: bool = False) -> Dict[str, Any]:
        notifications: List[NotificationModel] = self.repo.list_for_user(user_id, limit, unread_only)
        return {
            "notifications": notifications,
            "unread_count": self.repo.unread_count(user_id),
        }

    def mark_read(self, user_id: str, notification_id: str | None = None, mark_all: bool = False) -> int:
        if mark_all:
            return self.repo.mark_all_read(user_id)
        if notification_id:
            return self.repo.mark_read(user_id, notification_id)
        raise ValueError("notification_id or mark_all required")


@celery_app.task(name="marketplace.services.notification_service.deliver_notification_task")
def deliver_notification_task(notification_id: str):
    """
    Celery task - w prawdziwym systemie wyslalby email/push.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] Delivering notification {notification_id}")

    return {"notification_id": notification_id, "status": "sent"}
