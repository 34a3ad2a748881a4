# marketplace/repos/order_repo.py
from datetime import datetime, timezone
from typing import Iterable, List

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.domain.enums import OrderStatus, PaymentStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def add_items(self, items: Iterable[OrderItemModel]) -> List[OrderItemModel]:
        items = list(items)
        self.db.add_all(items)
        self.db.commit()
        return items

    def delete_order(self, order_id: str) -> None:
        # akcja kompensujaca przy nieudanym zapisie pozycji
        self.db.execute(delete(OrderItemModel).where(OrderItemModel.order_id == order_id))
        self.db.execute(delete(OrderModel).where(OrderModel.id == order_id))
        self.db.commit()

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_by_reference(self, reference: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.payment_reference == reference)
        ).scalar_one_or_none()

    def reload_order(self, order_id: str) -> OrderModel | None:
        # omija identity map, czytamy stan po commicie innej transakcji
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_items(self, order_id: str) -> List[OrderItemModel]:
        return list(
            self.db.execute(
                select(OrderItemModel).where(OrderItemModel.order_id == order_id)
            ).scalars().all()
        )

    def set_payment_reference(self, order_id: str, reference: str) -> bool:
        #referencja ustawiana dokladnie raz
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.payment_reference.is_(None))
            .values(payment_reference=reference, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def claim_settlement(self, order_id: str) -> bool:
        """
        Warunkowy update, jedyny punkt serializacji rozliczenia:
            UPDATE orders SET payment_status='completed', order_status='confirmed'
            WHERE id = :id AND payment_status != 'completed'
        0 wierszy = ktos inny juz rozliczyl. Bez commita, commit robi pipeline.
        """
        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.payment_status != PaymentStatus.COMPLETED.value,
            )
            .values(
                payment_status=PaymentStatus.COMPLETED.value,
                order_status=OrderStatus.CONFIRMED.value,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_failed(self, order_id: str) -> bool:
        # nigdy nie cofamy zamowienia ktore jest juz completed
        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.payment_status == PaymentStatus.PENDING.value,
            )
            .values(
                payment_status=PaymentStatus.FAILED.value,
                order_status=OrderStatus.CANCELLED.value,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_pending_for_reconciliation(
        self,
        older_than: datetime,
        newer_than: datetime,
        limit: int,
    ) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(
                    OrderModel.payment_status == PaymentStatus.PENDING.value,
                    OrderModel.payment_reference.is_not(None),
                    OrderModel.created_at < older_than,
                    OrderModel.created_at > newer_than,
                )
                .order_by(OrderModel.created_at)
                .limit(limit)
            ).scalars().all()
        )

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
