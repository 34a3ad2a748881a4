# marketplace/repos/notification_repo.py
from typing import List

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from marketplace.data.models.notification import NotificationModel


class NotificationRepo:
    def __init__(self, db: Session):
        self.db = db

    def create(self, notification: NotificationModel) -> NotificationModel:
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def get(self, notification_id: str) -> NotificationModel | None:
        return self.db.get(NotificationModel, notification_id)

    def list_for_user(self, user_id: str, limit: int = 20, unread_only: bool = False) -> List[NotificationModel]:
        query = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        query = query.order_by(NotificationModel.created_at.desc()).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def unread_count(self, user_id: str) -> int:
        return self.db.execute(
            select(func.count(NotificationModel.id)).where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
        ).scalar_one()

    def mark_read(self, user_id: str, notification_id: str) -> int:
        result = self.db.execute(
            update(NotificationModel)
            .where(NotificationModel.id == notification_id, NotificationModel.user_id == user_id)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def mark_all_read(self, user_id: str) -> int:
        result = self.db.execute(
            update(NotificationModel)
            .where(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount
