# marketplace/api/routers/notifications.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import MarkReadIn, NotificationsOut
from marketplace.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_service(db: Session):
    return NotificationService(db)


@router.get("", response_model=NotificationsOut)
def list_notifications(
    user_id: str = Query(...),
    limit: int = Query(20, gt=0, le=100),
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.list_notifications(user_id, limit, unread_only)


@router.post("/read")
def mark_read(
    payload: MarkReadIn,
    user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        updated = svc.mark_read(user_id, payload.notification_id, payload.mark_all)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "updated": updated}
