# marketplace/tasks/reconcile.py
from marketplace.celery_worker import celery_app
from marketplace.data.database import SessionLocal
from marketplace.services.settlement_service import SettlementService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="marketplace.tasks.reconcile.reconcile_payments_task")
def reconcile_payments_task():
    logger.info("Reconcile payments task started")

    db = SessionLocal()
    try:
        return SettlementService(db).reconcile_pending()
    finally:
        db.close()
