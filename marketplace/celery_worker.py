# marketplace/celery_worker.py
from celery import Celery

from marketplace.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "marketplace",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAZNE: explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "marketplace.tasks.reconcile",
    "marketplace.services.notification_service",
)

# sweep dla platnosci, ktorych nie potwierdzil ani redirect, ani webhook
celery_app.conf.beat_schedule = {
    "reconcile-payments-every-5-minutes": {
        "task": "marketplace.tasks.reconcile.reconcile_payments_task",
        "schedule": 300.0,
    },
}

celery_app.conf.timezone = "UTC"
