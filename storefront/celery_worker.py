# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
    PENDING_ORDER_TTL_SECONDS,
)

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "storefront.tasks.expire",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-pending-orders-every-minute": {
        "task": "storefront.tasks.expire.expire_pending_orders_task",
        "schedule": 60.0,  # co 60 sekund
        "kwargs": {"ttl_seconds": PENDING_ORDER_TTL_SECONDS},
    },
}

celery_app.conf.timezone = "UTC"
# testy / lokalnie bez brokera
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
