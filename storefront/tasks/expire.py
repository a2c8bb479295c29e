# storefront/tasks/expire.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.order_service import OrderService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.expire.expire_pending_orders_task")
def expire_pending_orders_task(ttl_seconds: int | None = None):
    logger.info("Expire pending orders task started")

    db = SessionLocal()
    try:
        expired = OrderService(db).expire_pending_orders(ttl_seconds=ttl_seconds)
    finally:
        db.close()

    return {"expired": expired}
