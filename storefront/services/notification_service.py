# storefront/services/notification_service.py
from kombu.exceptions import OperationalError

from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysyłania powiadomień.
    Używa Celery do asynchronicznego przetwarzania.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int, status: str):
        """
        Wysyła powiadomienie o zmianie statusu zamówienia.
        Wywoływane PO commicie, więc brak brokera nie cofa zamówienia.
        """
        try:
            send_order_notification_task.delay(user_id, order_id, status)
        except OperationalError as e:
            logger.warning(f"Nie udalo sie zlecic powiadomienia dla order {order_id}: {e}")


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int, status: str):
    """
    Celery task - w prawdziwym systemie wysłałby email/SMS/push.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_id} is {status}")

    return {"user_id": user_id, "order_id": order_id, "status": status, "sent": True}
