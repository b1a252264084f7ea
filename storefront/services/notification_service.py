# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Storefront events ("item added", "checkout started").
    Dispatched through Celery; a broker outage is logged and never breaks
    the cart or checkout call that emitted the event.
    """

    def item_added(self, session_id: str, title: str, quantity: int) -> None:
        self._dispatch(item_added_task, session_id, title, quantity)

    def checkout_started(self, session_id: str, payment_session_id: str | None, user_id: str | None) -> None:
        self._dispatch(checkout_started_task, session_id, payment_session_id, user_id)

    @staticmethod
    def _dispatch(task, *args) -> None:
        try:
            task.delay(*args)
        except Exception as e:
            logger.warning(f"Could not dispatch {task.name}: {e}")


@celery_app.task(name="storefront.services.notification_service.item_added_task")
def item_added_task(session_id: str, title: str, quantity: int):
    logger.info(f"[NOTIFICATION] Session {session_id}: added to cart: {title} (quantity: {quantity})")
    return {"session_id": session_id, "title": title, "quantity": quantity, "status": "sent"}


@celery_app.task(name="storefront.services.notification_service.checkout_started_task")
def checkout_started_task(session_id: str, payment_session_id: str | None, user_id: str | None):
    logger.info(
        f"[NOTIFICATION] Session {session_id}: checkout session {payment_session_id} "
        f"created for {user_id or 'guest'}"
    )
    return {"session_id": session_id, "payment_session_id": payment_session_id, "status": "sent"}
