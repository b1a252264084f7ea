from unittest.mock import patch

from storefront.services import notification_service
from storefront.services.notification_service import (
    NotificationService,
    checkout_started_task,
    item_added_task,
)


def test_item_added_is_dispatched():
    with patch.object(notification_service.item_added_task, "delay") as delay:
        NotificationService().item_added("s1", "Sword", 2)
    delay.assert_called_once_with("s1", "Sword", 2)


def test_broker_outage_is_swallowed():
    with patch.object(notification_service.checkout_started_task, "delay", side_effect=ConnectionError("no broker")):
        NotificationService().checkout_started("s1", "cs_1", None)


def test_tasks_run_inline():
    assert item_added_task("s1", "Sword", 2) == {
        "session_id": "s1", "title": "Sword", "quantity": 2, "status": "sent",
    }
    assert checkout_started_task("s1", "cs_1", "alice")["payment_session_id"] == "cs_1"
