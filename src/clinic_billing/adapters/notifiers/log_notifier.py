"""
Entrega de notificações ao paciente.

O faturamento só publica `NotificationRequestedEvent`; este notifier grava o
pedido no log estruturado, que é consumido pelo serviço de mensageria.
"""
import structlog

from clinic_billing.core.domain.events.events import NotificationRequestedEvent
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

logger = structlog.get_logger(__name__)


class LogNotifier:
    def __init__(self) -> None:
        self.sent: list[NotificationRequestedEvent] = []

    def send(self, event: NotificationRequestedEvent) -> None:
        if not event.recipient:
            logger.warning(
                "notification.skipped_no_recipient",
                notification_type=event.notification_type,
                channel=event.channel,
                patient_id=str(event.patient_id),
            )
            return
        logger.info(
            "notification.requested",
            notification_type=event.notification_type,
            channel=event.channel,
            recipient=event.recipient,
            patient_id=str(event.patient_id),
            reference_id=str(event.reference_id),
        )
        self.sent.append(event)

    def register_subscribers(self, dispatcher: EventDispatcher) -> None:
        dispatcher.subscribe(NotificationRequestedEvent, self.send)
