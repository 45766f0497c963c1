# marketplace/services/notification_service.py
from marketplace.celery_worker import celery_app
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

_STATUS_MESSAGES = {
    "assigned_to_delivery": "Votre commande {n} a été assignée à un livreur. Livraison prévue bientôt!",
    "picked_up": "Votre commande {n} a été récupérée par le livreur.",
    "out_for_delivery": "Votre commande {n} est en route ! Le livreur arrive bientôt.",
    "delivered": "Votre commande {n} a été livrée. Merci pour votre confiance !",
    "delivery_attempted": "Tentative de livraison pour {n}. Le livreur réessaiera bientôt.",
    "refused": "La commande {n} a été refusée. Veuillez nous contacter.",
    "returned": "La commande {n} est en cours de retour.",
    "cancelled": "Votre commande {n} a été annulée.",
    "refunded": "Votre commande {n} a été remboursée.",
}


def status_message(status: str, order_number: str) -> str:
    template = _STATUS_MESSAGES.get(status, "Statut de votre commande {n} mis à jour.")
    return template.format(n=order_number)


class NotificationService:
    """
    Serwis do wysyłania powiadomień.
    Używa Celery; wysylka jest fire-and-forget - blad kolejki nie cofa
    zmiany statusu, ktora juz zostala zapisana.
    """

    def notify(self, user_id: int, notification_type: str, content: str, data: dict | None = None):
        try:
            send_notification_task.delay(user_id, notification_type, content, data or {})
        except Exception as e:
            logger.error(f"Nie udalo sie wyslac powiadomienia {notification_type} do {user_id}: {e}")

    def order_created(self, order):
        self.notify(
            order.user_id,
            "order_created",
            f"Votre commande {order.order_number} a été créée.",
            {"order_id": order.id, "order_number": order.order_number},
        )
        if order.vendor_id:
            self.notify(
                order.vendor_id,
                "new_order",
                f"Nouvelle commande {order.order_number} ({order.client_code})",
                {"order_id": order.id},
            )

    def order_assigned(self, livreur_user_id: int, order):
        self.notify(
            livreur_user_id,
            "order_assigned",
            f"Nouvelle livraison assignée: {order.order_number} - {order.city}",
            {
                "order_id": order.id,
                "order_number": order.order_number,
                "delivery_code": order.delivery_code,
            },
        )
        self.notify(
            order.user_id,
            "order_status",
            status_message("assigned_to_delivery", order.order_number),
        )

    def order_unassigned(self, livreur_user_id: int, order):
        self.notify(
            livreur_user_id,
            "order_unassigned",
            f"La commande {order.order_number} vous a été retirée.",
            {"order_id": order.id, "order_number": order.order_number},
        )

    def order_status_changed(self, order):
        self.notify(
            order.user_id,
            "order_status",
            status_message(order.status, order.order_number),
            {"order_id": order.id, "status": order.status},
        )


@celery_app.task(name="marketplace.services.notification_service.send_notification_task")
def send_notification_task(user_id: int, notification_type: str, content: str, data: dict):
    """
    Celery task - w prawdziwym systemie wysłałby email/SMS/push.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] {notification_type} -> user {user_id}: {content}")
    return {"user_id": user_id, "type": notification_type, "status": "sent"}
