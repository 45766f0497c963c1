# marketplace/services/livreur_service.py
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy.orm import Session

from marketplace.data.models.livreur import LivreurModel
from marketplace.data.models.order import OrderModel
from marketplace.domain.constants import (
    ACTIVE_DELIVERY_STATUSES,
    FINISHED_DELIVERY_STATUSES,
    LivreurStatus,
    OrderStatus,
)
from marketplace.domain.exceptions import (
    AuthorizationError,
    ConcurrencyConflictError,
    InvalidStateError,
    NotFoundError,
)
from marketplace.domain.order_state import (
    COURIER_TARGETS,
    DeliveryProof,
    Refusal,
    add_status_change,
    ensure_transition,
    minutes_between,
)
from marketplace.domain.schemas import CourierStatusUpdate, CurrentUser, LivreurCreate, LivreurOut
from marketplace.repos.livreur_repo import LivreurRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.user_repo import UserRepo
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_service import claim_order, order_to_dict, pagination
from marketplace.utils.settings import DEFAULT_MAX_ORDERS_AT_ONCE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

# po tych statusach kurier nie trzyma juz paczki
_RELEASES_SLOT = {
    OrderStatus.DELIVERED: True,
    OrderStatus.RETURNED: False,
}


class LivreurService:
    """
    Rejestr kurierow (admin) i praca kuriera: statusy dostawy, skan, dashboard.
    """

    def __init__(self, db: Session, notification_service: NotificationService):
        self.db = db
        self.repo = LivreurRepo(db)
        self.orders = OrderRepo(db)
        self.users = UserRepo(db)
        self.notification_service = notification_service

    def _get(self, user_id: int) -> LivreurModel:
        livreur = self.repo.get_by_user_id(user_id)
        if not livreur:
            raise NotFoundError("Kurier", user_id)
        return livreur

    def _bump(self, livreur: LivreurModel) -> None:
        if self.repo.update_livreur_version(livreur.id, livreur.version) == 0:
            self.repo.rollback()
            raise ConcurrencyConflictError(
                f"Konflikt wspolbieznosci - kurier {livreur.user_id} zostal zmodyfikowany przez inna operacje"
            )

    # =====================================================
    # REJESTR (admin)
    # =====================================================
    def register_livreur(self, payload: LivreurCreate) -> LivreurOut:
        if not self.users.get_user(payload.user_id):
            raise NotFoundError("Uzytkownik", payload.user_id)
        if self.repo.get_by_user_id(payload.user_id):
            raise InvalidStateError(f"Uzytkownik {payload.user_id} jest juz kurierem")

        livreur = LivreurModel(
            user_id=payload.user_id,
            zone=payload.zone.strip(),
            additional_zones=[z.strip() for z in payload.additional_zones if z.strip()],
            vehicle_type=payload.vehicle_type.value,
            max_orders_at_once=payload.max_orders_at_once or DEFAULT_MAX_ORDERS_AT_ONCE,
            status=LivreurStatus.PENDING.value,
            is_available=True,
            version=1,
        )
        created = self.repo.create(livreur)
        logger.info(f"Livreur registered for user {created.user_id} (zone {created.zone})")
        return LivreurOut.model_validate(created)

    def set_status(self, user_id: int, status: LivreurStatus) -> LivreurOut:
        livreur = self._get(user_id)
        self._bump(livreur)
        livreur.status = status.value
        self.repo.commit()
        logger.info(f"Livreur {user_id} status -> {status.value}")
        return LivreurOut.model_validate(livreur)

    def update_availability(self, actor: CurrentUser, is_available: bool) -> LivreurOut:
        livreur = self._get(actor.id)
        self._bump(livreur)
        livreur.is_available = is_available
        self.repo.commit()
        logger.info(f"Livreur {actor.id} available={is_available}")
        return LivreurOut.model_validate(livreur)

    # =====================================================
    # DOSTAWA
    # =====================================================
    def update_order_status(self, actor: CurrentUser, order_id: int, update: CourierStatusUpdate) -> Dict[str, Any]:
        """
        Use Case: Kurier zmienia status dostawy.

        1. Tylko przypisany kurier
        2. Tylko statusy kuriera, zgodnie z tabela przejsc
        3. delivered/returned: statystyki kuriera + zwolnienie miejsca
        """
        order = self.orders.get_order(order_id)
        if not order:
            raise NotFoundError("Zamowienie", order_id)
        if order.livreur_id != actor.id:
            raise AuthorizationError("Zamowienie nie jest przypisane do tego kuriera")

        target = ensure_transition(order.status, update.status, COURIER_TARGETS)
        payload = None
        if target == OrderStatus.DELIVERED:
            payload = DeliveryProof(
                photo=update.photo,
                signature=update.signature,
                notes=update.note,
                location=update.location,
            )
        elif target == OrderStatus.REFUSED:
            payload = Refusal(
                reason=update.refusal_reason,
                details=update.refusal_details,
                photo=update.photo,
            )

        livreur = self.repo.get_by_user_id(actor.id)

        claim_order(self.orders, order)
        add_status_change(order, target, update.note, actor.id, payload, allowed_targets=COURIER_TARGETS)

        if target in _RELEASES_SLOT and livreur is not None:
            self._bump(livreur)
            success = _RELEASES_SLOT[target]
            minutes = minutes_between(order.picked_up_at, order.delivered_at) if success else 0
            livreur.record_delivery(success, minutes)
            for entry in list(livreur.current_orders):
                if entry.order_id == order.id:
                    livreur.current_orders.remove(entry)

        self.orders.commit()
        logger.info(f"Order {order.id} -> {target.value} by livreur {actor.id}")

        self.notification_service.order_status_changed(order)
        return order_to_dict(order)

    def scan(self, actor: CurrentUser, code: str) -> Dict[str, Any]:
        order = self.orders.get_by_delivery_code(code.strip().upper())
        if not order:
            raise NotFoundError("Kod dostawy", code)
        if order.livreur_id is not None and order.livreur_id != actor.id and not actor.is_admin:
            raise AuthorizationError("Zamowienie jest przypisane do innego kuriera")

        data = order_to_dict(order)
        return {
            "id": order.id,
            "order_number": order.order_number,
            "delivery_code": order.delivery_code,
            "status": order.status,
            "total_amount": order.total_amount,
            "payment_method": order.payment_method,
            "payment_status": order.payment_status,
            "items": data["items"],
            "shipping_address": data["shipping_address"],
            "customer": {"name": order.recipient_name, "phone": order.phone},
            "vendor_id": order.vendor_id,
            "customer_notes": order.customer_notes,
            "created_at": order.created_at,
        }

    # =====================================================
    # WIDOKI KURIERA
    # =====================================================
    def dashboard(self, actor: CurrentUser) -> Dict[str, Any]:
        livreur = self._get(actor.id)
        today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        delivered = self.orders.count_for_livreur(
            actor.id, [OrderStatus.DELIVERED.value], delivered_since=today
        )
        pending = self.orders.count_for_livreur(actor.id, [s.value for s in ACTIVE_DELIVERY_STATUSES])
        return {
            "livreur": LivreurOut.model_validate(livreur),
            "today_stats": {"delivered": delivered, "pending": pending},
        }

    def my_orders(self, actor: CurrentUser, status: OrderStatus | None, page: int, limit: int) -> Dict[str, Any]:
        statuses = [status.value] if status else [s.value for s in ACTIVE_DELIVERY_STATUSES]
        orders, total = self.orders.list_for_livreur(
            actor.id,
            statuses,
            page,
            limit,
            (OrderModel.assigned_to_livreur_at.desc(), OrderModel.id.desc()),
        )
        return {
            "orders": [order_to_dict(o) for o in orders],
            "pagination": pagination(page, limit, total),
        }

    def history(self, actor: CurrentUser, page: int, limit: int) -> Dict[str, Any]:
        orders, total = self.orders.list_for_livreur(
            actor.id,
            [s.value for s in FINISHED_DELIVERY_STATUSES],
            page,
            limit,
            (OrderModel.delivered_at.desc(), OrderModel.id.desc()),
        )
        return {
            "orders": [
                {
                    "id": o.id,
                    "order_number": o.order_number,
                    "status": o.status,
                    "total_amount": o.total_amount,
                    "delivered_at": o.delivered_at,
                    "city": o.city,
                }
                for o in orders
            ],
            "pagination": pagination(page, limit, total),
        }
