# marketplace/services/assignment_service.py
from contextlib import contextmanager
from typing import Any, Dict
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.livreur import LivreurCurrentOrderModel, LivreurModel
from marketplace.data.models.order import OrderModel
from marketplace.domain.constants import OrderStatus, Role
from marketplace.domain.exceptions import (
    AuthorizationError,
    ConcurrencyConflictError,
    InvalidStateError,
    NoCandidateError,
    NotFoundError,
)
from marketplace.domain.order_state import (
    ASSIGNMENT_TARGETS,
    add_status_change,
    ensure_transition,
    revert_assignment,
)
from marketplace.domain.schemas import CurrentUser
from marketplace.repos.livreur_repo import LivreurRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_service import claim_order, pagination, vendor_order_to_dict
from marketplace.utils.settings import ASSIGNMENT_LOCK_TTL_SECONDS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def livreur_stats(livreur: LivreurModel) -> Dict[str, Any]:
    return {
        "total_deliveries": livreur.total_deliveries,
        "successful_deliveries": livreur.successful_deliveries,
        "failed_deliveries": livreur.failed_deliveries,
        "success_rate": livreur.success_rate,
        "rating": livreur.rating,
        "average_delivery_time": livreur.average_delivery_time,
    }


def pick_candidate(livreurs, city: str) -> LivreurModel | None:
    """
    Wybor kuriera dla auto-assign:
    strefa -> pojemnosc -> najmniej zamowien -> wyzszy rating.
    """
    candidates = [l for l in livreurs if l.serves_zone(city) and l.can_accept_order()]
    if not candidates:
        return None
    # sort stabilny - przy pelnym remisie wygrywa nizsze id
    candidates.sort(key=lambda l: (len(l.current_orders), -l.rating))
    return candidates[0]


class AssignmentService:
    """
    Przypisywanie zamowien ready_to_ship do kurierow.

    Sekwencja read-check-write jest chroniona dwa razy:
    - redis lock na zamowienie (jeden przypisujacy naraz)
    - optimistic locking na wersji zamowienia i kuriera (jedna transakcja)
    """

    def __init__(self, db: Session, lock_service: LockService, notification_service: NotificationService):
        self.db = db
        self.orders = OrderRepo(db)
        self.livreurs = LivreurRepo(db)
        self.lock_service = lock_service
        self.notification_service = notification_service

    # =====================================================
    # QUERY
    # =====================================================
    def list_available_livreurs(self, zone: str | None = None, city: str | None = None) -> Dict[str, Any]:
        result = []
        for livreur in self.livreurs.list_active():
            if not livreur.can_accept_order():
                continue
            # zone i city filtruja niezaleznie - podane oba musza pasowac
            if any(term and not livreur.serves_zone(term) for term in (zone, city)):
                continue
            user = livreur.user
            result.append({
                "id": livreur.id,
                "user_id": livreur.user_id,
                "name": user.name if user else "",
                "phone": user.phone if user else None,
                "email": user.email if user else None,
                "vehicle_type": livreur.vehicle_type,
                "zone": livreur.zone,
                "additional_zones": list(livreur.additional_zones or []),
                "current_orders_count": len(livreur.current_orders),
                "max_orders": livreur.max_orders_at_once,
                "stats": livreur_stats(livreur),
            })
        return {"livreurs": result, "total": len(result)}

    def list_ready_orders(self, actor: CurrentUser, city: str | None, page: int, limit: int) -> Dict[str, Any]:
        vendor_id = actor.id if actor.role == Role.VENDOR else None
        orders, total = self.orders.list_ready_to_ship(city, vendor_id, page, limit)
        return {
            "orders": [vendor_order_to_dict(o) for o in orders],
            "pagination": pagination(page, limit, total),
        }

    # =====================================================
    # COMMANDS
    # =====================================================
    @contextmanager
    def _order_lock(self, order_id: int, actor: CurrentUser):
        owner = f"{actor.id}:{uuid4().hex}"
        if not self.lock_service.acquire_order_lock(order_id, owner, ASSIGNMENT_LOCK_TTL_SECONDS):
            raise ConcurrencyConflictError(
                f"Zamowienie {order_id} jest wlasnie przypisywane przez inna operacje"
            )
        try:
            yield
        finally:
            self.lock_service.release_order_lock(order_id, owner)

    def _get_order(self, order_id: int, actor: CurrentUser) -> OrderModel:
        order = self.orders.get_order(order_id)
        if not order:
            raise NotFoundError("Zamowienie", order_id)
        if actor.role == Role.VENDOR and order.vendor_id != actor.id:
            raise AuthorizationError("Sprzedawca moze przypisywac tylko wlasne zamowienia")
        return order

    def _get_livreur(self, livreur_user_id: int) -> LivreurModel:
        livreur = self.livreurs.get_by_user_id(livreur_user_id)
        if not livreur:
            raise NotFoundError("Kurier", livreur_user_id)
        return livreur

    def assign_order_to_livreur(self, order_id: int, livreur_user_id: int, actor: CurrentUser) -> Dict[str, Any]:
        with self._order_lock(order_id, actor):
            order = self._get_order(order_id, actor)
            self._check_ready(order)
            livreur = self._get_livreur(livreur_user_id)
            return self._assign(order, livreur, actor)

    def auto_assign_order(self, order_id: int, actor: CurrentUser) -> Dict[str, Any]:
        with self._order_lock(order_id, actor):
            order = self._get_order(order_id, actor)
            self._check_ready(order)

            livreur = pick_candidate(self.livreurs.list_active(), order.city)
            if livreur is None:
                logger.info(f"Auto-assign order {order.id}: no courier in zone {order.city}")
                raise NoCandidateError(order.city)

            logger.info(f"Auto-assign order {order.id} -> livreur {livreur.user_id}")
            return self._assign(order, livreur, actor)

    @staticmethod
    def _check_ready(order: OrderModel) -> None:
        if order.status != OrderStatus.READY_TO_SHIP.value:
            raise InvalidStateError(
                f"Zamowienie musi byc w statusie ready_to_ship (aktualny status: {order.status})"
            )

    def _assign(self, order: OrderModel, livreur: LivreurModel, actor: CurrentUser) -> Dict[str, Any]:
        # walidacja przed jakakolwiek zmiana
        ensure_transition(order.status, OrderStatus.ASSIGNED_TO_DELIVERY, ASSIGNMENT_TARGETS)
        if not livreur.can_accept_order():
            raise InvalidStateError(
                f"Kurier {livreur.user_id} nie moze przyjac zamowienia "
                f"({len(livreur.current_orders)}/{livreur.max_orders_at_once}, status {livreur.status})"
            )

        claim_order(self.orders, order)
        if self.livreurs.update_livreur_version(livreur.id, livreur.version) == 0:
            self.livreurs.rollback()
            raise ConcurrencyConflictError(
                f"Konflikt wspolbieznosci - kurier {livreur.user_id} zostal zmodyfikowany przez inna operacje"
            )

        order.livreur_id = livreur.user_id
        add_status_change(
            order,
            OrderStatus.ASSIGNED_TO_DELIVERY,
            f"Assignée au livreur {livreur.user_id}",
            actor.id,
            allowed_targets=ASSIGNMENT_TARGETS,
        )
        livreur.current_orders.append(LivreurCurrentOrderModel(order_id=order.id))

        try:
            self.orders.commit()
        except IntegrityError as e:
            # order_id juz siedzi u innego kuriera
            self.orders.rollback()
            raise ConcurrencyConflictError(f"Zamowienie {order.id} jest juz przypisane") from e

        logger.info(f"Order {order.id} assigned to livreur {livreur.user_id} by {actor.id}")
        self.notification_service.order_assigned(livreur.user_id, order)

        user = livreur.user
        return {
            "order": {
                "id": order.id,
                "order_number": order.order_number,
                "status": order.status,
                "delivery_code": order.delivery_code,
            },
            "livreur": {
                "livreur_id": livreur.user_id,
                "name": user.name if user else "",
                "phone": user.phone if user else None,
                "vehicle_type": livreur.vehicle_type,
            },
        }

    def unassign_order(self, order_id: int, reason: str | None, actor: CurrentUser) -> Dict[str, Any]:
        """Cofniecie przypisania - tylko admin, tylko przed odbiorem paczki."""
        if not actor.is_admin:
            raise AuthorizationError("Tylko administrator moze cofnac przypisanie")

        with self._order_lock(order_id, actor):
            order = self._get_order(order_id, actor)
            if order.livreur_id is None:
                raise InvalidStateError(f"Zamowienie {order.id} nie ma przypisanego kuriera")
            if order.status != OrderStatus.ASSIGNED_TO_DELIVERY.value:
                raise InvalidStateError(
                    f"Nie mozna cofnac przypisania w statusie {order.status} - paczka juz odebrana"
                )

            previous = order.livreur_id
            livreur = self.livreurs.get_by_user_id(previous)

            claim_order(self.orders, order)
            if livreur is not None:
                if self.livreurs.update_livreur_version(livreur.id, livreur.version) == 0:
                    self.livreurs.rollback()
                    raise ConcurrencyConflictError(
                        f"Konflikt wspolbieznosci - kurier {livreur.user_id} zostal zmodyfikowany przez inna operacje"
                    )
                for entry in list(livreur.current_orders):
                    if entry.order_id == order.id:
                        livreur.current_orders.remove(entry)

            revert_assignment(order, reason or "Désassignée", actor.id)
            self.orders.commit()

        logger.info(f"Order {order.id} unassigned from livreur {previous} by {actor.id}")
        self.notification_service.order_unassigned(previous, order)
        return {
            "order": {
                "id": order.id,
                "order_number": order.order_number,
                "status": order.status,
                "delivery_code": order.delivery_code,
            },
            "previous_livreur_id": previous,
        }
