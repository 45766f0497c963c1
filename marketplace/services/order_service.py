# marketplace/services/order_service.py
import math
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.domain.codes import regenerate_codes
from marketplace.domain.constants import OrderStatus, PaymentStatus, REFUNDABLE_STATUSES, Role
from marketplace.domain.exceptions import (
    AuthorizationError,
    CodeCollisionError,
    ConcurrencyConflictError,
    InvalidStateError,
    NotFoundError,
)
from marketplace.domain.order_state import (
    FULFILLMENT_TARGETS,
    add_status_change,
    ensure_transition,
    force_status,
    record_creation,
)
from marketplace.domain.pricing import item_subtotal, money
from marketplace.domain.schemas import CurrentUser, OrderCreate
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.notification_service import NotificationService
from marketplace.utils.retry import code_collision_retry
from marketplace.utils.settings import ESTIMATED_DELIVERY_DAYS, TRACKING_URL_BASE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _shipping_address(order: OrderModel, anonymized: bool = False) -> Dict[str, Any]:
    address = {
        "street": order.street,
        "city": order.city,
        "postal_code": order.postal_code,
        "country": order.country,
        "instructions": order.instructions,
    }
    if not anonymized:
        address["recipient_name"] = order.recipient_name
        address["phone"] = order.phone
    return address


def _items(order: OrderModel):
    return [
        {
            "product_id": i.product_id,
            "vendor_id": i.vendor_id,
            "title": i.title,
            "price": i.price,
            "quantity": i.quantity,
            "discount": i.discount,
            "subtotal": i.subtotal,
        }
        for i in order.items
    ]


def order_to_dict(order: OrderModel) -> Dict[str, Any]:
    #dict przeksztalcany w jsona (OrderOut)
    return {
        "id": order.id,
        "order_number": order.order_number,
        "client_code": order.client_code,
        "delivery_code": order.delivery_code,
        "user_id": order.user_id,
        "vendor_id": order.vendor_id,
        "livreur_id": order.livreur_id,
        "status": order.status,
        "items": _items(order),
        "status_history": [
            {"status": h.status, "date": h.date, "note": h.note, "updated_by": h.updated_by}
            for h in order.status_history
        ],
        "shipping_address": _shipping_address(order),
        "subtotal": order.subtotal,
        "shipping_cost": order.shipping_cost,
        "tax": order.tax,
        "discount": order.discount,
        "total_amount": order.total_amount,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "carrier": order.carrier,
        "tracking_number": order.tracking_number,
        "tracking_url": order.tracking_url,
        "estimated_delivery": order.estimated_delivery,
        "actual_delivery": order.actual_delivery,
        "delivery_attempts": order.delivery_attempts or 0,
        "assigned_to_livreur_at": order.assigned_to_livreur_at,
        "picked_up_at": order.picked_up_at,
        "delivered_at": order.delivered_at,
        "delivery_proof": order.delivery_proof,
        "refusal_info": order.refusal_info,
        "cancellation_reason": order.cancellation_reason,
        "cancelled_at": order.cancelled_at,
        "refund_status": order.refund_status,
        "refund_amount": order.refund_amount,
        "customer_notes": order.customer_notes,
        "created_at": order.created_at,
    }


def vendor_order_to_dict(order: OrderModel) -> Dict[str, Any]:
    # sprzedawca nie widzi user_id, nazwiska ani telefonu klienta
    return {
        "id": order.id,
        "order_number": order.order_number,
        "client_code": order.client_code,
        "delivery_code": order.delivery_code,
        "status": order.status,
        "items": _items(order),
        "shipping_address": _shipping_address(order, anonymized=True),
        "subtotal": order.subtotal,
        "shipping_cost": order.shipping_cost,
        "tax": order.tax,
        "discount": order.discount,
        "total_amount": order.total_amount,
        "livreur_id": order.livreur_id,
        "carrier": order.carrier,
        "tracking_number": order.tracking_number,
        "created_at": order.created_at,
    }


def pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total": total,
    }


def claim_order(repo: OrderRepo, order: OrderModel) -> None:
    """
    Optimistic locking na zamowieniu: wersja + aktualny status.
    rowcount 0 -> ktos zmienil zamowienie w miedzyczasie.
    """
    rowcount = repo.update_order_version(
        order_id=order.id,
        old_version=order.version,
        new_data={"version": order.version + 1},
        expected_status=order.status,
    )
    if rowcount == 0:
        repo.rollback()
        raise ConcurrencyConflictError(
            f"Konflikt wspolbieznosci - zamowienie {order.id} zostalo zmodyfikowane przez inna operacje"
        )


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień: checkout, realizacja przez
    sprzedawce, anulowanie i zwrot.
    """

    def __init__(self, db: Session, notification_service: NotificationService, product_client):
        self.db = db
        self.repo = OrderRepo(db)
        self.notification_service = notification_service
        self.product_client = product_client

    # =====================================================
    # QUERY
    # =====================================================
    def _get(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Zamowienie", order_id)
        return order

    def _get_for_vendor(self, order_id: int, user: CurrentUser) -> OrderModel:
        order = self._get(order_id)
        if not user.is_admin and order.vendor_id != user.id:
            # sprzedawca nie dowiaduje sie o cudzych zamowieniach
            raise NotFoundError("Zamowienie", order_id)
        return order

    def get_order(self, order_id: int, user: CurrentUser) -> Dict[str, Any]:
        order = self._get(order_id)
        if not user.is_staff and order.user_id != user.id:
            raise AuthorizationError("Brak dostepu do zamowienia")
        return order_to_dict(order)

    def list_vendor_orders(self, user: CurrentUser, status: str | None, search: str | None, page: int, limit: int):
        orders, total = self.repo.list_for_vendor(user.id, status, search, page, limit)
        return {
            "orders": [vendor_order_to_dict(o) for o in orders],
            "pagination": pagination(page, limit, total),
        }

    def get_vendor_order(self, order_id: int, user: CurrentUser) -> Dict[str, Any]:
        return vendor_order_to_dict(self._get_for_vendor(order_id, user))

    # =====================================================
    # COMMANDS
    # =====================================================
    def create_order(self, user: CurrentUser, payload: OrderCreate) -> Dict[str, Any]:
        """
        Use Case: Tworzenie zamówienia (koniec checkoutu).

        1. Rezerwuje stan magazynu (product-service)
        2. Tworzy zamówienie w statusie pending (kody i kwoty w before_flush)
        3. Przy kolizji kodu generuje nowe i ponawia insert
        """
        address = payload.shipping_address
        order = OrderModel(
            user_id=user.id,
            vendor_id=payload.vendor_id,
            recipient_name=address.recipient_name,
            phone=address.phone,
            street=address.street,
            city=address.city.strip(),
            postal_code=address.postal_code,
            country=address.country,
            instructions=address.instructions,
            shipping_cost=payload.shipping_cost,
            tax=payload.tax,
            discount=payload.discount,
            payment_method=payload.payment_method.value,
            payment_status=PaymentStatus.PENDING.value,
            customer_notes=payload.customer_notes,
            version=1,
            delivery_attempts=0,
            items=[
                OrderItemModel(
                    product_id=i.product_id,
                    vendor_id=i.vendor_id if i.vendor_id is not None else payload.vendor_id,
                    title=i.title,
                    price=i.price,
                    quantity=i.quantity,
                    discount=i.discount,
                )
                for i in payload.items
            ],
        )
        self._check_discount(order)
        record_creation(order, actor_id=user.id)

        reserved = self._reserve_stock(order)
        try:
            self._insert_order(order)
        except Exception:
            self._restore_stock(reserved)
            raise

        logger.info(f"Order {order.id} ({order.order_number}) created for user {user.id}")
        self.notification_service.order_created(order)
        return order_to_dict(order)

    @staticmethod
    def _check_discount(order: OrderModel) -> None:
        # rabat zamowienia nie moze dac ujemnego totalu
        subtotal = sum((item_subtotal(i.price, i.quantity, i.discount) for i in order.items), money(0))
        ceiling = subtotal + money(order.shipping_cost) + money(order.tax)
        if money(order.discount) > ceiling:
            raise InvalidStateError(
                f"Rabat {money(order.discount)} przekracza wartosc zamowienia {ceiling}"
            )

    @code_collision_retry()
    def _insert_order(self, order: OrderModel) -> None:
        try:
            self.repo.add(order)
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            logger.warning(f"Kolizja kodu zamowienia {order.order_number}, generuje nowe kody")
            regenerate_codes(order)
            raise CodeCollisionError("Nie udalo sie nadac unikalnych kodow zamowienia") from e

    def _reserve_stock(self, order: OrderModel):
        reserved = []
        for item in order.items:
            try:
                self.product_client.adjust_stock(item.product_id, -item.quantity)
            except Exception as e:
                logger.error(f"Blad rezerwacji produktu {item.product_id}: {e}")
                self._restore_stock(reserved)
                raise InvalidStateError(f"Nie udalo sie zarezerwowac produktu {item.product_id}") from e
            reserved.append((item.product_id, item.quantity))
        return reserved

    def _restore_stock(self, items) -> None:
        for product_id, quantity in items:
            try:
                self.product_client.adjust_stock(product_id, quantity)
            except Exception as e:
                # anulowanie juz zapisane - tylko logujemy
                logger.error(f"Nie udalo sie przywrocic stanu produktu {product_id} (+{quantity}): {e}")

    def _advance(self, order: OrderModel, target: OrderStatus, note: str, actor_id: int) -> None:
        ensure_transition(order.status, target, FULFILLMENT_TARGETS)
        claim_order(self.repo, order)
        add_status_change(order, target, note, actor_id, allowed_targets=FULFILLMENT_TARGETS)

    def confirm_order(self, order_id: int, user: CurrentUser) -> Dict[str, Any]:
        order = self._get_for_vendor(order_id, user)
        self._advance(order, OrderStatus.CONFIRMED, "Commande confirmée par le vendeur", user.id)
        self.repo.commit()
        logger.info(f"Order {order.id} confirmed by {user.id}")
        return vendor_order_to_dict(order)

    def process_order(self, order_id: int, user: CurrentUser) -> Dict[str, Any]:
        order = self._get_for_vendor(order_id, user)
        self._advance(order, OrderStatus.PROCESSING, "Commande en préparation", user.id)
        self.repo.commit()
        logger.info(f"Order {order.id} processing by {user.id}")
        return vendor_order_to_dict(order)

    def ship_order(self, order_id: int, user: CurrentUser, carrier: str | None, tracking_number: str | None):
        """Vendor oddaje paczke - zamowienie czeka na przypisanie kuriera."""
        order = self._get_for_vendor(order_id, user)
        self._advance(
            order,
            OrderStatus.READY_TO_SHIP,
            "Commande prête à expédier - En attente d'assignation livreur",
            user.id,
        )
        order.carrier = carrier
        order.tracking_number = tracking_number
        order.tracking_url = f"{TRACKING_URL_BASE.rstrip('/')}/{tracking_number}" if tracking_number else None
        order.estimated_delivery = datetime.now(timezone.utc) + timedelta(days=ESTIMATED_DELIVERY_DAYS)
        self.repo.commit()
        logger.info(f"Order {order.id} ready to ship")
        return vendor_order_to_dict(order)

    def cancel_order(self, order_id: int, user: CurrentUser, reason: str | None) -> Dict[str, Any]:
        """
        Use Case: Anulowanie (operacja administracyjna, poza tabela przejsc).
        Dozwolone tylko przed wysylka; przywraca stan magazynu.
        """
        order = self._get(order_id)

        allowed = (
            user.is_admin
            or (user.role == Role.USER and order.user_id == user.id)
            or (user.role == Role.VENDOR and order.vendor_id == user.id)
        )
        if not allowed:
            raise AuthorizationError("Brak uprawnien do anulowania zamowienia")

        if not order.can_be_cancelled():
            raise InvalidStateError(
                f"Zamowienie w statusie {order.status} nie moze byc anulowane"
            )

        claim_order(self.repo, order)
        now = datetime.now(timezone.utc)
        order.cancellation_reason = reason or "Annulée"
        order.cancelled_at = now
        force_status(order, OrderStatus.CANCELLED, reason or "Commande annulée", user.id, now=now)
        self.repo.commit()

        logger.info(f"Order {order.id} cancelled by {user.id}")

        self._restore_stock([(i.product_id, i.quantity) for i in order.items])
        self.notification_service.order_status_changed(order)
        return order_to_dict(order)

    def refund_order(self, order_id: int, user: CurrentUser, amount: Decimal | None, reason: str | None):
        order = self._get(order_id)

        if order.status not in REFUNDABLE_STATUSES:
            raise InvalidStateError(
                f"Zamowienie w statusie {order.status} nie moze byc zwrocone"
            )

        if amount is not None and money(amount) > money(order.total_amount):
            raise InvalidStateError(
                f"Kwota zwrotu {money(amount)} przekracza wartosc zamowienia {money(order.total_amount)}"
            )

        was_cancelled = order.status == OrderStatus.CANCELLED.value
        claim_order(self.repo, order)
        order.payment_status = PaymentStatus.REFUNDED.value
        order.refund_status = "completed"
        order.refund_amount = money(amount if amount is not None else order.total_amount)
        if not was_cancelled:
            order.cancelled_at = datetime.now(timezone.utc)
            order.cancellation_reason = reason
        force_status(order, OrderStatus.REFUNDED, reason or "Commande remboursée", user.id)
        self.repo.commit()

        logger.info(f"Order {order.id} refunded ({order.refund_amount}) by {user.id}")

        if not was_cancelled:
            # anulowane zamowienie juz oddalo towar na magazyn
            self._restore_stock([(i.product_id, i.quantity) for i in order.items])
        self.notification_service.order_status_changed(order)
        return order_to_dict(order)
