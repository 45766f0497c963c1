"""
Maszyna stanow zamowienia.

Tabela przejsc jest jedynym zrodlem prawdy dla sciezek vendor/kurier/przypisanie.
Anulowanie i zwrot pieniedzy (operacje administracyjne) omijaja tabele i ida
przez force_status().

Efekty uboczne kamieni milowych (picked_up, delivered, ...) sa zmapowane
jawnie: status -> handler, a statusy z danymi od wolajacego maja wlasny typ
payloadu. Walidacja zawsze przed jakakolwiek zmiana pol zamowienia.
"""
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from pydantic import BaseModel

from marketplace.data.models.order_status_history import OrderStatusHistoryModel
from marketplace.domain.constants import OrderStatus, RefusalReason
from marketplace.domain.exceptions import InvalidStateError, InvalidTransitionError

S = OrderStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.PROCESSING, S.CANCELLED}),
    S.PROCESSING: frozenset({S.READY_TO_SHIP, S.CANCELLED}),
    S.READY_TO_SHIP: frozenset({S.ASSIGNED_TO_DELIVERY}),
    S.ASSIGNED_TO_DELIVERY: frozenset({S.PICKED_UP}),
    S.PICKED_UP: frozenset({S.OUT_FOR_DELIVERY}),
    S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED, S.DELIVERY_ATTEMPTED, S.REFUSED}),
    S.DELIVERY_ATTEMPTED: frozenset({S.OUT_FOR_DELIVERY, S.RETURNED}),
    S.REFUSED: frozenset({S.RETURNED}),
    S.DELIVERED: frozenset(),
    S.RETURNED: frozenset(),
    S.CANCELLED: frozenset(),
    S.REFUNDED: frozenset(),
}

# kto jest wlascicielem ktorych statusow docelowych
FULFILLMENT_TARGETS = frozenset({S.CONFIRMED, S.PROCESSING, S.READY_TO_SHIP, S.CANCELLED})
ASSIGNMENT_TARGETS = frozenset({S.ASSIGNED_TO_DELIVERY})
COURIER_TARGETS = frozenset({
    S.PICKED_UP,
    S.OUT_FOR_DELIVERY,
    S.DELIVERED,
    S.DELIVERY_ATTEMPTED,
    S.REFUSED,
    S.RETURNED,
})

# cofniecie przypisania (unassign) - kurier jeszcze nie odebral paczki
REVERSALS: dict[OrderStatus, frozenset[OrderStatus]] = {
    S.ASSIGNED_TO_DELIVERY: frozenset({S.READY_TO_SHIP}),
}


class GeoPoint(BaseModel):
    lat: float
    lng: float


class DeliveryProof(BaseModel):
    photo: Optional[str] = None
    signature: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[GeoPoint] = None


class Refusal(BaseModel):
    reason: Optional[RefusalReason] = None
    details: Optional[str] = None
    photo: Optional[str] = None


MilestonePayload = Union[DeliveryProof, Refusal]

MILESTONE_PAYLOADS: dict[OrderStatus, type] = {
    S.DELIVERED: DeliveryProof,
    S.REFUSED: Refusal,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStateError(f"Nieznany status: {value}")


def is_valid_transition(current, requested) -> bool:
    try:
        current, requested = OrderStatus(current), OrderStatus(requested)
    except ValueError:
        return False
    return requested in TRANSITIONS[current]


def ensure_transition(current, requested, allowed_targets=None) -> OrderStatus:
    """Zwraca status docelowy albo rzuca InvalidTransitionError."""
    target = _as_status(requested)
    if allowed_targets is not None and target not in allowed_targets:
        raise InvalidTransitionError(current, requested)
    if not is_valid_transition(current, target):
        raise InvalidTransitionError(current, requested)
    return target


def _mark_assigned(order, now, payload):
    order.assigned_to_livreur_at = now


def _mark_picked_up(order, now, payload):
    order.picked_up_at = now


def _mark_delivered(order, now, proof: DeliveryProof):
    order.delivered_at = now
    order.actual_delivery = now
    data = proof.model_dump(mode="json")
    data["timestamp"] = now.isoformat()
    order.delivery_proof = data


def _mark_delivery_attempted(order, now, payload):
    order.delivery_attempts = (order.delivery_attempts or 0) + 1


def _mark_refused(order, now, refusal: Refusal):
    data = refusal.model_dump(mode="json")
    data["timestamp"] = now.isoformat()
    order.refusal_info = data


MILESTONE_EFFECTS: dict[OrderStatus, Callable] = {
    S.ASSIGNED_TO_DELIVERY: _mark_assigned,
    S.PICKED_UP: _mark_picked_up,
    S.DELIVERED: _mark_delivered,
    S.DELIVERY_ATTEMPTED: _mark_delivery_attempted,
    S.REFUSED: _mark_refused,
}


def _resolve_payload(target: OrderStatus, payload):
    expected = MILESTONE_PAYLOADS.get(target)
    if expected is None:
        if payload is not None:
            raise InvalidStateError(f"Status {target.value} nie przyjmuje dodatkowych danych")
        return None
    if payload is None:
        return expected()
    if not isinstance(payload, expected):
        raise InvalidStateError(
            f"Status {target.value} wymaga danych typu {expected.__name__}"
        )
    return payload


def _record(order, target: OrderStatus, note, actor_id, payload, now) -> None:
    order.status = target.value
    order.status_history.append(
        OrderStatusHistoryModel(
            status=target.value,
            date=now,
            note=note,
            updated_by=actor_id,
        )
    )
    effect = MILESTONE_EFFECTS.get(target)
    if effect:
        effect(order, now, payload)


def add_status_change(
    order,
    new_status,
    note: Optional[str] = None,
    actor_id: Optional[int] = None,
    payload: Optional[MilestonePayload] = None,
    *,
    allowed_targets=None,
    now: Optional[datetime] = None,
) -> OrderStatus:
    """Przejscie wedlug tabeli; albo wszystko sie zapisze, albo nic."""
    target = ensure_transition(order.status, new_status, allowed_targets)
    payload = _resolve_payload(target, payload)
    _record(order, target, note, actor_id, payload, now or _utcnow())
    return target


def force_status(order, new_status, note=None, actor_id=None, now=None) -> OrderStatus:
    """Operacje administracyjne (cancel/refund) - bez tabeli przejsc."""
    target = _as_status(new_status)
    _record(order, target, note, actor_id, _resolve_payload(target, None), now or _utcnow())
    return target


def revert_assignment(order, note=None, actor_id=None, now=None) -> OrderStatus:
    current = _as_status(order.status)
    if S.READY_TO_SHIP not in REVERSALS.get(current, frozenset()):
        raise InvalidTransitionError(current, S.READY_TO_SHIP)
    order.livreur_id = None
    order.assigned_to_livreur_at = None
    _record(order, S.READY_TO_SHIP, note, actor_id, None, now or _utcnow())
    return S.READY_TO_SHIP


def record_creation(order, actor_id=None, note="Zamowienie utworzone", now=None) -> None:
    """Pierwszy wpis historii przy tworzeniu (status pending)."""
    _record(order, S.PENDING, note, actor_id, None, now or _utcnow())


def minutes_between(start: Optional[datetime], end: datetime) -> float:
    if start is None:
        return 0
    # sqlite zwraca naive datetime
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return round((end - start).total_seconds() / 60)
