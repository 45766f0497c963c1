"""Maszyna stanow zamowienia - bez bazy, na obiektach w pamieci."""
from datetime import datetime, timezone

import pytest

from marketplace.data.models.order import OrderModel
from marketplace.domain.constants import TERMINAL_STATUSES, OrderStatus, RefusalReason
from marketplace.domain.exceptions import InvalidStateError, InvalidTransitionError
from marketplace.domain.order_state import (
    ASSIGNMENT_TARGETS,
    COURIER_TARGETS,
    FULFILLMENT_TARGETS,
    DeliveryProof,
    GeoPoint,
    Refusal,
    add_status_change,
    force_status,
    is_valid_transition,
    minutes_between,
    revert_assignment,
)

ALLOWED = {
    ("pending", "confirmed"),
    ("pending", "cancelled"),
    ("confirmed", "processing"),
    ("confirmed", "cancelled"),
    ("processing", "ready_to_ship"),
    ("processing", "cancelled"),
    ("ready_to_ship", "assigned_to_delivery"),
    ("assigned_to_delivery", "picked_up"),
    ("picked_up", "out_for_delivery"),
    ("out_for_delivery", "delivered"),
    ("out_for_delivery", "delivery_attempted"),
    ("out_for_delivery", "refused"),
    ("delivery_attempted", "out_for_delivery"),
    ("delivery_attempted", "returned"),
    ("refused", "returned"),
}

ALL_STATUSES = [s.value for s in OrderStatus]


def _order(status="pending", **kwargs):
    return OrderModel(status=status, delivery_attempts=0, **kwargs)


@pytest.mark.parametrize("current", ALL_STATUSES)
@pytest.mark.parametrize("requested", ALL_STATUSES)
def test_transition_matrix(current, requested):
    assert is_valid_transition(current, requested) == ((current, requested) in ALLOWED)


def test_terminal_states_have_no_exit():
    assert {s.value for s in TERMINAL_STATUSES} == {"delivered", "returned", "cancelled", "refunded"}
    for terminal in TERMINAL_STATUSES:
        assert not any(is_valid_transition(terminal, s) for s in ALL_STATUSES)
    # kazdy status bez wyjscia w tabeli jest terminalny
    dead_ends = {s for s in ALL_STATUSES if not any(is_valid_transition(s, t) for t in ALL_STATUSES)}
    assert dead_ends == {s.value for s in TERMINAL_STATUSES}


def test_unknown_status_is_not_valid():
    assert not is_valid_transition("pending", "teleported")
    assert not is_valid_transition("lost", "confirmed")


def test_rejected_transition_leaves_order_untouched():
    order = _order("pending")
    with pytest.raises(InvalidTransitionError) as exc:
        add_status_change(order, OrderStatus.PICKED_UP, actor_id=10)

    assert order.status == "pending"
    assert len(order.status_history) == 0
    assert order.picked_up_at is None
    assert "pending" in exc.value.message
    assert "picked_up" in exc.value.message


def test_delivered_records_proof_and_single_history_entry():
    order = _order("out_for_delivery")
    now = datetime(2024, 5, 2, 14, 30, tzinfo=timezone.utc)
    proof = DeliveryProof(photo="p.jpg", signature="sig", location=GeoPoint(lat=36.8, lng=10.18))

    add_status_change(order, OrderStatus.DELIVERED, "ok", 10, proof, now=now)

    assert order.status == "delivered"
    assert order.delivered_at == now
    assert order.actual_delivery == now
    assert order.delivery_proof["photo"] == "p.jpg"
    assert order.delivery_proof["signature"] == "sig"
    assert order.delivery_proof["location"] == {"lat": 36.8, "lng": 10.18}
    assert order.delivery_proof["timestamp"] == now.isoformat()
    assert len(order.status_history) == 1
    assert order.status_history[0].status == "delivered"
    assert order.status_history[0].updated_by == 10


def test_delivered_without_payload_still_stamps_proof():
    order = _order("out_for_delivery")
    add_status_change(order, "delivered")
    assert order.delivery_proof["timestamp"]
    assert order.delivery_proof["photo"] is None


def test_refused_writes_refusal_info_only():
    order = _order("out_for_delivery")
    add_status_change(
        order,
        OrderStatus.REFUSED,
        payload=Refusal(reason=RefusalReason.NOT_HOME, details="personne"),
    )
    assert order.refusal_info["reason"] == "not_home"
    assert order.refusal_info["details"] == "personne"
    assert order.delivery_proof is None


def test_wrong_payload_type_is_rejected_before_mutation():
    order = _order("out_for_delivery")
    with pytest.raises(InvalidStateError):
        add_status_change(order, OrderStatus.REFUSED, payload=DeliveryProof(photo="x"))
    assert order.status == "out_for_delivery"
    assert order.status_history == []


def test_payload_on_plain_status_is_rejected():
    order = _order("assigned_to_delivery")
    with pytest.raises(InvalidStateError):
        add_status_change(order, OrderStatus.PICKED_UP, payload=DeliveryProof())
    assert order.status == "assigned_to_delivery"


def test_milestone_timestamps():
    order = _order("ready_to_ship")
    add_status_change(order, OrderStatus.ASSIGNED_TO_DELIVERY, allowed_targets=ASSIGNMENT_TARGETS)
    assert order.assigned_to_livreur_at is not None

    add_status_change(order, OrderStatus.PICKED_UP, allowed_targets=COURIER_TARGETS)
    assert order.picked_up_at is not None


def test_delivery_attempt_counter_and_retry_loop():
    order = _order("out_for_delivery")
    add_status_change(order, OrderStatus.DELIVERY_ATTEMPTED)
    add_status_change(order, OrderStatus.OUT_FOR_DELIVERY)
    add_status_change(order, OrderStatus.DELIVERY_ATTEMPTED)
    assert order.delivery_attempts == 2
    add_status_change(order, OrderStatus.RETURNED)
    assert order.status == "returned"
    assert [h.status for h in order.status_history] == [
        "delivery_attempted",
        "out_for_delivery",
        "delivery_attempted",
        "returned",
    ]


def test_owner_restriction_blocks_legal_transition():
    # legalne w tabeli, ale nie nalezy do sprzedawcy
    order = _order("ready_to_ship")
    with pytest.raises(InvalidTransitionError):
        add_status_change(order, OrderStatus.ASSIGNED_TO_DELIVERY, allowed_targets=FULFILLMENT_TARGETS)
    assert order.status == "ready_to_ship"

    order = _order("pending")
    with pytest.raises(InvalidTransitionError):
        add_status_change(order, OrderStatus.CONFIRMED, allowed_targets=COURIER_TARGETS)


def test_force_status_bypasses_table():
    order = _order("cancelled")
    force_status(order, OrderStatus.REFUNDED, "zwrot", actor_id=1)
    assert order.status == "refunded"
    assert order.status_history[-1].note == "zwrot"


def test_revert_assignment_only_before_pickup():
    order = _order("assigned_to_delivery", livreur_id=10)
    order.assigned_to_livreur_at = datetime.now(timezone.utc)
    revert_assignment(order, "kurier chory", actor_id=1)
    assert order.status == "ready_to_ship"
    assert order.livreur_id is None
    assert order.assigned_to_livreur_at is None
    assert order.status_history[-1].note == "kurier chory"

    picked = _order("picked_up", livreur_id=10)
    with pytest.raises(InvalidTransitionError):
        revert_assignment(picked)
    assert picked.livreur_id == 10


def test_minutes_between_handles_naive_start():
    start = datetime(2024, 1, 1, 10, 0)
    end = datetime(2024, 1, 1, 10, 45, 20, tzinfo=timezone.utc)
    assert minutes_between(start, end) == 45
    assert minutes_between(None, end) == 0
