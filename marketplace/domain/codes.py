"""Generowanie identyfikatorow zamowienia widocznych na zewnatrz.

Trzy kody sa niezalezne od siebie i od id zamowienia; unikalnosc
gwarantuje baza (unique constraint), a nie algorytm.
"""
import secrets
import string
import time

_BASE36 = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("Wartosc musi byc nieujemna")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_order_number(now_ms: int | None = None) -> str:
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"ORD-{to_base36(timestamp)}-{_random_base36(4)}"


def generate_client_code() -> str:
    return f"CLT-{_random_base36(4)}"


def generate_delivery_code() -> str:
    # kod skanowany przez kuriera (QR) - tylko z kryptograficznego zrodla
    return f"LIV-{secrets.token_hex(3).upper()}"


def assign_missing_codes(order) -> None:
    """Uzupelnia brakujace kody; istniejacych nigdy nie nadpisuje."""
    if not order.order_number:
        order.order_number = generate_order_number()
    if not order.client_code:
        order.client_code = generate_client_code()
    if not order.delivery_code:
        order.delivery_code = generate_delivery_code()


def regenerate_codes(order) -> None:
    """Uzywane tylko przed pierwszym zapisem, po kolizji unikalnosci."""
    order.order_number = generate_order_number()
    order.client_code = generate_client_code()
    order.delivery_code = generate_delivery_code()
