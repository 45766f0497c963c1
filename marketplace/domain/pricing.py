# marketplace/domain/pricing.py
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    return _dec(value).quantize(CENT, rounding=ROUND_HALF_UP)


def item_subtotal(price, quantity: int, discount_percent=0) -> Decimal:
    #cena * ilosc * (1 - rabat%/100)
    factor = Decimal("1") - _dec(discount_percent) / Decimal("100")
    return money(_dec(price) * quantity * factor)


def recalculate_totals(order) -> None:
    """Przelicza subtotal pozycji, subtotal i total zamowienia.

    Pola pochodne - zawsze nadpisywane, nawet jesli ktos je ustawil recznie.
    """
    subtotal = ZERO
    for item in order.items:
        item.subtotal = item_subtotal(item.price, item.quantity, item.discount)
        subtotal += item.subtotal

    order.subtotal = money(subtotal)
    order.shipping_cost = money(order.shipping_cost)
    order.tax = money(order.tax)
    order.discount = money(order.discount)
    order.total_amount = order.subtotal + order.shipping_cost + order.tax - order.discount
