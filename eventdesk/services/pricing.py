"""
Order pricing for ticket registrations
Tax is charged on the undiscounted subtotal; discounts never exceed the subtotal.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class OrderTotals:
    unit_price: float
    quantity: int
    subtotal: float
    tax_amount: float
    discount_amount: float
    addons_amount: float
    total_amount: float


def ticket_on_sale(ticket, now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()
    if ticket.sale_start_date and now < ticket.sale_start_date:
        return False
    if ticket.sale_end_date and now > ticket.sale_end_date:
        return False
    return True


def is_discount_applicable(code, ticket_type_id: Optional[str] = None, now: Optional[datetime] = None) -> bool:
    """A code applies when it is active, inside its window, under max_uses and covers the ticket"""
    if code is None or not code.is_active:
        return False

    now = now or datetime.utcnow()
    if code.valid_from and now < code.valid_from:
        return False
    if code.valid_until and now > code.valid_until:
        return False
    if code.max_uses is not None and (code.current_uses or 0) >= code.max_uses:
        return False

    allowed = code.applies_to_ticket_ids or []
    if allowed and ticket_type_id not in allowed:
        return False

    return True


def calculate_discount(subtotal: float, discount_type: str, discount_value: float, max_discount: Optional[float] = None) -> float:
    if discount_type == "percentage":
        discount = subtotal * discount_value / 100
    else:
        discount = discount_value

    if max_discount is not None and discount > max_discount:
        discount = max_discount

    return round(max(0.0, min(discount, subtotal)), 2)


def calculate_order(
    price: float,
    quantity: int,
    tax_percentage: float = 0,
    discount_code=None,
    addons_amount: float = 0,
) -> OrderTotals:
    """
    Price an order. `discount_code` must already be checked with
    is_discount_applicable(); it is applied as-is.
    """
    subtotal = round(price * quantity, 2)
    tax = round(subtotal * (tax_percentage or 0) / 100, 2)

    discount = 0.0
    if discount_code is not None:
        discount = calculate_discount(
            subtotal,
            discount_code.discount_type,
            discount_code.discount_value,
            discount_code.max_discount_amount,
        )

    total = round(subtotal + tax - discount + (addons_amount or 0), 2)

    return OrderTotals(
        unit_price=price,
        quantity=quantity,
        subtotal=subtotal,
        tax_amount=tax,
        discount_amount=discount,
        addons_amount=round(addons_amount or 0, 2),
        total_amount=total,
    )
