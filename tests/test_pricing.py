from datetime import datetime, timedelta

from eventdesk.models import DiscountCode, EventSettings, TicketType
from eventdesk.schemas import TicketTypeUpdate
from eventdesk.services.numbering import format_abstract_number, next_registration_number, to_base36
from eventdesk.services.pricing import calculate_discount, calculate_order, is_discount_applicable, ticket_on_sale
from eventdesk.shared.validators import model_updates


def make_code(**overrides) -> DiscountCode:
    values = {
        "code": "EARLY",
        "discount_type": "percentage",
        "discount_value": 10,
        "max_discount_amount": None,
        "max_uses": None,
        "current_uses": 0,
        "valid_from": None,
        "valid_until": None,
        "applies_to_ticket_ids": [],
        "is_active": True,
    }
    values.update(overrides)
    return DiscountCode(**values)


def test_tax_is_charged_on_undiscounted_subtotal():
    totals = calculate_order(1000, 2, tax_percentage=18, discount_code=make_code())
    assert totals.subtotal == 2000
    assert totals.tax_amount == 360
    assert totals.discount_amount == 200
    assert totals.total_amount == 2160


def test_addons_are_added_after_discount():
    totals = calculate_order(500, 1, tax_percentage=0, addons_amount=250)
    assert totals.addons_amount == 250
    assert totals.total_amount == 750


def test_fixed_discount_never_exceeds_subtotal():
    assert calculate_discount(300, "fixed", 500) == 300


def test_percentage_discount_respects_cap():
    assert calculate_discount(10000, "percentage", 50, max_discount=1000) == 1000


def test_inactive_code_is_not_applicable():
    assert not is_discount_applicable(make_code(is_active=False))


def test_code_outside_window_is_not_applicable():
    now = datetime(2026, 1, 10, 12, 0)
    assert not is_discount_applicable(make_code(valid_from=now + timedelta(days=1)), now=now)
    assert not is_discount_applicable(make_code(valid_until=now - timedelta(days=1)), now=now)
    assert is_discount_applicable(make_code(valid_until=now + timedelta(days=1)), now=now)


def test_exhausted_code_is_not_applicable():
    assert not is_discount_applicable(make_code(max_uses=5, current_uses=5))


def test_code_limited_to_other_ticket_is_not_applicable():
    code = make_code(applies_to_ticket_ids=["vip"])
    assert not is_discount_applicable(code, ticket_type_id="delegate")
    assert is_discount_applicable(code, ticket_type_id="vip")


def test_custom_registration_numbers_advance_counter():
    settings = EventSettings(
        customize_registration_id=True,
        registration_prefix="CARD",
        registration_start_number=100,
        registration_suffix="-26",
        current_registration_number=0,
    )
    assert next_registration_number(settings) == "CARD100-26"
    assert next_registration_number(settings) == "CARD101-26"
    assert settings.current_registration_number == 101


def test_default_registration_number_format():
    number = next_registration_number(None, today=datetime(2026, 3, 5))
    assert number.startswith("REG-20260305-")
    assert len(number.split("-")[-1]) == 4


def test_abstract_number_is_zero_padded():
    assert format_abstract_number(2026, 7) == "ABS-2026-007"
    assert format_abstract_number(2026, 1234) == "ABS-2026-1234"


def test_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "Z"
    assert to_base36(36) == "10"


def test_ticket_sale_window():
    now = datetime(2026, 1, 10, 12, 0)
    assert ticket_on_sale(TicketType(), now=now)
    assert not ticket_on_sale(TicketType(sale_start_date=now + timedelta(hours=1)), now=now)
    assert not ticket_on_sale(TicketType(sale_end_date=now - timedelta(seconds=1)), now=now)
    assert ticket_on_sale(
        TicketType(sale_start_date=now - timedelta(days=1), sale_end_date=now + timedelta(days=1)), now=now
    )


def test_patch_updates_keep_required_columns():
    data = TicketTypeUpdate(name=None, max_per_order=None, quantity_total=None, price=500)
    assert model_updates(data, TicketType()) == {"quantity_total": None, "price": 500}
    assert model_updates(TicketTypeUpdate(), TicketType()) == {}
