import pytest

from garment_ledger.extensions import db
from garment_ledger.models import Invoice, InvoiceSequence
from garment_ledger.services import sequence_service


def _reserve():
    number = sequence_service.next_invoice_number()
    db.session.commit()
    return number


def test_first_number(db_session):
    assert _reserve() == "INV-000001"


def test_numbers_increase_without_repeats(db_session):
    numbers = [_reserve() for _ in range(5)]
    assert numbers == [f"INV-{n:06d}" for n in range(1, 6)]


def test_seeds_from_existing_pattern_numbers(db_session):
    db.session.add_all([
        Invoice(invoice_number="INV-000041"),
        Invoice(invoice_number="INV-000007"),
        Invoice(invoice_number="INV-12A"),
        Invoice(invoice_number="LEGACY-900"),
    ])
    db.session.commit()

    assert _reserve() == "INV-000042"


def test_rolled_back_reservation_is_not_persisted(db_session):
    _reserve()
    sequence_service.next_invoice_number()
    db.session.rollback()

    assert db.session.get(InvoiceSequence, "INV").last_number == 1


def test_observe_explicit_number_moves_counter_forward_only(db_session):
    _reserve()
    sequence_service.observe_explicit_number("INV-000010")
    db.session.commit()
    assert _reserve() == "INV-000011"

    sequence_service.observe_explicit_number("INV-000003")
    db.session.commit()
    assert _reserve() == "INV-000012"


def test_observe_ignores_non_pattern_numbers(db_session):
    sequence_service.observe_explicit_number("CUSTOM-77")
    db.session.commit()
    assert _reserve() == "INV-000001"


def test_peek_does_not_reserve(db_session):
    assert sequence_service.peek_next_number() == "INV-000001"
    assert sequence_service.peek_next_number() == "INV-000001"
    assert _reserve() == "INV-000001"
    assert sequence_service.peek_next_number() == "INV-000002"


def test_custom_prefix_has_its_own_counter(db_session):
    _reserve()
    assert sequence_service.next_invoice_number("RET") == "RET-000001"
    db.session.commit()


@pytest.mark.parametrize(
    "value,expected",
    [
        ("INV-000123", 123),
        ("INV-7", 7),
        ("INV-", None),
        ("INV-12A", None),
        ("XINV-000001", None),
        ("", None),
    ],
)
def test_parse_invoice_number(app, value, expected):
    assert sequence_service.parse_invoice_number(value, "INV") == expected
