# Overview: Invoice number allocation from a locked counter row.

from __future__ import annotations

import re

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Invoice, InvoiceSequence
from ..validation import InvalidState

"""
Invoice numbering rules

- Format: <PREFIX>-<counter zero-padded to 6 digits>, e.g. INV-000007.
  The counter stops at 999999; the allocation after that raises InvalidState
  instead of widening the number past the 6-digit format.
- The counter row (invoice_sequences) holds the last issued number and is
  incremented with a single UPDATE inside the caller's transaction. It is
  only visible once that transaction commits; a rollback returns the number
  and leaves a gap, never a repeat.
- The first allocation for a prefix seeds the counter from the highest
  existing invoice number matching ^PREFIX-\\d+$, so legacy or manually
  entered numbers are never reissued.
- A number that reached the invoices table without going through the
  counter (import, manual insert) is caught at allocation time: the counter
  jumps past the highest existing number and allocates again.
- Suffixes above 999999 cannot collide with a padded allocation and are
  ignored when seeding or observing.
"""

PAD = 6
MAX_NUMBER = 10 ** PAD - 1


def default_prefix() -> str:
    return current_app.config.get("INVOICE_NUMBER_PREFIX", "INV")


def format_invoice_number(number: int, prefix: str | None = None) -> str:
    return f"{prefix or default_prefix()}-{number:0{PAD}d}"


def parse_invoice_number(value: str, prefix: str | None = None) -> int | None:
    """Numeric suffix of a pattern-conforming invoice number, else None."""
    match = re.fullmatch(rf"{re.escape(prefix or default_prefix())}-(\d+)", value or "")
    return int(match.group(1)) if match else None


def _max_existing_number(prefix: str) -> int:
    """Highest in-range suffix among existing invoices; used to seed or resync the counter."""
    numbers = (
        db.session.query(Invoice.invoice_number)
        .filter(Invoice.invoice_number.like(f"{prefix}-%"))
        .all()
    )
    best = 0
    for (value,) in numbers:
        parsed = parse_invoice_number(value, prefix)
        if parsed is not None and best < parsed <= MAX_NUMBER:
            best = parsed
    return best


def _increment(prefix: str, floor: int | None = None) -> int:
    if floor is None:
        values = {"last_number": InvoiceSequence.last_number + 1}
    else:
        values = {
            "last_number": db.case(
                (InvoiceSequence.last_number < floor, floor),
                else_=InvoiceSequence.last_number,
            )
        }
    result = db.session.execute(
        update(InvoiceSequence).where(InvoiceSequence.prefix == prefix).values(**values)
    )
    if not result.rowcount:
        return 0
    return (
        db.session.query(InvoiceSequence.last_number)
        .filter(InvoiceSequence.prefix == prefix)
        .scalar()
    )


def _seed_counter(prefix: str) -> None:
    seq = InvoiceSequence(prefix=prefix, last_number=_max_existing_number(prefix))
    try:
        with db.session.begin_nested():
            db.session.add(seq)
    except IntegrityError:
        # Concurrent seed already inserted the row; the UPDATE path will use it
        pass


def reserve_next(prefix: str | None = None) -> int:
    """
    Reserve the next counter value inside the current transaction.

    The UPDATE takes the counter row's write lock, so concurrent reservations
    serialize until the holder commits or rolls back.
    """
    prefix = prefix or default_prefix()
    number = _increment(prefix)
    if number:
        return number
    _seed_counter(prefix)
    number = _increment(prefix)
    if not number:
        raise RuntimeError(f"Invoice sequence '{prefix}' could not be initialised")
    return number


def number_in_use(invoice_number: str) -> bool:
    return (
        db.session.query(Invoice.id).filter(Invoice.invoice_number == invoice_number).first()
        is not None
    )


def next_invoice_number(prefix: str | None = None) -> str:
    """
    Reserve and format the next invoice number.

    Raises:
        InvalidState: the 6-digit range is exhausted
    """
    prefix = prefix or default_prefix()
    number = reserve_next(prefix)
    if number <= MAX_NUMBER and number_in_use(format_invoice_number(number, prefix)):
        current_app.logger.warning(
            "Invoice number %s already present outside the sequence; resyncing counter",
            format_invoice_number(number, prefix),
        )
        _increment(prefix, floor=_max_existing_number(prefix))
        number = reserve_next(prefix)
    if number > MAX_NUMBER:
        raise InvalidState(f"Invoice sequence '{prefix}' is exhausted at {format_invoice_number(MAX_NUMBER, prefix)}")
    return format_invoice_number(number, prefix)


def observe_explicit_number(invoice_number: str, prefix: str | None = None) -> None:
    """
    Keep the counter ahead of a caller-supplied number that fits the pattern,
    so a later allocation can neither collide with it nor go backward.
    """
    prefix = prefix or default_prefix()
    parsed = parse_invoice_number(invoice_number, prefix)
    if parsed is None or parsed > MAX_NUMBER:
        return
    if db.session.get(InvoiceSequence, prefix) is None:
        _seed_counter(prefix)
    _increment(prefix, floor=parsed)


def peek_next_number(prefix: str | None = None) -> str:
    """The number the next reservation would return. Reserves nothing."""
    prefix = prefix or default_prefix()
    last = (
        db.session.query(InvoiceSequence.last_number)
        .filter(InvoiceSequence.prefix == prefix)
        .scalar()
    )
    if last is None:
        last = _max_existing_number(prefix)
    return format_invoice_number(last + 1, prefix)
