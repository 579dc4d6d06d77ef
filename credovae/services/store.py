"""Helpers shared by services that talk to the ledger database."""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from sqlalchemy.exc import SQLAlchemyError
from credovae.extensions import db
from credovae.errors import BackendError, InvalidAmount, NotFound

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal('9999999999.99')


@contextmanager
def store_errors(action):
    """Roll back and surface backend failures as BackendError, without retry."""
    try:
        yield
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("%s failed: %s", action, e)
        raise BackendError() from e


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_uuid(value, what='Resource'):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFound(f"{what} not found")


def clean_text(value):
    """Request field as a stripped string; JSON numbers are accepted as their text."""
    if value is None:
        return ''
    return str(value).strip()


def _to_decimal(value):
    if isinstance(value, bool):
        raise InvalidAmount()
    try:
        amount = Decimal(clean_text(value))
        if not amount.is_finite():
            raise InvalidAmount()
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise InvalidAmount()


def parse_amount(value):
    """Coerce request input to a 2dp Decimal; rejects non-numbers, values <= 0 and overflow."""
    amount = _to_decimal(value)
    if amount <= 0:
        raise InvalidAmount()
    if amount > MAX_AMOUNT:
        raise InvalidAmount(f"Amount cannot exceed {MAX_AMOUNT}")
    return amount


def parse_balance(value):
    """Like parse_amount, but zero is a valid balance."""
    balance = _to_decimal(value)
    if balance < 0:
        raise InvalidAmount("Balance cannot be negative")
    if balance > MAX_AMOUNT:
        raise InvalidAmount(f"Balance cannot exceed {MAX_AMOUNT}")
    return balance
