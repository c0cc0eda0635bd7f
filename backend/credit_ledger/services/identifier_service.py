# Overview: Service-layer operations for sale identifiers (sale numbers and reference codes).

"""
Identifier Service - Sale numbers and reference codes

SALE NUMBER: "<prefix><NNN>-<YYYYMMDD>" where NNN counts the sales dated
today. REFERENCE CODE: a numeric code, in its own namespace.

UNIQUENESS RULES:
- Both are globally unique across all sales (UNIQUE columns back this up)
- A caller-supplied value (backup import) is kept while it is still free

Not safe for concurrent writers: two processes can compute the same
candidate between the existence check and the insert.
"""

import random
import string
import time
from datetime import date, datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import Sale
from credit_ledger.time_utils import today as utc_today


SUFFIX_ATTEMPTS = 5
SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_ATTEMPTS = 10


def _prefix() -> str:
    return current_app.config.get("SALE_NUMBER_PREFIX", "VTA-")


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def sale_number_exists(candidate: str) -> bool:
    return db.session.query(Sale.id).filter(Sale.sale_number == candidate).first() is not None


def reference_code_exists(candidate: str) -> bool:
    return db.session.query(Sale.id).filter(Sale.reference_code == candidate).first() is not None


def generate_sale_number_base(today: date | None = None) -> str:
    """Build "<prefix><NNN>-<YYYYMMDD>" from the count of sales dated today."""
    day = today or utc_today()
    start = datetime(day.year, day.month, day.day)
    end = start + timedelta(days=1)

    today_count = db.session.query(Sale).filter(
        Sale.date >= start,
        Sale.date < end,
    ).count()

    return f"{_prefix()}{today_count + 1:03d}-{day:%Y%m%d}"


def _with_suffixes(base: str) -> str:
    if not sale_number_exists(base):
        return base

    for _ in range(SUFFIX_ATTEMPTS):
        suffix = "".join(random.choices(SUFFIX_ALPHABET, k=4))
        candidate = f"{base}-{suffix}"
        if not sale_number_exists(candidate):
            return candidate

    fallback = f"{_prefix()}{_timestamp_ms()}"
    current_app.logger.info("Sale number %s exhausted suffixes, using %s", base, fallback)
    return fallback


def generate_unique_sale_number(today: date | None = None) -> str:
    """
    Generate a sale number not used by any existing sale.

    Collisions (same-day race, backdated imports) retry with a random
    4-character suffix, then fall back to a timestamp-based number.
    """
    return _with_suffixes(generate_sale_number_base(today))


def ensure_unique_sale_number(preferred: str | None = None) -> str:
    """Keep preferred if still free; otherwise derive a free number from it."""
    base = preferred or generate_sale_number_base()
    return _with_suffixes(base)


def generate_numeric_reference_code(length: int = 8) -> str:
    return "".join(random.choice(string.digits) for _ in range(length))


def generate_unique_reference_code() -> str:
    """
    Generate a numeric reference code not used by any existing sale.

    8 digits for the first 3 attempts, 9 for the next 3, then 12.
    After 10 attempts the current timestamp is used.
    """
    for attempt in range(REFERENCE_ATTEMPTS):
        length = 8 if attempt < 3 else 9 if attempt < 6 else 12
        candidate = generate_numeric_reference_code(length)
        if not reference_code_exists(candidate):
            return candidate

    return str(_timestamp_ms())


def ensure_unique_reference_code(preferred: str | None = None) -> str:
    if preferred and not reference_code_exists(preferred):
        return preferred
    return generate_unique_reference_code()
