"""
Shared helpers: phone numbers, money and weekend dates.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.utils.crypto import get_random_string

# No O/0, I/1 or Z/2
ORDER_NUMBER_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXY3456789'
ORDER_NUMBER_SUFFIX_LENGTH = 4

US_PHONE_RE = re.compile(r'^1?[2-9]\d{9}$')
NON_DIGITS_RE = re.compile(r'\D')

CENT = Decimal('0.01')
SATURDAY_WEEKDAY = 5
SUNDAY_WEEKDAY = 6


# =============================================================================
# Phone numbers
# =============================================================================

def phone_digits(phone):
    return NON_DIGITS_RE.sub('', str(phone or ''))


def is_valid_phone_number(phone):
    """True for a US number with 10 digits, or 11 digits starting with 1."""
    return bool(US_PHONE_RE.match(phone_digits(phone)))


def normalize_phone_number(phone):
    """
    Normalize a US phone number to E.164 (``+1XXXXXXXXXX``).

    Accepts any punctuation; raises ValidationError for anything that is
    not 10 digits or 11 digits with a leading 1.
    """
    digits = phone_digits(phone)
    if len(digits) == 10:
        return f'+1{digits}'
    if len(digits) == 11 and digits.startswith('1'):
        return f'+{digits}'
    raise ValidationError('Invalid phone number format', code='invalid_phone')


# =============================================================================
# Money
# =============================================================================

def to_cents(amount):
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_cents(cents):
    return (Decimal(cents) / 100).quantize(CENT)


def format_currency(amount):
    return f"${Decimal(str(amount or 0)).quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"


# =============================================================================
# Dates
# =============================================================================

def as_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def is_weekend(day):
    return as_date(day).weekday() in (SATURDAY_WEEKDAY, SUNDAY_WEEKDAY)


def next_weekday(start, weekday):
    """First date strictly after ``start`` falling on ``weekday`` (Mon=0)."""
    start = as_date(start)
    days_ahead = (weekday - start.weekday()) % 7 or 7
    return start + timedelta(days=days_ahead)


def generate_order_suffix():
    return get_random_string(ORDER_NUMBER_SUFFIX_LENGTH, allowed_chars=ORDER_NUMBER_ALPHABET)
