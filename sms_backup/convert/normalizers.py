"""
Normalization helpers for phone numbers and email addresses.

Used by the contacts directory to match a message-store address against the
numbers stored for each contact, and by the person resolver to compare email
domains.

Design Decisions:
    1. Phone normalization targets E.164 format (+14155551234)
    2. Normalization is best-effort - unparseable input is returned unchanged
    3. Fuzzy matching compares the last 10 digits, which absorbs a missing or
       extra country code
"""

import re

DIGITS_ONLY_PATTERN = re.compile(r"[^\d]")
US_PHONE_PATTERN = re.compile(r"^\d{10}$")

# Digits compared by the fuzzy phone match
FUZZY_DIGITS = 10


def extract_digits(value: str) -> str:
    """Extract only digits from a string."""
    return DIGITS_ONLY_PATTERN.sub("", value)


def normalize_phone(raw: str) -> str:
    """
    Normalize a phone number to E.164 format.

    Args:
        raw: Raw phone number in any format.

    Returns:
        Normalized phone number, or the original if it can't be normalized.

    Examples:
        >>> normalize_phone("(415) 555-1234")
        '+14155551234'
        >>> normalize_phone("+44 20 7946 0958")
        '+442079460958'
        >>> normalize_phone("Mom")
        'Mom'
    """
    if not raw:
        return raw

    cleaned = raw.strip()
    has_plus = cleaned.startswith("+")
    digits = extract_digits(cleaned)

    if not digits:
        return raw

    if has_plus:
        return f"+{digits}"

    if US_PHONE_PATTERN.match(digits):
        return f"+1{digits}"

    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"

    if len(digits) >= 7:
        return f"+{digits}"

    return raw


def phones_match_fuzzy(a: str, b: str) -> bool:
    """
    Compare two phone numbers on their last 10 digits.

    Numbers shorter than 10 digits never match fuzzily.
    """
    a_digits = extract_digits(a)
    b_digits = extract_digits(b)
    if len(a_digits) < FUZZY_DIGITS or len(b_digits) < FUZZY_DIGITS:
        return False
    return a_digits[-FUZZY_DIGITS:] == b_digits[-FUZZY_DIGITS:]


def email_domain(email: str) -> str:
    """
    Return the lowercased domain of an email address ('' if there is none).

    Examples:
        >>> email_domain("Jane.Doe@GMail.com")
        'gmail.com'
    """
    if "@" not in email:
        return ""
    return email.rsplit("@", 1)[1].strip().lower()
