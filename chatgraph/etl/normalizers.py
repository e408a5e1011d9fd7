"""
Contact identifier normalization.

Exports write the same contact in several shapes ("tel:+1 415-555-1234",
"tel:4155551234", "mailto:Jane@Example.com"). Participants are keyed by
identifier, so every identifier is normalized before it is used as a key.

Design Decisions:
    1. Phones target E.164 (+14155551234), assuming +1 for bare 10-digit numbers
    2. Emails are lowercased and stripped
    3. Anything else, including the Unknown sentinel, is only stripped
    4. Normalization is best-effort; it never raises
"""

import re
from typing import Literal

from chatgraph.etl.models import UNKNOWN_IDENTIFIER

ContactType = Literal["phone", "email", "unknown"]

URI_SCHEME_PATTERN = re.compile(r"^(tel|mailto|sms):", re.IGNORECASE)
NON_DIGIT_PATTERN = re.compile(r"\D")


def normalize_phone(raw: str) -> str:
    """
    Normalize a phone number to E.164 format.

    Args:
        raw: Raw phone number in any format.

    Returns:
        Normalized phone number, or the input unchanged if it has no digits.

    Examples:
        >>> normalize_phone("(415) 555-1234")
        '+14155551234'
        >>> normalize_phone("+44 20 7946 0958")
        '+442079460958'
    """
    if not raw:
        return raw

    cleaned = raw.strip()
    digits = NON_DIGIT_PATTERN.sub("", cleaned)
    if not digits:
        return raw

    if cleaned.startswith("+"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if len(digits) >= 7:
        return f"+{digits}"

    # Short codes (e.g. 5-digit SMS senders) stay as plain digits
    return digits


def normalize_email(raw: str) -> str:
    """
    Normalize an email address (lowercase, stripped).

    Examples:
        >>> normalize_email("  Jane.Doe@Example.COM ")
        'jane.doe@example.com'
    """
    if not raw or "@" not in raw:
        return raw
    return raw.strip().lower()


def detect_contact_type(value: str) -> ContactType:
    """
    Detect whether an identifier is a phone number or an email address.

    Examples:
        >>> detect_contact_type("user@example.com")
        'email'
        >>> detect_contact_type("+1 (415) 555-1234")
        'phone'
        >>> detect_contact_type("Unknown")
        'unknown'
    """
    if not value:
        return "unknown"

    cleaned = value.strip()
    if "@" in cleaned:
        return "email"

    digits = NON_DIGIT_PATTERN.sub("", cleaned)
    compact = re.sub(r"[\s\-().]", "", cleaned)
    if 3 <= len(digits) <= 15 and compact and len(digits) / len(compact) >= 0.5:
        return "phone"

    return "unknown"


def normalize_identifier(raw: str) -> str:
    """
    Normalize a raw contact identifier, as found in an export, to a key.

    Strips tel:/mailto:/sms: schemes, then applies phone or email
    normalization depending on the detected type. Empty input maps to the
    Unknown sentinel.

    Examples:
        >>> normalize_identifier("tel:+1 415-555-1234")
        '+14155551234'
        >>> normalize_identifier("mailto:Jane@Example.com")
        'jane@example.com'
        >>> normalize_identifier("")
        'Unknown'
    """
    if not raw or not raw.strip():
        return UNKNOWN_IDENTIFIER

    value = URI_SCHEME_PATTERN.sub("", raw.strip()).strip()
    if not value:
        return UNKNOWN_IDENTIFIER

    contact_type = detect_contact_type(value)
    if contact_type == "email":
        return normalize_email(value)
    elif contact_type == "phone":
        return normalize_phone(value)
    else:
        return value
