"""Phone number normalization for vendor reconciliation.

Vendor profiles store `contact_number` in whatever format the vendor typed
(10 digits, `+91...`, `91...`, with spaces). WhatsApp reports senders as
digits with country code and no `+`. Every lookup that bridges the two goes
through `candidate_variants`.
"""

import re

DEFAULT_COUNTRY_CODE = "91"

_NON_DIGITS = re.compile(r"\D")
_LOCAL_NUMBER = re.compile(r"^\d{10}$")


def digits_only(raw: str | None) -> str:
    """Strip every non-digit character. None/empty yields ''."""
    if raw is None:
        return ""
    return _NON_DIGITS.sub("", str(raw))


def with_country_code(msisdn: str | None) -> str:
    """Prefix a bare 10-digit number with the default country code.

    Anything that is not exactly 10 digits is returned unchanged.
    """
    if not msisdn:
        return ""
    if _LOCAL_NUMBER.match(msisdn):
        return DEFAULT_COUNTRY_CODE + msisdn
    return msisdn


def canonical_phone(raw: str | None) -> str:
    """Digits-only form with country code, as stored on location records."""
    return with_country_code(digits_only(raw))


def candidate_variants(raw: str | None) -> list[str]:
    """All plausible stored representations of a phone number.

    Order is [as given, digits only, digits with country code,
    '+' + digits with country code]; duplicates and empties are dropped
    while keeping that order.
    """
    if raw is None:
        raw = ""
    digits = digits_only(raw)
    with_cc = with_country_code(digits)
    variants = [str(raw), digits, with_cc, f"+{with_cc}" if with_cc else ""]

    result: list[str] = []
    for variant in variants:
        if variant and variant not in result:
            result.append(variant)
    return result
