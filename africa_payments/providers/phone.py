# africa_payments/providers/phone.py
from __future__ import annotations

from dataclasses import dataclass

import phonenumbers
from phonenumbers import NumberParseException

DEFAULT_REGION = "SN"


@dataclass(frozen=True)
class ParsedPhoneNumber:
    valid: bool
    possible: bool
    national: str = ""
    e164: str = ""

    @property
    def usable(self) -> bool:
        return self.valid and self.possible


def parse_phone_number(number: str | None, region: str = DEFAULT_REGION) -> ParsedPhoneNumber:
    """
    Parse against a home region. Anything that does not parse is reported as
    invalid rather than raised.

    `national` is the significant national number without trunk prefix or
    spaces (e.g. "771234567" for "+221 77 123 45 67").
    """
    raw = (number or "").strip()
    if not raw:
        return ParsedPhoneNumber(valid=False, possible=False)

    try:
        parsed = phonenumbers.parse(raw, (region or DEFAULT_REGION).upper())
    except NumberParseException:
        return ParsedPhoneNumber(valid=False, possible=False)

    return ParsedPhoneNumber(
        valid=phonenumbers.is_valid_number_for_region(parsed, (region or DEFAULT_REGION).upper()),
        possible=phonenumbers.is_possible_number(parsed),
        national=phonenumbers.national_significant_number(parsed),
        e164=phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164),
    )
