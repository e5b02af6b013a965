"""Phone number normalisation for recipient lookups.

Numbers are kept as national digits plus a separate country calling code
("34" for Spain). The country table drives both the expected digit count
and the display grouping.
"""

import re
from dataclasses import dataclass

_NON_DIGITS = re.compile(r"\D")

DEFAULT_PHONE_LENGTH = 9
DEFAULT_PHONE_PATTERN = (3, 3, 3)


@dataclass(frozen=True)
class CountryPhoneFormat:
    """Expected shape of national numbers for one calling code."""

    calling_code: str
    name: str
    length: int
    pattern: tuple[int, ...]


COUNTRIES: dict[str, CountryPhoneFormat] = {
    fmt.calling_code: fmt
    for fmt in (
        CountryPhoneFormat("34", "Spain", 9, (3, 3, 3)),
        CountryPhoneFormat("33", "France", 9, (1, 2, 2, 2, 2)),
        CountryPhoneFormat("351", "Portugal", 9, (3, 3, 3)),
        CountryPhoneFormat("39", "Italy", 10, (3, 3, 4)),
        CountryPhoneFormat("44", "United Kingdom", 10, (4, 3, 3)),
        CountryPhoneFormat("49", "Germany", 11, (4, 3, 4)),
        CountryPhoneFormat("1", "United States", 10, (3, 3, 4)),
        CountryPhoneFormat("52", "Mexico", 10, (2, 4, 4)),
        CountryPhoneFormat("54", "Argentina", 10, (2, 4, 4)),
    )
}


def digits_only(value: str | None) -> str:
    """Strip everything that is not a digit."""
    if not value:
        return ""
    return _NON_DIGITS.sub("", value)


def normalize_country(country: str | None) -> str:
    """Calling code without '+' or spaces ("+34" -> "34")."""
    return digits_only(country)


def expected_length(country: str | None) -> int:
    """Digit count a national number must have for this calling code."""
    fmt = COUNTRIES.get(normalize_country(country))
    return fmt.length if fmt else DEFAULT_PHONE_LENGTH


def has_valid_length(country: str | None, phone: str | None) -> bool:
    return len(digits_only(phone)) == expected_length(country)


def format_phone(country: str | None, phone: str | None) -> str:
    """
    Group digits for display using the country's pattern.

    Extra digits beyond the country's length are dropped, mirroring the
    input mask of the phone field.
    """
    fmt = COUNTRIES.get(normalize_country(country))
    length = fmt.length if fmt else DEFAULT_PHONE_LENGTH
    pattern = fmt.pattern if fmt else DEFAULT_PHONE_PATTERN

    digits = digits_only(phone)[:length]
    groups = []
    index = 0
    for size in pattern:
        if index >= len(digits):
            break
        groups.append(digits[index:index + size])
        index += size
    if index < len(digits):
        groups.append(digits[index:])
    return " ".join(groups)


def same_number(
    country_a: str | None,
    phone_a: str | None,
    country_b: str | None,
    phone_b: str | None,
) -> bool:
    """True when both refer to the same normalised (country, phone)."""
    phone_a = digits_only(phone_a)
    if not phone_a:
        return False
    return (
        normalize_country(country_a) == normalize_country(country_b)
        and phone_a == digits_only(phone_b)
    )
