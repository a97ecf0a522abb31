"""Country display names for the Polyjuice selector."""

import logging
from typing import Callable, Iterable

from babel import Locale, UnknownLocaleError

from .models import Country

logger = logging.getLogger(__name__)

CountryNamer = Callable[[str], str]


def get_country_flag(country_code: str) -> str:
    """Get flag emoji for ISO 3166-1 alpha-2 country code.

    Example: "US" -> 🇺🇸, "DE" -> 🇩🇪
    """
    if not country_code or len(country_code) != 2 or not country_code.isalpha():
        return "🌐"
    code = country_code.upper()
    # Regional Indicator Symbol base: 🇦 = U+1F1E6
    return "".join(chr(0x1F1E6 + ord(c) - ord("A")) for c in code)


def country_namer(locale: str) -> CountryNamer:
    """Return a function mapping ISO codes to names in ``locale``.

    Unknown locales fall back to English, unknown codes to the code itself.
    """
    try:
        territories = Locale.parse(locale).territories
    except (UnknownLocaleError, ValueError) as e:
        logger.warning("Unknown UI locale %r, using English: %s", locale, e)
        territories = Locale("en").territories

    def name(code: str) -> str:
        return territories.get(code.upper(), code)

    return name


def sort_countries(codes: Iterable[str], namer: CountryNamer) -> list[Country]:
    """Countries ordered by display name; equal names keep their input order."""
    countries = [Country(code=c, name=namer(c), flag=get_country_flag(c)) for c in codes]
    return sorted(countries, key=lambda c: c.name.casefold())
