import re
from collections.abc import Iterable

KNOWN_LOCALITIES: tuple[str, ...] = ("zürich", "zurich", "switzerland")
DEFAULT_LOCALITY = "Zürich, Switzerland"

_POSTAL_CODE = re.compile(r"\d{4}")


def has_locality(street_address: str, known_localities: Iterable[str] = KNOWN_LOCALITIES) -> bool:
    """True if the address names a known city or carries a 4-digit postal code."""
    lowered = street_address.lower()
    if any(token.lower() in lowered for token in known_localities):
        return True
    return _POSTAL_CODE.search(street_address) is not None


def build_complete_address(
    street_address: str,
    locality: str | None = None,
    *,
    known_localities: Iterable[str] = KNOWN_LOCALITIES,
    default_locality: str = DEFAULT_LOCALITY,
) -> str:
    """Turn a listing's street address into something a geocoder can resolve.

    >>> build_complete_address("Musterstrasse 5", "8001 Zürich")
    'Musterstrasse 5, 8001 Zürich'
    >>> build_complete_address("Bahnhofstrasse 1, 8001 Zürich")
    'Bahnhofstrasse 1, 8001 Zürich'
    >>> build_complete_address("Musterstrasse 5")
    'Musterstrasse 5, Zürich, Switzerland'
    """
    street_address = street_address.strip()
    if has_locality(street_address, known_localities):
        return street_address
    if locality and locality.strip():
        return f"{street_address}, {locality.strip()}"
    return f"{street_address}, {default_locality}"
