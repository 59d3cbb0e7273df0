"""Parser for string-encoded plan limits such as ``"10k/month"``.

Grammar: ``<number> [<unit>] [/<period>]``. A unit token that is a
magnitude suffix (``k``, ``m``, ``b``) scales the number instead of naming
a unit. Anything that does not fit the grammar falls back to its leading
numeric prefix, and to zero when there is none. A negative amount reads
as unlimited. Parsing never raises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

LIMIT_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([^/\s]+)?(?:/(\w+))?$")
NUMERIC_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

MAGNITUDE_SUFFIXES = {
    "k": Decimal("1000"),
    "m": Decimal("1000000"),
    "b": Decimal("1000000000"),
}
UNIT_ALIASES = {"h": "hours", "hr": "hours", "hrs": "hours"}
UNLIMITED = "unlimited"


@dataclass(frozen=True)
class ParsedLimit:
    raw: str
    amount: Decimal | None
    unit: str | None = None
    period: str | None = None
    unlimited: bool = False
    # False when no number could be read and amount defaulted to zero
    recognized: bool = True


def parse_limit_value(value: Any) -> ParsedLimit:
    """Parse a limit value string into amount, unit and period."""
    raw = "" if value is None else str(value)
    text = raw.strip().replace(",", "")

    if text.lower() == UNLIMITED:
        return ParsedLimit(raw=raw, amount=None, unlimited=True)

    match = LIMIT_PATTERN.match(text)
    if match:
        amount = Decimal(match.group(1))
        unit = match.group(2)
        if unit is not None and unit.lower() in MAGNITUDE_SUFFIXES:
            amount *= MAGNITUDE_SUFFIXES[unit.lower()]
            unit = None
        elif unit is not None:
            unit = UNIT_ALIASES.get(unit.lower(), unit)
        return ParsedLimit(
            raw=raw,
            amount=amount,
            unit=unit,
            period=match.group(3),
        )

    prefix = NUMERIC_PREFIX.match(text)
    if prefix:
        amount = Decimal(prefix.group(0))
        # catalogs write -1 for "no cap"
        if amount < 0:
            return ParsedLimit(raw=raw, amount=None, unlimited=True)
        return ParsedLimit(raw=raw, amount=amount)

    return ParsedLimit(raw=raw, amount=Decimal("0"), recognized=False)


def slugify(name: str) -> str:
    """Lower-case a limit name and join whitespace runs with dashes."""
    return re.sub(r"\s+", "-", name.strip().lower())
