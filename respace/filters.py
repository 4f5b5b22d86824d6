"""
Property filter chains.

A chain is an ordered list of ``property = value`` tests joined by AND/OR
connectors and folded left to right. The connector of the first entry is
ignored when combining.

By default evaluation stops as soon as an entry whose connector is AND
leaves the running result false, so a later OR cannot re-admit the item:
``tag=work AND ... OR tag=personal`` rejects a personal-only document.
Existing filter sessions behave this way. Pass ``short_circuit=False`` for
plain boolean folding, where ``false OR true`` is true.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from .protocol import PropertyResolver
from .types import ReviewItem

logger = logging.getLogger(__name__)


class Connector(str, Enum):
    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class Filter:
    """One ``property = value`` test in a chain."""
    property: str
    value: str
    connector: Connector = Connector.AND

    def __str__(self) -> str:
        return f"{self.connector.value} {self.property} = {self.value}"


def stringify(value: Any) -> str:
    """Render a scalar property value the way documents display it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def matches(properties: Mapping[str, Any], flt: Filter) -> bool:
    """
    Test one filter against resolved properties.

    Lists match when they contain the value exactly; scalars match on their
    string form; a missing or null property never matches.
    """
    value = properties.get(flt.property)
    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        return flt.value in value
    return stringify(value) == flt.value


def evaluate(
    properties: Optional[Mapping[str, Any]],
    chain: Sequence[Filter],
    *,
    short_circuit: bool = True,
) -> bool:
    """
    Evaluate a filter chain against one document's properties.

    Args:
        properties: Resolved properties, or None if the document has none
        chain: Filters in order
        short_circuit: Stop at the first AND entry that leaves the result
            false (default). False folds every entry.

    Returns:
        True if the document passes. An empty chain passes everything;
        a document without properties fails any non-empty chain.
    """
    if not chain:
        return True
    if properties is None:
        return False

    result = True
    for i, flt in enumerate(chain):
        hit = matches(properties, flt)
        if i == 0:
            result = hit
        elif flt.connector is Connector.AND:
            result = result and hit
        else:
            result = result or hit
        if short_circuit and flt.connector is Connector.AND and not result:
            break
    return result


def filter_items(
    items: Iterable[ReviewItem],
    resolver: PropertyResolver,
    chain: Sequence[Filter],
    *,
    short_circuit: bool = True,
) -> list[ReviewItem]:
    """Keep the items whose properties pass the chain, preserving order."""
    items = list(items)
    if not chain:
        return items
    return [
        item for item in items
        if evaluate(resolver(item.path), chain, short_circuit=short_circuit)
    ]


def parse_filter(expr: str, *, first: bool = False) -> Filter:
    """
    Parse ``[and:|or:]property=value``.

    Raises:
        ValueError: If the expression has no ``=`` or an empty property
    """
    connector = Connector.AND
    text = expr.strip()
    prefix, sep, rest = text.partition(":")
    if sep and prefix.strip().upper() in Connector.__members__ and "=" in rest:
        connector = Connector(prefix.strip().upper())
        text = rest.strip()
    if "=" not in text:
        raise ValueError(f"Invalid filter {expr!r}. Use property=value")
    prop, value = text.split("=", 1)
    prop = prop.strip()
    if not prop:
        raise ValueError(f"Invalid filter {expr!r}: empty property")
    if first and connector is not Connector.AND:
        # A chain always starts with AND
        logger.debug("Connector on first filter %r is ignored", expr)
        connector = Connector.AND
    return Filter(property=prop, value=value.strip(), connector=connector)


def parse_filter_chain(exprs: Optional[Iterable[str]]) -> list[Filter]:
    """Parse CLI filter expressions in order."""
    if not exprs:
        return []
    return [parse_filter(s, first=(i == 0)) for i, s in enumerate(exprs)]
