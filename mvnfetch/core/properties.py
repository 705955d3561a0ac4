"""
Resolution of version expressions: ``${property}`` substitution against a
manifest's property table, and interpretation of version ranges.

Version ranges are deliberately under-approximated: ``[min,)`` always selects
its lower bound, and the repository is never queried for the highest version
that satisfies the range. Any other range form is passed through unchanged.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional, Union

PropertyTable = Mapping[str, Union[str, "PropertyTable"]]


@dataclass(frozen=True)
class VersionRange:
    """A parsed version range. Only the lower-bounded open form is understood."""

    min: Optional[str] = None
    include_min: bool = False
    max: Optional[str] = None
    include_max: bool = False
    exact: Optional[str] = None


def is_property_reference(expr: str) -> bool:
    return expr.startswith("${") and expr.endswith("}")


def is_range_expression(expr: str) -> bool:
    return ("[" in expr and "]" in expr) or "(" in expr or ")" in expr


def parse_version_range(expr: str) -> VersionRange:
    """
    Parses a bracket/parenthesis range.

    ``[1.0,)`` becomes ``VersionRange(min="1.0", include_min=True)``. Every other
    combination becomes ``VersionRange(exact=expr)``.
    """
    expr = expr.strip()
    if expr.startswith("[") and expr.endswith(")"):
        body = expr[1:-1]
        lower, sep, upper = body.partition(",")
        if sep and not upper.strip():
            return VersionRange(min=lower.strip(), include_min=True)
    return VersionRange(exact=expr)


def lookup_property(name: str, properties: PropertyTable) -> Optional[str]:
    """
    Looks up a property by its full name first, then by walking its dotted
    segments through nested tables.
    """
    direct = properties.get(name)
    if isinstance(direct, str):
        return direct

    current: Union[str, PropertyTable] = properties
    for part in name.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current if isinstance(current, str) else None


def resolve_version(
    expr: Optional[str], properties: Optional[PropertyTable] = None
) -> Optional[str]:
    """
    Resolves a raw version expression to a literal version.

    Returns None when a referenced property is unknown or a range is malformed.
    """
    if not expr:
        return None
    expr = expr.strip()
    if not expr:
        return None

    if is_property_reference(expr):
        return lookup_property(expr[2:-1], properties or {})

    if is_range_expression(expr):
        version_range = parse_version_range(expr)
        if version_range.exact is not None:
            return version_range.exact
        return version_range.min or None

    return expr
