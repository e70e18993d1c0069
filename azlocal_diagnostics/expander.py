"""
Expansion of override fields

Override fields hold a nested object or a list of nested objects and are
rendered one level deeper than the plain fields of a record.
"""

from typing import List, Sequence

from .models import FieldValue, Record, Sentinel, ValueKind
from .normalizer import format_value, indent, normalize_record


def _expand_nested(value: FieldValue, depth: int) -> List[str]:
    if value.kind == ValueKind.NESTED and len(value.record):
        return normalize_record(value.record, depth=depth)
    # No discoverable fields: fall back to the value's own string form
    return [f"{indent(depth)}{format_value(value)}"]


def expand_override(name: str, value: FieldValue, depth: int = 0) -> List[str]:
    """
    Render one override field with a header line followed by its content

    Args:
        name: Field name used as the header
        value: Field value (a MISSING value renders as property not found)
        depth: Indentation depth of the header line

    Returns:
        Rendered lines
    """
    lines = [f"{indent(depth)}{name}:"]
    inner = depth + 1

    if value.kind == ValueKind.MISSING:
        lines.append(f"{indent(inner)}{Sentinel.PROPERTY_NOT_FOUND}")
    elif value.kind == ValueKind.NULL:
        lines.append(f"{indent(inner)}{Sentinel.NULL}")
    elif value.kind == ValueKind.LIST:
        if not value.items:
            lines.append(f"{indent(inner)}{Sentinel.EMPTY_ARRAY}")
        for index, item in enumerate(value.items):
            if index:
                lines.append("")
            lines.append(f"{indent(inner)}[{index}]:")
            if item.kind == ValueKind.NULL:
                lines.append(f"{indent(inner + 1)}{Sentinel.NULL_ITEM}")
            else:
                lines.extend(_expand_nested(item, inner + 1))
    else:
        lines.extend(_expand_nested(value, inner))
    return lines


def expand_overrides(record: Record, override_fields: Sequence[str], depth: int = 0) -> List[str]:
    """Expand every override field in declared order, separated by blank lines"""
    lines: List[str] = []
    for position, name in enumerate(override_fields):
        if position:
            lines.append("")
        lines.extend(expand_override(name, record.get(name), depth))
    return lines
