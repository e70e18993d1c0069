"""
Record normalizer

Turns a Record into one ``name: value`` line per field, with sentinels for
null, blank and absent values.
"""

import logging
from typing import Any, List, Optional, Sequence

from .models import FieldValue, Record, Sentinel, ValueKind, is_date

INDENT_UNIT = "    "
DATE_FORMAT = "%Y-%m-%d"

logger = logging.getLogger("azlocal_diagnostics.normalizer")


def indent(depth: int) -> str:
    return INDENT_UNIT * max(depth, 0)


def display_string(raw: Any) -> str:
    """Default string form of a raw value, close to what PowerShell prints"""
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "True" if raw else "False"
    if is_date(raw):
        return raw.strftime(DATE_FORMAT)
    if isinstance(raw, dict):
        return "@{" + "; ".join(f"{key}={display_string(value)}" for key, value in raw.items()) + "}"
    if isinstance(raw, (list, tuple)):
        return ", ".join(display_string(item) for item in raw)
    return str(raw)


def format_value(value: FieldValue) -> str:
    """
    Render a field value or its sentinel

    Never raises: a conversion failure becomes an ``[ERROR: ...]`` marker for
    this value only.
    """
    if value.kind == ValueKind.MISSING:
        return Sentinel.PROPERTY_NOT_FOUND
    if value.kind == ValueKind.NULL:
        return Sentinel.NULL
    if value.kind == ValueKind.EMPTY:
        return Sentinel.EMPTY
    if value.kind == ValueKind.LIST and not value.items:
        return Sentinel.EMPTY_ARRAY

    try:
        if value.kind == ValueKind.LIST:
            return ", ".join(
                Sentinel.NULL if item.kind == ValueKind.NULL else format_value(item) for item in value.items
            )
        text = display_string(value.raw)
    except Exception as e:  # pylint: disable=broad-except
        logger.debug(f"Failed to convert value to string: {e}")
        return f"[ERROR: {e}]"

    if not text.strip():
        return Sentinel.EMPTY
    return text


def format_field(record: Record, name: str, depth: int = 0) -> str:
    return f"{indent(depth)}{name}: {format_value(record.get(name))}"


def normalize_record(record: Record, field_names: Optional[Sequence[str]] = None, depth: int = 0) -> List[str]:
    """
    Render a record as indented ``name: value`` lines

    Args:
        record: Record to render
        field_names: Fields to emit, in order (defaults to all discovered fields)
        depth: Indentation depth

    Returns:
        One line per field
    """
    names = record.names() if field_names is None else list(field_names)
    return [format_field(record, name, depth) for name in names]
