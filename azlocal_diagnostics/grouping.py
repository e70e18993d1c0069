"""
Grouping, ordering and filtering of records before rendering

Keys are compared as rendered strings using Python's ordinal (code point)
ordering, so results never depend on the locale.
"""

from typing import Any, Dict, Iterable, List, Sequence, Tuple

from .models import AdapterDetail, Group, Record
from .normalizer import format_value

ADAPTER_NAME_DELIMITER = "#"


def sort_key(record: Record, fields: Sequence[str]) -> Tuple[str, ...]:
    return tuple(format_value(record.get(name)) for name in fields)


def sort_records(records: Iterable[Record], fields: Sequence[str]) -> List[Record]:
    """Sort records by the rendered values of the given fields"""
    return sorted(records, key=lambda record: sort_key(record, fields))


def group_records(records: Iterable[Record], key_field: str, member_sort: Sequence[str] = ()) -> List[Group]:
    """
    Partition records by the value of key_field

    Args:
        records: Records to partition
        key_field: Field whose rendered value identifies the group
        member_sort: Fields used to order members within each group

    Returns:
        Groups sorted ascending by key
    """
    buckets: Dict[str, List[Record]] = {}
    for record in records:
        buckets.setdefault(format_value(record.get(key_field)), []).append(record)

    groups = []
    for key in sorted(buckets):
        members = buckets[key]
        if member_sort:
            members = sort_records(members, member_sort)
        groups.append(Group(key=key, members=members))
    return groups


def split_adapter_names(value: Any, delimiter: str = ADAPTER_NAME_DELIMITER) -> List[str]:
    """
    Split a delimiter-separated adapter list into clean names

    Lists are split element by element. Whitespace around each token is
    trimmed and empty tokens are dropped.
    """
    if value is None:
        return []
    parts = value if isinstance(value, (list, tuple)) else [value]
    names = []
    for part in parts:
        if part is None:
            continue
        for token in str(part).split(delimiter):
            token = token.strip()
            if token:
                names.append(token)
    return names


def passes_address_filter(adapter: AdapterDetail, include_all: bool = True) -> bool:
    """An adapter is kept in include-all mode or when it has an IPv4 address"""
    return include_all or adapter.has_ipv4


def filter_adapters(
    adapters: Iterable[AdapterDetail], exclude_disconnected: bool = False
) -> Tuple[List[AdapterDetail], List[AdapterDetail]]:
    """
    Split adapters into (shown, excluded)

    Adapters are only excluded when exclude_disconnected is requested.
    """
    shown, excluded = [], []
    for adapter in adapters:
        if passes_address_filter(adapter, include_all=not exclude_disconnected):
            shown.append(adapter)
        else:
            excluded.append(adapter)
    return shown, excluded
