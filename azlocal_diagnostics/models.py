"""
Data models for Azure Local diagnostics

Records returned by the PowerShell query layer are converted into ``Record``
objects whose values are tagged ``FieldValue`` variants, so the rendering code
never has to inspect raw JSON types.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class Sentinel:
    """Placeholder strings substituted for missing or invalid data"""

    NULL = "[NULL]"
    EMPTY = "[EMPTY]"
    EMPTY_ARRAY = "[EMPTY ARRAY]"
    EMPTY_ADAPTER_LIST = "[EMPTY ADAPTER LIST]"
    NULL_ITEM = "[NULL ITEM]"
    PROPERTY_NOT_FOUND = "[PROPERTY NOT FOUND]"
    NONE_ASSIGNED = "[NONE ASSIGNED]"
    ADAPTER_NOT_FOUND = "[ADAPTER NOT FOUND]"
    NOT_CLUSTERED = "[NOT CLUSTERED]"
    CLUSTER_INFO_UNAVAILABLE = "[CLUSTER INFO UNAVAILABLE]"
    VOLUME_INFO_UNAVAILABLE = "[VOLUME INFO UNAVAILABLE]"


# Fields of a network intent whose values are nested objects or lists of objects
OVERRIDE_FIELDS: Tuple[str, ...] = (
    "AdapterAdvancedParametersOverride",
    "RssConfigOverride",
    "QosPolicyOverride",
    "SwitchConfigOverride",
    "IPOverride",
    "NetAdapterCommonProperties",
)

INTENT_FIELDS: Tuple[str, ...] = (
    "IntentName",
    "ClusterName",
    "Scope",
    "IntentType",
    "IsComputeIntentSet",
    "IsManagementIntentSet",
    "IsStorageIntentSet",
    "IsStretchIntentSet",
    "IsOnlyCompute",
    "IsOnlyManagement",
    "IsOnlyStorage",
    "IsOnlyStretch",
    "IsNetworkIntentType",
    "NetAdapterNamesAsList",
    "ManagementVLAN",
    "StorageVLANs",
    "ResourceContentVersion",
    "LastModifiedUtc",
) + OVERRIDE_FIELDS

PHYSICAL_DISK_FIELDS: Tuple[str, ...] = (
    "Host",
    "FriendlyName",
    "SerialNumber",
    "MediaType",
    "BusType",
    "HealthStatus",
    "OperationalStatus",
    "Usage",
    "Size",
    "DeviceId",
    "PhysicalLocation",
    "FirmwareVersion",
)

VIRTUAL_DISK_FIELDS: Tuple[str, ...] = (
    "FriendlyName",
    "ResiliencySettingName",
    "NumberOfDataCopies",
    "ProvisioningType",
    "HealthStatus",
    "OperationalStatus",
    "Size",
    "FootprintOnPool",
    "UniqueId",
)

VOLUME_FIELDS: Tuple[str, ...] = (
    "FileSystemLabel",
    "DriveLetter",
    "FileSystem",
    "HealthStatus",
    "Size",
    "SizeRemaining",
    "Path",
)

CSV_FIELDS: Tuple[str, ...] = (
    "Name",
    "State",
    "OwnerNode",
    "FriendlyVolumeName",
)

# Fields that hold dates and should be parsed even when serialized as ISO strings
DATE_FIELDS = frozenset({"LastModifiedUtc", "DriverDate"})

_PS_DATE_PATTERN = re.compile(r"^/Date\((-?\d+)([+-]\d{4})?\)/$")
_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}(T[\d:.]+(Z|[+-]\d{2}:\d{2})?)?$")


def parse_powershell_date(value: str) -> Optional[datetime]:
    """
    Parse a date serialized by ConvertTo-Json

    Windows PowerShell 5.1 emits ``/Date(<ms since epoch>[+-HHMM])/`` while
    PowerShell 7 emits ISO 8601 strings with up to seven fractional digits.

    Returns:
        datetime, or None when the string is not a recognizable date
    """
    match = _PS_DATE_PATTERN.match(value)
    if match:
        try:
            tz = timezone.utc
            if match.group(2):
                offset = match.group(2)
                minutes = int(offset[1:3]) * 60 + int(offset[3:5])
                tz = timezone(timedelta(minutes=minutes if offset[0] == "+" else -minutes))
            return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=tz)
        except (OverflowError, ValueError, OSError):
            # Outside the platform's datetime range; keep the raw string
            return None

    if _ISO_DATE_PATTERN.match(value):
        text = value.replace("Z", "+00:00")
        if "." in text:
            # datetime.fromisoformat accepts at most six fractional digits
            head, _, tail = text.partition(".")
            digits = re.match(r"\d*", tail).group(0)
            text = f"{head}.{digits[:6].ljust(6, '0')}{tail[len(digits):]}"
        try:
            return datetime.fromisoformat(text)
        except (OverflowError, ValueError):
            return None
    return None


class ValueKind(Enum):
    """Variants a record field value can take"""

    MISSING = "missing"
    NULL = "null"
    EMPTY = "empty"
    SCALAR = "scalar"
    LIST = "list"
    NESTED = "nested"


@dataclass(frozen=True)
class FieldValue:
    """Tagged field value; ``raw`` keeps the source value for sorting and display"""

    kind: ValueKind
    raw: Any = None
    items: Tuple["FieldValue", ...] = ()
    record: Optional["Record"] = None

    @classmethod
    def missing(cls) -> "FieldValue":
        return cls(ValueKind.MISSING)

    @classmethod
    def classify(cls, raw: Any, parse_dates: bool = False) -> "FieldValue":
        """Convert a raw JSON value into its tagged variant"""
        if raw is None:
            return cls(ValueKind.NULL)
        if isinstance(raw, str):
            if not raw.strip():
                return cls(ValueKind.EMPTY, raw=raw)
            if raw.startswith("/Date(") or parse_dates:
                parsed = parse_powershell_date(raw)
                if parsed is not None:
                    return cls(ValueKind.SCALAR, raw=parsed)
            return cls(ValueKind.SCALAR, raw=raw)
        if isinstance(raw, dict):
            return cls(ValueKind.NESTED, raw=raw, record=Record.from_dict(raw))
        if isinstance(raw, (list, tuple)):
            return cls(ValueKind.LIST, raw=list(raw), items=tuple(cls.classify(item) for item in raw))
        return cls(ValueKind.SCALAR, raw=raw)

    @property
    def is_blank(self) -> bool:
        """True for values that carry no data (missing, null, blank or empty list)"""
        if self.kind in (ValueKind.MISSING, ValueKind.NULL, ValueKind.EMPTY):
            return True
        return self.kind == ValueKind.LIST and not self.items


@dataclass
class Record:
    """
    Ordered mapping of field name to FieldValue

    Declared fields come first in declaration order, followed by any extra
    fields in the order the source returned them.
    """

    fields: Dict[str, FieldValue] = field(default_factory=dict)
    extra_fields: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], declared: Sequence[str] = ()) -> "Record":
        fields: Dict[str, FieldValue] = {}
        for name in declared:
            if name in data:
                fields[name] = FieldValue.classify(data[name], parse_dates=name in DATE_FIELDS)
        extra_fields = []
        for name, value in data.items():
            if name not in fields:
                fields[name] = FieldValue.classify(value, parse_dates=name in DATE_FIELDS)
                extra_fields.append(name)
        return cls(fields=fields, extra_fields=extra_fields if declared else [])

    def names(self) -> List[str]:
        return list(self.fields)

    def get(self, name: str) -> FieldValue:
        return self.fields.get(name, FieldValue.missing())

    def value(self, name: str, default: Any = None) -> Any:
        """Raw scalar value of a field, or default when it is not a scalar"""
        item = self.get(name)
        if item.kind in (ValueKind.SCALAR, ValueKind.EMPTY):
            return item.raw
        return default

    def set(self, name: str, raw: Any) -> None:
        """Add or replace a computed field"""
        self.fields[name] = FieldValue.classify(raw)

    def __contains__(self, name: str) -> bool:
        return name in self.fields

    def __len__(self) -> int:
        return len(self.fields)


def records_from_json(data: Any, declared: Sequence[str] = ()) -> List[Record]:
    """Build records from ConvertTo-Json output (single object or array)"""
    if data is None:
        return []
    if isinstance(data, dict):
        data = [data]
    return [Record.from_dict(item, declared) for item in data if isinstance(item, dict)]


@dataclass
class Group:
    """Records sharing the same key value"""

    key: str
    members: List[Record] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.members)


class AdapterStatus:
    """Status values produced by the adapter lookup besides the adapter's own"""

    NOT_FOUND = "NotFound"
    ERROR = "Error"


@dataclass
class AdapterDetail:
    """Fixed-shape result of resolving one adapter name"""

    name: str
    description: Any = None
    status: Any = None
    mac_address: Any = None
    driver_name: Any = None
    driver_version: Any = None
    driver_date: Any = None
    ipv4_addresses: List[str] = field(default_factory=list)
    error_message: Optional[str] = None

    # Labels used for the fixed-field block, in display order
    LABELS = (
        ("Name", "name"),
        ("Description", "description"),
        ("Status", "status"),
        ("MAC Address", "mac_address"),
        ("Driver Name", "driver_name"),
        ("Driver Version", "driver_version"),
        ("Driver Date", "driver_date"),
    )

    @classmethod
    def not_found(cls, name: str) -> "AdapterDetail":
        """Factory method for adapters the platform does not know"""
        missing = Sentinel.ADAPTER_NOT_FOUND
        return cls(
            name=name,
            description=missing,
            status=AdapterStatus.NOT_FOUND,
            mac_address=missing,
            driver_name=missing,
            driver_version=missing,
            driver_date=missing,
        )

    @classmethod
    def error(cls, name: str, message: str) -> "AdapterDetail":
        """Factory method for adapters whose lookup failed"""
        return cls(name=name, status=AdapterStatus.ERROR, error_message=message)

    @property
    def has_ipv4(self) -> bool:
        return any(address and address.strip() for address in self.ipv4_addresses)

    def to_record(self) -> Record:
        """Labelled record for the fixed-field block"""
        fields = {}
        for label, attr in self.LABELS:
            value = getattr(self, attr)
            fields[label] = FieldValue.classify(value, parse_dates=attr == "driver_date")
        return Record(fields=fields)


def is_date(value: Any) -> bool:
    return isinstance(value, (date, datetime))
