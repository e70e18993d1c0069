"""
Storage information report

Groups physical disks by host, summarizes disk models, lists virtual disks
(flagging the ones backing cluster shared volumes) and optionally volumes.
Output is rendered as a table (tabulate), a list, or CSV, and can also be
exported to timestamped CSV files.

Sizes are converted from bytes to terabytes (1024^4 bytes) and rounded to two
decimals with ROUND_HALF_UP (half away from zero for the non-negative sizes
reported by the platform). Totals are the sum of the rounded per-disk values,
rounded again.
"""

import csv
import io
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO

from tabulate import tabulate

from .data_collector import DataCollector, get_host_name
from .grouping import group_records, sort_records
from .models import Record, Sentinel
from .normalizer import format_value
from .report_writer import ReportWriter, ensure_directory

TITLE = "AZURE LOCAL STORAGE INFORMATION REPORT"
EXPORT_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
TABLE_FORMAT = "simple"
BYTES_PER_TB = Decimal(1024**4)
TWO_PLACES = Decimal("0.01")

PHYSICAL_COLUMNS = (
    "FriendlyName",
    "SerialNumber",
    "MediaType",
    "BusType",
    "HealthStatus",
    "OperationalStatus",
    "Usage",
    "SizeTB",
)
PHYSICAL_EXPORT_COLUMNS = ("Host",) + PHYSICAL_COLUMNS + ("DeviceId", "PhysicalLocation", "FirmwareVersion", "Size")
MODEL_COLUMNS = ("FriendlyName", "MediaType", "Count", "TotalSizeTB")
VIRTUAL_COLUMNS = (
    "FriendlyName",
    "ResiliencySettingName",
    "NumberOfDataCopies",
    "ProvisioningType",
    "HealthStatus",
    "OperationalStatus",
    "SizeTB",
    "FootprintTB",
    "IsCSV",
)
VIRTUAL_EXPORT_COLUMNS = VIRTUAL_COLUMNS + ("UniqueId", "Size", "FootprintOnPool")
VOLUME_COLUMNS = ("FileSystemLabel", "DriveLetter", "FileSystem", "HealthStatus", "SizeTB", "FreeTB")

OUTPUT_FORMATS = ("Table", "List", "CSV")
CSV_MATCH_RULES = ("name", "path", "label")
DEFAULT_CSV_MATCH_RULES = ("name", "path")
CSV_INFO_UNAVAILABLE = "[CSV INFO UNAVAILABLE]"
NONE_FOUND = "[NONE FOUND]"


def bytes_to_tb(value: Any) -> Optional[Decimal]:
    """Convert a byte count to terabytes rounded to two places, or None if not numeric"""
    if value is None or isinstance(value, bool):
        return None
    try:
        size = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not size.is_finite():
        return None
    try:
        return (size / BYTES_PER_TB).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits for the decimal context
        return None


def sum_tb(values: Iterable[Optional[Decimal]]) -> Decimal:
    """Sum rounded terabyte values, skipping unknown ones, and round again"""
    total = sum((value for value in values if value is not None), Decimal("0"))
    return total.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def record_tb(record: Record, name: str) -> Optional[Decimal]:
    return bytes_to_tb(record.value(name))


def _tb_text(value: Optional[Decimal]) -> str:
    return Sentinel.NULL if value is None else str(value)


def _leaf(path: str) -> str:
    return path.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


class CsvMatcher:
    """
    Decides whether a virtual disk backs a cluster shared volume

    The platform exposes no direct link between the two, so classification is
    a set of name matching rules (case-insensitive); a disk is a CSV when any
    enabled rule matches:

    - name: CSV resource name equals the disk name or ``Cluster Virtual Disk (<name>)``
    - path: last segment of the CSV mount path equals the disk name
    - label: a CSVFS volume has a file system label equal to the disk name
    """

    def __init__(self, rules: Sequence[str] = DEFAULT_CSV_MATCH_RULES):
        if not rules:
            raise ValueError("At least one CSV match rule is required")
        unknown = [rule for rule in rules if rule not in CSV_MATCH_RULES]
        if unknown:
            raise ValueError(f"Unknown CSV match rule(s): {', '.join(unknown)}")
        self.rules = tuple(rules)

    @property
    def needs_volumes(self) -> bool:
        return "label" in self.rules

    @property
    def needs_csvs(self) -> bool:
        return "name" in self.rules or "path" in self.rules

    def is_csv(self, disk: Record, csvs: Sequence[Record], volumes: Sequence[Record] = ()) -> bool:
        name = disk.value("FriendlyName")
        if not name or not str(name).strip():
            return False
        name = str(name).strip().casefold()

        for csv_record in csvs:
            if "name" in self.rules:
                csv_name = str(csv_record.value("Name", "")).strip().casefold()
                if csv_name in (name, f"cluster virtual disk ({name})"):
                    return True
            if "path" in self.rules:
                mount = csv_record.value("FriendlyVolumeName")
                if mount and _leaf(str(mount)).casefold() == name:
                    return True

        if "label" in self.rules:
            for volume in volumes:
                label = str(volume.value("FileSystemLabel", "")).strip().casefold()
                file_system = str(volume.value("FileSystem", "")).upper()
                if label == name and file_system.startswith("CSVFS"):
                    return True
        return False


@dataclass
class StorageInventory:
    """Storage records collected for one report run"""

    physical_disks: List[Record] = field(default_factory=list)
    virtual_disks: List[Record] = field(default_factory=list)
    cluster_shared_volumes: Optional[List[Record]] = None
    volumes: Optional[List[Record]] = None
    csv_info_available: bool = True

    @staticmethod
    def is_csv(disk: Record) -> Any:
        """True/False, or the unavailable sentinel when CSV data could not be read"""
        return disk.value("IsCSV", False)

    @property
    def csv_disks(self) -> List[Record]:
        return [disk for disk in self.virtual_disks if self.is_csv(disk) is True]


def collect_inventory(
    collector: DataCollector,
    include_volume_info: bool = False,
    matcher: Optional[CsvMatcher] = None,
    logger: Optional[logging.Logger] = None,
) -> StorageInventory:
    """
    Run all storage queries

    Physical and virtual disk queries are required; failures there propagate.
    CSV and volume lookups are best effort and leave None on failure.
    """
    logger = logger or logging.getLogger("azlocal_diagnostics.storage_report")
    matcher = matcher or CsvMatcher()

    inventory = StorageInventory(
        physical_disks=collector.collect_physical_disks(),
        virtual_disks=collector.collect_virtual_disks(),
    )

    if matcher.needs_csvs:
        try:
            inventory.cluster_shared_volumes = collector.collect_cluster_shared_volumes()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning(f"Cluster shared volume information unavailable: {e}")

    if include_volume_info or matcher.needs_volumes:
        try:
            inventory.volumes = collector.collect_volumes()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning(f"Volume information unavailable: {e}")

    inventory.csv_info_available = not (
        (not matcher.needs_csvs or inventory.cluster_shared_volumes is None)
        and (not matcher.needs_volumes or inventory.volumes is None)
    )
    for disk in inventory.virtual_disks:
        if inventory.csv_info_available:
            disk.set("IsCSV", matcher.is_csv(disk, inventory.cluster_shared_volumes or [], inventory.volumes or []))
        else:
            disk.set("IsCSV", CSV_INFO_UNAVAILABLE)
    return inventory


class StorageReportGenerator:
    """Renders a StorageInventory as Table, List or CSV output"""

    def __init__(
        self,
        inventory: StorageInventory,
        host_name: str,
        cluster_name: str,
        output_format: str = "Table",
        include_volume_info: bool = False,
        generated_at: Optional[datetime] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the StorageReportGenerator

        Args:
            inventory: Collected storage records
            host_name: Name of the host generating the report
            cluster_name: Cluster name or sentinel
            output_format: Table, List or CSV
            include_volume_info: Add the volume section
            generated_at: Report timestamp (defaults to now)
            logger: Optional logger instance
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Output format must be one of: {', '.join(OUTPUT_FORMATS)}")
        self.inventory = inventory
        self.host_name = host_name
        self.cluster_name = cluster_name
        self.output_format = output_format
        self.include_volume_info = include_volume_info
        self.generated_at = generated_at or datetime.now().replace(microsecond=0)
        self.logger = logger or logging.getLogger("azlocal_diagnostics.StorageReportGenerator")

    # Row builders

    @staticmethod
    def physical_row(disk: Record, columns: Sequence[str] = PHYSICAL_COLUMNS) -> Dict[str, str]:
        computed = {"SizeTB": _tb_text(record_tb(disk, "Size"))}
        return {name: computed[name] if name in computed else format_value(disk.get(name)) for name in columns}

    @staticmethod
    def virtual_row(disk: Record, columns: Sequence[str] = VIRTUAL_COLUMNS) -> Dict[str, str]:
        computed = {
            "SizeTB": _tb_text(record_tb(disk, "Size")),
            "FootprintTB": _tb_text(record_tb(disk, "FootprintOnPool")),
        }
        return {name: computed[name] if name in computed else format_value(disk.get(name)) for name in columns}

    @staticmethod
    def volume_row(volume: Record) -> Dict[str, str]:
        computed = {
            "SizeTB": _tb_text(record_tb(volume, "Size")),
            "FreeTB": _tb_text(record_tb(volume, "SizeRemaining")),
        }
        return {
            name: computed[name] if name in computed else format_value(volume.get(name)) for name in VOLUME_COLUMNS
        }

    def model_rows(self) -> List[Dict[str, str]]:
        """One row per disk model (physical disk FriendlyName)"""
        rows = []
        for group in group_records(self.inventory.physical_disks, "FriendlyName"):
            media_types = sorted({format_value(disk.get("MediaType")) for disk in group.members})
            rows.append(
                {
                    "FriendlyName": group.key,
                    "MediaType": ", ".join(media_types),
                    "Count": str(len(group)),
                    "TotalSizeTB": str(sum_tb(record_tb(disk, "Size") for disk in group.members)),
                }
            )
        return rows

    # Formatters

    def format_rows(self, rows: Sequence[Dict[str, str]], columns: Sequence[str]) -> List[str]:
        """Render rows in the configured output format"""
        if not rows:
            return [NONE_FOUND]

        if self.output_format == "Table":
            table = tabulate(
                [[row[name] for name in columns] for row in rows],
                headers=list(columns),
                tablefmt=TABLE_FORMAT,
                disable_numparse=True,
            )
            return table.splitlines()

        if self.output_format == "List":
            width = max(len(name) for name in columns)
            lines = []
            for position, row in enumerate(rows):
                if position:
                    lines.append("")
                lines.extend(f"{name.ljust(width)} : {row[name]}" for name in columns)
            return lines

        return to_csv_text(rows, columns).splitlines()

    # Summary

    def summary(self) -> List[Any]:
        physical_tb = sum_tb(record_tb(disk, "Size") for disk in self.inventory.physical_disks)
        virtual_tb = sum_tb(record_tb(disk, "Size") for disk in self.inventory.virtual_disks)
        csv_count = len(self.inventory.csv_disks) if self.inventory.csv_info_available else CSV_INFO_UNAVAILABLE
        return [
            ("Total Physical Disks", len(self.inventory.physical_disks)),
            ("Total Physical Capacity (TB)", physical_tb),
            ("Total Virtual Disks", len(self.inventory.virtual_disks)),
            ("Total Virtual Disk Capacity (TB)", virtual_tb),
            ("CSV Disks", csv_count),
        ]

    def write(self, writer: ReportWriter) -> None:
        inventory = self.inventory
        writer.header(
            TITLE,
            self.generated_at,
            self.host_name,
            self.cluster_name,
            details=[
                ("Output Format", self.output_format),
                ("Total Physical Disks", len(inventory.physical_disks)),
                ("Total Virtual Disks", len(inventory.virtual_disks)),
            ],
        )

        writer.banner("PHYSICAL DISKS BY HOST")
        groups = group_records(inventory.physical_disks, "Host", member_sort=("FriendlyName", "SerialNumber"))
        if not groups:
            writer.line(NONE_FOUND)
        for group in groups:
            writer.line()
            writer.subheading(f"Host: {group.key} ({len(group)} disk(s))")
            writer.lines(self.format_rows([self.physical_row(disk) for disk in group.members], PHYSICAL_COLUMNS))
            total = sum_tb(record_tb(disk, "Size") for disk in group.members)
            writer.line(f"Host Total (TB): {total}")
        writer.line()

        writer.banner("PHYSICAL DISK SUMMARY BY MODEL")
        writer.lines(self.format_rows(self.model_rows(), MODEL_COLUMNS))
        writer.line()

        virtual_disks = sort_records(inventory.virtual_disks, ("FriendlyName",))
        writer.banner("VIRTUAL DISKS")
        writer.lines(self.format_rows([self.virtual_row(disk) for disk in virtual_disks], VIRTUAL_COLUMNS))
        writer.line()

        writer.banner("CSV DISKS")
        if not inventory.csv_info_available:
            writer.line(CSV_INFO_UNAVAILABLE)
        else:
            csv_disks = sort_records(inventory.csv_disks, ("FriendlyName",))
            writer.lines(self.format_rows([self.virtual_row(disk) for disk in csv_disks], VIRTUAL_COLUMNS))
        writer.line()

        if self.include_volume_info:
            writer.banner("VOLUMES")
            if inventory.volumes is None:
                writer.line(Sentinel.VOLUME_INFO_UNAVAILABLE)
            else:
                volumes = sort_records(inventory.volumes, ("FileSystemLabel", "DriveLetter", "Path"))
                writer.lines(self.format_rows([self.volume_row(volume) for volume in volumes], VOLUME_COLUMNS))
            writer.line()

        writer.footer(self.summary())


def to_csv_text(rows: Sequence[Dict[str, str]], columns: Sequence[str]) -> str:
    """Comma-separated text with a header row and no type row"""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), lineterminator="\n", extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def export_csv(
    generator: StorageReportGenerator,
    export_path: Path,
    timestamp: Optional[datetime] = None,
    logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """
    Write PhysicalDisks, VirtualDisks and CSVDisks CSV files

    All files share one ``yyyyMMdd-HHmmss`` timestamp. The CSVDisks file is
    skipped when no virtual disk is classified as a CSV.

    Returns:
        Paths of the files written
    """
    logger = logger or logging.getLogger("azlocal_diagnostics.storage_report")
    directory = ensure_directory(export_path)
    stamp = (timestamp or datetime.now()).strftime(EXPORT_TIMESTAMP_FORMAT)
    inventory = generator.inventory

    physical = sort_records(inventory.physical_disks, ("Host", "FriendlyName", "SerialNumber"))
    virtual = sort_records(inventory.virtual_disks, ("FriendlyName",))
    exports = [
        (
            f"PhysicalDisks-{stamp}.csv",
            [generator.physical_row(disk, PHYSICAL_EXPORT_COLUMNS) for disk in physical],
            PHYSICAL_EXPORT_COLUMNS,
        ),
        (
            f"VirtualDisks-{stamp}.csv",
            [generator.virtual_row(disk, VIRTUAL_EXPORT_COLUMNS) for disk in virtual],
            VIRTUAL_EXPORT_COLUMNS,
        ),
    ]
    csv_disks = [disk for disk in virtual if inventory.is_csv(disk) is True]
    if csv_disks:
        exports.append(
            (
                f"CSVDisks-{stamp}.csv",
                [generator.virtual_row(disk, VIRTUAL_EXPORT_COLUMNS) for disk in csv_disks],
                VIRTUAL_EXPORT_COLUMNS,
            )
        )
    else:
        logger.info("No CSV disks found; skipping CSVDisks export")

    written = []
    for filename, rows, columns in exports:
        path = directory / filename
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(to_csv_text(rows, columns))
        logger.info(f"[DOC] Exported: {path}")
        written.append(path)
    return written


def run_storage_report(
    collector: DataCollector,
    output_format: str = "Table",
    export_path: Optional[Path] = None,
    include_volume_info: bool = False,
    csv_rules: Sequence[str] = DEFAULT_CSV_MATCH_RULES,
    stream: Optional[TextIO] = None,
    logger: Optional[logging.Logger] = None,
) -> StorageReportGenerator:
    """
    Collect storage inventory, print the report and optionally export CSV files

    Returns:
        The generator used, for access to the inventory and totals
    """
    logger = logger or logging.getLogger("azlocal_diagnostics.storage_report")
    matcher = CsvMatcher(csv_rules)

    inventory = collect_inventory(collector, include_volume_info, matcher, logger)
    generator = StorageReportGenerator(
        inventory,
        host_name=get_host_name(),
        cluster_name=collector.get_cluster_name(),
        output_format=output_format,
        include_volume_info=include_volume_info,
        logger=logger,
    )

    generator.write(ReportWriter(stream or sys.stdout))

    if export_path is not None:
        export_csv(generator, export_path, logger=logger)

    return generator
