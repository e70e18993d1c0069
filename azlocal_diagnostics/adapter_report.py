"""
Network intent adapter detail report

For each network intent, resolves the adapters it manages and writes their
description, status, driver and IPv4 configuration.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .data_collector import DataCollector, get_host_name
from .grouping import filter_adapters, split_adapter_names
from .models import AdapterDetail, AdapterStatus, Record, Sentinel, ValueKind
from .normalizer import format_value, indent, normalize_record
from .report_writer import ADAPTER_RULE_WIDTH, ReportWriter, open_report_file

TITLE = "NETWORK INTENT ADAPTER DETAILS REPORT"
ADAPTER_NAMES_FIELD = "NetAdapterNamesAsList"


class AdapterReportGenerator:
    """Renders per-intent adapter details and adapter statistics"""

    def __init__(
        self,
        intents: Sequence[Record],
        lookup: Callable[[str], AdapterDetail],
        host_name: str,
        cluster_name: str,
        exclude_disconnected: bool = False,
        generated_at: Optional[datetime] = None,
        adapter_field: str = ADAPTER_NAMES_FIELD,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the AdapterReportGenerator

        Args:
            intents: Intent records
            lookup: Resolves an adapter name to an AdapterDetail; must not raise
            host_name: Name of the host generating the report
            cluster_name: Cluster name or sentinel
            exclude_disconnected: Hide adapters without an IPv4 address
            generated_at: Report timestamp (defaults to now)
            adapter_field: Intent property holding the ``#``-separated adapter names
            logger: Optional logger instance
        """
        self.intents = list(intents)
        self.lookup = lookup
        self.host_name = host_name
        self.cluster_name = cluster_name
        self.exclude_disconnected = exclude_disconnected
        self.generated_at = generated_at or datetime.now().replace(microsecond=0)
        self.adapter_field = adapter_field
        self.logger = logger or logging.getLogger("azlocal_diagnostics.AdapterReportGenerator")

        self.total_adapters = 0
        self.adapters_with_ipv4 = 0
        self.adapters_excluded = 0

    def adapter_names(self, intent: Record) -> List[str]:
        value = intent.get(self.adapter_field)
        if value.kind not in (ValueKind.SCALAR, ValueKind.LIST):
            return []
        return split_adapter_names(value.raw)

    @staticmethod
    def render_adapter(adapter: AdapterDetail, depth: int = 1) -> List[str]:
        """Fixed-field block for one adapter"""
        pad = indent(depth)
        lines = [
            pad + "-" * ADAPTER_RULE_WIDTH,
            f"{pad}Adapter: {adapter.name}",
            pad + "-" * ADAPTER_RULE_WIDTH,
        ]
        lines.extend(normalize_record(adapter.to_record(), depth=depth))

        if adapter.has_ipv4:
            addresses = ", ".join(address for address in adapter.ipv4_addresses if address and address.strip())
        else:
            addresses = Sentinel.NONE_ASSIGNED
        lines.append(f"{pad}IPv4 Addresses: {addresses}")

        if adapter.status == AdapterStatus.ERROR:
            lines.append(f"{pad}Error: {adapter.error_message or Sentinel.NULL}")
        return lines

    def render_intent(self, intent: Record) -> List[str]:
        """Lines for one intent section; updates the adapter statistics"""
        names = self.adapter_names(intent)
        lines = [
            f"Intent Type: {format_value(intent.get('IntentType'))}",
            f"Adapter Names: {', '.join(names) if names else Sentinel.EMPTY_ADAPTER_LIST}",
            f"Adapter Count: {len(names)}",
        ]

        if not names:
            return lines

        adapters = []
        for name in names:
            self.logger.info(f"  Looking up adapter: {name}")
            adapters.append(self.lookup(name))

        shown, excluded = filter_adapters(adapters, self.exclude_disconnected)
        self.total_adapters += len(adapters)
        self.adapters_with_ipv4 += sum(1 for adapter in adapters if adapter.has_ipv4)
        self.adapters_excluded += len(excluded)

        for adapter in shown:
            lines.append("")
            lines.extend(self.render_adapter(adapter))
        return lines

    def write(self, writer: ReportWriter) -> None:
        writer.header(
            TITLE,
            self.generated_at,
            self.host_name,
            self.cluster_name,
            details=[
                ("Total Intents Found", len(self.intents)),
                ("Exclude Disconnected Adapters", self.exclude_disconnected),
            ],
        )

        for index, intent in enumerate(self.intents, start=1):
            name = format_value(intent.get("IntentName"))
            self.logger.info(f"Processing intent {index}/{len(self.intents)}: {name}")
            writer.banner(f"INTENT: {name}")
            writer.lines(self.render_intent(intent))
            writer.line()

        summary = [
            ("Total Intents Processed", len(self.intents)),
            ("Total Adapters Processed", self.total_adapters),
            ("Adapters with IPv4 Addresses", self.adapters_with_ipv4),
            ("Adapters without IPv4 Addresses", self.total_adapters - self.adapters_with_ipv4),
        ]
        if self.exclude_disconnected:
            summary.append(("Adapters Excluded (no IPv4 address)", self.adapters_excluded))
        writer.footer(summary)


def run_adapter_report(
    collector: DataCollector,
    output_file: Path,
    exclude_disconnected: bool = False,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Query intents, resolve their adapters and write the adapter report

    Returns:
        False when no intents were found (nothing is written), True otherwise
    """
    logger = logger or logging.getLogger("azlocal_diagnostics.adapter_report")

    intents = collector.collect_intents()
    if not intents:
        logger.warning("No network intents found")
        return False

    generator = AdapterReportGenerator(
        intents,
        lookup=collector.lookup_adapter,
        host_name=get_host_name(),
        cluster_name=collector.get_cluster_name(),
        exclude_disconnected=exclude_disconnected,
        logger=logger,
    )

    with open_report_file(output_file, logger) as writer:
        generator.write(writer)

    logger.info(
        f"Adapters processed: {generator.total_adapters}, "
        f"with IPv4: {generator.adapters_with_ipv4}, "
        f"without IPv4: {generator.total_adapters - generator.adapters_with_ipv4}"
    )
    logger.info(f"[DOC] Adapter report saved to: {output_file}")
    return True
