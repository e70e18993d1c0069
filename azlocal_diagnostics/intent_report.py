"""
Network intent detail report

Writes every property of every network intent: plain properties first,
followed by an expanded block for each override property.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from .data_collector import DataCollector, get_host_name
from .expander import expand_overrides
from .models import OVERRIDE_FIELDS, Record
from .normalizer import format_value, normalize_record
from .report_writer import SECTION_RULE_WIDTH, ReportWriter, open_report_file

TITLE = "NETWORK INTENT DETAILED REPORT"


class IntentReportGenerator:
    """Renders network intents into the detailed text report"""

    def __init__(
        self,
        intents: Sequence[Record],
        host_name: str,
        cluster_name: str,
        generated_at: Optional[datetime] = None,
        override_fields: Sequence[str] = OVERRIDE_FIELDS,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the IntentReportGenerator

        Args:
            intents: Intent records, in the order they were returned
            host_name: Name of the host generating the report
            cluster_name: Cluster name or sentinel
            generated_at: Report timestamp (defaults to now)
            override_fields: Properties expanded as nested objects, in render order
            logger: Optional logger instance
        """
        self.intents = list(intents)
        self.host_name = host_name
        self.cluster_name = cluster_name
        self.generated_at = generated_at or datetime.now().replace(microsecond=0)
        self.override_fields = tuple(override_fields)
        self.logger = logger or logging.getLogger("azlocal_diagnostics.IntentReportGenerator")

    def basic_fields(self, intent: Record) -> List[str]:
        return [name for name in intent.names() if name not in self.override_fields]

    def render_intent(self, intent: Record) -> List[str]:
        """Lines for one intent section (without the surrounding banner)"""
        lines = ["BASIC PROPERTIES:", "-" * SECTION_RULE_WIDTH]
        lines.extend(normalize_record(intent, self.basic_fields(intent)))
        lines.extend(["", "OVERRIDE CONFIGURATIONS:", "-" * SECTION_RULE_WIDTH])
        lines.extend(expand_overrides(intent, self.override_fields))
        return lines

    def write(self, writer: ReportWriter) -> None:
        writer.header(
            TITLE,
            self.generated_at,
            self.host_name,
            self.cluster_name,
            details=[("Total Intents Found", len(self.intents))],
        )

        for index, intent in enumerate(self.intents, start=1):
            name = format_value(intent.get("IntentName"))
            self.logger.info(f"Processing intent {index}/{len(self.intents)}: {name}")
            writer.banner(f"INTENT #{index}: {name}")
            writer.line()
            writer.lines(self.render_intent(intent))
            writer.line()

        writer.footer([("Total Intents Processed", len(self.intents))])


def run_intent_report(collector: DataCollector, output_file: Path, logger: Optional[logging.Logger] = None) -> bool:
    """
    Query intents and write the detailed report

    Args:
        collector: Data collector used for all platform queries
        output_file: Report destination
        logger: Optional logger instance

    Returns:
        False when no intents were found (nothing is written), True otherwise
    """
    logger = logger or logging.getLogger("azlocal_diagnostics.intent_report")

    intents = collector.collect_intents()
    if not intents:
        logger.warning("No network intents found")
        return False

    generator = IntentReportGenerator(
        intents,
        host_name=get_host_name(),
        cluster_name=collector.get_cluster_name(),
        logger=logger,
    )

    with open_report_file(output_file, logger) as writer:
        generator.write(writer)

    logger.info(f"[DOC] Intent report saved to: {output_file}")
    return True
