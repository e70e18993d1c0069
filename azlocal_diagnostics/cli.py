"""
Command line entry points for the Azure Local diagnostic reports

Each report is an independent command:
  azlocal-intent-report    Network intent detail report (text file)
  azlocal-adapter-report   Network intent adapter detail report (text file)
  azlocal-storage-report   Storage information report (console, optional CSV export)
"""

import argparse
import logging
import os
import sys
import traceback
from typing import List, Optional, Type

from .__version__ import __version__
from .adapter_report import run_adapter_report
from .data_collector import DataCollector
from .exceptions import ValidationError
from .intent_report import run_intent_report
from .powershell import PowerShellExecutor
from .storage_report import CSV_MATCH_RULES, DEFAULT_CSV_MATCH_RULES, run_storage_report
from .validators import InputValidator

LOGGER_NAME = "azlocal_diagnostics"
DEBUG_LOG_FILE = "azlocal-diagnostics-debug.log"


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure logging with appropriate handlers and formatters"""
    formatter = logging.Formatter(fmt="%(asctime)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False

    # Status messages go to stderr so they never mix with console report output
    if not any(type(handler) is logging.StreamHandler for handler in logger.handlers):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.setLevel(logging.INFO)

    debug = debug or os.environ.get("AZLOCAL_DIAGNOSTICS_DEBUG", "").lower() == "true"
    if debug:
        if not any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename.endswith(DEBUG_LOG_FILE)
            for handler in logger.handlers
        ):
            file_handler = logging.FileHandler(DEBUG_LOG_FILE, encoding="utf-8")
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
            logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


def _output_format(value: str) -> str:
    try:
        return InputValidator.validate_output_format(value)
    except ValidationError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


class ReportCommand:
    """Base class for report commands"""

    prog = "azlocal-report"
    description = ""
    epilog = ""

    def __init__(self, executor: Optional[PowerShellExecutor] = None):
        """
        Initialize the command

        Args:
            executor: PowerShell executor (created on first run when omitted)
        """
        self.executor = executor
        self.logger = logging.getLogger(LOGGER_NAME)

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog=self.prog,
            description=self.description,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self.epilog,
        )
        parser.add_argument(
            "--version", action="version", version=f"%(prog)s {__version__}", help="Show version and exit"
        )
        parser.add_argument("--debug", action="store_true", help=f"Enable debug logging (also writes {DEBUG_LOG_FILE})")
        self.add_arguments(parser)
        return parser

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add command specific arguments"""

    def parse_arguments(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        return self.build_parser().parse_args(argv)

    def execute(self, args: argparse.Namespace, collector: DataCollector) -> None:
        raise NotImplementedError

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main execution method"""
        args = self.parse_arguments(argv)
        self.logger = setup_logging(args.debug)

        if self.executor is None:
            self.executor = PowerShellExecutor()
        self.executor.check_prerequisites()

        collector = DataCollector(self.executor, self.logger)
        self.execute(args, collector)


class IntentReportCommand(ReportCommand):
    """Network intent detail report"""

    prog = "azlocal-intent-report"
    description = "Writes every property of every network intent, including override settings, to a text report"
    epilog = """
EXAMPLES:
  %(prog)s
  %(prog)s --output-file C:\\Reports\\IntentData.txt
    """

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-o", "--output-file", "--OutputFile", default="./IntentData.txt", help="Report file (default: %(default)s)"
        )

    def execute(self, args: argparse.Namespace, collector: DataCollector) -> None:
        output_file = InputValidator.validate_output_path(args.output_file)
        if run_intent_report(collector, output_file, self.logger):
            self.logger.info("[OK] Intent report completed successfully!")


class AdapterReportCommand(ReportCommand):
    """Network intent adapter detail report"""

    prog = "azlocal-adapter-report"
    description = "Writes driver, status and IPv4 details for the adapters of every network intent"
    epilog = """
EXAMPLES:
  %(prog)s
  %(prog)s --output-file IntentAdapterDetails.txt --exclude-disconnected
    """

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-o",
            "--output-file",
            "--OutputFile",
            default="./IntentAdapterDetails.txt",
            help="Report file (default: %(default)s)",
        )
        parser.add_argument(
            "--exclude-disconnected",
            "--ExcludeDisconnected",
            action="store_true",
            help="Leave out adapters without an IPv4 address (default: include all adapters)",
        )

    def execute(self, args: argparse.Namespace, collector: DataCollector) -> None:
        output_file = InputValidator.validate_output_path(args.output_file)
        if run_adapter_report(collector, output_file, args.exclude_disconnected, self.logger):
            self.logger.info("[OK] Adapter report completed successfully!")


class StorageReportCommand(ReportCommand):
    """Storage information report"""

    prog = "azlocal-storage-report"
    description = "Prints physical disks by host, virtual disks and cluster shared volumes"
    epilog = """
EXAMPLES:
  %(prog)s
  %(prog)s --output-format List --include-volume-info
  %(prog)s --output-format CSV --export-path C:\\Reports\\Storage
  %(prog)s --csv-match name path label
    """

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-f",
            "--output-format",
            "--OutputFormat",
            type=_output_format,
            default="Table",
            help="Table, List or CSV (default: %(default)s)",
        )
        parser.add_argument(
            "--export-path", "--ExportPath", metavar="DIR", help="Also export PhysicalDisks/VirtualDisks/CSVDisks CSV files"
        )
        parser.add_argument(
            "--include-volume-info", "--IncludeVolumeInfo", action="store_true", help="Add a volume section"
        )
        parser.add_argument(
            "--csv-match",
            nargs="+",
            choices=CSV_MATCH_RULES,
            default=list(DEFAULT_CSV_MATCH_RULES),
            metavar="RULE",
            help=f"Rules classifying virtual disks as CSVs: {', '.join(CSV_MATCH_RULES)} (default: %(default)s)",
        )

    def execute(self, args: argparse.Namespace, collector: DataCollector) -> None:
        export_path = InputValidator.validate_export_path(args.export_path) if args.export_path else None
        run_storage_report(
            collector,
            output_format=args.output_format,
            export_path=export_path,
            include_volume_info=args.include_volume_info,
            csv_rules=args.csv_match,
            logger=self.logger,
        )
        self.logger.info("[OK] Storage report completed successfully!")


def run_command(command_cls: Type[ReportCommand], argv: Optional[List[str]] = None, executor=None) -> int:
    """
    Run a report command and translate its outcome into an exit code

    Returns:
        0 on success (including when there was nothing to report),
        130 when interrupted, 1 on any other failure
    """
    exit_code = 0
    try:
        command = command_cls(executor)
        command.run(argv)
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.", file=sys.stderr)
        exit_code = 130  # Standard exit code for SIGINT
    except Exception as e:  # pylint: disable=broad-except
        logging.getLogger(LOGGER_NAME).error(f"Unexpected Error: {e}")
        traceback.print_exc()
        exit_code = 1
    return exit_code


def intent_report_main() -> None:
    sys.exit(run_command(IntentReportCommand))


def adapter_report_main() -> None:
    sys.exit(run_command(AdapterReportCommand))


def storage_report_main() -> None:
    sys.exit(run_command(StorageReportCommand))
