"""
Report sink

Line-oriented writer shared by the text reports, plus helpers that open the
output file and create output directories.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence, TextIO, Tuple, Union

from .exceptions import ReportWriteError

# Configuration constants
BANNER_WIDTH = 80
SECTION_RULE_WIDTH = 40
ADAPTER_RULE_WIDTH = 50
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create a directory (and its parents) if it does not exist"""
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ReportWriteError(f"Failed to create directory {directory}: {e}") from e
    return directory


class ReportWriter:
    """Writes report lines to a text stream"""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.lines_written = 0

    def line(self, text: str = "") -> None:
        self.stream.write(f"{text}\n")
        self.lines_written += 1

    def lines(self, texts: Iterable[str]) -> None:
        for text in texts:
            self.line(text)

    def rule(self, char: str = "=", width: int = BANNER_WIDTH, prefix: str = "") -> None:
        self.line(prefix + char * width)

    def banner(self, title: str) -> None:
        """Title framed by full-width ``=`` rules"""
        self.rule("=")
        self.line(title)
        self.rule("=")

    def subheading(self, title: str) -> None:
        """Section title underlined with a ``-`` rule"""
        self.line(title)
        self.rule("-", SECTION_RULE_WIDTH)

    def header(
        self, title: str, generated_at: datetime, host: str, cluster: str, details: Sequence[Tuple[str, Any]] = ()
    ) -> None:
        """
        Write the report header block

        Args:
            title: Report title
            generated_at: Generation time (rendered with second precision)
            host: Host identity
            cluster: Cluster name or sentinel
            details: Additional label/value pairs such as entity counts
        """
        self.rule("=")
        self.line(title)
        self.rule("=")
        self.line(f"Generated: {generated_at.strftime(TIMESTAMP_FORMAT)}")
        self.line(f"Computer: {host}")
        self.line(f"Cluster: {cluster}")
        for label, value in details:
            self.line(f"{label}: {value}")
        self.rule("=")
        self.line()

    def footer(self, summary: Sequence[Tuple[str, Any]]) -> None:
        """Write the summary block and the end-of-report marker"""
        self.line()
        self.banner("SUMMARY")
        for label, value in summary:
            self.line(f"{label}: {value}")
        self.rule("=")
        self.line("END OF REPORT")
        self.rule("=")


@contextmanager
def open_report_file(path: Union[str, Path], logger: logging.Logger = None) -> Iterator[ReportWriter]:
    """
    Open a UTF-8 report file for writing

    The parent directory is created when missing. The file is closed on every
    exit path, including errors raised while the report is being written.

    Raises:
        ReportWriteError: If the file cannot be opened
    """
    logger = logger or logging.getLogger("azlocal_diagnostics.report_writer")
    path = Path(path)
    ensure_directory(path.parent)

    try:
        handle = open(path, "w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise ReportWriteError(f"Failed to open report file {path}: {e}") from e

    try:
        yield ReportWriter(handle)
    finally:
        handle.close()
        logger.debug(f"Closed report file: {path}")
