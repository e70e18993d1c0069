"""
Input validation utilities
"""

from pathlib import Path

from .exceptions import ValidationError

# Configuration constants
MAX_ARGUMENT_LENGTH = 256
OUTPUT_FORMATS = ("Table", "List", "CSV")
ALLOWED_CMDLETS = {
    "Get-NetIntent",
    "Get-NetAdapter",
    "Get-NetIPAddress",
    "Get-Cluster",
    "Get-StorageSubSystem",
    "Get-StorageNode",
    "Get-PhysicalDisk",
    "Get-VirtualDisk",
    "Get-ClusterSharedVolume",
    "Get-Volume",
}


class InputValidator:
    """Validates user inputs and PowerShell invocations"""

    @staticmethod
    def validate_powershell_script(script: str) -> None:
        """
        Validate that a script starts with a read-only cmdlet we expect to run

        Args:
            script: PowerShell pipeline text

        Raises:
            ValidationError: If the script is empty or starts with another command
        """
        if not script or not isinstance(script, str) or not script.strip():
            raise ValidationError("Script must be a non-empty string")

        first_token = script.strip().split()[0]
        if first_token not in ALLOWED_CMDLETS:
            raise ValidationError(f"Command '{first_token}' is not allowed")

        if "\n" in script or "\r" in script:
            raise ValidationError("Script must be a single line")

    @staticmethod
    def quote_argument(value: str) -> str:
        """
        Quote a value as a PowerShell single-quoted string literal

        Args:
            value: Raw argument value (adapter name, node name)

        Returns:
            Literal safe to embed in a script

        Raises:
            ValidationError: If the value is empty, too long or contains control characters
        """
        if value is None or not str(value).strip():
            raise ValidationError("Argument cannot be empty")

        value = str(value)
        if len(value) > MAX_ARGUMENT_LENGTH:
            raise ValidationError(f"Argument must be at most {MAX_ARGUMENT_LENGTH} characters")

        if any(ord(char) < 32 for char in value):
            raise ValidationError("Argument contains control characters")

        # Typographic quotes are treated as quote characters by PowerShell too
        for quote in ("'", "\u2018", "\u2019", "\u201a", "\u201b"):
            value = value.replace(quote, quote * 2)
        return f"'{value}'"

    @staticmethod
    def validate_output_path(filepath: str) -> Path:
        """
        Validate a report output file path

        Args:
            filepath: User-provided file path

        Returns:
            Resolved path

        Raises:
            ValidationError: If the path is empty or names an existing directory
        """
        if not filepath or not str(filepath).strip():
            raise ValidationError("Output file path cannot be empty")

        resolved_path = Path(filepath).expanduser().resolve()
        if resolved_path.is_dir():
            raise ValidationError(f"Output file path is a directory: {resolved_path}")

        return resolved_path

    @staticmethod
    def validate_export_path(dirpath: str) -> Path:
        """
        Validate a CSV export directory

        Raises:
            ValidationError: If the path is empty or names an existing file
        """
        if not dirpath or not str(dirpath).strip():
            raise ValidationError("Export path cannot be empty")

        resolved_path = Path(dirpath).expanduser().resolve()
        if resolved_path.exists() and not resolved_path.is_dir():
            raise ValidationError(f"Export path is not a directory: {resolved_path}")

        return resolved_path

    @staticmethod
    def validate_output_format(value: str) -> str:
        """
        Normalize an output format name, case-insensitively

        Returns:
            One of Table, List or CSV

        Raises:
            ValidationError: If the format is unknown
        """
        for name in OUTPUT_FORMATS:
            if value and value.strip().lower() == name.lower():
                return name
        raise ValidationError(f"Output format must be one of: {', '.join(OUTPUT_FORMATS)}")
