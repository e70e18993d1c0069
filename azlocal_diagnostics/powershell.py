"""
PowerShell command executor with improved error handling
"""

import json
import logging
import os
import re
import subprocess
from typing import Any, List, Optional

from .exceptions import ObjectNotFoundError, PowerShellError
from .validators import InputValidator

# Platform detection for the default executable
IS_WINDOWS = os.name == "nt"

_CATEGORY_PATTERN = re.compile(r"CategoryInfo\s*:\s*(\w+)")
_NOT_FOUND_MARKERS = ("objectnotfound", "no msft_", "cannot find", "was not found")


def default_executable() -> str:
    """PowerShell executable, overridable with AZLOCAL_POWERSHELL"""
    return os.environ.get("AZLOCAL_POWERSHELL") or ("powershell" if IS_WINDOWS else "pwsh")


class PowerShellExecutor:
    """Executes read-only PowerShell pipelines and parses their JSON output"""

    # Configuration constants
    POWERSHELL_TIMEOUT = 120
    JSON_DEPTH = 6

    def __init__(self, executable: Optional[str] = None):
        """
        Initialize PowerShell executor

        Args:
            executable: PowerShell executable (defaults to AZLOCAL_POWERSHELL, then powershell/pwsh)
        """
        self.executable = executable or default_executable()
        self.logger = logging.getLogger("azlocal_diagnostics.powershell")

    def build_command(self, script: str, expect_json: bool = True) -> List[str]:
        """Full argument vector for running script"""
        body = f"$ErrorActionPreference = 'Stop'; {script}"
        if expect_json:
            body = f"{body} | ConvertTo-Json -Depth {self.JSON_DEPTH} -Compress"
        return [self.executable, "-NoProfile", "-NonInteractive", "-Command", body]

    def execute(self, script: str, expect_json: bool = True, timeout: Optional[int] = None) -> Any:
        """
        Execute a PowerShell pipeline

        Args:
            script: Pipeline starting with an allowed cmdlet
            expect_json: Whether to pipe through ConvertTo-Json and parse the result
            timeout: Optional custom timeout in seconds (defaults to POWERSHELL_TIMEOUT)

        Returns:
            Parsed JSON (None when the pipeline produced nothing) or raw string output

        Raises:
            ObjectNotFoundError: If PowerShell reports the object does not exist
            PowerShellError: If command execution fails
            FileNotFoundError: If the PowerShell executable is not available
        """
        # Validate the pipeline before handing it to the shell
        InputValidator.validate_powershell_script(script)

        cmd = self.build_command(script, expect_json)
        cmd_timeout = timeout if timeout is not None else self.POWERSHELL_TIMEOUT
        self.logger.debug(f"Running: {script}")

        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, encoding="utf-8", errors="replace", check=True, timeout=cmd_timeout
            )
        except FileNotFoundError as e:
            raise FileNotFoundError(f"PowerShell executable '{self.executable}' is not installed or not in PATH") from e

        except subprocess.TimeoutExpired as e:
            self.logger.error(f"PowerShell command timed out after {cmd_timeout}s: {script}")
            raise PowerShellError(f"Command timed out after {cmd_timeout}s", command=script) from e

        except subprocess.CalledProcessError as e:
            stderr_output = e.stderr.strip() if e.stderr else ""
            stdout_output = e.stdout.strip() if e.stdout else ""
            message = stderr_output or stdout_output or "Unknown error"

            category_match = _CATEGORY_PATTERN.search(message)
            category = category_match.group(1) if category_match else None

            if (category or "").lower() == "objectnotfound" or any(
                marker in message.lower() for marker in _NOT_FOUND_MARKERS
            ):
                self.logger.debug(f"Object not found: {script}")
                raise ObjectNotFoundError(
                    f"Object not found: {message.splitlines()[0]}", command=script, stderr=stderr_output, category=category
                ) from e

            self.logger.debug(f"PowerShell command failed: {script}: {message}")
            raise PowerShellError(
                f"Command failed: {message.splitlines()[0]}", command=script, stderr=stderr_output, category=category
            ) from e

        output = result.stdout.strip()
        if not output:
            return None if expect_json else ""

        if not expect_json:
            return output

        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise PowerShellError(f"Failed to parse JSON output of: {script}", command=script) from e

    def execute_list(self, script: str, timeout: Optional[int] = None) -> List[Any]:
        """
        Execute a pipeline whose output is a collection

        ConvertTo-Json emits a bare object for single-item collections; this
        always returns a list.
        """
        data = self.execute(script, expect_json=True, timeout=timeout)
        if data is None:
            return []
        if isinstance(data, list):
            return data
        return [data]

    def check_prerequisites(self) -> bool:
        """
        Check that the PowerShell executable can be started

        Raises:
            FileNotFoundError: If PowerShell is not installed
        """
        try:
            subprocess.run(
                [self.executable, "-NoProfile", "-NonInteractive", "-Command", "$PSVersionTable.PSVersion.ToString()"],
                capture_output=True,
                check=True,
                timeout=self.POWERSHELL_TIMEOUT,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise FileNotFoundError(f"PowerShell executable '{self.executable}' is not installed or not in PATH") from e

        return True
