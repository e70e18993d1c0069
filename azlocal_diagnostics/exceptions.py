"""
Custom exceptions for standardized error handling
"""


class AzureLocalDiagnosticsError(Exception):
    """Base exception for Azure Local diagnostics"""


class PowerShellError(AzureLocalDiagnosticsError):
    """PowerShell command execution failed"""

    def __init__(self, message: str, command: str = None, stderr: str = None, category: str = None):
        self.command = command
        self.stderr = stderr
        self.category = category
        super().__init__(message)


class ObjectNotFoundError(PowerShellError):
    """PowerShell reported that the requested object does not exist"""


class ValidationError(AzureLocalDiagnosticsError):
    """Input validation failed"""


class ReportWriteError(AzureLocalDiagnosticsError):
    """Report output could not be written"""
