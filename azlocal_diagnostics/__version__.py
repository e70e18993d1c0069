"""Version information for Azure Local Diagnostics

Version Format:
- Python package version: "1.0.0" (no "v" prefix, PEP 440 compliant)
- Git tags: "v1.0.0" (with "v" prefix, Git convention)
"""

__version__ = "1.0.0"
__author__ = "Azure Local Diagnostics Generator"
__description__ = "Read-only diagnostic reports for Azure Local network intents, adapters and storage"
