"""Azure Local Diagnostics - read-only network intent, adapter and storage reports"""

from .__version__ import __author__, __version__
from .models import AdapterDetail, FieldValue, Group, Record, Sentinel, ValueKind

__all__ = [
    "__version__",
    "__author__",
    "AdapterDetail",
    "FieldValue",
    "Group",
    "Record",
    "Sentinel",
    "ValueKind",
]
