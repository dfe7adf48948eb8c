from .models import PrinterRecord, ScanConfiguration
from .scanner import collect_printers, scan, scan_target
from .targets import InvalidNetworkError, expand_targets

__all__ = [
    "InvalidNetworkError",
    "PrinterRecord",
    "ScanConfiguration",
    "collect_printers",
    "expand_targets",
    "scan",
    "scan_target",
]
