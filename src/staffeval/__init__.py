"""staffeval package for employee evaluation statistics."""

from .aggregator import Aggregator, ReportResult
from .config import load_config
from .logging_utils import setup_logging
from .record import add_employee, build_evaluation, record_evaluation
from .report import build_dashboard, export_report
from .store import SQLiteStore, WorkbookStore, open_store
from .trend import calculate_trend

__all__ = [
    "Aggregator",
    "ReportResult",
    "SQLiteStore",
    "WorkbookStore",
    "add_employee",
    "build_dashboard",
    "build_evaluation",
    "calculate_trend",
    "export_report",
    "load_config",
    "open_store",
    "record_evaluation",
    "setup_logging",
]
