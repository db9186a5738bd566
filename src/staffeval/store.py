"""Read access to employee and evaluation records.

The aggregator only depends on :class:`EvaluationStore`. Two backends ship
with the package: an Excel workbook (``Employees`` and ``Evaluations``
sheets) and the SQLite database written by the desktop application.
Both hand back raw row mappings; normalisation happens in
:func:`staffeval.aggregate.load_dataset`.
"""
from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, Hashable, List, Mapping, Optional, Protocol, runtime_checkable

import pandas as pd
from filelock import FileLock, Timeout

from .config import AppConfig
from .models import ValidationError, normalize_id

logger = logging.getLogger("staffeval.store")

EMPLOYEES_SHEET = "Employees"
EVALUATIONS_SHEET = "Evaluations"

EMPLOYEE_COLUMNS = ["id", "name", "job_role", "division", "hire_date"]
EVALUATION_COLUMNS = [
    "id",
    "employee_id",
    "employee_name",
    "date",
    "work_location",
    "job_role",
    "specific_task",
    "scores",
    "comment",
    "total_score",
]


@runtime_checkable
class EvaluationStore(Protocol):
    """Minimal read interface the aggregator needs."""

    def list_employees(self) -> List[Mapping[str, Any]]: ...

    def list_evaluations_for_employee(self, employee_id: Hashable) -> List[Mapping[str, Any]]: ...


def _records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    return frame.to_dict(orient="records")


class WorkbookStore:
    """Excel workbook backend.

    ``list_employees`` reads both sheets under the workbook lock and keeps
    them as the snapshot that the following per-employee queries are
    answered from, so one report sees one consistent state of the file.
    """

    def __init__(self, path: str | Path, timeout: float = 30.0) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self._employees: Optional[pd.DataFrame] = None
        self._evaluations: Optional[pd.DataFrame] = None

    def _read(self) -> None:
        if not self.path.exists():
            raise FileNotFoundError(f"Workbook not found: {self.path}")

        lock = FileLock(str(self.path) + ".lock", timeout=self.timeout)
        try:
            with lock:
                xl = pd.ExcelFile(self.path)
                try:
                    employees = xl.parse(EMPLOYEES_SHEET)
                    evaluations = xl.parse(EVALUATIONS_SHEET)
                except ValueError as exc:
                    raise ValidationError(
                        f"Workbook must contain {EMPLOYEES_SHEET} and {EVALUATIONS_SHEET} sheets"
                    ) from exc
        except Timeout as exc:
            raise TimeoutError(
                f"Unable to acquire lock for workbook {self.path} within {self.timeout} seconds"
            ) from exc

        if "id" not in employees:
            raise ValidationError(f"{EMPLOYEES_SHEET} sheet must contain an 'id' column")
        if "employee_id" not in evaluations:
            raise ValidationError(f"{EVALUATIONS_SHEET} sheet must contain an 'employee_id' column")

        self._employees = employees
        self._evaluations = evaluations
        logger.debug(
            "Workbook %s loaded: %d employees, %d evaluations",
            self.path,
            len(employees),
            len(evaluations),
        )

    def list_employees(self) -> List[Mapping[str, Any]]:
        self._read()
        assert self._employees is not None
        return _records(self._employees)

    def list_evaluations_for_employee(self, employee_id: Hashable) -> List[Mapping[str, Any]]:
        if self._evaluations is None:
            self._read()
        frame = self._evaluations
        assert frame is not None
        if frame.empty:
            return []
        mask = frame["employee_id"].map(normalize_id) == normalize_id(employee_id)
        return _records(frame.loc[mask])


class SQLiteStore:
    """Read-only access to the desktop application's SQLite database."""

    def __init__(self, path: str | Path, timeout: float = 30.0) -> None:
        self.path = Path(path)
        self.timeout = timeout

    def _query(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        if not self.path.exists():
            raise FileNotFoundError(f"Database not found: {self.path}")
        uri = f"file:{self.path.resolve().as_posix()}?mode=ro"
        try:
            with closing(sqlite3.connect(uri, uri=True, timeout=self.timeout)) as conn:
                frame = pd.read_sql_query(sql, conn, params=params)
        except sqlite3.OperationalError as exc:
            if "locked" in str(exc).lower():
                raise TimeoutError(
                    f"Database {self.path} stayed locked for {self.timeout} seconds"
                ) from exc
            raise
        return _records(frame)

    def list_employees(self) -> List[Mapping[str, Any]]:
        return self._query("SELECT id, name, beruf, sparte, hireDate FROM employees")

    def list_evaluations_for_employee(self, employee_id: Hashable) -> List[Mapping[str, Any]]:
        return self._query(
            "SELECT * FROM evaluations WHERE employeeId = ? ORDER BY date DESC",
            (normalize_id(employee_id),),
        )


def open_store(config: AppConfig, source: Optional[str | Path] = None) -> EvaluationStore:
    """Return the store backend selected in ``config``.

    ``source`` overrides the configured workbook or database path.
    """

    if config.store == "sqlite":
        return SQLiteStore(source or config.database_path, timeout=config.store_timeout)
    return WorkbookStore(source or config.workbook_path, timeout=config.store_timeout)


__all__ = [
    "EMPLOYEE_COLUMNS",
    "EMPLOYEES_SHEET",
    "EVALUATION_COLUMNS",
    "EVALUATIONS_SHEET",
    "EvaluationStore",
    "SQLiteStore",
    "WorkbookStore",
    "open_store",
]
