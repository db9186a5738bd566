"""Utilities for adding employees and evaluations to the workbook."""
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Hashable, Mapping, Optional

import pandas as pd
from filelock import FileLock, Timeout

from .categories import CATEGORY_IDS, get_category, is_known
from .models import Employee, Evaluation, ValidationError, normalize_id, normalize_scores, parse_date
from .store import EMPLOYEE_COLUMNS, EMPLOYEES_SHEET, EVALUATION_COLUMNS, EVALUATIONS_SHEET

logger = logging.getLogger("staffeval.record")


def build_evaluation(
    employee: Employee,
    scores: Mapping[str, Any],
    comment: str = "",
    on: Optional[date] = None,
    work_location: str = "",
    job_role: str = "",
    specific_task: str = "",
) -> Evaluation:
    """Validate sub-scores against the catalog and compute the total.

    Every catalog category must be scored, within ``0..max_points``.
    """

    normalized = normalize_scores(dict(scores))
    unknown = sorted(key for key in normalized if not is_known(key))
    if unknown:
        raise ValidationError(f"Unknown categories: {', '.join(unknown)}")
    missing = [category_id for category_id in CATEGORY_IDS if category_id not in normalized]
    if missing:
        raise ValidationError(f"Missing scores for: {', '.join(missing)}")
    for category_id, points in normalized.items():
        max_points = get_category(category_id).max_points
        if not 0 <= points <= max_points:
            raise ValidationError(f"{category_id} must be between 0 and {max_points}, got {points}")

    ordered = {category_id: normalized[category_id] for category_id in CATEGORY_IDS}
    return Evaluation(
        employee_id=employee.id,
        employee_name=employee.name,
        date=on or date.today(),
        total_score=float(sum(ordered.values())),
        scores=ordered,
        comment=comment or "",
        work_location=work_location,
        job_role=job_role or employee.job_role,
        specific_task=specific_task,
    )


def load_evaluation_json(path: str | Path) -> Evaluation:
    """Read an evaluation exported by the desktop application."""

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Evaluation file not found: {source}")
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{source} is not valid JSON") from exc
    if not isinstance(data, Mapping):
        raise ValidationError(f"{source} must contain a JSON object")
    evaluation = Evaluation.from_record(data)
    if evaluation.scores_error:
        raise ValidationError(f"{source}: {evaluation.scores_error}")
    return evaluation


def create_workbook(workbook_path: str | Path) -> Path:
    """Write an empty workbook with the Employees and Evaluations sheets."""

    path = Path(workbook_path)
    if path.exists():
        raise FileExistsError(f"Workbook already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(columns=EMPLOYEE_COLUMNS).to_excel(writer, sheet_name=EMPLOYEES_SHEET, index=False)
        pd.DataFrame(columns=EVALUATION_COLUMNS).to_excel(writer, sheet_name=EVALUATIONS_SHEET, index=False)
    logger.info("Empty workbook created at %s", path)
    return path


def _next_id(frame: pd.DataFrame) -> int:
    if frame.empty or "id" not in frame:
        return 1
    ids = pd.to_numeric(frame["id"], errors="coerce").dropna()
    return int(ids.max()) + 1 if not ids.empty else 1


def _rewrite(path: Path, timeout: float, sheet_name: str, row_factory) -> Dict[str, Any]:
    """Append the row built by ``row_factory(sheets)`` to ``sheet_name`` under the lock."""

    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")

    lock = FileLock(str(path) + ".lock", timeout=timeout)
    try:
        with lock:
            with pd.ExcelFile(path) as excel:
                sheets = {name: excel.parse(name) for name in excel.sheet_names}
            if sheet_name not in sheets or EMPLOYEES_SHEET not in sheets:
                raise ValidationError(f"Workbook missing '{sheet_name}' sheet")

            new_row = row_factory(sheets)
            target = sheets[sheet_name]
            addition = pd.DataFrame([new_row])
            if target.empty:
                columns = list(dict.fromkeys([*target.columns, *addition.columns]))
                sheets[sheet_name] = addition.reindex(columns=columns)
            else:
                sheets[sheet_name] = pd.concat([target, addition], ignore_index=True)

            with pd.ExcelWriter(path, engine="openpyxl", mode="w") as writer:
                for name, df in sheets.items():
                    df.to_excel(writer, sheet_name=name, index=False)
    except Timeout as exc:
        raise TimeoutError(
            f"Unable to acquire lock for workbook {path} within {timeout} seconds"
        ) from exc
    return new_row


def add_employee(
    workbook_path: str | Path,
    name: str,
    job_role: str,
    division: str,
    hire_date: date | datetime | str,
    timeout: float = 30.0,
) -> Employee:
    """Append an employee to the Employees sheet and return it with its new id."""

    if not name.strip():
        raise ValidationError("Employee name is required")
    hired = parse_date(hire_date)

    def build(sheets: Dict[str, pd.DataFrame]) -> Dict[str, Any]:
        return {
            "id": _next_id(sheets[EMPLOYEES_SHEET]),
            "name": name.strip(),
            "job_role": job_role,
            "division": division,
            "hire_date": hired.isoformat(),
        }

    row = _rewrite(Path(workbook_path), timeout, EMPLOYEES_SHEET, build)
    logger.info("New employee added: id=%s name=%s", row["id"], row["name"])
    return Employee.from_record(row)


def find_employee(workbook_path: str | Path, employee_id: Hashable) -> Employee:
    employees = pd.read_excel(Path(workbook_path), sheet_name=EMPLOYEES_SHEET)
    wanted = normalize_id(employee_id)
    for record in employees.to_dict(orient="records"):
        if normalize_id(record.get("id")) == wanted:
            return Employee.from_record(record)
    raise ValidationError(f"Unknown employee id: {employee_id}")


def record_evaluation(workbook_path: str | Path, evaluation: Evaluation, timeout: float = 30.0) -> Evaluation:
    """Append an evaluation to the Evaluations sheet.

    The referenced employee must exist. Scores are stored as a JSON string,
    the same layout the SQLite database uses. Returns the evaluation with
    its assigned id.
    """

    def build(sheets: Dict[str, pd.DataFrame]) -> Dict[str, Any]:
        known = {normalize_id(value) for value in sheets[EMPLOYEES_SHEET].get("id", pd.Series(dtype=object))}
        if normalize_id(evaluation.employee_id) not in known:
            raise ValidationError(f"Unknown employee id: {evaluation.employee_id}")
        return {
            "id": _next_id(sheets[EVALUATIONS_SHEET]),
            "employee_id": evaluation.employee_id,
            "employee_name": evaluation.employee_name,
            "date": evaluation.date.isoformat(),
            "work_location": evaluation.work_location,
            "job_role": evaluation.job_role,
            "specific_task": evaluation.specific_task,
            "scores": json.dumps(evaluation.scores, ensure_ascii=False),
            "comment": evaluation.comment,
            "total_score": evaluation.total_score,
        }

    row = _rewrite(Path(workbook_path), timeout, EVALUATIONS_SHEET, build)
    logger.info("New evaluation recorded: %s", {k: row[k] for k in ("id", "employee_id", "date", "total_score")})
    return Evaluation.from_record(row)


__all__ = [
    "add_employee",
    "build_evaluation",
    "create_workbook",
    "find_employee",
    "load_evaluation_json",
    "record_evaluation",
]
