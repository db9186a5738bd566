"""Employee and evaluation records and their normalisation from raw store rows."""
from __future__ import annotations

import json
import numbers
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Hashable, Mapping, Optional

import pandas as pd


class ValidationError(Exception):
    """Raised when a record or an evaluation input fails validation rules."""


@dataclass(frozen=True)
class Employee:
    id: Hashable
    name: str
    job_role: str = ""
    division: str = ""
    hire_date: Optional[date] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Employee":
        """Build an employee from a store row (``hireDate``/``beruf`` or snake_case keys)."""

        if isinstance(record, Employee):
            return record
        emp_id = _pick(record, "id", "employee_id", "employeeId")
        if _missing(emp_id):
            raise ValidationError(f"Employee record without id: {dict(record)}")
        name = _pick(record, "name")
        hire_value = _pick(record, "hire_date", "hireDate")
        return cls(
            id=normalize_id(emp_id),
            name="" if _missing(name) else str(name),
            job_role=_text(_pick(record, "job_role", "beruf", "position")),
            division=_text(_pick(record, "division", "sparte", "department")),
            hire_date=None if _missing(hire_value) else parse_date(hire_value),
        )


@dataclass(frozen=True)
class Evaluation:
    employee_id: Hashable
    date: date
    total_score: float
    scores: Optional[Dict[str, int]] = field(default_factory=dict)
    comment: str = ""
    id: Optional[Hashable] = None
    employee_name: str = ""
    work_location: str = ""
    job_role: str = ""
    specific_task: str = ""
    scores_error: Optional[str] = None

    @property
    def month(self) -> str:
        return self.date.strftime("%Y-%m")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Evaluation":
        """Build an evaluation from a store row.

        ``scores`` may arrive as a JSON string or as a mapping; both end up as
        a ``dict`` of category id to integer points. Unreadable scores leave
        the rest of the evaluation usable: ``scores`` is ``None`` and
        ``scores_error`` says why.
        """

        if isinstance(record, Evaluation):
            return record
        employee_id = _pick(record, "employee_id", "employeeId")
        if _missing(employee_id):
            raise ValidationError("Evaluation record without employee id")

        date_value = _pick(record, "date")
        if _missing(date_value):
            raise ValidationError(f"Evaluation for employee {employee_id} has no date")

        total_value = _pick(record, "total_score", "totalScore")
        try:
            total_score = float(total_value)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid total score: {total_value!r}") from exc
        if pd.isna(total_score):
            raise ValidationError(f"Evaluation for employee {employee_id} has no total score")

        scores: Optional[Dict[str, int]]
        try:
            scores = normalize_scores(_pick(record, "scores"))
            scores_error = None
        except ValidationError as exc:
            scores, scores_error = None, str(exc)

        eval_id = _pick(record, "id")
        return cls(
            id=None if _missing(eval_id) else normalize_id(eval_id),
            employee_id=normalize_id(employee_id),
            date=parse_date(date_value),
            total_score=total_score,
            scores=scores,
            comment=_text(_pick(record, "comment")),
            employee_name=_text(_pick(record, "employee_name", "employeeName")),
            work_location=_text(_pick(record, "work_location", "workLocation")),
            job_role=_text(_pick(record, "job_role", "jobRole")),
            specific_task=_text(_pick(record, "specific_task", "specificTask")),
            scores_error=scores_error,
        )

    def to_record(self) -> Dict[str, Any]:
        """Serialise in the desktop application's export layout (camelCase keys)."""

        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "workLocation": self.work_location,
            "jobRole": self.job_role,
            "specificTask": self.specific_task,
            "scores": None if self.scores is None else dict(self.scores),
            "comment": self.comment,
            "totalScore": self.total_score,
            "date": self.date.isoformat(),
        }


def normalize_scores(value: Any) -> Dict[str, int]:
    """Return the canonical ``{category: points}`` mapping for a raw scores field."""

    if value is None or (isinstance(value, float) and pd.isna(value)):
        return {}
    if isinstance(value, (bytes, str)):
        text = value.decode("utf-8") if isinstance(value, bytes) else value
        if not text.strip():
            return {}
        try:
            value = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"scores is not valid JSON: {text[:40]!r}") from exc
    if not isinstance(value, Mapping):
        raise ValidationError(f"scores must be a mapping, got {type(value).__name__}")

    scores: Dict[str, int] = {}
    for key, points in value.items():
        try:
            number = float(points)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Score for {key!r} is not numeric: {points!r}") from exc
        if not number.is_integer():
            raise ValidationError(f"Score for {key!r} must be a whole number: {points!r}")
        scores[str(key)] = int(number)
    return scores


def parse_date(value: Any) -> date:
    try:
        stamp = pd.to_datetime(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid date value: {value!r}") from exc
    if pd.isna(stamp):
        raise ValidationError(f"Invalid date value: {value!r}")
    return stamp.date()


def normalize_id(value: Any) -> Hashable:
    # pandas hands integer columns back as numpy scalars or floats
    if isinstance(value, bool):
        return value
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real) and float(value).is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def _pick(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return None


def _missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _text(value: Any) -> str:
    return "" if _missing(value) else str(value)


__all__ = ["Employee", "Evaluation", "ValidationError", "normalize_id", "normalize_scores", "parse_date"]
