"""Report calculations over a snapshot of employees and evaluations.

:func:`load_dataset` is the only place raw store rows are turned into
:class:`~staffeval.models.Employee` and :class:`~staffeval.models.Evaluation`
objects; a malformed row is logged and skipped without aborting the load.
An evaluation whose scores cannot be read is kept: it still counts for
every report built on totals, dates and comments, and is left out only
where per-category points are folded.
Every other function here is a pure fold over the resulting :class:`Dataset`.
"""
from __future__ import annotations

import logging
import math
import random
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Sequence

import pandas as pd

from .categories import CATEGORY_IDS, get_category
from .models import Employee, Evaluation, ValidationError
from .store import EvaluationStore
from .trend import calculate_trend

logger = logging.getLogger("staffeval.aggregate")


@dataclass(frozen=True)
class Dataset:
    employees: Sequence[Employee]
    evaluations: Mapping[Hashable, Sequence[Evaluation]] = field(default_factory=dict)
    skipped: int = 0

    def evaluations_for(self, employee_id: Hashable) -> Sequence[Evaluation]:
        return self.evaluations.get(employee_id, ())

    def all_evaluations(self) -> Iterator[Evaluation]:
        for employee in self.employees:
            yield from self.evaluations_for(employee.id)

    @property
    def unscored(self) -> int:
        """Evaluations kept without readable per-category scores."""
        return sum(1 for evaluation in self.all_evaluations() if evaluation.scores is None)


def normalize_employees(raw: Iterable[Any]) -> List[Employee]:
    employees: List[Employee] = []
    for record in raw:
        try:
            employees.append(Employee.from_record(record))
        except ValidationError as exc:
            logger.warning("Skipping malformed employee record: %s", exc)
    return employees


def load_employees(store: EvaluationStore) -> List[Employee]:
    return normalize_employees(store.list_employees())


def load_evaluations(store: EvaluationStore, employees: Sequence[Employee]) -> Dataset:
    """Fetch and normalise the evaluations of ``employees``."""

    evaluations: Dict[Hashable, List[Evaluation]] = {}
    skipped = 0
    for employee in employees:
        parsed: List[Evaluation] = []
        for record in store.list_evaluations_for_employee(employee.id):
            try:
                parsed.append(Evaluation.from_record(record))
            except ValidationError as exc:
                skipped += 1
                logger.warning("Skipping malformed evaluation of employee %s: %s", employee.id, exc)
        evaluations[employee.id] = parsed
    return Dataset(employees=list(employees), evaluations=evaluations, skipped=skipped)


def load_dataset(store: EvaluationStore) -> Dataset:
    return load_evaluations(store, load_employees(store))


def lookback_start(asof: date, months: int = 12) -> date:
    """First day that still counts as "within the last ``months`` months"."""

    return (pd.Timestamp(asof) - pd.DateOffset(months=months)).date()


def sample_employees(employees: Sequence[Employee], rng: random.Random) -> List[Employee]:
    """Random half of the population, rounded up."""

    size = math.ceil(len(employees) / 2)
    return rng.sample(list(employees), size)


def evaluation_frame(dataset: Dataset) -> pd.DataFrame:
    rows = [
        {
            "employee_id": evaluation.employee_id,
            "date": pd.Timestamp(evaluation.date),
            "month": evaluation.month,
            "total_score": evaluation.total_score,
        }
        for evaluation in dataset.all_evaluations()
    ]
    return pd.DataFrame(rows, columns=["employee_id", "date", "month", "total_score"])


def average_score(dataset: Dataset) -> float:
    frame = evaluation_frame(dataset)
    if frame.empty:
        return 0.0
    return float(frame["total_score"].mean())


def score_development(dataset: Dataset, start: date) -> List[Dict[str, Any]]:
    """Monthly mean total score of evaluations dated on or after ``start``.

    Means are rounded to one decimal. An empty list means there was nothing
    to aggregate.
    """
    frame = evaluation_frame(dataset)
    if frame.empty:
        return []
    frame = frame.loc[frame["date"] >= pd.Timestamp(start)]
    if frame.empty:
        return []
    means = frame.groupby("month")["total_score"].mean().sort_index()
    return [{"date": month, "average_score": round(float(value), 1)} for month, value in means.items()]


def top_performers(dataset: Dataset, limit: int = 5) -> List[Dict[str, Any]]:
    frame = evaluation_frame(dataset)
    if frame.empty:
        return []
    names = {employee.id: employee.name for employee in dataset.employees}
    means = frame.groupby("employee_id", sort=False)["total_score"].mean()
    ranked = means.sort_values(ascending=False, kind="stable").head(limit)
    return [
        {"employee_id": emp_id, "name": names.get(emp_id, ""), "average_score": float(value)}
        for emp_id, value in ranked.items()
    ]


def category_averages(dataset: Dataset) -> List[Dict[str, Any]]:
    """Mean points per catalog category, worst first.

    A category with no observations averages 0. Score keys outside the
    catalog are ignored, and so are evaluations with unreadable scores.
    """
    scored = []
    for evaluation in dataset.all_evaluations():
        if evaluation.scores is None:
            logger.warning(
                "Skipping scores of evaluation %s (employee %s): %s",
                evaluation.id,
                evaluation.employee_id,
                evaluation.scores_error,
            )
            continue
        scored.append(evaluation.scores)
    frame = pd.DataFrame(
        scored,
        columns=list(CATEGORY_IDS),
        dtype=float,
    )
    means = frame.mean().fillna(0.0).sort_values(kind="stable")
    return [
        {
            "category": category_id,
            "name": get_category(category_id).name,
            "average_score": float(value),
        }
        for category_id, value in means.items()
    ]


def improvement_potential(dataset: Dataset, limit: int = 5) -> List[Dict[str, Any]]:
    return category_averages(dataset)[:limit]


def strengths_and_weaknesses(dataset: Dataset) -> List[Dict[str, Any]]:
    return list(reversed(category_averages(dataset)))


def score_changes_over_time(dataset: Dataset, start: date, limit: int = 3) -> List[Dict[str, Any]]:
    """Employees with the steepest rising and falling score trends.

    Only evaluations dated on or after ``start`` count, and an employee needs
    at least two of them. The result lists the ``limit`` strongest risers
    (most positive first) followed by the ``limit`` lowest trends, steepest
    decline first. With fewer than ``2 * limit`` qualifying employees the
    two blocks overlap.
    """
    entries: List[Dict[str, Any]] = []
    for employee in dataset.employees:
        history = sorted(dataset.evaluations_for(employee.id), key=lambda item: item.date)
        recent = [evaluation for evaluation in history if evaluation.date >= start]
        if len(recent) < 2:
            continue
        trend = calculate_trend(
            list(range(len(recent))),
            [evaluation.total_score for evaluation in recent],
        )
        entries.append(
            {
                "employee_id": employee.id,
                "name": employee.name,
                "changes": [
                    {"date": evaluation.date.isoformat(), "score": evaluation.total_score}
                    for evaluation in recent
                ],
                "trend": trend,
            }
        )

    ranked = sorted(entries, key=lambda item: item["trend"], reverse=True)
    if limit <= 0:
        return []
    rising = ranked[:limit]
    falling = ranked[-limit:][::-1]
    return rising + falling


def word_cloud(dataset: Dataset, limit: int = 20, min_length: int = 4) -> List[Dict[str, Any]]:
    counts: Counter[str] = Counter()
    for evaluation in dataset.all_evaluations():
        counts.update(word for word in evaluation.comment.lower().split() if len(word) >= min_length)
    return [{"word": word, "count": count} for word, count in counts.most_common(limit)]


def evaluation_trends(dataset: Dataset) -> List[Dict[str, Any]]:
    frame = evaluation_frame(dataset)
    if frame.empty:
        return []
    grouped = frame.groupby("month")["total_score"].agg(["mean", "count"]).sort_index()
    return [
        {"date": month, "average_score": float(row["mean"]), "total_evaluations": int(row["count"])}
        for month, row in grouped.iterrows()
    ]


def staff_dilution(employees: Sequence[Employee], start: date) -> float:
    """Percentage of ``employees`` hired on or after ``start``."""

    if not employees:
        return 0.0
    new_hires = sum(
        1 for employee in employees if employee.hire_date is not None and employee.hire_date >= start
    )
    return new_hires / len(employees) * 100


def completion_rate(dataset: Dataset) -> float:
    """Percentage of employees with at least one evaluation."""

    if not dataset.employees:
        return 0.0
    evaluated = sum(1 for employee in dataset.employees if dataset.evaluations_for(employee.id))
    return evaluated / len(dataset.employees) * 100


__all__ = [
    "Dataset",
    "average_score",
    "category_averages",
    "completion_rate",
    "evaluation_frame",
    "evaluation_trends",
    "improvement_potential",
    "load_dataset",
    "load_employees",
    "load_evaluations",
    "lookback_start",
    "normalize_employees",
    "sample_employees",
    "score_changes_over_time",
    "score_development",
    "staff_dilution",
    "strengths_and_weaknesses",
    "top_performers",
    "word_cloud",
]
