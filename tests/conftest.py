from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional

import pytest

from staffeval.categories import CATEGORY_IDS
from staffeval.config import AppConfig, load_config

ASOF = date(2025, 6, 15)


class FakeStore:
    """In-memory store returning raw rows the way the real backends do."""

    def __init__(
        self,
        employees: Iterable[Mapping[str, Any]] = (),
        evaluations: Optional[Mapping[Hashable, List[Mapping[str, Any]]]] = None,
    ) -> None:
        self.employees = [dict(employee) for employee in employees]
        self.evaluations = {key: list(value) for key, value in (evaluations or {}).items()}
        self.evaluation_calls: List[Hashable] = []

    def list_employees(self) -> List[Mapping[str, Any]]:
        return [dict(employee) for employee in self.employees]

    def list_evaluations_for_employee(self, employee_id: Hashable) -> List[Mapping[str, Any]]:
        self.evaluation_calls.append(employee_id)
        return [dict(row) for row in self.evaluations.get(employee_id, [])]


class BrokenStore:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def list_employees(self) -> List[Mapping[str, Any]]:
        raise self.exc

    def list_evaluations_for_employee(self, employee_id: Hashable) -> List[Mapping[str, Any]]:
        raise self.exc


def employee(emp_id: int, name: str, hire_date: str = "2020-01-01") -> Dict[str, Any]:
    return {"id": emp_id, "name": name, "beruf": "Elektriker", "sparte": "Bau", "hireDate": hire_date}


def uniform_scores(points: int) -> Dict[str, int]:
    return {category_id: points for category_id in CATEGORY_IDS}


def evaluation(
    emp_id: int,
    on: str,
    total: float,
    scores: Optional[Mapping[str, int]] = None,
    comment: str = "",
    as_json: bool = True,
) -> Dict[str, Any]:
    score_map = dict(scores) if scores is not None else uniform_scores(5)
    return {
        "employeeId": emp_id,
        "date": on,
        "totalScore": total,
        "scores": json.dumps(score_map) if as_json else score_map,
        "comment": comment,
    }


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return load_config(
        overrides={
            "log_path": str(tmp_path / "logs" / "staffeval.log"),
            "report_path": str(tmp_path / "reports"),
            "workbook_path": str(tmp_path / "evaluations.xlsx"),
        }
    )


@pytest.fixture(autouse=True)
def reset_staffeval_logger():
    yield
    logger = logging.getLogger("staffeval")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("staffeval."):
            logging.getLogger(name).setLevel(logging.NOTSET)
