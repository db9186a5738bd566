"""Dashboard statistics with fail-soft semantics.

Each public method of :class:`Aggregator` pulls a fresh snapshot from the
store, folds it with :mod:`staffeval.aggregate` and wraps the outcome in a
:class:`ReportResult`. Any failure while reading or folding is logged and
answered with the report's entry in :data:`DEFAULT_DATA`, flagged as
``degraded`` so callers can tell placeholder numbers from real ones.
"""
from __future__ import annotations

import copy
import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from . import aggregate as agg
from .categories import get_category
from .config import AppConfig, load_config
from .store import EvaluationStore

logger = logging.getLogger("staffeval.aggregator")


def _categories(values: Mapping[str, float]) -> list:
    return [
        {"category": category_id, "name": get_category(category_id).name, "average_score": score}
        for category_id, score in values.items()
    ]


DEFAULT_DATA: Dict[str, Any] = {
    "average_score": 75.0,
    "score_development": [
        {"date": "2024-01", "average_score": 70.0},
        {"date": "2024-02", "average_score": 75.0},
        {"date": "2024-03", "average_score": 80.0},
    ],
    "top_performers": [
        {"employee_id": None, "name": "Beispiel Mitarbeiter 1", "average_score": 90.0},
        {"employee_id": None, "name": "Beispiel Mitarbeiter 2", "average_score": 85.0},
    ],
    "improvement_potential": _categories(
        {
            "dokumentation": 65.0,
            "kommunikation": 70.0,
            "konfliktmanagement": 72.0,
            "selbststaendigkeit": 75.0,
            "qualitaetAusfuehrung": 78.0,
        }
    ),
    "strengths_and_weaknesses": _categories(
        {
            "fachlicheKompetenz": 85.0,
            "zuverlaessigkeit": 82.0,
            "zusammenarbeit": 80.0,
            "vorschriften": 79.0,
            "qualitaetAusfuehrung": 78.0,
            "selbststaendigkeit": 75.0,
            "konfliktmanagement": 72.0,
            "kommunikation": 70.0,
            "dokumentation": 65.0,
        }
    ),
    "score_changes_over_time": [],
    "word_cloud": [
        {"word": "zuverlässig", "count": 15},
        {"word": "kompetent", "count": 12},
    ],
    "evaluation_trends": [],
    "staff_dilution": 0.0,
    "completion_rate": 0.0,
}

REPORT_NAMES = tuple(DEFAULT_DATA)


@dataclass(frozen=True)
class ReportResult:
    """Value of one report plus whether it is placeholder data."""

    name: str
    value: Any
    degraded: bool = False
    error: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "degraded": self.degraded,
            "error": self.error,
            "details": dict(self.details),
        }


def fallback(name: str, error: Optional[str] = None, **details: Any) -> ReportResult:
    return ReportResult(
        name=name,
        value=copy.deepcopy(DEFAULT_DATA[name]),
        degraded=True,
        error=error,
        details=details,
    )


class Aggregator:
    """Computes the dashboard reports from an injected :class:`EvaluationStore`."""

    def __init__(
        self,
        store: EvaluationStore,
        config: Optional[AppConfig] = None,
        asof: Optional[date] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.config = config or load_config()
        self.asof = asof
        self._rng = rng

    def today(self) -> date:
        if self.asof is not None:
            return self.asof.date() if isinstance(self.asof, datetime) else self.asof
        return datetime.now(tz=self.config.timezone).date()

    def lookback_start(self) -> date:
        return agg.lookback_start(self.today(), self.config.lookback_months)

    def _sampler(self) -> random.Random:
        if self._rng is not None:
            return self._rng
        # a fresh generator per call keeps seeded samples reproducible
        return random.Random(self.config.development_seed)

    def _run(self, name: str, compute: Callable[[], ReportResult]) -> ReportResult:
        logger.debug("Calculating %s", name)
        try:
            return compute()
        except Exception as exc:
            logger.exception("Report %s failed; serving default data", name)
            return fallback(name, error=str(exc))

    @staticmethod
    def _result(name: str, value: Any, dataset: agg.Dataset, **details: Any) -> ReportResult:
        if dataset.skipped:
            details["skipped_records"] = dataset.skipped
        return ReportResult(name=name, value=value, details=details)

    def _category_result(self, name: str, value: Any, dataset: agg.Dataset) -> ReportResult:
        unscored = dataset.unscored
        if unscored:
            return self._result(name, value, dataset, unscored_records=unscored)
        return self._result(name, value, dataset)

    def average_score(self) -> ReportResult:
        """Mean total score over every evaluation; 0 when there are none."""

        def compute() -> ReportResult:
            dataset = agg.load_dataset(self.store)
            return self._result("average_score", agg.average_score(dataset), dataset)

        return self._run("average_score", compute)

    def score_development(self) -> ReportResult:
        """Monthly mean score over the lookback window.

        In ``sample`` mode only a random half of the employees is read; the
        ``details`` always say how many employees went into the series. With
        nothing to show, a fixed placeholder series is returned as degraded.
        """

        def compute() -> ReportResult:
            start = self.lookback_start()
            employees = agg.load_employees(self.store)
            population = len(employees)
            if self.config.development_mode == "sample":
                employees = agg.sample_employees(employees, self._sampler())
            dataset = agg.load_evaluations(self.store, employees)
            details = {
                "mode": self.config.development_mode,
                "sampled": len(employees),
                "population": population,
                "since": start.isoformat(),
            }
            series = agg.score_development(dataset, start)
            if not series:
                logger.info("No evaluations since %s; serving placeholder development series", start)
                return fallback("score_development", reason="no_data", **details)
            return self._result("score_development", series, dataset, **details)

        return self._run("score_development", compute)

    def top_performers(self) -> ReportResult:
        def compute() -> ReportResult:
            dataset = agg.load_dataset(self.store)
            value = agg.top_performers(dataset, self.config.top_performers_limit)
            return self._result("top_performers", value, dataset)

        return self._run("top_performers", compute)

    def improvement_potential(self) -> ReportResult:
        def compute() -> ReportResult:
            dataset = agg.load_dataset(self.store)
            value = agg.improvement_potential(dataset, self.config.improvement_limit)
            return self._category_result("improvement_potential", value, dataset)

        return self._run("improvement_potential", compute)

    def strengths_and_weaknesses(self) -> ReportResult:
        """All nine categories, best average first."""

        def compute() -> ReportResult:
            dataset = agg.load_dataset(self.store)
            value = agg.strengths_and_weaknesses(dataset)
            return self._category_result("strengths_and_weaknesses", value, dataset)

        return self._run("strengths_and_weaknesses", compute)

    def score_changes_over_time(self) -> ReportResult:
        def compute() -> ReportResult:
            start = self.lookback_start()
            dataset = agg.load_dataset(self.store)
            value = agg.score_changes_over_time(dataset, start, self.config.trend_limit)
            return self._result("score_changes_over_time", value, dataset, since=start.isoformat())

        return self._run("score_changes_over_time", compute)

    def word_cloud(self) -> ReportResult:
        def compute() -> ReportResult:
            dataset = agg.load_dataset(self.store)
            value = agg.word_cloud(
                dataset,
                limit=self.config.word_cloud_limit,
                min_length=self.config.min_word_length,
            )
            return self._result("word_cloud", value, dataset)

        return self._run("word_cloud", compute)

    def evaluation_trends(self) -> ReportResult:
        def compute() -> ReportResult:
            dataset = agg.load_dataset(self.store)
            return self._result("evaluation_trends", agg.evaluation_trends(dataset), dataset)

        return self._run("evaluation_trends", compute)

    def staff_dilution(self, employees: Optional[Iterable[Any]] = None) -> ReportResult:
        """Share of ``employees`` hired within the lookback window.

        Without an explicit employee set the store's employees are used.
        """

        def compute() -> ReportResult:
            start = self.lookback_start()
            if employees is None:
                population = agg.load_employees(self.store)
            else:
                population = agg.normalize_employees(employees)
            return ReportResult(
                name="staff_dilution",
                value=agg.staff_dilution(population, start),
                details={"since": start.isoformat()},
            )

        return self._run("staff_dilution", compute)

    def completion_rate(self) -> ReportResult:
        def compute() -> ReportResult:
            dataset = agg.load_dataset(self.store)
            return self._result("completion_rate", agg.completion_rate(dataset), dataset)

        return self._run("completion_rate", compute)

    def report(self, name: str) -> ReportResult:
        """Dispatch to the report method called ``name``."""

        if name not in REPORT_NAMES:
            raise KeyError(f"Unknown report: {name}")
        return getattr(self, name)()


__all__ = ["Aggregator", "DEFAULT_DATA", "REPORT_NAMES", "ReportResult", "fallback"]
