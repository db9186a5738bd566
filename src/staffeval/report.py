"""Dashboard assembly and report export."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .aggregator import REPORT_NAMES, Aggregator, ReportResult
from .config import AppConfig
from .store import EvaluationStore

logger = logging.getLogger("staffeval.report")

SCALAR_REPORTS = ("average_score", "staff_dilution", "completion_rate")

SHEET_NAMES: Mapping[str, str] = {
    "score_development": "ScoreDevelopment",
    "top_performers": "TopPerformers",
    "improvement_potential": "ImprovementPotential",
    "strengths_and_weaknesses": "Strengths",
    "score_changes_over_time": "ScoreChanges",
    "word_cloud": "WordCloud",
    "evaluation_trends": "EvaluationTrends",
}


@dataclass(frozen=True)
class DashboardReport:
    asof: date
    generated_at: datetime
    results: Mapping[str, ReportResult]

    @property
    def degraded(self) -> List[str]:
        return [name for name, result in self.results.items() if result.degraded]

    def value(self, name: str) -> Any:
        return self.results[name].value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asof": self.asof.isoformat(),
            "generated_at": self.generated_at.isoformat(timespec="seconds"),
            "reports": {name: result.to_dict() for name, result in self.results.items()},
        }


@dataclass(frozen=True)
class ExportResult:
    report: DashboardReport
    report_file: Path
    extra_files: List[Path] = field(default_factory=list)


def build_dashboard(aggregator: Aggregator) -> DashboardReport:
    """Run every report once; reports are independent of each other."""

    results = {name: aggregator.report(name) for name in REPORT_NAMES}
    report = DashboardReport(
        asof=aggregator.today(),
        generated_at=datetime.now(tz=aggregator.config.timezone),
        results=results,
    )
    if report.degraded:
        logger.warning("Reports served from default data: %s", ", ".join(report.degraded))
    return report


def summary_frame(report: DashboardReport) -> pd.DataFrame:
    rows = [
        {
            "report": name,
            "value": report.results[name].value,
            "degraded": report.results[name].degraded,
        }
        for name in SCALAR_REPORTS
    ]
    return pd.DataFrame(rows, columns=["report", "value", "degraded"])


def _score_changes_frame(records: List[Mapping[str, Any]]) -> pd.DataFrame:
    rows = [
        {
            "name": item["name"],
            "trend": item["trend"],
            "evaluations": len(item["changes"]),
            "first_score": item["changes"][0]["score"] if item["changes"] else None,
            "last_score": item["changes"][-1]["score"] if item["changes"] else None,
        }
        for item in records
    ]
    return pd.DataFrame(rows, columns=["name", "trend", "evaluations", "first_score", "last_score"])


def report_frames(report: DashboardReport) -> Dict[str, pd.DataFrame]:
    """One DataFrame per sheet, keyed by sheet name."""

    frames: Dict[str, pd.DataFrame] = {"Summary": summary_frame(report)}
    for name, sheet in SHEET_NAMES.items():
        value = report.value(name)
        if name == "score_changes_over_time":
            frames[sheet] = _score_changes_frame(value)
        else:
            frames[sheet] = pd.DataFrame(value)
    return frames


def export_report(
    store: EvaluationStore,
    output_path: str | Path,
    config: AppConfig,
    asof: Optional[date] = None,
) -> ExportResult:
    """Build the dashboard from ``store`` and write it to an Excel workbook."""

    aggregator = Aggregator(store, config=config, asof=asof)
    report = build_dashboard(aggregator)

    report_dir = Path(output_path)
    report_dir.mkdir(parents=True, exist_ok=True)
    stem = f"report_{report.asof.isoformat()}"
    report_file = report_dir / f"{stem}.xlsx"

    frames = report_frames(report)
    with pd.ExcelWriter(report_file, engine="openpyxl") as writer:
        for sheet_name, frame in frames.items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
    logger.info("Excel report written to %s", report_file)

    extra: List[Path] = []
    if config.csv_export:
        extra.extend(_export_csv(frames, report_dir, stem))
    if config.json_export:
        extra.append(_export_json(report, report_dir, stem))

    return ExportResult(report=report, report_file=report_file, extra_files=extra)


def _export_csv(frames: Mapping[str, pd.DataFrame], report_dir: Path, stem: str) -> List[Path]:
    written: List[Path] = []
    for sheet_name, frame in frames.items():
        target = report_dir / f"{stem}_{sheet_name}.csv"
        frame.to_csv(target, index=False, encoding="utf-8-sig")
        written.append(target)
    logger.info("CSV reports written: %s", ", ".join(str(path) for path in written))
    return written


def _export_json(report: DashboardReport, report_dir: Path, stem: str) -> Path:
    target = report_dir / f"{stem}.json"
    target.write_text(json.dumps(report.to_dict(), ensure_ascii=False, indent=2, default=str), encoding="utf-8")
    logger.info("JSON report written to %s", target)
    return target


__all__ = ["DashboardReport", "ExportResult", "build_dashboard", "export_report", "report_frames"]
