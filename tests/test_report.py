from __future__ import annotations

import json

import pandas as pd
import pytest

from conftest import ASOF, BrokenStore, FakeStore, employee, evaluation
from staffeval.aggregator import REPORT_NAMES, Aggregator
from staffeval.config import load_config
from staffeval.report import build_dashboard, export_report, report_frames


def _store() -> FakeStore:
    return FakeStore(
        [employee(1, "Anna", "2025-01-01"), employee(2, "Ben")],
        {
            1: [
                evaluation(1, "2024-10-01", 60, comment="pünktlich"),
                evaluation(1, "2025-01-01", 70, comment="pünktlich und genau"),
            ],
            2: [evaluation(2, "2025-02-01", 80)],
        },
    )


def test_dashboard_runs_every_report(config) -> None:
    report = build_dashboard(Aggregator(_store(), config=config, asof=ASOF))
    assert list(report.results) == list(REPORT_NAMES)
    assert report.asof == ASOF
    assert report.degraded == []
    assert report.value("average_score") == pytest.approx(70.0)
    assert report.to_dict()["reports"]["completion_rate"]["value"] == pytest.approx(100.0)


def test_dashboard_lists_degraded_reports(config) -> None:
    report = build_dashboard(Aggregator(BrokenStore(OSError("disk")), config=config, asof=ASOF))
    assert report.degraded == list(REPORT_NAMES)


def test_report_frames_sheet_layout(config) -> None:
    report = build_dashboard(Aggregator(_store(), config=config, asof=ASOF))
    frames = report_frames(report)
    assert list(frames) == [
        "Summary",
        "ScoreDevelopment",
        "TopPerformers",
        "ImprovementPotential",
        "Strengths",
        "ScoreChanges",
        "WordCloud",
        "EvaluationTrends",
    ]
    assert frames["Summary"]["report"].tolist() == ["average_score", "staff_dilution", "completion_rate"]
    changes = frames["ScoreChanges"]
    assert changes.loc[0, "name"] == "Anna"
    assert changes.loc[0, "first_score"] == 60.0
    assert changes.loc[0, "last_score"] == 70.0


def test_export_writes_workbook(config) -> None:
    result = export_report(_store(), config.report_path, config, asof=ASOF)
    assert result.report_file.name == "report_2025-06-15.xlsx"
    assert result.report_file.exists()
    assert result.extra_files == []

    sheets = pd.read_excel(result.report_file, sheet_name=None)
    assert "TopPerformers" in sheets
    top = sheets["TopPerformers"]
    assert top["name"].tolist() == ["Ben", "Anna"]
    words = sheets["WordCloud"]
    assert words.loc[0, "word"] == "pünktlich"
    assert words.loc[0, "count"] == 2


def test_export_optional_csv_and_json(tmp_path) -> None:
    config = load_config(
        overrides={
            "log_path": str(tmp_path / "staffeval.log"),
            "csv_export": True,
            "json_export": True,
        }
    )
    result = export_report(_store(), tmp_path / "out", config, asof=ASOF)

    names = sorted(path.name for path in result.extra_files)
    assert "report_2025-06-15.json" in names
    assert "report_2025-06-15_Summary.csv" in names
    assert all(path.exists() for path in result.extra_files)

    payload = json.loads((tmp_path / "out" / "report_2025-06-15.json").read_text(encoding="utf-8"))
    assert payload["asof"] == "2025-06-15"
    assert payload["reports"]["staff_dilution"]["value"] == pytest.approx(50.0)
