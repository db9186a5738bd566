from __future__ import annotations

import json
from datetime import date

import pytest

from conftest import ASOF, uniform_scores
from staffeval.aggregator import Aggregator
from staffeval.categories import CATEGORY_IDS, MAX_TOTAL_SCORE
from staffeval.models import Employee, ValidationError
from staffeval.record import (
    add_employee,
    build_evaluation,
    create_workbook,
    find_employee,
    load_evaluation_json,
    record_evaluation,
)
from staffeval.store import WorkbookStore

ANNA = Employee(id=1, name="Anna", job_role="Elektrikerin")


def test_catalog_maxima_sum_to_hundred() -> None:
    assert MAX_TOTAL_SCORE == 100
    assert len(CATEGORY_IDS) == 9


def test_build_evaluation_computes_total() -> None:
    scores = uniform_scores(8)
    scores["zusammenarbeit"] = 15
    evaluation = build_evaluation(ANNA, scores, comment="top", on=date(2025, 5, 2))
    assert evaluation.total_score == 8 * 8 + 15
    assert list(evaluation.scores) == list(CATEGORY_IDS)
    assert evaluation.job_role == "Elektrikerin"
    assert evaluation.employee_name == "Anna"


@pytest.mark.parametrize(
    "change",
    [
        {"dokumentation": 11},
        {"dokumentation": -1},
        {"teamgeist": 3},
    ],
)
def test_build_evaluation_rejects_invalid_scores(change) -> None:
    scores = uniform_scores(5)
    scores.update(change)
    with pytest.raises(ValidationError):
        build_evaluation(ANNA, scores)


def test_build_evaluation_requires_every_category() -> None:
    scores = uniform_scores(5)
    del scores["vorschriften"]
    with pytest.raises(ValidationError, match="vorschriften"):
        build_evaluation(ANNA, scores)


def test_workbook_round_trip(tmp_path, config) -> None:
    path = create_workbook(tmp_path / "data" / "evaluations.xlsx")
    anna = add_employee(path, "Anna", "Elektrikerin", "Bau", "2025-02-01")
    ben = add_employee(path, "Ben", "Monteur", "Service", date(2019, 4, 1))
    assert (anna.id, ben.id) == (1, 2)
    assert find_employee(path, 2).name == "Ben"

    for points, on in ((6, date(2025, 1, 10)), (7, date(2025, 3, 10))):
        saved = record_evaluation(
            path, build_evaluation(anna, uniform_scores(points), comment="zuverlässig", on=on)
        )
    assert saved.id == 2
    assert saved.total_score == 9 * 7

    aggregator = Aggregator(WorkbookStore(path), config=config, asof=ASOF)
    assert aggregator.completion_rate().value == pytest.approx(50.0)
    assert aggregator.word_cloud().value == [{"word": "zuverlässig", "count": 2}]
    assert aggregator.score_changes_over_time().value[0]["trend"] == pytest.approx(9.0)


def test_record_evaluation_unknown_employee(tmp_path) -> None:
    path = create_workbook(tmp_path / "evaluations.xlsx")
    stranger = Employee(id=42, name="Fremd")
    with pytest.raises(ValidationError):
        record_evaluation(path, build_evaluation(stranger, uniform_scores(5)))


def test_create_workbook_refuses_to_overwrite(tmp_path) -> None:
    path = create_workbook(tmp_path / "evaluations.xlsx")
    with pytest.raises(FileExistsError):
        create_workbook(path)


def test_add_employee_requires_name(tmp_path) -> None:
    path = create_workbook(tmp_path / "evaluations.xlsx")
    with pytest.raises(ValidationError):
        add_employee(path, "  ", "Monteur", "Service", "2024-01-01")


def test_load_evaluation_json_export(tmp_path) -> None:
    exported = {
        "employeeId": 1,
        "employeeName": "Anna",
        "workLocation": "Werk 2",
        "jobRole": "Elektrikerin",
        "specificTask": "Schaltschrank",
        "scores": uniform_scores(9),
        "comment": "Sehr sorgfältig",
        "totalScore": 81,
        "date": "2025-04-01",
    }
    source = tmp_path / "Bewertung_Anna_2025-04-01.json"
    source.write_text(json.dumps(exported), encoding="utf-8")

    evaluation = load_evaluation_json(source)
    assert evaluation.work_location == "Werk 2"
    assert evaluation.scores["vorschriften"] == 9
    assert evaluation.date == date(2025, 4, 1)


def test_load_evaluation_json_rejects_garbage(tmp_path) -> None:
    source = tmp_path / "kaputt.json"
    source.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_evaluation_json(source)


def test_load_evaluation_json_rejects_unreadable_scores(tmp_path) -> None:
    source = tmp_path / "Bewertung_Anna.json"
    source.write_text(
        json.dumps({"employeeId": 1, "date": "2025-04-01", "totalScore": 50, "scores": {"dokumentation": "viel"}}),
        encoding="utf-8",
    )
    with pytest.raises(ValidationError, match="dokumentation"):
        load_evaluation_json(source)
