from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from staffeval.models import Employee, Evaluation, ValidationError, normalize_scores


def test_scores_json_string_and_mapping_normalize_identically() -> None:
    from_text = normalize_scores('{"dokumentation": 8, "kommunikation": "6"}')
    from_mapping = normalize_scores({"dokumentation": 8.0, "kommunikation": 6})
    assert from_text == from_mapping == {"dokumentation": 8, "kommunikation": 6}


@pytest.mark.parametrize("value", [None, "", float("nan")])
def test_empty_scores_become_empty_mapping(value) -> None:
    assert normalize_scores(value) == {}


@pytest.mark.parametrize("value", ["{not json", "[1, 2]", '{"dokumentation": "viel"}', '{"dokumentation": 7.5}'])
def test_malformed_scores_rejected(value) -> None:
    with pytest.raises(ValidationError):
        normalize_scores(value)


def test_evaluation_from_sqlite_row() -> None:
    row = {
        "id": 4,
        "employeeId": 2,
        "employeeName": "Anna Schmidt",
        "workLocation": "Baustelle Nord",
        "jobRole": "Elektrikerin",
        "specificTask": "Verteilerbau",
        "scores": '{"fachlicheKompetenz": 8}',
        "comment": None,
        "totalScore": 81,
        "date": "2025-03-04",
    }
    evaluation = Evaluation.from_record(row)
    assert evaluation.employee_id == 2
    assert evaluation.date == date(2025, 3, 4)
    assert evaluation.month == "2025-03"
    assert evaluation.total_score == 81.0
    assert evaluation.scores == {"fachlicheKompetenz": 8}
    assert evaluation.comment == ""
    assert evaluation.to_record()["scores"] == {"fachlicheKompetenz": 8}


def test_evaluation_from_workbook_row_with_numpy_values() -> None:
    frame = pd.DataFrame(
        [{"employee_id": 3.0, "date": pd.Timestamp("2025-01-31"), "total_score": 70, "scores": "{}"}]
    )
    evaluation = Evaluation.from_record(frame.to_dict(orient="records")[0])
    assert evaluation.employee_id == 3
    assert evaluation.date == date(2025, 1, 31)


@pytest.mark.parametrize(
    "row",
    [
        {"employeeId": 1, "totalScore": 50},
        {"employeeId": 1, "date": "2025-01-01"},
        {"employeeId": 1, "date": "kein datum", "totalScore": 50},
        {"date": "2025-01-01", "totalScore": 50},
    ],
)
def test_incomplete_evaluation_rejected(row) -> None:
    with pytest.raises(ValidationError):
        Evaluation.from_record(row)


def test_employee_from_camel_case_row() -> None:
    emp = Employee.from_record(
        {"id": "7", "name": "Jonas", "beruf": "Monteur", "sparte": "Service", "hireDate": "2024-09-01T00:00:00.000Z"}
    )
    assert emp.id == 7
    assert emp.job_role == "Monteur"
    assert emp.division == "Service"
    assert emp.hire_date == date(2024, 9, 1)


def test_employee_without_hire_date() -> None:
    emp = Employee.from_record({"id": 1, "name": "Lea", "hire_date": None})
    assert emp.hire_date is None


def test_employee_without_id_rejected() -> None:
    with pytest.raises(ValidationError):
        Employee.from_record({"name": "Niemand"})


def test_unreadable_scores_keep_the_rest_of_the_evaluation() -> None:
    evaluation = Evaluation.from_record(
        {"employeeId": 5, "date": "2025-02-03", "totalScore": 77, "scores": "{kaputt", "comment": "genau"}
    )
    assert evaluation.scores is None
    assert "not valid JSON" in evaluation.scores_error
    assert evaluation.total_score == 77.0
    assert evaluation.comment == "genau"
    assert evaluation.to_record()["scores"] is None


def test_readable_scores_have_no_error() -> None:
    evaluation = Evaluation.from_record({"employeeId": 5, "date": "2025-02-03", "totalScore": 77, "scores": "{}"})
    assert evaluation.scores == {}
    assert evaluation.scores_error is None
