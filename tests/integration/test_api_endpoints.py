from pathlib import Path

from fastapi.testclient import TestClient
import pytest

from assignment_extract.api.http_app import build_app
from assignment_extract.roles import validate_role
from assignment_extract.services.bootstrap import build_runtime_container

FIXTURE = Path(__file__).parent / "fixtures" / "documents.yaml"


def _client() -> TestClient:
    role = validate_role("api")
    container = build_runtime_container(role, source_file=str(FIXTURE))
    return TestClient(build_app(role=role.name, run_id="integration-api", api_deps=container.api_deps))


def _extract_sheets(client: TestClient) -> dict[str, object]:
    response = client.post(
        "/definitions/extract",
        json={
            "primary_title": "Shop",
            "primary_topic": "Formulas",
            "document_type": "SHEETS",
            "reference_document_id": "ref-sheets",
            "template_document_id": "tpl-sheets",
            "year_group": 7,
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.integration
def test_health_reports_role() -> None:
    with _client() as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "role": "api", "mode": "in-memory"}


@pytest.mark.integration
def test_extract_definition_returns_redacted_projection() -> None:
    with _client() as client:
        body = _extract_sheets(client)
        listed = client.get("/definitions")

    assert body["definition_key"] == "Shop_Formulas_7"
    assert body["failures"] == []
    tasks = list(body["definition"]["tasks"].values())
    assert [task["taskTitle"] for task in tasks] == ["Sales"]
    reference = tasks[0]["artifacts"]["reference"][0]
    assert reference["type"] == "SPREADSHEET"
    assert reference["content"] is None
    assert reference["contentHash"] is None
    assert tasks[0]["taskMetadata"]["boundingBox"]["startColumn"] == 4
    assert listed.json() == {"items": ["Shop_Formulas_7"]}


@pytest.mark.integration
def test_stored_definition_keeps_content_behind_redacted_endpoint() -> None:
    role = validate_role("api")
    container = build_runtime_container(role, source_file=str(FIXTURE))
    app = build_app(role=role.name, run_id="integration-api", api_deps=container.api_deps)

    with TestClient(app) as client:
        _extract_sheets(client)
        fetched = client.get("/definitions/Shop_Formulas_7")

    assert fetched.status_code == 200
    stored = container.repository.load_definition(definition_key="Shop_Formulas_7")
    task = stored.ordered_tasks()[0]
    assert task.get_primary_reference().content == [["=B2*C2"], ["=B3*C3"]]
    fetched_task = fetched.json()["definition"]["tasks"][task.id]
    assert fetched_task["artifacts"]["reference"][0]["content"] is None


@pytest.mark.integration
def test_unknown_definition_is_404() -> None:
    with _client() as client:
        response = client.get("/definitions/missing")
        submission = client.post("/definitions/missing/submissions", json={"student_document_id": "stu"})

    assert response.status_code == 404
    assert submission.status_code == 404


@pytest.mark.integration
def test_invalid_definition_request_is_rejected() -> None:
    with _client() as client:
        response = client.post(
            "/definitions/extract",
            json={
                "primary_title": "Shop",
                "primary_topic": "Formulas",
                "document_type": "DOCS",
                "reference_document_id": "ref-sheets",
                "template_document_id": "tpl-sheets",
            },
        )

    assert response.status_code == 422


@pytest.mark.integration
def test_attach_submission_appends_student_artifacts() -> None:
    role = validate_role("api")
    container = build_runtime_container(role, source_file=str(FIXTURE))
    app = build_app(role=role.name, run_id="integration-api", api_deps=container.api_deps)

    with TestClient(app) as client:
        _extract_sheets(client)
        response = client.post("/definitions/Shop_Formulas_7/submissions", json={"student_document_id": "stu-sheets"})

    assert response.status_code == 200, response.text
    assert response.json() == {
        "definition_key": "Shop_Formulas_7",
        "document_id": "stu-sheets",
        "appended": 1,
        "failures": [],
    }
    stored = container.repository.load_definition(definition_key="Shop_Formulas_7")
    submission = stored.ordered_tasks()[0].artifacts["submission"][0]
    assert submission.content == [["=B2*C2"], ["24"]]
    assert submission.document_id == "stu-sheets"


@pytest.mark.integration
def test_slides_extraction_reports_image_fetch_failures() -> None:
    with _client() as client:
        response = client.post(
            "/definitions/extract",
            json={
                "primary_title": "Cells",
                "primary_topic": "Biology",
                "document_type": "slides",
                "reference_document_id": "ref-slides",
                "template_document_id": "tpl-slides",
            },
        )

    assert response.status_code == 200, response.text
    body = response.json()
    titles = sorted(task["taskTitle"] for task in body["definition"]["tasks"].values())
    assert titles == ["Diagram", "Question 1"]
    assert [(failure["task_title"], failure["error_code"], failure["retry"]) for failure in body["failures"]] == [
        ("Diagram", "source_unavailable", "recoverable")
    ]
