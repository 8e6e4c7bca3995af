from conftest import FakeModel
from fastapi.testclient import TestClient

from ats_engine.core.config import settings
from ats_engine.main import create_app
from ats_engine.services.store import Store

USER = {"x-user-id": "user-1"}
OTHER_USER = {"x-user-id": "user-2"}


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_requests_without_user_are_rejected(client):
    response = client.get("/api/cv")

    assert response.status_code == 401
    assert response.json() == {"detail": "User not authenticated"}


def test_optional_app_key_is_enforced(client, monkeypatch):
    monkeypatch.setattr(settings, "app_api_key", "secret")

    assert client.get("/api/cv", headers=USER).status_code == 401
    assert client.get("/api/cv", headers={**USER, "x-api-key": "wrong"}).status_code == 401
    assert client.get("/api/cv", headers={**USER, "x-api-key": "secret"}).status_code == 404


def test_store_and_fetch_cv(client, sample_resume):
    saved = client.put("/api/cv", json={"cvJson": sample_resume}, headers=USER)
    fetched = client.get("/api/cv", headers=USER)

    assert saved.status_code == 200
    assert fetched.status_code == 200
    assert fetched.json()["cvJson"]["basics"]["name"] == "Ada Lovelace"
    assert fetched.json()["analysisCache"] is None
    assert client.get("/api/cv", headers=OTHER_USER).status_code == 404


def test_general_scan_round_trip(client, drain, sample_resume):
    client.put("/api/cv", json={"cvJson": sample_resume}, headers=USER)

    started = client.post("/api/ats/scan", json={}, headers=USER)
    assert started.status_code == 200
    assert started.json()["message"] == "ATS analysis started"
    analysis_id = started.json()["analysisId"]

    drain()
    scores = client.get(f"/api/ats/scores/{analysis_id}", headers=USER).json()

    assert scores["analysisId"] == analysis_id
    assert scores["status"] == "completed"
    assert scores["atsScores"]["score"] == 70
    assert scores["atsScores"]["error"] is None
    assert scores["atsScores"]["complianceDetails"]["keywordsMissing"] == ["Kubernetes", "GraphQL"]
    assert scores["atsScores"]["complianceDetails"]["scoreBreakdown"]["technicalSkills"] == 80

    latest = client.get("/api/ats/latest", headers=USER).json()
    assert latest["analysisId"] == analysis_id


def test_job_scan_and_lookup(client, drain, sample_resume):
    client.put("/api/cv", json={"cvJson": sample_resume}, headers=USER)
    job = client.put(
        "/api/job-applications/job-7",
        json={"jobTitle": "Platform Engineer", "jobDescriptionText": "Python,   Kubernetes and Terraform"},
        headers=USER,
    )
    assert job.json()["jobDescriptionText"] == "Python, Kubernetes and Terraform"

    started = client.post("/api/ats/scan", json={"jobApplicationId": "job-7"}, headers=USER)
    drain()
    found = client.get("/api/ats/job/job-7", headers=USER).json()

    assert found["analysisId"] == started.json()["analysisId"]
    assert found["atsScores"]["jobApplicationId"] == "job-7"
    assert client.get("/api/ats/latest", headers=USER).json() == {
        "analysisId": None,
        "status": None,
        "atsScores": None,
    }


def test_rescan_existing_analysis(client, drain, sample_resume):
    client.put("/api/cv", json={"cvJson": sample_resume}, headers=USER)
    analysis_id = client.post("/api/ats/scan", headers=USER).json()["analysisId"]
    drain()

    rescanned = client.post(f"/api/ats/scan/{analysis_id}", headers=USER)
    drain()

    assert rescanned.json()["analysisId"] == analysis_id
    assert client.get(f"/api/ats/scores/{analysis_id}", headers=USER).json()["status"] == "completed"
    assert client.post(f"/api/ats/scan/{analysis_id}", headers=OTHER_USER).status_code == 403
    assert client.post("/api/ats/scan/unknown", headers=USER).status_code == 404


def test_scan_without_cv_is_a_client_error(client):
    response = client.post("/api/ats/scan", json={}, headers=USER)

    assert response.status_code == 400
    assert response.json()["detail"] == "No CV found. Please upload a CV first."


def test_scan_for_unknown_job_is_not_found(client, sample_resume):
    client.put("/api/cv", json={"cvJson": sample_resume}, headers=USER)

    response = client.post("/api/ats/scan", json={"jobApplicationId": "nope"}, headers=USER)

    assert response.status_code == 404
    assert response.json()["detail"] == "Job application not found"


def test_overlong_job_description_is_rejected(client):
    payload = {"jobDescriptionText": "x" * (settings.max_job_description_chars + 1)}

    response = client.put("/api/job-applications/job-1", json=payload, headers=USER)

    assert response.status_code == 400


def test_delete_ats_analysis(client, drain, sample_resume):
    client.put("/api/cv", json={"cvJson": sample_resume}, headers=USER)
    analysis_id = client.post("/api/ats/scan", headers=USER).json()["analysisId"]
    drain()

    assert client.delete(f"/api/ats/{analysis_id}", headers=OTHER_USER).status_code == 403
    deleted = client.delete(f"/api/ats/{analysis_id}", headers=USER)

    assert deleted.json()["message"] == "ATS analysis deleted successfully"
    assert client.get(f"/api/ats/scores/{analysis_id}", headers=USER).status_code == 404


def test_section_analysis_is_cached_until_cv_changes(client, fake_model, sample_resume):
    client.put("/api/cv", json={"cvJson": sample_resume}, headers=USER)

    first = client.post("/api/cv/analyze-sections", headers=USER).json()
    second = client.post("/api/cv/analyze-sections", headers=USER).json()

    assert first["cached"] is False
    assert second["cached"] is True
    assert len(first["analyses"]["work"]) == 2
    assert fake_model.calls == 1

    sample_resume["education"][0]["area"] = "Computer Science"
    client.put("/api/cv", json={"cvJson": sample_resume}, headers=USER)
    third = client.post("/api/cv/analyze-sections", headers=USER).json()

    assert third["cached"] is False
    assert third["cvHash"] != first["cvHash"]
    assert fake_model.calls == 2


def test_detailed_analysis_lifecycle(sample_resume, detailed_answer):
    app = create_app(store=Store(), generate=FakeModel(detailed_answer))

    with TestClient(app) as client:
        started = client.post("/api/analysis", json={"cvJson": sample_resume}, headers=USER)
        assert started.status_code == 202
        analysis_id = started.json()["analysisId"]

        client.portal.call(app.state.manager.drain)
        record = client.get(f"/api/analysis/{analysis_id}", headers=USER).json()

        assert record["status"] == "completed"
        assert record["overallScore"] == 85
        assert record["issueCount"] == 1
        assert record["detailedResults"]["impactQuantification"]["priority"] == "high"

        assert client.delete(f"/api/analysis/{analysis_id}", headers=USER).status_code == 200
        assert client.get(f"/api/analysis/{analysis_id}", headers=USER).status_code == 404


def test_detailed_analysis_with_unusable_answer_fails(client, drain, sample_resume):
    # The default fake model answers with an ATS document, which holds no checks.
    analysis_id = client.post("/api/analysis", json={"cvJson": sample_resume}, headers=USER).json()["analysisId"]
    drain()

    record = client.get(f"/api/analysis/{analysis_id}", headers=USER).json()

    assert record["status"] == "failed"
    assert record["errorInfo"] == "AI analysis returned no usable checks."
    assert record["overallScore"] == 0
