import pytest

from webapp.app import create_app

INSTANCE = {
    "workers": [{"name": "Ann", "skills": {"py": 2}}, {"name": "Ben", "skills": {"sql": 1}}],
    "projects": [
        {"name": "Etl", "duration": 2, "score": 10, "before": 5, "roles": [{"skill": "py", "level": 2}, {"skill": "sql", "level": 1}]},
        {"name": "Ml", "duration": 1, "score": 5, "before": 5, "roles": [{"skill": "cuda", "level": 1}]},
    ],
}


@pytest.fixture
def client():
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_simulate_returns_completed_and_unstaffed(client):
    response = client.post("/api/simulate", json={"instance": INSTANCE})
    assert response.status_code == 200
    payload = response.get_json()

    assert payload["total_score"] == 10
    assert payload["days_elapsed"] == 2
    assert payload["completed"] == [
        {
            "project": "Etl",
            "start_day": 0,
            "end_day": 1,
            "earned_score": 10,
            "roles": [
                {"skill": "py", "level": 2, "worker": "Ann"},
                {"skill": "sql", "level": 1, "worker": "Ben"},
            ],
        }
    ]
    assert [item["name"] for item in payload["unstaffed"]] == ["Ml"]
    hiring = payload["recommendations"]["hiring"]
    assert hiring[0]["skill"] == "cuda"
    assert hiring[0]["severity"] == "critical"


def test_simulate_report_is_plain_text(client):
    response = client.post("/api/simulate/report", json={"instance": INSTANCE})
    assert response.status_code == 200
    assert response.mimetype == "text/plain"
    assert response.get_data(as_text=True) == "1\nEtl\nAnn Ben\n"


def test_simulate_rejects_bad_payload(client):
    response = client.post("/api/simulate", json={"instance": {"workers": []}})
    assert response.status_code == 400
    assert "arrays" in response.get_json()["error"]


def test_simulate_rejects_non_json_body(client):
    response = client.post("/api/simulate", data="nope", content_type="text/plain")
    assert response.status_code == 400


def test_simulate_strict_reports_unstaffable_project(client):
    response = client.post("/api/simulate", json={"instance": INSTANCE, "strict": True})
    assert response.status_code == 422
    assert response.get_json()["project"] == "Ml"


def test_simulate_applies_config(client):
    response = client.post("/api/simulate", json={"instance": INSTANCE, "config": {"max_days": 1}})
    payload = response.get_json()

    assert payload["completed"] == []
    assert {item["name"] for item in payload["unstaffed"]} == {"Etl", "Ml"}
