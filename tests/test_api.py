import json

from fastapi.testclient import TestClient

JAVA_QUERY = "I am hiring for Java developers who can also collaborate effectively with my business teams."


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "healthy"
    assert data["service"] == "SHL Recommendation API"
    assert data["version"] == "1.0.0"
    assert data["uptime_seconds"] >= 0


def test_root_lists_endpoints(client):
    data = client.get("/").json()
    assert data["status"] == "operational"
    assert set(data["endpoints"]) >= {"health", "recommend", "evaluate"}


def test_recommend(client):
    r = client.post("/recommend", json={"query": JAVA_QUERY})
    assert r.status_code == 200, r.text
    data = r.json()

    assert data["query"] == JAVA_QUERY
    assert data["requirements"] == {
        "needsTechnical": True,
        "needsBehavioral": True,
        "needsCognitive": False,
        "level": "mid",
    }
    assert data["narrative"] is None

    assessments = data["recommended_assessments"]
    assert 0 < len(assessments) <= 10
    for a in assessments:
        assert set(a) == {"name", "url", "description", "test_type", "relevance_score"}
        assert a["test_type"] in {"K", "P"}
    scores = [a["relevance_score"] for a in assessments]
    assert scores == sorted(scores, reverse=True)


def test_recommend_legacy_schema(client):
    r = client.post("/recommend", json={"query": JAVA_QUERY, "top_k": 3, "schema_version": 1})
    assert r.status_code == 200
    assessments = r.json()["recommended_assessments"]
    assert len(assessments) <= 3
    assert all("assessment_url" in a and "assessment_name" in a for a in assessments)


def test_recommend_validation(client):
    assert client.post("/recommend", json={"query": ""}).status_code == 422
    assert client.post("/recommend", json={"query": JAVA_QUERY, "top_k": 11}).status_code == 422
    assert client.post("/recommend", json={"query": JAVA_QUERY, "top_k": 0}).status_code == 422
    assert client.post("/recommend", json={"query": JAVA_QUERY, "schema_version": 3}).status_code == 422
    assert client.post("/recommend", json={}).status_code == 422


def test_recommend_failure_returns_500(client, orchestrator, monkeypatch):
    async def broken(query, top_k=10):
        raise RuntimeError("boom")

    monkeypatch.setattr(orchestrator, "run", broken)
    r = client.post("/recommend", json={"query": JAVA_QUERY})
    assert r.status_code == 500
    assert "boom" in r.json()["detail"]


def test_recommend_before_startup_returns_503(monkeypatch):
    from shl_recommender import api

    monkeypatch.setattr(api.app_state, "orchestrator", None)
    # No context manager: startup does not run
    r = TestClient(api.app).post("/recommend", json={"query": JAVA_QUERY})
    assert r.status_code == 503


def test_evaluate_inline_items(client, sample_records):
    urls = client.post("/recommend", json={"query": JAVA_QUERY}).json()["recommended_assessments"]
    hit = urls[0]["url"]

    r = client.post("/evaluate", json={
        "items": [
            {"query": JAVA_QUERY, "ground_truth_urls": [hit, "https://example.com/missing"]},
        ]
    })
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["mean_recall_at_10"] == 0.5
    detail = data["detailed_results"][0]
    assert detail["recall_at_10"] == 0.5
    assert detail["groundTruth"] == [hit, "https://example.com/missing"]


def test_evaluate_uses_training_file(client, monkeypatch, tmp_path):
    from shl_recommender import config

    path = tmp_path / "train_data.json"
    path.write_text(json.dumps([{"query": JAVA_QUERY, "ground_truth_urls": ["https://example.com/x"]}]),
                    encoding="utf-8")
    monkeypatch.setattr(config, "TRAIN_DATA_PATH", path)

    r = client.post("/evaluate")
    assert r.status_code == 200, r.text
    assert r.json()["mean_recall_at_10"] == 0.0


def test_evaluate_without_data_returns_404(client, monkeypatch, tmp_path):
    from shl_recommender import config

    monkeypatch.setattr(config, "TRAIN_DATA_PATH", tmp_path / "missing.json")
    r = client.post("/evaluate")
    assert r.status_code == 404


def test_stats_counts_requests(client, sample_records):
    from shl_recommender import api

    before = api.app_state.total_requests
    client.post("/recommend", json={"query": JAVA_QUERY})
    data = client.get("/stats").json()
    assert data["total_requests"] == before + 1
    assert data["total_assessments"] == len(sample_records)


def test_recommend_logs_with_deferred_arguments(client, caplog):
    import logging

    with caplog.at_level(logging.INFO, logger="shl_recommender.api"):
        client.post("/recommend", json={"query": JAVA_QUERY, "top_k": 3})

    records = [r for r in caplog.records if r.name == "shl_recommender.api"]
    returned = [r for r in records if r.msg == "Returned %s recommendations"]
    assert len(returned) == 1
    assert returned[0].getMessage() == f"Returned {returned[0].args[0]} recommendations"
    assert any(r.msg == "Requested top_k: %s (schema v%s)" and r.args == (3, 2) for r in records)
