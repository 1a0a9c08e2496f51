# tests/test_web_app.py

import pytest
from fastapi.testclient import TestClient

from lit_curation.models import BibliographicMetadata, Paper
from lit_curation.services.base import ExtractionResult
from lit_curation.web.app import app
from lit_curation.web.limits import BatchRateLimiter
from lit_curation.workflow.orchestrator import Orchestrator


class DummyServices:
    def generate_keywords(self, topic):
        return ["CRISPR", "off-target"]

    def search(self, keywords, logic, field, max_results):
        return [Paper(title="Paper A", doi="10.1/a"), Paper(title="Paper B", doi="10.1/b")]

    def download(self, doi, target_dir):
        if doi == "10.1/b":
            return None
        return f"{target_dir}/a.pdf"

    def process(self, local_path):
        meta = BibliographicMetadata(title="Paper A", author="Doe", year="2021", journal="Nature")
        return ExtractionResult(
            new_path=local_path.replace("a.pdf", "2021_Doe_Nature.pdf"),
            metadata=meta,
            introduction="We show CRISPR reduces off-target effects.",
        )

    def verify_claim(self, claim, context):
        return claim in context


@pytest.fixture
def orchestrator(tmp_path, monkeypatch):
    services = DummyServices()
    orch = Orchestrator(
        keyword_generator=services,
        searcher=services,
        downloader=services,
        processor=services,
        verifier=services,
        download_dir=tmp_path,
        max_results=5,
    )
    monkeypatch.setattr(app.state, "orchestrator", orch, raising=False)
    monkeypatch.setattr(app.state, "batch_lock", None, raising=False)
    monkeypatch.setattr(app.state, "rate_limiter", BatchRateLimiter(30, 60.0), raising=False)
    return orch


@pytest.fixture
def client(orchestrator):
    return TestClient(app)


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_fresh_session_view(client):
    body = client.get("/session").json()

    assert body["stage"] == "TopicDefinition"
    assert body["busy"] is False
    assert body["papers"] == []
    assert body["status_message"] == "Ready"


def test_full_pipeline_over_http(client):
    assert client.put("/session/topic", json={"topic": "CRISPR safety"}).status_code == 200

    resp = client.post("/batches/keywords")
    assert resp.status_code == 200
    assert client.get("/session").json()["keyword_list"] == ["CRISPR", "off-target"]

    resp = client.post("/batches/search")
    assert resp.json()["counts"] == {"Pending": 2}

    resp = client.post("/batches/download")
    assert resp.json()["counts"] == {"Downloaded": 1, "Failed": 1}

    papers = client.get("/session").json()["papers"]
    assert [p["status"] for p in papers] == ["Downloaded", "Failed"]
    assert papers[1]["status_message"] == "Download failed"

    resp = client.post("/batches/process")
    assert resp.json()["counts"] == {"Ready": 1}

    resp = client.post("/session/claims", json={"text": "CRISPR reduces off-target effects"})
    assert resp.status_code == 201
    assert resp.json()["verification_status"] == "Pending"

    resp = client.post("/batches/verify")
    assert resp.json()["counts"] == {"Verified": 1}

    review = client.get("/review").json()
    assert review == [
        {
            "claim_id": review[0]["claim_id"],
            "text": "CRISPR reduces off-target effects",
            "supporting_titles": ["Paper A"],
        }
    ]


def test_keywords_without_topic_is_422(client):
    resp = client.post("/batches/keywords")

    assert resp.status_code == 422


def test_search_without_keywords_is_422(client):
    client.put("/session/keywords", json={"keywords": " , "})

    assert client.post("/batches/search").status_code == 422


def test_busy_session_is_409(client, orchestrator):
    orchestrator.session.busy = True
    orchestrator.session.running = "download"

    resp = client.post("/batches/process")

    assert resp.status_code == 409
    assert "download" in resp.json()["detail"]


def test_unknown_batch_is_404(client):
    assert client.post("/batches/summarize").status_code == 404


def test_stage_jump_and_unknown_stage(client):
    resp = client.put("/session/stage", json={"stage": "FinalReview"})
    assert resp.json()["stage"] == "FinalReview"

    resp = client.put("/session/stage", json={"stage": "2"})
    assert resp.json()["stage"] == "DownloadingPDFs"

    assert client.put("/session/stage", json={"stage": "Nowhere"}).status_code == 404


def test_add_and_remove_items(client):
    papers = client.post("/session/papers/dois", json={"dois": ["10.1/x", "", "10.1/y"]}).json()
    assert [p["doi"] for p in papers] == ["10.1/x", "10.1/y"]

    body = client.delete(f"/session/papers/{papers[0]['id']}").json()
    assert [p["doi"] for p in body["papers"]] == ["10.1/y"]

    assert client.delete("/session/papers/missing").status_code == 404
    assert client.post("/session/claims", json={"text": "  "}).status_code == 422


def test_requeue_failed_papers(client):
    client.put("/session/keywords", json={"keywords": "CRISPR"})
    client.post("/batches/search")
    client.post("/batches/download")

    body = client.post("/session/papers/requeue").json()

    assert [p["status"] for p in body["papers"]] == ["Downloaded", "Pending"]


def test_batch_rate_limit_is_per_batch(client, orchestrator, monkeypatch):
    monkeypatch.setattr(app.state, "rate_limiter", BatchRateLimiter(2, 60.0))

    assert client.post("/batches/download").status_code == 200
    assert client.post("/batches/download").status_code == 200

    resp = client.post("/batches/download")
    assert resp.status_code == 429
    assert "Retry-After" in resp.headers

    # other batches keep their own window
    assert client.post("/batches/process").status_code == 200


def test_unknown_batch_is_not_counted(client, monkeypatch):
    limiter = BatchRateLimiter(1, 60.0)
    monkeypatch.setattr(app.state, "rate_limiter", limiter)

    for _ in range(3):
        assert client.post("/batches/summarize").status_code == 404

    assert len(limiter) == 0


def test_stage_next_and_back_clamp(client):
    assert client.post("/session/stage/back").json()["stage"] == "TopicDefinition"
    assert client.post("/session/stage/next").json()["stage"] == "FetchingPapers"

    client.put("/session/stage", json={"stage": "FinalReview"})
    assert client.post("/session/stage/next").json()["stage"] == "FinalReview"
    assert client.post("/session/stage/back").json()["stage"] == "ClaimVerification"
