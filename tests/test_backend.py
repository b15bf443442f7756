import os
import tempfile
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

# use temporary sqlite db for tests
fd, path = tempfile.mkstemp(suffix=".sqlite")
os.close(fd)
os.environ["DATABASE_URL"] = f"sqlite:///{path}"

from backend import main  # noqa: E402
from backend.database import SessionLocal  # noqa: E402
from backend.models import RunStatus, WorkflowRun  # noqa: E402
from backend.store import RunStore  # noqa: E402
from steps.errors import PersistenceError  # noqa: E402
from steps.providers import ProviderDispatcher  # noqa: E402

from .helper import DummyHttp, DummyResp, make_settings  # noqa: E402


def run_count() -> int:
    db = SessionLocal()
    try:
        return RunStore(db).count()
    finally:
        db.close()


@pytest.fixture
def client():
    settings = make_settings(use_mock_ai=True)
    main.app.dependency_overrides[main.get_settings] = lambda: settings
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


def test_weather_run_with_mock_ai_and_no_key(client):
    before = run_count()
    resp = client.post("/api/run-workflow", json={"prompt": "today", "action": "weather", "location": "Paris"})
    assert resp.status_code == 200
    assert resp.json() == {
        "ai_response": "Quick thought: today",
        "api_response": "Weather data unavailable (OPENWEATHER_API_KEY missing).",
        "final_result": "Quick thought: today Weather data unavailable (OPENWEATHER_API_KEY missing). #weather",
    }
    assert run_count() == before + 1

    latest = client.get("/api/history").json()["runs"][0]
    assert latest["prompt"] == "today"
    assert latest["action"] == "weather"
    assert latest["status"] == RunStatus.COMPLETE.value
    assert latest["final_result"].endswith("#weather")
    assert "__v" not in latest


def test_missing_prompt_is_rejected_without_record(client):
    before = run_count()
    resp = client.post("/api/run-workflow", json={"action": "weather"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "prompt and action are required"}

    resp = client.post("/api/run-workflow", json={"prompt": "", "action": "news"})
    assert resp.status_code == 400

    resp = client.post("/api/run-workflow", content=b"not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert run_count() == before


def test_unknown_action(client):
    resp = client.post("/api/run-workflow", json={"prompt": "hola", "action": "translate"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["api_response"] == 'Unknown action "translate". Supported: weather, github, news.'
    assert body["final_result"].endswith("#news")
    assert body["final_result"] == body["final_result"].strip()


def test_github_run_uses_dispatcher(client):
    items = [{"full_name": "a/b", "stargazers_count": 7}]
    http = DummyHttp(DummyResp({"items": items}))
    main.app.dependency_overrides[main.get_dispatcher] = lambda: ProviderDispatcher(make_settings(), http=http)

    resp = client.post("/api/run-workflow", json={"prompt": "oss", "action": "github"})

    assert resp.status_code == 200
    assert resp.json()["final_result"] == "Quick thought: oss Trending: a/b (7★) #opensource"


def test_generator_failure_is_isolated(client):
    class BrokenGenerator:
        def generate(self, prompt):
            raise RuntimeError("model offline")

    main.app.dependency_overrides[main.get_generator] = lambda: BrokenGenerator()

    resp = client.post("/api/run-workflow", json={"prompt": "x", "action": "news"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ai_response"] == "AI error: model offline"
    assert body["api_response"] == "News API key missing"
    assert body["final_result"] == "AI error: model offline News API key missing #news"


def test_history_is_limited_and_ordered(client):
    for i in range(12):
        resp = client.post("/api/run-workflow", json={"prompt": f"run {i}", "action": "translate"})
        assert resp.status_code == 200

    resp = client.get("/api/history")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 10
    assert len(body["runs"]) == 10
    assert body["runs"][0]["prompt"] == "run 11"
    stamps = [datetime.fromisoformat(r["created_at"]) for r in body["runs"]]
    assert all(a > b for a, b in zip(stamps, stamps[1:]))


def test_create_failure_returns_500(client):
    class FailingStore:
        def create(self, prompt, action):
            raise PersistenceError("database unavailable")

    main.app.dependency_overrides[main.get_store] = lambda: FailingStore()

    resp = client.post("/api/run-workflow", json={"prompt": "p", "action": "news"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "database unavailable"}


def test_finalize_failure_leaves_pending_run(client):
    class NoFinalizeStore(RunStore):
        def finalize(self, run_id, ai_response, api_response, final_result):
            raise PersistenceError("update failed")

    db = SessionLocal()
    main.app.dependency_overrides[main.get_store] = lambda: NoFinalizeStore(db)
    try:
        resp = client.post("/api/run-workflow", json={"prompt": "orphan", "action": "news"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "update failed"}

        run = db.query(WorkflowRun).filter(WorkflowRun.prompt == "orphan").one()
        assert run.status == RunStatus.PENDING.value
        assert run.final_result == ""
    finally:
        db.close()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "mock_ai": True, "database": "sqlite"}


def test_store_count_wraps_database_errors():
    class BrokenSession:
        def execute(self, *args, **kwargs):
            raise SQLAlchemyError("database is locked")

    with pytest.raises(PersistenceError, match="database is locked"):
        RunStore(BrokenSession()).count()
