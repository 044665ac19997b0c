from __future__ import annotations

from flask import Flask

from config import TestingConfig
from sync_app.activity_sync import get_celery_app, init_activity_sync


def build_sync_app(**overrides) -> Flask:
    app = Flask(__name__)
    app.config.from_object(TestingConfig)
    app.config.update(
        CELERY_BROKER_URL="memory://",
        CELERY_RESULT_BACKEND="cache+memory://",
        CELERY_CONFIG={"task_always_eager": True, "task_eager_propagates": True},
    )
    app.config.update(overrides)
    init_activity_sync(app)
    return app


def test_health_reports_ready_configuration():
    client = build_sync_app().test_client()

    response = client.get("/sync/health")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["enabled"] is True
    assert payload["config_errors"] == []
    assert payload["salesforce"]["auth_mode"] == "session"
    assert payload["source_table"] == "aloware_import"


def test_health_is_degraded_without_credentials():
    client = build_sync_app(SF_TOKEN=None).test_client()

    payload = client.get("/sync/health").get_json()

    assert payload["status"] == "degraded"
    assert payload["salesforce"]["status"] == "missing-config"
    assert any("Salesforce credentials" in error for error in payload["config_errors"])


def test_api_token_is_required_when_configured():
    client = build_sync_app(SYNC_API_TOKEN="s3cret").test_client()

    assert client.get("/sync/health").status_code == 401
    assert client.get("/sync/health", headers={"Authorization": "Bearer wrong"}).status_code == 401
    response = client.get("/sync/health", headers={"Authorization": "Bearer s3cret"})
    assert response.status_code == 200


def test_submit_run_queues_task(monkeypatch):
    app = build_sync_app()
    celery_app = get_celery_app(app)
    sent = {}

    class FakeAsyncResult:
        id = "task-abc"

    def fake_send_task(name, kwargs=None, **_options):
        sent.update(name=name, kwargs=kwargs)
        return FakeAsyncResult()

    monkeypatch.setattr(celery_app, "send_task", fake_send_task)

    response = app.test_client().post("/sync/runs", json={"purge": False})

    assert response.status_code == 202
    assert response.get_json() == {"task_id": "task-abc", "status": "queued", "purge": False}
    assert sent == {"name": "activity_sync.run", "kwargs": {"purge": False}}


def test_submit_run_validates_payload_and_settings():
    client = build_sync_app().test_client()
    assert client.post("/sync/runs", json={"purge": "yes"}).status_code == 400

    misconfigured = build_sync_app(SUPABASE_KEY=None).test_client()
    response = misconfigured.post("/sync/runs", json={})
    assert response.status_code == 503
    assert "SUPABASE_KEY" in response.get_json()["error"]


def test_run_status_exposes_progress_and_report():
    app = build_sync_app()
    celery_app = get_celery_app(app)
    progress = {"stage": "syncing", "processed": 200, "total": 1000, "percent": 20.0}
    celery_app.backend.store_result("task-progress", progress, "PROGRESS")
    celery_app.backend.store_result("task-done", {"stage": "complete", "processed": 1000}, "SUCCESS")
    client = app.test_client()

    running = client.get("/sync/runs/task-progress").get_json()
    finished = client.get("/sync/runs/task-done").get_json()
    unknown = client.get("/sync/runs/task-unknown").get_json()

    assert running == {"task_id": "task-progress", "state": "PROGRESS", "progress": progress}
    assert finished["report"]["stage"] == "complete"
    assert unknown == {"task_id": "task-unknown", "state": "PENDING"}


def test_worker_health_runs_heartbeat():
    client = build_sync_app().test_client()

    response = client.get("/sync/worker_health")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["heartbeat"]["status"] == "ok"


def test_worker_health_rejects_invalid_timeout():
    client = build_sync_app().test_client()

    for value in ("soon", "-1", "nan"):
        response = client.get(f"/sync/worker_health?timeout={value}")
        assert response.status_code == 400
        assert "timeout" in response.get_json()["error"]
