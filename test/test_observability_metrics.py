import json

from fastapi.testclient import TestClient

from api.main import app


def test_metrics_endpoint_exposes_prometheus_text() -> None:
    client = TestClient(app)

    r = client.get("/metrics")
    assert r.status_code == 200
    # Prometheus text exposition format content-type
    assert "text/plain" in r.headers.get("content-type", "")
    body = r.text
    assert "taskagent_requests_total" in body
    assert "taskagent_request_latency_seconds" in body
    assert "taskagent_campaign_recipients_total" in body


def test_health_before_startup() -> None:
    r = TestClient(app).get("/health")
    assert r.status_code == 200
    assert r.json()["status"] in {"starting", "healthy"}


def test_campaign_increments_request_and_recipient_counters(api_factory, scripted_provider_factory, delivery_factory) -> None:
    client = api_factory(scripted_provider_factory({}), delivery=delivery_factory(failing={"bad@test.com"}))

    r = client.post(
        "/api/email/campaign",
        json={"subject": "Hi", "body": "<p>Hi</p>", "recipients": ["ok@test.com", "bad@test.com"]},
        headers={"X-User-Id": "user-1"},
    )
    assert r.status_code == 200

    body = client.get("/metrics").text
    lines = body.splitlines()
    assert any(
        line.startswith('taskagent_requests_total{endpoint="/api/email/campaign",status="200"}')
        for line in lines
    )
    assert any(line.startswith('taskagent_campaign_recipients_total{status="SENT"}') for line in lines)
    assert any(line.startswith('taskagent_campaign_recipients_total{status="FAILED"}') for line in lines)


def test_orchestrator_counts_dispatch_outcome(api_factory, scripted_provider_factory) -> None:
    provider = scripted_provider_factory(
        {"categorize it as one of these types": json.dumps({"type": "GENERAL"})}, default="1. go"
    )
    client = api_factory(provider)

    r = client.post("/api/agent/orchestrator", json={"prompt": "plan"}, headers={"X-User-Id": "user-1"})
    assert r.status_code == 200

    lines = client.get("/metrics").text.splitlines()
    assert any(
        line.startswith('taskagent_tasks_dispatched_total{kind="GENERAL",outcome="success"}')
        for line in lines
    )
