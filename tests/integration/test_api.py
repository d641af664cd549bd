"""Integration tests for API endpoints"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from fastapi.testclient import TestClient


def funded_days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


def post_advance(client: TestClient, account: str = "IL-000123", amount_cents: int = 30000, days_ago: int = 10):
    return client.post(
        "/v1/advances",
        json={
            "dst_bank_account": account,
            "amount_cents": amount_cents,
            "transaction_time": funded_days_ago(days_ago),
        },
    )


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "billing_reconciliation_cycles_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"

    generated = client.get("/health")
    assert generated.headers["X-Request-ID"]


def test_create_advance(client: TestClient):
    """Test POST /v1/advances"""
    response = post_advance(client)

    assert response.status_code == 201
    data = response.json()
    assert data["dst_bank_account"] == "IL-000123"
    assert data["amount_cents"] == 30000
    assert data["status"] == "SUCCESS"
    assert data["transaction_id"]


def test_create_advance_duplicate_account(client: TestClient):
    """Debits are matched by account, so a second funded advance is refused"""
    assert post_advance(client).status_code == 201

    response = post_advance(client, amount_cents=50000)

    assert response.status_code == 409


def test_create_failed_advance_does_not_block_account(client: TestClient):
    failed = client.post(
        "/v1/advances",
        json={"dst_bank_account": "IL-000123", "amount_cents": 30000, "status": "FAILURE"},
    )
    assert failed.status_code == 201

    assert post_advance(client).status_code == 201


def test_create_advance_validation(client: TestClient):
    response = client.post("/v1/advances", json={"dst_bank_account": "IL-000123", "amount_cents": 0})
    assert response.status_code == 422


def test_get_plan_not_found(client: TestClient):
    response = client.get("/v1/accounts/UNKNOWN/plan")
    assert response.status_code == 404


def test_reconciliation_creates_plan_and_promotes_due_debit(client: TestClient):
    """Advance funded 10 days ago: first weekly debit is already due"""
    post_advance(client, amount_cents=30000, days_ago=10)

    response = client.post("/v1/reconciliation/run")

    assert response.status_code == 200
    assert response.json() == {
        "plans_created": 1,
        "debits_created": 3,
        "debits_rescheduled": 0,
        "debits_promoted": 1,
        "advances_skipped": 0,
    }

    plan = client.get("/v1/accounts/IL-000123/plan").json()
    assert plan["total_debit_cents"] == 30000
    assert [d["amount_cents"] for d in plan["debits"]] == [10000, 10000, 10000]
    assert [d["status"] for d in plan["debits"]] == ["WAITING_TO_BE_SENT", "ON_HOLD", "ON_HOLD"]


def test_reconciliation_is_idempotent(client: TestClient):
    post_advance(client, days_ago=1)

    client.post("/v1/reconciliation/run")
    response = client.post("/v1/reconciliation/run")

    assert response.json()["plans_created"] == 0
    assert len(client.get("/v1/accounts/IL-000123/plan").json()["debits"]) == 3


def test_ready_debits_listing(client: TestClient):
    post_advance(client, "ACC-DUE", days_ago=10)
    post_advance(client, "ACC-FRESH", days_ago=1)
    client.post("/v1/reconciliation/run")

    response = client.get("/v1/debits/ready")

    assert response.status_code == 200
    ready = response.json()["debits"]
    assert len(ready) == 1
    assert ready[0]["dst_bank_account"] == "ACC-DUE"
    assert ready[0]["status"] == "WAITING_TO_BE_SENT"


def test_debit_outcome_success(client: TestClient):
    post_advance(client, days_ago=10)
    client.post("/v1/reconciliation/run")
    debit_id = client.get("/v1/debits/ready").json()["debits"][0]["transaction_id"]

    response = client.post(f"/v1/debits/{debit_id}/outcome", json={"status": "SUCCESS"})

    assert response.status_code == 200
    assert response.json()["status"] == "SUCCESS"
    assert client.get("/v1/debits/ready").json()["debits"] == []

    # Settled debits accept no further outcome
    again = client.post(f"/v1/debits/{debit_id}/outcome", json={"status": "FAILURE"})
    assert again.status_code == 409


def test_failed_debit_rescheduled_on_next_cycle(client: TestClient):
    """FAILURE outcome moves the debit to one week before the last payment"""
    post_advance(client, days_ago=10)
    client.post("/v1/reconciliation/run")
    debit_id = client.get("/v1/debits/ready").json()["debits"][0]["transaction_id"]
    client.post(f"/v1/debits/{debit_id}/outcome", json={"status": "FAILURE"})

    response = client.post("/v1/reconciliation/run")

    assert response.json()["debits_rescheduled"] == 1
    assert response.json()["debits_promoted"] == 0

    debits = client.get("/v1/accounts/IL-000123/plan").json()["debits"]
    failed = next(d for d in debits if d["transaction_id"] == debit_id)
    others = [d for d in debits if d["transaction_id"] != debit_id]
    assert failed["status"] == "FAILURE"
    # Week before the last payment is the second weekly slot
    assert failed["transaction_time"] == others[0]["transaction_time"]


def test_debit_outcome_on_hold_debit_rejected(client: TestClient):
    post_advance(client, days_ago=1)
    client.post("/v1/reconciliation/run")
    debit_id = client.get("/v1/accounts/IL-000123/plan").json()["debits"][0]["transaction_id"]

    response = client.post(f"/v1/debits/{debit_id}/outcome", json={"status": "SUCCESS"})

    assert response.status_code == 409


def test_debit_outcome_invalid_id(client: TestClient):
    response = client.post("/v1/debits/not-a-uuid/outcome", json={"status": "SUCCESS"})
    assert response.status_code == 400


def test_debit_outcome_not_found(client: TestClient):
    fake_uuid = "00000000-0000-0000-0000-000000000000"
    response = client.post(f"/v1/debits/{fake_uuid}/outcome", json={"status": "SUCCESS"})
    assert response.status_code == 404


def test_debit_outcome_rejects_non_terminal_status(client: TestClient):
    fake_uuid = "00000000-0000-0000-0000-000000000000"
    response = client.post(f"/v1/debits/{fake_uuid}/outcome", json={"status": "WAITING_TO_BE_SENT"})
    assert response.status_code == 422


@patch("billing_gateway.infrastructure.scheduling.debits_scheduler.run_reconciliation_cycle")
def test_reconciliation_failure_returns_500(mock_cycle, client: TestClient):
    mock_cycle.side_effect = RuntimeError("database unavailable")

    response = client.post("/v1/reconciliation/run")

    assert response.status_code == 500
