"""HTTP API tests against the in-memory backend."""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from use_cases.returns import build_services, sample_orders

STORE = "/api/stores/loja-teste"


@pytest.fixture
def client():
    # Orders dated relative to the real clock; the app evaluates with utc_now()
    services = build_services("memory", orders=sample_orders())
    return TestClient(create_app(services))


def create_refund(client, amount=100.0, method="CARD"):
    response = client.post(f"{STORE}/refunds", json={
        "order_code": "#28471",
        "customer": {"name": "Maria Lima", "email": "maria@email.com"},
        "amount": amount,
        "method": method,
        "items": [{"id": "1", "name": "Camiseta Premium", "category": "Roupas", "price": amount}],
        "attachments": ["nota.pdf"],
    })
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["risk_category"] == "Baixo"
    assert data["risk_color"] == "success"
    return data


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_settings_round_trip(client):
    assert client.get(f"{STORE}/settings").json()["version"] == 0

    response = client.put(f"{STORE}/settings", json={
        "eligibility_rules": {"window_days": 30, "blocked_categories": "Íntimas, Meias"},
        "refund_config": {"enable_boleto": False},
    })

    assert response.status_code == 200
    body = response.json()
    assert body["notification"]["title"] == "Configurações salvas"
    settings = client.get(f"{STORE}/settings").json()
    assert settings["version"] == 1
    assert settings["eligibility_rules"]["blocked_categories"] == ["Íntimas", "Meias"]
    methods = client.get(f"{STORE}/refund-methods").json()["methods"]
    assert [m["method"] for m in methods] == ["CARD", "PIX", "VOUCHER"]


def test_stale_settings_update_conflicts(client):
    client.put(f"{STORE}/settings", json={})
    client.put(f"{STORE}/settings", json={"version": 1})

    response = client.put(f"{STORE}/settings", json={"version": 1})

    assert response.status_code == 409
    assert response.json()["error"] == "concurrency_conflict"


def test_eligibility_for_late_order(client):
    response = client.post(f"{STORE}/eligibility", json={
        "request_type": "return",
        "order_code": "#28502",
        "email": "joao@email.com",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["is_eligible"] is False
    assert body["reasons"] == ["Prazo excedido: 20 dias (limite: 15 dias)"]


def test_eligibility_for_malformed_order(client):
    response = client.post(f"{STORE}/eligibility", json={
        "request_type": "exchange",
        "order": {"id": "#1", "items": []},
    })

    assert response.json()["reasons"] == ["Pedido inválido"]


def test_public_submission_auto_approved(client):
    response = client.post(f"{STORE}/returns/public", json={
        "order_code": "#28471",
        "email": "maria@email.com",
        "type": "return",
        "reason": "Tamanho errado",
        "attachments": ["foto.jpg"],
    })

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "Aprovada"
    assert data["status_color"] == "primary"
    assert "await_shipment" in data["available_actions"]

    fetched = client.get(f"/api/returns/{data['id']}").json()["data"]
    assert fetched["code"] == data["code"]


def test_public_submission_not_eligible(client):
    response = client.post(f"{STORE}/returns/public", json={
        "order_code": "#28502",
        "email": "joao@email.com",
        "type": "return",
    })

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "not_eligible"
    assert body["notification"]["variant"] == "destructive"
    assert client.get(f"{STORE}/returns").json()["total_count"] == 0


def test_return_workflow_over_http(client):
    created = client.post(f"{STORE}/returns", json={
        "order_code": "#9001",
        "customer": {"name": "Ana Costa"},
        "type": "exchange",
    }).json()["data"]
    assert created["status"] == "Nova"

    response = client.post(f"/api/returns/{created['id']}/actions/reject", json={})
    assert response.status_code == 422
    assert response.json()["error"] == "missing_evidence"

    response = client.post(f"/api/returns/{created['id']}/actions/reject", json={"reason": "Fora da política"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "Recusada"
    assert data["available_actions"] == []

    listed = client.get(f"{STORE}/returns", params={"status": "Recusada"}).json()
    assert [r["id"] for r in listed["data"]] == [created["id"]]


def test_refund_approval_above_requested_is_rejected(client):
    refund = create_refund(client)

    response = client.post(f"/api/refunds/{refund['id']}/actions/approve", json={"final_amount": 150})

    assert response.status_code == 422
    assert response.json()["error"] == "invalid_amount"
    stored = client.get(f"/api/refunds/{refund['id']}").json()["data"]
    assert stored["status"] == refund["status"]
    assert len(stored["timeline"]) == 1


def test_nan_approval_is_rejected_and_not_saved(client):
    refund = create_refund(client)

    response = client.post(
        f"/api/refunds/{refund['id']}/actions/approve",
        content='{"final_amount": NaN}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "invalid_amount"
    stored = client.get(f"/api/refunds/{refund['id']}").json()["data"]
    assert stored["status"] == refund["status"]
    assert stored["final_amount"] is None
    assert stored["version"] == 1


def test_refund_paid_by_card(client):
    refund = create_refund(client)
    base = f"/api/refunds/{refund['id']}/actions"

    assert client.post(f"{base}/approve", json={"final_amount": 90}).status_code == 200
    assert client.post(f"{base}/start_processing").status_code == 200
    response = client.post(f"{base}/mark_paid", json={"transaction_id": "TX-1"})

    assert response.status_code == 200
    body = response.json()
    assert body["data"]["status"] == "CONCLUIDO"
    assert body["data"]["payments"][0]["amount"] == 90.0
    assert body["notification"]["title"] == "Reembolso pago"


def test_illegal_action_and_stale_version(client):
    refund = create_refund(client)
    base = f"/api/refunds/{refund['id']}/actions"

    assert client.post(f"{base}/mark_paid", json={"transaction_id": "TX"}).status_code == 422
    assert client.post(f"{base}/teleport").json()["error"] == "illegal_transition"

    client.post(f"{base}/start_review", json={"version": refund["version"]})
    response = client.post(f"{base}/reject", json={"reason": "x", "version": refund["version"]})
    assert response.status_code == 409


def test_invalid_refund_intake(client):
    response = client.post(f"{STORE}/refunds", json={
        "order_code": "",
        "customer": {"name": "Maria"},
        "amount": 0,
        "method": "CHEQUE",
    })

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "validation_failed"
    assert {e["field"] for e in body["errors"]} == {"order_code", "method", "amount", "items"}


def test_unknown_refund_is_404(client):
    response = client.get("/api/refunds/REF-NOPE")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"
