"""Integration tests for the payment gateway signal endpoints."""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from payments.api.routes import gateway_router
from payments.gateway import get_gateway, set_gateway
from payments.gateway.paystack_adapter import PaystackGateway
from payments.gateway.port import OutcomeStatus

SIGNATURE = {"x-paystack-signature": "test-signature"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(gateway_router)
    return TestClient(app)


def _webhook(client, event, headers=SIGNATURE):
    return client.post("/payments/gateway/webhook", content=json.dumps(event), headers=headers)


class TestGatewayStatusEndpoint:
    def test_reports_state(self, client):
        body = client.get("/payments/gateway").json()
        assert body == {"gateway": "FakeGateway", "state": "Unloaded", "failure_reason": None}


class TestSignalEndpoints:
    def test_callback_for_unknown_reference_is_not_accepted(self, client):
        response = client.get("/payments/gateway/callback", params={"reference": "ord-404", "trxref": "ord-404"})
        assert response.status_code == 200
        assert response.json() == {"reference": "ord-404", "accepted": False}

    def test_callback_requires_reference(self, client):
        assert client.get("/payments/gateway/callback").status_code == 422

    def test_cancel_for_unknown_reference_is_not_accepted(self, client):
        response = client.post("/payments/gateway/cancel", json={"reference": "ord-404"})
        assert response.json() == {"reference": "ord-404", "accepted": False}


class TestWebhookEndpoint:
    def test_invalid_signature(self, client):
        response = _webhook(
            client,
            {"event": "charge.success", "data": {"reference": "ord-1"}},
            headers={"x-paystack-signature": "forged"},
        )
        assert response.status_code == 401

    def test_missing_signature(self, client):
        response = client.post("/payments/gateway/webhook", content=b"{}")
        assert response.status_code == 401

    def test_malformed_payload(self, client):
        response = client.post("/payments/gateway/webhook", content=b"not json", headers=SIGNATURE)
        assert response.status_code == 400

    def test_other_events_are_ignored(self, client):
        response = _webhook(client, {"event": "transfer.success", "data": {"reference": "ord-1"}})
        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    def test_charge_without_reference(self, client):
        response = _webhook(client, {"event": "charge.success", "data": {}})
        assert response.status_code == 400

    def test_charge_for_unknown_reference_is_ignored(self, client):
        response = _webhook(client, {"event": "charge.success", "data": {"reference": "ord-404"}})
        assert response.json()["status"] == "ignored"


class TestConfigureEndpoint:
    def test_configure_fake_gateway(self, client):
        response = client.post("/payments/gateway/configure", json={"auto_outcome": "succeed"})
        assert response.status_code == 200
        assert response.json() == {"gateway": "FakeGateway", "auto_outcome": "succeed", "fail_open": False}
        assert get_gateway().auto_outcome is OutcomeStatus.SUCCEEDED

    def test_configure_clears_outcome(self, client):
        client.post("/payments/gateway/configure", json={"auto_outcome": "cancel"})
        client.post("/payments/gateway/configure", json={"fail_open": True})
        assert get_gateway().auto_outcome is None
        assert get_gateway().fail_open is True

    def test_unknown_outcome_is_rejected(self, client):
        response = client.post("/payments/gateway/configure", json={"auto_outcome": "explode"})
        assert response.status_code == 422

    def test_not_available_in_production(self, client, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")
        response = client.post("/payments/gateway/configure", json={"auto_outcome": "succeed"})
        assert response.status_code == 403

    def test_only_for_fake_gateway(self, client):
        set_gateway(PaystackGateway(secret_key="sk_test_x"))
        response = client.post("/payments/gateway/configure", json={"auto_outcome": "succeed"})
        assert response.status_code == 400
