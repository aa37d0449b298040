from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import select

from ticketing.api.deps import get_paystack_client
from ticketing.core.security import SIGNATURE_HEADER
from ticketing.integrations.paystack import PaystackClient
from ticketing.main import app
from ticketing.models import Purchase

WEBHOOK = "/api/v1/paystack/webhook"
INITIALIZE = "/api/v1/paystack/initialize"


def _post_event(client: TestClient, body: bytes, signature: str | None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers[SIGNATURE_HEADER] = signature
    return client.post(WEBHOOK, content=body, headers=headers)


def test_webhook_success(client, transport, db, make_event, sign):
    body = make_event()
    r = _post_event(client, body, sign(body))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data == {
        "received": True,
        "state": "acknowledged",
        "reference": "abc123",
        "tickets_sent": 2,
        "tickets_failed": 0,
    }
    assert len(transport.sent) == 2
    assert db.exec(select(Purchase)).one().paystack_reference == "abc123"


def test_webhook_redelivery_is_acknowledged_without_resending(client, transport, make_event, sign):
    body = make_event()
    assert _post_event(client, body, sign(body)).status_code == 200
    r = _post_event(client, body, sign(body))
    assert r.status_code == 200
    assert r.json()["data"]["state"] == "already_processed"
    assert len(transport.sent) == 2


def test_webhook_bad_signature(client, transport, db, make_event, sign):
    body = make_event()
    r = _post_event(client, body, sign(body, secret="other"))
    assert r.status_code == 401
    assert r.json() == {"code": 401001, "message": "Invalid signature", "data": None}

    r = _post_event(client, body, None)
    assert r.status_code == 401
    assert transport.sent == []
    assert db.exec(select(Purchase)).all() == []


def test_webhook_signature_covers_exact_bytes(client, make_event, sign):
    body = make_event()
    reformatted = json.dumps(json.loads(body), indent=2).encode()
    assert _post_event(client, reformatted, sign(body)).status_code == 401


def test_webhook_malformed_event(client, sign):
    body = b'{"event": "charge.success", "data": {"reference": "r1"}}'
    r = _post_event(client, body, sign(body))
    assert r.status_code == 400
    assert r.json()["code"] == 400101


def test_webhook_ignores_other_events(client, transport, make_event, sign):
    body = make_event(event="charge.dispute.create")
    r = _post_event(client, body, sign(body))
    assert r.status_code == 200
    assert r.json()["data"]["state"] == "ignored"
    assert transport.sent == []


def test_webhook_ignores_other_events_without_data_object(client, transport, sign):
    body = b'{"event": "transfer.success", "data": null}'
    r = _post_event(client, body, sign(body))
    assert r.status_code == 200
    assert r.json()["data"]["state"] == "ignored"
    assert transport.sent == []


def test_webhook_partial_failure_still_acknowledged(client, transport, make_event, sign):
    body = make_event(
        cart=[
            {"type": "regular", "quantity": 1, "name": "Regular Ticket"},
            {"type": "gala", "quantity": 1, "name": "Gala Ticket"},
        ]
    )
    r = _post_event(client, body, sign(body))
    assert r.status_code == 200
    assert r.json()["data"]["tickets_sent"] == 1
    assert r.json()["data"]["tickets_failed"] == 1


@pytest.fixture()
def paystack_requests(client):
    """Routes Paystack calls to a handler the test installs; records requests."""
    state: dict = {"requests": [], "handler": None}

    def _dispatch(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return state["handler"](request)

    app.dependency_overrides[get_paystack_client] = lambda: PaystackClient(
        secret_key="sk_test_secret",
        base_url="https://paystack.test",
        callback_url="https://tickets.test/success.html",
        transport=httpx.MockTransport(_dispatch),
    )
    yield state
    app.dependency_overrides.pop(get_paystack_client, None)


def _init_payload(**overrides):
    payload = {
        "email": "a@x.com",
        "name": "Jane Doe",
        "amount": 1000000,
        "cart": [{"type": "regular", "quantity": 2, "name": "Regular Ticket"}],
    }
    payload.update(overrides)
    return payload


def test_initialize_success(client, paystack_requests):
    paystack_requests["handler"] = lambda request: httpx.Response(
        200,
        json={
            "status": True,
            "message": "Authorization URL created",
            "data": {
                "authorization_url": "https://checkout.paystack.com/x1",
                "access_code": "x1",
                "reference": "ref-1",
            },
        },
    )
    r = client.post(INITIALIZE, json=_init_payload())
    assert r.status_code == 200
    assert r.json()["data"]["authorization_url"] == "https://checkout.paystack.com/x1"

    sent = paystack_requests["requests"][0]
    assert str(sent.url) == "https://paystack.test/transaction/initialize"
    assert sent.headers["Authorization"] == "Bearer sk_test_secret"
    body = json.loads(sent.content)
    assert body["email"] == "a@x.com"
    assert body["amount"] == 1000000
    assert body["callback_url"] == "https://tickets.test/success.html"
    assert body["metadata"] == {
        "full_name": "Jane Doe",
        "cart": [{"type": "regular", "quantity": 2, "name": "Regular Ticket"}],
    }


@pytest.mark.parametrize(
    "payload",
    [
        None,
        _init_payload(email=None),
        _init_payload(email="not-an-email"),
        _init_payload(name=""),
        _init_payload(amount=0),
        _init_payload(cart=[]),
    ],
)
def test_initialize_missing_fields(client, paystack_requests, payload):
    r = client.post(INITIALIZE, json=payload) if payload is not None else client.post(INITIALIZE)
    assert r.status_code == 400
    assert r.json()["message"] == "Email, name, amount, and cart are required."
    assert paystack_requests["requests"] == []


def test_initialize_provider_rejection(client, paystack_requests):
    paystack_requests["handler"] = lambda request: httpx.Response(
        400, json={"status": False, "message": "Invalid key"}
    )
    r = client.post(INITIALIZE, json=_init_payload())
    assert r.status_code == 500
    assert r.json()["message"] == "Invalid key"


def test_initialize_transport_error(client, paystack_requests):
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    paystack_requests["handler"] = _boom
    r = client.post(INITIALIZE, json=_init_payload())
    assert r.status_code == 500
    assert r.json()["message"] == "An internal server error occurred."


def test_health_check(client):
    r = client.get("/api/v1/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True
