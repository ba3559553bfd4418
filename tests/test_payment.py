import base64

import pytest
import requests

from app.src.hubtel import checkout

PAYMENT = "/public/payment/hubtel"
BOOKING_ID = "6f1c2a9e-8a55-4d8f-9a57-1c2b3d4e5f60"


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body
        self.text = str(body)

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


@pytest.fixture
def hubtel(monkeypatch):
    calls = []
    reply = {
        "response": FakeResponse(
            body={
                "responseCode": "0000",
                "status": "Success",
                "data": {"checkoutUrl": "https://pay.hubtel.com/abc123"},
            }
        )
    }

    def post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        if isinstance(reply["response"], Exception):
            raise reply["response"]
        return reply["response"]

    monkeypatch.setattr(checkout.requests, "post", post)
    return {"calls": calls, "reply": reply}


def test_create_payment(client, hubtel):
    response = client.post(
        PAYMENT,
        json={"bookingId": BOOKING_ID, "amount": 80.456, "fullName": "Ama Mensah"},
        headers={"Origin": "https://book.atttransport.com"},
    )

    assert response.status_code == 200, response.text
    assert response.json() == {"url": "https://pay.hubtel.com/abc123"}
    call = hubtel["calls"][0]
    assert call["json"]["clientReference"] == BOOKING_ID
    assert call["json"]["totalAmount"] == 80.46
    assert call["json"]["merchantAccountNumber"] == "2020202"
    assert call["json"]["customerName"] == "Ama Mensah"
    assert call["json"]["returnUrl"] == "https://book.atttransport.com/"
    expected = base64.b64encode(b"test-client:test-secret").decode()
    assert call["headers"]["Authorization"] == f"Basic {expected}"


def test_pascal_case_checkout_url(client, hubtel):
    hubtel["reply"]["response"] = FakeResponse(
        body={"ResponseCode": "0000", "Data": {"CheckoutUrl": "https://pay.hubtel.com/x"}}
    )

    response = client.post(PAYMENT, json={"bookingId": BOOKING_ID, "amount": 80})

    assert response.json() == {"url": "https://pay.hubtel.com/x"}


@pytest.mark.parametrize(
    "body",
    [
        {"amount": 80},
        {"bookingId": "", "amount": 80},
        {"bookingId": BOOKING_ID, "amount": 0},
        {"bookingId": BOOKING_ID, "amount": -5},
        {"bookingId": BOOKING_ID},
    ],
)
def test_invalid_payment_request(client, hubtel, body):
    response = client.post(PAYMENT, json=body)

    assert response.status_code == 400
    assert response.headers["X-Error"] == "InvalidPayload"
    assert hubtel["calls"] == []


def test_malformed_payment_body(client, hubtel):
    response = client.post(
        PAYMENT, content=b"{broken", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


def test_missing_credentials(client, hubtel, monkeypatch):
    monkeypatch.setattr(checkout, "HUBTEL_MERCHANT_NUMBER", "")

    response = client.post(PAYMENT, json={"bookingId": BOOKING_ID, "amount": 80})

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "Missing Hubtel credentials"
    assert hubtel["calls"] == []


def test_rejected_checkout(client, hubtel):
    rejection = {"responseCode": "2001", "message": "Invalid merchant"}
    hubtel["reply"]["response"] = FakeResponse(status_code=400, body=rejection)

    response = client.post(PAYMENT, json={"bookingId": BOOKING_ID, "amount": 80})

    assert response.status_code == 500
    assert response.headers["X-Error"] == "ProviderError"
    assert response.json()["detail"]["details"] == rejection


def test_checkout_without_url(client, hubtel):
    hubtel["reply"]["response"] = FakeResponse(body={"responseCode": "0000", "data": {}})

    response = client.post(PAYMENT, json={"bookingId": BOOKING_ID, "amount": 80})

    assert response.status_code == 500


def test_unreachable_gateway(client, hubtel):
    hubtel["reply"]["response"] = requests.ConnectionError("timed out")

    response = client.post(PAYMENT, json={"bookingId": BOOKING_ID, "amount": 80})

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "Failed to reach Hubtel"
