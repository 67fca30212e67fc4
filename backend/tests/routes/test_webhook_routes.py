import json


def _payload(event_id="evt_1", event_type="payment_intent.succeeded"):
    return json.dumps(
        {"id": event_id, "type": event_type, "data": {"object": {"id": "pi_1"}}}
    ).encode()


def test_webhook_acknowledges_event(client, webhook_signature):
    response = client.post(
        "/webhook", content=_payload(), headers={"stripe-signature": webhook_signature}
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "duplicate": False}


def test_webhook_duplicate(client, webhook_signature):
    headers = {"stripe-signature": webhook_signature}
    client.post("/webhook", content=_payload(), headers=headers)

    response = client.post("/webhook", content=_payload(), headers=headers)

    assert response.json() == {"received": True, "duplicate": True}


def test_webhook_without_signature(client):
    response = client.post("/webhook", content=_payload())

    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_SIGNATURE"


def test_webhook_with_bad_signature(client):
    response = client.post(
        "/webhook", content=_payload(), headers={"stripe-signature": "t=1,v1=forged"}
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SIGNATURE"
