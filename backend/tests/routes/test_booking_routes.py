"""HTTP tests for the quote -> confirm -> cancel flow."""

from datetime import timedelta


def _quote(client, class_id, participants=2, payment_type="full", email="anna@example.com"):
    return client.post(
        "/api/create-payment-intent",
        json={
            "classId": class_id,
            "participants": participants,
            "paymentType": payment_type,
            "email": email,
            "name": "Anna Petrova",
            "phone": "+371 29123456",
        },
    )


def _pay_and_confirm(client, gateway, class_id, **kwargs):
    quote = _quote(client, class_id, **kwargs)
    assert quote.status_code == 200, quote.json()
    payment_intent_id = quote.json()["paymentIntentId"]
    gateway.succeed(payment_intent_id)
    return client.post("/api/confirm-booking", json={"paymentIntentId": payment_intent_id})


class TestCreatePaymentIntent:
    def test_returns_client_secret_and_amounts(self, client, make_class):
        group_class = make_class(price="45.50")

        response = _quote(client, group_class.id, payment_type="partial")

        assert response.status_code == 200
        data = response.json()
        assert data["clientSecret"].endswith("_secret")
        assert data["paymentType"] == "partial"
        assert data["totalPrice"] == 91.0
        assert data["paidAmount"] == 9.1
        assert data["remainingAmount"] == 81.9
        assert data["amountCents"] == 910

    def test_capacity_exceeded(self, client, gateway, make_class):
        group_class = make_class(capacity=2)

        response = _quote(client, group_class.id, participants=3)

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "CAPACITY_EXCEEDED"
        assert body["details"]["available_spots"] == 2
        assert gateway.intents == {}

    def test_unknown_class(self, client):
        response = _quote(client, "01HZZZZZZZZZZZZZZZZZZZZZZZ")
        assert response.status_code == 404
        assert response.json()["message"] == "Class not found"

    def test_invalid_payload(self, client, make_class):
        group_class = make_class()

        response = _quote(client, group_class.id, participants=0)

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_invalid_email(self, client, make_class):
        group_class = make_class()
        response = _quote(client, group_class.id, email="not-an-email")
        assert response.status_code == 422


class TestConfirmBooking:
    def test_confirm_and_replay(self, client, gateway, make_class, email_sender):
        group_class = make_class(price="12.00", capacity=12)

        first = _pay_and_confirm(client, gateway, group_class.id, participants=2)

        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["message"] == "Booking confirmed successfully"
        booking = body["booking"]
        assert booking["status"] == "confirmed"
        assert booking["className"] == group_class.title
        assert booking["customerName"] == "Anna Petrova"
        assert booking["paidAmount"] == 24.0
        assert booking["remainingAmount"] == 0.0
        assert email_sender.sent[0]["to"] == "anna@example.com"

        replay = client.post(
            "/api/confirm-booking", json={"paymentIntentId": booking["paymentIntentId"]}
        )
        assert replay.status_code == 200
        assert replay.json()["message"] == "Booking already confirmed"
        assert replay.json()["booking"]["id"] == booking["id"]

        classes = client.get(f"/api/classes/{group_class.id}").json()
        assert classes["booked"] == 2
        assert classes["availableSpots"] == 10

    def test_unpaid_intent_is_rejected(self, client, make_class):
        group_class = make_class()
        payment_intent_id = _quote(client, group_class.id).json()["paymentIntentId"]

        response = client.post("/api/confirm-booking", json={"paymentIntentId": payment_intent_id})

        assert response.status_code == 400
        assert response.json()["code"] == "PAYMENT_NOT_COMPLETED"

    def test_unknown_fields_are_rejected(self, client):
        response = client.post(
            "/api/confirm-booking", json={"paymentIntentId": "pi_1", "amount": 1}
        )
        assert response.status_code == 422


class TestCancelBooking:
    def test_cancel_refunds_and_releases(self, client, gateway, make_class):
        group_class = make_class(price="45.00", capacity=12)
        booking = _pay_and_confirm(client, gateway, group_class.id, participants=2).json()["booking"]

        response = client.post(
            "/api/cancel-booking", json={"bookingId": booking["id"], "email": "ANNA@example.com"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Booking cancelled and refund processed"
        assert body["booking"]["status"] == "cancelled"
        assert body["refund"]["amount"] == 90.0
        assert body["refund"]["status"] == "succeeded"
        assert client.get(f"/api/classes/{group_class.id}").json()["booked"] == 0

    def test_cancel_twice(self, client, gateway, make_class):
        group_class = make_class()
        booking = _pay_and_confirm(client, gateway, group_class.id).json()["booking"]
        payload = {"bookingId": booking["id"], "email": "anna@example.com"}
        client.post("/api/cancel-booking", json=payload)

        response = client.post("/api/cancel-booking", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "BOOKING_ALREADY_CANCELLED"
        assert len(gateway.refunds) == 1

    def test_cancel_close_to_start(self, client, gateway, clock, make_class):
        group_class = make_class(start=clock.now + timedelta(hours=5))
        booking = _pay_and_confirm(client, gateway, group_class.id).json()["booking"]

        response = client.post(
            "/api/cancel-booking", json={"bookingId": booking["id"], "email": "anna@example.com"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "CANCELLATION_WINDOW_CLOSED"
        assert gateway.refunds == []

    def test_cancel_with_wrong_email(self, client, gateway, make_class):
        group_class = make_class()
        booking = _pay_and_confirm(client, gateway, group_class.id).json()["booking"]

        response = client.post(
            "/api/cancel-booking", json={"bookingId": booking["id"], "email": "eve@example.com"}
        )

        assert response.status_code == 404

    def test_refund_failure_is_bad_gateway(self, client, gateway, make_class):
        group_class = make_class()
        booking = _pay_and_confirm(client, gateway, group_class.id).json()["booking"]
        gateway.fail_refunds = True

        response = client.post(
            "/api/cancel-booking", json={"bookingId": booking["id"], "email": "anna@example.com"}
        )

        assert response.status_code == 502
        assert response.json()["code"] == "PAYMENT_ERROR"


class TestBookingLists:
    def test_admin_list_requires_session(self, client):
        response = client.get("/api/bookings")
        assert response.status_code == 401

    def test_admin_list(self, admin_client, gateway, make_class):
        group_class = make_class()
        _pay_and_confirm(admin_client, gateway, group_class.id)
        _pay_and_confirm(admin_client, gateway, group_class.id, email="ivan@example.com")

        response = admin_client.get("/api/bookings")

        assert response.status_code == 200
        assert sorted(b["email"] for b in response.json()) == [
            "anna@example.com",
            "ivan@example.com",
        ]

    def test_bookings_by_email(self, client, gateway, make_class):
        group_class = make_class()
        _pay_and_confirm(client, gateway, group_class.id)
        _pay_and_confirm(client, gateway, group_class.id, email="ivan@example.com")

        response = client.get("/api/bookings/email/Anna@Example.com")

        assert response.status_code == 200
        assert [b["email"] for b in response.json()] == ["anna@example.com"]
