def test_frontend_config(client):
    response = client.get("/config")

    assert response.status_code == 200
    assert response.json() == {"apiUrl": "/api", "stripePublicKey": ""}


def test_health_check(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"
    assert data["environment"] == "test"


def test_metrics_endpoint(client, make_class):
    group_class = make_class()
    client.post(
        "/api/create-payment-intent",
        json={
            "classId": group_class.id,
            "participants": 1,
            "email": "anna@example.com",
            "name": "Anna",
        },
    )

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "classbook_service_operations_total" in response.text


def test_unknown_route_uses_error_format(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["status"] == 404
    assert body["instance"] == "/api/does-not-exist"
