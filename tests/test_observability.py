from shared.observability import REQUEST_ID_HEADER


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={REQUEST_ID_HEADER: "req-123"})

    assert response.headers[REQUEST_ID_HEADER] == "req-123"


async def test_request_id_is_generated_when_absent(client):
    response = await client.get("/health")

    assert len(response.headers[REQUEST_ID_HEADER]) == 32


async def test_metrics_endpoint_is_exposed(client):
    await client.get("/api/order-history/email", params={"email": "nobody@example.com"})

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
