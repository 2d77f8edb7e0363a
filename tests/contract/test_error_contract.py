from newsletter_service.idempotency import IdempotencyKey


async def test_validation_error_contract(client):
    r = await client.post("/subscriptions", data={})
    assert r.status_code == 400
    data = r.json()
    assert set(data) == {"code", "message", "details", "correlation_id"}
    assert data["code"] == "validation_error"
    assert data["correlation_id"] == r.headers["x-request-id"]


async def test_domain_error_contract(client):
    r = await client.get("/subscriptions/confirm", params={"subscription_token": "z" * 25})
    assert r.status_code == 401
    data = r.json()
    assert data["code"] == "unknown_subscription_token"
    assert data["message"] == "The subscription token is not recognised."


async def test_in_progress_publish_is_409_with_retry_after(logged_in_client, services, test_user):
    outcome = await services.idempotency.try_begin(test_user.user_id, IdempotencyKey.parse("busy"))
    async with outcome as transaction:
        await transaction.session.commit()

        r = await logged_in_client.post(
            "/admin/newsletters",
            data={"title": "T", "text_content": "t", "html_content": "<p>t</p>", "idempotency_key": "busy"},
        )

    assert r.status_code == 409
    assert r.headers["retry-after"] == "1"
    assert r.json()["code"] == "idempotency_in_progress"


async def test_unknown_route_contract(client):
    r = await client.get("/does-not-exist")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"
