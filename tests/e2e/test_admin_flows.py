PASSWORD_CHANGED = "Your password has been changed."


async def test_health_check(client):
    r = await client.get("/health_check")
    assert r.status_code == 200
    assert r.content == b""
    assert "x-request-id" in r.headers


async def test_database_health(client):
    r = await client.get("/_health/db")
    assert r.status_code == 200
    assert r.json()["ok"] is True


async def test_request_id_is_echoed(client):
    r = await client.get("/health_check", headers={"X-Request-ID": "req-123"})
    assert r.headers["x-request-id"] == "req-123"


async def test_home_page(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert "Welcome to our newsletter!" in r.text


async def test_failed_login_flashes_an_error_once(client):
    r = await client.post("/login", data={"username": "random", "password": "random-password"})
    assert r.status_code == 303
    assert r.headers["location"] == "/login"

    page = await client.get("/login")
    assert "<p><i>Authentication failed</i></p>" in page.text

    page = await client.get("/login")
    assert "Authentication failed" not in page.text


async def test_successful_login_shows_the_dashboard(logged_in_client, test_user):
    r = await logged_in_client.get("/admin/dashboard")
    assert r.status_code == 200
    assert f"Welcome {test_user.username}" in r.text


async def test_dashboard_requires_login(client):
    r = await client.get("/admin/dashboard")
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


async def test_change_password_requires_login(client):
    r = await client.get("/admin/password")
    assert r.headers["location"] == "/login"
    r = await client.post(
        "/admin/password",
        data={"current_password": "x", "new_password": "y", "new_password_check": "y"},
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


async def test_new_passwords_must_match(logged_in_client, test_user):
    r = await logged_in_client.post(
        "/admin/password",
        data={
            "current_password": test_user.password,
            "new_password": "a brand new password",
            "new_password_check": "another new password",
        },
    )
    assert r.headers["location"] == "/admin/password"
    page = await logged_in_client.get("/admin/password")
    assert "You entered two different new passwords - the field values must match." in page.text


async def test_current_password_must_be_valid(logged_in_client):
    r = await logged_in_client.post(
        "/admin/password",
        data={
            "current_password": "wrong-password!!",
            "new_password": "a brand new password",
            "new_password_check": "a brand new password",
        },
    )
    assert r.headers["location"] == "/admin/password"
    page = await logged_in_client.get("/admin/password")
    assert "The current password is incorrect." in page.text


async def test_new_password_length_is_enforced(logged_in_client, test_user):
    await logged_in_client.post(
        "/admin/password",
        data={
            "current_password": test_user.password,
            "new_password": "short",
            "new_password_check": "short",
        },
    )
    page = await logged_in_client.get("/admin/password")
    assert "between 12 and 128 characters" in page.text


async def test_changing_password_works(logged_in_client, test_user):
    r = await logged_in_client.post(
        "/admin/password",
        data={
            "current_password": test_user.password,
            "new_password": "a brand new password",
            "new_password_check": "a brand new password",
        },
    )
    assert r.headers["location"] == "/admin/password"
    page = await logged_in_client.get("/admin/password")
    assert PASSWORD_CHANGED in page.text

    r = await logged_in_client.post("/admin/logout")
    assert r.headers["location"] == "/login"
    page = await logged_in_client.get("/login")
    assert "You have successfully logged out." in page.text

    r = await logged_in_client.post(
        "/login", data={"username": test_user.username, "password": "a brand new password"}
    )
    assert r.headers["location"] == "/admin/dashboard"


async def test_logout_clears_the_session(logged_in_client):
    await logged_in_client.post("/admin/logout")
    r = await logged_in_client.get("/admin/dashboard")
    assert r.status_code == 303
    assert r.headers["location"] == "/login"
