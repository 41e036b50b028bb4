from jobportal.services.delivery import EmailMessage, SmsMessage

ADA = {"username": "ada", "email": "ada@x.com", "password": "secret1"}


def test_signup_login_round_trip(client):
    res = client.post("/api/auth/register", json=ADA)
    assert res.status_code == 201
    assert res.cookies.get("token")
    user_id = res.json()["user"]["id"]
    assert "password_hash" not in res.json()["user"]

    res = client.post("/api/auth/login", json={"identifier": "ada", "password": "secret1"})
    assert res.status_code == 200
    assert res.cookies.get("token")
    assert res.json()["user"]["id"] == user_id

    res = client.post("/api/auth/login", json={"identifier": "ada@x.com", "password": "secret1"})
    assert res.json()["user"]["id"] == user_id


def test_wrong_password_sets_no_cookie(client):
    client.post("/api/auth/register", json=ADA)
    res = client.post("/api/auth/login", json={"identifier": "ada", "password": "wrong-one"})
    assert res.status_code == 401
    assert res.cookies.get("token") is None
    assert res.json() == {
        "success": False,
        "error": "Unauthorized",
        "message": "Incorrect email/username or password",
    }


def test_unknown_user_login(client):
    res = client.post("/api/auth/login", json={"identifier": "nobody", "password": "secret1"})
    assert res.status_code == 401


def test_cookie_session(client):
    client.post("/api/auth/register", json=ADA)
    res = client.get("/api/auth/me")
    assert res.status_code == 200
    assert res.json()["user"]["username"] == "ada"


def test_me_requires_token(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json()["error"] == "Unauthorized"


def test_duplicate_signup_conflicts(client):
    assert client.post("/api/auth/register", json=ADA).status_code == 201
    res = client.post("/api/auth/register", json={**ADA, "username": "other"})
    assert res.status_code == 409
    assert res.json()["error"] == "Conflict"


def test_validation_error_shape(client):
    res = client.post("/api/auth/register", json={"username": "ada", "email": "not-an-email", "password": "123"})
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "ValidationError"
    assert {f["field"] for f in body["fields"]} == {"email", "password"}


def test_signup_sends_verification_email(client, mailer):
    client.post("/api/auth/register", json=ADA)
    assert len(mailer.sent) == 1
    assert isinstance(mailer.sent[0], EmailMessage)
    assert mailer.sent[0].to == "ada@x.com"

    res = client.post("/api/auth/verify-otp", json={"identifier": "ada@x.com", "otp": mailer.last_code()})
    assert res.status_code == 200
    assert res.json()["user"]["is_verified"] is True

    res = client.post("/api/auth/verify-otp", json={"identifier": "ada@x.com", "otp": mailer.last_code()})
    assert res.status_code == 400
    assert res.json()["error"] == "InvalidOrExpired"


def test_signup_succeeds_when_email_provider_fails(client, mailer):
    mailer.fail = True
    res = client.post("/api/auth/register", json=ADA)
    assert res.status_code == 201
    assert mailer.sent == []


def test_forgot_password_flow(client, mailer):
    client.post("/api/auth/register", json=ADA)
    mailer.sent.clear()

    res = client.post("/api/auth/forgot-password", json={"email": "ada@x.com"})
    assert res.status_code == 200
    code = mailer.last_code()

    res = client.post("/api/auth/verify-otp", json={
        "identifier": "ada", "otp": code, "purpose": "password_reset", "new_password": "newsecret",
    })
    assert res.status_code == 200

    assert client.post("/api/auth/login", json={"identifier": "ada", "password": "secret1"}).status_code == 401
    assert client.post("/api/auth/login", json={"identifier": "ada", "password": "newsecret"}).status_code == 200


def test_forgot_password_does_not_reveal_accounts(client, mailer):
    client.post("/api/auth/register", json=ADA)
    known = client.post("/api/auth/forgot-password", json={"email": "ada@x.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@x.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [m.to for m in mailer.sent] == ["ada@x.com", "ada@x.com"]


def test_password_reset_otp_needs_new_password(client):
    res = client.post("/api/auth/verify-otp", json={"identifier": "ada", "otp": "123456", "purpose": "password_reset"})
    assert res.status_code == 400
    assert res.json()["error"] == "ValidationError"


def test_change_password(client, make_user):
    _, headers = make_user("ada")

    res = client.post("/api/auth/change-password", json={"current_password": "wrong", "new_password": "newsecret"}, headers=headers)
    assert res.status_code == 401

    res = client.post("/api/auth/change-password", json={"current_password": "secret1", "new_password": "newsecret"}, headers=headers)
    assert res.status_code == 200
    assert res.cookies.get("token")

    new_headers = {"Authorization": f"Bearer {res.json()['token']}"}
    assert client.get("/api/auth/me", headers=new_headers).status_code == 200
    assert client.post("/api/auth/login", json={"identifier": "ada", "password": "newsecret"}).status_code == 200


def test_phone_update_flow(client, make_user, sms):
    _, headers = make_user("ada")

    res = client.post("/api/auth/send-otp", json={"phone_number": "+15551234567"}, headers=headers)
    assert res.status_code == 200
    assert isinstance(sms.sent[0], SmsMessage)
    assert sms.sent[0].to == "+15551234567"

    res = client.post("/api/auth/update-phone", json={"otp": sms.last_code()}, headers=headers)
    assert res.status_code == 200
    assert res.json()["user"]["phone_number"] == "+15551234567"


def test_send_otp_reports_provider_failure(client, make_user, sms):
    _, headers = make_user("ada")
    sms.fail = True
    res = client.post("/api/auth/send-otp", json={"phone_number": "+15551234567"}, headers=headers)
    assert res.status_code == 502
    assert res.json()["error"] == "UpstreamFailure"


def test_logout_clears_cookie(client):
    client.post("/api/auth/register", json=ADA)
    res = client.post("/api/auth/logout")
    assert res.status_code == 200
    assert 'token=""' in res.headers["set-cookie"] or "Max-Age=0" in res.headers["set-cookie"]


def test_oauth_import(client):
    payload = {"external_id": "gh|42", "email": "grace@example.com", "fullname": "Grace", "provider": "github"}

    res = client.post("/api/auth/oauth/import", json=payload, headers={"X-Import-Secret": "wrong"})
    assert res.status_code == 401

    res = client.post("/api/auth/oauth/import", json=payload, headers={"X-Import-Secret": "import-secret"})
    assert res.status_code == 200
    user = res.json()["user"]
    assert user["username"] == "grace"
    assert user["auth_provider"] == "github"

    again = client.post("/api/auth/oauth/import", json=payload, headers={"X-Import-Secret": "import-secret"})
    assert again.json()["user"]["id"] == user["id"]
