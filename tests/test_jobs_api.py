import pytest

from jobportal.services.jobs import salary_range

JOB = {
    "title": "Backend Engineer",
    "description": "Build APIs",
    "requirements": "3 years, Python",
    "skills": "python, fastapi ,mongodb",
    "experience_level": "Mid Level",
    "location": "Remote",
    "job_type": "Full-time",
    "category": "Programming",
    "salary": 100000,
}


@pytest.fixture
def posted(client, make_recruiter):
    recruiter, headers = make_recruiter()
    res = client.post("/api/jobs", json=JOB, headers=headers)
    assert res.status_code == 201
    return recruiter, headers, res.json()["job"]


def test_salary_range():
    assert salary_range(100000) == {"salary_min": 80000, "salary_max": 120000}
    assert salary_range(None) == {"salary_min": 0, "salary_max": 0}


def test_post_job_normalizes_payload(posted):
    recruiter, _, job = posted
    assert job["skills"] == ["python", "fastapi", "mongodb"]
    assert job["requirements"] == ["3 years", "Python"]
    assert (job["salary_min"], job["salary_max"]) == (80000, 120000)
    assert job["company"] == recruiter["id"]
    assert job["company_name"] == "Acme"
    assert job["is_active"] is True


def test_explicit_salary_range_wins(client, make_recruiter):
    _, headers = make_recruiter()
    res = client.post("/api/jobs", json={**JOB, "salary_min": 50000, "salary_max": 70000}, headers=headers)
    job = res.json()["job"]
    assert (job["salary_min"], job["salary_max"]) == (50000, 70000)


@pytest.mark.parametrize("partial", [{"salary_min": 50000}, {"salary_max": 70000}])
def test_half_salary_range_is_rejected(client, make_recruiter, partial):
    _, headers = make_recruiter()
    payload = {**{k: v for k, v in JOB.items() if k != "salary"}, **partial}
    res = client.post("/api/jobs", json=payload, headers=headers)
    assert res.status_code == 400
    assert res.json()["message"] == "salary_min and salary_max must be given together"
    assert client.get("/api/jobs").json()["jobs"] == []


def test_half_salary_range_with_salary_is_rejected(client, make_recruiter):
    _, headers = make_recruiter()
    res = client.post("/api/jobs", json={**JOB, "salary_min": 50000}, headers=headers)
    assert res.status_code == 400


def test_user_token_cannot_post_jobs(client, make_user):
    _, headers = make_user("ada")
    res = client.post("/api/jobs", json=JOB, headers=headers)
    assert res.status_code == 401


def test_list_and_search(client, posted):
    assert len(client.get("/api/jobs").json()["jobs"]) == 1
    assert len(client.get("/api/jobs", params={"keyword": "backend"}).json()["jobs"]) == 1
    assert len(client.get("/api/jobs", params={"keyword": "acme"}).json()["jobs"]) == 1
    assert client.get("/api/jobs", params={"keyword": "designer"}).json()["jobs"] == []


def test_get_job(client, posted):
    _, _, job = posted
    assert client.get(f"/api/jobs/{job['id']}").json()["job"]["title"] == "Backend Engineer"

    res = client.get("/api/jobs/not-an-id")
    assert res.status_code == 400
    assert res.json()["error"] == "ValidationError"

    assert client.get("/api/jobs/64b000000000000000000099").status_code == 404


def test_visibility_toggle_hides_job(client, posted, make_recruiter):
    _, headers, job = posted
    _, other_headers = make_recruiter("Other", "hr@other.com")

    assert client.patch(f"/api/jobs/{job['id']}/visibility", headers=other_headers).status_code == 403

    res = client.patch(f"/api/jobs/{job['id']}/visibility", headers=headers)
    assert res.json()["is_active"] is False
    assert client.get("/api/jobs").json()["jobs"] == []
    # still listed for its owner
    assert len(client.get("/api/jobs/recruiter/my-jobs", headers=headers).json()["jobs"]) == 1


def test_delete_job_owner_only(client, posted, make_recruiter):
    _, headers, job = posted
    _, other_headers = make_recruiter("Other", "hr@other.com")

    assert client.delete(f"/api/jobs/{job['id']}", headers=other_headers).status_code == 403
    assert client.delete(f"/api/jobs/{job['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/jobs/{job['id']}").status_code == 404


def test_application_pipeline(client, posted, make_user):
    recruiter, recruiter_headers, job = posted
    ada, ada_headers = make_user("ada")

    res = client.post(f"/api/jobs/{job['id']}/apply", json={"cover_letter": "hire me"}, headers=ada_headers)
    assert res.status_code == 201
    application = res.json()["application"]
    assert application["status"] == "applied"

    res = client.post(f"/api/jobs/{job['id']}/apply", headers=ada_headers)
    assert res.status_code == 409
    assert res.json()["error"] == "Conflict"

    mine = client.get("/api/jobs/applications/mine", headers=ada_headers).json()["applications"]
    assert [a["job"]["title"] for a in mine] == ["Backend Engineer"]

    received = client.get("/api/recruiters/applications", headers=recruiter_headers).json()["applications"]
    assert len(received) == 1
    assert received[0]["applicant"]["username"] == "ada"

    res = client.patch(
        "/api/recruiters/applications/status",
        json={"application_id": application["id"], "status": "shortlisted"},
        headers=recruiter_headers,
    )
    assert res.status_code == 200
    assert res.json()["application"]["status"] == "shortlisted"

    notes = client.get("/api/users/me/notifications", headers=ada_headers).json()["notifications"]
    assert notes[0]["type"] == "application"
    assert notes[0]["from"] == recruiter["id"]
    assert notes[0]["sender"]["fullname"] == "Acme"
    assert notes[0]["metadata"]["status"] == "shortlisted"


def test_status_update_validation(client, posted, make_recruiter, make_user):
    _, recruiter_headers, job = posted
    _, ada_headers = make_user("ada")
    application = client.post(f"/api/jobs/{job['id']}/apply", headers=ada_headers).json()["application"]

    res = client.patch(
        "/api/recruiters/applications/status",
        json={"application_id": application["id"], "status": "applied"},
        headers=recruiter_headers,
    )
    assert res.status_code == 400

    _, other_headers = make_recruiter("Other", "hr@other.com")
    res = client.patch(
        "/api/recruiters/applications/status",
        json={"application_id": application["id"], "status": "hired"},
        headers=other_headers,
    )
    assert res.status_code == 404


def test_cannot_apply_to_closed_job(client, posted, make_user):
    _, headers, job = posted
    _, ada_headers = make_user("ada")
    client.patch(f"/api/jobs/{job['id']}/visibility", headers=headers)
    assert client.post(f"/api/jobs/{job['id']}/apply", headers=ada_headers).status_code == 404


# ============================================================
# Recruiter accounts
# ============================================================

def test_recruiter_signup_verify_login(client, mailer):
    signup = {"company_name": "Acme", "email": "hr@acme.com", "password": "secret1"}
    res = client.post("/api/recruiters/auth/signup", json=signup)
    assert res.status_code == 201
    assert res.json()["recruiter"]["is_verified"] is False

    login = {"email": "hr@acme.com", "password": "secret1"}
    res = client.post("/api/recruiters/auth/login", json=login)
    assert res.status_code == 401
    assert res.cookies.get("jwt") is None

    res = client.post("/api/recruiters/auth/verify-otp", json={"email": "hr@acme.com", "otp": mailer.last_code()})
    assert res.status_code == 200

    res = client.post("/api/recruiters/auth/login", json=login)
    assert res.status_code == 200
    assert res.cookies.get("jwt")

    me = client.get("/api/recruiters/me", headers={"Authorization": f"Bearer {res.json()['token']}"})
    assert me.json()["recruiter"]["company_name"] == "Acme"


def test_recruiter_resend_otp(client, mailer):
    client.post("/api/recruiters/auth/signup", json={"company_name": "Acme", "email": "hr@acme.com", "password": "secret1"})

    res = client.post("/api/recruiters/auth/resend-otp", json={"email": "hr@acme.com"})
    assert res.status_code == 200
    assert len(mailer.sent) == 2

    mailer.fail = True
    res = client.post("/api/recruiters/auth/resend-otp", json={"email": "hr@acme.com"})
    assert res.status_code == 502

    assert client.post("/api/recruiters/auth/resend-otp", json={"email": "no@acme.com"}).status_code == 404


def test_recruiter_password_reset(client, mailer, make_recruiter):
    make_recruiter()

    res = client.post("/api/recruiters/auth/forgot-password", json={"email": "hr@acme.com"})
    assert res.status_code == 200
    link = mailer.sent[-1].text
    assert "http://frontend.test/reset-password?token=" in link
    token = link.split("token=")[1].split()[0]

    mismatch = {"token": token, "password": "newsecret", "password_confirm": "other"}
    assert client.post("/api/recruiters/auth/reset-password", json=mismatch).status_code == 400

    reset = {"token": token, "password": "newsecret", "password_confirm": "newsecret"}
    assert client.post("/api/recruiters/auth/reset-password", json=reset).status_code == 200
    res = client.post("/api/recruiters/auth/reset-password", json=reset)
    assert res.status_code == 400
    assert res.json()["error"] == "InvalidOrExpired"

    login = {"email": "hr@acme.com", "password": "newsecret"}
    assert client.post("/api/recruiters/auth/login", json=login).status_code == 200


def test_recruiter_update_profile(client, make_recruiter):
    _, headers = make_recruiter()
    res = client.patch("/api/recruiters/me", json={"company_name": "Acme Corp"}, headers=headers)
    assert res.json()["recruiter"]["company_name"] == "Acme Corp"
