import re

import mongomock
import pytest
from fastapi.testclient import TestClient

from jobportal.api.deps import get_dispatcher
from jobportal.core.config import Settings, get_settings
from jobportal.core.security import ROLE_RECRUITER, ROLE_USER, TokenIssuer
from jobportal.db.mongodb import get_database, init_mongo_indexes
from jobportal.main import app
from jobportal.services.credential_store import PrincipalStore
from jobportal.services.delivery import DeliveryDispatcher

CODE_PATTERN = re.compile(r"\b(\d{6})\b")


class RecordingSender:
    """Stands in for the SMTP / Twilio senders."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, message):
        if self.fail:
            raise RuntimeError("provider down")
        self.sent.append(message)

    def last_code(self):
        message = self.sent[-1]
        return CODE_PATTERN.search(getattr(message, "text", None) or message.body).group(1)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        mongodb_uri="mongodb://unused",
        jwt_secret_key="test-secret",
        smtp_host="",
        twilio_account_sid="",
        oauth_import_secret="import-secret",
        frontend_url="http://frontend.test",
        environment="development",
    )


@pytest.fixture
def db():
    database = mongomock.MongoClient().jobportal_test
    init_mongo_indexes(database)
    return database


@pytest.fixture
def mailer():
    return RecordingSender()


@pytest.fixture
def sms():
    return RecordingSender()


@pytest.fixture
def client(db, settings, mailer, sms):
    dispatcher = DeliveryDispatcher(settings, email_sender=mailer, sms_sender=sms)
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def issuer(settings):
    return TokenIssuer(settings)


@pytest.fixture
def users(db):
    return PrincipalStore(db, ROLE_USER)


@pytest.fixture
def recruiters(db):
    return PrincipalStore(db, ROLE_RECRUITER)


@pytest.fixture
def make_user(users, issuer):
    """Create a user directly in the store; returns (user, bearer headers)."""

    def _make(username, password="secret1"):
        user = users.create_principal({
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "fullname": username.capitalize(),
        })
        token = issuer.issue(user["id"], ROLE_USER)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def make_recruiter(recruiters, issuer):
    """Create a verified recruiter; returns (recruiter, bearer headers)."""

    def _make(company_name="Acme", email="hr@acme.com", password="secret1"):
        recruiter = recruiters.create_principal({
            "company_name": company_name,
            "email": email,
            "password": password,
            "is_verified": True,
        })
        token = issuer.issue(recruiter["id"], ROLE_RECRUITER)
        return recruiter, {"Authorization": f"Bearer {token}"}

    return _make
