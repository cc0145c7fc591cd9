import pytest

from app import create_app
from models import db


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SECRET_KEY": "test-secret",
        # Fast hashes for tests
        "PASSWORD_HASH_METHOD": "pbkdf2:sha256:1000",
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.test_request_context():
        yield app


@pytest.fixture
def add_job(client):
    def _add(company="Acme", role="Engineer", owner="user@x.com", **extra):
        payload = {"userEmail": owner, "company": company, "role": role, "appliedDate": "2024-03-01"}
        payload.update(extra)
        res = client.post("/api/jobs", json=payload)
        assert res.status_code == 201, res.get_json()
        return res.get_json()["job"]
    return _add
