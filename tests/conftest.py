import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

PASSWORD = "s3cret-pass"


def user_payload(n: int = 1, **overrides):
    data = {
        "name": "Ada Lovelace",
        "tckn": f"1234567890{n}",
        "email": f"ada{n}@mail.com",
        "phone": f"555000000{n}",
        "password": PASSWORD,
    }
    data.update(overrides)
    return data


def bearer(token: str):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings():
    return Settings(
        environment="test",
        jwt_secret="test-secret-key",
        sap_api_url="https://sap.mail.com/api/materials",
    )


@pytest.fixture
def db():
    return mongomock.MongoClient(tz_aware=True)["shop_test"]


@pytest.fixture
def app(settings, db):
    return create_app(settings, database=db)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(client):
    """Register a user and return (user, token). The session cookie is dropped
    so later calls authenticate only through the headers they pass."""

    def _register(n: int = 1, **overrides):
        res = client.post("/api/auth/register", json=user_payload(n, **overrides))
        assert res.status_code == 201, res.text
        client.cookies.clear()
        body = res.json()
        return body["user"], body["token"]

    return _register


@pytest.fixture
def user_headers(register):
    _, token = register(1)
    return bearer(token)


@pytest.fixture
def admin_headers(client, db, register):
    user, _ = register(9, email="admin@mail.com")
    db["user"].update_one({"_id": ObjectId(user["id"])}, {"$set": {"role": "admin"}})
    res = client.post("/api/auth/login", json={"email": "admin@mail.com", "password": PASSWORD})
    assert res.status_code == 200, res.text
    client.cookies.clear()
    return bearer(res.json()["token"])


@pytest.fixture
def seed_product(db):
    def _seed(material_no: str = "M-100", name: str = "Widget", price: float = 10.0, stock: int = 3, **extra):
        doc = {
            "materialNo": material_no,
            "name": name,
            "price": price,
            "currency": "TRY",
            "stock": stock,
            "images": [],
            "isActive": True,
        }
        doc.update(extra)
        doc["_id"] = db["product"].insert_one(doc).inserted_id
        return doc

    return _seed
