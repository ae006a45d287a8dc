import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from inventory_codes.core.config import settings
from inventory_codes.db.session import Base, get_db
from inventory_codes.main import app
from inventory_codes.models.product import Product


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def client(session_factory, monkeypatch):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(settings, "API_KEY", "")
    monkeypatch.setattr(settings, "AUTO_GENERATE_CODES", True)
    app.dependency_overrides[get_db] = override_get_db
    app.state.auth_cache.invalidate()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _create(client, name, **extra):
    response = client.post("/api/v1/products", json={"name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_product_generates_synced_code(client):
    first = _create(client, "Basmati Rice", storeId="001")
    second = _create(client, "Brown Rice", storeId="002")

    assert (first["code"], first["barcode"], first["qrcode"]) == ("RICE001", "RICE001", "RICE001")
    assert first["codes_in_sync"] is True
    assert first["storeId"] == "001"
    # codes are unique across stores, not per store
    assert second["code"] == "RICE002"


def test_create_product_with_explicit_code(client):
    created = _create(client, "Fresh Milk", code="milk010")
    assert created["code"] == created["barcode"] == created["qrcode"] == "MILK010"

    clash = client.post("/api/v1/products", json={"name": "Other Milk", "code": "MILK010"})
    assert clash.status_code == 409

    invalid = client.post("/api/v1/products", json={"name": "Odd", "code": "X1"})
    assert invalid.status_code == 422


def test_create_product_code_conflict_leaves_no_row(client, session_factory):
    db = session_factory()
    try:
        db.add_all(
            Product(id=f"rice-{n}", name="Rice", code=f"RICE{n:03d}", created_at="2024-01-01T00:00:00Z")
            for n in range(1, 1000)
        )
        db.commit()
    finally:
        db.close()

    response = client.post("/api/v1/products", json={"id": "new", "name": "Rice Bag"})
    assert response.status_code == 409
    assert response.json()["code"] == "code_conflict"
    assert client.get("/api/v1/products/new").status_code == 404


def test_create_product_validation_error_envelope(client):
    response = client.post("/api/v1/products", json={"name": "   "})
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_sync_without_code_is_rejected(client):
    product = _create(client, "Loose Beans", auto_generate_code=False)
    assert product["code"] is None

    response = client.post(f"/api/v1/products/{product['id']}/sync")
    assert response.status_code == 422
    assert response.json()["code"] == "missing_code"


def test_generate_missing_then_assign(client):
    _create(client, "Apple Juice", auto_generate_code=False)
    _create(client, "Apple Pie", auto_generate_code=False)

    response = client.post("/api/v1/products/codes/generate-missing")
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["generated"] == 2
    assert body["message"] == "Generated codes for 2 products"
    assert "updated" not in body

    codes = sorted(item["code"] for item in client.get("/api/v1/products").json())
    assert codes == ["APPL001", "JUICE001"]


def test_assign_code_endpoint(client):
    product = _create(client, "Dish Soap", auto_generate_code=False)
    response = client.post(f"/api/v1/products/{product['id']}/code")
    assert response.status_code == 200
    assert response.json()["code"] == "SOAP001"


def test_sync_all_endpoint(client, session_factory):
    product = _create(client, "Sugar 1kg")
    db = session_factory()
    try:
        row = db.get(Product, product["id"])
        row.barcode = "8901234567890"
        db.commit()
    finally:
        db.close()

    response = client.post("/api/v1/products/codes/sync")
    body = response.json()
    assert body["success"] is True
    assert body["updated"] == 1
    assert body["skipped"] == 0
    assert client.get(f"/api/v1/products/{product['id']}").json()["barcode"] == "SUGAR001"


def test_lookup_and_status(client):
    product = _create(client, "Basmati Rice")

    match = client.get("/api/v1/products/lookup/rice001")
    assert match.status_code == 200
    assert match.json()["product"]["id"] == product["id"]
    assert match.json()["matched_by"] == "qrcode"

    missing = client.get("/api/v1/products/lookup/NOPE999")
    assert missing.status_code == 404
    assert missing.json() == {"code": "http_error", "message": "Product not found"}

    status = client.get("/api/v1/products/codes/status").json()
    assert status["total"] == 1
    assert status["fully_synced"] == 1


def test_parse_endpoint(client):
    legacy = client.get("/api/v1/products/codes/parse/ST001_GRAIN_096354").json()
    assert legacy == {
        "value": "ST001_GRAIN_096354",
        "scheme": "legacy",
        "valid": True,
        "parts": {"storeId": "001", "category": "GRAIN", "sequence": "096354"},
    }
    unknown = client.get("/api/v1/products/codes/parse/OLD123").json()
    assert unknown["valid"] is False


def test_qrcode_svg(client):
    product = _create(client, "Green Tea")
    response = client.get(f"/api/v1/products/{product['id']}/qrcode.svg")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert "svg" in response.text

    bare = _create(client, "Loose Beans", auto_generate_code=False)
    assert client.get(f"/api/v1/products/{bare['id']}/qrcode.svg").status_code == 404


def test_api_key_and_bearer_auth(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret-key")

    assert client.get("/api/v1/products").status_code == 401
    assert client.get("/api/v1/products", headers={"X-API-Key": "wrong"}).status_code == 401
    assert client.get("/api/v1/products", headers={"X-API-Key": "secret-key"}).status_code == 200

    tokens = client.post("/api/v1/auth/token", json={"apiKey": "secret-key"}).json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    assert client.get("/api/v1/products", headers=headers).status_code == 200
    assert len(app.state.auth_cache) == 1

    bad = client.get("/api/v1/products", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
