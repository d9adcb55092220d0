from fastapi.testclient import TestClient
from gymdesk.main import app
import pytest

client = TestClient(app)


def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"


def test_422_on_bad_member_body():
    response = client.post("/api/v1/members", json={"name": "Juan", "duration_months": 0})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert any("duration_months" in err["loc"] for err in data["details"])


def test_validation_error_structure():
    from pydantic import BaseModel

    class Item(BaseModel):
        name: str
        price: int

    @app.post("/test-validation")
    def create_item(item: Item):
        return item

    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0


def test_custom_exception():
    from gymdesk.core.exceptions import ResourceNotFoundError

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ResourceNotFoundError(message="Item not found")

    response = client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"


@pytest.mark.parametrize("exc_name, status, code", [
    ("ConflictError", 409, "CONFLICT"),
    ("StoreWriteError", 503, "STORE_WRITE_FAILED"),
    ("ValidationError", 422, "VALIDATION_ERROR"),
])
def test_domain_errors_map_to_status(exc_name, status, code):
    from gymdesk.core import exceptions

    path = f"/test-domain-error/{exc_name}"

    @app.get(path)
    def trigger():
        raise getattr(exceptions, exc_name)("boom", details={"user_id": "BCF-1001"})

    response = client.get(path)
    assert response.status_code == status
    assert response.json() == {"error": "boom", "code": code, "details": {"user_id": "BCF-1001"}}


def test_unhandled_exception_returns_500():
    @app.get("/test-unhandled")
    def explode():
        raise RuntimeError("kaboom")

    response = TestClient(app, raise_server_exceptions=False).get("/test-unhandled")
    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
