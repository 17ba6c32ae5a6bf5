from fastapi.testclient import TestClient
from app.main import app
import pytest

client = TestClient(app)

def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"

def test_405_wrong_method_on_webhook():
    response = client.get("/api/v1/telegram/webhook")
    assert response.status_code == 405
    assert response.json()["code"] == "HTTP_ERROR"

def test_validation_error_structure():
    # We can define a temporary route to test validation
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
    from app.core.exceptions import ResourceNotFoundError

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ResourceNotFoundError(message="Item not found")

    response = client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"

@pytest.mark.parametrize("exc_name, status, code", [
    ("AuthorizationError", 403, "FORBIDDEN"),
    ("AuthenticationError", 401, "AUTHENTICATION_FAILED"),
    ("PersistenceError", 503, "PERSISTENCE_ERROR"),
])
def test_error_taxonomy(exc_name, status, code):
    from app.core import exceptions

    path = f"/test-{exc_name}"

    @app.get(path)
    def trigger():
        raise getattr(exceptions, exc_name)()

    response = client.get(path)
    assert response.status_code == status
    assert response.json()["code"] == code

def test_unhandled_exception_is_internal_error():
    @app.get("/test-crash")
    def crash():
        raise RuntimeError("boom")

    crashing_client = TestClient(app, raise_server_exceptions=False)
    response = crashing_client.get("/test-crash")
    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
