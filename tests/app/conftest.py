import pytest
from fastapi.testclient import TestClient

from questionbank.app.app import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def set_cookie_headers(response) -> dict[str, str]:
    """Map cookie name to its raw Set-Cookie header."""
    headers = {}
    for header in response.headers.get_list("set-cookie"):
        name = header.split("=", 1)[0]
        headers[name] = header
    return headers


@pytest.fixture
def cookie_headers():
    return set_cookie_headers
