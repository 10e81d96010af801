"""Test fixtures for the LogQL compiler tests."""

import httpx
import pytest
from fastapi.testclient import TestClient

# Constants for service endpoints
LOKI_URL = "http://localhost:3100"


def create_label_values_response(values):
    """Helper to create a Loki label values response."""
    return httpx.Response(
        status_code=200,
        json={"status": "success", "data": values},
    )


def create_detected_field_values_response(values):
    """Helper to create a Loki detected field values response."""
    return httpx.Response(status_code=200, json={"values": values})


@pytest.fixture
def loki_requests():
    """Requests seen by the mock Loki, for asserting on upstream queries."""
    return []


@pytest.fixture
def sample_label_values():
    return ["1.1.1.1", "2.2.2.2", "3.3.3.3", "4.4.4.4"]


@pytest.fixture
def sample_field_values():
    return ["info", "error", "warn"]


@pytest.fixture
def mock_transport(loki_requests, sample_label_values, sample_field_values):
    """Mock HTTP transport for Loki requests."""

    def handler(request: httpx.Request):
        loki_requests.append(request)

        if request.url.path == "/ready":
            return httpx.Response(status_code=200, text="ready")

        if request.url.path.startswith("/loki/api/v1/label/"):
            return create_label_values_response(sample_label_values)

        if request.url.path.startswith("/loki/api/v1/detected_field/"):
            return create_detected_field_values_response(sample_field_values)

        return httpx.Response(status_code=404)

    return httpx.MockTransport(handler)


@pytest.fixture
def mock_transport_old_loki(loki_requests):
    """Mock transport for a Loki version without the value endpoints."""

    def handler(request: httpx.Request):
        loki_requests.append(request)
        if request.url.path == "/ready":
            return httpx.Response(status_code=200, text="ready")
        return httpx.Response(status_code=404, text="404 page not found")

    return httpx.MockTransport(handler)


@pytest.fixture
def mock_transport_malformed(loki_requests):
    """Mock transport answering value lookups with bodies that are not objects."""

    def handler(request: httpx.Request):
        loki_requests.append(request)
        if request.url.path == "/ready":
            return httpx.Response(status_code=200, text="ready")
        if request.url.path.startswith("/loki/api/v1/label/"):
            return httpx.Response(status_code=200, text="garbage")
        return httpx.Response(status_code=200, json=["not", "an", "object"])

    return httpx.MockTransport(handler)


@pytest.fixture
def mock_transport_unreachable():
    """Mock transport where every connection fails."""

    def handler(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


def _patched_client(transport, monkeypatch):
    original_async_client = httpx.AsyncClient

    def mock_async_client(*args, **kwargs):
        kwargs["transport"] = transport
        return original_async_client(*args, **kwargs)

    monkeypatch.setattr("httpx.AsyncClient", mock_async_client)

    # Import after patching to ensure the app uses mocked client
    from logql_compiler.main import app

    return TestClient(app)


@pytest.fixture
def test_client(mock_transport, monkeypatch):
    """FastAPI test client with a mocked Loki."""
    with _patched_client(mock_transport, monkeypatch) as client:
        yield client


@pytest.fixture
def test_client_old_loki(mock_transport_old_loki, monkeypatch):
    """FastAPI test client backed by a Loki lacking the value endpoints."""
    with _patched_client(mock_transport_old_loki, monkeypatch) as client:
        yield client


@pytest.fixture
def test_client_malformed(mock_transport_malformed, monkeypatch):
    """FastAPI test client whose Loki answers with malformed bodies."""
    with _patched_client(mock_transport_malformed, monkeypatch) as client:
        yield client


@pytest.fixture
def test_client_unreachable(mock_transport_unreachable, monkeypatch):
    """FastAPI test client whose Loki cannot be reached."""
    with _patched_client(mock_transport_unreachable, monkeypatch) as client:
        yield client


# ==================== Integration Test Fixtures ====================


def check_service_available(url: str, timeout: float = 2.0) -> bool:
    """Check if a service is available at the given URL."""
    try:
        response = httpx.get(url, timeout=timeout)
        return response.status_code == 200
    except (httpx.ConnectError, httpx.TimeoutException):
        return False


@pytest.fixture(scope="session")
def validate_loki():
    """Skip integration tests if Loki is not reachable."""
    if not check_service_available(f"{LOKI_URL}/ready"):
        pytest.skip(
            f"Loki not available at {LOKI_URL}. "
            "Port-forward Loki before running integration tests."
        )
