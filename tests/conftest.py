"""Pytest configuration and fixtures for ecobee bridge tests."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from ecobee_bridge.models import Credential

ACCESS_TOKEN = "access-token-1"
REFRESH_TOKEN = "refresh-token-1"

MockSessionFactory = Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]


def _create_mock_session(
    handler: Callable[[httpx.Request], Any],
) -> httpx.AsyncClient:
    """Create an HTTP client whose requests are answered by ``handler``.

    Args:
        handler: Callable (sync or async) receiving the request and returning
            an httpx.Response.

    Returns:
        An httpx AsyncClient backed by a mock transport.

    """
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def create_mock_session() -> MockSessionFactory:
    """Fixture providing a factory for mock-transport HTTP clients."""
    return _create_mock_session


@pytest.fixture
def sample_credential() -> Credential:
    """Fixture providing a credential as issued by the ecobee API."""
    return Credential(access_token=ACCESS_TOKEN, refresh_token=REFRESH_TOKEN)


@pytest.fixture
def sample_authorize_response() -> dict[str, Any]:
    """Fixture providing a sample /authorize or /token response.

    Returns:
        A dictionary with the token pair and the extra fields ecobee sends.

    """
    return {
        "access_token": ACCESS_TOKEN,
        "token_type": "Bearer",
        "expires_in": 3599,
        "refresh_token": REFRESH_TOKEN,
        "scope": "smartWrite",
    }


@pytest.fixture
def sample_error_response() -> dict[str, Any]:
    """Fixture providing a sample ecobee error envelope."""
    return {
        "error": "authorization_pending",
        "error_description": "Waiting for user to authorize application.",
        "error_uri": "https://tools.ietf.org/html/rfc6749#section-5.2",
    }


@pytest.fixture
def sample_thermostat() -> dict[str, Any]:
    """Fixture providing one raw thermostat object.

    Temperatures are in tenths of a degree Fahrenheit.
    """
    return {
        "identifier": "311012345678",
        "name": "Hallway",
        "thermostatRev": "180618203542",
        "runtime": {
            "connected": True,
            "actualTemperature": 980,
            "actualHumidity": 41,
            "desiredHeat": 680,
            "desiredCool": 780,
            "desiredHumidity": 45,
            "desiredFanMode": "auto",
        },
        "settings": {
            "hvacMode": "heat",
            "heatStages": 1,
            "coolStages": 1,
        },
        "alerts": [],
        "remoteSensors": [{"id": "ei:0", "name": "Hallway"}],
    }


@pytest.fixture
def sample_thermostat_response(sample_thermostat: dict[str, Any]) -> dict[str, Any]:
    """Fixture providing a sample GET /1/thermostat response."""
    return {
        "page": {"page": 1, "totalPages": 1, "pageSize": 1, "total": 1},
        "thermostatList": [sample_thermostat],
        "status": {"code": 0, "message": ""},
    }


@pytest.fixture
def sample_update_response() -> dict[str, Any]:
    """Fixture providing a sample POST /1/thermostat response."""
    return {"status": {"code": 0, "message": ""}}
