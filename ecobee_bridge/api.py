"""API client for the ecobee cloud.

This module provides functions to interact with the ecobee API,
including authentication, token refresh, thermostat polling and
settings updates, plus the conversions between ecobee's raw units
and the units the HomeKit front end expects.
"""

import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from .const import (
    APP_HEADER,
    APP_ID,
    AUTH_RESPONSE_TYPE,
    AUTH_SCOPE,
    BASE_URL,
    HOLD_TYPE,
    HVAC_MODE_MAP,
    HVAC_MODE_REVERSE_MAP,
    REFRESH_GRANT_TYPE,
    REGISTERED_SELECTION,
    REQUEST_TIMEOUT,
    THERMOSTAT_SELECTION,
    USER_AGENT,
)
from .models import Credential, DeviceSnapshot, HvacMode

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")

# Ecobee API status code for a successful request
STATUS_OK = 0


class EcobeeError(Exception):
    """Base exception for ecobee bridge errors."""


class EcobeeTransportError(EcobeeError):
    """Exception raised when a request fails or returns an unexpected body."""


class EcobeeRemoteError(EcobeeError):
    """Exception raised when the ecobee API reports an error."""

    def __init__(self, code: str, description: str) -> None:
        """Initialize the error with the vendor's code and description."""
        super().__init__(f"{code}: {description}")
        self.code = code
        self.description = description


class EcobeePreconditionError(EcobeeError):
    """Exception raised when local state is not ready to serve a call."""


class EcobeeNotAuthenticatedError(EcobeePreconditionError):
    """Exception raised when no credential has been obtained yet."""


class EcobeeNoDeviceError(EcobeePreconditionError):
    """Exception raised when no thermostat state is available."""


def create_headers(access_token: str | None = None) -> dict[str, str]:
    """Create HTTP headers for ecobee API requests.

    Args:
        access_token: Optional access token sent as a bearer credential.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {
        "User-Agent": USER_AGENT,
        APP_HEADER: APP_ID,
    }
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def build_url(path: str) -> str:
    """Return the absolute ecobee API URL for a path."""
    return f"{BASE_URL}{path}"


def tenths_fahrenheit_to_celsius(raw: float) -> float:
    """Convert an ecobee tenths-of-a-degree Fahrenheit value to Celsius."""
    return (raw / 10 - 32) / 1.8


def celsius_to_tenths_fahrenheit(celsius: float) -> int:
    """Convert Celsius to the nearest ecobee tenths-of-a-degree Fahrenheit value."""
    return round((celsius * 1.8 + 32) * 10)


def target_temperature_from_setpoints(desired_heat: float, desired_cool: float) -> float:
    """Average the heat and cool setpoints and convert the result to Celsius.

    Args:
        desired_heat: Heat setpoint in tenths of a degree Fahrenheit.
        desired_cool: Cool setpoint in tenths of a degree Fahrenheit.

    Returns:
        Midpoint of the two setpoints in Celsius.

    """
    return ((desired_heat + desired_cool) / 20 - 32) / 1.8


def hvac_mode_from_vendor(value: str) -> HvacMode:
    """Map an ecobee ``hvacMode`` string to a HomeKit mode, defaulting to off."""
    return HVAC_MODE_REVERSE_MAP.get(value, HvacMode.OFF)


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        error_msg = f"Field '{key}' must be a string, got {type(value).__name__}"
        raise TypeError(error_msg)
    return value


def _require_number(data: dict[str, Any], key: str) -> float:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int | float):
        error_msg = f"Field '{key}' must be a number, got {type(value).__name__}"
        raise TypeError(error_msg)
    return value


def _require_dict(data: Any, key: str | None = None) -> dict[str, Any]:
    value = data if key is None else data[key]
    if not isinstance(value, dict):
        error_msg = f"Expected a JSON object, got {type(value).__name__}"
        raise TypeError(error_msg)
    return value


def _raise_for_status(data: dict[str, Any]) -> None:
    """Raise EcobeeRemoteError if a ``status`` object carries a failure code."""
    status = data.get("status")
    if status is None:
        return

    status = _require_dict(status)
    code = status["code"]
    if code != STATUS_OK:
        raise EcobeeRemoteError(str(code), str(status.get("message", "")))


def extract_remote_error(data: Any) -> EcobeeRemoteError:
    """Parse the ecobee error envelope ``{error, error_description}``.

    Args:
        data: Decoded JSON response body.

    Returns:
        EcobeeRemoteError carrying the vendor code and description verbatim.

    Raises:
        KeyError: If either field is missing.
        TypeError: If the body or a field has the wrong type.

    """
    data = _require_dict(data)
    return EcobeeRemoteError(
        _require_str(data, "error"),
        _require_str(data, "error_description"),
    )


def extract_credential(data: Any) -> Credential:
    """Extract the access/refresh token pair from an authorization response."""
    data = _require_dict(data)
    return Credential(
        access_token=_require_str(data, "access_token"),
        refresh_token=_require_str(data, "refresh_token"),
    )


def normalize_thermostat(thermostat: dict[str, Any]) -> DeviceSnapshot:
    """Convert one raw ``thermostatList`` entry into a DeviceSnapshot.

    Only ``runtime`` and ``settings`` are consumed; every other field is
    ignored.

    Args:
        thermostat: Raw thermostat object from the ecobee API.

    Returns:
        DeviceSnapshot with temperatures in Celsius and target humidity as
        a fraction.

    """
    runtime = _require_dict(thermostat, "runtime")
    settings = _require_dict(thermostat, "settings")

    return DeviceSnapshot(
        mode=hvac_mode_from_vendor(_require_str(settings, "hvacMode")),
        current_temperature=tenths_fahrenheit_to_celsius(
            _require_number(runtime, "actualTemperature")
        ),
        target_temperature=target_temperature_from_setpoints(
            _require_number(runtime, "desiredHeat"),
            _require_number(runtime, "desiredCool"),
        ),
        current_humidity=float(_require_number(runtime, "actualHumidity")),
        target_humidity=_require_number(runtime, "desiredHumidity") / 100,
    )


def extract_device_snapshot(data: Any) -> DeviceSnapshot:
    """Normalize the first thermostat of a ``GET /1/thermostat`` response.

    Accounts with several thermostats are reduced to the first entry.

    Raises:
        EcobeeRemoteError: If the response carries a failure status.
        EcobeeNoDeviceError: If the thermostat list is empty.

    """
    data = _require_dict(data)
    _raise_for_status(data)

    thermostats = data["thermostatList"]
    if not isinstance(thermostats, list):
        error_msg = "Field 'thermostatList' must be a list"
        raise TypeError(error_msg)
    if not thermostats:
        no_device = "No thermostat registered to this account"
        raise EcobeeNoDeviceError(no_device)

    if len(thermostats) > 1:
        _LOGGER.debug(
            "Account has %d thermostats, using the first one", len(thermostats)
        )
    return normalize_thermostat(_require_dict(thermostats[0]))


def extract_update_result(data: Any) -> None:
    """Confirm a ``POST /1/thermostat`` update succeeded.

    Raises:
        EcobeeRemoteError: If the status code is not zero.

    """
    data = _require_dict(data)
    _require_dict(data, "status")
    _raise_for_status(data)


def _peek_remote_error(body: bytes) -> EcobeeRemoteError | None:
    try:
        return extract_remote_error(json.loads(body))
    except (ValueError, KeyError, TypeError):
        return None


async def async_send(
    session: httpx.AsyncClient,
    request: httpx.Request,
    extract: Callable[[Any], _T],
) -> _T:
    """Send a request and parse the buffered body with ``extract``.

    A body that does not match the expected shape is parsed again as the
    ecobee error envelope. If that fails too, the original parse error is
    raised as the cause of the transport error.

    Args:
        session: HTTP client session.
        request: Prepared request.
        extract: Parser for the expected success body.

    Returns:
        Whatever ``extract`` returns for the decoded body.

    Raises:
        EcobeeRemoteError: If the body is an ecobee error envelope.
        EcobeeTransportError: If the request fails or the body matches
            neither shape.

    """
    path = request.url.path
    try:
        response = await session.send(request)
        body = await response.aread()
    except httpx.RequestError as err:
        error_msg = f"Request to {path} failed: {err}"
        raise EcobeeTransportError(error_msg) from err

    _LOGGER.debug("Response from %s: HTTP %d", path, response.status_code)

    try:
        return extract(json.loads(body))
    except (ValueError, KeyError, TypeError) as err:
        remote_error = _peek_remote_error(body)
        if remote_error is not None:
            _LOGGER.debug("Ecobee API returned an error for %s: %s", path, remote_error)
            raise remote_error from err

        error_msg = f"Unexpected response from {path}: {err!r}"
        raise EcobeeTransportError(error_msg) from err


def create_session_client() -> httpx.AsyncClient:
    """Create the HTTP client used for every ecobee API call.

    Returns:
        httpx AsyncClient with the bridge's request timeout.

    """
    return httpx.AsyncClient(timeout=REQUEST_TIMEOUT)


async def async_authenticate(
    session: httpx.AsyncClient,
    client_id: str,
    username: str,
    password: str,
) -> Credential:
    """Authenticate with the ecobee API using username and password.

    Args:
        session: HTTP client session.
        client_id: Registered application key.
        username: ecobee account username.
        password: ecobee account password.

    Returns:
        A fresh Credential.

    Raises:
        EcobeeRemoteError: If ecobee rejects the credentials or client.
        EcobeeTransportError: If the request or response parsing fails.

    """
    request = session.build_request(
        "POST",
        build_url("/authorize"),
        headers=create_headers(),
        data={
            "client_id": client_id,
            "username": username,
            "password": password,
            "scope": AUTH_SCOPE,
            "response_type": AUTH_RESPONSE_TYPE,
        },
    )

    _LOGGER.debug("Authenticating with ecobee API")
    credential = await async_send(session, request, extract_credential)
    _LOGGER.debug("Successfully authenticated with ecobee API")
    return credential


async def async_refresh_token(
    session: httpx.AsyncClient,
    client_id: str,
    credential: Credential,
) -> Credential:
    """Exchange the refresh token of ``credential`` for a new Credential.

    Raises:
        EcobeeRemoteError: If ecobee rejects the refresh token.
        EcobeeTransportError: If the request or response parsing fails.

    """
    request = session.build_request(
        "POST",
        build_url("/token"),
        headers=create_headers(),
        params={
            "client_id": client_id,
            "refresh_token": credential.refresh_token,
            "grant_type": REFRESH_GRANT_TYPE,
        },
    )

    _LOGGER.debug("Refreshing ecobee access token")
    new_credential = await async_send(session, request, extract_credential)
    _LOGGER.debug("Successfully refreshed ecobee access token")
    return new_credential


async def async_get_thermostat(
    session: httpx.AsyncClient,
    access_token: str,
) -> DeviceSnapshot:
    """Fetch the full state of the first registered thermostat.

    Args:
        session: HTTP client session.
        access_token: Current access token.

    Returns:
        Normalized DeviceSnapshot.

    Raises:
        EcobeeNoDeviceError: If the account has no thermostat.
        EcobeeRemoteError: If the API reports an error.
        EcobeeTransportError: If the request or response parsing fails.

    """
    request = session.build_request(
        "GET",
        build_url("/1/thermostat"),
        headers=create_headers(access_token),
        params={"json": json.dumps(THERMOSTAT_SELECTION, separators=(",", ":"))},
    )

    _LOGGER.debug("Fetching thermostat state from ecobee API")
    snapshot = await async_send(session, request, extract_device_snapshot)
    _LOGGER.debug("Polled thermostat state: %s", snapshot)
    return snapshot


async def _async_update_thermostat(
    session: httpx.AsyncClient,
    access_token: str,
    payload: dict[str, Any],
) -> None:
    request = session.build_request(
        "POST",
        build_url("/1/thermostat"),
        headers=create_headers(access_token),
        params={"format": "json"},
        json={"selection": REGISTERED_SELECTION, **payload},
    )
    await async_send(session, request, extract_update_result)


async def async_set_hvac_mode(
    session: httpx.AsyncClient,
    access_token: str,
    mode: HvacMode,
) -> None:
    """Change the thermostat's HVAC mode.

    Raises:
        EcobeeRemoteError: If the API rejects the update.
        EcobeeTransportError: If the request or response parsing fails.

    """
    vendor_mode = HVAC_MODE_MAP[mode]
    _LOGGER.debug("Setting ecobee hvacMode to %s", vendor_mode)
    await _async_update_thermostat(
        session,
        access_token,
        {"thermostat": {"settings": {"hvacMode": vendor_mode}}},
    )


async def async_set_hold_temperature(
    session: httpx.AsyncClient,
    access_token: str,
    celsius: float,
) -> None:
    """Hold the thermostat at ``celsius`` until the next program transition.

    Both heat and cool hold temperatures are set to the same value.

    Raises:
        EcobeeRemoteError: If the API rejects the update.
        EcobeeTransportError: If the request or response parsing fails.

    """
    raw = celsius_to_tenths_fahrenheit(celsius)
    _LOGGER.debug("Setting ecobee hold temperature to %s (%d raw)", celsius, raw)
    await _async_update_thermostat(
        session,
        access_token,
        {
            "functions": [
                {
                    "type": "setHold",
                    "params": {
                        "holdType": HOLD_TYPE,
                        "heatHoldTemp": raw,
                        "coolHoldTemp": raw,
                    },
                },
            ],
        },
    )
