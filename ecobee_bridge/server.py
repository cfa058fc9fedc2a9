"""HTTP front end exposing the bridge to HomeKit-style clients."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, FastAPI, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse

from .api import EcobeePreconditionError, EcobeeRemoteError, EcobeeTransportError
from .bridge import EcobeeBridge
from .const import MAX_TARGET_TEMPERATURE, MIN_TARGET_TEMPERATURE

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .models import DeviceSnapshot

_LOGGER = logging.getLogger(__name__)

DONE_RESPONSE = "done"


def status_payload(snapshot: DeviceSnapshot) -> dict[str, Any]:
    """Render a snapshot in the HomeKit thermostat field names.

    The current heating/cooling state mirrors the target mode because the
    thermostat does not report the running equipment separately here.
    """
    return {
        "targetHeatingCoolingState": int(snapshot.mode),
        "targetTemperature": snapshot.target_temperature,
        "targetRelativeHumidity": snapshot.target_humidity,
        "currentHeatingCoolingState": int(snapshot.mode),
        "currentTemperature": snapshot.current_temperature,
        "currentRelativeHumidity": snapshot.current_humidity,
    }


def get_bridge(request: Request) -> EcobeeBridge:
    """Get the bridge attached to the application."""
    bridge = getattr(request.app.state, "bridge", None)
    if bridge is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Bridge not available",
        )
    return bridge


async def _precondition_error_handler(
    _request: Request, exc: Exception
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


async def _upstream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    _LOGGER.error("Ecobee call for %s failed: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc)},
    )


def create_app(bridge: EcobeeBridge) -> FastAPI:
    """Create the FastAPI application serving ``bridge``.

    The bridge is started and stopped with the application lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await bridge.async_start()
        try:
            yield
        finally:
            await bridge.async_stop()

    app = FastAPI(title="ecobee bridge", lifespan=lifespan)
    app.state.bridge = bridge
    app.add_exception_handler(EcobeePreconditionError, _precondition_error_handler)
    app.add_exception_handler(EcobeeRemoteError, _upstream_error_handler)
    app.add_exception_handler(EcobeeTransportError, _upstream_error_handler)

    @app.get("/status")
    async def get_status(
        bridge: Annotated[EcobeeBridge, Depends(get_bridge)],
    ) -> dict[str, Any]:
        """Return the cached thermostat state."""
        return status_payload(bridge.get_status())

    @app.post("/targetHeatingCoolingState", response_class=HTMLResponse)
    async def set_heating_cooling_state(
        bridge: Annotated[EcobeeBridge, Depends(get_bridge)],
        state: Annotated[int, Form(ge=0, le=3)],
    ) -> str:
        """Change the HVAC mode."""
        await bridge.async_set_mode(state)
        return DONE_RESPONSE

    @app.post("/targetTemperature", response_class=HTMLResponse)
    async def set_target_temperature(
        bridge: Annotated[EcobeeBridge, Depends(get_bridge)],
        temperature: Annotated[
            float,
            Form(
                allow_inf_nan=False,
                ge=MIN_TARGET_TEMPERATURE,
                le=MAX_TARGET_TEMPERATURE,
            ),
        ],
    ) -> str:
        """Hold the thermostat at a target temperature in Celsius."""
        await bridge.async_set_target_temperature(temperature)
        return DONE_RESPONSE

    return app
