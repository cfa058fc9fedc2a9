"""Orchestrator that keeps an ecobee session alive and serves its cache."""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import TYPE_CHECKING

from . import api
from .const import MAX_TARGET_TEMPERATURE, MIN_TARGET_TEMPERATURE
from .coordinator import EcobeeDeviceCoordinator, EcobeeTokenCoordinator
from .models import HvacMode

if TYPE_CHECKING:
    import httpx

    from .config import BridgeConfig
    from .models import DeviceSnapshot

_LOGGER = logging.getLogger(__name__)


class EcobeeBridge:
    """Session, polling and command façade for a single ecobee account.

    The token coordinator owns the credential and the device coordinator owns
    the cached snapshot. Status queries are answered from the cache without
    touching the network; commands go straight to the ecobee API and are
    reconciled into the cache by the next poll.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        client_id: str,
        username: str,
        password: str,
    ) -> None:
        """Initialize the bridge.

        Args:
            session: HTTP client session used for every ecobee call.
            client_id: Registered ecobee application key.
            username: ecobee account username.
            password: ecobee account password.

        """
        self._session = session
        self.token_coordinator = EcobeeTokenCoordinator(
            session, client_id, username, password
        )
        self.device_coordinator = EcobeeDeviceCoordinator(
            session, self.token_coordinator
        )

    @classmethod
    def from_config(
        cls,
        config: BridgeConfig,
        session: httpx.AsyncClient | None = None,
    ) -> EcobeeBridge:
        """Create a bridge from a loaded configuration."""
        return cls(
            session or api.create_session_client(),
            config.client_id,
            config.username,
            config.password,
        )

    async def async_start(self) -> None:
        """Authenticate, then start the refresh and poll schedules.

        A failed initial authentication is logged; every poll retries it
        until a credential is held.
        """
        _LOGGER.info("Starting ecobee bridge")
        await self.token_coordinator.async_refresh()
        if not self.token_coordinator.last_update_success:
            _LOGGER.warning("Initial authentication failed, retrying on next poll")

        self.token_coordinator.async_start()
        self.device_coordinator.async_start(first_delay=timedelta(0))

    async def async_stop(self) -> None:
        """Stop both schedules and close the HTTP session."""
        _LOGGER.info("Stopping ecobee bridge")
        await self.device_coordinator.async_shutdown()
        await self.token_coordinator.async_shutdown()
        await self._session.aclose()

    def get_status(self) -> DeviceSnapshot:
        """Return the last polled thermostat state.

        Raises:
            EcobeeNoDeviceError: If no poll has succeeded yet.

        """
        return self.device_coordinator.snapshot

    async def async_set_mode(self, mode: int) -> None:
        """Change the HVAC mode (0 off, 1 heat, 2 cool, 3 auto).

        Raises:
            ValueError: If ``mode`` is not a known mode.
            EcobeeNotAuthenticatedError: If no credential is held yet.
            EcobeeRemoteError: If ecobee rejects the update.
            EcobeeTransportError: If the request fails.

        """
        hvac_mode = HvacMode(mode)
        _LOGGER.info("Setting HVAC mode to %s", hvac_mode.name.lower())
        await api.async_set_hvac_mode(
            self._session,
            self.token_coordinator.access_token,
            hvac_mode,
        )

    async def async_set_target_temperature(self, temperature: float) -> None:
        """Hold the thermostat at ``temperature`` degrees Celsius.

        Raises:
            ValueError: If ``temperature`` is not a finite number inside the
                supported range.
            EcobeeNotAuthenticatedError: If no credential is held yet.
            EcobeeRemoteError: If ecobee rejects the update.
            EcobeeTransportError: If the request fails.

        """
        if not math.isfinite(temperature) or not (
            MIN_TARGET_TEMPERATURE <= temperature <= MAX_TARGET_TEMPERATURE
        ):
            error_msg = (
                f"Target temperature {temperature} is outside "
                f"{MIN_TARGET_TEMPERATURE}-{MAX_TARGET_TEMPERATURE}°C"
            )
            raise ValueError(error_msg)

        _LOGGER.info("Setting target temperature to %.1f°C", temperature)
        await api.async_set_hold_temperature(
            self._session,
            self.token_coordinator.access_token,
            temperature,
        )
