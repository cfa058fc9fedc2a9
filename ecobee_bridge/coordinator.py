"""Coordinators for the ecobee bridge."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

from . import api
from .const import DEVICE_POLL_INTERVAL, DOMAIN, TOKEN_REFRESH_INTERVAL
from .models import Credential, DeviceSnapshot

if TYPE_CHECKING:
    from datetime import timedelta

    import httpx

_LOGGER = logging.getLogger(__name__)

_DataT = TypeVar("_DataT")


class UpdateFailed(Exception):
    """Raised by a coordinator when an update tick cannot produce new data."""


class PeriodicCoordinator(ABC, Generic[_DataT]):
    """Hold one piece of data and replace it on a fixed schedule.

    ``data`` is only ever rebound to a new immutable value, so readers see
    either the previous or the new value, never a mix of both. A failed
    update leaves ``data`` as it was.

    Ticks fire on a fixed schedule and each one runs in its own task: a slow
    update does not delay the next tick, and overlapping updates are not
    suppressed.
    """

    def __init__(self, name: str, update_interval: timedelta) -> None:
        """Initialize the coordinator."""
        self.name = name
        self.update_interval = update_interval
        self.data: _DataT | None = None
        self.last_update_success = True
        self.last_exception: Exception | None = None
        self._schedule_task: asyncio.Task[None] | None = None
        self._tick_tasks: set[asyncio.Task[None]] = set()

    @abstractmethod
    async def _async_update_data(self) -> _DataT:
        """Fetch new data, raising UpdateFailed on a handled failure."""

    async def async_refresh(self) -> None:
        """Run one update and store its result.

        Failures are logged and recorded in ``last_exception``; they are never
        raised because no caller is waiting on a scheduled update.
        """
        try:
            data = await self._async_update_data()
        except UpdateFailed as err:
            self.last_update_success = False
            self.last_exception = err
            _LOGGER.warning("Error updating %s: %s", self.name, err)
            return
        except Exception as err:
            self.last_update_success = False
            self.last_exception = err
            _LOGGER.exception("Unexpected error updating %s", self.name)
            return

        self.data = data
        self.last_update_success = True
        self.last_exception = None
        _LOGGER.debug("Finished updating %s", self.name)

    @property
    def running(self) -> bool:
        """Return True while the schedule is active."""
        return self._schedule_task is not None and not self._schedule_task.done()

    def async_start(self, first_delay: timedelta | None = None) -> None:
        """Start ticking, first after ``first_delay`` then every interval.

        Args:
            first_delay: Delay before the first tick, defaults to one interval.

        """
        if self.running:
            return

        if first_delay is None:
            first_delay = self.update_interval
        delay = first_delay.total_seconds()
        self._schedule_task = asyncio.create_task(
            self._async_schedule(delay), name=f"{self.name}_schedule"
        )
        _LOGGER.debug(
            "Scheduled %s every %s, first tick in %.0fs",
            self.name,
            self.update_interval,
            delay,
        )

    async def _async_schedule(self, first_delay: float) -> None:
        loop = asyncio.get_running_loop()
        interval = self.update_interval.total_seconds()
        next_tick = loop.time() + first_delay

        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            task = asyncio.create_task(self.async_refresh(), name=f"{self.name}_tick")
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)
            next_tick += interval

    async def async_shutdown(self) -> None:
        """Stop the schedule and wait for in-flight updates to finish."""
        if self._schedule_task is not None:
            self._schedule_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._schedule_task
            self._schedule_task = None

        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)


class EcobeeTokenCoordinator(PeriodicCoordinator[Credential]):
    """Coordinator that owns the ecobee credential and refreshes it daily."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        client_id: str,
        username: str,
        password: str,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            name=f"{DOMAIN}_token",
            update_interval=TOKEN_REFRESH_INTERVAL,
        )
        self.session = session
        self.client_id = client_id
        self._username = username
        self._password = password

    @property
    def credential(self) -> Credential:
        """Return the current credential.

        Raises:
            EcobeeNotAuthenticatedError: If authentication has not succeeded yet.

        """
        credential = self.data
        if credential is None:
            error_msg = "Not authenticated with ecobee yet"
            raise api.EcobeeNotAuthenticatedError(error_msg)
        return credential

    @property
    def access_token(self) -> str:
        """Return the access token to send with the next request."""
        return self.credential.access_token

    async def async_authenticate(self) -> Credential:
        """Authenticate with username and password and store the credential.

        Raises:
            EcobeeRemoteError: If ecobee rejects the credentials or client.
            EcobeeTransportError: If the request fails.

        """
        _LOGGER.info("Authenticating with ecobee as %s", self._username)
        credential = await api.async_authenticate(
            self.session,
            self.client_id,
            self._username,
            self._password,
        )
        self.data = credential
        _LOGGER.info("Successfully authenticated with ecobee")
        return credential

    async def async_refresh_credential(self, current: Credential) -> Credential:
        """Exchange the refresh token of ``current`` for a new credential."""
        return await api.async_refresh_token(self.session, self.client_id, current)

    async def async_ensure_credential(self) -> Credential:
        """Return the held credential, authenticating first if there is none.

        Raises:
            UpdateFailed: If authentication is rejected or the request fails.

        """
        if self.data is not None:
            return self.data

        try:
            return await self.async_authenticate()
        except api.EcobeeRemoteError as err:
            error_msg = f"Authentication rejected by ecobee: {err}"
            raise UpdateFailed(error_msg) from err
        except api.EcobeeTransportError as err:
            error_msg = f"Connection error during authentication: {err}"
            raise UpdateFailed(error_msg) from err

    async def _async_update_data(self) -> Credential:
        """Refresh the credential, or authenticate if none is held yet."""
        if self.data is None:
            _LOGGER.debug("No credential held, authenticating instead of refreshing")
            return await self.async_ensure_credential()

        try:
            credential = await self.async_refresh_credential(self.data)
        except api.EcobeeRemoteError as err:
            error_msg = f"Token refresh rejected by ecobee: {err}"
            raise UpdateFailed(error_msg) from err
        except api.EcobeeTransportError as err:
            error_msg = f"Connection error during token refresh: {err}"
            raise UpdateFailed(error_msg) from err

        _LOGGER.info("Successfully refreshed ecobee access token")
        return credential


class EcobeeDeviceCoordinator(PeriodicCoordinator[DeviceSnapshot]):
    """Coordinator that polls the thermostat state every minute."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        token_coordinator: EcobeeTokenCoordinator,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            name=f"{DOMAIN}_device",
            update_interval=DEVICE_POLL_INTERVAL,
        )
        self._session = session
        self._token_coordinator = token_coordinator

    @property
    def snapshot(self) -> DeviceSnapshot:
        """Return the last polled snapshot.

        Raises:
            EcobeeNoDeviceError: If no poll has succeeded yet.

        """
        snapshot = self.data
        if snapshot is None:
            error_msg = "No thermostat state available yet"
            raise api.EcobeeNoDeviceError(error_msg)
        return snapshot

    async def async_poll(self) -> DeviceSnapshot:
        """Fetch and normalize the current thermostat state."""
        return await api.async_get_thermostat(
            self._session,
            self._token_coordinator.access_token,
        )

    async def _async_update_data(self) -> DeviceSnapshot:
        # A failed login is retried on every poll
        await self._token_coordinator.async_ensure_credential()
        try:
            snapshot = await self.async_poll()
        except api.EcobeePreconditionError as err:
            raise UpdateFailed(f"Cannot poll thermostat: {err}") from err
        except api.EcobeeRemoteError as err:
            raise UpdateFailed(f"API error while polling thermostat: {err}") from err
        except api.EcobeeTransportError as err:
            raise UpdateFailed(
                f"Connection error while polling thermostat: {err}"
            ) from err

        return snapshot
