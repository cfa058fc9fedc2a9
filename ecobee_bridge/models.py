"""Data models for the ecobee bridge."""

from dataclasses import dataclass
from enum import IntEnum


class HvacMode(IntEnum):
    """HomeKit heating/cooling state values."""

    OFF = 0
    HEAT = 1
    COOL = 2
    AUTO = 3


@dataclass(frozen=True, slots=True)
class Credential:
    """Access/refresh token pair issued by the ecobee API."""

    access_token: str
    refresh_token: str

    def __repr__(self) -> str:
        return "Credential(access_token=***, refresh_token=***)"


@dataclass(frozen=True, slots=True)
class DeviceSnapshot:
    """Normalized thermostat state taken from the last successful poll."""

    mode: HvacMode
    current_temperature: float  # Celsius
    target_temperature: float  # Celsius
    current_humidity: float  # percent RH
    target_humidity: float  # fraction 0-1
