"""Bridge between the ecobee cloud API and a HomeKit-style HTTP front end."""

from .api import (
    EcobeeError,
    EcobeeNoDeviceError,
    EcobeeNotAuthenticatedError,
    EcobeePreconditionError,
    EcobeeRemoteError,
    EcobeeTransportError,
)
from .bridge import EcobeeBridge
from .models import Credential, DeviceSnapshot, HvacMode

__all__ = [
    "Credential",
    "DeviceSnapshot",
    "EcobeeBridge",
    "EcobeeError",
    "EcobeeNoDeviceError",
    "EcobeeNotAuthenticatedError",
    "EcobeePreconditionError",
    "EcobeeRemoteError",
    "EcobeeTransportError",
    "HvacMode",
]
