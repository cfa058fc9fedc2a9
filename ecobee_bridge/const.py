"""Constants for the ecobee bridge.

This module contains all the constants used throughout the bridge,
including API endpoints, vendor-mandated headers, schedules and the
mapping tables between vendor values and HomeKit-style values.
"""

from datetime import timedelta

from .models import HvacMode

DOMAIN = "ecobee_bridge"

BASE_URL = "https://api.ecobee.com"
USER_AGENT = "Home Comfort/1.3.0 (iPhone; iOS 11.4; Scale/2.00)"
APP_HEADER = "X-ECOBEE-APP"
APP_ID = "ecobee-ios"

AUTH_SCOPE = "smartWrite"
AUTH_RESPONSE_TYPE = "ecobeeAuthz"
REFRESH_GRANT_TYPE = "refresh_token"

TOKEN_REFRESH_INTERVAL = timedelta(hours=24)
DEVICE_POLL_INTERVAL = timedelta(seconds=60)
REQUEST_TIMEOUT = 10.0

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8351

HVAC_MODE_MAP = {
    HvacMode.OFF: "off",
    HvacMode.HEAT: "heat",
    HvacMode.COOL: "cool",
    HvacMode.AUTO: "auto",
}
HVAC_MODE_REVERSE_MAP = {value: key for key, value in HVAC_MODE_MAP.items()}

HOLD_TYPE = "nextTransition"

# HomeKit target temperature range, Celsius
MIN_TARGET_TEMPERATURE = 10.0
MAX_TARGET_TEMPERATURE = 38.0

REGISTERED_SELECTION = {
    "selectionType": "registered",
    "selectionMatch": "",
}

# Every optional sub-object is requested even though only runtime and
# settings are read back.
THERMOSTAT_SELECTION = {
    "selection": {
        **REGISTERED_SELECTION,
        "includeAlerts": True,
        "includeAudio": True,
        "includeDevice": True,
        "includeElectricity": True,
        "includeEnergy": True,
        "includeEquipmentStatus": True,
        "includeEvents": True,
        "includeExtendedRuntime": True,
        "includeHouseDetails": True,
        "includeLocation": True,
        "includeManagement": True,
        "includeNotificationSettings": True,
        "includeOemCfg": True,
        "includePrivacy": True,
        "includeProgram": True,
        "includeReminders": True,
        "includeRuntime": True,
        "includeSecuritySettings": True,
        "includeSensors": True,
        "includeSettings": True,
        "includeTechnician": True,
        "includeUtility": True,
        "includeVersion": True,
        "includeWeather": True,
    },
}
