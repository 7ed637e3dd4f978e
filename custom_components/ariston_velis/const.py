"""Constants for Ariston Velis integration.

This module contains all the constants used throughout the integration,
including API endpoints, configuration keys, and lookup tables.
"""

DOMAIN = "ariston_velis"

BASE_URL = "https://www.ariston-net.remotethermo.com/api/v2"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:142.0) "
    "Gecko/20100101 Firefox/142.0"
)
AUTH_HEADER = "ar.authToken"
APP_INFO = {
    "os": 2,
    "appVer": "5.6.7772.40151",
    "appId": "com.remotethermo.aristonnet",
}
REQUEST_TIMEOUT = 15.0

CACHE_FILENAME = "ariston_velis_cache.json"

# Device listing endpoints, tried in order
DEVICE_LIST_PATHS = ("velis/medPlants", "velis/plants")
DEVICE_ID_KEYS = ("gw", "gateway", "id", "plantId")

# Raw key aliases per logical field, first present non-null key wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "current_temp": ("temp", "wtrTemp", "currentTemp", "currTemp", "tCur"),
    "target_temp": ("procReqTemp", "reqTemp", "targetTemp", "tSet"),
    "power_state": ("on", "power", "pwr"),
    "anti_leg": ("antiLeg", "antiLegionella", "antiLegionellaActive"),
    "heat_req": ("heatReq", "heatingReq", "heatingRequest"),
    "av_shw": ("avShw", "availableShowers", "avShow"),
    "mode": ("mode", "opMode", "wheMode"),
}

TRUSTED_SCORE = 99
MAX_RETRY_AFTER = 600  # seconds

LOGIN_ATTEMPTS = 3
LOGIN_BACKOFF_BASE = 1.0
LOGIN_BACKOFF_MAX = 10.0

DEFAULT_POLL_INTERVAL = 1800  # 30 minutes, respects API quotas
MIN_POLL_INTERVAL = 15
INITIAL_REFRESH_DELAY = 2.0
INIT_RETRY_DELAY = 300.0
DEFAULT_RATE_LIMIT_BACKOFF = 60.0
MIN_RATE_LIMIT_BACKOFF = 1.0
FAILURE_BACKOFF = 5.0

DEFAULT_MIN_TEMP = 35
DEFAULT_MAX_TEMP = 70
DEFAULT_REFRESH_ON_GET_COOLDOWN = 10
MIN_REFRESH_ON_GET_COOLDOWN = 2

# Readings outside this window are never real water temperatures
TEMP_VALID_MIN = 0
TEMP_VALID_MAX = 65
PLACEHOLDER_TEMPS = (0, 33)
PLACEHOLDER_MARGIN = 5

MAX_SHOWERS = 4

CONF_PLANT_ID = "plant_id"
CONF_POLL_INTERVAL = "poll_interval"
CONF_MIN_TEMP = "min_temp"
CONF_MAX_TEMP = "max_temp"
CONF_REFRESH_ON_GET = "refresh_on_get"
CONF_REFRESH_ON_GET_COOLDOWN = "refresh_on_get_cooldown"
CONF_EXTRA_ATTRIBUTES = "extra_attributes"

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_NO_DEVICES = "no_devices"
ERROR_UNKNOWN = "unknown_error"

# Mode codes as reported by the Ariston app
MODE_NAMES = {
    1: "iMemory",
    2: "Green",
    7: "Boost",
}
MODE_TEMPERATURE_RANGES = {
    1: (40, 65),
    2: (40, 53),
    7: (40, 65),
}
