"""API client for the Ariston NET cloud.

This module provides functions to interact with the Ariston API,
including authentication, device discovery, per-variant data probes and
command sending.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import quote

import httpx
from homeassistant.core import HomeAssistant
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import (
    APP_INFO,
    AUTH_HEADER,
    BASE_URL,
    DEVICE_ID_KEYS,
    DEVICE_LIST_PATHS,
    FIELD_ALIASES,
    MAX_RETRY_AFTER,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from .models import AristonDevice, Candidate, NormalizedFields, Variant

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_TOO_MANY_REQUESTS = 429


class AristonApiClientError(Exception):
    """Base exception for Ariston API client errors."""


class AristonAuthError(AristonApiClientError):
    """Exception raised when login fails or the token is rejected."""


class AristonNoDataError(AristonApiClientError):
    """Exception raised when no variant yields usable plant data."""


class AristonRateLimitedError(AristonApiClientError):
    """Exception raised when the API answers with HTTP 429.

    Attributes:
        retry_after: Seconds to wait before the next attempt, if signaled.

    """

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class AristonNotReadyError(AristonApiClientError):
    """Exception raised when a command is issued before initialization."""


class AristonTransportError(AristonApiClientError):
    """Exception raised on network failures and timeouts."""


def create_headers(token: str | None = None) -> dict[str, str]:
    """Create HTTP headers for Ariston API requests.

    Args:
        token: Optional session token to include in headers.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {
        "User-Agent": USER_AGENT,
        "Content-Type": "application/json",
    }
    if token:
        headers[AUTH_HEADER] = token
    return headers


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates a rejected token."""
    return status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN)


def is_rate_limited(status: int) -> bool:
    """Check if HTTP status code indicates rate limiting."""
    return status == HTTP_TOO_MANY_REQUESTS


def plant_url(variant: Variant | str, device_id: str, action: str | None = None) -> str:
    """Build the plant data URL for a variant, optionally with a command suffix."""
    url = f"{BASE_URL}/velis/{variant}/{quote(str(device_id), safe='')}"
    if action:
        url = f"{url}/{action}"
    return url


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a Retry-After header value.

    Args:
        value: Header value, either delta-seconds or an HTTP date.
        now: Reference time for HTTP dates, defaults to the current time.

    Returns:
        Seconds to wait, clamped to [0, MAX_RETRY_AFTER], or None if the
        value is missing or cannot be parsed.

    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        seconds = (when - (now or datetime.now(UTC))).total_seconds()

    if seconds != seconds:  # NaN
        return None
    return min(max(seconds, 0.0), float(MAX_RETRY_AFTER))


def _raise_for_rate_limit(response: httpx.Response, what: str) -> None:
    if not is_rate_limited(response.status_code):
        return
    retry_after = parse_retry_after(response.headers.get("Retry-After"))
    message = f"{what} rate limited"
    raise AristonRateLimitedError(message, retry_after)


def first_present(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the value of the first key present in raw with a non-null value."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def extract_fields(raw: Mapping[str, Any]) -> NormalizedFields:
    """Extract normalized fields from a plant data response of any variant.

    Args:
        raw: Decoded JSON object returned by a plant data endpoint.

    Returns:
        NormalizedFields with each field taken from its first known alias.

    """
    return NormalizedFields(
        **{name: first_present(raw, keys) for name, keys in FIELD_ALIASES.items()}
    )


def extract_device_id(record: Mapping[str, Any]) -> str | None:
    """Extract the plant identifier from a device listing record."""
    value = first_present(record, DEVICE_ID_KEYS)
    return str(value) if value is not None else None


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for Ariston API.

    Only idempotent requests are retried, and only on gateway errors:
    rate limiting is handled by the variant resolver.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=REQUEST_TIMEOUT)
    retry = Retry(
        total=2,
        backoff_factor=0.5,
        status_forcelist=[502, 503, 504],
        respect_retry_after_header=False,
    )
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


async def async_login(
    session: httpx.AsyncClient,
    username: str,
    password: str,
) -> str:
    """Authenticate with Ariston API using username and password.

    Args:
        session: HTTP client session.
        username: Ariston NET account user name.
        password: Ariston NET account password.

    Returns:
        Session token.

    Raises:
        AristonAuthError: If the status is not 200 or the token is missing.
        AristonTransportError: If the request cannot be performed.

    """
    url = f"{BASE_URL}/accounts/login"
    payload = {
        "usr": username,
        "pwd": password,
        "imp": False,
        "notTrack": True,
        "appInfo": APP_INFO,
    }

    _LOGGER.debug("Authenticating with Ariston API")
    try:
        response = await session.post(url, headers=create_headers(), json=payload)
    except httpx.RequestError as err:
        error_msg = f"Login request failed: {err}"
        raise AristonTransportError(error_msg) from err

    _LOGGER.debug("Login status=%s", response.status_code)
    data = _json_or_none(response)
    token = data.get("token") if isinstance(data, dict) else None
    if response.status_code != HTTP_OK or not token:
        error_msg = f"Login failed ({response.status_code})"
        raise AristonAuthError(error_msg)

    _LOGGER.debug("Successfully authenticated with Ariston API")
    return str(token)


async def async_list_devices(
    session: httpx.AsyncClient,
    token: str,
) -> list[AristonDevice]:
    """Fetch the Velis plants of the account.

    Listing endpoints are tried in order and the first non-empty list wins.

    Args:
        session: HTTP client session.
        token: Session token.

    Returns:
        List of AristonDevice objects, empty if none were found.

    Raises:
        AristonAuthError: If the token is rejected.
        AristonRateLimitedError: If the listing is rate limited.
        AristonTransportError: If the request cannot be performed.

    """
    headers = create_headers(token)
    for path in DEVICE_LIST_PATHS:
        url = f"{BASE_URL}/{path}"
        try:
            response = await session.get(url, headers=headers)
        except httpx.RequestError as err:
            error_msg = f"Device listing failed: {err}"
            raise AristonTransportError(error_msg) from err

        _LOGGER.debug("GET %s status=%s", path, response.status_code)
        if is_auth_error(response.status_code):
            error_msg = f"Device listing rejected ({response.status_code})"
            raise AristonAuthError(error_msg)
        _raise_for_rate_limit(response, "Device listing")

        data = _json_or_none(response)
        if response.status_code == HTTP_OK and isinstance(data, list) and data:
            devices = []
            for record in data:
                if not isinstance(record, dict):
                    continue
                device_id = extract_device_id(record)
                if device_id:
                    devices.append(AristonDevice(id=device_id, raw=record))
            _LOGGER.debug("Retrieved %d devices from %s", len(devices), path)
            if devices:
                return devices

    return []


async def async_probe_variant(
    session: httpx.AsyncClient,
    token: str,
    variant: Variant,
    device_id: str,
) -> Candidate | None:
    """Read plant data through one variant endpoint.

    Args:
        session: HTTP client session.
        token: Session token.
        variant: Response shape to try.
        device_id: Plant identifier.

    Returns:
        An unscored Candidate, or None when the variant gave no usable body.

    Raises:
        AristonRateLimitedError: On HTTP 429.
        AristonAuthError: On HTTP 401/403.
        AristonTransportError: If the request cannot be performed.

    """
    url = plant_url(variant, device_id)
    try:
        response = await session.get(url, headers=create_headers(token))
    except httpx.RequestError as err:
        error_msg = f"GET {variant} failed: {err}"
        raise AristonTransportError(error_msg) from err

    _LOGGER.debug("GET %s status=%s", url, response.status_code)
    _raise_for_rate_limit(response, f"GET {variant}")
    if is_auth_error(response.status_code):
        error_msg = f"GET {variant} rejected ({response.status_code})"
        raise AristonAuthError(error_msg)
    if response.status_code != HTTP_OK:
        return None

    data = _json_or_none(response)
    if not isinstance(data, dict) or not data:
        return None

    return Candidate(variant=variant, raw=data, fields=extract_fields(data))


async def _async_post_command(
    session: httpx.AsyncClient,
    url: str,
    token: str,
    payload: Any,
    what: str,
) -> None:
    try:
        response = await session.post(url, headers=create_headers(token), json=payload)
    except httpx.RequestError as err:
        error_msg = f"{what} failed: {err}"
        raise AristonTransportError(error_msg) from err

    _LOGGER.debug("POST %s status=%s", url, response.status_code)
    _raise_for_rate_limit(response, what)
    if is_auth_error(response.status_code):
        error_msg = f"{what} rejected ({response.status_code})"
        raise AristonAuthError(error_msg)
    if response.status_code != HTTP_OK:
        error_msg = f"{what} failed ({response.status_code})"
        raise AristonApiClientError(error_msg)


async def async_set_temperature(  # noqa: PLR0913
    session: httpx.AsyncClient,
    token: str,
    variant: Variant,
    device_id: str,
    old_temp: float,
    new_temp: float,
    *,
    eco: bool = False,
) -> None:
    """Send a target temperature change to the plant.

    Args:
        session: HTTP client session.
        token: Session token.
        variant: Variant the plant currently answers on.
        device_id: Plant identifier.
        old_temp: Last known target temperature.
        new_temp: Requested target temperature.
        eco: Whether the change is an eco adjustment.

    Raises:
        AristonApiClientError: If the API does not answer 200.

    """
    await _async_post_command(
        session,
        plant_url(variant, device_id, "temperature"),
        token,
        {"eco": bool(eco), "old": old_temp, "new": new_temp},
        "Set temperature",
    )


async def async_set_power(
    session: httpx.AsyncClient,
    token: str,
    variant: Variant,
    device_id: str,
    on: bool,  # noqa: FBT001
) -> None:
    """Switch the plant on or off.

    Raises:
        AristonApiClientError: If the API does not answer 200.

    """
    await _async_post_command(
        session,
        plant_url(variant, device_id, "switch"),
        token,
        bool(on),
        "Set power",
    )
