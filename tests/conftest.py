"""Pytest configuration and fixtures for Ariston Velis tests."""

from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.ariston_velis.models import (
    AristonControllerConfig,
    NormalizedFields,
    Resolution,
    Variant,
)

TEST_TOKEN = "test_token"
TEST_PLANT_ID = "F0AD4E123456"


@pytest.fixture
def sample_login_response() -> dict[str, Any]:
    """Fixture providing a sample login API response."""
    return {"token": TEST_TOKEN, "uid": "user-1"}


@pytest.fixture
def sample_devices_response() -> list[dict[str, Any]]:
    """Fixture providing a sample device listing response.

    Returns:
        A list of plant records as returned by the listing endpoints.

    """
    return [
        {"gw": TEST_PLANT_ID, "name": "Bathroom", "sn": "SN1"},
        {"gw": "F0AD4E654321", "name": "Kitchen", "sn": "SN2"},
    ]


@pytest.fixture
def sample_plant_data() -> dict[str, Any]:
    """Fixture providing a sample plant data body in the medPlantData shape."""
    return {
        "gw": TEST_PLANT_ID,
        "on": True,
        "temp": 45.5,
        "procReqTemp": 50,
        "antiLeg": False,
        "heatReq": True,
        "avShw": 3,
        "mode": 1,
    }


@pytest.fixture
def sample_fields() -> NormalizedFields:
    """Fixture providing normalized fields of a healthy plant."""
    return NormalizedFields(
        current_temp=45,
        target_temp=50,
        power_state=True,
        anti_leg=False,
        heat_req=True,
        av_shw=3,
        mode=1,
    )


@pytest.fixture
def sample_resolution(sample_fields: NormalizedFields) -> Resolution:
    """Fixture providing a resolution on the medPlantData variant."""
    return Resolution(variant=Variant.MED, raw={"temp": 45}, fields=sample_fields)


@pytest.fixture
def controller_config() -> AristonControllerConfig:
    """Fixture providing a controller configuration with a fixed plant."""
    return AristonControllerConfig(plant_id=TEST_PLANT_ID, poll_interval=15)


@pytest.fixture
def mock_session_manager() -> Mock:
    """Create a session manager mock that is already logged in."""
    manager = Mock()
    manager.async_login = AsyncMock(return_value=TEST_TOKEN)
    manager.require_token = Mock(return_value=TEST_TOKEN)
    manager.invalidate = Mock()
    manager.token = TEST_TOKEN
    return manager


@pytest.fixture
def mock_resolver(sample_resolution: Resolution) -> Mock:
    """Create a resolver mock returning the sample resolution."""
    resolver = Mock()
    resolver.async_resolve = AsyncMock(return_value=sample_resolution)
    return resolver
