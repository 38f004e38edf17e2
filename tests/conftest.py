"""Shared fixtures for LifeQuest tests."""

from collections.abc import Generator
from typing import Any
from zoneinfo import ZoneInfo

from homeassistant.core import HomeAssistant
import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.lifequest import const
from custom_components.lifequest.cache import ConsistencyCache
from custom_components.lifequest.coordinator import LifeQuestCoordinator
from custom_components.lifequest.utils import dt_utils
from tests.helpers import FIXED_NOW, TEST_USER_ID, FakeMonotonic, MutableClock

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture(autouse=True)
def utc_default_timezone() -> Generator[None, None, None]:
    """Run calendar-day math in UTC and restore it after each test."""
    dt_utils.set_default_timezone(ZoneInfo("UTC"))
    yield
    dt_utils.set_default_timezone(ZoneInfo("UTC"))


@pytest.fixture
def clock() -> MutableClock:
    """Wall clock starting at FIXED_NOW."""
    return MutableClock(FIXED_NOW)


@pytest.fixture
def monotonic() -> FakeMonotonic:
    """Monotonic clock for the cache."""
    return FakeMonotonic()


@pytest.fixture
def user_id() -> str:
    """Principal used by manager and service tests."""
    return TEST_USER_ID


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry with default options."""
    return MockConfigEntry(
        domain=const.DOMAIN,
        title=const.LIFEQUEST_TITLE,
        data={},
        options={
            const.CONF_CACHE_TTL: const.DEFAULT_CACHE_TTL,
            const.CONF_FETCH_THROTTLE: const.DEFAULT_FETCH_THROTTLE,
            const.CONF_DAILY_PENALTY_RATIO: const.DEFAULT_DAILY_PENALTY_RATIO,
            const.CONF_STAT_FLOOR: const.DEFAULT_STAT_FLOOR,
        },
        entry_id="test_entry_id",
        unique_id="test_unique_id",
    )


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,  # pylint: disable=redefined-outer-name
) -> MockConfigEntry:
    """Set up the LifeQuest integration with in-memory storage."""
    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    # Setup applied hass's configured timezone; tests reason in UTC
    dt_utils.set_default_timezone(ZoneInfo("UTC"))
    return mock_config_entry


@pytest.fixture
async def coordinator(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,  # pylint: disable=redefined-outer-name
    clock: MutableClock,  # pylint: disable=redefined-outer-name
    monotonic: FakeMonotonic,  # pylint: disable=redefined-outer-name
) -> LifeQuestCoordinator:
    """Return the loaded coordinator with controllable clocks."""
    coord: LifeQuestCoordinator = hass.data[const.DOMAIN][init_integration.entry_id][
        const.COORDINATOR
    ]
    coord.now = clock
    coord.cache = ConsistencyCache(
        ttl=const.DEFAULT_CACHE_TTL,
        throttle=const.DEFAULT_FETCH_THROTTLE,
        monotonic=monotonic,
    )
    return coord
