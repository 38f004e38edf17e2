# File: coordinator.py
"""Coordinator for the LifeQuest integration.

Owns the per-entry store, read cache and managers, and notifies listeners
whenever a manager changes persisted state. Nothing is polled: data only
changes through service calls, so no update interval is scheduled.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import time
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from . import const
from .cache import ConsistencyCache
from .managers import CharacterManager, DailyCycleManager, QuestManager
from .store import LifeQuestStore
from .utils.dt_utils import dt_now_utc


class LifeQuestCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Coordinator for LifeQuest integration.

    Tunables come from the config entry options; the wall clock (now) and the
    cache clock (monotonic) are injectable for tests.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        store: LifeQuestStore,
        *,
        now: Callable[[], datetime] | None = None,
        monotonic: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the LifeQuestCoordinator."""
        super().__init__(
            hass,
            const.LOGGER,
            config_entry=config_entry,
            name=f"{const.DOMAIN}_coordinator",
            update_interval=None,
        )
        self.config_entry = config_entry
        self.store = store
        self.now: Callable[[], datetime] = now or dt_now_utc

        options = config_entry.options
        self.stat_floor: int | None = options.get(
            const.CONF_STAT_FLOOR, const.DEFAULT_STAT_FLOOR
        )
        self.daily_penalty_ratio = float(
            options.get(const.CONF_DAILY_PENALTY_RATIO, const.DEFAULT_DAILY_PENALTY_RATIO)
        )
        self.cache = ConsistencyCache(
            ttl=float(options.get(const.CONF_CACHE_TTL, const.DEFAULT_CACHE_TTL)),
            throttle=float(
                options.get(const.CONF_FETCH_THROTTLE, const.DEFAULT_FETCH_THROTTLE)
            ),
            monotonic=monotonic or time.monotonic,
        )

        self.character_manager = CharacterManager(hass, self)
        self.quest_manager = QuestManager(hass, self)
        self.daily_cycle_manager = DailyCycleManager(hass, self)

    async def _async_update_data(self) -> dict[str, Any]:
        """Expose the store's data to listeners."""
        return self.store.data

    def async_notify_listeners(self) -> None:
        """Push the current store data to coordinator listeners."""
        self.async_set_updated_data(self.store.data)
