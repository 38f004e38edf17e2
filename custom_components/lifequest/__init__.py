# File: __init__.py
"""Initialization file for the LifeQuest integration.

Handles setting up the integration, including loading configuration entries,
initializing data storage, and preparing the coordinator and its managers.

Key Features:
- Config entry setup, unload and removal support.
- Document storage initialization.
- Services for quests, character progression and the daily cycle.
"""

from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from . import const
from .coordinator import LifeQuestCoordinator
from .services import async_setup_services, async_unload_services
from .store import LifeQuestStore


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("INFO: Starting setup for LifeQuest entry: %s", entry.entry_id)

    # Calendar-day math (streaks, daily cycle) runs in the configured timezone
    const.set_default_timezone(hass)

    store = LifeQuestStore(hass, const.STORAGE_KEY)
    await store.async_initialize()

    coordinator = LifeQuestCoordinator(hass, entry, store)
    await coordinator.async_config_entry_first_refresh()

    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.COORDINATOR: coordinator,
        const.STORE: store,
    }

    async_setup_services(hass)

    # Options changes (cache TTL, penalty ratio, ...) take effect on reload
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    const.LOGGER.info("INFO: LifeQuest setup complete for entry: %s", entry.entry_id)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options changed."""
    const.LOGGER.debug("DEBUG: Options updated, reloading entry %s", entry.entry_id)
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("INFO: Unloading LifeQuest entry: %s", entry.entry_id)

    hass.data[const.DOMAIN].pop(entry.entry_id, None)
    if not hass.data[const.DOMAIN]:
        await async_unload_services(hass)

    return True


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry by deleting its storage file."""
    const.LOGGER.info("INFO: Removing LifeQuest entry: %s", entry.entry_id)

    store = LifeQuestStore(hass, const.STORAGE_KEY)
    await store.async_delete_storage()

    const.LOGGER.info("INFO: LifeQuest entry data cleared: %s", entry.entry_id)
