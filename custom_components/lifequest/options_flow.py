# File: options_flow.py
"""Options Flow for the LifeQuest integration.

Edits the cache and game-balance tunables. Saving the options reloads the
entry, which rebuilds the coordinator with the new values.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries

from . import const


def build_options_schema(options: dict[str, Any]) -> vol.Schema:
    """Build the options form, pre-filled with the current values."""
    return vol.Schema(
        {
            vol.Required(
                const.CONF_CACHE_TTL,
                default=options.get(const.CONF_CACHE_TTL, const.DEFAULT_CACHE_TTL),
            ): vol.All(vol.Coerce(float), vol.Range(min=0)),
            vol.Required(
                const.CONF_FETCH_THROTTLE,
                default=options.get(
                    const.CONF_FETCH_THROTTLE, const.DEFAULT_FETCH_THROTTLE
                ),
            ): vol.All(vol.Coerce(float), vol.Range(min=0)),
            vol.Required(
                const.CONF_DAILY_PENALTY_RATIO,
                default=options.get(
                    const.CONF_DAILY_PENALTY_RATIO, const.DEFAULT_DAILY_PENALTY_RATIO
                ),
            ): vol.All(vol.Coerce(float), vol.Range(min=0, max=1)),
            vol.Required(
                const.CONF_STAT_FLOOR,
                default=options.get(const.CONF_STAT_FLOOR, const.DEFAULT_STAT_FLOOR),
            ): vol.Coerce(int),
        }
    )


class LifeQuestOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for the LifeQuest tunables."""

    def __init__(self, _config_entry: config_entries.ConfigEntry):
        """Initialize the options flow."""
        self._entry_options: dict[str, Any] = {}

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        """Show and save the tunables."""
        if user_input is not None:
            self._entry_options = {**self.config_entry.options, **user_input}
            const.LOGGER.debug(
                "DEBUG: Saving LifeQuest options: %s", self._entry_options
            )
            return self.async_create_entry(title="", data=self._entry_options)

        return self.async_show_form(
            step_id=const.OPTIONS_FLOW_STEP_INIT,
            data_schema=build_options_schema(dict(self.config_entry.options)),
        )
