# File: config_flow.py
"""Config flow for the LifeQuest integration.

A single instance holds every user's characters and quests, so the flow only
confirms the setup and seeds the default options. Tunables are edited later
through the options flow.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from .options_flow import LifeQuestOptionsFlowHandler

# pylint: disable=abstract-method


class LifeQuestConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for LifeQuest."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        """Confirm the setup; only one instance is allowed."""
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        if user_input is not None:
            const.LOGGER.info("INFO: Creating LifeQuest config entry")
            return self.async_create_entry(
                title=const.LIFEQUEST_TITLE,
                data={},
                options={
                    const.CONF_CACHE_TTL: const.DEFAULT_CACHE_TTL,
                    const.CONF_FETCH_THROTTLE: const.DEFAULT_FETCH_THROTTLE,
                    const.CONF_DAILY_PENALTY_RATIO: const.DEFAULT_DAILY_PENALTY_RATIO,
                    const.CONF_STAT_FLOOR: const.DEFAULT_STAT_FLOOR,
                },
            )

        return self.async_show_form(
            step_id=const.CONFIG_FLOW_STEP_USER, data_schema=vol.Schema({})
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return LifeQuestOptionsFlowHandler(config_entry)
