# File: services.py
"""Defines custom services for the LifeQuest integration.

These services are the outer surface of the engine: scripts, automations and
dashboards call them to create quests, change quest status, read the
character and run the daily cycle. Every service acts on behalf of the user
who issued the call (call.context.user_id).
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv

from . import const
from .coordinator import LifeQuestCoordinator

_QUEST_TYPES = [quest_type.value for quest_type in const.QuestType]
_QUEST_STATUSES = [status.value for status in const.QuestStatus]
_QUEST_REPEATS = [repeat.value for repeat in const.QuestRepeat]
_PROOF_TYPES = [proof.value for proof in const.ProofType]

# --- Service Schemas ---
CREATE_QUEST_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_TITLE): cv.string,
        vol.Required(const.FIELD_TYPE): vol.In(_QUEST_TYPES),
        vol.Required(const.FIELD_XP_REWARD): vol.All(
            vol.Coerce(int), vol.Range(min=0)
        ),
        vol.Optional(const.FIELD_DESCRIPTION): cv.string,
        vol.Optional(const.FIELD_STAT_REWARDS): {
            vol.In(const.STAT_ATTRIBUTES): vol.All(vol.Coerce(int), vol.Range(min=0))
        },
        vol.Optional(const.FIELD_CATEGORY): cv.string,
        vol.Optional(const.FIELD_DEADLINE): cv.datetime,
        vol.Optional(const.FIELD_END_DATE): cv.datetime,
        vol.Optional(const.FIELD_REPEAT): vol.In(_QUEST_REPEATS),
        vol.Optional(const.FIELD_PENALTY_FOR_MISSING): cv.boolean,
        vol.Optional(const.FIELD_PROOF_REQUIRED): vol.All(
            cv.ensure_list, [vol.In(_PROOF_TYPES)]
        ),
        vol.Optional(const.FIELD_TASKS): vol.All(cv.ensure_list, [cv.string]),
    }
)

SET_QUEST_STATUS_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_QUEST_ID): cv.string,
        vol.Required(const.FIELD_STATUS): vol.In(_QUEST_STATUSES),
    }
)

TOGGLE_SUBTASK_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_QUEST_ID): cv.string,
        vol.Required(const.FIELD_TASK_INDEX): vol.All(
            vol.Coerce(int), vol.Range(min=0)
        ),
    }
)

REFRESHABLE_READ_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_FORCE_REFRESH, default=False): cv.boolean,
    }
)

GET_JOURNAL_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_LIMIT, default=const.DEFAULT_JOURNAL_LIMIT): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    }
)

GRANT_XP_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_AMOUNT): vol.Coerce(int),
    }
)

MERGE_CHARACTER_STATS_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_STATS): {
            vol.In(const.STAT_ATTRIBUTES): vol.Coerce(int)
        },
    }
)

EMPTY_SCHEMA = vol.Schema({})


def _get_coordinator(hass: HomeAssistant) -> LifeQuestCoordinator:
    """Return the coordinator of the first loaded LifeQuest entry."""
    entries = hass.data.get(const.DOMAIN, {})
    if not entries:
        const.LOGGER.warning("WARNING: %s", const.ERROR_NO_ENTRY_FOUND)
        raise HomeAssistantError(const.ERROR_NO_ENTRY_FOUND)
    entry_data = next(iter(entries.values()))
    return entry_data[const.COORDINATOR]


def async_setup_services(hass: HomeAssistant) -> None:
    """Register LifeQuest services."""

    # --- Quests ---

    async def handle_create_quest(call: ServiceCall) -> ServiceResponse:
        """Handle creating a quest."""
        coordinator = _get_coordinator(hass)
        quest = await coordinator.quest_manager.async_create_quest(
            call.context.user_id, dict(call.data)
        )
        return {"quest": quest}

    async def handle_set_quest_status(call: ServiceCall) -> ServiceResponse:
        """Handle a quest status change (complete, uncheck, fail, retry)."""
        coordinator = _get_coordinator(hass)
        quest = await coordinator.quest_manager.async_set_quest_status(
            call.context.user_id,
            call.data[const.FIELD_QUEST_ID],
            call.data[const.FIELD_STATUS],
        )
        return {"quest": quest}

    async def handle_toggle_subtask(call: ServiceCall) -> ServiceResponse:
        """Handle checking or unchecking one subtask."""
        coordinator = _get_coordinator(hass)
        quest = await coordinator.quest_manager.async_toggle_subtask(
            call.context.user_id,
            call.data[const.FIELD_QUEST_ID],
            call.data[const.FIELD_TASK_INDEX],
        )
        return {"quest": quest}

    async def handle_get_quests(call: ServiceCall) -> ServiceResponse:
        """Return every quest of the calling user."""
        coordinator = _get_coordinator(hass)
        quests = await coordinator.quest_manager.async_get_quests(
            call.context.user_id, call.data[const.FIELD_FORCE_REFRESH]
        )
        return {"quests": quests}

    # --- Character ---

    async def handle_get_character(call: ServiceCall) -> ServiceResponse:
        """Return the calling user's character."""
        coordinator = _get_coordinator(hass)
        character = await coordinator.character_manager.async_get_character(
            call.context.user_id, call.data[const.FIELD_FORCE_REFRESH]
        )
        return {"character": character}

    async def handle_get_journal(call: ServiceCall) -> ServiceResponse:
        """Return the newest journal entries."""
        coordinator = _get_coordinator(hass)
        entries = await coordinator.character_manager.async_get_journal(
            call.context.user_id, call.data[const.FIELD_LIMIT]
        )
        return {"entries": entries}

    async def handle_grant_xp(call: ServiceCall) -> ServiceResponse:
        """Grant XP directly."""
        coordinator = _get_coordinator(hass)
        character = await coordinator.character_manager.async_grant_xp(
            call.context.user_id, call.data[const.FIELD_AMOUNT]
        )
        return {"character": character}

    async def handle_merge_character_stats(call: ServiceCall) -> ServiceResponse:
        """Add signed deltas to the named stats."""
        coordinator = _get_coordinator(hass)
        character = await coordinator.character_manager.async_merge_character_stats(
            call.context.user_id, call.data[const.FIELD_STATS]
        )
        return {"character": character}

    async def handle_evaluate_streak(call: ServiceCall) -> ServiceResponse:
        """Re-evaluate the streak and return it with its message."""
        coordinator = _get_coordinator(hass)
        status = await coordinator.character_manager.async_evaluate_streak(
            call.context.user_id
        )
        return dict(status)

    async def handle_reconcile_progression(call: ServiceCall) -> ServiceResponse:
        """Rebuild level and XP from lifetime totals."""
        coordinator = _get_coordinator(hass)
        character = await coordinator.character_manager.async_reconcile_progression(
            call.context.user_id
        )
        return {"character": character}

    async def handle_reset_character(call: ServiceCall) -> ServiceResponse:
        """Delete everything the calling user owns."""
        coordinator = _get_coordinator(hass)
        deleted = await coordinator.character_manager.async_reset_character(
            call.context.user_id
        )
        return {"deleted": deleted}

    # --- Daily cycle ---

    async def handle_run_daily_cycle(call: ServiceCall) -> ServiceResponse:
        """Run the once-per-day evaluation and reset."""
        coordinator = _get_coordinator(hass)
        result = await coordinator.daily_cycle_manager.async_run_daily_cycle(
            call.context.user_id
        )
        return dict(result)

    # (service, handler, schema, response support)
    registrations: list[tuple[str, Any, vol.Schema, SupportsResponse]] = [
        (
            const.SERVICE_CREATE_QUEST,
            handle_create_quest,
            CREATE_QUEST_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
        (
            const.SERVICE_SET_QUEST_STATUS,
            handle_set_quest_status,
            SET_QUEST_STATUS_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
        (
            const.SERVICE_TOGGLE_SUBTASK,
            handle_toggle_subtask,
            TOGGLE_SUBTASK_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
        (
            const.SERVICE_GET_QUESTS,
            handle_get_quests,
            REFRESHABLE_READ_SCHEMA,
            SupportsResponse.ONLY,
        ),
        (
            const.SERVICE_GET_CHARACTER,
            handle_get_character,
            REFRESHABLE_READ_SCHEMA,
            SupportsResponse.ONLY,
        ),
        (
            const.SERVICE_GET_JOURNAL,
            handle_get_journal,
            GET_JOURNAL_SCHEMA,
            SupportsResponse.ONLY,
        ),
        (
            const.SERVICE_GRANT_XP,
            handle_grant_xp,
            GRANT_XP_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
        (
            const.SERVICE_MERGE_CHARACTER_STATS,
            handle_merge_character_stats,
            MERGE_CHARACTER_STATS_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
        (
            const.SERVICE_EVALUATE_STREAK,
            handle_evaluate_streak,
            EMPTY_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
        (
            const.SERVICE_RECONCILE_PROGRESSION,
            handle_reconcile_progression,
            EMPTY_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
        (
            const.SERVICE_RESET_CHARACTER,
            handle_reset_character,
            EMPTY_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
        (
            const.SERVICE_RUN_DAILY_CYCLE,
            handle_run_daily_cycle,
            EMPTY_SCHEMA,
            SupportsResponse.OPTIONAL,
        ),
    ]

    for service, handler, schema, supports_response in registrations:
        hass.services.async_register(
            const.DOMAIN,
            service,
            handler,
            schema=schema,
            supports_response=supports_response,
        )

    const.LOGGER.info("INFO: LifeQuest services have been registered successfully")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister LifeQuest services when unloading the integration."""
    services = [
        const.SERVICE_CREATE_QUEST,
        const.SERVICE_SET_QUEST_STATUS,
        const.SERVICE_TOGGLE_SUBTASK,
        const.SERVICE_GET_QUESTS,
        const.SERVICE_GET_CHARACTER,
        const.SERVICE_GET_JOURNAL,
        const.SERVICE_GRANT_XP,
        const.SERVICE_MERGE_CHARACTER_STATS,
        const.SERVICE_EVALUATE_STREAK,
        const.SERVICE_RECONCILE_PROGRESSION,
        const.SERVICE_RESET_CHARACTER,
        const.SERVICE_RUN_DAILY_CYCLE,
    ]

    for service in services:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: LifeQuest services have been unregistered")
