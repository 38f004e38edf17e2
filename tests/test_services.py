"""Tests for LifeQuest service handlers."""

from __future__ import annotations

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
import pytest
import voluptuous as vol

from custom_components.lifequest import const
from custom_components.lifequest.coordinator import LifeQuestCoordinator
from custom_components.lifequest.exceptions import (
    InvalidStateError,
    NotAuthenticatedError,
    NotFoundError,
)
from tests.helpers import (
    MutableClock,
    call_service,
    complete_quest,
    get_character,
    get_journal,
)


async def _create_read_quest(hass: HomeAssistant, user_id: str) -> dict:
    response = await call_service(
        hass,
        const.SERVICE_CREATE_QUEST,
        {
            const.FIELD_TITLE: "Read 10 pages",
            const.FIELD_TYPE: "Daily",
            const.FIELD_XP_REWARD: 50,
            const.FIELD_STAT_REWARDS: {const.STAT_FOCUS: 1},
        },
        user_id,
    )
    return response["quest"]


# =============================================================================
# TEST: REGISTRATION
# =============================================================================


async def test_all_services_registered(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator
) -> None:
    for service in (
        const.SERVICE_CREATE_QUEST,
        const.SERVICE_SET_QUEST_STATUS,
        const.SERVICE_TOGGLE_SUBTASK,
        const.SERVICE_GET_CHARACTER,
        const.SERVICE_GET_QUESTS,
        const.SERVICE_GET_JOURNAL,
        const.SERVICE_GRANT_XP,
        const.SERVICE_MERGE_CHARACTER_STATS,
        const.SERVICE_RUN_DAILY_CYCLE,
        const.SERVICE_EVALUATE_STREAK,
        const.SERVICE_RECONCILE_PROGRESSION,
        const.SERVICE_RESET_CHARACTER,
    ):
        assert hass.services.has_service(const.DOMAIN, service)


async def test_services_removed_on_unload(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator
) -> None:
    assert await hass.config_entries.async_unload(coordinator.config_entry.entry_id)
    await hass.async_block_till_done()

    assert not hass.services.has_service(const.DOMAIN, const.SERVICE_CREATE_QUEST)


# =============================================================================
# TEST: QUEST SERVICES
# =============================================================================


async def test_complete_and_uncheck_scenario(
    hass: HomeAssistant,
    coordinator: LifeQuestCoordinator,
    user_id: str,
    clock: MutableClock,
) -> None:
    quest = await _create_read_quest(hass, user_id)
    assert quest[const.DATA_QUEST_STATUS] == const.QuestStatus.AVAILABLE

    completed = await complete_quest(hass, quest[const.DATA_ID], user_id)
    assert completed[const.DATA_QUEST_STATUS] == const.QuestStatus.COMPLETED

    character = await get_character(hass, user_id)
    assert character[const.DATA_CHARACTER_XP] == 50
    assert character[const.DATA_CHARACTER_STATS][const.STAT_FOCUS] == 6

    clock.advance(minutes=1)
    await call_service(
        hass,
        const.SERVICE_SET_QUEST_STATUS,
        {const.FIELD_QUEST_ID: quest[const.DATA_ID], const.FIELD_STATUS: "InProgress"},
        user_id,
    )

    character = await get_character(hass, user_id)
    assert character[const.DATA_CHARACTER_XP] == 0
    assert character[const.DATA_CHARACTER_STATS][const.STAT_FOCUS] == 5

    journal = await get_journal(hass, user_id)
    assert [entry[const.DATA_JOURNAL_XP_GAINED] for entry in journal] == [-50, 50]


async def test_get_quests_returns_only_callers_quests(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    await _create_read_quest(hass, user_id)
    await _create_read_quest(hass, "other-user")

    response = await call_service(hass, const.SERVICE_GET_QUESTS, {}, user_id)
    assert len(response["quests"]) == 1


async def test_toggle_subtask_service(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    response = await call_service(
        hass,
        const.SERVICE_CREATE_QUEST,
        {
            const.FIELD_TITLE: "Taxes",
            const.FIELD_TYPE: "SideQuest",
            const.FIELD_XP_REWARD: 30,
            const.FIELD_TASKS: ["gather", "file"],
            const.FIELD_END_DATE: "2026-04-15T00:00:00+00:00",
        },
        user_id,
    )
    quest = response["quest"]
    assert quest[const.DATA_QUEST_END_DATE] == "2026-04-15T00:00:00+00:00"

    response = await call_service(
        hass,
        const.SERVICE_TOGGLE_SUBTASK,
        {const.FIELD_QUEST_ID: quest[const.DATA_ID], const.FIELD_TASK_INDEX: 1},
        user_id,
    )
    assert response["quest"][const.DATA_QUEST_PROGRESS] == 50


async def test_invalid_transition_reports_error(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    quest = await _create_read_quest(hass, user_id)
    await complete_quest(hass, quest[const.DATA_ID], user_id)

    with pytest.raises(InvalidStateError):
        await call_service(
            hass,
            const.SERVICE_SET_QUEST_STATUS,
            {const.FIELD_QUEST_ID: quest[const.DATA_ID], const.FIELD_STATUS: "Failed"},
            user_id,
        )


async def test_unknown_quest_reports_not_found(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    with pytest.raises(NotFoundError):
        await complete_quest(hass, "missing", user_id)


async def test_schema_rejects_bad_input(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    with pytest.raises(vol.Invalid):
        await call_service(
            hass,
            const.SERVICE_CREATE_QUEST,
            {const.FIELD_TITLE: "x", const.FIELD_TYPE: "Raid", const.FIELD_XP_REWARD: 1},
            user_id,
        )
    with pytest.raises(vol.Invalid):
        await call_service(
            hass,
            const.SERVICE_MERGE_CHARACTER_STATS,
            {const.FIELD_STATS: {"charisma": 1}},
            user_id,
        )


# =============================================================================
# TEST: CHARACTER SERVICES
# =============================================================================


async def test_anonymous_call_rejected(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator
) -> None:
    with pytest.raises(NotAuthenticatedError):
        await call_service(hass, const.SERVICE_GET_CHARACTER, {}, None)


async def test_grant_xp_and_merge_stats(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    response = await call_service(
        hass, const.SERVICE_GRANT_XP, {const.FIELD_AMOUNT: 110}, user_id
    )
    assert response["character"][const.DATA_CHARACTER_LEVEL] == 2

    response = await call_service(
        hass,
        const.SERVICE_MERGE_CHARACTER_STATS,
        {const.FIELD_STATS: {const.STAT_DEXTERITY: 2}},
        user_id,
    )
    assert response["character"][const.DATA_CHARACTER_STATS][const.STAT_DEXTERITY] == 7


async def test_evaluate_streak_service(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    quest = await _create_read_quest(hass, user_id)
    await complete_quest(hass, quest[const.DATA_ID], user_id)

    response = await call_service(hass, const.SERVICE_EVALUATE_STREAK, {}, user_id)
    assert response == {
        "streak_count": 1,
        "message": const.STREAK_MSG_MAINTAINED_FMT.format(1),
    }


async def test_reconcile_and_reset_services(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    await call_service(hass, const.SERVICE_GRANT_XP, {const.FIELD_AMOUNT: 250}, user_id)

    response = await call_service(
        hass, const.SERVICE_RECONCILE_PROGRESSION, {}, user_id
    )
    assert response["character"][const.DATA_CHARACTER_LEVEL] == 3

    response = await call_service(hass, const.SERVICE_RESET_CHARACTER, {}, user_id)
    assert response == {"deleted": 2}

    character = await get_character(hass, user_id)
    assert character[const.DATA_CHARACTER_TOTAL_XP_EARNED] == 0


async def test_get_journal_limit(
    hass: HomeAssistant,
    coordinator: LifeQuestCoordinator,
    user_id: str,
    clock: MutableClock,
) -> None:
    for amount in (5, 6, 7):
        await call_service(
            hass, const.SERVICE_GRANT_XP, {const.FIELD_AMOUNT: amount}, user_id
        )
        clock.advance(seconds=30)

    response = await call_service(
        hass, const.SERVICE_GET_JOURNAL, {const.FIELD_LIMIT: 1}, user_id
    )
    assert [entry[const.DATA_JOURNAL_XP_GAINED] for entry in response["entries"]] == [7]


# =============================================================================
# TEST: DAILY CYCLE SERVICE
# =============================================================================


async def test_run_daily_cycle_service(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    await call_service(hass, const.SERVICE_GRANT_XP, {const.FIELD_AMOUNT: 100}, user_id)
    await _create_read_quest(hass, user_id)

    response = await call_service(hass, const.SERVICE_RUN_DAILY_CYCLE, {}, user_id)
    assert response["ran"] is True
    assert response["penalty_xp"] == 25

    response = await call_service(hass, const.SERVICE_RUN_DAILY_CYCLE, {}, user_id)
    assert response["ran"] is False


async def test_service_without_entry_fails(
    hass: HomeAssistant, coordinator: LifeQuestCoordinator, user_id: str
) -> None:
    hass.data[const.DOMAIN].clear()

    with pytest.raises(HomeAssistantError):
        await call_service(hass, const.SERVICE_GET_CHARACTER, {}, user_id)
