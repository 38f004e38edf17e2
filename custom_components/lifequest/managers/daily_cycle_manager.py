"""Daily Cycle Manager - Once-per-day evaluation and reset of Daily quests.

Runs at most once per local calendar day per user, gated by a marker document
(users/{uid}/meta/daily_cycle). Triggered by the caller at session start; no
timer is scheduled.

Order matters: evaluation (fail + penalize) always runs before reset
(reopen), otherwise a quest left incomplete would be reopened unpenalized.
The marker records each phase on its own: a finished evaluation is never
repeated the same day, while a reset that failed is retried on the next run.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.progression_engine import ProgressionEngine
from ..engines.quest_engine import QuestEngine, QuestEvent
from ..store import user_path
from ..utils.dt_utils import dt_parse, dt_to_iso, start_of_local_day
from .base_manager import BaseManager, require_user
from .character_manager import quests_collection

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.core import HomeAssistant

    from ..coordinator import LifeQuestCoordinator
    from ..type_defs import DailyCycleResult, QuestData


def daily_cycle_marker_path(user_id: str) -> str:
    return user_path(user_id, const.COLLECTION_META, const.DOC_DAILY_CYCLE)


def _phase_done_today(marker: dict[str, Any], key: str, now: datetime) -> bool:
    last_run = dt_parse(marker.get(key))
    if last_run is None:
        return False
    return start_of_local_day(last_run) >= start_of_local_day(now)


class DailyCycleManager(BaseManager):
    """Manager for the daily evaluation/reset batch."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: LifeQuestCoordinator,
    ) -> None:
        super().__init__(hass, coordinator)
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def penalty_ratio(self) -> float:
        return self.coordinator.daily_penalty_ratio

    async def _async_get_marker(self, user_id: str) -> dict[str, Any]:
        return await self.store.async_get_document(daily_cycle_marker_path(user_id)) or {}

    async def _async_mark_phase(
        self, user_id: str, marker: dict[str, Any], key: str, now: datetime
    ) -> dict[str, Any]:
        marker = {**marker, key: dt_to_iso(now)}
        await self.store.async_set_document(daily_cycle_marker_path(user_id), marker)
        return marker

    async def async_already_ran_today(self, user_id: str, now: datetime) -> bool:
        """Check that both phases are marked for today's local calendar day."""
        marker = await self._async_get_marker(user_id)
        return _phase_done_today(
            marker, const.DATA_DAILY_CYCLE_LAST_EVALUATED, now
        ) and _phase_done_today(marker, const.DATA_DAILY_CYCLE_LAST_RESET, now)

    async def async_run_daily_cycle(self, user_id: str | None) -> DailyCycleResult:
        """Evaluate yesterday's Daily quests, then reopen the repeating ones.

        Returns:
            DailyCycleResult; ran is False when the cycle already ran today
        """
        user_id = require_user(user_id)
        async with self._locks.setdefault(user_id, asyncio.Lock()):
            now = self.now()
            if await self.async_already_ran_today(user_id, now):
                const.LOGGER.debug(
                    "DEBUG: Daily cycle already ran today for user %s", user_id
                )
                return {
                    "ran": False,
                    "quests_failed": [],
                    "penalty_xp": 0,
                    "quests_reset": [],
                }

            marker = await self._async_get_marker(user_id)
            failed: list[QuestData] = []
            penalty = 0
            if _phase_done_today(marker, const.DATA_DAILY_CYCLE_LAST_EVALUATED, now):
                const.LOGGER.warning(
                    "WARNING: Retrying daily reset for user %s after an earlier failure",
                    user_id,
                )
            else:
                failed, penalty = await self._async_evaluate(user_id, now)
                marker = await self._async_mark_phase(
                    user_id, marker, const.DATA_DAILY_CYCLE_LAST_EVALUATED, now
                )

            reset = await self._async_reset(user_id, now)
            await self._async_mark_phase(
                user_id, marker, const.DATA_DAILY_CYCLE_LAST_RESET, now
            )

        result: DailyCycleResult = {
            "ran": True,
            "quests_failed": [quest[const.DATA_ID] for quest in failed],
            "penalty_xp": penalty,
            "quests_reset": [quest[const.DATA_ID] for quest in reset],
        }
        const.LOGGER.info(
            "INFO: Daily cycle for user %s: %s failed, %s XP penalty, %s reset",
            user_id,
            len(failed),
            penalty,
            len(reset),
        )
        self.emit(const.SIGNAL_SUFFIX_DAILY_CYCLE_COMPLETED, user_id=user_id, **result)
        return result

    async def _async_evaluate(
        self, user_id: str, now: datetime
    ) -> tuple[list[QuestData], int]:
        """Fail penalty-eligible Daily quests left open and apply one penalty.

        Quests already Failed are not penalized again; quests past their end
        date are retired and ignored.
        """
        candidates = await self.store.async_list_documents(
            quests_collection(user_id),
            [
                (const.DATA_QUEST_TYPE, const.FILTER_OP_EQ, const.QuestType.DAILY),
                (
                    const.DATA_QUEST_STATUS,
                    const.FILTER_OP_NOT_IN,
                    (const.QuestStatus.COMPLETED, const.QuestStatus.FAILED),
                ),
                (const.DATA_QUEST_PENALTY_FOR_MISSING, const.FILTER_OP_EQ, True),
            ],
        )
        eligible = [
            quest for quest in candidates if QuestEngine.is_within_validity(quest, now)
        ]
        if not eligible:
            return [], 0

        failed = await self.coordinator.quest_manager.async_batch_transition(
            user_id, eligible, QuestEvent.FAIL
        )
        penalty = ProgressionEngine.calculate_penalty(
            [int(quest.get(const.DATA_QUEST_XP_REWARD) or 0) for quest in failed],
            self.penalty_ratio,
        )
        if penalty > 0:
            await self.coordinator.character_manager.async_apply_penalty(
                user_id, penalty, len(failed)
            )
        return failed, penalty

    async def _async_reset(self, user_id: str, now: datetime) -> list[QuestData]:
        """Reopen repeating Daily quests that are Completed or Failed."""
        candidates = await self.store.async_list_documents(
            quests_collection(user_id),
            [
                (const.DATA_QUEST_TYPE, const.FILTER_OP_EQ, const.QuestType.DAILY),
                (const.DATA_QUEST_REPEAT, const.FILTER_OP_EQ, const.QuestRepeat.DAILY),
                (
                    const.DATA_QUEST_STATUS,
                    const.FILTER_OP_IN,
                    (const.QuestStatus.COMPLETED, const.QuestStatus.FAILED),
                ),
            ],
        )
        eligible = [
            quest for quest in candidates if QuestEngine.is_within_validity(quest, now)
        ]
        if not eligible:
            return []
        return await self.coordinator.quest_manager.async_batch_transition(
            user_id, eligible, QuestEvent.RESET
        )
