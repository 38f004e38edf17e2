"""Character Manager - Progression, stats, streaks and the XP journal.

This manager handles all character-related operations:
- Loading (and lazily creating) a user's character
- XP grants and removals through ProgressionEngine
- Additive stat deltas through StatEngine
- Quest reward grant/revoke and the daily penalty, each with a journal entry
- Streak evaluation through StreakEngine
- Progression reconciliation and full character reset

ARCHITECTURE:
- CharacterManager = STATEFUL character operations (one lock per user)
- ProgressionEngine / StatEngine / StreakEngine = pure math (STATELESS)
- QuestManager and DailyCycleManager call in here for every XP side effect

Emits CHARACTER_UPDATED on every write, LEVEL_UP when the level changes and
STREAK_CHANGED when the streak count changes.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.progression_engine import ProgressionEngine
from ..engines.stat_engine import StatEngine
from ..engines.streak_engine import StreakEngine
from ..store import user_path
from ..utils.dt_utils import dt_parse, dt_to_iso, end_of_local_day, start_of_local_day
from .base_manager import BaseManager, require_user

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import LifeQuestCoordinator
    from ..type_defs import (
        AttributeMap,
        CharacterData,
        JournalEntry,
        QuestData,
        StreakStatus,
    )


def character_path(user_id: str) -> str:
    return user_path(user_id, const.DOC_CHARACTER)


def journal_collection(user_id: str) -> str:
    return user_path(user_id, const.COLLECTION_JOURNAL)


def quests_collection(user_id: str) -> str:
    return user_path(user_id, const.COLLECTION_QUESTS)


class CharacterManager(BaseManager):
    """Manager for character progression and the XP journal.

    Responsibilities:
    - Serialize read-modify-write of a user's character
    - Append one journal entry per XP-affecting event
    - Keep the character cache entry in step with every write

    NOT responsible for:
    - Quest status (QuestManager)
    - Deciding when the daily penalty applies (DailyCycleManager)
    """

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: LifeQuestCoordinator,
    ) -> None:
        super().__init__(hass, coordinator)
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def stat_floor(self) -> int | None:
        return self.coordinator.stat_floor

    def _lock(self, user_id: str) -> asyncio.Lock:
        return self._locks.setdefault(user_id, asyncio.Lock())

    # -------------------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------------------

    async def async_get_character(
        self, user_id: str | None, force_refresh: bool = False
    ) -> CharacterData:
        """Return the user's character through the cache, creating it if needed."""
        user_id = require_user(user_id)
        return await self.cache.async_get(
            user_id,
            const.CACHE_ENTITY_CHARACTER,
            lambda: self._async_load_character(user_id),
            force_refresh,
        )

    async def _async_load_character(self, user_id: str) -> CharacterData:
        """Read the character from the store.

        A missing character is created with defaults; a character missing any
        of the standard stats is back-filled and saved.
        """
        path = character_path(user_id)
        character = await self.store.async_get_document(path)

        if character is None:
            character = self._build_initial_character(user_id)
            await self.store.async_set_document(path, character)
            const.LOGGER.info("INFO: Created initial character for user %s", user_id)
            return character  # type: ignore[return-value]

        stats, changed = StatEngine.fill_missing(character.get(const.DATA_CHARACTER_STATS))
        if changed:
            const.LOGGER.info(
                "INFO: Back-filling missing stats for user %s character", user_id
            )
            character = await self.store.async_update_document(
                path, {const.DATA_CHARACTER_STATS: stats}
            )
        return character  # type: ignore[return-value]

    def _build_initial_character(self, user_id: str) -> dict[str, Any]:
        now_iso = dt_to_iso(self.now())
        return {
            const.DATA_CHARACTER_USER_ID: user_id,
            const.DATA_CHARACTER_NAME: const.DEFAULT_CHARACTER_NAME,
            const.DATA_CHARACTER_CLASS: const.DEFAULT_CHARACTER_CLASS,
            const.DATA_CHARACTER_LEVEL: const.STARTING_LEVEL,
            const.DATA_CHARACTER_XP: 0,
            const.DATA_CHARACTER_XP_TO_NEXT_LEVEL: const.XP_BASE_THRESHOLD,
            const.DATA_CHARACTER_TOTAL_XP_EARNED: 0,
            const.DATA_CHARACTER_STATS: StatEngine.default_stats(),
            const.DATA_CHARACTER_STREAK_COUNT: 0,
            const.DATA_CHARACTER_LAST_ACTIVE: now_iso,
            const.DATA_CHARACTER_SKILLS: [],
            const.DATA_CHARACTER_INVENTORY: [],
            const.DATA_CREATED_AT: now_iso,
            const.DATA_UPDATED_AT: now_iso,
        }

    async def async_get_journal(
        self, user_id: str | None, limit: int = const.DEFAULT_JOURNAL_LIMIT
    ) -> list[JournalEntry]:
        """Return journal entries, newest first."""
        user_id = require_user(user_id)
        entries = await self.store.async_list_documents(journal_collection(user_id))
        entries.sort(
            key=lambda entry: entry.get(const.DATA_JOURNAL_TIMESTAMP) or "",
            reverse=True,
        )
        return entries[: max(0, limit)]  # type: ignore[return-value]

    async def async_has_daily_completion_on(
        self, user_id: str | None, day: date | datetime
    ) -> bool:
        """Check whether a Daily quest was completed on a local calendar day.

        Evidence is a Daily quest in Completed status whose last update falls
        within that day.
        """
        user_id = require_user(user_id)
        day_dt = dt_parse(day)
        if day_dt is None:
            return False
        day_start = start_of_local_day(day_dt)
        day_end = end_of_local_day(day_dt)

        completed = await self.store.async_list_documents(
            quests_collection(user_id),
            [
                (const.DATA_QUEST_TYPE, const.FILTER_OP_EQ, const.QuestType.DAILY),
                (const.DATA_QUEST_STATUS, const.FILTER_OP_EQ, const.QuestStatus.COMPLETED),
            ],
        )
        for quest in completed:
            updated_at = dt_parse(quest.get(const.DATA_UPDATED_AT))
            if updated_at is not None and day_start <= updated_at <= day_end:
                return True
        return False

    # -------------------------------------------------------------------------------------
    # XP and stats
    # -------------------------------------------------------------------------------------

    async def async_grant_xp(self, user_id: str | None, amount: int) -> CharacterData:
        """Grant (or, for a negative amount, remove) XP directly.

        Zero is a no-op. Recorded in the journal.
        """
        user_id = require_user(user_id)
        if amount == 0:
            return await self.async_get_character(user_id)
        entry = ProgressionEngine.create_journal_entry(
            title=const.JOURNAL_TITLE_XP_GRANTED,
            description=const.JOURNAL_DESCRIPTION_XP_GRANTED,
            xp_gained=amount,
            now=self.now(),
        )
        return await self._async_apply_change(user_id, amount, None, entry)

    async def async_merge_character_stats(
        self, user_id: str | None, delta: AttributeMap | None
    ) -> CharacterData:
        """Add a signed delta to the named stats only.

        An empty delta short-circuits before any store write.
        """
        user_id = require_user(user_id)
        if StatEngine.is_empty(delta):
            const.LOGGER.debug("DEBUG: Empty stat delta for user %s, skipping", user_id)
            return await self.async_get_character(user_id)
        return await self._async_apply_change(user_id, 0, delta, None)

    async def async_apply_quest_rewards(
        self, user_id: str, quest: QuestData | dict[str, Any]
    ) -> CharacterData:
        """Grant a quest's XP and stat rewards and journal them."""
        xp_reward = max(0, int(quest.get(const.DATA_QUEST_XP_REWARD) or 0))
        stat_rewards = StatEngine.positive_rewards(quest.get(const.DATA_QUEST_STAT_REWARDS))
        entry = ProgressionEngine.create_journal_entry(
            title=const.JOURNAL_TITLE_QUEST_COMPLETED_FMT.format(
                quest.get(const.DATA_QUEST_TITLE, "")
            ),
            description=const.JOURNAL_DESCRIPTION_QUEST_COMPLETED,
            xp_gained=xp_reward,
            now=self.now(),
            stats_gained=stat_rewards,
            quest_id=quest.get(const.DATA_ID),
        )
        return await self._async_apply_change(user_id, xp_reward, stat_rewards, entry)

    async def async_revoke_quest_rewards(
        self, user_id: str, quest: QuestData | dict[str, Any]
    ) -> CharacterData:
        """Take back a quest's XP and stat rewards.

        The live stats are reduced, but the journal entry carries an empty stat
        map so the original grant stays the historical record.
        """
        xp_reward = max(0, int(quest.get(const.DATA_QUEST_XP_REWARD) or 0))
        stat_rewards = StatEngine.positive_rewards(quest.get(const.DATA_QUEST_STAT_REWARDS))
        entry = ProgressionEngine.create_journal_entry(
            title=const.JOURNAL_TITLE_QUEST_REVERSED_FMT.format(
                quest.get(const.DATA_QUEST_TITLE, "")
            ),
            description=const.JOURNAL_DESCRIPTION_QUEST_REVERSED,
            xp_gained=-xp_reward,
            now=self.now(),
            quest_id=quest.get(const.DATA_ID),
        )
        return await self._async_apply_change(
            user_id, -xp_reward, StatEngine.negate(stat_rewards), entry
        )

    async def async_apply_penalty(
        self, user_id: str, penalty: int, quest_count: int
    ) -> CharacterData:
        """Remove an aggregate penalty and record a single journal entry."""
        entry = ProgressionEngine.create_journal_entry(
            title=const.JOURNAL_TITLE_DAILY_PENALTY,
            description=const.JOURNAL_DESCRIPTION_DAILY_PENALTY_FMT.format(
                quest_count, penalty
            ),
            xp_gained=-penalty,
            now=self.now(),
        )
        return await self._async_apply_change(user_id, -penalty, None, entry)

    async def _async_apply_change(
        self,
        user_id: str,
        xp_delta: int,
        stat_delta: AttributeMap | None,
        journal_entry: JournalEntry | None,
    ) -> CharacterData:
        """Apply an XP delta and/or stat delta, then append the journal entry.

        Positive XP goes through the incremental rollover; negative XP replays
        the curve from the reduced lifetime total.
        """
        async with self._lock(user_id):
            character = await self._async_load_character(user_id)
            old_level = int(character.get(const.DATA_CHARACTER_LEVEL, const.STARTING_LEVEL))
            total = int(character.get(const.DATA_CHARACTER_TOTAL_XP_EARNED, 0))
            partial: dict[str, Any] = {}

            if xp_delta > 0:
                result = ProgressionEngine.apply_xp(
                    old_level,
                    int(character.get(const.DATA_CHARACTER_XP, 0)),
                    int(
                        character.get(
                            const.DATA_CHARACTER_XP_TO_NEXT_LEVEL,
                            const.XP_BASE_THRESHOLD,
                        )
                    ),
                    xp_delta,
                )
                total += xp_delta
            elif xp_delta < 0:
                result = ProgressionEngine.remove_xp(total, -xp_delta)
                total = result.total_xp_earned or 0
            if xp_delta != 0:
                partial.update(
                    {
                        const.DATA_CHARACTER_LEVEL: result.level,
                        const.DATA_CHARACTER_XP: result.xp,
                        const.DATA_CHARACTER_XP_TO_NEXT_LEVEL: result.xp_to_next_level,
                        const.DATA_CHARACTER_TOTAL_XP_EARNED: total,
                    }
                )

            if not StatEngine.is_empty(stat_delta):
                partial[const.DATA_CHARACTER_STATS] = StatEngine.merge_stats(
                    character.get(const.DATA_CHARACTER_STATS, {}),
                    stat_delta,
                    self.stat_floor,
                )

            if partial:
                partial[const.DATA_UPDATED_AT] = dt_to_iso(self.now())
                character = await self._async_write_character(user_id, partial)

            if journal_entry is not None:
                await self.store.async_append_document(
                    journal_collection(user_id), dict(journal_entry)
                )

        if partial:
            new_level = int(character.get(const.DATA_CHARACTER_LEVEL, const.STARTING_LEVEL))
            self.emit(
                const.SIGNAL_SUFFIX_CHARACTER_UPDATED,
                user_id=user_id,
                xp_delta=xp_delta,
                stat_delta=dict(stat_delta or {}),
            )
            if new_level != old_level:
                const.LOGGER.info(
                    "INFO: User %s moved from level %s to level %s",
                    user_id,
                    old_level,
                    new_level,
                )
                self.emit(
                    const.SIGNAL_SUFFIX_LEVEL_UP,
                    user_id=user_id,
                    old_level=old_level,
                    new_level=new_level,
                )
            self.coordinator.async_notify_listeners()
        return character

    async def _async_write_character(
        self, user_id: str, partial: dict[str, Any]
    ) -> CharacterData:
        """Write through to the store, projecting into the cache around it."""
        with self.cache.optimistic_update(
            user_id,
            const.CACHE_ENTITY_CHARACTER,
            lambda cached: {**cached, **partial},
        ) as pending:
            updated = await self.store.async_update_document(
                character_path(user_id), partial
            )
            pending.commit(updated)
        return updated  # type: ignore[return-value]

    # -------------------------------------------------------------------------------------
    # Streak
    # -------------------------------------------------------------------------------------

    async def async_evaluate_streak(self, user_id: str | None) -> StreakStatus:
        """Re-evaluate the streak from persisted quest state.

        last_active only moves when the streak count changes; message-only
        outcomes write nothing.
        """
        user_id = require_user(user_id)
        now = self.now()
        completed_today = await self.async_has_daily_completion_on(user_id, now)

        async with self._lock(user_id):
            character = await self._async_load_character(user_id)
            old_count = int(character.get(const.DATA_CHARACTER_STREAK_COUNT, 0))
            baseline = StreakEngine.resolve_last_active(
                character.get(const.DATA_CHARACTER_LAST_ACTIVE),
                character.get(const.DATA_CREATED_AT),
                now,
            )
            decision = StreakEngine.evaluate(old_count, baseline, now, completed_today)

            if decision.persist:
                await self._async_write_character(
                    user_id,
                    {
                        const.DATA_CHARACTER_STREAK_COUNT: decision.streak_count,
                        const.DATA_CHARACTER_LAST_ACTIVE: dt_to_iso(now),
                        const.DATA_UPDATED_AT: dt_to_iso(now),
                    },
                )

        if decision.persist:
            const.LOGGER.info(
                "INFO: Streak for user %s changed from %s to %s",
                user_id,
                old_count,
                decision.streak_count,
            )
            self.emit(
                const.SIGNAL_SUFFIX_STREAK_CHANGED,
                user_id=user_id,
                old_streak=old_count,
                new_streak=decision.streak_count,
            )
            self.coordinator.async_notify_listeners()

        return {
            "streak_count": decision.streak_count,
            "message": decision.message,
        }

    # -------------------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------------------

    async def async_reconcile_progression(self, user_id: str | None) -> CharacterData:
        """Rebuild level and XP from the lifetime total.

        A character that never progressed is rebuilt from the rewards of its
        currently Completed quests instead.
        """
        user_id = require_user(user_id)
        async with self._lock(user_id):
            character = await self._async_load_character(user_id)
            total = int(character.get(const.DATA_CHARACTER_TOTAL_XP_EARNED, 0))
            if total <= 0:
                completed = await self.store.async_list_documents(
                    quests_collection(user_id),
                    [
                        (
                            const.DATA_QUEST_STATUS,
                            const.FILTER_OP_EQ,
                            const.QuestStatus.COMPLETED,
                        )
                    ],
                )
                total = sum(
                    max(0, int(quest.get(const.DATA_QUEST_XP_REWARD) or 0))
                    for quest in completed
                )

            result = ProgressionEngine.progression_from_total(total)
            character = await self._async_write_character(
                user_id,
                {
                    const.DATA_CHARACTER_LEVEL: result.level,
                    const.DATA_CHARACTER_XP: result.xp,
                    const.DATA_CHARACTER_XP_TO_NEXT_LEVEL: result.xp_to_next_level,
                    const.DATA_CHARACTER_TOTAL_XP_EARNED: result.total_xp_earned,
                    const.DATA_UPDATED_AT: dt_to_iso(self.now()),
                },
            )

        const.LOGGER.info(
            "INFO: Reconciled progression for user %s: level %s, %s/%s XP",
            user_id,
            result.level,
            result.xp,
            result.xp_to_next_level,
        )
        self.emit(const.SIGNAL_SUFFIX_CHARACTER_UPDATED, user_id=user_id)
        self.coordinator.async_notify_listeners()
        return character

    async def async_reset_character(self, user_id: str | None) -> int:
        """Delete the character, all quests, all journal entries and the marker.

        Returns:
            Number of documents deleted
        """
        user_id = require_user(user_id)
        async with self._lock(user_id):
            deleted = await self.store.async_delete_prefix(
                user_path(user_id)
            )
            self.cache.invalidate(user_id)
        self.coordinator.quest_manager.release_locks(user_id)

        const.LOGGER.info(
            "INFO: Reset character for user %s (%s documents deleted)", user_id, deleted
        )
        self.emit(const.SIGNAL_SUFFIX_CHARACTER_UPDATED, user_id=user_id, reset=True)
        self.coordinator.async_notify_listeners()
        return deleted
