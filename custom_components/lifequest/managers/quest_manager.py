"""Quest Manager - Quest creation, status transitions and subtasks.

This manager handles all quest workflow operations:
- Creating quests from definitions (QuestEngine.build_quest)
- Status changes driven by the QuestEngine transition table
- Subtask toggling with progress-driven completion and reversal
- Batch transitions used by the daily cycle

ARCHITECTURE:
- QuestManager = STATEFUL workflow (per-quest locks, store writes, events)
- QuestEngine = transition table and quest math (STATELESS)
- CharacterManager applies every XP/stat side effect

Concurrency: each status change holds a per-(user, quest) lock AND writes the
new status with the status it read as a precondition, so two overlapping
requests can never both grant or both revoke rewards.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any
import uuid

from .. import const
from ..engines.quest_engine import QuestEngine, QuestEvent, TransitionPlan
from ..exceptions import InvalidStateError, NotFoundError
from ..store import user_path
from ..utils.dt_utils import dt_to_iso
from .base_manager import BaseManager, require_user
from .character_manager import quests_collection

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import LifeQuestCoordinator
    from ..type_defs import QuestData


def quest_path(user_id: str, quest_id: str) -> str:
    return user_path(user_id, const.COLLECTION_QUESTS, quest_id)


def _replace_quest(
    quests: list[dict[str, Any]], quest_id: str, fields: dict[str, Any]
) -> list[dict[str, Any]]:
    """Projection helper: merge fields into one quest of a cached list."""
    return [
        {**quest, **fields} if quest.get(const.DATA_ID) == quest_id else quest
        for quest in quests
    ]


class QuestManager(BaseManager):
    """Manager for the quest lifecycle.

    Responsibilities:
    - Validate requested status changes against the transition table
    - Persist status first, then apply the planned side effects
    - Keep the quest collection cache entry in step with every write
    - Emit SIGNAL_SUFFIX_QUEST_STATUS_CHANGED
    """

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: LifeQuestCoordinator,
    ) -> None:
        super().__init__(hass, coordinator)
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    def _lock(self, user_id: str, quest_id: str) -> asyncio.Lock:
        return self._locks.setdefault((user_id, quest_id), asyncio.Lock())

    def release_locks(self, user_id: str) -> None:
        """Drop the idle quest locks held for a user."""
        for key in [key for key in self._locks if key[0] == user_id]:
            if not self._locks[key].locked():
                del self._locks[key]

    # -------------------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------------------

    async def async_get_quests(
        self, user_id: str | None, force_refresh: bool = False
    ) -> list[QuestData]:
        """Return all of the user's quests through the cache."""
        user_id = require_user(user_id)
        return await self.cache.async_get(
            user_id,
            const.CACHE_ENTITY_QUESTS,
            lambda: self.store.async_list_documents(quests_collection(user_id)),
            force_refresh,
        )

    async def async_get_quest(self, user_id: str | None, quest_id: str) -> QuestData:
        """Read one quest straight from the store.

        Raises:
            NotFoundError: If the quest does not exist
        """
        user_id = require_user(user_id)
        quest = await self.store.async_get_document(quest_path(user_id, quest_id))
        if quest is None:
            raise NotFoundError(const.ERROR_QUEST_NOT_FOUND_FMT.format(quest_id))
        return quest  # type: ignore[return-value]

    # -------------------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------------------

    async def async_create_quest(
        self, user_id: str | None, definition: dict[str, Any]
    ) -> QuestData:
        """Create a quest in the initial status for its type."""
        user_id = require_user(user_id)
        quest = QuestEngine.build_quest(definition, uuid.uuid4().hex, self.now())
        quest_id = quest[const.DATA_ID]

        with self.cache.optimistic_update(
            user_id, const.CACHE_ENTITY_QUESTS, lambda quests: [*quests, quest]
        ):
            await self.store.async_set_document(quest_path(user_id, quest_id), quest)

        const.LOGGER.info(
            "INFO: Created %s quest '%s' (%s) for user %s in status %s",
            quest[const.DATA_QUEST_TYPE],
            quest[const.DATA_QUEST_TITLE],
            quest_id,
            user_id,
            quest[const.DATA_QUEST_STATUS],
        )
        self.coordinator.async_notify_listeners()
        return quest

    # -------------------------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------------------------

    async def async_set_quest_status(
        self, user_id: str | None, quest_id: str, status: str
    ) -> QuestData:
        """Move a quest to the requested status.

        Requesting the current status is a no-op with no side effects.

        Raises:
            NotFoundError: If the quest does not exist
            InvalidStateError: If the transition is not allowed, or the quest
                               changed underneath this request
        """
        user_id = require_user(user_id)
        try:
            target = const.QuestStatus(status)
        except ValueError as err:
            raise InvalidStateError(
                const.ERROR_INVALID_TRANSITION_FMT.format(quest_id, "?", status)
            ) from err

        async with self._lock(user_id, quest_id):
            quest = await self.async_get_quest(user_id, quest_id)
            return await self._async_transition(user_id, quest, target)

    async def async_toggle_subtask(
        self, user_id: str | None, quest_id: str, task_index: int
    ) -> QuestData:
        """Flip one subtask and recompute progress.

        Reaching 100% completes the quest; dropping below 100% on a Completed
        quest reopens it (with reward reversal).
        """
        user_id = require_user(user_id)
        async with self._lock(user_id, quest_id):
            quest = await self.async_get_quest(user_id, quest_id)
            tasks = list(quest.get(const.DATA_QUEST_TASKS) or [])
            if not 0 <= task_index < len(tasks):
                raise InvalidStateError(
                    const.ERROR_TASK_INDEX_FMT.format(quest_id, task_index)
                )

            task = dict(tasks[task_index])
            task[const.DATA_QUEST_TASK_COMPLETED] = not task.get(
                const.DATA_QUEST_TASK_COMPLETED, False
            )
            tasks[task_index] = task
            progress = QuestEngine.calculate_progress(tasks)
            fields = {const.DATA_QUEST_TASKS: tasks, const.DATA_QUEST_PROGRESS: progress}
            status = quest.get(const.DATA_QUEST_STATUS)

            if progress == 100 and status != const.QuestStatus.COMPLETED:
                return await self._async_transition(
                    user_id, quest, const.QuestStatus.COMPLETED, fields
                )
            if progress < 100 and status == const.QuestStatus.COMPLETED:
                return await self._async_transition(
                    user_id, quest, const.QuestStatus.IN_PROGRESS, fields
                )

            fields[const.DATA_UPDATED_AT] = dt_to_iso(self.now())
            return await self._async_write_quest(
                user_id, quest_id, fields, {const.DATA_QUEST_STATUS: status}
            )

    async def _async_transition(
        self,
        user_id: str,
        quest: QuestData,
        target: const.QuestStatus,
        extra_fields: dict[str, Any] | None = None,
    ) -> QuestData:
        """Plan, persist and apply one transition. Caller holds the quest lock."""
        quest_id = quest[const.DATA_ID]
        current = quest.get(const.DATA_QUEST_STATUS)
        if current == target:
            const.LOGGER.debug(
                "DEBUG: Quest %s already %s, nothing to do", quest_id, target
            )
            return quest

        event = QuestEngine.event_for_target(current, target)
        plan = QuestEngine.plan_transition(quest, event) if event else None
        if plan is None or plan.to_status != target:
            const.LOGGER.warning(
                "WARNING: Rejected transition of quest %s from %s to %s",
                quest_id,
                current,
                target,
            )
            raise InvalidStateError(
                const.ERROR_INVALID_TRANSITION_FMT.format(quest_id, current, target)
            )

        updated = await self._async_persist_plan(user_id, quest, plan, extra_fields)
        await self._async_run_effects(user_id, [(updated, plan)])
        return updated

    async def _async_persist_plan(
        self,
        user_id: str,
        quest: QuestData,
        plan: TransitionPlan,
        extra_fields: dict[str, Any] | None = None,
    ) -> QuestData:
        """Write the new status with the read status as precondition."""
        fields = {
            **(extra_fields or {}),
            const.DATA_QUEST_STATUS: str(plan.to_status),
            const.DATA_UPDATED_AT: dt_to_iso(self.now()),
        }
        const.LOGGER.debug(
            "DEBUG: Quest %s: %s --%s--> %s (effects: %s)",
            quest[const.DATA_ID],
            plan.from_status,
            plan.event,
            plan.to_status,
            sorted(plan.effects),
        )
        return await self._async_write_quest(
            user_id,
            quest[const.DATA_ID],
            fields,
            {const.DATA_QUEST_STATUS: str(plan.from_status)},
        )

    async def _async_write_quest(
        self,
        user_id: str,
        quest_id: str,
        fields: dict[str, Any],
        expected: dict[str, Any],
    ) -> QuestData:
        with self.cache.optimistic_update(
            user_id,
            const.CACHE_ENTITY_QUESTS,
            lambda quests: _replace_quest(quests, quest_id, fields),
        ):
            updated = await self.store.async_update_document(
                quest_path(user_id, quest_id), fields, expected
            )
        return updated  # type: ignore[return-value]

    async def _async_run_effects(
        self, user_id: str, transitioned: list[tuple[QuestData, TransitionPlan]]
    ) -> None:
        """Apply effects for status writes that already landed.

        Runs in a hass-tracked task shielded from the caller: once a status
        is written, its XP, stats and journal entry land even if the request
        is cancelled.
        """

        async def _apply_all() -> None:
            for quest, plan in transitioned:
                await self._async_apply_effects(user_id, quest, plan)

        await asyncio.shield(
            self.hass.async_create_task(
                _apply_all(), f"{const.DOMAIN}_quest_effects_{user_id}"
            )
        )

    async def _async_apply_effects(
        self, user_id: str, quest: QuestData, plan: TransitionPlan
    ) -> None:
        """Apply the side effects of a persisted transition, then notify."""
        characters = self.coordinator.character_manager
        if plan.grants_rewards:
            await characters.async_apply_quest_rewards(user_id, quest)
        if plan.revokes_rewards:
            await characters.async_revoke_quest_rewards(user_id, quest)
        if plan.evaluates_streak:
            await characters.async_evaluate_streak(user_id)

        const.LOGGER.info(
            "INFO: Quest %s for user %s moved from %s to %s",
            quest[const.DATA_ID],
            user_id,
            plan.from_status,
            plan.to_status,
        )
        self.emit(
            const.SIGNAL_SUFFIX_QUEST_STATUS_CHANGED,
            user_id=user_id,
            quest_id=quest[const.DATA_ID],
            old_status=str(plan.from_status),
            new_status=str(plan.to_status),
            event=str(plan.event),
        )
        self.coordinator.async_notify_listeners()

    async def async_batch_transition(
        self, user_id: str, quests: list[QuestData], event: QuestEvent
    ) -> list[QuestData]:
        """Apply one event to many quests with a single atomic store write.

        Quests for which the event is illegal are skipped. Every written quest
        carries its read status as precondition; one conflict rejects the batch.

        Returns:
            The quests that were transitioned, with their new fields
        """
        now_iso = dt_to_iso(self.now())
        planned: list[tuple[QuestData, TransitionPlan, dict[str, Any]]] = []
        for quest in quests:
            plan = QuestEngine.plan_transition(quest, event)
            if plan is None:
                const.LOGGER.debug(
                    "DEBUG: Skipping quest %s: %s not allowed from %s",
                    quest.get(const.DATA_ID),
                    event,
                    quest.get(const.DATA_QUEST_STATUS),
                )
                continue
            fields = {
                const.DATA_QUEST_STATUS: str(plan.to_status),
                const.DATA_UPDATED_AT: now_iso,
            }
            planned.append((quest, plan, fields))

        if not planned:
            return []

        def _project(cached: list[dict[str, Any]]) -> list[dict[str, Any]]:
            for quest, _plan, fields in planned:
                cached = _replace_quest(cached, quest[const.DATA_ID], fields)
            return cached

        with self.cache.optimistic_update(user_id, const.CACHE_ENTITY_QUESTS, _project):
            await self.store.async_batch_update(
                [
                    (
                        quest_path(user_id, quest[const.DATA_ID]),
                        fields,
                        {const.DATA_QUEST_STATUS: str(plan.from_status)},
                    )
                    for quest, plan, fields in planned
                ]
            )

        transitioned: list[tuple[QuestData, TransitionPlan]] = [
            ({**quest, **fields}, plan)  # type: ignore[misc]
            for quest, plan, fields in planned
        ]
        await self._async_run_effects(user_id, transitioned)
        return [quest for quest, _plan in transitioned]
