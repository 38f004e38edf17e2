"""Quest Engine - Pure logic for quest lifecycle transitions and definitions.

This engine provides stateless, pure Python functions for:
- The transition table (from status x event -> to status + side effects)
- Mapping a requested target status onto a lifecycle event
- Building new quest documents with type-dependent defaults
- Subtask progress and validity-window checks

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
Locking, persistence and applying the planned effects belong in QuestManager.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_parse, dt_to_iso, start_of_local_day

if TYPE_CHECKING:
    from ..type_defs import QuestData, QuestTask


# =============================================================================
# LIFECYCLE EVENTS AND EFFECTS
# =============================================================================


class QuestEvent(StrEnum):
    """Things that can happen to a quest."""

    START = "start"
    COMPLETE = "complete"
    UNDO = "undo"
    FAIL = "fail"
    RESET = "reset"


class QuestEffect(StrEnum):
    """Side effects a transition asks the manager to apply."""

    GRANT_REWARDS = "grant_rewards"
    REVOKE_REWARDS = "revoke_rewards"
    EVALUATE_STREAK = "evaluate_streak"


@dataclass(frozen=True)
class TransitionRule:
    """One row of the transition table."""

    to_status: const.QuestStatus
    effects: frozenset[QuestEffect] = frozenset()


@dataclass(frozen=True)
class TransitionPlan:
    """Effect of a quest transition, returned by QuestEngine.plan_transition().

    Attributes:
        event: Event that drives the transition
        from_status: Status read at planning time (used as the write precondition)
        to_status: Status to persist
        effects: Side effects to apply after the status write
    """

    event: QuestEvent
    from_status: const.QuestStatus
    to_status: const.QuestStatus
    effects: frozenset[QuestEffect]

    @property
    def grants_rewards(self) -> bool:
        return QuestEffect.GRANT_REWARDS in self.effects

    @property
    def revokes_rewards(self) -> bool:
        return QuestEffect.REVOKE_REWARDS in self.effects

    @property
    def evaluates_streak(self) -> bool:
        return QuestEffect.EVALUATE_STREAK in self.effects


_GRANT = frozenset({QuestEffect.GRANT_REWARDS})
_REVOKE = frozenset({QuestEffect.REVOKE_REWARDS})

Status = const.QuestStatus


# =============================================================================
# QUEST ENGINE
# =============================================================================


class QuestEngine:
    """Pure logic engine for the quest lifecycle.

    All methods are static - no instance state.
    """

    # (from status, event) -> rule. Anything missing is illegal.
    TRANSITIONS: dict[tuple[const.QuestStatus, QuestEvent], TransitionRule] = {
        # From AVAILABLE: pick up, finish directly, or miss it
        (Status.AVAILABLE, QuestEvent.START): TransitionRule(Status.IN_PROGRESS),
        (Status.AVAILABLE, QuestEvent.COMPLETE): TransitionRule(Status.COMPLETED, _GRANT),
        (Status.AVAILABLE, QuestEvent.FAIL): TransitionRule(Status.FAILED),
        # From IN_PROGRESS
        (Status.IN_PROGRESS, QuestEvent.COMPLETE): TransitionRule(
            Status.COMPLETED, _GRANT
        ),
        (Status.IN_PROGRESS, QuestEvent.FAIL): TransitionRule(Status.FAILED),
        # From COMPLETED: user unchecks, or the daily reset reopens it
        (Status.COMPLETED, QuestEvent.UNDO): TransitionRule(Status.IN_PROGRESS, _REVOKE),
        (Status.COMPLETED, QuestEvent.RESET): TransitionRule(Status.IN_PROGRESS),
        # From FAILED: retry or daily reset
        (Status.FAILED, QuestEvent.START): TransitionRule(Status.IN_PROGRESS),
        (Status.FAILED, QuestEvent.COMPLETE): TransitionRule(Status.COMPLETED, _GRANT),
        (Status.FAILED, QuestEvent.RESET): TransitionRule(Status.IN_PROGRESS),
    }

    # =========================================================================
    # STATE TRANSITION LOGIC
    # =========================================================================

    @staticmethod
    def can_transition(from_status: str, event: QuestEvent) -> bool:
        """Check whether an event is legal from a status."""
        try:
            status = const.QuestStatus(from_status)
        except ValueError:
            return False
        return (status, event) in QuestEngine.TRANSITIONS

    @staticmethod
    def event_for_target(
        current_status: str, target_status: str
    ) -> QuestEvent | None:
        """Map a user-requested target status onto a lifecycle event.

        Returns:
            The event, or None when the target is not something a user may ask
            for (Available is only ever an initial status).
        """
        match target_status:
            case const.QuestStatus.COMPLETED:
                return QuestEvent.COMPLETE
            case const.QuestStatus.FAILED:
                return QuestEvent.FAIL
            case const.QuestStatus.IN_PROGRESS:
                if current_status == const.QuestStatus.COMPLETED:
                    return QuestEvent.UNDO
                return QuestEvent.START
        return None

    @staticmethod
    def plan_transition(
        quest: QuestData | dict[str, Any], event: QuestEvent
    ) -> TransitionPlan | None:
        """Compute the transition for an event against a quest's current state.

        Daily quests additionally re-evaluate the streak whenever rewards move.

        Returns:
            TransitionPlan, or None if the event is illegal from the current status
        """
        try:
            from_status = const.QuestStatus(quest.get(const.DATA_QUEST_STATUS))
        except ValueError:
            return None

        rule = QuestEngine.TRANSITIONS.get((from_status, event))
        if rule is None:
            return None

        effects = set(rule.effects)
        if effects and quest.get(const.DATA_QUEST_TYPE) == const.QuestType.DAILY:
            effects.add(QuestEffect.EVALUATE_STREAK)

        return TransitionPlan(
            event=event,
            from_status=from_status,
            to_status=rule.to_status,
            effects=frozenset(effects),
        )

    # =========================================================================
    # QUEST DEFINITIONS
    # =========================================================================

    @staticmethod
    def initial_status_for_type(quest_type: str) -> const.QuestStatus:
        """Dungeons and boss fights start underway; everything else waits."""
        if quest_type in const.IN_PROGRESS_ON_CREATE_TYPES:
            return const.QuestStatus.IN_PROGRESS
        return const.QuestStatus.AVAILABLE

    @staticmethod
    def build_quest(
        definition: dict[str, Any], quest_id: str, now: datetime
    ) -> QuestData:
        """Build a quest document from a caller-supplied definition.

        Fills type-dependent defaults (initial status, repeat, penalty
        eligibility, dungeon placeholder tasks), normalizes timestamps to UTC
        ISO strings and drops keys whose value is None.
        """
        quest_type = const.QuestType(definition[const.DATA_QUEST_TYPE])
        is_daily = quest_type == const.QuestType.DAILY
        now_iso = dt_to_iso(now)

        tasks = [
            QuestEngine._normalize_task(task)
            for task in definition.get(const.DATA_QUEST_TASKS) or []
        ]
        if not tasks and quest_type == const.QuestType.DUNGEON:
            tasks = [
                {
                    const.DATA_QUEST_TASK_TITLE: const.DEFAULT_DUNGEON_TASK_TITLE_FMT.format(
                        index
                    ),
                    const.DATA_QUEST_TASK_COMPLETED: False,
                }
                for index in range(1, const.DEFAULT_DUNGEON_TASK_COUNT + 1)
            ]

        repeat = definition.get(const.DATA_QUEST_REPEAT)
        if repeat is None:
            repeat = const.QuestRepeat.DAILY if is_daily else const.QuestRepeat.NONE

        penalty = definition.get(const.DATA_QUEST_PENALTY_FOR_MISSING)
        if penalty is None:
            penalty = is_daily

        quest: dict[str, Any] = {
            const.DATA_ID: quest_id,
            const.DATA_QUEST_TITLE: definition[const.DATA_QUEST_TITLE],
            const.DATA_QUEST_DESCRIPTION: definition.get(const.DATA_QUEST_DESCRIPTION)
            or "",
            const.DATA_QUEST_TYPE: str(quest_type),
            const.DATA_QUEST_STATUS: str(QuestEngine.initial_status_for_type(quest_type)),
            const.DATA_QUEST_XP_REWARD: max(
                0, int(definition.get(const.DATA_QUEST_XP_REWARD) or 0)
            ),
            const.DATA_QUEST_STAT_REWARDS: {
                stat: int(value)
                for stat, value in (
                    definition.get(const.DATA_QUEST_STAT_REWARDS) or {}
                ).items()
                if value is not None and int(value) > 0
            },
            const.DATA_QUEST_REPEAT: str(repeat),
            const.DATA_QUEST_PENALTY_FOR_MISSING: bool(penalty),
            const.DATA_QUEST_PROGRESS: QuestEngine.calculate_progress(tasks)
            if tasks
            else 0,
            const.DATA_QUEST_TASKS: tasks or None,
            const.DATA_QUEST_CATEGORY: definition.get(const.DATA_QUEST_CATEGORY),
            const.DATA_QUEST_PROOF_REQUIRED: [
                str(proof) for proof in definition[const.DATA_QUEST_PROOF_REQUIRED]
            ]
            if definition.get(const.DATA_QUEST_PROOF_REQUIRED)
            else None,
            const.DATA_QUEST_DEADLINE: QuestEngine._iso_or_none(
                definition.get(const.DATA_QUEST_DEADLINE)
            ),
            const.DATA_QUEST_END_DATE: QuestEngine._iso_or_none(
                definition.get(const.DATA_QUEST_END_DATE)
            ),
            const.DATA_CREATED_AT: now_iso,
            const.DATA_UPDATED_AT: now_iso,
        }
        return {key: value for key, value in quest.items() if value is not None}  # type: ignore[return-value]

    @staticmethod
    def _normalize_task(task: Any) -> QuestTask:
        """Accept a bare title or a {title, completed} mapping."""
        if isinstance(task, str):
            return {
                const.DATA_QUEST_TASK_TITLE: task,
                const.DATA_QUEST_TASK_COMPLETED: False,
            }
        return {
            const.DATA_QUEST_TASK_TITLE: str(task.get(const.DATA_QUEST_TASK_TITLE, "")),
            const.DATA_QUEST_TASK_COMPLETED: bool(
                task.get(const.DATA_QUEST_TASK_COMPLETED, False)
            ),
        }

    @staticmethod
    def _iso_or_none(value: Any) -> str | None:
        parsed = dt_parse(value)
        return dt_to_iso(parsed) if parsed else None

    # =========================================================================
    # QUERIES
    # =========================================================================

    @staticmethod
    def calculate_progress(tasks: list[QuestTask] | list[dict[str, Any]]) -> int:
        """Percentage of completed subtasks, rounded to a whole number.

        Example:
            1 of 3 done → 33, 2 of 3 done → 67
        """
        if not tasks:
            return 0
        completed = sum(
            1 for task in tasks if task.get(const.DATA_QUEST_TASK_COMPLETED)
        )
        # Half-up, not banker's rounding
        return int(completed * 100 / len(tasks) + 0.5)

    @staticmethod
    def is_within_validity(quest: QuestData | dict[str, Any], now: datetime) -> bool:
        """Check that a quest's end date has not passed.

        A quest with no end date is always valid. An end date earlier than
        today's local midnight means the quest is retired.
        """
        end_date = dt_parse(quest.get(const.DATA_QUEST_END_DATE))
        if end_date is None:
            return True
        return end_date >= start_of_local_day(now)

    @staticmethod
    def is_daily(quest: QuestData | dict[str, Any]) -> bool:
        return quest.get(const.DATA_QUEST_TYPE) == const.QuestType.DAILY
