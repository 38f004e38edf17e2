"""Tests for QuestEngine - pure logic, no HA fixtures needed."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from custom_components.lifequest import const
from custom_components.lifequest.engines.quest_engine import (
    QuestEffect,
    QuestEngine,
    QuestEvent,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)
Status = const.QuestStatus


def _quest(status: str, quest_type: str = const.QuestType.SIDE_QUEST) -> dict:
    return {
        const.DATA_ID: "q1",
        const.DATA_QUEST_STATUS: status,
        const.DATA_QUEST_TYPE: quest_type,
        const.DATA_QUEST_XP_REWARD: 50,
    }


# =============================================================================
# TEST: TRANSITION TABLE
# =============================================================================


class TestTransitions:
    """Test the lifecycle transition table."""

    @pytest.mark.parametrize(
        ("from_status", "event", "to_status", "effects"),
        [
            (Status.AVAILABLE, QuestEvent.START, Status.IN_PROGRESS, set()),
            (
                Status.AVAILABLE,
                QuestEvent.COMPLETE,
                Status.COMPLETED,
                {QuestEffect.GRANT_REWARDS},
            ),
            (Status.AVAILABLE, QuestEvent.FAIL, Status.FAILED, set()),
            (
                Status.IN_PROGRESS,
                QuestEvent.COMPLETE,
                Status.COMPLETED,
                {QuestEffect.GRANT_REWARDS},
            ),
            (Status.IN_PROGRESS, QuestEvent.FAIL, Status.FAILED, set()),
            (
                Status.COMPLETED,
                QuestEvent.UNDO,
                Status.IN_PROGRESS,
                {QuestEffect.REVOKE_REWARDS},
            ),
            (Status.COMPLETED, QuestEvent.RESET, Status.IN_PROGRESS, set()),
            (Status.FAILED, QuestEvent.START, Status.IN_PROGRESS, set()),
            (
                Status.FAILED,
                QuestEvent.COMPLETE,
                Status.COMPLETED,
                {QuestEffect.GRANT_REWARDS},
            ),
            (Status.FAILED, QuestEvent.RESET, Status.IN_PROGRESS, set()),
        ],
    )
    def test_legal_transitions(self, from_status, event, to_status, effects) -> None:
        plan = QuestEngine.plan_transition(_quest(from_status), event)
        assert plan is not None
        assert plan.from_status == from_status
        assert plan.to_status == to_status
        assert set(plan.effects) == effects

    @pytest.mark.parametrize(
        ("from_status", "event"),
        [
            (Status.COMPLETED, QuestEvent.COMPLETE),
            (Status.COMPLETED, QuestEvent.FAIL),
            (Status.COMPLETED, QuestEvent.START),
            (Status.FAILED, QuestEvent.FAIL),
            (Status.FAILED, QuestEvent.UNDO),
            (Status.IN_PROGRESS, QuestEvent.START),
            (Status.IN_PROGRESS, QuestEvent.UNDO),
            (Status.AVAILABLE, QuestEvent.RESET),
        ],
    )
    def test_illegal_transitions(self, from_status, event) -> None:
        assert QuestEngine.plan_transition(_quest(from_status), event) is None
        assert not QuestEngine.can_transition(from_status, event)

    def test_unknown_status_is_illegal(self) -> None:
        assert QuestEngine.plan_transition(_quest("Archived"), QuestEvent.START) is None
        assert not QuestEngine.can_transition("Archived", QuestEvent.START)

    def test_daily_reward_moves_evaluate_streak(self) -> None:
        plan = QuestEngine.plan_transition(
            _quest(Status.IN_PROGRESS, const.QuestType.DAILY), QuestEvent.COMPLETE
        )
        assert plan is not None
        assert plan.grants_rewards
        assert plan.evaluates_streak

        undo = QuestEngine.plan_transition(
            _quest(Status.COMPLETED, const.QuestType.DAILY), QuestEvent.UNDO
        )
        assert undo is not None
        assert undo.revokes_rewards
        assert undo.evaluates_streak

    def test_daily_reset_has_no_effects(self) -> None:
        plan = QuestEngine.plan_transition(
            _quest(Status.COMPLETED, const.QuestType.DAILY), QuestEvent.RESET
        )
        assert plan is not None
        assert not plan.effects

    def test_non_daily_never_evaluates_streak(self) -> None:
        plan = QuestEngine.plan_transition(
            _quest(Status.AVAILABLE, const.QuestType.BOSS_FIGHT), QuestEvent.COMPLETE
        )
        assert plan is not None
        assert not plan.evaluates_streak


class TestEventForTarget:
    """Test mapping requested statuses onto events."""

    @pytest.mark.parametrize(
        ("current", "target", "expected"),
        [
            (Status.AVAILABLE, Status.COMPLETED, QuestEvent.COMPLETE),
            (Status.IN_PROGRESS, Status.FAILED, QuestEvent.FAIL),
            (Status.COMPLETED, Status.IN_PROGRESS, QuestEvent.UNDO),
            (Status.FAILED, Status.IN_PROGRESS, QuestEvent.START),
            (Status.AVAILABLE, Status.IN_PROGRESS, QuestEvent.START),
            (Status.IN_PROGRESS, Status.AVAILABLE, None),
        ],
    )
    def test_mapping(self, current, target, expected) -> None:
        assert QuestEngine.event_for_target(current, target) == expected


# =============================================================================
# TEST: QUEST DEFINITIONS
# =============================================================================


class TestBuildQuest:
    """Test type-dependent defaults on new quests."""

    def test_daily_defaults(self) -> None:
        quest = QuestEngine.build_quest(
            {
                const.DATA_QUEST_TITLE: "Read 10 pages",
                const.DATA_QUEST_TYPE: const.QuestType.DAILY,
                const.DATA_QUEST_XP_REWARD: 50,
                const.DATA_QUEST_STAT_REWARDS: {const.STAT_FOCUS: 1},
            },
            "q1",
            NOW,
        )
        assert quest[const.DATA_ID] == "q1"
        assert quest[const.DATA_QUEST_STATUS] == Status.AVAILABLE
        assert quest[const.DATA_QUEST_REPEAT] == const.QuestRepeat.DAILY
        assert quest[const.DATA_QUEST_PENALTY_FOR_MISSING] is True
        assert quest[const.DATA_QUEST_DESCRIPTION] == ""
        assert quest[const.DATA_QUEST_PROGRESS] == 0
        assert quest[const.DATA_CREATED_AT] == "2026-01-15T12:00:00+00:00"
        assert const.DATA_QUEST_TASKS not in quest
        assert const.DATA_QUEST_DEADLINE not in quest

    def test_side_quest_defaults(self) -> None:
        quest = QuestEngine.build_quest(
            {const.DATA_QUEST_TITLE: "Fix bike", const.DATA_QUEST_TYPE: "SideQuest"},
            "q2",
            NOW,
        )
        assert quest[const.DATA_QUEST_STATUS] == Status.AVAILABLE
        assert quest[const.DATA_QUEST_REPEAT] == const.QuestRepeat.NONE
        assert quest[const.DATA_QUEST_PENALTY_FOR_MISSING] is False
        assert quest[const.DATA_QUEST_XP_REWARD] == 0

    def test_dungeon_starts_in_progress_with_placeholder_tasks(self) -> None:
        quest = QuestEngine.build_quest(
            {const.DATA_QUEST_TITLE: "Move house", const.DATA_QUEST_TYPE: "Dungeon"},
            "q3",
            NOW,
        )
        assert quest[const.DATA_QUEST_STATUS] == Status.IN_PROGRESS
        assert [t[const.DATA_QUEST_TASK_TITLE] for t in quest[const.DATA_QUEST_TASKS]] == [
            "Task 1",
            "Task 2",
            "Task 3",
        ]
        assert quest[const.DATA_QUEST_PROGRESS] == 0

    def test_boss_fight_starts_in_progress(self) -> None:
        quest = QuestEngine.build_quest(
            {const.DATA_QUEST_TITLE: "Marathon", const.DATA_QUEST_TYPE: "BossFight"},
            "q4",
            NOW,
        )
        assert quest[const.DATA_QUEST_STATUS] == Status.IN_PROGRESS
        assert const.DATA_QUEST_TASKS not in quest

    def test_tasks_accept_titles_and_mappings(self) -> None:
        quest = QuestEngine.build_quest(
            {
                const.DATA_QUEST_TITLE: "Taxes",
                const.DATA_QUEST_TYPE: "SideQuest",
                const.DATA_QUEST_TASKS: [
                    "Gather receipts",
                    {const.DATA_QUEST_TASK_TITLE: "File", "completed": True},
                ],
            },
            "q5",
            NOW,
        )
        assert quest[const.DATA_QUEST_TASKS] == [
            {const.DATA_QUEST_TASK_TITLE: "Gather receipts", "completed": False},
            {const.DATA_QUEST_TASK_TITLE: "File", "completed": True},
        ]
        assert quest[const.DATA_QUEST_PROGRESS] == 50

    def test_non_positive_stat_rewards_dropped(self) -> None:
        quest = QuestEngine.build_quest(
            {
                const.DATA_QUEST_TITLE: "Gym",
                const.DATA_QUEST_TYPE: "Daily",
                const.DATA_QUEST_STAT_REWARDS: {
                    const.STAT_STRENGTH: 2,
                    const.STAT_FOCUS: 0,
                    const.STAT_WILLPOWER: -1,
                },
            },
            "q6",
            NOW,
        )
        assert quest[const.DATA_QUEST_STAT_REWARDS] == {const.STAT_STRENGTH: 2}

    def test_dates_normalized_to_utc_iso(self) -> None:
        quest = QuestEngine.build_quest(
            {
                const.DATA_QUEST_TITLE: "Gym",
                const.DATA_QUEST_TYPE: "Daily",
                const.DATA_QUEST_END_DATE: "2026-02-01",
                const.DATA_QUEST_DEADLINE: "2026-01-20T18:00:00+02:00",
            },
            "q7",
            NOW,
        )
        assert quest[const.DATA_QUEST_END_DATE] == "2026-02-01T00:00:00+00:00"
        assert quest[const.DATA_QUEST_DEADLINE] == "2026-01-20T16:00:00+00:00"

    def test_explicit_flags_override_defaults(self) -> None:
        quest = QuestEngine.build_quest(
            {
                const.DATA_QUEST_TITLE: "Stretch",
                const.DATA_QUEST_TYPE: "Daily",
                const.DATA_QUEST_REPEAT: "Weekly",
                const.DATA_QUEST_PENALTY_FOR_MISSING: False,
            },
            "q8",
            NOW,
        )
        assert quest[const.DATA_QUEST_REPEAT] == const.QuestRepeat.WEEKLY
        assert quest[const.DATA_QUEST_PENALTY_FOR_MISSING] is False


# =============================================================================
# TEST: QUERIES
# =============================================================================


class TestQueries:
    """Test progress and validity helpers."""

    @pytest.mark.parametrize(
        ("done", "total", "expected"),
        [(0, 3, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100), (1, 2, 50), (1, 8, 13)],
    )
    def test_calculate_progress(self, done: int, total: int, expected: int) -> None:
        tasks = [{"title": str(i), "completed": i < done} for i in range(total)]
        assert QuestEngine.calculate_progress(tasks) == expected

    def test_progress_of_no_tasks(self) -> None:
        assert QuestEngine.calculate_progress([]) == 0

    def test_no_end_date_is_valid(self) -> None:
        assert QuestEngine.is_within_validity({}, NOW)

    def test_end_date_today_is_valid(self) -> None:
        quest = {const.DATA_QUEST_END_DATE: "2026-01-15T00:00:00+00:00"}
        assert QuestEngine.is_within_validity(quest, NOW)

    def test_end_date_yesterday_is_retired(self) -> None:
        quest = {const.DATA_QUEST_END_DATE: "2026-01-14T23:59:00+00:00"}
        assert not QuestEngine.is_within_validity(quest, NOW)

    def test_is_daily(self) -> None:
        assert QuestEngine.is_daily(_quest(Status.AVAILABLE, const.QuestType.DAILY))
        assert not QuestEngine.is_daily(_quest(Status.AVAILABLE))
