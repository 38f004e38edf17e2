"""Type definitions for LifeQuest data structures.

TypedDicts describe the documents persisted per user. They are STATIC ANALYSIS
ONLY: runtime code still uses .get() with defaults, since stored documents may
predate a field.

IMPORTANT: This file must NOT import from coordinator.py or managers to avoid
circular dependencies. Only typing machinery is imported here.
"""

from typing import Any, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

UserId = str  # Home Assistant user id of the principal
QuestId = str  # UUID hex string
JournalEntryId = str  # UUID hex string
DocumentPath = str  # "users/{uid}/quests/{quest_id}"
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"

# Attribute name -> integer value; deltas may be negative
AttributeMap = dict[str, int]


# =============================================================================
# Documents
# =============================================================================


class CharacterData(TypedDict):
    """One character per user, stored at users/{uid}/character."""

    user_id: UserId
    name: str
    character_class: str
    level: int
    xp: int
    xp_to_next_level: int
    total_xp_earned: int
    stats: AttributeMap
    streak_count: int
    last_active: NotRequired[ISODatetime | None]
    skills: list[dict[str, Any]]
    inventory: list[dict[str, Any]]
    created_at: ISODatetime
    updated_at: ISODatetime


class QuestTask(TypedDict):
    """One step of a multi-step quest."""

    title: str
    completed: bool


class QuestData(TypedDict):
    """One quest, stored at users/{uid}/quests/{quest_id}."""

    id: QuestId
    title: str
    description: str
    type: str
    status: str
    xp_reward: int
    stat_rewards: AttributeMap
    repeat: str
    penalty_for_missing: bool
    progress: int
    tasks: NotRequired[list[QuestTask]]
    deadline: NotRequired[ISODatetime]
    end_date: NotRequired[ISODatetime]
    category: NotRequired[str]
    proof_required: NotRequired[list[str]]
    created_at: ISODatetime
    updated_at: ISODatetime


class JournalEntry(TypedDict):
    """Immutable XP audit record, stored at users/{uid}/journal/{entry_id}."""

    title: str
    description: str
    xp_gained: int
    stats_gained: AttributeMap
    quest_id: QuestId | None
    timestamp: ISODatetime
    id: NotRequired[JournalEntryId]


class DailyCycleMarker(TypedDict):
    """Per-user record of the last calendar day the daily cycle ran."""

    last_evaluated: ISODatetime


# =============================================================================
# Results returned to callers
# =============================================================================


class StreakStatus(TypedDict):
    """Streak count plus the message shown to the user."""

    streak_count: int
    message: str


class DailyCycleResult(TypedDict):
    """Outcome of one run of the daily evaluation/reset cycle."""

    ran: bool
    quests_failed: list[QuestId]
    penalty_xp: int
    quests_reset: list[QuestId]
