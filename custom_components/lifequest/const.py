# File: const.py
"""Constants for the LifeQuest integration.

This file centralizes configuration keys, defaults, storage field names,
service names and event signals for consistency across the integration.
"""

from enum import StrEnum
import logging

import homeassistant.util.dt as dt_util

from .utils import dt_utils


def set_default_timezone(hass):
    """Set the default timezone based on the Home Assistant configuration."""
    time_zone = dt_util.get_time_zone(hass.config.time_zone)
    if time_zone is not None:
        dt_utils.set_default_timezone(time_zone)


# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
LIFEQUEST_TITLE = "LifeQuest"

DOMAIN = "lifequest"

LOGGER = logging.getLogger(__package__)

COORDINATOR = "coordinator"
STORE = "store"

# Storage and Versioning
STORAGE_KEY = "lifequest_data"
STORAGE_VERSION = 1

# ------------------------------------------------------------------------------------------------
# Configuration (options flow)
# ------------------------------------------------------------------------------------------------
CONF_CACHE_TTL = "cache_ttl_seconds"
CONF_FETCH_THROTTLE = "fetch_throttle_seconds"
CONF_DAILY_PENALTY_RATIO = "daily_penalty_ratio"
CONF_STAT_FLOOR = "stat_floor"

DEFAULT_CACHE_TTL = 10.0
DEFAULT_FETCH_THROTTLE = 2.0
DEFAULT_DAILY_PENALTY_RATIO = 0.5
DEFAULT_STAT_FLOOR = 0

CONFIG_FLOW_STEP_USER = "user"
OPTIONS_FLOW_STEP_INIT = "init"

TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"

# ------------------------------------------------------------------------------------------------
# Progression
# ------------------------------------------------------------------------------------------------
XP_BASE_THRESHOLD = 100
XP_GROWTH_FACTOR = 1.1
STARTING_LEVEL = 1

# ------------------------------------------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------------------------------------------


class QuestType(StrEnum):
    """Kind of quest."""

    DAILY = "Daily"
    SIDE_QUEST = "SideQuest"
    DUNGEON = "Dungeon"
    BOSS_FIGHT = "BossFight"


class QuestStatus(StrEnum):
    """Lifecycle status of a quest."""

    AVAILABLE = "Available"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"


class QuestRepeat(StrEnum):
    """How often a quest comes back."""

    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class ProofType(StrEnum):
    """Evidence a quest asks for."""

    PHOTO = "Photo"
    VIDEO = "Video"
    LINK = "Link"
    TEXT = "Text"
    API = "API"
    NONE = "None"


# Quests that start out already underway
IN_PROGRESS_ON_CREATE_TYPES = frozenset({QuestType.DUNGEON, QuestType.BOSS_FIGHT})

# ------------------------------------------------------------------------------------------------
# Character Stats
# ------------------------------------------------------------------------------------------------
STAT_STRENGTH = "strength"
STAT_INTELLIGENCE = "intelligence"
STAT_FOCUS = "focus"
STAT_DEXTERITY = "dexterity"
STAT_WILLPOWER = "willpower"
STAT_INFLUENCE = "influence"

STAT_ATTRIBUTES = (
    STAT_STRENGTH,
    STAT_INTELLIGENCE,
    STAT_FOCUS,
    STAT_DEXTERITY,
    STAT_WILLPOWER,
    STAT_INFLUENCE,
)
DEFAULT_STAT_VALUE = 5

DEFAULT_CHARACTER_NAME = "Hero"
DEFAULT_CHARACTER_CLASS = "Novice"

DEFAULT_DUNGEON_TASK_COUNT = 3
DEFAULT_DUNGEON_TASK_TITLE_FMT = "Task {}"

# ------------------------------------------------------------------------------------------------
# Document Paths
# ------------------------------------------------------------------------------------------------
PATH_SEPARATOR = "/"
PATH_USERS = "users"
COLLECTION_QUESTS = "quests"
COLLECTION_JOURNAL = "journal"
COLLECTION_META = "meta"
DOC_CHARACTER = "character"
DOC_DAILY_CYCLE = "daily_cycle"

# ------------------------------------------------------------------------------------------------
# Storage Fields
# ------------------------------------------------------------------------------------------------
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"
DATA_DOCUMENTS = "documents"
SCHEMA_VERSION = 1

DATA_ID = "id"
DATA_CREATED_AT = "created_at"
DATA_UPDATED_AT = "updated_at"

# Character
DATA_CHARACTER_USER_ID = "user_id"
DATA_CHARACTER_NAME = "name"
DATA_CHARACTER_CLASS = "character_class"
DATA_CHARACTER_LEVEL = "level"
DATA_CHARACTER_XP = "xp"
DATA_CHARACTER_XP_TO_NEXT_LEVEL = "xp_to_next_level"
DATA_CHARACTER_TOTAL_XP_EARNED = "total_xp_earned"
DATA_CHARACTER_STATS = "stats"
DATA_CHARACTER_STREAK_COUNT = "streak_count"
DATA_CHARACTER_LAST_ACTIVE = "last_active"
DATA_CHARACTER_SKILLS = "skills"
DATA_CHARACTER_INVENTORY = "inventory"

# Quest
DATA_QUEST_TITLE = "title"
DATA_QUEST_DESCRIPTION = "description"
DATA_QUEST_TYPE = "type"
DATA_QUEST_STATUS = "status"
DATA_QUEST_XP_REWARD = "xp_reward"
DATA_QUEST_STAT_REWARDS = "stat_rewards"
DATA_QUEST_DEADLINE = "deadline"
DATA_QUEST_END_DATE = "end_date"
DATA_QUEST_REPEAT = "repeat"
DATA_QUEST_PROGRESS = "progress"
DATA_QUEST_TASKS = "tasks"
DATA_QUEST_CATEGORY = "category"
DATA_QUEST_PROOF_REQUIRED = "proof_required"
DATA_QUEST_PENALTY_FOR_MISSING = "penalty_for_missing"
DATA_QUEST_TASK_TITLE = "title"
DATA_QUEST_TASK_COMPLETED = "completed"

# Journal
DATA_JOURNAL_TITLE = "title"
DATA_JOURNAL_DESCRIPTION = "description"
DATA_JOURNAL_XP_GAINED = "xp_gained"
DATA_JOURNAL_STATS_GAINED = "stats_gained"
DATA_JOURNAL_QUEST_ID = "quest_id"
DATA_JOURNAL_TIMESTAMP = "timestamp"

# Daily cycle marker
DATA_DAILY_CYCLE_LAST_EVALUATED = "last_evaluated"
DATA_DAILY_CYCLE_LAST_RESET = "last_reset"

# ------------------------------------------------------------------------------------------------
# Store query operators
# ------------------------------------------------------------------------------------------------
FILTER_OP_EQ = "=="
FILTER_OP_NE = "!="
FILTER_OP_IN = "in"
FILTER_OP_NOT_IN = "not in"

# ------------------------------------------------------------------------------------------------
# Cache entities
# ------------------------------------------------------------------------------------------------
CACHE_ENTITY_CHARACTER = "character"
CACHE_ENTITY_QUESTS = "quests"

# ------------------------------------------------------------------------------------------------
# Journal texts
# ------------------------------------------------------------------------------------------------
JOURNAL_TITLE_QUEST_COMPLETED_FMT = "Quest completed: {}"
JOURNAL_DESCRIPTION_QUEST_COMPLETED = "Rewards granted for completing the quest."
JOURNAL_TITLE_QUEST_REVERSED_FMT = "Quest marked incomplete: {}"
JOURNAL_DESCRIPTION_QUEST_REVERSED = "Rewards removed after the quest was reopened."
JOURNAL_TITLE_DAILY_PENALTY = "Missed daily quests"
JOURNAL_DESCRIPTION_DAILY_PENALTY_FMT = (
    "Penalty for {} daily quest(s) left incomplete: {}"
)
JOURNAL_TITLE_XP_GRANTED = "XP granted"
JOURNAL_DESCRIPTION_XP_GRANTED = "Experience granted directly."

# ------------------------------------------------------------------------------------------------
# Streak messages
# ------------------------------------------------------------------------------------------------
STREAK_MSG_STARTED = "🔥 Streak started! Complete daily quests tomorrow to continue!"
STREAK_MSG_MAINTAINED_FMT = "🔥 {} day streak - keep it up tomorrow!"
STREAK_MSG_AT_RISK_FMT = "🔥 {} day streak - complete a daily quest to maintain it!"
STREAK_MSG_START_PROMPT = "Complete a daily quest to start your streak!"
STREAK_MSG_CONTINUED_FMT = "🔥 {} day streak - well done!"
STREAK_MSG_RESTARTED = "🔥 Streak restarted! Complete daily quests tomorrow to continue!"

# ------------------------------------------------------------------------------------------------
# Event signals (instance-scoped via dispatcher)
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_QUEST_STATUS_CHANGED = "quest_status_changed"
SIGNAL_SUFFIX_CHARACTER_UPDATED = "character_updated"
SIGNAL_SUFFIX_LEVEL_UP = "level_up"
SIGNAL_SUFFIX_STREAK_CHANGED = "streak_changed"
SIGNAL_SUFFIX_DAILY_CYCLE_COMPLETED = "daily_cycle_completed"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_CREATE_QUEST = "create_quest"
SERVICE_SET_QUEST_STATUS = "set_quest_status"
SERVICE_TOGGLE_SUBTASK = "toggle_subtask"
SERVICE_GET_CHARACTER = "get_character"
SERVICE_GET_QUESTS = "get_quests"
SERVICE_GET_JOURNAL = "get_journal"
SERVICE_GRANT_XP = "grant_xp"
SERVICE_MERGE_CHARACTER_STATS = "merge_character_stats"
SERVICE_RUN_DAILY_CYCLE = "run_daily_cycle"
SERVICE_EVALUATE_STREAK = "evaluate_streak"
SERVICE_RECONCILE_PROGRESSION = "reconcile_progression"
SERVICE_RESET_CHARACTER = "reset_character"

FIELD_QUEST_ID = "quest_id"
FIELD_STATUS = "status"
FIELD_TASK_INDEX = "task_index"
FIELD_TITLE = "title"
FIELD_DESCRIPTION = "description"
FIELD_TYPE = "type"
FIELD_XP_REWARD = "xp_reward"
FIELD_STAT_REWARDS = "stat_rewards"
FIELD_CATEGORY = "category"
FIELD_DEADLINE = "deadline"
FIELD_END_DATE = "end_date"
FIELD_REPEAT = "repeat"
FIELD_PENALTY_FOR_MISSING = "penalty_for_missing"
FIELD_PROOF_REQUIRED = "proof_required"
FIELD_TASKS = "tasks"
FIELD_AMOUNT = "amount"
FIELD_STATS = "stats"
FIELD_FORCE_REFRESH = "force_refresh"
FIELD_LIMIT = "limit"

DEFAULT_JOURNAL_LIMIT = 50

# ------------------------------------------------------------------------------------------------
# Error messages
# ------------------------------------------------------------------------------------------------
ERROR_NOT_AUTHENTICATED = "No authenticated user"
ERROR_NO_ENTRY_FOUND = "No LifeQuest entry found"
ERROR_QUEST_NOT_FOUND_FMT = "Quest '{}' not found"
ERROR_DOCUMENT_NOT_FOUND_FMT = "Document '{}' not found"
ERROR_INVALID_TRANSITION_FMT = "Quest '{}' cannot move from {} to {}"
ERROR_CONCURRENT_MODIFICATION_FMT = "Document '{}' changed since it was read"
ERROR_TASK_INDEX_FMT = "Quest '{}' has no task at index {}"
ERROR_STORE_SAVE_FMT = "Failed to save LifeQuest data: {}"
ERROR_INVALID_PATH_FMT = "Invalid document path '{}'"
