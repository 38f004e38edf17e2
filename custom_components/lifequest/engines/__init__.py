"""Engine modules for LifeQuest integration.

Contains pure computation engines:
- progression_engine: XP curve, level rollover and replay-based removal
- stat_engine: Additive attribute deltas
- streak_engine: Timestamp normalization and streak decisions
- quest_engine: Quest lifecycle transition table and quest definitions
"""

# Use relative imports within package to avoid mypy module resolution issues
from .progression_engine import ProgressionEngine, ProgressionResult
from .quest_engine import (
    QuestEffect,
    QuestEngine,
    QuestEvent,
    TransitionPlan,
    TransitionRule,
)
from .stat_engine import StatEngine
from .streak_engine import (
    Instant,
    NativeInstant,
    RawInstant,
    StoreTimestamp,
    StreakDecision,
    StreakEngine,
)

__all__ = [
    "Instant",
    "NativeInstant",
    "ProgressionEngine",
    "ProgressionResult",
    "QuestEffect",
    "QuestEngine",
    "QuestEvent",
    "RawInstant",
    "StatEngine",
    "StoreTimestamp",
    "StreakDecision",
    "StreakEngine",
    "TransitionPlan",
    "TransitionRule",
]
