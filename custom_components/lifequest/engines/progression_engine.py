"""Progression Engine - Pure logic for experience, levels and journal records.

This engine provides stateless, pure Python functions for:
- Forward XP progression with level-up rollover
- XP removal by replaying progression from lifetime totals
- Journal entry creation

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
State management belongs in CharacterManager.

Forward progression is incremental (cheap, runs on every completion).
Removal replays the whole curve from level 1, because undoing "the last
level-up" is ill-defined once several grants have landed since.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import dt_to_iso

if TYPE_CHECKING:
    from datetime import datetime

    from ..type_defs import AttributeMap, JournalEntry


@dataclass(frozen=True)
class ProgressionResult:
    """Character position on the level curve.

    Attributes:
        level: Current level (>= 1)
        xp: XP inside the current level, always < xp_to_next_level
        xp_to_next_level: Size of the current level
        total_xp_earned: Lifetime gross XP (None when the caller did not
                         supply one, e.g. apply_xp)
    """

    level: int
    xp: int
    xp_to_next_level: int
    total_xp_earned: int | None = None


class ProgressionEngine:
    """Pure logic engine for the XP curve.

    All methods are static - no instance state.
    """

    @staticmethod
    def next_threshold(xp_to_next_level: int) -> int:
        """Return the size of the level after one of the given size.

        Each level needs 10% more XP than the previous one, floored.
        """
        return math.floor(xp_to_next_level * const.XP_GROWTH_FACTOR)

    @staticmethod
    def apply_xp(
        level: int, xp: int, xp_to_next_level: int, delta: int
    ) -> ProgressionResult:
        """Add XP and roll over any completed levels.

        Zero or negative deltas leave the position unchanged; removal goes
        through remove_xp().

        Example:
            apply_xp(1, 0, 100, 250) → level 3, xp 40, xp_to_next_level 121
        """
        if delta <= 0:
            return ProgressionResult(level, xp, xp_to_next_level)

        new_level = level
        new_xp = xp + delta
        new_threshold = xp_to_next_level
        while new_xp >= new_threshold:
            new_xp -= new_threshold
            new_level += 1
            new_threshold = ProgressionEngine.next_threshold(new_threshold)

        return ProgressionResult(new_level, new_xp, new_threshold)

    @staticmethod
    def progression_from_total(total_xp: int) -> ProgressionResult:
        """Replay the level curve from level 1 for a lifetime XP total."""
        total = max(0, total_xp)
        result = ProgressionEngine.apply_xp(
            const.STARTING_LEVEL, 0, const.XP_BASE_THRESHOLD, total
        )
        return ProgressionResult(
            result.level, result.xp, result.xp_to_next_level, total
        )

    @staticmethod
    def remove_xp(total_xp_earned: int, delta: int) -> ProgressionResult:
        """Remove XP by recomputing the position from the reduced lifetime total.

        The lifetime total is clamped at 0, so removing more than was ever
        earned lands on level 1 with 0 XP.

        Example:
            remove_xp(250, 250) → level 1, xp 0, xp_to_next_level 100, total 0
        """
        return ProgressionEngine.progression_from_total(
            total_xp_earned - max(0, delta)
        )

    @staticmethod
    def calculate_penalty(rewards: list[int], ratio: float) -> int:
        """Return the aggregate penalty for a batch of missed quest rewards.

        Example:
            calculate_penalty([50, 25], 0.5) → 37
        """
        return math.floor(sum(max(0, reward) for reward in rewards) * ratio)

    @staticmethod
    def create_journal_entry(
        title: str,
        description: str,
        xp_gained: int,
        now: datetime,
        stats_gained: AttributeMap | None = None,
        quest_id: str | None = None,
    ) -> JournalEntry:
        """Create an immutable journal record for an XP-affecting event.

        Args:
            title: Short headline
            description: Human-readable explanation
            xp_gained: Signed XP change (negative for reversals and penalties)
            now: Timestamp of the event
            stats_gained: Signed attribute changes (empty for reversals)
            quest_id: Optional related quest

        Returns:
            JournalEntry ready to append to the user's journal
        """
        return {
            const.DATA_JOURNAL_TITLE: title,
            const.DATA_JOURNAL_DESCRIPTION: description,
            const.DATA_JOURNAL_XP_GAINED: int(xp_gained),
            const.DATA_JOURNAL_STATS_GAINED: dict(stats_gained or {}),
            const.DATA_JOURNAL_QUEST_ID: quest_id,
            const.DATA_JOURNAL_TIMESTAMP: dt_to_iso(now),
        }
