"""Stat Engine - Pure logic for merging signed attribute deltas.

A delta only ever touches the attributes it names; it is never a replacement
for the whole attribute set.

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .. import const

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..type_defs import AttributeMap


class StatEngine:
    """Pure logic engine for character attributes.

    All methods are static - no instance state.
    """

    @staticmethod
    def default_stats() -> AttributeMap:
        """Return the starting attribute set for a new character."""
        return {stat: const.DEFAULT_STAT_VALUE for stat in const.STAT_ATTRIBUTES}

    @staticmethod
    def clean_delta(delta: Mapping[str, int | None] | None) -> AttributeMap:
        """Drop None and zero entries from a delta.

        Returns:
            A new dict containing only meaningful changes (may be empty)
        """
        if not delta:
            return {}
        return {
            stat: int(value)
            for stat, value in delta.items()
            if value is not None and int(value) != 0
        }

    @staticmethod
    def is_empty(delta: Mapping[str, int | None] | None) -> bool:
        """Check whether a delta would change nothing."""
        return not StatEngine.clean_delta(delta)

    @staticmethod
    def negate(delta: Mapping[str, int | None] | None) -> AttributeMap:
        """Return the delta that undoes the given one."""
        return {stat: -value for stat, value in StatEngine.clean_delta(delta).items()}

    @staticmethod
    def positive_rewards(rewards: Mapping[str, int | None] | None) -> AttributeMap:
        """Keep only strictly positive reward entries."""
        return {
            stat: value
            for stat, value in StatEngine.clean_delta(rewards).items()
            if value > 0
        }

    @staticmethod
    def merge_stats(
        current: Mapping[str, int],
        delta: Mapping[str, int | None] | None,
        floor: int | None = const.DEFAULT_STAT_FLOOR,
    ) -> AttributeMap:
        """Add a signed delta to an attribute set.

        Attributes absent from the delta keep their value. An attribute named
        by the delta but missing from current starts from 0. Results are
        clamped at floor unless floor is None.

        Example:
            merge_stats({"strength": 5, "intelligence": 5}, {"strength": 2})
            → {"strength": 7, "intelligence": 5}
        """
        merged: AttributeMap = dict(current)
        for stat, value in StatEngine.clean_delta(delta).items():
            new_value = merged.get(stat, 0) + value
            if floor is not None:
                new_value = max(floor, new_value)
            merged[stat] = new_value
        return merged

    @staticmethod
    def fill_missing(stats: Mapping[str, int] | None) -> tuple[AttributeMap, bool]:
        """Back-fill any of the six standard attributes missing from stats.

        Returns:
            Tuple of (complete stats, whether anything was added)
        """
        filled: AttributeMap = dict(stats or {})
        changed = False
        for stat in const.STAT_ATTRIBUTES:
            if stat not in filled:
                filled[stat] = const.DEFAULT_STAT_VALUE
                changed = True
        return filled, changed
