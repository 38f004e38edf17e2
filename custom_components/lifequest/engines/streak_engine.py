"""Streak Engine - Pure logic for daily streak evaluation.

This engine provides stateless, pure Python functions for:
- Classifying the many shapes a "last active" timestamp arrives in
- Normalizing that timestamp to an instant, falling back to today
- Deciding the new streak count and the message to show

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
Whether a daily quest was completed today is computed by CharacterManager from
persisted quest state and passed in.

Timestamp shapes (tagged union):
- NativeInstant: a datetime or date
- StoreTimestamp: a store-specific wrapper exposing a conversion method
- RawInstant: a string, epoch-milliseconds number, or nothing at all
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import logging
from typing import Any

from .. import const
from ..utils.dt_utils import days_between, dt_from_epoch_ms, dt_parse

_LOGGER = logging.getLogger(__name__)

# Conversion methods tried, in order, on store timestamp wrappers
TIMESTAMP_CONVERSION_METHODS = ("to_datetime", "toDate", "to_pydatetime")


# =============================================================================
# INSTANT TAGGED UNION
# =============================================================================


@dataclass(frozen=True)
class NativeInstant:
    """A datetime or date supplied directly."""

    value: datetime | date


@dataclass(frozen=True)
class StoreTimestamp:
    """A store timestamp object that converts itself to a datetime."""

    value: Any


@dataclass(frozen=True)
class RawInstant:
    """A string, number or missing value that still needs parsing."""

    value: Any


Instant = NativeInstant | StoreTimestamp | RawInstant


@dataclass(frozen=True)
class StreakDecision:
    """Result of a streak evaluation.

    Attributes:
        streak_count: New streak count
        message: Text to show the user
        persist: True when the streak changed and last_active must move to now;
                 False when nothing may be written
    """

    streak_count: int
    message: str
    persist: bool


class StreakEngine:
    """Pure logic engine for streak evaluation.

    All methods are static - no instance state.
    """

    @staticmethod
    def tag_instant(value: Any) -> Instant:
        """Classify a raw last-active value into the tagged union."""
        if isinstance(value, (datetime, date)):
            return NativeInstant(value)
        if value is not None and any(
            callable(getattr(value, method, None))
            for method in TIMESTAMP_CONVERSION_METHODS
        ):
            return StoreTimestamp(value)
        return RawInstant(value)

    @staticmethod
    def normalize_instant(instant: Instant, fallback: datetime) -> datetime:
        """Turn any Instant into an aware datetime.

        Never raises: missing, unparseable or invalid values yield fallback.
        """
        result: datetime | None = None

        match instant:
            case NativeInstant(value=value):
                result = dt_parse(value)
            case StoreTimestamp(value=value):
                result = StreakEngine._convert_store_timestamp(value)
            case RawInstant(value=value):
                if isinstance(value, bool):
                    result = None
                elif isinstance(value, (int, float)):
                    result = dt_from_epoch_ms(value)
                elif isinstance(value, str):
                    result = dt_parse(value.strip())

        if result is None:
            if not (isinstance(instant, RawInstant) and instant.value is None):
                _LOGGER.warning(
                    "WARNING: Unusable last-active value %r, falling back to today",
                    instant.value,
                )
            return fallback
        return result

    @staticmethod
    def _convert_store_timestamp(value: Any) -> datetime | None:
        """Call the wrapper's conversion method and validate the result."""
        for method_name in TIMESTAMP_CONVERSION_METHODS:
            method = getattr(value, method_name, None)
            if not callable(method):
                continue
            try:
                converted = method()
            except Exception as err:  # pylint: disable=broad-exception-caught
                _LOGGER.debug(
                    "DEBUG: Timestamp conversion %s failed: %s", method_name, err
                )
                return None
            return dt_parse(converted) if isinstance(converted, (datetime, date)) else None
        return None

    @staticmethod
    def resolve_last_active(
        last_active: Any, created_at: Any, now: datetime
    ) -> datetime:
        """Pick the baseline instant for streak math.

        Uses last_active when present, created_at when last_active is missing
        entirely, and now when neither yields a valid instant.
        """
        if last_active is None and created_at is not None:
            return StreakEngine.normalize_instant(
                StreakEngine.tag_instant(created_at), now
            )
        return StreakEngine.normalize_instant(StreakEngine.tag_instant(last_active), now)

    @staticmethod
    def _prompt(streak_count: int) -> str:
        """Message asking the user to complete a daily quest."""
        if streak_count > 0:
            return const.STREAK_MSG_AT_RISK_FMT.format(streak_count)
        return const.STREAK_MSG_START_PROMPT

    @staticmethod
    def evaluate(
        streak_count: int,
        last_active: datetime,
        now: datetime,
        completed_daily_today: bool,
    ) -> StreakDecision:
        """Decide the new streak from calendar days since last activity.

        Args:
            streak_count: Current streak
            last_active: Normalized last-active instant
            now: Current instant
            completed_daily_today: Whether a Daily quest was completed today

        Returns:
            StreakDecision with the new count, message and persist flag
        """
        streak_count = max(0, streak_count)
        diff_days = days_between(last_active, now)

        if diff_days == 0:
            if completed_daily_today and streak_count == 0:
                return StreakDecision(1, const.STREAK_MSG_STARTED, True)
            if completed_daily_today:
                return StreakDecision(
                    streak_count,
                    const.STREAK_MSG_MAINTAINED_FMT.format(streak_count),
                    False,
                )
            return StreakDecision(streak_count, StreakEngine._prompt(streak_count), False)

        if diff_days == 1:
            if completed_daily_today:
                new_count = streak_count + 1
                return StreakDecision(
                    new_count, const.STREAK_MSG_CONTINUED_FMT.format(new_count), True
                )
            return StreakDecision(streak_count, StreakEngine._prompt(streak_count), False)

        # Lapsed: a completion today is a fresh start, not a continuation
        if completed_daily_today:
            return StreakDecision(1, const.STREAK_MSG_RESTARTED, True)
        return StreakDecision(0, const.STREAK_MSG_START_PROMPT, streak_count != 0)
