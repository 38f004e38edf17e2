"""Exceptions raised by the LifeQuest integration.

All of them derive from HomeAssistantError so a failing service call reports
the message to the caller instead of logging a traceback.
"""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class LifeQuestError(HomeAssistantError):
    """Base class for LifeQuest errors."""


class NotAuthenticatedError(LifeQuestError):
    """Raised when an operation runs without a signed-in principal."""


class NotFoundError(LifeQuestError):
    """Raised when a referenced character or quest does not exist."""


class InvalidStateError(LifeQuestError):
    """Raised when an operation does not fit the current state.

    Covers illegal quest transitions and optimistic-concurrency conflicts
    (the document changed between read and write).
    """


class StoreFailureError(LifeQuestError):
    """Raised when the backing store fails to persist data.

    The original error is chained as __cause__.
    """
