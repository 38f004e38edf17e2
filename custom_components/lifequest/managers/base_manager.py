"""Base manager class for LifeQuest managers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.helpers.dispatcher import async_dispatcher_send

from .. import const
from ..exceptions import NotAuthenticatedError

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.core import HomeAssistant

    from ..cache import ConsistencyCache
    from ..coordinator import LifeQuestCoordinator
    from ..store import LifeQuestStore


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Build instance-scoped event signal name for dispatcher.

    Format: 'lifequest_{entry_id}_{suffix}'
    """
    return f"{const.DOMAIN}_{entry_id}_{suffix}"


def require_user(user_id: str | None) -> str:
    """Return the principal or raise if nobody is signed in."""
    if not user_id:
        raise NotAuthenticatedError(const.ERROR_NOT_AUTHENTICATED)
    return user_id


class BaseManager:
    """Base class for all LifeQuest managers with scoped event support.

    Provides:
    - Instance-scoped event emitting (emit)
    - Shortcuts to the coordinator's store, cache and clock
    """

    def __init__(self, hass: HomeAssistant, coordinator: LifeQuestCoordinator) -> None:
        """Initialize manager.

        Args:
            hass: Home Assistant instance
            coordinator: Parent coordinator managing this integration instance
        """
        self.hass = hass
        self.coordinator = coordinator
        self.entry_id = coordinator.config_entry.entry_id

    @property
    def store(self) -> LifeQuestStore:
        return self.coordinator.store

    @property
    def cache(self) -> ConsistencyCache:
        return self.coordinator.cache

    def now(self) -> datetime:
        """Current wall-clock instant (injectable via the coordinator)."""
        return self.coordinator.now()

    def emit(self, suffix: str, **payload: Any) -> None:
        """Emit instance-scoped event to other managers and listeners.

        Args:
            suffix: Signal suffix constant (e.g., const.SIGNAL_SUFFIX_LEVEL_UP)
            **payload: Event data dict passed to listeners (must be JSON-serializable)

        Example:
            self.emit(
                const.SIGNAL_SUFFIX_LEVEL_UP,
                user_id=user_id,
                old_level=2,
                new_level=3,
            )
        """
        signal = get_event_signal(self.entry_id, suffix)
        const.LOGGER.debug(
            "Emitting event '%s' for instance %s with payload keys: %s",
            suffix,
            self.entry_id,
            list(payload.keys()),
        )
        # Pass payload as single dict argument (dispatcher only supports *args)
        async_dispatcher_send(self.hass, signal, payload)
