"""Manager modules for LifeQuest integration.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .base_manager import BaseManager, get_event_signal, require_user
from .character_manager import CharacterManager
from .daily_cycle_manager import DailyCycleManager
from .quest_manager import QuestManager

__all__ = [
    "BaseManager",
    "CharacterManager",
    "DailyCycleManager",
    "QuestManager",
    "get_event_signal",
    "require_user",
]
