"""Test helpers for LifeQuest integration tests.

This module re-exports all helpers for convenient imports:

    from tests.helpers import (
        # Clocks
        FIXED_NOW, MutableClock, FakeMonotonic,

        # Setup
        setup_scenario, SetupResult,

        # Workflows
        call_service, complete_quest, get_character, get_journal,
    )

See individual modules for full documentation:
- clocks.py: Controllable wall and monotonic clocks
- setup.py: Declarative quest seeding through the managers
- workflows.py: Service-call helpers acting as a given user
"""

from tests.helpers.clocks import FIXED_NOW, TEST_USER_ID, FakeMonotonic, MutableClock
from tests.helpers.setup import SetupResult, setup_scenario
from tests.helpers.workflows import (
    call_service,
    complete_quest,
    get_character,
    get_journal,
    user_context,
)

__all__ = [
    "FIXED_NOW",
    "TEST_USER_ID",
    "FakeMonotonic",
    "MutableClock",
    "SetupResult",
    "call_service",
    "complete_quest",
    "get_character",
    "get_journal",
    "setup_scenario",
    "user_context",
]
