# File: utils/__init__.py
"""Pure Python utilities for LifeQuest.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Submodules:
    - dt_utils: Date/time parsing, calendar day boundaries, day differences
"""

from . import dt_utils

__all__ = ["dt_utils"]
