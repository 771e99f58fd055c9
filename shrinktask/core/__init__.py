"""ShrinkTask Core - Shared constants and type definitions.

Import specific names from submodules:
    from shrinktask.core.constants import ErrorCode, FilterKey, STD_OUT
"""

from shrinktask.core import constants

__all__ = [
    "constants",
]
