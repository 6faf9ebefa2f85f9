"""
Presence oracles: one interface, a static (parsed DOM) and a dynamic (rendered page) backend.
"""

from .base import FAIL_SOFT_COUNT, ElementInfo, PresenceOracle
from .dynamic import DynamicOracle
from .static import StaticOracle

__all__ = [
    "FAIL_SOFT_COUNT",
    "ElementInfo",
    "PresenceOracle",
    "StaticOracle",
    "DynamicOracle",
]
