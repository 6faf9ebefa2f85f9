"""
Runtime-DOM simulator: stubs that approximate AMP runtime markup on a static DOM.
"""

from .layout import LAYOUT_STUBS, apply_layout
from .registry import STUB_REGISTRY, StubContext, stub_page

__all__ = [
    "LAYOUT_STUBS",
    "STUB_REGISTRY",
    "StubContext",
    "apply_layout",
    "stub_page",
]
