"""
AMP tag tables.

AMP_ELEMENT_RE recognises selectors that consist of a single AMP custom
element tag. EXCEPTION_TAGS lists the components whose runtime DOM depends on
fetched data, scripts, geolocation or experiments; a document containing any
of them needs the rendered browser DOM for selector usage checks.
"""

import re
from typing import FrozenSet

AMP_ELEMENT_RE = re.compile(r"^amp-[a-z0-9-]+$")

# Markup rendered from remote JSON through <template>
DATA_DRIVEN_TAGS: FrozenSet[str] = frozenset({
    "amp-list",
    "amp-live-list",
    "amp-date-display",
    "amp-date-countdown",
    "amp-next-page",
})

# Classes and attributes toggled by scripts or server responses
SCRIPT_DRIVEN_TAGS: FrozenSet[str] = frozenset({
    "amp-access",
    "amp-access-laterpay",
    "amp-bind-macro",
    "amp-date-picker",
    "amp-experiment",
    "amp-font",
    "amp-geo",
    "amp-script",
    "amp-selector",
    "amp-state",
    "amp-story",
    "amp-subscriptions",
    "amp-subscriptions-google",
    "amp-user-notification",
})

EXCEPTION_TAGS: FrozenSet[str] = DATA_DRIVEN_TAGS | SCRIPT_DRIVEN_TAGS

# <style> attributes marking AMP-owned blocks that are never optimized
BOILERPLATE_STYLE_ATTRS = ("amp-boilerplate", "amp-keyframes")


def is_amp_element(selector: str) -> bool:
    return bool(AMP_ELEMENT_RE.match(selector.strip()))
