"""
Selector classification types.

Every selector found in a document's custom styles is bucketed into exactly
one ClassifiedSelector variant. The variant decides how the optimizers test
it for usage:

- SimpleSelector       - plain oracle count
- AmpElementSelector   - count of the AMP tag in the (stubbed) static DOM
- PseudoSelector       - count of the base, ignoring the pseudo modifier
- EscapedPseudoSelector - literal class/id string match
- PolyfillSelector     - always kept
- CommaGroup           - kept whole if any branch is used
- Keyframe             - kept if a surviving declaration references its name
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Iterator, List, Optional, Tuple


class SelectorKind(Enum):
    """Selector bucket; the value doubles as the statistics category name"""
    POLYFILL = "polyfill"
    ESCAPED_PSEUDO = "escaped_pseudo"
    PSEUDO = "pseudo"
    AMP_ELEMENT = "amp_element"
    GENERAL = "general"
    COMMA_GROUP = "comma_group"
    KEYFRAMES = "keyframes"


# Pseudo-classes/elements whose state cannot be queried offline
IGNORED_PSEUDOS = [
    # link
    ":link", ":visited",
    # user action
    ":hover", ":active", ":focus", ":focus-within", ":focus-visible",
    # UI element states
    ":enabled", ":disabled", ":checked", ":indeterminate",
    # form validation
    ":required", ":optional", ":invalid", ":valid", ":placeholder-shown",
    # pseudo elements
    "::first-line", "::first-letter", "::selection", "::before", "::after",
    "::placeholder", "::marker", "::backdrop",
    # CSS2 pseudo elements
    ":before", ":after", ":first-line", ":first-letter",
    # misc
    ":target", ":lang",
]

_VENDOR_PSEUDO = r"::?-(?:moz|ms|webkit|o)-[a-z0-9-]+"

PSEUDO_RE = re.compile(
    r"(?<!\\)(?:" + "|".join(re.escape(p) for p in IGNORED_PSEUDOS) + "|" + _VENDOR_PSEUDO + r")(?![\w-])",
    re.IGNORECASE,
)
POLYFILL_RE = re.compile(_VENDOR_PSEUDO, re.IGNORECASE)

_ESCAPED_TOKEN_RE = re.compile(r"([.#])((?:\\[0-9a-fA-F]{1,6}\s?|\\.|[\w-])+)")
_HEX_ESCAPE_RE = re.compile(r"\\([0-9a-fA-F]{1,6})\s?")
_CHAR_ESCAPE_RE = re.compile(r"\\(.)")


def is_polyfill(selector: str) -> bool:
    return bool(POLYFILL_RE.search(selector))


def has_escaped_pseudo(selector: str) -> bool:
    return "\\" in selector


def has_pseudo(selector: str) -> bool:
    return bool(PSEUDO_RE.search(selector))


def split_pseudo(selector: str) -> Tuple[str, str]:
    """
    Split a selector at its first unescaped colon.

    Example:
        'a.btn:hover'                -> ('a.btn', ':hover')
        '.hover\\:underline:hover'   -> ('.hover\\:underline', ':hover')
        '::selection'                -> ('', '::selection')
    """
    i = 0
    while i < len(selector):
        ch = selector[i]
        if ch == "\\":
            i += 2
            continue
        if ch == ":":
            return selector[:i], selector[i:]
        i += 1
    return selector, ""


def unescape_identifier(value: str) -> str:
    """Resolve CSS escapes ('\\:' -> ':', '\\31 ' -> '1')."""
    value = _HEX_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), value)
    return _CHAR_ESCAPE_RE.sub(lambda m: m.group(1), value)


def escaped_literal(selector: str) -> Optional[Tuple[str, str]]:
    """
    Find the first escaped class or id in a selector.

    Returns:
        ('class' | 'id', unescaped literal) or None when the selector holds
        no escaped class/id token.
    """
    for match in _ESCAPED_TOKEN_RE.finditer(selector):
        prefix, name = match.groups()
        if "\\" in name:
            return ("class" if prefix == "." else "id", unescape_identifier(name))
    return None


@dataclass
class ClassifiedSelector:
    kind: ClassVar[SelectorKind]

    @property
    def key(self) -> str:
        raise NotImplementedError


@dataclass
class SimpleSelector(ClassifiedSelector):
    text: str
    kind: ClassVar[SelectorKind] = SelectorKind.GENERAL

    @property
    def key(self) -> str:
        return self.text


@dataclass
class AmpElementSelector(ClassifiedSelector):
    tag: str
    kind: ClassVar[SelectorKind] = SelectorKind.AMP_ELEMENT

    @property
    def key(self) -> str:
        return self.tag


@dataclass
class PseudoSelector(ClassifiedSelector):
    base: str
    modifier: str
    kind: ClassVar[SelectorKind] = SelectorKind.PSEUDO

    @property
    def key(self) -> str:
        return self.base + self.modifier

    @property
    def query(self) -> str:
        return self.base.strip() or "*"


@dataclass
class EscapedPseudoSelector(ClassifiedSelector):
    text: str
    kind: ClassVar[SelectorKind] = SelectorKind.ESCAPED_PSEUDO

    @property
    def key(self) -> str:
        return self.text


@dataclass
class PolyfillSelector(ClassifiedSelector):
    text: str
    kind: ClassVar[SelectorKind] = SelectorKind.POLYFILL

    @property
    def key(self) -> str:
        return self.text


@dataclass
class CommaGroup(ClassifiedSelector):
    text: str
    branches: List[str]
    is_used: bool = False
    kind: ClassVar[SelectorKind] = SelectorKind.COMMA_GROUP

    @property
    def key(self) -> str:
        return self.text


@dataclass
class Keyframe(ClassifiedSelector):
    name: str
    is_used: bool = False
    kind: ClassVar[SelectorKind] = SelectorKind.KEYFRAMES

    @property
    def key(self) -> str:
        return self.name


def classify_selector(selector: str, is_amp_element) -> ClassifiedSelector:
    """Bucket a single (non comma-separated) selector by precedence."""
    if is_polyfill(selector):
        return PolyfillSelector(selector)
    if has_escaped_pseudo(selector):
        return EscapedPseudoSelector(selector)
    if has_pseudo(selector):
        base, modifier = split_pseudo(selector)
        return PseudoSelector(base, modifier)
    if is_amp_element(selector):
        return AmpElementSelector(selector.strip())
    return SimpleSelector(selector)


@dataclass
class ClassifiedSelectors:
    """Ordered, de-duplicated classification result for one document"""
    raw_css: str = ""
    _entries: Dict[Tuple[SelectorKind, str], ClassifiedSelector] = field(default_factory=dict)

    def add(self, selector: ClassifiedSelector) -> ClassifiedSelector:
        ident = (selector.kind, selector.key)
        return self._entries.setdefault(ident, selector)

    def of_kind(self, kind: SelectorKind) -> List[ClassifiedSelector]:
        return [s for s in self._entries.values() if s.kind is kind]

    def counts(self) -> Dict[str, int]:
        out: Dict[str, int] = {kind.value: 0 for kind in SelectorKind}
        for s in self._entries.values():
            out[s.kind.value] += 1
        return out

    def __iter__(self) -> Iterator[ClassifiedSelector]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def general(self) -> List[SimpleSelector]:
        return self.of_kind(SelectorKind.GENERAL)

    @property
    def amp_elements(self) -> List[AmpElementSelector]:
        return self.of_kind(SelectorKind.AMP_ELEMENT)

    @property
    def pseudos(self) -> List[PseudoSelector]:
        return self.of_kind(SelectorKind.PSEUDO)

    @property
    def escaped_pseudos(self) -> List[EscapedPseudoSelector]:
        return self.of_kind(SelectorKind.ESCAPED_PSEUDO)

    @property
    def polyfills(self) -> List[PolyfillSelector]:
        return self.of_kind(SelectorKind.POLYFILL)

    @property
    def comma_groups(self) -> List[CommaGroup]:
        return self.of_kind(SelectorKind.COMMA_GROUP)

    @property
    def keyframes(self) -> List[Keyframe]:
        return self.of_kind(SelectorKind.KEYFRAMES)
