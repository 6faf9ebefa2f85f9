"""
Rule removal strategies.

Both tiers share the same steps:

1. delete style rules without declarations
2. delete rules for AMP elements absent from the stubbed static DOM
3. usage checks against a presence oracle: comma groups, general selectors,
   pseudo selectors (by base), escaped selectors (by literal class/id) and
   finally @keyframes not referenced by any surviving declaration

Tier 0 runs step 3 on the static oracle, and only when the page holds no
exception tags. Tier 1 runs step 3 on the rendered page instead.

Usage:
    optimizer = TierZeroOptimizer(tree, selectors, whitelist=["js-*"], on_remove=stats.record)
    await optimizer.optimize(static_oracle, has_exception_tags=False)
"""

import re
from fnmatch import fnmatchcase
from typing import Callable, Iterable, List, Optional, Set

from .diagnostics import get_logger
from .oracle import ElementInfo, PresenceOracle
from .rule_tree import RuleTree
from .selectors import (
    ClassifiedSelectors,
    SelectorKind,
    escaped_literal,
    has_escaped_pseudo,
    has_pseudo,
    is_polyfill,
    split_pseudo,
)

logger = get_logger(__name__)

EMPTY = "empty"

ANIMATION_PROPERTIES = ("animation", "animation-name")
_VENDOR_PREFIX_RE = re.compile(r"^-(?:moz|ms|webkit|o)-")
_VALUE_TOKEN_RE = re.compile(r"[\s,]+")

RemovalCallback = Callable[[str, str], None]


def is_whitelisted(selector: str, patterns: Iterable[str]) -> bool:
    """Exact match or shell-style pattern (fnmatch) against any whitelist entry."""
    return any(selector == p or fnmatchcase(selector, p) for p in patterns)


def references_animation(prop: str) -> bool:
    name = _VENDOR_PREFIX_RE.sub("", prop.lower())
    return name in ANIMATION_PROPERTIES or prop.startswith("--")


def value_tokens(value: str) -> Set[str]:
    return {t.strip("'\"") for t in _VALUE_TOKEN_RE.split(value) if t}


def branch_query(branch: str) -> Optional[str]:
    """Selector to count for one comma branch; None means the branch is always kept."""
    if is_polyfill(branch):
        return None
    if has_escaped_pseudo(branch) or has_pseudo(branch):
        base, _ = split_pseudo(branch)
        return base.strip() or "*"
    return branch


class SelectorOptimizer:
    """Removal steps shared by both tiers"""

    tier = -1

    def __init__(
        self,
        rule_tree: RuleTree,
        selectors: ClassifiedSelectors,
        whitelist: Iterable[str] = (),
        on_remove: Optional[RemovalCallback] = None,
    ):
        self.rule_tree = rule_tree
        self.selectors = selectors
        self.whitelist = list(whitelist)
        self.on_remove = on_remove
        self.removed = 0
        self._elements: Optional[List[ElementInfo]] = None

    def _keeps(self, selector: str) -> bool:
        return is_whitelisted(selector, self.whitelist)

    def _record(self, category: str, selector: str) -> None:
        self.removed += 1
        if self.on_remove is not None:
            self.on_remove(category, selector)

    def _remove(self, category: str, selector: str) -> int:
        deleted = self.rule_tree.remove_rules_matching(selector)
        for _ in range(deleted):
            self._record(category, selector)
        return deleted

    def remove_empty_rules(self) -> int:
        kept = 0
        removed = 0
        for container, rule in self.rule_tree.style_rules():
            if len(rule.style.getProperties(all=True)) > 0:
                continue
            if self._keeps(rule.selectorText):
                kept += 1
                continue
            self.rule_tree.remove(container, rule)
            self._record(EMPTY, rule.selectorText)
            removed += 1
        if kept:
            logger.debug(f"Kept {kept} whitelisted empty rules")
        return removed

    async def remove_unused_amp_elements(self, oracle: PresenceOracle) -> int:
        removed = 0
        for selector in self.selectors.amp_elements:
            if self._keeps(selector.tag):
                continue
            if await oracle.count(selector.tag) == 0:
                removed += self._remove(SelectorKind.AMP_ELEMENT.value, selector.tag)
        return removed

    async def remove_unused_comma_groups(self, oracle: PresenceOracle) -> int:
        removed = 0
        for group in self.selectors.comma_groups:
            if group.is_used or self._keeps(group.text) or any(self._keeps(b) for b in group.branches):
                group.is_used = True
                continue
            for branch in group.branches:
                query = branch_query(branch)
                if query is None or await oracle.count(query) > 0:
                    group.is_used = True
                    break
            if not group.is_used:
                removed += self._remove(SelectorKind.COMMA_GROUP.value, group.text)
        return removed

    async def remove_unused_general(self, oracle: PresenceOracle) -> int:
        removed = 0
        for selector in self.selectors.general:
            if self._keeps(selector.text):
                continue
            if await oracle.count(selector.text) == 0:
                removed += self._remove(SelectorKind.GENERAL.value, selector.text)
        return removed

    async def remove_unused_pseudos(self, oracle: PresenceOracle) -> int:
        removed = 0
        for selector in self.selectors.pseudos:
            if self._keeps(selector.key):
                continue
            if await oracle.count(selector.query) == 0:
                removed += self._remove(SelectorKind.PSEUDO.value, selector.key)
        return removed

    async def remove_unused_escaped(self, oracle: PresenceOracle) -> int:
        candidates = [s for s in self.selectors.escaped_pseudos if not self._keeps(s.text)]
        if not candidates:
            return 0
        if self._elements is None:
            self._elements = await oracle.query_all("*")
        if self._elements is None:
            logger.warning("Element listing unavailable, keeping all escaped selectors")
            return 0

        classes = {c for el in self._elements for c in el.classes}
        ids = {el.id for el in self._elements if el.id}
        removed = 0
        for selector in candidates:
            literal = escaped_literal(selector.text)
            if literal is None:
                continue
            kind, value = literal
            used = value in classes if kind == "class" else value in ids
            if not used:
                removed += self._remove(SelectorKind.ESCAPED_PSEUDO.value, selector.text)
        return removed

    def remove_unused_keyframes(self) -> int:
        referenced: Set[str] = set()
        for prop, value in self.rule_tree.declarations():
            if references_animation(prop):
                referenced |= value_tokens(value)

        removed = 0
        for keyframe in self.selectors.keyframes:
            keyframe.is_used = keyframe.name in referenced or self._keeps(keyframe.name)
            if keyframe.is_used:
                continue
            deleted = self.rule_tree.remove_keyframes(keyframe.name)
            for _ in range(deleted):
                self._record(SelectorKind.KEYFRAMES.value, keyframe.name)
            removed += deleted
        return removed

    async def check_usage(self, oracle: PresenceOracle) -> int:
        removed = await self.remove_unused_comma_groups(oracle)
        removed += await self.remove_unused_general(oracle)
        removed += await self.remove_unused_pseudos(oracle)
        removed += await self.remove_unused_escaped(oracle)
        removed += self.remove_unused_keyframes()
        return removed

    def finish(self) -> int:
        pruned = self.rule_tree.prune_empty_blocks()
        logger.debug(f"Tier {self.tier}: removed {self.removed} rules, pruned {pruned} empty blocks")
        return self.removed


class TierZeroOptimizer(SelectorOptimizer):
    """Static analysis only"""

    tier = 0

    async def optimize(self, static_oracle: PresenceOracle, has_exception_tags: bool = False) -> int:
        self.remove_empty_rules()
        await self.remove_unused_amp_elements(static_oracle)
        if has_exception_tags:
            logger.debug("Exception tags present, skipping usage checks")
        else:
            await self.check_usage(static_oracle)
        return self.finish()


class TierOneOptimizer(SelectorOptimizer):
    """Static AMP element pass, usage checks against the rendered page"""

    tier = 1

    async def optimize(self, static_oracle: PresenceOracle, dynamic_oracle: PresenceOracle) -> int:
        self.remove_empty_rules()
        await self.remove_unused_amp_elements(static_oracle)
        await self.check_usage(dynamic_oracle)
        return self.finish()
