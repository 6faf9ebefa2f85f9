"""
Selector classifier - buckets every selector of a document's custom CSS.

Walks a read-only parse of the concatenated custom <style> blocks. At-rules are
dispatched through AT_RULE_HANDLERS: False skips the block, True recurses into
its rules, a callable handles it. @media content is classified like top-level
rules; everything else except @keyframes is left alone.
"""

from typing import Iterable, List, Set

from bs4 import BeautifulSoup, Tag

from .diagnostics import get_logger
from .rule_tree import STYLE_RULE, RuleTree, at_rule_name, keyframes_name
from .selectors import ClassifiedSelectors, CommaGroup, Keyframe, classify_selector
from .tags import BOILERPLATE_STYLE_ATTRS, EXCEPTION_TAGS, is_amp_element

logger = get_logger(__name__)


def _stash_keyframes(rule, result: ClassifiedSelectors) -> None:
    name = keyframes_name(rule)
    if name:
        result.add(Keyframe(name))


AT_RULE_HANDLERS = {
    "charset": False,
    "import": False,
    "namespace": False,
    "media": True,
    "supports": False,
    "document": False,
    "page": False,
    "font-face": False,
    "keyframes": _stash_keyframes,
    "viewport": False,
    "counter-style": False,
    "font-feature-values": False,
    "variables": False,
    "layer": False,
    "container": False,
}


def custom_style_tags(soup: BeautifulSoup) -> List[Tag]:
    """<style> elements that belong to the author, in document order."""
    return [
        tag for tag in soup.find_all("style")
        if not any(tag.has_attr(attr) for attr in BOILERPLATE_STYLE_ATTRS)
    ]


def extract_custom_css(soup: BeautifulSoup) -> str:
    return "".join(tag.get_text() for tag in custom_style_tags(soup))


def find_exception_tags(soup: BeautifulSoup) -> Set[str]:
    return {name for name in EXCEPTION_TAGS if soup.find(name) is not None}


def _classify_style_rule(rule, result: ClassifiedSelectors) -> None:
    branches = [s.selectorText for s in rule.selectorList]
    if len(branches) > 1:
        result.add(CommaGroup(rule.selectorText, branches))
    elif branches:
        result.add(classify_selector(branches[0], is_amp_element))


def _dig(container, result: ClassifiedSelectors) -> None:
    for rule in container.rules:
        if rule.type == STYLE_RULE:
            _classify_style_rule(rule, result)
            continue
        name = at_rule_name(rule)
        if name is None:
            continue
        handler = AT_RULE_HANDLERS.get(name, False)
        if handler is True:
            _dig(rule, result)
        elif callable(handler):
            handler(rule, result)


def classify_rules(tree: RuleTree, raw_css: str = "") -> ClassifiedSelectors:
    result = ClassifiedSelectors(raw_css=raw_css)
    _dig(tree.root, result)
    return result


def classify(soup: BeautifulSoup) -> ClassifiedSelectors:
    """
    Classify the custom CSS of a parsed document.

    Raises:
        ParseFailure: the custom CSS could not be parsed
    """
    raw_css = extract_custom_css(soup)
    result = classify_rules(RuleTree.parse(raw_css), raw_css)
    logger.debug(f"Classified {len(result)} selectors: {result.counts()}")
    return result


def classify_texts(style_texts: Iterable[str]) -> ClassifiedSelectors:
    raw_css = "".join(style_texts)
    return classify_rules(RuleTree.parse(raw_css), raw_css)
