"""
Rule Tree - mutable CSS representation for one document's custom CSS

The stylesheet is cut into top-level statements with the cssutils tokenizer.
Each statement keeps its exact source text:

- @media blocks become containers whose children are parsed the same way
- any other at-rule (@keyframes, @supports, @layer, @container, @font-face)
  is carried through verbatim
- style rules are parsed one by one with cssutils; a rule cssutils reports an
  error for, or one holding nested blocks, is carried through verbatim and
  listed in RuleTree.unparsed

Only parsed style rules, @keyframes blocks and emptied @media blocks are ever
removed, so nothing cssutils cannot read is lost on serialization.

Usage:
    tree = RuleTree.parse(".a{color:red}@media print{.b{color:blue}}")
    tree.remove_rules_matching(".b")
    tree.prune_empty_blocks()
    tree.serialize()   # '.a{color:red}'
"""

import logging
import re
import xml.dom
from typing import Iterator, List, NamedTuple, Optional, Tuple

import cssutils
from cssutils.css import CSSRule
from cssutils.serialize import CSSSerializer, Preferences
from cssutils.tokenize2 import Tokenizer

from .exceptions import ParseFailure


class _ErrorCollector(logging.Handler):
    """Collects the errors cssutils reports while reading one rule"""

    def __init__(self):
        super().__init__(logging.ERROR)
        self.messages: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


# cssutils reports through this logger; rules are checked against it one at a time
_css_log = logging.getLogger("amp_uncss.cssutils")
_css_log.addHandler(logging.NullHandler())
_css_log.setLevel(logging.ERROR)
_css_log.propagate = False
cssutils.log.setLog(_css_log)


def _minified_serializer() -> CSSSerializer:
    prefs = Preferences()
    prefs.useMinified()
    prefs.keepUnknownAtRules = True
    prefs.keepAllProperties = True
    prefs.keepEmptyRules = True
    return CSSSerializer(prefs)


# rule.cssText goes through cssutils' module-level serializer
cssutils.setSerializer(_minified_serializer())

STYLE_RULE = CSSRule.STYLE_RULE
MEDIA_RULE = CSSRule.MEDIA_RULE
UNKNOWN_RULE = CSSRule.UNKNOWN_RULE

_SKIPPED_TOKENS = frozenset(["S", "COMMENT", "CDO", "CDC"])
_VENDOR_PREFIX_RE = re.compile(r"^-(?:moz|ms|webkit|o)-")
_KEYFRAMES_NAME_RE = re.compile(r"@(?:-[a-z]+-)?keyframes\s+['\"]?([^\s{'\"]+)", re.IGNORECASE)
_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_RAW_DECLARATION_RE = re.compile(r"(-{0,2}[A-Za-z_][\w-]*)\s*:\s*([^;{}]*)")

_tokenizer = Tokenizer(doComments=True)


class Statement(NamedTuple):
    """One top-level statement sliced from the source"""
    text: str
    keyword: Optional[str]
    prelude: str
    body: Optional[str]
    nested: bool = False
    complete: bool = True


def _line_starts(text: str) -> List[int]:
    starts = [0]
    pos = text.find("\n")
    while pos != -1:
        starts.append(pos + 1)
        pos = text.find("\n", pos + 1)
    return starts


def _at_keyword(value: str) -> Optional[str]:
    return value[1:].strip().lower() if value.startswith("@") else None


def split_statements(css: str) -> List[Statement]:
    """
    Cut css into its top-level statements.

    A statement ends at a ';' outside any block or at the '}' closing its
    outermost block. Comments and whitespace between statements are dropped;
    an unterminated trailing statement is returned with complete=False.
    """
    css = css.lstrip("\ufeff")
    starts = _line_starts(css)
    statements: List[Statement] = []
    start = body_start = None
    keyword = None
    depth = 0
    nested = False

    for name, value, line, col in _tokenizer.tokenize(css):
        # the tokenizer counts lines on '\n' and columns from 1
        offset = starts[line - 1] + col - 1
        if start is None:
            if name in _SKIPPED_TOKENS or value in (";", "}"):
                continue
            start, keyword, nested = offset, _at_keyword(value), False
        if name != "CHAR":
            continue
        if value == "{":
            depth += 1
            if depth == 1:
                body_start = offset + 1
            else:
                nested = True
        elif value == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                statements.append(Statement(
                    css[start:offset + 1], keyword, css[start:body_start - 1], css[body_start:offset], nested,
                ))
                start = body_start = None
        elif value == ";" and depth == 0:
            statements.append(Statement(css[start:offset + 1], keyword, css[start:offset], None))
            start = None

    if start is not None:
        statements.append(Statement(css[start:], keyword, css[start:], None, nested, complete=False))
    return statements


class RawRule:
    """Statement carried through as written"""

    type = UNKNOWN_RULE

    def __init__(self, text: str, keyword: Optional[str] = None):
        self.text = text
        self.keyword = keyword

    @property
    def cssText(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"RawRule({self.text!r})"


class RuleBlock:
    """Ordered list of rules: the whole sheet"""

    type = None
    keyword: Optional[str] = None

    def __init__(self, rules: Optional[List] = None, prelude: str = ""):
        self.rules = rules if rules is not None else []
        self.prelude = prelude

    @property
    def cssText(self) -> str:
        return "".join(_rule_text(rule) for rule in self.rules)


class MediaBlock(RuleBlock):
    """@media block; its prelude ('@media print') is kept as written"""

    type = MEDIA_RULE
    keyword = "media"

    @property
    def cssText(self) -> str:
        return f"{self.prelude}{{{super().cssText}}}"


def _rule_text(rule) -> str:
    if rule.type == STYLE_RULE:
        return rule.cssText.replace("\r\n", "").replace("\n", "")
    return rule.cssText


def at_rule_name(rule) -> Optional[str]:
    """Normalized at-rule name ('media', 'keyframes', ...) or None for style rules."""
    keyword = getattr(rule, "keyword", None)
    return _VENDOR_PREFIX_RE.sub("", keyword) if keyword else None


def keyframes_name(rule) -> Optional[str]:
    match = _KEYFRAMES_NAME_RE.match(rule.cssText)
    return match.group(1) if match else None


def raw_declarations(text: str) -> Iterator[Tuple[str, str]]:
    """Best-effort (property, value) pairs found in text cssutils did not parse."""
    for match in _RAW_DECLARATION_RE.finditer(_COMMENT_RE.sub("", text)):
        yield match.group(1).lower(), match.group(2).strip()


def _parse_style_rule(statement: Statement, parser: cssutils.CSSParser):
    """The cssutils style rule for statement, or None when it cannot be read cleanly."""
    if statement.body is None or statement.nested or not statement.complete:
        return None
    collector = _ErrorCollector()
    _css_log.addHandler(collector)
    try:
        sheet = parser.parseString(statement.text)
    except xml.dom.DOMException:
        return None
    finally:
        _css_log.removeHandler(collector)
    rules = [rule for rule in sheet.cssRules if rule.type != CSSRule.COMMENT]
    if collector.messages or len(rules) != 1 or rules[0].type != STYLE_RULE:
        return None
    return rules[0]


def _build(css: str, parser: cssutils.CSSParser, unparsed: List[RawRule]) -> List:
    rules = []
    for statement in split_statements(css):
        if statement.keyword == "media" and statement.body is not None:
            children = _build(statement.body, parser, unparsed)
            rules.append(MediaBlock(children, statement.prelude.strip()))
        elif statement.keyword is not None:
            rules.append(RawRule(statement.text.strip(), statement.keyword))
        else:
            rule = _parse_style_rule(statement, parser)
            if rule is None:
                rule = RawRule(statement.text.strip())
                unparsed.append(rule)
            rules.append(rule)
    return rules


def _index_of(container: RuleBlock, rule) -> int:
    for i, candidate in enumerate(container.rules):
        if candidate is rule:
            return i
    raise ValueError("rule is not a child of container")


class RuleTree:
    """Live, mutable rule tree for one document's custom CSS"""

    def __init__(self, root: RuleBlock, unparsed: Optional[List[RawRule]] = None):
        self.root = root
        self.unparsed = unparsed or []

    @classmethod
    def parse(cls, css: str) -> "RuleTree":
        unparsed: List[RawRule] = []
        try:
            rules = _build(css, cssutils.CSSParser(validate=False), unparsed)
        except Exception as e:
            raise ParseFailure(f"CSS could not be parsed: {e}") from e
        return cls(RuleBlock(rules), unparsed)

    def walk(self, container: Optional[RuleBlock] = None) -> Iterator[Tuple[RuleBlock, object]]:
        """Yield (container, rule) pairs depth-first; @media blocks are entered."""
        container = container if container is not None else self.root
        for rule in list(container.rules):
            yield container, rule
            if isinstance(rule, MediaBlock):
                yield from self.walk(rule)

    def style_rules(self) -> List[Tuple[RuleBlock, object]]:
        return [(c, r) for c, r in self.walk() if r.type == STYLE_RULE]

    def remove(self, container: RuleBlock, rule) -> None:
        del container.rules[_index_of(container, rule)]

    def remove_rules_matching(self, selector_text: str) -> int:
        """Delete every style rule whose full selector text equals selector_text."""
        targets = [(c, r) for c, r in self.style_rules() if r.selectorText == selector_text]
        for container, rule in targets:
            self.remove(container, rule)
        return len(targets)

    def keyframes(self) -> List[Tuple[RuleBlock, RawRule, Optional[str]]]:
        return [
            (c, r, keyframes_name(r))
            for c, r in self.walk()
            if r.type == UNKNOWN_RULE and at_rule_name(r) == "keyframes"
        ]

    def remove_keyframes(self, name: str) -> int:
        targets = [(c, r) for c, r, n in self.keyframes() if n == name]
        for container, rule in targets:
            self.remove(container, rule)
        return len(targets)

    def declarations(self) -> Iterator[Tuple[str, str]]:
        """
        (property, value) for every declaration that can still apply.

        Parsed style rules report their cssutils properties. Verbatim blocks
        (@supports blocks and unparsed style rules) are scanned textually, so an
        animation declared inside them still counts. @keyframes bodies are
        skipped.
        """
        for _, rule in self.walk():
            if rule.type == STYLE_RULE:
                for prop in rule.style.getProperties(all=True):
                    yield prop.name, prop.value
            elif rule.type == UNKNOWN_RULE and at_rule_name(rule) != "keyframes":
                yield from raw_declarations(rule.text)

    def prune_empty_blocks(self) -> int:
        """Delete @media blocks left without rules, innermost first."""
        pruned = 0
        for container, rule in reversed(list(self.walk())):
            if isinstance(rule, MediaBlock) and not rule.rules:
                self.remove(container, rule)
                pruned += 1
        return pruned

    def serialize(self) -> str:
        return self.root.cssText

    def __str__(self) -> str:
        return self.serialize()
