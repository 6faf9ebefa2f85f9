"""
Stub registry - tag name -> runtime DOM approximation

A tag mapped to a function gets that function applied to every element of
that tag. A tag mapped to None is known, but its runtime markup depends on
data, scripts or the visitor (geo, experiments, fonts, access), so nothing
is simulated; these are the tags that route a document to the browser tier.
Tags absent from the registry are ignored.

Usage:
    soup = BeautifulSoup(html, "html.parser")
    ctx = stub_page(soup)
    ctx.stubbed["amp-img"]   # number of <amp-img> elements stubbed
"""

from collections import Counter
from typing import Callable, Dict, Optional, Set

from bs4 import BeautifulSoup, Tag

from ..diagnostics import get_logger
from . import components
from .layout import apply_layout

logger = get_logger(__name__)

StubFunction = Callable[[Tag, "StubContext"], None]

STUB_REGISTRY: Dict[str, Optional[StubFunction]] = {
    "amp-img": components.stub_amp_img,
    "amp-anim": components.stub_amp_img,
    "amp-video": components.stub_media("video"),
    "amp-audio": components.stub_media("audio"),
    "amp-carousel": components.stub_amp_carousel,
    "amp-accordion": components.stub_amp_accordion,
    "amp-sidebar": components.stub_amp_sidebar,
    "amp-list": components.stub_amp_list,
    "amp-live-list": components.stub_amp_live_list,
    "amp-layout": components.stub_amp_layout,
    "amp-fit-text": components.stub_amp_fit_text,
    "amp-image-lightbox": components.stub_amp_image_lightbox,
    # not representable statically
    "amp-access": None,
    "amp-access-laterpay": None,
    "amp-bind-macro": None,
    "amp-date-picker": None,
    "amp-experiment": None,
    "amp-font": None,
    "amp-geo": None,
    "amp-script": None,
    "amp-selector": None,
    "amp-state": None,
    "amp-story": None,
    "amp-subscriptions": None,
    "amp-subscriptions-google": None,
    "amp-user-notification": None,
}
STUB_REGISTRY.update({tag: components.stub_embed_iframe for tag in components.EMBED_IFRAME_TAGS})


class StubContext:
    """Document handle passed to every stub function"""

    def __init__(self, soup: BeautifulSoup, registry: Optional[Dict[str, Optional[StubFunction]]] = None):
        self.soup = soup
        self.registry = STUB_REGISTRY if registry is None else registry
        self.stubbed: Counter = Counter()
        self._seen: Set[int] = set()

    def new_tag(self, name: str, attrs: Optional[Dict] = None) -> Tag:
        return self.soup.new_tag(name, attrs=attrs or {})

    def stub_element(self, el: Tag) -> None:
        if id(el) in self._seen:
            return
        self._seen.add(id(el))
        stub = self.registry.get(el.name)
        if stub is not None:
            stub(el, self)
            self.stubbed[el.name] += 1
        if el.has_attr("layout"):
            apply_layout(el, self)

    def stub_subtree(self, root: Tag) -> None:
        """Stub root and its descendants; used for copied or relocated markup."""
        for el in [root, *root.find_all(True)]:
            self.stub_element(el)


def stub_page(soup: BeautifulSoup) -> StubContext:
    """Mutate soup in place, visiting every element in document order."""
    ctx = StubContext(soup)
    for el in soup.find_all(True):
        ctx.stub_element(el)
    if ctx.stubbed:
        logger.debug(f"Stubbed elements: {dict(ctx.stubbed)}")
    return ctx
