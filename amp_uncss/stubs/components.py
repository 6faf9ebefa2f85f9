"""
Component stubs - approximations of the markup each AMP component injects at
runtime.

Each stub is a plain function (element, ctx) -> None that mutates the static
DOM in place. Stubs never raise on missing optional attributes; they simply
skip that part of the injection.
"""

import copy
from typing import List

from bs4 import BeautifulSoup, NavigableString, Tag

from .layout import add_class

# Copies of list/template items, enough for :first-child, :nth-child(even|odd), :last-child
LIST_COPIES = 3

EMBED_IFRAME_TAGS = (
    "amp-iframe",
    "amp-youtube",
    "amp-vimeo",
    "amp-dailymotion",
    "amp-twitter",
    "amp-instagram",
    "amp-facebook",
    "amp-facebook-comments",
    "amp-facebook-like",
    "amp-facebook-page",
    "amp-gist",
    "amp-soundcloud",
    "amp-google-document-embed",
    "amp-embedly-card",
    "amp-reddit",
    "amp-vine",
    "amp-brightcove",
    "amp-jwplayer",
    "amp-kaltura-player",
    "amp-video-iframe",
)

_IMG_PASSTHROUGH_ATTRS = ("src", "srcset", "sizes", "alt", "title", "referrerpolicy", "crossorigin")


def _element_children(el: Tag) -> List[Tag]:
    return [child for child in el.children if isinstance(child, Tag)]


def _wrap_contents(el: Tag, wrapper: Tag) -> Tag:
    for child in list(el.contents):
        wrapper.append(child.extract())
    el.append(wrapper)
    return wrapper


def stub_amp_img(el: Tag, ctx) -> None:
    """<amp-img> renders a real <img> child."""
    img = ctx.new_tag("img", attrs={
        "decoding": "async",
        "class": ["i-amphtml-fill-content", "i-amphtml-replaced-content"],
    })
    for attr in _IMG_PASSTHROUGH_ATTRS:
        if el.has_attr(attr):
            img[attr] = el[attr]
    el.append(img)


def stub_media(tag_name: str):
    """<amp-video>/<amp-audio> render the native media element and move <source>/<track> into it."""
    def stub(el: Tag, ctx) -> None:
        media = ctx.new_tag(tag_name, attrs={"class": ["i-amphtml-fill-content", "i-amphtml-replaced-content"]})
        for attr in ("src", "poster", "controls", "loop", "muted", "autoplay"):
            if el.has_attr(attr):
                media[attr] = el[attr]
        for source in el.find_all(["source", "track"], recursive=False):
            media.append(source.extract())
        el.append(media)
    stub.__name__ = f"stub_amp_{tag_name}"
    return stub


def stub_embed_iframe(el: Tag, ctx) -> None:
    """Embeds render their player or widget inside an <iframe>."""
    iframe = ctx.new_tag("iframe", attrs={
        "class": ["i-amphtml-fill-content"],
        "frameborder": "0",
    })
    if el.has_attr("src"):
        iframe["src"] = el["src"]
    el.append(iframe)


def stub_amp_carousel(el: Tag, ctx) -> None:
    """
    <amp-carousel> wraps each child in slide markup and adds prev/next buttons.

    type="slides":
        <div class="i-amphtml-slides-container">
          <div class="i-amphtml-slide-item"><child class="amp-carousel-slide"/></div>
        </div>
    type="carousel" (default):
        <div class="i-amphtml-scrollable-carousel-container">
          <child class="amp-carousel-slide"/>
        </div>
    """
    slides = _element_children(el)
    if el.get("type", "carousel") == "slides":
        container = ctx.new_tag("div", attrs={"class": ["i-amphtml-slides-container"], "aria-live": "polite"})
        for child in slides:
            item = ctx.new_tag("div", attrs={"class": ["i-amphtml-slide-item"]})
            add_class(child, "amp-carousel-slide")
            item.append(child.extract())
            container.append(item)
    else:
        container = ctx.new_tag("div", attrs={"class": ["i-amphtml-scrollable-carousel-container"]})
        for child in slides:
            add_class(child, "amp-carousel-slide")
            container.append(child.extract())
    el.append(container)

    for direction, label in (("prev", "Previous item in carousel"), ("next", "Next item in carousel")):
        el.append(ctx.new_tag("div", attrs={
            "class": ["amp-carousel-button", f"amp-carousel-button-{direction}"],
            "role": "button",
            "tabindex": "0",
            "aria-label": label,
        }))

    for child in slides:
        ctx.stub_subtree(child)


def _mark_accordion_section(section: Tag, expanded: bool) -> None:
    parts = _element_children(section)
    if parts:
        add_class(parts[0], "i-amphtml-accordion-header")
        parts[0]["aria-expanded"] = "true" if expanded else "false"
    if len(parts) > 1:
        add_class(parts[1], "i-amphtml-accordion-content")


def stub_amp_accordion(el: Tag, ctx) -> None:
    """
    Both expansion states of an <amp-accordion> section can be styled, so each
    section is duplicated: the original is marked expanded, the copy collapsed.
    """
    for section in _element_children(el):
        clone = copy.copy(section)
        section["expanded"] = ""
        if "expanded" in clone.attrs:
            del clone["expanded"]
        _mark_accordion_section(section, expanded=True)
        _mark_accordion_section(clone, expanded=False)
        section.insert_after(clone)
        ctx.stub_subtree(clone)


def stub_amp_sidebar(el: Tag, ctx) -> None:
    """A <nav toolbar-target="id"> inside <amp-sidebar> is copied into the element with that id."""
    for nav in el.find_all("nav"):
        target_id = nav.get("toolbar-target")
        if not target_id:
            continue
        target = ctx.soup.find(id=target_id)
        if target is None:
            continue
        clone = copy.copy(nav)
        add_class(clone, "i-amphtml-toolbar")
        add_class(target, "amp-sidebar-toolbar-target-shown", "amp-sidebar-toolbar-target-hidden")
        target.append(clone)
        ctx.stub_subtree(clone)


def _template_items(el: Tag, ctx) -> List[Tag]:
    template = None
    ref = el.get("template")
    if ref:
        template = ctx.soup.find(id=ref)
    if template is None:
        template = el.find("template") or el.find("script", attrs={"type": "text/plain"})
    if template is None:
        return []
    items = _element_children(template)
    if not items and template.string:
        # <script type="text/plain" template="amp-mustache"> holds its markup as text
        fragment = BeautifulSoup(str(template.string), "html.parser")
        items = _element_children(fragment)
    return items


def stub_amp_list(el: Tag, ctx) -> None:
    """Render the item template a few times inside a role=list container."""
    items = _template_items(el, ctx)
    if not items:
        return
    container = ctx.new_tag("div", attrs={
        "class": ["i-amphtml-fill-content", "i-amphtml-replaced-content"],
        "role": "list",
    })
    for _ in range(LIST_COPIES):
        for item in items:
            clone = copy.copy(item)
            if not clone.has_attr("role"):
                clone["role"] = "listitem"
            container.append(clone)
    el.append(container)
    ctx.stub_subtree(container)


def stub_amp_live_list(el: Tag, ctx) -> None:
    """Duplicate the entries of the [items] container as newly pushed items."""
    holder = el.find(attrs={"items": True})
    if holder is None:
        return
    entries = _element_children(holder)
    for entry in entries:
        add_class(entry, "amp-live-list-item")
    for _ in range(LIST_COPIES - 1):
        for entry in entries:
            clone = copy.copy(entry)
            add_class(clone, "amp-live-list-item-new")
            holder.append(clone)
            ctx.stub_subtree(clone)


def stub_amp_layout(el: Tag, ctx) -> None:
    """Non-container <amp-layout> wraps its contents in a fill-content div."""
    layout = str(el.get("layout", "container")).strip().lower()
    if layout in ("container", "nodisplay"):
        return
    _wrap_contents(el, ctx.new_tag("div", attrs={"class": ["i-amphtml-fill-content"]}))


def stub_amp_fit_text(el: Tag, ctx) -> None:
    outer = ctx.new_tag("div", attrs={"class": ["i-amphtml-fit-text-content"]})
    inner = ctx.new_tag("div", attrs={"class": ["i-amphtml-fit-text-content-inner"]})
    _wrap_contents(el, inner)
    outer.append(inner.extract())
    el.append(outer)


def stub_amp_image_lightbox(el: Tag, ctx) -> None:
    container = ctx.new_tag("div", attrs={"class": ["i-amphtml-image-lightbox-container"]})
    viewer = ctx.new_tag("div", attrs={"class": ["i-amphtml-image-lightbox-viewer"]})
    viewer.append(ctx.new_tag("img", attrs={"class": ["i-amphtml-image-lightbox-viewer-image"]}))
    caption_attrs = {"class": [
        "amp-image-lightbox-caption",
        "i-amphtml-image-lightbox-caption",
        "i-amphtml-empty",
    ]}
    if el.get("id"):
        caption_attrs["id"] = f"{el['id']}-caption"
    container.append(viewer)
    container.append(ctx.new_tag("div", attrs=caption_attrs))
    el.append(container)
    close = ctx.new_tag("button", attrs={"class": ["i-amphtml-screen-reader"]})
    close.append(NavigableString("Close the lightbox"))
    el.append(close)
