"""
Layout stubs - sizer markup the AMP runtime adds for the `layout` attribute
"""

from typing import Callable, Dict, Optional

from bs4 import Tag

# Layouts whose box size is known before content loads
SIZE_DEFINED_LAYOUTS = {"fixed", "fixed-height", "responsive", "intrinsic", "fill", "flex-item"}


def add_class(el: Tag, *names: str) -> None:
    # copies share attribute values with their source, so never append in place
    classes = el.get("class", [])
    classes = classes.split() if isinstance(classes, str) else list(classes)
    for name in names:
        if name not in classes:
            classes.append(name)
    el["class"] = classes


def _dimension(el: Tag, attr: str) -> Optional[float]:
    raw = str(el.get(attr, "")).strip().lower()
    if raw.endswith("px"):
        raw = raw[:-2]
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def aspect_padding(el: Tag) -> Optional[float]:
    """Height as a percentage of width, or None when either is missing."""
    width, height = _dimension(el, "width"), _dimension(el, "height")
    if width is None or height is None:
        return None
    return height / width * 100


def responsive_sizer(el: Tag, ctx) -> None:
    sizer = ctx.new_tag("i-amphtml-sizer", attrs={"slot": "i-amphtml-svc"})
    padding = aspect_padding(el)
    if padding is not None:
        sizer["style"] = f"display:block;padding-top:{padding:.4f}%"
    el.insert(0, sizer)


def intrinsic_sizer(el: Tag, ctx) -> None:
    sizer = ctx.new_tag("i-amphtml-sizer", attrs={"class": ["i-amphtml-sizer"], "slot": "i-amphtml-svc"})
    img = ctx.new_tag("img", attrs={
        "alt": "",
        "aria-hidden": "true",
        "class": ["i-amphtml-intrinsic-sizer"],
        "role": "presentation",
    })
    width, height = _dimension(el, "width"), _dimension(el, "height")
    if width is not None and height is not None:
        img["src"] = (
            "data:image/svg+xml;charset=utf-8,"
            f"<svg height='{height:g}' width='{width:g}' "
            "xmlns='http://www.w3.org/2000/svg' version='1.1'/>"
        )
    sizer.append(img)
    el.insert(0, sizer)


LAYOUT_STUBS: Dict[str, Optional[Callable]] = {
    "responsive": responsive_sizer,
    "intrinsic": intrinsic_sizer,
    "fixed": None,
    "fixed-height": None,
    "fill": None,
    "flex-item": None,
    "container": None,
    "nodisplay": None,
}


def apply_layout(el: Tag, ctx) -> None:
    """Add layout classes and, for sized layouts, the sizer element."""
    layout = str(el.get("layout", "")).strip().lower()
    if layout not in LAYOUT_STUBS:
        return
    add_class(el, "i-amphtml-element", f"i-amphtml-layout-{layout}")
    if layout in SIZE_DEFINED_LAYOUTS:
        add_class(el, "i-amphtml-layout-size-defined")
    sizer = LAYOUT_STUBS[layout]
    if sizer is not None:
        sizer(el, ctx)
