"""
Squad Beyond HTML builder

Turns a flattened block sequence into an SB-compatible fragment:

1. regenerate sb-part ids (same old pair -> same new pair) and scoped CSS
2. swap images from ``image_map``
3. retarget CTA links
4. lazy-load normalisation for <img>/<video>
5. strip <html>/<body> wrappers
6. inject head/body fragments and the exit popup
7. append the video margin reset widget
"""
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, Tag

from .assets import is_inside_picture
from .dom import add_class, get_classes, parse_fragment, serialize
from .exit_popup import render_exit_popup
from .ids import (
    PART_CLASS_PREFIX,
    PART_ID_PREFIX,
    IdAllocator,
    part_class_of,
    replace_selector,
)
from .models import BuildConfig, BuildResult, coerce_model
from .text_modifier import replace_cta_urls
from .validator import LAZYLOAD_CLASS, validate_sb_html

log = logging.getLogger(__name__)

VIDEO_CLASS = "ql-video"

# Attributes every SB video carries
VIDEO_ATTRIBUTES = {
    "autoplay": "",
    "muted": "true",
    "loop": "",
    "playsinline": "",
    "oncanplay": "this.muted=true",
    "controlslist": "nodownload",
    "allowfullscreen": "true",
}

WRAPPER_PREFIXES = ("<html><head></head><body>", "<html><body>")
WRAPPER_SUFFIX = "</body></html>"

# Present in the output once a video margin reset widget exists
VIDEO_RESET_MARKER = "article-body video"

NOINDEX_TAG = '<meta name="robots" content="noindex">'

PartKey = Tuple[str, str]


def build_sb_html(html: str, config: Union[BuildConfig, Dict[str, Any], None] = None) -> str:
    """Build SB-compatible HTML from ``html``. Never raises on malformed markup."""
    config = coerce_model(BuildConfig, config)
    soup = parse_fragment(html)
    allocator = IdAllocator(seed=config.id_seed, existing=_existing_ids(soup))

    if config.regenerate_ids:
        id_map = regenerate_sb_ids(soup, allocator)
        log.debug("regenerated %d sb part pairs", len(id_map))

    if config.image_map:
        replaced = replace_images(soup, config.image_map)
        log.debug("replaced %d images", replaced)

    if config.cta_url:
        retargeted = replace_cta_urls(soup, config.cta_url)
        log.debug("retargeted %d CTA links", retargeted)

    ensure_lazyload(soup)

    output = strip_html_wrapper(serialize(soup))
    output = inject_fragments(output, config)

    if VIDEO_RESET_MARKER not in output:
        output += "\n" + build_video_reset_widget(allocator)

    return output


def build(html: str, config: Union[BuildConfig, Dict[str, Any], None] = None) -> BuildResult:
    """Build, then validate. A non-compliant build still returns its output."""
    output = build_sb_html(html, config)
    report = validate_sb_html(output)
    if not report.valid:
        for error in report.errors:
            log.error("validation error: %s", error)
    for warning in report.warnings:
        log.warning("validation warning: %s", warning)
    return BuildResult(html=output, validation=report, size_bytes=len(output.encode("utf-8")))


def _existing_ids(soup: BeautifulSoup) -> List[str]:
    existing = []
    for elem in soup.find_all(True):
        if elem.get("id"):
            existing.append(elem["id"])
        existing.extend(c for c in get_classes(elem) if c.startswith(PART_CLASS_PREFIX))
    return existing


# ── Step 1: identifiers ──────────────────────────────────────────────────────

def regenerate_sb_ids(soup: BeautifulSoup, allocator: IdAllocator) -> Dict[PartKey, PartKey]:
    """
    Give every sb-part element a fresh id/class pair.

    Vendor markup repeats one widget's pair across sibling variants, so the
    map is keyed by the old (id, class) pair and a repeated pair reuses its
    new pair. <style> selectors are rewritten with the same map.
    """
    id_map: Dict[PartKey, PartKey] = {}

    for elem in soup.find_all(id=lambda value: bool(value) and value.startswith(PART_ID_PREFIX)):
        old_id = elem["id"]
        classes = get_classes(elem)
        old_class = part_class_of(classes)

        key = (old_id, old_class)
        if key not in id_map:
            id_map[key] = allocator.new_pair()
        new_id, new_class = id_map[key]

        elem["id"] = new_id
        if old_class:
            elem["class"] = [new_class if c == old_class else c for c in classes]

    if id_map:
        _rewrite_scoped_css(soup, id_map)
    return id_map


def _rewrite_scoped_css(soup: BeautifulSoup, id_map: Dict[PartKey, PartKey]):
    for style_tag in soup.find_all("style"):
        css_text = style_tag.get_text()
        rewritten = css_text
        for (old_id, old_class), (new_id, new_class) in id_map.items():
            rewritten = replace_selector(rewritten, "#", old_id, new_id)
            if old_class:
                rewritten = replace_selector(rewritten, ".", old_class, new_class)
        if rewritten != css_text:
            style_tag.string = rewritten


# ── Step 2: images ───────────────────────────────────────────────────────────

def _lookup(img: Tag, image_map: Dict[str, str]) -> Optional[str]:
    """Replacement for an <img>, matched on its lazy source first."""
    for attr in ("data-src", "src"):
        src = img.get(attr)
        if src and src in image_map:
            return image_map[src]
    return None


def _set_img_src(img: Tag, new_src: str):
    img["data-src"] = new_src
    if img.get("src"):
        img["src"] = new_src


def replace_images(root: Union[BeautifulSoup, Tag], image_map: Dict[str, str]) -> int:
    """
    Swap image sources found in ``image_map``.

    Inside a <picture> every alternate-format <source> is pointed at the
    same replacement; formats are not re-encoded separately.
    """
    count = 0
    for picture in root.find_all("picture"):
        img = picture.find("img")
        if img is None:
            continue
        new_src = _lookup(img, image_map)
        if not new_src:
            continue
        _set_img_src(img, new_src)
        for source in picture.find_all("source"):
            if source.get("data-srcset"):
                source["data-srcset"] = new_src
            if source.get("srcset"):
                source["srcset"] = new_src
        count += 1

    for img in root.find_all("img"):
        if is_inside_picture(img):
            continue
        new_src = _lookup(img, image_map)
        if new_src:
            _set_img_src(img, new_src)
            count += 1
    return count


# ── Step 4: lazy load ────────────────────────────────────────────────────────

def ensure_lazyload(root: Union[BeautifulSoup, Tag]):
    """Add SB lazy-load classes and attributes to images and videos."""
    for img in root.find_all("img"):
        add_class(img, LAZYLOAD_CLASS)
        if not img.get("data-src") and img.get("src"):
            img["data-src"] = img["src"]

    for video in root.find_all("video"):
        add_class(video, LAZYLOAD_CLASS)
        add_class(video, VIDEO_CLASS)
        for name, value in VIDEO_ATTRIBUTES.items():
            video[name] = value

        for source in video.find_all("source"):
            if not source.get("data-src") and source.get("src"):
                source["data-src"] = source["src"]
                del source["src"]


# ── Steps 5-7: output ────────────────────────────────────────────────────────

def strip_html_wrapper(html: str) -> str:
    """Remove a parser-added <html><body> wrapper by exact prefix/suffix match."""
    for prefix in WRAPPER_PREFIXES:
        if html.startswith(prefix):
            html = html[len(prefix):]
            break
    if html.endswith(WRAPPER_SUFFIX):
        html = html[:-len(WRAPPER_SUFFIX)]
    return html.strip()


def inject_fragments(html: str, config: BuildConfig) -> str:
    """Prepend head fragments and append body fragments in their fixed order."""
    ts = config.tag_settings
    prefix = ""
    suffix = ""

    if ts.master_css:
        prefix += f"<style>{ts.master_css}</style>\n"
    if ts.noindex:
        prefix += NOINDEX_TAG + "\n"
    if ts.head_tags:
        prefix += ts.head_tags + "\n"
    if ts.js_head:
        prefix += f"<script>{ts.js_head}</script>\n"

    if ts.body_tags:
        suffix += ts.body_tags + "\n"
    if ts.js_body:
        suffix += f"<script>{ts.js_body}</script>\n"

    popup = _popup_fragment(config)
    if popup:
        suffix += popup + "\n"

    return prefix + html + suffix


def _popup_fragment(config: BuildConfig) -> str:
    if config.exit_popup_html:
        if config.exit_popup is None or config.exit_popup.enabled:
            return config.exit_popup_html
        return ""
    if config.exit_popup is not None and config.exit_popup.enabled:
        return render_exit_popup(config.exit_popup)
    return ""


def build_video_reset_widget(allocator: Optional[IdAllocator] = None) -> str:
    """Trailing widget that zeroes vertical margins on article videos."""
    allocator = allocator or IdAllocator()
    part_id, part_class = allocator.new_pair()
    return (
        f'<div><div class="sb-custom"><span><div id="{part_id}" class="{part_class}">\n'
        "<style>\n"
        "    body .article-body video {\n"
        "        display: block;\n"
        "        max-width: 100%;\n"
        "        margin-top: 0px !important;\n"
        "        margin-bottom: 0px !important;\n"
        "    }\n"
        "\n"
        "</style>\n"
        "</div>\n"
        "<style></style></span></div></div>"
    )
