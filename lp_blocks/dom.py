"""
DOM access helpers on top of BeautifulSoup.

Scraped pages are parsed with lxml (tolerant of broken markup). Fragments
(block html, flattened block sequences, builder input) are parsed with
html.parser, which never adds <html>/<body> wrappers or auto-paragraphs, so
a fragment serializes back to the markup it came from.
"""
import re
from typing import Dict, Iterable, Iterator, List, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from bs4.element import CData, Declaration, Doctype, ProcessingInstruction
from soupsieve import SelectorSyntaxError

from .errors import InvalidInputError


PAGE_PARSER = "lxml"
FRAGMENT_PARSER = "html.parser"

# Text inside these elements is never content
NON_TEXT_TAGS = {"style", "script"}

# Block-level wrappers that count as an empty spacer when they have no content
BLOCK_LEVEL_TAGS = {"div", "p", "section", "article", "center", "blockquote"}

FONT_SIZE_RE = re.compile(r"font-size:\s*(\d+)px", re.I)

_SPECIAL_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)

Node = Union[Tag, NavigableString]


def parse_page(html: str) -> BeautifulSoup:
    """Parse a full scraped page."""
    return BeautifulSoup(html or "", PAGE_PARSER)


def parse_fragment(html: str) -> BeautifulSoup:
    """Parse a fragment without adding document wrappers."""
    return BeautifulSoup(html or "", FRAGMENT_PARSER)


def serialize(node: Union[BeautifulSoup, Tag, NavigableString]) -> str:
    if isinstance(node, Tag):
        return node.decode()
    # Bare strings need entity escaping to stay valid markup
    return node.output_ready()


def top_level_nodes(soup: BeautifulSoup) -> List[Node]:
    """Children of <body>, or of the root when the markup has no body."""
    root = soup.body if soup.body is not None else soup
    return [child for child in root.children if isinstance(child, (Tag, NavigableString))]


def is_text_node(node) -> bool:
    """True for plain text strings (not comments, doctypes, CDATA...)."""
    return isinstance(node, NavigableString) and not isinstance(node, _SPECIAL_STRINGS)


def select(root: Union[BeautifulSoup, Tag], selector: str) -> List[Tag]:
    """CSS select; a bad selector is a caller error."""
    try:
        return root.select(selector)
    except (SelectorSyntaxError, ValueError) as exc:
        raise InvalidInputError(f"Invalid selector {selector!r}: {exc}") from exc


def find_all_including_self(elem: Tag, names: Iterable[str]) -> List[Tag]:
    """Elements with one of ``names`` at or below ``elem``."""
    if not isinstance(elem, Tag):
        return []
    names = list(names)
    found = [elem] if elem.name in names else []
    found.extend(elem.find_all(names))
    return found


def contains_tag(elem: Tag, names: Iterable[str]) -> bool:
    if not isinstance(elem, Tag):
        return False
    names = list(names)
    return elem.name in names or elem.find(names) is not None


def get_classes(elem: Tag) -> List[str]:
    if not isinstance(elem, Tag):
        return []
    classes = elem.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return [str(c) for c in classes]


def has_class(elem: Tag, class_name: str) -> bool:
    return class_name in get_classes(elem)


def add_class(elem: Tag, class_name: str) -> bool:
    """Append a class if missing. Returns True when the element changed."""
    classes = get_classes(elem)
    if class_name in classes:
        return False
    elem["class"] = classes + [class_name]
    return True


def has_class_or_descendant(elem: Tag, class_name: str) -> bool:
    if has_class(elem, class_name):
        return True
    return isinstance(elem, Tag) and elem.find(class_=class_name) is not None


def iter_text_nodes(
    root: Union[BeautifulSoup, Tag],
    excluded: Optional[List[Tag]] = None,
) -> Iterator[NavigableString]:
    """
    Yield non-blank text nodes under ``root`` in document order.

    Subtrees rooted at <style>/<script> and at any element in ``excluded``
    are skipped. The nodes are collected up front so callers may replace
    them while iterating.
    """
    excluded_ids = {id(e) for e in (excluded or [])}
    collected: List[NavigableString] = []

    def walk(node: Tag):
        for child in node.children:
            if isinstance(child, Tag):
                if child.name in NON_TEXT_TAGS or id(child) in excluded_ids:
                    continue
                walk(child)
            elif is_text_node(child) and child.strip():
                collected.append(child)

    if isinstance(root, Tag):
        if id(root) in excluded_ids:
            return iter(())
        walk(root)
    return iter(collected)


def visible_text(elem: Node) -> str:
    """Text content without <style>/<script> bodies, stripped."""
    if isinstance(elem, NavigableString):
        return str(elem).strip() if is_text_node(elem) else ""
    if not isinstance(elem, Tag):
        return ""
    parts = []
    for string in elem.find_all(string=True):
        if not is_text_node(string):
            continue
        if any(p.name in NON_TEXT_TAGS for p in string.parents if isinstance(p, Tag)):
            continue
        parts.append(str(string))
    return "".join(parts).strip()


def style_declarations(style: str) -> Dict[str, str]:
    """Parse an inline style attribute into {property: value}."""
    declarations = {}
    for chunk in (style or "").split(";"):
        if ":" not in chunk:
            continue
        prop, value = chunk.split(":", 1)
        prop = prop.strip().lower()
        if prop:
            declarations[prop] = value.strip()
    return declarations


def font_size_px(style: str) -> int:
    """Pixel font-size declared in a style string, 0 if none."""
    match = FONT_SIZE_RE.search(style or "")
    return int(match.group(1)) if match else 0


def max_font_size(elem: Tag) -> int:
    """Largest px font-size declared on ``elem`` or any descendant."""
    if not isinstance(elem, Tag):
        return 0
    max_size = font_size_px(elem.get("style", ""))
    for child in elem.find_all(style=FONT_SIZE_RE):
        max_size = max(max_size, font_size_px(child.get("style", "")))
    return max_size


def inline_font_size(elem: Tag) -> int:
    """Font-size in effect from inline styles: the element's own, else the nearest ancestor's."""
    size = font_size_px(elem.get("style", ""))
    if size:
        return size
    for parent in elem.parents:
        if isinstance(parent, Tag):
            size = font_size_px(parent.get("style", ""))
            if size:
                return size
    return 0


def parse_int(value) -> int:
    """Leading integer of an attribute value ("300", "300px"), 0 otherwise."""
    match = re.match(r"\s*(\d+)", str(value or ""))
    return int(match.group(1)) if match else 0


def resolve_url(base: str, relative: str) -> str:
    return urljoin(base, relative)
