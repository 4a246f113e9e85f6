"""
Block Classifier

Splits a scraped landing page into an ordered list of typed blocks, one per
top-level child of <body>, and collects asset and widget metadata on the way.
"""
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from bs4 import NavigableString, Tag

from .assets import extract_image_assets, extract_video_asset, first_video
from .dom import (
    BLOCK_LEVEL_TAGS,
    contains_tag,
    get_classes,
    has_class,
    has_class_or_descendant,
    is_text_node,
    max_font_size,
    parse_fragment,
    parse_page,
    serialize,
    style_declarations,
    top_level_nodes,
    visible_text,
)
from .ids import PART_ID_PREFIX, WIDGET_WRAPPER_CLASS, part_class_of
from .models import Block, PageStructure, WidgetRef
from .sections import detect_sections

log = logging.getLogger(__name__)

# Thresholds tuned against one source site's design system; override per page family.
DEFAULT_CLASSIFIER_CONFIG: Dict[str, Any] = {
    "heading_max_chars": 50,
    "heading_min_font_px": 21,
    # "alert red" tones used as heading colour
    "heading_colors": ["rgb(161,0,0)", "rgb(255,0,0)", "#a10000", "#ff0000"],
    "heading_tags": ["h1", "h2", "h3", "h4", "h5", "h6"],
    "quiz_class_pattern": r"question|quiz|survey|アンケート",
    "review_pattern": r"review|testimonial|口コミ|レビュー|体験談|感想",
    "review_text_window": 100,
    "comparison_pattern": r"比較|ランキング|compare|comparison|ranking",
}

Rule = Tuple[str, Callable[[Dict[str, Any]], bool], Callable[[Dict[str, Any]], Block]]


class BlockClassifier:
    """
    Classifies one top-level node into exactly one Block.

    The rules are an ordered list of (name, predicate, constructor); the
    first predicate that matches decides the type and later rules are never
    consulted. The last rule always matches, so classification of an
    element never fails.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        merged = dict(DEFAULT_CLASSIFIER_CONFIG)
        if config:
            merged.update(config)
        self.config = merged

        self._quiz_re = re.compile(merged["quiz_class_pattern"], re.I)
        self._review_re = re.compile(merged["review_pattern"], re.I)
        self._comparison_re = re.compile(merged["comparison_pattern"], re.I)
        self._heading_colors = {self._normalize_color(c) for c in merged["heading_colors"]}

        self.rules: List[Rule] = [
            ("widget", self._is_widget, self._build_widget),
            ("quiz", self._is_quiz, self._simple_block("quiz")),
            ("review", self._is_review, self._simple_block("review")),
            ("fv", self._is_first_view, self._build_first_view),
            ("comparison", self._is_comparison, self._simple_block("comparison")),
            ("video", self._is_video, self._build_video),
            ("image", self._has_image, self._build_image),
            ("spacer", self._is_spacer, self._build_spacer),
            ("text", self._has_text, self._build_text),
            ("fallback", lambda ctx: True, self._build_spacer),
        ]

    # ── Public API ───────────────────────────────────────────────────────────

    def classify(self, node: Union[Tag, NavigableString], index: int) -> Optional[Block]:
        """Classify one node. Returns None only for blank strings and comments."""
        if isinstance(node, NavigableString):
            return self._classify_string(node, index)
        if not isinstance(node, Tag):
            return None

        ctx = self._build_context(node, index)
        for name, predicate, build in self.rules:
            if predicate(ctx):
                block = build(ctx)
                log.debug("block %d classified as %s (rule %s)", index, block.type, name)
                return block
        # Unreachable: the fallback rule always matches
        return self._build_spacer(ctx)

    def classify_all(self, nodes: List[Union[Tag, NavigableString]], start_index: int = 0) -> List[Block]:
        blocks = []
        index = start_index
        for node in nodes:
            block = self.classify(node, index)
            if block is not None:
                blocks.append(block)
                index += 1
        return blocks

    # ── Context ──────────────────────────────────────────────────────────────

    def _build_context(self, elem: Tag, index: int) -> Dict[str, Any]:
        """Values shared by several rules, computed once per element."""
        style = elem.get("style", "") or ""
        return {
            "elem": elem,
            "index": index,
            "html": serialize(elem),
            "text": visible_text(elem),
            "style": style,
            "classes": " ".join(get_classes(elem)).lower(),
            "css": self._extract_css(elem, style),
        }

    def _extract_css(self, elem: Tag, style: str) -> str:
        """Contents of nested <style> blocks plus the inline style."""
        css = ""
        for style_tag in self._style_tags(elem):
            css += style_tag.get_text() + "\n"
        if style:
            css += f"/* inline */ {style}"
        return css.strip()

    def _style_tags(self, elem: Tag) -> List[Tag]:
        if elem.name == "style":
            return [elem]
        return elem.find_all("style")

    def _classify_string(self, node: NavigableString, index: int) -> Optional[Block]:
        """Stray text directly under <body> becomes a text block."""
        if not is_text_node(node) or not node.strip():
            return None
        return Block(
            index=index,
            type="text",
            html=serialize(node),
            text=str(node).strip(),
            font_size=0,
            has_strong=False,
            has_color=False,
        )

    # ── Predicates ───────────────────────────────────────────────────────────

    def _is_widget(self, ctx: Dict[str, Any]) -> bool:
        return has_class_or_descendant(ctx["elem"], WIDGET_WRAPPER_CLASS)

    def _is_quiz(self, ctx: Dict[str, Any]) -> bool:
        elem = ctx["elem"]
        for control in ([elem] if elem.name == "input" else []) + elem.find_all("input"):
            if (control.get("type") or "").lower() in ("radio", "checkbox"):
                return True
        return bool(self._quiz_re.search(ctx["classes"]))

    def _is_review(self, ctx: Dict[str, Any]) -> bool:
        window = self.config["review_text_window"]
        return bool(self._review_re.search(ctx["classes"] + ctx["text"][:window]))

    def _is_first_view(self, ctx: Dict[str, Any]) -> bool:
        # First-block priority beats generic image classification
        return ctx["index"] == 0 and contains_tag(ctx["elem"], ["img", "picture"])

    def _is_comparison(self, ctx: Dict[str, Any]) -> bool:
        if contains_tag(ctx["elem"], ["table"]):
            return True
        return bool(self._comparison_re.search(ctx["classes"] + ctx["text"]))

    def _is_video(self, ctx: Dict[str, Any]) -> bool:
        return first_video(ctx["elem"]) is not None

    def _has_image(self, ctx: Dict[str, Any]) -> bool:
        return contains_tag(ctx["elem"], ["img", "picture"])

    def _is_spacer(self, ctx: Dict[str, Any]) -> bool:
        if ctx["text"]:
            return False
        elem = ctx["elem"]
        if contains_tag(elem, ["br"]):
            return True
        # A lone empty block-level wrapper
        return elem.name in BLOCK_LEVEL_TAGS and elem.find(True) is None

    def _has_text(self, ctx: Dict[str, Any]) -> bool:
        return bool(ctx["text"])

    # ── Constructors ─────────────────────────────────────────────────────────

    def _base_fields(self, ctx: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "index": ctx["index"],
            "html": ctx["html"],
            "style": ctx["style"],
            "css": ctx["css"],
        }

    def _simple_block(self, block_type: str) -> Callable[[Dict[str, Any]], Block]:
        def build(ctx: Dict[str, Any]) -> Block:
            return Block(type=block_type, text=ctx["text"], **self._base_fields(ctx))
        return build

    def _build_widget(self, ctx: Dict[str, Any]) -> Block:
        """Vendor custom widget: keep its part id/class pair and guess what it is."""
        elem = ctx["elem"]
        wrapper = elem if has_class(elem, WIDGET_WRAPPER_CLASS) else elem.find(class_=WIDGET_WRAPPER_CLASS)
        part = self._find_part(wrapper)

        part_id = part.get("id", "") if part is not None else ""
        part_class = part_class_of(get_classes(part)) if part is not None else ""

        styles = [style_tag.get_text() for style_tag in self._style_tags(elem)]

        return Block(
            type="widget",
            text=ctx["text"],
            widget_type=self._guess_widget_type(elem, part, styles),
            vendor_part_id=part_id,
            vendor_class=part_class,
            styles=styles,
            assets=extract_image_assets(elem),
            **self._base_fields(ctx),
        )

    def _find_part(self, wrapper: Optional[Tag]) -> Optional[Tag]:
        if wrapper is None:
            return None
        if (wrapper.get("id") or "").startswith(PART_ID_PREFIX):
            return wrapper
        return wrapper.find(id=re.compile("^" + re.escape(PART_ID_PREFIX)))

    def _guess_widget_type(self, elem: Tag, part: Optional[Tag], styles: List[str]) -> str:
        """Best-effort widget type from structural fingerprints."""
        if elem.select_one(".box") is not None and elem.select_one(".in") is not None:
            return "testimonial"
        if elem.select_one(".flash") is not None:
            return "flash_text"
        if any("article-body video" in css for css in styles):
            return "video_margin_reset"
        if part is not None and part.find(class_="small") is not None:
            element_children = [c for c in part.children if isinstance(c, Tag)]
            if len(element_children) <= 2:
                return "disclaimer"
        return "custom"

    def _build_first_view(self, ctx: Dict[str, Any]) -> Block:
        return Block(
            type="fv",
            text=ctx["text"],
            assets=extract_image_assets(ctx["elem"]),
            **self._base_fields(ctx),
        )

    def _build_video(self, ctx: Dict[str, Any]) -> Block:
        asset = extract_video_asset(ctx["elem"])
        return Block(
            type="video",
            video_src=asset.primary_src,
            width=asset.width,
            height=asset.height,
            assets=[asset],
            **self._base_fields(ctx),
        )

    def _build_image(self, ctx: Dict[str, Any]) -> Block:
        """Image block, or a CTA link when a hyperlink wraps the image."""
        elem = ctx["elem"]
        assets = extract_image_assets(elem)
        anchor = self._image_link(elem)
        if anchor is not None:
            return Block(
                type="cta_link",
                href=anchor.get("href", ""),
                assets=assets,
                **self._base_fields(ctx),
            )
        return Block(type="image", assets=assets, **self._base_fields(ctx))

    def _image_link(self, elem: Tag) -> Optional[Tag]:
        for anchor in ([elem] if elem.name == "a" else []) + elem.find_all("a"):
            if anchor.find(["img", "picture"]) is not None:
                return anchor
        return None

    def _build_spacer(self, ctx: Dict[str, Any]) -> Block:
        return Block(type="spacer", index=ctx["index"], html=ctx["html"], css=ctx["css"])

    def _build_text(self, ctx: Dict[str, Any]) -> Block:
        elem = ctx["elem"]
        font_size = max_font_size(elem)
        has_strong = contains_tag(elem, ["strong", "b"])
        return Block(
            type="heading" if self._is_heading(ctx, font_size, has_strong) else "text",
            text=ctx["text"],
            font_size=font_size,
            has_strong=has_strong,
            has_color=self._has_color(elem),
            **self._base_fields(ctx),
        )

    # ── Heuristics ───────────────────────────────────────────────────────────

    def _is_heading(self, ctx: Dict[str, Any], font_size: int, has_strong: bool) -> bool:
        """
        Conservative heading test.

        Short text (<= heading_max_chars) that is either big and emphasised
        (font-size >= heading_min_font_px and bold or alert-red), or contains
        a native heading tag. Unusual styling produces false negatives.
        """
        if len(ctx["text"]) > self.config["heading_max_chars"]:
            return False
        elem = ctx["elem"]
        if font_size >= self.config["heading_min_font_px"]:
            if has_strong or self._has_heading_color(elem):
                return True
        return contains_tag(elem, self.config["heading_tags"])

    def _has_heading_color(self, elem: Tag) -> bool:
        for child in [elem] + elem.find_all(style=True):
            color = style_declarations(child.get("style", "")).get("color")
            if color and self._normalize_color(color) in self._heading_colors:
                return True
        return False

    def _has_color(self, elem: Tag) -> bool:
        """Any inline colour declaration (or <font color>) on the element or below."""
        for child in [elem] + elem.find_all(True):
            if "color" in style_declarations(child.get("style", "")):
                return True
            if child.name == "font" and child.get("color"):
                return True
        return False

    @staticmethod
    def _normalize_color(value: str) -> str:
        return re.sub(r"\s+", "", value or "").lower().replace("!important", "")


def parse_html(html: str, config: Optional[Dict[str, Any]] = None) -> PageStructure:
    """Parse a scraped page into blocks, sections, assets and widgets."""
    soup = parse_page(html)
    classifier = BlockClassifier(config)
    blocks = classifier.classify_all(top_level_nodes(soup))

    assets = []
    widgets = []
    for block in blocks:
        assets.extend(block.assets)
        if block.type == "widget":
            widgets.append(WidgetRef(
                index=block.index,
                widget_type=block.widget_type or "custom",
                vendor_part_id=block.vendor_part_id or "",
                vendor_class=block.vendor_class or "",
            ))

    sections = detect_sections(blocks)
    log.info(
        "parsed %d blocks, %d sections, %d assets, %d widgets",
        len(blocks), len(sections), len(assets), len(widgets),
    )
    return PageStructure(blocks=blocks, sections=sections, assets=assets, widgets=widgets)


def classify_html(html: str, index: int, config: Optional[Dict[str, Any]] = None) -> Optional[Block]:
    """
    Classify a single-block fragment in isolation.

    ``index`` is required: the first-view rule depends on position, so a
    block reclassified away from its index can change type.
    """
    blocks = classify_fragment(html, index, config)
    return blocks[0] if blocks else None


def classify_fragment(html: str, start_index: int = 0, config: Optional[Dict[str, Any]] = None) -> List[Block]:
    """Classify every top-level node of a fragment, numbering from ``start_index``."""
    soup = parse_fragment(html)
    return BlockClassifier(config).classify_all(top_level_nodes(soup), start_index)
