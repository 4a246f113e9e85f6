"""
Data shapes exchanged between the block pipeline and its callers.

Python attributes are snake_case; the JSON wire format uses camelCase
aliases (``vendorPartId``, ``primarySrc``, ...). Both spellings are accepted
on input.
"""
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidInputError


BlockType = Literal[
    "text", "heading", "image", "video", "widget", "cta_link",
    "spacer", "quiz", "review", "fv", "comparison",
]

WidgetType = Literal["custom", "testimonial", "flash_text", "video_margin_reset", "disclaimer"]


class WireModel(BaseModel):
    """Base model with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


M = TypeVar("M", bound=BaseModel)


def coerce_model(model_cls: Type[M], value: Any) -> M:
    """Turn a dict (or None) into ``model_cls``; malformed input raises InvalidInputError."""
    if isinstance(value, model_cls):
        return value
    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise InvalidInputError(
            f"{model_cls.__name__} must be an object, got {type(value).__name__}"
        )
    try:
        return model_cls.model_validate(value)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid {model_cls.__name__}: {exc}") from exc


# ── Blocks ───────────────────────────────────────────────────────────────────

class AssetVariant(WireModel):
    """Alternate encoding of an image (webp, avif, ...)."""
    type: str = ""
    src: str


class AssetRef(WireModel):
    """One media resource referenced by a block."""
    kind: Literal["image", "video"] = "image"
    primary_src: str = ""
    variants: List[AssetVariant] = Field(default_factory=list)
    width: int = 0
    height: int = 0

    def variant_src(self, mime_type: str) -> str:
        for variant in self.variants:
            if variant.type == mime_type:
                return variant.src
        return ""


class Block(WireModel):
    """
    One top-level element of the page.

    ``html`` is authoritative. ``text`` caches its text content and must be
    rewritten together with ``html``.
    """
    index: int
    type: BlockType
    html: str
    text: Optional[str] = None
    style: str = ""
    css: str = ""
    href: Optional[str] = None
    assets: List[AssetRef] = Field(default_factory=list)

    # widget
    widget_type: Optional[WidgetType] = None
    vendor_part_id: Optional[str] = None
    vendor_class: Optional[str] = None
    styles: Optional[List[str]] = None

    # video
    video_src: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    # text / heading
    font_size: Optional[int] = None
    has_strong: Optional[bool] = None
    has_color: Optional[bool] = None


class Section(WireModel):
    """Contiguous run of blocks; a view over the block list, never stored on its own."""
    start_index: int
    blocks: List[int] = Field(default_factory=list)
    label: str


class WidgetRef(WireModel):
    index: int
    widget_type: WidgetType = "custom"
    vendor_part_id: str = ""
    vendor_class: str = ""


class PageStructure(WireModel):
    """Result of parsing a page into blocks."""
    blocks: List[Block] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    assets: List[AssetRef] = Field(default_factory=list)
    widgets: List[WidgetRef] = Field(default_factory=list)


# ── Text mutation ────────────────────────────────────────────────────────────

class PhraseRewrite(WireModel):
    original: str
    rewritten: str = ""


class BlockReplacement(WireModel):
    index: int = Field(ge=0)
    new_text: str


class MutationConfig(WireModel):
    """Input to the text mutation engine."""
    direct_replacements: Dict[str, str] = Field(default_factory=dict)
    phrase_rewrites: List[PhraseRewrite] = Field(default_factory=list)
    cta_url: Optional[str] = None
    exclude_selectors: List[str] = Field(default_factory=list)
    block_replacements: List[BlockReplacement] = Field(default_factory=list)

    @field_validator("direct_replacements")
    @classmethod
    def _no_empty_terms(cls, value: Dict[str, str]) -> Dict[str, str]:
        for old in value:
            if not old:
                raise ValueError("directReplacements keys must be non-empty")
        return value


class TermCount(WireModel):
    term: str
    count: int


class CtaLink(WireModel):
    href: str
    text: str = ""


class ReplacementAnalysis(WireModel):
    """Read-only scan used to seed a MutationConfig."""
    frequent_terms: List[TermCount] = Field(default_factory=list)
    cta_links: List[CtaLink] = Field(default_factory=list)
    prices: List[str] = Field(default_factory=list)


# ── Build ────────────────────────────────────────────────────────────────────

class TagSettings(WireModel):
    """Head/body fragments injected around the built fragment."""
    master_css: str = ""
    noindex: bool = False
    head_tags: str = ""
    js_head: str = ""
    body_tags: str = ""
    js_body: str = ""


class PopupContent(WireModel):
    title: str = ""
    body: str = ""
    image_url: str = ""
    cta_text: str = "詳しく見る"
    cta_link: str = "#"
    decline_text: str = "いいえ、結構です"


class PopupStyle(WireModel):
    animation: Literal["fadeIn", "slideUp", "scaleIn"] = "fadeIn"
    overlay_color: str = "rgba(0,0,0,0.6)"
    bg_color: str = "#ffffff"
    button_color: str = "#ec4899"
    border_radius: str = "12"


class ExitPopupConfig(WireModel):
    enabled: bool = False
    trigger: Literal["mouseout", "back_button", "idle_timer"] = "mouseout"
    mobile_scroll_up: bool = False
    show_once: bool = True
    min_delay_sec: int = Field(default=5, ge=0)
    template: Literal["simple", "image", "coupon", "custom"] = "simple"
    content: PopupContent = Field(default_factory=PopupContent)
    style: PopupStyle = Field(default_factory=PopupStyle)
    custom_html: str = ""
    custom_css: str = ""


class BuildConfig(WireModel):
    """Input to the Squad Beyond builder."""
    image_map: Dict[str, str] = Field(default_factory=dict)
    cta_url: Optional[str] = None
    regenerate_ids: bool = True
    tag_settings: TagSettings = Field(default_factory=TagSettings)
    exit_popup: Optional[ExitPopupConfig] = None
    exit_popup_html: Optional[str] = None
    id_seed: Optional[int] = None


class ValidationReport(WireModel):
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    stats: Dict[str, int] = Field(default_factory=dict)


class BuildResult(WireModel):
    html: str
    validation: ValidationReport
    size_bytes: int = 0


# ── Fetching ─────────────────────────────────────────────────────────────────

class AssetCatalogEntry(WireModel):
    """A downloaded media file and where it came from."""
    original_url: str
    local_file: str
    local_path: str
    size: int = 0
    type: Literal["image", "video", "gif", "unknown"] = "unknown"


class FetchResult(WireModel):
    url: str
    html: str
    assets: List[AssetCatalogEntry] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
