"""
Text Mutation Engine

Three independent ways to change copy on a page:

* direct term substitution - walks text nodes only, markup is never touched
* phrase rewrite - plain substring replacement over the serialized HTML; it
  can match across tag boundaries, so prefer direct substitution when the
  structure must survive
* per-block overwrite - replaces one block's whole text

plus CTA link retargeting and a read-only analysis that suggests terms,
CTA links and prices to replace.
"""
import logging
import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from bs4 import BeautifulSoup, NavigableString, Tag

from .dom import (
    inline_font_size,
    iter_text_nodes,
    parse_fragment,
    select,
    serialize,
    visible_text,
)
from .errors import InvalidInputError
from .models import (
    Block,
    BlockReplacement,
    CtaLink,
    MutationConfig,
    PhraseRewrite,
    ReplacementAnalysis,
    TermCount,
    coerce_model,
)

log = logging.getLogger(__name__)

DEFAULT_TEXT_CONFIG: Dict[str, Any] = {
    # Footer / legal links that must never be retargeted
    "footer_keywords": [
        "law_info", "privacy", "company", "aboutus",
        "特定商取引", "プライバシー", "企業情報", "運営者情報",
    ],
    # Links at or below this inline font-size are fine print
    "fine_print_max_px": 12,
    "term_min_length": 2,
    "term_max_length": 30,
    "term_min_count": 2,
    "max_terms": 20,
    "max_link_text": 50,
    "price_pattern": r"[\d,]+円|¥[\d,]+|\d+,\d{3}",
    "template_terms": 5,
    "default_exclude_selectors": [".small", "font[color='#888888']"],
}


def _merged_config(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = dict(DEFAULT_TEXT_CONFIG)
    if config:
        merged.update(config)
    return merged


def _excluded_elements(root: Union[BeautifulSoup, Tag], selectors: Iterable[str]) -> List[Tag]:
    excluded = []
    for selector in selectors or []:
        excluded.extend(select(root, selector))
    return excluded


# ── Direct term substitution ────────────────────────────────────────────────

def replace_terms_in_tree(
    root: Union[BeautifulSoup, Tag],
    replacements: Mapping[str, str],
    exclude_selectors: Optional[Sequence[str]] = None,
) -> int:
    """
    Apply ``replacements`` to every text node under ``root`` in place.

    Pairs apply in mapping order and may compound within one node. Nodes
    inside <style>/<script> or under an excluded selector are skipped.
    Returns the number of text nodes changed.
    """
    for old in replacements:
        if not old:
            raise InvalidInputError("Replacement terms must be non-empty")

    changed_nodes = 0
    excluded = _excluded_elements(root, exclude_selectors or [])
    for node in iter_text_nodes(root, excluded):
        text = str(node)
        changed = False
        for old, new in replacements.items():
            if old in text:
                text = text.replace(old, new)
                changed = True
        if changed:
            node.replace_with(NavigableString(text))
            changed_nodes += 1
    return changed_nodes


def apply_direct_replacements(
    html: str,
    replacements: Mapping[str, str],
    exclude_selectors: Optional[Sequence[str]] = None,
) -> str:
    """Direct term substitution over an HTML fragment; element structure is unchanged."""
    if not replacements:
        return html
    soup = parse_fragment(html)
    changed = replace_terms_in_tree(soup, replacements, exclude_selectors)
    log.debug("direct replacements changed %d text nodes", changed)
    if not changed:
        # Re-serializing would still normalise entities and void tags
        return html
    return serialize(soup)


def replace_direct_in_blocks(
    blocks: Sequence[Block],
    replacements: Mapping[str, str],
    exclude_selectors: Optional[Sequence[str]] = None,
) -> List[Block]:
    """Direct term substitution per block, keeping ``html`` and ``text`` in sync."""
    result = []
    for block in blocks:
        soup = parse_fragment(block.html)
        if not replace_terms_in_tree(soup, replacements, exclude_selectors):
            result.append(block)
            continue
        update: Dict[str, Any] = {"html": serialize(soup)}
        if block.text is not None:
            update["text"] = visible_text(soup)
        result.append(block.model_copy(update=update))
    return result


# ── Phrase rewrite ───────────────────────────────────────────────────────────

def apply_phrase_rewrites(html: str, rewrites: Sequence[Union[PhraseRewrite, Dict[str, str]]]) -> str:
    """Global literal substring replacement on the serialized HTML."""
    for rewrite in rewrites:
        rewrite = coerce_model(PhraseRewrite, rewrite)
        # Pairs missing either side are ignored
        if rewrite.original and rewrite.rewritten:
            html = html.replace(rewrite.original, rewrite.rewritten)
    return html


# ── Per-block overwrite ─────────────────────────────────────────────────────

def apply_block_replacements(
    blocks: Sequence[Block],
    replacements: Sequence[Union[BlockReplacement, Dict[str, Any]]],
) -> List[Block]:
    """
    Overwrite whole-block text by index.

    When a text node holds exactly the block's old text it is replaced
    wholesale; otherwise the old text is substring-replaced inside the
    block's html. A replacement that matches nothing leaves the block as it
    was and is only logged. An index outside the block list is an error.
    """
    by_index: Dict[int, str] = {}
    for replacement in replacements:
        replacement = coerce_model(BlockReplacement, replacement)
        if replacement.index >= len(blocks):
            raise InvalidInputError(
                f"Block index {replacement.index} out of range (0..{len(blocks) - 1})"
            )
        by_index[replacement.index] = replacement.new_text

    skipped = []
    result = []
    for position, block in enumerate(blocks):
        if position not in by_index:
            result.append(block)
            continue
        updated = overwrite_block_text(block, by_index[position])
        if updated is None:
            skipped.append(position)
            result.append(block)
        else:
            result.append(updated)

    if skipped:
        log.info("block replacements skipped (no match): %s", skipped)
    return result


def overwrite_block_text(block: Block, new_text: str) -> Optional[Block]:
    """New block with ``new_text`` in place of its text, or None when nothing matched."""
    old_text = block.text or ""
    if not new_text or not old_text or new_text == old_text:
        return None

    soup = parse_fragment(block.html)
    wanted = old_text.strip()
    replaced = False
    for node in iter_text_nodes(soup):
        if node.strip() == wanted:
            node.replace_with(NavigableString(new_text.strip()))
            replaced = True
            break

    html = serialize(soup)
    if not replaced:
        if old_text not in block.html:
            return None
        html = block.html.replace(old_text, new_text)

    return block.model_copy(update={"html": html, "text": visible_text(parse_fragment(html))})


# ── CTA links ────────────────────────────────────────────────────────────────

def is_cta_link(anchor: Tag, config: Optional[Dict[str, Any]] = None) -> bool:
    """
    Decide whether a link is a call to action.

    Footer/legal keywords in the href or link text exclude it; links that
    wrap an image always count; links set in fine print do not.
    """
    cfg = _merged_config(config)
    href = anchor.get("href", "") or ""
    text = anchor.get_text()
    for keyword in cfg["footer_keywords"]:
        if keyword in href or keyword in text:
            return False

    if anchor.find(["img", "picture"]) is not None:
        return True

    size = inline_font_size(anchor)
    if size and size <= cfg["fine_print_max_px"]:
        return False

    return True


def replace_cta_urls(
    root: Union[BeautifulSoup, Tag],
    cta_url: str,
    config: Optional[Dict[str, Any]] = None,
) -> int:
    """Point every CTA link under ``root`` at ``cta_url``. Returns the number retargeted."""
    count = 0
    for anchor in root.find_all("a", href=True):
        if is_cta_link(anchor, config):
            anchor["href"] = cta_url
            count += 1
    return count


def apply_cta_url(html: str, cta_url: str, config: Optional[Dict[str, Any]] = None) -> str:
    soup = parse_fragment(html)
    replace_cta_urls(soup, cta_url, config)
    return serialize(soup)


# ── Combined ─────────────────────────────────────────────────────────────────

def apply_text_modifications(
    html: str,
    config: Union[MutationConfig, Dict[str, Any], None],
    text_config: Optional[Dict[str, Any]] = None,
) -> str:
    """Run direct substitution, then phrase rewrites, then CTA retargeting."""
    config = coerce_model(MutationConfig, config)

    result = apply_direct_replacements(html, config.direct_replacements, config.exclude_selectors)
    result = apply_phrase_rewrites(result, config.phrase_rewrites)
    if config.cta_url:
        result = apply_cta_url(result, config.cta_url, text_config)
    return result


# ── Analysis ─────────────────────────────────────────────────────────────────

def analyze_for_replacement(html: str, config: Optional[Dict[str, Any]] = None) -> ReplacementAnalysis:
    """Suggest frequent terms, CTA links and prices as replacement candidates."""
    cfg = _merged_config(config)
    soup = parse_fragment(html)

    counts: Counter = Counter()
    for node in iter_text_nodes(soup):
        text = node.strip()
        if cfg["term_min_length"] <= len(text) <= cfg["term_max_length"]:
            counts[text] += 1

    # Counter.most_common keeps first-seen order between equal counts
    frequent_terms = [
        TermCount(term=term, count=count)
        for term, count in counts.most_common()
        if count >= cfg["term_min_count"]
    ][:cfg["max_terms"]]

    cta_links = []
    for anchor in soup.find_all("a", href=True):
        if is_cta_link(anchor, cfg):
            cta_links.append(CtaLink(
                href=anchor.get("href", ""),
                text=anchor.get_text().strip()[:cfg["max_link_text"]],
            ))

    prices: List[str] = []
    for match in re.finditer(cfg["price_pattern"], visible_text(soup)):
        if match.group(0) not in prices:
            prices.append(match.group(0))

    return ReplacementAnalysis(frequent_terms=frequent_terms, cta_links=cta_links, prices=prices)


def generate_config_template(
    analysis: ReplacementAnalysis,
    config: Optional[Dict[str, Any]] = None,
) -> MutationConfig:
    """Starting MutationConfig built from an analysis."""
    cfg = _merged_config(config)
    terms = analysis.frequent_terms[:cfg["template_terms"]]
    return MutationConfig(
        direct_replacements={t.term: f"【{t.term}の差し替え先】" for t in terms},
        phrase_rewrites=[],
        cta_url=analysis.cta_links[0].href if analysis.cta_links else "https://example.com/lp",
        exclude_selectors=list(cfg["default_exclude_selectors"]),
    )
