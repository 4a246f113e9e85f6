"""
Structural edits on a block list.

Every edit returns a new list whose ``index`` fields equal list positions.
Sections must be recomputed by the caller after an edit.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from .builder import replace_images
from .classifier import classify_fragment
from .dom import parse_fragment, serialize
from .errors import InvalidInputError
from .models import AssetRef, Block, coerce_model
from .text_modifier import overwrite_block_text

log = logging.getLogger(__name__)


def reindex(blocks: Sequence[Block]) -> List[Block]:
    """Copy of ``blocks`` with ``index`` set to each block's position."""
    return [
        block if block.index == position else block.model_copy(update={"index": position})
        for position, block in enumerate(blocks)
    ]


def _check_index(blocks: Sequence[Block], index: int):
    upper = len(blocks) - 1
    if not isinstance(index, int) or index < 0 or index > upper:
        raise InvalidInputError(f"Block index {index} out of range (0..{upper})")


def flatten_blocks(blocks: Sequence[Block]) -> str:
    """The document as the concatenation of block html in index order."""
    return "\n".join(block.html for block in sorted(blocks, key=lambda b: b.index))


def insert_block(
    blocks: Sequence[Block],
    after_index: int,
    html: str,
    block_type: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> List[Block]:
    """
    Insert the block(s) parsed from ``html`` after ``after_index``.

    ``after_index`` of -1 inserts at the top. Each top-level node of
    ``html`` becomes its own block. ``block_type`` overrides the classified
    type when ``html`` holds exactly one block.
    """
    if after_index != -1:
        _check_index(blocks, after_index)
    position = after_index + 1

    new_blocks = classify_fragment(html, position, config)
    if not new_blocks:
        raise InvalidInputError("Inserted html contains no block")
    if block_type and len(new_blocks) == 1:
        data = new_blocks[0].model_dump()
        data["type"] = block_type
        new_blocks = [coerce_model(Block, data)]

    result = list(blocks[:position]) + new_blocks + list(blocks[position:])
    log.debug("inserted %d block(s) at %d", len(new_blocks), position)
    return reindex(result)


def delete_block(blocks: Sequence[Block], index: int) -> List[Block]:
    _check_index(blocks, index)
    return reindex(list(blocks[:index]) + list(blocks[index + 1:]))


def move_block(blocks: Sequence[Block], from_index: int, to_index: int) -> List[Block]:
    """Move one block so it ends up at ``to_index``."""
    _check_index(blocks, from_index)
    _check_index(blocks, to_index)
    result = list(blocks)
    block = result.pop(from_index)
    result.insert(to_index, block)
    return reindex(result)


def update_block(
    blocks: Sequence[Block],
    index: int,
    html: Optional[str] = None,
    text: Optional[str] = None,
    href: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> List[Block]:
    """
    Edit one block in place.

    New ``html`` re-classifies the block so every derived field follows it;
    it must hold exactly one top-level node.
    New ``text`` goes through the per-block overwrite (silently ignored when
    the old text cannot be found). New ``href`` retargets the block's first
    link.
    """
    _check_index(blocks, index)
    block = blocks[index]

    if html is not None:
        reclassified = classify_fragment(html, index, config)
        if not reclassified:
            raise InvalidInputError("Block html contains no content")
        if len(reclassified) > 1:
            raise InvalidInputError(
                f"Block html holds {len(reclassified)} top-level nodes; use insert_block to add blocks"
            )
        block = reclassified[0]

    if text is not None:
        block = overwrite_block_text(block, text) or block

    if href is not None:
        soup = parse_fragment(block.html)
        anchor = soup.find("a")
        if anchor is not None:
            anchor["href"] = href
            block = block.model_copy(update={"html": serialize(soup), "href": href})

    result = list(blocks)
    result[index] = block
    return result


def replace_block_image(block: Block, old_src: str, new_src: str) -> Block:
    """
    Swap one image in a block, keeping ``html`` and ``assets`` consistent.

    Alternate-format variants of a replaced picture point at ``new_src``.
    """
    soup = parse_fragment(block.html)
    if not replace_images(soup, {old_src: new_src}):
        return block

    assets = [_replace_asset_src(asset, old_src, new_src) for asset in block.assets]
    return block.model_copy(update={"html": serialize(soup), "assets": assets})


def _replace_asset_src(asset: AssetRef, old_src: str, new_src: str) -> AssetRef:
    if asset.kind != "image" or asset.primary_src != old_src:
        return asset
    variants = [v.model_copy(update={"src": new_src}) for v in asset.variants]
    return asset.model_copy(update={"primary_src": new_src, "variants": variants})
