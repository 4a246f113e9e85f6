"""Group a flat block list into sections."""
from typing import List, Sequence

from .models import Block, Section

# Widget types that mark the start of a new section
BOUNDARY_WIDGET_TYPES = {"flash_text"}


def is_section_boundary(block: Block) -> bool:
    if block.type in ("heading", "cta_link"):
        return True
    return block.type == "widget" and block.widget_type in BOUNDARY_WIDGET_TYPES


def detect_sections(blocks: Sequence[Block]) -> List[Section]:
    """
    Split ``blocks`` at headings, CTA links and flash widgets.

    A boundary only closes the current section when it already owns a
    block, so a document that opens with a heading yields one "intro"
    section rather than an empty one.
    """
    sections: List[Section] = []
    current = Section(start_index=0, blocks=[], label="intro")
    section_count = 0

    for block in blocks:
        if is_section_boundary(block) and current.blocks:
            sections.append(current)
            section_count += 1
            current = Section(
                start_index=block.index,
                blocks=[],
                label=f"section_{section_count}",
            )
        if not current.blocks:
            current.start_index = block.index
        current.blocks.append(block.index)

    if current.blocks:
        sections.append(current)

    return sections
