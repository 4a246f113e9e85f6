"""Landing-page block model: parse, edit, mutate and rebuild pages as Squad Beyond HTML."""
from .builder import build, build_sb_html, build_video_reset_widget
from .classifier import BlockClassifier, classify_html, parse_html
from .editing import (
    delete_block,
    flatten_blocks,
    insert_block,
    move_block,
    replace_block_image,
    update_block,
)
from .errors import InvalidInputError, LPBlocksError
from .exit_popup import render_exit_popup
from .fetcher import build_image_map, fetch_page
from .models import (
    AssetRef,
    Block,
    BuildConfig,
    BuildResult,
    MutationConfig,
    PageStructure,
    ReplacementAnalysis,
    Section,
    ValidationReport,
)
from .sections import detect_sections
from .text_modifier import (
    analyze_for_replacement,
    apply_block_replacements,
    apply_direct_replacements,
    apply_phrase_rewrites,
    apply_text_modifications,
    generate_config_template,
)
from .validator import validate_sb_html

__version__ = "0.1.0"

__all__ = [
    "AssetRef",
    "Block",
    "BlockClassifier",
    "BuildConfig",
    "BuildResult",
    "InvalidInputError",
    "LPBlocksError",
    "MutationConfig",
    "PageStructure",
    "ReplacementAnalysis",
    "Section",
    "ValidationReport",
    "analyze_for_replacement",
    "apply_block_replacements",
    "apply_direct_replacements",
    "apply_phrase_rewrites",
    "apply_text_modifications",
    "build",
    "build_image_map",
    "build_sb_html",
    "build_video_reset_widget",
    "classify_html",
    "delete_block",
    "detect_sections",
    "fetch_page",
    "flatten_blocks",
    "generate_config_template",
    "insert_block",
    "move_block",
    "parse_html",
    "render_exit_popup",
    "replace_block_image",
    "update_block",
    "validate_sb_html",
]
