"""
JSON request handling shared by ``dev_server.py`` and the ``api/`` handlers.

Each handler takes the decoded JSON payload and returns a JSON-ready dict.
Caller mistakes raise InvalidInputError (HTTP 400).
"""
from typing import Any, Callable, Dict, List

from .builder import build
from .classifier import classify_fragment, parse_html
from .editing import flatten_blocks
from .errors import InvalidInputError
from .models import Block, MutationConfig, coerce_model
from .sections import detect_sections
from .text_modifier import (
    analyze_for_replacement,
    apply_block_replacements,
    apply_text_modifications,
    generate_config_template,
)
from .validator import validate_sb_html


def _require_html(payload: Dict[str, Any]) -> str:
    html = payload.get("html")
    if not isinstance(html, str) or not html.strip():
        raise InvalidInputError("html must be a non-empty string.")
    return html


def _optional_dict(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidInputError(f"{key} must be an object.")
    return value


def _blocks_from_payload(payload: Dict[str, Any]) -> List[Block]:
    raw = payload.get("blocks")
    if not isinstance(raw, list):
        raise InvalidInputError("blocks must be an array.")
    return [coerce_model(Block, item) for item in raw]


def handle_parse(payload: Dict[str, Any]) -> Dict[str, Any]:
    structure = parse_html(_require_html(payload), config=_optional_dict(payload, "config"))
    return structure.to_wire()


def handle_analyze(payload: Dict[str, Any]) -> Dict[str, Any]:
    analysis = analyze_for_replacement(_require_html(payload), config=_optional_dict(payload, "config"))
    result = analysis.to_wire()
    result["template"] = generate_config_template(analysis).to_wire()
    return result


def handle_modify(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a mutation config.

    With ``blocks`` the per-block overwrites run first, the document-level
    mutations run on the flattened html, and the returned blocks and sections
    are re-derived from that html so both views agree. With ``html`` only the
    document-level mutations run.
    """
    config = coerce_model(MutationConfig, _optional_dict(payload, "config"))

    if "blocks" in payload:
        blocks = apply_block_replacements(_blocks_from_payload(payload), config.block_replacements)
        html = apply_text_modifications(flatten_blocks(blocks), config)
        blocks = classify_fragment(html)
        return {
            "html": html,
            "blocks": [block.to_wire() for block in blocks],
            "sections": [section.to_wire() for section in detect_sections(blocks)],
        }

    return {"html": apply_text_modifications(_require_html(payload), config)}


def handle_build(payload: Dict[str, Any]) -> Dict[str, Any]:
    if "blocks" in payload:
        html = flatten_blocks(_blocks_from_payload(payload))
    else:
        html = _require_html(payload)
    return build(html, _optional_dict(payload, "config")).to_wire()


def handle_validate(payload: Dict[str, Any]) -> Dict[str, Any]:
    return validate_sb_html(_require_html(payload)).to_wire()


ROUTES: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "/parse": handle_parse,
    "/analyze": handle_analyze,
    "/modify": handle_modify,
    "/build": handle_build,
    "/validate": handle_validate,
}
