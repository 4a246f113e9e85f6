import pytest

from lp_blocks.errors import InvalidInputError
from lp_blocks.handlers import (
    ROUTES,
    handle_analyze,
    handle_build,
    handle_modify,
    handle_parse,
    handle_validate,
)


def test_routes():
    assert sorted(ROUTES) == ["/analyze", "/build", "/modify", "/parse", "/validate"]


def test_parse_requires_html():
    with pytest.raises(InvalidInputError):
        handle_parse({})
    with pytest.raises(InvalidInputError):
        handle_parse({"html": "<p>x</p>", "config": "nope"})


def test_parse_returns_wire_format(lp_page):
    result = handle_parse({"html": lp_page})
    assert result["blocks"][6]["videoSrc"] == "https://cdn.example.com/movie.mp4"
    assert "startIndex" in result["sections"][0]


def test_analyze_includes_template():
    result = handle_analyze({"html": "<p>AA</p><p>AA</p>"})
    assert result["template"]["directReplacements"] == {"AA": "【AAの差し替え先】"}


def test_modify_blocks_round_trip(lp_page):
    blocks = handle_parse({"html": lp_page})["blocks"]
    result = handle_modify({
        "blocks": blocks,
        "config": {
            "blockReplacements": [{"index": 2, "newText": "A new heading"}],
            "directReplacements": {"half price": "free"},
        },
    })
    assert result["blocks"][2]["text"] == "A new heading"
    assert "A new heading" in result["html"]
    assert "first box is free" in result["html"]
    assert result["sections"][0]["label"] == "intro"


def test_modify_rejects_bad_blocks():
    with pytest.raises(InvalidInputError):
        handle_modify({"blocks": [{"index": 0, "type": "banner", "html": ""}]})
    with pytest.raises(InvalidInputError):
        handle_modify({"blocks": "nope"})


def test_build_from_blocks(lp_page):
    blocks = handle_parse({"html": lp_page})["blocks"]
    result = handle_build({"blocks": blocks, "config": {"ctaUrl": "https://lp.example.com", "idSeed": 9}})
    assert result["validation"]["valid"] is True
    assert "sb-part-12345" not in result["html"]
    assert 'href="https://lp.example.com"' in result["html"]
    # legal link is kept
    assert "law_info" in result["html"]


def test_validate():
    assert handle_validate({"html": "<p>x</p>"})["valid"] is True


def test_modify_blocks_agree_with_html(lp_page):
    blocks = handle_parse({"html": lp_page})["blocks"]
    result = handle_modify({
        "blocks": blocks,
        "config": {
            "directReplacements": {"half price": "free"},
            "ctaUrl": "https://lp.example.com",
        },
    })
    assert "first box is free" in result["html"]
    for block in result["blocks"]:
        if block.get("text"):
            assert block["text"] in result["html"]
    assert result["blocks"][5]["text"] == "The first box is free for new customers."
    assert result["blocks"][7]["href"] == "https://lp.example.com"
    assert [b["index"] for b in result["blocks"]] == list(range(len(blocks)))
