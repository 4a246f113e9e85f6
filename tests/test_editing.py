import pytest

from lp_blocks.classifier import parse_html
from lp_blocks.editing import (
    delete_block,
    flatten_blocks,
    insert_block,
    move_block,
    replace_block_image,
    update_block,
)
from lp_blocks.errors import InvalidInputError


@pytest.fixture
def blocks(lp_page):
    return parse_html(lp_page).blocks


def _indices_match_positions(blocks):
    return [b.index for b in blocks] == list(range(len(blocks)))


# ── Insert / delete / move ────────────────────────────────────────────────

def test_insert_at_top(blocks):
    result = insert_block(blocks, -1, "<p>New opening line.</p>")
    assert len(result) == len(blocks) + 1
    assert result[0].text == "New opening line."
    assert _indices_match_positions(result)


def test_insert_multiple_nodes_after_index(blocks):
    result = insert_block(blocks, 2, "<p>one</p><p>two</p>")
    assert [b.text for b in result[3:5]] == ["one", "two"]
    assert result[5].text == blocks[3].text
    assert _indices_match_positions(result)


def test_insert_with_type_override(blocks):
    result = insert_block(blocks, 0, "<p>Short claim</p>", block_type="heading")
    assert result[1].type == "heading"


def test_insert_rejects_bad_input(blocks):
    with pytest.raises(InvalidInputError):
        insert_block(blocks, len(blocks), "<p>x</p>")
    with pytest.raises(InvalidInputError):
        insert_block(blocks, 0, "   ")
    with pytest.raises(InvalidInputError):
        insert_block(blocks, 0, "<p>x</p>", block_type="banner")


def test_delete_block(blocks):
    result = delete_block(blocks, 1)
    assert len(result) == len(blocks) - 1
    assert result[1].html == blocks[2].html
    assert _indices_match_positions(result)
    with pytest.raises(InvalidInputError):
        delete_block(blocks, -1)


def test_move_block(blocks):
    result = move_block(blocks, 7, 1)
    assert result[1].html == blocks[7].html
    assert result[2].html == blocks[1].html
    assert _indices_match_positions(result)
    with pytest.raises(InvalidInputError):
        move_block(blocks, 0, 99)


# ── Update ────────────────────────────────────────────────────────────────

def test_update_html_reclassifies(blocks):
    result = update_block(blocks, 1, html="<h2>Now a heading</h2>")
    assert result[1].type == "heading"
    assert result[1].index == 1


def test_update_text(blocks):
    result = update_block(blocks, 3, text="Rewritten body copy.")
    assert result[3].text == "Rewritten body copy."
    assert "Rewritten body copy." in result[3].html


def test_update_href(blocks):
    result = update_block(blocks, 7, href="https://lp.example.com/new")
    assert result[7].href == "https://lp.example.com/new"
    assert 'href="https://lp.example.com/new"' in result[7].html


def test_update_html_with_several_nodes_is_rejected(blocks):
    with pytest.raises(InvalidInputError):
        update_block(blocks, 1, html="<p>first</p><p>second</p>")
    with pytest.raises(InvalidInputError):
        update_block(blocks, 1, html="  ")


def test_replace_block_image_updates_assets(blocks):
    block = replace_block_image(blocks[0], "https://cdn.example.com/fv.jpg", "/assets/fv.webp")
    assert 'src="/assets/fv.webp"' in block.html
    assert block.assets[0].primary_src == "/assets/fv.webp"


def test_replace_block_image_without_match_is_unchanged(blocks):
    assert replace_block_image(blocks[0], "missing.jpg", "x.jpg") == blocks[0]


def test_flatten_blocks(blocks):
    html = flatten_blocks(blocks)
    assert html.split("\n")[0] == blocks[0].html
    assert parse_html(html).blocks[2].type == "heading"

