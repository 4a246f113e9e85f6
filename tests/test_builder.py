import re

from lp_blocks.builder import (
    VIDEO_RESET_MARKER,
    build,
    build_sb_html,
    build_video_reset_widget,
    strip_html_wrapper,
)
from lp_blocks.dom import get_classes, parse_fragment
from lp_blocks.ids import IdAllocator, replace_selector
from lp_blocks.validator import validate_sb_html


def _parts(html):
    soup = parse_fragment(html)
    return [
        (el["id"], [c for c in get_classes(el) if c.startswith("sb-custom-part-")][0])
        for el in soup.find_all(id=re.compile(r"^sb-part-"))
    ]


# ── Identifier regeneration ───────────────────────────────────────────────

def test_repeated_part_pair_gets_one_new_pair(widget_pair_html):
    output = build_sb_html(widget_pair_html, {"idSeed": 42})
    parts = _parts(output)
    # three content widgets plus the trailing video reset widget
    assert len(parts) == 4
    first, second, other = parts[:3]
    assert first == second
    assert first != other
    assert first[0] != "sb-part-11111"
    assert "sb-part-11111" not in output.replace("sb-part-111112", "")


def test_scoped_css_follows_new_pair(widget_pair_html):
    output = build_sb_html(widget_pair_html, {"idSeed": 42})
    new_id, new_class = _parts(output)[0]
    assert f"#{new_id} p{{color:red}}" in output
    assert f".{new_class}{{margin:0}}" in output
    # a longer id sharing the prefix is a different selector
    assert "#sb-part-111112{color:blue}" in output


def test_regenerate_ids_can_be_disabled(widget_pair_html):
    output = build_sb_html(widget_pair_html, {"regenerateIds": False})
    assert [p[0] for p in _parts(output)[:3]] == ["sb-part-11111", "sb-part-11111", "sb-part-22222"]


def test_seeded_builds_are_deterministic(widget_pair_html):
    assert build_sb_html(widget_pair_html, {"idSeed": 7}) == build_sb_html(widget_pair_html, {"idSeed": 7})


def test_new_ids_avoid_existing_ids():
    allocator = IdAllocator(seed=1)
    taken_id, taken_class = allocator.new_pair()
    fresh = IdAllocator(seed=1, existing=[taken_id, taken_class]).new_pair()
    assert fresh[0] != taken_id
    assert fresh[1] != taken_class


def test_replace_selector_matches_whole_identifiers():
    css = "#sb-part-1 a, #sb-part-12 b, #sb-part-1-x c, #sb-part-1{}"
    assert replace_selector(css, "#", "sb-part-1", "sb-part-9") == (
        "#sb-part-9 a, #sb-part-12 b, #sb-part-1-x c, #sb-part-9{}"
    )


# ── Images and CTA links ──────────────────────────────────────────────────

def test_image_map_replaces_img_sources():
    html = '<p><img class="lazyload" data-src="old.jpg" src="old.jpg"></p>'
    output = build_sb_html(html, {"imageMap": {"old.jpg": "new.webp"}})
    img = parse_fragment(output).find("img")
    assert img["data-src"] == "new.webp"
    assert img["src"] == "new.webp"


def test_image_map_points_picture_sources_at_replacement():
    html = (
        '<picture><source type="image/webp" data-srcset="old.webp">'
        '<source type="image/avif" srcset="old.avif">'
        '<img class="lazyload" data-src="old.jpg"></picture>'
    )
    output = build_sb_html(html, {"imageMap": {"old.jpg": "new.png"}})
    soup = parse_fragment(output)
    sources = soup.find_all("source")
    assert sources[0]["data-srcset"] == "new.png"
    assert sources[1]["srcset"] == "new.png"
    assert soup.find("img")["data-src"] == "new.png"


def test_cta_url_skips_footer_links():
    html = '<a href="/buy"><img src="b.png"></a><a href="/privacy">Privacy</a>'
    soup = parse_fragment(build_sb_html(html, {"ctaUrl": "https://lp.example.com"}))
    assert [a["href"] for a in soup.find_all("a")] == ["https://lp.example.com", "/privacy"]


# ── Lazy load ─────────────────────────────────────────────────────────────

def test_bare_img_is_lazyloaded_and_validates_clean():
    output = build_sb_html('<p><img src="photo.jpg"></p>')
    img = parse_fragment(output).find("img")
    assert "lazyload" in get_classes(img)
    assert img["data-src"] == "photo.jpg"
    assert validate_sb_html(output).warnings == []


def test_video_normalisation():
    html = '<video class="promo"><source src="clip.mp4" type="video/mp4"></video>'
    video = parse_fragment(build_sb_html(html)).find("video")
    assert get_classes(video) == ["promo", "lazyload", "ql-video"]
    assert video["muted"] == "true"
    assert video["playsinline"] == ""
    assert video["oncanplay"] == "this.muted=true"
    source = video.find("source")
    assert source["data-src"] == "clip.mp4"
    assert not source.has_attr("src")


# ── Output assembly ───────────────────────────────────────────────────────

def test_strip_html_wrapper():
    assert strip_html_wrapper("<html><body><p>x</p></body></html>") == "<p>x</p>"
    assert strip_html_wrapper("<html><head></head><body><p>x</p></body></html>") == "<p>x</p>"
    assert strip_html_wrapper("<p>x</p>") == "<p>x</p>"


def test_wrapped_input_builds_valid_fragment():
    result = build("<html><body><p>hello</p></body></html>")
    assert result.validation.valid
    assert result.html.startswith("<p>hello</p>")


def test_tag_settings_injection_order():
    config = {
        "tagSettings": {
            "masterCss": "p{margin:0}",
            "noindex": True,
            "headTags": '<meta name="x" content="y">',
            "jsHead": "head()",
            "bodyTags": "<div>tail</div>",
            "jsBody": "body()",
        },
        "exitPopupHtml": '<div id="popup">bye</div>',
    }
    output = build_sb_html("<p>content</p>", config)
    order = [
        "<style>p{margin:0}</style>",
        '<meta name="robots" content="noindex">',
        '<meta name="x" content="y">',
        "<script>head()</script>",
        "<p>content</p>",
        "<div>tail</div>",
        "<script>body()</script>",
        '<div id="popup">bye</div>',
        VIDEO_RESET_MARKER,
    ]
    positions = [output.index(fragment) for fragment in order]
    assert positions == sorted(positions)


def test_disabled_popup_suppresses_prebuilt_html():
    config = {"exitPopupHtml": '<div id="popup">bye</div>', "exitPopup": {"enabled": False}}
    assert "popup" not in build_sb_html("<p>x</p>", config)


def test_popup_rendered_from_config():
    config = {"exitPopup": {"enabled": True, "content": {"title": "Wait!"}}}
    output = build_sb_html("<p>x</p>", config)
    assert "exit-popup-" in output
    assert "<h3>Wait!</h3>" in output


def test_video_reset_widget_added_once():
    once = build_sb_html("<p>x</p>", {"idSeed": 3})
    twice = build_sb_html(once, {"idSeed": 4})
    assert once.count(VIDEO_RESET_MARKER) == 1
    assert twice.count(VIDEO_RESET_MARKER) == 1


def test_video_reset_widget_shape():
    widget = build_video_reset_widget(IdAllocator(seed=5))
    block_part = _parts(widget)
    assert len(block_part) == 1
    assert re.fullmatch(r"sb-part-\d{5}", block_part[0][0])
    assert re.fullmatch(r"sb-custom-part-[a-z0-9]{20}", block_part[0][1])
    assert 'class="sb-custom"' in widget


def test_build_result_reports_size_and_validation():
    result = build('<p><img src="a.jpg"></p>')
    assert result.size_bytes == len(result.html.encode("utf-8"))
    assert result.validation.valid
    assert result.validation.stats["images"] == 1


def test_malformed_markup_still_builds():
    result = build("<div><p>unclosed <b>bold</div></span>")
    assert "unclosed" in result.html
    assert result.validation.valid
