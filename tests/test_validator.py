from lp_blocks.validator import validate_sb_html


def test_wrapper_tags_are_errors():
    report = validate_sb_html("<html><body><p>x</p></body></html>")
    assert not report.valid
    assert len(report.errors) == 1


def test_wrapper_check_is_case_insensitive_and_exact():
    assert not validate_sb_html("<BODY class='x'><p>x</p>").valid
    assert validate_sb_html("<bodyguard>x</bodyguard>").valid
    assert validate_sb_html("<p>&lt;body&gt; is escaped</p>").valid


def test_img_warnings():
    report = validate_sb_html('<img src="a.jpg">')
    assert report.valid
    assert report.warnings == [
        "img without lazyload class: a.jpg",
        "img without data-src: a.jpg",
    ]


def test_video_source_warning_once_per_video():
    html = '<video class="lazyload"><source src="a.mp4"><source src="b.mp4"></video><video></video>'
    report = validate_sb_html(html)
    assert report.warnings == [
        "video source without data-src",
        "video without lazyload class",
    ]
    assert report.stats["videos"] == 2


def test_repeated_part_pairs_are_counted_not_errors(widget_pair_html):
    report = validate_sb_html(widget_pair_html)
    assert report.valid
    assert report.stats["widget_parts"] == 3
    assert report.stats["repeated_part_pairs"] == 1


def test_validation_is_idempotent(widget_pair_html):
    html = widget_pair_html + '<img src="x.png"><html>'
    assert validate_sb_html(html) == validate_sb_html(html)


def test_compliant_fragment():
    html = '<p><img class="lazyload" data-src="a.jpg"></p>'
    report = validate_sb_html(html)
    assert report.valid
    assert report.errors == []
    assert report.warnings == []
