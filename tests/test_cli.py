import json

import pytest

from lp_blocks.cli import main


@pytest.fixture
def page_file(tmp_path, lp_page):
    path = tmp_path / "page.html"
    path.write_text(lp_page, encoding="utf-8")
    return path


def test_parse_command(page_file, capsys):
    main(["parse", str(page_file)])
    payload = json.loads(capsys.readouterr().out)
    assert payload["blocks"][0]["type"] == "fv"
    assert payload["blocks"][4]["vendorPartId"] == "sb-part-12345"
    assert [s["label"] for s in payload["sections"]][0] == "intro"


def test_parse_command_writes_output_file(page_file, tmp_path):
    out = tmp_path / "blocks.json"
    main(["parse", str(page_file), "-o", str(out)])
    assert json.loads(out.read_text(encoding="utf-8"))["blocks"]


def test_analyze_command_with_template(tmp_path, capsys):
    page = tmp_path / "a.html"
    page.write_text("<p>AAA</p><p>AAA</p><a href='https://shop.example.com'>go</a>", encoding="utf-8")
    main(["analyze", str(page), "--template"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["frequentTerms"][0] == {"term": "AAA", "count": 2}
    assert payload["template"]["ctaUrl"] == "https://shop.example.com"


def test_modify_command(tmp_path, capsys):
    page = tmp_path / "m.html"
    page.write_text('<p>Brand X</p><a href="/buy">Buy Brand X</a>', encoding="utf-8")
    config = tmp_path / "mutation.json"
    config.write_text(json.dumps({
        "directReplacements": {"Brand X": "Brand Y"},
        "ctaUrl": "https://lp.example.com",
    }), encoding="utf-8")
    main(["modify", str(page), "-c", str(config)])
    out = capsys.readouterr().out.strip()
    assert out == '<p>Brand Y</p><a href="https://lp.example.com">Buy Brand Y</a>'


def test_modify_command_rejects_bad_config(tmp_path, capsys):
    page = tmp_path / "m.html"
    page.write_text("<p>x</p>", encoding="utf-8")
    config = tmp_path / "bad.json"
    config.write_text(json.dumps({"directReplacements": {"": "x"}}), encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["modify", str(page), "-c", str(config)])
    assert exc.value.code == 1
    assert "Error" in capsys.readouterr().err


def test_build_command_json(tmp_path, capsys):
    page = tmp_path / "b.html"
    page.write_text('<p><img src="a.jpg"></p>', encoding="utf-8")
    main(["build", str(page), "--seed", "1", "--json"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["validation"]["valid"] is True
    assert 'class="lazyload"' in payload["html"]


def test_validate_command_exit_code(tmp_path, capsys):
    page = tmp_path / "v.html"
    page.write_text("<html><body><p>x</p></body></html>", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["validate", str(page)])
    assert exc.value.code == 2
    assert json.loads(capsys.readouterr().out)["valid"] is False


def test_missing_input_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["parse", str(tmp_path / "nope.html")])
    assert exc.value.code == 1
    assert "Error reading file" in capsys.readouterr().err
