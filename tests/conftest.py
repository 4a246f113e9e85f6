import pytest


LP_PAGE = """<!DOCTYPE html>
<html>
<head><title>LP</title></head>
<body>
<div class="fv"><img src="https://cdn.example.com/fv.jpg" width="750" height="1200"></div>
<p>This supplement is made from carefully selected ingredients.</p>
<div style="font-size:24px"><strong>Why it works</strong></div>
<p>Many people have started using it every morning.</p>
<div class="sb-custom"><span><div id="sb-part-12345" class="sb-custom-part-abcdefghij0123456789"><div class="flash">Limited offer</div></div><style>#sb-part-12345 .flash{color:red}</style></span></div>
<p>The first box is half price for new customers.</p>
<div><video width="640" height="360"><source src="https://cdn.example.com/movie.mp4" type="video/mp4"></video></div>
<div><a href="https://shop.example.com/buy"><img src="https://cdn.example.com/cta.png"></a></div>
<div><br></div>
<p><a href="https://shop.example.com/law_info">Legal notice</a></p>
</body>
</html>
"""

WIDGET_PAIR_HTML = """<div class="sb-custom"><span><div id="sb-part-11111" class="sb-custom-part-aaaaaaaaaaaaaaaaaaaa"><p>Variant A</p></div></span></div>
<div class="sb-custom"><span><div id="sb-part-11111" class="sb-custom-part-aaaaaaaaaaaaaaaaaaaa"><p>Variant B</p></div></span></div>
<div class="sb-custom"><span><div id="sb-part-22222" class="sb-custom-part-bbbbbbbbbbbbbbbbbbbb"><p>Other widget</p></div></span></div>
<style>#sb-part-11111 p{color:red} .sb-custom-part-aaaaaaaaaaaaaaaaaaaa{margin:0} #sb-part-111112{color:blue}</style>"""


@pytest.fixture
def lp_page():
    return LP_PAGE


@pytest.fixture
def widget_pair_html():
    return WIDGET_PAIR_HTML
