import frame2flat.sanitize as sanitize


FRAMESET_HTML = """<html><head><title>Host</title></head>
<frameset cols="30%,70%">
  <frame name="toc" src="toc.html">
  <frame name="body" src="body.html">
</frameset>
</html>
"""


def test_sanitize_removes_frameset_and_frames():
    soup = sanitize.sanitize_html(FRAMESET_HTML)

    assert soup.find("frameset") is None
    assert soup.find("frame") is None
    assert sanitize.strict_title(soup) == "Host"


def test_suspicious_scripts_removed_unless_kept():
    markup = """<html><head>
<script src="js/hhctrl_loader.js"></script>
<script>var o = new ActiveXObject("Shell.Application");</script>
<script>function show() { return 1; }</script>
</head><body><p>Body</p></body></html>"""

    stripped = sanitize.sanitize_html(markup, keep_scripts=False)
    scripts = stripped.find_all("script")
    assert len(scripts) == 1
    assert "function show" in scripts[0].decode_contents()

    kept = sanitize.sanitize_html(markup, keep_scripts=True)
    assert len(kept.find_all("script")) == 3


def test_inline_event_handlers_removed_from_every_element():
    markup = """<html><body onload="init()">
<div onclick="go()" class="box"><a href="x.html" onMouseOver="hi()" title="t">x</a></div>
<img src="a.gif" onerror="oops()">
</body></html>"""

    soup = sanitize.sanitize_html(markup)

    for tag in soup.find_all(True):
        assert not [name for name in tag.attrs if name.lower().startswith("on")]
    assert soup.find("div")["class"] == ["box"]
    assert soup.find("a")["href"] == "x.html"
    assert soup.find("a")["title"] == "t"


def test_charset_and_empty_title_inserted_when_missing():
    soup = sanitize.sanitize_html("<html><head></head><body><h1>Heading</h1></body></html>")

    metas = soup.find_all("meta", attrs={"charset": True})
    assert len(metas) == 1
    assert metas[0]["charset"] == "utf-8"
    title = soup.find("title")
    assert title is not None
    assert title.get_text() == ""


def test_existing_charset_and_title_kept():
    markup = '<html><head><meta charset="iso-8859-1"><title>  Spaced Title </title></head><body></body></html>'

    soup = sanitize.sanitize_html(markup)

    assert len(soup.find_all("meta", attrs={"charset": True})) == 1
    assert len(soup.find_all("title")) == 1
    assert sanitize.strict_title(soup) == "  Spaced Title "


def test_head_created_for_fragment():
    soup = sanitize.sanitize_html("<p>Just a fragment</p>")

    assert soup.head is not None
    assert soup.find("meta", attrs={"charset": True}) is not None
    assert soup.find("title") is not None
    assert "Just a fragment" in sanitize.extract_body_html(soup)
    assert "<title>" not in sanitize.extract_body_html(soup)


def test_malformed_markup_does_not_raise():
    markup = "<html><body><div><p>unclosed <b>bold</div></p></i><table><tr><td>cell</body>"

    soup = sanitize.sanitize_html(markup)

    text = soup.get_text()
    assert "unclosed" in text
    assert "cell" in text


def test_display_title_fallback_chain():
    with_title = sanitize.parse_html("<html><head><title>Strict</title></head><body><h1>H</h1></body></html>")
    assert sanitize.display_title(with_title, "en/html/a.html") == "Strict"

    heading_only = sanitize.parse_html("<html><head><title>  </title></head><body><h1> Heading </h1></body></html>")
    assert sanitize.display_title(heading_only, "en/html/a.html") == "Heading"

    nothing = sanitize.parse_html("<html><body><p>text</p></body></html>")
    assert sanitize.display_title(nothing, "en/html/page01.html") == "page01.html"


def test_extract_body_html_returns_inner_body():
    soup = sanitize.parse_html("<html><head><title>T</title></head><body><p>One</p><p>Two</p></body></html>")

    assert sanitize.extract_body_html(soup) == "<p>One</p><p>Two</p>"


def test_head_for_fragment_follows_doctype():
    output = str(sanitize.sanitize_html("<!DOCTYPE html><p>hello</p>"))

    assert output.startswith("<!DOCTYPE html>")
    assert output.index("<head>") > output.index("<!DOCTYPE html>")
    assert output.index("<head>") < output.index("<p>hello</p>")
