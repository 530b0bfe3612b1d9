"""
Tests for text sanitation.
"""

from youthhub.core.sanitize import sanitize_search_query, sanitize_text


def test_script_blocks_are_removed():
    assert sanitize_text("Hello<script>alert(1)</script> world") == "Hello world"


def test_tags_are_stripped_and_text_kept():
    assert sanitize_text("<p>Retreat <b>this</b> Friday</p>") == "Retreat this Friday"


def test_event_handlers_and_js_urls_are_removed():
    cleaned = sanitize_text('<img src=x onerror="steal()">Photo <a href="javascript:run()">link</a>')
    assert "onerror" not in cleaned
    assert "javascript" not in cleaned
    assert cleaned == "Photo link"


def test_encoded_script_is_removed():
    cleaned = sanitize_text("Hi &lt;script&gt;alert(1)&lt;/script&gt; there")
    assert "<script>" not in cleaned
    assert "alert" not in cleaned
    assert cleaned == "Hi there"


def test_encoded_img_handler_is_removed():
    cleaned = sanitize_text("Hi &lt;img src=x onerror=steal()&gt;")
    assert "<img" not in cleaned
    assert "onerror" not in cleaned
    assert cleaned == "Hi"


def test_encoded_mixed_markup_leaves_no_tags():
    cleaned = sanitize_text(
        "Hi &lt;script&gt;alert(1)&lt;/script&gt; &lt;img src=x onerror=steal()&gt;"
    )
    assert "<" not in cleaned
    assert cleaned == "Hi"


def test_entities_without_markup_decode_to_text():
    assert sanitize_text("1 &lt; 2 &amp; 3") == "1 < 2 & 3"


def test_line_breaks_survive():
    assert sanitize_text("line one  \n   line two") == "line one\nline two"


def test_non_text_is_empty():
    assert sanitize_text(None) == ""
    assert sanitize_text(42) == ""


def test_search_wildcards_are_escaped():
    assert sanitize_search_query("100%_off") == "100\\%\\_off"
    assert len(sanitize_search_query("x" * 300)) == 100
