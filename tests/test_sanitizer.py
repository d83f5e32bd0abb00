import pytest

from sanitizer import sanitize, sanitize_string


def test_strips_script_tags():
    out = sanitize_string("<script>alert(1)</script>")
    assert "<script>" not in out
    assert "<" not in out and ">" not in out
    assert out == "alert(1)"


def test_control_characters_become_spaces():
    assert sanitize_string("a\x00b\x1fc\x7fd") == "a b c d"


def test_bidi_overrides_removed():
    assert sanitize_string("abc\u202edef\u2066\u200e") == "abcdef"


def test_nfkc_normalization():
    assert sanitize_string("\uff46\uff55\uff4c\uff4c\ufb01") == "fullfi"


def test_event_handler_and_javascript_uri_removed_case_insensitively():
    out = sanitize_string('x ONCLICK = "go()" JavaScript :alert(1)')
    assert "onclick" not in out.lower()
    assert "javascript" not in out.lower()


def test_trims_surrounding_whitespace():
    assert sanitize_string("  \n hello \t ") == "hello"


@pytest.mark.parametrize("value", [
    "javajavascript:script:alert(1)",
    "<<b>script>x</script>",
    "ononclick==1",
    "e<i>\u0301</i>",
    "  <a href='javascript:x' onload=y>ok</a>  ",
    "plain text",
])
def test_idempotent(value):
    once = sanitize_string(value)
    assert sanitize_string(once) == once


def test_recurses_into_lists_and_dicts():
    value = {"a": [" <b>x</b> ", "y"], "b": {"c": "\u202ez"}, "n": 3, "t": True, "none": None}
    assert sanitize(value) == {"a": ["x", "y"], "b": {"c": "z"}, "n": 3, "t": True, "none": None}


def test_non_strings_pass_through():
    assert sanitize(42) == 42
    assert sanitize(None) is None
    assert sanitize(1.5) == 1.5
