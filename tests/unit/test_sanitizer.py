import pytest

from app.core.sanitizer import sanitize, sanitize_record


@pytest.mark.parametrize("raw, expected", [
    ("<b>Hello</b> <i>world</i>", "Hello world"),
    ('<img src="x" onerror="alert(1)">Name', "Name"),
    ("<script>alert(1)</script>Safe", "Safe"),
    ("plain text", "plain text"),
])
def test_markup_is_stripped(raw, expected):
    assert sanitize(raw) == expected


@pytest.mark.parametrize("raw", ["a < b & c", "<p>Tom &amp; Jerry</p>", "<<b>>", "x"])
def test_sanitize_is_idempotent(raw):
    once = sanitize(raw)
    assert sanitize(once) == once


@pytest.mark.parametrize("value", [None, "", 42])
def test_empty_and_non_string_values_pass_through(value):
    assert sanitize(value) == value


def test_sanitize_record_only_touches_strings():
    record = sanitize_record({"name": "<b>Router</b>", "count": 3, "url": None})
    assert record == {"name": "Router", "count": 3, "url": None}


def test_sanitize_record_empty():
    assert sanitize_record({}) == {}
