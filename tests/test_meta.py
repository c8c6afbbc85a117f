from __future__ import annotations

import datetime as dt

import pytest

from homesite.meta import parse_date_value, parse_simple


def test_scalars_and_comments():
    meta = parse_simple("# comment\n\ntitle: Hello: world\ndescription:  A trip  \n")
    assert meta == {"title": "Hello: world", "description": "A trip"}


def test_list_values():
    meta = parse_simple("dependencies:\n  - ./a.js\n  - ./b.css\nadditional_html: ./extra.html\n")
    assert meta == {"dependencies": ["./a.js", "./b.css"], "additional_html": "./extra.html"}


def test_empty_list_at_end():
    assert parse_simple("dependencies:\n") == {"dependencies": []}


def test_published_at_is_a_date():
    meta = parse_simple("published_at: 2024-03-05T10:30:00\n")
    assert meta["published_at"] == dt.datetime(2024, 3, 5, 10, 30)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-15", dt.datetime(2024, 1, 15)),
        ("January 15, 2024", dt.datetime(2024, 1, 15)),
        ("'2024/01/15'", dt.datetime(2024, 1, 15)),
    ],
)
def test_parse_date_formats(value, expected):
    assert parse_date_value(value) == expected


def test_bad_date_raises():
    with pytest.raises(ValueError):
        parse_simple("published_at: someday\n")


def test_aware_dates_become_utc(new_york_tz):
    assert parse_date_value("2024-05-01T09:00:00Z") == dt.datetime(2024, 5, 1, 9, 0)
    assert parse_date_value("2024-05-01T05:00:00-04:00") == dt.datetime(2024, 5, 1, 9, 0)
