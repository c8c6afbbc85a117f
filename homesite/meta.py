from __future__ import annotations

import datetime as dt
from pathlib import Path

DATE_KEY = "published_at"
DATE_FORMATS = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%B %Y",
)


def parse_date_value(value: str) -> dt.datetime:
    value = value.strip().strip("'\"")
    if not value:
        raise ValueError("empty date")
    iso_value = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = dt.datetime.fromisoformat(iso_value)
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in DATE_FORMATS:
            try:
                parsed = dt.datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        raise ValueError(f"Unrecognized date: {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return parsed


def parse_simple(text: str) -> dict:
    """Parse the flat key/value sidecar format.

    Values are strings, a datetime for ``published_at``, or a list of
    strings for a key with an empty value followed by ``- item`` lines.
    """
    result: dict = {}
    list_key = ""
    list_items: list[str] = []
    for line in text.lstrip("\ufeff").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("- "):
            if list_key:
                list_items.append(stripped[2:].strip())
            continue
        if list_key:
            result[list_key] = list_items
            list_key = ""
            list_items = []
        if ":" not in stripped:
            continue
        key, value = stripped.split(":", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if key == DATE_KEY:
            result[key] = parse_date_value(value)
        elif not value:
            list_key = key
            list_items = []
        else:
            result[key] = value
    if list_key:
        result[list_key] = list_items
    return result


def read_sidecar(path: Path) -> dict:
    return parse_simple(path.read_text(encoding="utf-8"))
