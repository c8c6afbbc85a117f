from __future__ import annotations

import datetime as dt
import email.utils
import shutil
import sys
from pathlib import Path


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base
    return f"{base}/{path}"


def rfc822_date(value: dt.datetime) -> str:
    value = value.replace(tzinfo=dt.timezone.utc, microsecond=0)
    return value.strftime("%a, %d %b %Y %H:%M:%S %z")


def parse_rfc822_date(value: str) -> dt.datetime:
    parsed = email.utils.parsedate_to_datetime(value.strip())
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return parsed


def stem(filename: str) -> str:
    return Path(filename).stem


def copy_file(source: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, dest)


def check_output_dir(output_dir: Path, content_dir: Path) -> None:
    """Exit before sweeping an output dir that holds the sources or the cwd."""
    output_resolved = output_dir.resolve()
    content_resolved = content_dir.resolve()
    cwd = Path.cwd().resolve()
    if output_resolved == cwd or output_resolved in cwd.parents:
        print("Refusing to clean the current working directory.", file=sys.stderr)
        sys.exit(1)
    if content_resolved == output_resolved or output_resolved in content_resolved.parents:
        print(f"Refusing to clean {output_dir}: it contains the content directory {content_dir}.", file=sys.stderr)
        sys.exit(1)
