from __future__ import annotations

import datetime as dt
import re
import sys
from pathlib import Path

from .convert import convert_markdown
from .meta import parse_date_value, read_sidecar

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
LAST_UPDATED_RE = re.compile(r"_Last updated ([^_]+)_")
SIDECAR_SUFFIX = ".meta.yaml"
GALLERY_SIDECAR = "meta.yaml"


def extract_title(body: str, slug: str) -> str:
    first_line = body.lstrip("\ufeff").split("\n", 1)[0].rstrip("\r")
    if first_line.startswith("# "):
        return first_line[2:].strip() or slug
    return slug


def parse_last_updated(body: str) -> dt.datetime | None:
    match = LAST_UPDATED_RE.search(body)
    if not match:
        return None
    try:
        return parse_date_value(match.group(1))
    except ValueError:
        return None


def file_date(path: Path) -> dt.datetime:
    try:
        stamp = path.stat().st_mtime
    except OSError:
        return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)
    return dt.datetime.fromtimestamp(stamp, dt.timezone.utc).replace(tzinfo=None)


def resolve_date(published_at: dt.datetime | None, last_updated: dt.datetime | None, path: Path) -> dt.datetime:
    if published_at is not None:
        return published_at
    if last_updated is not None:
        return last_updated
    return file_date(path)


def display_name(name: str) -> str:
    return name.replace("-", " ").title()


def load_sidecar(path: Path, label: str) -> dict:
    if not path.exists():
        return {}
    try:
        return read_sidecar(path)
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        print(f"Could not parse metadata for {label}: {exc}", file=sys.stderr)
        return {}


def strip_dot_slash(value: str) -> str:
    return value[2:] if value.startswith("./") else value


def parse_document(path: Path, output_path: Path, output_dir: Path | None = None, highlight: bool = False) -> dict:
    body = path.read_text(encoding="utf-8")
    slug = path.stem
    content, assets = convert_markdown(body, path.parent, output_path, output_dir, highlight=highlight)
    return {
        "slug": slug,
        "title": extract_title(body, slug),
        "body": body,
        "source": path,
        "source_dir": path.parent,
        "content": content,
        "assets": assets,
    }


def load_page(path: Path, output_path: Path, output_dir: Path | None = None, highlight: bool = False) -> dict:
    if not path.exists():
        print(f"Warning: page not found: {path}", file=sys.stderr)
        return {
            "slug": path.stem,
            "title": path.stem,
            "body": "",
            "source": path,
            "source_dir": path.parent,
            "content": "",
            "assets": [],
        }
    return parse_document(path, output_path, output_dir, highlight)


def _load_items(
    content_dir: Path, output_dir: Path, section: str, route_dir: str, highlight: bool
) -> list[tuple[dict, dict]]:
    source_dir = content_dir / section
    if not source_dir.is_dir():
        return []
    loaded = []
    for md_file in sorted(source_dir.glob("*.md"), key=lambda p: p.name):
        if not md_file.is_file():
            continue
        output_path = output_dir / route_dir / f"{md_file.stem}.html"
        item = parse_document(md_file, output_path, output_dir, highlight)
        meta = load_sidecar(source_dir / f"{md_file.stem}{SIDECAR_SUFFIX}", md_file.stem)
        published_at = meta.get("published_at")
        if not isinstance(published_at, dt.datetime):
            published_at = None
        last_updated = parse_last_updated(item["body"])
        item.update(
            {
                "published_at": published_at,
                "last_updated": last_updated,
                "date": resolve_date(published_at, last_updated, md_file),
            }
        )
        loaded.append((item, meta))
    return loaded


def load_posts(content_dir: Path, output_dir: Path, highlight: bool = False) -> list[dict]:
    posts = [item for item, _ in _load_items(content_dir, output_dir, "blog", "updates", highlight)]
    posts.sort(key=lambda p: p["date"], reverse=True)
    return posts


def load_projects(content_dir: Path, output_dir: Path, highlight: bool = False) -> list[dict]:
    projects_dir = content_dir / "projects"
    projects = []
    for item, meta in _load_items(content_dir, output_dir, "projects", "projects", highlight):
        dependencies = meta.get("dependencies") or []
        if not isinstance(dependencies, list):
            print(f"Ignoring non-list dependencies for project {item['slug']}", file=sys.stderr)
            dependencies = []
        additional_html = ""
        html_value = meta.get("additional_html")
        if isinstance(html_value, str) and html_value:
            html_path = projects_dir / strip_dot_slash(html_value)
            if not html_path.is_file():
                print(
                    f"Additional HTML file not found for project {item['slug']}: {html_path}",
                    file=sys.stderr,
                )
            else:
                try:
                    additional_html = html_path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    print(
                        f"Could not read additional HTML file for project {item['slug']}: {exc}",
                        file=sys.stderr,
                    )
        item["dependencies"] = [str(dep) for dep in dependencies]
        item["additional_html"] = additional_html
        projects.append(item)
    projects.sort(key=lambda p: p["date"], reverse=True)
    return projects


def load_galleries(content_dir: Path) -> list[dict]:
    photos_dir = content_dir / "photos"
    if not photos_dir.is_dir():
        return []
    galleries = []
    for gallery_dir in sorted(photos_dir.iterdir(), key=lambda p: p.name):
        if not gallery_dir.is_dir():
            continue
        images = sorted(
            entry.name
            for entry in gallery_dir.iterdir()
            if entry.is_file() and entry.suffix.lower() in IMAGE_EXTENSIONS
        )
        if not images:
            continue
        meta = load_sidecar(gallery_dir / GALLERY_SIDECAR, f"gallery {gallery_dir.name}")
        published_at = meta.get("published_at")
        if not isinstance(published_at, dt.datetime):
            published_at = None
        description = meta.get("description")
        galleries.append(
            {
                "name": gallery_dir.name,
                "display_name": display_name(gallery_dir.name),
                "images": images,
                "image_count": len(images),
                "preview_image": images[0],
                "description": description if isinstance(description, str) else "",
                "published_at": published_at,
                "date": published_at or file_date(gallery_dir),
                "source_dir": gallery_dir,
            }
        )
    galleries.sort(key=lambda g: g["date"], reverse=True)
    return galleries
