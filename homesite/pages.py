from __future__ import annotations

import datetime as dt
import html
import json
import sys
import xml.etree.ElementTree as etree
from pathlib import Path

from .content import strip_dot_slash
from .convert import highlight_css, relative_root
from .render import read_template, render_template, summarize, write_text
from .utils import copy_file, join_url, parse_rfc822_date, rfc822_date, stem

FEED_FILE = "feed.xml"
DATES_FILE = ".feed-dates.json"
STYLES_FILE = "styles.css"
SCRIPT_FILE = "script.js"
ABOUT_FILE = "about-this-site.html"
SUMMARY_LENGTH = 500


def post_route(post: dict) -> str:
    return f"/updates/{post['slug']}"


def project_route(project: dict) -> str:
    return f"/projects/{project['slug']}"


def gallery_route(gallery: dict) -> str:
    return f"/photos/{gallery['name']}"


def photo_route(gallery: dict, image: str) -> str:
    return f"{gallery_route(gallery)}/{stem(image)}"


def expected_outputs(posts: list[dict], projects: list[dict], galleries: list[dict]) -> set[str]:
    """Every file the current content produces, relative to the output root."""
    expected = {"index.html", ABOUT_FILE, FEED_FILE, DATES_FILE, STYLES_FILE, SCRIPT_FILE, "updates/index.html", "photos/index.html"}
    for post in posts:
        expected.add(f"updates/{post['slug']}.html")
    for project in projects:
        expected.add(f"projects/{project['slug']}.html")
        for dependency in project.get("dependencies", []):
            expected.add(f"projects/{Path(strip_dot_slash(dependency)).name}")
    for gallery in galleries:
        expected.add(f"photos/{gallery['name']}/index.html")
        for image in gallery["images"]:
            expected.add(f"photos/{gallery['name']}/{image}")
            expected.add(f"photos/{gallery['name']}/{stem(image)}.html")
    return expected


def render_page(base_template: str, output_dir: Path, rel: str, title: str, content: str, args: object) -> None:
    path = output_dir / rel
    html_doc = render_template(
        base_template,
        title=html.escape(title),
        root=relative_root(path, output_dir),
        content=content,
        site_name=html.escape(args.site_name),
        year=str(dt.datetime.now().year),
    )
    write_text(path, html_doc)


def build_link_list(items: list[tuple[str, str, str]]) -> str:
    rows = []
    for url, label, extra in items:
        rows.append(f'<li><a href="{url}">{html.escape(label)}</a>{extra}</li>')
    return f'<ul>{"".join(rows)}</ul>'


def build_homepage(
    base_template: str,
    output_dir: Path,
    homepage: dict,
    posts: list[dict],
    projects: list[dict],
    galleries: list[dict],
    args: object,
) -> None:
    limit = max(1, int(getattr(args, "recent_limit", 3)))
    recent_posts = build_link_list([(post_route(p), p["title"], "") for p in posts[:limit]])
    blog_section = (
        '<section class="recent-posts">'
        "<h2>Recent Blog Posts</h2>"
        f"{recent_posts if posts else '<p>No blog posts yet.</p>'}"
        '<a href="/updates">View all posts &rarr;</a>'
        "</section>"
    )
    if galleries:
        gallery_list = build_link_list(
            [(gallery_route(g), g["display_name"], f" ({g['image_count']} images)") for g in galleries[:limit]]
        )
    else:
        gallery_list = "<p>Photo galleries will be available soon.</p>"
    photos_section = (
        '<section class="photos">'
        "<h2>Photo Galleries</h2>"
        f"{gallery_list}"
        '<a href="/photos">View all galleries &rarr;</a>'
        "</section>"
    )
    if projects:
        project_list = build_link_list([(project_route(p), p["title"], "") for p in projects])
    else:
        project_list = "<p>Projects will be available soon.</p>"
    projects_section = f'<section class="projects"><h2>Projects</h2>{project_list}</section>'
    content = homepage["content"] + blog_section + photos_section + projects_section
    render_page(base_template, output_dir, "index.html", homepage["title"], content, args)


def build_blog_index(base_template: str, output_dir: Path, posts: list[dict], args: object) -> None:
    if posts:
        listing = build_link_list([(post_route(p), p["title"], "") for p in posts])
    else:
        listing = "<p>No blog posts available.</p>"
    render_page(base_template, output_dir, "updates/index.html", "Blog Posts", f"<h1>Blog Posts</h1>{listing}", args)


def build_posts(base_template: str, output_dir: Path, posts: list[dict], args: object) -> None:
    for post in posts:
        render_page(base_template, output_dir, f"updates/{post['slug']}.html", post["title"], post["content"], args)


def copy_dependencies(content_dir: Path, output_dir: Path, project: dict) -> None:
    for dependency in project.get("dependencies", []):
        clean = strip_dot_slash(dependency)
        source = content_dir / "projects" / clean
        dest = output_dir / "projects" / Path(clean).name
        if not source.is_file():
            print(f"Warning: Dependency not found: {source}", file=sys.stderr)
            continue
        try:
            copy_file(source, dest)
        except OSError as exc:
            print(f"Warning: Could not copy dependency {source} to {dest}: {exc}", file=sys.stderr)
            continue
        print(f"Copied dependency: {source} -> {dest}")


def build_projects(
    base_template: str, content_dir: Path, output_dir: Path, projects: list[dict], args: object
) -> None:
    for project in projects:
        content = project["content"]
        if project.get("additional_html"):
            content += "\n\n" + project["additional_html"]
        render_page(base_template, output_dir, f"projects/{project['slug']}.html", project["title"], content, args)
        copy_dependencies(content_dir, output_dir, project)


def build_about(base_template: str, output_dir: Path, about: dict, args: object) -> None:
    render_page(base_template, output_dir, ABOUT_FILE, about["title"], about["content"], args)


def build_photos_index(base_template: str, output_dir: Path, galleries: list[dict], args: object) -> None:
    if not galleries:
        content = "<h1>Photo Galleries</h1><p>No photo galleries available yet.</p>"
        render_page(base_template, output_dir, "photos/index.html", "Photo Galleries", content, args)
        return
    previews = []
    for gallery in galleries:
        name = html.escape(gallery["display_name"])
        preview_src = f"{gallery_route(gallery)}/{html.escape(gallery['preview_image'])}"
        previews.append(
            '<article class="gallery-preview">'
            f'<h2><a href="{gallery_route(gallery)}">{name}</a></h2>'
            f"<p>{gallery['image_count']} photos</p>"
            f'<img src="{preview_src}" alt="{name} preview" class="gallery-preview-image">'
            "</article>"
        )
    content = f"<h1>Photo Galleries</h1>{''.join(previews)}"
    render_page(base_template, output_dir, "photos/index.html", "Photo Galleries", content, args)


def build_photo_page(base_template: str, output_dir: Path, gallery: dict, index: int, args: object) -> None:
    images = gallery["images"]
    image = images[index]
    prev_image = images[index - 1]
    next_image = images[(index + 1) % len(images)]
    name = html.escape(gallery["display_name"])
    content = (
        f'<div class="photo-viewer" data-gallery="{html.escape(gallery["name"])}" '
        f'data-current="{index}" data-total="{len(images)}">'
        '<div class="photo-nav">'
        f'<a href="{gallery_route(gallery)}" class="back-to-gallery">&larr; Back to {name}</a>'
        f'<div class="photo-counter">{index + 1} / {len(images)}</div>'
        "</div>"
        '<div class="photo-display">'
        f'<a href="{photo_route(gallery, prev_image)}" class="nav-prev" aria-label="Previous photo"><span>&lsaquo;</span></a>'
        '<div class="photo-main">'
        f'<img src="{gallery_route(gallery)}/{html.escape(image)}" alt="{html.escape(image)}" class="full-photo">'
        "</div>"
        f'<a href="{photo_route(gallery, next_image)}" class="nav-next" aria-label="Next photo"><span>&rsaquo;</span></a>'
        "</div>"
        f'<div class="photo-info"><h2>{html.escape(image)}</h2></div>'
        "</div>"
    )
    rel = f"photos/{gallery['name']}/{stem(image)}.html"
    render_page(base_template, output_dir, rel, f"{image} - {gallery['display_name']}", content, args)


def photo_page_collisions(images: list[str]) -> list[str]:
    """Images whose viewer page is overwritten by another page of the gallery."""
    seen: set[str] = set()
    clashes = []
    for image in images:
        page = stem(image)
        if page == "index" or page in seen:
            clashes.append(image)
        seen.add(page)
    return clashes


def build_gallery(base_template: str, output_dir: Path, gallery: dict, args: object) -> None:
    name = html.escape(gallery["display_name"])
    items = []
    for image in gallery["images"]:
        items.append(
            '<div class="photo-item">'
            f'<a href="{photo_route(gallery, image)}" class="photo-link">'
            f'<img src="{gallery_route(gallery)}/{html.escape(image)}" alt="{html.escape(image)}" '
            'loading="lazy" class="gallery-image">'
            "</a></div>"
        )
    description = ""
    if gallery.get("description"):
        description = f'<p class="gallery-description">{html.escape(gallery["description"])}</p>'
    content = (
        f"<h1>{name}</h1>"
        f"{description}"
        f'<div class="photo-gallery">{"".join(items)}</div>'
        '<a href="/photos" class="back-link">&larr; Back to all galleries</a>'
    )
    gallery_dir = output_dir / "photos" / gallery["name"]
    for image in photo_page_collisions(gallery["images"]):
        print(f"Warning: Photo page for {gallery['name']}/{image} is overwritten by another page", file=sys.stderr)
    for index, image in enumerate(gallery["images"]):
        source = gallery["source_dir"] / image
        try:
            copy_file(source, gallery_dir / image)
        except OSError as exc:
            print(f"Warning: Could not copy {source} to {gallery_dir / image}: {exc}", file=sys.stderr)
        build_photo_page(base_template, output_dir, gallery, index, args)
    render_page(base_template, output_dir, f"photos/{gallery['name']}/index.html", gallery["display_name"], content, args)


def build_photos(base_template: str, output_dir: Path, galleries: list[dict], args: object) -> None:
    build_photos_index(base_template, output_dir, galleries, args)
    for gallery in galleries:
        build_gallery(base_template, output_dir, gallery, args)


def load_previous_pub_dates(feed_path: Path, site_url: str) -> dict[str, dt.datetime]:
    """Read ``route -> pubDate`` pairs back from a previously written feed."""
    if not feed_path.exists():
        return {}
    try:
        root = etree.parse(feed_path).getroot()
    except (etree.ParseError, OSError) as exc:
        print(f"Warning: Could not parse existing RSS feed {feed_path}: {exc}", file=sys.stderr)
        return {}
    base = site_url.rstrip("/")
    dates = {}
    for item in root.iter("item"):
        link = (item.findtext("link") or "").strip()
        pub_date = (item.findtext("pubDate") or "").strip()
        if not link or not pub_date:
            continue
        try:
            parsed = parse_rfc822_date(pub_date)
        except (TypeError, ValueError):
            print(f"Warning: Ignoring bad pubDate in existing feed: {pub_date}", file=sys.stderr)
            continue
        route = link[len(base) :] if link.startswith(base) else link
        dates[route or "/"] = parsed
    return dates


def load_date_record(path: Path) -> dict[str, dt.datetime]:
    """Read the ``route -> publish date`` record kept beside the feed."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Warning: Could not read publish date record {path}: {exc}", file=sys.stderr)
        return {}
    if not isinstance(data, dict):
        return {}
    dates = {}
    for route, value in data.items():
        try:
            dates[route] = dt.datetime.fromisoformat(value)
        except (TypeError, ValueError):
            continue
    return dates


def write_date_record(path: Path, entries: list[dict]) -> None:
    data = {entry["route"]: entry["date"].replace(microsecond=0).isoformat() for entry in entries}
    write_text(path, json.dumps(data, indent=2, sort_keys=True, ensure_ascii=True))


def feed_entries(posts: list[dict], galleries: list[dict], previous: dict[str, dt.datetime]) -> list[dict]:
    entries = []
    for post in posts:
        route = post_route(post)
        entries.append(
            {
                "category": "blog",
                "title": post["title"],
                "route": route,
                "description": summarize(post["content"], SUMMARY_LENGTH),
                "date": post["published_at"] or previous.get(route) or post["date"],
            }
        )
    for gallery in galleries:
        route = gallery_route(gallery)
        entries.append(
            {
                "category": "gallery",
                "title": f"Photo Gallery: {gallery['display_name']}",
                "route": route,
                "description": gallery["description"]
                or f"New photo gallery with {gallery['image_count']} images.",
                "date": gallery["published_at"] or previous.get(route) or gallery["date"],
            }
        )
    entries.sort(key=lambda e: e["date"], reverse=True)
    return entries


def build_rss(output_dir: Path, entries: list[dict], args: object) -> None:
    site_url = args.site_url.rstrip("/")
    # Dates of items cut by the limit are still recorded for the next build.
    write_date_record(output_dir / DATES_FILE, entries)
    feed_limit = int(getattr(args, "feed_limit", 0) or 0)
    if feed_limit > 0:
        entries = entries[:feed_limit]
    items = []
    for entry in entries:
        link = join_url(site_url, entry["route"])
        items.append(
            "\n".join(
                [
                    "<item>",
                    f"<title>{html.escape(entry['title'])}</title>",
                    f"<link>{link}</link>",
                    f"<guid>{link}</guid>",
                    f"<pubDate>{rfc822_date(entry['date'])}</pubDate>",
                    f"<description>{html.escape(entry['description'])}</description>",
                    f"<category>{entry['category']}</category>",
                    "</item>",
                ]
            )
        )
    rss = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
            "<channel>",
            f"<title>{html.escape(args.site_name)}</title>",
            f"<description>{html.escape(args.site_description)}</description>",
            f"<link>{site_url}</link>",
            f'<atom:link href="{join_url(site_url, FEED_FILE)}" rel="self" type="application/rss+xml" />',
            f"<lastBuildDate>{rfc822_date(dt.datetime.now(dt.timezone.utc).replace(tzinfo=None))}</lastBuildDate>",
            "<language>en-us</language>",
            "<generator>homesite</generator>",
            "\n".join(items),
            "</channel>",
            "</rss>",
        ]
    )
    write_text(output_dir / FEED_FILE, rss)


def build_styles(templates_dir: Path, output_dir: Path, highlight: bool) -> None:
    css = read_template(templates_dir / STYLES_FILE)
    if highlight:
        css += "\n" + highlight_css()
    write_text(output_dir / STYLES_FILE, css)


def build_script(templates_dir: Path, output_dir: Path) -> None:
    write_text(output_dir / SCRIPT_FILE, read_template(templates_dir / SCRIPT_FILE))
