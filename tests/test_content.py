from __future__ import annotations

import datetime as dt
import os

from homesite.content import extract_title, load_galleries, load_page, load_posts, load_projects


def write(path, text=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_extract_title_falls_back_to_slug():
    assert extract_title("# Hello\n\nbody", "slug") == "Hello"
    assert extract_title("No heading", "slug") == "slug"


def test_missing_page_warns(tmp_path, capsys):
    page = load_page(tmp_path / "about.md", tmp_path / "dist" / "about.html", tmp_path / "dist")
    assert page["content"] == ""
    assert "page not found" in capsys.readouterr().err


def test_post_dates_resolve_in_order(tmp_path):
    content = tmp_path / "content"
    write(content / "blog" / "sidecar.md", "# Sidecar\n\n_Last updated March 1, 2020_")
    write(content / "blog" / "sidecar.meta.yaml", "published_at: 2024-02-01\n")
    write(content / "blog" / "updated.md", "# Updated\n\n_Last updated January 5, 2023_")
    mtime_post = write(content / "blog" / "mtime.md", "# Mtime\n")
    stamp = dt.datetime(2021, 6, 1, 12, 0, tzinfo=dt.timezone.utc).timestamp()
    os.utime(mtime_post, (stamp, stamp))

    posts = load_posts(content, tmp_path / "dist")

    assert [p["slug"] for p in posts] == ["sidecar", "updated", "mtime"]
    assert posts[0]["date"] == dt.datetime(2024, 2, 1)
    assert posts[0]["published_at"] == dt.datetime(2024, 2, 1)
    assert posts[1]["date"] == dt.datetime(2023, 1, 5)
    assert posts[1]["published_at"] is None
    assert posts[2]["date"] == dt.datetime(2021, 6, 1, 12, 0)


def test_bad_sidecar_warns_and_uses_defaults(tmp_path, capsys):
    content = tmp_path / "content"
    write(content / "blog" / "post.md", "# Post\n")
    write(content / "blog" / "post.meta.yaml", "published_at: not a date\n")

    posts = load_posts(content, tmp_path / "dist")

    assert posts[0]["published_at"] is None
    assert "Could not parse metadata for post" in capsys.readouterr().err


def test_post_images_point_at_shared_assets(tmp_path):
    content = tmp_path / "content"
    write(content / "blog" / "post.md", "# Post\n\n![x](./pic.jpg)")
    dist = tmp_path / "dist"

    post = load_posts(content, dist)[0]

    assert '<img src="../assets/pic.jpg" alt="x">' in post["content"]
    assert post["assets"] == [(content / "blog" / "pic.jpg", dist / "assets" / "pic.jpg", "../assets/pic.jpg")]


def test_project_dependencies_and_extra_html(tmp_path, capsys):
    content = tmp_path / "content"
    write(content / "projects" / "tool.md", "# Tool\n")
    write(content / "projects" / "tool.meta.yaml", "dependencies:\n  - ./tool.js\nadditional_html: ./tool.html\n")
    write(content / "projects" / "tool.html", "<div id=\"tool\"></div>")
    write(content / "projects" / "other.md", "# Other\n")
    write(content / "projects" / "other.meta.yaml", "additional_html: ./missing.html\n")

    projects = {p["slug"]: p for p in load_projects(content, tmp_path / "dist")}

    assert projects["tool"]["dependencies"] == ["./tool.js"]
    assert projects["tool"]["additional_html"] == '<div id="tool"></div>'
    assert projects["other"]["additional_html"] == ""
    assert "Additional HTML file not found for project other" in capsys.readouterr().err


def test_gallery_images_sorted(tmp_path):
    gallery = tmp_path / "content" / "photos" / "summer-trip"
    for name in ("b.jpg", "a.jpg", "c.jpg", "notes.txt"):
        write(gallery / name, name)
    write(gallery / "meta.yaml", "description: Beach days\npublished_at: 2024-07-01\n")

    galleries = load_galleries(tmp_path / "content")

    assert len(galleries) == 1
    info = galleries[0]
    assert info["images"] == ["a.jpg", "b.jpg", "c.jpg"]
    assert info["preview_image"] == "a.jpg"
    assert info["image_count"] == 3
    assert info["display_name"] == "Summer Trip"
    assert info["description"] == "Beach days"
    assert info["date"] == dt.datetime(2024, 7, 1)


def test_empty_gallery_is_skipped(tmp_path):
    write(tmp_path / "content" / "photos" / "empty" / "readme.txt", "nothing")
    assert load_galleries(tmp_path / "content") == []


def test_file_dates_are_utc(tmp_path, new_york_tz):
    post = write(tmp_path / "content" / "blog" / "post.md", "# Post\n")
    stamp = dt.datetime(2023, 7, 4, 15, 30, tzinfo=dt.timezone.utc).timestamp()
    os.utime(post, (stamp, stamp))

    posts = load_posts(tmp_path / "content", tmp_path / "dist")

    assert posts[0]["date"] == dt.datetime(2023, 7, 4, 15, 30)
