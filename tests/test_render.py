from __future__ import annotations

from homesite.render import apply_cleanup, copy_assets, plan_cleanup, render_template, scan_output, summarize


def test_render_template_fills_content_last():
    template = "<title>{{title}}</title><main>{{content}}</main>"
    html = render_template(template, content="literal {{title}}", title="Home")
    assert html == "<title>Home</title><main>literal {{title}}</main>"


def test_summarize_strips_tags_and_truncates():
    assert summarize("<p>Hello <em>there</em></p>", 100) == "Hello there"
    assert summarize("<p>abcdefghij</p>", 4) == "abcd..."


def test_plan_cleanup_removes_stale_pages():
    files = {"index.html", "updates/a.html", "updates/b.html", "assets/old.jpg", "drafts/x.html"}
    dirs = {"updates", "assets", "drafts"}
    expected = {"index.html", "updates/a.html"}

    stale, empty = plan_cleanup(files, dirs, expected)

    assert stale == ["drafts/x.html", "updates/b.html"]
    assert empty == ["drafts"]


def test_plan_cleanup_never_touches_assets():
    stale, empty = plan_cleanup({"assets/a.jpg"}, {"assets", "assets/sub"}, set())
    assert stale == []
    assert empty == []


def test_plan_cleanup_orders_nested_dirs_deepest_first():
    files = {"photos/trip/a.html"}
    dirs = {"photos", "photos/trip"}
    stale, empty = plan_cleanup(files, dirs, set())
    assert stale == ["photos/trip/a.html"]
    assert empty == ["photos/trip", "photos"]


def test_apply_cleanup_on_disk(tmp_path, capsys):
    (tmp_path / "photos" / "trip").mkdir(parents=True)
    (tmp_path / "photos" / "trip" / "a.html").write_text("x", encoding="utf-8")
    (tmp_path / "index.html").write_text("x", encoding="utf-8")

    files, dirs = scan_output(tmp_path)
    apply_cleanup(tmp_path, *plan_cleanup(files, dirs, {"index.html"}))

    assert (tmp_path / "index.html").exists()
    assert not (tmp_path / "photos").exists()
    out = capsys.readouterr().out
    assert "Removed orphaned file: photos/trip/a.html" in out
    assert "Removed empty directory: photos" in out


def test_copy_assets_skips_missing(tmp_path, capsys):
    source = tmp_path / "pic.jpg"
    source.write_bytes(b"jpeg")
    records = [
        (source, tmp_path / "dist" / "assets" / "pic.jpg", "assets/pic.jpg"),
        (tmp_path / "gone.jpg", tmp_path / "dist" / "assets" / "gone.jpg", "assets/gone.jpg"),
    ]

    assert copy_assets(records) == 1
    assert (tmp_path / "dist" / "assets" / "pic.jpg").read_bytes() == b"jpeg"
    assert "Image not found" in capsys.readouterr().err
