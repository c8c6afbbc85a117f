from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from .config import load_config
from .content import load_galleries, load_page, load_posts, load_projects
from .convert import ASSETS_DIR
from .pages import (
    ABOUT_FILE,
    DATES_FILE,
    FEED_FILE,
    build_about,
    build_blog_index,
    build_homepage,
    build_photos,
    build_posts,
    build_projects,
    build_rss,
    build_script,
    build_styles,
    expected_outputs,
    feed_entries,
    load_date_record,
    load_previous_pub_dates,
)
from .render import clean_orphans, copy_assets, read_template
from .utils import check_output_dir, parse_bool, parse_int

DEFAULT_TEMPLATES = Path(__file__).resolve().parent / "templates"
FEED_LIMIT = 0
RECENT_LIMIT = 3


def build_site(args: argparse.Namespace) -> None:
    content_dir = Path(args.content)
    output_dir = Path(args.output)
    templates_dir = Path(args.templates)
    highlight = parse_bool(getattr(args, "highlight_code", False))

    if not content_dir.is_dir():
        print(f"Content directory not found: {content_dir}", file=sys.stderr)
        sys.exit(1)
    if not (templates_dir / "base.html").exists():
        print(f"Templates directory not found: {templates_dir}", file=sys.stderr)
        sys.exit(1)

    print("Building static site...")
    base_template = read_template(templates_dir / "base.html")

    homepage = load_page(content_dir / "homepage.md", output_dir / "index.html", output_dir, highlight)
    about = load_page(content_dir / "about.md", output_dir / ABOUT_FILE, output_dir, highlight)
    posts = load_posts(content_dir, output_dir, highlight)
    projects = load_projects(content_dir, output_dir, highlight)
    galleries = load_galleries(content_dir)

    if parse_bool(getattr(args, "clean_orphans", True)) and output_dir.exists():
        check_output_dir(output_dir, content_dir)
        clean_orphans(output_dir, expected_outputs(posts, projects, galleries))

    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / ASSETS_DIR).mkdir(parents=True, exist_ok=True)
    previous_dates = load_previous_pub_dates(output_dir / FEED_FILE, args.site_url)
    previous_dates.update(load_date_record(output_dir / DATES_FILE))

    build_homepage(base_template, output_dir, homepage, posts, projects, galleries, args)
    build_blog_index(base_template, output_dir, posts, args)
    build_posts(base_template, output_dir, posts, args)
    build_projects(base_template, content_dir, output_dir, projects, args)
    build_about(base_template, output_dir, about, args)
    build_photos(base_template, output_dir, galleries, args)
    build_rss(output_dir, feed_entries(posts, galleries, previous_dates), args)
    build_styles(templates_dir, output_dir, highlight)
    build_script(templates_dir, output_dir)

    records = [record for item in [homepage, about, *posts, *projects] for record in item["assets"]]
    copy_assets(records)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))

    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        return str(cfg_value(key, default))

    def cfg_bool(key: str, default: bool) -> bool:
        return parse_bool(cfg_value(key, default))

    def cfg_int(key: str, default: int) -> int:
        return parse_int(cfg_value(key, default), default)

    parser = argparse.ArgumentParser(description="Build the static website from the content tree.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--content", default=cfg_str("content", "content"), help="Content directory.")
    parser.add_argument("--output", default=cfg_str("output", "dist"), help="Output directory for the site.")
    parser.add_argument(
        "--templates",
        default=cfg_str("templates", str(DEFAULT_TEMPLATES)),
        help="Directory holding base.html, styles.css and script.js.",
    )
    parser.add_argument("--site-name", default=cfg_str("site_name", "My Site"), help="Site title.")
    parser.add_argument(
        "--site-description",
        default=cfg_str("site_description", "Personal blog and photo galleries"),
        help="Site description used in the RSS feed.",
    )
    parser.add_argument(
        "--site-url",
        default=cfg_str("site_url", "https://example.com"),
        help="Public site URL used for RSS links.",
    )
    parser.add_argument(
        "--feed-limit",
        default=cfg_int("feed_limit", FEED_LIMIT),
        type=int,
        help="Maximum number of RSS items (0 = no limit).",
    )
    parser.add_argument(
        "--recent-limit",
        default=cfg_int("recent_limit", RECENT_LIMIT),
        type=int,
        help="Number of posts and galleries listed on the homepage.",
    )
    parser.add_argument(
        "--highlight-code",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("highlight_code", False),
        help="Syntax-highlight fenced code blocks that name a language.",
    )
    parser.add_argument(
        "--clean-orphans",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("clean_orphans", True),
        help="Delete output files that no longer match any content.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    start = time.perf_counter()
    build_site(args)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    print(f"Site generated in: {args.output}")
