from __future__ import annotations

import re
import sys
from pathlib import Path

from .utils import copy_file

TAG_RE = re.compile(r"<[^>]+>")
PROTECTED_DIRS = frozenset({"assets"})


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def summarize(html_text: str, limit: int) -> str:
    text = " ".join(strip_tags(html_text).split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def render_template(template: str, **context: str) -> str:
    output = template
    late_keys = {"content"}
    for key, value in context.items():
        if key in late_keys:
            continue
        output = output.replace(f"{{{{{key}}}}}", value)
    for key in late_keys:
        if key in context:
            output = output.replace(f"{{{{{key}}}}}", context[key])
    return output


def read_template(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_assets(records: list[tuple[Path, Path, str]]) -> int:
    """Flush queued ``(source, dest, relative_path)`` copies; return the count copied."""
    copied = 0
    for source, dest, _ in records:
        if not source.is_file():
            print(f"Warning: Image not found: {source}", file=sys.stderr)
            continue
        try:
            copy_file(source, dest)
        except OSError as exc:
            print(f"Warning: Could not copy image {source} to {dest}: {exc}", file=sys.stderr)
            continue
        print(f"Copied image: {source} -> {dest}")
        copied += 1
    return copied


def _is_protected(rel: str, protected: frozenset[str]) -> bool:
    return rel.split("/", 1)[0] in protected


def plan_cleanup(
    existing_files: set[str],
    existing_dirs: set[str],
    expected: set[str],
    protected: frozenset[str] = PROTECTED_DIRS,
) -> tuple[list[str], list[str]]:
    """Work out which output files and directories no longer belong to the site.

    Paths are POSIX-style and relative to the output root. Returns the
    files to delete and the directories left empty by those deletions,
    deepest first. Anything under a protected top-level directory is kept.
    """
    stale_files = sorted(
        rel for rel in existing_files if rel not in expected and not _is_protected(rel, protected)
    )
    stale = set(stale_files)
    occupied: set[str] = set()
    for rel in existing_files:
        if rel in stale:
            continue
        parts = rel.split("/")[:-1]
        for depth in range(1, len(parts) + 1):
            occupied.add("/".join(parts[:depth]))
    empty_dirs = sorted(
        (rel for rel in existing_dirs if rel not in occupied and not _is_protected(rel, protected)),
        key=lambda rel: (-rel.count("/"), rel),
    )
    return stale_files, empty_dirs


def scan_output(output_dir: Path) -> tuple[set[str], set[str]]:
    files: set[str] = set()
    dirs: set[str] = set()
    if not output_dir.is_dir():
        return files, dirs
    for path in output_dir.rglob("*"):
        rel = path.relative_to(output_dir).as_posix()
        if path.is_dir():
            dirs.add(rel)
        else:
            files.add(rel)
    return files, dirs


def apply_cleanup(output_dir: Path, stale_files: list[str], empty_dirs: list[str]) -> None:
    for rel in stale_files:
        try:
            (output_dir / rel).unlink()
        except FileNotFoundError:
            continue
        print(f"Removed orphaned file: {rel}")
    for rel in empty_dirs:
        path = output_dir / rel
        try:
            path.rmdir()
        except FileNotFoundError:
            continue
        except OSError as exc:
            print(f"Could not remove directory {rel}: {exc}", file=sys.stderr)
            continue
        print(f"Removed empty directory: {rel}")


def clean_orphans(output_dir: Path, expected: set[str]) -> None:
    files, dirs = scan_output(output_dir)
    stale_files, empty_dirs = plan_cleanup(files, dirs, expected)
    apply_cleanup(output_dir, stale_files, empty_dirs)
