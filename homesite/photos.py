from __future__ import annotations

import argparse
import re
import shutil
import subprocess
import sys
from pathlib import Path

JPEG_EXTENSIONS = {".jpg", ".jpeg"}
MAX_WIDTH = 1200
MAX_HEIGHT = 800
QUALITY = 85
SAMPLE_SIZE = 3


def find_image_tool() -> list[str] | None:
    """Return the ImageMagick command prefix, or None when it is not installed."""
    if shutil.which("magick"):
        return ["magick"]
    if shutil.which("convert"):
        return ["convert"]
    return None


def normalized_name(filename: str) -> str:
    return re.sub(r"\.(jpe?g)$", lambda m: m.group(0).lower(), filename, flags=re.IGNORECASE)


def list_jpegs(source_dir: Path) -> list[Path]:
    return sorted(
        (p for p in source_dir.iterdir() if p.is_file() and p.suffix.lower() in JPEG_EXTENSIONS),
        key=lambda p: p.name,
    )


def resize_image(tool: list[str], source: Path, dest: Path, max_width: int, max_height: int, quality: int) -> None:
    subprocess.run(
        [*tool, str(source), "-resize", f"{max_width}x{max_height}", "-quality", str(quality), str(dest)],
        check=True,
        capture_output=True,
        text=True,
    )


def format_megabytes(size: int) -> str:
    return f"{size / 1024 / 1024:.2f}MB"


def show_size_comparison(pairs: list[tuple[Path, Path]]) -> None:
    print("\nSize comparison (first few files):")
    for source, dest in pairs:
        try:
            source_size = source.stat().st_size
            dest_size = dest.stat().st_size
        except OSError:
            print(f"  {source.name}: Could not compare sizes")
            continue
        reduction = (1 - dest_size / source_size) * 100 if source_size else 0.0
        print(
            f"  {source.name}: {format_megabytes(source_size)} -> {format_megabytes(dest_size)} "
            f"({reduction:.1f}% reduction)"
        )


def import_photos(
    source_dir: Path,
    gallery: str,
    content_dir: Path,
    max_width: int = MAX_WIDTH,
    max_height: int = MAX_HEIGHT,
    quality: int = QUALITY,
    tool: list[str] | None = None,
) -> tuple[int, int, int]:
    """Copy or resize the JPEGs of ``source_dir`` into a gallery.

    Returns ``(resized, copied, failed)`` counts. Raises FileNotFoundError
    when the source directory does not exist.
    """
    if not source_dir.is_dir():
        raise FileNotFoundError(f"Source directory does not exist: {source_dir}")

    dest_dir = content_dir / "photos" / gallery
    dest_dir.mkdir(parents=True, exist_ok=True)

    print(f"Processing photos from: {source_dir}")
    print(f"Gallery: {gallery}")
    print(f"Destination: {dest_dir}")
    print(f"Max dimensions: {max_width}x{max_height}, Quality: {quality}%")
    print("---")

    files = list_jpegs(source_dir)
    if not files:
        print("No JPEG files found in source directory")
        return 0, 0, 0

    print(f"Found {len(files)} JPEG files:")
    for path in files:
        print(f"  - {path.name}")
    print("---")

    if tool is None:
        print("Warning: ImageMagick not found. Images will be copied without resizing.")
        print("Install ImageMagick with: sudo apt-get install imagemagick (Ubuntu/Debian)")
        print("                      or: brew install imagemagick (macOS)")
        print("---")

    resized = copied = failed = 0
    done: list[tuple[Path, Path]] = []
    for source in files:
        dest = dest_dir / normalized_name(source.name)
        try:
            if tool is not None:
                resize_image(tool, source, dest, max_width, max_height, quality)
                resized += 1
                print(f"Resized: {source.name} -> {dest.name}")
            else:
                shutil.copy2(source, dest)
                copied += 1
                print(f"Copied: {source.name} -> {dest.name}")
        except subprocess.CalledProcessError as exc:
            failed += 1
            detail = (exc.stderr or "").strip() or str(exc)
            print(f"Error processing {source.name}: {detail}", file=sys.stderr)
            continue
        except OSError as exc:
            failed += 1
            print(f"Error processing {source.name}: {exc}", file=sys.stderr)
            continue
        done.append((source, dest))

    print("---")
    print(f"Complete! Processed {resized} images, copied {copied} images to gallery: {gallery}")
    if failed:
        print(f"{failed} images failed.")
    if resized:
        show_size_comparison(done[:SAMPLE_SIZE])

    print("\nNext steps:")
    print("1. Run 'homesite-build' to regenerate the site")
    print(f"2. Gallery will be available at /photos/{gallery}")
    return resized, copied, failed


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resize and copy JPEG photos into a gallery of the content tree.",
        epilog="Example: homesite-import-photos ~/Photos/vacation-2024 vacation-2024 800 600 75",
    )
    parser.add_argument("source", help="Directory containing JPEG images.")
    parser.add_argument("gallery", help="Gallery name (creates <content>/photos/<gallery>).")
    parser.add_argument("max_width", nargs="?", type=int, default=MAX_WIDTH, help="Maximum width in pixels.")
    parser.add_argument("max_height", nargs="?", type=int, default=MAX_HEIGHT, help="Maximum height in pixels.")
    parser.add_argument("quality", nargs="?", type=int, default=QUALITY, help="JPEG quality 1-100.")
    parser.add_argument("--content", default="content", help="Content directory.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        import_photos(
            Path(args.source),
            args.gallery,
            Path(args.content),
            args.max_width,
            args.max_height,
            args.quality,
            tool=find_image_tool(),
        )
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
