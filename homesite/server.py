from __future__ import annotations

import argparse
import functools
import http.server
import posixpath
import socketserver
import sys
import urllib.parse
from pathlib import Path

PORT = 3000


def resolve_request_path(root: Path, url_path: str) -> Path | None:
    """Map a request path onto a file in the built site, or None for a 404.

    ``/`` and paths ending in ``/`` serve their ``index.html``; extensionless
    paths fall back to ``<path>/index.html`` and then ``<path>.html``.
    """
    path = urllib.parse.unquote(urllib.parse.urlsplit(url_path).path)
    parts = [part for part in posixpath.normpath(path).split("/") if part not in ("", ".", "..")]
    target = root.joinpath(*parts)

    if path.endswith("/") or not parts:
        candidates = [target / "index.html"]
    elif posixpath.splitext(parts[-1])[1]:
        candidates = [target]
    else:
        candidates = [target / "index.html", target.with_name(parts[-1] + ".html")]

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


class SiteRequestHandler(http.server.SimpleHTTPRequestHandler):
    def translate_path(self, path: str) -> str:
        resolved = resolve_request_path(Path(self.directory), path)
        if resolved is None:
            # The base handler answers 404 when the file cannot be opened.
            return str(Path(self.directory) / ".not-found" / "404")
        return str(resolved)

    def log_message(self, format: str, *args: object) -> None:
        print(f"{self.address_string()} - {format % args}", file=sys.stderr)


class ThreadingServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def serve(output_dir: Path, port: int = PORT) -> None:
    if not output_dir.is_dir():
        print(f"Output directory not found: {output_dir}. Run homesite-build first.", file=sys.stderr)
        sys.exit(1)
    handler = functools.partial(SiteRequestHandler, directory=str(output_dir))
    with ThreadingServer(("", port), handler) as httpd:
        print(f"Server running at http://localhost:{port}")
        print(f"Serving files from: {output_dir}")
        print("Press Ctrl+C to stop")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nStopped.")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the generated site locally.")
    parser.add_argument("--output", default="dist", help="Directory holding the built site.")
    parser.add_argument("--port", type=int, default=PORT, help="Port to listen on.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    serve(Path(args.output), args.port)


if __name__ == "__main__":
    main()
