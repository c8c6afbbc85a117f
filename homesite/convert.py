from __future__ import annotations

import html
import itertools
import re
import secrets
import sys
from pathlib import Path

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

ASSETS_DIR = "assets"
HIGHLIGHT_CSS_CLASS = "codehilite"

FENCE_RE = re.compile(r"```([\s\S]*?)```")
FENCE_LANG_RE = re.compile(r"^([\w+#.-]+)[ \t]*\n")
INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")
IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
HEADING_RE = re.compile(r"^(#{1,4}) (.+)$", re.MULTILINE)
LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
BOLD_RES = (re.compile(r"\*\*(.+?)\*\*"), re.compile(r"__(.+?)__"))
ITALIC_RES = (re.compile(r"\*(.+?)\*"), re.compile(r"_(.+?)_"))
BLOCKQUOTE_RE = re.compile(r"^> (.+)$", re.MULTILINE)
UL_ITEM_RE = re.compile(r"^- (.+)$", re.MULTILINE)
OL_ITEM_RE = re.compile(r"^(\d+)\. (.+)$", re.MULTILINE)

# Placeholders are framed by STX/ETX so no markdown rule can match inside them.
TOKEN_RE = re.compile(r"\x02[A-Z]+\d+x[0-9a-f]+\x03")
BLOCK_TOKEN_RE = re.compile(r"\x02(?:CODE|HTML|IMG)\d+x[0-9a-f]+\x03")

UNWRAP_RES = (
    re.compile(r"^<p>(<h([1-6])>.*</h\2>)</p>$"),
    re.compile(r"^<p>(<blockquote-line>.*</blockquote-line>)</p>$"),
    re.compile(r"^<p>(<list-item [^>]*>.*</list-item>)</p>$"),
    re.compile(r"^<p>\s*(" + BLOCK_TOKEN_RE.pattern + r")\s*</p>$"),
)
BLOCKQUOTE_LINE_RE = re.compile(r"^<blockquote-line>(.*)</blockquote-line>$")
LIST_ITEM_RE = re.compile(r'^<list-item kind="(?P<kind>ul|ol)" n="(?P<n>\d+)">(?P<text>.*)</list-item>$')
EMPTY_P_RE = re.compile(r"<p>\s*</p>")


def relative_root(output_path: str | Path, output_dir: str | Path | None = None) -> str:
    """Return the ``../`` prefix leading from a page back to the output root.

    Without ``output_dir`` the first segment of ``output_path`` is taken
    as the output root, so ``dist/updates/post.html`` gives ``../``.
    """
    path = Path(output_path)
    parts = path.parts[1:]
    if output_dir is not None:
        try:
            parts = path.relative_to(output_dir).parts
        except ValueError:
            pass
    return "../" * max(len(parts) - 1, 0)


def output_root(output_path: str | Path, output_dir: str | Path | None = None) -> Path:
    if output_dir is not None:
        return Path(output_dir)
    parts = Path(output_path).parts
    return Path(parts[0]) if len(parts) > 1 else Path(".")


def highlight_code(code: str, lang: str) -> str | None:
    try:
        lexer = get_lexer_by_name(lang, stripall=False)
    except ClassNotFound:
        return None
    return pygments_highlight(code, lexer, HtmlFormatter(cssclass=HIGHLIGHT_CSS_CLASS))


def highlight_css() -> str:
    return HtmlFormatter(cssclass=HIGHLIGHT_CSS_CLASS).get_style_defs(f".{HIGHLIGHT_CSS_CLASS}")


def _merge_blockquotes(lines: list[str]) -> list[str]:
    out: list[str] = []
    quote: list[str] = []
    for line in lines:
        match = BLOCKQUOTE_LINE_RE.match(line)
        if match:
            quote.append(match.group(1))
            continue
        if quote:
            out.append("<blockquote>" + "<br>".join(quote) + "</blockquote>")
            quote = []
        out.append(line)
    if quote:
        out.append("<blockquote>" + "<br>".join(quote) + "</blockquote>")
    return out


def _close_list(kind: str, start: int, items: list[str]) -> str:
    body = "".join(f"<li>{item}</li>" for item in items)
    if kind == "ol":
        attrs = f' start="{start}"' if start != 1 else ""
        return f"<ol{attrs}>{body}</ol>"
    return f"<ul>{body}</ul>"


def _merge_lists(lines: list[str]) -> list[str]:
    out: list[str] = []
    items: list[str] = []
    kind = ""
    start = 1
    for line in lines:
        match = LIST_ITEM_RE.match(line)
        if match:
            if items and match.group("kind") != kind:
                out.append(_close_list(kind, start, items))
                items = []
            if not items:
                kind = match.group("kind")
                start = int(match.group("n"))
            items.append(match.group("text"))
            continue
        if items:
            out.append(_close_list(kind, start, items))
            items = []
        out.append(line)
    if items:
        out.append(_close_list(kind, start, items))
    return out


def convert_markdown(
    text: str,
    source_dir: str | Path,
    output_path: str | Path,
    output_dir: str | Path | None = None,
    highlight: bool = False,
) -> tuple[str, list[tuple[Path, Path, str]]]:
    """Convert one markdown document to an HTML fragment.

    Returns the HTML and the ``(source, dest, relative_path)`` copies for
    every local image the document references. Nothing is written here.
    """
    source_dir = Path(source_dir)
    blocks: dict[str, str] = {}
    counter = itertools.count()
    assets: list[tuple[Path, Path, str]] = []
    root_prefix = relative_root(output_path, output_dir)
    assets_dir = output_root(output_path, output_dir) / ASSETS_DIR

    def hold(kind: str, value: str) -> str:
        token = f"\x02{kind}{next(counter)}x{secrets.token_hex(4)}\x03"
        blocks[token] = value
        return token

    def fence_repl(match: re.Match) -> str:
        content = match.group(1)
        lang_match = FENCE_LANG_RE.match(content)
        if not lang_match:
            return hold("CODE", f"<pre><code>{content}</code></pre>")
        lang = lang_match.group(1)
        code = content[lang_match.end() :]
        if highlight:
            highlighted = highlight_code(code, lang)
            if highlighted is not None:
                return hold("CODE", highlighted)
        return hold("CODE", f'<pre><code class="language-{html.escape(lang)}">{code}</code></pre>')

    def inline_code_repl(match: re.Match) -> str:
        return hold("INLINE", f"<code>{match.group(1)}</code>")

    def embed_html(rel: str) -> str:
        path = source_dir / rel
        if not path.is_file():
            print(f"Warning: HTML file not found: {path}", file=sys.stderr)
            return f"<!-- Error: HTML file not found: {rel} -->"
        try:
            return hold("HTML", path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            print(f"Warning: Could not read HTML file {path}: {exc}", file=sys.stderr)
            return f"<!-- Error: Could not include HTML file: {rel} -->"

    def image_repl(match: re.Match) -> str:
        alt = html.escape(match.group(1))
        src = re.sub(r"[\"']", "", match.group(2)).strip()
        if not src.startswith("./"):
            return hold("IMG", f'<img src="{src}" alt="{alt}">')
        rel = src[2:]
        if Path(rel).suffix.lower() == ".html":
            return embed_html(rel)
        name = Path(rel).name
        relative_path = f"{root_prefix}{ASSETS_DIR}/{name}"
        assets.append((source_dir / rel, assets_dir / name, relative_path))
        return hold("IMG", f'<img src="{relative_path}" alt="{alt}">')

    def heading_repl(match: re.Match) -> str:
        level = len(match.group(1))
        return f"<h{level}>{match.group(2)}</h{level}>"

    def link_repl(match: re.Match) -> str:
        url = html.escape(match.group(2).strip())
        return hold("LINK", f'<a href="{url}" target="_blank">') + f"{match.group(1)}</a>"

    result = text.replace("\r\n", "\n").replace("\r", "\n")
    result = FENCE_RE.sub(fence_repl, result)
    result = INLINE_CODE_RE.sub(inline_code_repl, result)
    result = IMAGE_RE.sub(image_repl, result)
    result = HEADING_RE.sub(heading_repl, result)
    result = LINK_RE.sub(link_repl, result)
    for pattern in BOLD_RES:
        result = pattern.sub(r"<strong>\1</strong>", result)
    for pattern in ITALIC_RES:
        result = pattern.sub(r"<em>\1</em>", result)
    result = BLOCKQUOTE_RE.sub(r"<blockquote-line>\1</blockquote-line>", result)
    result = UL_ITEM_RE.sub(r'<list-item kind="ul" n="1">\1</list-item>', result)
    result = OL_ITEM_RE.sub(r'<list-item kind="ol" n="\1">\2</list-item>', result)

    lines = []
    for line in result.split("\n"):
        if not line.strip():
            lines.append("")
            continue
        wrapped = f"<p>{line}</p>"
        for pattern in UNWRAP_RES:
            wrapped = pattern.sub(r"\1", wrapped)
        lines.append(wrapped)

    lines = _merge_blockquotes(lines)
    lines = _merge_lists(lines)
    result = EMPTY_P_RE.sub("", "\n".join(lines))

    # Held values may themselves contain tokens (inline code in alt text).
    for _ in range(len(blocks) + 1):
        if not TOKEN_RE.search(result):
            break
        result = TOKEN_RE.sub(lambda m: blocks.get(m.group(0), ""), result)
    return result, assets
