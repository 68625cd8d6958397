#!/usr/bin/env python3
"""webgrep: extract Apple's system font names from the web and emit Swift enum cases."""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from html.parser import HTMLParser
from http.client import HTTPException
from pathlib import Path
from typing import Callable, FrozenSet, Iterator, List, Optional, Sequence, Set, Tuple, Union
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import regex
from rich.console import Console

logger = logging.getLogger(__name__)

SOURCE_URL = "https://developer.apple.com/fonts/system-fonts/"
DEFAULT_TIMEOUT = 20
UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)
ENTRY_CLASS = "font-item"
PLATFORM_CLASS = "font-platform"
NAME_CLASS = "filter-font-name"
DEFAULT_SUBCOMMAND = "applesystemfonts"
SUBCOMMANDS = (DEFAULT_SUBCOMMAND,)

VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
}
BLOCK_ELEMENTS = {
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt", "fieldset",
    "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section", "table",
    "td", "th", "tr", "ul",
}
RAW_TEXT_ELEMENTS = {"script", "style", "template"}

# Start tags that end an open <p>, and the elements a <p> cannot be closed across.
P_CLOSERS = {
    "address", "article", "aside", "blockquote", "details", "dialog", "div", "dl", "dd", "dt",
    "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "hgroup", "hr", "li", "main", "menu", "nav", "ol", "p", "pre", "section",
    "summary", "table", "ul",
}
P_SCOPE = {"applet", "button", "caption", "html", "marquee", "object", "table", "td", "template", "th"}

# start tag -> (open elements it ends, elements the search stops at)
IMPLIED_END_TAGS = {
    "li": ({"li"}, {"ul", "ol", "menu", "table", "template"}),
    "dt": ({"dt", "dd"}, {"dl", "table", "template"}),
    "dd": ({"dt", "dd"}, {"dl", "table", "template"}),
    "tr": ({"tr"}, {"table", "thead", "tbody", "tfoot", "template"}),
    "td": ({"td", "th"}, {"tr", "table", "template"}),
    "th": ({"td", "th"}, {"tr", "table", "template"}),
    "thead": ({"thead", "tbody", "tfoot"}, {"table", "template"}),
    "tbody": ({"thead", "tbody", "tfoot"}, {"table", "template"}),
    "tfoot": ({"thead", "tbody", "tfoot"}, {"table", "template"}),
    "option": ({"option"}, {"select", "datalist", "optgroup"}),
    "optgroup": ({"optgroup"}, {"select"}),
}

IDENTIFIER_NOISE = regex.compile(r"[\p{White_Space}\p{P}\p{Math}]")


class WebGrepError(Exception):
    pass


class ArgumentError(WebGrepError):
    pass


class FetchError(WebGrepError):
    pass


class ParseError(WebGrepError):
    pass


class WriteError(WebGrepError):
    pass


CATEGORY_ARGUMENTS = ("ios", "macos")


class Category(Enum):
    IOS = "iOS system font"
    MACOS = "macOS system font"

    @classmethod
    def from_argument(cls, argument: str) -> "Category":
        if argument not in CATEGORY_ARGUMENTS:
            raise ArgumentError(f"unknown platform {argument!r}, expected one of: {', '.join(CATEGORY_ARGUMENTS)}")
        return cls[argument.upper()]


@dataclass(frozen=True)
class Entry:
    display_name: str
    platform_tags: FrozenSet[str]


@dataclass(eq=False)
class Node:
    tag: str
    classes: Set[str]
    line: int = 0
    children: List[Union["Node", str]] = field(default_factory=list)


class ClassIndex(HTMLParser):
    """Light element tree that answers the two questions the extractor asks:
    which elements are entry candidates, and what text sits in a classed region
    below one of them.
    """

    def __init__(self, candidate_class: str = ENTRY_CLASS) -> None:
        super().__init__(convert_charrefs=True)
        self.candidate_class = candidate_class
        self.root = Node(tag="#document", classes=set())
        self._open: List[Node] = [self.root]
        self._candidates: List[Node] = []

    @classmethod
    def parse(cls, html_text: str, candidate_class: str = ENTRY_CLASS) -> "ClassIndex":
        index = cls(candidate_class)
        try:
            index.feed(html_text)
            index.close()
        except (AssertionError, TypeError, ValueError) as exc:
            raise ParseError(f"malformed HTML: {exc}") from exc
        return index

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        self._close_implied(tag)
        attr_map = {k.lower(): (v or "") for k, v in attrs}
        classes = {c for c in attr_map.get("class", "").split() if c}
        node = Node(tag=tag, classes=classes, line=self.getpos()[0])
        self._open[-1].children.append(node)
        if self.candidate_class in classes:
            self._candidates.append(node)
        if tag not in VOID_ELEMENTS:
            self._open.append(node)

    def handle_endtag(self, tag: str) -> None:
        # Closes the nearest open element of that name plus anything left open inside it.
        self._close_nearest({tag}, set())

    def handle_data(self, data: str) -> None:
        if self._open[-1].tag in RAW_TEXT_ELEMENTS:
            return
        self._open[-1].children.append(data)

    def _close_implied(self, tag: str) -> None:
        # <li>, <p>, <dd>, <tr> and friends may omit their end tag.
        if tag in P_CLOSERS:
            self._close_nearest({"p"}, P_SCOPE)
        if tag in IMPLIED_END_TAGS:
            closes, scope = IMPLIED_END_TAGS[tag]
            self._close_nearest(closes, scope)

    def _close_nearest(self, tags: Set[str], scope: Set[str]) -> None:
        for depth in range(len(self._open) - 1, 0, -1):
            open_tag = self._open[depth].tag
            if open_tag in tags:
                del self._open[depth:]
                return
            if open_tag in scope:
                return

    def candidates(self) -> List[Node]:
        return list(self._candidates)

    def region_text(self, candidate: Node, region_class: str) -> str:
        texts = [node_text(node) for node in iter_descendants(candidate) if region_class in node.classes]
        return " ".join(text for text in texts if text)


def iter_descendants(node: Node) -> Iterator[Node]:
    for child in node.children:
        if isinstance(child, Node):
            yield child
            yield from iter_descendants(child)


def node_text(node: Node) -> str:
    parts: List[str] = []
    _collect_text(node, parts)
    return " ".join("".join(parts).split())


def _collect_text(node: Node, parts: List[str]) -> None:
    for child in node.children:
        if isinstance(child, str):
            parts.append(child)
        elif child.tag == "br" or child.tag in BLOCK_ELEMENTS:
            parts.append(" ")
            _collect_text(child, parts)
            parts.append(" ")
        else:
            _collect_text(child, parts)


def platform_tags(platform_text: str) -> FrozenSet[str]:
    return frozenset(category.value for category in Category if category.value in platform_text)


def extract_entries(index: ClassIndex, category: Category) -> List[Entry]:
    entries: List[Entry] = []
    for candidate in index.candidates():
        tags = platform_tags(index.region_text(candidate, PLATFORM_CLASS))
        if category.value not in tags:
            continue
        entries.append(Entry(display_name=index.region_text(candidate, NAME_CLASS), platform_tags=tags))
    return entries


def as_identifier(name: str) -> str:
    """Strip whitespace, punctuation and math symbols, then lower-case the first character only.

    "SF Pro" becomes "sFPro", not "sfPro". Math symbols are the Unicode ``Math``
    property, so ``^`` and ``′`` go too.
    """
    stripped = IDENTIFIER_NOISE.sub("", name)
    return stripped[:1].lower() + stripped[1:]


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S +0000")


def render_code(
    names: Sequence[str],
    category: Category,
    url: str = SOURCE_URL,
    now: Optional[datetime] = None,
) -> str:
    stamp = format_timestamp(now or datetime.now(timezone.utc))
    banner = [
        f"// Generated: For {category.value} on {stamp}, {len(names)} fonts",
        f"// Extracted from {url}",
    ]
    cases = [f'case {as_identifier(name)} = "{name}"' for name in names]
    return "\n".join(banner + cases + banner) + "\n"


def fetch_text(url: str, timeout: int = DEFAULT_TIMEOUT) -> str:
    req = Request(
        url,
        headers={
            "User-Agent": UA,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        },
    )
    try:
        with urlopen(req, timeout=timeout) as res:
            charset = res.headers.get_content_charset() or "utf-8"
            body = res.read()
    except (OSError, HTTPException, ValueError) as exc:
        raise FetchError(f"could not fetch {url}: {exc}") from exc
    logger.debug("fetched %d bytes from %s", len(body), url)
    try:
        return body.decode(charset, errors="replace")
    except LookupError:
        logger.warning("unknown charset %r from %s, decoding as utf-8", charset, url)
        return body.decode("utf-8", errors="replace")


def write_output(text: str, path: Path) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise WriteError(f"could not write {path}: {exc}") from exc


class NullReporter:
    def stage(self, message: str) -> None:
        pass

    @contextmanager
    def waiting(self, message: str) -> Iterator[None]:
        yield


class ConsoleReporter:
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def stage(self, message: str) -> None:
        self.console.print(message, style="black on cyan", markup=False, soft_wrap=True)

    @contextmanager
    def waiting(self, message: str) -> Iterator[None]:
        with self.console.status(message, spinner="dots"):
            yield


Reporter = Union[NullReporter, ConsoleReporter]


class SystemFontsPipeline:
    """Fetch, parse, filter and render, in that order, reporting each stage."""

    def __init__(
        self,
        fetch: Optional[Callable[[str], str]] = None,
        reporter: Optional[Reporter] = None,
        url: str = SOURCE_URL,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.fetch = fetch or fetch_text
        self.reporter = reporter or NullReporter()
        self.url = url
        self.clock = clock

    def names(self, category: Category) -> List[str]:
        self.reporter.stage(f"Visiting {self.url}")
        with self.reporter.waiting("Downloading..."):
            html_text = self.fetch(self.url)
        self.reporter.stage("Parse...")
        index = ClassIndex.parse(html_text)
        self.reporter.stage("Processing...")
        entries = extract_entries(index, category)
        logger.debug("%d of %d candidates matched %s", len(entries), len(index.candidates()), category.value)
        return [entry.display_name for entry in entries]

    def run(self, category: Category) -> str:
        names = self.names(category)
        return render_code(names, category, url=self.url, now=self.clock())


def classify_fetch_error(exc: Exception) -> Tuple[str, List[str]]:
    cause = exc.__cause__ if isinstance(exc, FetchError) and exc.__cause__ is not None else exc
    if isinstance(cause, ParseError):
        return (
            "The page came back, but it is not HTML we can read.",
            [
                "Apple may have changed the layout of the system fonts page.",
                "Open the page in a browser and check that it still lists fonts.",
            ],
        )
    if isinstance(cause, HTTPError):
        if cause.code == 403:
            return (
                "Apple refused the request (HTTP 403).",
                [
                    "The page is blocking automated fetches from this network.",
                    "Retry later in case the block is temporary.",
                ],
            )
        if cause.code == 429:
            return (
                "Too many requests, too fast (HTTP 429).",
                ["Wait a few minutes, then run again."],
            )
        if cause.code >= 500:
            return (
                f"Apple's server is having a moment (HTTP {cause.code}).",
                ["This is likely temporary on their side; retry once it settles down."],
            )
        return (f"Request failed (HTTP {cause.code}).", ["Check that the page still exists at that address."])

    if isinstance(cause, URLError):
        return (
            "Couldn't reach developer.apple.com from here.",
            [
                "DNS/network lookup failed or the connection was refused.",
                "Retry once network access is available.",
            ],
        )

    if isinstance(cause, WriteError):
        return ("Couldn't write the output file.", ["Check the path and that its directory is writable."])

    return (f"Something unexpected went wrong: {cause}", ["Retry and confirm the page is publicly reachable."])


def report_error(exc: WebGrepError) -> None:
    summary, hints = classify_fetch_error(exc)
    print(f"error: {summary}", file=sys.stderr)
    for hint in hints:
        print(f"  - {hint}", file=sys.stderr)
    print(f"  detail: {exc}", file=sys.stderr)


def cmd_apple_system_fonts(args: argparse.Namespace) -> int:
    category = Category.from_argument(args.ostype)
    reporter: Reporter = ConsoleReporter() if args.verbose else NullReporter()
    code = SystemFontsPipeline(fetch=fetch_text, reporter=reporter).run(category)
    if args.output:
        write_output(code, Path(args.output))
    else:
        sys.stdout.write(code)
        sys.stdout.flush()
    done = format_timestamp(datetime.now(timezone.utc))
    logger.debug("Done: %s", done)
    reporter.stage(f"Done: {done}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="webgrep", description="A utility for extracting stuff from the web.")
    sub = ap.add_subparsers(dest="command", metavar="<subcommand>")
    sub.required = True

    fonts = sub.add_parser(
        "applesystemfonts",
        help="Extract Apple system font names",
        description=f"Extract system fonts from {SOURCE_URL}.",
    )
    fonts.add_argument("ostype", choices=CATEGORY_ARGUMENTS, help="Enter either ios or macos")
    fonts.add_argument("-v", "--verbose", action="store_true", help="Print status updates while running.")
    fonts.add_argument("-o", "--output", help="Write the generated code to this file instead of stdout")
    fonts.set_defaults(handler=cmd_apple_system_fonts)
    return ap


def with_default_subcommand(argv: Sequence[str]) -> List[str]:
    for tok in argv:
        if tok in ("-h", "--help"):
            return list(argv)
        if not tok.startswith("-"):
            # Only the first positional can name a subcommand.
            return list(argv) if tok in SUBCOMMANDS else [DEFAULT_SUBCOMMAND, *argv]
    return [DEFAULT_SUBCOMMAND, *argv]


def main(argv: Optional[Sequence[str]] = None) -> int:
    raw = sys.argv[1:] if argv is None else argv
    args = build_parser().parse_args(with_default_subcommand(raw))

    try:
        return args.handler(args)
    except WebGrepError as exc:
        report_error(exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
