"""
Content parser — pulls a title and the main article text out of raw HTML.

The heuristics are plain data (ParserSettings) so they can be tuned or
swapped without touching the search logic:
  - titles: first matcher whose text is long enough and not an error page
  - content: longest matching element wins, paragraph join as last resort
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from bs4 import BeautifulSoup, Comment

from config import config
from errors import ContentError
from models import ExtractionResult

logger = logging.getLogger("bugle.content_parser")


@dataclass(frozen=True)
class Matcher:
    selector: str
    min_length: int


def _title_matchers(min_length: int = 10) -> tuple[Matcher, ...]:
    selectors = (
        "h1",
        ".title",
        ".headline",
        ".article-title",
        ".post-title",
        '[class*="headline"]',
        '[class*="title"]',
        "title",
    )
    return tuple(Matcher(s, min_length) for s in selectors)


def _content_matchers(min_length: int = 500) -> tuple[Matcher, ...]:
    selectors = (
        "article",
        '[role="main"]',
        ".content",
        ".article-content",
        ".post-content",
        ".entry-content",
        ".story-content",
        "main",
        ".story-body",
        ".article-body",
        ".post-body",
        ".content-body",
        '[class*="content"]',
        '[class*="article"]',
        '[class*="story"]',
        '[class*="post-text"]',
        '[class*="body-text"]',
    )
    return tuple(Matcher(s, min_length) for s in selectors)


BOILERPLATE_SELECTORS = (
    "script, style, noscript, iframe, nav, header, footer, aside, "
    ".ad, .ads, .advert, .advertisement, [class*='advert'], [id^='ad-'], "
    "[class*='banner'], .social-share, .comments, #comments, "
    ".sidebar, .related-articles, .navigation, "
    ".popup, .modal, .overlay, .cookie-notice"
)

NESTED_BOILERPLATE_SELECTORS = (
    "script, style, .ad, .advertisement, .social-share, "
    ".comments, nav, aside, .sidebar, [class*='advert'], "
    ".author-bio, .related-posts, .newsletter-signup"
)

_WHITESPACE_RE = re.compile(r"\s+")
_SYMBOL_RE = re.compile(r"[^\w\s.,!?;:()\"'-]")

BLOCKED_MESSAGE = "Access denied by the website. Try sending the article text instead."
TOO_SHORT_MESSAGE = (
    "Could not extract meaningful content (content too short). The article might be "
    "behind a paywall, loaded dynamically with JavaScript, or protected from automated access."
)


@dataclass(frozen=True)
class ParserSettings:
    title_matchers: tuple[Matcher, ...] = field(default_factory=_title_matchers)
    content_matchers: tuple[Matcher, ...] = field(default_factory=_content_matchers)
    block_markers: tuple[str, ...] = ("Access Denied", "403 Forbidden", "Blocked")
    title_error_markers: tuple[str, ...] = ("404", "error", "access denied")
    boilerplate_selectors: str = BOILERPLATE_SELECTORS
    nested_boilerplate_selectors: str = NESTED_BOILERPLATE_SELECTORS
    # Stop scanning further selectors once a candidate is this long
    good_enough_length: int = 1000
    # Below this the paragraph join is tried
    fallback_threshold: int = 500
    paragraph_min_length: int = 50
    paragraph_stopwords: tuple[str, ...] = ("cookie", "subscribe")
    strip_symbols: bool = True
    min_content_length: int = 200
    max_content_length: int = 12000

    @classmethod
    def from_config(cls) -> "ParserSettings":
        return cls(
            min_content_length=config.min_content_chars,
            max_content_length=config.max_content_chars,
        )


def normalize_text(text: str, strip_symbols: bool = False) -> str:
    """Collapse whitespace runs, optionally blanking out non-standard punctuation."""
    text = _WHITESPACE_RE.sub(" ", text)
    if strip_symbols:
        text = _WHITESPACE_RE.sub(" ", _SYMBOL_RE.sub(" ", text))
    return text.strip()


class ContentParser:
    def __init__(self, settings: Optional[ParserSettings] = None):
        self.settings = settings or ParserSettings.from_config()

    def parse(self, html: str, source_url: str = "") -> ExtractionResult:
        s = self.settings

        if not html or not html.strip():
            return ExtractionResult.failure("Empty page returned.", ContentError.kind)

        for marker in s.block_markers:
            if marker in html:
                logger.info(f"Block marker {marker!r} found in page for {source_url}")
                return ExtractionResult.failure(BLOCKED_MESSAGE, ContentError.kind)

        soup = BeautifulSoup(html, "html.parser")
        self._strip_boilerplate(soup)

        title = self.find_title(soup)
        content = self.find_content(soup)

        if len(content) < s.fallback_threshold:
            paragraphs = self.join_paragraphs(soup)
            if len(paragraphs) > len(content):
                logger.debug(f"Using paragraph fallback for {source_url} ({len(paragraphs)} chars)")
                content = paragraphs

        content = normalize_text(content, strip_symbols=s.strip_symbols)

        if len(content) < s.min_content_length:
            logger.info(f"Content too short for {source_url}: {len(content)} chars")
            return ExtractionResult.failure(TOO_SHORT_MESSAGE, ContentError.kind)

        return ExtractionResult.ok(content[:s.max_content_length], title=title)

    def _strip_boilerplate(self, soup: BeautifulSoup):
        for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
            comment.extract()
        for element in soup.select(self.settings.boilerplate_selectors):
            element.decompose()

    def find_title(self, soup: BeautifulSoup) -> Optional[str]:
        """Return the first acceptable title candidate, or None."""
        for matcher in self.settings.title_matchers:
            element = soup.select_one(matcher.selector)
            if element is None:
                continue
            text = normalize_text(element.get_text(" "))
            lowered = text.lower()
            if len(text) > matcher.min_length and not any(
                marker in lowered for marker in self.settings.title_error_markers
            ):
                return text
        return None

    def find_content(self, soup: BeautifulSoup) -> str:
        """Return the longest candidate block; ties keep the first seen."""
        best = ""
        for matcher in self.settings.content_matchers:
            for element in soup.select(matcher.selector):
                if element.decomposed:
                    continue
                for nested in element.select(self.settings.nested_boilerplate_selectors):
                    nested.decompose()
                text = element.get_text(" ", strip=True)
                if len(text) > len(best) and len(text) > matcher.min_length:
                    best = text
                    logger.debug(f"Better content via {matcher.selector}: {len(best)} chars")
            if len(best) > self.settings.good_enough_length:
                break
        return best

    def join_paragraphs(self, soup: BeautifulSoup) -> str:
        s = self.settings
        kept = []
        for paragraph in soup.find_all("p"):
            text = paragraph.get_text(" ", strip=True)
            if len(text) > s.paragraph_min_length and not any(word in text for word in s.paragraph_stopwords):
                kept.append(text)
        return " ".join(kept)


_default_parser: Optional[ContentParser] = None


def get_parser() -> ContentParser:
    """Singleton factory — returns a parser built from the configured bounds."""
    global _default_parser
    if _default_parser is None:
        _default_parser = ContentParser()
    return _default_parser


def parse(html: str, source_url: str = "") -> ExtractionResult:
    return get_parser().parse(html, source_url)
