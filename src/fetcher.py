"""
Fetcher — turns an article URL into extracted text.

Tries an ordered chain of fetch strategies (public CORS proxies, a direct
fetch, trafilatura's downloader) one at a time and returns the first one
whose page parses into usable content.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional
from urllib.parse import quote, urlparse

import aiohttp
import trafilatura

from config import config
from content_parser import ContentParser, get_parser
from errors import ContentError, NetworkError, SummarizerError, ValidationError
from models import ExtractionResult

logger = logging.getLogger("bugle.fetcher")

INVALID_URL_MESSAGE = "Invalid URL format. Please check the URL and try again."
EXTRACTION_FAILED_MESSAGE = (
    "Unable to extract article content. The website may be blocking automated access, "
    "require a login or paywall, or load its content dynamically. "
    "Try sending the article text instead."
)

_http_session: aiohttp.ClientSession | None = None
_http_session_lock = asyncio.Lock()


async def get_http_session() -> aiohttp.ClientSession:
    """Return a shared aiohttp session for all outbound requests."""
    global _http_session

    if _http_session is not None and not _http_session.closed:
        return _http_session

    async with _http_session_lock:
        if _http_session is None or _http_session.closed:
            timeout = aiohttp.ClientTimeout(total=config.request_timeout)
            connector = aiohttp.TCPConnector(limit=20, ttl_dns_cache=300)
            _http_session = aiohttp.ClientSession(timeout=timeout, connector=connector)
            logger.info("Created shared HTTP session")

    return _http_session


async def close_http_session():
    """Close the shared aiohttp session on shutdown."""
    global _http_session

    if _http_session is None:
        return

    async with _http_session_lock:
        if _http_session is not None and not _http_session.closed:
            await _http_session.close()
            logger.info("Closed shared HTTP session")
        _http_session = None


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    # Hosts the resolver would refuse, e.g. empty labels in "a..b"
    try:
        parsed.hostname.encode("idna")
    except UnicodeError:
        return False
    return True


class FetchStrategy(ABC):
    name: str

    @abstractmethod
    async def fetch(self, url: str) -> str:
        """Return the page HTML for url, or raise NetworkError/ContentError."""
        ...


class HTTPStrategy(FetchStrategy):
    """GET through a URL template; the body is raw HTML or a JSON envelope."""

    def __init__(
        self,
        name: str,
        template: str,
        *,
        encode: bool = False,
        json_field: Optional[str] = None,
        headers: Optional[dict] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.name = name
        self.template = template
        self.encode = encode
        self.json_field = json_field
        self.headers = headers or {}
        self._session = session

    def build_url(self, url: str) -> str:
        target = quote(url, safe="") if self.encode else url
        return self.template.format(url=target)

    async def fetch(self, url: str) -> str:
        session = self._session or await get_http_session()
        async with session.get(self.build_url(url), headers=self.headers) as resp:
            if not 200 <= resp.status < 300:
                raise NetworkError(f"{self.name} returned status {resp.status}")

            if self.json_field is None:
                return await resp.text(errors="replace")

            try:
                data = await resp.json(content_type=None)
            except ValueError as e:
                raise NetworkError(f"{self.name} returned malformed JSON: {e}") from e

            html = data.get(self.json_field) if isinstance(data, dict) else None
            if not isinstance(html, str) or not html:
                raise ContentError(f"{self.name} returned no '{self.json_field}' in its envelope")
            return html

    def __repr__(self):
        return f"HTTPStrategy({self.name!r})"


class TrafilaturaStrategy(FetchStrategy):
    """Download with trafilatura's own fetcher (its headers and redirect handling)."""

    name = "trafilatura"

    async def fetch(self, url: str) -> str:
        # Run trafilatura in a thread (it's synchronous)
        loop = asyncio.get_running_loop()
        downloaded = await loop.run_in_executor(None, _download_with_trafilatura, url)
        if not downloaded:
            raise NetworkError("trafilatura could not download the page")
        return downloaded

    def __repr__(self):
        return "TrafilaturaStrategy()"


def _download_with_trafilatura(url: str) -> str:
    """Synchronous download — runs in thread pool."""
    try:
        return trafilatura.fetch_url(url) or ""
    except Exception as e:
        logger.debug(f"trafilatura error: {e}")
        return ""


def build_strategy(name: str) -> FetchStrategy:
    browser_headers = {"User-Agent": config.user_agent}
    if name == "allorigins":
        return HTTPStrategy(
            "allorigins",
            "https://api.allorigins.win/get?url={url}",
            encode=True,
            json_field="contents",
            headers=browser_headers,
        )
    if name == "corsanywhere":
        return HTTPStrategy(
            "corsanywhere",
            "https://cors-anywhere.herokuapp.com/{url}",
            headers={"X-Requested-With": "XMLHttpRequest", **browser_headers},
        )
    if name == "thingproxy":
        return HTTPStrategy("thingproxy", "https://thingproxy.freeboard.io/fetch/{url}")
    if name == "direct":
        return HTTPStrategy("direct", "{url}", headers=browser_headers)
    if name == "corsproxy":
        return HTTPStrategy("corsproxy", "https://corsproxy.io/?{url}", encode=True)
    if name == "trafilatura":
        return TrafilaturaStrategy()
    raise ValueError(f"Unknown extraction strategy: {name!r}")


def build_strategies(names: list[str]) -> list[FetchStrategy]:
    return [build_strategy(name) for name in names]


class ArticleExtractor:
    def __init__(
        self,
        strategies: Optional[list[FetchStrategy]] = None,
        parser: Optional[ContentParser] = None,
        min_usable_chars: Optional[int] = None,
        strategy_timeout: Optional[float] = None,
    ):
        self.strategies = strategies if strategies is not None else build_strategies(config.extraction_strategies)
        self.parser = parser or get_parser()
        self.min_usable_chars = min_usable_chars if min_usable_chars is not None else config.min_usable_chars
        self.strategy_timeout = strategy_timeout if strategy_timeout is not None else config.strategy_timeout

    async def extract(self, url: str) -> ExtractionResult:
        """Run the strategy chain, returning the first usable result."""
        if not is_valid_url(url):
            return ExtractionResult.failure(INVALID_URL_MESSAGE, ValidationError.kind)

        url = url.strip()
        total = len(self.strategies)
        logger.info(f"Starting extraction for {url} ({total} strategies)")

        for index, strategy in enumerate(self.strategies, start=1):
            logger.info(f"Trying {strategy.name} ({index}/{total}) for {url}")
            try:
                html = await asyncio.wait_for(strategy.fetch(url), timeout=self.strategy_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"{strategy.name} timed out after {self.strategy_timeout}s")
                continue
            except (SummarizerError, aiohttp.ClientError) as e:
                logger.warning(f"{strategy.name} failed: {e}")
                continue
            except Exception as e:
                logger.warning(f"{strategy.name} failed unexpectedly: {e!r}")
                continue

            result = self.parser.parse(html, url)
            if not result.success:
                logger.info(f"{strategy.name} page rejected: {result.error}")
                continue
            if len(result.content or "") <= self.min_usable_chars:
                logger.info(f"{strategy.name} returned insufficient content ({len(result.content or '')} chars)")
                continue

            logger.info(f"Extracted {len(result.content)} chars via {strategy.name}")
            return replace(result, source=strategy.name)

        logger.error(f"All extraction strategies failed for {url}")
        return ExtractionResult.failure(EXTRACTION_FAILED_MESSAGE, NetworkError.kind)


_extractor_instance: Optional[ArticleExtractor] = None


def get_extractor() -> ArticleExtractor:
    """Singleton factory — returns an extractor over the configured strategies."""
    global _extractor_instance
    if _extractor_instance is None:
        _extractor_instance = ArticleExtractor()
        names = ", ".join(s.name for s in _extractor_instance.strategies)
        logger.info(f"Extraction strategies: {names}")
    return _extractor_instance


async def extract_article(url: str) -> ExtractionResult:
    return await get_extractor().extract(url)
