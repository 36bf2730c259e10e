"""
Summarizer — the core of bugle.
Builds the editorial prompt from an extracted article or pasted text and
asks the configured LLM for a 60-word summary.
"""

import logging
from typing import Optional

from config import config
from errors import UpstreamAPIError, ValidationError
from fetcher import ArticleExtractor, get_extractor
from llm import LLMProvider, get_provider
from models import SummaryResult

logger = logging.getLogger("bugle.summarizer")

SUMMARY_WORDS = 60

SUMMARY_PROMPT = """You are an expert editor for a classic newspaper. Your task is to create a concise, professional summary of the following {subject}.

Requirements:
- Write exactly {words} words
- Use clear, concise English in a classic newspaper editorial tone
- Focus on the most important facts and key points
- Write in third person
- Maintain journalistic objectivity
- No sensationalism or opinion

{source_section}

Provide only the {words}-word summary, nothing else."""


ARTICLE_SECTION_TEMPLATE = "Article Title: {title}\n\nArticle Content:\n{content}"
TEXT_SECTION_TEMPLATE = "Text Content:\n{content}"

_OVERLOAD_MARKERS = ("overloaded", "503", "529")


def build_article_prompt(title: Optional[str], content: str) -> str:
    return SUMMARY_PROMPT.format(
        subject="article",
        words=SUMMARY_WORDS,
        source_section=ARTICLE_SECTION_TEMPLATE.format(title=title or "Unknown Title", content=content),
    )


def build_text_prompt(text: str) -> str:
    return SUMMARY_PROMPT.format(
        subject="text",
        words=SUMMARY_WORDS,
        source_section=TEXT_SECTION_TEMPLATE.format(content=text),
    )


def is_overload_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _OVERLOAD_MARKERS)


class Summarizer:
    """Summarizes a URL or pasted text on behalf of one caller.

    api_key is the caller's own key; without one the configured default is
    used. Pass provider/extractor to bypass the factories (tests do).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[LLMProvider] = None,
        extractor: Optional[ArticleExtractor] = None,
    ):
        self.api_key = api_key
        self._provider = provider
        self._extractor = extractor

    @property
    def extractor(self) -> ArticleExtractor:
        if self._extractor is None:
            self._extractor = get_extractor()
        return self._extractor

    def _resolve_provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_provider(self.api_key)
        return self._provider

    async def summarize_from_url(self, url: str) -> SummaryResult:
        try:
            provider = self._resolve_provider()
        except ValidationError as e:
            return SummaryResult.failure(str(e), e.kind)

        try:
            extractor = self.extractor
        except ValueError as e:
            logger.error(f"Extractor unavailable: {e}")
            return SummaryResult.failure(f"Article extraction is misconfigured: {e}", ValidationError.kind)

        extraction = await extractor.extract(url)
        if not extraction.success:
            logger.warning(f"Extraction failed for {url}: {extraction.error}")
            return SummaryResult.failure(
                f"Could not read the article. {extraction.error}",
                extraction.error_kind or UpstreamAPIError.kind,
            )

        logger.info(f"Summarizing {url} ({len(extraction.content)} chars via {extraction.source})")
        prompt = build_article_prompt(extraction.title, extraction.content)
        return await self._generate(provider, prompt, title=extraction.title, source_url=url.strip())

    async def summarize_from_text(self, text: str) -> SummaryResult:
        text = (text or "").strip()
        if len(text) < config.min_text_chars:
            return SummaryResult.failure(
                f"Text is too short. Please provide at least {config.min_text_chars} characters.",
                ValidationError.kind,
            )

        try:
            provider = self._resolve_provider()
        except ValidationError as e:
            return SummaryResult.failure(str(e), e.kind)

        prompt = build_text_prompt(text[:config.max_text_chars])
        return await self._generate(provider, prompt)

    async def _generate(
        self,
        provider: LLMProvider,
        prompt: str,
        title: Optional[str] = None,
        source_url: Optional[str] = None,
    ) -> SummaryResult:
        try:
            raw = await provider.complete(
                prompt=prompt,
                max_tokens=config.llm_max_tokens,
                temperature=0.4,
            )
        except Exception as e:
            logger.error(f"Summarizer error: {e}", exc_info=True)
            message = f"Summary generation failed: {e}"
            if is_overload_error(str(e)):
                message += " The AI service is busy right now; try again in a minute."
            return SummaryResult.failure(message, UpstreamAPIError.kind)

        summary = (raw or "").strip()
        if not summary:
            logger.warning("Model returned an empty summary")
            return SummaryResult.failure(
                "Summary generation failed: empty response from the model.",
                UpstreamAPIError.kind,
            )

        return SummaryResult.ok(summary, title=title, source_url=source_url)


async def summarize_from_url(url: str, api_key: Optional[str] = None) -> SummaryResult:
    return await Summarizer(api_key=api_key).summarize_from_url(url)


async def summarize_from_text(text: str, api_key: Optional[str] = None) -> SummaryResult:
    return await Summarizer(api_key=api_key).summarize_from_text(text)
