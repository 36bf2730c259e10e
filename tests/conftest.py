"""Shared fixtures and HTML builders for the bugle test suite."""

import pytest

from content_parser import ContentParser, ParserSettings
from store import Store


def make_text(length: int, word: str = "news") -> str:
    """Plain words, single-spaced, exactly `length` characters long."""
    return (f"{word} " * length)[: length - 1] + "z"


def article_page(body: str, title: str = "Markets Rally After Central Bank Decision") -> str:
    return (
        "<html><head><title>Example News</title></head>"
        f"<body><h1>{title}</h1>{body}</body></html>"
    )


@pytest.fixture
def parser():
    return ContentParser(ParserSettings())


@pytest.fixture
def good_page():
    return article_page(f"<article><p>{make_text(900)}</p></article>")


@pytest.fixture
def store(tmp_path):
    return Store(str(tmp_path / "bugle-test.db"))
