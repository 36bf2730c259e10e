"""Result and record types shared by the extraction, summary and archive layers."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of parsing a page or running the extraction chain."""

    success: bool
    content: Optional[str] = None
    title: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def ok(cls, content: str, title: Optional[str] = None, source: Optional[str] = None) -> "ExtractionResult":
        return cls(success=True, content=content, title=title, source=source)

    @classmethod
    def failure(cls, error: str, kind: str) -> "ExtractionResult":
        return cls(success=False, error=error, error_kind=kind)


@dataclass(frozen=True)
class SummaryResult:
    """Outcome of one summarization request."""

    success: bool
    summary: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    title: Optional[str] = None
    source_url: Optional[str] = None

    @classmethod
    def ok(cls, summary: str, title: Optional[str] = None, source_url: Optional[str] = None) -> "SummaryResult":
        return cls(success=True, summary=summary, title=title, source_url=source_url)

    @classmethod
    def failure(cls, error: str, kind: str) -> "SummaryResult":
        return cls(success=False, error=error, error_kind=kind)

    @property
    def word_count(self) -> int:
        return len((self.summary or "").split())


@dataclass(frozen=True)
class ArchiveEntry:
    id: str
    summary: str
    url: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "summary": self.summary,
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ArchiveEntry":
        """Build an entry from its stored form. Raises KeyError/ValueError on bad data."""
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            id=str(data["id"]),
            summary=data["summary"],
            url=data.get("url", ""),
            timestamp=timestamp,
        )
