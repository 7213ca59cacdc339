from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class ExtractionRule:
    """
    CSS selectors describing one catalog entry on a page.
    - item: selector for the element wrapping a single entry
    - name/price: sub-selectors whose text becomes the field
    - link: sub-selector for the anchor; link_attr is read from its first match
    """

    item: str = ".product-item"
    name: str = ".product-name"
    price: str = ".product-price"
    link: str = "a"
    link_attr: str = "href"


DEFAULT_RULE = ExtractionRule()


@dataclass(frozen=True)
class SiteDescriptor:
    """One registry entry: a page to watch and where its snapshot lives."""

    name: str
    url: str
    storage_key: str
    rule: ExtractionRule = DEFAULT_RULE


@dataclass(frozen=True)
class Record:
    """
    A single catalog entry as extracted from a page.
    Identity for diffing is the trimmed name only (see `key`).
    """

    name: str
    price: str = ""
    link: str | None = None

    @property
    def key(self) -> str:
        return (self.name or "").strip()

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "price": self.price, "link": self.link}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Record:
        link = raw.get("link")
        return cls(
            name=str(raw.get("name") or ""),
            price=str(raw.get("price") or ""),
            link=str(link) if link is not None else None,
        )


class Outcome(str, Enum):
    SUCCESS = "success"
    SCRAPE_FAILED = "scrape_failed"
    SNAPSHOT_READ_FAILED = "snapshot_read_failed"
    NOTIFY_FAILED = "notify_failed"
    PERSIST_FAILED = "persist_failed"
    FAILED = "failed"


@dataclass
class SiteResult:
    """
    Outcome of processing one site during a run.
    - notified/persisted: None when the step was not attempted
    - error: repr of the contained error, if any
    """

    site: str
    extracted: int = 0
    new: int = 0
    outcome: Outcome = Outcome.SUCCESS
    notified: bool | None = None
    persisted: bool | None = None
    error: str | None = None
    duration_us: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "site": self.site,
            "extracted": self.extracted,
            "new": self.new,
            "outcome": self.outcome.value,
            "notified": self.notified,
            "persisted": self.persisted,
            "error": self.error,
            "duration_us": self.duration_us,
        }


@dataclass
class RunSummary:
    ok: bool
    results: list[SiteResult] = field(default_factory=list)
    error: str | None = None
    duration_us: int = 0

    def counts_by_outcome(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in self.results:
            counts[r.outcome.value] = counts.get(r.outcome.value, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        if not self.ok:
            return {"ok": False, "error": self.error}
        return {
            "ok": True,
            "count": len(self.results),
            "results": [r.to_dict() for r in self.results],
        }
