# modules/catalog_watch/lib/extractor.py
from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Tag

from .errors import ScrapeError
from .models import DEFAULT_RULE, ExtractionRule, Record


def extract(markup: str | bytes, rule: ExtractionRule = DEFAULT_RULE) -> list[Record]:
    """
    Return one Record per `rule.item` element, in document order.

    Missing sub-elements give an empty name/price or a None link; they never
    raise. Only a total failure (the parser or selector engine blowing up)
    raises ScrapeError.
    """
    if markup is None:
        raise ScrapeError("no markup to parse")
    try:
        soup = BeautifulSoup(markup, "html5lib")
        items = soup.select(rule.item)
        return [_record_from(el, rule) for el in items]
    except ScrapeError:
        raise
    except Exception as e:
        raise ScrapeError(f"could not parse markup: {e!r}") from e


def _record_from(el: Tag, rule: ExtractionRule) -> Record:
    return Record(
        name=_joined_text(el, rule.name),
        price=_joined_text(el, rule.price),
        link=_first_attr(el, rule.link, rule.link_attr),
    )


def _joined_text(el: Tag, selector: str) -> str:
    # Text of every match, concatenated, then trimmed once.
    return "".join(node.get_text() for node in el.select(selector)).strip()


def _first_attr(el: Tag, selector: str, attr: str) -> str | None:
    node = el.select_one(selector)
    if node is None:
        return None
    value = node.get(attr)
    if value is None:
        return None
    if isinstance(value, list):  # multi-valued attributes such as class
        value = " ".join(value)
    return str(value)
