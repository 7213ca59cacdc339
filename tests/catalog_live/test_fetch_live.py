# tests/catalog_live/test_fetch_live.py
from __future__ import annotations

import os

import pytest

from modules.catalog_watch.lib.extractor import extract
from modules.catalog_watch.lib.http_client import HttpClient
from modules.catalog_watch.lib.models import ExtractionRule


@pytest.mark.live
def test_live_fetch_and_extract():
    """
    Fetch a real page and run the extractor against it.
    Point CATALOG_LIVE_URL / CATALOG_LIVE_ITEM at a catalog page to try real selectors.
    """
    url = os.getenv("CATALOG_LIVE_URL", "https://example.com/")
    item = os.getenv("CATALOG_LIVE_ITEM", "body > div")

    with HttpClient(timeout=20) as client:
        markup = client.get_text(url)

    assert markup
    records = extract(markup, ExtractionRule(item=item, name="h1", price="p", link="a"))
    print(f"\n{len(records)} record(s) from {url}")
    for r in records[:10]:
        print(f" - {r.name!r} | {r.price[:40]!r} | {r.link}")
    assert isinstance(records, list)
