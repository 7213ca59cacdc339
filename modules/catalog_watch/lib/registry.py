"""
Site registry: the JSON list of pages to watch.

Entry shape (extra keys are ignored):

    {
      "name": "Acme",
      "url": "https://acme.example/new-arrivals",
      "fileKey": "acme.json",
      "selectors": {"item": ".product-item", "name": ".product-name",
                    "price": ".product-price", "link": "a", "link_attr": "href"}
    }

The storage key may also be given as `file_key`, `storage_key` or `key`.
`selectors` is optional; any selector left out keeps its default.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Any

from .errors import RegistryLoadError, StoreError
from .models import DEFAULT_RULE, ExtractionRule, SiteDescriptor
from .store import ObjectStore

_KEY_FIELDS = ("fileKey", "file_key", "storage_key", "key")
_SELECTOR_FIELDS = ("item", "name", "price", "link", "link_attr")


def load_registry(objects: ObjectStore, key: str) -> list[SiteDescriptor]:
    """
    Read and parse the registry in a single store read.
    Any failure (absent object included) raises RegistryLoadError.
    """
    try:
        raw = objects.get_json(key)
    except StoreError as e:
        raise RegistryLoadError(f"cannot read registry {key!r}: {e}") from e
    return parse_registry(raw)


def parse_registry(value: Any) -> list[SiteDescriptor]:
    if not isinstance(value, list):
        raise RegistryLoadError("registry must be a JSON array of site objects")
    sites: list[SiteDescriptor] = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise RegistryLoadError(f"registry item[{i}] must be an object")
        name = str(item.get("name") or "").strip()
        url = str(item.get("url") or "").strip()
        storage_key = next((str(item[f]).strip() for f in _KEY_FIELDS if item.get(f)), "")
        if not name or not url or not storage_key:
            raise RegistryLoadError(f"registry item[{i}] requires 'name', 'url' and 'fileKey'")
        sites.append(SiteDescriptor(name=name, url=url, storage_key=storage_key, rule=_parse_rule(item, i)))
    return sites


def _parse_rule(item: dict[str, Any], index: int) -> ExtractionRule:
    selectors = item.get("selectors")
    if selectors is None:
        return DEFAULT_RULE
    if not isinstance(selectors, dict):
        raise RegistryLoadError(f"registry item[{index}].selectors must be an object")
    overrides = {f: str(selectors[f]).strip() for f in _SELECTOR_FIELDS if selectors.get(f)}
    return replace(DEFAULT_RULE, **overrides)


def upload_registry(objects: ObjectStore, path: str, key: str) -> list[SiteDescriptor]:
    """
    Push a local registry file into the store after checking it parses.
    Returns the parsed sites. Raises RegistryLoadError on bad input and
    StoreError if the write fails.
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise RegistryLoadError(f"registry file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise RegistryLoadError(f"registry file is invalid JSON: {path}") from e

    sites = parse_registry(raw)
    objects.put_json(key, raw)
    return sites
