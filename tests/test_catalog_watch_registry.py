# tests/test_catalog_watch_registry.py
import json

import pytest

from modules.catalog_watch.lib.errors import RegistryLoadError, StoreError
from modules.catalog_watch.lib.models import DEFAULT_RULE, ExtractionRule, SiteDescriptor
from modules.catalog_watch.lib.registry import load_registry, parse_registry, upload_registry


def test_parse_accepts_storage_key_aliases():
    sites = parse_registry([{"name": "Acme", "url": "https://acme.example", "fileKey": "acme.json"}])
    assert sites == [SiteDescriptor(name="Acme", url="https://acme.example", storage_key="acme.json")]
    assert sites[0].rule == DEFAULT_RULE


def test_parse_alternate_key_names_and_selectors():
    (site,) = parse_registry([
        {
            "name": "Shop",
            "url": "https://shop.example",
            "storage_key": "shop.json",
            "selectors": {"item": "li.tile", "link_attr": "data-url"},
        }
    ])
    assert site.storage_key == "shop.json"
    assert site.rule == ExtractionRule(item="li.tile", link_attr="data-url")


@pytest.mark.parametrize(
    "value",
    [
        {"name": "not a list"},
        ["not an object"],
        [{"name": "Acme", "url": "https://acme.example"}],
        [{"name": "Acme", "url": "https://acme.example", "fileKey": "a.json", "selectors": "x"}],
    ],
)
def test_parse_rejects_bad_registries(value):
    with pytest.raises(RegistryLoadError):
        parse_registry(value)


def test_load_missing_registry_is_fatal(objects):
    with pytest.raises(RegistryLoadError):
        load_registry(objects, "websites.json")


def test_load_invalid_json_is_fatal(objects):
    objects.put_bytes("websites.json", b"{oops")
    with pytest.raises(RegistryLoadError):
        load_registry(objects, "websites.json")


def test_load_empty_registry_is_allowed(objects, write_registry):
    write_registry([])
    assert load_registry(objects, "websites.json") == []


def test_upload_validates_then_writes(objects, tmp_path):
    src = tmp_path / "websites.json"
    entries = [{"name": "Acme", "url": "https://acme.example", "fileKey": "acme.json"}]
    src.write_text(json.dumps(entries), encoding="utf-8")

    sites = upload_registry(objects, str(src), "websites.json")

    assert [s.name for s in sites] == ["Acme"]
    assert objects.get_json("websites.json") == entries


def test_upload_rejects_bad_files_without_writing(objects, tmp_path):
    missing = tmp_path / "missing.json"
    with pytest.raises(RegistryLoadError):
        upload_registry(objects, str(missing), "websites.json")

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps([{"name": "no url"}]), encoding="utf-8")
    with pytest.raises(RegistryLoadError):
        upload_registry(objects, str(bad), "websites.json")

    with pytest.raises(StoreError):
        objects.get_bytes("websites.json")
