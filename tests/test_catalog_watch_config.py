# tests/test_catalog_watch_config.py
import pytest

from modules.catalog_watch.lib.config import ConfigError, Settings


def test_defaults():
    s = Settings.from_env_and_kwargs({})
    assert s.store_backend == "local"
    assert s.store_path == "/app/local/state/catalog_watch"
    assert s.registry_key == "websites.json"
    assert s.notifier == "log"
    assert s.max_workers is None
    assert s.fetch_timeout is None


def test_environment_is_read(monkeypatch):
    monkeypatch.setenv("CATALOG_WATCH_STORE", "S3")
    monkeypatch.setenv("CATALOG_WATCH_BUCKET", "watch-bucket")
    monkeypatch.setenv("CATALOG_WATCH_NOTIFIER", "sns")
    monkeypatch.setenv("CATALOG_WATCH_CHANNEL", "arn:aws:sns:us-east-1:123456789012:new-products")
    monkeypatch.setenv("CATALOG_WATCH_MAX_WORKERS", "4")
    monkeypatch.setenv("CATALOG_WATCH_FETCH_TIMEOUT", "7.5")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")

    s = Settings.from_env_and_kwargs(None)

    assert s.store_backend == "s3"
    assert s.bucket == "watch-bucket"
    assert s.notifier == "sns"
    assert s.channel == ["arn:aws:sns:us-east-1:123456789012:new-products"]
    assert s.max_workers == 4
    assert s.fetch_timeout == 7.5
    assert s.aws_region == "us-east-1"


def test_kwargs_override_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CATALOG_WATCH_STORE_PATH", "/somewhere/else")
    s = Settings.from_env_and_kwargs({"store_path": str(tmp_path), "registry_key": "sites/list.json"})
    assert s.store_path == str(tmp_path)
    assert s.registry_key == "sites/list.json"


def test_email_channel_accepts_comma_list_or_list():
    a = Settings.from_env_and_kwargs({"notifier": "email", "channel": "a@example.com, b@example.com"})
    b = Settings.from_env_and_kwargs({"notifier": "email", "channel": ["a@example.com", "b@example.com"]})
    assert a.channel == b.channel == ["a@example.com", "b@example.com"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"store_backend": "ftp"},
        {"store_backend": "s3"},
        {"notifier": "pager"},
        {"notifier": "email"},
        {"notifier": "sns"},
        {"notifier": "sns", "channel": "arn:one,arn:two"},
        {"notifier": "sns", "channel": "arn:topic"},
        {"max_workers": 0},
        {"max_workers": "many"},
        {"fetch_timeout": -1},
        {"fetch_timeout": "soon"},
    ],
)
def test_invalid_settings_raise(kwargs):
    with pytest.raises(ConfigError):
        Settings.from_env_and_kwargs(kwargs)
