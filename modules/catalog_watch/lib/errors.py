from __future__ import annotations


class CatalogWatchError(Exception):
    """Base class for errors raised by the catalog_watch pipeline."""


class RegistryLoadError(CatalogWatchError):
    """The site registry could not be read or parsed. Fatal to the whole run."""


class ScrapeError(CatalogWatchError):
    """Fetching or parsing one site's page failed."""


class SnapshotReadError(CatalogWatchError):
    """The previous snapshot could not be read for a reason other than absence."""


class NotifyError(CatalogWatchError):
    """The notification sink rejected or failed to deliver a message."""


class PersistError(CatalogWatchError):
    """Writing a site's snapshot failed."""


class StoreError(CatalogWatchError):
    """Any object-store backend failure."""


class KeyNotFound(StoreError):
    """The requested key does not exist in the object store."""

    def __init__(self, key: str) -> None:
        super().__init__(f"key not found: {key!r}")
        self.key = key
