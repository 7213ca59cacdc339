"""
Object storage for the site registry and per-site snapshots.

Backends:
  - LocalObjectStore: one file per key under a directory (default)
  - SqliteObjectStore: key/value table in a single SQLite file
  - S3ObjectStore: an S3 (or S3-compatible) bucket via boto3

Every backend raises KeyNotFound for an absent key and StoreError for any
other failure; callers rely on that distinction.
"""

from __future__ import annotations

import contextlib
import json
import os
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import KeyNotFound, StoreError
from .models import Record
from .utils import now_iso

JSON_CONTENT_TYPE = "application/json"


# ---- Interface --------------------------------------------------------------


class ObjectStore(ABC):
    """Fetch-by-key / put-by-key byte storage. Implementations must be thread-safe."""

    @abstractmethod
    def get_bytes(self, key: str) -> bytes:
        """Return the stored body. Raises KeyNotFound or StoreError."""
        raise NotImplementedError

    @abstractmethod
    def put_bytes(self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE) -> None:
        """Create or fully replace the object at `key`. Raises StoreError."""
        raise NotImplementedError

    def get_json(self, key: str) -> Any:
        body = self.get_bytes(key)
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StoreError(f"object {key!r} is not valid JSON: {e}") from e

    def put_json(self, key: str, value: Any) -> None:
        body = json.dumps(value, ensure_ascii=False, indent=2).encode("utf-8")
        self.put_bytes(key, body, JSON_CONTENT_TYPE)


# ---- Local directory ---------------------------------------------------------


class LocalObjectStore(ObjectStore):
    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def _path(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if os.path.commonpath([self.root, path]) != self.root or path == self.root:
            raise StoreError(f"invalid key {key!r}")
        return path

    def get_bytes(self, key: str) -> bytes:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise KeyNotFound(key) from e
        except OSError as e:
            raise StoreError(f"read failed for {key!r}: {e}") from e

    def put_bytes(self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE) -> None:
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=os.path.dirname(path))
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(body)
                os.replace(tmp, path)  # atomic on POSIX
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.remove(tmp)
                raise
        except OSError as e:
            raise StoreError(f"write failed for {key!r}: {e}") from e


# ---- SQLite -------------------------------------------------------------------


class SqliteObjectStore(ObjectStore):
    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = sqlite_path
        try:
            _ensure_dir(sqlite_path)
            with contextlib.closing(self._connect()) as conn:
                _ensure_schema(conn)
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"cannot open sqlite store {sqlite_path!r}: {e}") from e

    def _connect(self) -> sqlite3.Connection:
        # isolation_level=None gives autocommit mode; one connection per call keeps threads apart.
        conn = sqlite3.connect(self.sqlite_path, timeout=30.0, isolation_level=None)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def get_bytes(self, key: str) -> bytes:
        try:
            with contextlib.closing(self._connect()) as conn:
                row = conn.execute("SELECT body FROM objects WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"read failed for {key!r}: {e}") from e
        if row is None:
            raise KeyNotFound(key)
        return bytes(row[0])

    def put_bytes(self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE) -> None:
        try:
            with contextlib.closing(self._connect()) as conn:
                conn.execute(
                    """
                    INSERT INTO objects (key, body, content_type, updated_utc)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                      body = excluded.body,
                      content_type = excluded.content_type,
                      updated_utc = excluded.updated_utc
                    """,
                    (key, sqlite3.Binary(body), content_type, now_iso()),
                )
        except sqlite3.Error as e:
            raise StoreError(f"write failed for {key!r}: {e}") from e


def _ensure_dir(sqlite_path: str) -> None:
    d = os.path.dirname(os.path.abspath(sqlite_path)) or "."
    os.makedirs(d, exist_ok=True)


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS objects (
          key TEXT PRIMARY KEY,
          body BLOB NOT NULL,
          content_type TEXT NOT NULL,
          updated_utc TEXT NOT NULL
        );
        """
    )


# ---- S3 -----------------------------------------------------------------------


class S3ObjectStore(ObjectStore):
    def __init__(self, bucket: str, *, prefix: str = "", client: Any = None) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("s3")
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def get_bytes(self, key: str) -> bytes:
        full_key = self._key(key)
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=full_key)
            return resp["Body"].read()
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in ("NoSuchKey", "404", "NotFound"):
                raise KeyNotFound(key) from e
            raise StoreError(f"s3 get_object failed for s3://{self.bucket}/{full_key}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"s3 get_object failed for s3://{self.bucket}/{full_key}: {e}") from e

    def put_bytes(self, key: str, body: bytes, content_type: str = JSON_CONTENT_TYPE) -> None:
        full_key = self._key(key)
        try:
            self.client.put_object(Bucket=self.bucket, Key=full_key, Body=body, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"s3 put_object failed for s3://{self.bucket}/{full_key}: {e}") from e


def build_object_store(settings: Settings) -> ObjectStore:
    if settings.store_backend == "sqlite":
        return SqliteObjectStore(settings.store_path)
    if settings.store_backend == "s3":
        try:
            client = boto3.client("s3", region_name=settings.aws_region, endpoint_url=settings.endpoint_url)
        except (BotoCoreError, ValueError) as e:
            raise StoreError(f"cannot create s3 client: {e}") from e
        return S3ObjectStore(settings.bucket or "", prefix=settings.prefix, client=client)
    return LocalObjectStore(settings.store_path)


# ---- Snapshots -----------------------------------------------------------------


class SnapshotStore:
    """
    Per-site snapshot access on top of an ObjectStore.

    A snapshot is a JSON array of {name, price, link}. Each write replaces the
    whole array.
    """

    def __init__(self, objects: ObjectStore) -> None:
        self.objects = objects

    def read(self, key: str) -> list[Record] | None:
        """Return the stored records, or None if nothing was stored yet. Raises StoreError."""
        try:
            raw = self.objects.get_json(key)
        except KeyNotFound:
            return None
        if not isinstance(raw, list):
            raise StoreError(f"snapshot {key!r} is not a JSON array")
        records: list[Record] = []
        for i, item in enumerate(raw):
            if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                raise StoreError(f"snapshot {key!r} item[{i}] is not a record object")
            records.append(Record.from_dict(item))
        return records

    def write(self, key: str, records: Iterable[Record]) -> None:
        self.objects.put_json(key, [r.to_dict() for r in records])
