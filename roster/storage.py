# roster/storage.py
"""
Storage primitives behind the catalog API.

Two small adapters live here:

* ``FileBlobStore`` keeps named binary objects (photos) on disk. Each
  object carries a content type and a strong validator (etag) assigned
  by the store when the object is written.

* ``JsonDocumentStore`` keeps one JSON value per key. The catalog uses a
  single key holding the whole list of records, so callers always read
  and write the complete value.

Both adapters are deliberately dumb: they know nothing about artists or
actors, only keys and bytes.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Iterator, Optional


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

META_DIR = ".meta"


def _etag_for(data: bytes) -> str:
    return '"%s"' % hashlib.md5(data).hexdigest()


def _write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` next to ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


@dataclass
class BlobObject:
    """A stored binary object and its metadata."""

    key: str
    body: bytes
    content_type: Optional[str]
    etag: str

    @property
    def size(self) -> int:
        return len(self.body)

    def iter_chunks(self, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]


class FileBlobStore:
    """Blob store backed by a directory tree.

    Object ``artists/pink/a.jpg`` lives at ``<root>/artists/pink/a.jpg``
    and its metadata at ``<root>/.meta/artists/pink/a.jpg.json``.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _parts(self, key: str) -> Optional[tuple]:
        if not key:
            return None
        pure = PurePosixPath(key)
        if pure.is_absolute():
            return None
        parts = pure.parts
        if not parts or any(p in ("..", ".") for p in parts) or parts[0] == META_DIR:
            return None
        return parts

    def _paths(self, key: str) -> tuple:
        parts = self._parts(key)
        if parts is None:
            raise ValueError(f"Invalid blob key: {key!r}")
        data_path = self.root.joinpath(*parts)
        meta_path = self.root.joinpath(META_DIR, *parts[:-1], parts[-1] + ".json")
        return data_path, meta_path

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> BlobObject:
        data_path, meta_path = self._paths(key)
        etag = _etag_for(data)
        _write_atomic(data_path, data)
        meta = {"content_type": content_type, "etag": etag}
        _write_atomic(meta_path, json.dumps(meta).encode("utf-8"))
        logger.debug("Stored blob %s (%d bytes)", key, len(data))
        return BlobObject(key=key, body=data, content_type=content_type, etag=etag)

    def get(self, key: str) -> Optional[BlobObject]:
        if self._parts(key) is None:
            return None
        data_path, meta_path = self._paths(key)
        if not data_path.is_file():
            return None
        body = data_path.read_bytes()
        content_type = None
        etag = None
        if meta_path.is_file():
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
                content_type = meta.get("content_type")
                etag = meta.get("etag")
            except ValueError:
                logger.warning("Ignoring unreadable metadata for blob %s", key)
        return BlobObject(
            key=key,
            body=body,
            content_type=content_type,
            etag=etag or _etag_for(body),
        )

    def delete(self, key: str) -> None:
        data_path, meta_path = self._paths(key)
        data_path.unlink(missing_ok=True)
        meta_path.unlink(missing_ok=True)
        logger.debug("Deleted blob %s", key)


class JsonDocumentStore:
    """Key -> JSON value store, one file per key."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or key.startswith("."):
            raise ValueError(f"Invalid document key: {key!r}")
        return self.root / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def put(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False, indent=2)
        _write_atomic(self._path(key), payload.encode("utf-8"))
