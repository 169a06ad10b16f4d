"""
Catalog service: create, update and delete catalog records while keeping
the blob store in step with the image references they hold.

The whole catalog is one JSON list stored under a single document key.
Every mutation is a read-modify-write of that list. Within a process the
cycle runs under a lock; across processes or instances nothing guards the
window between reading and writing the document, so concurrent writers
can lose updates (the last ``put`` wins).

Blob uploads for a request complete before the document is written to
reference them. A failed upload aborts the request; blobs already stored
by that request are not rolled back. Cleanup of blobs (deleting images,
relocating them after an id change) is best effort: every attempt yields
a ``(key, outcome)`` pair, failures are logged and the enclosing
operation still succeeds.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..models import Upload
from ..storage import BlobObject, FileBlobStore, JsonDocumentStore
from .errors import CatalogError, ConflictError, NotFoundError, StorageFailure, ValidationError
from .kinds import CatalogKind, safe_filename


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

Record = Dict[str, Any]
Outcome = Tuple[str, str]


def utc_now() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T10:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CatalogService:
    def __init__(
        self,
        kind: CatalogKind,
        documents: JsonDocumentStore,
        blobs: FileBlobStore,
    ) -> None:
        self.kind = kind
        self.documents = documents
        self.blobs = blobs
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Document access

    def _load(self) -> List[Record]:
        data = self.documents.get(self.kind.document_key)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageFailure(f"Catalog document {self.kind.document_key!r} is not a list")
        return data

    def _save(self, records: List[Record]) -> None:
        self.documents.put(self.kind.document_key, records)

    @staticmethod
    def _index_of(records: List[Record], entity_id: str) -> int:
        for index, record in enumerate(records):
            if record.get("id") == entity_id:
                return index
        return -1

    @contextmanager
    def _failures(self, verb: str) -> Iterator[None]:
        """Turn unexpected errors into a ``StorageFailure`` naming the operation."""
        try:
            yield
        except CatalogError:
            raise
        except Exception as exc:
            logger.exception("Error trying to %s %s", verb, self.kind.singular)
            raise StorageFailure(f"Failed to {verb} {self.kind.singular}: {exc}") from exc

    # ------------------------------------------------------------------
    # Validation

    def _require(self, data: Record) -> None:
        missing = [name for name in self.kind.required_fields if not data.get(name)]
        if missing:
            raise ValidationError(f"{' and '.join(missing)} required")
        entity_id = data.get("id")
        if not isinstance(entity_id, str):
            raise ValidationError("id must be a string")
        if self.kind.scheme == "scoped" and ("/" in entity_id or entity_id in (".", "..")):
            raise ValidationError(f"Invalid {self.kind.singular} id: {entity_id!r}")

    def _validated(self, record: Record) -> Record:
        try:
            return self.kind.record_model.model_validate(record).model_dump()
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid {self.kind.singular} data: {exc}") from exc

    # ------------------------------------------------------------------
    # Blob helpers

    def _store_uploads(self, entity_id: str, uploads: Iterable[Upload]) -> List[Tuple[str, str]]:
        """Store non-empty uploads; return ``(filename, reference)`` pairs."""
        stored = []
        for upload in uploads:
            if upload is None or upload.size == 0:
                continue
            filename = safe_filename(upload.filename)
            if not filename:
                logger.warning("Skipping upload without a usable filename for %s %s",
                               self.kind.singular, entity_id)
                continue
            reference = self.kind.new_reference(entity_id, filename)
            self.blobs.put(self.kind.blob_key(entity_id, reference), upload.data, upload.content_type)
            stored.append((filename, reference))
        return stored

    def _move_blob(self, old_key: str, new_key: str) -> Optional[str]:
        obj = self.blobs.get(old_key)
        if obj is None:
            return "missing"
        self.blobs.put(new_key, obj.body, obj.content_type)
        self.blobs.delete(old_key)
        return None

    def _delete_blob(self, key: str) -> None:
        self.blobs.delete(key)

    def _best_effort(self, action: str, attempts: Sequence[Tuple[str, Callable[[], Optional[str]]]]) -> List[Outcome]:
        outcomes: List[Outcome] = []
        for key, attempt in attempts:
            try:
                outcome = attempt() or "ok"
            except Exception as exc:
                outcome = f"failed: {exc}"
            outcomes.append((key, outcome))
        problems = [(key, outcome) for key, outcome in outcomes if outcome != "ok"]
        if problems:
            logger.warning("%s: %d of %d did not complete: %s",
                           action, len(problems), len(outcomes), problems)
        return outcomes

    def _resolve_pointers(self, record: Record, stored: List[Tuple[str, str]]) -> None:
        """Point representative fields that name a just-uploaded file at its reference."""
        by_filename = dict(stored)
        for path, value in self.kind.pointer_values(record):
            if isinstance(value, str) and value in by_filename:
                self.kind.set_pointer(record, path, by_filename[value])

    def _clear_pointers(self, record: Record, reference: str) -> None:
        for path, value in self.kind.pointer_values(record):
            if value == reference:
                self.kind.set_pointer(record, path, None)

    # ------------------------------------------------------------------
    # Operations

    def list_entries(self, admin: bool = False) -> List[Record]:
        with self._failures("fetch"):
            records = self._load()
        if admin:
            return records
        return [self.kind.public_view(record) for record in records]

    def create(self, data: Record, uploads: Iterable[Upload] = ()) -> Record:
        data = dict(data)
        if self.kind.generate_ids and not data.get("id"):
            data["id"] = str(uuid.uuid4())
        self._require(data)
        entity_id = data["id"]
        now = utc_now()

        with self._lock, self._failures("create"):
            records = self._load()
            if self._index_of(records, entity_id) != -1:
                raise ConflictError(f"{self.kind.singular.capitalize()} ID already exists")

            record = self._validated({
                **data,
                self.kind.image_field: [],
                "createdAt": now,
                "updatedAt": now,
            })
            stored = self._store_uploads(entity_id, uploads)
            record[self.kind.image_field] = [reference for _, reference in stored]
            self._resolve_pointers(record, stored)

            records.append(record)
            self._save(records)

        logger.info("Created %s %s with %d image(s)", self.kind.singular, entity_id,
                    len(record[self.kind.image_field]))
        return record

    def update(
        self,
        entity_id: str,
        data: Record,
        uploads: Iterable[Upload] = (),
        deletions: Iterable[str] = (),
    ) -> Record:
        kind = self.kind
        with self._lock, self._failures("update"):
            records = self._load()
            index = self._index_of(records, entity_id)
            if index == -1:
                raise NotFoundError(f"{kind.singular.capitalize()} not found")
            current = records[index]

            new_id = data.get("id") or entity_id
            if new_id != entity_id and not kind.renamable:
                logger.warning("Ignoring id change %s -> %s for %s", entity_id, new_id, kind.singular)
                new_id = entity_id
            if new_id != entity_id:
                self._require({**current, **data, "id": new_id})
                if self._index_of(records, new_id) != -1:
                    raise ConflictError(f"{kind.singular.capitalize()} ID already exists")

            existing = kind.images_of(current)
            merged = self._validated({
                **current,
                **data,
                "id": new_id,
                kind.image_field: existing,
                "createdAt": current.get("createdAt") or utc_now(),
                "updatedAt": utc_now(),
            })

            stored = self._store_uploads(new_id, uploads)
            uploaded = [reference for _, reference in stored]

            doomed = {kind.reference_for_name(name) for name in deletions}
            kept = [reference for reference in existing if reference not in doomed]
            # A removed file re-uploaded under the same key has already been replaced.
            removed = [reference for reference in existing
                       if reference in doomed and reference not in uploaded]
            if removed:
                self._best_effort(
                    f"Deleting images of {kind.singular} {entity_id}",
                    [(key, partial(self._delete_blob, key))
                     for key in (kind.blob_key(entity_id, ref) for ref in removed)],
                )

            if new_id != entity_id and kept:
                attempts = []
                for reference in kept:
                    old_key = kind.blob_key(entity_id, reference)
                    if reference in uploaded:
                        # The new upload under the new id replaces the old file.
                        attempts.append((old_key, partial(self._delete_blob, old_key)))
                    else:
                        new_key = kind.blob_key(new_id, reference)
                        attempts.append((old_key, partial(self._move_blob, old_key, new_key)))
                self._best_effort(f"Relocating images of {kind.singular} {entity_id} -> {new_id}", attempts)

            merged[kind.image_field] = kept + [ref for ref in uploaded if ref not in kept]
            self._resolve_pointers(merged, stored)

            records[index] = merged
            self._save(records)

        logger.info("Updated %s %s", kind.singular, new_id)
        return merged

    def delete(self, entity_id: str) -> None:
        kind = self.kind
        with self._lock, self._failures("delete"):
            records = self._load()
            index = self._index_of(records, entity_id)
            if index == -1:
                raise NotFoundError(f"{kind.singular.capitalize()} not found")
            record = records[index]

            references = kind.images_of(record)
            main_photo = record.get("main_photo")
            if isinstance(main_photo, str) and main_photo and main_photo not in references:
                references.append(main_photo)
            if references:
                self._best_effort(
                    f"Deleting images of {kind.singular} {entity_id}",
                    [(key, partial(self._delete_blob, key))
                     for key in (kind.blob_key(entity_id, ref) for ref in references)],
                )

            del records[index]
            self._save(records)

        logger.info("Deleted %s %s", kind.singular, entity_id)

    def delete_image(self, entity_id: str, image_name: str) -> None:
        """Delete one image and drop every reference to it.

        Succeeds even when no record owns the image: deleting the blob is
        the operation of record, so repeating the call is harmless.
        """
        kind = self.kind
        reference = kind.reference_for_name(image_name)
        with self._lock, self._failures("delete file of"):
            self.blobs.delete(kind.blob_key(entity_id, reference))

            records = self._load()
            index = self._index_of(records, entity_id)
            if index == -1:
                logger.info("No %s %s owns %s; blob delete only", kind.singular, entity_id, reference)
                return
            record = records[index]
            record[kind.image_field] = [ref for ref in kind.images_of(record) if ref != reference]
            self._clear_pointers(record, reference)
            record["updatedAt"] = utc_now()
            self._save(records)

        logger.info("Deleted image %s of %s %s", reference, kind.singular, entity_id)

    def fetch_asset(self, key: str) -> BlobObject:
        with self._failures("fetch asset of"):
            obj = self.blobs.get(key)
        if obj is None:
            raise NotFoundError("Image not found")
        return obj
