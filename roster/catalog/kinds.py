"""
Catalog kinds.

The artists and actors catalogs run the same create/update/delete
protocol and differ only in naming, in how image references map to blob
store keys, and in which fields point at a representative image. A
``CatalogKind`` captures those differences so that one
``CatalogService`` and one router builder can serve both.

Reference schemes:

* ``scoped`` - the record stores bare filenames; the blob lives at
  ``<namespace>/<entity id>/<filename>``. Renaming the entity means
  moving its blobs.
* ``flat`` - the record stores the full blob key
  ``<namespace>/<uuid>-<filename>``, independent of the entity id.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Tuple, Type

from typing_extensions import Literal

from .schemas import ActorRecord, ArtistRecord, CatalogRecord


ReferenceScheme = Literal["scoped", "flat"]

# A pointer is a path into the record, e.g. ("representativeImages", "home")
PointerPath = Tuple[str, ...]


def safe_filename(filename: Optional[str]) -> str:
    """Strip any directory components a client may have sent."""
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    return name if name not in ("", ".", "..") else ""


@dataclass(frozen=True)
class CatalogKind:
    name: str
    singular: str
    record_model: Type[CatalogRecord]
    image_field: str
    scheme: ReferenceScheme
    api_prefix: str
    files_prefix: str
    asset_route: str
    data_field: str
    upload_field: str
    deletions_field: str
    pointers: Tuple[PointerPath, ...] = ()
    required_fields: Tuple[str, ...] = ("id", "name")
    generate_ids: bool = False
    renamable: bool = False
    admin_listing: bool = False
    private_fields: Tuple[str, ...] = ()
    document_key: str = field(default="")

    def __post_init__(self) -> None:
        if not self.document_key:
            object.__setattr__(self, "document_key", self.name)

    @property
    def namespace(self) -> str:
        return self.name

    # -- references and keys -------------------------------------------

    def new_reference(self, entity_id: str, filename: str) -> str:
        if self.scheme == "scoped":
            return filename
        return f"{self.namespace}/{uuid.uuid4()}-{filename}"

    def blob_key(self, entity_id: str, reference: str) -> str:
        if self.scheme == "scoped":
            return f"{self.namespace}/{entity_id}/{reference}"
        return reference

    def reference_for_name(self, image_name: str) -> str:
        """Map the image name of a file-management URL to a stored reference."""
        if self.scheme == "scoped" or image_name.startswith(self.namespace + "/"):
            return image_name
        return f"{self.namespace}/{image_name}"

    def asset_key(self, path: str) -> str:
        """Map the path captured by the asset route to a blob key."""
        if self.scheme == "flat" and path.startswith(self.namespace + "/"):
            return path
        return f"{self.namespace}/{path}"

    # -- record helpers ------------------------------------------------

    def images_of(self, record: Dict[str, Any]) -> List[str]:
        return list(record.get(self.image_field) or [])

    def pointer_values(self, record: Dict[str, Any]) -> List[Tuple[PointerPath, Any]]:
        values = []
        for path in self.pointers:
            node: Any = record
            for part in path:
                node = node.get(part) if isinstance(node, dict) else None
            values.append((path, node))
        return values

    def set_pointer(self, record: Dict[str, Any], path: PointerPath, value: Any) -> None:
        node = record
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                return
            node = child
        node[path[-1]] = value

    def public_view(self, record: Dict[str, Any]) -> Dict[str, Any]:
        if not self.private_fields:
            return record
        return {k: v for k, v in record.items() if k not in self.private_fields}


ARTISTS = CatalogKind(
    name="artists",
    singular="artist",
    record_model=ArtistRecord,
    image_field="images",
    scheme="scoped",
    api_prefix="/api/artists",
    files_prefix="/admin/files/artists",
    asset_route="/assets/artists",
    data_field="artistData",
    upload_field="images",
    deletions_field="deletedImages",
    pointers=(("representativeImages", "home"), ("representativeImages", "artists")),
    renamable=True,
)

ACTORS = CatalogKind(
    name="actors",
    singular="actor",
    record_model=ActorRecord,
    image_field="photos",
    scheme="flat",
    api_prefix="/api/actors",
    files_prefix="/admin/files/actors",
    asset_route="/photos",
    data_field="actorData",
    upload_field="photos",
    deletions_field="deletedPhotos",
    pointers=(("main_photo",),),
    generate_ids=True,
    admin_listing=True,
    private_fields=("email", "phone", "notes"),
)

KINDS = (ARTISTS, ACTORS)
