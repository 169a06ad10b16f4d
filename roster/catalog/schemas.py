"""
Pydantic schema definitions for catalog records.

Records are open-ended: besides the handful of fields the service
manages (``id``, ``name``, the image list, representative pointers and
timestamps) clients may store any descriptive text they like, such as a
display name or captions. ``extra="allow"`` keeps those fields on the
model so they round-trip through the stored document untouched.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CatalogRecord(BaseModel):
    """Fields shared by every catalog entry."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    createdAt: str
    updatedAt: str


class ArtistRecord(CatalogRecord):
    """An artist. ``images`` holds bare filenames scoped under the id.

    ``representativeImages`` maps a role (``home``, ``artists``) to one
    of the filenames in ``images``, or ``None`` when the role is unset.
    """

    images: List[str] = Field(default_factory=list)
    representativeImages: Dict[str, Optional[str]] = Field(default_factory=dict)


class ActorRecord(CatalogRecord):
    """An actor. ``photos`` holds full blob store keys."""

    photos: List[str] = Field(default_factory=list)
    main_photo: Optional[str] = None
