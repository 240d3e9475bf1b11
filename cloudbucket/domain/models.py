"""Provider-independent bucket and object descriptions.

Adapters build these from a single API response. They are never mutated
and hold no reference to the client that produced them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Bucket:
    """A named top-level container as reported by a backend."""

    id: str
    name: str
    location: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "name": self.name, "location": self.location}


@dataclass(frozen=True, slots=True)
class StorageObject:
    """Metadata of a stored object.

    ``id`` is usually an entity tag and changes when the object is
    overwritten. ``size`` is ``None`` when the producing response did not
    carry it, which is the case right after an S3 upload.
    """

    id: str
    name: str
    bucket_name: str
    size: int | None = None
    content_type: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "bucket_name": self.bucket_name,
            "size": self.size,
            "content_type": self.content_type,
        }
