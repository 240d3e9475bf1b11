"""Storage client protocol and shared argument checks.

This module defines the operation surface every backend adapter implements,
together with the capability flags used to tell unsupported operations
apart from empty results.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from cloudbucket.domain.models import Bucket, StorageObject

# Returned by URL-issuing operations the backend cannot perform.
UNSUPPORTED_URL = ""


class Capability(str, Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"
    COPY = "copy"
    CROSS_BUCKET_COPY = "cross_bucket_copy"
    DELETE = "delete"
    LIST = "list"
    GET = "get"
    CREATE = "create"
    SIGNED_DOWNLOAD_URL = "signed_download_url"
    SIGNED_UPLOAD_URL = "signed_upload_url"


@runtime_checkable
class StorageClient(Protocol):
    """Protocol defining the interface for object storage backends.

    Implementations hold one authenticated SDK client, shared by every
    concurrent call and never mutated after construction. Every failure is
    raised as a subclass of ``StorageError``.
    """

    backend: str
    capabilities: frozenset[Capability]

    async def static_download_object(
        self,
        bucket: str,
        object_name: str,
        start: int | None = None,
        end: int | None = None,
    ) -> bytes:
        """Download an object, or a byte range of it, in one call.

        Args:
            bucket: Bucket name.
            object_name: Object key.
            start: First byte offset (inclusive).
            end: Last byte offset (inclusive). Without ``start`` it is a
                suffix length: the last ``end`` bytes are returned.

        Returns:
            The requested bytes, fully buffered.

        Raises:
            StorageError: With kind ``INVALID_REQUEST`` if a bound is
                negative, ``start > end`` or a suffix length is zero, before
                any request is sent. Otherwise if the bucket or object is
                missing or the call fails.
        """
        ...

    async def static_upload_object(
        self, bucket: str, object_name: str, data: bytes
    ) -> StorageObject:
        """Upload a full payload, overwriting any existing object.

        The returned object's ``content_type`` and ``size`` may be ``None``
        depending on what the backend's write response echoes.
        """
        ...

    async def url_upload_object(self, bucket: str, object_name: str) -> str:
        """Issue a pre-authorized upload URL.

        Returns ``UNSUPPORTED_URL`` on backends without the
        ``SIGNED_UPLOAD_URL`` capability.
        """
        ...

    async def url_download_object(self, bucket: str, object_name: str) -> str:
        """Issue a pre-authorized or public download URL."""
        ...

    async def remove_bucket(self, bucket: str) -> None:
        """Delete a bucket. Deleting a missing bucket may or may not fail."""
        ...

    async def remove_object(self, bucket: str, object_name: str) -> None:
        """Delete an object. Deleting a missing object may or may not fail."""
        ...

    async def create_bucket(self, bucket_name: str) -> Bucket:
        """Create a bucket.

        Raises:
            StorageError: With kind ``CONFLICT`` when the name is taken.
        """
        ...

    async def copy_object(
        self,
        src_bucket: str,
        src_object: str,
        dest_bucket: str,
        dest_object: str,
    ) -> StorageObject:
        """Copy an object and return the destination's metadata.

        Backends without ``CROSS_BUCKET_COPY`` reject differing buckets
        before any network call.
        """
        ...

    async def list_buckets(self, max_results: int | None = None) -> list[Bucket]:
        """Return the first page of buckets, at most ``max_results`` long.

        ``max_results`` below 1 is refused with kind ``INVALID_REQUEST``.
        """
        ...

    async def get_bucket(self, bucket_name: str) -> Bucket:
        """Look up one bucket."""
        ...

    async def get_object(self, bucket: str, object_name: str) -> StorageObject:
        """Look up one object's metadata without downloading it."""
        ...

    async def list_objects(
        self, bucket: str, max_results: int | None = None
    ) -> list[StorageObject]:
        """Return the first page of objects, at most ``max_results`` long."""
        ...


def supports(client: StorageClient, capability: Capability) -> bool:
    return capability in client.capabilities


def range_error(start: int | None, end: int | None) -> str | None:
    """Describe what is wrong with a byte range, or return ``None``."""
    if start is not None and start < 0:
        return f"start must be >= 0, got {start}"
    if end is not None and end < 0:
        return f"end must be >= 0, got {end}"
    if start is not None and end is not None and start > end:
        return f"start ({start}) must not exceed end ({end})"
    if start is None and end == 0:
        return "a suffix range needs end >= 1"
    return None


def max_results_error(max_results: int | None) -> str | None:
    if max_results is not None and max_results < 1:
        return f"max_results must be a positive integer, got {max_results}"
    return None
