"""Object storage abstraction layer.

This module provides a protocol-based abstraction for object storage
backends. Amazon S3 (and S3-compatible services) and Google Cloud Storage
are supported; adapters live in ``aws_s3`` and ``google_cloud`` and are
selected by ``factory.build_storage_client``.
"""

from .client import (
    UNSUPPORTED_URL,
    Capability,
    StorageClient,
    supports,
)
from .errors import (
    AWSError,
    AWSErrorKind,
    AWSStorageError,
    ErrorItem,
    ErrorKind,
    GoogleCloudError,
    GoogleCloudErrorKind,
    GoogleCloudStorageError,
    StorageError,
)
from .factory import build_storage_client, get_storage_client

__all__ = [
    "AWSError",
    "AWSErrorKind",
    "AWSStorageError",
    "Capability",
    "ErrorItem",
    "ErrorKind",
    "GoogleCloudError",
    "GoogleCloudErrorKind",
    "GoogleCloudStorageError",
    "StorageClient",
    "StorageError",
    "UNSUPPORTED_URL",
    "build_storage_client",
    "get_storage_client",
    "supports",
]
