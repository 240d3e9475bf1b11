"""Error taxonomy shared by every storage backend.

Each backend raises exactly one subclass of :class:`StorageError` carrying
that backend's own closed error enumeration in ``detail``. Callers branch on
the common :class:`ErrorKind` and can still inspect the backend payload.

This module does not import any provider SDK; translation from SDK
exceptions happens inside the adapters.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Backend-independent failure classes."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition_failed"
    INVALID_RANGE = "invalid_range"
    INVALID_REQUEST = "invalid_request"
    CREDENTIALS = "credentials"
    TRANSPORT = "transport"
    SIGNING = "signing"
    SERVICE = "service"


RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""

    backend: str = ""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.SERVICE

    @property
    def detail(self) -> object:
        return None

    @property
    def retryable(self) -> bool:
        """Whether repeating the same call may succeed.

        True for transport failures and throttling/server-side statuses only.
        """
        return False


# --- Amazon S3 ---------------------------------------------------------------


class AWSErrorKind(str, Enum):
    NO_SUCH_BUCKET = "NoSuchBucket"
    NO_SUCH_KEY = "NoSuchKey"
    NOT_FOUND = "NotFound"
    BUCKET_ALREADY_EXISTS = "BucketAlreadyExists"
    BUCKET_ALREADY_OWNED_BY_YOU = "BucketAlreadyOwnedByYou"
    BUCKET_NOT_EMPTY = "BucketNotEmpty"
    ACCESS_DENIED = "AccessDenied"
    INVALID_RANGE = "InvalidRange"
    PRECONDITION_FAILED = "PreconditionFailed"
    INVALID_OBJECT_STATE = "InvalidObjectState"
    INVALID_PARAMETER = "InvalidParameter"
    CROSS_BUCKET_COPY = "CrossBucketCopy"
    CREDENTIALS = "Credentials"
    TRANSPORT = "Transport"
    SERVICE = "Service"


_AWS_COMMON_KIND: dict[AWSErrorKind, ErrorKind] = {
    AWSErrorKind.NO_SUCH_BUCKET: ErrorKind.NOT_FOUND,
    AWSErrorKind.NO_SUCH_KEY: ErrorKind.NOT_FOUND,
    AWSErrorKind.NOT_FOUND: ErrorKind.NOT_FOUND,
    AWSErrorKind.BUCKET_ALREADY_EXISTS: ErrorKind.CONFLICT,
    AWSErrorKind.BUCKET_ALREADY_OWNED_BY_YOU: ErrorKind.CONFLICT,
    AWSErrorKind.BUCKET_NOT_EMPTY: ErrorKind.CONFLICT,
    AWSErrorKind.ACCESS_DENIED: ErrorKind.FORBIDDEN,
    AWSErrorKind.INVALID_RANGE: ErrorKind.INVALID_RANGE,
    AWSErrorKind.PRECONDITION_FAILED: ErrorKind.PRECONDITION_FAILED,
    AWSErrorKind.INVALID_OBJECT_STATE: ErrorKind.INVALID_REQUEST,
    AWSErrorKind.INVALID_PARAMETER: ErrorKind.INVALID_REQUEST,
    AWSErrorKind.CROSS_BUCKET_COPY: ErrorKind.INVALID_REQUEST,
    AWSErrorKind.CREDENTIALS: ErrorKind.CREDENTIALS,
    AWSErrorKind.TRANSPORT: ErrorKind.TRANSPORT,
    AWSErrorKind.SERVICE: ErrorKind.SERVICE,
}


@dataclass(frozen=True, slots=True)
class AWSError:
    """S3 failure payload.

    ``code``, ``status`` and ``request_id`` are only set when the service
    answered with a parseable error document.
    """

    kind: AWSErrorKind
    message: str
    code: str | None = None
    status: int | None = None
    request_id: str | None = None


class AWSStorageError(StorageError):
    """Failure raised by the S3 adapter."""

    backend = "aws_s3"

    def __init__(self, error: AWSError, *, operation: str | None = None) -> None:
        super().__init__(
            f"{self.backend} {operation or 'request'} failed: {error.message}",
            operation=operation,
        )
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return _AWS_COMMON_KIND[self.error.kind]

    @property
    def detail(self) -> AWSError:
        return self.error

    @property
    def retryable(self) -> bool:
        if self.error.kind is AWSErrorKind.TRANSPORT:
            return True
        return self.error.status in RETRYABLE_STATUS_CODES


# --- Google Cloud Storage ----------------------------------------------------


class GoogleCloudErrorKind(str, Enum):
    HTTP = "http"
    SERVICE = "service"
    SIGNED_URL = "signed_url"
    CREDENTIALS = "credentials"
    INVALID_PARAMETER = "invalid_parameter"


_GCS_STATUS_KIND: dict[int, ErrorKind] = {
    400: ErrorKind.INVALID_REQUEST,
    401: ErrorKind.CREDENTIALS,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    412: ErrorKind.PRECONDITION_FAILED,
    416: ErrorKind.INVALID_RANGE,
}


@dataclass(frozen=True, slots=True)
class ErrorItem:
    """One entry of the ``errors`` array in a GCS JSON error response."""

    reason: str | None = None
    message: str | None = None
    domain: str | None = None


@dataclass(frozen=True, slots=True)
class GoogleCloudError:
    """GCS failure payload.

    ``HTTP`` covers transport and structural failures where no service
    error document was parsed; ``SERVICE`` carries the parsed items.
    ``CREDENTIALS`` (rejected or missing credentials) and
    ``INVALID_PARAMETER`` (arguments refused locally) are not retryable.
    """

    kind: GoogleCloudErrorKind
    message: str
    status: int | None = None
    errors: tuple[ErrorItem, ...] = ()


class GoogleCloudStorageError(StorageError):
    """Failure raised by the Google Cloud Storage adapter."""

    backend = "google_cloud"

    def __init__(
        self, error: GoogleCloudError, *, operation: str | None = None
    ) -> None:
        super().__init__(
            f"{self.backend} {operation or 'request'} failed: {error.message}",
            operation=operation,
        )
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        if self.error.kind is GoogleCloudErrorKind.HTTP:
            return ErrorKind.TRANSPORT
        if self.error.kind is GoogleCloudErrorKind.SIGNED_URL:
            return ErrorKind.SIGNING
        if self.error.kind is GoogleCloudErrorKind.CREDENTIALS:
            return ErrorKind.CREDENTIALS
        if self.error.kind is GoogleCloudErrorKind.INVALID_PARAMETER:
            return ErrorKind.INVALID_REQUEST
        if self.error.status is None:
            return ErrorKind.SERVICE
        return _GCS_STATUS_KIND.get(self.error.status, ErrorKind.SERVICE)

    @property
    def detail(self) -> GoogleCloudError:
        return self.error

    @property
    def retryable(self) -> bool:
        if self.error.kind is GoogleCloudErrorKind.HTTP:
            return True
        return self.error.status in RETRYABLE_STATUS_CODES
