"""Google Cloud Storage adapter.

Dependencies:
    - google-cloud-storage
    - google-api-core
    - google-auth
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import google.auth
from google.api_core.exceptions import GoogleAPICallError
from google.auth.credentials import AnonymousCredentials, Credentials
from google.auth.exceptions import (
    DefaultCredentialsError,
    GoogleAuthError,
    TransportError,
)
from google.cloud import storage
from google.oauth2 import service_account
from requests import exceptions as requests_exceptions

from cloudbucket.common.config import ConfigurationError
from cloudbucket.domain.models import Bucket, StorageObject
from cloudbucket.infra.storage.base import BackendAdapter
from cloudbucket.infra.storage.client import Capability
from cloudbucket.infra.storage.errors import (
    ErrorItem,
    GoogleCloudError,
    GoogleCloudErrorKind,
    GoogleCloudStorageError,
)

if TYPE_CHECKING:
    from cloudbucket.common.config import Settings

STORAGE_SCOPES = ("https://www.googleapis.com/auth/devstorage.full_control",)

CAPABILITIES = frozenset(Capability)


class SignedURLFailure(Exception):
    """Raised inside worker threads when the credentials cannot sign a URL."""


def translate_google_error(exc: BaseException, operation: str) -> GoogleCloudStorageError:
    """Map a GCS client exception onto the GCS error enumeration.

    Only ``GoogleAPICallError`` carries a parsed service response. Auth
    failures other than transport errors (a refused token refresh, missing
    default credentials) are credential failures; anything else raised by
    the transport stack is an HTTP-level failure.
    """
    if isinstance(exc, SignedURLFailure):
        error = GoogleCloudError(kind=GoogleCloudErrorKind.SIGNED_URL, message=str(exc))
    elif isinstance(exc, GoogleAPICallError):
        error = GoogleCloudError(
            kind=GoogleCloudErrorKind.SERVICE,
            message=exc.message or str(exc),
            status=int(exc.code) if exc.code is not None else None,
            errors=tuple(_error_items(exc.errors)),
        )
    elif isinstance(exc, GoogleAuthError) and not isinstance(exc, TransportError):
        error = GoogleCloudError(kind=GoogleCloudErrorKind.CREDENTIALS, message=str(exc))
    else:
        error = GoogleCloudError(kind=GoogleCloudErrorKind.HTTP, message=str(exc))
    return GoogleCloudStorageError(error, operation=operation)


def _error_items(raw: Any) -> list[ErrorItem]:
    items = []
    for entry in raw or []:
        if isinstance(entry, dict):
            items.append(
                ErrorItem(
                    reason=entry.get("reason"),
                    message=entry.get("message"),
                    domain=entry.get("domain"),
                )
            )
        else:
            items.append(ErrorItem(message=str(entry)))
    return items


@dataclass(frozen=True, slots=True)
class GoogleCloudConfig:
    """Project and credentials for the GCS client.

    Use the constructors instead of building this directly; each resolves
    credentials eagerly so that misconfiguration fails at startup.
    """

    project_id: str
    credentials: Credentials | None = field(default=None, repr=False)
    endpoint_url: str | None = None
    signed_url_expires_in: int = 600

    @classmethod
    def anonymous(cls, project_id: str, **kwargs: Any) -> "GoogleCloudConfig":
        return cls(project_id=project_id, credentials=AnonymousCredentials(), **kwargs)

    @classmethod
    def standard_auth(cls, project_id: str, **kwargs: Any) -> "GoogleCloudConfig":
        """Use application default credentials."""
        try:
            credentials, _ = google.auth.default(scopes=STORAGE_SCOPES)
        except DefaultCredentialsError as exc:
            raise ConfigurationError(
                f"Application default credentials are unavailable: {exc}"
            ) from exc
        return cls(project_id=project_id, credentials=credentials, **kwargs)

    @classmethod
    def from_file(cls, project_id: str, path: str, **kwargs: Any) -> "GoogleCloudConfig":
        try:
            credentials = service_account.Credentials.from_service_account_file(
                path, scopes=STORAGE_SCOPES
            )
        except (OSError, ValueError) as exc:
            raise ConfigurationError(
                f"Cannot load service account file {path!r}: {exc}"
            ) from exc
        return cls(project_id=project_id, credentials=credentials, **kwargs)

    @classmethod
    def from_str(cls, project_id: str, text: str, **kwargs: Any) -> "GoogleCloudConfig":
        try:
            info = json.loads(text)
            credentials = service_account.Credentials.from_service_account_info(
                info, scopes=STORAGE_SCOPES
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid service account JSON: {exc}") from exc
        return cls(project_id=project_id, credentials=credentials, **kwargs)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "GoogleCloudConfig":
        if not settings.GCS_PROJECT_ID:
            raise ConfigurationError("GCS_PROJECT_ID is required for google_cloud")
        options = {
            "endpoint_url": settings.GCS_ENDPOINT_URL,
            "signed_url_expires_in": int(settings.SIGNED_URL_EXPIRES_IN),
        }
        if settings.GCS_ANONYMOUS:
            return cls.anonymous(settings.GCS_PROJECT_ID, **options)
        if settings.GCS_CREDENTIALS_FILE:
            return cls.from_file(
                settings.GCS_PROJECT_ID, settings.GCS_CREDENTIALS_FILE, **options
            )
        return cls.standard_auth(settings.GCS_PROJECT_ID, **options)


def _to_object(blob: Any) -> StorageObject:
    bucket_name = blob.bucket.name
    size = blob.size
    return StorageObject(
        id=blob.id or f"{bucket_name}/{blob.name}",
        name=blob.name,
        bucket_name=bucket_name,
        size=int(size) if size is not None else None,
        content_type=blob.content_type,
    )


def _to_bucket(bucket: Any) -> Bucket:
    return Bucket(id=bucket.id or bucket.name, name=bucket.name, location=bucket.location)


class GoogleCloudClient(BackendAdapter):
    """Google Cloud Storage client.

    Every contract operation maps to one JSON API request. Signed URLs are
    V4 URLs produced locally, or through IAM when the credentials carry no
    private key.
    """

    backend = "google_cloud"
    capabilities = CAPABILITIES
    sdk_errors = (
        GoogleAPICallError,
        GoogleAuthError,
        requests_exceptions.RequestException,
        SignedURLFailure,
    )

    def __init__(self, config: GoogleCloudConfig) -> None:
        self._config = config
        self._client = self._build_client(config)

    @staticmethod
    def _build_client(config: GoogleCloudConfig) -> Any:
        client_options = None
        if config.endpoint_url:
            client_options = {"api_endpoint": config.endpoint_url}
        return storage.Client(
            project=config.project_id,
            credentials=config.credentials,
            client_options=client_options,
        )

    @property
    def project_id(self) -> str:
        return self._config.project_id

    def _translate(self, exc: BaseException, operation: str) -> GoogleCloudStorageError:
        return translate_google_error(exc, operation)

    def _invalid_argument(self, message: str, operation: str) -> GoogleCloudStorageError:
        return GoogleCloudStorageError(
            GoogleCloudError(kind=GoogleCloudErrorKind.INVALID_PARAMETER, message=message),
            operation=operation,
        )

    def _blob(self, bucket: str, object_name: str) -> Any:
        return self._client.bucket(bucket).blob(object_name)

    async def static_download_object(
        self,
        bucket: str,
        object_name: str,
        start: int | None = None,
        end: int | None = None,
    ) -> bytes:
        self._check_range(
            "static_download_object", start, end, bucket=bucket, key=object_name
        )
        if start is None and end is not None:
            # a negative start is sent as the suffix range bytes=-N
            start, end = -end, None
        blob = self._blob(bucket, object_name)
        return await self._run(
            "static_download_object",
            blob.download_as_bytes,
            start=start,
            end=end,
            bucket=bucket,
            key=object_name,
        )

    async def static_upload_object(
        self, bucket: str, object_name: str, data: bytes
    ) -> StorageObject:
        blob = self._blob(bucket, object_name)
        await self._run(
            "static_upload_object",
            blob.upload_from_string,
            bytes(data),
            bucket=bucket,
            key=object_name,
        )
        return _to_object(blob)

    async def url_upload_object(self, bucket: str, object_name: str) -> str:
        return await self._signed_url("url_upload_object", bucket, object_name, "PUT")

    async def url_download_object(self, bucket: str, object_name: str) -> str:
        return await self._signed_url("url_download_object", bucket, object_name, "GET")

    async def _signed_url(
        self, operation: str, bucket: str, object_name: str, method: str
    ) -> str:
        blob = self._blob(bucket, object_name)
        expiration = timedelta(seconds=int(self._config.signed_url_expires_in))

        def sign() -> str:
            try:
                return blob.generate_signed_url(
                    version="v4", expiration=expiration, method=method
                )
            # AttributeError: credentials without a signer
            except (AttributeError, ValueError, TypeError, GoogleAuthError) as exc:
                raise SignedURLFailure(str(exc)) from exc

        url = await self._run(operation, sign, bucket=bucket, key=object_name)
        return str(url)

    async def remove_bucket(self, bucket: str) -> None:
        await self._run(
            "remove_bucket", self._client.bucket(bucket).delete, bucket=bucket
        )

    async def remove_object(self, bucket: str, object_name: str) -> None:
        await self._run(
            "remove_object",
            self._blob(bucket, object_name).delete,
            bucket=bucket,
            key=object_name,
        )

    async def create_bucket(self, bucket_name: str) -> Bucket:
        created = await self._run(
            "create_bucket",
            self._client.create_bucket,
            bucket_name,
            project=self._config.project_id,
            bucket=bucket_name,
        )
        return _to_bucket(created)

    async def copy_object(
        self,
        src_bucket: str,
        src_object: str,
        dest_bucket: str,
        dest_object: str,
    ) -> StorageObject:
        source = self._client.bucket(src_bucket)
        destination = self._client.bucket(dest_bucket)
        copied = await self._run(
            "copy_object",
            source.copy_blob,
            source.blob(src_object),
            destination,
            dest_object,
            bucket=dest_bucket,
            key=dest_object,
        )
        return _to_object(copied)

    async def list_buckets(self, max_results: int | None = None) -> list[Bucket]:
        self._check_max_results("list_buckets", max_results)

        def first_page() -> list[Any]:
            iterator = self._client.list_buckets(
                max_results=max_results, project=self._config.project_id
            )
            page = next(iterator.pages, None)
            return list(page) if page is not None else []

        items = await self._run("list_buckets", first_page)
        return [_to_bucket(item) for item in items]

    async def get_bucket(self, bucket_name: str) -> Bucket:
        found = await self._run(
            "get_bucket", self._client.get_bucket, bucket_name, bucket=bucket_name
        )
        return _to_bucket(found)

    async def get_object(self, bucket: str, object_name: str) -> StorageObject:
        blob = self._blob(bucket, object_name)
        await self._run("get_object", blob.reload, bucket=bucket, key=object_name)
        return _to_object(blob)

    async def list_objects(
        self, bucket: str, max_results: int | None = None
    ) -> list[StorageObject]:
        self._check_max_results("list_objects", max_results, bucket=bucket)

        def first_page() -> list[Any]:
            iterator = self._client.list_blobs(bucket, max_results=max_results)
            page = next(iterator.pages, None)
            return list(page) if page is not None else []

        items = await self._run("list_objects", first_page, bucket=bucket)
        return [_to_object(item) for item in items]
