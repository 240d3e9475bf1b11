"""Amazon S3 storage adapter.

Works with AWS S3 and S3-compatible services (MinIO and similar) through
boto3. The boto3 client is built once and shared by all calls; blocking
calls run in worker threads.

S3 specifics surfaced through the contract:
    - copies are limited to a single bucket and are followed by a metadata
      read, so ``copy_object`` costs two requests;
    - there is no upload URL, ``url_upload_object`` returns ``UNSUPPORTED_URL``;
    - download URLs use the public URL shape unless presigning is enabled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    ParamValidationError,
    PartialCredentialsError,
)

from cloudbucket.domain.models import Bucket, StorageObject
from cloudbucket.infra.storage.base import BackendAdapter
from cloudbucket.infra.storage.client import (
    UNSUPPORTED_URL,
    Capability,
)
from cloudbucket.infra.storage.errors import AWSError, AWSErrorKind, AWSStorageError

if TYPE_CHECKING:
    from cloudbucket.common.config import Settings

DEFAULT_REGION = "us-east-1"

_CODE_KINDS: dict[str, AWSErrorKind] = {
    "NoSuchBucket": AWSErrorKind.NO_SUCH_BUCKET,
    "NoSuchKey": AWSErrorKind.NO_SUCH_KEY,
    "NotFound": AWSErrorKind.NOT_FOUND,
    "404": AWSErrorKind.NOT_FOUND,
    "BucketAlreadyExists": AWSErrorKind.BUCKET_ALREADY_EXISTS,
    "BucketAlreadyOwnedByYou": AWSErrorKind.BUCKET_ALREADY_OWNED_BY_YOU,
    "BucketNotEmpty": AWSErrorKind.BUCKET_NOT_EMPTY,
    "AccessDenied": AWSErrorKind.ACCESS_DENIED,
    "Forbidden": AWSErrorKind.ACCESS_DENIED,
    "403": AWSErrorKind.ACCESS_DENIED,
    "InvalidRange": AWSErrorKind.INVALID_RANGE,
    "PreconditionFailed": AWSErrorKind.PRECONDITION_FAILED,
    "412": AWSErrorKind.PRECONDITION_FAILED,
    "InvalidObjectState": AWSErrorKind.INVALID_OBJECT_STATE,
}

_STATUS_KINDS: dict[int, AWSErrorKind] = {
    403: AWSErrorKind.ACCESS_DENIED,
    404: AWSErrorKind.NOT_FOUND,
    412: AWSErrorKind.PRECONDITION_FAILED,
    416: AWSErrorKind.INVALID_RANGE,
}

BASE_CAPABILITIES = frozenset(
    {
        Capability.DOWNLOAD,
        Capability.UPLOAD,
        Capability.COPY,
        Capability.DELETE,
        Capability.LIST,
        Capability.GET,
        Capability.CREATE,
    }
)


def translate_aws_error(exc: BaseException, operation: str) -> AWSStorageError:
    """Map a botocore exception onto the S3 error enumeration.

    ``ClientError`` means the service answered with an error document;
    every other ``BotoCoreError`` is a structural or transport failure.
    """
    if isinstance(exc, ClientError):
        error = exc.response.get("Error") or {}
        metadata = exc.response.get("ResponseMetadata") or {}
        code = str(error.get("Code") or "") or None
        status = metadata.get("HTTPStatusCode")
        kind = _CODE_KINDS.get(code or "")
        if kind is None:
            kind = _STATUS_KINDS.get(status, AWSErrorKind.SERVICE)
        return AWSStorageError(
            AWSError(
                kind=kind,
                message=str(error.get("Message") or exc),
                code=code,
                status=status,
                request_id=metadata.get("RequestId"),
            ),
            operation=operation,
        )
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        kind = AWSErrorKind.CREDENTIALS
    elif isinstance(exc, ParamValidationError):
        kind = AWSErrorKind.INVALID_PARAMETER
    else:
        kind = AWSErrorKind.TRANSPORT
    return AWSStorageError(AWSError(kind=kind, message=str(exc)), operation=operation)


def range_header(start: int | None, end: int | None) -> str | None:
    """Encode an HTTP ``Range`` header; ``end`` alone is a suffix length."""
    if start is not None and end is not None:
        return f"bytes={start}-{end}"
    if start is not None:
        return f"bytes={start}-"
    if end is not None:
        return f"bytes=-{end}"
    return None


def _strip_etag(etag: str | None) -> str | None:
    if not etag:
        return None
    return etag.strip('"')


@dataclass(frozen=True, slots=True)
class AWSConfig:
    """Connection parameters for the boto3 S3 client."""

    region: str = DEFAULT_REGION
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = field(default=None, repr=False)
    session_token: str | None = field(default=None, repr=False)
    use_ssl: bool = True
    addressing_style: str = "auto"
    presign_downloads: bool = False
    signed_url_expires_in: int = 600

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AWSConfig":
        return cls(
            region=settings.S3_REGION or DEFAULT_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
            access_key_id=settings.S3_ACCESS_KEY_ID,
            secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            session_token=settings.S3_SESSION_TOKEN,
            use_ssl=bool(settings.S3_USE_SSL),
            addressing_style=settings.S3_ADDRESSING_STYLE,
            presign_downloads=bool(settings.S3_PRESIGN_DOWNLOADS),
            signed_url_expires_in=int(settings.SIGNED_URL_EXPIRES_IN),
        )


class AWSClient(BackendAdapter):
    """S3-compatible object storage client.

    Supports AWS S3, MinIO, and other S3-compatible services.
    Uses boto3 for all storage operations.
    """

    backend = "aws_s3"
    sdk_errors = (BotoCoreError, ClientError)

    def __init__(self, config: AWSConfig | None = None) -> None:
        self._config = config or AWSConfig()
        self._client = self._build_client(self._config)
        capabilities = set(BASE_CAPABILITIES)
        if self._config.presign_downloads:
            capabilities.add(Capability.SIGNED_DOWNLOAD_URL)
        self.capabilities = frozenset(capabilities)

    @staticmethod
    def _build_client(config: AWSConfig) -> Any:
        """Create a boto3 S3 client from the configuration."""
        boto_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": config.addressing_style},
        )
        return boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            region_name=config.region,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            aws_session_token=config.session_token,
            use_ssl=config.use_ssl,
            config=boto_config,
        )

    @property
    def config(self) -> AWSConfig:
        return self._config

    def _translate(self, exc: BaseException, operation: str) -> AWSStorageError:
        return translate_aws_error(exc, operation)

    def _invalid_argument(self, message: str, operation: str) -> AWSStorageError:
        return AWSStorageError(
            AWSError(kind=AWSErrorKind.INVALID_PARAMETER, message=message),
            operation=operation,
        )

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
        params: dict[str, Any] = {"Bucket": bucket, "Key": object_name}
        header = range_header(start, end)
        if header:
            params["Range"] = header

        def download() -> bytes:
            response = self._client.get_object(**params)
            body = response["Body"]
            try:
                return body.read()
            finally:
                body.close()

        return await self._run(
            "static_download_object", download, bucket=bucket, key=object_name
        )

    async def static_upload_object(
        self, bucket: str, object_name: str, data: bytes
    ) -> StorageObject:
        """Upload an object.

        The put response carries neither the content type nor, outside
        directory buckets, the size; both come back as ``None``.
        """
        response = await self._run(
            "static_upload_object",
            self._client.put_object,
            Bucket=bucket,
            Key=object_name,
            Body=bytes(data),
            bucket=bucket,
            key=object_name,
        )
        size = response.get("Size")
        return StorageObject(
            id=_strip_etag(response.get("ETag")) or object_name,
            name=object_name,
            bucket_name=bucket,
            size=int(size) if size is not None else None,
            content_type=None,
        )

    async def url_upload_object(self, bucket: str, object_name: str) -> str:
        return UNSUPPORTED_URL

    async def url_download_object(self, bucket: str, object_name: str) -> str:
        if self._config.presign_downloads:
            url = await self._run(
                "url_download_object",
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": bucket, "Key": object_name},
                ExpiresIn=int(self._config.signed_url_expires_in),
                bucket=bucket,
                key=object_name,
            )
            return str(url)
        return self.public_url(bucket, object_name)

    def public_url(self, bucket: str, object_name: str) -> str:
        key = quote(object_name, safe="/~")
        if self._config.endpoint_url:
            return f"{self._config.endpoint_url.rstrip('/')}/{bucket}/{key}"
        return f"https://{bucket}.s3.amazonaws.com/{key}"

    async def remove_bucket(self, bucket: str) -> None:
        await self._run(
            "remove_bucket", self._client.delete_bucket, Bucket=bucket, bucket=bucket
        )

    async def remove_object(self, bucket: str, object_name: str) -> None:
        await self._run(
            "remove_object",
            self._client.delete_object,
            Bucket=bucket,
            Key=object_name,
            bucket=bucket,
            key=object_name,
        )

    async def create_bucket(self, bucket_name: str) -> Bucket:
        region = self._config.region or DEFAULT_REGION
        params: dict[str, Any] = {"Bucket": bucket_name}
        # us-east-1 rejects an explicit location constraint
        if region != DEFAULT_REGION:
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}
        await self._run(
            "create_bucket", self._client.create_bucket, bucket=bucket_name, **params
        )
        return Bucket(id=bucket_name, name=bucket_name, location=region)

    async def copy_object(
        self,
        src_bucket: str,
        src_object: str,
        dest_bucket: str,
        dest_object: str,
    ) -> StorageObject:
        """Copy an object within one bucket.

        Cross-bucket requests are refused before any request is sent. The
        copy response lacks size and content type, so the destination is
        read back with a second request.
        """
        if src_bucket != dest_bucket:
            raise self._reject(
                "copy_object",
                AWSStorageError(
                    AWSError(
                        kind=AWSErrorKind.CROSS_BUCKET_COPY,
                        message=(
                            "source and destination buckets must be the same on "
                            f"S3 (got {src_bucket!r} and {dest_bucket!r})"
                        ),
                    ),
                    operation="copy_object",
                ),
                bucket=src_bucket,
                key=src_object,
            )
        await self._run(
            "copy_object",
            self._client.copy_object,
            Bucket=dest_bucket,
            Key=dest_object,
            CopySource={"Bucket": src_bucket, "Key": src_object},
            bucket=dest_bucket,
            key=dest_object,
        )
        return await self.get_object(dest_bucket, dest_object)

    async def list_buckets(self, max_results: int | None = None) -> list[Bucket]:
        self._check_max_results("list_buckets", max_results)
        params: dict[str, Any] = {}
        if max_results is not None:
            params["MaxBuckets"] = int(max_results)
        response = await self._run("list_buckets", self._client.list_buckets, **params)
        buckets = [
            Bucket(id=item["Name"], name=item["Name"], location=item.get("BucketRegion"))
            for item in response.get("Buckets") or []
        ]
        # S3-compatible services may ignore MaxBuckets
        return buckets[:max_results] if max_results is not None else buckets

    async def get_bucket(self, bucket_name: str) -> Bucket:
        response = await self._run(
            "get_bucket",
            self._client.get_bucket_location,
            Bucket=bucket_name,
            bucket=bucket_name,
        )
        location = response.get("LocationConstraint") or DEFAULT_REGION
        return Bucket(id=bucket_name, name=bucket_name, location=location)

    async def get_object(self, bucket: str, object_name: str) -> StorageObject:
        response = await self._run(
            "get_object",
            self._client.head_object,
            Bucket=bucket,
            Key=object_name,
            bucket=bucket,
            key=object_name,
        )
        size = response.get("ContentLength")
        return StorageObject(
            id=_strip_etag(response.get("ETag")) or object_name,
            name=object_name,
            bucket_name=bucket,
            size=int(size) if size is not None else None,
            content_type=response.get("ContentType"),
        )

    async def list_objects(
        self, bucket: str, max_results: int | None = None
    ) -> list[StorageObject]:
        self._check_max_results("list_objects", max_results, bucket=bucket)
        params: dict[str, Any] = {"Bucket": bucket}
        if max_results is not None:
            params["MaxKeys"] = int(max_results)
        response = await self._run(
            "list_objects", self._client.list_objects_v2, bucket=bucket, **params
        )
        objects = [
            StorageObject(
                id=_strip_etag(item.get("ETag")) or item["Key"],
                name=item["Key"],
                bucket_name=bucket,
                size=int(item["Size"]) if item.get("Size") is not None else None,
                content_type=None,
            )
            for item in response.get("Contents") or []
        ]
        return objects[:max_results] if max_results is not None else objects
