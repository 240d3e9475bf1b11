"""Tests for the S3 storage adapter."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import (
    EndpointConnectionError,
    NoCredentialsError,
    ParamValidationError,
)

from cloudbucket.domain.models import Bucket, StorageObject
from cloudbucket.infra.storage.aws_s3 import (
    AWSClient,
    AWSConfig,
    range_header,
    translate_aws_error,
)
from cloudbucket.infra.storage.client import UNSUPPORTED_URL, Capability
from cloudbucket.infra.storage.errors import AWSErrorKind, AWSStorageError, ErrorKind
from tests.infra.fake_s3 import client_error

FIXTURE = bytes(range(100))


class TestRangeHeader:
    """Test Range header encoding."""

    @pytest.mark.parametrize(
        ("start", "end", "expected"),
        [
            (10, 19, "bytes=10-19"),
            (10, None, "bytes=10-"),
            (None, 5, "bytes=-5"),
            (None, None, None),
        ],
    )
    def test_encoding(self, start, end, expected):
        assert range_header(start, end) == expected


class TestAWSClient:
    """Test AWSClient against an in-memory S3."""

    @pytest.mark.asyncio
    async def test_download_full_object(self, aws_client, fake_s3):
        fake_s3.buckets["test-bucket"]["data.bin"] = FIXTURE

        data = await aws_client.static_download_object("test-bucket", "data.bin")

        assert data == FIXTURE

    @pytest.mark.asyncio
    async def test_download_inclusive_range(self, aws_client, fake_s3):
        fake_s3.buckets["test-bucket"]["data.bin"] = FIXTURE

        data = await aws_client.static_download_object("test-bucket", "data.bin", 10, 19)

        assert len(data) == 10
        assert data == FIXTURE[10:20]

    @pytest.mark.asyncio
    async def test_download_from_start(self, aws_client, fake_s3):
        fake_s3.buckets["test-bucket"]["data.bin"] = FIXTURE

        data = await aws_client.static_download_object("test-bucket", "data.bin", start=90)

        assert data == FIXTURE[90:]

    @pytest.mark.asyncio
    async def test_download_end_only_is_suffix(self, aws_client, fake_s3):
        fake_s3.buckets["test-bucket"]["data.bin"] = FIXTURE

        data = await aws_client.static_download_object("test-bucket", "data.bin", end=5)

        assert data == FIXTURE[-5:]

    @pytest.mark.asyncio
    async def test_download_rejects_inverted_range(self, aws_client, fake_s3):
        with pytest.raises(AWSStorageError, match="must not exceed") as excinfo:
            await aws_client.static_download_object("test-bucket", "data.bin", 20, 10)

        assert excinfo.value.kind is ErrorKind.INVALID_REQUEST
        assert excinfo.value.detail.kind is AWSErrorKind.INVALID_PARAMETER
        assert excinfo.value.retryable is False
        assert fake_s3.calls == []

    @pytest.mark.asyncio
    async def test_download_rejects_zero_suffix(self, aws_client, fake_s3):
        with pytest.raises(AWSStorageError, match="suffix"):
            await aws_client.static_download_object("test-bucket", "data.bin", end=0)

        assert fake_s3.calls == []

    @pytest.mark.asyncio
    async def test_download_missing_key(self, aws_client):
        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.static_download_object("test-bucket", "missing")

        assert excinfo.value.kind is ErrorKind.NOT_FOUND
        assert excinfo.value.detail.kind is AWSErrorKind.NO_SUCH_KEY
        assert excinfo.value.detail.status == 404
        assert excinfo.value.operation == "static_download_object"

    @pytest.mark.asyncio
    async def test_download_missing_bucket(self, aws_client):
        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.static_download_object("nope", "data.bin")

        assert excinfo.value.detail.kind is AWSErrorKind.NO_SUCH_BUCKET

    @pytest.mark.asyncio
    async def test_download_unsatisfiable_range(self, aws_client, fake_s3):
        fake_s3.buckets["test-bucket"]["data.bin"] = FIXTURE

        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.static_download_object("test-bucket", "data.bin", 500, 600)

        assert excinfo.value.kind is ErrorKind.INVALID_RANGE

    @pytest.mark.asyncio
    async def test_upload_returns_etag_without_size_or_type(self, aws_client, fake_s3):
        result = await aws_client.static_upload_object("test-bucket", "a/b.txt", b"hello")

        assert isinstance(result, StorageObject)
        assert result.name == "a/b.txt"
        assert result.bucket_name == "test-bucket"
        assert result.id == "5d41402abc4b2a76b9719d911017c592"
        assert result.size is None
        assert result.content_type is None
        assert fake_s3.buckets["test-bucket"]["a/b.txt"] == b"hello"

    @pytest.mark.asyncio
    async def test_upload_overwrites(self, aws_client, fake_s3):
        first = await aws_client.static_upload_object("test-bucket", "k", b"one")
        second = await aws_client.static_upload_object("test-bucket", "k", b"two")

        assert first.id != second.id
        assert fake_s3.buckets["test-bucket"]["k"] == b"two"

    @pytest.mark.asyncio
    async def test_upload_url_is_unsupported(self, aws_client, fake_s3):
        url = await aws_client.url_upload_object("test-bucket", "k")

        assert url == UNSUPPORTED_URL == ""
        assert Capability.SIGNED_UPLOAD_URL not in aws_client.capabilities
        assert fake_s3.calls == []

    @pytest.mark.asyncio
    async def test_download_url_public_shape(self, aws_client, fake_s3):
        url = await aws_client.url_download_object("test-bucket", "dir/a file.txt")

        assert url == "https://test-bucket.s3.amazonaws.com/dir/a%20file.txt"
        assert Capability.SIGNED_DOWNLOAD_URL not in aws_client.capabilities
        assert fake_s3.calls == []

    @pytest.mark.asyncio
    async def test_download_url_with_custom_endpoint(self, fake_s3):
        client = AWSClient(AWSConfig(endpoint_url="http://localhost:9000/"))

        url = await client.url_download_object("test-bucket", "k.txt")

        assert url == "http://localhost:9000/test-bucket/k.txt"

    @pytest.mark.asyncio
    async def test_download_url_presigned(self, fake_s3):
        client = AWSClient(AWSConfig(presign_downloads=True, signed_url_expires_in=900))

        url = await client.url_download_object("test-bucket", "k.txt")

        assert url == "https://fake-s3.local/test-bucket/k.txt?X-Amz-Expires=900"
        assert Capability.SIGNED_DOWNLOAD_URL in client.capabilities

    @pytest.mark.asyncio
    async def test_create_bucket_default_region(self, aws_client, fake_s3):
        bucket = await aws_client.create_bucket("fresh")

        assert bucket == Bucket(id="fresh", name="fresh", location="us-east-1")
        assert fake_s3.regions["fresh"] is None

    @pytest.mark.asyncio
    async def test_create_bucket_sends_location_constraint(self, fake_s3):
        client = AWSClient(AWSConfig(region="eu-west-1"))

        bucket = await client.create_bucket("fresh")

        assert bucket.location == "eu-west-1"
        assert fake_s3.regions["fresh"] == "eu-west-1"

    @pytest.mark.asyncio
    async def test_create_bucket_conflict(self, aws_client):
        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.create_bucket("test-bucket")

        assert excinfo.value.kind is ErrorKind.CONFLICT
        assert excinfo.value.detail.kind is AWSErrorKind.BUCKET_ALREADY_OWNED_BY_YOU

    @pytest.mark.asyncio
    async def test_remove_bucket(self, aws_client, fake_s3):
        fake_s3.add_bucket("empty")

        await aws_client.remove_bucket("empty")

        assert "empty" not in fake_s3.buckets

    @pytest.mark.asyncio
    async def test_remove_bucket_not_empty(self, aws_client, fake_s3):
        fake_s3.buckets["test-bucket"]["k"] = b"x"

        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.remove_bucket("test-bucket")

        assert excinfo.value.detail.kind is AWSErrorKind.BUCKET_NOT_EMPTY
        assert excinfo.value.kind is ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_remove_missing_object_succeeds(self, aws_client, fake_s3):
        await aws_client.remove_object("test-bucket", "never-existed")

        assert fake_s3.calls == ["delete_object"]

    @pytest.mark.asyncio
    async def test_copy_within_bucket_reads_back_metadata(self, aws_client, fake_s3):
        fake_s3.buckets["test-bucket"]["src"] = FIXTURE

        copied = await aws_client.copy_object("test-bucket", "src", "test-bucket", "dst")

        assert copied.name == "dst"
        assert copied.bucket_name == "test-bucket"
        assert copied.size == 100
        assert copied.content_type == "binary/octet-stream"
        assert fake_s3.calls == ["copy_object", "head_object"]

    @pytest.mark.asyncio
    async def test_copy_across_buckets_rejected_before_network(self, aws_client, fake_s3):
        fake_s3.add_bucket("other")
        fake_s3.buckets["test-bucket"]["src"] = FIXTURE

        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.copy_object("test-bucket", "src", "other", "dst")

        assert fake_s3.calls == []
        assert excinfo.value.detail.kind is AWSErrorKind.CROSS_BUCKET_COPY
        assert excinfo.value.kind is ErrorKind.INVALID_REQUEST
        assert excinfo.value.retryable is False
        assert "other" in str(excinfo.value)
        assert Capability.CROSS_BUCKET_COPY not in aws_client.capabilities

    @pytest.mark.asyncio
    async def test_list_buckets(self, aws_client, fake_s3):
        fake_s3.add_bucket("eu", region="eu-west-1")

        buckets = await aws_client.list_buckets()

        assert [b.name for b in buckets] == ["test-bucket", "eu"]
        assert buckets[1].location == "eu-west-1"
        assert all(b.id == b.name for b in buckets)

    @pytest.mark.asyncio
    async def test_list_buckets_truncates_when_service_ignores_limit(self, aws_client, fake_s3):
        fake_s3.add_bucket("b1")
        fake_s3.add_bucket("b2")
        fake_s3.list_buckets = MagicMock(
            return_value={"Buckets": [{"Name": n} for n in ("a", "b", "c")]}
        )

        buckets = await aws_client.list_buckets(max_results=2)

        assert [b.name for b in buckets] == ["a", "b"]
        fake_s3.list_buckets.assert_called_once_with(MaxBuckets=2)

    @pytest.mark.asyncio
    async def test_list_buckets_rejects_non_positive_limit(self, aws_client, fake_s3):
        with pytest.raises(AWSStorageError, match="positive") as excinfo:
            await aws_client.list_buckets(max_results=0)

        assert excinfo.value.kind is ErrorKind.INVALID_REQUEST
        assert excinfo.value.operation == "list_buckets"
        assert fake_s3.calls == []

    @pytest.mark.asyncio
    async def test_list_objects_rejects_non_positive_limit(self, aws_client, fake_s3):
        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.list_objects("test-bucket", max_results=0)

        assert excinfo.value.detail.kind is AWSErrorKind.INVALID_PARAMETER
        assert fake_s3.calls == []

    @pytest.mark.asyncio
    async def test_get_bucket_reports_location(self, aws_client, fake_s3):
        fake_s3.add_bucket("eu", region="eu-west-1")

        assert (await aws_client.get_bucket("eu")).location == "eu-west-1"
        assert (await aws_client.get_bucket("test-bucket")).location == "us-east-1"

    @pytest.mark.asyncio
    async def test_get_bucket_missing(self, aws_client):
        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.get_bucket("missing")

        assert excinfo.value.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_get_object_uses_head(self, aws_client, fake_s3):
        fake_s3.buckets["test-bucket"]["data.bin"] = FIXTURE

        obj = await aws_client.get_object("test-bucket", "data.bin")

        assert obj.name == "data.bin"
        assert obj.bucket_name == "test-bucket"
        assert obj.size == 100
        assert obj.id and '"' not in obj.id
        assert fake_s3.calls == ["head_object"]

    @pytest.mark.asyncio
    async def test_get_object_missing_maps_bare_status_code(self, aws_client):
        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.get_object("test-bucket", "missing")

        assert excinfo.value.detail.kind is AWSErrorKind.NOT_FOUND
        assert excinfo.value.detail.code == "404"
        assert excinfo.value.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_objects(self, aws_client, fake_s3):
        for key in ("b", "a", "c"):
            fake_s3.buckets["test-bucket"][key] = key.encode()

        objects = await aws_client.list_objects("test-bucket", max_results=2)

        assert [o.name for o in objects] == ["a", "b"]
        assert objects[0].size == 1
        assert objects[0].content_type is None


class TestAWSClientConstruction:
    """Test boto3 client construction."""

    def test_build_client_from_config(self):
        with patch("cloudbucket.infra.storage.aws_s3.boto3.client") as factory:
            AWSClient(
                AWSConfig(
                    region="eu-central-1",
                    endpoint_url="http://localhost:9000",
                    access_key_id="key",
                    secret_access_key="secret",
                    use_ssl=False,
                    addressing_style="path",
                )
            )

        args, kwargs = factory.call_args
        assert args == ("s3",)
        assert kwargs["endpoint_url"] == "http://localhost:9000"
        assert kwargs["region_name"] == "eu-central-1"
        assert kwargs["aws_access_key_id"] == "key"
        assert kwargs["aws_secret_access_key"] == "secret"
        assert kwargs["use_ssl"] is False
        assert kwargs["config"].s3 == {"addressing_style": "path"}

    def test_config_hides_secrets_in_repr(self):
        config = AWSConfig(access_key_id="key", secret_access_key="very-secret")

        assert "very-secret" not in repr(config)


class TestTranslateAWSError:
    """Test botocore exception mapping."""

    def test_service_error_keeps_response_details(self):
        error = translate_aws_error(
            client_error("AccessDenied", "Access Denied", 403, "GetObject"), "get_object"
        )

        assert error.detail.kind is AWSErrorKind.ACCESS_DENIED
        assert error.detail.code == "AccessDenied"
        assert error.detail.request_id == "req-test"
        assert error.kind is ErrorKind.FORBIDDEN
        assert error.backend == "aws_s3"
        assert error.retryable is False

    def test_unknown_code_falls_back_to_status(self):
        error = translate_aws_error(
            client_error("SomethingNew", "?", 412, "GetObject"), "get_object"
        )

        assert error.detail.kind is AWSErrorKind.PRECONDITION_FAILED

    def test_throttling_is_retryable(self):
        error = translate_aws_error(
            client_error("SlowDown", "Please reduce your request rate.", 503, "PutObject"),
            "static_upload_object",
        )

        assert error.detail.kind is AWSErrorKind.SERVICE
        assert error.retryable is True

    def test_transport_failure_is_distinct_from_service_error(self):
        error = translate_aws_error(
            EndpointConnectionError(endpoint_url="https://s3.amazonaws.com"), "list_buckets"
        )

        assert error.detail.kind is AWSErrorKind.TRANSPORT
        assert error.detail.status is None
        assert error.kind is ErrorKind.TRANSPORT
        assert error.retryable is True

    def test_missing_credentials(self):
        error = translate_aws_error(NoCredentialsError(), "list_buckets")

        assert error.kind is ErrorKind.CREDENTIALS
        assert error.retryable is False

    def test_parameter_validation(self):
        error = translate_aws_error(
            ParamValidationError(report="Invalid bucket name"), "get_bucket"
        )

        assert error.detail.kind is AWSErrorKind.INVALID_PARAMETER
        assert error.kind is ErrorKind.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_adapter_chains_original_exception(self, aws_client, fake_s3):
        cause = EndpointConnectionError(endpoint_url="https://s3.amazonaws.com")
        fake_s3.list_buckets = MagicMock(side_effect=cause)

        with pytest.raises(AWSStorageError) as excinfo:
            await aws_client.list_buckets()

        assert excinfo.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_non_sdk_errors_propagate_untouched(self, aws_client, fake_s3):
        fake_s3.list_buckets = MagicMock(side_effect=KeyError("Buckets"))

        with pytest.raises(KeyError):
            await aws_client.list_buckets()
