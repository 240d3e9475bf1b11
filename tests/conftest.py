from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from cloudbucket.common.config import get_settings
from cloudbucket.infra.observability.metrics import set_metrics_enabled
from cloudbucket.infra.storage.aws_s3 import AWSClient, AWSConfig
from cloudbucket.infra.storage.factory import get_storage_client
from cloudbucket.infra.storage.google_cloud import GoogleCloudClient, GoogleCloudConfig
from tests.infra.fake_gcs import FakeGCSClient
from tests.infra.fake_s3 import FakeS3Client

_STORAGE_ENV_PREFIXES = ("STORAGE_", "S3_", "GCS_", "SIGNED_URL_", "LOG_", "ENABLE_METRICS")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep host configuration and cached clients out of every test."""
    for key in list(os.environ):
        if key.startswith(_STORAGE_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("cloudbucket.common.config.ENV_FILE", tmp_path / ".env")
    get_settings.cache_clear()  # type: ignore[attr-defined]
    get_storage_client.cache_clear()  # type: ignore[attr-defined]
    set_metrics_enabled(True)
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]
    get_storage_client.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture
def fake_s3():
    fake = FakeS3Client()
    fake.add_bucket("test-bucket")
    with patch.object(AWSClient, "_build_client", return_value=fake):
        yield fake


@pytest.fixture
def aws_client(fake_s3):
    return AWSClient(AWSConfig())


@pytest.fixture
def fake_gcs():
    fake = FakeGCSClient()
    fake.add_bucket("test-bucket")
    with patch.object(GoogleCloudClient, "_build_client", return_value=fake):
        yield fake


@pytest.fixture
def gcs_client(fake_gcs):
    return GoogleCloudClient(GoogleCloudConfig(project_id="test-project"))
