"""Backend selection from explicit configuration."""

from __future__ import annotations

import logging
from functools import lru_cache

from cloudbucket.common.config import ConfigurationError, Settings, get_settings
from cloudbucket.infra.observability.metrics import set_metrics_enabled
from cloudbucket.infra.storage.client import StorageClient

logger = logging.getLogger("cloudbucket.factory")


def build_storage_client(settings: Settings) -> StorageClient:
    """Construct the adapter named by ``settings.STORAGE_BACKEND``.

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured.
    """
    set_metrics_enabled(settings.ENABLE_METRICS)
    backend = settings.STORAGE_BACKEND
    if backend == "aws_s3":
        from cloudbucket.infra.storage.aws_s3 import AWSClient, AWSConfig

        client: StorageClient = AWSClient(AWSConfig.from_settings(settings))
    elif backend == "google_cloud":
        from cloudbucket.infra.storage.google_cloud import (
            GoogleCloudClient,
            GoogleCloudConfig,
        )

        client = GoogleCloudClient(GoogleCloudConfig.from_settings(settings))
    else:
        raise ConfigurationError(f"Unsupported storage backend: {backend!r}")

    logger.info(
        "storage client ready backend=%s",
        backend,
        extra={"extra": {"backend": backend}},
    )
    return client


@lru_cache(maxsize=1)
def get_storage_client() -> StorageClient:
    return build_storage_client(get_settings())
