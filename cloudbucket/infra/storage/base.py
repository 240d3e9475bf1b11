"""Plumbing shared by the backend adapters."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, TypeVar

from cloudbucket.infra.observability.metrics import record_operation
from cloudbucket.infra.storage.client import Capability, max_results_error, range_error
from cloudbucket.infra.storage.errors import StorageError

logger = logging.getLogger("storage")

T = TypeVar("T")


class BackendAdapter:
    """Runs blocking SDK calls off the event loop and normalizes failures.

    Subclasses set ``backend``, ``capabilities`` and ``sdk_errors`` and
    implement ``_translate`` for exceptions matching ``sdk_errors`` and
    ``_invalid_argument`` for arguments refused locally. Anything else
    propagates untouched.
    """

    backend: str = ""
    capabilities: frozenset[Capability] = frozenset()
    sdk_errors: tuple[type[BaseException], ...] = ()

    def _translate(self, exc: BaseException, operation: str) -> StorageError:
        raise NotImplementedError

    def _invalid_argument(self, message: str, operation: str) -> StorageError:
        raise NotImplementedError

    def _check_range(
        self, operation: str, start: int | None, end: int | None, *, bucket: str, key: str
    ) -> None:
        message = range_error(start, end)
        if message is not None:
            raise self._reject(
                operation, self._invalid_argument(message, operation), bucket=bucket, key=key
            )

    def _check_max_results(
        self, operation: str, max_results: int | None, *, bucket: str | None = None
    ) -> None:
        message = max_results_error(max_results)
        if message is not None:
            raise self._reject(
                operation, self._invalid_argument(message, operation), bucket=bucket
            )

    async def _run(
        self,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        bucket: str | None = None,
        key: str | None = None,
        **kwargs: Any,
    ) -> T:
        start = time.perf_counter()
        try:
            result = await asyncio.to_thread(func, *args, **kwargs)
        except self.sdk_errors as exc:
            error = self._translate(exc, operation)
            self._log_failure(operation, error, start, bucket=bucket, key=key)
            raise error from exc

        elapsed = time.perf_counter() - start
        record_operation(self.backend, operation, "ok", elapsed)
        logger.debug(
            "storage_op backend=%s operation=%s bucket=%s key=%s duration_ms=%.3f",
            self.backend,
            operation,
            bucket or "-",
            key or "-",
            round(elapsed * 1000, 3),
            extra={
                "extra": {
                    "backend": self.backend,
                    "operation": operation,
                    "bucket": bucket,
                    "key": key,
                    "duration_ms": round(elapsed * 1000, 3),
                }
            },
        )
        return result

    def _reject(
        self,
        operation: str,
        error: StorageError,
        *,
        bucket: str | None = None,
        key: str | None = None,
    ) -> StorageError:
        """Account for a request refused before reaching the network."""
        self._log_failure(operation, error, time.perf_counter(), bucket=bucket, key=key)
        return error

    def _log_failure(
        self,
        operation: str,
        error: StorageError,
        start: float,
        *,
        bucket: str | None,
        key: str | None,
    ) -> None:
        elapsed = time.perf_counter() - start
        record_operation(self.backend, operation, error.kind.value, elapsed)
        logger.warning(
            "storage_error backend=%s operation=%s bucket=%s key=%s kind=%s "
            "retryable=%s duration_ms=%.3f message=%s",
            self.backend,
            operation,
            bucket or "-",
            key or "-",
            error.kind.value,
            error.retryable,
            round(elapsed * 1000, 3),
            error.message,
            extra={
                "extra": {
                    "backend": self.backend,
                    "operation": operation,
                    "bucket": bucket,
                    "key": key,
                    "kind": error.kind.value,
                    "retryable": error.retryable,
                    "duration_ms": round(elapsed * 1000, 3),
                }
            },
        )
