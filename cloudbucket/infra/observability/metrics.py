from prometheus_client import Counter, Histogram

# 低基数标签：只使用后端与操作名，桶名与对象键不进入标签
OPERATIONS = Counter(
    "storage_operations_total",
    "Total storage operations",
    ["backend", "operation", "outcome"],
)

LATENCY = Histogram(
    "storage_operation_duration_seconds",
    "Storage operation latency in seconds",
    ["backend", "operation"],
)

_enabled = True


def set_metrics_enabled(enabled: bool) -> None:
    global _enabled
    _enabled = enabled


def record_operation(backend: str, operation: str, outcome: str, elapsed: float) -> None:
    if not _enabled:
        return
    OPERATIONS.labels(backend, operation, outcome).inc()
    LATENCY.labels(backend, operation).observe(elapsed)
