"""Prometheus metrics for the S3 Service Broker."""

from prometheus_client import Counter, Histogram

# Lifecycle operation metrics
operation_total = Counter(
    "s3_broker_operation_total",
    "Total number of broker lifecycle operations",
    ["operation", "result"],
)

operation_duration_seconds = Histogram(
    "s3_broker_operation_duration_seconds",
    "Duration of broker lifecycle operations in seconds",
    ["operation"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

error_total = Counter(
    "s3_broker_error_total",
    "Total number of failed broker operations by error type",
    ["operation", "error_type"],
)

# Backend API call metrics
api_call_total = Counter(
    "s3_broker_api_call_total",
    "Total number of backend API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "s3_broker_api_call_duration_seconds",
    "Duration of backend API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

# Bucket policy propagation retries
policy_apply_retries_total = Counter(
    "s3_broker_policy_apply_retries_total",
    "Total number of bucket policy applications retried after AccessDenied",
)

# Compensating rollback during provision and bind
rollback_total = Counter(
    "s3_broker_rollback_total",
    "Total number of rollback steps executed after a failed provision or bind",
    ["step", "result"],
)
