"""Builder for boto3 S3 and IAM clients."""

from __future__ import annotations

import logging
from typing import Any

import boto3

from ..config import S3Config
from ..constants import PROVIDER_MINIO

logger = logging.getLogger(__name__)


def _endpoint_url(endpoint: str, insecure: bool) -> str | None:
    if not endpoint:
        return None
    if "://" in endpoint:
        return endpoint
    return f"{'http' if insecure else 'https'}://{endpoint}"


def create_clients(s3_config: S3Config) -> tuple[Any, Any]:
    """Create the S3 and IAM clients for the configured provider.

    Credentials come from the default boto3 chain (environment, shared
    config or instance role).

    Args:
        s3_config: S3 settings

    Returns:
        Tuple of (s3 client, iam client)
    """
    minio = s3_config.provider == PROVIDER_MINIO
    endpoint_url = _endpoint_url(s3_config.endpoint, s3_config.insecure_skip_verify) if minio else None
    if endpoint_url:
        logger.info(f"Using alternate endpoint: {endpoint_url}")

    config = boto3.session.Config(
        signature_version="s3v4",
        s3={"addressing_style": "path" if minio else "auto"},
    )
    verify = not s3_config.insecure_skip_verify

    s3_client = boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        region_name=s3_config.region,
        config=config,
        verify=verify,
    )
    iam_client = boto3.client(
        "iam",
        endpoint_url=endpoint_url,
        region_name=s3_config.region,
        config=config,
        verify=verify,
    )
    return s3_client, iam_client
