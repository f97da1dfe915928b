"""AWS S3 bucket store implementation."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from botocore.exceptions import ClientError

from ... import metrics
from ...constants import (
    DEFAULT_POLICY_RETRY_DELAY,
    DEFAULT_REGION,
    DELETE_OBJECTS_BATCH_SIZE,
    LEGACY_EU_LOCATION,
    LEGACY_EU_REGION,
    POLICY_APPLY_MAX_ATTEMPTS,
    PROVIDER_MINIO,
)
from ...errors import (
    AccessDeniedError,
    BackendError,
    BatchDeleteError,
    PolicyDocumentError,
    classify_client_error,
    classify_error_code,
    is_access_denied,
    is_batch_missing_only,
)
from ...policy import render_bucket_policy, requires_public_access
from .models import ResourceDetails

logger = logging.getLogger(__name__)


class S3ResourceStore:
    """Bucket store backed by a boto3 S3 client."""

    def __init__(
        self,
        client: Any,
        provider: str = "aws",
        endpoint: str = "",
        policy_retry_delay: float = DEFAULT_POLICY_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the bucket store.

        Args:
            client: boto3 S3 client
            provider: Storage provider ("aws" or "minio")
            endpoint: Endpoint reported to applications for the minio provider
            policy_retry_delay: Seconds to wait between bucket policy attempts
            sleep: Sleep function, replaced in tests
        """
        self.client = client
        self.provider = provider
        self.endpoint = endpoint
        self.policy_retry_delay = policy_retry_delay
        self._sleep = sleep

    def _call(self, operation: str, bucket: str, **kwargs: Any) -> dict[str, Any]:
        """Invoke an S3 API call, recording metrics and classifying failures."""
        start_time = time.time()
        try:
            response = getattr(self.client, operation)(**kwargs)
        except ClientError as e:
            metrics.api_call_total.labels(api_type="s3", operation=operation, result="failure").inc()
            logger.error(f"S3 {operation} failed for bucket {bucket}: {e}")
            raise classify_client_error(e) from e
        finally:
            metrics.api_call_duration_seconds.labels(api_type="s3", operation=operation).observe(
                time.time() - start_time
            )
        metrics.api_call_total.labels(api_type="s3", operation=operation, result="success").inc()
        return response or {}

    def endpoint_for(self, region: str) -> str:
        """Endpoint applications should use for a bucket in region."""
        if self.provider == PROVIDER_MINIO:
            return self.endpoint
        return f"s3-fips.{region}.amazonaws.com"

    def describe(self, name: str, partition: str) -> ResourceDetails:
        """Describe an existing bucket.

        Raises:
            ResourceMissingError: If the bucket does not exist
        """
        response = self._call("get_bucket_location", name, Bucket=name)
        region = response.get("LocationConstraint") or DEFAULT_REGION
        if region == LEGACY_EU_LOCATION:
            region = LEGACY_EU_REGION

        return ResourceDetails(
            bucket_name=name,
            arn=f"arn:{partition}:s3:::{name}",
            region=region,
            partition=partition,
            endpoint=self.endpoint_for(region),
        )

    def create(self, name: str, details: ResourceDetails) -> str:
        """Create a bucket and apply its tags, encryption and policy.

        The policy is checked before the bucket is created, so a policy the
        broker cannot inspect fails without leaving anything behind.

        Args:
            name: Bucket name
            details: Desired bucket state

        Returns:
            Location reported by the backend
        """
        policy = ""
        public = False
        if details.policy:
            policy = render_bucket_policy(details.policy, name, details.partition)
            public = requires_public_access(policy)

        create_params: dict[str, Any] = {"Bucket": name}
        if details.region and details.region != DEFAULT_REGION:
            create_params["CreateBucketConfiguration"] = {"LocationConstraint": details.region}
        if details.object_ownership:
            create_params["ObjectOwnership"] = details.object_ownership

        logger.info(f"Creating bucket {name}")
        response = self._call("create_bucket", name, **create_params)

        try:
            self.apply_tagging(name, details.tags)
            if details.encryption:
                self.apply_encryption(name, details.encryption)
            if public:
                self.remove_public_access_guard(name)
            if policy:
                self.apply_policy(name, policy)
        except Exception:
            self._discard(name)
            raise

        logger.info(f"Successfully created bucket {name}")
        return str(response.get("Location", ""))

    def _discard(self, name: str) -> None:
        """Delete a bucket whose configuration failed. Failures are logged, never raised."""
        logger.warning(f"Configuring bucket {name} failed, deleting it")
        try:
            self._call("delete_bucket", name, Bucket=name)
            metrics.rollback_total.labels(step="delete_bucket", result="success").inc()
        except Exception as e:
            metrics.rollback_total.labels(step="delete_bucket", result="failure").inc()
            logger.warning(f"Failed to delete bucket {name} after a failed create: {e}")

    def apply_tagging(self, name: str, tags: dict[str, str]) -> None:
        tag_set = [{"Key": k, "Value": v} for k, v in tags.items()]
        self._call("put_bucket_tagging", name, Bucket=name, Tagging={"TagSet": tag_set})

    def get_tags(self, name: str) -> dict[str, str]:
        """Get bucket tags, empty if none are set."""
        try:
            response = self.client.get_bucket_tagging(Bucket=name)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "NoSuchTagSet":
                return {}
            logger.error(f"Failed to get tags for bucket {name}: {e}")
            raise classify_client_error(e) from e
        return {tag["Key"]: tag["Value"] for tag in response.get("TagSet", [])}

    def apply_encryption(self, name: str, encryption: str) -> None:
        """Apply a ServerSideEncryptionConfiguration given as JSON."""
        try:
            encryption_config = json.loads(encryption)
        except ValueError as e:
            raise PolicyDocumentError(f"Invalid encryption configuration: {e}") from e
        self._call(
            "put_bucket_encryption",
            name,
            Bucket=name,
            ServerSideEncryptionConfiguration=encryption_config,
        )

    def apply_policy(self, name: str, policy: str) -> None:
        """Apply a bucket policy, retrying while principals propagate.

        Policies that reference a freshly created principal are rejected with
        AccessDenied until the principal becomes visible to S3. Only that
        error is retried, up to POLICY_APPLY_MAX_ATTEMPTS calls in total.

        Raises:
            AccessDeniedError: The last AccessDenied once attempts are exhausted
            BackendError: Any other failure, on first occurrence
        """
        for attempt in range(1, POLICY_APPLY_MAX_ATTEMPTS + 1):
            try:
                self._call("put_bucket_policy", name, Bucket=name, Policy=policy)
                return
            except AccessDeniedError:
                if attempt == POLICY_APPLY_MAX_ATTEMPTS:
                    logger.error(f"Giving up applying policy to bucket {name} after {attempt} attempts")
                    raise
                metrics.policy_apply_retries_total.inc()
                logger.warning(
                    f"AccessDenied applying policy to bucket {name} "
                    f"(attempt {attempt}/{POLICY_APPLY_MAX_ATTEMPTS}), retrying"
                )
                if self.policy_retry_delay:
                    self._sleep(self.policy_retry_delay)

    def remove_public_access_guard(self, name: str) -> None:
        """Delete the public access block S3 puts on every new bucket."""
        logger.info(f"Deleting public access block for bucket {name}")
        self._call("delete_public_access_block", name, Bucket=name)

    def list_buckets(self, prefix: str = "") -> list[str]:
        response = self._call("list_buckets", "*")
        names = [bucket["Name"] for bucket in response.get("Buckets", [])]
        return [n for n in names if n.startswith(prefix)]

    def purge(self, name: str) -> None:
        """Delete every object in a bucket.

        Raises:
            BatchDeleteError: If any object could not be deleted
        """
        logger.info(f"Emptying bucket {name}")
        failures: list[BackendError] = []
        batch: list[dict[str, str]] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=name):
                for obj in page.get("Contents", []):
                    batch.append({"Key": obj["Key"]})
                    if len(batch) == DELETE_OBJECTS_BATCH_SIZE:
                        failures.extend(self._delete_batch(name, batch))
                        batch = []
            if batch:
                failures.extend(self._delete_batch(name, batch))
        except ClientError as e:
            logger.error(f"Failed to empty bucket {name}: {e}")
            raise classify_client_error(e) from e

        if failures:
            raise BatchDeleteError(
                "BatchedDeleteIncomplete",
                f"failed to delete {len(failures)} objects from bucket {name}",
                failures,
            )

    def _delete_batch(self, name: str, batch: list[dict[str, str]]) -> list[BackendError]:
        response = self.client.delete_objects(Bucket=name, Delete={"Objects": batch, "Quiet": True})
        errors = response.get("Errors", [])
        for error in errors:
            logger.warning(f"Failed to delete object {error.get('Key')}: {error.get('Code')}")
        return [classify_error_code(str(error.get("Code", "")), str(error.get("Message", ""))) for error in errors]

    def delete(self, name: str, purge_contents: bool = False) -> None:
        """Delete a bucket.

        Args:
            name: Bucket name
            purge_contents: If True, delete every object before the bucket

        Raises:
            ResourceMissingError: If the bucket does not exist
            BatchDeleteError: If the purge failed for objects that still exist
        """
        if purge_contents:
            try:
                self.purge(name)
            except BatchDeleteError as e:
                if not is_batch_missing_only(e):
                    raise
                logger.info(f"Objects in bucket {name} were already gone")

        self._call("delete_bucket", name, Bucket=name)
        logger.info(f"Successfully deleted bucket {name}")

    def test_connectivity(self) -> bool:
        """Test connectivity to the backend."""
        try:
            self.client.list_buckets()
            return True
        except Exception as e:
            if is_access_denied(e):
                # Reachable but lacking ListAllMyBuckets
                return True
            logger.error(f"Connectivity test failed: {e}")
            return False
