"""AWS IAM identity store implementation."""

from __future__ import annotations

import logging
import time
from typing import Any

from botocore.exceptions import ClientError

from ... import metrics
from ...errors import classify_client_error
from ...policy import render_iam_policy

logger = logging.getLogger(__name__)


def _tag_list(tags: dict[str, str]) -> list[dict[str, str]]:
    return [{"Key": k, "Value": v} for k, v in tags.items()]


class IAMIdentityStore:
    """Identity store backed by a boto3 IAM client."""

    def __init__(self, client: Any) -> None:
        """Initialize the identity store.

        Args:
            client: boto3 IAM client
        """
        self.client = client

    def _call(self, operation: str, subject: str, **kwargs: Any) -> dict[str, Any]:
        """Invoke an IAM API call, recording metrics and classifying failures."""
        start_time = time.time()
        try:
            response = getattr(self.client, operation)(**kwargs)
        except ClientError as e:
            metrics.api_call_total.labels(api_type="iam", operation=operation, result="failure").inc()
            logger.error(f"IAM {operation} failed for {subject}: {e}")
            raise classify_client_error(e) from e
        finally:
            metrics.api_call_duration_seconds.labels(api_type="iam", operation=operation).observe(
                time.time() - start_time
            )
        metrics.api_call_total.labels(api_type="iam", operation=operation, result="success").inc()
        return response or {}

    def _paginate(self, operation: str, subject: str, key: str, **kwargs: Any) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        try:
            paginator = self.client.get_paginator(operation)
            for page in paginator.paginate(**kwargs):
                items.extend(page.get(key, []))
        except ClientError as e:
            metrics.api_call_total.labels(api_type="iam", operation=operation, result="failure").inc()
            logger.error(f"IAM {operation} failed for {subject}: {e}")
            raise classify_client_error(e) from e
        metrics.api_call_total.labels(api_type="iam", operation=operation, result="success").inc()
        return items

    def create_principal(self, name: str, path: str, tags: dict[str, str]) -> str:
        """Create an IAM user.

        Returns:
            The user's ARN
        """
        logger.info(f"Creating IAM user {name}")
        response = self._call("create_user", name, UserName=name, Path=path, Tags=_tag_list(tags))
        return str(response.get("User", {}).get("Arn", ""))

    def delete_principal(self, name: str) -> None:
        logger.info(f"Deleting IAM user {name}")
        self._call("delete_user", name, UserName=name)

    def create_access_key(self, name: str) -> tuple[str, str]:
        response = self._call("create_access_key", name, UserName=name)
        access_key = response.get("AccessKey", {})
        logger.info(f"Created access key {access_key.get('AccessKeyId')} for user {name}")
        return access_key.get("AccessKeyId", ""), access_key.get("SecretAccessKey", "")

    def delete_access_key(self, name: str, access_key_id: str) -> None:
        logger.info(f"Deleting access key {access_key_id} for user {name}")
        self._call("delete_access_key", name, UserName=name, AccessKeyId=access_key_id)

    def list_access_keys(self, name: str) -> list[str]:
        """List all access key ids for a user."""
        keys = self._paginate("list_access_keys", name, "AccessKeyMetadata", UserName=name)
        return [key["AccessKeyId"] for key in keys]

    def create_policy(
        self,
        name: str,
        path: str,
        template: str,
        resource_arns: list[str],
        tags: dict[str, str],
    ) -> str:
        """Create a managed policy from a template.

        Args:
            name: Policy name
            path: IAM path
            template: IAM policy template using $resources and $object_resources
            resource_arns: Bucket ARNs the policy grants access to
            tags: Tags applied to the policy

        Returns:
            The policy ARN
        """
        document = render_iam_policy(template, resource_arns)
        logger.info(f"Creating IAM policy {name} for {len(resource_arns)} bucket(s)")
        response = self._call(
            "create_policy",
            name,
            PolicyName=name,
            Path=path,
            PolicyDocument=document,
            Tags=_tag_list(tags),
        )
        return str(response.get("Policy", {}).get("Arn", ""))

    def delete_policy(self, policy_arn: str) -> None:
        logger.info(f"Deleting IAM policy {policy_arn}")
        self._call("delete_policy", policy_arn, PolicyArn=policy_arn)

    def attach_policy(self, name: str, policy_arn: str) -> None:
        self._call("attach_user_policy", name, UserName=name, PolicyArn=policy_arn)

    def detach_policy(self, name: str, policy_arn: str) -> None:
        self._call("detach_user_policy", name, UserName=name, PolicyArn=policy_arn)

    def list_attached_policies(self, name: str, path: str) -> list[str]:
        """List ARNs of managed policies under path attached to a user."""
        policies = self._paginate(
            "list_attached_user_policies",
            name,
            "AttachedPolicies",
            UserName=name,
            PathPrefix=path,
        )
        return [policy["PolicyArn"] for policy in policies]
