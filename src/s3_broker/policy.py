"""Policy template rendering and inspection."""

from __future__ import annotations

import json
from string import Template
from typing import Any

from .errors import PolicyDocumentError

PUBLIC_READ_EFFECT = "Allow"
PUBLIC_READ_PRINCIPAL = "*"
PUBLIC_READ_ACTIONS = ["s3:GetObject"]


def _render(template: str, values: dict[str, str]) -> str:
    try:
        return Template(template).substitute(values)
    except (KeyError, ValueError) as e:
        raise PolicyDocumentError(f"Invalid policy template: {e}") from e


def render_bucket_policy(template: str, bucket_name: str, partition: str) -> str:
    """Render a bucket policy template ($bucket_name, $partition)."""
    return _render(template, {"bucket_name": bucket_name, "partition": partition})


def render_iam_policy(template: str, resource_arns: list[str]) -> str:
    """Render an IAM policy template against a set of bucket ARNs.

    $resources expands to the quoted, comma-separated bucket ARNs and
    $object_resources to the same ARNs scoped to their objects.
    """
    resources = ", ".join(json.dumps(arn) for arn in resource_arns)
    object_resources = ", ".join(json.dumps(f"{arn}/*") for arn in resource_arns)
    return _render(template, {"resources": resources, "object_resources": object_resources})


def parse_policy_statements(policy: str) -> list[dict[str, Any]]:
    """Parse a policy document and return its statements."""
    try:
        document = json.loads(policy)
    except ValueError as e:
        raise PolicyDocumentError(f"Invalid policy document: {e}") from e
    if not isinstance(document, dict):
        raise PolicyDocumentError("Invalid policy document: expected a JSON object")

    statements = document.get("Statement", [])
    if isinstance(statements, dict):
        statements = [statements]
    if not isinstance(statements, list):
        raise PolicyDocumentError("Invalid policy document: Statement must be a list")
    return statements


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def is_public_read_statement(statement: dict[str, Any]) -> bool:
    """Check whether a statement grants anonymous GetObject."""
    principal = statement.get("Principal")
    if isinstance(principal, dict):
        principal = principal.get("AWS")
    return (
        statement.get("Effect") == PUBLIC_READ_EFFECT
        and principal == PUBLIC_READ_PRINCIPAL
        and _as_list(statement.get("Action")) == PUBLIC_READ_ACTIONS
    )


def requires_public_access(policy: str) -> bool:
    """Decide whether a bucket policy is intentionally public.

    Only the single-statement public-read shape is understood, so a policy
    with more than one statement is rejected.

    Raises:
        PolicyDocumentError: If the policy cannot be parsed or has several statements
    """
    if not policy:
        return False

    statements = parse_policy_statements(policy)
    if len(statements) > 1:
        raise PolicyDocumentError(f"expected 1 policy statement, got {len(statements)}")
    return any(is_public_read_statement(statement) for statement in statements)
