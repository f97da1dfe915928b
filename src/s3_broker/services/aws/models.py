"""Models for AWS S3 operations."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ResourceDetails:
    """Desired or described state of a bucket.

    Built by the broker from a plan before every create call; describe fills
    in the server-assigned region, ARN and endpoint.
    """

    bucket_name: str = ""
    arn: str = ""
    region: str = ""
    partition: str = "aws"
    endpoint: str = ""
    policy: str = ""
    encryption: str = ""
    object_ownership: str = ""
    tags: dict[str, str] = field(default_factory=dict)
