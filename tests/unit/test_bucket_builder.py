"""Unit tests for bucket builder."""

from __future__ import annotations

from s3_broker.builders.bucket import create_resource_details
from s3_broker.catalog import S3Properties, ServicePlan
from s3_broker.parameters import ProvisionParameters

PLAN = ServicePlan(
    id="plan-public",
    name="basic-public",
    description="Public-read bucket",
    s3_properties=S3Properties(iam_policy="{}", bucket_policy='{"Statement": []}', encryption='{"Rules": []}'),
)


class TestBucketBuilder:
    """Test desired bucket state builder."""

    def test_basic_details(self) -> None:
        """Test details carry plan templates, region, partition and tags."""
        details = create_resource_details(PLAN, "eu-west-1", "aws", {"Owner": "Cloud Foundry"})

        assert details.region == "eu-west-1"
        assert details.partition == "aws"
        assert details.policy == '{"Statement": []}'
        assert details.encryption == '{"Rules": []}'
        assert details.tags == {"Owner": "Cloud Foundry"}

    def test_default_object_ownership(self) -> None:
        """Test ObjectWriter is used unless requested otherwise."""
        assert create_resource_details(PLAN, "us-east-1", "aws", {}).object_ownership == "ObjectWriter"
        assert create_resource_details(PLAN, "us-east-1", "aws", {}, ProvisionParameters()).object_ownership == (
            "ObjectWriter"
        )

    def test_requested_object_ownership(self) -> None:
        """Test a requested ownership mode is used."""
        parameters = ProvisionParameters(object_ownership="BucketOwnerEnforced")

        details = create_resource_details(PLAN, "us-east-1", "aws", {}, parameters)

        assert details.object_ownership == "BucketOwnerEnforced"

    def test_tags_copied(self) -> None:
        """Test later changes to the tag mapping do not leak into the details."""
        tags = {"Owner": "Cloud Foundry"}
        details = create_resource_details(PLAN, "us-east-1", "aws", tags)

        tags["Owner"] = "someone"

        assert details.tags == {"Owner": "Cloud Foundry"}
