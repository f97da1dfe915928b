"""Builder for desired bucket state."""

from __future__ import annotations

from ..catalog import ServicePlan
from ..constants import DEFAULT_OBJECT_OWNERSHIP
from ..parameters import ProvisionParameters
from ..services.aws.models import ResourceDetails


def create_resource_details(
    plan: ServicePlan,
    region: str,
    partition: str,
    tags: dict[str, str],
    parameters: ProvisionParameters | None = None,
) -> ResourceDetails:
    """Create the desired bucket state for a plan.

    Args:
        plan: Catalog plan supplying policy and encryption templates
        region: Region the bucket is created in
        partition: AWS partition used in ARNs
        tags: Tags to apply to the bucket
        parameters: Decoded provision parameters, if the user may supply them

    Returns:
        ResourceDetails for ResourceStore.create
    """
    ownership = DEFAULT_OBJECT_OWNERSHIP
    if parameters is not None and parameters.object_ownership:
        ownership = parameters.object_ownership

    return ResourceDetails(
        region=region,
        partition=partition,
        policy=plan.s3_properties.bucket_policy,
        encryption=plan.s3_properties.encryption,
        object_ownership=ownership,
        tags=dict(tags),
    )
