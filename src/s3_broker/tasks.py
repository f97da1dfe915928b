"""Maintenance tasks run outside the broker API."""

from __future__ import annotations

import logging

from .directory import InstanceDirectory, relationship_guid
from .errors import DirectoryError
from .services.s3.base import ResourceStore
from .tags import ResourceGUIDs, TagAction, TagGenerator, strip_timestamp_tags

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "S3"


def tags_contain(existing: dict[str, str], generated: dict[str, str]) -> bool:
    """Check whether every generated tag, timestamps aside, is already set."""
    return all(existing.get(k) == v for k, v in strip_timestamp_tags(generated).items())


def reconcile_bucket_tags(
    store: ResourceStore,
    tag_generator: TagGenerator,
    directory: InstanceDirectory,
    bucket_prefix: str,
    service_name: str = DEFAULT_SERVICE_NAME,
) -> int:
    """Bring the tags of every broker bucket up to date.

    Buckets whose instance or plan cannot be found in the directory are
    skipped. Tag generation and tagging failures abort the run.

    Args:
        store: Bucket store
        tag_generator: Produces the expected tags
        directory: Platform directory used to find each instance's plan
        bucket_prefix: Prefix of bucket names created by the broker
        service_name: Service name recorded in tags

    Returns:
        Number of buckets whose tags were updated
    """
    name_prefix = f"{bucket_prefix}-"
    updated = 0
    for bucket_name in store.list_buckets(name_prefix):
        instance_guid = bucket_name.removeprefix(name_prefix)

        try:
            instance = directory.get_service_instance(instance_guid)
            plan = directory.get_service_plan(relationship_guid(instance, "service_plan"))
        except DirectoryError as e:
            logger.warning(f"Skipping bucket {bucket_name}: {e}")
            continue

        generated = tag_generator.generate_tags(
            TagAction.UPDATED,
            service_name,
            str(plan.get("name", "")),
            ResourceGUIDs(instance_guid=instance_guid),
            True,
        )
        if tags_contain(store.get_tags(bucket_name), generated):
            logger.info(f"Tags already up to date for bucket {bucket_name}")
            continue

        logger.info(f"Updating tags for bucket {bucket_name}")
        store.apply_tagging(bucket_name, generated)
        updated += 1

    logger.info(f"Finished reconciling tags, {updated} bucket(s) updated")
    return updated
