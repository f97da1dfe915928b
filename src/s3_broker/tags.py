"""Tag generation for buckets, users and policies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Protocol

from .constants import (
    BROKER_NAME,
    TAG_BROKER,
    TAG_ENVIRONMENT,
    TAG_INSTANCE_GUID,
    TAG_ORGANIZATION_GUID,
    TAG_ORGANIZATION_NAME,
    TAG_OWNER,
    TAG_OWNER_VALUE,
    TAG_PLAN_NAME,
    TAG_SERVICE_NAME,
    TAG_SPACE_GUID,
    TAG_SPACE_NAME,
    TAG_TIME_FORMAT,
    TIMESTAMP_TAGS,
)
from .directory import InstanceDirectory, relationship_guid

logger = logging.getLogger(__name__)


class TagAction(str, Enum):
    CREATED = "Created"
    UPDATED = "Updated"


@dataclass
class ResourceGUIDs:
    """Platform identifiers a resource is tagged with."""

    instance_guid: str = ""
    organization_guid: str = ""
    space_guid: str = ""


class TagGenerator(Protocol):
    def generate_tags(
        self,
        action: TagAction,
        service_name: str,
        plan_name: str,
        resource_guids: ResourceGUIDs,
        get_missing_resources: bool,
    ) -> dict[str, str]:
        ...


def strip_timestamp_tags(tags: dict[str, str]) -> dict[str, str]:
    """Drop the tags that record when an action happened."""
    return {k: v for k, v in tags.items() if k not in TIMESTAMP_TAGS}


class BrokerTagManager:
    """Builds the tag set every broker-managed resource carries."""

    def __init__(
        self,
        broker_name: str,
        environment: str = "",
        directory: InstanceDirectory | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the tag manager.

        Args:
            broker_name: Value of the "broker" tag
            environment: Value of the "environment" tag, omitted if empty
            directory: Directory used to resolve organization and space names
            clock: Returns the current time, replaced in tests
        """
        self.broker_name = broker_name
        self.environment = environment
        self.directory = directory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def generate_tags(
        self,
        action: TagAction,
        service_name: str,
        plan_name: str,
        resource_guids: ResourceGUIDs,
        get_missing_resources: bool,
    ) -> dict[str, str]:
        """Generate tags for a resource.

        Args:
            action: Action being recorded
            service_name: Catalog service name
            plan_name: Catalog plan name
            resource_guids: Known platform identifiers
            get_missing_resources: Resolve missing organization and space GUIDs
                from the instance GUID through the directory

        Returns:
            Tag mapping

        Raises:
            DirectoryError: If a directory lookup fails
        """
        action_name = TagAction(action).value
        tags = {
            TAG_OWNER: TAG_OWNER_VALUE,
            f"{action_name} by": BROKER_NAME,
            f"{action_name} at": self._clock().strftime(TAG_TIME_FORMAT),
            TAG_BROKER: self.broker_name,
        }
        if self.environment:
            tags[TAG_ENVIRONMENT] = self.environment
        if service_name:
            tags[TAG_SERVICE_NAME] = service_name
        if plan_name:
            tags[TAG_PLAN_NAME] = plan_name

        guids = ResourceGUIDs(
            instance_guid=resource_guids.instance_guid,
            organization_guid=resource_guids.organization_guid,
            space_guid=resource_guids.space_guid,
        )
        if self.directory is not None and get_missing_resources and guids.instance_guid:
            _resolve_missing_guids(self.directory, guids)

        if guids.instance_guid:
            tags[TAG_INSTANCE_GUID] = guids.instance_guid
        if guids.space_guid:
            tags[TAG_SPACE_GUID] = guids.space_guid
            if self.directory is not None:
                tags[TAG_SPACE_NAME] = str(self.directory.get_space(guids.space_guid).get("name", ""))
        if guids.organization_guid:
            tags[TAG_ORGANIZATION_GUID] = guids.organization_guid
            if self.directory is not None:
                org = self.directory.get_organization(guids.organization_guid)
                tags[TAG_ORGANIZATION_NAME] = str(org.get("name", ""))

        return tags


def _resolve_missing_guids(directory: InstanceDirectory, guids: ResourceGUIDs) -> None:
    if not guids.space_guid:
        instance = directory.get_service_instance(guids.instance_guid)
        guids.space_guid = relationship_guid(instance, "space")
        logger.debug(f"Resolved space {guids.space_guid} for instance {guids.instance_guid}")
    if not guids.organization_guid:
        space = directory.get_space(guids.space_guid)
        guids.organization_guid = relationship_guid(space, "organization")
