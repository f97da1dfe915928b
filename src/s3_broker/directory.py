"""Cloud Foundry directory lookups.

The broker only knows instance GUIDs. Binding to additional instances by
name, and naming the organization and space in tags, both need the Cloud
Foundry API.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import requests
from requests.auth import HTTPBasicAuth

from .config import CFConfig
from .errors import DirectoryError, UnknownInstanceNameError

logger = logging.getLogger(__name__)

# Refresh the UAA token this many seconds before it expires
TOKEN_EXPIRY_MARGIN = 60


class InstanceDirectory(Protocol):
    """Protocol for resolving platform entities."""

    def resolve_instance_guids(self, names: list[str], instance_guid: str, plan_ids: list[str]) -> list[str]:
        """Resolve instance names in the same space as instance_guid, in order."""
        ...

    def get_service_instance(self, guid: str) -> dict[str, Any]:
        ...

    def get_space(self, guid: str) -> dict[str, Any]:
        ...

    def get_organization(self, guid: str) -> dict[str, Any]:
        ...

    def get_service_plan(self, guid: str) -> dict[str, Any]:
        ...


def relationship_guid(resource: dict[str, Any], name: str) -> str:
    """Get the GUID of a v3 resource relationship, e.g. "space"."""
    try:
        return str(resource["relationships"][name]["data"]["guid"])
    except (KeyError, TypeError) as e:
        raise DirectoryError(f"Resource {resource.get('guid')} has no {name} relationship") from e


class CloudFoundryDirectory:
    """Directory backed by the Cloud Foundry v3 API."""

    def __init__(
        self,
        api_url: str,
        client_id: str,
        client_secret: str,
        verify: bool = True,
        timeout: int = 30,
    ):
        """
        Initialize the directory client.

        Args:
            api_url: Cloud Foundry API URL
            client_id: UAA client with cloud_controller.admin_read_only
            client_secret: UAA client secret
            verify: Verify TLS certificates
            timeout: Request timeout in seconds
        """
        self.api_url = api_url.rstrip("/")
        self.auth = HTTPBasicAuth(client_id, client_secret)
        self.verify = verify
        self.timeout = timeout
        self._token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_config(cls, cf_config: CFConfig) -> CloudFoundryDirectory:
        return cls(
            api_url=cf_config.api_url,
            client_id=cf_config.client_id,
            client_secret=cf_config.client_secret,
            verify=not cf_config.skip_ssl_validation,
        )

    def _token_url(self) -> str:
        try:
            response = requests.get(f"{self.api_url}/", timeout=self.timeout, verify=self.verify)
            response.raise_for_status()
            return f"{response.json()['links']['uaa']['href'].rstrip('/')}/oauth/token"
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            raise DirectoryError(f"Error discovering UAA endpoint: {e}") from e

    def _get_token(self) -> str:
        if self._token and time.time() < self._token_expires_at:
            return self._token

        try:
            response = requests.post(
                self._token_url(),
                data={"grant_type": "client_credentials"},
                auth=self.auth,
                timeout=self.timeout,
                verify=self.verify,
            )
            response.raise_for_status()
            data = response.json()
            token = data["access_token"]
            expires_in = int(data.get("expires_in", 0))
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            raise DirectoryError(f"Error fetching UAA token: {e}") from e

        self._token = token
        self._token_expires_at = time.time() + expires_in - TOKEN_EXPIRY_MARGIN
        return self._token

    def _get(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        if not url.startswith("http"):
            url = f"{self.api_url}{url}"
        try:
            response = requests.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {self._get_token()}"},
                timeout=self.timeout,
                verify=self.verify,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise DirectoryError(f"Error querying Cloud Foundry API {url}: {e}") from e

    def _list(self, path: str, params: dict[str, str] | None = None) -> list[dict[str, Any]]:
        """Fetch every page of a v3 list endpoint."""
        resources: list[dict[str, Any]] = []
        page = self._get(path, params)
        while True:
            resources.extend(page.get("resources", []))
            next_page = (page.get("pagination") or {}).get("next")
            if not next_page:
                return resources
            page = self._get(next_page["href"])

    def get_service_instance(self, guid: str) -> dict[str, Any]:
        return self._get(f"/v3/service_instances/{guid}")

    def get_space(self, guid: str) -> dict[str, Any]:
        return self._get(f"/v3/spaces/{guid}")

    def get_organization(self, guid: str) -> dict[str, Any]:
        return self._get(f"/v3/organizations/{guid}")

    def get_service_plan(self, guid: str) -> dict[str, Any]:
        return self._get(f"/v3/service_plans/{guid}")

    def resolve_instance_guids(self, names: list[str], instance_guid: str, plan_ids: list[str]) -> list[str]:
        """
        Resolve service instance names to GUIDs.

        Only instances in the same space as instance_guid and on one of this
        broker's plans are considered.

        Args:
            names: Service instance names
            instance_guid: GUID of the instance being bound
            plan_ids: Catalog plan ids offered by this broker

        Returns:
            Instance GUIDs in the order of names

        Raises:
            UnknownInstanceNameError: If a name does not match an instance
            DirectoryError: If the API cannot be queried
        """
        instance = self.get_service_instance(instance_guid)
        space_guid = relationship_guid(instance, "space")

        plans = self._list("/v3/service_plans", {"broker_catalog_ids": ",".join(plan_ids)})
        plan_guids = [plan["guid"] for plan in plans]

        instances = self._list(
            "/v3/service_instances",
            {"space_guids": space_guid, "service_plan_guids": ",".join(plan_guids)},
        )
        guids_by_name = {item["name"]: item["guid"] for item in instances}
        logger.debug(f"Found {len(guids_by_name)} candidate instances in space {space_guid}")

        guids = []
        for name in names:
            if name not in guids_by_name:
                raise UnknownInstanceNameError(name)
            guids.append(guids_by_name[name])
        return guids
