"""Tests for the Cloud Foundry directory."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from s3_broker.directory import CloudFoundryDirectory, relationship_guid
from s3_broker.errors import DirectoryError, UnknownInstanceNameError

API = "https://api.example.com"


def response(data):
    mock = MagicMock()
    mock.json.return_value = data
    mock.raise_for_status.return_value = None
    return mock


ROOT = {"links": {"uaa": {"href": "https://uaa.example.com"}}}
TOKEN = {"access_token": "tok", "expires_in": 3600}


@pytest.fixture
def mock_requests():
    with patch("s3_broker.directory.requests") as mock:
        mock.RequestException = requests.RequestException
        mock.post.return_value = response(TOKEN)
        yield mock


def routed_get(routes):
    def _get(url, params=None, **kwargs):
        if url == f"{API}/":
            return response(ROOT)
        return response(routes[url])

    return _get


class TestCloudFoundryDirectory:
    """Test CloudFoundryDirectory."""

    def test_get_service_instance(self, mock_requests):
        """Test lookups authenticate with a client credentials token."""
        mock_requests.get.side_effect = routed_get({f"{API}/v3/service_instances/i1": {"guid": "i1"}})
        directory = CloudFoundryDirectory(API, "broker", "uaa-secret")

        assert directory.get_service_instance("i1") == {"guid": "i1"}

        token_call = mock_requests.post.call_args
        assert token_call.args[0] == "https://uaa.example.com/oauth/token"
        assert token_call.kwargs["data"] == {"grant_type": "client_credentials"}
        headers = mock_requests.get.call_args.kwargs["headers"]
        assert headers == {"Authorization": "Bearer tok"}

    def test_token_cached(self, mock_requests):
        """Test the token is reused until it nears expiry."""
        mock_requests.get.side_effect = routed_get({
            f"{API}/v3/spaces/s1": {"guid": "s1"},
            f"{API}/v3/organizations/o1": {"guid": "o1"},
        })
        directory = CloudFoundryDirectory(API, "broker", "uaa-secret")

        directory.get_space("s1")
        directory.get_organization("o1")

        assert mock_requests.post.call_count == 1

    def test_request_failure(self, mock_requests):
        """Test transport errors become directory errors."""
        mock_requests.get.side_effect = requests.ConnectionError("refused")
        directory = CloudFoundryDirectory(API, "broker", "uaa-secret")

        with pytest.raises(DirectoryError, match="Error discovering UAA endpoint"):
            directory.get_space("s1")

    def test_token_response_without_access_token(self, mock_requests):
        """Test a token response missing access_token is a directory error."""
        mock_requests.get.side_effect = routed_get({f"{API}/v3/spaces/s1": {"guid": "s1"}})
        mock_requests.post.return_value = response({"token_type": "bearer"})
        directory = CloudFoundryDirectory(API, "broker", "uaa-secret")

        with pytest.raises(DirectoryError, match="Error fetching UAA token"):
            directory.get_space("s1")

        assert directory._token is None

    def test_resolve_instance_guids(self, mock_requests):
        """Test names resolve within the instance's space and the broker's plans, in order."""
        calls = []

        def _get(url, params=None, **kwargs):
            calls.append((url, params))
            if url == f"{API}/":
                return response(ROOT)
            if url == f"{API}/v3/service_instances/i1":
                return response({"guid": "i1", "relationships": {"space": {"data": {"guid": "s1"}}}})
            if url == f"{API}/v3/service_plans":
                return response({"resources": [{"guid": "p1"}, {"guid": "p2"}], "pagination": {"next": None}})
            if url == f"{API}/v3/service_instances":
                return response({
                    "resources": [{"name": "other", "guid": "i2"}],
                    "pagination": {"next": {"href": f"{API}/v3/service_instances?page=2"}},
                })
            return response({"resources": [{"name": "third", "guid": "i3"}], "pagination": {"next": None}})

        mock_requests.get.side_effect = _get
        directory = CloudFoundryDirectory(API, "broker", "uaa-secret")

        guids = directory.resolve_instance_guids(["third", "other"], "i1", ["plan-a", "plan-b"])

        assert guids == ["i3", "i2"]
        assert (f"{API}/v3/service_plans", {"broker_catalog_ids": "plan-a,plan-b"}) in calls
        assert (f"{API}/v3/service_instances", {"space_guids": "s1", "service_plan_guids": "p1,p2"}) in calls

    def test_resolve_unknown_name(self, mock_requests):
        """Test an unknown name is reported by name."""
        mock_requests.get.side_effect = routed_get({
            f"{API}/v3/service_instances/i1": {"guid": "i1", "relationships": {"space": {"data": {"guid": "s1"}}}},
            f"{API}/v3/service_plans": {"resources": [{"guid": "p1"}]},
            f"{API}/v3/service_instances": {"resources": [{"name": "other", "guid": "i2"}]},
        })
        directory = CloudFoundryDirectory(API, "broker", "uaa-secret")

        with pytest.raises(UnknownInstanceNameError, match="Service instance missing not found"):
            directory.resolve_instance_guids(["other", "missing"], "i1", ["plan-a"])


class TestRelationshipGuid:
    """Test relationship_guid."""

    def test_relationship_guid(self):
        """Test the related GUID is read."""
        assert relationship_guid({"relationships": {"space": {"data": {"guid": "s1"}}}}, "space") == "s1"

    def test_missing_relationship(self):
        """Test a missing relationship is a directory error."""
        with pytest.raises(DirectoryError, match="has no organization relationship"):
            relationship_guid({"guid": "s1", "relationships": {}}, "organization")
