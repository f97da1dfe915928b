"""Tests for the boto3 client builder."""

from __future__ import annotations

from unittest.mock import patch

from s3_broker.builders.clients import create_clients
from s3_broker.config import S3Config


class TestCreateClients:
    """Test cases for create_clients."""

    @patch("s3_broker.builders.clients.boto3.client")
    def test_aws_clients(self, mock_client):
        """Test AWS clients use the region and virtual-host addressing."""
        create_clients(S3Config(region="us-east-1", bucket_prefix="cf"))

        services = [call.args[0] for call in mock_client.call_args_list]
        assert services == ["s3", "iam"]
        kwargs = mock_client.call_args_list[0].kwargs
        assert kwargs["endpoint_url"] is None
        assert kwargs["region_name"] == "us-east-1"
        assert kwargs["verify"] is True
        assert kwargs["config"].signature_version == "s3v4"
        assert kwargs["config"].s3 == {"addressing_style": "auto"}

    @patch("s3_broker.builders.clients.boto3.client")
    def test_minio_clients(self, mock_client):
        """Test minio clients use the endpoint and path addressing."""
        s3_config = S3Config(region="us-east-1", bucket_prefix="cf", provider="minio", endpoint="minio.local:9000")

        create_clients(s3_config)

        kwargs = mock_client.call_args_list[0].kwargs
        assert kwargs["endpoint_url"] == "https://minio.local:9000"
        assert kwargs["config"].s3 == {"addressing_style": "path"}

    @patch("s3_broker.builders.clients.boto3.client")
    def test_insecure_minio(self, mock_client):
        """Test skipping verification uses plain HTTP and disables TLS checks."""
        s3_config = S3Config(
            region="us-east-1",
            bucket_prefix="cf",
            provider="minio",
            endpoint="minio.local:9000",
            insecure_skip_verify=True,
        )

        create_clients(s3_config)

        kwargs = mock_client.call_args_list[1].kwargs
        assert kwargs["endpoint_url"] == "http://minio.local:9000"
        assert kwargs["verify"] is False

    @patch("s3_broker.builders.clients.boto3.client")
    def test_endpoint_with_scheme(self, mock_client):
        """Test an endpoint with a scheme is used as is."""
        s3_config = S3Config(region="us-east-1", bucket_prefix="cf", provider="minio", endpoint="http://minio:9000")

        create_clients(s3_config)

        assert mock_client.call_args_list[0].kwargs["endpoint_url"] == "http://minio:9000"
