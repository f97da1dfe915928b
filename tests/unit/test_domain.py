"""Tests for broker protocol types."""

from __future__ import annotations

from s3_broker.domain import Credentials


def make_credentials(**overrides):
    values = {
        "endpoint": "s3-fips.us-east-1.amazonaws.com",
        "region": "us-east-1",
        "bucket": "bucket-i1",
        "access_key_id": "access-key!",
        "secret_access_key": "se/cr+et",
    }
    values.update(overrides)
    return Credentials(**values)


class TestCredentials:
    """Test Credentials."""

    def test_build_uri_escapes_credentials(self):
        """Test key id and secret are percent-encoded in the URI."""
        assert make_credentials().build_uri() == "s3://access-key%21:se%2Fcr%2Bet@s3-fips.us-east-1.amazonaws.com/bucket-i1"

    def test_to_dict(self):
        """Test the credentials mapping returned to the platform."""
        credentials = make_credentials(additional_buckets=["bucket-i2"])
        credentials.uri = credentials.build_uri()

        data = credentials.to_dict()

        assert data["secret_access_key"] == "se/cr+et"
        assert data["additional_buckets"] == ["bucket-i2"]
        assert data["insecure_skip_verify"] is False
        assert data["uri"].startswith("s3://")

    def test_repr_hides_secrets(self):
        """Test the secret and URI are kept out of the repr."""
        credentials = make_credentials()
        credentials.uri = credentials.build_uri()

        assert "se/cr+et" not in repr(credentials)
        assert "se%2Fcr%2Bet" not in repr(credentials)
