"""Tests for configuration loading."""

from __future__ import annotations

import pytest
import yaml

from s3_broker.config import load_config
from s3_broker.errors import ConfigError

from .conftest import CATALOG_DATA

BASE_CONFIG = {
    "log_level": "DEBUG",
    "username": "broker",
    "password": "s3cr3t",
    "environment": "test",
    "s3_config": {
        "region": "us-gov-west-1",
        "bucket_prefix": "cf",
        "aws_partition": "aws-us-gov",
        "iam_path": "/cf/",
        "catalog": CATALOG_DATA,
    },
}


@pytest.fixture
def write_config(tmp_path):
    def _write(data):
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in ("BROKER_USERNAME", "BROKER_PASSWORD", "CF_API_CLIENT_SECRET"):
        monkeypatch.delenv(name, raising=False)


def with_s3(**overrides):
    data = dict(BASE_CONFIG)
    data["s3_config"] = {**BASE_CONFIG["s3_config"], **overrides}
    return data


class TestLoadConfig:
    """Test loading a valid config file."""

    def test_load_config(self, write_config):
        """Test every section is read."""
        config = load_config(write_config(BASE_CONFIG))

        assert config.log_level == "DEBUG"
        assert config.username == "broker"
        assert config.environment == "test"
        assert config.cf_config is None
        assert config.s3_config.region == "us-gov-west-1"
        assert config.s3_config.aws_partition == "aws-us-gov"
        assert config.s3_config.catalog.find_service_plan("plan-public") is not None

    def test_prefixes_default_to_bucket_prefix(self, write_config):
        """Test user and policy prefixes fall back to the bucket prefix."""
        s3_config = load_config(write_config(BASE_CONFIG)).s3_config

        assert s3_config.user_prefix == "cf"
        assert s3_config.policy_prefix == "cf"

    def test_parameter_switch_defaults(self, write_config):
        """Test only bind parameters are allowed by default."""
        s3_config = load_config(write_config(BASE_CONFIG)).s3_config

        assert s3_config.allow_user_provision_parameters is False
        assert s3_config.allow_user_update_parameters is False
        assert s3_config.allow_user_bind_parameters is True

    def test_credentials_from_environment(self, write_config, monkeypatch):
        """Test credentials in the environment override the file."""
        monkeypatch.setenv("BROKER_USERNAME", "env-user")
        monkeypatch.setenv("BROKER_PASSWORD", "env-pass")

        config = load_config(write_config(BASE_CONFIG))

        assert config.username == "env-user"
        assert config.password == "env-pass"

    def test_password_hidden_from_repr(self, write_config):
        """Test the password never appears in the config repr."""
        assert "s3cr3t" not in repr(load_config(write_config(BASE_CONFIG)))

    def test_cf_config(self, write_config, monkeypatch):
        """Test the Cloud Foundry section with its secret from the environment."""
        monkeypatch.setenv("CF_API_CLIENT_SECRET", "uaa-secret")
        data = dict(BASE_CONFIG, cf_config={"api_url": "https://api.example.com", "client_id": "broker"})

        cf_config = load_config(write_config(data)).cf_config

        assert cf_config.api_url == "https://api.example.com"
        assert cf_config.client_secret == "uaa-secret"
        assert cf_config.skip_ssl_validation is False


class TestConfigValidation:
    """Test invalid config files are rejected."""

    def test_missing_path(self):
        """Test a config path is required."""
        with pytest.raises(ConfigError, match="Must provide a config file"):
            load_config(None)

    def test_unreadable_file(self, tmp_path):
        """Test a missing file is reported."""
        with pytest.raises(ConfigError, match="Error loading config file"):
            load_config(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path):
        """Test unparseable YAML is reported."""
        path = tmp_path / "config.yml"
        path.write_text("log_level: [unclosed")

        with pytest.raises(ConfigError, match="Error parsing config file"):
            load_config(path)

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"log_level": ""}, "Must provide a non-empty LogLevel"),
            ({"log_level": "LOUD"}, "Invalid log level: LOUD"),
            ({"username": ""}, "Must provide a non-empty Username"),
            ({"password": ""}, "Must provide a non-empty Password"),
        ],
    )
    def test_top_level_fields(self, write_config, overrides, message):
        """Test required top-level fields."""
        with pytest.raises(ConfigError, match=message):
            load_config(write_config(dict(BASE_CONFIG, **overrides)))

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"region": ""}, "Validating S3 configuration: Must provide a non-empty Region"),
            ({"bucket_prefix": ""}, "Must provide a non-empty BucketPrefix"),
            ({"provider": "ceph"}, "Unsupported provider 'ceph'"),
            ({"provider": "minio"}, "non-empty Endpoint for the minio provider"),
            ({"iam_path": "cf"}, "IAM path must begin and end with '/'"),
            ({"policy_retry_delay": -1}, "Policy retry delay must not be negative"),
        ],
    )
    def test_s3_fields(self, write_config, overrides, message):
        """Test required and constrained S3 settings."""
        with pytest.raises(ConfigError, match=message):
            load_config(write_config(with_s3(**overrides)))

    def test_plan_without_iam_policy(self, write_config):
        """Test plans must carry an IAM policy."""
        catalog = {
            "services": [
                {
                    "id": "s3-service",
                    "name": "s3",
                    "description": "S3 buckets",
                    "plans": [{"id": "plan-free", "name": "basic", "description": "Private bucket"}],
                }
            ]
        }

        with pytest.raises(ConfigError) as exc_info:
            load_config(write_config(with_s3(catalog=catalog)))

        assert str(exc_info.value).endswith(
            "Validating Catalog configuration: Validating Services configuration: "
            "Validating Plans configuration: Validating S3 Properties configuration: "
            "Must provide a non-empty IAM Policy"
        )

    def test_incomplete_cf_config(self, write_config):
        """Test the Cloud Foundry section requires its client secret."""
        data = dict(BASE_CONFIG, cf_config={"api_url": "https://api.example.com", "client_id": "broker"})

        with pytest.raises(ConfigError, match="Must provide a non-empty client secret"):
            load_config(write_config(data))
