"""Broker configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .catalog import Catalog
from .constants import (
    DEFAULT_POLICY_RETRY_DELAY,
    LOG_LEVELS,
    PROVIDER_AWS,
    PROVIDER_MINIO,
)
from .errors import ConfigError
from .utils.errors import sanitize_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CFConfig:
    """Cloud Foundry API client settings."""

    api_url: str
    client_id: str
    client_secret: str = field(repr=False)
    skip_ssl_validation: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CFConfig:
        return cls(
            api_url=str(data.get("api_url", "")),
            client_id=str(data.get("client_id", "")),
            client_secret=os.getenv("CF_API_CLIENT_SECRET", str(data.get("client_secret", ""))),
            skip_ssl_validation=bool(data.get("skip_ssl_validation", False)),
        )

    def validate(self) -> None:
        if not self.api_url:
            raise ConfigError("Must provide a non-empty API URL")
        if not self.client_id:
            raise ConfigError("Must provide a non-empty client ID")
        if not self.client_secret:
            raise ConfigError("Must provide a non-empty client secret")


@dataclass(frozen=True)
class S3Config:
    """Settings for buckets, IAM principals and the catalog."""

    region: str
    bucket_prefix: str
    user_prefix: str = ""
    policy_prefix: str = ""
    iam_path: str = "/"
    aws_partition: str = "aws"
    provider: str = PROVIDER_AWS
    endpoint: str = ""
    insecure_skip_verify: bool = False
    allow_user_provision_parameters: bool = False
    allow_user_update_parameters: bool = False
    allow_user_bind_parameters: bool = True
    policy_retry_delay: float = DEFAULT_POLICY_RETRY_DELAY
    catalog: Catalog = field(default_factory=Catalog)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> S3Config:
        bucket_prefix = str(data.get("bucket_prefix", ""))
        return cls(
            region=str(data.get("region", "")),
            bucket_prefix=bucket_prefix,
            user_prefix=str(data.get("user_prefix") or bucket_prefix),
            policy_prefix=str(data.get("policy_prefix") or bucket_prefix),
            iam_path=str(data.get("iam_path") or "/"),
            aws_partition=str(data.get("aws_partition") or "aws"),
            provider=str(data.get("provider") or PROVIDER_AWS),
            endpoint=str(data.get("endpoint") or ""),
            insecure_skip_verify=bool(data.get("insecure_skip_verify", False)),
            allow_user_provision_parameters=bool(data.get("allow_user_provision_parameters", False)),
            allow_user_update_parameters=bool(data.get("allow_user_update_parameters", False)),
            allow_user_bind_parameters=bool(data.get("allow_user_bind_parameters", True)),
            policy_retry_delay=float(data.get("policy_retry_delay", DEFAULT_POLICY_RETRY_DELAY)),
            catalog=Catalog.from_dict(data.get("catalog")),
        )

    def validate(self) -> None:
        if not self.region:
            raise ConfigError("Must provide a non-empty Region")
        if not self.bucket_prefix:
            raise ConfigError("Must provide a non-empty BucketPrefix")
        if self.provider not in (PROVIDER_AWS, PROVIDER_MINIO):
            raise ConfigError(f"Unsupported provider {self.provider!r}")
        if self.provider == PROVIDER_MINIO and not self.endpoint:
            raise ConfigError("Must provide a non-empty Endpoint for the minio provider")
        if not self.iam_path.startswith("/") or not self.iam_path.endswith("/"):
            raise ConfigError("IAM path must begin and end with '/'")
        if self.policy_retry_delay < 0:
            raise ConfigError("Policy retry delay must not be negative")
        try:
            self.catalog.validate()
        except ConfigError as e:
            raise ConfigError(f"Validating Catalog configuration: {e}") from e


@dataclass(frozen=True)
class Config:
    """Top-level broker configuration."""

    log_level: str
    username: str
    password: str = field(repr=False)
    s3_config: S3Config
    environment: str = ""
    cf_config: CFConfig | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        cf_data = data.get("cf_config")
        return cls(
            log_level=str(data.get("log_level", "")),
            username=os.getenv("BROKER_USERNAME", str(data.get("username", ""))),
            password=os.getenv("BROKER_PASSWORD", str(data.get("password", ""))),
            environment=str(data.get("environment") or ""),
            s3_config=S3Config.from_dict(data.get("s3_config") or {}),
            cf_config=CFConfig.from_dict(cf_data) if cf_data else None,
        )

    def validate(self) -> None:
        if not self.log_level:
            raise ConfigError("Must provide a non-empty LogLevel")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.log_level}")
        if not self.username:
            raise ConfigError("Must provide a non-empty Username")
        if not self.password:
            raise ConfigError("Must provide a non-empty Password")
        try:
            self.s3_config.validate()
        except ConfigError as e:
            raise ConfigError(f"Validating S3 configuration: {e}") from e
        if self.cf_config is not None:
            try:
                self.cf_config.validate()
            except ConfigError as e:
                raise ConfigError(f"Validating CF configuration: {e}") from e


def load_config(config_path: str | Path | None) -> Config:
    """Load and validate the broker configuration file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated configuration

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    if not config_path:
        raise ConfigError("Must provide a config file")

    path = Path(config_path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Error loading config file: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")

    config = Config.from_dict(data)
    try:
        config.validate()
    except ConfigError as e:
        raise ConfigError(f"Validating config contents: {e}") from e

    logger.debug(f"Loaded config from {path}: {sanitize_dict(asdict(config))}")
    return config
