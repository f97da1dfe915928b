"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest

from s3_broker.broker import S3Broker
from s3_broker.catalog import Catalog
from s3_broker.config import S3Config

from .fakes import FakeDirectory, FakeIdentityStore, FakeResourceStore, FakeTagGenerator

PUBLIC_BUCKET_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": "*",
            "Action": ["s3:GetObject"],
            "Resource": ["arn:$partition:s3:::$bucket_name/*"],
        }
    ],
}

CATALOG_DATA = {
    "services": [
        {
            "id": "s3-service",
            "name": "s3",
            "description": "S3 buckets",
            "bindable": True,
            "plans": [
                {
                    "id": "plan-free",
                    "name": "basic",
                    "description": "Private bucket",
                    "s3_properties": {"iam_policy": '{"Statement": [{"Resource": [$resources]}]}'},
                },
                {
                    "id": "plan-public",
                    "name": "basic-public",
                    "description": "Public-read bucket",
                    "s3_properties": {
                        "iam_policy": '{"Statement": [{"Resource": [$resources]}]}',
                        "bucket_policy": PUBLIC_BUCKET_POLICY,
                    },
                },
                {
                    "id": "plan-durable",
                    "name": "basic-vulnerable",
                    "description": "Bucket kept on delete",
                    "durable": True,
                    "s3_properties": {"iam_policy": '{"Statement": [{"Resource": [$resources]}]}'},
                },
            ],
        }
    ]
}


@pytest.fixture
def catalog() -> Catalog:
    return Catalog.from_dict(CATALOG_DATA)


@pytest.fixture
def s3_config(catalog: Catalog) -> S3Config:
    return S3Config(
        region="us-east-1",
        bucket_prefix="bucket",
        user_prefix="user",
        policy_prefix="policy",
        iam_path="/cf/",
        policy_retry_delay=0,
        catalog=catalog,
    )


@pytest.fixture
def resource_store() -> FakeResourceStore:
    return FakeResourceStore()


@pytest.fixture
def identity_store() -> FakeIdentityStore:
    return FakeIdentityStore()


@pytest.fixture
def tag_generator() -> FakeTagGenerator:
    return FakeTagGenerator()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def broker(
    s3_config: S3Config,
    catalog: Catalog,
    resource_store: FakeResourceStore,
    identity_store: FakeIdentityStore,
    tag_generator: FakeTagGenerator,
    directory: FakeDirectory,
) -> S3Broker:
    return S3Broker(
        config=s3_config,
        catalog=catalog,
        resource_store=resource_store,
        identity_store=identity_store,
        tag_generator=tag_generator,
        directory=directory,
    )
