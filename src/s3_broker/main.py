"""Main entry point for the S3 Service Broker."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any

from werkzeug.serving import make_server

from . import health
from . import logging as structured_logging
from .api import BrokerAPI
from .broker import S3Broker
from .builders.clients import create_clients
from .config import Config, load_config
from .constants import DEFAULT_PORT, TAG_BROKER_NAME
from .directory import CloudFoundryDirectory
from .errors import BrokerError
from .services.aws import IAMIdentityStore, S3ResourceStore
from .tags import BrokerTagManager
from .tasks import reconcile_bucket_tags
from .tracing import initialize_tracing
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="s3-broker", description="AWS S3 Service Broker")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Serve the broker API")
    serve_parser.add_argument("--config", default=os.getenv("S3_BROKER_CONFIG"), help="Location of the config file")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", DEFAULT_PORT)),
        help=f"Listen port (default: {DEFAULT_PORT})",
    )

    reconcile_parser = subparsers.add_parser("reconcile-tags", help="Update tags on existing buckets")
    reconcile_parser.add_argument(
        "--config", default=os.getenv("S3_BROKER_CONFIG"), help="Location of the config file"
    )
    return parser


def build_components(config: Config) -> dict[str, Any]:
    """Wire the stores, tag manager and directory from configuration."""
    s3_config = config.s3_config
    s3_client, iam_client = create_clients(s3_config)

    directory = CloudFoundryDirectory.from_config(config.cf_config) if config.cf_config else None
    resource_store = S3ResourceStore(
        s3_client,
        provider=s3_config.provider,
        endpoint=s3_config.endpoint,
        policy_retry_delay=s3_config.policy_retry_delay,
    )
    return {
        "resource_store": resource_store,
        "identity_store": IAMIdentityStore(iam_client),
        "tag_generator": BrokerTagManager(TAG_BROKER_NAME, config.environment, directory),
        "directory": directory,
    }


def build_broker(config: Config, components: dict[str, Any]) -> S3Broker:
    return S3Broker(
        config=config.s3_config,
        catalog=config.s3_config.catalog,
        resource_store=components["resource_store"],
        identity_store=components["identity_store"],
        tag_generator=components["tag_generator"],
        directory=components["directory"],
    )


def serve(config: Config, port: int) -> None:
    """Serve the broker API, health checks and metrics until interrupted."""
    components = build_components(config)
    broker = build_broker(config, components)
    api = BrokerAPI(broker, config.username, config.password)
    app = health.create_combined_wsgi_app(api, ready_check=components["resource_store"].test_connectivity)

    server = make_server("", port, app, threaded=True)
    logger.info(f"S3 Service Broker listening on port {port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()


def reconcile_tags(config: Config) -> int:
    components = build_components(config)
    if components["directory"] is None:
        raise BrokerError("Reconciling tags requires cf_config")
    return reconcile_bucket_tags(
        components["resource_store"],
        components["tag_generator"],
        components["directory"],
        config.s3_config.bucket_prefix,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    structured_logging.setup_structured_logging("INFO")
    try:
        config = load_config(args.config)
    except BrokerError as e:
        logger.error(f"Error loading config file: {e}")
        return 1

    structured_logging.setup_structured_logging(config.log_level)
    initialize_tracing()

    try:
        if args.command == "serve":
            serve(config, args.port)
        elif args.command == "reconcile-tags":
            reconcile_tags(config)
    except BrokerError as e:
        logger.error(f"{args.command} failed: {sanitize_exception(e)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
