"""S3 service broker: lifecycle orchestration over the bucket and identity stores."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, TypeVar

from . import metrics
from .builders.bucket import create_resource_details
from .catalog import Catalog, Service, ServicePlan
from .config import S3Config
from .constants import OP_BIND, OP_DEPROVISION, OP_LAST_OPERATION, OP_PROVISION, OP_UNBIND, OP_UPDATE
from .directory import InstanceDirectory
from .domain import (
    BindDetails,
    Credentials,
    DeprovisionDetails,
    ProvisionDetails,
    UnbindDetails,
    UpdateDetails,
)
from .errors import (
    InstanceDoesNotExistError,
    NoDirectoryConfiguredError,
    OperationNotSupportedError,
    PlanNotFoundError,
    ResourceMissingError,
    ServiceNotFoundError,
    is_missing_resource,
)
from .logging import log_broker_event
from .parameters import BindParameters, ProvisionParameters, UpdateParameters
from .services.aws.models import ResourceDetails
from .services.iam.base import IdentityStore
from .services.s3.base import ResourceStore
from .tags import ResourceGUIDs, TagAction, TagGenerator
from .tracing import add_span_attribute, trace_span
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)

T = TypeVar("T")


class S3Broker:
    """Implements the broker lifecycle operations.

    The broker keeps no state between calls. Bucket, user and policy names
    are derived from instance and binding ids, so every operation can be
    re-invoked after a partial failure.
    """

    def __init__(
        self,
        config: S3Config,
        catalog: Catalog,
        resource_store: ResourceStore,
        identity_store: IdentityStore,
        tag_generator: TagGenerator,
        directory: InstanceDirectory | None = None,
    ) -> None:
        """Initialize the broker.

        Args:
            config: S3 settings (prefixes, IAM path, partition, parameter switches)
            catalog: Immutable service catalog
            resource_store: Bucket store
            identity_store: IAM user, key and policy store
            tag_generator: Produces tags for new resources
            directory: Platform directory, required for binding to additional instances
        """
        self.config = config
        self.catalog = catalog
        self.resource_store = resource_store
        self.identity_store = identity_store
        self.tag_generator = tag_generator
        self.directory = directory

    def bucket_name(self, instance_id: str) -> str:
        return f"{self.config.bucket_prefix}-{instance_id}"

    def user_name(self, binding_id: str) -> str:
        return f"{self.config.user_prefix}-{binding_id}"

    def policy_name(self, binding_id: str) -> str:
        return f"{self.config.policy_prefix}-{binding_id}"

    def _find_plan(self, plan_id: str) -> ServicePlan:
        plan = self.catalog.find_service_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    def _find_service(self, service_id: str) -> Service:
        service = self.catalog.find_service(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    def _run_operation(
        self,
        operation: str,
        instance_id: str,
        binding_id: str | None,
        operation_fn: Callable[[], T],
    ) -> T:
        """Execute a lifecycle operation with tracing, metrics and logging.

        Args:
            operation: Operation name (e.g. "bind")
            instance_id: Service instance id
            binding_id: Service binding id, if any
            operation_fn: Function performing the operation

        Returns:
            Whatever operation_fn returns
        """
        attributes = {"broker.instance_id": instance_id}
        if binding_id:
            attributes["broker.binding_id"] = binding_id

        log_broker_event(
            logger, operation, instance_id, binding_id,
            event="started", reason="OperationStarted", message=f"{operation} started",
            level=logging.DEBUG,
        )
        start_time = time.time()
        with trace_span(f"broker.{operation}", operation=operation, attributes=attributes):
            try:
                result = operation_fn()
            except Exception as e:
                error_type = type(e).__name__
                metrics.error_total.labels(operation=operation, error_type=error_type).inc()
                metrics.operation_total.labels(operation=operation, result="error").inc()
                log_broker_event(
                    logger, operation, instance_id, binding_id,
                    event="failed", reason="OperationFailed", message=f"{operation} failed",
                    level=logging.ERROR, error=sanitize_exception(e), error_type=error_type,
                )
                raise
            finally:
                metrics.operation_duration_seconds.labels(operation=operation).observe(time.time() - start_time)

        metrics.operation_total.labels(operation=operation, result="success").inc()
        log_broker_event(
            logger, operation, instance_id, binding_id,
            event="succeeded", reason="OperationSucceeded", message=f"{operation} succeeded",
        )
        return result

    def services(self) -> list[dict[str, Any]]:
        """Catalog listing returned to the platform."""
        return self.catalog.to_external()

    def provision(self, instance_id: str, details: ProvisionDetails) -> str:
        """Create the bucket backing a service instance.

        Returns:
            Bucket location reported by the backend
        """
        return self._run_operation(OP_PROVISION, instance_id, None, lambda: self._provision(instance_id, details))

    def _provision(self, instance_id: str, details: ProvisionDetails) -> str:
        plan = self._find_plan(details.plan_id)
        service = self._find_service(details.service_id)

        parameters = ProvisionParameters()
        if self.config.allow_user_provision_parameters:
            parameters = ProvisionParameters.from_raw(details.raw_parameters)

        tags = self.tag_generator.generate_tags(
            TagAction.CREATED,
            service.name,
            plan.name,
            ResourceGUIDs(
                instance_guid=instance_id,
                organization_guid=details.organization_guid,
                space_guid=details.space_guid,
            ),
            False,
        )
        resource_details = create_resource_details(
            plan,
            region=self.config.region,
            partition=self.config.aws_partition,
            tags=tags,
            parameters=parameters,
        )
        return self.resource_store.create(self.bucket_name(instance_id), resource_details)

    def update(self, instance_id: str, details: UpdateDetails) -> None:
        """Validate an update request. Buckets are not changed by plan updates."""
        self._run_operation(OP_UPDATE, instance_id, None, lambda: self._update(details))

    def _update(self, details: UpdateDetails) -> None:
        plan = self._find_plan(details.plan_id)
        if self.config.allow_user_update_parameters:
            UpdateParameters.from_raw(details.raw_parameters)
        logger.debug(f"Update to plan {plan.name} requires no bucket changes")

    def deprovision(self, instance_id: str, details: DeprovisionDetails) -> None:
        """Delete the bucket backing a service instance.

        Contents are purged first unless the plan is durable, in which case
        deleting a non-empty bucket fails.

        Raises:
            InstanceDoesNotExistError: If the bucket is already gone
        """
        self._run_operation(OP_DEPROVISION, instance_id, None, lambda: self._deprovision(instance_id, details))

    def _deprovision(self, instance_id: str, details: DeprovisionDetails) -> None:
        plan = self._find_plan(details.plan_id)
        try:
            self.resource_store.delete(self.bucket_name(instance_id), purge_contents=not plan.durable)
        except ResourceMissingError as e:
            raise InstanceDoesNotExistError(instance_id) from e

    def bind(self, instance_id: str, binding_id: str, details: BindDetails) -> Credentials:
        """Create an IAM user with access to the instance's bucket.

        Returns:
            Credentials for the new user
        """
        return self._run_operation(
            OP_BIND, instance_id, binding_id, lambda: self._bind(instance_id, binding_id, details)
        )

    def _bind(self, instance_id: str, binding_id: str, details: BindDetails) -> Credentials:
        plan = self._find_plan(details.plan_id)
        service = self._find_service(details.service_id)

        parameters = BindParameters()
        if self.config.allow_user_bind_parameters:
            parameters = BindParameters.from_raw(details.raw_parameters)

        primary_name = self.bucket_name(instance_id)
        bucket_names = [primary_name]
        if parameters.additional_instances:
            bucket_names.extend(self._additional_bucket_names(instance_id, parameters.additional_instances))
        # the primary may be named again among the additional instances
        bucket_names = list(dict.fromkeys(bucket_names))

        described = self.describe_buckets(bucket_names)
        primary = described[primary_name]
        resource_arns = [described[name].arn for name in bucket_names]

        tags = self.tag_generator.generate_tags(
            TagAction.CREATED,
            service.name,
            plan.name,
            ResourceGUIDs(instance_guid=instance_id),
            True,
        )

        user_name = self.user_name(binding_id)
        self.identity_store.create_principal(user_name, self.config.iam_path, tags)

        access_key_id = ""
        secret_access_key = ""
        policy_arn = ""
        try:
            access_key_id, secret_access_key = self.identity_store.create_access_key(user_name)
            policy_arn = self.identity_store.create_policy(
                self.policy_name(binding_id),
                self.config.iam_path,
                plan.s3_properties.iam_policy,
                resource_arns,
                tags,
            )
            self.identity_store.attach_policy(user_name, policy_arn)
        except Exception:
            self._rollback(user_name, access_key_id, policy_arn)
            raise

        add_span_attribute("broker.bucket_count", len(bucket_names))
        credentials = Credentials(
            endpoint=primary.endpoint,
            region=primary.region,
            bucket=primary.bucket_name,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            additional_buckets=[name for name in bucket_names if name != primary_name],
            insecure_skip_verify=self.config.insecure_skip_verify,
        )
        credentials.uri = credentials.build_uri()
        return credentials

    def _additional_bucket_names(self, instance_id: str, instance_names: list[str]) -> list[str]:
        if self.directory is None:
            raise NoDirectoryConfiguredError()
        plan_ids = [plan.id for plan in self.catalog.list_service_plans()]
        guids = self.directory.resolve_instance_guids(instance_names, instance_id, plan_ids)
        return [self.bucket_name(guid) for guid in guids]

    def describe_buckets(self, bucket_names: list[str]) -> dict[str, ResourceDetails]:
        """Describe buckets concurrently.

        Results are keyed by the name each lookup was submitted for. The first
        failure is raised at once; lookups still in flight are abandoned and
        their results dropped.

        Raises:
            InstanceDoesNotExistError: If a bucket does not exist
        """
        results: dict[str, ResourceDetails] = {}
        pool = ThreadPoolExecutor(max_workers=len(bucket_names), thread_name_prefix="describe")
        try:
            futures = {
                pool.submit(self.resource_store.describe, name, self.config.aws_partition): name
                for name in bucket_names
            }
            for future in as_completed(futures):
                name = futures[future]
                try:
                    results[name] = future.result()
                except ResourceMissingError as e:
                    raise InstanceDoesNotExistError(self._instance_id(name)) from e
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        return results

    def _instance_id(self, bucket_name: str) -> str:
        return bucket_name.removeprefix(f"{self.config.bucket_prefix}-")

    def _rollback(self, user_name: str, access_key_id: str, policy_arn: str) -> None:
        """Remove what a failed bind created, in reverse order.

        Failures are logged and counted but never raised; the caller re-raises
        the error that caused the rollback.
        """
        steps: list[tuple[str, Callable[[], None]]] = []
        if policy_arn:
            steps.append(("delete_policy", lambda: self.identity_store.delete_policy(policy_arn)))
        if access_key_id:
            steps.append((
                "delete_access_key",
                lambda: self.identity_store.delete_access_key(user_name, access_key_id),
            ))
        steps.append(("delete_principal", lambda: self.identity_store.delete_principal(user_name)))

        for step, step_fn in steps:
            try:
                step_fn()
                metrics.rollback_total.labels(step=step, result="success").inc()
            except Exception as e:
                metrics.rollback_total.labels(step=step, result="failure").inc()
                logger.warning(f"Rollback step {step} failed for user {user_name}: {sanitize_exception(e)}")

    def unbind(self, instance_id: str, binding_id: str, details: UnbindDetails) -> None:
        """Delete the binding's access keys, policies and IAM user.

        Anything already gone is skipped, so unbind can be repeated.
        """
        self._run_operation(OP_UNBIND, instance_id, binding_id, lambda: self._unbind(binding_id))

    def _unbind(self, binding_id: str) -> None:
        user_name = self.user_name(binding_id)
        identity = self.identity_store

        for access_key_id in _list_or_empty(identity.list_access_keys, user_name):
            _ignore_missing(identity.delete_access_key, user_name, access_key_id)

        for policy_arn in _list_or_empty(identity.list_attached_policies, user_name, self.config.iam_path):
            _ignore_missing(identity.detach_policy, user_name, policy_arn)
            _ignore_missing(identity.delete_policy, policy_arn)

        _ignore_missing(identity.delete_principal, user_name)

    def last_operation(self, instance_id: str) -> None:
        """All operations are synchronous, so there is never a last operation to poll."""
        self._run_operation(OP_LAST_OPERATION, instance_id, None, _raise_last_operation_unsupported)


def _raise_last_operation_unsupported() -> None:
    raise OperationNotSupportedError("This broker does not support LastOperation")


def _list_or_empty(list_fn: Callable[..., list[str]], *args: str) -> list[str]:
    try:
        return list_fn(*args)
    except Exception as e:
        if is_missing_resource(e):
            return []
        raise


def _ignore_missing(action_fn: Callable[..., None], *args: str) -> None:
    try:
        action_fn(*args)
    except Exception as e:
        if is_missing_resource(e):
            logger.debug(f"{getattr(action_fn, '__name__', 'call')} skipped, already gone: {e}")
            return
        raise
