"""Open Service Broker v2 HTTP API."""

from __future__ import annotations

import hmac
import json
import logging
import uuid
from typing import Any

from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule
from werkzeug.wrappers import Request, Response

from .broker import S3Broker
from .constants import REQUEST_IDENTITY_HEADER
from .domain import BindDetails, DeprovisionDetails, ProvisionDetails, UnbindDetails, UpdateDetails
from .errors import (
    InstanceDoesNotExistError,
    InvalidParametersError,
    NoDirectoryConfiguredError,
    OperationNotSupportedError,
    PlanNotFoundError,
    PolicyDocumentError,
    ResourceExistsError,
    ServiceNotFoundError,
    UnknownInstanceNameError,
)
from .utils.context import with_correlation_id
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)

INPUT_ERRORS = (
    InvalidParametersError,
    PlanNotFoundError,
    ServiceNotFoundError,
    UnknownInstanceNameError,
    NoDirectoryConfiguredError,
    PolicyDocumentError,
    OperationNotSupportedError,
)

INSTANCE_PATH = "/v2/service_instances/<instance_id>"
BINDING_PATH = f"{INSTANCE_PATH}/service_bindings/<binding_id>"


def json_response(body: Any, status: int = 200) -> Response:
    return Response(json.dumps(body), status=status, mimetype="application/json")


def error_response(error: Exception, status: int) -> Response:
    return json_response({"description": sanitize_exception(error)}, status=status)


class BrokerAPI:
    """WSGI application translating broker HTTP requests into S3Broker calls."""

    def __init__(self, broker: S3Broker, username: str, password: str) -> None:
        self.broker = broker
        self.username = username
        self.password = password
        self.url_map = Map([
            Rule("/v2/catalog", endpoint="catalog", methods=["GET"]),
            Rule(INSTANCE_PATH, endpoint="provision", methods=["PUT"]),
            Rule(INSTANCE_PATH, endpoint="update", methods=["PATCH"]),
            Rule(INSTANCE_PATH, endpoint="deprovision", methods=["DELETE"]),
            Rule(f"{INSTANCE_PATH}/last_operation", endpoint="last_operation", methods=["GET"]),
            Rule(BINDING_PATH, endpoint="bind", methods=["PUT"]),
            Rule(BINDING_PATH, endpoint="unbind", methods=["DELETE"]),
        ])

    def _authorized(self, request: Request) -> bool:
        auth = request.authorization
        if auth is None or auth.username is None or auth.password is None:
            return False
        return hmac.compare_digest(auth.username, self.username) and hmac.compare_digest(
            auth.password, self.password
        )

    def _json_body(self, request: Request) -> dict[str, Any]:
        if not request.get_data():
            return {}
        try:
            body = json.loads(request.get_data())
        except ValueError as e:
            raise InvalidParametersError(f"Invalid request body: {e}") from e
        if not isinstance(body, dict):
            raise InvalidParametersError("Invalid request body: expected a JSON object")
        return body

    def dispatch_request(self, request: Request) -> Response:
        if not self._authorized(request):
            response = json_response({"description": "Unauthorized"}, status=401)
            response.headers["WWW-Authenticate"] = 'Basic realm="s3-broker"'
            return response

        adapter = self.url_map.bind_to_environ(request.environ)
        try:
            endpoint, values = adapter.match()
        except HTTPException as e:
            return e.get_response(request.environ)

        try:
            return getattr(self, f"on_{endpoint}")(request, **values)
        except INPUT_ERRORS as e:
            return error_response(e, 400)
        except ResourceExistsError as e:
            return error_response(e, 409)
        except Exception as e:
            logger.error(f"Request {request.method} {request.path} failed: {sanitize_exception(e)}")
            return error_response(e, 500)

    def on_catalog(self, request: Request) -> Response:
        return json_response({"services": self.broker.services()})

    def on_provision(self, request: Request, instance_id: str) -> Response:
        body = self._json_body(request)
        details = ProvisionDetails(
            service_id=str(body.get("service_id", "")),
            plan_id=str(body.get("plan_id", "")),
            organization_guid=str(body.get("organization_guid", "")),
            space_guid=str(body.get("space_guid", "")),
            raw_parameters=body.get("parameters"),
        )
        self.broker.provision(instance_id, details)
        return json_response({}, status=201)

    def on_update(self, request: Request, instance_id: str) -> Response:
        body = self._json_body(request)
        details = UpdateDetails(
            service_id=str(body.get("service_id", "")),
            plan_id=str(body.get("plan_id", "")),
            raw_parameters=body.get("parameters"),
        )
        self.broker.update(instance_id, details)
        return json_response({})

    def on_deprovision(self, request: Request, instance_id: str) -> Response:
        details = DeprovisionDetails(
            service_id=request.args.get("service_id", ""),
            plan_id=request.args.get("plan_id", ""),
        )
        try:
            self.broker.deprovision(instance_id, details)
        except InstanceDoesNotExistError:
            return json_response({}, status=410)
        return json_response({})

    def on_last_operation(self, request: Request, instance_id: str) -> Response:
        self.broker.last_operation(instance_id)
        return json_response({"state": "succeeded"})

    def on_bind(self, request: Request, instance_id: str, binding_id: str) -> Response:
        body = self._json_body(request)
        details = BindDetails(
            service_id=str(body.get("service_id", "")),
            plan_id=str(body.get("plan_id", "")),
            app_guid=str(body.get("app_guid", "")),
            raw_parameters=body.get("parameters"),
        )
        try:
            credentials = self.broker.bind(instance_id, binding_id, details)
        except InstanceDoesNotExistError as e:
            return error_response(e, 404)
        return json_response({"credentials": credentials.to_dict()}, status=201)

    def on_unbind(self, request: Request, instance_id: str, binding_id: str) -> Response:
        details = UnbindDetails(
            service_id=request.args.get("service_id", ""),
            plan_id=request.args.get("plan_id", ""),
        )
        self.broker.unbind(instance_id, binding_id, details)
        return json_response({})

    def wsgi_app(self, environ: dict[str, Any], start_response: Any) -> Any:
        request = Request(environ)
        corr_id = request.headers.get(REQUEST_IDENTITY_HEADER) or str(uuid.uuid4())
        with with_correlation_id(corr_id):
            response = self.dispatch_request(request)
        return response(environ, start_response)

    def __call__(self, environ: dict[str, Any], start_response: Any) -> Any:
        return self.wsgi_app(environ, start_response)
