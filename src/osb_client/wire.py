from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar
from urllib.parse import quote

import msgspec

from .types import (
    BindingLastOperationRequest,
    BindRequest,
    DeprovisionRequest,
    GetBindingRequest,
    LastOperationRequest,
    LastOperationState,
    OperationKind,
    ProvisionRequest,
    UnbindRequest,
    UpdateInstanceRequest,
)

CATALOG_PATH = "/v2/catalog"
SERVICE_INSTANCE_PATH = "/v2/service_instances/{instance_id}"
LAST_OPERATION_PATH = SERVICE_INSTANCE_PATH + "/last_operation"
BINDING_PATH = SERVICE_INSTANCE_PATH + "/service_bindings/{binding_id}"
BINDING_LAST_OPERATION_PATH = BINDING_PATH + "/last_operation"

# Query parameter names of the broker API.
VAR_KEY_SERVICE_ID = "service_id"
VAR_KEY_PLAN_ID = "plan_id"
VAR_KEY_OPERATION = "operation"
ACCEPTS_INCOMPLETE = "accepts_incomplete"
FORCE = "force"

API_VERSION_HEADER = "X-Broker-API-Version"
ORIGINATING_IDENTITY_HEADER = "X-Broker-API-Originating-Identity"


# ---- response bodies ----


class AsyncSuccessResponseBody(msgspec.Struct):
    operation: Optional[str] = None


class FailureResponseBody(msgspec.Struct):
    error: Optional[str] = None
    description: Optional[str] = None
    instance_usable: Optional[bool] = None
    update_repeatable: Optional[bool] = None


class ProvisionSuccessResponseBody(msgspec.Struct):
    dashboard_url: Optional[str] = None
    operation: Optional[str] = None


class UpdateSuccessResponseBody(msgspec.Struct):
    dashboard_url: Optional[str] = None
    operation: Optional[str] = None


class BindSuccessResponseBody(msgspec.Struct):
    credentials: Dict[str, Any] = {}
    syslog_drain_url: Optional[str] = None
    route_service_url: Optional[str] = None
    volume_mounts: List[Dict[str, Any]] = []
    operation: Optional[str] = None


class GetBindingResponseBody(msgspec.Struct):
    credentials: Dict[str, Any] = {}
    syslog_drain_url: Optional[str] = None
    route_service_url: Optional[str] = None
    volume_mounts: List[Dict[str, Any]] = []
    parameters: Dict[str, Any] = {}


class LastOperationResponseBody(msgspec.Struct):
    state: LastOperationState
    description: Optional[str] = None


class Plan(msgspec.Struct):
    id: str
    name: str
    description: str = ""
    free: Optional[bool] = None
    bindable: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None
    schemas: Optional[Dict[str, Any]] = None


class Service(msgspec.Struct):
    id: str
    name: str
    description: str = ""
    bindable: bool = False
    plan_updateable: Optional[bool] = None
    instances_retrievable: bool = False
    bindings_retrievable: bool = False
    tags: List[str] = []
    requires: List[str] = []
    metadata: Optional[Dict[str, Any]] = None
    plans: List[Plan] = []


class CatalogResponse(msgspec.Struct):
    services: List[Service] = []


T = TypeVar("T")


def decode_body(raw: bytes, typ: Type[T]) -> T:
    """Decode a JSON response body; an empty body decodes as `{}`."""
    if not raw.strip():
        raw = b"{}"
    return msgspec.json.decode(raw, type=typ)


# ---- request bodies ----


class ProvisionRequestBody(msgspec.Struct, omit_defaults=True):
    service_id: str
    plan_id: str
    organization_guid: Optional[str] = None
    space_guid: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None


class UpdateRequestBody(msgspec.Struct, omit_defaults=True):
    service_id: str
    plan_id: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    previous_values: Optional[Dict[str, str]] = None
    context: Optional[Dict[str, Any]] = None


class BindRequestBody(msgspec.Struct, omit_defaults=True):
    service_id: str
    plan_id: str
    app_guid: Optional[str] = None
    bind_resource: Optional[Dict[str, str]] = None
    parameters: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class WireRequest:
    method: str
    path: str
    params: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


def _seg(v: str) -> str:
    return quote(v, safe="")


def _opt_dict(v: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    return dict(v) if v is not None else None


def _lifecycle_params(service_id: str, plan_id: str, *, accepts_incomplete: bool) -> Dict[str, str]:
    params = {VAR_KEY_SERVICE_ID: service_id, VAR_KEY_PLAN_ID: plan_id}
    if accepts_incomplete:
        params[ACCEPTS_INCOMPLETE] = "true"
    return params


def _poll_params(service_id: Optional[str], plan_id: Optional[str], operation_key: Optional[str]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if service_id:
        params[VAR_KEY_SERVICE_ID] = service_id
    if plan_id:
        params[VAR_KEY_PLAN_ID] = plan_id
    if operation_key is not None:
        params[VAR_KEY_OPERATION] = operation_key
    return params


def _accepts_only(accepts_incomplete: bool) -> Dict[str, str]:
    return {ACCEPTS_INCOMPLETE: "true"} if accepts_incomplete else {}


def _build_get_catalog(_r: Any) -> WireRequest:
    return WireRequest(method="GET", path=CATALOG_PATH)


def _build_provision(r: ProvisionRequest) -> WireRequest:
    body = ProvisionRequestBody(
        service_id=r.service_id,
        plan_id=r.plan_id,
        organization_guid=r.organization_guid or None,
        space_guid=r.space_guid or None,
        parameters=_opt_dict(r.parameters),
        context=_opt_dict(r.context),
    )
    return WireRequest(
        method="PUT",
        path=SERVICE_INSTANCE_PATH.format(instance_id=_seg(r.instance_id)),
        params=_accepts_only(r.accepts_incomplete),
        body=msgspec.json.encode(body),
    )


def _build_update(r: UpdateInstanceRequest) -> WireRequest:
    previous = r.previous_values.to_dict() if r.previous_values is not None else None
    body = UpdateRequestBody(
        service_id=r.service_id,
        plan_id=r.plan_id or None,
        parameters=_opt_dict(r.parameters),
        previous_values=previous or None,
        context=_opt_dict(r.context),
    )
    return WireRequest(
        method="PATCH",
        path=SERVICE_INSTANCE_PATH.format(instance_id=_seg(r.instance_id)),
        params=_accepts_only(r.accepts_incomplete),
        body=msgspec.json.encode(body),
    )


def _build_deprovision(r: DeprovisionRequest) -> WireRequest:
    params = _lifecycle_params(r.service_id, r.plan_id, accepts_incomplete=r.accepts_incomplete)
    if r.force:
        params[FORCE] = "true"
    return WireRequest(
        method="DELETE",
        path=SERVICE_INSTANCE_PATH.format(instance_id=_seg(r.instance_id)),
        params=params,
    )


def _build_last_operation(r: LastOperationRequest) -> WireRequest:
    return WireRequest(
        method="GET",
        path=LAST_OPERATION_PATH.format(instance_id=_seg(r.instance_id)),
        params=_poll_params(r.service_id, r.plan_id, r.operation_key),
    )


def _build_bind(r: BindRequest) -> WireRequest:
    bind_resource = r.bind_resource.to_dict() if r.bind_resource is not None else None
    body = BindRequestBody(
        service_id=r.service_id,
        plan_id=r.plan_id,
        app_guid=r.app_guid or None,
        bind_resource=bind_resource or None,
        parameters=_opt_dict(r.parameters),
        context=_opt_dict(r.context),
    )
    return WireRequest(
        method="PUT",
        path=BINDING_PATH.format(instance_id=_seg(r.instance_id), binding_id=_seg(r.binding_id)),
        params=_accepts_only(r.accepts_incomplete),
        body=msgspec.json.encode(body),
    )


def _build_unbind(r: UnbindRequest) -> WireRequest:
    return WireRequest(
        method="DELETE",
        path=BINDING_PATH.format(instance_id=_seg(r.instance_id), binding_id=_seg(r.binding_id)),
        params=_lifecycle_params(r.service_id, r.plan_id, accepts_incomplete=r.accepts_incomplete),
    )


def _build_get_binding(r: GetBindingRequest) -> WireRequest:
    return WireRequest(
        method="GET",
        path=BINDING_PATH.format(instance_id=_seg(r.instance_id), binding_id=_seg(r.binding_id)),
    )


def _build_binding_last_operation(r: BindingLastOperationRequest) -> WireRequest:
    return WireRequest(
        method="GET",
        path=BINDING_LAST_OPERATION_PATH.format(instance_id=_seg(r.instance_id), binding_id=_seg(r.binding_id)),
        params=_poll_params(r.service_id, r.plan_id, r.operation_key),
    )


_BUILDERS: Dict[OperationKind, Callable[[Any], WireRequest]] = {
    OperationKind.GET_CATALOG: _build_get_catalog,
    OperationKind.PROVISION: _build_provision,
    OperationKind.UPDATE: _build_update,
    OperationKind.DEPROVISION: _build_deprovision,
    OperationKind.LAST_OPERATION: _build_last_operation,
    OperationKind.BIND: _build_bind,
    OperationKind.UNBIND: _build_unbind,
    OperationKind.GET_BINDING: _build_get_binding,
    OperationKind.BINDING_LAST_OPERATION: _build_binding_last_operation,
}


def build_wire_request(kind: OperationKind, request: Any) -> WireRequest:
    """Turn a validated request into method, path, query parameters and body."""
    return _BUILDERS[kind](request)
