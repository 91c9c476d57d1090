from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, NewType, Optional

# Opaque broker-issued token correlating a poll with an asynchronous operation.
OperationKey = NewType("OperationKey", str)


class LastOperationState(str, Enum):
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class OriginatingIdentity:
    """
    Identity of the platform user that triggered a request.

    `value` is a JSON document (as text); brokers receive it base64-encoded in
    the X-Broker-API-Originating-Identity header, prefixed by the platform name.
    """

    platform: str
    value: str

    def header_value(self) -> str:
        encoded = base64.b64encode(self.value.encode("utf-8")).decode("ascii")
        return f"{self.platform} {encoded}"


@dataclass(frozen=True)
class ProvisionRequest:
    instance_id: str
    service_id: str
    plan_id: str
    accepts_incomplete: bool = False
    organization_guid: str = ""
    space_guid: str = ""
    parameters: Optional[Mapping[str, Any]] = None
    context: Optional[Mapping[str, Any]] = None
    originating_identity: Optional[OriginatingIdentity] = None


@dataclass(frozen=True)
class PreviousValues:
    plan_id: str = ""
    service_id: str = ""
    organization_id: str = ""
    space_id: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {k: v for k, v in (
            ("plan_id", self.plan_id),
            ("service_id", self.service_id),
            ("organization_id", self.organization_id),
            ("space_id", self.space_id),
        ) if v}


@dataclass(frozen=True)
class UpdateInstanceRequest:
    instance_id: str
    service_id: str
    # New plan; empty keeps the current one.
    plan_id: str = ""
    accepts_incomplete: bool = False
    parameters: Optional[Mapping[str, Any]] = None
    context: Optional[Mapping[str, Any]] = None
    previous_values: Optional[PreviousValues] = None
    originating_identity: Optional[OriginatingIdentity] = None


@dataclass(frozen=True)
class DeprovisionRequest:
    instance_id: str
    service_id: str
    plan_id: str
    accepts_incomplete: bool = False
    force: bool = False
    originating_identity: Optional[OriginatingIdentity] = None


@dataclass(frozen=True)
class LastOperationRequest:
    instance_id: str
    service_id: Optional[str] = None
    plan_id: Optional[str] = None
    operation_key: Optional[OperationKey] = None
    originating_identity: Optional[OriginatingIdentity] = None


@dataclass(frozen=True)
class BindResource:
    app_guid: str = ""
    route: str = ""

    def to_dict(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.app_guid:
            out["app_guid"] = self.app_guid
        if self.route:
            out["route"] = self.route
        return out


@dataclass(frozen=True)
class BindRequest:
    binding_id: str
    instance_id: str
    service_id: str
    plan_id: str
    accepts_incomplete: bool = False
    app_guid: str = ""
    bind_resource: Optional[BindResource] = None
    parameters: Optional[Mapping[str, Any]] = None
    context: Optional[Mapping[str, Any]] = None
    originating_identity: Optional[OriginatingIdentity] = None


@dataclass(frozen=True)
class UnbindRequest:
    binding_id: str
    instance_id: str
    service_id: str
    plan_id: str
    accepts_incomplete: bool = False
    originating_identity: Optional[OriginatingIdentity] = None


@dataclass(frozen=True)
class GetBindingRequest:
    instance_id: str
    binding_id: str


@dataclass(frozen=True)
class BindingLastOperationRequest:
    instance_id: str
    binding_id: str
    service_id: Optional[str] = None
    plan_id: Optional[str] = None
    operation_key: Optional[OperationKey] = None
    originating_identity: Optional[OriginatingIdentity] = None


@dataclass(frozen=True)
class LifecycleResponse:
    """Outcome of a lifecycle call; `operation_key` is only ever set when `is_async`."""

    is_async: bool = False
    operation_key: Optional[OperationKey] = None


@dataclass(frozen=True)
class ProvisionResponse(LifecycleResponse):
    dashboard_url: Optional[str] = None


@dataclass(frozen=True)
class UpdateInstanceResponse(LifecycleResponse):
    dashboard_url: Optional[str] = None


@dataclass(frozen=True)
class DeprovisionResponse(LifecycleResponse):
    pass


@dataclass(frozen=True)
class BindResponse(LifecycleResponse):
    credentials: Mapping[str, Any] = field(default_factory=dict)
    syslog_drain_url: Optional[str] = None
    route_service_url: Optional[str] = None
    volume_mounts: List[Mapping[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class UnbindResponse(LifecycleResponse):
    pass


@dataclass(frozen=True)
class GetBindingResponse:
    credentials: Mapping[str, Any] = field(default_factory=dict)
    syslog_drain_url: Optional[str] = None
    route_service_url: Optional[str] = None
    volume_mounts: List[Mapping[str, Any]] = field(default_factory=list)
    parameters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LastOperationResponse:
    state: LastOperationState
    description: Optional[str] = None


class OperationKind(str, Enum):
    GET_CATALOG = "get_catalog"
    PROVISION = "provision"
    UPDATE = "update"
    DEPROVISION = "deprovision"
    LAST_OPERATION = "last_operation"
    BIND = "bind"
    UNBIND = "unbind"
    GET_BINDING = "get_binding"
    BINDING_LAST_OPERATION = "binding_last_operation"
