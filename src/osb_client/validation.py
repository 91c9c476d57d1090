from __future__ import annotations

from typing import Iterable, Tuple

from .errors import RequiredFieldMissing
from .types import (
    BindingLastOperationRequest,
    BindRequest,
    DeprovisionRequest,
    GetBindingRequest,
    LastOperationRequest,
    ProvisionRequest,
    UnbindRequest,
    UpdateInstanceRequest,
)


def _require(fields: Iterable[Tuple[str, object]]) -> None:
    # First missing field wins so error messages are deterministic.
    for name, value in fields:
        if not value:
            raise RequiredFieldMissing(name)


def validate_provision_request(r: ProvisionRequest) -> None:
    _require((("instanceID", r.instance_id), ("serviceID", r.service_id), ("planID", r.plan_id)))


def validate_update_instance_request(r: UpdateInstanceRequest) -> None:
    _require((("instanceID", r.instance_id), ("serviceID", r.service_id)))


def validate_deprovision_request(r: DeprovisionRequest) -> None:
    _require((("instanceID", r.instance_id), ("serviceID", r.service_id), ("planID", r.plan_id)))


def validate_last_operation_request(r: LastOperationRequest) -> None:
    _require((("instanceID", r.instance_id),))


def validate_bind_request(r: BindRequest) -> None:
    _require(
        (
            ("bindingID", r.binding_id),
            ("instanceID", r.instance_id),
            ("serviceID", r.service_id),
            ("planID", r.plan_id),
        )
    )


def validate_unbind_request(r: UnbindRequest) -> None:
    _require(
        (
            ("bindingID", r.binding_id),
            ("instanceID", r.instance_id),
            ("serviceID", r.service_id),
            ("planID", r.plan_id),
        )
    )


def validate_get_binding_request(r: GetBindingRequest) -> None:
    _require((("instanceID", r.instance_id), ("bindingID", r.binding_id)))


def validate_binding_last_operation_request(r: BindingLastOperationRequest) -> None:
    _require((("instanceID", r.instance_id), ("bindingID", r.binding_id)))
