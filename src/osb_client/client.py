from __future__ import annotations

from typing import AsyncContextManager, Dict, Optional, Type, TypeVar

import aiohttp
import msgspec

from .classifier import Outcome, classify, failure_error
from .config import ASYNC_BINDINGS_MIN_VERSION, ORIGINATING_IDENTITY_MIN_VERSION, ClientConfiguration
from .errors import AsyncBindingOperationsNotAllowed, GetBindingNotAllowed, HTTPStatusCodeError, ResponseDecodeFailure
from .transport import AiohttpTransport, Transport, TransportResponse
from .types import (
    BindingLastOperationRequest,
    BindRequest,
    BindResponse,
    DeprovisionRequest,
    DeprovisionResponse,
    GetBindingRequest,
    GetBindingResponse,
    LastOperationRequest,
    LastOperationResponse,
    OperationKey,
    OperationKind,
    OriginatingIdentity,
    ProvisionRequest,
    ProvisionResponse,
    UnbindRequest,
    UnbindResponse,
    UpdateInstanceRequest,
    UpdateInstanceResponse,
)
from .validation import (
    validate_bind_request,
    validate_binding_last_operation_request,
    validate_deprovision_request,
    validate_get_binding_request,
    validate_last_operation_request,
    validate_provision_request,
    validate_unbind_request,
    validate_update_instance_request,
)
from .wire import (
    API_VERSION_HEADER,
    ORIGINATING_IDENTITY_HEADER,
    AsyncSuccessResponseBody,
    BindSuccessResponseBody,
    CatalogResponse,
    GetBindingResponseBody,
    LastOperationResponseBody,
    ProvisionSuccessResponseBody,
    UpdateSuccessResponseBody,
    WireRequest,
    build_wire_request,
    decode_body,
)

T = TypeVar("T")


def _operation_key(raw: Optional[str]) -> Optional[OperationKey]:
    return OperationKey(raw) if raw is not None else None


async def _decode(resp: TransportResponse, typ: Type[T]) -> T:
    raw = await resp.read()
    try:
        return decode_body(raw, typ)
    except msgspec.DecodeError as e:
        raise ResponseDecodeFailure(resp.status, str(e)) from e


async def _failure(resp: TransportResponse, outcome: Outcome) -> HTTPStatusCodeError:
    return failure_error(outcome, resp.status, await resp.read())


class BrokerClient:
    """
    Open Service Broker API client.

    Every method is one request/response exchange: the request is validated,
    sent, and the broker's status code classified into a synchronous result,
    an asynchronous accept (with optional operation key) or an error. The
    client keeps no state between calls.
    """

    def __init__(
        self,
        config: ClientConfiguration,
        *,
        transport: Optional[Transport] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.config = config
        self.transport: Transport = transport or AiohttpTransport(config, session=session)

    def _headers(self, identity: Optional[OriginatingIdentity]) -> Dict[str, str]:
        h = {API_VERSION_HEADER: self.config.api_version.label}
        if identity is not None and self.config.api_version.at_least(ORIGINATING_IDENTITY_MIN_VERSION):
            h[ORIGINATING_IDENTITY_HEADER] = identity.header_value()
        return h

    def _send(self, wire: WireRequest, identity: Optional[OriginatingIdentity] = None) -> AsyncContextManager[TransportResponse]:
        return self.transport.send(
            wire.method,
            self.config.url + wire.path,
            params=wire.params,
            body=wire.body,
            headers=self._headers(identity),
        )

    def _check_async_bindings_allowed(self) -> None:
        if not self.config.enable_alpha_features:
            raise AsyncBindingOperationsNotAllowed("alpha features are disabled")
        if not self.config.api_version.at_least(ASYNC_BINDINGS_MIN_VERSION):
            raise AsyncBindingOperationsNotAllowed(
                f"API version {self.config.api_version.label} < {ASYNC_BINDINGS_MIN_VERSION.label}"
            )

    def _check_get_binding_allowed(self) -> None:
        if not self.config.enable_alpha_features:
            raise GetBindingNotAllowed("alpha features are disabled")
        if not self.config.api_version.at_least(ASYNC_BINDINGS_MIN_VERSION):
            raise GetBindingNotAllowed(f"API version {self.config.api_version.label} < {ASYNC_BINDINGS_MIN_VERSION.label}")

    async def get_catalog(self) -> CatalogResponse:
        wire = build_wire_request(OperationKind.GET_CATALOG, None)
        async with self._send(wire) as resp:
            outcome = classify(OperationKind.GET_CATALOG, resp.status)
            if outcome is Outcome.SUCCESS:
                return await _decode(resp, CatalogResponse)
            raise await _failure(resp, outcome)

    async def provision_instance(self, r: ProvisionRequest) -> ProvisionResponse:
        validate_provision_request(r)
        wire = build_wire_request(OperationKind.PROVISION, r)
        async with self._send(wire, r.originating_identity) as resp:
            outcome = classify(OperationKind.PROVISION, resp.status, r.accepts_incomplete)
            if outcome is Outcome.SUCCESS:
                body = await _decode(resp, ProvisionSuccessResponseBody)
                return ProvisionResponse(dashboard_url=body.dashboard_url)
            if outcome is Outcome.ASYNC:
                body = await _decode(resp, ProvisionSuccessResponseBody)
                return ProvisionResponse(
                    is_async=True,
                    operation_key=_operation_key(body.operation),
                    dashboard_url=body.dashboard_url,
                )
            raise await _failure(resp, outcome)

    async def update_instance(self, r: UpdateInstanceRequest) -> UpdateInstanceResponse:
        validate_update_instance_request(r)
        wire = build_wire_request(OperationKind.UPDATE, r)
        async with self._send(wire, r.originating_identity) as resp:
            outcome = classify(OperationKind.UPDATE, resp.status, r.accepts_incomplete)
            if outcome is Outcome.SUCCESS:
                body = await _decode(resp, UpdateSuccessResponseBody)
                return UpdateInstanceResponse(dashboard_url=body.dashboard_url)
            if outcome is Outcome.ASYNC:
                body = await _decode(resp, UpdateSuccessResponseBody)
                return UpdateInstanceResponse(
                    is_async=True,
                    operation_key=_operation_key(body.operation),
                    dashboard_url=body.dashboard_url,
                )
            raise await _failure(resp, outcome)

    async def deprovision_instance(self, r: DeprovisionRequest) -> DeprovisionResponse:
        """
        Delete a service instance.

        200 is a synchronous success. 202 is an async accept only when the
        request set accepts_incomplete. 410 is raised as UnexpectedStatusCode
        (see `is_gone_error`) rather than treated as success.
        """
        validate_deprovision_request(r)
        wire = build_wire_request(OperationKind.DEPROVISION, r)
        async with self._send(wire, r.originating_identity) as resp:
            outcome = classify(OperationKind.DEPROVISION, resp.status, r.accepts_incomplete)
            if outcome is Outcome.SUCCESS:
                return DeprovisionResponse()
            if outcome is Outcome.ASYNC:
                body = await _decode(resp, AsyncSuccessResponseBody)
                return DeprovisionResponse(is_async=True, operation_key=_operation_key(body.operation))
            raise await _failure(resp, outcome)

    async def poll_last_operation(self, r: LastOperationRequest) -> LastOperationResponse:
        validate_last_operation_request(r)
        wire = build_wire_request(OperationKind.LAST_OPERATION, r)
        async with self._send(wire, r.originating_identity) as resp:
            outcome = classify(OperationKind.LAST_OPERATION, resp.status)
            if outcome is Outcome.SUCCESS:
                body = await _decode(resp, LastOperationResponseBody)
                return LastOperationResponse(state=body.state, description=body.description)
            raise await _failure(resp, outcome)

    async def bind(self, r: BindRequest) -> BindResponse:
        validate_bind_request(r)
        if r.accepts_incomplete:
            self._check_async_bindings_allowed()
        wire = build_wire_request(OperationKind.BIND, r)
        async with self._send(wire, r.originating_identity) as resp:
            outcome = classify(OperationKind.BIND, resp.status, r.accepts_incomplete)
            if outcome is Outcome.SUCCESS:
                body = await _decode(resp, BindSuccessResponseBody)
                return BindResponse(
                    credentials=body.credentials,
                    syslog_drain_url=body.syslog_drain_url,
                    route_service_url=body.route_service_url,
                    volume_mounts=body.volume_mounts,
                )
            if outcome is Outcome.ASYNC:
                body = await _decode(resp, AsyncSuccessResponseBody)
                return BindResponse(is_async=True, operation_key=_operation_key(body.operation))
            raise await _failure(resp, outcome)

    async def unbind(self, r: UnbindRequest) -> UnbindResponse:
        validate_unbind_request(r)
        if r.accepts_incomplete:
            self._check_async_bindings_allowed()
        wire = build_wire_request(OperationKind.UNBIND, r)
        async with self._send(wire, r.originating_identity) as resp:
            outcome = classify(OperationKind.UNBIND, resp.status, r.accepts_incomplete)
            if outcome is Outcome.SUCCESS:
                return UnbindResponse()
            if outcome is Outcome.ASYNC:
                body = await _decode(resp, AsyncSuccessResponseBody)
                return UnbindResponse(is_async=True, operation_key=_operation_key(body.operation))
            raise await _failure(resp, outcome)

    async def get_binding(self, r: GetBindingRequest) -> GetBindingResponse:
        validate_get_binding_request(r)
        self._check_get_binding_allowed()
        wire = build_wire_request(OperationKind.GET_BINDING, r)
        async with self._send(wire) as resp:
            outcome = classify(OperationKind.GET_BINDING, resp.status)
            if outcome is Outcome.SUCCESS:
                body = await _decode(resp, GetBindingResponseBody)
                return GetBindingResponse(
                    credentials=body.credentials,
                    syslog_drain_url=body.syslog_drain_url,
                    route_service_url=body.route_service_url,
                    volume_mounts=body.volume_mounts,
                    parameters=body.parameters,
                )
            raise await _failure(resp, outcome)

    async def poll_binding_last_operation(self, r: BindingLastOperationRequest) -> LastOperationResponse:
        validate_binding_last_operation_request(r)
        self._check_async_bindings_allowed()
        wire = build_wire_request(OperationKind.BINDING_LAST_OPERATION, r)
        async with self._send(wire, r.originating_identity) as resp:
            outcome = classify(OperationKind.BINDING_LAST_OPERATION, resp.status)
            if outcome is Outcome.SUCCESS:
                body = await _decode(resp, LastOperationResponseBody)
                return LastOperationResponse(state=body.state, description=body.description)
            raise await _failure(resp, outcome)
