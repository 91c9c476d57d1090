# Open Service Broker API client
from .classifier import Outcome, classify
from .client import BrokerClient
from .config import APIVersion, ClientConfiguration, configuration_from_env, parse_api_version
from .errors import (
    AsyncBindingOperationsNotAllowed,
    BrokerReportedFailure,
    GetBindingNotAllowed,
    HTTPStatusCodeError,
    OSBError,
    RequiredFieldMissing,
    ResponseDecodeFailure,
    TransportFailure,
    UnexpectedStatusCode,
    is_app_guid_required_error,
    is_async_required_error,
    is_concurrency_error,
    is_conflict_error,
    is_gone_error,
)
from .transport import AiohttpTransport, Transport
from .types import (
    BindingLastOperationRequest,
    BindRequest,
    BindResource,
    BindResponse,
    DeprovisionRequest,
    DeprovisionResponse,
    GetBindingRequest,
    GetBindingResponse,
    LastOperationRequest,
    LastOperationResponse,
    LastOperationState,
    LifecycleResponse,
    OperationKey,
    OperationKind,
    OriginatingIdentity,
    PreviousValues,
    ProvisionRequest,
    ProvisionResponse,
    UnbindRequest,
    UnbindResponse,
    UpdateInstanceRequest,
    UpdateInstanceResponse,
)
from .wire import CatalogResponse, Plan, Service

__all__ = [
    "BrokerClient",
    "ClientConfiguration",
    "APIVersion",
    "configuration_from_env",
    "parse_api_version",
    "Transport",
    "AiohttpTransport",
    "Outcome",
    "classify",
    "OSBError",
    "RequiredFieldMissing",
    "AsyncBindingOperationsNotAllowed",
    "GetBindingNotAllowed",
    "HTTPStatusCodeError",
    "UnexpectedStatusCode",
    "BrokerReportedFailure",
    "ResponseDecodeFailure",
    "TransportFailure",
    "is_gone_error",
    "is_conflict_error",
    "is_async_required_error",
    "is_app_guid_required_error",
    "is_concurrency_error",
    "OperationKey",
    "OperationKind",
    "OriginatingIdentity",
    "LastOperationState",
    "ProvisionRequest",
    "ProvisionResponse",
    "UpdateInstanceRequest",
    "UpdateInstanceResponse",
    "PreviousValues",
    "DeprovisionRequest",
    "DeprovisionResponse",
    "LastOperationRequest",
    "LastOperationResponse",
    "BindRequest",
    "BindResource",
    "BindResponse",
    "UnbindRequest",
    "UnbindResponse",
    "GetBindingRequest",
    "GetBindingResponse",
    "BindingLastOperationRequest",
    "LifecycleResponse",
    "CatalogResponse",
    "Service",
    "Plan",
]
