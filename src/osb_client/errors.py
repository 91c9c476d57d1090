from __future__ import annotations

from typing import Optional


class OSBError(RuntimeError):
    pass


class RequiredFieldMissing(OSBError, ValueError):
    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is required")
        self.field = field


class AsyncBindingOperationsNotAllowed(OSBError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"asynchronous binding operations are not allowed: {reason}")
        self.reason = reason


class GetBindingNotAllowed(OSBError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"get binding is not allowed: {reason}")
        self.reason = reason


class HTTPStatusCodeError(OSBError):
    """
    Non-success HTTP response from a broker.

    When the broker sent a structured error body its fields are carried
    verbatim; when the body was absent or unparseable only `status_code` is
    meaningful and `response_error` holds the decode error, if any.
    """

    def __init__(
        self,
        status_code: int,
        *,
        error_message: Optional[str] = None,
        description: Optional[str] = None,
        instance_usable: Optional[bool] = None,
        update_repeatable: Optional[bool] = None,
        response_error: Optional[BaseException] = None,
    ) -> None:
        self.status_code = int(status_code)
        self.error_message = error_message
        self.description = description
        self.instance_usable = instance_usable
        self.update_repeatable = update_repeatable
        self.response_error = response_error
        super().__init__(self._render())

    def _render(self) -> str:
        msg = f"broker returned status {self.status_code}: error={self.error_message} description={self.description}"
        if self.response_error is not None:
            msg += f" response_error={self.response_error}"
        return msg


class UnexpectedStatusCode(HTTPStatusCodeError):
    """Status/flag combination the operation does not accept (e.g. 202 without accepts_incomplete, 410)."""


class BrokerReportedFailure(HTTPStatusCodeError):
    """Broker returned a structured error body."""


class ResponseDecodeFailure(OSBError):
    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"failed to decode broker response (status={status_code}): {reason}")
        self.status_code = int(status_code)
        self.reason = reason


class TransportFailure(OSBError):
    pass


# Error codes defined by the broker API for 422 responses.
ASYNC_REQUIRED_ERROR = "AsyncRequired"
APP_GUID_REQUIRED_ERROR = "RequiresApp"
CONCURRENCY_ERROR = "ConcurrencyError"


def _status_error(err: BaseException) -> Optional[HTTPStatusCodeError]:
    return err if isinstance(err, HTTPStatusCodeError) else None


def _is_422_with(err: BaseException, code: str) -> bool:
    e = _status_error(err)
    return e is not None and e.status_code == 422 and e.error_message == code


def is_gone_error(err: BaseException) -> bool:
    e = _status_error(err)
    return e is not None and e.status_code == 410


def is_conflict_error(err: BaseException) -> bool:
    e = _status_error(err)
    return e is not None and e.status_code == 409


def is_async_required_error(err: BaseException) -> bool:
    return _is_422_with(err, ASYNC_REQUIRED_ERROR)


def is_app_guid_required_error(err: BaseException) -> bool:
    return _is_422_with(err, APP_GUID_REQUIRED_ERROR)


def is_concurrency_error(err: BaseException) -> bool:
    return _is_422_with(err, CONCURRENCY_ERROR)
