from __future__ import annotations

from enum import Enum
from typing import Iterator, Mapping, Optional, Tuple

import msgspec

from .errors import BrokerReportedFailure, HTTPStatusCodeError, UnexpectedStatusCode
from .types import OperationKind
from .wire import FailureResponseBody, decode_body


class Outcome(str, Enum):
    SUCCESS = "success"
    ASYNC = "async"
    # Instance already gone; surfaced to the caller as an error, never swallowed.
    GONE = "gone"
    # Broker answered asynchronously although the caller did not accept incomplete operations.
    REJECTED = "rejected"
    FAILURE = "failure"


# None matches either value of accepts_incomplete.
ANY: Optional[bool] = None

Row = Tuple[int, Optional[bool]]

DECISION_TABLE: Mapping[OperationKind, Mapping[Row, Outcome]] = {
    OperationKind.GET_CATALOG: {
        (200, ANY): Outcome.SUCCESS,
    },
    OperationKind.PROVISION: {
        (200, ANY): Outcome.SUCCESS,
        (201, ANY): Outcome.SUCCESS,
        (202, True): Outcome.ASYNC,
        (202, False): Outcome.REJECTED,
    },
    OperationKind.UPDATE: {
        (200, ANY): Outcome.SUCCESS,
        (202, True): Outcome.ASYNC,
        (202, False): Outcome.REJECTED,
    },
    OperationKind.DEPROVISION: {
        (200, ANY): Outcome.SUCCESS,
        (410, ANY): Outcome.GONE,
        (202, True): Outcome.ASYNC,
        (202, False): Outcome.REJECTED,
    },
    OperationKind.LAST_OPERATION: {
        (200, ANY): Outcome.SUCCESS,
    },
    OperationKind.BIND: {
        (200, ANY): Outcome.SUCCESS,
        (201, ANY): Outcome.SUCCESS,
        (202, True): Outcome.ASYNC,
        (202, False): Outcome.REJECTED,
    },
    OperationKind.UNBIND: {
        (200, ANY): Outcome.SUCCESS,
        (410, ANY): Outcome.SUCCESS,
        (202, True): Outcome.ASYNC,
        (202, False): Outcome.REJECTED,
    },
    OperationKind.GET_BINDING: {
        (200, ANY): Outcome.SUCCESS,
    },
    OperationKind.BINDING_LAST_OPERATION: {
        (200, ANY): Outcome.SUCCESS,
    },
}


def classify(kind: OperationKind, status: int, accepts_incomplete: bool = False) -> Outcome:
    """
    Map a broker status code to an outcome for one operation kind.

    An exact (status, flag) row wins over a (status, ANY) row; statuses not
    listed for the operation are failures.
    """
    rows = DECISION_TABLE[kind]
    exact = rows.get((int(status), bool(accepts_incomplete)))
    if exact is not None:
        return exact
    return rows.get((int(status), ANY), Outcome.FAILURE)


def iter_rows(kind: OperationKind) -> Iterator[Tuple[int, Optional[bool], Outcome]]:
    for (status, flag), outcome in sorted(DECISION_TABLE[kind].items(), key=lambda kv: (kv[0][0], str(kv[0][1]))):
        yield status, flag, outcome


def failure_error(outcome: Outcome, status: int, raw: bytes) -> HTTPStatusCodeError:
    """
    Build the error for a GONE, REJECTED or FAILURE outcome from the broker's body.

    GONE and REJECTED always give UnexpectedStatusCode. FAILURE gives
    BrokerReportedFailure when the body is a structured error, else a generic
    HTTPStatusCodeError carrying the raw status (and the decode error, if any).
    """
    unexpected = outcome in (Outcome.GONE, Outcome.REJECTED)
    generic = UnexpectedStatusCode if unexpected else HTTPStatusCodeError
    if not raw.strip():
        return generic(status)
    try:
        body = decode_body(raw, FailureResponseBody)
    except msgspec.DecodeError as e:
        return generic(status, response_error=e)
    if not unexpected and body.error is None and body.description is None:
        return HTTPStatusCodeError(
            status,
            instance_usable=body.instance_usable,
            update_repeatable=body.update_repeatable,
        )
    cls = UnexpectedStatusCode if unexpected else BrokerReportedFailure
    return cls(
        status,
        error_message=body.error,
        description=body.description,
        instance_usable=body.instance_usable,
        update_repeatable=body.update_repeatable,
    )
