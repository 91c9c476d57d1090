import asyncio
import base64
import json

import pytest

from osb_client import (
    BrokerClient,
    BrokerReportedFailure,
    ClientConfiguration,
    DeprovisionRequest,
    DeprovisionResponse,
    HTTPStatusCodeError,
    OriginatingIdentity,
    ResponseDecodeFailure,
    UnexpectedStatusCode,
    is_gone_error,
)
from osb_client.config import API_VERSION_2_12
from osb_client.testing import FakeBroker

INSTANCE_PATH = "/v2/service_instances/inst-1"


@pytest.fixture
def broker():
    with FakeBroker() as b:
        yield b


def _client(broker: FakeBroker, **kwargs) -> BrokerClient:
    return BrokerClient(ClientConfiguration(url=broker.base_url, **kwargs))


def _request(**kwargs) -> DeprovisionRequest:
    base = {"instance_id": "inst-1", "service_id": "svc", "plan_id": "plan"}
    base.update(kwargs)
    return DeprovisionRequest(**base)


@pytest.mark.parametrize("accepts", [True, False])
def test_200_is_synchronous(broker: FakeBroker, accepts: bool) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 200, {})
    res = asyncio.run(_client(broker).deprovision_instance(_request(accepts_incomplete=accepts)))
    assert res == DeprovisionResponse(is_async=False, operation_key=None)


def test_202_with_operation_key(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 202, {"operation": "op-123"})
    res = asyncio.run(_client(broker).deprovision_instance(_request(accepts_incomplete=True)))
    assert res.is_async is True
    assert res.operation_key == "op-123"


def test_202_with_empty_body_has_no_operation_key(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 202, None)
    res = asyncio.run(_client(broker).deprovision_instance(_request(accepts_incomplete=True)))
    assert res.is_async is True
    assert res.operation_key is None


def test_202_with_empty_operation_keeps_empty_key(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 202, {"operation": ""})
    res = asyncio.run(_client(broker).deprovision_instance(_request(accepts_incomplete=True)))
    assert res.operation_key == ""


def test_202_without_accepts_incomplete_fails(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 202, {"operation": "op-123"})
    with pytest.raises(UnexpectedStatusCode) as e:
        asyncio.run(_client(broker).deprovision_instance(_request(accepts_incomplete=False)))
    assert e.value.status_code == 202


def test_202_with_malformed_body_is_decode_failure(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 202, b'{"operation": 17}')
    with pytest.raises(ResponseDecodeFailure) as e:
        asyncio.run(_client(broker).deprovision_instance(_request(accepts_incomplete=True)))
    assert e.value.status_code == 202


@pytest.mark.parametrize("accepts", [True, False])
def test_410_is_failure_carrying_body(broker: FakeBroker, accepts: bool) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 410, {"description": "instance already deleted"})
    with pytest.raises(UnexpectedStatusCode) as e:
        asyncio.run(_client(broker).deprovision_instance(_request(accepts_incomplete=accepts)))
    assert e.value.status_code == 410
    assert e.value.description == "instance already deleted"
    assert is_gone_error(e.value)


def test_repeated_deprovision_of_gone_instance_fails_every_time(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 410, {})
    client = _client(broker)
    for _ in range(2):
        with pytest.raises(UnexpectedStatusCode) as e:
            asyncio.run(client.deprovision_instance(_request()))
        assert is_gone_error(e.value)
    assert len(broker.recorded("DELETE")) == 2


def test_broker_error_body_is_surfaced(broker: FakeBroker) -> None:
    broker.respond(
        "DELETE",
        INSTANCE_PATH,
        422,
        {"error": "ConcurrencyError", "description": "another operation is in progress", "instance_usable": True},
    )
    with pytest.raises(BrokerReportedFailure) as e:
        asyncio.run(_client(broker).deprovision_instance(_request()))
    assert e.value.status_code == 422
    assert e.value.error_message == "ConcurrencyError"
    assert e.value.description == "another operation is in progress"
    assert e.value.instance_usable is True


def test_unparseable_error_body_is_generic_failure(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 500, b"internal error")
    with pytest.raises(HTTPStatusCodeError) as e:
        asyncio.run(_client(broker).deprovision_instance(_request()))
    assert type(e.value) is HTTPStatusCodeError
    assert e.value.status_code == 500
    assert e.value.response_error is not None


def test_query_parameters_reach_broker(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 200, {})
    asyncio.run(
        _client(broker).deprovision_instance(
            _request(service_id="svc id", plan_id="plan/1", accepts_incomplete=True, force=True)
        )
    )
    (req,) = broker.recorded("DELETE")
    assert req.path == INSTANCE_PATH
    assert req.query == {"service_id": "svc id", "plan_id": "plan/1", "accepts_incomplete": "true", "force": "true"}
    assert req.body == b""


def test_headers_carry_api_version_and_identity(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 200, {})
    identity = OriginatingIdentity(platform="kubernetes", value=json.dumps({"username": "alice"}))
    asyncio.run(_client(broker).deprovision_instance(_request(originating_identity=identity)))
    (req,) = broker.recorded("DELETE")
    assert req.headers["X-Broker-API-Version"] == "2.14"
    platform, encoded = req.headers["X-Broker-API-Originating-Identity"].split(" ", 1)
    assert platform == "kubernetes"
    assert json.loads(base64.b64decode(encoded)) == {"username": "alice"}


def test_identity_not_sent_before_2_13(broker: FakeBroker) -> None:
    broker.respond("DELETE", INSTANCE_PATH, 200, {})
    identity = OriginatingIdentity(platform="kubernetes", value="{}")
    asyncio.run(_client(broker, api_version=API_VERSION_2_12).deprovision_instance(_request(originating_identity=identity)))
    (req,) = broker.recorded("DELETE")
    assert req.headers["X-Broker-API-Version"] == "2.12"
    assert "X-Broker-API-Originating-Identity" not in req.headers
