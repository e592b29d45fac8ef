from __future__ import annotations

import json
import threading
from typing import Callable

import httpx
import pytest

from db2rest.gateway.cache import BindOptionCache
from db2rest.gateway.client import GatewayClient, build_drop_payload, build_register_payload
from db2rest.gateway.models import (
    BindOption,
    BindOptionsReceived,
    ClientError,
    Connection,
    Outcome,
    RequestFailed,
    RequestType,
    Service,
    ServiceDropped,
    ServiceRegistered,
    ServicesReceived,
    basic_credential,
)
from db2rest.gateway.observer import CallbackObserver

BASE_URL = "http://db2.example.local:446"
TIMEOUT = 5.0

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingObserver:
    def __init__(self) -> None:
        self.outcomes: list[Outcome] = []
        self.threads: list[str] = []

    def handle(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)
        self.threads.append(threading.current_thread().name)


class FakeGateway:
    """In-memory stand-in for the DB2 REST gateway."""

    def __init__(self) -> None:
        self.services: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.schema = {
            "requestSchema": {
                "properties": {
                    "requestType": {"enum": ["createService", "dropService"]},
                    "Isolation": {"enum": ["UR", "CS"], "description": "Isolation level"},
                    "Currentdata": {"enum": ["YES", "NO"]},
                }
            }
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("authorization") != basic_credential("ADMIN", "secret"):
            return httpx.Response(401, json={"StatusCode": 401, "StatusDescription": "not authorized"})
        path = request.url.path
        if request.method == "GET" and path == "/services":
            listed = [
                {"ServiceName": "DB2ServiceDiscover", "ServiceURL": f"{BASE_URL}/services"},
                {"ServiceName": "DB2ServiceManager", "ServiceURL": f"{BASE_URL}/services/DB2ServiceManager"},
                *self.services.values(),
            ]
            return httpx.Response(200, json={"StatusCode": 200, "DB2Services": listed})
        if request.method == "GET" and path == "/services/DB2ServiceManager":
            return httpx.Response(200, json={"DB2ServiceManager": self.schema})
        if request.method == "POST" and path == "/services/DB2ServiceManager":
            body = json.loads(request.content)
            name = body["serviceName"]
            if body["requestType"] == "createService":
                self.services[name] = {
                    "ServiceName": name,
                    "ServiceDescription": body.get("description"),
                    "ServiceCollectionID": body.get("collectionID", "SYSIBMSERVICE"),
                    "ServiceURL": f"{BASE_URL}/services/SYSIBMSERVICE/{name}",
                }
                return httpx.Response(201, json={"StatusCode": 201, "StatusDescription": "created"})
            if body["requestType"] == "dropService":
                self.services.pop(name, None)
                return httpx.Response(200, json={"StatusCode": 200, "StatusDescription": "dropped"})
        return httpx.Response(404, json={"StatusCode": 404, "StatusDescription": "no such path"})


def _client(handler: Handler, observer, *, password: str = "secret", base_url: str = BASE_URL, **kwargs) -> GatewayClient:
    connection = Connection.create(base_url, "ADMIN", password)
    return GatewayClient(connection, observer, transport=httpx.MockTransport(handler), **kwargs)


def _respond(payload: object | None = None, *, content: bytes | None = None, status: int = 200) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        if content is not None:
            return httpx.Response(status, content=content, request=request)
        return httpx.Response(status, json=payload, request=request)

    return handler


def test_register_list_drop_round_trip() -> None:
    gateway = FakeGateway()
    observer = RecordingObserver()
    with _client(gateway, observer) as client:
        registered = client.register_new(
            "getEmployee",
            "SELECT * FROM DSN81210.EMP",
            description="employees",
            bind_options={"Isolation": "UR"},
        ).result(timeout=TIMEOUT)
        assert registered == ServiceRegistered(service_name="getEmployee")

        listed = client.receive_services().result(timeout=TIMEOUT)
        assert isinstance(listed, ServicesReceived)
        assert [service.name for service in listed.services] == ["getEmployee"]
        service = listed.services[0]
        assert service.description == "employees"

        dropped = client.drop(service).result(timeout=TIMEOUT)
        assert dropped == ServiceDropped(service=service)

        relisted = client.receive_services().result(timeout=TIMEOUT)
        assert relisted == ServicesReceived(services=())

    assert observer.outcomes == [registered, listed, dropped, relisted]
    assert all(name != threading.current_thread().name for name in observer.threads)

    create_body = json.loads(gateway.requests[0].content)
    assert create_body == {
        "requestType": "createService",
        "serviceName": "getEmployee",
        "sqlStmt": "SELECT * FROM DSN81210.EMP",
        "description": "employees",
        "Isolation": "UR",
    }
    assert gateway.requests[0].headers["content-type"] == "application/json"
    drop_body = json.loads(gateway.requests[2].content)
    assert drop_body == {"requestType": "dropService", "serviceName": "getEmployee", "collectionID": "SYSIBMSERVICE"}


def test_embedded_error_status_is_reported_with_request_type() -> None:
    observer = RecordingObserver()
    with _client(FakeGateway(), observer, password="wrong") as client:
        outcome = client.receive_services().result(timeout=TIMEOUT)
    assert outcome == RequestFailed(
        request_type=RequestType.RECEIVE_SERVICES,
        error=ClientError.PROCESSING_FAILED,
        message="not authorized",
    )
    assert observer.outcomes == [outcome]


def test_sql_error_on_register() -> None:
    handler = _respond({"StatusCode": 500, "StatusDescription": "SQLCODE=-104"})
    with _client(handler, RecordingObserver()) as client:
        outcome = client.register_new("bad", "SELEC 1").result(timeout=TIMEOUT)
    assert outcome == RequestFailed(RequestType.REGISTER_NEW_SERVICE, ClientError.SQL_ERROR, "SQLCODE=-104")


def test_transport_failure_is_connect_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler, RecordingObserver()) as client:
        outcome = client.receive_services().result(timeout=TIMEOUT)
    assert isinstance(outcome, RequestFailed)
    assert outcome.request_type is RequestType.RECEIVE_SERVICES
    assert outcome.error is ClientError.CONNECT_FAILURE
    assert "connection refused" in (outcome.message or "")


def test_non_json_response() -> None:
    with _client(_respond(content=b"<html>gateway down</html>", status=502), RecordingObserver()) as client:
        outcome = client.drop(Service("svc", "", "COLL", "")).result(timeout=TIMEOUT)
    assert outcome == RequestFailed(RequestType.DROP_SERVICE, ClientError.RESPONSE_NOT_JSON, "JSON response wasn't parsed")


def test_malformed_base_url_is_reported_lazily_as_url_error() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    observer = RecordingObserver()
    with _client(handler, observer, base_url="db2 host without scheme") as client:
        outcome = client.receive_bind_options().result(timeout=TIMEOUT)
    assert isinstance(outcome, RequestFailed)
    assert outcome.request_type is RequestType.RECEIVE_OPTIONS
    assert outcome.error is ClientError.URL_ERROR
    assert calls == []
    assert observer.outcomes == [outcome]


def test_acknowledgement_without_status_is_unknown() -> None:
    with _client(_respond({"result": "maybe"}), RecordingObserver()) as client:
        register = client.register_new("svc", "SELECT 1").result(timeout=TIMEOUT)
        drop = client.drop(Service("svc", "", "COLL", "")).result(timeout=TIMEOUT)
    assert register == RequestFailed(RequestType.REGISTER_NEW_SERVICE, ClientError.UNKNOWN, "StatusCode not found")
    assert drop == RequestFailed(RequestType.DROP_SERVICE, ClientError.UNKNOWN, "StatusCode not found")


def test_register_acknowledged_with_wrong_success_code_is_unknown() -> None:
    with _client(_respond({"StatusCode": 200}), RecordingObserver()) as client:
        outcome = client.register_new("svc", "SELECT 1").result(timeout=TIMEOUT)
    assert outcome == RequestFailed(RequestType.REGISTER_NEW_SERVICE, ClientError.UNKNOWN, "StatusCode not correct")


def test_missing_services_key() -> None:
    with _client(_respond({"StatusCode": 200}), RecordingObserver()) as client:
        outcome = client.receive_services().result(timeout=TIMEOUT)
    assert outcome == RequestFailed(RequestType.RECEIVE_SERVICES, ClientError.SERVICES_NOT_FOUND, None)


def test_bind_options_are_cached_after_first_discovery() -> None:
    gateway = FakeGateway()
    cache = BindOptionCache()
    observer = RecordingObserver()
    with _client(gateway, observer, cache=cache) as client:
        first = client.receive_bind_options().result(timeout=TIMEOUT)
        second = client.receive_bind_options().result(timeout=TIMEOUT)

    expected = BindOptionsReceived(
        options=(
            BindOption(name="Currentdata", description="Unknown", values=("YES", "NO")),
            BindOption(name="Isolation", description="Isolation level", values=("UR", "CS")),
        )
    )
    assert first == expected
    assert second == expected
    assert len(gateway.requests) == 1
    assert cache.get() == expected.options
    assert observer.outcomes == [first, second]


def test_failed_discovery_does_not_populate_cache() -> None:
    cache = BindOptionCache()
    with _client(_respond({"requestSchema": {}}), RecordingObserver(), cache=cache) as client:
        outcome = client.receive_bind_options().result(timeout=TIMEOUT)
    assert isinstance(outcome, RequestFailed)
    assert outcome.error is ClientError.OPTIONS_NOT_FOUND
    assert cache.populated is False


def test_clone_reports_only_to_its_own_observer_and_shares_cache() -> None:
    gateway = FakeGateway()
    main_observer = RecordingObserver()
    dialog_observer = RecordingObserver()
    with _client(gateway, main_observer) as client:
        dialog = client.clone(dialog_observer)
        options = dialog.receive_bind_options().result(timeout=TIMEOUT)
        registered = dialog.register_new("svc", "SELECT 1").result(timeout=TIMEOUT)
        listed = client.receive_services().result(timeout=TIMEOUT)
        dialog.close()

        assert dialog.connection is client.connection
        assert client.cache.populated
        # The clone's close() must not tear down the shared worker pool.
        assert client.receive_bind_options().result(timeout=TIMEOUT) == options

    assert dialog_observer.outcomes == [options, registered]
    assert main_observer.outcomes[0] == listed
    assert len(main_observer.outcomes) == 2


def test_callback_observer_dispatches_by_outcome_kind() -> None:
    received: dict[str, object] = {}
    done = threading.Event()

    def on_services(services: tuple[Service, ...]) -> None:
        received["services"] = services
        done.set()

    observer = CallbackObserver(on_error=lambda failure: received.setdefault("error", failure), on_services=on_services)
    with _client(FakeGateway(), observer) as client:
        client.receive_services()
        assert done.wait(TIMEOUT)
        # No on_registered callback: logged and ignored, never fatal.
        outcome = client.register_new("svc", "SELECT 1").result(timeout=TIMEOUT)

    assert received == {"services": ()}
    assert outcome == ServiceRegistered(service_name="svc")


def test_observer_exceptions_surface_on_the_future() -> None:
    def on_error(failure: RequestFailed) -> None:
        raise RuntimeError("observer broke")

    observer = CallbackObserver(on_error=on_error)
    with _client(_respond(content=b"nope"), observer) as client:
        future = client.receive_services()
        with pytest.raises(RuntimeError, match="observer broke"):
            future.result(timeout=TIMEOUT)


def test_payload_builders() -> None:
    assert build_register_payload("svc", "SELECT 1") == {
        "requestType": "createService",
        "serviceName": "svc",
        "sqlStmt": "SELECT 1",
    }
    payload = build_register_payload(
        "svc",
        "SELECT 1",
        description="d",
        collection_id="COLL",
        bind_options={"Isolation": "CS", "serviceName": "hijack"},
    )
    assert payload["serviceName"] == "svc"
    assert payload["collectionID"] == "COLL"
    assert payload["description"] == "d"
    assert payload["Isolation"] == "CS"
    assert build_drop_payload(Service("svc", "d", "COLL", "u")) == {
        "requestType": "dropService",
        "serviceName": "svc",
        "collectionID": "COLL",
    }


def test_from_settings_uses_configured_connection(settings) -> None:
    gateway = FakeGateway()
    observer = RecordingObserver()
    with GatewayClient.from_settings(settings, observer, transport=httpx.MockTransport(gateway)) as client:
        assert client.connection.base_url == "http://db2.example.local:446"
        outcome = client.receive_services().result(timeout=TIMEOUT)
    assert outcome == ServicesReceived(services=())


def test_clone_used_after_parent_closed_still_reports_one_outcome() -> None:
    gateway = FakeGateway()
    dialog_observer = RecordingObserver()
    client = _client(gateway, RecordingObserver())
    dialog = client.clone(dialog_observer)
    client.close()

    future = dialog.receive_services()
    assert future.done()
    outcome = future.result(timeout=TIMEOUT)
    assert isinstance(outcome, RequestFailed)
    assert outcome.request_type is RequestType.RECEIVE_SERVICES
    assert outcome.error is ClientError.UNKNOWN
    assert dialog_observer.outcomes == [outcome]
    assert dialog_observer.threads == [threading.current_thread().name]
    assert gateway.requests == []
