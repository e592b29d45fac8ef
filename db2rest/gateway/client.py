"""Asynchronous client for the DB2 REST gateway's service manager.

Each operation is submitted to a thread pool and returns immediately with a
`Future`. The worker builds the authenticated request, performs the HTTP call,
classifies the response and maps it onto a domain outcome. That outcome is
handed to the client's observer exactly once and then resolves the future.

Observers run on the worker thread. No retries are attempted; a failed
operation must be invoked again by the caller.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Callable, Mapping

from loguru import logger

from db2rest.gateway.cache import BindOptionCache
from db2rest.gateway.classifier import GatewayError, classify_response
from db2rest.gateway.mapper import (
    CREATED_STATUS,
    DROPPED_STATUS,
    map_acknowledgement,
    map_bind_options,
    map_services,
)
from db2rest.gateway.models import (
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
)
from db2rest.gateway.observer import ClientObserver
from db2rest.gateway.request import (
    SERVICE_MANAGER_PATH,
    SERVICES_PATH,
    GatewayRequest,
    UrlResolutionError,
    build_request,
)
from db2rest.net.http import HttpClient, TransportError

if TYPE_CHECKING:
    import httpx

    from db2rest.config import Settings

__all__ = ["GatewayClient", "build_drop_payload", "build_register_payload"]

log = logger.bind(module="gateway.client")

_USER_AGENT = "db2rest"


def build_register_payload(
    service_name: str,
    sql: str,
    *,
    description: str = "",
    collection_id: str = "",
    bind_options: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the `createService` request body.

    Empty description/collection ID are omitted. Bind options become
    top-level keys but cannot replace the request fields.
    """

    payload: dict[str, Any] = dict(bind_options or {})
    payload.update(
        {
            "requestType": "createService",
            "serviceName": service_name,
            "sqlStmt": sql,
        }
    )
    if description:
        payload["description"] = description
    if collection_id:
        payload["collectionID"] = collection_id
    return payload


def build_drop_payload(service: Service) -> dict[str, Any]:
    """Return the `dropService` request body."""
    return {
        "requestType": "dropService",
        "serviceName": service.name,
        "collectionID": service.collection_id,
    }


class GatewayClient:
    """Issues service manager requests for one connection.

    Clones (see `clone`) share the connection, HTTP client, worker pool and
    bind-option cache but report to their own observer.
    """

    def __init__(
        self,
        connection: Connection,
        observer: ClientObserver,
        *,
        cache: BindOptionCache | None = None,
        timeout_seconds: float = 30.0,
        verify: bool = True,
        transport: "httpx.BaseTransport | None" = None,
        executor: ThreadPoolExecutor | None = None,
        max_workers: int = 4,
        http: HttpClient | None = None,
    ) -> None:
        self.connection = connection
        self._observer = observer
        self.cache = cache if cache is not None else BindOptionCache()
        self._http = http or HttpClient(
            timeout_seconds=timeout_seconds,
            verify=verify,
            user_agent=_USER_AGENT,
            transport=transport,
        )
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)),
            thread_name_prefix="db2rest",
        )

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        observer: ClientObserver,
        *,
        password: str | None = None,
        cache: BindOptionCache | None = None,
        transport: "httpx.BaseTransport | None" = None,
    ) -> "GatewayClient":
        """Build a client from application settings.

        `password` overrides the configured one (e.g. when prompted for).
        """
        secret = password if password is not None else (settings.password or "")
        connection = Connection.create(settings.base_url, settings.user, secret)
        return cls(
            connection,
            observer,
            cache=cache,
            timeout_seconds=settings.http_timeout_seconds,
            verify=settings.verify_tls,
            transport=transport,
            max_workers=settings.max_workers,
        )

    def clone(self, observer: ClientObserver) -> "GatewayClient":
        """Return a client on the same connection reporting to `observer`.

        The clone borrows this client's worker pool and must not outlive it.
        Operations started on a clone after the parent closed still report
        exactly one outcome: an `unknown` failure, delivered on the caller's
        thread.
        """
        return GatewayClient(
            self.connection,
            observer,
            cache=self.cache,
            executor=self._executor,
            http=self._http,
        )

    def close(self) -> None:
        """Wait for in-flight work and shut down the worker pool if owned."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "GatewayClient":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    # Operations -------------------------------------------------------

    def receive_services(self) -> "Future[Outcome]":
        """List the user-registered services."""

        def work() -> Outcome:
            payload = self._exchange(build_request(self.connection, SERVICES_PATH, "GET"))
            services = map_services(payload)
            log.info("Received {} service(s)", len(services))
            return ServicesReceived(services=services)

        return self._dispatch(RequestType.RECEIVE_SERVICES, work)

    def register_new(
        self,
        service_name: str,
        sql: str,
        *,
        description: str = "",
        collection_id: str = "",
        bind_options: Mapping[str, str] | None = None,
    ) -> "Future[Outcome]":
        """Register `sql` as a new REST service named `service_name`."""

        body = build_register_payload(
            service_name,
            sql,
            description=description,
            collection_id=collection_id,
            bind_options=bind_options,
        )

        def work() -> Outcome:
            request = build_request(self.connection, SERVICE_MANAGER_PATH, "POST", json_body=body)
            map_acknowledgement(self._exchange(request), expected_status=CREATED_STATUS)
            log.info("Service {} registered", service_name)
            return ServiceRegistered(service_name=service_name)

        return self._dispatch(RequestType.REGISTER_NEW_SERVICE, work)

    def drop(self, service: Service) -> "Future[Outcome]":
        """Drop a previously registered service."""

        body = build_drop_payload(service)

        def work() -> Outcome:
            request = build_request(self.connection, SERVICE_MANAGER_PATH, "POST", json_body=body)
            map_acknowledgement(self._exchange(request), expected_status=DROPPED_STATUS)
            log.info("Service {} dropped", service.name)
            return ServiceDropped(service=service)

        return self._dispatch(RequestType.DROP_SERVICE, work)

    def receive_bind_options(self) -> "Future[Outcome]":
        """Discover the enumerated bind options, using the cache when populated."""

        def work() -> Outcome:
            cached = self.cache.get()
            if cached is not None:
                log.debug("Serving {} bind option(s) from cache", len(cached))
                return BindOptionsReceived(options=cached)
            payload = self._exchange(build_request(self.connection, SERVICE_MANAGER_PATH, "GET"))
            options = map_bind_options(payload)
            self.cache.store(options)
            log.info("Discovered {} bind option(s)", len(options))
            return BindOptionsReceived(options=options)

        return self._dispatch(RequestType.RECEIVE_OPTIONS, work)

    # Internal helpers -------------------------------------------------

    def _dispatch(self, request_type: RequestType, work: Callable[[], Outcome]) -> "Future[Outcome]":
        def run() -> Outcome:
            outcome = self._resolve(request_type, work)
            self._observer.handle(outcome)
            return outcome

        try:
            return self._executor.submit(run)
        except RuntimeError as exc:
            log.warning("{} not started: {}", request_type.value, exc)
            outcome = RequestFailed(request_type=request_type, error=ClientError.UNKNOWN, message=str(exc))
            self._observer.handle(outcome)
            future: "Future[Outcome]" = Future()
            future.set_result(outcome)
            return future

    def _resolve(self, request_type: RequestType, work: Callable[[], Outcome]) -> Outcome:
        try:
            return work()
        except GatewayError as exc:
            log.warning("{} failed: {} {}", request_type.value, exc.error.value, exc.message or "")
            return exc.to_failure(request_type)
        except UrlResolutionError as exc:
            log.warning("{} failed: {}", request_type.value, exc)
            return RequestFailed(request_type=request_type, error=ClientError.URL_ERROR, message=str(exc))
        except Exception as exc:
            log.exception("{} failed unexpectedly", request_type.value)
            return RequestFailed(request_type=request_type, error=ClientError.UNKNOWN, message=str(exc))

    def _exchange(self, request: GatewayRequest) -> dict[str, Any]:
        log.debug("{} {}", request.method, request.url)
        body: bytes | None = None
        failure: TransportError | None = None
        try:
            response = self._http.request(
                request.method,
                request.url,
                headers=request.headers,
                json_body=request.json_body,
            )
            body = response.content
        except TransportError as exc:
            failure = exc
        return classify_response(body, transport_error=failure)
