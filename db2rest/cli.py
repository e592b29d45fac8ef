"""Terminal front end for managing DB2 REST services.

Usage:

    db2rest --host db2.example.com --user ADMIN services
    db2rest register MYSERVICE --sql "SELECT * FROM SYSIBM.SYSDUMMY1" --option Isolation=CS
    db2rest drop MYSERVICE
    db2rest options
"""

from __future__ import annotations

import argparse
import queue
from typing import Callable, Sequence

from loguru import logger
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from db2rest.config import Settings, get_settings
from db2rest.gateway.client import GatewayClient
from db2rest.gateway.models import (
    BindOption,
    BindOptionsReceived,
    Outcome,
    RequestFailed,
    Service,
    ServiceDropped,
    ServiceRegistered,
    ServicesReceived,
)
from db2rest.logs import configure_logging
from db2rest.messages import NO_SERVICES_NOTICE, describe_failure
from db2rest.profile import ConnectionProfile, apply_profile, load_profile, save_profile
from db2rest.validation import (
    connection_inputs_complete,
    is_valid_credential,
    is_valid_description,
    is_valid_hostname,
    is_valid_name,
    is_valid_port,
)

console = Console()
log = logger.bind(module="cli")

_OUTCOME_TIMEOUT_SECONDS = 300.0


class QueueObserver:
    """Hands outcomes from worker threads over to the main thread."""

    def __init__(self) -> None:
        self._outcomes: "queue.Queue[Outcome]" = queue.Queue()

    def handle(self, outcome: Outcome) -> None:
        self._outcomes.put(outcome)

    def wait(self, timeout: float = _OUTCOME_TIMEOUT_SECONDS) -> Outcome:
        return self._outcomes.get(timeout=timeout)


def _checked(predicate: Callable[[str], bool], label: str) -> Callable[[str], str]:
    def parse(value: str) -> str:
        if not predicate(value):
            raise argparse.ArgumentTypeError(f"invalid {label}: {value!r}")
        return value

    return parse


def _port(value: str) -> int:
    if not value or not is_valid_port(value):
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    return int(value)


def _bind_option(value: str) -> tuple[str, str]:
    key, sep, option_value = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key.strip(), option_value.strip()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db2rest",
        description="Manage SQL-based REST services of a DB2 REST gateway.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", type=_checked(is_valid_hostname, "host name"), help="Gateway host.")
    parser.add_argument("--port", type=_port, help="Gateway port.")
    parser.add_argument(
        "--ssl",
        dest="use_ssl",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use https.",
    )
    parser.add_argument("--user", type=_checked(is_valid_credential, "user"), help="DB2 user ID.")
    parser.add_argument(
        "--password",
        type=_checked(is_valid_credential, "password"),
        help="Password; prompted for when omitted.",
    )
    parser.add_argument(
        "--save-profile",
        action="store_true",
        help="Remember the connection settings for the next run.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("services", help="List the registered services.")
    sub.add_parser("options", help="List the bind options accepted by register.")

    register = sub.add_parser("register", help="Register a new service.")
    register.add_argument("name", type=_checked(is_valid_name, "service name"))
    register.add_argument("--sql", required=True, help="SQL statement executed by the service.")
    register.add_argument("--description", default="", type=_checked(is_valid_description, "description"))
    register.add_argument("--collection-id", default="", type=_checked(is_valid_name, "collection ID"))
    register.add_argument(
        "--option",
        dest="options",
        action="append",
        default=[],
        type=_bind_option,
        metavar="KEY=VALUE",
        help="Bind option (repeatable).",
    )

    drop = sub.add_parser("drop", help="Drop a registered service.")
    drop.add_argument("name", type=_checked(is_valid_name, "service name"))
    drop.add_argument(
        "--collection-id",
        default=None,
        type=_checked(is_valid_name, "collection ID"),
        help="Collection ID; looked up from the service list when omitted.",
    )
    drop.add_argument(
        "--yes",
        "-y",
        dest="assume_yes",
        action="store_true",
        help="Do not ask for confirmation.",
    )
    return parser


def _merge_args(settings: Settings, args: argparse.Namespace) -> Settings:
    updates: dict[str, object] = {}
    for field in ("host", "port", "use_ssl", "user", "password"):
        value = getattr(args, field)
        if value is not None:
            updates[field] = value
    return settings.model_copy(update=updates) if updates else settings


def _render_services(services: Sequence[Service]) -> None:
    if not services:
        console.print(f"[yellow]No services found[/]\n{NO_SERVICES_NOTICE}")
        return
    table = Table(title="DB2 REST services")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Collection", style="magenta")
    table.add_column("Description", style="white")
    table.add_column("URL", style="green")
    for service in services:
        table.add_row(service.name, service.collection_id, service.description, service.url)
    console.print(table)


def _render_options(options: Sequence[BindOption]) -> None:
    table = Table(title="Bind options")
    table.add_column("Option", style="cyan", no_wrap=True)
    table.add_column("Values", style="green")
    table.add_column("Description", style="white")
    for option in options:
        table.add_row(option.name, ", ".join(option.values), option.description)
    console.print(table)


def _render(outcome: Outcome) -> int:
    if isinstance(outcome, RequestFailed):
        report = describe_failure(outcome)
        console.print(f"[bold red]{report.title}[/]\n{report.text}")
        return 1
    if isinstance(outcome, ServicesReceived):
        _render_services(outcome.services)
    elif isinstance(outcome, BindOptionsReceived):
        _render_options(outcome.options)
    elif isinstance(outcome, ServiceRegistered):
        console.print(f"[bold green]Service {outcome.service_name} registered[/]")
    elif isinstance(outcome, ServiceDropped):
        console.print(f"[bold green]Service {outcome.service.name} dropped[/]")
    return 0


def _check_bind_options(client: GatewayClient, requested: dict[str, str]) -> bool:
    """Validate requested bind options against the gateway's catalog when available."""

    observer = QueueObserver()
    client.clone(observer).receive_bind_options()
    outcome = observer.wait()
    if isinstance(outcome, RequestFailed):
        report = describe_failure(outcome)
        console.print(f"[yellow]{report.title}[/]\n{report.text}")
        return True
    if not isinstance(outcome, BindOptionsReceived):
        raise TypeError(f"Unexpected outcome for bind-option discovery: {type(outcome).__name__}")
    known = {option.name: option for option in outcome.options}
    ok = True
    for key, value in requested.items():
        option = known.get(key)
        if option is None:
            console.print(f"[bold red]Unknown bind option[/] {key}")
            ok = False
        elif value not in option.values:
            console.print(
                f"[bold red]Invalid value[/] {value!r} for {key}; expected one of {', '.join(option.values)}"
            )
            ok = False
    return ok


def _lookup_service(client: GatewayClient, name: str) -> Service | RequestFailed | None:
    observer = QueueObserver()
    client.clone(observer).receive_services()
    outcome = observer.wait()
    if isinstance(outcome, RequestFailed):
        return outcome
    if not isinstance(outcome, ServicesReceived):
        raise TypeError(f"Unexpected outcome for service listing: {type(outcome).__name__}")
    for service in outcome.services:
        if service.name == name:
            return service
    return None


def _confirm_drop(service: Service) -> bool:
    return Confirm.ask(
        f"Really want to drop the service [bold]{service.name}[/] (collection {service.collection_id})?",
        default=False,
        console=console,
    )


def _run_command(client: GatewayClient, observer: QueueObserver, args: argparse.Namespace) -> int:
    if args.command == "services":
        client.receive_services()
    elif args.command == "options":
        client.receive_bind_options()
    elif args.command == "register":
        requested = dict(args.options)
        if requested and not _check_bind_options(client, requested):
            return 2
        client.register_new(
            args.name,
            args.sql,
            description=args.description,
            collection_id=args.collection_id,
            bind_options=requested,
        )
    elif args.command == "drop":
        if args.collection_id is not None:
            service = Service(name=args.name, description="", collection_id=args.collection_id, url="")
        else:
            found = _lookup_service(client, args.name)
            if isinstance(found, RequestFailed):
                return _render(found)
            if found is None:
                console.print(f"[bold red]Service {args.name} not found[/]")
                return 1
            service = found
        if not args.assume_yes and not _confirm_drop(service):
            console.print(f"[yellow]Drop of {service.name} cancelled[/]")
            return 1
        client.drop(service)
    else:  # pragma: no cover - argparse enforces the choices
        raise ValueError(f"Unknown command {args.command!r}")
    return _render(observer.wait())


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_arg_parser().parse_args(list(argv) if argv is not None else None)

    settings = get_settings()
    configure_logging(settings.log_level, log_file=settings.log_file)
    settings = apply_profile(settings, load_profile(settings.profile_path))
    settings = _merge_args(settings, args)

    if not connection_inputs_complete(settings.host, settings.port):
        console.print("[bold red]Incomplete connection settings[/] (need --host and --port).")
        return 2

    password = settings.password
    if password is None:
        password = Prompt.ask(f"Password for {settings.user or '<user>'}", password=True, console=console)

    observer = QueueObserver()
    with GatewayClient.from_settings(settings, observer, password=password) as client:
        log.info("Running {} against {}", args.command, settings.base_url)
        code = _run_command(client, observer, args)

    if args.save_profile:
        profile = ConnectionProfile.from_settings(settings).model_copy(update={"password": password})
        path = save_profile(profile, settings.profile_path)
        console.log(f"[green]Profile saved[/] -> {path}")
    return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
