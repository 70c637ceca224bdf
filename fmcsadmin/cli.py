#!/usr/bin/env python3
"""fmcsadmin CLI entry point."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import click
import typer

from . import results
from .admin_api import AdminClient, base_uri_for
from .args import AdminOptions, hoist_options
from .auth import admin_session, resolve_credentials
from .config import (
    config_template,
    effective_config,
    load_config,
    resolve_config_path,
    write_default_config,
)
from .console import configure_console, emit, emit_error, log, log_debug, log_error
from .constants import (
    DEFAULT_GRACE_TIME,
    EXIT_CODE_INTERRUPT,
    EXIT_INVALID_COMMAND,
    EXIT_INVALID_OPTION,
    EXIT_INVALID_PARAMETER,
)
from .context import AppContext
from .errors import AdminAPIError, CLIError
from .http import http_timeout
from .orchestrator import Orchestrator
from .prompts import InteractionAborted, prompt_confirm
from .settings import (
    CWP_CONFIG_NAMES,
    SERVER_CONFIG_NAMES,
    SERVER_PREFS_NAMES,
    SERVER_PREFS_READ_ONLY,
    parse_server_settings,
    parse_web_settings,
    select_names,
)
from .utils import redact_cli_args, safe_int
from .version import cli_version

_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
# sub-command names are matched case-insensitively
_GROUP_SETTINGS = {"token_normalize_func": lambda token: token.lower()}

app = typer.Typer(
    help="Administer a FileMaker Server through its Admin API",
    context_settings=_CONTEXT_SETTINGS,
    add_completion=False,
)
list_app = typer.Typer(help="List clients, files, plugins or schedules", context_settings=_GROUP_SETTINGS)
status_app = typer.Typer(help="Show the status of a client or file", context_settings=_GROUP_SETTINGS)
disconnect_app = typer.Typer(help="Disconnect clients", context_settings=_GROUP_SETTINGS)
enable_app = typer.Typer(help="Enable schedules", context_settings=_GROUP_SETTINGS)
disable_app = typer.Typer(help="Disable schedules", context_settings=_GROUP_SETTINGS)
run_app = typer.Typer(help="Run schedules", context_settings=_GROUP_SETTINGS)
delete_app = typer.Typer(help="Delete schedules", context_settings=_GROUP_SETTINGS)
get_app = typer.Typer(help="Read server settings", context_settings=_GROUP_SETTINGS)
set_app = typer.Typer(help="Change server settings", context_settings=_GROUP_SETTINGS)
cancel_app = typer.Typer(help="Cancel a running operation", context_settings=_GROUP_SETTINGS)
certificate_app = typer.Typer(help="Manage the server SSL certificate", context_settings=_GROUP_SETTINGS)
config_app = typer.Typer(help="Manage the fmcsadmin config file")
app.add_typer(list_app, name="list")
app.add_typer(status_app, name="status")
app.add_typer(disconnect_app, name="disconnect")
app.add_typer(enable_app, name="enable")
app.add_typer(disable_app, name="disable")
app.add_typer(run_app, name="run")
app.add_typer(delete_app, name="delete")
app.add_typer(get_app, name="get")
app.add_typer(set_app, name="set")
app.add_typer(cancel_app, name="cancel")
app.add_typer(certificate_app, name="certificate")
app.add_typer(config_app, name="config")

Action = Callable[[Orchestrator], int]


@dataclass(frozen=True)
class CLIState:
    context: AppContext
    options: AdminOptions


def build_context() -> AppContext:
    config_path = resolve_config_path()
    return AppContext(config=load_config(config_path), config_path=config_path)


def report(code: int) -> int:
    """Print the summary line for a nonzero result and return the exit code."""
    if code == results.SUCCESS:
        return code
    if code == EXIT_INVALID_COMMAND:
        emit_error(results.format_error(results.INVALID_COMMAND))
        return code
    if code == EXIT_INVALID_PARAMETER:
        emit_error(results.format_error(results.OBJECT_NOT_FOUND))
        return code
    code = results.normalize_code(code)
    emit_error(results.format_error(code))
    return code


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):  # pragma: no cover
        raise CLIError("command invoked without the root callback")
    return state


def _confirmed(options: AdminOptions, question: Optional[str]) -> bool:
    if question is None or options.yes:
        return True
    return prompt_confirm(f"fmcsadmin: {question}")


def execute(
    state: CLIState,
    action: Action,
    *,
    confirm: Optional[str] = None,
    preflight: bool = False,
) -> int:
    """Run ``action`` inside one Admin API session and report its result."""
    options = state.options
    if not _confirmed(options, confirm):
        return results.SUCCESS
    config = state.context.config
    timeout = http_timeout(config.timeout if config else None)
    identity = Path(options.identity_file).expanduser() if options.identity_file else None
    credentials = resolve_credentials(
        options.username or None,
        options.password or None,
        identity,
        config_username=config.username if config else None,
    )
    try:
        with state.context.new_http_client(timeout) as http:
            client = AdminClient(http, base_uri_for(options.fqdn))
            if preflight and not client.reachable():
                return report(results.HOST_UNREACHABLE)
            with admin_session(client, credentials) as session:
                orchestrator = Orchestrator(client, session, sleep=state.context.sleep)
                code = action(orchestrator)
    except AdminAPIError as exc:
        if exc.detail:
            emit(exc.detail)
        code = exc.code
    return report(code)


def local(check: Callable[[], object]):
    """Run a local validation step, turning its failure into the command exit."""
    try:
        return check()
    except AdminAPIError as exc:
        if exc.detail:
            emit(exc.detail)
        raise typer.Exit(code=report(exc.code)) from exc


def _run(
    ctx: typer.Context,
    action: Action,
    *,
    confirm: Optional[str] = None,
    preflight: bool = False,
) -> None:
    rc = execute(_state(ctx), action, confirm=confirm, preflight=preflight)
    raise typer.Exit(code=rc)


def _numeric_arg(value: Optional[str]) -> int:
    """Ids that are missing or not numeric read as 0."""
    if value is None:
        return 0
    return safe_int(value) or 0


@app.callback(invoke_without_command=True)
def cli_callback(
    ctx: typer.Context,
    username: str = typer.Option("", "-u", "--username", help="Username to use to authenticate with the server."),
    password: str = typer.Option("", "-p", "--password", help="Password to use to authenticate with the server."),
    identity_file: str = typer.Option("", "-i", help="Private key file for Admin API PKI authentication."),
    fqdn: str = typer.Option("", "--fqdn", help="Fully Qualified Domain Name of a remote server."),
    yes: bool = typer.Option(False, "-y", "--yes", help="Automatically answer yes to all command prompts."),
    stats: bool = typer.Option(False, "-s", "--stats", help="Return FILE or CLIENT stats."),
    force: bool = typer.Option(False, "-f", "--force", help="Close or stop immediately, disconnecting clients."),
    key: str = typer.Option("", "--key", help="Database encryption password."),
    save_key: bool = typer.Option(False, "--savekey", help="Save the database encryption password."),
    message: str = typer.Option("", "-m", "--message", help="Text message to send to clients."),
    client_id: int = typer.Option(-1, "-c", "--client", help="Client number to send a message to."),
    grace_time: int = typer.Option(DEFAULT_GRACE_TIME, "-t", "--gracetime", help="Seconds before clients are forced to disconnect."),
    keyfile: str = typer.Option("", "--keyfile", "--KeyFile", help="Private key file for certificate import."),
    keyfile_pass: Optional[str] = typer.Option(None, "--keyfilepass", "--KeyFilePass", help="Password needed to read KEYFILE."),
    intermediate_ca: str = typer.Option("", "--intermediateca", "--intermediateCA", help="Intermediate CA certificate(s) for certificate import."),
    version: bool = typer.Option(False, "-v", "--version", help="Print version information."),
    verbose: bool = typer.Option(False, "--verbose", help="Trace Admin API requests on stderr."),
) -> None:
    configure_console(verbose=verbose)
    context = ctx.obj if isinstance(ctx.obj, AppContext) else build_context()
    options = AdminOptions(
        username=username,
        password=password,
        identity_file=identity_file,
        fqdn=fqdn,
        yes=yes,
        stats=stats,
        force=force,
        key=key,
        save_key=save_key,
        message=message,
        client_id=client_id,
        grace_time=grace_time,
        keyfile=keyfile,
        keyfile_pass=keyfile_pass,
        intermediate_ca=intermediate_ca,
        verbose=verbose,
    )
    if context.config is not None:
        options = options.with_config(context.config)
    ctx.obj = CLIState(context=context, options=options)
    if ctx.invoked_subcommand is None:
        if version:
            emit(f"fmcsadmin {cli_version()}")
        else:
            typer.echo(ctx.get_help())
        raise typer.Exit(code=0)


# databases


@app.command("close")
def close_command(
    ctx: typer.Context,
    files: Optional[List[str]] = typer.Argument(None, help="File ids, names or folders."),
) -> None:
    """Close databases (all when none are named)."""
    options = _state(ctx).options
    _run(
        ctx,
        lambda o: o.close_databases(
            files or [], message=options.message, force=options.force
        ),
        confirm="really close database(s)?",
    )


@app.command("open")
def open_command(
    ctx: typer.Context,
    files: Optional[List[str]] = typer.Argument(None),
) -> None:
    """Open closed databases."""
    options = _state(ctx).options
    _run(
        ctx,
        lambda o: o.open_databases(
            files or [], key=options.key, save_key=options.save_key
        ),
    )


@app.command("pause")
def pause_command(ctx: typer.Context, files: Optional[List[str]] = typer.Argument(None)) -> None:
    _run(ctx, lambda o: o.pause_databases(files or []))


@app.command("resume")
def resume_command(ctx: typer.Context, files: Optional[List[str]] = typer.Argument(None)) -> None:
    _run(ctx, lambda o: o.resume_databases(files or []))


@app.command("remove")
def remove_command(ctx: typer.Context, files: Optional[List[str]] = typer.Argument(None)) -> None:
    """Remove closed databases from the server."""
    _run(
        ctx,
        lambda o: o.remove_databases(files or []),
        confirm="really remove database(s)?",
    )


# clients


@app.command("send")
def send_command(ctx: typer.Context, files: Optional[List[str]] = typer.Argument(None)) -> None:
    """Send a message to clients of the named files (or to -c CLIENT)."""
    options = _state(ctx).options
    _run(
        ctx,
        lambda o: o.send_message(
            files or [], message=options.message, client_id=options.client_id
        ),
    )


@disconnect_app.command("client")
def disconnect_client(ctx: typer.Context, client: Optional[str] = typer.Argument(None)) -> None:
    options = _state(ctx).options
    client_id = None if client is None else _numeric_arg(client)
    _run(
        ctx,
        lambda o: o.disconnect_clients(
            client_id, message=options.message, grace_time=options.grace_time
        ),
        confirm="really disconnect client(s)?",
    )


# server


def _server_target(target: str) -> None:
    if target.lower() != "server":
        raise typer.Exit(code=report(EXIT_INVALID_PARAMETER))


@app.command("start")
def start_command(ctx: typer.Context, target: str = typer.Argument(...)) -> None:
    _server_target(target)
    _run(ctx, lambda o: o.start_server())


@app.command("stop")
def stop_command(ctx: typer.Context, target: str = typer.Argument(...)) -> None:
    """Disconnect clients, close files and stop the database server."""
    options = _state(ctx).options
    if not _confirmed(options, "really stop server?"):
        raise typer.Exit(code=0)
    _server_target(target)
    _run(
        ctx,
        lambda o: o.stop_server(grace_time=options.grace_time, force=options.force),
    )


@app.command("restart")
def restart_command(ctx: typer.Context, target: str = typer.Argument(...)) -> None:
    options = _state(ctx).options
    if not _confirmed(options, "really restart server?"):
        raise typer.Exit(code=0)
    _server_target(target)
    _run(
        ctx,
        lambda o: o.restart_server(
            grace_time=options.grace_time,
            force=options.force,
            message=options.message,
        ),
    )


# listings


@list_app.command("files")
def list_files(ctx: typer.Context) -> None:
    stats = _state(ctx).options.stats
    _run(ctx, lambda o: o.list_files(stats=stats))


@list_app.command("clients")
def list_clients(ctx: typer.Context) -> None:
    stats = _state(ctx).options.stats
    _run(ctx, lambda o: o.list_clients(stats=stats))


@list_app.command("plugins")
def list_plugins(ctx: typer.Context) -> None:
    _run(ctx, lambda o: o.list_plugins())


@list_app.command("schedules")
def list_schedules(ctx: typer.Context) -> None:
    _run(ctx, lambda o: o.list_schedules())


@status_app.command("client")
def status_client(ctx: typer.Context, client: Optional[str] = typer.Argument(None)) -> None:
    client_id = _numeric_arg(client)
    _run(ctx, lambda o: o.status_client(client_id))


@status_app.command("file")
def status_file(ctx: typer.Context, files: Optional[List[str]] = typer.Argument(None)) -> None:
    if not files:
        raise typer.Exit(code=report(results.INVALID_PARAMETER))
    _run(ctx, lambda o: o.status_files(files))


# schedules


@enable_app.command("schedule")
def enable_schedule(ctx: typer.Context, schedule: Optional[str] = typer.Argument(None)) -> None:
    schedule_id = _numeric_arg(schedule)
    _run(ctx, lambda o: o.enable_schedule(schedule_id))


@disable_app.command("schedule")
def disable_schedule(ctx: typer.Context, schedule: Optional[str] = typer.Argument(None)) -> None:
    schedule_id = _numeric_arg(schedule)
    _run(
        ctx,
        lambda o: o.disable_schedule(schedule_id),
        confirm="really disable schedule(s)?",
    )


@run_app.command("schedule")
def run_schedule(ctx: typer.Context, schedule: Optional[str] = typer.Argument(None)) -> None:
    schedule_id = _numeric_arg(schedule)
    _run(ctx, lambda o: o.run_schedule(schedule_id))


@delete_app.command("schedule")
def delete_schedule(ctx: typer.Context, schedule: Optional[str] = typer.Argument(None)) -> None:
    schedule_id = _numeric_arg(schedule)
    _run(
        ctx,
        lambda o: o.delete_schedule(schedule_id),
        confirm="really delete a schedule?",
    )


# settings


@get_app.command("backuptime")
def get_backuptime(ctx: typer.Context, schedule: Optional[str] = typer.Argument(None)) -> None:
    schedule_id = _numeric_arg(schedule)
    _run(ctx, lambda o: o.backup_time(schedule_id))


@get_app.command("serverconfig")
def get_serverconfig(ctx: typer.Context, names: Optional[List[str]] = typer.Argument(None)) -> None:
    selected = local(lambda: select_names(names or [], SERVER_CONFIG_NAMES))
    _run(ctx, lambda o: o.get_server_config(selected))


@get_app.command("serverprefs")
def get_serverprefs(ctx: typer.Context, names: Optional[List[str]] = typer.Argument(None)) -> None:
    selected = (
        local(
            lambda: select_names(
                names or [],
                SERVER_PREFS_NAMES + SERVER_PREFS_READ_ONLY,
                unknown_code=results.UNAVAILABLE_COMMAND,
            )
        )
        if names
        else []
    )
    _run(ctx, lambda o: o.get_server_prefs(selected))


@get_app.command("cwpconfig")
def get_cwpconfig(ctx: typer.Context, names: Optional[List[str]] = typer.Argument(None)) -> None:
    selected = local(
        lambda: select_names(names or [], CWP_CONFIG_NAMES, announce_unknown=True)
    )
    _run(ctx, lambda o: o.get_web_config(selected))


@set_app.command("serverconfig")
def set_serverconfig(ctx: typer.Context, assignments: Optional[List[str]] = typer.Argument(None)) -> None:
    settings = local(lambda: parse_server_settings(assignments or [], SERVER_CONFIG_NAMES))
    _run(ctx, lambda o: o.set_server_config(settings))


@set_app.command("serverprefs")
def set_serverprefs(ctx: typer.Context, assignments: Optional[List[str]] = typer.Argument(None)) -> None:
    settings = local(
        lambda: parse_server_settings(
            assignments or [],
            SERVER_PREFS_NAMES,
            unknown_code=results.UNAVAILABLE_COMMAND,
        )
    )
    _run(ctx, lambda o: o.set_server_prefs(settings))


@set_app.command("cwpconfig")
def set_cwpconfig(ctx: typer.Context, assignments: Optional[List[str]] = typer.Argument(None)) -> None:
    requested = local(lambda: parse_web_settings(assignments or []))
    _run(ctx, lambda o: o.set_web_config(requested))


@cancel_app.command("backup")
def cancel_backup(ctx: typer.Context) -> None:
    _run(ctx, lambda o: o.cancel_backup(), preflight=True)


# certificates


@certificate_app.command("create")
def certificate_create(ctx: typer.Context, subject: Optional[str] = typer.Argument(None)) -> None:
    """Create a private key and a certificate signing request on the server."""
    options = _state(ctx).options
    _run(
        ctx,
        lambda o: o.create_certificate(subject or "", keyfile_pass=options.keyfile_pass),
        preflight=True,
    )


@certificate_app.command("import")
def certificate_import(ctx: typer.Context, certificate: Optional[str] = typer.Argument(None)) -> None:
    options = _state(ctx).options
    _run(
        ctx,
        lambda o: o.import_certificate(
            certificate or "",
            keyfile=options.keyfile,
            keyfile_pass=options.keyfile_pass,
            intermediate_ca=options.intermediate_ca,
        ),
        confirm="really import certificate? (Warning: server needs to be restarted)",
    )


@certificate_app.command("delete")
def certificate_delete(ctx: typer.Context) -> None:
    _run(
        ctx,
        lambda o: o.delete_certificate(),
        confirm="really delete certificate? (Warning: server needs to be restarted)",
    )


# config file


@config_app.command("path")
def config_path_command(ctx: typer.Context) -> None:
    """Print the config file location."""
    state = _state(ctx)
    emit(str(state.context.config_path or resolve_config_path()))


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show effective settings and where each one comes from."""
    state = _state(ctx)
    path = state.context.config_path or resolve_config_path()
    try:
        config = state.context.config or load_config(path)
    except CLIError as exc:
        log_error(f"error: {exc}")
        raise typer.Exit(code=1) from exc
    emit(f"config file: {path}{'' if path.exists() else ' (missing)'}")
    for name, value, source in effective_config(config):
        emit(f"{name} = {'-' if value is None else value} ({source})")


@config_app.command("init")
def config_init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="overwrite an existing file"),
    print_only: bool = typer.Option(False, "--print", help="print the template instead of writing it"),
) -> None:
    """Write a commented config file template."""
    if print_only:
        emit(config_template().rstrip("\n"))
        raise typer.Exit(code=0)
    state = _state(ctx)
    try:
        path = write_default_config(state.context.config_path, force=force or state.options.force)
    except CLIError as exc:
        log_error(f"error: {exc}")
        raise typer.Exit(code=1) from exc
    log(f"wrote {path}")


def main(argv: Optional[Sequence[str]] = None, *, context: Optional[AppContext] = None) -> int:
    command = typer.main.get_command(app)
    args = hoist_options(list(argv) if argv is not None else sys.argv[1:])
    if "--verbose" in args:
        configure_console(verbose=True)
        log_debug("invoked as: fmcsadmin " + " ".join(redact_cli_args(args)))
    try:
        rc = command.main(
            args=args,
            prog_name="fmcsadmin",
            standalone_mode=False,
            obj=context,
        )
    except click.NoSuchOption as exc:
        emit(f"Invalid option: {exc.option_name}")
        emit_error(results.format_error(results.INVALID_OPTION))
        return EXIT_INVALID_OPTION
    except click.UsageError as exc:
        log_error(exc.format_message())
        return report(EXIT_INVALID_COMMAND)
    except CLIError as exc:
        log_error(f"error: {exc}")
        return 1
    except (KeyboardInterrupt, click.Abort, InteractionAborted):
        log_error("cancelled")
        return EXIT_CODE_INTERRUPT
    except SystemExit as exc:
        return int(exc.code or 0)
    return rc if isinstance(rc, int) else 0


if __name__ == "__main__":
    sys.exit(main())
