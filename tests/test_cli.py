import httpx
import pytest
from typer.testing import CliRunner

import fmcsadmin
import fmcsadmin.cli as cli
from fmcsadmin import results
from fmcsadmin.config import ConfigFile
from fmcsadmin.constants import (
    EXIT_CODE_INTERRUPT,
    EXIT_INVALID_COMMAND,
    EXIT_INVALID_OPTION,
    EXIT_INVALID_PARAMETER,
)
from fmcsadmin.context import AppContext

from conftest import client, database, schedule

runner = CliRunner()
LOGIN = ["-u", "admin", "-p", "secret"]


def test_cli_help_invocation(app_context):
    result = runner.invoke(cli.app, ["--help"], obj=app_context)
    assert result.exit_code == 0
    assert "Usage:" in result.stdout


def test_cli_version_flag(app_context):
    result = runner.invoke(cli.app, ["--version"], obj=app_context)
    assert result.exit_code == 0
    assert result.stdout.strip() == f"fmcsadmin {fmcsadmin.__version__}"


def test_cli_without_command_shows_help(app_context):
    result = runner.invoke(cli.app, [], obj=app_context)
    assert result.exit_code == 0
    assert "Commands" in result.stdout


def test_list_clients_through_runner(app_context, fake_server):
    fake_server.clients = [client(10, "Sales.fmp12", user="carol")]
    result = runner.invoke(cli.app, LOGIN + ["list", "clients"], obj=app_context)
    assert result.exit_code == 0
    assert "carol" in result.stdout


def test_close_with_options_after_command(app_context, fake_server, capsys):
    fake_server.databases = [database(1, "Sales.fmp12")]
    rc = cli.main(["close", "Sales", "-y", *LOGIN, "-m", "bye"], context=app_context)
    assert rc == 0
    assert "File Closed: Sales.fmp12" in capsys.readouterr().out
    assert fake_server.requests("PATCH", "databases/1")[0].body["messageText"] == "bye"
    assert len(fake_server.requests("DELETE", "user/auth/")) == 1


def test_restart_forwards_message(app_context, fake_server):
    fake_server.clients = [client(10, "Sales.fmp12")]
    fake_server.databases = [database(1, "Sales.fmp12")]
    argv = [*LOGIN, "-y", "-m", "Back soon", "restart", "server"]
    assert cli.main(argv, context=app_context) == 0
    assert fake_server.requests("DELETE", "clients/10")[0].params["messageText"] == "Back soon"
    assert fake_server.requests("PATCH", "databases/1")[0].body["messageText"] == "Back soon"
    assert fake_server.server_status == "RUNNING"


def test_declined_confirmation_does_nothing(monkeypatch, app_context, fake_server):
    monkeypatch.setattr(cli, "prompt_confirm", lambda question: False)
    assert cli.main([*LOGIN, "stop", "server"], context=app_context) == 0
    assert fake_server.calls == []


def test_subcommand_names_ignore_case(app_context, fake_server, capsys):
    fake_server.databases = [database(1, "Sales.fmp12")]
    assert cli.main([*LOGIN, "list", "FILES"], context=app_context) == 0
    assert "Sales.fmp12" in capsys.readouterr().out


def test_unknown_option_exit_code(app_context, capsys):
    assert cli.main(["list", "files", "--bogus"], context=app_context) == EXIT_INVALID_OPTION
    captured = capsys.readouterr()
    assert "Invalid option: --bogus" in captured.out
    assert "Error: 11001 (Invalid option)" in captured.err


def test_unknown_command_exit_code(app_context, capsys):
    assert cli.main(["frobnicate"], context=app_context) == EXIT_INVALID_COMMAND
    assert "Error: 11000 (Invalid command)" in capsys.readouterr().err


def test_server_commands_reject_other_targets(app_context, fake_server, capsys):
    assert cli.main(["-y", "stop", "database"], context=app_context) == EXIT_INVALID_PARAMETER
    assert "Error: 10007 (Requested object does not exist)" in capsys.readouterr().err
    assert fake_server.calls == []


def test_local_validation_runs_before_login(app_context, fake_server, capsys):
    rc = cli.main([*LOGIN, "set", "cwpconfig", "locale=sv"], context=app_context)
    assert rc == results.INVALID_PARAMETER
    captured = capsys.readouterr()
    assert "Invalid configuration value: sv" in captured.out
    assert "Error: 10001 (Invalid parameter)" in captured.err
    assert fake_server.calls == []


def test_get_serverprefs_unknown_name(app_context, fake_server):
    rc = cli.main([*LOGIN, "get", "serverprefs", "colour"], context=app_context)
    assert rc == results.UNAVAILABLE_COMMAND
    assert fake_server.calls == []


def test_rejected_login(app_context, fake_server, capsys):
    fake_server.login_codes = ["212"]
    assert cli.main([*LOGIN, "list", "files"], context=app_context) == results.ACCESS_DENIED
    captured = capsys.readouterr()
    assert "Permission denied." in captured.out
    assert "Error: 9 (Access denied)" in captured.err


def test_server_stopping_code_is_reported_as_unreachable(app_context, fake_server, capsys):
    fake_server.overrides[("GET", "databases")] = lambda call: httpx.Response(
        503, json={"response": {}, "messages": [{"code": "1701"}]}
    )
    assert cli.main([*LOGIN, "list", "files"], context=app_context) == results.HOST_UNREACHABLE
    assert "Error: 10502 (Host unreachable)" in capsys.readouterr().err


def test_disconnect_with_bad_client_id(app_context, fake_server):
    fake_server.clients = [client(10)]
    rc = cli.main([*LOGIN, "-y", "disconnect", "client", "abc"], context=app_context)
    assert rc == results.INVALID_CLIENT_ID
    assert fake_server.requests("DELETE", "clients/") == []


def test_run_schedule(app_context, fake_server, capsys):
    fake_server.schedules = [schedule(3, "Weekly")]
    assert cli.main([*LOGIN, "run", "schedule", "3"], context=app_context) == 0
    assert "Schedule 'Weekly' will run now." in capsys.readouterr().out


def test_grace_time_reaches_disconnect(app_context, fake_server):
    fake_server.clients = [client(10)]
    rc = cli.main([*LOGIN, "disconnect", "client", "-y", "-t", "5"], context=app_context)
    assert rc == 0
    assert fake_server.requests("DELETE", "clients/10")[0].params["graceTime"] == "5"


def test_config_grace_time_applies_without_flag(fake_server, tmp_path):
    fake_server.clients = [client(10)]

    def factory(timeout):
        return httpx.Client(transport=httpx.MockTransport(fake_server.handle), timeout=timeout)

    context = AppContext(
        config=ConfigFile(grace_time=15),
        config_path=tmp_path / "config.toml",
        http_client_factory=factory,
        sleep=fake_server.sleep,
    )
    assert cli.main([*LOGIN, "-y", "disconnect", "client"], context=context) == 0
    assert fake_server.requests("DELETE", "clients/10")[0].params["graceTime"] == "15"


def test_preflight_reports_unreachable_host(tmp_path, capsys):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    context = AppContext(
        config=ConfigFile(),
        config_path=tmp_path / "config.toml",
        http_client_factory=lambda timeout: httpx.Client(transport=httpx.MockTransport(refuse)),
    )
    assert cli.main([*LOGIN, "cancel", "backup"], context=context) == results.HOST_UNREACHABLE
    assert "Error: 10502 (Host unreachable)" in capsys.readouterr().err


def test_config_path_and_init(app_context, capsys):
    assert cli.main(["config", "path"], context=app_context) == 0
    assert capsys.readouterr().out.strip() == str(app_context.config_path)

    assert cli.main(["config", "init"], context=app_context) == 0
    assert app_context.config_path.exists()
    assert cli.main(["config", "init"], context=app_context) == 1
    assert "already exists" in capsys.readouterr().err


def test_config_show_lists_sources(app_context, capsys):
    assert cli.main(["config", "show"], context=app_context) == 0
    out = capsys.readouterr().out
    assert "grace_time = 90 (default)" in out
    assert "(missing)" in out


def test_verbose_trace_hides_password(app_context, fake_server, capsys):
    assert cli.main(["--verbose", *LOGIN, "list", "files"], context=app_context) == 0
    err = capsys.readouterr().err
    assert "invoked as: fmcsadmin" in err
    assert "secret" not in err


@pytest.mark.parametrize("error", [KeyboardInterrupt, cli.click.Abort, cli.InteractionAborted])
def test_main_returns_interrupt_code(monkeypatch, error):
    class FakeCommand:
        def main(self, *args, **kwargs):
            raise error()

    monkeypatch.setattr(cli.typer.main, "get_command", lambda _app: FakeCommand())
    assert cli.main(["list", "files"]) == EXIT_CODE_INTERRUPT


def test_report_normalizes_codes(capsys):
    assert cli.report(0) == 0
    assert cli.report(1701) == results.HOST_UNREACHABLE
    assert cli.report(99999) == 99999
    assert capsys.readouterr().err.splitlines() == [
        "Error: 10502 (Host unreachable)",
        "Error: 99999 ()",
    ]
