import types

import pytest

from ditacraft import cli


@pytest.fixture(autouse=True)
def reset_metadata(monkeypatch):
    """Ensure metadata.version is controllable during tests."""

    def fake_version(name: str) -> str:
        assert name == "ditacraft"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", fake_version)
    yield


def _stub_module(expected, behaviour):
    def fake_import(module_name: str):
        assert module_name == expected
        return types.SimpleNamespace(main=behaviour)

    return fake_import


def test_version_command_handles_missing_package(monkeypatch, capsys):
    monkeypatch.setattr(
        cli.metadata,
        "version",
        lambda name: (_ for _ in ()).throw(cli.metadata.PackageNotFoundError()),
    )
    code = cli.main(["version"])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "unknown"


def test_no_args_prints_usage_and_returns_error(capsys):
    code = cli.main([])
    captured = capsys.readouterr()
    assert code == 2
    assert "Usage: ditacraft" in captured.out
    assert "Available commands:" in captured.out


@pytest.mark.parametrize("argv", [["--help"], ["-h"], ["help"]])
def test_help_shows_usage(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 0
    assert "Usage: ditacraft" in captured.out


def test_list_outputs_command_table(capsys):
    code = cli.main(["list"])
    captured = capsys.readouterr()
    assert code == 0
    for name in ("init", "configure", "doctor", "transtypes", "publish", "preview"):
        assert name in captured.out


def test_help_known_command(capsys):
    code = cli.main(["help", "publish"])
    captured = capsys.readouterr()
    assert code == 0
    assert "publish:" in captured.out
    assert "Run `ditacraft publish --help`" in captured.out


def test_help_unknown_command(capsys):
    code = cli.main(["help", "does-not-exist"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err
    assert "Available commands:" in captured.err


@pytest.mark.parametrize("argv", [["version"], ["--version"], ["-V"]])
def test_version(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "0.0-test"


def test_unknown_command_errors(capsys):
    code = cli.main(["bogus"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err


def test_dispatch_prefixes_toolchain_subcommand(monkeypatch):
    captured = {}

    def stub_main(argv):
        captured["argv"] = list(argv)
        return 7

    monkeypatch.setattr(
        cli,
        "import_module",
        _stub_module("ditacraft.toolchain.cli", stub_main),
    )
    code = cli.main(["publish", "guide.ditamap", "--format", "pdf"])
    assert code == 7
    assert captured["argv"] == ["publish", "guide.ditamap", "--format", "pdf"]


def test_dispatch_passes_init_arguments_unprefixed(monkeypatch):
    captured = {}

    def stub_main(argv):
        captured["argv"] = list(argv)
        return 0

    monkeypatch.setattr(
        cli,
        "import_module",
        _stub_module("ditacraft.workspace.cli", stub_main),
    )
    assert cli.main(["init", "--quiet"]) == 0
    assert captured["argv"] == ["--quiet"]


@pytest.mark.parametrize(
    "exit_code, expected",
    [(5, 5), (None, 0), ("boom", 1)],
)
def test_dispatch_normalizes_system_exit(monkeypatch, capsys, exit_code, expected):
    def stub_main(argv):
        raise SystemExit(exit_code)

    monkeypatch.setattr(
        cli,
        "import_module",
        _stub_module("ditacraft.toolchain.cli", stub_main),
    )
    code = cli.main(["doctor"])
    assert code == expected
    if exit_code == "boom":
        assert capsys.readouterr().err.strip() == "boom"


def test_dispatch_normalizes_non_int_return(monkeypatch):
    monkeypatch.setattr(
        cli,
        "import_module",
        _stub_module("ditacraft.toolchain.cli", lambda argv: "done"),
    )
    assert cli.main(["transtypes"]) == 0


def test_cli_runs_init_end_to_end(tmp_path, capsys):
    target = tmp_path / "workspace"

    code = cli.main(["init", "--path", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert "Workspace ready" in captured.out
    for entry in ("config", "logs", "output"):
        assert (target / entry).is_dir()


def test_configure_without_changes_is_usage_error(capsys):
    code = cli.main(["configure"])
    captured = capsys.readouterr()
    assert code == 2
    assert "--show" in captured.err
