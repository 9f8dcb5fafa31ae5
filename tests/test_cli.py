"""Tests for sluice.cli: argument parsing, app resolution, maintenance commands."""

import sys
import types

import pytest

from sluice.app import App
from sluice.cli import main
from sluice.cli._resolve import resolve_app
from sluice.config import ProxyConfig


@pytest.fixture
def fake_module(monkeypatch: pytest.MonkeyPatch, upstream, toolchain) -> types.ModuleType:
    """Register a fake module holding a sluice App on sys.modules."""
    config = ProxyConfig(upstream="http://upstream.test", scope_url="http://testserver/")
    mod = types.ModuleType("_fake_sluice_app")
    mod.app = App(config, toolchain=toolchain, fetcher=upstream.fetcher())  # type: ignore[attr-defined]
    mod.create_app = lambda: App(config, fetcher=upstream.fetcher())  # type: ignore[attr-defined]
    mod.not_an_app = "just a string"  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_sluice_app", mod)
    return mod


class TestCLIHelp:
    @pytest.mark.parametrize("argv", [["--help"], ["run", "--help"], ["sweep", "--help"]])
    def test_help_exits_zero(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 0

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "sluice" in capsys.readouterr().out


class TestCLIMissingArgs:
    @pytest.mark.parametrize("command", ["run", "version", "sweep"])
    def test_missing_app(self, command: str) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([command])
        assert exc_info.value.code == 2

    def test_bad_log_level(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-level", "loud", "sweep", "x:app"])
        assert exc_info.value.code == 2


@pytest.mark.usefixtures("fake_module")
class TestResolveApp:
    def test_explicit_attribute(self) -> None:
        assert isinstance(resolve_app("_fake_sluice_app:app"), App)

    def test_default_attribute(self) -> None:
        assert resolve_app("_fake_sluice_app") is sys.modules["_fake_sluice_app"].app

    def test_factory(self) -> None:
        assert isinstance(resolve_app("_fake_sluice_app:create_app"), App)

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_app("nonexistent_module_xyz:app")

    def test_not_an_app(self) -> None:
        with pytest.raises(TypeError, match="not a sluice.App"):
            resolve_app("_fake_sluice_app:not_an_app")

    def test_unresolvable_exits_one(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["sweep", "_fake_sluice_app:missing"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err


class TestMaintenanceCommands:
    def test_version(self, fake_module, upstream, capsys: pytest.CaptureFixture[str]) -> None:
        upstream.manifest("2.0", "1")
        main(["version", "_fake_sluice_app:app"])

        out = capsys.readouterr().out
        assert "version: 2.0.1" in out
        assert "previous: (none)" in out

    def test_sweep(self, fake_module, upstream, capsys: pytest.CaptureFixture[str]) -> None:
        upstream.manifest("2.0", "1")
        main(["sweep", "_fake_sluice_app:app"])

        out = capsys.readouterr().out
        assert "version: 2.0.1" in out
        assert "nothing to delete" in out

    def test_unreachable_manifest_exits_one(
        self, fake_module, upstream, capsys: pytest.CaptureFixture[str]
    ) -> None:
        upstream.offline = True
        with pytest.raises(SystemExit) as exc_info:
            main(["version", "_fake_sluice_app:app"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err
