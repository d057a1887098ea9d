from __future__ import annotations

import argparse
import io
from pathlib import Path

import pytest
from rich.console import Console

from snapsite import cli
from snapsite.config import ENV_CLEAN, ENV_DESTINATION, ENV_SOURCE
from snapsite.logging_utils import configure_logging
from snapsite.pipeline import BuildReport


@pytest.fixture(autouse=True)
def _quiet(monkeypatch):
    for name in (ENV_SOURCE, ENV_DESTINATION, ENV_CLEAN):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("snapsite.cli.configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def printed(monkeypatch) -> list[str]:
    messages: list[str] = []
    monkeypatch.setattr(cli.CONSOLE, "print", lambda *args, **kwargs: messages.extend(str(arg) for arg in args))
    return messages


def _make_site(root: Path) -> Path:
    source = root / "site"
    source.mkdir()
    (source / "index.html").write_text("---\ntemplate: true\ntitle: Home\n---\n<h1>{title}</h1>", encoding="utf-8")
    (source / "notes.txt").write_text("plain", encoding="utf-8")
    return source


def _build_args(**overrides) -> argparse.Namespace:
    values = dict(
        config=None,
        source=None,
        destination=None,
        clean=None,
        strict_paths=False,
        stage=None,
        verbose=False,
        log_level=None,
        console_level=None,
        log_file=None,
        command="build",
    )
    values.update(overrides)
    return argparse.Namespace(**values)


def test_build_from_config_file(tmp_path, printed) -> None:
    _make_site(tmp_path)
    config_path = tmp_path / "snapsite.yaml"
    config_path.write_text("source: site\ndestination: public\nstages:\n  - render\n", encoding="utf-8")

    exit_code = cli.run_build(_build_args(config=config_path))

    assert exit_code == 0
    assert (tmp_path / "public" / "index.html").read_text(encoding="utf-8") == "<h1>Home</h1>"
    assert (tmp_path / "public" / "notes.txt").read_text(encoding="utf-8") == "plain"


def test_build_with_command_line_paths(tmp_path, printed) -> None:
    source = _make_site(tmp_path)
    destination = tmp_path / "out"

    exit_code = cli.run_build(_build_args(source=str(source), destination=str(destination)))

    assert exit_code == 0
    assert (destination / "index.html").read_text(encoding="utf-8") == "<h1>{title}</h1>"


def test_build_failure_prints_error_chain(tmp_path, printed) -> None:
    source = _make_site(tmp_path)

    exit_code = cli.run_build(
        _build_args(source=str(source), destination=str(tmp_path / "missing"), clean=True)
    )

    assert exit_code == 1
    assert any("Build failed" in message for message in printed)
    chain = next(message for message in printed if "failed writing files" in message)
    assert "caused by:" in chain


def test_build_without_source_fails(tmp_path, printed) -> None:
    exit_code = cli.run_build(_build_args(destination=str(tmp_path / "out")))
    assert exit_code == 1
    assert any("No source set" in message for message in printed)


def test_build_with_invalid_config(tmp_path, printed) -> None:
    config_path = tmp_path / "snapsite.yaml"
    config_path.write_text("unexpected: 1\n", encoding="utf-8")

    exit_code = cli.run_build(_build_args(config=config_path))

    assert exit_code == 1
    assert any("Invalid configuration" in message for message in printed)


def test_build_with_unknown_log_level(tmp_path, monkeypatch, printed) -> None:
    monkeypatch.setattr("snapsite.cli.configure_logging", configure_logging)
    source = _make_site(tmp_path)

    exit_code = cli.run_build(
        _build_args(source=str(source), destination=str(tmp_path / "out"), log_level="LOUD")
    )

    assert exit_code == 1
    assert any("Invalid logging options" in message for message in printed)
    assert not (tmp_path / "out").exists()


def test_build_with_malformed_yaml(tmp_path, printed) -> None:
    config_path = tmp_path / "snapsite.yaml"
    config_path.write_text("source: [unclosed\n", encoding="utf-8")

    exit_code = cli.run_build(_build_args(config=config_path))

    assert exit_code == 1
    assert any("Invalid configuration" in message for message in printed)


def test_stage_flags_are_appended(tmp_path) -> None:
    config_path = tmp_path / "snapsite.yaml"
    config_path.write_text("source: site\nstages: [render]\n", encoding="utf-8")

    config = cli._resolve_config(_build_args(config=config_path, stage=["render"], clean=True, strict_paths=True))

    assert config.stages == ["render", "render"]
    assert config.clean is True
    assert config.strict_paths is True


def test_command_line_clean_overrides_config(tmp_path) -> None:
    config_path = tmp_path / "snapsite.yaml"
    config_path.write_text("clean: true\n", encoding="utf-8")
    assert cli._resolve_config(_build_args(config=config_path, clean=False)).clean is False


@pytest.fixture
def rendered(monkeypatch):
    console = Console(file=io.StringIO(), width=200, record=True)
    monkeypatch.setattr(cli, "CONSOLE", console)
    return console


class TestValidateConfig:
    def test_valid_config(self, tmp_path, rendered) -> None:
        _make_site(tmp_path)
        config_path = tmp_path / "snapsite.yaml"
        config_path.write_text("source: site\ndestination: public\n", encoding="utf-8")

        exit_code = cli.run_validate_config(argparse.Namespace(config=config_path))

        output = rendered.export_text()
        assert exit_code == 0
        assert "passed validation" in output
        assert "⚠" not in output

    def test_warns_about_missing_settings(self, tmp_path, rendered) -> None:
        config_path = tmp_path / "snapsite.yaml"
        config_path.write_text("clean: true\n", encoding="utf-8")

        exit_code = cli.run_validate_config(argparse.Namespace(config=config_path))

        output = rendered.export_text()
        assert exit_code == 0
        assert "'source' is not set" in output
        assert "'destination' is not set" in output
        assert "passed validation" in output

    def test_warns_about_missing_source_directory(self, tmp_path, rendered) -> None:
        config_path = tmp_path / "snapsite.yaml"
        config_path.write_text("source: nowhere\ndestination: public\n", encoding="utf-8")

        exit_code = cli.run_validate_config(argparse.Namespace(config=config_path))

        assert exit_code == 0
        assert "missing-source" in rendered.export_text()

    def test_invalid_config(self, tmp_path, rendered) -> None:
        config_path = tmp_path / "snapsite.yaml"
        config_path.write_text("stages: [minify]\n", encoding="utf-8")

        exit_code = cli.run_validate_config(argparse.Namespace(config=config_path))

        output = rendered.export_text()
        assert exit_code == 1
        assert "1 error(s) detected" in output
        assert "stages[0]" in output
        assert "passed validation" not in output

    def test_reports_every_error(self, tmp_path, rendered) -> None:
        config_path = tmp_path / "snapsite.yaml"
        config_path.write_text("sources: site\nclean: 3\nstages: [minify, render]\n", encoding="utf-8")

        exit_code = cli.run_validate_config(argparse.Namespace(config=config_path))

        output = rendered.export_text()
        assert exit_code == 1
        assert "3 error(s) detected" in output
        assert "'sources' was unexpected" in output
        assert "is not of type" in output
        assert "'minify' is not one of" in output

    def test_unreadable_yaml(self, tmp_path, rendered) -> None:
        config_path = tmp_path / "snapsite.yaml"
        config_path.write_text("source: [unclosed\n", encoding="utf-8")

        exit_code = cli.run_validate_config(argparse.Namespace(config=config_path))

        assert exit_code == 1
        assert "Configuration error" in rendered.export_text()

    def test_missing_file(self, tmp_path, rendered) -> None:
        exit_code = cli.run_validate_config(argparse.Namespace(config=tmp_path / "absent.yaml"))

        assert exit_code == 1
        assert "Configuration error" in rendered.export_text()


class TestParser:
    def test_build_defaults(self) -> None:
        args = cli.build_parser().parse_args(["build"])
        assert args.handler is cli.run_build
        assert args.clean is None
        assert args.stage is None

    def test_no_clean_flag(self) -> None:
        args = cli.build_parser().parse_args(["build", "--no-clean", "--stage", "render", "-v"])
        assert args.clean is False
        assert args.stage == ["render"]
        assert args.verbose is True

    def test_unknown_stage_is_rejected(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["build", "--stage", "minify"])

    def test_validate_requires_config(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["validate-config"])

    def test_main_dispatches(self, monkeypatch) -> None:
        seen: list[str] = []
        monkeypatch.setattr(cli, "run_validate_config", lambda args: seen.append(str(args.config)) or 0)
        # handlers are bound when the parser is built
        assert cli.main(["validate-config", "--config", "x.yaml"]) == 0
        assert seen == ["x.yaml"]


def test_render_build_summary() -> None:
    table = cli.render_build_summary(
        BuildReport(source="/site", destination="/out", files_read=2, files_written=2, stages_run=["render"])
    )
    assert table.title == "Build Summary"
    assert table.row_count == 7


def test_log_level_selection() -> None:
    assert cli._log_level(_build_args()) == "INFO"
    assert cli._log_level(_build_args(verbose=True)) == "DEBUG"
    assert cli._log_level(_build_args(verbose=True, log_level="WARNING")) == "WARNING"
