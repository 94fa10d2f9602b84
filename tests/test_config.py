"""Tests for TOML config file loading and option precedence."""

from __future__ import annotations

import argparse
from pathlib import Path

import pytest

from norgfmt.cli import build_parser, load_config, main, resolve_options


class TestLoadConfig:
    def test_missing_config_returns_empty(self, tmp_path: Path) -> None:
        assert load_config(None, tmp_path) == {}

    def test_explicit_path(self, tmp_path: Path) -> None:
        cfg = tmp_path / "custom.toml"
        cfg.write_text("[format]\nline_length = 72\n")
        assert load_config(cfg, tmp_path) == {"format": {"line_length": 72}}

    def test_auto_discover_norgfmt_toml(self, tmp_path: Path) -> None:
        (tmp_path / "norgfmt.toml").write_text("[format]\nline_length = 60\n")
        assert load_config(None, tmp_path)["format"]["line_length"] == 60

    def test_explicit_missing_is_error(self, tmp_path: Path) -> None:
        with pytest.raises(argparse.ArgumentTypeError, match="not found"):
            load_config(tmp_path / "nope.toml", tmp_path)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "norgfmt.toml").write_text("[format\n")
        with pytest.raises(argparse.ArgumentTypeError, match="invalid config"):
            load_config(None, tmp_path)


class TestConfigMerge:
    def _resolve(self, tmp_path: Path, *extra: str):
        doc = tmp_path / "doc.norg"
        doc.write_text("")
        ns = build_parser().parse_args([str(doc), *extra])
        return resolve_options(ns)

    def test_default_width(self, tmp_path: Path) -> None:
        assert self._resolve(tmp_path).format.line_length == 80

    def test_config_width(self, tmp_path: Path) -> None:
        (tmp_path / "norgfmt.toml").write_text("[format]\nline_length = 60\n")
        assert self._resolve(tmp_path).format.line_length == 60

    def test_cli_overrides_config(self, tmp_path: Path) -> None:
        (tmp_path / "norgfmt.toml").write_text("[format]\nline_length = 60\n")
        assert self._resolve(tmp_path, "--line-length", "100").format.line_length == 100

    def test_explicit_config_flag(self, tmp_path: Path) -> None:
        cfg = tmp_path / "alt.toml"
        cfg.write_text("[format]\nline_length = 42\n")
        assert self._resolve(tmp_path, "--config", str(cfg)).format.line_length == 42

    def test_wrong_type(self, tmp_path: Path) -> None:
        (tmp_path / "norgfmt.toml").write_text('[format]\nline_length = "wide"\n')
        with pytest.raises(argparse.ArgumentTypeError, match="must be an int"):
            self._resolve(tmp_path)

    def test_format_not_a_table(self, tmp_path: Path) -> None:
        (tmp_path / "norgfmt.toml").write_text("format = 3\n")
        with pytest.raises(argparse.ArgumentTypeError, match="must be a table"):
            self._resolve(tmp_path)

    def test_stdin_uses_working_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "norgfmt.toml").write_text("[format]\nline_length = 33\n")
        monkeypatch.chdir(tmp_path)
        opts = resolve_options(build_parser().parse_args(["-"]))
        assert opts.input_file is None
        assert opts.format.line_length == 33


class TestConfigEndToEnd:
    def test_config_width_applied(self, tmp_path: Path) -> None:
        (tmp_path / "norgfmt.toml").write_text("[format]\nline_length = 20\n")
        doc = tmp_path / "doc.norg"
        doc.write_text("alpha beta gamma delta epsilon zeta eta theta\n")
        out = tmp_path / "out.norg"
        assert main([str(doc), "-o", str(out)]) == 0
        lines = out.read_text().splitlines()
        assert len(lines) > 1
        assert all(len(line) <= 20 for line in lines)

    def test_bad_config_returns_2(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (tmp_path / "norgfmt.toml").write_text("[format]\nline_length = -1\n")
        doc = tmp_path / "doc.norg"
        doc.write_text("text\n")
        assert main([str(doc)]) == 2
        assert "line_length must be positive" in capsys.readouterr().err
