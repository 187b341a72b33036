"""Tests for TOML config file loading and option merging."""

from __future__ import annotations

from pathlib import Path

from rustmode.cli import build_parser, resolve_options
from rustmode.config import Options, load_config, options_from_config


class TestLoadConfig:
    def test_missing_config_returns_empty(self, tmp_path: Path) -> None:
        assert load_config(None, tmp_path) == {}

    def test_explicit_path(self, tmp_path: Path) -> None:
        cfg = tmp_path / "custom.toml"
        cfg.write_text("[indent]\noffset = 2\n")
        result = load_config(cfg, tmp_path)
        assert result["indent"] == {"offset": 2}

    def test_auto_discover_rustmode_toml(self, tmp_path: Path) -> None:
        cfg = tmp_path / "rustmode.toml"
        cfg.write_text('[rustfmt]\nbin = "/opt/rustfmt"\n')
        result = load_config(None, tmp_path)
        assert result["rustfmt"] == {"bin": "/opt/rustfmt"}


class TestOptionsFromConfig:
    def test_defaults(self) -> None:
        opts = options_from_config({})
        assert opts == Options()
        assert opts.indent_offset == 4
        assert opts.rustfmt_args == ("--edition", "2021")

    def test_all_keys(self) -> None:
        config = {
            "indent": {
                "offset": 2,
                "method_chain": True,
                "where_clause": True,
                "return_type_to_arguments": False,
                "match_angle_brackets": False,
            },
            "rustfmt": {"bin": "rf", "args": ["--edition", "2018"], "timeout": 3},
        }
        opts = options_from_config(config)
        assert opts.indent_offset == 2
        assert opts.indent_method_chain is True
        assert opts.indent_where_clause is True
        assert opts.indent_return_type_to_arguments is False
        assert opts.match_angle_brackets is False
        assert opts.rustfmt_bin == "rf"
        assert opts.rustfmt_args == ("--edition", "2018")
        assert opts.rustfmt_timeout == 3.0

    def test_ill_typed_values_skipped(self) -> None:
        config = {"indent": {"offset": "wide", "method_chain": 1}, "rustfmt": {"args": "x"}}
        assert options_from_config(config) == Options()

    def test_negative_offset_skipped(self) -> None:
        assert options_from_config({"indent": {"offset": -1}}).indent_offset == 4

    def test_unknown_tables_ignored(self) -> None:
        assert options_from_config({"colors": {"x": 1}, "indent": 3}) == Options()

    def test_base_options_kept(self) -> None:
        base = Options(indent_offset=8)
        opts = options_from_config({"indent": {"method_chain": True}}, base)
        assert opts.indent_offset == 8
        assert opts.indent_method_chain is True


class TestConfigMerge:
    def test_config_applied(self, tmp_path: Path) -> None:
        cfg = tmp_path / "rustmode.toml"
        cfg.write_text("[indent]\noffset = 2\n")
        src = tmp_path / "main.rs"
        src.write_text("")
        p = build_parser()
        ns = p.parse_args([str(src)])
        opts = resolve_options(ns)
        assert opts.options.indent_offset == 2

    def test_cli_overrides_config(self, tmp_path: Path) -> None:
        cfg = tmp_path / "rustmode.toml"
        cfg.write_text("[indent]\noffset = 2\nmethod_chain = false\n")
        src = tmp_path / "main.rs"
        src.write_text("")
        p = build_parser()
        ns = p.parse_args([str(src), "--indent-offset", "3", "--method-chain"])
        opts = resolve_options(ns)
        assert opts.options.indent_offset == 3
        assert opts.options.indent_method_chain is True

    def test_explicit_config_flag(self, tmp_path: Path) -> None:
        cfg = tmp_path / "alt.toml"
        cfg.write_text('[rustfmt]\nbin = "rf"\n')
        src = tmp_path / "main.rs"
        src.write_text("")
        p = build_parser()
        ns = p.parse_args([str(src), "--config", str(cfg)])
        opts = resolve_options(ns)
        assert opts.options.rustfmt_bin == "rf"

    def test_rustfmt_flag_overrides_config(self, tmp_path: Path) -> None:
        cfg = tmp_path / "rustmode.toml"
        cfg.write_text('[rustfmt]\nbin = "rf"\n')
        src = tmp_path / "main.rs"
        src.write_text("")
        p = build_parser()
        ns = p.parse_args([str(src), "--rustfmt", "/usr/bin/rustfmt"])
        opts = resolve_options(ns)
        assert opts.options.rustfmt_bin == "/usr/bin/rustfmt"
