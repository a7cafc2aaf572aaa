from __future__ import annotations

"""
Unit tests for the CLI argument schema and override mapping.
"""

from repoprompt.interface.cli.args import args_to_overrides, build_parser, parse_prompt_arg


def test_parser_defaults() -> None:
    """TC-01: Repeatable flags default to empty lists, switches to False."""
    args = build_parser().parse_args([])

    assert args.directories == []
    assert args.zip_archives == []
    assert args.selections == []
    assert args.prompts == []
    assert args.whitelist is None
    assert args.output_file is None
    assert args.json_output is False
    assert args.no_persist is False


def test_repeatable_flags_accumulate() -> None:
    """TC-02: -d and --select can be given several times."""
    args = build_parser().parse_args(["-d", "/a", "--dir", "/b", "--select", "x.py", "--select", "y.py"])

    assert args.directories == ["/a", "/b"]
    assert args.selections == ["x.py", "y.py"]


def test_overrides_only_contain_given_flags() -> None:
    """TC-03: No flags produce no overrides."""
    args = build_parser().parse_args(["-d", "/a"])
    assert args_to_overrides(args) == {}


def test_overrides_mapping() -> None:
    """TC-04: Flags map onto configuration keys."""
    args = build_parser().parse_args([
        "--whitelist", " .py, .MD ,, ",
        "--no-gitignore",
        "--server", "http://127.0.0.1:9000",
        "--session", "work",
        "--debug",
    ])

    overrides = args_to_overrides(args)

    assert overrides["whitelist"] == [".py", ".MD"]
    assert overrides["respect_gitignore"] is False
    assert overrides["server_endpoint"] == "http://127.0.0.1:9000"
    assert overrides["session_name"] == "work"
    assert overrides["log_level"] == "DEBUG"


def test_parse_prompt_arg() -> None:
    """TC-05: NAME and NAME=TEXT forms."""
    assert parse_prompt_arg("review") == ("review", None)
    assert parse_prompt_arg(" review =Check a=b") == ("review", "Check a=b")
    assert parse_prompt_arg("empty=") == ("empty", "")


def test_bare_server_flag_keeps_configured_endpoint() -> None:
    """TC-06: --server without a URL enables remote mode but overrides nothing."""
    args = build_parser().parse_args(["--server", "-d", "/srv/app"])

    assert args.server_url == ""
    assert args.directories == ["/srv/app"]
    assert "server_endpoint" not in args_to_overrides(args)
    assert build_parser().parse_args([]).server_url is None


def test_show_logs_line_count() -> None:
    """TC-07: --show-logs takes an optional line count."""
    parser = build_parser()

    assert parser.parse_args([]).show_logs is None
    assert parser.parse_args(["--show-logs"]).show_logs == 100
    assert parser.parse_args(["--show-logs", "20"]).show_logs == 20
    assert parser.parse_args(["--save-config"]).save_config is True
