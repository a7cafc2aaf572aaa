from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line schema of the headless bundle builder and
translates parsed namespaces into configuration overrides.
"""

import argparse
from typing import Any, Dict, List, Optional, Tuple

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the RepoPrompt CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(
        prog="repoprompt",
        description="Assemble a context bundle (file maps, file contents, prompts and instructions) for an LLM.",
    )

    # --- Sources ---
    p.add_argument(
        "-d", "--dir",
        dest="directories",
        action="append",
        default=[],
        help="Directory to register (repeatable).",
    )
    p.add_argument(
        "--zip",
        dest="zip_archives",
        action="append",
        default=[],
        help="Zip archive to ingest as an uploaded directory (repeatable).",
    )
    p.add_argument(
        "--server",
        dest="server_url",
        nargs="?",
        const="",
        default=None,
        metavar="URL",
        help="List and read files through a workspace server instead of the local disk. "
             "Without a URL the configured server_endpoint is used.",
    )
    p.add_argument(
        "--no-gitignore",
        action="store_true",
        help="Ignore local .gitignore rules.",
    )

    # --- Selection ---
    p.add_argument(
        "--select",
        dest="selections",
        action="append",
        default=[],
        help="File or folder to select, relative to its directory or absolute (repeatable).",
    )
    p.add_argument(
        "--whitelist",
        dest="whitelist",
        default=None,
        help="Comma-separated selectability patterns replacing the stored ones.",
    )

    # --- Bundle Inputs ---
    p.add_argument(
        "--prompt",
        dest="prompts",
        action="append",
        default=[],
        help="Prompt to include: NAME selects a stored prompt, NAME=TEXT stores and selects it (repeatable).",
    )
    p.add_argument(
        "--instructions",
        dest="instructions",
        default=None,
        help="User instructions appended to the bundle.",
    )

    # --- Output ---
    p.add_argument(
        "-o", "--output",
        dest="output_file",
        default=None,
        help="Write the bundle to this file instead of stdout.",
    )
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print the full build result as JSON.",
    )

    # --- Session and Diagnostics ---
    p.add_argument(
        "--session",
        dest="session_name",
        default=None,
        help="Persistence namespace for selection, prompts and instructions.",
    )
    p.add_argument(
        "--no-persist",
        action="store_true",
        help="Keep session state in memory only.",
    )
    p.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the effective configuration and exit.",
    )
    p.add_argument(
        "--save-config",
        action="store_true",
        help="Persist the effective configuration as the new defaults and exit.",
    )
    p.add_argument(
        "--show-logs",
        dest="show_logs",
        type=int,
        nargs="?",
        const=100,
        default=None,
        metavar="N",
        help="Print the last N lines of the log file (default 100) and exit.",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="Elevate logging verbosity to DEBUG.",
    )

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into a configuration dictionary.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset.
    """
    overrides: Dict[str, Any] = {}

    if args.whitelist is not None:
        overrides["whitelist"] = _split_csv(args.whitelist)
    if args.no_gitignore:
        overrides["respect_gitignore"] = False
    if args.server_url:
        overrides["server_endpoint"] = args.server_url
    if args.session_name:
        overrides["session_name"] = args.session_name
    if args.debug:
        overrides["log_level"] = "DEBUG"

    return overrides


def parse_prompt_arg(value: str) -> Tuple[str, Optional[str]]:
    """
    Split a --prompt value into name and optional inline text.

    Examples:
        'review' -> ('review', None)
        'review=Check the style' -> ('review', 'Check the style')
    """
    name, sep, text = value.partition("=")
    return name.strip(), (text if sep else None)

# -----------------------------------------------------------------------------
# HELPERS
# -----------------------------------------------------------------------------

def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    """
    Convert a comma-separated string into a list of sanitized strings.
    """
    if value is None:
        return None
    parts = [x.strip() for x in value.split(",")]
    return [x for x in parts if x]
