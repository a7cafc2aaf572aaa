from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates a headless run: logging bootstrap, configuration resolution
(persisted state plus CLI overrides), session wiring, directory
registration, selection, one assembly pass and result rendering.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Set, Tuple

from repoprompt.core.analysis.cross_reference import describe_importers, folders_with_dependencies
from repoprompt.core.pipeline.assembler import summarize
from repoprompt.core.services.session import Session, create_session
from repoprompt.core.services.workspace import Workspace
from repoprompt.domain.config import load_config, save_config, validate_config
from repoprompt.domain.errors import NetworkFailure, PathRejected, RepoPromptError
from repoprompt.domain.pipeline_models import BuildResult
from repoprompt.domain.selection_models import SourceKind
from repoprompt.domain.tree_models import normalize_relative_path
from repoprompt.infra.logging import (
    LoggingConfig,
    configure_logging,
    get_default_log_path,
    get_recent_logs,
)
from repoprompt.interface.cli import args as cli_args

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2
EXIT_INTERRUPTED = 130

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the CLI workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: 0 on success, 1 on failure (including unreadable files),
             2 on invalid input, 130 on interrupt.
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8")

    # 1. Argument parsing phase
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    # 2. Configuration hierarchy (persisted state + overrides)
    raw_conf = dict(load_config())
    raw_conf.update(cli_args.args_to_overrides(args))
    config, warnings = validate_config(raw_conf, strict=False)

    # 3. Logging bootstrap (console on stderr, optional rotating file)
    log_file = get_default_log_path() if config.get("log_to_file") else None
    configure_logging(LoggingConfig(level=config["log_level"], console=True, log_file=log_file))
    for w in warnings:
        logger.warning(f"Configuration Constraint: {w}")

    if args.dump_config:
        print(json.dumps(config, ensure_ascii=False, indent=2))
        return EXIT_OK
    if args.save_config:
        if not save_config(config):
            _fail("Configuration could not be saved.")
            return EXIT_FAILURE
        print("Configuration saved.")
        return EXIT_OK
    if args.show_logs is not None:
        print(get_recent_logs(args.show_logs))
        return EXIT_OK

    # 4. Pre-flight input verification
    server_url = _server_url(args, config)
    if not args.directories and not args.zip_archives:
        _fail("No sources given. Use -d/--dir or --zip.")
        return EXIT_INVALID_INPUT
    if server_url is None:
        for path in args.directories:
            if not os.path.isdir(path):
                _fail(f"Directory does not exist: {path}")
                return EXIT_INVALID_INPUT
    for path in args.zip_archives:
        if not os.path.isfile(path):
            _fail(f"Zip archive does not exist: {path}")
            return EXIT_INVALID_INPUT

    # 5. Session execution phase
    try:
        session = create_session(
            config,
            session_name=args.session_name,
            server_url=server_url,
            in_memory=args.no_persist,
        )
        result = asyncio.run(run_session(session, args, config))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        print("Interrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except NetworkFailure as e:
        _fail(str(e))
        return EXIT_FAILURE
    except (RepoPromptError, ValueError) as e:
        _fail(str(e))
        return EXIT_INVALID_INPUT
    except Exception as e:
        logger.critical(f"Bundle assembly failed: {e}", exc_info=True)
        print(f"ERROR: Bundle assembly failed: {e}", file=sys.stderr)
        return EXIT_FAILURE

    # 6. Output rendering phase
    if not _emit(result, args, session.workspace):
        return EXIT_FAILURE
    return EXIT_OK if not result.failed else EXIT_FAILURE

# -----------------------------------------------------------------------------
# SESSION DRIVER
# -----------------------------------------------------------------------------

async def run_session(session: Session, args: argparse.Namespace, config: Dict[str, Any]) -> BuildResult:
    """
    Register the sources, apply the requested selection and build once.

    Raises:
        PathRejected: If a source cannot be listed or a selection matches nothing.
        ValueError: On invalid prompt or whitelist input.
    """
    try:
        if args.whitelist is not None:
            session.set_whitelist(config["whitelist"])

        for path in args.directories:
            directory = await session.add_path_directory(path)
            if directory.error:
                raise PathRejected(f"{path}: {directory.error}")
        for zip_path in args.zip_archives:
            await session.add_zip_directory(zip_path)

        if args.selections:
            for directory in session.workspace:
                directory.selection.clear()
            for raw in args.selections:
                dir_id, path = resolve_selection(session, raw)
                session.select_path(dir_id, path, True)

        for raw in args.prompts:
            name, text = cli_args.parse_prompt_arg(raw)
            if text is not None:
                if name in session.workspace.prompts:
                    session.edit_prompt(name, name, text)
                else:
                    session.add_prompt(name, text)
            elif name not in session.workspace.prompts:
                raise ValueError(f"Unknown prompt '{name}'.")
            session.select_prompt(name)

        if args.instructions is not None:
            session.set_instructions(args.instructions)

        session.schedule()
        result = await session.settle()
        if result is None:
            result = await session.assembler.build()
        return result
    finally:
        session.close()


def resolve_selection(session: Session, raw: str) -> Tuple[int, str]:
    """
    Map a --select value to a (directory id, tree path) pair.

    Absolute paths are looked up in every directory; relative paths are
    joined with each directory root in registration order. Uploaded and
    archive directories key their nodes by relative path, so relative values
    match them directly (an empty or "." value names the upload root).

    Raises:
        PathRejected: If no registered directory contains the path.
    """
    for directory in session.workspace:
        tree = directory.tree
        if directory.source_kind is SourceKind.IN_MEMORY:
            if os.path.isabs(raw):
                continue
            relative = normalize_relative_path(os.path.normpath(raw))
            candidates = [relative if relative not in ("", ".") else tree.root]
        elif os.path.isabs(raw):
            candidates = [os.path.normpath(raw), os.path.realpath(raw)]
        else:
            candidates = [os.path.normpath(os.path.join(directory.root, raw))]
        for candidate in candidates:
            if candidate in tree:
                return directory.id, candidate
    raise PathRejected(f"Selection '{raw}' does not match any registered file or folder.")

# -----------------------------------------------------------------------------
# VIEW RENDERING
# -----------------------------------------------------------------------------

def _emit(result: BuildResult, args: argparse.Namespace, workspace: Workspace) -> bool:
    if args.json_output:
        text = json.dumps(result.to_dict(), ensure_ascii=False, indent=2)
    else:
        text = result.bundle

    if args.output_file:
        try:
            with open(args.output_file, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.error(f"Could not write output file: {e}")
            print(f"ERROR: Could not write {args.output_file}: {e}", file=sys.stderr)
            return False
        _print_human_summary(result, args.output_file, workspace)
    else:
        print(text)

    for path in result.failed:
        print(f"WARNING: could not read {path}", file=sys.stderr)
    return True


def _print_human_summary(result: BuildResult, output_file: str, workspace: Workspace) -> None:
    stats = summarize(result)
    print(f"Bundle written to {output_file}")
    print(f"Characters: {stats['chars']:,}")
    print(f"Estimated tokens: {stats['tokens']:,}")
    if stats["failed"]:
        print(f"Unreadable files: {stats['failed']}")
    if stats["dependencies"]:
        print(f"Related unselected files: {stats['dependencies']}")
        for path, importers in sorted(result.dependencies.items()):
            _, tooltip = describe_importers(importers)
            print(f"  {path} ({tooltip})")
        folders: Set[str] = set()
        for directory in workspace:
            folders.update(folders_with_dependencies(directory.tree, result.dependencies))
        print(f"Folders containing related files: {len(folders)}")


def _server_url(args: argparse.Namespace, config: Dict[str, Any]) -> Optional[str]:
    """Workspace server to use, or None for local access. A bare --server falls back to the config."""
    if args.server_url is None:
        return None
    return args.server_url or config.get("server_endpoint") or None


def _fail(msg: str) -> None:
    logger.error(msg)
    print(f"ERROR: {msg}", file=sys.stderr)

# -----------------------------------------------------------------------------
# CLI ENTRYPOINT
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
