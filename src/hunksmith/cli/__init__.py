"""Command-line interface package for hunksmith."""

from __future__ import annotations

import datetime
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from hunksmith import __version__
from hunksmith.utils.log_setup import setup_logging

from .cli_types import ConfigOpt, RepoOpt
from .commit_cmd import register_command as register_commit_command
from .discard_cmd import register_command as register_discard_command
from .hunks_cmd import register_command as register_hunks_command
from .status_cmd import register_command as register_status_command
from .uncommit_cmd import register_command as register_uncommit_command

logger = logging.getLogger(__name__)

app = typer.Typer(
	help=f"hunksmith - discard, commit and uncommit single lines of a git diff\n\nVersion: {__version__}",
	no_args_is_help=True,
	context_settings={"help_option_names": ["-h", "--help"]},
)

# --- Global Options Callback ---


def _version_callback(value: bool) -> None:
	"""Callback for --version option."""
	if value:
		typer.echo(f"hunksmith version: {__version__}")
		raise typer.Exit


@app.callback(invoke_without_command=True)
def global_options(
	ctx: typer.Context,
	is_verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
	is_output_log: Annotated[
		bool,
		typer.Option(
			"--save-log",
			help="Enable logging to a file. Logs to logs/hunksmith_{datetime}.log.",
		),
	] = False,
	repo_path: RepoOpt = None,
	config_file: ConfigOpt = None,
	_version: Annotated[
		bool | None,
		typer.Option("--version", help="Show version and exit.", callback=_version_callback, is_eager=True),
	] = None,
) -> None:
	"""Global CLI options and logging setup."""
	ctx.meta["is_verbose"] = is_verbose
	ctx.meta["repo_path"] = repo_path
	ctx.meta["config_file"] = config_file

	log_file_path_to_use: Path | None = None
	if is_output_log:
		current_time = datetime.datetime.now(tz=datetime.UTC).strftime("%Y-%m-%d_%H-%M-%S")
		log_file_path_to_use = Path("logs") / f"hunksmith_{current_time}.log"

	setup_logging(is_verbose=is_verbose, log_file_path=log_file_path_to_use)


# --- Register commands ---

register_status_command(app)
register_hunks_command(app)
register_discard_command(app)
register_commit_command(app)
register_uncommit_command(app)


# --- Main Entry Point ---
def main() -> int:
	"""Run the CLI application."""
	return app()


if __name__ == "__main__":
	sys.exit(main())
