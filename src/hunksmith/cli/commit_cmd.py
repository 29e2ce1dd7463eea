"""Command committing selected lines of the working copy."""

from __future__ import annotations

import logging
from typing import Annotated

import typer

from .cli_types import FileArg, LinesOpt

logger = logging.getLogger(__name__)

MessageOpt = Annotated[str, typer.Option("--message", "-m", help="Commit message")]


def register_command(app: typer.Typer) -> None:
	"""Register the commit command with the CLI app."""

	@app.command(name="commit")
	def commit_command(ctx: typer.Context, path: FileArg, lines: LinesOpt, message: MessageOpt) -> None:
		"""
		Commit only the selected lines of a file.

		The rest of the file's changes stay uncommitted in the working copy.

		"""
		from hunksmith.cli.cli_types import open_engine, parse_selection
		from hunksmith.utils.cli_utils import handle_command_errors

		with handle_command_errors():
			engine = open_engine(ctx)
			commit_id = engine.partial_commit(path, parse_selection(lines, path), message)
			typer.echo(commit_id)
