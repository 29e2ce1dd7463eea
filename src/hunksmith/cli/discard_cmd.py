"""Command reverting selected lines in the working copy."""

from __future__ import annotations

import logging

import typer

from .cli_types import FileArg, LinesOpt

logger = logging.getLogger(__name__)


def register_command(app: typer.Typer) -> None:
	"""Register the discard command with the CLI app."""

	@app.command(name="discard")
	def discard_command(ctx: typer.Context, path: FileArg, lines: LinesOpt) -> None:
		"""Revert the selected lines of a file's uncommitted changes."""
		from hunksmith.cli.cli_types import open_engine, parse_selection
		from hunksmith.utils.cli_utils import handle_command_errors

		with handle_command_errors():
			engine = open_engine(ctx)
			engine.discard(path, parse_selection(lines, path))
			typer.echo(f"Discarded {len(lines)} selection(s) in {path}")
