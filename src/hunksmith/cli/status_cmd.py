"""Command listing files with uncommitted changes."""

from __future__ import annotations

import logging

import typer

logger = logging.getLogger(__name__)


def register_command(app: typer.Typer) -> None:
	"""Register the status command with the CLI app."""

	@app.command(name="status")
	def status_command(ctx: typer.Context) -> None:
		"""List files with uncommitted changes, untracked files included."""
		from hunksmith.cli.cli_types import open_engine
		from hunksmith.utils.cli_utils import handle_command_errors

		with handle_command_errors():
			for path in open_engine(ctx).list_changes():
				typer.echo(path)
