"""Command removing selected lines from an earlier commit."""

from __future__ import annotations

import logging
from typing import Annotated

import typer

from .cli_types import FileArg, LinesOpt

logger = logging.getLogger(__name__)

CommitArg = Annotated[str, typer.Argument(help="Commit that introduced the lines")]


def register_command(app: typer.Typer) -> None:
	"""Register the uncommit command with the CLI app."""

	@app.command(name="uncommit")
	def uncommit_command(ctx: typer.Context, commit: CommitArg, path: FileArg, lines: LinesOpt) -> None:
		"""
		Take the selected lines out of a commit.

		Later commits on the branch are rewritten on top of the change, and
		the lines show up again as uncommitted changes. Line numbers refer to
		the output of 'hunks --commit COMMIT PATH'.

		"""
		from hunksmith.cli.cli_types import open_engine, parse_selection
		from hunksmith.utils.cli_utils import handle_command_errors

		with handle_command_errors():
			engine = open_engine(ctx)
			new_tip = engine.uncommit(commit, path, parse_selection(lines, path))
			typer.echo(new_tip)
