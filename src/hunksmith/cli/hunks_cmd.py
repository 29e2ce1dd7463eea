"""Command showing the hunks of a file with selectable line references."""

from __future__ import annotations

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.text import Text

from .cli_types import FileArg

logger = logging.getLogger(__name__)

console = Console()

CommitOpt = Annotated[
	str | None,
	typer.Option("--commit", help="Show the change a commit made instead of the working copy diff"),
]

SelectorsFlag = Annotated[
	bool,
	typer.Option("--selectors", help="Print one selector header per changed line instead of the diff"),
]

_STYLES = {"added": "green", "removed": "red", "context": "dim"}


def register_command(app: typer.Typer) -> None:
	"""Register the hunks command with the CLI app."""

	@app.command(name="hunks")
	def hunks_command(
		ctx: typer.Context,
		path: FileArg,
		commit: CommitOpt = None,
		selectors: SelectorsFlag = False,
	) -> None:
		"""
		Show the diff of a file.

		Every added line is labelled R<n> and every removed line L<n>; pass
		these to discard, commit or uncommit with --line.

		"""
		from hunksmith.cli.cli_types import open_engine
		from hunksmith.diff.selection import selector_headers
		from hunksmith.utils.cli_utils import handle_command_errors

		with handle_command_errors():
			hunks = open_engine(ctx).get_hunks(commit, path)
			if not hunks:
				console.print(f"No changes in {path}", markup=False)
				return
			for hunk in hunks:
				if selectors:
					for header in selector_headers(hunk):
						typer.echo(header.format())
					continue
				console.print(Text(hunk.header.format(), style="cyan"))
				for line in hunk.lines:
					label = str(line.ref) if line.is_change else ""
					row = Text(f"{label:>6} ")
					row.append(line.to_patch_line(), style=_STYLES[line.kind.value])
					if line.no_newline:
						row.append("  (no newline at end of file)", style="yellow")
					console.print(row)
