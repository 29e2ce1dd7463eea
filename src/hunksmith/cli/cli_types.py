"""Type definitions and shared helpers for CLI parameters."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from hunksmith.diff.schemas import HunkHeader
from hunksmith.diff.selection import Selection

if TYPE_CHECKING:
	from hunksmith.engine import HunkEngine

FileArg = Annotated[
	str,
	typer.Argument(help="File path relative to the repository root"),
]

LinesOpt = Annotated[
	list[str],
	typer.Option(
		"--line",
		"-l",
		help="Line to select: R5 (new line 5), L3 (old line 3), R5-7, or a selector header like '-0,0 +5,1'",
	),
]

RepoOpt = Annotated[
	Path | None,
	typer.Option(
		"--repo",
		"-C",
		help="Path inside the repository (defaults to the current directory)",
	),
]

ConfigOpt = Annotated[
	Path | None,
	typer.Option(
		"--config",
		"-c",
		help="Path to config file",
	),
]


def parse_selection(tokens: list[str], path: str) -> Selection:
	"""
	Read ``--line`` values into a selection.

	Tokens starting with ``-``, ``+`` or ``@@`` are read as selector
	headers, everything else as compact references.

	"""
	headers = [token for token in tokens if token.lstrip()[:1] in {"-", "+", "@"}]
	refs = [token for token in tokens if token not in headers]
	from_refs = Selection.parse_refs(refs, path)
	from_headers = Selection.from_headers([HunkHeader.parse(header) for header in headers], path)
	return Selection(from_refs.refs | from_headers.refs, path)


def open_engine(ctx: typer.Context) -> HunkEngine:
	"""Create an engine for the repository and config file chosen by the global options."""
	from hunksmith.config.config_loader import ConfigLoader
	from hunksmith.engine import HunkEngine

	config_file = ctx.meta.get("config_file")
	loader = ConfigLoader.get_instance(config_file, reload=config_file is not None)
	return HunkEngine(ctx.meta.get("repo_path"), loader.get)
