"""Console and file logging for the hunksmith CLI."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.rule import Rule

console = Console(stderr=True)

FILE_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d %(message)s"


def setup_logging(is_verbose: bool = False, log_file_path: Path | None = None) -> None:
	"""
	Route log records to stderr and, optionally, to a file.

	The console shows warnings, or everything when ``is_verbose``. A log
	file always receives debug records.

	Args:
		is_verbose: Show debug records on the console
		log_file_path: File to append records to

	"""
	console_level = logging.DEBUG if is_verbose else logging.WARNING
	root = logging.getLogger()
	for handler in list(root.handlers):
		root.removeHandler(handler)

	root.addHandler(
		RichHandler(level=console_level, console=console, rich_tracebacks=True, show_path=is_verbose)
	)
	root.setLevel(console_level)

	if log_file_path is None:
		return
	try:
		log_file_path.parent.mkdir(parents=True, exist_ok=True)
		file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
	except OSError as e:
		console.print(f"[red]Cannot write log file {log_file_path}: {e}[/red]")
		return
	file_handler.setLevel(logging.DEBUG)
	file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
	root.addHandler(file_handler)
	root.setLevel(logging.DEBUG)


def display_error_summary(error_message: str) -> None:
	"""Print ``error_message`` between two red rules on stderr."""
	console.print(Rule("[bold red]Error[/bold red]", style="red"))
	console.print(error_message, markup=False)
	console.print(Rule(style="red"))
