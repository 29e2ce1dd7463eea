"""Utility functions for CLI operations in hunksmith."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator

import typer
from rich.console import Console

from hunksmith.config.config_loader import ConfigError
from hunksmith.errors import CoreError
from hunksmith.utils.log_setup import display_error_summary

console = Console()
logger = logging.getLogger(__name__)


def show_error(message: str, exception: Exception | None = None) -> None:
	"""
	Display an error summary with standardized formatting.

	Args:
	        message: The error message to display
	        exception: Optional exception that caused the error

	"""
	error_text = message
	if exception:
		error_text += f"\n\nDetails: {exception!s}"
		logger.debug("Error occurred", exc_info=exception)

	display_error_summary(error_text)


def exit_with_error(message: str, exit_code: int = 1, exception: Exception | None = None) -> None:
	"""
	Display an error message and exit.

	Args:
	        message: Error message to display
	        exit_code: Exit code to use
	        exception: Optional exception that caused the error

	"""
	show_error(message, exception)
	raise typer.Exit(exit_code) from exception


def handle_keyboard_interrupt() -> None:
	"""Handles KeyboardInterrupt by printing a message and exiting cleanly."""
	console.print("\n[yellow]Operation cancelled by user.[/yellow]")
	raise typer.Exit(130)  # Standard exit code for SIGINT


@contextlib.contextmanager
def handle_command_errors() -> Iterator[None]:
	"""Turn errors raised by a command into an error summary and exit code 1."""
	try:
		yield
	except KeyboardInterrupt:
		handle_keyboard_interrupt()
	except (CoreError, ConfigError, ValueError) as e:
		exit_with_error(f"{type(e).__name__}: {e}", exception=e)
