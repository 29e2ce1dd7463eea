"""Exception types raised by the hunksmith core."""

from __future__ import annotations


class CoreError(Exception):
	"""Base class for every error the core surfaces to callers."""


class ParseError(CoreError):
	"""Raised when file content or patch text cannot be read as lines."""


class SelectionError(CoreError):
	"""Raised when a line selection cannot be used for an operation."""


class SelectionOutOfRangeError(SelectionError):
	"""Raised when a selection references a line that is not in the diff."""

	def __init__(self, message: str, refs: tuple | None = None) -> None:
		"""
		Initialize the error.

		Args:
			message: Human readable description
			refs: The offending line references, if known

		"""
		super().__init__(message)
		self.refs = refs or ()


class EmptySelectionError(SelectionError):
	"""Raised when a selection contains no added or removed line."""


class ApplyConflictError(CoreError):
	"""Raised when a hunk's old side does not match the content it is applied to."""


class RewriteConflictError(CoreError):
	"""Raised when a descendant commit no longer applies after its ancestor changed."""

	def __init__(self, message: str, commit_id: str | None = None, path: str | None = None) -> None:
		"""
		Initialize the error.

		Args:
			message: Human readable description
			commit_id: The commit whose change could not be carried forward
			path: The file being rewritten

		"""
		super().__init__(message)
		self.commit_id = commit_id
		self.path = path


class ObjectStoreError(CoreError):
	"""Raised when reading or writing repository objects or references fails."""

	def __init__(self, message: str, commit_id: str | None = None, path: str | None = None) -> None:
		"""
		Initialize the error.

		Args:
			message: Human readable description
			commit_id: Commit involved in the failing access, if any
			path: Path involved in the failing access, if any

		"""
		super().__init__(message)
		self.commit_id = commit_id
		self.path = path


class RepositoryBusyError(CoreError):
	"""Raised when another operation holds the repository lock for too long."""
