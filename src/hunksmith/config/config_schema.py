"""Schemas for the hunksmith configuration file."""

from __future__ import annotations

import codecs

from pydantic import BaseModel, Field, field_validator


class DiffSchema(BaseModel):
	"""How diffs are computed and file content is decoded."""

	context_lines: int = Field(default=3, ge=0, description="Unchanged lines shown around each change")
	encoding: str = Field(default="utf-8", description="Codec used to read and write file content")

	@field_validator("encoding")
	@classmethod
	def check_encoding(cls, value: str) -> str:
		"""Reject names Python has no codec for."""
		try:
			codecs.lookup(value)
		except LookupError as e:
			msg = f"Unknown encoding: {value}"
			raise ValueError(msg) from e
		return value


class RepositorySchema(BaseModel):
	"""Repository access settings."""

	lock_timeout: float = Field(default=30.0, ge=0, description="Seconds to wait for another operation")


class CommitSchema(BaseModel):
	"""Identity used for new commits. Unset values come from git's user.name and user.email."""

	author_name: str | None = None
	author_email: str | None = None


class AppConfigSchema(BaseModel):
	"""Root of the configuration file."""

	diff: DiffSchema = Field(default_factory=DiffSchema)
	repository: RepositorySchema = Field(default_factory=RepositorySchema)
	commit: CommitSchema = Field(default_factory=CommitSchema)
