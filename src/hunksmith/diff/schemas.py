"""Schema definitions for file content, diff lines and hunks."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple

from hunksmith.errors import ParseError

_HUNK_HEADER_RE = re.compile(
	r"^(?:@@ )?-(?P<old_start>\d+)(?:,(?P<old_count>\d+))?"
	r" \+(?P<new_start>\d+)(?:,(?P<new_count>\d+))?(?: @@.*)?$"
)


class LineKind(str, Enum):
	"""Kind of a line inside a hunk."""

	CONTEXT = "context"
	ADDED = "added"
	REMOVED = "removed"

	@property
	def prefix(self) -> str:
		"""Unified diff prefix character for this kind."""
		return {LineKind.CONTEXT: " ", LineKind.ADDED: "+", LineKind.REMOVED: "-"}[self]


class Side(str, Enum):
	"""Side of a diff a line number refers to."""

	LEFT = "left"  # old side, removed lines
	RIGHT = "right"  # new side, added lines


class LineRef(NamedTuple):
	"""Address of a single line on one side of a file's diff."""

	side: Side
	number: int

	def __str__(self) -> str:
		"""Render as the compact form used on the command line, e.g. ``R5``."""
		return f"{'L' if self.side is Side.LEFT else 'R'}{self.number}"


@dataclass(frozen=True)
class FileContent:
	"""
	Line-oriented snapshot of a text file.

	Lines are stored without their terminators. Whether the final line ends
	with a newline is kept in ``trailing_newline`` so it never affects line
	counts. Empty content always reports ``trailing_newline=True``.

	"""

	lines: tuple[str, ...] = ()
	trailing_newline: bool = True

	def __post_init__(self) -> None:
		"""Normalize the newline flag of empty content."""
		if not self.lines and not self.trailing_newline:
			object.__setattr__(self, "trailing_newline", True)

	@classmethod
	def from_text(cls, text: str) -> FileContent:
		"""Split text on ``\\n`` into a FileContent."""
		if not text:
			return cls()
		parts = text.split("\n")
		if parts[-1] == "":
			return cls(tuple(parts[:-1]), trailing_newline=True)
		return cls(tuple(parts), trailing_newline=False)

	@classmethod
	def from_lines(cls, lines: Iterable[str], trailing_newline: bool = True) -> FileContent:
		"""Build content from line texts that carry no terminators."""
		return cls(tuple(lines), trailing_newline=trailing_newline)

	@classmethod
	def from_bytes(cls, data: bytes, encoding: str = "utf-8") -> FileContent:
		"""
		Decode raw blob or file bytes.

		Args:
			data: Raw bytes
			encoding: Text encoding to decode with

		Returns:
			FileContent: The decoded content

		Raises:
			ParseError: If the data is binary or cannot be decoded

		"""
		if b"\0" in data:
			msg = "Binary content cannot be split into lines"
			raise ParseError(msg)
		try:
			text = data.decode(encoding)
		except (UnicodeDecodeError, LookupError) as e:
			msg = f"Content is not valid {encoding} text: {e}"
			raise ParseError(msg) from e
		return cls.from_text(text)

	def to_text(self) -> str:
		"""Join the lines back into text."""
		if not self.lines:
			return ""
		text = "\n".join(self.lines)
		return text + "\n" if self.trailing_newline else text

	def to_bytes(self, encoding: str = "utf-8") -> bytes:
		"""Encode the content for storage."""
		return self.to_text().encode(encoding)

	@property
	def is_empty(self) -> bool:
		"""Whether the content has no lines at all."""
		return not self.lines

	def __len__(self) -> int:
		"""Number of lines."""
		return len(self.lines)


@dataclass(frozen=True)
class DiffLine:
	"""A single line inside a hunk."""

	kind: LineKind
	text: str
	old_lineno: int | None = None
	new_lineno: int | None = None
	no_newline: bool = False
	path: str = ""

	@property
	def is_change(self) -> bool:
		"""Whether the line is an addition or a removal."""
		return self.kind is not LineKind.CONTEXT

	@property
	def side(self) -> Side:
		"""The side that addresses this line. Context lines report the right side."""
		return Side.LEFT if self.kind is LineKind.REMOVED else Side.RIGHT

	@property
	def number(self) -> int:
		"""Line number on :attr:`side`."""
		number = self.old_lineno if self.kind is LineKind.REMOVED else self.new_lineno
		if number is None:
			msg = f"{self.kind.value} line has no line number on the {self.side.value} side"
			raise ValueError(msg)
		return number

	@property
	def ref(self) -> LineRef:
		"""Primary address of the line."""
		return LineRef(self.side, self.number)

	def refs(self) -> tuple[LineRef, ...]:
		"""Every address under which the line can be referenced."""
		if self.kind is LineKind.CONTEXT:
			return (LineRef(Side.LEFT, self.old_lineno), LineRef(Side.RIGHT, self.new_lineno))  # type: ignore[arg-type]
		return (self.ref,)

	@property
	def id(self) -> str:
		"""Stable identifier built from path, side and line number."""
		return f"{self.path}:{self.side.value}:{self.number}"

	def to_patch_line(self) -> str:
		"""Render the line as it appears in a unified diff body."""
		return f"{self.kind.prefix}{self.text}"


class HunkHeader(NamedTuple):
	"""The four numbers of a unified diff hunk header."""

	old_start: int
	old_count: int
	new_start: int
	new_count: int

	def format(self) -> str:
		"""Render as ``@@ -a,b +c,d @@``, always with both counts."""
		return f"@@ -{self.old_start},{self.old_count} +{self.new_start},{self.new_count} @@"

	@property
	def old_is_null(self) -> bool:
		"""Whether the old range is ``-0,0``."""
		return self.old_start == 0 and self.old_count == 0

	@property
	def new_is_null(self) -> bool:
		"""Whether the new range is ``+0,0``."""
		return self.new_start == 0 and self.new_count == 0

	@classmethod
	def parse(cls, text: str) -> HunkHeader:
		"""
		Parse ``@@ -a,b +c,d @@`` or the bare ``-a,b +c,d`` form.

		An omitted count means one line, as in unified diffs.

		Raises:
			ParseError: If the text is not a hunk header

		"""
		match = _HUNK_HEADER_RE.match(text.strip())
		if not match:
			msg = f"Malformed hunk header: {text!r}"
			raise ParseError(msg)
		old_count = match.group("old_count")
		new_count = match.group("new_count")
		return cls(
			old_start=int(match.group("old_start")),
			old_count=1 if old_count is None else int(old_count),
			new_start=int(match.group("new_start")),
			new_count=1 if new_count is None else int(new_count),
		)


def _range_start(anchor: int, count: int) -> int:
	# Unified diff: an empty range starts at the line preceding it.
	return anchor if count == 0 else anchor + 1


@dataclass(frozen=True)
class Hunk:
	"""A contiguous block of a diff with explicit old and new ranges."""

	old_start: int
	old_count: int
	new_start: int
	new_count: int
	lines: tuple[DiffLine, ...] = field(default=())
	path: str = ""

	@classmethod
	def build(
		cls,
		entries: Iterable[tuple[LineKind, str, bool]],
		old_anchor: int,
		new_anchor: int,
		path: str = "",
	) -> Hunk:
		"""
		Number a sequence of lines and wrap them in a hunk.

		Args:
			entries: ``(kind, text, no_newline)`` tuples in file order
			old_anchor: Number of old-side lines preceding the hunk
			new_anchor: Number of new-side lines preceding the hunk
			path: File the hunk belongs to

		Returns:
			Hunk: A hunk whose counts and line numbers are consistent

		"""
		old_no, new_no = old_anchor + 1, new_anchor + 1
		lines: list[DiffLine] = []
		for kind, text, no_newline in entries:
			if kind is LineKind.CONTEXT:
				lines.append(DiffLine(kind, text, old_no, new_no, no_newline, path))
				old_no += 1
				new_no += 1
			elif kind is LineKind.REMOVED:
				lines.append(DiffLine(kind, text, old_no, None, no_newline, path))
				old_no += 1
			else:
				lines.append(DiffLine(kind, text, None, new_no, no_newline, path))
				new_no += 1

		if not any(line.is_change for line in lines):
			return cls.empty(old_anchor, new_anchor, path)

		old_count = old_no - old_anchor - 1
		new_count = new_no - new_anchor - 1
		return cls(
			old_start=_range_start(old_anchor, old_count),
			old_count=old_count,
			new_start=_range_start(new_anchor, new_count),
			new_count=new_count,
			lines=tuple(lines),
			path=path,
		)

	@classmethod
	def empty(cls, old_anchor: int, new_anchor: int, path: str = "") -> Hunk:
		"""A no-op hunk positioned after the given anchors."""
		return cls(old_anchor, 0, new_anchor, 0, (), path)

	@property
	def old_anchor(self) -> int:
		"""Number of old-side lines preceding the hunk."""
		return self.old_start if self.old_count == 0 else self.old_start - 1

	@property
	def new_anchor(self) -> int:
		"""Number of new-side lines preceding the hunk."""
		return self.new_start if self.new_count == 0 else self.new_start - 1

	@property
	def header(self) -> HunkHeader:
		"""The unified diff header numbers."""
		return HunkHeader(self.old_start, self.old_count, self.new_start, self.new_count)

	@property
	def id(self) -> str:
		"""Stable identifier built from path and header."""
		return f"{self.path}@-{self.old_start},{self.old_count}+{self.new_start},{self.new_count}"

	@property
	def changes(self) -> tuple[DiffLine, ...]:
		"""Added and removed lines, in order."""
		return tuple(line for line in self.lines if line.is_change)

	@property
	def is_empty(self) -> bool:
		"""Whether applying the hunk changes nothing."""
		return not self.changes

	@property
	def delta(self) -> int:
		"""Net number of lines the hunk adds."""
		return self.new_count - self.old_count

	def entries(self) -> list[tuple[LineKind, str, bool]]:
		"""The hunk's lines in the form accepted by :meth:`build`."""
		return [(line.kind, line.text, line.no_newline) for line in self.lines]

	def shifted(self, offset: int) -> Hunk:
		"""Move the hunk by ``offset`` lines on both sides."""
		if offset == 0:
			return self
		return Hunk.build(self.entries(), self.old_anchor + offset, self.new_anchor + offset, self.path)

	def with_path(self, path: str) -> Hunk:
		"""Return a copy attributed to ``path``."""
		return replace(self, path=path, lines=tuple(replace(line, path=path) for line in self.lines))

	def validate(self) -> None:
		"""
		Check that the line counts agree with the header.

		Raises:
			ParseError: If the body does not match the header

		"""
		old = sum(1 for line in self.lines if line.kind is not LineKind.ADDED)
		new = sum(1 for line in self.lines if line.kind is not LineKind.REMOVED)
		if (old, new) != (self.old_count, self.new_count):
			msg = f"Hunk {self.header.format()} has {old} old and {new} new lines"
			raise ParseError(msg)
