"""Line selections over a file's hunks."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from hunksmith.diff.schemas import DiffLine, Hunk, HunkHeader, LineKind, LineRef, Side
from hunksmith.errors import SelectionError, SelectionOutOfRangeError

logger = logging.getLogger(__name__)

_REF_RE = re.compile(r"^(?P<side>[LRlr])(?P<start>\d+)(?:-(?P<end>\d+))?$")


@dataclass(frozen=True)
class Selection:
	"""
	A set of individually chosen lines of one file.

	``Side.LEFT`` numbers address removed lines by their old line number,
	``Side.RIGHT`` numbers address added lines by their new line number.

	"""

	refs: frozenset[LineRef] = field(default_factory=frozenset)
	path: str = ""

	@classmethod
	def of(cls, lines: Iterable[tuple[Side | str, int]], path: str = "") -> Selection:
		"""Build a selection from ``(side, number)`` pairs."""
		return cls(frozenset(LineRef(Side(side), int(number)) for side, number in lines), path)

	@classmethod
	def parse_refs(cls, tokens: Iterable[str], path: str = "") -> Selection:
		"""
		Build a selection from compact references.

		``R5`` selects new-side line 5, ``L3`` old-side line 3, and
		``R5-7`` the new-side lines 5 to 7.

		Raises:
			SelectionError: If a token cannot be read

		"""
		refs: set[LineRef] = set()
		for token in tokens:
			match = _REF_RE.match(token.strip())
			if not match:
				msg = f"Invalid line reference {token!r}, expected e.g. R5, L3 or R5-7"
				raise SelectionError(msg)
			side = Side.LEFT if match.group("side").upper() == "L" else Side.RIGHT
			start = int(match.group("start"))
			end = int(match.group("end") or start)
			if end < start:
				msg = f"Invalid line range {token!r}"
				raise SelectionError(msg)
			refs.update(LineRef(side, number) for number in range(start, end + 1))
		return cls(frozenset(refs), path)

	@classmethod
	def from_headers(cls, headers: Iterable[str | HunkHeader], path: str = "") -> Selection:
		"""
		Build a selection from selector hunk headers.

		A selector header names lines on one side only, such as
		``-0,0 +5,2`` (new-side lines 5 and 6) or ``-3,1 +0,0`` (old-side
		line 3). A header with both ranges set selects both ranges.

		"""
		refs: set[LineRef] = set()
		for header in headers:
			parsed = header if isinstance(header, HunkHeader) else HunkHeader.parse(header)
			if not parsed.old_is_null:
				refs.update(LineRef(Side.LEFT, n) for n in range(parsed.old_start, parsed.old_start + parsed.old_count))
			if not parsed.new_is_null:
				refs.update(LineRef(Side.RIGHT, n) for n in range(parsed.new_start, parsed.new_start + parsed.new_count))
		return cls(frozenset(refs), path)

	@classmethod
	def all_of(cls, hunks: Iterable[Hunk], path: str = "") -> Selection:
		"""Select every added and removed line of the given hunks."""
		return cls(frozenset(line.ref for hunk in hunks for line in hunk.changes), path)

	def contains_line(self, line: DiffLine) -> bool:
		"""Whether a change line is selected. Context lines never are."""
		return line.is_change and line.ref in self.refs

	@property
	def is_empty(self) -> bool:
		"""Whether nothing is selected."""
		return not self.refs

	def __contains__(self, ref: object) -> bool:
		"""Membership by :class:`LineRef`."""
		return ref in self.refs

	def __iter__(self) -> Iterator[LineRef]:
		"""Iterate references in side and line order."""
		return iter(sorted(self.refs, key=lambda ref: (ref.side.value, ref.number)))

	def __len__(self) -> int:
		"""Number of selected references."""
		return len(self.refs)


def validate(selection: Selection, hunks: Iterable[Hunk]) -> Selection:
	"""
	Check a selection against the current hunks of its file.

	Args:
		selection: Lines the user picked
		hunks: Current hunks of the file

	Returns:
		Selection: The selection reduced to added and removed lines

	Raises:
		SelectionOutOfRangeError: If a line is not part of any hunk on its side

	"""
	known: set[LineRef] = set()
	changes: set[LineRef] = set()
	for hunk in hunks:
		for line in hunk.lines:
			known.update(line.refs())
			if line.kind is not LineKind.CONTEXT:
				changes.add(line.ref)

	missing = tuple(sorted((ref for ref in selection.refs if ref not in known), key=lambda r: (r.side.value, r.number)))
	if missing:
		listed = ", ".join(str(ref) for ref in missing)
		msg = f"Selected line(s) {listed} are not part of the diff of {selection.path or 'the file'}"
		raise SelectionOutOfRangeError(msg, missing)

	effective = frozenset(ref for ref in selection.refs if ref in changes)
	if len(effective) != len(selection.refs):
		logger.debug("Ignoring %d selected context line(s)", len(selection.refs) - len(effective))
	return Selection(effective, selection.path)


def selector_headers(hunk: Hunk) -> list[HunkHeader]:
	"""
	Explode a hunk into one selector header per added or removed line.

	Added lines become ``-0,0 +N,1`` and removed lines ``-N,1 +0,0``.

	"""
	headers = []
	for line in hunk.changes:
		if line.kind is LineKind.ADDED:
			headers.append(HunkHeader(0, 0, line.number, 1))
		else:
			headers.append(HunkHeader(line.number, 1, 0, 0))
	return headers
