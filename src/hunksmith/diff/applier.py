"""
Exact application of hunks to file content.

Hunks apply only where their old side matches the content line for line.
There is no fuzz factor and no search for a nearby offset: a hunk built
from a line selection refers to specific lines, and applying it anywhere
else would touch the wrong ones.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from hunksmith.diff.schemas import FileContent, Hunk, LineKind
from hunksmith.errors import ApplyConflictError

logger = logging.getLogger(__name__)


def apply_hunk(base: FileContent, hunk: Hunk) -> FileContent:
	"""Apply a single hunk. See :func:`apply_hunks`."""
	return apply_hunks(base, [hunk])


def apply_hunks(base: FileContent, hunks: Iterable[Hunk]) -> FileContent:
	"""
	Apply hunks whose old ranges refer to ``base``.

	Args:
		base: Content the hunks were computed against
		hunks: Non-overlapping hunks in base coordinates

	Returns:
		FileContent: The patched content

	Raises:
		ApplyConflictError: If a hunk's context or removed lines do not match ``base``

	"""
	ordered = sorted((hunk for hunk in hunks if not hunk.is_empty), key=lambda h: h.old_anchor)
	if not ordered:
		return base

	source = base.lines
	last = len(source) - 1
	out: list[str] = []
	# Newline state of the most recently emitted line.
	last_has_newline = True
	cursor = 0

	for hunk in ordered:
		start = hunk.old_anchor
		if start < cursor:
			msg = f"Hunk {hunk.header.format()} overlaps the previous hunk"
			raise ApplyConflictError(msg)
		if start > len(source):
			msg = f"Hunk {hunk.header.format()} starts beyond the end of the content ({len(source)} lines)"
			raise ApplyConflictError(msg)

		out.extend(source[cursor:start])
		if start > cursor:
			last_has_newline = start - 1 != last or base.trailing_newline

		pos = start
		for line in hunk.lines:
			if line.kind is LineKind.ADDED:
				out.append(line.text)
				last_has_newline = not line.no_newline
				continue

			if pos >= len(source) or source[pos] != line.text:
				found = repr(source[pos]) if pos < len(source) else "end of content"
				msg = f"Hunk {hunk.header.format()} expects {line.text!r} at line {pos + 1}, found {found}"
				raise ApplyConflictError(msg)
			if pos == last and line.no_newline == base.trailing_newline:
				msg = f"Hunk {hunk.header.format()} disagrees about the newline at the end of line {pos + 1}"
				raise ApplyConflictError(msg)
			pos += 1
			if line.kind is LineKind.CONTEXT:
				out.append(line.text)
				last_has_newline = not line.no_newline
		cursor = pos

	tail = source[cursor:]
	out.extend(tail)
	trailing_newline = base.trailing_newline if tail else last_has_newline
	return FileContent(tuple(out), trailing_newline=trailing_newline if out else True)


def reverse_hunk(hunk: Hunk) -> Hunk:
	"""Return the hunk that undoes ``hunk``."""
	flipped = {LineKind.ADDED: LineKind.REMOVED, LineKind.REMOVED: LineKind.ADDED, LineKind.CONTEXT: LineKind.CONTEXT}
	entries = [(flipped[line.kind], line.text, line.no_newline) for line in hunk.lines]
	if hunk.is_empty:
		return Hunk.empty(hunk.new_anchor, hunk.old_anchor, hunk.path)
	return Hunk.build(entries, hunk.new_anchor, hunk.old_anchor, hunk.path)


def reverse_hunks(hunks: Iterable[Hunk]) -> list[Hunk]:
	"""Reverse every hunk of a file."""
	return [reverse_hunk(hunk) for hunk in hunks]


def _conflicts(a_start: int, a_count: int, b_start: int, b_count: int) -> bool:
	# Overlapping or touching ranges; touching counts because the order of
	# two edits at the same boundary is ambiguous.
	return a_start <= b_start + b_count and b_start <= a_start + a_count


def rebase_hunks(hunks: Sequence[Hunk], upstream: Sequence[Hunk]) -> list[Hunk]:
	"""
	Move hunks over changes made underneath them.

	Both inputs are hunks against the same old content: ``hunks`` are the
	changes to carry forward, ``upstream`` the changes that produced the new
	base. Hunks are shifted by the net size of the upstream changes before
	them. They should carry no context, so that unrelated nearby edits do
	not count as conflicts.

	Args:
		hunks: Changes to carry forward
		upstream: Changes between the old and the new base

	Returns:
		list[Hunk]: ``hunks`` in the coordinates of the new base

	Raises:
		ApplyConflictError: If a hunk overlaps or touches an upstream change

	"""
	changed = [u for u in upstream if not u.is_empty]
	rebased = []
	for hunk in hunks:
		if hunk.is_empty:
			continue
		offset = 0
		for up in changed:
			if _conflicts(hunk.old_anchor, hunk.old_count, up.old_anchor, up.old_count):
				msg = f"Change {hunk.header.format()} collides with {up.header.format()} underneath it"
				raise ApplyConflictError(msg)
			if up.old_anchor + up.old_count <= hunk.old_anchor:
				offset += up.delta
		rebased.append(hunk.shifted(offset))
	return rebased
