"""
Hunk splitting along a line selection.

A hunk is a list of independent events: every added and every removed
line can be taken on its own. Splitting produces two hunks that apply one
after the other:

- with ``selected_first=True`` the selected hunk applies to the base and
  the remainder applies to ``base + selected``;
- with ``selected_first=False`` the remainder applies to the base and the
  selected hunk applies to ``base + remainder``.

Either way the two steps reproduce the original hunk. Both outputs are
built by the same projection: lines that the starting state already
contains turn into context, lines still to be applied are kept as
changes, and lines that belong to neither are left out.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from hunksmith.diff.schemas import Hunk, LineKind, LineRef
from hunksmith.diff.selection import Selection

logger = logging.getLogger(__name__)


def _project(
	hunk: Hunk,
	take: frozenset[LineRef],
	applied: frozenset[LineRef],
	old_anchor: int,
	new_anchor: int,
) -> Hunk:
	"""
	Build the hunk that applies ``take`` to a state that already has ``applied``.

	Args:
		hunk: Source hunk
		take: Changes the result should perform
		applied: Changes already present in the state the result applies to
		old_anchor: Lines preceding the hunk in that state
		new_anchor: Lines preceding the hunk after the result is applied

	Returns:
		Hunk: The projected hunk, empty when ``take`` holds none of its lines

	"""
	entries: list[tuple[LineKind, str, bool]] = []
	for line in hunk.lines:
		if line.kind is LineKind.CONTEXT:
			entries.append((LineKind.CONTEXT, line.text, line.no_newline))
			continue

		ref = line.ref
		if line.kind is LineKind.REMOVED:
			if ref in applied:
				continue  # already gone
			kind = LineKind.REMOVED if ref in take else LineKind.CONTEXT
		else:
			if ref in applied:
				kind = LineKind.CONTEXT  # already there
			elif ref in take:
				kind = LineKind.ADDED
			else:
				continue
		entries.append((kind, line.text, line.no_newline))

	return Hunk.build(entries, old_anchor, new_anchor, hunk.path)


def _net(hunk: Hunk, refs: frozenset[LineRef]) -> int:
	added = sum(1 for line in hunk.changes if line.kind is LineKind.ADDED and line.ref in refs)
	removed = sum(1 for line in hunk.changes if line.kind is LineKind.REMOVED and line.ref in refs)
	return added - removed


def split_hunks(
	hunks: Sequence[Hunk],
	selection: Selection,
	*,
	selected_first: bool = True,
) -> tuple[list[Hunk], list[Hunk]]:
	"""
	Split every hunk of a file along a selection.

	Line numbers of the outputs account for the lines earlier hunks add or
	remove in the state each output applies to.

	Args:
		hunks: Hunks of one file, in file order
		selection: Selected lines; context references are ignored
		selected_first: Which output applies to the base

	Returns:
		tuple[list[Hunk], list[Hunk]]: ``(selected, remainder)`` with one entry per input hunk

	"""
	selected_out: list[Hunk] = []
	remainder_out: list[Hunk] = []
	# Net line shifts contributed by earlier hunks to each intermediate state.
	base_to_mid = 0
	base_to_end = 0

	for hunk in hunks:
		chosen = frozenset(line.ref for line in hunk.changes if selection.contains_line(line))
		others = frozenset(line.ref for line in hunk.changes) - chosen
		first, second = (chosen, others) if selected_first else (others, chosen)

		anchor = hunk.old_anchor
		head = _project(hunk, first, frozenset(), anchor, anchor + base_to_mid)
		tail = _project(hunk, second, first, anchor + base_to_mid, anchor + base_to_end)

		base_to_mid += _net(hunk, first)
		base_to_end += _net(hunk, first | second)

		if selected_first:
			selected_out.append(head)
			remainder_out.append(tail)
		else:
			selected_out.append(tail)
			remainder_out.append(head)

	logger.debug(
		"Split %d hunk(s) into %d selected and %d remaining change line(s)",
		len(hunks),
		sum(len(h.changes) for h in selected_out),
		sum(len(h.changes) for h in remainder_out),
	)
	return selected_out, remainder_out


def split(hunk: Hunk, selection: Selection, *, selected_first: bool = True) -> tuple[Hunk, Hunk]:
	"""
	Split one hunk into a selected part and a remainder.

	Args:
		hunk: The hunk to split
		selection: Selected lines
		selected_first: Whether the selected part applies to the base (default)
			or on top of the remainder

	Returns:
		tuple[Hunk, Hunk]: ``(selected, remainder)``

	"""
	selected, remainder = split_hunks([hunk], selection, selected_first=selected_first)
	return selected[0], remainder[0]


def non_empty(hunks: Iterable[Hunk]) -> list[Hunk]:
	"""Drop hunks that change nothing."""
	return [hunk for hunk in hunks if not hunk.is_empty]
