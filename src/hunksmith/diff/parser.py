"""
Diff computation and unified diff parsing for hunksmith.

:func:`diff` turns two versions of a file into hunks using libgit2's
diff machinery through pygit2, so the edit script and hunk grouping
match what git itself shows. :func:`parse_patch` reads unified diff
text back into the same :class:`~hunksmith.diff.schemas.Hunk` objects.

"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from pygit2 import Patch
from pygit2.enums import DiffOption

from hunksmith.diff.schemas import FileContent, Hunk, HunkHeader, LineKind
from hunksmith.errors import ParseError

logger = logging.getLogger(__name__)

NO_NEWLINE_MARKER = "\\ No newline at end of file"

_ORIGIN_KINDS = {" ": LineKind.CONTEXT, "+": LineKind.ADDED, "-": LineKind.REMOVED}


def _ends_without_newline(content: FileContent, lineno: int) -> bool:
	return lineno == len(content) and not content.trailing_newline


def diff(
	old: FileContent | None,
	new: FileContent | None,
	context_lines: int = 3,
	path: str = "",
) -> list[Hunk]:
	"""
	Compute the hunks that turn ``old`` into ``new``.

	Args:
		old: Base content, ``None`` for a file that does not exist
		new: Target content, ``None`` for a file that does not exist
		context_lines: Unchanged lines kept around each change
		path: File path recorded on the hunks and their lines

	Returns:
		list[Hunk]: Hunks in file order, empty when nothing changed

	Raises:
		ParseError: If either side holds binary data

	"""
	if context_lines < 0:
		msg = f"context_lines must not be negative, got {context_lines}"
		raise ValueError(msg)

	old = old or FileContent()
	new = new or FileContent()
	if old == new:
		return []

	for side, content in (("old", old), ("new", new)):
		if any("\0" in line for line in content.lines):
			msg = f"Cannot diff binary {side} content of {path or 'file'}"
			raise ParseError(msg)

	patch = Patch.create_from(
		old.to_bytes(),
		new.to_bytes(),
		old_as_path=path or None,
		new_as_path=path or None,
		flag=DiffOption.MINIMAL | DiffOption.FORCE_TEXT,
		context_lines=context_lines,
		interhunk_lines=0,
	)

	hunks: list[Hunk] = []
	for git_hunk in patch.hunks:
		entries: list[tuple[LineKind, str, bool]] = []
		for git_line in git_hunk.lines:
			kind = _ORIGIN_KINDS.get(git_line.origin)
			if kind is None:
				# End-of-file newline markers; the flag is derived from the content below.
				continue
			if kind is LineKind.ADDED:
				lineno = git_line.new_lineno
				entries.append((kind, new.lines[lineno - 1], _ends_without_newline(new, lineno)))
			else:
				lineno = git_line.old_lineno
				entries.append((kind, old.lines[lineno - 1], _ends_without_newline(old, lineno)))

		old_anchor = git_hunk.old_start if git_hunk.old_lines == 0 else git_hunk.old_start - 1
		new_anchor = git_hunk.new_start if git_hunk.new_lines == 0 else git_hunk.new_start - 1
		hunks.append(Hunk.build(entries, old_anchor, new_anchor, path))

	logger.debug("Computed %d hunk(s) for %s", len(hunks), path or "<content>")
	return hunks


def parse_hunk_header(text: str) -> HunkHeader:
	"""Parse a ``@@ -a,b +c,d @@`` header line."""
	return HunkHeader.parse(text)


def parse_patch(text: str, path: str = "") -> list[Hunk]:
	"""
	Parse the hunks of a single-file unified diff.

	File header lines (``diff --git``, ``index``, ``---``, ``+++``) are
	skipped. Each hunk body is read by its header counts, so removed
	lines that happen to start with ``--`` are not mistaken for headers.

	Args:
		text: Unified diff text
		path: Path recorded on the parsed hunks

	Returns:
		list[Hunk]: The parsed hunks

	Raises:
		ParseError: If a header is malformed or a body does not match it

	"""
	lines = text.splitlines()
	hunks: list[Hunk] = []
	i = 0
	while i < len(lines):
		if not lines[i].startswith("@@"):
			i += 1
			continue
		hunk, i = _parse_hunk(lines, i, path)
		hunks.append(hunk)
	return hunks


def _parse_hunk(lines: Sequence[str], start: int, path: str) -> tuple[Hunk, int]:
	header = parse_hunk_header(lines[start])
	old_left, new_left = header.old_count, header.new_count
	entries: list[tuple[LineKind, str, bool]] = []
	i = start + 1

	while i < len(lines) and (old_left > 0 or new_left > 0):
		line = lines[i]
		if line.startswith("\\"):
			if not entries:
				msg = f"No-newline marker without a preceding line in hunk {header.format()}"
				raise ParseError(msg)
			kind, content, _ = entries[-1]
			entries[-1] = (kind, content, True)
			i += 1
			continue

		# Some tools strip the single space of empty context lines.
		prefix, content = (line[0], line[1:]) if line else (" ", "")
		kind = _ORIGIN_KINDS.get(prefix)
		if kind is None:
			msg = f"Unexpected line {line!r} in hunk {header.format()}"
			raise ParseError(msg)
		if kind is not LineKind.ADDED:
			old_left -= 1
		if kind is not LineKind.REMOVED:
			new_left -= 1
		if old_left < 0 or new_left < 0:
			msg = f"Hunk {header.format()} has more lines than its header declares"
			raise ParseError(msg)
		entries.append((kind, content, False))
		i += 1

	if old_left > 0 or new_left > 0:
		msg = f"Hunk {header.format()} is truncated"
		raise ParseError(msg)

	if i < len(lines) and lines[i].startswith("\\") and entries:
		kind, content, _ = entries[-1]
		entries[-1] = (kind, content, True)
		i += 1

	old_anchor = header.old_start if header.old_count == 0 else header.old_start - 1
	new_anchor = header.new_start if header.new_count == 0 else header.new_start - 1
	hunk = Hunk.build(entries, old_anchor, new_anchor, path)
	if not hunk.is_empty and hunk.header != header:
		msg = f"Hunk header {header.format()} does not match its body {hunk.header.format()}"
		raise ParseError(msg)
	return hunk, i


def format_hunk(hunk: Hunk) -> str:
	"""Render a hunk as unified diff text, ending with a newline."""
	out = [hunk.header.format()]
	for index, line in enumerate(hunk.lines):
		out.append(line.to_patch_line())
		if line.no_newline and _is_last_on_its_sides(hunk, index):
			out.append(NO_NEWLINE_MARKER)
	return "\n".join(out) + "\n"


def _is_last_on_its_sides(hunk: Hunk, index: int) -> bool:
	# The marker only belongs after the final old-side or new-side line.
	kind = hunk.lines[index].kind
	for later in hunk.lines[index + 1 :]:
		if kind is LineKind.CONTEXT or later.kind is LineKind.CONTEXT or later.kind is kind:
			return False
	return True


def format_patch(hunks: Iterable[Hunk], old_path: str | None, new_path: str | None) -> str:
	"""
	Render hunks as a single-file unified diff.

	Args:
		hunks: Hunks of one file, in order
		old_path: Path on the old side, ``None`` for a new file
		new_path: Path on the new side, ``None`` for a deleted file

	Returns:
		str: Patch text, empty when there is nothing to show

	"""
	body = "".join(format_hunk(hunk) for hunk in hunks if not hunk.is_empty)
	if not body:
		return ""
	old_label = f"a/{old_path}" if old_path else "/dev/null"
	new_label = f"b/{new_path}" if new_path else "/dev/null"
	return f"--- {old_label}\n+++ {new_label}\n{body}"
