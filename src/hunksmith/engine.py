"""
Selection-based operations on a repository.

:class:`HunkEngine` ties the pure diff layer to the object store: it reads
the two versions of a file, validates a line selection against their diff,
splits the hunks and writes the outcome to the working copy or to history.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from hunksmith.config.config_loader import ConfigLoader
from hunksmith.config.config_schema import AppConfigSchema
from hunksmith.diff.applier import apply_hunks, reverse_hunks
from hunksmith.diff.parser import diff
from hunksmith.diff.schemas import DiffLine, FileContent, Hunk, LineRef, Side
from hunksmith.diff.selection import Selection, validate
from hunksmith.diff.splitter import non_empty, split_hunks
from hunksmith.errors import EmptySelectionError, ObjectStoreError, RepositoryBusyError
from hunksmith.git.rewriter import CommitRewriter
from hunksmith.git.store import ObjectStore, TreeEntry, normalize_path

logger = logging.getLogger(__name__)

_repository_locks: dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


@contextmanager
def repository_lock(key: str, timeout: float) -> Iterator[None]:
	"""
	Hold the process-wide lock of one repository.

	Args:
		key: Resolved repository path
		timeout: Seconds to wait; ``0`` fails immediately when the lock is taken

	Raises:
		RepositoryBusyError: If the lock was not acquired in time

	"""
	with _registry_lock:
		lock = _repository_locks.setdefault(key, threading.Lock())
	acquired = lock.acquire(timeout=timeout) if timeout > 0 else lock.acquire(blocking=False)
	if not acquired:
		msg = f"Another operation is running on {key}; gave up after {timeout:g}s"
		raise RepositoryBusyError(msg)
	try:
		yield
	finally:
		lock.release()


class HunkEngine:
	"""Discard, commit and uncommit individual diff lines of one repository."""

	def __init__(self, repo_path: Path | None = None, config: AppConfigSchema | None = None) -> None:
		"""
		Initialize the engine.

		Args:
			repo_path: Any path inside the repository, defaults to the current directory
			config: Settings to use, defaults to the loaded configuration file

		"""
		self.config = config or ConfigLoader.get_instance().get
		self.store = ObjectStore(repo_path, encoding=self.config.diff.encoding)
		self.rewriter = CommitRewriter(self.store)

	@property
	def context_lines(self) -> int:
		"""Context lines around each change in computed hunks."""
		return self.config.diff.context_lines

	@contextmanager
	def _locked(self) -> Iterator[None]:
		with repository_lock(self.store.key, self.config.repository.lock_timeout):
			yield

	# Queries

	def get_hunks(self, target: str | None, path: str) -> list[Hunk]:
		"""
		Hunks of one file.

		Args:
			target: ``None`` for the working copy against the tip, or a commit
				id to get that commit's change against its first parent
			path: Repository-relative file path

		Returns:
			list[Hunk]: Hunks in file order, empty when the file is unchanged

		"""
		path = normalize_path(path)
		old, new = self._versions(target, path)
		return diff(old, new, self.context_lines, path)

	def get_line_at(self, target: str | None, path: str, side: Side | str, line_number: int) -> DiffLine | None:
		"""The diff line shown at a side and line number, or ``None`` if the diff has none there."""
		ref = LineRef(Side(side), line_number)
		for hunk in self.get_hunks(target, path):
			for line in hunk.lines:
				if ref in line.refs():
					return line
		return None

	def list_changes(self) -> list[str]:
		"""Paths with uncommitted changes, untracked files included."""
		return self.store.list_changes()

	# Operations

	def discard(self, path: str, selection: Selection) -> None:
		"""
		Revert the selected lines in the working copy.

		Unselected changes stay in the file. An untracked file that loses
		all its lines is deleted.

		Args:
			path: Repository-relative file path
			selection: Lines of the working copy diff to revert

		Raises:
			SelectionError: If the selection does not fit the current diff
			ApplyConflictError: If the working file changed while computing the result

		"""
		path = normalize_path(path)
		with self._locked():
			tip = self.store.head_commit()
			base = self.store.content_at(tip.tree if tip else None, path)
			work = self.store.read_working(path)
			hunks = diff(base, work, self.context_lines, path)
			effective = self._effective_selection(selection, hunks, path)

			selected, _ = split_hunks(hunks, effective, selected_first=False)
			result = apply_hunks(work or FileContent(), reverse_hunks(non_empty(selected)))

			if base is None and result.is_empty:
				self.store.write_working(path, None)
			else:
				self.store.write_working(path, result)
		logger.info("Discarded %d line(s) of %s", len(effective), path)

	def partial_commit(self, path: str, selection: Selection, message: str) -> str:
		"""
		Commit only the selected lines of the working copy diff.

		The commit goes on top of the current tip, or becomes the root commit
		of an unborn branch. The working file is left as it is, so the
		unselected lines remain as the pending diff.

		Args:
			path: Repository-relative file path
			selection: Lines of the working copy diff to commit
			message: Commit message

		Returns:
			str: Id of the new commit

		Raises:
			SelectionError: If the selection does not fit the current diff
			ObjectStoreError: If the commit or the branch update fails

		"""
		if not message.strip():
			msg = "Commit message must not be empty"
			raise ValueError(msg)
		path = normalize_path(path)
		with self._locked():
			tip = self.store.head_commit()
			tip_tree = tip.tree if tip else None
			entry = self.store.entry_at(tip_tree, path)
			base = self.store.read_content(entry.id, path) if entry else None
			work = self.store.read_working(path)
			hunks = diff(base, work, self.context_lines, path)
			effective = self._effective_selection(selection, hunks, path)

			selected, _ = split_hunks(hunks, effective, selected_first=True)
			blob_id, content = self.store.apply_to_blob(entry.id if entry else None, non_empty(selected), path)

			if work is None and content.is_empty:
				new_entry = None
			else:
				filemode = entry.filemode if entry else self.store.working_filemode(path)
				new_entry = TreeEntry(blob_id, filemode)

			tree_id = self.store.replace_entry(tip_tree, path, new_entry)
			author = self.store.signature(self.config.commit.author_name, self.config.commit.author_email)
			commit = self.store.create_commit(tree_id, [tip.id] if tip else [], message, author)

			summary = message.strip().splitlines()[0]
			self.store.update_head(commit.id, tip.id if tip else None, f"commit (partial): {summary}")
			self.store.sync_index_entry(path, new_entry)

		logger.info("Committed %d line(s) of %s as %s", len(effective), path, commit.id)
		return str(commit.id)

	def uncommit(self, source_commit_id: str, path: str, selection: Selection) -> str:
		"""
		Take the selected lines out of a commit and rewrite the commits after it.

		The source commit must be on the first-parent history of the tip.
		The working file is left as it is; since it still holds the selected
		lines, they show up as uncommitted changes afterwards.

		Args:
			source_commit_id: Commit whose change the lines belong to
			path: Repository-relative file path
			selection: Lines of the commit's diff against its first parent

		Returns:
			str: Id of the new tip

		Raises:
			SelectionError: If the selection does not fit the commit's diff
			RewriteConflictError: If a later commit's change no longer applies
			ObjectStoreError: If the commit is unknown or not in the tip's history

		"""
		path = normalize_path(path)
		with self._locked():
			tip = self.store.head_commit()
			if tip is None:
				msg = "The current branch has no commits"
				raise ObjectStoreError(msg, commit_id=source_commit_id)
			source = self.store.get_commit(source_commit_id)
			lineage = self.store.lineage(source)

			parent = self.store.first_parent(source)
			old = self.store.content_at(parent.tree if parent else None, path)
			hunks = diff(old, self.store.content_at(source.tree, path), self.context_lines, path)
			effective = self._effective_selection(selection, hunks, path)

			selected, _ = split_hunks(hunks, effective, selected_first=False)
			rewritten = self.rewriter.rewrite_lineage(lineage, 0, path, reverse_hunks(non_empty(selected)))
			new_tip = rewritten[-1]

			self.store.update_head(new_tip.id, tip.id, f"uncommit: {path} from {str(source.id)[:12]}")
			self.store.sync_index_entry(path, self.store.entry_at(new_tip.tree, path))

		logger.info("Removed %d line(s) of %s from %s; new tip %s", len(effective), path, source.id, new_tip.id)
		return str(new_tip.id)

	# Helpers

	def _versions(self, target: str | None, path: str) -> tuple[FileContent | None, FileContent | None]:
		if target is None:
			tip = self.store.head_commit()
			return self.store.content_at(tip.tree if tip else None, path), self.store.read_working(path)
		commit = self.store.get_commit(target)
		parent = self.store.first_parent(commit)
		return self.store.content_at(parent.tree if parent else None, path), self.store.content_at(commit.tree, path)

	@staticmethod
	def _effective_selection(selection: Selection, hunks: list[Hunk], path: str) -> Selection:
		effective = validate(Selection(selection.refs, path), hunks)
		if effective.is_empty:
			msg = f"No added or removed line of {path} is selected"
			raise EmptySelectionError(msg)
		return effective
