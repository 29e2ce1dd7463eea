"""
History rewriting for a single file.

A rewrite never edits objects: it writes new blobs, trees and commits and
returns them, leaving it to the caller to move a reference once the whole
lineage has been rebuilt.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pygit2 import Commit, Oid
from pygit2.enums import FileMode

from hunksmith.diff.applier import rebase_hunks
from hunksmith.diff.parser import diff
from hunksmith.diff.schemas import Hunk
from hunksmith.errors import ApplyConflictError, ObjectStoreError, ParseError, RewriteConflictError
from hunksmith.git.store import ObjectStore, TreeEntry

logger = logging.getLogger(__name__)


class CommitRewriter:
	"""Rewrites one path in a commit and replays the commits built on it."""

	def __init__(self, store: ObjectStore) -> None:
		"""
		Initialize the rewriter.

		Args:
			store: Object store of the repository being rewritten

		"""
		self.store = store

	def rewrite_commit(
		self,
		commit: Commit,
		path: str,
		hunks: Sequence[Hunk],
		parent_ids: Sequence[Oid] | None = None,
	) -> Commit:
		"""
		Write a copy of ``commit`` with ``hunks`` applied to the file at ``path``.

		If the patched file is empty and the commit's first parent does not
		have the path, the file is dropped from the tree instead, so that
		removing every line of an added file removes the addition.

		Args:
			commit: Commit to rewrite, loaded through any handle on the repository
			path: File to patch
			hunks: Hunks against the commit's version of the file
			parent_ids: Parents of the new commit, defaults to the commit's own

		Returns:
			Commit: The new commit, or ``commit`` itself if nothing changed

		Raises:
			ApplyConflictError: If the hunks do not match the commit's file

		"""
		commit = self.store.repo[commit.id]
		parents = list(commit.parent_ids) if parent_ids is None else list(parent_ids)
		entry = self.store.entry_at(commit.tree, path)
		blob_id, content = self.store.apply_to_blob(entry.id if entry else None, hunks, path)

		new_entry: TreeEntry | None = TreeEntry(blob_id, entry.filemode if entry else FileMode.BLOB)
		if content.is_empty:
			first_parent = self.store.repo[parents[0]] if parents else None
			if first_parent is None or self.store.entry_at(first_parent.tree, path) is None:
				new_entry = None

		return self._commit_with_entry(commit, path, new_entry, parents)

	def rewrite_lineage(
		self,
		lineage: Sequence[Commit],
		start_index: int,
		path: str,
		hunks: Sequence[Hunk],
	) -> list[Commit]:
		"""
		Rewrite one commit of a lineage and carry the change through its descendants.

		Every commit after ``start_index`` keeps its own change to ``path``,
		re-applied on top of its rewritten parent. Commits that do not touch
		``path`` only pick up the new entry. Merge commits keep their extra
		parents.

		Args:
			lineage: First-parent chain, oldest first, ending at the branch tip
			start_index: Position of the commit to patch
			path: File being rewritten
			hunks: Hunks against ``lineage[start_index]``'s version of the file

		Returns:
			list[Commit]: The new lineage; its last element is the new tip

		Raises:
			RewriteConflictError: If the patch or a descendant's change no longer applies

		"""
		if not 0 <= start_index < len(lineage):
			msg = f"start_index {start_index} is outside a lineage of {len(lineage)} commit(s)"
			raise ValueError(msg)

		lineage = [self.store.repo[commit.id] for commit in lineage]
		source = lineage[start_index]
		try:
			rewritten = self.rewrite_commit(source, path, hunks)
		except ApplyConflictError as e:
			msg = f"Cannot remove the selected lines from {source.id}: {e}"
			raise RewriteConflictError(msg, commit_id=str(source.id), path=path) from e

		result = [*lineage[:start_index], rewritten]
		old_parent, new_parent = source, rewritten
		for child in lineage[start_index + 1 :]:
			replayed = self._replay(child, old_parent, new_parent, path)
			result.append(replayed)
			old_parent, new_parent = child, replayed

		logger.info(
			"Rewrote %d commit(s) of %s starting at %s",
			len(lineage) - start_index,
			path,
			str(source.id)[:12],
		)
		return result

	def _replay(self, child: Commit, old_parent: Commit, new_parent: Commit, path: str) -> Commit:
		child = self.store.repo[child.id]
		parents = [new_parent.id, *child.parent_ids[1:]]
		old_base = self.store.entry_at(old_parent.tree, path)
		new_base = self.store.entry_at(new_parent.tree, path)
		own = self.store.entry_at(child.tree, path)

		if own == old_base:
			return self._commit_with_entry(child, path, new_base, parents)

		try:
			old_content = self.store.content_at(old_parent.tree, path)
			own_hunks = diff(old_content, self.store.content_at(child.tree, path), 0, path)
			upstream = diff(old_content, self.store.content_at(new_parent.tree, path), 0, path)
			moved = rebase_hunks(own_hunks, upstream)
			blob_id, content = self.store.apply_to_blob(new_base.id if new_base else None, moved, path)
		except (ApplyConflictError, ParseError) as e:
			msg = f"Commit {child.id} changes {path} in a way that conflicts with the rewrite: {e}"
			raise RewriteConflictError(msg, commit_id=str(child.id), path=path) from e

		if own is None:
			if not content.is_empty:
				msg = f"Commit {child.id} deletes {path}, but the rewritten file still has content"
				raise RewriteConflictError(msg, commit_id=str(child.id), path=path)
			entry = None
		else:
			entry = TreeEntry(blob_id, own.filemode)
		return self._commit_with_entry(child, path, entry, parents)

	def _commit_with_entry(self, commit: Commit, path: str, entry: TreeEntry | None, parents: list[Oid]) -> Commit:
		tree_id = self.store.replace_entry(commit.tree, path, entry)
		others = self.store.changed_paths(commit.tree, self.store.repo[tree_id]) - {path}
		if others:
			msg = f"Rewriting {path} in {commit.id} would also change {', '.join(sorted(others))}"
			raise ObjectStoreError(msg, commit_id=str(commit.id), path=path)
		return self.store.recreate_commit(commit, tree_id, parents)
