"""Tests for rewriting a file through a lineage of commits."""

from __future__ import annotations

import pygit2
import pytest
from pygit2 import Commit

from hunksmith.diff.applier import reverse_hunks
from hunksmith.diff.parser import diff
from hunksmith.diff.schemas import Hunk
from hunksmith.errors import RewriteConflictError
from hunksmith.git.rewriter import CommitRewriter
from hunksmith.git.store import ObjectStore
from tests.base import SIGNATURE, GitTestBase


@pytest.mark.unit
@pytest.mark.git
class TestCommitRewriter(GitTestBase):
	"""Tests for CommitRewriter."""

	def rewriter(self) -> CommitRewriter:
		"""Rewriter over the test repository."""
		return CommitRewriter(ObjectStore(self.repo_path))

	def undo(self, rewriter: CommitRewriter, commit, path: str) -> list[Hunk]:
		"""Hunks that revert everything ``commit`` did to ``path``."""
		store = rewriter.store
		parent = store.first_parent(commit)
		old = store.content_at(parent.tree if parent else None, path)
		return reverse_hunks(diff(old, store.content_at(commit.tree, path), 3, path))

	def test_rewrite_commit_keeps_metadata(self) -> None:
		"""Test that only the tree changes."""
		self.commit_files({"a.txt": "1\n", "other.txt": "o\n"})
		commit = self.commit_files({"a.txt": "1\n2\n"}, "add 2")
		rewriter = self.rewriter()

		new = rewriter.rewrite_commit(commit, "a.txt", self.undo(rewriter, commit, "a.txt"))

		assert new.id != commit.id
		assert self.blob_text(new, "a.txt") == "1\n"
		assert new.message == "add 2"
		assert new.author == commit.author
		assert new.committer == commit.committer
		assert list(new.parent_ids) == list(commit.parent_ids)
		assert self.blob_id(new, "other.txt") == self.blob_id(commit, "other.txt")

	def test_rewrite_commit_without_change_returns_same_commit(self) -> None:
		"""Test that an empty patch does not write a new commit."""
		commit = self.commit_files({"a.txt": "1\n"})

		assert self.rewriter().rewrite_commit(commit, "a.txt", []).id == commit.id

	def test_removing_added_file(self) -> None:
		"""Test that undoing every line of an added file drops the file."""
		self.commit_files({"keep.txt": "k\n"})
		commit = self.commit_files({"new.txt": "x\ny\n"})
		rewriter = self.rewriter()

		new = rewriter.rewrite_commit(commit, "new.txt", self.undo(rewriter, commit, "new.txt"))

		assert "new.txt" not in new.tree
		assert "keep.txt" in new.tree

	def test_emptying_existing_file_keeps_it(self) -> None:
		"""Test that a file the parent had stays as an empty file."""
		self.commit_files({"a.txt": ""})
		commit = self.commit_files({"a.txt": "x\n"})
		rewriter = self.rewriter()

		new = rewriter.rewrite_commit(commit, "a.txt", self.undo(rewriter, commit, "a.txt"))

		assert self.blob_text(new, "a.txt") == ""

	def test_lineage_replays_descendants(self) -> None:
		"""Test that later edits of the same file are carried over."""
		self.commit_files({"a.txt": "1\n2\n3\n4\n5\n6\n7\n8\n"})
		source = self.commit_files({"a.txt": "1\nnew\n2\n3\n4\n5\n6\n7\n8\n"}, "insert")
		child = self.commit_files({"a.txt": "1\nnew\n2\n3\n4\n5\n6\n7\nEIGHT\n"}, "edit end")
		other = self.commit_files({"b.txt": "b\n"}, "unrelated")
		rewriter = self.rewriter()
		store = rewriter.store
		lineage = store.lineage(source)

		result = rewriter.rewrite_lineage(lineage, 0, "a.txt", self.undo(rewriter, source, "a.txt"))

		assert len(result) == 3
		assert self.blob_text(result[0], "a.txt") == "1\n2\n3\n4\n5\n6\n7\n8\n"
		assert self.blob_text(result[1], "a.txt") == "1\n2\n3\n4\n5\n6\n7\nEIGHT\n"
		assert result[1].message == child.message
		assert list(result[1].parent_ids) == [result[0].id]
		assert list(result[2].parent_ids) == [result[1].id]
		assert self.blob_id(result[2], "b.txt") == self.blob_id(other, "b.txt")
		assert self.blob_text(result[2], "a.txt") == self.blob_text(result[1], "a.txt")

	def test_lineage_from_other_handle(self) -> None:
		"""Test rewriting commits loaded through a separate Repository on the same path."""
		self.commit_files({"a.txt": "1\n2\n"})
		self.commit_files({"a.txt": "1\nnew\n2\n"}, "insert")
		self.commit_files({"b.txt": "b\n"}, "unrelated")
		other = pygit2.Repository(str(self.repo_path))
		tip = other.head.peel(Commit)
		lineage = [tip.parents[0], tip]
		rewriter = self.rewriter()

		result = rewriter.rewrite_lineage(lineage, 0, "a.txt", self.undo(rewriter, lineage[0], "a.txt"))

		assert self.blob_text(result[0], "a.txt") == "1\n2\n"
		assert self.blob_text(result[1], "a.txt") == "1\n2\n"
		assert list(result[1].parent_ids) == [result[0].id]
		assert "b.txt" in result[1].tree

	def test_lineage_conflict(self) -> None:
		"""Test that a descendant editing the removed lines stops the rewrite."""
		self.commit_files({"a.txt": "1\n2\n"})
		source = self.commit_files({"a.txt": "1\nnew\n2\n"})
		child = self.commit_files({"a.txt": "1\nnewer\n2\n"})
		rewriter = self.rewriter()
		tip_before = self.head().id

		with pytest.raises(RewriteConflictError) as excinfo:
			rewriter.rewrite_lineage(rewriter.store.lineage(source), 0, "a.txt", self.undo(rewriter, source, "a.txt"))

		assert excinfo.value.commit_id == str(child.id)
		assert excinfo.value.path == "a.txt"
		assert self.head().id == tip_before

	def test_merge_commit_keeps_extra_parents(self) -> None:
		"""Test that replaying a merge keeps its second parent."""
		base = self.commit_files({"a.txt": "1\n"})
		source = self.commit_files({"a.txt": "1\n2\n"})
		side_id = self.repo.create_commit(None, SIGNATURE, SIGNATURE, "side", base.tree_id, [base.id])
		merge_id = self.repo.create_commit("HEAD", SIGNATURE, SIGNATURE, "merge", source.tree_id, [source.id, side_id])
		rewriter = self.rewriter()

		result = rewriter.rewrite_lineage(
			rewriter.store.lineage(source), 0, "a.txt", self.undo(rewriter, source, "a.txt")
		)

		merge = result[-1]
		assert merge.id != merge_id
		assert list(merge.parent_ids) == [result[0].id, side_id]
		assert self.blob_text(merge, "a.txt") == "1\n"

	def test_start_index_out_of_range(self) -> None:
		"""Test that an invalid start position is refused."""
		commit = self.commit_files({"a.txt": "1\n"})

		with pytest.raises(ValueError, match="outside"):
			self.rewriter().rewrite_lineage([commit], 1, "a.txt", [])
