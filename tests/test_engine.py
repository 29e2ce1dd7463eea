"""End-to-end tests for the selection-based operations."""

from __future__ import annotations

import pytest

from hunksmith.diff.schemas import LineKind, Side
from hunksmith.diff.selection import Selection
from hunksmith.engine import repository_lock
from hunksmith.errors import (
	EmptySelectionError,
	ObjectStoreError,
	RepositoryBusyError,
	RewriteConflictError,
	SelectionOutOfRangeError,
)
from tests.base import GitTestBase

BASE = "base-1\nbase-2\nbase-3\n"
BOTH = "base-1\nbase-2\nbase-3\nline-b\nline-a\n"


def refs(*tokens: str) -> Selection:
	"""Selection from compact references."""
	return Selection.parse_refs(tokens)


@pytest.mark.git
class TestQueries(GitTestBase):
	"""Tests for reading diffs through the engine."""

	def test_get_hunks_for_working_copy(self) -> None:
		"""Test the diff between the tip and the working file."""
		self.commit_files({"a.txt": BASE})
		self.write("a.txt", BOTH)

		hunks = self.engine().get_hunks(None, "a.txt")

		assert len(hunks) == 1
		assert hunks[0].header.format() == "@@ -1,3 +1,5 @@"
		assert [str(line.ref) for line in hunks[0].changes] == ["R4", "R5"]
		assert hunks[0].path == "a.txt"

	def test_get_hunks_for_commit(self) -> None:
		"""Test the diff a commit made against its first parent."""
		self.commit_files({"a.txt": BASE})
		commit = self.commit_files({"a.txt": BOTH})

		hunks = self.engine().get_hunks(str(commit.id), "a.txt")

		assert [line.text for line in hunks[0].changes] == ["line-b", "line-a"]

	def test_get_hunks_for_root_commit(self) -> None:
		"""Test that a root commit is diffed against nothing."""
		root = self.commit_files({"a.txt": BASE})

		hunks = self.engine().get_hunks(str(root.id), "a.txt")

		assert hunks[0].header.format() == "@@ -0,0 +1,3 @@"

	def test_get_line_at(self) -> None:
		"""Test looking up single lines of a diff."""
		self.commit_files({"a.txt": BASE})
		self.write("a.txt", "base-1\nbase-3\nnew\n")
		engine = self.engine()

		removed = engine.get_line_at(None, "a.txt", Side.LEFT, 2)
		added = engine.get_line_at(None, "a.txt", "right", 3)
		context = engine.get_line_at(None, "a.txt", Side.RIGHT, 1)

		assert (removed.kind, removed.text) == (LineKind.REMOVED, "base-2")
		assert (added.kind, added.text) == (LineKind.ADDED, "new")
		assert context.kind is LineKind.CONTEXT
		assert engine.get_line_at(None, "a.txt", Side.RIGHT, 30) is None

	def test_list_changes(self) -> None:
		"""Test listing modified and untracked files."""
		self.commit_files({"a.txt": BASE, "b.txt": BASE})
		self.write("a.txt", BOTH)
		self.write("c.txt", "c\n")

		assert self.engine().list_changes() == ["a.txt", "c.txt"]


@pytest.mark.git
class TestDiscard(GitTestBase):
	"""Tests for discarding selected working copy lines."""

	def test_discard_one_of_adjacent_insertions(self) -> None:
		"""Test discarding the second of two inserted lines."""
		self.commit_files({"a.txt": BASE})
		self.write("a.txt", BOTH)

		self.engine().discard("a.txt", refs("R5"))

		assert self.read("a.txt") == "base-1\nbase-2\nbase-3\nline-b\n"

	def test_discard_removal_restores_line(self) -> None:
		"""Test that discarding a removed line puts it back in place."""
		self.commit_files({"a.txt": BASE})
		self.write("a.txt", "base-1\nbase-3\nextra\n")

		self.engine().discard("a.txt", refs("L2"))

		assert self.read("a.txt") == "base-1\nbase-2\nbase-3\nextra\n"

	def test_discard_keeps_missing_newline_state(self) -> None:
		"""Test discarding next to a final line without newline."""
		self.commit_files({"a.txt": "a\nb"})
		self.write("a.txt", "x\na\nb")

		self.engine().discard("a.txt", refs("R1"))

		assert self.read("a.txt") == "a\nb"

	def test_discard_whole_untracked_file_deletes_it(self) -> None:
		"""Test that an untracked file without lines left is removed."""
		self.commit_files({"a.txt": BASE})
		self.write("new.txt", "x\ny\n")
		engine = self.engine()
		assert "new.txt" in engine.list_changes()

		engine.discard("new.txt", refs("R1-2"))

		assert not self.exists("new.txt")
		assert "new.txt" not in engine.list_changes()

	def test_discard_part_of_untracked_file(self) -> None:
		"""Test that an untracked file keeps its unselected lines."""
		self.write("new.txt", "x\ny\n")

		self.engine().discard("new.txt", refs("R1"))

		assert self.read("new.txt") == "y\n"

	def test_discard_recreates_deleted_file(self) -> None:
		"""Test restoring lines of a file deleted in the working copy."""
		self.commit_files({"a.txt": "a\nb\n"})
		(self.repo_path / "a.txt").unlink()

		self.engine().discard("a.txt", refs("L1"))

		assert self.read("a.txt") == "a\n"

	def test_invalid_selection_changes_nothing(self) -> None:
		"""Test that a bad selection fails before touching the file."""
		self.commit_files({"a.txt": BASE})
		self.write("a.txt", BOTH)
		engine = self.engine()

		with pytest.raises(SelectionOutOfRangeError):
			engine.discard("a.txt", refs("R5", "R9"))
		with pytest.raises(EmptySelectionError):
			engine.discard("a.txt", refs("R1"))

		assert self.read("a.txt") == BOTH


@pytest.mark.git
class TestPartialCommit(GitTestBase):
	"""Tests for committing selected working copy lines."""

	def test_commit_one_of_adjacent_insertions(self) -> None:
		"""Test that the commit holds the selection and the rest stays pending."""
		parent = self.commit_files({"a.txt": BASE})
		self.write("a.txt", BOTH)
		engine = self.engine()

		commit_id = engine.partial_commit("a.txt", refs("R5"), "add line-a")

		tip = self.head()
		assert str(tip.id) == commit_id
		assert list(tip.parent_ids) == [parent.id]
		assert tip.message == "add line-a"
		assert self.blob_text(tip, "a.txt") == "base-1\nbase-2\nbase-3\nline-a\n"
		assert self.read("a.txt") == BOTH
		pending = engine.get_hunks(None, "a.txt")
		assert [(line.kind, line.text) for hunk in pending for line in hunk.changes] == [(LineKind.ADDED, "line-b")]
		self.repo.index.read()
		assert self.repo.index["a.txt"].id == self.blob_id(tip, "a.txt")

	def test_commit_k_of_n_lines(self) -> None:
		"""Test committing a mix of removals and additions."""
		self.commit_files({"a.txt": "1\n2\n3\n4\n"})
		self.write("a.txt", "1\nA\n3\nB\nC\n")
		engine = self.engine()

		engine.partial_commit("a.txt", refs("L2", "R2", "R5"), "partial")

		assert self.blob_text(self.head(), "a.txt") == "1\nA\n3\n4\nC\n"
		pending = [(line.kind, line.text) for hunk in engine.get_hunks(None, "a.txt") for line in hunk.changes]
		assert pending == [(LineKind.REMOVED, "4"), (LineKind.ADDED, "B")]

	def test_commit_on_unborn_branch(self) -> None:
		"""Test that the first partial commit becomes the root commit."""
		self.write("new.txt", "one\ntwo\n")

		self.engine().partial_commit("new.txt", refs("R2"), "root")

		tip = self.head()
		assert not tip.parent_ids
		assert self.blob_text(tip, "new.txt") == "two\n"
		assert self.repo.head.shorthand == "main"

	def test_commit_file_deletion(self) -> None:
		"""Test that committing every removal of a deleted file deletes it."""
		self.commit_files({"a.txt": "a\nb\n", "keep.txt": "k\n"})
		(self.repo_path / "a.txt").unlink()

		self.engine().partial_commit("a.txt", refs("L1-2"), "delete a")

		assert "a.txt" not in self.head().tree
		assert "keep.txt" in self.head().tree

	def test_commit_identity_from_config(self) -> None:
		"""Test that configured author details are used."""
		self.commit_files({"a.txt": BASE})
		self.write("a.txt", BOTH)

		self.engine(commit={"author_name": "Config Author", "author_email": "config@example.com"}).partial_commit(
			"a.txt", refs("R4"), "msg"
		)

		assert self.head().author.name == "Config Author"
		assert self.head().author.email == "config@example.com"

	def test_empty_message(self) -> None:
		"""Test that a commit message is required."""
		self.commit_files({"a.txt": BASE})
		self.write("a.txt", BOTH)

		with pytest.raises(ValueError, match="message"):
			self.engine().partial_commit("a.txt", refs("R4"), "  ")


@pytest.mark.git
class TestUncommit(GitTestBase):
	"""Tests for taking lines out of history."""

	def test_uncommit_both_lines(self) -> None:
		"""Test the full round trip from the commit that added the lines."""
		self.commit_files({"a.txt": BASE})
		source = self.commit_files({"a.txt": BOTH}, "add lines")
		later = self.commit_files({"other.txt": "unrelated\n"}, "unrelated")
		engine = self.engine()

		new_tip = engine.uncommit(str(source.id), "a.txt", refs("R4", "R5"))

		tip = self.head()
		assert str(tip.id) == new_tip
		assert self.blob_text(tip, "a.txt") == BASE
		assert self.blob_text(tip.parents[0], "a.txt") == BASE
		assert tip.parents[0].message == "add lines"
		assert self.blob_id(tip, "other.txt") == self.blob_id(later, "other.txt")
		assert self.read("a.txt") == BOTH
		pending = [line.text for hunk in engine.get_hunks(None, "a.txt") for line in hunk.changes]
		assert pending == ["line-b", "line-a"]
		assert engine.list_changes() == ["a.txt"]

	def test_uncommit_one_line(self) -> None:
		"""Test that the commit keeps its unselected lines."""
		self.commit_files({"a.txt": BASE})
		source = self.commit_files({"a.txt": BOTH})

		self.engine().uncommit(str(source.id), "a.txt", refs("R4"))

		assert self.blob_text(self.head(), "a.txt") == "base-1\nbase-2\nbase-3\nline-a\n"
		assert self.read("a.txt") == BOTH

	def test_uncommit_rewrites_dependent_commit(self) -> None:
		"""Test that a later edit of the same file survives the rewrite."""
		self.commit_files({"a.txt": "1\n2\n3\n4\n5\n6\n7\n8\n"})
		source = self.commit_files({"a.txt": "1\nnew\n2\n3\n4\n5\n6\n7\n8\n"})
		self.commit_files({"a.txt": "1\nnew\n2\n3\n4\n5\n6\n7\nEIGHT\n"})

		self.engine().uncommit(str(source.id), "a.txt", refs("R2"))

		assert self.blob_text(self.head(), "a.txt") == "1\n2\n3\n4\n5\n6\n7\nEIGHT\n"

	def test_uncommit_whole_added_file(self) -> None:
		"""Test that uncommitting every line of an added file removes it from the commit."""
		self.commit_files({"keep.txt": "k\n"})
		source = self.commit_files({"new.txt": "x\n"})

		self.engine().uncommit(str(source.id), "new.txt", refs("R1"))

		assert "new.txt" not in self.head().tree
		assert self.read("new.txt") == "x\n"
		self.repo.index.read()
		assert "new.txt" not in self.repo.index

	def test_conflict_leaves_everything_untouched(self) -> None:
		"""Test that a failing rewrite moves no reference."""
		self.commit_files({"a.txt": "1\n2\n"})
		source = self.commit_files({"a.txt": "1\nnew\n2\n"})
		tip = self.commit_files({"a.txt": "1\nnewer\n2\n"})

		with pytest.raises(RewriteConflictError):
			self.engine().uncommit(str(source.id), "a.txt", refs("R2"))

		assert self.head().id == tip.id
		assert self.read("a.txt") == "1\nnewer\n2\n"

	def test_commit_outside_branch(self) -> None:
		"""Test that only commits of the current branch can be rewritten."""
		self.commit_files({"a.txt": BASE})

		with pytest.raises(ObjectStoreError):
			self.engine().uncommit("0" * 40, "a.txt", refs("R1"))


@pytest.mark.git
class TestLocking(GitTestBase):
	"""Tests for serializing operations on one repository."""

	def test_busy_repository(self) -> None:
		"""Test that a held lock rejects a second operation."""
		self.commit_files({"a.txt": BASE})
		self.write("a.txt", BOTH)
		engine = self.engine(repository={"lock_timeout": 0})

		with repository_lock(engine.store.key, 0), pytest.raises(RepositoryBusyError):
			engine.discard("a.txt", refs("R5"))

		assert self.read("a.txt") == BOTH
		engine.discard("a.txt", refs("R5"))
		assert self.read("a.txt") == "base-1\nbase-2\nbase-3\nline-b\n"
