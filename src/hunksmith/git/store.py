"""Object store, reference and working copy access using pygit2."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import NamedTuple

from pygit2 import Blob, Commit, GitError, IndexEntry, Oid, Signature, Tree, discover_repository
from pygit2.enums import FileMode, FileStatus
from pygit2.repository import Repository

from hunksmith.diff.applier import apply_hunks
from hunksmith.diff.schemas import FileContent, Hunk
from hunksmith.errors import ObjectStoreError, ParseError

logger = logging.getLogger(__name__)


class TreeEntry(NamedTuple):
	"""A file entry of a tree: blob id plus file mode."""

	id: Oid
	filemode: int


def normalize_path(path: str) -> str:
	"""
	Turn a user supplied path into a repository-relative POSIX path.

	Raises:
		ObjectStoreError: If the path is empty, absolute or leaves the repository

	"""
	posix = PurePosixPath(path.replace(os.sep, "/"))
	if not path or posix.is_absolute() or ".." in posix.parts or str(posix) == ".":
		msg = f"Invalid repository path: {path!r}"
		raise ObjectStoreError(msg, path=path)
	return str(posix)


class ObjectStore:
	"""
	Access to one repository's objects, references, index and work tree.

	Blob, tree and commit writes are append-only. Only :meth:`update_head`,
	:meth:`sync_index_entry` and :meth:`write_working` change state that
	other readers can observe; callers serialize those.

	"""

	def __init__(self, repo_path: Path | None = None, encoding: str = "utf-8") -> None:
		"""
		Open the repository containing ``repo_path``.

		Args:
			repo_path: Any path inside the repository, defaults to the current directory
			encoding: Text encoding used for blob and file content

		Raises:
			ObjectStoreError: If no usable non-bare repository is found

		"""
		git_dir = self.get_repo_root(repo_path)
		try:
			self.repo = Repository(str(git_dir))
		except GitError as e:
			msg = f"Failed to open repository at {git_dir}: {e}"
			raise ObjectStoreError(msg) from e
		if self.repo.is_bare or self.repo.workdir is None:
			msg = f"Repository at {git_dir} has no working copy"
			raise ObjectStoreError(msg)
		self.encoding = encoding
		logger.debug("Opened repository %s (workdir %s)", self.repo.path, self.repo.workdir)

	@classmethod
	def get_repo_root(cls, path: Path | None = None) -> Path:
		"""Locate the ``.git`` directory for ``path``."""
		try:
			git_dir = discover_repository(str(path or Path.cwd()))
		except (KeyError, GitError):
			git_dir = None
		if git_dir is None:
			msg = f"Not a git repository: {path or Path.cwd()}"
			raise ObjectStoreError(msg)
		return Path(git_dir)

	@property
	def workdir(self) -> Path:
		"""Root of the working copy."""
		return Path(self.repo.workdir)

	@property
	def key(self) -> str:
		"""Identifier used to serialize operations on this repository."""
		return str(Path(self.repo.path).resolve())

	# Commits

	def head_commit(self) -> Commit | None:
		"""The tip of the current lineage, or ``None`` on an unborn branch."""
		if self.repo.head_is_unborn:
			return None
		try:
			return self.repo.head.peel(Commit)
		except GitError as e:
			msg = f"HEAD does not point to a commit: {e}"
			raise ObjectStoreError(msg) from e

	def get_commit(self, rev: str) -> Commit:
		"""
		Resolve a commit id or revision expression.

		Raises:
			ObjectStoreError: If ``rev`` does not name a commit

		"""
		try:
			return self.repo.revparse_single(rev).peel(Commit)
		except (KeyError, ValueError, GitError) as e:
			msg = f"Unknown commit: {rev}"
			raise ObjectStoreError(msg, commit_id=rev) from e

	@staticmethod
	def first_parent(commit: Commit) -> Commit | None:
		"""The first parent of ``commit``, or ``None`` for a root commit."""
		return commit.parents[0] if commit.parent_ids else None

	def lineage(self, source: Commit) -> list[Commit]:
		"""
		The first-parent chain from ``source`` to the tip, oldest first.

		Raises:
			ObjectStoreError: If ``source`` is not on the tip's first-parent history

		"""
		chain: list[Commit] = []
		current = self.head_commit()
		while current is not None:
			chain.append(current)
			if current.id == source.id:
				chain.reverse()
				return chain
			current = self.first_parent(current)
		msg = f"Commit {source.id} is not part of the current branch's history"
		raise ObjectStoreError(msg, commit_id=str(source.id))

	def signature(self, name: str | None = None, email: str | None = None) -> Signature:
		"""
		Signature for new commits.

		Explicit values win over the repository's ``user.name``/``user.email``.

		"""
		if name and email:
			return Signature(name, email)
		try:
			default = self.repo.default_signature
		except (KeyError, GitError) as e:
			msg = "No commit identity configured; set user.name and user.email or commit.author_* in the config"
			raise ObjectStoreError(msg) from e
		return Signature(name or default.name, email or default.email)

	def create_commit(self, tree_id: Oid, parent_ids: Iterable[Oid], message: str, author: Signature) -> Commit:
		"""Write a new commit object without moving any reference."""
		try:
			oid = self.repo.create_commit(None, author, author, message, tree_id, list(parent_ids))
		except GitError as e:
			msg = f"Failed to create commit: {e}"
			raise ObjectStoreError(msg) from e
		return self.repo[oid]

	def recreate_commit(self, original: Commit, tree_id: Oid, parent_ids: Iterable[Oid]) -> Commit:
		"""Write a copy of ``original`` with a different tree and parents."""
		parents = list(parent_ids)
		if tree_id == original.tree_id and parents == list(original.parent_ids):
			return original
		try:
			if original.message_encoding:
				oid = self.repo.create_commit(
					None,
					original.author,
					original.committer,
					original.message,
					tree_id,
					parents,
					original.message_encoding,
				)
			else:
				oid = self.repo.create_commit(None, original.author, original.committer, original.message, tree_id, parents)
		except GitError as e:
			msg = f"Failed to rewrite commit {original.id}: {e}"
			raise ObjectStoreError(msg, commit_id=str(original.id)) from e
		return self.repo[oid]

	# Blobs and trees

	def entry_at(self, tree: Tree | None, path: str) -> TreeEntry | None:
		"""The file entry at ``path``, or ``None`` when the tree has no such file."""
		if tree is None:
			return None
		try:
			obj = tree[path]
		except KeyError:
			return None
		if not isinstance(obj, Blob):
			msg = f"{path} is not a file in tree {tree.id}"
			raise ObjectStoreError(msg, path=path)
		return TreeEntry(obj.id, obj.filemode)

	def read_content(self, blob_id: Oid, path: str = "") -> FileContent:
		"""
		Read and decode a blob.

		Raises:
			ParseError: If the blob is not text
			ObjectStoreError: If the blob cannot be read

		"""
		try:
			blob = self.repo[blob_id]
		except (KeyError, ValueError, GitError) as e:
			msg = f"Failed to read blob {blob_id}"
			raise ObjectStoreError(msg, path=path) from e
		try:
			return FileContent.from_bytes(blob.data, self.encoding)
		except ParseError as e:
			msg = f"{path or blob_id}: {e}"
			raise ParseError(msg) from e

	def content_at(self, tree: Tree | None, path: str) -> FileContent | None:
		"""The decoded file at ``path``, or ``None`` if the tree does not have it."""
		entry = self.entry_at(tree, path)
		return None if entry is None else self.read_content(entry.id, path)

	def write_content(self, content: FileContent) -> Oid:
		"""Store content as a blob and return its id."""
		try:
			return self.repo.create_blob(content.to_bytes(self.encoding))
		except GitError as e:
			msg = f"Failed to write blob: {e}"
			raise ObjectStoreError(msg) from e

	def apply_to_blob(self, blob_id: Oid | None, hunks: Iterable[Hunk], path: str = "") -> tuple[Oid, FileContent]:
		"""
		Apply hunks to a blob and register the result as a new blob.

		Args:
			blob_id: Blob to patch, ``None`` for a file that does not exist yet
			hunks: Hunks in the blob's coordinates
			path: Path used in error messages

		Returns:
			tuple[Oid, FileContent]: The new blob id and its content

		Raises:
			ApplyConflictError: If the hunks do not match the blob

		"""
		base = self.read_content(blob_id, path) if blob_id is not None else FileContent()
		patched = apply_hunks(base, hunks)
		return self.write_content(patched), patched

	def replace_entry(self, tree: Tree | None, path: str, entry: TreeEntry | None) -> Oid:
		"""
		Write a tree equal to ``tree`` except for the entry at ``path``.

		Sibling entries are copied by reference. Directories left empty by a
		removal are dropped. ``tree`` may come from any handle on this
		repository; it is reloaded through the store's own.

		Args:
			tree: Source tree, ``None`` for an empty tree
			path: Slash separated file path
			entry: New entry, or ``None`` to remove the file

		Returns:
			Oid: Id of the new root tree

		"""
		try:
			if tree is not None:
				tree = self.repo[tree.id]
			new_id = self._replace_entry(tree, path.split("/"), entry)
			if new_id is None:
				new_id = self.repo.TreeBuilder().write()
		except GitError as e:
			msg = f"Failed to write tree for {path}: {e}"
			raise ObjectStoreError(msg, path=path) from e
		return new_id

	def _replace_entry(self, tree: Tree | None, parts: list[str], entry: TreeEntry | None) -> Oid | None:
		builder = self.repo.TreeBuilder(tree) if tree is not None else self.repo.TreeBuilder()
		name = parts[0]
		existing = builder.get(name)

		if len(parts) == 1:
			if entry is None:
				if existing is not None:
					builder.remove(name)
			else:
				builder.insert(name, entry.id, entry.filemode)
		else:
			subtree = None
			if existing is not None:
				subtree = self.repo[existing.id]
				if not isinstance(subtree, Tree):
					msg = f"{name} is a file, not a directory"
					raise ObjectStoreError(msg, path="/".join(parts))
			sub_id = self._replace_entry(subtree, parts[1:], entry)
			if sub_id is None:
				if existing is not None:
					builder.remove(name)
			else:
				builder.insert(name, sub_id, FileMode.TREE)

		if len(builder) == 0:
			return None
		return builder.write()

	def changed_paths(self, old_tree: Tree, new_tree: Tree) -> set[str]:
		"""Paths whose entries differ between two trees."""
		paths: set[str] = set()
		for delta in self.repo.diff(self.repo[old_tree.id], self.repo[new_tree.id]).deltas:
			paths.add(delta.old_file.path)
			paths.add(delta.new_file.path)
		return paths

	# References and index

	def update_head(self, new_id: Oid, expected: Oid | None, message: str) -> None:
		"""
		Move the current branch (or a detached HEAD) to ``new_id``.

		Args:
			new_id: New tip commit
			expected: Tip the caller based its work on, ``None`` for an unborn branch
			message: Reflog message

		Raises:
			ObjectStoreError: If the tip moved since the caller read it

		"""
		head = self.head_commit()
		current = head.id if head is not None else None
		if current != expected:
			msg = f"HEAD moved from {expected} to {current} during the operation"
			raise ObjectStoreError(msg, commit_id=str(expected) if expected else None)
		try:
			if self.repo.head_is_unborn:
				branch = self.repo.references["HEAD"].target
				self.repo.references.create(branch, new_id)
			elif self.repo.head_is_detached:
				self.repo.set_head(new_id)
			else:
				self.repo.head.set_target(new_id, message)
		except (KeyError, GitError) as e:
			msg = f"Failed to update HEAD to {new_id}: {e}"
			raise ObjectStoreError(msg, commit_id=str(new_id)) from e
		logger.info("Moved HEAD to %s: %s", new_id, message)

	def sync_index_entry(self, path: str, entry: TreeEntry | None) -> None:
		"""Make the index entry for ``path`` match a tree entry."""
		try:
			index = self.repo.index
			index.read()
			if entry is None:
				if path in index:
					index.remove(path)
			else:
				index.add(IndexEntry(path, entry.id, entry.filemode))
			index.write()
		except (OSError, GitError) as e:
			msg = f"Failed to update the index for {path}: {e}"
			raise ObjectStoreError(msg, path=path) from e

	# Working copy

	def read_working(self, path: str) -> FileContent | None:
		"""The working copy file at ``path``, or ``None`` if it does not exist."""
		file_path = self.workdir / path
		if not file_path.is_file():
			return None
		try:
			data = file_path.read_bytes()
		except OSError as e:
			msg = f"Failed to read {path}: {e}"
			raise ObjectStoreError(msg, path=path) from e
		try:
			return FileContent.from_bytes(data, self.encoding)
		except ParseError as e:
			msg = f"{path}: {e}"
			raise ParseError(msg) from e

	def working_filemode(self, path: str) -> int:
		"""Git file mode for the working copy file at ``path``."""
		file_path = self.workdir / path
		if file_path.is_file() and os.stat(file_path).st_mode & stat.S_IXUSR:
			return FileMode.BLOB_EXECUTABLE
		return FileMode.BLOB

	def write_working(self, path: str, content: FileContent | None) -> None:
		"""
		Replace or delete a working copy file.

		The new content is written to a temporary file next to the target
		and moved into place, so readers never see a partial file.

		"""
		file_path = self.workdir / path
		try:
			if content is None:
				if file_path.exists():
					file_path.unlink()
					logger.debug("Deleted %s", path)
				return

			file_path.parent.mkdir(parents=True, exist_ok=True)
			mode = stat.S_IMODE(os.stat(file_path).st_mode) if file_path.exists() else None
			fd, tmp_name = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.")
			try:
				with os.fdopen(fd, "wb") as tmp:
					tmp.write(content.to_bytes(self.encoding))
				if mode is not None:
					os.chmod(tmp_name, mode)
				os.replace(tmp_name, file_path)
			except BaseException:
				Path(tmp_name).unlink(missing_ok=True)
				raise
			logger.debug("Wrote %d line(s) to %s", len(content), path)
		except OSError as e:
			msg = f"Failed to write {path}: {e}"
			raise ObjectStoreError(msg, path=path) from e

	def list_changes(self) -> list[str]:
		"""Paths with uncommitted changes, untracked files included, ignored ones not."""
		try:
			status = self.repo.status()
		except GitError as e:
			msg = f"Failed to read repository status: {e}"
			raise ObjectStoreError(msg) from e
		return sorted(path for path, flags in status.items() if flags != FileStatus.CURRENT and not flags & FileStatus.IGNORED)
