"""hunksmith: discard, commit and uncommit individual lines of a git diff."""

from hunksmith.diff.schemas import DiffLine, FileContent, Hunk, HunkHeader, LineKind, LineRef, Side
from hunksmith.diff.selection import Selection
from hunksmith.engine import HunkEngine

__version__ = "0.1.0"

__all__ = [
	"DiffLine",
	"FileContent",
	"Hunk",
	"HunkEngine",
	"HunkHeader",
	"LineKind",
	"LineRef",
	"Selection",
	"Side",
	"__version__",
]
