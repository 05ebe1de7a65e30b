"""Diff signals — size, test presence and an excerpt for the embedding input."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from unidiff import PatchSet
from unidiff.errors import UnidiffParseError

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 2000
DEFAULT_PER_FILE_CHARS = 300

_TEST_PATH = re.compile(r"(^test/|\.test\.|\.spec\.)", re.IGNORECASE)
_PY_TEST_PATH = re.compile(r"(^|/)(tests?/|test_[^/]*\.py$|[^/]*_test\.py$)")


@dataclass(frozen=True, slots=True)
class DiffSummary:
    """Aggregate view of a pull request's diff.

    Attributes:
        additions: Added lines across all files.
        deletions: Removed lines across all files.
        files: Paths touched, in patch order.
        has_tests: True when any touched path looks like a test.
        excerpt: Per-file excerpts joined with blank lines, truncated.
    """

    additions: int = 0
    deletions: int = 0
    files: list[str] = field(default_factory=list)
    has_tests: bool = False
    excerpt: str = ""

    @property
    def changed_files(self) -> int:
        return len(self.files)

    @property
    def total_lines(self) -> int:
        return self.additions + self.deletions


def is_test_path(path: str) -> bool:
    """Return True when *path* names a test file."""
    return bool(_TEST_PATH.search(path) or _PY_TEST_PATH.search(path))


def summarize_diff(
    patch_text: str,
    max_chars: int = DEFAULT_MAX_CHARS,
    per_file_chars: int = DEFAULT_PER_FILE_CHARS,
) -> DiffSummary:
    """Parse a unified diff into a :class:`DiffSummary`.

    Each file contributes its path followed by the first *per_file_chars*
    characters of its hunks; the joined excerpt is capped at *max_chars*.
    An unparsable patch yields an empty summary.
    """
    if not patch_text.strip():
        return DiffSummary()

    try:
        patch = PatchSet(patch_text)
    except UnidiffParseError:
        logger.warning("Could not parse diff; treating it as empty", exc_info=True)
        return DiffSummary()

    additions = 0
    deletions = 0
    files: list[str] = []
    chunks: list[str] = []
    for patched_file in patch:
        additions += patched_file.added
        deletions += patched_file.removed
        files.append(patched_file.path)
        hunks = "".join(str(hunk) for hunk in patched_file)
        chunks.append(f"{patched_file.path}\n{hunks[:per_file_chars]}".strip())

    return DiffSummary(
        additions=additions,
        deletions=deletions,
        files=files,
        has_tests=any(is_test_path(p) for p in files),
        excerpt="\n\n".join(chunks)[:max_chars],
    )
