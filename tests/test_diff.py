"""Tests for diff.py — unified diff summaries and test-path detection."""

from __future__ import annotations

import pytest

from prguard.diff import DiffSummary, is_test_path, summarize_diff

PATCH = """\
diff --git a/src/parser.py b/src/parser.py
--- a/src/parser.py
+++ b/src/parser.py
@@ -1,3 +1,4 @@
 import re
-OLD = 1
+NEW = 2
+EXTRA = 3
 def parse():
diff --git a/tests/test_parser.py b/tests/test_parser.py
--- a/tests/test_parser.py
+++ b/tests/test_parser.py
@@ -1,1 +1,2 @@
 import parser
+assert parser
"""


class TestSummarizeDiff:
    def test_counts(self) -> None:
        summary = summarize_diff(PATCH)
        assert summary.additions == 3
        assert summary.deletions == 1
        assert summary.total_lines == 4
        assert summary.files == ["src/parser.py", "tests/test_parser.py"]
        assert summary.changed_files == 2
        assert summary.has_tests is True

    def test_excerpt_lists_each_file(self) -> None:
        excerpt = summarize_diff(PATCH).excerpt
        assert excerpt.startswith("src/parser.py\n@@")
        assert "\n\ntests/test_parser.py\n" in excerpt
        assert "+NEW = 2" in excerpt

    def test_per_file_truncation(self) -> None:
        excerpt = summarize_diff(PATCH, per_file_chars=5).excerpt
        assert excerpt.split("\n\n")[0] == "src/parser.py\n@@ -1"

    def test_total_truncation(self) -> None:
        assert len(summarize_diff(PATCH, max_chars=20).excerpt) == 20

    def test_no_tests(self) -> None:
        patch = PATCH.split("diff --git a/tests")[0]
        assert summarize_diff(patch).has_tests is False

    def test_empty(self) -> None:
        assert summarize_diff("") == DiffSummary()
        assert summarize_diff("   \n") == DiffSummary()

    def test_unparsable(self) -> None:
        broken = "@@ -1,2 +1,2 @@\n+hunk without a file header\n"
        assert summarize_diff(broken) == DiffSummary()


class TestIsTestPath:
    @pytest.mark.parametrize(
        "path",
        [
            "test/parser.ts",
            "src/parser.test.ts",
            "src/Parser.Spec.js",
            "tests/test_parser.py",
            "pkg/test_utils.py",
            "pkg/utils_test.py",
        ],
    )
    def test_matches(self, path: str) -> None:
        assert is_test_path(path)

    @pytest.mark.parametrize("path", ["src/parser.py", "docs/testing.md", "src/contest.py"])
    def test_non_matches(self, path: str) -> None:
        assert not is_test_path(path)
