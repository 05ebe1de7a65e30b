"""Tests for quality.py — sub-scores, final score, recommendation, reasons."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from prguard.config import QualityThresholds
from prguard.quality import (
    REASON_BROAD_DIFF,
    REASON_CI_FAILING,
    REASON_NO_TESTS,
    account_age_days,
    is_good_commit_message,
    recommend,
    score_commit_hygiene,
    score_contributor,
    score_diff,
    score_quality,
)
from prguard.types import QualityInput, Recommendation

STRONG = QualityInput(
    additions=40,
    deletions=10,
    changed_files=3,
    has_tests=True,
    commit_messages=["fix(parser): handle edge case", "test: add regression"],
    contributor_merged_prs=5,
    contributor_account_age_days=400,
    ci_passing=True,
)

WEAK = QualityInput(
    additions=900,
    deletions=300,
    changed_files=28,
    has_tests=False,
    commit_messages=["update", "wip"],
    contributor_merged_prs=0,
    contributor_account_age_days=2,
    ci_passing=False,
)


class TestScoreQuality:
    def test_strong_submission_approved(self) -> None:
        result = score_quality(STRONG)
        assert result.score > 0.75
        assert result.recommendation is Recommendation.APPROVE
        assert result.reasons == []

    def test_weak_submission_rejected(self) -> None:
        result = score_quality(WEAK)
        assert result.score < 0.45
        assert result.recommendation is Recommendation.REJECT
        assert result.reasons == [REASON_NO_TESTS, REASON_CI_FAILING, REASON_BROAD_DIFF]

    def test_weighted_sum(self) -> None:
        # diff: 0.6 * (1 - 50/350) + 0.4 = 0.914285...
        # commits 1.0, contributor 0.7 * 5/8 + 0.3 = 0.7375
        expected = 0.3 * (0.6 * (1 - 50 / 350) + 0.4) + 0.2 + 0.15 + 0.15 * 0.7375 + 0.2
        assert score_quality(STRONG).score == pytest.approx(expected)

    def test_score_bounded(self) -> None:
        for signals in (STRONG, WEAK, QualityInput()):
            assert 0.0 <= score_quality(signals).score <= 1.0

    def test_custom_thresholds(self) -> None:
        result = score_quality(STRONG, QualityThresholds(approve=0.99, reject=0.1))
        assert result.recommendation is Recommendation.REVIEW

    def test_broad_diff_by_lines_only(self) -> None:
        signals = QualityInput(additions=701, changed_files=1, has_tests=True, ci_passing=True)
        assert score_quality(signals).reasons == [REASON_BROAD_DIFF]

    def test_broad_diff_by_files_only(self) -> None:
        signals = QualityInput(additions=1, changed_files=13, has_tests=True, ci_passing=True)
        assert score_quality(signals).reasons == [REASON_BROAD_DIFF]

    def test_boundary_not_broad(self) -> None:
        signals = QualityInput(additions=700, changed_files=12, has_tests=True, ci_passing=True)
        assert score_quality(signals).reasons == []


class TestSubScores:
    def test_diff_small(self) -> None:
        assert score_diff(0, 0, 1) == pytest.approx(1.0)

    def test_diff_line_score_floors_at_zero(self) -> None:
        assert score_diff(1000, 0, 8) == pytest.approx(0.4)

    def test_diff_file_penalty(self) -> None:
        assert score_diff(0, 0, 18) == pytest.approx(0.6 + 0.4 * 0.5)
        assert score_diff(0, 0, 40) == pytest.approx(0.6)

    def test_commit_hygiene_no_messages(self) -> None:
        assert score_commit_hygiene([]) == pytest.approx(0.2)

    def test_commit_hygiene_ratio(self) -> None:
        assert score_commit_hygiene(["add retry to fetcher", "wip"]) == pytest.approx(0.5)

    def test_contributor_caps(self) -> None:
        assert score_contributor(100, 10_000) == pytest.approx(1.0)
        assert score_contributor(0, 0) == 0.0
        assert score_contributor(4, 0) == pytest.approx(0.35)


class TestCommitMessages:
    @pytest.mark.parametrize(
        "message",
        ["fix(parser): handle edge case", "Add retry to the HTTP client", "  docs: tidy  "],
    )
    def test_good(self, message: str) -> None:
        assert is_good_commit_message(message)

    @pytest.mark.parametrize(
        "message",
        [
            "update",
            "Update",
            "changes",
            "wip",
            "WIP: parser rewrite",
            "fix stuff in parser",
            "fixstuff",
            "short",
            "x" * 91,
        ],
    )
    def test_bad(self, message: str) -> None:
        assert not is_good_commit_message(message)

    def test_update_only_bad_as_whole_message(self) -> None:
        assert is_good_commit_message("update the parser docs")


class TestRecommend:
    def test_defaults(self) -> None:
        assert recommend(0.75) is Recommendation.APPROVE
        assert recommend(0.7499) is Recommendation.REVIEW
        assert recommend(0.45) is Recommendation.REVIEW
        assert recommend(0.4499) is Recommendation.REJECT


class TestAccountAge:
    def test_whole_days(self) -> None:
        created = datetime(2024, 1, 1, tzinfo=UTC)
        now = datetime(2024, 1, 11, 12, tzinfo=UTC)
        assert account_age_days(created, now) == 10

    def test_future_is_zero(self) -> None:
        created = datetime(2030, 1, 1, tzinfo=UTC)
        assert account_age_days(created, datetime(2024, 1, 1, tzinfo=UTC)) == 0

    def test_naive_datetimes(self) -> None:
        assert account_age_days(datetime(2024, 1, 1), datetime(2024, 1, 3)) == 2
