"""Pull request quality scoring — a pure function of submission signals."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from prguard.config import QualityThresholds
from prguard.types import QualityResult, Recommendation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prguard.types import QualityInput

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_LINES_FOR_FULL_SCORE = 350
MAX_FILES_FOR_FULL_SCORE = 8
FILE_PENALTY_SPAN = 20

BROAD_DIFF_FILES = 12
BROAD_DIFF_LINES = 700

MERGED_PRS_FOR_FULL_HISTORY = 8
ACCOUNT_DAYS_FOR_FULL_AGE = 365

MIN_COMMIT_MESSAGE_LENGTH = 8
MAX_COMMIT_MESSAGE_LENGTH = 90
NO_MESSAGES_SCORE = 0.2

_LOW_EFFORT_PATTERNS = [
    re.compile(r"wip", re.IGNORECASE),
    re.compile(r"fix\s*stuff", re.IGNORECASE),
    re.compile(r"^update$", re.IGNORECASE),
    re.compile(r"^changes$", re.IGNORECASE),
]

_WEIGHTS = {
    "diff": 0.3,
    "tests": 0.2,
    "commits": 0.15,
    "contributor": 0.15,
    "ci": 0.2,
}

REASON_NO_TESTS = "No test changes detected"
REASON_CI_FAILING = "CI is not passing"
REASON_BROAD_DIFF = "Diff is broad and may need scoping"


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------


def score_diff(additions: int, deletions: int, changed_files: int) -> float:
    total_lines = additions + deletions
    line_score = max(0.0, 1 - total_lines / MAX_LINES_FOR_FULL_SCORE)
    if changed_files <= MAX_FILES_FOR_FULL_SCORE:
        file_score = 1.0
    else:
        file_score = max(0.0, 1 - (changed_files - MAX_FILES_FOR_FULL_SCORE) / FILE_PENALTY_SPAN)
    return 0.6 * line_score + 0.4 * file_score


def is_good_commit_message(message: str) -> bool:
    """Header is 8-90 characters and not a low-effort placeholder."""
    trimmed = message.strip()
    if not MIN_COMMIT_MESSAGE_LENGTH <= len(trimmed) <= MAX_COMMIT_MESSAGE_LENGTH:
        return False
    return not any(p.search(trimmed) for p in _LOW_EFFORT_PATTERNS)


def score_commit_hygiene(messages: Sequence[str]) -> float:
    if not messages:
        return NO_MESSAGES_SCORE
    good = sum(1 for m in messages if is_good_commit_message(m))
    return good / len(messages)


def score_contributor(merged_prs: int, account_age_days: int) -> float:
    history = min(1.0, merged_prs / MERGED_PRS_FOR_FULL_HISTORY)
    age = min(1.0, account_age_days / ACCOUNT_DAYS_FOR_FULL_AGE)
    return 0.7 * history + 0.3 * age


def account_age_days(created_at: datetime, now: datetime | None = None) -> int:
    """Whole days between *created_at* and *now*, never negative."""
    now = now or datetime.now(UTC)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return max(0, (now - created_at).days)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def recommend(score: float, thresholds: QualityThresholds | None = None) -> Recommendation:
    """Map *score* to approve (>= approve), reject (< reject), or review."""
    if thresholds is None:
        thresholds = QualityThresholds()
    if score >= thresholds.approve:
        return Recommendation.APPROVE
    if score >= thresholds.reject:
        return Recommendation.REVIEW
    return Recommendation.REJECT


def score_quality(
    signals: QualityInput,
    thresholds: QualityThresholds | None = None,
) -> QualityResult:
    """Score a pull request in [0, 1] and explain the weak spots.

    The score is a weighted sum of diff size, test presence, commit
    message hygiene, contributor history and CI status.
    """
    parts = {
        "diff": score_diff(signals.additions, signals.deletions, signals.changed_files),
        "tests": 1.0 if signals.has_tests else 0.3,
        "commits": score_commit_hygiene(signals.commit_messages),
        "contributor": score_contributor(
            signals.contributor_merged_prs, signals.contributor_account_age_days
        ),
        "ci": 1.0 if signals.ci_passing else 0.0,
    }
    score = sum(_WEIGHTS[name] * value for name, value in parts.items())

    reasons: list[str] = []
    if not signals.has_tests:
        reasons.append(REASON_NO_TESTS)
    if not signals.ci_passing:
        reasons.append(REASON_CI_FAILING)
    if signals.changed_files > BROAD_DIFF_FILES or signals.total_lines > BROAD_DIFF_LINES:
        reasons.append(REASON_BROAD_DIFF)

    return QualityResult(
        score=score,
        recommendation=recommend(score, thresholds),
        reasons=reasons,
    )
