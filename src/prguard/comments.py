"""Summary comment bodies and the single-comment upsert."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prguard.collaborators import CommentApplier
    from prguard.types import DuplicateMatch, ItemKey, QualityResult

logger = logging.getLogger(__name__)

SUMMARY_MARKER = "<!-- prguard:summary -->"
"""Hidden marker that identifies PRGuard's comment on an item."""


def _format_duplicates(duplicates: Sequence[DuplicateMatch]) -> str:
    if not duplicates:
        return "- No close duplicates found."
    return "\n".join(
        f"- #{d.number} ({d.kind.value}) similarity {d.similarity:.2f}: {d.title}" for d in duplicates
    )


def build_summary_comment(
    duplicates: Sequence[DuplicateMatch],
    quality: QualityResult | None = None,
    best_number: int | None = None,
) -> str:
    """Render the triage summary posted on an analyzed item.

    The quality section appears only for scored items; the recommendation
    section only when *best_number* is given.
    """
    parts = [SUMMARY_MARKER, "## PRGuard Triage Summary", "### Duplicate Check"]
    parts.append(_format_duplicates(duplicates))

    if quality is not None:
        parts.extend(
            [
                "### PR Quality",
                f"- Score: {quality.score:.2f}",
                f"- Recommendation: {quality.recommendation.value}",
            ]
        )
        if quality.reasons:
            parts.append(f"- Notes: {'; '.join(quality.reasons)}")

    if best_number is not None:
        parts.extend(
            ["### Recommendation", f"PR #{best_number} appears to be the strongest implementation."]
        )

    return "\n\n".join(parts) + "\n"


def build_degraded_comment(needs_review_label: str = "prguard:needs-review") -> str:
    """Comment posted when no embedding could be computed."""
    return (
        f"{SUMMARY_MARKER}\n\n"
        "## PRGuard Triage Summary\n\n"
        "Duplicate detection is temporarily unavailable, so this item was "
        "processed in degraded mode.\n\n"
        f"It has been labelled `{needs_review_label}` for a maintainer to look at.\n"
    )


def build_daily_limit_comment(used: int, limit: int) -> str:
    """Comment posted when the tenant's daily analysis budget is spent."""
    return (
        f"{SUMMARY_MARKER}\n\n"
        f"**PRGuard daily analysis limit reached** ({used}/{limit}). Resets at midnight UTC.\n"
    )


async def upsert_marker_comment(
    comments: CommentApplier | None,
    ref: ItemKey,
    body: str,
    *,
    dry_run: bool = False,
    marker: str = SUMMARY_MARKER,
) -> bool:
    """Update the comment carrying *marker* on *ref*, or create one.

    Collaborator failures are logged and reported as False; they never
    propagate into the pipeline.
    """
    if dry_run:
        logger.info("[dry run] Would post or update the summary comment on %s", ref)
        return False
    if comments is None:
        return False

    try:
        existing = await comments.find_marker_comment(ref, marker)
        if existing is not None:
            await comments.update_comment(ref, existing, body)
        else:
            await comments.create_comment(ref, body)
    except Exception:
        logger.warning("Failed to upsert summary comment on %s", ref, exc_info=True)
        return False
    return True
