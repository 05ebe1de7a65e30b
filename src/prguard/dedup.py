"""Duplicate detection — cosine similarity, threshold matching, greedy clustering."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from prguard.types import DuplicateCluster, DuplicateMatch

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prguard.types import EmbeddingRecord


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of *a* and *b*.

    Returns 0.0 instead of raising when either vector is empty, the
    lengths differ, or either vector has zero magnitude. The result is
    not clamped.
    """
    if len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    mag_a = float(np.linalg.norm(va))
    mag_b = float(np.linalg.norm(vb))
    if mag_a == 0.0 or mag_b == 0.0 or not math.isfinite(mag_a * mag_b):
        return 0.0

    return float(np.dot(va, vb)) / (mag_a * mag_b)


def find_duplicates(
    current: EmbeddingRecord,
    candidates: Sequence[EmbeddingRecord],
    threshold: float,
) -> list[DuplicateMatch]:
    """Return active *candidates* at least *threshold*-similar to *current*.

    The candidate with the same kind and number as *current* is skipped;
    a candidate sharing only the number (other kind) is compared like any
    other. Results are sorted by similarity, highest first; equal
    similarities keep candidate order.
    """
    matches: list[DuplicateMatch] = []
    for candidate in candidates:
        if candidate.kind is current.kind and candidate.number == current.number:
            continue
        if not candidate.active:
            continue
        similarity = cosine_similarity(current.embedding, candidate.embedding)
        if similarity >= threshold:
            matches.append(
                DuplicateMatch(
                    kind=candidate.kind,
                    number=candidate.number,
                    similarity=similarity,
                    title=candidate.title,
                )
            )

    # sorted() is stable, which preserves candidate order on ties
    return sorted(matches, key=lambda m: m.similarity, reverse=True)


def cluster_duplicates(
    items: Sequence[EmbeddingRecord],
    threshold: float,
) -> list[DuplicateCluster]:
    """Group *items* greedily around first-seen anchors.

    Each unvisited item in input order becomes an anchor; every later
    unvisited item at least *threshold*-similar to the anchor joins its
    cluster. Members are compared to the anchor only, never to each
    other, and never anchor a cluster themselves, so two members of one
    cluster need not be similar to each other. Singleton clusters are
    dropped.
    """
    clusters: list[DuplicateCluster] = []
    visited: set[tuple[str, int]] = set()

    for anchor in items:
        anchor_key = (anchor.kind.value, anchor.number)
        if anchor_key in visited:
            continue

        members = [anchor]
        visited.add(anchor_key)

        for candidate in items:
            candidate_key = (candidate.kind.value, candidate.number)
            if candidate_key in visited:
                continue
            if cosine_similarity(anchor.embedding, candidate.embedding) >= threshold:
                members.append(candidate)
                visited.add(candidate_key)

        clusters.append(DuplicateCluster(anchor=anchor, members=members))

    return [c for c in clusters if len(c.members) > 1]
