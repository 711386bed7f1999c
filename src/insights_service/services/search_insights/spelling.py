"""Spelling and synonym clusters from autocorrected search queries."""

from collections.abc import Mapping
from itertools import islice

import structlog

from insights_service.services.search_insights.ingestion import normalize_query
from insights_service.services.search_insights.models import (
    SpellingCorrectionCluster,
    SpellingVariant,
)
from shared.constants import (
    MAX_CANONICAL_KEYS,
    MAX_DISTANCE_INPUT_LENGTH,
    MAX_SPELLING_EDIT_DISTANCE,
    MAX_VARIANTS_CHECKED_PER_CLUSTER,
    MAX_VARIANTS_PER_CLUSTER,
    MIN_SPELLING_VARIANT_COUNT,
    SPELLING_CLUSTERS_LIMIT,
)

logger = structlog.get_logger()


def levenshtein(a: str, b: str, max_length: int = MAX_DISTANCE_INPUT_LENGTH) -> int:
    """Case-insensitive edit distance over the first ``max_length`` characters."""
    a = a.lower()[:max_length]
    b = b.lower()[:max_length]
    if a == b:
        return 0

    rows, cols = len(a) + 1, len(b) + 1
    table = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        table[i][0] = i
    for j in range(cols):
        table[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            table[i][j] = min(
                table[i - 1][j] + 1,
                table[i][j - 1] + 1,
                table[i - 1][j - 1] + cost,
            )
    return table[-1][-1]


def _cluster_for(canonical: str, variants: Mapping[str, int]) -> SpellingCorrectionCluster:
    canonical_cut = canonical[:MAX_DISTANCE_INPUT_LENGTH]
    kept: list[SpellingVariant] = []
    for variant, count in islice(variants.items(), MAX_VARIANTS_CHECKED_PER_CLUSTER):
        if count < MIN_SPELLING_VARIANT_COUNT:
            continue
        distance = levenshtein(canonical_cut, normalize_query(variant))
        if 0 < distance <= MAX_SPELLING_EDIT_DISTANCE:
            kept.append(
                SpellingVariant(
                    variant=variant[:MAX_DISTANCE_INPUT_LENGTH],
                    count=count,
                    edit_distance=distance,
                )
            )

    kept.sort(key=lambda v: (-v.count, v.variant))
    kept = kept[:MAX_VARIANTS_PER_CLUSTER]
    return SpellingCorrectionCluster(
        canonical=canonical,
        variants=kept,
        suggestion=f"Normalize to '{canonical}' and add synonym mapping" if kept else "",
    )


def detect_spelling_clusters(
    original_variants: Mapping[str, Mapping[str, int]],
    limit: int = SPELLING_CLUSTERS_LIMIT,
) -> list[SpellingCorrectionCluster]:
    """
    Group repeated near-miss spellings under their canonical query.

    A variant is kept when it was typed at least twice and sits one or two
    edits away from the canonical key. Any failure yields an empty list so
    the rest of the report still ships.
    """
    try:
        clusters = [
            _cluster_for(canonical, variants)
            for canonical, variants in islice(original_variants.items(), MAX_CANONICAL_KEYS)
        ]
        clusters = [cluster for cluster in clusters if cluster.variants]
        clusters.sort(key=lambda c: (-c.total_variants, c.canonical))
        return clusters[:limit]
    except Exception as e:
        logger.warning("Spelling cluster detection failed", error=str(e))
        return []
