"""
Collapse records that describe the same preprint.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Dict, Hashable, List, Sequence, Tuple

from .identifiers import canonical_identifier
from .models import ClassifiedPreprint


def _earliest_first(indexed: Tuple[int, ClassifiedPreprint]) -> Tuple[bool, date, int]:
    position, preprint = indexed
    # Undated rows sort last; equal dates keep fetch order.
    return (preprint.posted_date is None, preprint.posted_date or date.max, position)


def _keep_earliest(
    preprints: Sequence[ClassifiedPreprint],
    key: Callable[[ClassifiedPreprint], Hashable],
) -> List[ClassifiedPreprint]:
    chosen: Dict[Hashable, Tuple[int, ClassifiedPreprint]] = {}
    for indexed in enumerate(preprints):
        group = key(indexed[1])
        current = chosen.get(group)
        if current is None or _earliest_first(indexed) < _earliest_first(current):
            chosen[group] = indexed
    return [preprint for _, preprint in sorted(chosen.values(), key=lambda item: item[0])]


def collapse_versions(preprints: Sequence[ClassifiedPreprint]) -> List[ClassifiedPreprint]:
    """
    Keep the earliest record for each identifier once version suffixes are stripped.
    """

    return _keep_earliest(
        preprints,
        lambda preprint: canonical_identifier(preprint.source_identifier, preprint.provider),
    )


def collapse_titles(preprints: Sequence[ClassifiedPreprint]) -> List[ClassifiedPreprint]:
    """
    Keep the earliest record for each exact (repository, title) pair.
    """

    return _keep_earliest(preprints, lambda preprint: (preprint.repository, preprint.title))


def deduplicate(preprints: Sequence[ClassifiedPreprint]) -> List[ClassifiedPreprint]:
    return collapse_titles(collapse_versions(preprints))
