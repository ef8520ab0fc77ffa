"""
Keyword filter that keeps only COVID-19-related records.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional, Sequence

from .models import NormalizedPreprint


COVID_TERMS: Sequence[str] = (
    "coronavirus",
    "covid-19",
    "sars-cov",
    "ncov-2019",
    "2019-ncov",
    "hcov-19",
    "sars-2",
)

COVID_PATTERN = re.compile("|".join(re.escape(term) for term in COVID_TERMS), re.IGNORECASE)


def mentions_covid(text: Optional[str]) -> bool:
    if not text:
        return False
    return COVID_PATTERN.search(text) is not None


def is_covid_related(preprint: NormalizedPreprint) -> bool:
    """
    True when either the title or the abstract mentions one of the terms.
    """

    return mentions_covid(preprint.title) or mentions_covid(preprint.abstract)


def filter_covid(preprints: Iterable[NormalizedPreprint]) -> Iterator[NormalizedPreprint]:
    return (preprint for preprint in preprints if is_covid_related(preprint))
