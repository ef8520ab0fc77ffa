"""
DOI and arXiv identifier normalisation used for deduplication keys.
"""

from __future__ import annotations

import re
from typing import Mapping, Sequence

from .models import ARXIV, CROSSREF, DATACITE

_DOI_PREFIX_PATTERN = re.compile(r"^(https?://)?(dx\.)?doi\.org/", re.IGNORECASE)
_ARXIV_ABS_PATTERN = re.compile(r"^https?://arxiv\.org/abs/", re.IGNORECASE)

VERSION_PATTERNS: Mapping[str, Sequence[re.Pattern[str]]] = {
    CROSSREF: (re.compile(r"\.v\d+$"), re.compile(r"/v\d+$")),
    DATACITE: (re.compile(r"\.v\d+$"),),
    ARXIV: (re.compile(r"v\d+$"),),
}


def normalize_doi(doi: str | None) -> str | None:
    """Normalize a DOI string into a canonical lowercase form.

    Leading resolver prefixes (``https://doi.org/``, ``doi:``) and surrounding
    whitespace are removed. Empty or missing values return ``None``.
    """

    if not doi:
        return None

    cleaned = doi.strip()
    cleaned = _DOI_PREFIX_PATTERN.sub("", cleaned)
    if cleaned.lower().startswith("doi:"):
        cleaned = cleaned.split(":", 1)[1]
    cleaned = cleaned.strip().lower()

    return cleaned or None


def arxiv_id_from_url(value: str | None) -> str | None:
    """Return the bare arXiv identifier from an abstract-page URL."""

    if not value:
        return None
    cleaned = _ARXIV_ABS_PATTERN.sub("", value.strip())
    return cleaned or None


def canonical_identifier(identifier: str, provider: str) -> str:
    """Strip the provider's version suffix so all versions share one key.

    The result is only a grouping key and never leaves the deduplicator.
    """

    key = identifier.strip().lower()
    if provider != ARXIV:
        key = normalize_doi(key) or key
    for pattern in VERSION_PATTERNS.get(provider, ()):
        stripped = pattern.sub("", key)
        if stripped != key:
            return stripped
    return key


def landing_page_url(doi: str) -> str:
    return f"https://doi.org/{doi}"
