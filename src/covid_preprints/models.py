"""
Core data structures used throughout the harvester.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional


CROSSREF = "crossref"
DATACITE = "datacite"
ARXIV = "arxiv"

MERGED_COLUMNS = ("repository", "doi", "arxiv_id", "posted_date", "title", "abstract")


@dataclass(frozen=True)
class RepositoryRule:
    """
    Maps one classifier field value to a canonical repository label.
    """

    field: str
    value: str
    label: str


@dataclass
class NormalizedPreprint:
    """
    Provider-independent representation of a single harvested record.
    """

    provider: str
    source_identifier: str
    title: str
    abstract: Optional[str] = None
    posted_date: Optional[date] = None
    classifier_fields: Dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class ClassifiedPreprint:
    """
    A normalised record that has been attributed to a preprint repository.
    """

    provider: str
    source_identifier: str
    title: str
    repository: str
    abstract: Optional[str] = None
    posted_date: Optional[date] = None

    @classmethod
    def from_normalized(cls, preprint: NormalizedPreprint, repository: str) -> "ClassifiedPreprint":
        return cls(
            provider=preprint.provider,
            source_identifier=preprint.source_identifier,
            title=preprint.title,
            repository=repository,
            abstract=preprint.abstract,
            posted_date=preprint.posted_date,
        )


@dataclass(frozen=True)
class MergedPreprint:
    """
    One row of the final dataset.
    """

    repository: str
    doi: Optional[str]
    arxiv_id: Optional[str]
    posted_date: date
    title: str
    abstract: Optional[str] = None

    def as_row(self) -> Dict[str, Optional[str]]:
        return {
            "repository": self.repository,
            "doi": self.doi,
            "arxiv_id": self.arxiv_id,
            "posted_date": self.posted_date.isoformat(),
            "title": self.title,
            "abstract": self.abstract,
        }


@dataclass
class ProviderReport:
    """
    Row counts recorded while one provider's records move through the pipeline.
    """

    provider: str
    fetched: int = 0
    malformed: int = 0
    off_topic: int = 0
    unclassified: int = 0
    version_duplicates: int = 0
    title_duplicates: int = 0
    dates_corrected: int = 0
    dates_unresolved: int = 0
    output: int = 0


@dataclass
class HarvestReport:
    """
    End-of-run summary across all providers and the merge step.
    """

    cutoff: date
    providers: list[ProviderReport] = field(default_factory=list)
    undated_excluded: int = 0
    before_start_excluded: int = 0
    after_cutoff_excluded: int = 0
    total: int = 0
