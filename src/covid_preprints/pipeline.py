"""
Per-provider normalisation pipeline and the final merge.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple

import httpx

from .correction import correct_dates
from .dedup import collapse_titles, collapse_versions
from .fetcher import SSRN_PREFIX, ArxivFetcher, CrossrefFetcher, DataCiteFetcher
from .models import (
    ARXIV,
    ClassifiedPreprint,
    HarvestReport,
    MergedPreprint,
    ProviderReport,
)
from .parsers import ArxivParser, CrossrefParser, DataCiteParser, RecordParser
from .repositories import ARXIV_LABEL, SSRN, classify_all
from .settings import HarvestSettings
from .topics import filter_covid

logger = logging.getLogger(__name__)

ProviderResult = Tuple[List[ClassifiedPreprint], ProviderReport]
ProviderHarvest = Callable[[httpx.AsyncClient, HarvestSettings], Awaitable[ProviderResult]]


def prepare(
    records: Sequence[dict],
    parser: RecordParser,
    fixed_label: Optional[str] = None,
) -> ProviderResult:
    """
    Parse, filter, classify and version-collapse one provider's raw records.
    """

    report = ProviderReport(provider=parser.provider, fetched=len(records))

    parsed, report.malformed = parser.parse_many(records)
    relevant = list(filter_covid(parsed))
    report.off_topic = len(parsed) - len(relevant)

    classified, report.unclassified = classify_all(relevant, fixed_label=fixed_label)
    collapsed = collapse_versions(classified)
    report.version_duplicates = len(classified) - len(collapsed)
    return collapsed, report


def finish(preprints: Sequence[ClassifiedPreprint], report: ProviderReport) -> ProviderResult:
    """
    Title-collapse the records and record the final counts.
    """

    collapsed = collapse_titles(preprints)
    report.title_duplicates = len(preprints) - len(collapsed)
    report.output = len(collapsed)
    report.dates_unresolved = sum(1 for preprint in collapsed if preprint.posted_date is None)
    logger.info(
        "%s: %d fetched, %d kept (%d malformed, %d off-topic, %d unclassified, %d duplicates)",
        report.provider,
        report.fetched,
        report.output,
        report.malformed,
        report.off_topic,
        report.unclassified,
        report.version_duplicates + report.title_duplicates,
    )
    return collapsed, report


def process_records(
    records: Sequence[dict],
    parser: RecordParser,
    fixed_label: Optional[str] = None,
) -> ProviderResult:
    """
    Run the full synchronous pipeline for providers that need no date correction.
    """

    prepared, report = prepare(records, parser, fixed_label)
    return finish(prepared, report)


async def harvest_crossref(client: httpx.AsyncClient, settings: HarvestSettings) -> ProviderResult:
    fetcher = CrossrefFetcher(page_size=settings.page_size, mailto=settings.mailto)
    records = await fetcher.fetch_posted_content(client, settings.start_date, settings.cutoff)
    # SSRN deposits its preprints under a content type other than posted-content.
    records += await fetcher.fetch_by_prefix(client, SSRN_PREFIX, settings.start_date, settings.cutoff)

    prepared, report = prepare(records, CrossrefParser())
    if settings.correct_dates:
        prepared, report.dates_corrected, _ = await correct_dates(
            client, prepared, SSRN, concurrency=settings.concurrency
        )
    return finish(prepared, report)


async def harvest_datacite(client: httpx.AsyncClient, settings: HarvestSettings) -> ProviderResult:
    fetcher = DataCiteFetcher(page_size=settings.page_size)
    records = await fetcher.fetch_preprints(client, settings.start_date, settings.cutoff)
    return process_records(records, DataCiteParser())


async def harvest_arxiv(client: httpx.AsyncClient, settings: HarvestSettings) -> ProviderResult:
    fetcher = ArxivFetcher(
        limit=settings.arxiv_limit,
        page_size=settings.page_size,
        delay=settings.arxiv_delay,
    )
    records = await fetcher.fetch(client, settings.start_date, settings.cutoff)
    return process_records(records, ArxivParser(), fixed_label=ARXIV_LABEL)


PROVIDER_HARVESTS: Tuple[Tuple[str, ProviderHarvest], ...] = (
    ("Crossref", harvest_crossref),
    ("DataCite", harvest_datacite),
    ("arXiv", harvest_arxiv),
)


def to_merged(preprint: ClassifiedPreprint) -> Optional[MergedPreprint]:
    if preprint.posted_date is None:
        return None
    is_arxiv = preprint.provider == ARXIV
    return MergedPreprint(
        repository=preprint.repository,
        doi=None if is_arxiv else preprint.source_identifier,
        arxiv_id=preprint.source_identifier if is_arxiv else None,
        posted_date=preprint.posted_date,
        title=preprint.title,
        abstract=preprint.abstract,
    )


def merge(
    provider_outputs: Iterable[Sequence[ClassifiedPreprint]],
    cutoff: date,
    report: Optional[HarvestReport] = None,
    start: Optional[date] = None,
) -> List[MergedPreprint]:
    """
    Union every provider's records, keeping only dated rows from ``start`` to ``cutoff``
    inclusive. Records from different providers are never deduplicated against each other.
    """

    merged: List[MergedPreprint] = []
    undated = early = late = 0
    for preprints in provider_outputs:
        for preprint in preprints:
            row = to_merged(preprint)
            if row is None:
                undated += 1
            elif start is not None and row.posted_date < start:
                early += 1
            elif row.posted_date > cutoff:
                late += 1
            else:
                merged.append(row)

    merged.sort(key=lambda row: (row.posted_date, row.repository, row.title))

    if report is not None:
        report.undated_excluded = undated
        report.before_start_excluded = early
        report.after_cutoff_excluded = late
        report.total = len(merged)
    logger.info(
        "Merged %d preprints (%d undated, %d before start, %d after cutoff excluded)",
        len(merged),
        undated,
        early,
        late,
    )
    return merged
