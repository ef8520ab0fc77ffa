"""
Replace unreliable posted dates with the date published on the landing page.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import date, datetime
from typing import List, Sequence, Tuple

import httpx
from bs4 import BeautifulSoup

from .errors import UnresolvedDate
from .identifiers import landing_page_url
from .models import ClassifiedPreprint

logger = logging.getLogger(__name__)

DATE_META_NAMES = ("citation_publication_date", "citation_online_date")
DATE_FORMATS = ("%Y/%m/%d", "%Y-%m-%d", "%d %B %Y", "%B %d, %Y")


def _parse_meta_date(value: str) -> date | None:
    cleaned = " ".join(value.split())
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def extract_publication_date(html: str) -> date:
    """
    Read the publication date from a landing page's citation meta tags.
    """

    soup = BeautifulSoup(html, "lxml")
    for name in DATE_META_NAMES:
        tag = soup.find("meta", attrs={"name": name})
        if tag is None or not tag.get("content"):
            continue
        parsed = _parse_meta_date(tag["content"])
        if parsed is not None:
            return parsed
        logger.debug("Unrecognised %s value: %r", name, tag["content"])
    raise UnresolvedDate("No usable publication date meta tag found")


async def fetch_landing_date(client: httpx.AsyncClient, doi: str) -> date:
    try:
        response = await client.get(landing_page_url(doi), follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as error:
        raise UnresolvedDate(f"Landing page for {doi} unavailable: {error}") from error
    return extract_publication_date(response.text)


async def correct_dates(
    client: httpx.AsyncClient,
    preprints: Sequence[ClassifiedPreprint],
    repository: str,
    concurrency: int = 8,
) -> Tuple[List[ClassifiedPreprint], int, int]:
    """
    Re-date every record of ``repository`` from its landing page.

    Records whose page cannot be fetched or parsed lose their date.
    Returns the updated records, the number corrected and the number unresolved.
    """

    semaphore = asyncio.Semaphore(max(concurrency, 1))

    async def resolve(preprint: ClassifiedPreprint) -> date | None:
        async with semaphore:
            try:
                return await fetch_landing_date(client, preprint.source_identifier)
            except UnresolvedDate as error:
                logger.debug("%s", error)
                return None

    targets = [index for index, preprint in enumerate(preprints) if preprint.repository == repository]
    resolved = await asyncio.gather(*(resolve(preprints[index]) for index in targets))

    updated = list(preprints)
    corrected = unresolved = 0
    for index, posted in zip(targets, resolved):
        updated[index] = replace(updated[index], posted_date=posted)
        if posted is None:
            unresolved += 1
        else:
            corrected += 1

    if unresolved:
        logger.warning("%d of %d %s landing pages gave no date", unresolved, len(targets), repository)
    return updated, corrected, unresolved
