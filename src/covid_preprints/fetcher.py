"""
Page through the Crossref, DataCite and arXiv APIs and collect raw records.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import httpx
from bs4 import BeautifulSoup

from .errors import ProviderFetchFailure
from .models import ARXIV, CROSSREF, DATACITE
from .topics import COVID_TERMS

logger = logging.getLogger(__name__)

CROSSREF_API = "https://api.crossref.org/works"
DATACITE_API = "https://api.datacite.org/dois"
ARXIV_API = "https://export.arxiv.org/api/query"

SSRN_PREFIX = "10.2139"

CROSSREF_SELECT = "DOI,title,abstract,posted,created,institution,publisher,group-title"


async def _get(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    params: Optional[Dict[str, Any]] = None,
) -> httpx.Response:
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
    except httpx.HTTPError as error:
        raise ProviderFetchFailure(provider, f"request to {url} failed: {error}") from error
    return response


async def _get_json(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    params: Optional[Dict[str, Any]] = None,
) -> dict:
    response = await _get(client, provider, url, params)
    try:
        payload = response.json()
    except ValueError as error:
        raise ProviderFetchFailure(provider, f"undecodable response from {url}") from error
    if not isinstance(payload, dict):
        raise ProviderFetchFailure(provider, f"unexpected payload from {url}")
    return payload


class CrossrefFetcher:
    """
    Retrieve works from Crossref using deep cursor paging.
    """

    def __init__(self, page_size: int = 1000, mailto: str | None = None) -> None:
        self._page_size = page_size
        self._mailto = mailto

    async def fetch_posted_content(
        self, client: httpx.AsyncClient, start: date, cutoff: date
    ) -> List[dict]:
        filters = [
            "type:posted-content",
            f"from-posted-date:{start.isoformat()}",
            f"until-posted-date:{cutoff.isoformat()}",
        ]
        return await self._paginate(client, filters)

    async def fetch_by_prefix(
        self, client: httpx.AsyncClient, prefix: str, start: date, cutoff: date
    ) -> List[dict]:
        """
        Works registered under ``prefix`` regardless of their content type.
        """

        filters = [
            f"prefix:{prefix}",
            f"from-created-date:{start.isoformat()}",
            f"until-created-date:{cutoff.isoformat()}",
        ]
        return await self._paginate(client, filters)

    async def _paginate(self, client: httpx.AsyncClient, filters: Sequence[str]) -> List[dict]:
        params: Dict[str, Any] = {
            "filter": ",".join(filters),
            "rows": str(self._page_size),
            "select": CROSSREF_SELECT,
            "cursor": "*",
        }
        if self._mailto:
            params["mailto"] = self._mailto

        items: List[dict] = []
        seen_cursors = set()
        while True:
            payload = await _get_json(client, CROSSREF, CROSSREF_API, params)
            message = payload.get("message") or {}
            page = message.get("items") or []
            if not page:
                break
            items.extend(page)
            logger.debug("Crossref %s: %d items so far", params["filter"], len(items))

            cursor = message.get("next-cursor")
            if not cursor or cursor in seen_cursors:
                break
            seen_cursors.add(cursor)
            params["cursor"] = cursor
        return items


class DataCiteFetcher:
    """
    Retrieve DOIs of a given resource type from DataCite, one creation year at a time.
    """

    def __init__(self, page_size: int = 1000, resource_type: str = "preprint") -> None:
        self._page_size = page_size
        self._resource_type = resource_type

    async def fetch_preprints(
        self, client: httpx.AsyncClient, start: date, cutoff: date
    ) -> List[dict]:
        records: List[dict] = []
        for year in range(start.year, cutoff.year + 1):
            records.extend(await self.fetch_year(client, year))
        return records

    async def fetch_year(self, client: httpx.AsyncClient, year: int) -> List[dict]:
        url: Optional[str] = DATACITE_API
        params: Optional[Dict[str, Any]] = {
            "resource-type-id": self._resource_type,
            "created": str(year),
            "page[size]": str(self._page_size),
            "page[cursor]": "1",
        }

        records: List[dict] = []
        while url:
            payload = await _get_json(client, DATACITE, url, params)
            page = payload.get("data") or []
            records.extend(page)
            logger.debug("DataCite %d: %d records so far", year, len(records))

            next_url = (payload.get("links") or {}).get("next")
            if not page or not next_url:
                break
            # The next link already carries every query parameter.
            url, params = next_url, None
        return records


def arxiv_search_query(
    terms: Sequence[str] = COVID_TERMS,
    start: date | None = None,
    cutoff: date | None = None,
) -> str:
    clauses = []
    for term in terms:
        clauses.append(f'ti:"{term}"')
        clauses.append(f'abs:"{term}"')
    query = " OR ".join(clauses)
    if start is None and cutoff is None:
        return query
    lower = f"{start:%Y%m%d}0000" if start else "*"
    upper = f"{cutoff:%Y%m%d}2359" if cutoff else "*"
    return f"({query}) AND submittedDate:[{lower} TO {upper}]"


def parse_atom_entries(xml: str) -> List[dict]:
    """
    Flatten the entries of an arXiv Atom feed into plain dictionaries.
    """

    soup = BeautifulSoup(xml, "xml")
    entries: List[dict] = []
    for entry in soup.find_all("entry"):
        record: Dict[str, Optional[str]] = {}
        for name in ("id", "title", "summary", "published"):
            node = entry.find(name, recursive=False)
            record[name] = node.get_text() if node is not None else None
        entries.append(record)
    return entries


def atom_total_results(xml: str) -> Optional[int]:
    node = BeautifulSoup(xml, "xml").find("totalResults")
    if node is None:
        return None
    try:
        return int(node.get_text().strip())
    except ValueError:
        return None


class ArxivFetcher:
    """
    Run a keyword search against the arXiv API, paging by offset up to a limit.

    Pages are spaced ``delay`` seconds apart. A page that comes back short before
    the feed's ``totalResults`` is reached raises instead of ending the harvest.
    """

    def __init__(self, limit: int = 10000, page_size: int = 1000, delay: float = 3.0) -> None:
        self._limit = limit
        self._page_size = page_size
        self._delay = delay

    async def fetch(
        self,
        client: httpx.AsyncClient,
        start: date | None = None,
        cutoff: date | None = None,
        query: str | None = None,
    ) -> List[dict]:
        search_query = query or arxiv_search_query(start=start, cutoff=cutoff)
        entries: List[dict] = []
        total: Optional[int] = None
        while len(entries) < self._limit:
            if entries:
                await asyncio.sleep(self._delay)
            offset = len(entries)
            batch = min(self._page_size, self._limit - offset)
            params = {
                "search_query": search_query,
                "start": str(offset),
                "max_results": str(batch),
                "sortBy": "submittedDate",
                "sortOrder": "ascending",
            }
            response = await _get(client, ARXIV, ARXIV_API, params)
            if total is None:
                total = atom_total_results(response.text)
                if total is None:
                    raise ProviderFetchFailure(ARXIV, "feed carries no totalResults")
            page = parse_atom_entries(response.text)
            entries.extend(page)
            logger.debug("arXiv: %d of %d entries so far", len(entries), total)

            if len(entries) >= min(total, self._limit):
                break
            if len(page) < batch:
                raise ProviderFetchFailure(
                    ARXIV,
                    f"page at offset {offset} held {len(page)} of {batch} entries "
                    f"before reaching {total} results",
                )
        return entries
