"""
Map provider-specific raw records onto the common NormalizedPreprint shape.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .errors import MalformedRecord
from .identifiers import arxiv_id_from_url, normalize_doi
from .models import ARXIV, CROSSREF, DATACITE, NormalizedPreprint
from .repositories import CLIENT, INSTITUTION, PUBLISHER, SUB_COLLECTION


DateSource = Callable[[dict], Optional[date]]


def _clean_markup(raw: str | None) -> str | None:
    if not raw:
        return None
    soup = BeautifulSoup(raw, "lxml")
    text = soup.get_text(" ", strip=True)
    return text or None


def _sentence_case(text: str | None) -> str | None:
    if not text:
        return None
    return text.strip().capitalize() or None


def date_from_parts(payload: dict | None) -> date | None:
    """
    Convert a Crossref ``{"date-parts": [[y, m, d]]}`` block into a date.
    Anything other than a complete, valid triple is unresolved.
    """

    if not isinstance(payload, dict):
        return None
    parts = payload.get("date-parts")
    if not parts or not isinstance(parts[0], list):
        return None
    numbers = parts[0]
    if len(numbers) != 3 or not all(isinstance(n, int) for n in numbers):
        return None
    try:
        return date(*numbers)
    except ValueError:
        return None


def date_from_timestamp(value: str | None) -> date | None:
    """
    Truncate an ISO 8601 timestamp to its calendar date.
    """

    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def first_resolved_date(record: dict, sources: Sequence[DateSource]) -> date | None:
    """
    Return the first date produced by ``sources``, tried in order.
    """

    for source in sources:
        resolved = source(record)
        if resolved is not None:
            return resolved
    return None


class RecordParser(ABC):
    """
    Parse one raw provider record into a NormalizedPreprint.
    """

    provider: str = ""

    @abstractmethod
    def parse(self, record: dict) -> NormalizedPreprint:
        ...

    def parse_many(self, records: Iterable[dict]) -> Tuple[List[NormalizedPreprint], int]:
        """
        Parse every record, skipping malformed ones.
        Returns the parsed records and the number skipped.
        """

        parsed: List[NormalizedPreprint] = []
        skipped = 0
        for record in records:
            try:
                parsed.append(self.parse(record))
            except MalformedRecord:
                skipped += 1
        return parsed, skipped


class CrossrefParser(RecordParser):
    provider = CROSSREF

    date_sources: Sequence[DateSource] = (
        lambda record: date_from_parts(record.get("posted")),
        lambda record: date_from_parts(record.get("created")),
    )

    def parse(self, record: dict) -> NormalizedPreprint:
        doi = normalize_doi(record.get("DOI"))
        if not doi:
            raise MalformedRecord("Crossref record without DOI")

        titles = record.get("title")
        if not isinstance(titles, list) or not titles or not titles[0]:
            raise MalformedRecord(f"Crossref record {doi} without title")

        return NormalizedPreprint(
            provider=self.provider,
            source_identifier=doi,
            title=titles[0],
            abstract=_clean_markup(record.get("abstract")),
            posted_date=first_resolved_date(record, self.date_sources),
            classifier_fields={
                INSTITUTION: self._institution(record.get("institution")),
                PUBLISHER: record.get("publisher"),
                SUB_COLLECTION: record.get("group-title"),
            },
        )

    def _institution(self, institutions: Any) -> Optional[str]:
        # The API has returned both a single object and a list here.
        if isinstance(institutions, dict):
            institutions = [institutions]
        if isinstance(institutions, list) and institutions:
            first = institutions[0]
            if isinstance(first, dict):
                return first.get("name")
        return None


class DataCiteParser(RecordParser):
    provider = DATACITE

    def parse(self, record: dict) -> NormalizedPreprint:
        attributes = record.get("attributes")
        if not isinstance(attributes, dict):
            raise MalformedRecord("DataCite record without attributes")

        doi = normalize_doi(attributes.get("doi") or record.get("id"))
        if not doi:
            raise MalformedRecord("DataCite record without DOI")

        title = self._title(attributes.get("titles"))
        if not title:
            raise MalformedRecord(f"DataCite record {doi} without title")

        return NormalizedPreprint(
            provider=self.provider,
            source_identifier=doi,
            title=title,
            abstract=self._abstract(attributes.get("descriptions")),
            posted_date=date_from_timestamp(attributes.get("created")),
            classifier_fields={CLIENT: self._client(record)},
        )

    def _title(self, titles: Any) -> Optional[str]:
        if not isinstance(titles, list):
            return None
        parts = [
            str(entry["title"]).strip()
            for entry in titles
            if isinstance(entry, dict) and entry.get("title")
        ]
        return _sentence_case(" ".join(parts))

    def _abstract(self, descriptions: Any) -> Optional[str]:
        if not isinstance(descriptions, list):
            return None
        for entry in descriptions:
            if not isinstance(entry, dict) or entry.get("descriptionType") != "Abstract":
                continue
            text = entry.get("description")
            if isinstance(text, list):
                text = " ".join(str(part) for part in text if part)
            return _sentence_case(text)
        return None

    def _client(self, record: dict) -> Optional[str]:
        client = (record.get("relationships") or {}).get("client") or {}
        data = client.get("data") or {}
        return data.get("id")


class ArxivParser(RecordParser):
    provider = ARXIV

    def parse(self, record: dict) -> NormalizedPreprint:
        arxiv_id = arxiv_id_from_url(record.get("id"))
        if not arxiv_id:
            raise MalformedRecord("arXiv entry without id")

        title = record.get("title")
        if not title:
            raise MalformedRecord(f"arXiv entry {arxiv_id} without title")

        return NormalizedPreprint(
            provider=self.provider,
            source_identifier=arxiv_id,
            title=title,
            abstract=record.get("summary") or None,
            posted_date=date_from_timestamp(record.get("published")),
        )
