"""Shared builders for raw provider records and classified rows."""

from __future__ import annotations

from datetime import date
from typing import Optional

import pytest

from covid_preprints.models import CROSSREF, ClassifiedPreprint


def crossref_item(
    doi: str = "10.1101/2020.02.01.000001",
    title: str = "SARS-CoV-2 spike protein structure",
    abstract: Optional[str] = None,
    posted: Optional[list] = None,
    created: Optional[list] = None,
    institution: Optional[str] = "bioRxiv",
    publisher: Optional[str] = "Cold Spring Harbor Laboratory",
    group_title: Optional[str] = None,
) -> dict:
    item: dict = {"DOI": doi, "title": [title], "publisher": publisher}
    if abstract is not None:
        item["abstract"] = abstract
    if posted is not None:
        item["posted"] = {"date-parts": [posted]}
    if created is not None:
        item["created"] = {"date-parts": [created], "date-time": "2020-02-01T00:00:00Z"}
    if institution is not None:
        item["institution"] = [{"name": institution}]
    if group_title is not None:
        item["group-title"] = group_title
    return item


def datacite_item(
    doi: str = "10.5281/zenodo.3700001",
    titles: Optional[list] = None,
    descriptions: Optional[list] = None,
    created: str = "2020-02-10T09:30:00.000Z",
    client: Optional[str] = "cern.zenodo",
) -> dict:
    record: dict = {
        "id": doi,
        "type": "dois",
        "attributes": {
            "doi": doi,
            "titles": titles if titles is not None else [{"title": "COVID-19 CASE REPORT"}],
            "descriptions": descriptions or [],
            "created": created,
        },
    }
    if client is not None:
        record["relationships"] = {"client": {"data": {"id": client, "type": "clients"}}}
    return record


def arxiv_entry(
    arxiv_id: str = "2002.00020v1",
    title: str = "Modelling the 2019-nCoV outbreak",
    summary: str = "We fit an SEIR model to early case counts.",
    published: str = "2020-02-20T17:59:59Z",
) -> dict:
    return {
        "id": f"http://arxiv.org/abs/{arxiv_id}",
        "title": title,
        "summary": summary,
        "published": published,
    }


def classified(
    identifier: str,
    posted: Optional[date],
    repository: str = "bioRxiv",
    title: str = "COVID-19 title",
    provider: str = CROSSREF,
) -> ClassifiedPreprint:
    return ClassifiedPreprint(
        provider=provider,
        source_identifier=identifier,
        title=title,
        repository=repository,
        posted_date=posted,
    )


@pytest.fixture
def make_classified():
    return classified
