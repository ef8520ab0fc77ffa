from datetime import date

import httpx
import pytest

from covid_preprints.models import ARXIV, DATACITE, HarvestReport
from covid_preprints.parsers import ArxivParser, CrossrefParser, DataCiteParser
from covid_preprints.pipeline import harvest_arxiv, harvest_crossref, merge, process_records
from covid_preprints.settings import HarvestSettings

from conftest import arxiv_entry, crossref_item, datacite_item


def test_process_records_counts_every_stage():
    records = [
        crossref_item(doi="10.1101/a", posted=[2020, 2, 1]),
        crossref_item(doi="10.1101/b", title="Malaria vectors", posted=[2020, 2, 1]),
        crossref_item(doi="10.1/c", institution=None, publisher="Elsevier", posted=[2020, 2, 1]),
        crossref_item(doi="10.20944/preprints1.v2", institution=None, publisher="MDPI AG", posted=[2020, 3, 1]),
        crossref_item(doi="10.20944/preprints1.v1", institution=None, publisher="MDPI AG", posted=[2020, 2, 15]),
        crossref_item(doi="10.1101/d", posted=[2020, 2, 9]),
        {"title": ["COVID-19 without DOI"]},
    ]

    rows, report = process_records(records, CrossrefParser())

    assert [row.source_identifier for row in rows] == ["10.1101/a", "10.20944/preprints1.v1"]
    assert report.fetched == 7
    assert report.malformed == 1
    assert report.off_topic == 1
    assert report.unclassified == 1
    assert report.version_duplicates == 1
    assert report.title_duplicates == 1
    assert report.output == 2


def test_end_to_end_merge_scenario():
    crossref_rows, _ = process_records(
        [crossref_item(doi="10.1101/x", posted=[2020, 2, 1])], CrossrefParser()
    )
    datacite_rows, _ = process_records(
        [datacite_item(doi="10.5281/zenodo.y", created="2020-02-10T00:00:00Z")], DataCiteParser()
    )
    arxiv_rows, _ = process_records(
        [arxiv_entry(arxiv_id="2002.99999v1", published="2020-02-20T00:00:00Z")],
        ArxivParser(),
        fixed_label="arXiv",
    )
    report = HarvestReport(cutoff=date(2020, 2, 15))

    merged = merge([crossref_rows, datacite_rows, arxiv_rows], date(2020, 2, 15), report)

    assert [(row.repository, row.doi, row.arxiv_id) for row in merged] == [
        ("bioRxiv", "10.1101/x", None),
        ("Zenodo", "10.5281/zenodo.y", None),
    ]
    assert report.after_cutoff_excluded == 1
    assert report.total == 2


def test_merge_projects_arxiv_identifier_and_drops_undated(make_classified):
    rows = [
        make_classified("2003.00001v1", date(2020, 3, 1), repository="arXiv", provider=ARXIV),
        make_classified("10.5281/zenodo.1", None, repository="Zenodo", provider=DATACITE),
        make_classified("10.5281/zenodo.2", date(2020, 3, 31), repository="Zenodo", provider=DATACITE),
    ]
    report = HarvestReport(cutoff=date(2020, 3, 31))

    merged = merge([rows], date(2020, 3, 31), report)

    assert merged[0].arxiv_id == "2003.00001v1"
    assert merged[0].doi is None
    assert merged[1].posted_date == date(2020, 3, 31)
    assert all(row.posted_date is not None and row.posted_date <= report.cutoff for row in merged)
    assert report.undated_excluded == 1


def test_cross_provider_duplicates_are_kept(make_classified):
    same_title = "COVID-19 shared work"
    merged = merge(
        [
            [make_classified("10.1101/z", date(2020, 3, 1), title=same_title)],
            [make_classified("2003.1v1", date(2020, 3, 1), repository="arXiv", title=same_title, provider=ARXIV)],
        ],
        date(2020, 12, 31),
    )
    assert len(merged) == 2


@pytest.mark.asyncio
async def test_harvest_crossref_corrects_ssrn_before_title_collapse():
    posted = {
        "message": {
            "items": [crossref_item(doi="10.1101/a", posted=[2020, 2, 1])],
            "next-cursor": "end",
        }
    }
    ssrn = {
        "message": {
            "items": [
                crossref_item(
                    doi="10.2139/ssrn.1",
                    title="COVID-19 and markets",
                    institution=None,
                    publisher="Elsevier BV",
                    created=[2020, 3, 1],
                ),
                crossref_item(
                    doi="10.2139/ssrn.2",
                    title="COVID-19 and markets",
                    institution=None,
                    publisher="Elsevier BV",
                    created=[2020, 2, 20],
                ),
            ],
            "next-cursor": "end",
        }
    }
    landing = {
        "/10.2139/ssrn.1": '<meta name="citation_publication_date" content="2020/03/02">',
        "/10.2139/ssrn.2": '<meta name="citation_publication_date" content="2020/03/10">',
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "doi.org":
            return httpx.Response(200, text=landing[request.url.path])
        if request.url.params["cursor"] == "end":
            return httpx.Response(200, json={"message": {"items": []}})
        if request.url.params["filter"].startswith("prefix:"):
            return httpx.Response(200, json=ssrn)
        return httpx.Response(200, json=posted)

    settings = HarvestSettings(cutoff=date(2020, 6, 30))
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        rows, report = await harvest_crossref(client, settings)

    ssrn_rows = [row for row in rows if row.repository == "SSRN"]
    assert len(ssrn_rows) == 1
    assert ssrn_rows[0].source_identifier == "10.2139/ssrn.1"
    assert ssrn_rows[0].posted_date == date(2020, 3, 2)
    assert report.dates_corrected == 2
    assert report.title_duplicates == 1


ARXIV_FEED = """<feed xmlns="http://www.w3.org/2005/Atom" xmlns:opensearch="http://a9.com/-/spec/opensearch/1.1/">
  <opensearch:totalResults>2</opensearch:totalResults>
  <entry>
    <id>http://arxiv.org/abs/0311001v1</id>
    <published>2003-11-01T00:00:00Z</published>
    <title>Transmission dynamics of SARS-CoV</title>
    <summary>The 2003 outbreak.</summary>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/2003.00001v1</id>
    <published>2020-03-01T08:00:00Z</published>
    <title>COVID-19 mobility</title>
    <summary>Mobility data.</summary>
  </entry>
</feed>
"""


@pytest.mark.asyncio
async def test_arxiv_harvest_keeps_only_the_query_range():
    queries = []

    def handler(request: httpx.Request) -> httpx.Response:
        queries.append(request.url.params["search_query"])
        return httpx.Response(200, text=ARXIV_FEED)

    settings = HarvestSettings(cutoff=date(2020, 6, 30), arxiv_delay=0)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        rows, _ = await harvest_arxiv(client, settings)

    report = HarvestReport(cutoff=settings.cutoff)
    merged = merge([rows], settings.cutoff, report, start=settings.start_date)

    assert "submittedDate:[202001010000 TO 202006302359]" in queries[0]
    assert [row.arxiv_id for row in merged] == ["2003.00001v1"]
    assert all(settings.start_date <= row.posted_date <= settings.cutoff for row in merged)
    assert report.before_start_excluded == 1
    assert report.total == 1
