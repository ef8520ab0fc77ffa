from datetime import date

from covid_preprints.dedup import collapse_titles, collapse_versions, deduplicate
from covid_preprints.identifiers import canonical_identifier
from covid_preprints.models import ARXIV, CROSSREF, DATACITE


def test_canonical_identifier_strips_version_suffixes():
    assert canonical_identifier("10.1000/abc.v2", CROSSREF) == "10.1000/abc"
    assert canonical_identifier("10.21203/rs.3.rs-16003/v3", CROSSREF) == "10.21203/rs.3.rs-16003"
    assert canonical_identifier("https://doi.org/10.20944/PREPRINTS202003.0001.V1", CROSSREF) == (
        "10.20944/preprints202003.0001"
    )
    assert canonical_identifier("10.6084/m9.figshare.123.v4", DATACITE) == "10.6084/m9.figshare.123"
    assert canonical_identifier("2003.00001v2", ARXIV) == "2003.00001"
    assert canonical_identifier("10.1101/2020.02.01.000001", CROSSREF) == "10.1101/2020.02.01.000001"


def test_version_stripping_scenario(make_classified):
    rows = [
        make_classified("10.1000/abc.v2", date(2020, 3, 1), title="v2"),
        make_classified("10.1000/abc.v1", date(2020, 2, 15), title="v1"),
    ]

    collapsed = collapse_versions(rows)

    assert len(collapsed) == 1
    assert collapsed[0].posted_date == date(2020, 2, 15)


def test_earliest_date_selection_is_deterministic(make_classified):
    rows = [
        make_classified("10.1000/x.v1", date(2020, 3, 5), title="first"),
        make_classified("10.1000/x.v2", date(2020, 2, 20), title="second"),
        make_classified("10.1000/x.v3", date(2020, 2, 20), title="third"),
    ]

    collapsed = collapse_versions(rows)

    assert len(collapsed) == 1
    assert collapsed[0].posted_date == date(2020, 2, 20)
    assert collapsed[0].title == "second"


def test_undated_rows_sort_last(make_classified):
    rows = [
        make_classified("10.1000/y.v1", None, title="undated"),
        make_classified("10.1000/y.v2", date(2020, 4, 1), title="dated"),
    ]
    assert collapse_versions(rows)[0].title == "dated"


def test_title_collapse_per_repository(make_classified):
    rows = [
        make_classified("10.2139/ssrn.1", date(2020, 4, 2), repository="SSRN", title="Same"),
        make_classified("10.2139/ssrn.2", date(2020, 4, 1), repository="SSRN", title="Same"),
        make_classified("10.1101/3", date(2020, 3, 1), repository="medRxiv", title="Same"),
        make_classified("10.2139/ssrn.4", date(2020, 3, 1), repository="SSRN", title="same"),
    ]

    collapsed = collapse_titles(rows)

    assert [row.source_identifier for row in collapsed] == [
        "10.2139/ssrn.2",
        "10.1101/3",
        "10.2139/ssrn.4",
    ]


def test_deduplicate_is_idempotent_and_unique(make_classified):
    rows = [
        make_classified("10.1000/a.v1", date(2020, 2, 1), title="A"),
        make_classified("10.1000/a.v2", date(2020, 2, 3), title="A revised"),
        make_classified("10.1000/b", date(2020, 2, 5), title="A"),
        make_classified("10.1000/c", None, title="C"),
        make_classified("10.1000/d", date(2020, 2, 2), title="C"),
    ]

    once = deduplicate(rows)
    twice = deduplicate(once)

    assert once == twice
    keys = [canonical_identifier(row.source_identifier, row.provider) for row in once]
    assert len(keys) == len(set(keys))
    pairs = [(row.repository, row.title) for row in once]
    assert len(pairs) == len(set(pairs))
    assert [row.source_identifier for row in once] == ["10.1000/a.v1", "10.1000/d"]
