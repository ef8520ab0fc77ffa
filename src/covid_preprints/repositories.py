"""
Definitions and helpers for the preprint repositories we recognise.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import ClassifiedPreprint, NormalizedPreprint, RepositoryRule


INSTITUTION = "institution"
PUBLISHER = "publisher"
SUB_COLLECTION = "sub_collection"
CLIENT = "client"

SSRN = "SSRN"
ARXIV_LABEL = "arXiv"
OTHER_LABEL = "Other"


def _rules(field: str, pairs: Iterable[Tuple[str, str]]) -> Tuple[RepositoryRule, ...]:
    return tuple(RepositoryRule(field=field, value=value, label=label) for value, label in pairs)


# Institution rules come before publisher rules, and publisher rules before
# sub-collection rules. "Center for Open Science" hosts many servers and is
# deliberately absent from the publisher rules.
REPOSITORY_RULES: Sequence[RepositoryRule] = (
    _rules(
        INSTITUTION,
        [
            ("bioRxiv", "bioRxiv"),
            ("medRxiv", "medRxiv"),
        ],
    )
    + _rules(
        PUBLISHER,
        [
            ("Research Square", "Research Square"),
            ("Research Square Platform LLC", "Research Square"),
            ("MDPI AG", "Preprints.org"),
            ("Elsevier BV", SSRN),
            ("JMIR Publications Inc.", "JMIR"),
            ("Authorea, Inc.", "Authorea"),
            ("Copernicus GmbH", "Copernicus"),
            ("American Chemical Society (ACS)", "ChemRxiv"),
            ("Institute of Electrical and Electronics Engineers (IEEE)", "TechRxiv"),
            ("FapUNIFESP (SciELO)", "SciELO Preprints"),
            ("Beilstein Institut", "Beilstein Archives"),
            ("Qeios Ltd", "Qeios"),
        ],
    )
    + _rules(
        SUB_COLLECTION,
        [
            ("PsyArXiv", "PsyArXiv (OSF)"),
            ("SocArXiv", "SocArXiv (OSF)"),
            ("MetaArXiv", "MetaArXiv (OSF)"),
            ("EdArXiv", "EdArXiv (OSF)"),
            ("MarXiv", "MarXiv (OSF)"),
            ("NutriXiv", "NutriXiv (OSF)"),
            ("LawArXiv", "LawArXiv (OSF)"),
            ("EarthArXiv", "EarthArXiv (OSF)"),
            ("MediArXiv", "MediArXiv (OSF)"),
            ("AfricArXiv", "AfricArXiv (OSF)"),
            ("SportRxiv", "SportRxiv (OSF)"),
            ("EcoEvoRxiv", "EcoEvoRxiv (OSF)"),
            ("Open Science Framework", "OSF Preprints"),
        ],
    )
    + _rules(
        CLIENT,
        [
            ("cern.zenodo", "Zenodo"),
            ("figshare.ars", "Figshare"),
            ("rg.rg", "ResearchGate"),
        ],
    )
)


def classify(
    fields: Mapping[str, Optional[str]],
    rules: Sequence[RepositoryRule] = REPOSITORY_RULES,
) -> Optional[str]:
    """
    Return the label of the first rule whose field value matches exactly.
    """

    for rule in rules:
        if fields.get(rule.field) == rule.value:
            return rule.label
    return None


def classify_all(
    preprints: Iterable[NormalizedPreprint],
    rules: Sequence[RepositoryRule] = REPOSITORY_RULES,
    fixed_label: Optional[str] = None,
) -> Tuple[List[ClassifiedPreprint], int]:
    """
    Attach repository labels, dropping records no rule recognises.
    Returns the classified records and the number dropped.
    """

    classified: List[ClassifiedPreprint] = []
    dropped = 0
    for preprint in preprints:
        label = fixed_label or classify(preprint.classifier_fields, rules)
        if label is None:
            dropped += 1
            continue
        classified.append(ClassifiedPreprint.from_normalized(preprint, label))
    return classified, dropped


def group_minor_repositories(totals: Mapping[str, int], min_count: int) -> dict[str, str]:
    """
    Map each repository to itself, or to "Other" when its total is below min_count.
    """

    return {
        repository: repository if count >= min_count else OTHER_LABEL
        for repository, count in totals.items()
    }
