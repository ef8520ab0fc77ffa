"""
CSV persistence for the merged dataset and its aggregates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Sequence

import pandas as pd

from .models import MERGED_COLUMNS, MergedPreprint


DATASET_NAME = "covid19_preprints"


def dataset_path(output_dir: Path) -> Path:
    return output_dir / f"{DATASET_NAME}.csv"


def to_frame(preprints: Sequence[MergedPreprint]) -> pd.DataFrame:
    frame = pd.DataFrame([preprint.as_row() for preprint in preprints], columns=list(MERGED_COLUMNS))
    frame["posted_date"] = pd.to_datetime(frame["posted_date"])
    return frame


def write_dataset(preprints: Sequence[MergedPreprint], output_dir: Path) -> Path:
    """
    Write the merged dataset, replacing any previous run's file.
    """

    output_dir.mkdir(parents=True, exist_ok=True)
    destination = dataset_path(output_dir)
    frame = to_frame(preprints)
    frame.to_csv(destination, index=False, date_format="%Y-%m-%d")
    return destination


def read_dataset(path: Path) -> pd.DataFrame:
    frame = pd.read_csv(path, dtype={"doi": "string", "arxiv_id": "string"}, parse_dates=["posted_date"])
    missing = [column for column in MERGED_COLUMNS if column not in frame.columns]
    if missing:
        raise ValueError(f"{path} is missing columns: {', '.join(missing)}")
    return frame


def write_aggregates(aggregates: Dict[str, pd.DataFrame], output_dir: Path) -> list[Path]:
    """
    Write each aggregate table next to the dataset as ``<dataset>_<name>.csv``.
    """

    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for name, table in aggregates.items():
        destination = output_dir / f"{DATASET_NAME}_{name}.csv"
        table.to_csv(destination, index_label=table.index.name, date_format="%Y-%m-%d")
        written.append(destination)
    return written
