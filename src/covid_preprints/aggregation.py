"""
Daily, weekly and cumulative counts per repository.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List

import pandas as pd

from .repositories import OTHER_LABEL, group_minor_repositories


def bucketed_repositories(frame: pd.DataFrame, min_count: int) -> pd.Series:
    """
    Repository label per row, with low-volume repositories folded into "Other".
    """

    totals = frame["repository"].value_counts().to_dict()
    return frame["repository"].map(group_minor_repositories(totals, min_count))


def _column_order(totals: pd.Series) -> List[str]:
    ordered = sorted(
        (column for column in totals.index if column != OTHER_LABEL),
        key=lambda column: (-totals[column], column.lower()),
    )
    if OTHER_LABEL in totals.index:
        ordered.append(OTHER_LABEL)
    return ordered


def repository_totals(frame: pd.DataFrame, min_count: int) -> pd.Series:
    if frame.empty:
        return pd.Series(dtype="int64")
    counts = bucketed_repositories(frame, min_count).value_counts()
    return counts.reindex(_column_order(counts))


def daily_counts(frame: pd.DataFrame, start: date, cutoff: date, min_count: int) -> pd.DataFrame:
    """
    One row per calendar day from ``start`` to ``cutoff``, one column per repository.
    """

    index = pd.date_range(start, cutoff, freq="D", name="posted_date")
    if frame.empty:
        return pd.DataFrame(index=index)

    labels = bucketed_repositories(frame, min_count).rename("repository")
    days = pd.to_datetime(frame["posted_date"]).dt.normalize().rename("posted_date")
    daily = pd.crosstab(days, labels).reindex(index, fill_value=0)
    daily.columns.name = None
    return daily[_column_order(daily.sum())]


def weekly_counts(daily: pd.DataFrame) -> pd.DataFrame:
    """
    Sum daily counts into Monday-to-Sunday weeks, labelled by their Monday.
    """

    week_start = daily.index.to_period("W-SUN").start_time
    weekly = daily.groupby(week_start).sum()
    weekly.index.name = "week_start"
    return weekly


def cumulative_counts(daily: pd.DataFrame) -> pd.DataFrame:
    return daily.cumsum()


def build_aggregates(
    frame: pd.DataFrame, start: date, cutoff: date, min_count: int
) -> Dict[str, pd.DataFrame]:
    daily = daily_counts(frame, start, cutoff, min_count)
    return {
        "day": daily,
        "week": weekly_counts(daily),
        "cumulative": cumulative_counts(daily),
    }
