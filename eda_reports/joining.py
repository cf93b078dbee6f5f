"""Key-based outer join of two report tables."""

from __future__ import annotations

import logging
from typing import List, Sequence

import pandas as pd

from .cleaning import ensure_columns
from .errors import KeyConflictError

logger = logging.getLogger(__name__)

_RIGHT_SUFFIX = "__right"


def check_unique_keys(df: pd.DataFrame, on: Sequence[str], *, side: str) -> None:
    """Raise KeyConflictError if ``on`` does not identify rows uniquely."""
    dupes = df.duplicated(subset=list(on), keep=False)
    if dupes.any():
        sample = df.loc[dupes, list(on)].drop_duplicates().head(3)
        raise KeyConflictError(
            f"{side} table has {int(dupes.sum())} rows sharing a key on {list(on)}; "
            f"e.g. {sample.to_dict(orient='records')}"
        )


def join_tables(
    left: pd.DataFrame,
    right: pd.DataFrame,
    on: Sequence[str],
    *,
    how: str = "outer",
) -> pd.DataFrame:
    """Join two tables on a shared key and return the union of columns.

    Parameters
    ----------
    left, right : pd.DataFrame
        Inputs; ``on`` must identify rows uniquely in each.
    on : Sequence[str]
        Key columns, e.g. ``["uid", "date"]``.
    how : str, optional
        Join type; defaults to ``"outer"`` so keys found in only one input
        are kept with the other side's columns left null.

    Returns
    -------
    pd.DataFrame
        One row per key, sorted by key.  A non-key column present in both
        inputs appears once, taking the left value and falling back to the
        right one where the left is missing.

    Raises
    ------
    KeyConflictError
        If either input has duplicated key tuples.
    """
    on = list(on)
    ensure_columns(left, on)
    ensure_columns(right, on)
    check_unique_keys(left, on, side="left")
    check_unique_keys(right, on, side="right")

    shared: List[str] = [c for c in left.columns if c in right.columns and c not in on]
    merged = left.merge(
        right,
        on=on,
        how=how,
        suffixes=("", _RIGHT_SUFFIX),
        validate="one_to_one",
        sort=True,
    )
    for col in shared:
        right_col = f"{col}{_RIGHT_SUFFIX}"
        merged[col] = merged[col].combine_first(merged[right_col])
        merged = merged.drop(columns=[right_col])

    logger.info(
        "Joined %d left and %d right rows on %s into %d rows",
        len(left),
        len(right),
        on,
        len(merged),
    )
    return merged.reset_index(drop=True)
