"""Cleaning and reshaping of raw report tables.

Every function here returns a new DataFrame; inputs are left untouched.
The rule-driven entry point is :func:`apply_rules`; the reshaping helpers
(:func:`melt_dates`, :func:`derive_deltas`) cover the COVID time series.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence

import pandas as pd

from .config import NULL_TOKENS
from .errors import DateParseError

logger = logging.getLogger(__name__)

COERCIONS = ("numeric", "text", "bool", "date")

_TRUE_TOKENS = {"true", "t", "yes", "y", "1"}
_FALSE_TOKENS = {"false", "f", "no", "n", "0"}


@dataclass(frozen=True)
class ColumnRules:
    """Column transforms applied in order: drop, rename, coerce, derive.

    ``coerce`` maps a (renamed) column to one of ``COERCIONS``.  ``derived``
    maps a new column name to either a constant or a callable taking the
    frame and returning a Series.
    """

    drop: Sequence[str] = ()
    rename: Dict[str, str] = field(default_factory=dict)
    coerce: Dict[str, str] = field(default_factory=dict)
    derived: Dict[str, Any] = field(default_factory=dict)
    date_format: str = "%m/%d/%Y"


# ---------------------------------------------------------------------------
# Column helpers
# ---------------------------------------------------------------------------


def ensure_columns(df: pd.DataFrame, required: Iterable[str]) -> None:
    """Raise an error if the DataFrame lacks any of the required columns."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise KeyError(f"Missing expected columns: {missing}")


def parse_dates(series: pd.Series, fmt: str = "%m/%d/%Y") -> pd.Series:
    """Parse a text column of dates with an explicit format.

    Null cells become ``NaT``.  Any other cell that does not match ``fmt``
    raises :class:`DateParseError`; bad rows are never dropped silently.
    """
    text = series.astype("string").str.strip()
    parsed = pd.to_datetime(text, format=fmt, errors="coerce")
    bad = (parsed.isna() & text.notna() & (text != "")).fillna(False).astype(bool)
    if bad.any():
        examples = text[bad].unique()[:3].tolist()
        raise DateParseError(
            f"{int(bad.sum())} value(s) in column {series.name!r} do not match "
            f"{fmt!r}, e.g. {examples}"
        )
    return parsed


def _to_bool(series: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(series):
        return series.astype("boolean")
    lowered = series.astype("string").str.strip().str.lower()
    out = pd.Series(pd.NA, index=series.index, dtype="boolean")
    out[lowered.isin(_TRUE_TOKENS).fillna(False)] = True
    out[lowered.isin(_FALSE_TOKENS).fillna(False)] = False
    return out


def coerce_column(series: pd.Series, kind: str, *, date_format: str) -> pd.Series:
    """Convert a Series to one of the supported column kinds."""
    if kind == "numeric":
        return pd.to_numeric(series, errors="coerce")
    if kind == "text":
        return series.astype("string").str.strip()
    if kind == "bool":
        return _to_bool(series)
    if kind == "date":
        return parse_dates(series, date_format)
    raise ValueError(f"Unknown coercion {kind!r}; expected one of {COERCIONS}.")


def normalize_categories(
    series: pd.Series,
    *,
    valid: Optional[Iterable[str]] = None,
    null_tokens: Iterable[str] = NULL_TOKENS,
) -> pd.Series:
    """Upper-case a categorical text column and mark unknown codes missing.

    Source null tokens (``"(null)"``, blanks) become ``<NA>``.  When
    ``valid`` is given, values outside that vocabulary also become
    ``<NA>`` so they fall into the single missing-value group.
    """
    text = series.astype("string").str.strip().str.upper()
    text = text.mask(text.isin([tok.upper() for tok in null_tokens]))
    if valid is not None:
        allowed = [v.upper() for v in valid]
        text = text.where(text.isin(allowed))
    return text


def add_counter(df: pd.DataFrame, name: str = "incident", value: int = 1) -> pd.DataFrame:
    """Return a copy with a constant column used as a summable unit."""
    out = df.copy()
    out[name] = value
    return out


def apply_rules(df: pd.DataFrame, rules: ColumnRules) -> pd.DataFrame:
    """Apply a :class:`ColumnRules` set and return the cleaned copy."""
    out = df.drop(columns=list(rules.drop), errors="ignore").copy()
    out = out.rename(columns=rules.rename)

    ensure_columns(out, rules.coerce)
    for col, kind in rules.coerce.items():
        out[col] = coerce_column(out[col], kind, date_format=rules.date_format)

    for col, expr in rules.derived.items():
        out[col] = expr(out) if callable(expr) else expr

    logger.debug("Applied column rules; %d rows, columns=%s", len(out), list(out.columns))
    return out


# ---------------------------------------------------------------------------
# Reshaping
# ---------------------------------------------------------------------------


def melt_dates(
    df: pd.DataFrame,
    id_cols: Sequence[str],
    date_cols: Optional[Sequence[str]] = None,
    *,
    var_name: str = "date",
    value_name: str = "value",
    date_format: Optional[str] = None,
) -> pd.DataFrame:
    """Reshape one-column-per-date data into long ``(date, value)`` rows.

    Parameters
    ----------
    df : pd.DataFrame
        Wide table: identifier columns plus one column per date.
    id_cols : Sequence[str]
        Columns repeated on every output row.
    date_cols : Sequence[str], optional
        Columns to unpivot.  Defaults to every column not in ``id_cols``.
    var_name, value_name : str
        Names of the new date and value columns.
    date_format : str, optional
        If given, the new date column is parsed with :func:`parse_dates`.

    Returns
    -------
    pd.DataFrame
        ``len(df) * len(date_cols)`` rows and ``len(id_cols) + 2`` columns,
        ordered by input row and then by date column.
    """
    id_cols = list(id_cols)
    ensure_columns(df, id_cols)
    if date_cols is None:
        date_cols = [col for col in df.columns if col not in id_cols]
    date_cols = list(date_cols)
    ensure_columns(df, date_cols)

    long = pd.melt(
        df,
        id_vars=id_cols,
        value_vars=date_cols,
        var_name=var_name,
        value_name=value_name,
        ignore_index=False,
    )
    # melt stacks column by column; restore row-major order
    long = long.sort_index(kind="stable").reset_index(drop=True)

    if date_format is not None:
        # one parse per header
        headers = pd.Series(date_cols, name=var_name)
        parsed = parse_dates(headers, date_format)
        long[var_name] = long[var_name].map(dict(zip(date_cols, parsed)))

    logger.info(
        "Melted %d rows x %d date columns into %d long rows",
        len(df),
        len(date_cols),
        len(long),
    )
    return long


def derive_deltas(
    df: pd.DataFrame,
    value_cols: Sequence[str],
    *,
    group_cols: Sequence[str],
    order_col: str,
    prefix: str = "new_",
    clip_negative: bool = True,
) -> pd.DataFrame:
    """Add period-over-period differences of cumulative columns.

    The frame is sorted by ``group_cols`` then ``order_col``.  The first
    row of each group keeps its cumulative value (a delta from zero).
    With ``clip_negative`` a drop in the cumulative count, which is a
    reporting correction, becomes a delta of zero.

    A missing cumulative cell gets a missing delta, and the next known
    value is differenced against the last known one, so a gap never counts the
    running total twice.
    """
    group_cols = list(group_cols)
    ensure_columns(df, [*group_cols, order_col, *value_cols])

    out = df.sort_values([*group_cols, order_col], kind="stable").reset_index(drop=True)
    keys = [out[col] for col in group_cols]
    for col in value_cols:
        carried = out[col].groupby(keys, sort=False, dropna=False).ffill()
        previous = carried.groupby(keys, sort=False, dropna=False).shift()
        delta = (carried - previous.fillna(0)).where(out[col].notna())
        if clip_negative:
            delta = delta.clip(lower=0)
        out[f"{prefix}{col}"] = delta
    return out


def drop_inactive(df: pd.DataFrame, delta_cols: Sequence[str]) -> pd.DataFrame:
    """Drop rows where every delta column is zero or negative."""
    ensure_columns(df, delta_cols)
    active = (df[list(delta_cols)].fillna(0) > 0).any(axis=1)
    dropped = int((~active).sum())
    logger.info("Dropping %d inactive rows out of %d", dropped, len(df))
    return df.loc[active].reset_index(drop=True)

