"""Grouping, reduction and derived-rate helpers.

Aggregates are sparse: only key combinations present in the input produce
a row.  Missing category values form their own group.  Rates are always
computed on the reduced rows, never reduced themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence

import pandas as pd

from .cleaning import ensure_columns
from .errors import BandCoverageError

logger = logging.getLogger(__name__)

REDUCTIONS = ("sum", "max", "count")

# Marker for a rate whose denominator is zero or missing
UNDEFINED = pd.NA

_BUCKET_FREQS = {"M": "month", "Y": "year"}


@dataclass(frozen=True)
class RateSpec:
    """``name = numerator / denominator * scale`` on an aggregate row."""

    name: str
    numerator: str
    denominator: str
    scale: float = 1.0


@dataclass(frozen=True)
class Band:
    """Half-open band ``lower < value <= upper``; ``None`` is unbounded."""

    label: str
    lower: Optional[float] = None
    upper: Optional[float] = None

    def contains(self, values: pd.Series) -> pd.Series:
        mask = values.notna()
        if self.lower is not None:
            mask &= values > self.lower
        if self.upper is not None:
            mask &= values <= self.upper
        return mask.fillna(False).astype(bool)


# ---------------------------------------------------------------------------
# Derived keys
# ---------------------------------------------------------------------------


def add_time_bucket(
    df: pd.DataFrame,
    date_col: str,
    freq: str = "M",
    name: Optional[str] = None,
) -> pd.DataFrame:
    """Add a column holding ``date_col`` floored to its month or year.

    Parameters
    ----------
    df : pd.DataFrame
        Input with a datetime column.
    date_col : str
        Column to truncate.
    freq : {"M", "Y"}
        Bucket granularity.
    name : str, optional
        Output column; defaults to ``"month"`` or ``"year"``.
    """
    if freq not in _BUCKET_FREQS:
        raise ValueError(f"Unsupported bucket frequency {freq!r}; use 'M' or 'Y'.")
    ensure_columns(df, [date_col])
    out = df.copy()
    dates = pd.to_datetime(out[date_col])
    out[name or _BUCKET_FREQS[freq]] = dates.dt.to_period(freq).dt.to_timestamp()
    return out


def assign_bands(
    df: pd.DataFrame,
    col: str,
    bands: Sequence[Band],
    name: str = "band",
) -> pd.DataFrame:
    """Label every row with the single band its ``col`` value falls in.

    Raises
    ------
    BandCoverageError
        If any value (missing values included) matches no band, or the
        bands overlap so that a value matches more than one.
    """
    ensure_columns(df, [col])
    if not bands:
        raise BandCoverageError("No bands configured.")

    values = pd.to_numeric(df[col], errors="coerce")
    masks = [band.contains(values) for band in bands]
    hits = sum(mask.astype(int) for mask in masks)

    unmatched = hits == 0
    if unmatched.any():
        examples = df.loc[unmatched, col].head(3).tolist()
        raise BandCoverageError(
            f"{int(unmatched.sum())} value(s) of {col!r} fall in no band, e.g. {examples}"
        )
    overlapping = hits > 1
    if overlapping.any():
        examples = df.loc[overlapping, col].head(3).tolist()
        raise BandCoverageError(
            f"{int(overlapping.sum())} value(s) of {col!r} fall in more than one "
            f"band, e.g. {examples}"
        )

    labels = pd.Series(pd.NA, index=df.index, dtype="object")
    for band, mask in zip(bands, masks):
        labels[mask] = band.label

    out = df.copy()
    out[name] = pd.Categorical(
        labels, categories=[band.label for band in bands], ordered=True
    )
    return out


def bands_from_config(rows: Iterable[tuple]) -> list[Band]:
    """Build Band objects from ``(label, lower, upper)`` tuples."""
    return [Band(label, lower, upper) for label, lower, upper in rows]


# ---------------------------------------------------------------------------
# Reduction
# ---------------------------------------------------------------------------


def add_rate(df: pd.DataFrame, spec: RateSpec) -> pd.DataFrame:
    """Add ``spec.name``; a zero or missing denominator yields ``UNDEFINED``."""
    ensure_columns(df, [spec.numerator, spec.denominator])
    out = df.copy()
    num = pd.to_numeric(out[spec.numerator], errors="coerce").astype("Float64")
    den = pd.to_numeric(out[spec.denominator], errors="coerce").astype("Float64")
    undefined = (den.isna() | (den == 0)).fillna(True).astype(bool)
    rate = num / den.mask(undefined) * spec.scale
    out[spec.name] = rate.mask(undefined, UNDEFINED)
    return out


def aggregate(
    df: pd.DataFrame,
    by: Sequence[str],
    reductions: Dict[str, str],
    rates: Sequence[RateSpec] = (),
) -> pd.DataFrame:
    """Group ``df`` by ``by`` and reduce numeric columns.

    Parameters
    ----------
    df : pd.DataFrame
        Input rows.
    by : Sequence[str]
        Grouping columns; derive time buckets with :func:`add_time_bucket`
        and bands with :func:`assign_bands` first.
    reductions : Dict[str, str]
        Column -> one of ``"sum"``, ``"max"``, ``"count"``.  The output
        column keeps the input name.
    rates : Sequence[RateSpec]
        Derived rates computed on the reduced rows.

    Returns
    -------
    pd.DataFrame
        One row per key combination present in ``df``, sorted by key,
        with missing key values kept as their own group.
    """
    by = list(by)
    bad = {col: fn for col, fn in reductions.items() if fn not in REDUCTIONS}
    if bad:
        raise ValueError(f"Unsupported reductions {bad}; allowed: {REDUCTIONS}.")
    ensure_columns(df, [*by, *reductions])

    grouped = df.groupby(by, dropna=False, observed=True, sort=True).agg(
        **{col: (col, fn) for col, fn in reductions.items()}
    )
    out = grouped.reset_index()

    for spec in rates:
        out = add_rate(out, spec)

    logger.debug("Aggregated %d rows by %s into %d groups", len(df), by, len(out))
    return out
