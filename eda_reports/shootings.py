"""Shooting-incident report: NYPD historic shooting records.

Loads the incident CSV, cleans it into one row per reported victim with
a constant ``incident`` counter, and aggregates counts by year, month and
borough, perpetrator/victim age group and hour of day.  A linear trend of
yearly incidents is fitted on the years before
``config.SHOOTINGS_TREND_CUTOFF`` and projected over every year.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import pandas as pd

from .aggregation import RateSpec, add_time_bucket, aggregate
from .cleaning import ColumnRules, add_counter, apply_rules, normalize_categories
from .config import (
    AGE_GROUPS,
    DEFAULT_SEP,
    PER_100,
    SHOOTINGS_DATE_FORMAT,
    SHOOTINGS_DROP_COLUMNS,
    SHOOTINGS_SOURCE,
    SHOOTINGS_TREND_CUTOFF,
)
from .loader import load_csv
from .trend import fit_trend, with_trend

logger = logging.getLogger(__name__)

MURDER_RATE = RateSpec("murders_per_100_incidents", "murder", "incident", PER_100)


# ---------------------------------------------------------------------------
# Cleaning
# ---------------------------------------------------------------------------


def _occur_hour(df: pd.DataFrame) -> pd.Series:
    times = pd.to_datetime(
        df["occur_time"].astype("string").str.strip(), format="%H:%M:%S", errors="coerce"
    )
    return times.dt.hour.astype("Int64")


def clean_shootings(raw: pd.DataFrame) -> pd.DataFrame:
    """Turn the raw incident table into analysis-ready rows.

    * Drop location and coordinate columns.
    * Lower-case every column name.
    * Parse ``occur_date`` (month/day/year) and the murder flag.
    * Add ``incident`` (always 1), ``murder`` (0/1), ``year`` and
      ``occur_hour``.
    * Restrict age groups to the published vocabulary; anything else,
      including ``(null)``, becomes missing.
    """
    kept = [c for c in raw.columns if c not in SHOOTINGS_DROP_COLUMNS]
    rules = ColumnRules(
        drop=SHOOTINGS_DROP_COLUMNS,
        rename={c: c.strip().lower() for c in kept},
        coerce={
            "occur_date": "date",
            "statistical_murder_flag": "bool",
            "boro": "text",
        },
        derived={
            "murder": lambda d: d["statistical_murder_flag"].fillna(False).astype(int),
            "year": lambda d: d["occur_date"].dt.year.astype("Int64"),
        },
        date_format=SHOOTINGS_DATE_FORMAT,
    )
    df = add_counter(apply_rules(raw, rules), "incident")

    if "occur_time" in df.columns:
        df["occur_hour"] = _occur_hour(df)
    for col in ("perp_age_group", "vic_age_group"):
        if col in df.columns:
            df[col] = normalize_categories(df[col], valid=AGE_GROUPS)

    df = add_time_bucket(df, "occur_date", "M", name="month")
    logger.info("Cleaned %d shooting records", len(df))
    return df


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


def incidents_by_year(df: pd.DataFrame) -> pd.DataFrame:
    """Incidents and murders per calendar year with the murder share."""
    return aggregate(
        df, ["year"], {"incident": "sum", "murder": "sum"}, rates=[MURDER_RATE]
    )


def incidents_by_month_boro(df: pd.DataFrame) -> pd.DataFrame:
    return aggregate(df, ["month", "boro"], {"incident": "sum", "murder": "sum"})


def incidents_by_year_perp_age(df: pd.DataFrame) -> pd.DataFrame:
    """Yearly incidents per perpetrator age group; unknown ages stay grouped."""
    return aggregate(df, ["year", "perp_age_group"], {"incident": "sum"})


def incidents_by_victim_age(df: pd.DataFrame) -> pd.DataFrame:
    return aggregate(
        df, ["vic_age_group"], {"incident": "sum", "murder": "sum"}, rates=[MURDER_RATE]
    )


def incidents_by_hour(df: pd.DataFrame) -> pd.DataFrame:
    return aggregate(df, ["occur_hour"], {"incident": "sum"})


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def build_shootings_tables(
    incidents: pd.DataFrame, *, trend_cutoff: int = SHOOTINGS_TREND_CUTOFF
) -> Dict[str, object]:
    """Aggregate cleaned incidents and fit the yearly trend.

    Returns
    -------
    Dict[str, object]
        ``incidents``, ``by_year`` (with an ``incident_trend`` column),
        ``by_month_boro``, ``by_year_perp_age``, ``by_vic_age``,
        ``by_hour`` and the fitted ``year_trend`` model.
    """
    by_year = incidents_by_year(incidents)
    year_trend = fit_trend(
        by_year, "year", "incident", where=lambda d: d["year"] < trend_cutoff
    )

    payload: Dict[str, object] = {
        "incidents": incidents,
        "by_year": with_trend(by_year, year_trend),
        "by_month_boro": incidents_by_month_boro(incidents),
        "by_year_perp_age": incidents_by_year_perp_age(incidents),
        "by_vic_age": incidents_by_victim_age(incidents),
        "year_trend": year_trend,
    }
    if "occur_hour" in incidents.columns:
        payload["by_hour"] = incidents_by_hour(incidents)
    return payload


def run_shootings_report(
    source: str | Path = SHOOTINGS_SOURCE, *, sep: str = DEFAULT_SEP
) -> Dict[str, object]:
    """Load, clean and aggregate the shooting-incident data."""
    raw = load_csv(source, sep=sep)
    incidents = clean_shootings(raw)
    return build_shootings_tables(incidents)
