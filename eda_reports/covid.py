"""COVID-19 report: US county case and death time series.

The JHU CSSE files hold one row per county and one column per day of
cumulative counts; the deaths file also carries the county population.
Both are melted to ``(uid, date)`` rows, outer-joined, turned into daily
new counts, and then aggregated by state, month and population tier.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Sequence

import pandas as pd

from .aggregation import (
    RateSpec,
    add_time_bucket,
    aggregate,
    assign_bands,
    bands_from_config,
)
from .cleaning import ColumnRules, apply_rules, derive_deltas, drop_inactive, melt_dates
from .config import (
    COVID_CASES_SOURCE,
    COVID_DATE_FORMAT,
    COVID_DEATHS_SOURCE,
    COVID_DROP_COLUMNS,
    COVID_DROP_INACTIVE_ROWS,
    COVID_RENAME,
    DEFAULT_SEP,
    PER_100,
    PER_100K,
    POPULATION_TIERS,
)
from .joining import join_tables
from .loader import load_csvs
from .trend import fit_trend, with_trend

logger = logging.getLogger(__name__)

KEY_COLUMNS = ["uid", "date"]
REGION_COLUMNS = ["uid", "county", "state"]

CASES_PER_100K = RateSpec("cases_per_100k", "cases", "population", PER_100K)
DEATHS_PER_100K = RateSpec("deaths_per_100k", "deaths", "population", PER_100K)
DEATHS_PER_100_CASES = RateSpec("deaths_per_100_cases", "deaths", "cases", PER_100)
NEW_DEATHS_PER_100_CASES = RateSpec(
    "deaths_per_100_cases", "new_deaths", "new_cases", PER_100
)


# ---------------------------------------------------------------------------
# Reshaping
# ---------------------------------------------------------------------------


def to_long(raw: pd.DataFrame, value_name: str) -> pd.DataFrame:
    """Drop geography columns, rename ids and melt the date columns.

    Every column left after the renamed id columns (and ``population``
    when present) must be a ``m/d/yy`` date header.
    """
    wide = apply_rules(raw, ColumnRules(drop=COVID_DROP_COLUMNS, rename=COVID_RENAME))
    id_cols = [c for c in (*REGION_COLUMNS, "population") if c in wide.columns]
    return melt_dates(
        wide,
        id_cols,
        var_name="date",
        value_name=value_name,
        date_format=COVID_DATE_FORMAT,
    )


def build_daily(
    cases_raw: pd.DataFrame,
    deaths_raw: pd.DataFrame,
    *,
    drop_inactive_rows: bool = COVID_DROP_INACTIVE_ROWS,
) -> pd.DataFrame:
    """Joined long table with cumulative and daily new counts per county."""
    cases = to_long(cases_raw, "cases")
    deaths = to_long(deaths_raw, "deaths")
    daily = join_tables(cases, deaths, KEY_COLUMNS)
    daily = derive_deltas(
        daily, ["cases", "deaths"], group_cols=["uid"], order_col="date"
    )
    if drop_inactive_rows:
        daily = drop_inactive(daily, ["new_cases", "new_deaths"])
    logger.info("Built %d county-day rows", len(daily))
    return daily


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


def state_by_date(daily: pd.DataFrame) -> pd.DataFrame:
    """Sum every county of a state per day."""
    return aggregate(
        daily,
        ["state", "date"],
        {
            "cases": "sum",
            "deaths": "sum",
            "new_cases": "sum",
            "new_deaths": "sum",
            "population": "sum",
        },
        rates=[CASES_PER_100K, DEATHS_PER_100K],
    )


def us_by_month(daily: pd.DataFrame) -> pd.DataFrame:
    """National new cases and deaths per month."""
    monthly = add_time_bucket(daily, "date", "M")
    return aggregate(
        monthly,
        ["month"],
        {"new_cases": "sum", "new_deaths": "sum"},
        rates=[NEW_DEATHS_PER_100_CASES],
    )


def state_by_month(by_date: pd.DataFrame) -> pd.DataFrame:
    """Monthly new counts per state with end-of-month cumulative rates.

    Takes the output of :func:`state_by_date`; cumulative counts and the
    (constant) population are reduced with ``max``.
    """
    monthly = add_time_bucket(by_date, "date", "M")
    return aggregate(
        monthly,
        ["state", "month"],
        {
            "new_cases": "sum",
            "new_deaths": "sum",
            "cases": "max",
            "deaths": "max",
            "population": "max",
        },
        rates=[CASES_PER_100K, DEATHS_PER_100K],
    )


def county_totals(
    daily: pd.DataFrame, tiers: Sequence[tuple] = POPULATION_TIERS
) -> pd.DataFrame:
    """Latest cumulative counts per county, labelled with a population tier."""
    totals = aggregate(
        daily,
        REGION_COLUMNS,
        {"cases": "max", "deaths": "max", "population": "max"},
        rates=[CASES_PER_100K, DEATHS_PER_100K, DEATHS_PER_100_CASES],
    )
    return assign_bands(
        totals, "population", bands_from_config(tiers), name="population_tier"
    )


def tier_totals(counties: pd.DataFrame) -> pd.DataFrame:
    """Sum county totals within each population tier."""
    tiers = aggregate(
        counties,
        ["population_tier"],
        {"uid": "count", "cases": "sum", "deaths": "sum", "population": "sum"},
        rates=[CASES_PER_100K, DEATHS_PER_100K, DEATHS_PER_100_CASES],
    )
    return tiers.rename(columns={"uid": "counties"})


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def build_covid_tables(daily: pd.DataFrame) -> Dict[str, object]:
    """Aggregate the daily table and fit the population and time trends.

    Returns
    -------
    Dict[str, object]
        ``daily``, ``state_by_date``, ``state_by_month``, ``us_by_month``
        (with ``new_deaths_trend``), ``county_totals`` (with
        ``deaths_per_100k_trend``), ``tier_totals`` and the fitted
        ``population_trend`` and ``monthly_trend`` models.
    """
    by_date = state_by_date(daily)
    monthly = us_by_month(daily)
    counties = county_totals(daily)

    population_trend = fit_trend(
        counties,
        "population",
        "deaths_per_100k",
        where=lambda d: d["population"] > 0,
    )
    monthly_trend = fit_trend(monthly, "month", "new_deaths")

    return {
        "daily": daily,
        "state_by_date": by_date,
        "state_by_month": state_by_month(by_date),
        "us_by_month": with_trend(monthly, monthly_trend),
        "county_totals": with_trend(counties, population_trend),
        "tier_totals": tier_totals(counties),
        "population_trend": population_trend,
        "monthly_trend": monthly_trend,
    }


def run_covid_report(
    cases_source: str | Path = COVID_CASES_SOURCE,
    deaths_source: str | Path = COVID_DEATHS_SOURCE,
    *,
    sep: str = DEFAULT_SEP,
) -> Dict[str, object]:
    """Load both JHU files and build every COVID table."""
    raw = load_csvs({"cases": cases_source, "deaths": deaths_source}, sep=sep)
    daily = build_daily(raw["cases"], raw["deaths"])
    return build_covid_tables(daily)
