"""Tests for the keyed outer join."""
import pandas as pd
import pytest

from eda_reports.errors import KeyConflictError
from eda_reports.joining import join_tables

KEYS = ["uid", "date"]


@pytest.fixture
def cases():
    return pd.DataFrame(
        {
            "uid": [1, 1, 2],
            "date": pd.to_datetime(["2020-03-01", "2020-03-02", "2020-03-01"]),
            "county": ["Autauga", "Autauga", "Baldwin"],
            "cases": [3, 5, 7],
        }
    )


@pytest.fixture
def deaths():
    return pd.DataFrame(
        {
            "uid": [1, 1, 3],
            "date": pd.to_datetime(["2020-03-01", "2020-03-02", "2020-03-01"]),
            "county": ["Autauga", "Autauga", "Barbour"],
            "population": [50_000, 50_000, 25_000],
            "deaths": [0, 1, 2],
        }
    )


def test_every_key_appears_exactly_once(cases, deaths):
    joined = join_tables(cases, deaths, KEYS)

    left_keys = set(map(tuple, cases[KEYS].itertuples(index=False)))
    right_keys = set(map(tuple, deaths[KEYS].itertuples(index=False)))
    out_keys = list(map(tuple, joined[KEYS].itertuples(index=False)))

    assert len(out_keys) == len(set(out_keys))
    assert set(out_keys) == left_keys | right_keys


def test_shared_keys_have_both_sides_populated(cases, deaths):
    joined = join_tables(cases, deaths, KEYS)
    both = joined[joined["uid"] == 1]
    assert both[["cases", "deaths", "population"]].notna().all().all()
    assert both["deaths"].tolist() == [0, 1]


def test_one_sided_keys_leave_other_side_null(cases, deaths):
    joined = join_tables(cases, deaths, KEYS).set_index("uid")
    assert pd.isna(joined.loc[2, "deaths"])
    assert pd.isna(joined.loc[2, "population"])
    assert pd.isna(joined.loc[3, "cases"])


def test_overlapping_columns_are_coalesced(cases, deaths):
    joined = join_tables(cases, deaths, KEYS)
    assert [c for c in joined.columns if c.startswith("county")] == ["county"]
    assert set(joined["county"]) == {"Autauga", "Baldwin", "Barbour"}


def test_union_of_columns(cases, deaths):
    joined = join_tables(cases, deaths, KEYS)
    assert set(joined.columns) == {"uid", "date", "county", "cases", "population", "deaths"}


@pytest.mark.parametrize("side", ["left", "right"])
def test_duplicate_key_raises(cases, deaths, side):
    if side == "left":
        cases = pd.concat([cases, cases.iloc[[0]]], ignore_index=True)
    else:
        deaths = pd.concat([deaths, deaths.iloc[[1]]], ignore_index=True)
    with pytest.raises(KeyConflictError, match=side):
        join_tables(cases, deaths, KEYS)
