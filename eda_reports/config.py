"""
Configuration constants for the shooting-incident and COVID-19 reports.
"""

from typing import Dict, List, Tuple

# ======================================================
#  DATA SOURCES
# ======================================================
SHOOTINGS_SOURCE: str = (
    "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD"
)

_JHU_BASE: str = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series/"
)
COVID_CASES_SOURCE: str = _JHU_BASE + "time_series_covid19_confirmed_US.csv"
COVID_DEATHS_SOURCE: str = _JHU_BASE + "time_series_covid19_deaths_US.csv"

DEFAULT_SEP: str = ","

# Single blocking GET per source; seconds
REQUEST_TIMEOUT: int = 60

# ======================================================
#  SHOOTINGS
# ======================================================
SHOOTINGS_DATE_FORMAT: str = "%m/%d/%Y"

SHOOTINGS_DROP_COLUMNS: List[str] = [
    "LOC_OF_OCCUR_DESC",
    "JURISDICTION_CODE",
    "LOC_CLASSFCTN_DESC",
    "LOCATION_DESC",
    "X_COORD_CD",
    "Y_COORD_CD",
    "Latitude",
    "Longitude",
    "Lon_Lat",
]

AGE_GROUPS: List[str] = ["<18", "18-24", "25-44", "45-64", "65+", "UNKNOWN"]
NULL_TOKENS: Tuple[str, ...] = ("", "(NULL)", "NULL", "NAN", "NONE")

# Yearly incident counts rose sharply from 2020; fit the trend on the years before
SHOOTINGS_TREND_CUTOFF: int = 2020

# ======================================================
#  COVID-19
# ======================================================
COVID_DATE_FORMAT: str = "%m/%d/%y"

COVID_DROP_COLUMNS: List[str] = [
    "iso2",
    "iso3",
    "code3",
    "FIPS",
    "Country_Region",
    "Lat",
    "Long_",
    "Combined_Key",
]
COVID_RENAME: Dict[str, str] = {
    "UID": "uid",
    "Admin2": "county",
    "Province_State": "state",
    "Population": "population",
}
COVID_DROP_INACTIVE_ROWS: bool = False

PER_100K: int = 100_000
PER_100: int = 100

# (label, lower exclusive, upper inclusive); None is unbounded
POPULATION_TIERS: List[Tuple[str, float | None, float | None]] = [
    ("<=100k", None, 100_000),
    ("100k-1M", 100_000, 1_000_000),
    (">1M", 1_000_000, None),
]

# ======================================================
#  REPORTING
# ======================================================
SHOW_FIGURES: bool = False
