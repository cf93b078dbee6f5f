import numpy as np
import pandas as pd
import pytest

from eda_reports import main as main_module

DATE_HEADERS = ["1/30/20", "1/31/20", "2/1/20", "2/2/20"]


@pytest.fixture
def shootings_raw():
    """Six victim rows across 2018, 2019 and 2021 in the source layout."""
    return pd.DataFrame(
        {
            "INCIDENT_KEY": [101, 102, 103, 104, 104, 106],
            "OCCUR_DATE": [
                "01/15/2018",
                "02/20/2018",
                "03/03/2019",
                "07/04/2019",
                "07/04/2019",
                "12/31/2021",
            ],
            "OCCUR_TIME": [
                "10:30:00",
                "23:05:00",
                "01:00:00",
                "22:15:00",
                "22:15:00",
                "00:45:00",
            ],
            "BORO": ["BRONX", "BROOKLYN", "BRONX", "QUEENS", "QUEENS", "MANHATTAN"],
            "LOC_OF_OCCUR_DESC": ["OUTSIDE"] * 6,
            "PRECINCT": [40, 73, 44, 105, 105, 25],
            "JURISDICTION_CODE": [0] * 6,
            "STATISTICAL_MURDER_FLAG": [True, False, False, True, False, True],
            "PERP_AGE_GROUP": ["25-44", "(null)", "18-24", np.nan, "1020", "UNKNOWN"],
            "PERP_SEX": ["M", "(null)", "M", np.nan, "M", "U"],
            "VIC_AGE_GROUP": ["18-24", "25-44", "18-24", "<18", "25-44", "65+"],
            "VIC_SEX": ["M", "M", "F", "M", "M", "F"],
            "Latitude": [40.8] * 6,
            "Longitude": [-73.9] * 6,
        }
    )


def _covid_wide(values, extra=None):
    base = pd.DataFrame(
        {
            "UID": [84001001, 84001003, 84006037, 84080001],
            "iso2": ["US"] * 4,
            "iso3": ["USA"] * 4,
            "code3": [840] * 4,
            "FIPS": [1001.0, 1003.0, 6037.0, 80001.0],
            "Admin2": ["Autauga", "Baldwin", "Los Angeles", "Unassigned"],
            "Province_State": ["Alabama", "Alabama", "California", "Alabama"],
            "Country_Region": ["US"] * 4,
            "Lat": [32.5, 30.7, 34.3, 0.0],
            "Long_": [-86.6, -87.7, -118.2, 0.0],
            "Combined_Key": [
                "Autauga, Alabama, US",
                "Baldwin, Alabama, US",
                "Los Angeles, California, US",
                "Unassigned, Alabama, US",
            ],
        }
    )
    if extra:
        for col, col_values in extra.items():
            base[col] = col_values
    for i, header in enumerate(DATE_HEADERS):
        base[header] = [row[i] for row in values]
    return base


@pytest.fixture
def covid_cases_raw():
    return _covid_wide(
        [
            [10, 20, 18, 30],
            [0, 100, 200, 300],
            [5, 10, 15, 20],
            [0, 0, 1, 1],
        ]
    )


@pytest.fixture
def covid_deaths_raw():
    return _covid_wide(
        [
            [0, 5, 5, 12],
            [0, 1, 2, 3],
            [1, 1, 2, 2],
            [0, 0, 0, 0],
        ],
        extra={"Population": [50_000, 250_000, 2_000_000, 0]},
    )


@pytest.fixture(autouse=True)
def clear_payload_cache():
    main_module.load_payload.cache_clear()
    yield
    main_module.load_payload.cache_clear()
