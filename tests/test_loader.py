"""Tests for CSV loading from URLs and local files."""
from unittest.mock import Mock, patch

import pandas as pd
import pytest
import requests

from eda_reports.errors import FetchError, ParseError
from eda_reports.loader import load_csv, load_csvs

GOOD_CSV = "OCCUR_DATE,BORO,PRECINCT\n01/15/2018,BRONX,40\n02/20/2018,QUEENS,105\n"
HTML_PAGE = (
    b"<!DOCTYPE html>\n<html><head><title>Down for maintenance</title></head>\n"
    b"<body><p>Back soon, sorry.</p></body></html>\n"
)


def _response(content: bytes, status_error=None, content_type="text/csv"):
    response = Mock()
    response.content = content
    response.headers = {"Content-Type": content_type}
    response.raise_for_status = Mock(side_effect=status_error)
    return response


def test_load_local_file_keeps_dates_as_text(tmp_path):
    path = tmp_path / "incidents.csv"
    path.write_text(GOOD_CSV, encoding="utf-8")

    df = load_csv(path)

    assert list(df.columns) == ["OCCUR_DATE", "BORO", "PRECINCT"]
    assert len(df) == 2
    assert df["OCCUR_DATE"].tolist() == ["01/15/2018", "02/20/2018"]
    assert pd.api.types.is_integer_dtype(df["PRECINCT"])


def test_load_url_uses_single_get_with_timeout():
    with patch("eda_reports.loader.requests.get") as get:
        get.return_value = _response(GOOD_CSV.encode("utf-8"))
        df = load_csv("https://example.org/data.csv", timeout=5)

    get.assert_called_once_with("https://example.org/data.csv", timeout=5)
    assert len(df) == 2


def test_transport_failure_raises_fetch_error():
    with patch("eda_reports.loader.requests.get") as get:
        get.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(FetchError):
            load_csv("https://example.org/data.csv")
    assert get.call_count == 1


def test_http_error_status_raises_fetch_error():
    with patch("eda_reports.loader.requests.get") as get:
        get.return_value = _response(b"", status_error=requests.HTTPError("404"))
        with pytest.raises(FetchError):
            load_csv("https://example.org/missing.csv")


def test_empty_payload_raises_fetch_error(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(FetchError):
        load_csv(path)


def test_missing_file_raises_fetch_error(tmp_path):
    with pytest.raises(FetchError):
        load_csv(tmp_path / "nope.csv")


def test_html_content_type_raises_fetch_error():
    with patch("eda_reports.loader.requests.get") as get:
        get.return_value = _response(HTML_PAGE, content_type="text/html; charset=utf-8")
        with pytest.raises(FetchError):
            load_csv("https://example.org/data.csv")


def test_html_body_without_content_type_raises_fetch_error():
    with patch("eda_reports.loader.requests.get") as get:
        get.return_value = _response(HTML_PAGE, content_type="")
        with pytest.raises(FetchError):
            load_csv("https://example.org/data.csv")


@pytest.mark.parametrize(
    "body",
    [
        "a,b,c\n1,2,3\n4,5\n",
        "a,b,c\n1,2,3\n4,5,6,7\n",
    ],
)
def test_inconsistent_field_count_raises_parse_error(tmp_path, body):
    path = tmp_path / "ragged.csv"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ParseError):
        load_csv(path)


def test_quoted_delimiters_do_not_count_as_fields(tmp_path):
    path = tmp_path / "quoted.csv"
    path.write_text('a,b\n"x, y",1\n', encoding="utf-8")
    df = load_csv(path)
    assert df.loc[0, "a"] == "x, y"


def test_load_csvs_returns_named_tables(tmp_path):
    first = tmp_path / "cases.csv"
    second = tmp_path / "deaths.csv"
    first.write_text("uid,x\n1,2\n", encoding="utf-8")
    second.write_text("uid,y\n1,3\n", encoding="utf-8")

    tables = load_csvs({"cases": first, "deaths": second})

    assert set(tables) == {"cases", "deaths"}
    assert tables["deaths"].loc[0, "y"] == 3
