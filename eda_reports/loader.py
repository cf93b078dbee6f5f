"""Load remote (or local) CSV sources into DataFrames.

A source is fetched with a single blocking GET, checked for a consistent
field count and then handed to :func:`pandas.read_csv`.  Dates are left
as text; the cleaning stage owns date parsing.
"""

from __future__ import annotations

import csv
import logging
from io import StringIO
from pathlib import Path
from typing import Dict, Mapping

import pandas as pd
import requests

from .config import DEFAULT_SEP, REQUEST_TIMEOUT
from .errors import FetchError, ParseError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_source_text(source: str | Path, timeout: int) -> str:
    """Return the raw text of a URL or local file."""
    source_str = str(source)
    if source_str.lower().startswith(("http://", "https://")):
        try:
            response = requests.get(source_str, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"Could not fetch {source_str}: {exc}") from exc
        content_type = response.headers.get("Content-Type", "")
        if "html" in content_type.lower():
            raise FetchError(f"Response from {source_str} is {content_type}, not CSV.")
        try:
            return response.content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise FetchError(f"Response from {source_str} is not text: {exc}") from exc

    path = Path(source)
    try:
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise FetchError(f"Could not read {path}: {exc}") from exc


def _check_field_counts(text: str, sep: str, source: str) -> None:
    """Raise ParseError if any data row width differs from the header's.

    Empty and HTML payloads raise FetchError instead.
    """
    reader = csv.reader(StringIO(text), delimiter=sep)
    try:
        header = next(reader)
    except StopIteration:
        raise FetchError(f"Source {source} is empty.") from None
    except csv.Error as exc:
        raise FetchError(f"Source {source} is not valid CSV: {exc}") from exc
    # an error page served as 200 starts with markup
    if header and header[0].lstrip().startswith("<"):
        raise FetchError(f"Source {source} looks like HTML, not CSV.")

    expected = len(header)
    try:
        for row in reader:
            # Trailing blank lines are not rows
            if not row:
                continue
            if len(row) != expected:
                raise ParseError(
                    f"{source}: line {reader.line_num} has {len(row)} fields, "
                    f"expected {expected}."
                )
    except csv.Error as exc:
        raise FetchError(f"Source {source} is not valid CSV: {exc}") from exc


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------


def load_csv(
    source: str | Path,
    *,
    sep: str = DEFAULT_SEP,
    timeout: int = REQUEST_TIMEOUT,
) -> pd.DataFrame:
    """Fetch a CSV source and parse it into a DataFrame.

    Parameters
    ----------
    source : str or Path
        An ``http(s)://`` URL or a local file path.
    sep : str, optional
        Column delimiter; defaults to ``","``.
    timeout : int, optional
        Seconds to wait for the HTTP response.

    Returns
    -------
    pd.DataFrame
        The table with pandas' type inference applied; date columns are
        still text.

    Raises
    ------
    FetchError
        On transport failure or a payload that is not CSV.
    ParseError
        If a row's field count differs from the header's.
    """
    logger.info("Loading CSV from %s", source)
    text = _read_source_text(source, timeout)
    _check_field_counts(text, sep, str(source))

    try:
        df = pd.read_csv(StringIO(text), sep=sep, low_memory=False)
    except pd.errors.EmptyDataError as exc:
        raise FetchError(f"Source {source} has no columns: {exc}") from exc
    except pd.errors.ParserError as exc:
        raise ParseError(f"Could not parse {source}: {exc}") from exc

    logger.info("Loaded %d rows x %d columns from %s", len(df), df.shape[1], source)
    return df


def load_csvs(
    sources: Mapping[str, str | Path],
    *,
    sep: str = DEFAULT_SEP,
    timeout: int = REQUEST_TIMEOUT,
) -> Dict[str, pd.DataFrame]:
    """Load several named sources; the first failure aborts the lot."""
    return {
        name: load_csv(source, sep=sep, timeout=timeout)
        for name, source in sources.items()
    }
