"""Ordinary least-squares trend lines over aggregate tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

import numpy as np
import pandas as pd

from .cleaning import ensure_columns
from .errors import InsufficientDataError

logger = logging.getLogger(__name__)

RowFilter = Union[pd.Series, Callable[[pd.DataFrame], pd.Series]]


def _axis_values(values, temporal: bool) -> np.ndarray:
    """Map predictor values onto the numeric axis used for fitting."""
    series = pd.Series(values)
    if temporal:
        dates = pd.to_datetime(series)
        return dates.map(lambda ts: ts.toordinal() if pd.notna(ts) else np.nan).to_numpy(
            dtype=float
        )
    return pd.to_numeric(series, errors="coerce").to_numpy(dtype=float, na_value=np.nan)


@dataclass(frozen=True)
class TrendModel:
    """Fitted line ``response = slope * predictor + intercept``.

    For datetime predictors (``temporal``) the axis is the proleptic
    Gregorian ordinal, so the slope is per day.
    """

    predictor: str
    response: str
    slope: float
    intercept: float
    n_obs: int
    temporal: bool = False

    def predict(self, x):
        """Predicted response for a scalar or array-like of predictor values."""
        if np.isscalar(x) or isinstance(x, pd.Timestamp):
            return float(self.slope * _axis_values([x], self.temporal)[0] + self.intercept)
        return self.slope * _axis_values(x, self.temporal) + self.intercept


def fit_trend(
    df: pd.DataFrame,
    predictor: str,
    response: str,
    where: Optional[RowFilter] = None,
) -> TrendModel:
    """Fit an OLS line of ``response`` on ``predictor``.

    Parameters
    ----------
    df : pd.DataFrame
        Aggregate table.
    predictor, response : str
        Column names.  A datetime predictor is fitted on ordinal days.
    where : pd.Series or callable, optional
        Boolean row mask, or a function of ``df`` returning one.  Rows with
        a missing predictor or response are always excluded.

    Raises
    ------
    InsufficientDataError
        If fewer than two distinct predictor values remain.
    """
    ensure_columns(df, [predictor, response])
    temporal = pd.api.types.is_datetime64_any_dtype(df[predictor])

    subset = df
    if where is not None:
        mask = where(df) if callable(where) else where
        subset = df.loc[pd.Series(mask, index=df.index).fillna(False).astype(bool)]

    x = _axis_values(subset[predictor], temporal)
    y = pd.to_numeric(subset[response], errors="coerce").to_numpy(
        dtype=float, na_value=np.nan
    )
    present = ~(np.isnan(x) | np.isnan(y))
    x, y = x[present], y[present]

    if np.unique(x).size < 2:
        raise InsufficientDataError(
            f"Need at least two distinct {predictor!r} values to fit "
            f"{response!r}; got {np.unique(x).size}."
        )

    x_mean, y_mean = x.mean(), y.mean()
    slope = float(((x - x_mean) * (y - y_mean)).sum() / ((x - x_mean) ** 2).sum())
    intercept = float(y_mean - slope * x_mean)

    logger.info(
        "Fitted %s ~ %s on %d rows: slope=%.4g intercept=%.4g",
        response,
        predictor,
        x.size,
        slope,
        intercept,
    )
    return TrendModel(
        predictor=predictor,
        response=response,
        slope=slope,
        intercept=intercept,
        n_obs=int(x.size),
        temporal=temporal,
    )


def with_trend(
    df: pd.DataFrame, model: TrendModel, column: Optional[str] = None
) -> pd.DataFrame:
    """Return a copy of ``df`` with the model's prediction for every row."""
    ensure_columns(df, [model.predictor])
    out = df.copy()
    out[column or f"{model.response}_trend"] = model.predict(out[model.predictor])
    return out
