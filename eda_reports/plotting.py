import pandas as pd
import plotly.graph_objects as go

from .trend import TrendModel, with_trend


# ============================================================
# Configuration / constants
# ============================================================

DEFAULT_PALETTE: list[str] = [
    "#1f77b4",
    "#d62728",
    "#2ca02c",
    "#9467bd",
    "#ff7f0e",
    "#8c564b",
    "#e377c2",
]

TREND_COLOR = "black"
MISSING_LABEL = "Unknown"


# ============================================================
# Helper functions
# ============================================================


def _series_label(value) -> str:
    """Legend label for a category value; missing values get one label."""
    if pd.isna(value):
        return MISSING_LABEL
    if isinstance(value, pd.Timestamp):
        return value.strftime("%Y-%m")
    return str(value)


def _numeric(values: pd.Series) -> list:
    """Plain floats for plotly; undefined rates become NaN gaps."""
    return pd.to_numeric(values, errors="coerce").astype(float).tolist()


def _groups(df: pd.DataFrame, color: str | None):
    """Yield (label, sub-frame) pairs, keeping the missing group."""
    if color is None:
        yield None, df
        return
    for value, sub in df.groupby(color, dropna=False, observed=True, sort=True):
        yield _series_label(value), sub


def _apply_layout(fig: go.Figure, title: str, x_label: str, y_label: str) -> None:
    fig.update_xaxes(title_text=x_label, showgrid=True)
    fig.update_yaxes(title_text=y_label, tickformat=",", rangemode="tozero")
    fig.update_layout(
        title=dict(text=f"<b>{title}</b>", x=0.5, xanchor="center"),
        width=1000,
        height=600,
        legend=dict(
            orientation="h",
            x=0.5,
            y=1.02,
            xanchor="center",
            yanchor="bottom",
            bordercolor="#c7c7c7",
            borderwidth=2,
            bgcolor="#f9f9f9",
            font=dict(size=12),
        ),
        margin=dict(t=100, l=50, r=80, b=40),
        plot_bgcolor="#f5f7fb",
    )


# ============================================================
# Figure builders
# ============================================================


def create_line_plot(
    df: pd.DataFrame,
    x: str,
    y: str,
    *,
    color: str | None = None,
    trend: TrendModel | None = None,
    mode: str = "lines+markers",
    title: str = "",
    x_label: str | None = None,
    y_label: str | None = None,
) -> go.Figure:
    """
    Line chart of ``y`` over ``x``, one trace per ``color`` category.

    Parameters
    ----------
    df : pd.DataFrame
        Aggregate table holding ``x``, ``y`` and optionally ``color``.
    x, y : str
        Axis columns.
    color : str | None, default None
        Optional category column; missing values are drawn as "Unknown".
    trend : TrendModel | None, default None
        Fitted model drawn as a dashed line over the same x values.
    mode : str, default "lines+markers"
        Plotly scatter mode; use "markers" for unordered x values.
    title, x_label, y_label : str
        Figure and axis titles; axis titles default to the column names.

    Returns
    -------
    go.Figure
    """
    df_clean = df.dropna(subset=[x]).sort_values(x)
    if df_clean.empty:
        return go.Figure()

    fig = go.Figure()
    for i, (label, sub) in enumerate(_groups(df_clean, color)):
        line_color = DEFAULT_PALETTE[i % len(DEFAULT_PALETTE)]
        fig.add_trace(
            go.Scatter(
                x=sub[x].tolist(),
                y=_numeric(sub[y]),
                mode=mode,
                line=dict(width=3, color=line_color),
                marker=dict(size=7, color=line_color),
                name=label or y,
                showlegend=label is not None or trend is not None,
            )
        )

    if trend is not None:
        fitted = with_trend(df_clean.drop_duplicates(subset=[x]), trend, "_trend")
        fig.add_trace(
            go.Scatter(
                x=fitted[x].tolist(),
                y=fitted["_trend"].tolist(),
                mode="lines",
                line=dict(width=2, dash="dash", color=TREND_COLOR),
                name=f"Linear trend (n={trend.n_obs})",
            )
        )

    _apply_layout(fig, title, x_label or x, y_label or y)
    return fig


def create_bar_plot(
    df: pd.DataFrame,
    x: str,
    y: str,
    *,
    color: str | None = None,
    title: str = "",
    x_label: str | None = None,
    y_label: str | None = None,
) -> go.Figure:
    """Grouped bar chart comparing ``y`` across the categories in ``x``."""
    if df.empty:
        return go.Figure()

    fig = go.Figure()
    for i, (label, sub) in enumerate(_groups(df, color)):
        fig.add_trace(
            go.Bar(
                x=[_series_label(v) for v in sub[x]],
                y=_numeric(sub[y]),
                name=label or y,
                marker_color=DEFAULT_PALETTE[i % len(DEFAULT_PALETTE)],
                showlegend=label is not None,
            )
        )
    fig.update_layout(barmode="group")
    _apply_layout(fig, title, x_label or x, y_label or y)
    return fig


# ============================================================
# Report figure sets
# ============================================================


def shootings_figures(payload: dict) -> dict[str, go.Figure]:
    """Figures for the shooting-incident report payload."""
    figures = {
        "incidents_by_year": create_line_plot(
            payload["by_year"],
            "year",
            "incident",
            trend=payload["year_trend"],
            title="Shooting Incidents per Year",
            x_label="Year",
            y_label="Incidents",
        ),
        "incidents_by_month_boro": create_line_plot(
            payload["by_month_boro"],
            "month",
            "incident",
            color="boro",
            title="Monthly Shooting Incidents by Borough",
            x_label="Month",
            y_label="Incidents",
        ),
        "incidents_by_perp_age": create_line_plot(
            payload["by_year_perp_age"],
            "year",
            "incident",
            color="perp_age_group",
            title="Yearly Incidents by Perpetrator Age Group",
            x_label="Year",
            y_label="Incidents",
        ),
        "murder_share_by_victim_age": create_bar_plot(
            payload["by_vic_age"],
            "vic_age_group",
            "murders_per_100_incidents",
            title="Murders per 100 Incidents by Victim Age Group",
            x_label="Victim age group",
            y_label="Murders per 100 incidents",
        ),
    }
    if "by_hour" in payload:
        figures["incidents_by_hour"] = create_bar_plot(
            payload["by_hour"],
            "occur_hour",
            "incident",
            title="Incidents by Hour of Day",
            x_label="Hour",
            y_label="Incidents",
        )
    return figures


def covid_figures(payload: dict, states: list[str] | None = None) -> dict[str, go.Figure]:
    """Figures for the COVID-19 report payload.

    ``states`` limits the state comparison chart; all states by default.
    """
    by_state = payload["state_by_month"]
    if states is not None:
        by_state = by_state[by_state["state"].isin(states)]

    return {
        "us_new_deaths_by_month": create_line_plot(
            payload["us_by_month"],
            "month",
            "new_deaths",
            trend=payload["monthly_trend"],
            title="US New COVID-19 Deaths per Month",
            x_label="Month",
            y_label="New deaths",
        ),
        "state_deaths_per_100k": create_line_plot(
            by_state,
            "month",
            "deaths_per_100k",
            color="state",
            title="Cumulative Deaths per 100k by State",
            x_label="Month",
            y_label="Deaths per 100k",
        ),
        "county_deaths_vs_population": create_line_plot(
            payload["county_totals"],
            "population",
            "deaths_per_100k",
            trend=payload["population_trend"],
            mode="markers",
            title="County Deaths per 100k vs Population",
            x_label="Population",
            y_label="Deaths per 100k",
        ),
        "tier_deaths_per_100k": create_bar_plot(
            payload["tier_totals"],
            "population_tier",
            "deaths_per_100k",
            title="Deaths per 100k by County Population Tier",
            x_label="Population tier",
            y_label="Deaths per 100k",
        ),
    }
