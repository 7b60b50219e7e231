import geopandas as gpd
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .config import (
    CUMULATIVE_LINE_COLOR,
    DEFAULT_BAR_COLOR,
    INCIDENCE_SCALE,
    MAP_COLOR_SCALE,
    SEX_COLORS,
)


# ============================================================
# Configuration / constants
# ============================================================

HOVER_TEMPLATE_EPICURVE = "Date: %{x|%d %b %Y}<br>Cases: %{y:,}<extra>%{fullData.name}</extra>"

HOVER_TEMPLATE_PYRAMID_COUNT = "Age: %{y}<br>Cases: %{customdata:,}<extra>%{fullData.name}</extra>"

HOVER_TEMPLATE_PYRAMID_PERCENT = (
    "Age: %{y}<br>Share of cases: %{customdata:.1f}%<extra>%{fullData.name}</extra>"
)

BASE_LAYOUT = dict(
    plot_bgcolor="#f5f7fb",
    margin=dict(t=60, l=50, r=30, b=40),
    legend=dict(
        orientation="h",
        x=0.5,
        y=1.02,
        xanchor="center",
        yanchor="bottom",
        bordercolor="#c7c7c7",
        borderwidth=1,
        bgcolor="#f9f9f9",
        font=dict(size=12),
    ),
)


# ============================================================
# Time
# ============================================================


def create_epicurve(
    counts: pd.DataFrame,
    *,
    date_label: str,
    group_label: str | None = None,
    show_cumulative: bool = False,
) -> go.Figure:
    """
    Stacked bar chart of cases per interval.

    Parameters
    ----------
    counts : pd.DataFrame
        Output of ``prepare.count_by_interval`` (``date``, optional ``group``,
        ``n``) and, when ``show_cumulative``, ``cumulative`` from
        ``prepare.add_cumulative``.
    date_label : str
        X-axis title.
    group_label : str | None
        Legend title; ``None`` draws a single series.
    show_cumulative : bool, default False
        Overlay the running total on a secondary axis.
    """
    if counts.empty:
        return go.Figure()

    fig = go.Figure()
    grouped = "group" in counts.columns
    series = counts.groupby("group", sort=True) if grouped else [("Cases", counts)]

    for name, sub in series:
        fig.add_trace(
            go.Bar(
                x=sub["date"],
                y=sub["n"],
                name=str(name),
                marker=dict(color=None if grouped else DEFAULT_BAR_COLOR),
                hovertemplate=HOVER_TEMPLATE_EPICURVE,
            )
        )

    if show_cumulative and "cumulative" in counts.columns:
        totals = counts[["date", "cumulative"]].drop_duplicates("date").sort_values("date")
        fig.add_trace(
            go.Scatter(
                x=totals["date"],
                y=totals["cumulative"],
                name="Cumulative",
                mode="lines",
                line=dict(width=2, color=CUMULATIVE_LINE_COLOR),
                yaxis="y2",
                hovertemplate="Date: %{x|%d %b %Y}<br>Cumulative: %{y:,}<extra></extra>",
            )
        )
        fig.update_layout(
            yaxis2=dict(title="Cumulative cases", overlaying="y", side="right", rangemode="tozero")
        )

    fig.update_layout(
        **BASE_LAYOUT,
        barmode="stack",
        bargap=0.05,
        xaxis_title=date_label,
        yaxis=dict(title="Cases", tickformat=",", rangemode="tozero"),
        legend_title_text=group_label or "",
        showlegend=grouped or show_cumulative,
    )
    return fig


# ============================================================
# Person
# ============================================================


def create_pyramid(pyramid: pd.DataFrame, *, display: str = "count") -> go.Figure:
    """
    Horizontal back-to-back bars; males to the left, females to the right.

    ``display`` is ``"count"`` or ``"percent"``.
    """
    if pyramid.empty:
        return go.Figure()

    value_col = "percent" if display == "percent" else "n"
    hover = HOVER_TEMPLATE_PYRAMID_PERCENT if value_col == "percent" else HOVER_TEMPLATE_PYRAMID_COUNT
    fig = go.Figure()

    for sex, sign in (("Male", -1), ("Female", 1)):
        sub = pyramid[pyramid["sex"] == sex].sort_values("age_group")
        fig.add_trace(
            go.Bar(
                y=sub["age_group"].astype(str),
                x=sign * sub[value_col],
                customdata=sub[value_col],
                orientation="h",
                name=sex,
                marker=dict(color=SEX_COLORS[sex]),
                hovertemplate=hover,
            )
        )

    # Symmetric axis with absolute tick labels
    extent = float(pyramid[value_col].max()) or 1.0
    ticks = [round(extent * f, 1) for f in (-1, -0.5, 0, 0.5, 1)]
    suffix = "%" if value_col == "percent" else ""
    fig.update_layout(
        **BASE_LAYOUT,
        barmode="relative",
        bargap=0.1,
        xaxis=dict(
            title="Share of cases (%)" if value_col == "percent" else "Cases",
            range=[-extent * 1.1, extent * 1.1],
            tickvals=ticks,
            ticktext=[f"{abs(t):,g}{suffix}" for t in ticks],
        ),
        yaxis=dict(title="Age group", categoryorder="array", categoryarray=list(pyramid["age_group"].cat.categories)),
    )
    return fig


# ============================================================
# Place
# ============================================================


def create_choropleth(
    geo: gpd.GeoDataFrame,
    *,
    name_var: str,
    value_col: str = "n",
    layer_name: str = "",
) -> go.Figure:
    """
    Choropleth of ``value_col`` per area, framed on the layer's extent.
    """
    if geo.empty:
        return go.Figure()

    shapes = geo[[name_var, value_col, "geometry"]].copy()
    if shapes.crs is not None and shapes.crs.to_epsg() != 4326:
        shapes = shapes.to_crs(epsg=4326)
    shapes[name_var] = shapes[name_var].astype(str)

    label = f"Cases per {INCIDENCE_SCALE:,}" if value_col == "incidence" else "Cases"
    fig = px.choropleth(
        shapes,
        geojson=shapes.__geo_interface__,
        featureidkey=f"properties.{name_var}",
        locations=name_var,
        color=value_col,
        hover_name=name_var,
        color_continuous_scale=MAP_COLOR_SCALE,
        labels={value_col: label},
    )
    fig.update_geos(fitbounds="locations", visible=False)
    fig.update_traces(marker=dict(line=dict(color="#FFFFFF", width=0.5)))
    fig.update_layout(
        title=layer_name,
        coloraxis_colorbar=dict(title=label),
        margin=dict(l=0, r=0, t=40, b=0),
    )
    return fig


def create_area_bars(by_area: pd.DataFrame, *, area_label: str, group_label: str | None = None) -> go.Figure:
    """
    Horizontal bar chart of cases in the top areas, stacked by group.
    """
    if by_area.empty:
        return go.Figure()

    fig = go.Figure()
    order = None
    if isinstance(by_area["area"].dtype, pd.CategoricalDtype):
        order = [str(a) for a in by_area["area"].cat.categories]
    grouped = "group" in by_area.columns
    series = by_area.groupby("group", sort=True) if grouped else [("Cases", by_area)]

    for name, sub in series:
        fig.add_trace(
            go.Bar(
                y=sub["area"].astype(str),
                x=sub["n"],
                orientation="h",
                name=str(name),
                marker=dict(color=None if grouped else DEFAULT_BAR_COLOR),
                hovertemplate="%{y}: %{x:,} cases<extra>%{fullData.name}</extra>",
            )
        )

    fig.update_layout(
        **BASE_LAYOUT,
        barmode="stack",
        xaxis=dict(title="Cases", tickformat=",", rangemode="tozero"),
        yaxis=dict(title=area_label, autorange="reversed", categoryorder="array", categoryarray=order),
        legend_title_text=group_label or "",
        showlegend=grouped,
    )
    return fig
