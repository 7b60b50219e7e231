"""Data preparation behind the place, time and person modules.

Everything here is a pure function of a line list and a few settings so
that the Shiny servers stay thin and the logic can be tested without a
session.  The line list passed in is never modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

import geopandas as gpd
import pandas as pd

from .config import (
    DATE_FORMATS,
    DEFAULT_AGE_BREAKS,
    DEFAULT_INTERVAL,
    INCIDENCE_SCALE,
    INTERVALS,
    MISSING_LABEL,
    TOP_N_AREAS,
)
from .errors import ConfigurationError, DataParseError

if TYPE_CHECKING:
    from .modules import GeoLayer

logger = logging.getLogger(__name__)

SEX_LABELS: Sequence[str] = ("Male", "Female")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_names(series: pd.Series) -> pd.Series:
    """Cast names to stripped strings, keeping missing values as <NA>."""
    return series.astype("string").str.strip()


def join_values(series: pd.Series) -> pd.Series:
    """Non-missing, normalised join values."""
    return normalize_names(series).dropna()


def _fill_missing(series: pd.Series) -> pd.Series:
    return series.astype(object).where(series.notna(), MISSING_LABEL).astype(str)


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


def parse_dates(
    series: pd.Series,
    formats: Sequence[str] = DATE_FORMATS,
    *,
    name: Optional[str] = None,
) -> pd.Series:
    """Parse a text column into dates.

    Each format is tried in turn and the one that parses the most values is
    kept; values it cannot parse become ``NaT``.

    Raises
    ------
    DataParseError
        If no value in the column parses with any format.
    """
    if pd.api.types.is_datetime64_any_dtype(series):
        return series

    label = name or series.name
    text = series.astype(str).str.strip()
    best: Optional[pd.Series] = None
    best_count = 0
    for fmt in formats:
        parsed = pd.to_datetime(text, format=fmt, errors="coerce")
        count = int(parsed.notna().sum())
        if count > best_count:
            best, best_count = parsed, count

    if best is None:
        raise DataParseError(
            f"Column {label!r} holds no dates in any supported format {list(formats)}"
        )

    unparsed = int(series.notna().sum()) - best_count
    if unparsed:
        logger.warning("Column %r: %d non-missing values are not dates", label, unparsed)
    return best


def count_by_interval(
    data: pd.DataFrame,
    date_var: str,
    interval: str = DEFAULT_INTERVAL,
    group_var: Optional[str] = None,
) -> pd.DataFrame:
    """Count cases per date interval, optionally per group.

    Returns
    -------
    pd.DataFrame
        Columns ``date`` (interval start; weeks start on Monday), ``group``
        when ``group_var`` is given, and ``n``.
    """
    if interval not in INTERVALS:
        raise ConfigurationError(
            f"Unknown interval {interval!r}; expected one of {list(INTERVALS)}"
        )

    frame = pd.DataFrame({"date": parse_dates(data[date_var], name=date_var)})
    keys = ["date"]
    if group_var:
        frame["group"] = _fill_missing(data[group_var])
        keys.append("group")

    missing = int(frame["date"].isna().sum())
    if missing:
        logger.info("Dropping %d rows without %r", missing, date_var)
    frame = frame.dropna(subset=["date"])

    frame["date"] = frame["date"].dt.to_period(INTERVALS[interval]).dt.start_time
    counts = frame.groupby(keys, as_index=False).size().rename(columns={"size": "n"})
    return counts.sort_values(keys, ignore_index=True)


def add_cumulative(counts: pd.DataFrame) -> pd.DataFrame:
    """Add the running total of cases (over all groups) as ``cumulative``."""
    totals = counts.groupby("date", as_index=False)["n"].sum().sort_values("date")
    totals["cumulative"] = totals["n"].cumsum()
    return counts.merge(totals[["date", "cumulative"]], on="date", how="left")


# ---------------------------------------------------------------------------
# Person
# ---------------------------------------------------------------------------


def _fmt_break(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def age_labels(age_breaks: Sequence[float]) -> List[str]:
    """Labels for left-closed age intervals, e.g. ``0-9`` ... ``80+``."""
    labels = []
    for lo, hi in zip(age_breaks[:-1], age_breaks[1:]):
        if hi == float("inf"):
            labels.append(f"{_fmt_break(lo)}+")
        elif float(lo).is_integer() and float(hi).is_integer():
            labels.append(f"{_fmt_break(lo)}-{_fmt_break(hi - 1)}")
        else:
            labels.append(f"{_fmt_break(lo)}-<{_fmt_break(hi)}")
    return labels


def age_pyramid(
    data: pd.DataFrame,
    age_var: str,
    sex_var: str,
    male_level: str,
    female_level: str,
    age_breaks: Sequence[float] = DEFAULT_AGE_BREAKS,
) -> pd.DataFrame:
    """Bucket cases by age group and sex.

    Rows with a non-numeric or out-of-range age, or a sex value other than
    the two given levels, are dropped.

    Returns
    -------
    pd.DataFrame
        One row per (age group, sex) with columns ``age_group`` (ordered
        categorical, every group present), ``sex`` ("Male"/"Female"), ``n``
        and ``percent`` (share of all retained cases).
    """
    breaks = list(age_breaks)
    labels = age_labels(breaks)
    sex_map = {str(male_level): SEX_LABELS[0], str(female_level): SEX_LABELS[1]}

    frame = pd.DataFrame(
        {
            "age": pd.to_numeric(data[age_var], errors="coerce"),
            "sex": data[sex_var].astype(str).str.strip().map(sex_map),
        }
    )
    frame["age_group"] = pd.cut(frame["age"], bins=breaks, right=False, labels=labels)
    keep = frame["age_group"].notna() & frame["sex"].notna()
    dropped = int((~keep).sum())
    if dropped:
        logger.info("Age pyramid: dropping %d rows with unusable age or sex", dropped)
    frame = frame[keep].assign(age_group=lambda d: d["age_group"].astype(str))

    tally = frame.groupby(["age_group", "sex"]).size().to_dict() if len(frame) else {}
    counts = pd.DataFrame(
        [(group, sex, tally.get((group, sex), 0)) for group in labels for sex in SEX_LABELS],
        columns=["age_group", "sex", "n"],
    )
    counts["age_group"] = pd.Categorical(counts["age_group"], categories=labels, ordered=True)
    total = counts["n"].sum()
    counts["percent"] = counts["n"] / total * 100 if total else 0.0
    return counts


# ---------------------------------------------------------------------------
# Place
# ---------------------------------------------------------------------------


def duplicate_areas(layer: "GeoLayer") -> List[str]:
    """Area names carried by more than one feature of ``layer``."""
    names = join_values(layer.sf[layer.geo_key])
    return sorted(names[names.duplicated()].unique())


def merge_duplicate_areas(layer: "GeoLayer") -> gpd.GeoDataFrame:
    """Copy of the layer geometry with one feature per area name.

    The line list cannot tell features with the same name apart, so they are
    dissolved into one area; ``pop_var`` is summed, other attributes keep the
    first value.
    """
    geo = layer.sf.copy()
    if not duplicate_areas(layer):
        return geo

    geo[layer.geo_key] = normalize_names(geo[layer.geo_key]).astype(object)
    agg = {
        col: "first" for col in geo.columns if col not in (layer.geo_key, geo.geometry.name)
    }
    if layer.pop_var:
        agg[layer.pop_var] = "sum"
    return geo.dissolve(by=layer.geo_key, as_index=False, aggfunc=agg or "first")


@dataclass
class LayerCounts:
    """Cases joined to one geo layer."""

    geo: gpd.GeoDataFrame
    by_area: pd.DataFrame
    unmatched: int


def join_layer_counts(
    data: pd.DataFrame,
    layer: "GeoLayer",
    group_var: Optional[str] = None,
) -> LayerCounts:
    """Count line list rows per area of ``layer``.

    Rows whose join value is missing or not among the layer's area names
    are left off the map and reported in ``unmatched``.

    Returns
    -------
    LayerCounts
        ``geo``: the layer geometry with ``n`` (0 for areas without cases)
        and, when the layer has ``pop_var``, ``incidence`` per 100,000.
        ``by_area``: long table with ``area``, ``group`` (when grouped) and
        ``n``.
    """
    names = normalize_names(data[layer.data_key])
    known = set(join_values(layer.sf[layer.geo_key]))
    matched_mask = names.isin(known).fillna(False).to_numpy(dtype=bool)

    unmatched = int((~matched_mask).sum())
    if unmatched:
        logger.warning(
            "Layer %r: %d of %d rows do not match any area and are not mapped",
            layer.layer_name,
            unmatched,
            len(names),
        )

    matched = names[matched_mask].astype(str)
    area_counts = matched.value_counts()

    geo = merge_duplicate_areas(layer)
    geo_keys = normalize_names(geo[layer.geo_key]).astype(object)
    geo["n"] = geo_keys.map(area_counts).fillna(0).astype(int)
    if layer.pop_var:
        pop = pd.to_numeric(geo[layer.pop_var], errors="coerce")
        geo["incidence"] = geo["n"] / pop.where(pop > 0) * INCIDENCE_SCALE

    by_area = pd.DataFrame({"area": matched.to_numpy()})
    keys = ["area"]
    if group_var:
        by_area["group"] = _fill_missing(data.loc[matched_mask, group_var]).to_numpy()
        keys.append("group")
    by_area = by_area.groupby(keys, as_index=False).size().rename(columns={"size": "n"})

    return LayerCounts(geo=geo, by_area=by_area, unmatched=unmatched)


def top_areas(by_area: pd.DataFrame, n: int = TOP_N_AREAS) -> pd.DataFrame:
    """Keep the ``n`` areas with most cases, ordered by descending total."""
    totals = by_area.groupby("area")["n"].sum().sort_values(ascending=False, kind="stable")
    order = list(totals.head(n).index)
    top = by_area[by_area["area"].isin(order)].copy()
    top["area"] = pd.Categorical(top["area"], categories=order, ordered=True)
    return top.sort_values("area", ignore_index=True)
