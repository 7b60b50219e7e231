"""Module configuration types.

Every visualization module takes its own configuration dataclass.  The
three variants form the ``ModuleConfig`` union; each carries a ``kind``
tag used for dispatch and a ``validate`` method that checks the
configuration against a line list before any session starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Mapping, Optional, Sequence, Tuple, Union

import geopandas as gpd
import pandas as pd

from .config import DEFAULT_AGE_BREAKS, DEFAULT_INTERVAL, INTERVALS
from .errors import ConfigurationError
from .prepare import duplicate_areas, join_values, parse_dates

logger = logging.getLogger(__name__)


def ensure_columns(df: pd.DataFrame, required: Sequence[str], *, what: str = "line list") -> None:
    """Raise ConfigurationError if the DataFrame lacks any of the required columns."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise ConfigurationError(
            f"Missing expected columns in {what}: {missing}; available: {list(df.columns)}"
        )


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GroupingVariable:
    """A line list column offered as an interactive stratification."""

    label: str
    column: str


GroupVarsLike = Union[Sequence[Union[str, GroupingVariable]], Mapping[str, str], None]


def grouping_variables(group_vars: GroupVarsLike) -> Tuple[GroupingVariable, ...]:
    """Normalise strings, ``{label: column}`` mappings or GroupingVariables."""
    if group_vars is None:
        return ()
    if isinstance(group_vars, Mapping):
        return tuple(GroupingVariable(label, column) for label, column in group_vars.items())
    result = []
    for item in group_vars:
        if isinstance(item, GroupingVariable):
            result.append(item)
        else:
            result.append(GroupingVariable(str(item), str(item)))
    return tuple(result)


def group_choices(group_vars: Sequence[GroupingVariable]) -> Dict[str, str]:
    """Map column -> label, the shape ``ui.input_select`` expects."""
    return {gv.column: gv.label for gv in group_vars}


@dataclass(frozen=True, eq=False)
class GeoLayer:
    """Boundaries for one administrative level and how they join the line list.

    ``join_by`` maps the geometry attribute holding area names to the line
    list column holding the same names.  A plain string means both share the
    name.
    """

    layer_name: str
    sf: gpd.GeoDataFrame = field(repr=False)
    name_var: str
    join_by: Union[str, Mapping[str, str]]
    pop_var: Optional[str] = None

    @property
    def geo_key(self) -> str:
        return self._join_pair[0]

    @property
    def data_key(self) -> str:
        return self._join_pair[1]

    @property
    def _join_pair(self) -> Tuple[str, str]:
        if isinstance(self.join_by, str):
            return self.join_by, self.join_by
        if len(self.join_by) != 1:
            raise ConfigurationError(
                f"Layer {self.layer_name!r}: join_by must hold exactly one mapping, got {dict(self.join_by)}"
            )
        return next(iter(self.join_by.items()))

    def validate(self, data: pd.DataFrame) -> None:
        required = [self.name_var, self.geo_key]
        if self.pop_var:
            required.append(self.pop_var)
        ensure_columns(self.sf, required, what=f"geo layer {self.layer_name!r}")
        ensure_columns(data, [self.data_key])

        observed = join_values(data[self.data_key])
        matched = int(observed.isin(set(join_values(self.sf[self.geo_key]))).sum())
        if not observed.empty and matched == 0:
            raise ConfigurationError(
                f"Layer {self.layer_name!r}: no values of {self.data_key!r} match "
                f"geometry attribute {self.geo_key!r}"
            )
        duplicated = duplicate_areas(self)
        if duplicated:
            logger.warning(
                "Layer %r: %d area names occur on several features and are merged: %s",
                self.layer_name,
                len(duplicated),
                duplicated[:10],
            )
        if len(observed):
            logger.info(
                "Layer %r: %d of %d line list values match",
                self.layer_name,
                matched,
                len(observed),
            )


# ---------------------------------------------------------------------------
# Module variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlaceConfig:
    """Map of cases per area, switchable between several geo layers."""

    kind: ClassVar[str] = "place"

    geo_data: Sequence[GeoLayer]
    group_vars: GroupVarsLike = None
    title: str = "Place"

    def __post_init__(self) -> None:
        object.__setattr__(self, "geo_data", tuple(self.geo_data))
        object.__setattr__(self, "group_vars", grouping_variables(self.group_vars))

    def layer(self, layer_name: str) -> GeoLayer:
        for layer in self.geo_data:
            if layer.layer_name == layer_name:
                return layer
        raise ConfigurationError(f"Unknown geo layer {layer_name!r}")

    def validate(self, data: pd.DataFrame) -> None:
        if not self.geo_data:
            raise ConfigurationError("Place module needs at least one geo layer")
        names = [layer.layer_name for layer in self.geo_data]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Geo layer names must be unique, got {names}")
        ensure_columns(data, [gv.column for gv in self.group_vars])
        for layer in self.geo_data:
            layer.validate(data)


@dataclass(frozen=True)
class TimeConfig:
    """Epidemic curve over one of several date columns."""

    kind: ClassVar[str] = "time"

    date_vars: Sequence[str]
    group_vars: GroupVarsLike = None
    title: str = "Time"
    default_interval: str = DEFAULT_INTERVAL
    show_cumulative: bool = False

    def __post_init__(self) -> None:
        date_vars = [self.date_vars] if isinstance(self.date_vars, str) else list(self.date_vars)
        object.__setattr__(self, "date_vars", tuple(date_vars))
        object.__setattr__(self, "group_vars", grouping_variables(self.group_vars))

    def validate(self, data: pd.DataFrame) -> None:
        if not self.date_vars:
            raise ConfigurationError("Time module needs at least one date column")
        if self.default_interval not in INTERVALS:
            raise ConfigurationError(
                f"Unknown interval {self.default_interval!r}; expected one of {list(INTERVALS)}"
            )
        ensure_columns(data, [*self.date_vars, *(gv.column for gv in self.group_vars)])
        for date_var in self.date_vars:
            # Raises DataParseError when nothing in the column is a date
            parse_dates(data[date_var], name=date_var)


@dataclass(frozen=True)
class PersonConfig:
    """Age/sex pyramid."""

    kind: ClassVar[str] = "person"

    age_var: str
    sex_var: str
    male_level: str
    female_level: str
    age_breaks: Sequence[float] = field(default_factory=lambda: list(DEFAULT_AGE_BREAKS))
    title: str = "Person"

    def __post_init__(self) -> None:
        object.__setattr__(self, "age_breaks", tuple(self.age_breaks))

    def validate(self, data: pd.DataFrame) -> None:
        ensure_columns(data, [self.age_var, self.sex_var])
        if self.male_level == self.female_level:
            raise ConfigurationError("male_level and female_level must differ")
        breaks = list(self.age_breaks)
        if len(breaks) < 2 or breaks != sorted(breaks) or len(set(breaks)) != len(breaks):
            raise ConfigurationError(f"age_breaks must be strictly increasing, got {breaks}")

        levels = set(data[self.sex_var].dropna().astype(str))
        absent = [
            level for level in (self.male_level, self.female_level) if str(level) not in levels
        ]
        if absent:
            raise ConfigurationError(
                f"Sex levels {absent} do not occur in column {self.sex_var!r}; "
                f"found {sorted(levels)}"
            )


ModuleConfig = Union[PlaceConfig, TimeConfig, PersonConfig]

MODULE_CONFIGS: Dict[str, type] = {
    cls.kind: cls for cls in (PlaceConfig, TimeConfig, PersonConfig)
}


def make_config(module: str, **kwargs) -> ModuleConfig:
    """Build the configuration for ``module`` ("place", "time" or "person")."""
    try:
        cls = MODULE_CONFIGS[module]
    except KeyError:
        raise ConfigurationError(
            f"Unknown module {module!r}; expected one of {list(MODULE_CONFIGS)}"
        ) from None
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid configuration for {module!r} module: {exc}") from exc

