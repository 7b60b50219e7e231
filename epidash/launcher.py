"""Shiny modules and launchers for the place, time and person views.

Each view is a Shiny module (a ``*_ui`` / ``*_server`` pair) so it can be
embedded in any app, including Shiny express apps.  ``build_app`` wraps a
single module into a standalone app, ``build_dashboard`` puts several into
one navbar, and ``launch`` / ``launch_dashboard`` run them.  Configurations
are validated before anything is rendered.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Sequence, Tuple

import pandas as pd
from shiny import App, module, reactive, render, run_app, ui
from shinywidgets import output_widget, render_plotly

from .config import (
    DASHBOARD_TITLE,
    DEFAULT_PORT,
    INTERVAL_OPTIONS,
    NO_GROUP,
    PERSON_DISPLAY_OPTIONS,
    PLACE_METRIC_OPTIONS,
)
from .errors import ConfigurationError
from .modules import (
    GroupingVariable,
    ModuleConfig,
    PersonConfig,
    PlaceConfig,
    TimeConfig,
    group_choices,
    make_config,
)
from .plotting import create_area_bars, create_choropleth, create_epicurve, create_pyramid
from .prepare import add_cumulative, age_pyramid, count_by_interval, join_layer_counts, top_areas

logger = logging.getLogger(__name__)

# Helpers for UI mapping
INTERVAL_CHOICES = {value: label for label, value in INTERVAL_OPTIONS}
DISPLAY_CHOICES = {value: label for label, value in PERSON_DISPLAY_OPTIONS}
METRIC_CHOICES = {value: label for label, value in PLACE_METRIC_OPTIONS}


def _group_select(group_vars: Sequence[GroupingVariable]):
    return ui.input_select(
        "group",
        "Group by",
        {NO_GROUP: "None", **group_choices(group_vars)},
        selected=NO_GROUP,
    )


def _selected_group(input, group_vars: Sequence[GroupingVariable]) -> Optional[str]:
    if not group_vars:
        return None
    value = input.group()
    return None if value in (None, NO_GROUP) else value


def _group_label(group_vars: Sequence[GroupingVariable], column: Optional[str]) -> Optional[str]:
    return group_choices(group_vars).get(column) if column else None


# ======================================================
#  PLACE
# ======================================================


@module.ui
def place_ui(config: PlaceConfig):
    layer_names = [layer.layer_name for layer in config.geo_data]
    controls = [ui.input_select("layer", "Boundaries", layer_names, selected=layer_names[0])]
    if config.group_vars:
        controls.append(_group_select(config.group_vars))
    if any(layer.pop_var for layer in config.geo_data):
        controls.append(ui.input_radio_buttons("metric", "Show", METRIC_CHOICES, selected="n"))

    return ui.layout_sidebar(
        ui.sidebar(*controls, open="always", position="right"),
        ui.layout_columns(
            ui.card(
                ui.card_header(config.title),
                output_widget("case_map"),
                ui.output_text("unmatched_note"),
                full_screen=True,
            ),
            ui.card(
                ui.card_header("Areas with most cases"),
                output_widget("area_bars"),
                full_screen=True,
            ),
            col_widths=[7, 5],
        ),
    )


@module.server
def place_server(input, output, session, data: pd.DataFrame, config: PlaceConfig):
    """Returns the ``(active_layer, layer_counts, value_col)`` calcs for reuse."""

    @reactive.calc
    def active_layer():
        return config.layer(input.layer())

    @reactive.calc
    def layer_counts():
        # Same line list for every layer; only the join changes
        return join_layer_counts(data, active_layer(), _selected_group(input, config.group_vars))

    @reactive.calc
    def value_col() -> str:
        if active_layer().pop_var is None:
            return "n"
        return input.metric()

    @render_plotly
    def case_map():
        layer = active_layer()
        return create_choropleth(
            layer_counts().geo,
            name_var=layer.name_var,
            value_col=value_col(),
            layer_name=layer.layer_name,
        )

    @render_plotly
    def area_bars():
        return create_area_bars(
            top_areas(layer_counts().by_area),
            area_label=active_layer().layer_name,
            group_label=_group_label(config.group_vars, _selected_group(input, config.group_vars)),
        )

    @render.text
    def unmatched_note():
        unmatched = layer_counts().unmatched
        if not unmatched:
            return ""
        return f"{unmatched:,} cases could not be placed on the {active_layer().layer_name} map."

    return active_layer, layer_counts, value_col


# ======================================================
#  TIME
# ======================================================


@module.ui
def time_ui(config: TimeConfig):
    controls = [
        ui.input_select("date_var", "Date", list(config.date_vars), selected=config.date_vars[0]),
        ui.input_select("interval", "Interval", INTERVAL_CHOICES, selected=config.default_interval),
    ]
    if config.group_vars:
        controls.append(_group_select(config.group_vars))
    controls.append(ui.input_checkbox("cumulative", "Show cumulative cases", value=config.show_cumulative))

    return ui.layout_sidebar(
        ui.sidebar(*controls, open="always", position="right"),
        ui.card(
            ui.card_header(config.title),
            output_widget("epicurve"),
            full_screen=True,
        ),
    )


@module.server
def time_server(input, output, session, data: pd.DataFrame, config: TimeConfig):
    @reactive.calc
    def counts():
        df = count_by_interval(
            data,
            input.date_var(),
            input.interval(),
            _selected_group(input, config.group_vars),
        )
        if input.cumulative():
            df = add_cumulative(df)
        return df

    @render_plotly
    def epicurve():
        return create_epicurve(
            counts(),
            date_label=input.date_var(),
            group_label=_group_label(config.group_vars, _selected_group(input, config.group_vars)),
            show_cumulative=input.cumulative(),
        )

    return counts


# ======================================================
#  PERSON
# ======================================================


@module.ui
def person_ui(config: PersonConfig):
    return ui.layout_sidebar(
        ui.sidebar(
            ui.input_radio_buttons("display", "Show", DISPLAY_CHOICES, selected="count"),
            open="always",
            position="right",
        ),
        ui.card(
            ui.card_header(config.title),
            output_widget("pyramid"),
            full_screen=True,
        ),
    )


@module.server
def person_server(input, output, session, data: pd.DataFrame, config: PersonConfig):
    @reactive.calc
    def pyramid_data():
        return age_pyramid(
            data,
            config.age_var,
            config.sex_var,
            config.male_level,
            config.female_level,
            config.age_breaks,
        )

    @render_plotly
    def pyramid():
        return create_pyramid(pyramid_data(), display=input.display())

    return pyramid_data


# ======================================================
#  APPS
# ======================================================

MODULES: Dict[str, Tuple[Callable, Callable]] = {
    PlaceConfig.kind: (place_ui, place_server),
    TimeConfig.kind: (time_ui, time_server),
    PersonConfig.kind: (person_ui, person_server),
}


def build_app(config: ModuleConfig, data: pd.DataFrame) -> App:
    """Validate ``config`` against ``data`` and wrap its module in an App."""
    config.validate(data)
    module_ui, module_server = MODULES[config.kind]

    app_ui = ui.page_fillable(
        ui.h2(config.title),
        module_ui(config.kind, config),
        title=config.title,
    )

    def server(input, output, session):
        module_server(config.kind, data, config)

    return App(app_ui, server)


def build_dashboard(
    data: pd.DataFrame,
    *configs: ModuleConfig,
    title: str = DASHBOARD_TITLE,
) -> App:
    """One navbar tab per module, all sharing the same line list."""
    if not configs:
        raise ConfigurationError("build_dashboard needs at least one module configuration")
    for config in configs:
        config.validate(data)

    ids = [f"{config.kind}_{i}" for i, config in enumerate(configs, start=1)]
    panels = [
        ui.nav_panel(config.title, MODULES[config.kind][0](module_id, config))
        for module_id, config in zip(ids, configs)
    ]
    app_ui = ui.page_navbar(*panels, title=title, id="modules")

    def server(input, output, session):
        for module_id, config in zip(ids, configs):
            MODULES[config.kind][1](module_id, data, config)

    return App(app_ui, server)


def launch(
    config: ModuleConfig,
    data: pd.DataFrame,
    *,
    port: int = DEFAULT_PORT,
    launch_browser: bool = True,
) -> None:
    """Run one module as a standalone app; blocks until the server stops."""
    app = build_app(config, data)
    logger.info("Launching %s module on port %d", config.kind, port)
    run_app(app, port=port, launch_browser=launch_browser)


def launch_module(
    module: str,
    data: pd.DataFrame,
    *,
    port: int = DEFAULT_PORT,
    launch_browser: bool = True,
    **config_kwargs,
) -> None:
    """Launch ``"place"``, ``"time"`` or ``"person"`` with keyword configuration.

    Example
    -------
    >>> launch_module("time", df, date_vars=["Date of symptom onset"],
    ...               group_vars=["Sex", "District"])  # doctest: +SKIP
    """
    launch(make_config(module, **config_kwargs), data, port=port, launch_browser=launch_browser)


def launch_dashboard(
    data: pd.DataFrame,
    *configs: ModuleConfig,
    title: str = DASHBOARD_TITLE,
    port: int = DEFAULT_PORT,
    launch_browser: bool = True,
) -> None:
    app = build_dashboard(data, *configs, title=title)
    logger.info("Launching dashboard with %d modules on port %d", len(configs), port)
    run_app(app, port=port, launch_browser=launch_browser)
