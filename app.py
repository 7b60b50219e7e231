import logging

import pandas as pd
from shiny.express import ui

# Import organized modules
from epidash.config import DASHBOARD_TITLE, GEO_NAME_VARS, LOG_LEVEL
from epidash.data_manager import load_session_data
from epidash.launcher import (
    person_server,
    person_ui,
    place_server,
    place_ui,
    time_server,
    time_ui,
)
from epidash.modules import GeoLayer, PersonConfig, PlaceConfig, TimeConfig

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# ======================================================
#  DATA
# ======================================================
# Loaded once per process; values stay in-memory until app restart.
# Sources come from the EPIDASH_* environment variables (see epidash.data_manager).
payload = load_session_data()
linelist: pd.DataFrame = payload["linelist"]
geo = payload["geo"]

GROUP_VARS = {"Sex": "Sex", "District": "District"}

place_config = PlaceConfig(
    geo_data=[
        GeoLayer(
            layer_name="District",
            sf=geo["district"],
            name_var=GEO_NAME_VARS["district"],
            join_by={GEO_NAME_VARS["district"]: "District"},
        ),
        GeoLayer(
            layer_name="Chiefdom",
            sf=geo["chiefdom"],
            name_var=GEO_NAME_VARS["chiefdom"],
            join_by={GEO_NAME_VARS["chiefdom"]: "Chiefdom"},
        ),
    ],
    group_vars=GROUP_VARS,
)
time_config = TimeConfig(
    date_vars=["Date of symptom onset", "Date of sample tested"],
    group_vars=GROUP_VARS,
    show_cumulative=True,
)
person_config = PersonConfig(
    age_var="Age",
    sex_var="Sex",
    male_level="M",
    female_level="F",
)

# Fail before rendering anything if the data and configuration disagree
for config in (place_config, time_config, person_config):
    config.validate(linelist)

# ======================================================
#  UI LAYOUT
# ======================================================
ui.page_opts(
    title=DASHBOARD_TITLE,
    fillable=True,
    fillable_mobile=True,
    full_width=True,
    id="page",
    lang="en",
)

with ui.navset_card_tab(id="modules"):
    with ui.nav_panel("Place"):
        place_ui("place", place_config)

    with ui.nav_panel("Time"):
        time_ui("time", time_config)

    with ui.nav_panel("Person"):
        person_ui("person", person_config)

place_server("place", linelist, place_config)
time_server("time", linelist, time_config)
person_server("person", linelist, person_config)
