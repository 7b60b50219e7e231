"""epidash package initializer.

Dashboard modules for epidemiological line-list data: a map of cases per
area ("place"), an epidemic curve ("time") and an age/sex pyramid
("person").  Modules include data loading, geo boundary handling, data
preparation, plotting helpers and the Shiny launchers.  See individual
module docstrings for details.
"""

from .data_loader import load_linelist
from .errors import ConfigurationError, DataParseError, EpiDashError, FetchError
from .geo_loader import build_download_url, clean_names, load_geo_layers
from .launcher import build_app, build_dashboard, launch, launch_dashboard, launch_module
from .modules import GeoLayer, GroupingVariable, PersonConfig, PlaceConfig, TimeConfig

__all__ = [
    "ConfigurationError",
    "DataParseError",
    "EpiDashError",
    "FetchError",
    "GeoLayer",
    "GroupingVariable",
    "PersonConfig",
    "PlaceConfig",
    "TimeConfig",
    "build_app",
    "build_dashboard",
    "build_download_url",
    "clean_names",
    "launch",
    "launch_dashboard",
    "launch_module",
    "load_geo_layers",
    "load_linelist",
]
