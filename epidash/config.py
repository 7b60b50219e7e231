"""
Configuration constants for the epidash dashboard modules.
"""

from typing import Dict, List, Tuple

# ======================================================
#  DATA SOURCES / CONSTANTS
# ======================================================
# Demo data locations are deployment settings: data_manager reads them from
# these environment variables and refuses to start without them.
LINELIST_SOURCE_ENV: str = "EPIDASH_LINELIST_SOURCE"
GEO_BASE_URL_ENV: str = "EPIDASH_GEO_BASE_URL"

DEFAULT_SEP: str = ","

# layer id -> archive filename on the boundaries dataset
GEO_ARCHIVES: Dict[str, str] = {
    "district": "sle_admbnda_adm2_1m_gov_ocha.zip",
    "chiefdom": "sle_admbnda_adm3_1m_gov_ocha.zip",
}

# layer id -> environment variable holding that archive's resource id
GEO_RESOURCE_ENV: Dict[str, str] = {
    "district": "EPIDASH_GEO_DISTRICT_RESOURCE",
    "chiefdom": "EPIDASH_GEO_CHIEFDOM_RESOURCE",
}

# Geometry attribute holding the area name, per layer id
GEO_NAME_VARS: Dict[str, str] = {
    "district": "admin2Name",
    "chiefdom": "admin3Name",
}

# Boundary names carry "Area" ("Western Area Urban") where the line list does not.
NAME_PREFIX: str = "Area "

REQUEST_TIMEOUT: int = 30

LOG_LEVEL: str = "INFO"

# ======================================================
#  DATA PREPARATION DEFAULTS
# ======================================================
# Tried in order; the format that parses the most values wins.
DATE_FORMATS: List[str] = [
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d %b %Y",
    "%Y/%m/%d",
]

# interval -> pandas period alias
INTERVALS: Dict[str, str] = {
    "day": "D",
    "week": "W-SUN",
    "month": "M",
    "quarter": "Q",
    "year": "Y",
}

DEFAULT_INTERVAL: str = "week"

DEFAULT_AGE_BREAKS: List[float] = [0, 10, 20, 30, 40, 50, 60, 70, 80, float("inf")]

MISSING_LABEL: str = "(missing)"

TOP_N_AREAS: int = 10

INCIDENCE_SCALE: int = 100_000

# ======================================================
#  UI DEFAULTS
# ======================================================
INTERVAL_OPTIONS: List[Tuple[str, str]] = [
    ("Day", "day"),
    ("Week", "week"),
    ("Month", "month"),
    ("Quarter", "quarter"),
    ("Year", "year"),
]

PERSON_DISPLAY_OPTIONS: List[Tuple[str, str]] = [
    ("Counts", "count"),
    ("Percentage", "percent"),
]

PLACE_METRIC_OPTIONS: List[Tuple[str, str]] = [
    ("Cases", "n"),
    ("Cases per 100,000", "incidence"),
]

NO_GROUP: str = "none"

SEX_COLORS: Dict[str, str] = {
    "Male": "#1f77b4",
    "Female": "#d62728",
}

DEFAULT_BAR_COLOR: str = "#2c7fb8"
CUMULATIVE_LINE_COLOR: str = "#444444"
MAP_COLOR_SCALE: str = "Reds"

DASHBOARD_TITLE: str = "Epidemiological dashboard"
DEFAULT_PORT: int = 8000
