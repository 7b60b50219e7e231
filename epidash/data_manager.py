"""Data manager for the demo dashboard session.

Loads the demo line list and the district/chiefdom boundaries once per
process so that every Shiny session (and every layer switch inside one)
reuses the same in-memory objects.  Where the data lives is a deployment
setting read from the environment:

* ``EPIDASH_LINELIST_SOURCE``: URL or path of the line list CSV.
* ``EPIDASH_GEO_BASE_URL``: dataset URL the shapefile resources hang off.
* ``EPIDASH_GEO_DISTRICT_RESOURCE`` / ``EPIDASH_GEO_CHIEFDOM_RESOURCE``:
  resource ids of the two boundary archives on that dataset.
"""

import logging
import os
from functools import lru_cache
from typing import Dict, Tuple

from .config import (
    GEO_ARCHIVES,
    GEO_BASE_URL_ENV,
    GEO_NAME_VARS,
    GEO_RESOURCE_ENV,
    LINELIST_SOURCE_ENV,
)
from .data_loader import load_linelist
from .errors import ConfigurationError
from .geo_loader import load_geo_layers

logger = logging.getLogger(__name__)


def _require_env(*names: str) -> Dict[str, str]:
    values = {name: os.getenv(name, "").strip() for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(
            f"Demo data source not configured; set environment variable(s): {missing}"
        )
    return values


def linelist_source() -> str:
    return _require_env(LINELIST_SOURCE_ENV)[LINELIST_SOURCE_ENV]


def geo_base_url() -> str:
    return _require_env(GEO_BASE_URL_ENV)[GEO_BASE_URL_ENV]


def geo_resources() -> Dict[str, Tuple[str, str]]:
    """``layer_id -> (archive filename, resource id)`` for the demo layers."""
    ids = _require_env(*GEO_RESOURCE_ENV.values())
    return {
        layer_id: (GEO_ARCHIVES[layer_id], ids[GEO_RESOURCE_ENV[layer_id]])
        for layer_id in GEO_ARCHIVES
    }


@lru_cache(maxsize=1)
def _load_session_payload() -> Dict[str, object]:
    """Runs the downloads; any failure aborts before a module is built."""
    # Resolve every setting first so a missing one fails before any download
    source = linelist_source()
    base_url = geo_base_url()
    resources = geo_resources()

    linelist = load_linelist(source)
    geo = load_geo_layers(
        resources,
        base_url=base_url,
        clean_columns={layer_id: [GEO_NAME_VARS[layer_id]] for layer_id in resources},
    )
    return {"linelist": linelist, "geo": geo}


def load_session_data(force_reload: bool = False) -> Dict[str, object]:
    """
    Return the demo line list and geo layers, loading them on first use.

    Parameters
    ----------
    force_reload : bool, optional
        If ``True``, drop the in-memory copy and download again.

    Returns
    -------
    Dict[str, object]
        ``"linelist"``: the line list DataFrame; ``"geo"``: a dict of
        ``layer_id -> GeoDataFrame`` with cleaned area names.

    Raises
    ------
    ConfigurationError
        A source environment variable is unset.
    """
    if force_reload:
        _load_session_payload.cache_clear()
    cached = _load_session_payload.cache_info().currsize > 0
    if not cached:
        logger.info("Loading session data – this may take a while…")
    return _load_session_payload()
