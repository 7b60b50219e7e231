"""Download and clean administrative boundary shapefiles.

Boundaries are published as zipped shapefiles on the Humanitarian Data
Exchange.  Each archive is written to a temporary directory, extracted and
read into memory with ``geopandas``; the directory is removed whether or
not parsing succeeds.  Area names are then cleaned so they line up with the
category values used in the line list.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple
from zipfile import BadZipFile, ZipFile

import geopandas as gpd
import pandas as pd
import requests

from .config import NAME_PREFIX, REQUEST_TIMEOUT
from .errors import ConfigurationError, DataParseError, FetchError

logger = logging.getLogger(__name__)


def build_download_url(base_url: str, resource_id: str, filename: str) -> str:
    """Return ``<base>/resource/<resource-id>/download/<filename>``."""
    return f"{base_url.rstrip('/')}/resource/{resource_id}/download/{filename}"


def _find_shapefile(folder: Path) -> Path:
    shapefiles = sorted(folder.rglob("*.shp"))
    # macOS archives ship ``__MACOSX/._name.shp`` resource forks
    shapefiles = [p for p in shapefiles if not p.name.startswith("._")]
    if not shapefiles:
        raise DataParseError(f"No .shp file found in archive extracted to {folder}")
    if len(shapefiles) > 1:
        logger.warning(
            "Archive holds %d shapefiles; using %s", len(shapefiles), shapefiles[0].name
        )
    return shapefiles[0]


def download_shapefile(url: str, *, timeout: int = REQUEST_TIMEOUT) -> gpd.GeoDataFrame:
    """Fetch a zipped shapefile and parse it into a GeoDataFrame.

    Raises
    ------
    FetchError
        The archive could not be downloaded.
    DataParseError
        The payload is not a zip archive, holds no shapefile, or the
        shapefile cannot be read.
    """
    logger.info("Downloading shapefile from %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Could not download shapefile from {url}: {exc}") from exc

    with tempfile.TemporaryDirectory(prefix="epidash_geo_") as tmp:
        tmp_dir = Path(tmp)
        archive = tmp_dir / "archive.zip"
        archive.write_bytes(response.content)
        try:
            with ZipFile(archive) as zf:
                zf.extractall(tmp_dir / "extracted")
        except BadZipFile as exc:
            raise DataParseError(f"Download from {url} is not a zip archive") from exc

        shp_path = _find_shapefile(tmp_dir / "extracted")
        try:
            gdf = gpd.read_file(shp_path)
        except Exception as exc:
            raise DataParseError(f"Could not read shapefile {shp_path.name}: {exc}") from exc

    logger.info("Parsed %d features from %s", len(gdf), shp_path.name)
    return gdf


def strip_text(series: pd.Series, pattern: str = NAME_PREFIX) -> pd.Series:
    """Remove the first occurrence of the literal ``pattern`` from each value.

    Missing values are kept as missing.
    """
    return series.map(
        lambda value: value.replace(pattern, "", 1) if isinstance(value, str) else value
    )


def clean_names(
    gdf: gpd.GeoDataFrame,
    columns: Iterable[str],
    pattern: str = NAME_PREFIX,
) -> gpd.GeoDataFrame:
    """Return a copy of ``gdf`` with ``pattern`` stripped from each column."""
    cleaned = gdf.copy()
    for col in columns:
        if col not in cleaned.columns:
            raise ConfigurationError(
                f"Cannot clean missing geometry attribute {col!r}; "
                f"available: {list(cleaned.columns)}"
            )
        cleaned[col] = strip_text(cleaned[col], pattern)
    return cleaned


def load_geo_layers(
    resources: Mapping[str, Tuple[str, str]],
    *,
    base_url: str,
    clean_columns: Optional[Mapping[str, Iterable[str]]] = None,
    pattern: str = NAME_PREFIX,
    timeout: int = REQUEST_TIMEOUT,
) -> Dict[str, gpd.GeoDataFrame]:
    """Download, parse and clean several boundary layers.

    Parameters
    ----------
    resources : Mapping[str, Tuple[str, str]]
        ``layer_id -> (filename, resource_id)``.
    base_url : str
        Dataset URL the resource paths are appended to.
    clean_columns : Mapping[str, Iterable[str]], optional
        ``layer_id -> attribute columns`` to strip ``pattern`` from.
        Layers not listed are returned as read.
    pattern : str, optional
        Literal text removed once from each cleaned value.

    Returns
    -------
    Dict[str, gpd.GeoDataFrame]
        Layers in the order given.  The first failing layer aborts the load.
    """
    clean_columns = clean_columns or {}
    layers: Dict[str, gpd.GeoDataFrame] = {}
    for layer_id, (filename, resource_id) in resources.items():
        url = build_download_url(base_url, resource_id, filename)
        gdf = download_shapefile(url, timeout=timeout)
        columns = list(clean_columns.get(layer_id, []))
        if columns:
            gdf = clean_names(gdf, columns, pattern)
        layers[layer_id] = gdf
    return layers
