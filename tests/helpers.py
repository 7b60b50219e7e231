"""Test doubles shared by the loader tests."""

from __future__ import annotations

import io
from pathlib import Path
from zipfile import ZipFile

import geopandas as gpd
import requests


class FakeResponse:
    """Stand-in for ``requests.Response``."""

    def __init__(self, content: bytes = b"", status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


def make_shapefile_zip(gdf: gpd.GeoDataFrame, folder: Path, stem: str = "boundaries") -> bytes:
    """Write ``gdf`` as a shapefile and return the zipped bytes."""
    folder.mkdir(parents=True, exist_ok=True)
    gdf.to_file(folder / f"{stem}.shp")
    buf = io.BytesIO()
    with ZipFile(buf, "w") as zf:
        for member in sorted(folder.iterdir()):
            zf.write(member, arcname=member.name)
    return buf.getvalue()
