"""
Pytest Configuration and Shared Fixtures.

A ten-case line list and two tiny boundary layers that mirror the demo
dataset: districts whose names carry "Area" in the boundary file, and
chiefdoms that match as-is.
"""

from __future__ import annotations

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from epidash.geo_loader import clean_names
from epidash.modules import GeoLayer


@pytest.fixture
def linelist() -> pd.DataFrame:
    """Ten cases; two unusable dates, one unknown age, one missing sex."""
    return pd.DataFrame(
        {
            "Age": [4, 15, 27, 33, 45, 61, 8, "unknown", 85, 22],
            "Sex": ["M", "F", "M", "F", "F", "M", "F", "M", "F", None],
            "District": [
                "Kailahun",
                "Kenema",
                "Kailahun",
                "Western Urban",
                "Kenema",
                "Kailahun",
                "Western Urban",
                "Bo",
                None,
                "Kenema",
            ],
            "Chiefdom": [
                "Jawie",
                "Nongowa",
                "Mandu",
                "Freetown",
                "Nongowa",
                "Jawie",
                "Freetown",
                "Tikonko",
                None,
                "Nongowa",
            ],
            "Date of symptom onset": [
                "2014-05-26",
                "2014-05-27",
                "2014-06-02",
                "2014-06-04",
                "2014-06-04",
                "2014-06-15",
                "2014-06-16",
                None,
                "2014-07-01",
                "not a date",
            ],
        }
    )


@pytest.fixture
def raw_districts() -> gpd.GeoDataFrame:
    """District boundaries as published, before name cleaning."""
    return gpd.GeoDataFrame(
        {
            "admin2Name": ["Kailahun", "Kenema", "Western Area Urban"],
            "pop": [526_000, 609_000, 1_055_000],
        },
        geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 1)],
        crs="EPSG:4326",
    )


@pytest.fixture
def districts(raw_districts: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    return clean_names(raw_districts, ["admin2Name"])


@pytest.fixture
def chiefdoms() -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"admin3Name": ["Jawie", "Mandu", "Nongowa", "Freetown"]},
        geometry=[box(0, 0, 0.5, 1), box(0.5, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 1)],
        crs="EPSG:4326",
    )


@pytest.fixture
def district_layer(districts: gpd.GeoDataFrame) -> GeoLayer:
    return GeoLayer(
        layer_name="District",
        sf=districts,
        name_var="admin2Name",
        join_by={"admin2Name": "District"},
        pop_var="pop",
    )


@pytest.fixture
def chiefdom_layer(chiefdoms: gpd.GeoDataFrame) -> GeoLayer:
    return GeoLayer(
        layer_name="Chiefdom",
        sf=chiefdoms,
        name_var="admin3Name",
        join_by={"admin3Name": "Chiefdom"},
    )
