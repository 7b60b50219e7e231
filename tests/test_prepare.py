"""
Unit Tests for module data preparation.

Test Aspects Covered:
    ✅ Business Logic: date parsing, interval counts, age/sex buckets, layer joins
    ✅ Edge Cases: missing values, unmatched areas, unusable ages
    ✅ Error Handling: unparseable date columns, unknown intervals
"""

from __future__ import annotations

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from epidash.config import MISSING_LABEL
from epidash.errors import ConfigurationError, DataParseError
from epidash.modules import GeoLayer
from epidash.prepare import (
    add_cumulative,
    age_labels,
    age_pyramid,
    count_by_interval,
    duplicate_areas,
    join_layer_counts,
    parse_dates,
    top_areas,
)


class TestParseDates:
    """Test cases for parse_dates."""

    def test_iso_dates(self) -> None:
        parsed = parse_dates(pd.Series(["2014-05-26", "2014-06-02", None]))

        assert parsed.iloc[0] == pd.Timestamp("2014-05-26")
        assert parsed.iloc[1] == pd.Timestamp("2014-06-02")
        assert pd.isna(parsed.iloc[2])

    def test_day_first_dates(self) -> None:
        parsed = parse_dates(pd.Series(["26/05/2014", "13/06/2014"]))
        assert parsed.tolist() == [pd.Timestamp("2014-05-26"), pd.Timestamp("2014-06-13")]

    def test_best_format_wins(self) -> None:
        """
        SCENARIO: Mostly day-first dates with one ISO value
        EXPECTED: Day-first format kept; the odd value becomes NaT
        """
        parsed = parse_dates(pd.Series(["26/05/2014", "27/05/2014", "2014-05-28"]))

        assert parsed.notna().sum() == 2
        assert pd.isna(parsed.iloc[2])

    def test_already_datetime_returned_as_is(self) -> None:
        dates = pd.Series(pd.to_datetime(["2014-05-26", "2014-05-27"]))
        assert parse_dates(dates) is dates

    def test_no_dates_raises(self) -> None:
        with pytest.raises(DataParseError, match="onset"):
            parse_dates(pd.Series(["unknown", "n/a", "soon"]), name="onset")

    def test_all_missing_raises(self) -> None:
        with pytest.raises(DataParseError):
            parse_dates(pd.Series([None, None], dtype=object))

    def test_parse_error_is_a_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_dates(pd.Series(["x"]))


class TestCountByInterval:
    """Test cases for count_by_interval."""

    def test_weekly_counts_start_on_monday(self, linelist: pd.DataFrame) -> None:
        counts = count_by_interval(linelist, "Date of symptom onset", "week")

        assert counts["date"].tolist() == [
            pd.Timestamp("2014-05-26"),
            pd.Timestamp("2014-06-02"),
            pd.Timestamp("2014-06-09"),
            pd.Timestamp("2014-06-16"),
            pd.Timestamp("2014-06-30"),
        ]
        assert counts["n"].tolist() == [2, 3, 1, 1, 1]

    def test_monthly_counts(self, linelist: pd.DataFrame) -> None:
        counts = count_by_interval(linelist, "Date of symptom onset", "month")

        assert counts["n"].tolist() == [2, 5, 1]
        assert counts["date"].iloc[1] == pd.Timestamp("2014-06-01")

    def test_rows_without_dates_are_dropped(self, linelist: pd.DataFrame) -> None:
        counts = count_by_interval(linelist, "Date of symptom onset", "year")
        assert counts["n"].sum() == 8

    def test_grouped_counts(self, linelist: pd.DataFrame) -> None:
        counts = count_by_interval(linelist, "Date of symptom onset", "month", group_var="Sex")

        assert set(counts.columns) == {"date", "group", "n"}
        june = counts[counts["date"] == pd.Timestamp("2014-06-01")]
        assert dict(zip(june["group"], june["n"])) == {"F": 3, "M": 2}

    def test_missing_group_labelled(self, linelist: pd.DataFrame) -> None:
        data = linelist.assign(**{"Date of symptom onset": "2014-06-01"})

        counts = count_by_interval(data, "Date of symptom onset", "year", group_var="Sex")

        assert MISSING_LABEL in counts["group"].tolist()
        assert counts["n"].sum() == len(data)

    def test_unknown_interval(self, linelist: pd.DataFrame) -> None:
        with pytest.raises(ConfigurationError, match="fortnight"):
            count_by_interval(linelist, "Date of symptom onset", "fortnight")

    def test_line_list_not_modified(self, linelist: pd.DataFrame) -> None:
        before = linelist.copy()
        count_by_interval(linelist, "Date of symptom onset", "week", group_var="District")
        pd.testing.assert_frame_equal(linelist, before)

    def test_cumulative_sums_over_groups(self, linelist: pd.DataFrame) -> None:
        counts = count_by_interval(linelist, "Date of symptom onset", "month", group_var="Sex")

        with_total = add_cumulative(counts)

        per_date = with_total.drop_duplicates("date").set_index("date")["cumulative"]
        assert per_date.tolist() == [2, 7, 8]


class TestAgePyramid:
    """Test cases for age_pyramid."""

    def test_labels(self) -> None:
        assert age_labels([0, 10, 20, float("inf")]) == ["0-9", "10-19", "20+"]
        assert age_labels([0, 0.5, 5]) == ["0-<0.5", "0.5-<5"]

    def test_counts_by_group_and_sex(self, linelist: pd.DataFrame) -> None:
        pyramid = age_pyramid(linelist, "Age", "Sex", "M", "F")
        lookup = pyramid.set_index(["age_group", "sex"])["n"]

        assert len(pyramid) == 18
        assert lookup[("0-9", "Male")] == 1
        assert lookup[("0-9", "Female")] == 1
        assert lookup[("80+", "Female")] == 1
        assert lookup[("50-59", "Male")] == 0
        # "unknown" age and missing sex are left out
        assert pyramid["n"].sum() == 8

    def test_percent_sums_to_hundred(self, linelist: pd.DataFrame) -> None:
        pyramid = age_pyramid(linelist, "Age", "Sex", "M", "F")
        assert pyramid["percent"].sum() == pytest.approx(100.0)

    def test_age_group_is_ordered(self, linelist: pd.DataFrame) -> None:
        pyramid = age_pyramid(linelist, "Age", "Sex", "M", "F", age_breaks=[0, 18, float("inf")])

        assert list(pyramid["age_group"].cat.categories) == ["0-17", "18+"]
        assert pyramid["age_group"].cat.ordered

    def test_ages_beyond_last_break_dropped(self, linelist: pd.DataFrame) -> None:
        pyramid = age_pyramid(linelist, "Age", "Sex", "M", "F", age_breaks=[0, 50])
        assert pyramid["n"].sum() == 6

    def test_no_usable_rows(self) -> None:
        data = pd.DataFrame({"Age": ["?", "?"], "Sex": ["M", "F"]})

        pyramid = age_pyramid(data, "Age", "Sex", "M", "F")

        assert pyramid["n"].sum() == 0
        assert (pyramid["percent"] == 0).all()


class TestJoinLayerCounts:
    """Test cases for join_layer_counts."""

    def test_counts_per_area(self, linelist: pd.DataFrame, district_layer: GeoLayer) -> None:
        result = join_layer_counts(linelist, district_layer)
        counts = dict(zip(result.geo["admin2Name"], result.geo["n"]))

        assert counts == {"Kailahun": 3, "Kenema": 3, "Western Urban": 2}
        # "Bo" has no boundary and one district is missing
        assert result.unmatched == 2

    def test_incidence_uses_population(self, linelist: pd.DataFrame, district_layer: GeoLayer) -> None:
        result = join_layer_counts(linelist, district_layer)
        kenema = result.geo[result.geo["admin2Name"] == "Kenema"].iloc[0]

        assert kenema["incidence"] == pytest.approx(3 / 609_000 * 100_000)

    def test_areas_without_cases_have_zero(self, linelist: pd.DataFrame, chiefdom_layer: GeoLayer) -> None:
        data = linelist[linelist["Chiefdom"] != "Mandu"]

        result = join_layer_counts(data, chiefdom_layer)

        mandu = result.geo[result.geo["admin3Name"] == "Mandu"]
        assert mandu["n"].tolist() == [0]
        assert "incidence" not in result.geo.columns

    def test_grouped_by_area(self, linelist: pd.DataFrame, district_layer: GeoLayer) -> None:
        result = join_layer_counts(linelist, district_layer, group_var="Sex")
        kenema = result.by_area[result.by_area["area"] == "Kenema"]

        assert dict(zip(kenema["group"], kenema["n"])) == {"F": 2, MISSING_LABEL: 1}
        assert result.by_area["n"].sum() == 8

    def test_layers_share_one_line_list(
        self, linelist: pd.DataFrame, district_layer: GeoLayer, chiefdom_layer: GeoLayer
    ) -> None:
        """
        SCENARIO: Switch from the district layer to the chiefdom layer and back
        EXPECTED: Each join comes from the same, untouched line list
        """
        before = linelist.copy()

        district = join_layer_counts(linelist, district_layer)
        chiefdom = join_layer_counts(linelist, chiefdom_layer)
        district_again = join_layer_counts(linelist, district_layer)

        pd.testing.assert_frame_equal(linelist, before)
        assert chiefdom.geo["n"].sum() == 8
        assert chiefdom.unmatched == 2
        assert district.geo["n"].tolist() == district_again.geo["n"].tolist()

    def test_top_areas_orders_by_total(self, linelist: pd.DataFrame, chiefdom_layer: GeoLayer) -> None:
        by_area = join_layer_counts(linelist, chiefdom_layer, group_var="Sex").by_area

        top = top_areas(by_area, n=2)

        categories = list(top["area"].cat.categories)
        assert len(categories) == 2
        assert categories[0] == "Nongowa"
        assert set(top["area"].astype(str)) == set(categories)


class TestDuplicateAreaNames:
    """Features sharing an area name are counted once."""

    @pytest.fixture
    def split_districts(self, districts: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        # Kenema published as two features
        extra = gpd.GeoDataFrame(
            {"admin2Name": ["Kenema"], "pop": [100_000]},
            geometry=[box(1, 1, 2, 2)],
            crs=districts.crs,
        )
        return pd.concat([districts, extra], ignore_index=True)

    def test_duplicate_areas(self, split_districts: gpd.GeoDataFrame) -> None:
        layer = GeoLayer("District", split_districts, "admin2Name", join_by={"admin2Name": "District"})
        assert duplicate_areas(layer) == ["Kenema"]

    def test_counts_not_repeated_per_feature(
        self, linelist: pd.DataFrame, split_districts: gpd.GeoDataFrame
    ) -> None:
        """
        SCENARIO: One district name appears on two polygons
        EXPECTED: One merged area; the map total equals the matched cases
        """
        layer = GeoLayer(
            "District",
            split_districts,
            "admin2Name",
            join_by={"admin2Name": "District"},
            pop_var="pop",
        )

        result = join_layer_counts(linelist, layer)

        assert len(result.geo) == 3
        assert result.geo["n"].sum() == 8
        kenema = result.geo[result.geo["admin2Name"] == "Kenema"].iloc[0]
        assert kenema["n"] == 3
        assert kenema["pop"] == 709_000
        assert kenema["incidence"] == pytest.approx(3 / 709_000 * 100_000)

    def test_unique_names_untouched(self, linelist: pd.DataFrame, district_layer: GeoLayer) -> None:
        assert duplicate_areas(district_layer) == []
        assert len(join_layer_counts(linelist, district_layer).geo) == len(district_layer.sf)
