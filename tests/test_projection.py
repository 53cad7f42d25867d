# tests/test_projection.py
import numpy as np
import pandas as pd
import pytest

from RVNmetfillPy.errors import InvalidProjectionError
from RVNmetfillPy.projection import ProjectionSpec, reproject_stations


@pytest.fixture
def stations() -> pd.DataFrame:
    """Three stations along 43°N around the UTM 17 central meridian (81°W)."""
    return pd.DataFrame(
        {
            "station_id": ["A", "B", "C", "A", "B", "C"],
            "date": ["2002-10-01"] * 3 + ["2002-10-02"] * 3,
            "lon": [-81.0, -80.9, -81.1] * 2,
            "lat": [43.0, 43.0, 43.0] * 2,
            "max_temp": [np.nan, 4.0, 8.0, 10.0, np.nan, 12.0],
        }
    )


def test_reproject_adds_columns_and_keeps_input(stations):
    before = stations.copy()
    out = reproject_stations(stations, 32617)

    pd.testing.assert_frame_equal(stations, before)
    assert list(out.columns) == list(stations.columns) + ["X_reproj", "Y_reproj"]
    pd.testing.assert_frame_equal(out[stations.columns], stations)
    assert out["X_reproj"].dtype == float


def test_central_meridian_maps_to_false_easting(stations):
    out = reproject_stations(stations, ProjectionSpec(proj_id=32617))
    a = out.loc[out["station_id"] == "A"]
    assert a["X_reproj"].to_numpy() == pytest.approx([500000.0, 500000.0], abs=1e-3)
    assert a["Y_reproj"].iloc[0] > 4.7e6


def test_stations_symmetric_about_meridian(stations):
    out = reproject_stations(stations, "EPSG:32617").iloc[:3]
    xa, xb, xc = out["X_reproj"].to_numpy()
    ya, yb, yc = out["Y_reproj"].to_numpy()
    assert xb - xa == pytest.approx(xa - xc, rel=1e-7)
    assert yb == pytest.approx(yc, abs=1e-6)


def test_projection_independent_of_row_order_and_missingness(stations):
    out = reproject_stations(stations, 26917)

    shuffled = stations.sample(frac=1.0, random_state=3).assign(max_temp=np.nan)
    out_shuffled = reproject_stations(shuffled, 26917).loc[out.index]

    np.testing.assert_allclose(out["X_reproj"], out_shuffled["X_reproj"], rtol=0, atol=1e-9)
    np.testing.assert_allclose(out["Y_reproj"], out_shuffled["Y_reproj"], rtol=0, atol=1e-9)


def test_same_station_same_coordinates_across_dates(stations):
    out = reproject_stations(stations, 26917)
    per_station = out.groupby("station_id")[["X_reproj", "Y_reproj"]].nunique()
    assert (per_station == 1).all().all()


@pytest.mark.parametrize("bad", [999999, "EPSG:999999", "not a crs", "", True, None])
def test_invalid_projection_raises(stations, bad):
    with pytest.raises(InvalidProjectionError):
        reproject_stations(stations, ProjectionSpec(proj_id=bad))


def test_geographic_target_is_rejected(stations):
    with pytest.raises(InvalidProjectionError, match="planar"):
        reproject_stations(stations, 4326)


def test_invalid_projection_is_a_value_error(stations):
    with pytest.raises(ValueError):
        reproject_stations(stations, 999999)


def test_missing_coordinate_columns_raise():
    df = pd.DataFrame({"station_id": ["A"], "lon": [-81.0]})
    with pytest.raises(ValueError, match="lat"):
        reproject_stations(df, 26917)


def test_projection_spec_is_immutable():
    proj = ProjectionSpec(proj_id=26917)
    with pytest.raises(Exception):
        proj.proj_id = 32617
