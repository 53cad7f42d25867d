# SPDX-License-Identifier: MIT
"""
Geodetic → planar reprojection of station coordinates.

Distances between stations are measured as planar Euclidean distances in a
projected CRS (UTM by default). The projection is described by the frozen
:class:`ProjectionSpec`; a :class:`pyproj.Transformer` is built from it on
demand, so no transform state is shared between calls.

The caller picks a projection that suits the station network. A UTM zone
far from the stations is accepted and silently skews the distances.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np
import pandas as pd
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from .config import (
    DEFAULT_PROJ_ID,
    DEFAULT_SOURCE_CRS,
    LAT_COL,
    LON_COL,
    X_COL,
    Y_COL,
)
from .errors import InvalidProjectionError


@dataclass(frozen=True)
class ProjectionSpec:
    """Immutable description of the lon/lat → planar transform.

    Attributes
    ----------
    proj_id :
        Target CRS: an EPSG code (``26917``) or any string pyproj accepts
        (``"EPSG:32617"``, a PROJ string, WKT).
    source_crs :
        CRS of the input longitudes/latitudes (WGS84 by default).
    """

    proj_id: Union[int, str] = DEFAULT_PROJ_ID
    source_crs: str = DEFAULT_SOURCE_CRS

    def target_crs(self) -> CRS:
        """Resolve :attr:`proj_id` to a projected :class:`pyproj.CRS`."""
        pid = self.proj_id
        if isinstance(pid, (bool, np.bool_)) or pid is None or (
            isinstance(pid, str) and not pid.strip()
        ):
            raise InvalidProjectionError(f"Invalid projection identifier: {pid!r}")
        if isinstance(pid, (int, np.integer)):
            pid = f"EPSG:{int(pid)}"
        try:
            crs = CRS.from_user_input(pid)
        except CRSError as e:
            raise InvalidProjectionError(
                f"Unsupported projection identifier {self.proj_id!r}: {e}"
            ) from e
        if not crs.is_projected:
            raise InvalidProjectionError(
                f"Projection {self.proj_id!r} ({crs.name}) is not a planar "
                "projection; distances would be in degrees."
            )
        return crs

    def transformer(self) -> Transformer:
        """Build a lon/lat-ordered transformer from the source to the target CRS."""
        target = self.target_crs()
        try:
            source = CRS.from_user_input(self.source_crs)
        except CRSError as e:
            raise InvalidProjectionError(
                f"Unsupported source CRS {self.source_crs!r}: {e}"
            ) from e
        return Transformer.from_crs(source, target, always_xy=True)


def _as_projection(projection: Union[ProjectionSpec, int, str]) -> ProjectionSpec:
    if isinstance(projection, ProjectionSpec):
        return projection
    return ProjectionSpec(proj_id=projection)


def reproject_stations(
    data: pd.DataFrame,
    projection: Union[ProjectionSpec, int, str] = DEFAULT_PROJ_ID,
    *,
    lon_col: str = LON_COL,
    lat_col: str = LAT_COL,
    x_col: str = X_COL,
    y_col: str = Y_COL,
) -> pd.DataFrame:
    """
    Return a copy of *data* with projected coordinate columns added.

    Every row is reprojected, whether or not it has missing values, since
    any row can act as a donor for another station. Each distinct
    (lon, lat) pair is transformed once and broadcast back to its rows.

    Parameters
    ----------
    data : DataFrame
        Station table with longitude/latitude columns.
    projection : ProjectionSpec, int or str
        Target planar projection (EPSG code, CRS string or ProjectionSpec).
    lon_col, lat_col : str
        Geodetic coordinate columns.
    x_col, y_col : str
        Names of the projected columns to add (overwritten if present).

    Returns
    -------
    DataFrame
        Copy of *data* with ``x_col`` and ``y_col`` (float64).

    Raises
    ------
    InvalidProjectionError
        If the projection cannot be resolved to a planar CRS.
    ValueError
        If the coordinate columns are missing.
    """
    missing = [c for c in (lon_col, lat_col) if c not in data.columns]
    if missing:
        raise ValueError(f"Input is missing coordinate columns: {missing}")

    transformer = _as_projection(projection).transformer()

    out = data.copy()
    coords = pd.DataFrame(
        {
            "lon": pd.to_numeric(data[lon_col], errors="coerce").astype(float),
            "lat": pd.to_numeric(data[lat_col], errors="coerce").astype(float),
        },
        index=data.index,
    )
    uniq = coords.drop_duplicates().reset_index(drop=True)
    if uniq.empty:
        out[x_col] = pd.Series(dtype=float)
        out[y_col] = pd.Series(dtype=float)
        return out

    xx, yy = transformer.transform(uniq["lon"].to_numpy(), uniq["lat"].to_numpy())
    uniq["x"] = np.asarray(xx, dtype=float)
    uniq["y"] = np.asarray(yy, dtype=float)

    merged = coords.merge(uniq, on=["lon", "lat"], how="left")
    out[x_col] = merged["x"].to_numpy()
    out[y_col] = merged["y"].to_numpy()
    return out


__all__ = ["ProjectionSpec", "reproject_stations"]
