# SPDX-License-Identifier: MIT
"""
Defaults and a persisted configuration record for spatial infilling.

Column names follow the daily layout produced by ``weathercan::weather_dl``
(``station_id``, ``date``, ``lon``, ``lat`` plus one column per variable).
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from typing import List, Optional, Union

import numpy as np

from .errors import InvalidParameterError


# ---------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------

STATION_COL = "station_id"
DATE_COL = "date"
LON_COL = "lon"
LAT_COL = "lat"
X_COL = "X_reproj"
Y_COL = "Y_reproj"

DEFAULT_VARIABLES = ("max_temp", "min_temp", "total_precip")
DEFAULT_PROJ_ID = 26917  # NAD83 / UTM zone 17N
DEFAULT_SOURCE_CRS = "EPSG:4326"
DEFAULT_PPEXP = 2.0


def check_exponent(ppexp: float) -> float:
    """Return *ppexp* as float, raising if it is not finite and positive."""
    try:
        p = float(ppexp)
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"IDW exponent must be numeric, got {ppexp!r}.") from e
    if not np.isfinite(p) or p <= 0.0:
        raise InvalidParameterError(f"IDW exponent must be finite and > 0, got {ppexp!r}.")
    return p


def _save_json(obj: dict, path: str) -> None:
    os.makedirs(os.path.dirname(str(path)) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)


# ---------------------------------------------------------------------
# Persisted configuration
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class InterpolationConfig:
    """Settings for one call of :func:`~RVNmetfillPy.idw.met_spatial_interpolation`.

    Attributes
    ----------
    variables :
        Columns to infill, processed independently.
    key_stn_ids :
        Stations that receive infilled output. ``None`` means all stations.
        Stations outside this list are still used as donors.
    proj_id :
        Target planar projection (EPSG code or CRS string). Must suit the
        station geography; a distant zone skews distances silently.
    ppexp :
        Inverse-distance exponent.
    strict :
        Reject non-positive or non-finite exponents.
    """

    variables: List[str] = field(default_factory=lambda: list(DEFAULT_VARIABLES))
    key_stn_ids: Optional[List[Union[int, str]]] = None
    proj_id: Union[int, str] = DEFAULT_PROJ_ID
    ppexp: float = DEFAULT_PPEXP
    strict: bool = False

    def validate(self) -> "InterpolationConfig":
        """Check the settings that can be checked without data; return self."""
        if isinstance(self.variables, str) or not list(self.variables):
            raise InvalidParameterError(
                "variables must be a non-empty list of column names."
            )
        if self.strict:
            check_exponent(self.ppexp)
        return self

    def to_dict(self) -> dict:
        d = asdict(self)
        d["variables"] = list(self.variables)
        if self.key_stn_ids is not None:
            # numpy scalars are not JSON serializable
            d["key_stn_ids"] = [
                k.item() if isinstance(k, np.generic) else k for k in self.key_stn_ids
            ]
        return d

    @staticmethod
    def load(path: str) -> "InterpolationConfig":
        """Load a configuration from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            d = json.load(f)
        return InterpolationConfig(**d)

    def save(self, path: str) -> None:
        """Save the configuration to a JSON file."""
        _save_json(self.to_dict(), path)


__all__ = [
    "STATION_COL",
    "DATE_COL",
    "LON_COL",
    "LAT_COL",
    "X_COL",
    "Y_COL",
    "DEFAULT_VARIABLES",
    "DEFAULT_PROJ_ID",
    "DEFAULT_SOURCE_CRS",
    "DEFAULT_PPEXP",
    "check_exponent",
    "InterpolationConfig",
]
