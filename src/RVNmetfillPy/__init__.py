"""
RVNmetfillPy
============

Inverse-distance weighted infilling of daily meteorological station
records, prepared as forcing data for the Raven hydrological framework.

Given a long table with one row per station and date (the layout returned
by ``weathercan::weather_dl``: ``station_id``, ``date``, ``lon``, ``lat``
plus variables such as ``max_temp``, ``min_temp``, ``total_precip``), the
package fills missing values at chosen *key* stations from the values
reported on the same date by every other station, weighted by
``1 / distance**p`` in a planar projection.

1. Infilling
   ---------
   - :func:`met_spatial_interpolation` — reproject + infill (main entry).
   - :func:`infill_projected` — infill a table that already has planar
     coordinates.
   - :func:`interpolate_with_config` — same, driven by
     :class:`InterpolationConfig`.
   - :func:`summarize_missing` — missing counts per station and variable.
   - :func:`reproject_stations`, :class:`ProjectionSpec` — lon/lat to
     planar coordinates (pyproj).
   - :func:`idw_estimate`, :func:`build_donor_index`, :func:`find_donors` —
     building blocks.

2. Evaluation
   ----------
   - :func:`loso_infill_station`, :func:`evaluate_all_stations` —
     leave-one-station-out scores of the infilling.
   - :func:`infill_metrics`, :func:`aggregate_and_score` — MAE, RMSE,
     bias, R², KGE, NSE.

Cells that cannot be filled (no station reported on that date) stay
missing and raise :class:`MissingDataWarning`; a bad projection raises
:class:`InvalidProjectionError` before anything is computed.

Example
-------
    >>> from RVNmetfillPy import met_spatial_interpolation, summarize_missing
    >>> new_wd, left = met_spatial_interpolation(
    ...     weather_data,
    ...     key_stn_ids=[4607, 4648],
    ...     proj_id=26917,
    ...     return_report=True,
    ... )
    >>> summarize_missing(new_wd)
"""

from __future__ import annotations

# Public version (update in sync with pyproject.toml)
__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Configuration and errors
# ---------------------------------------------------------------------------

from .config import (
    DEFAULT_PPEXP,
    DEFAULT_PROJ_ID,
    DEFAULT_VARIABLES,
    InterpolationConfig,
)
from .errors import (
    InvalidParameterError,
    InvalidProjectionError,
    MissingDataWarning,
    set_warning_policy,
)

# ---------------------------------------------------------------------------
# Reprojection and IDW infilling
# ---------------------------------------------------------------------------

from .projection import ProjectionSpec, reproject_stations
from .idw import (
    idw_estimate,
    build_donor_index,
    find_donors,
    infill_projected,
    met_spatial_interpolation,
    interpolate_with_config,
    summarize_missing,
)

# ---------------------------------------------------------------------------
# Leave-one-station-out evaluation
# ---------------------------------------------------------------------------

from .metrics import aggregate_and_score, infill_metrics, kge, nse
from .evaluate import evaluate_all_stations, loso_infill_station

__all__ = [
    "__version__",
    # configuration / errors
    "DEFAULT_PPEXP",
    "DEFAULT_PROJ_ID",
    "DEFAULT_VARIABLES",
    "InterpolationConfig",
    "InvalidParameterError",
    "InvalidProjectionError",
    "MissingDataWarning",
    "set_warning_policy",
    # infilling
    "ProjectionSpec",
    "reproject_stations",
    "idw_estimate",
    "build_donor_index",
    "find_donors",
    "infill_projected",
    "met_spatial_interpolation",
    "interpolate_with_config",
    "summarize_missing",
    # evaluation
    "aggregate_and_score",
    "infill_metrics",
    "kge",
    "nse",
    "evaluate_all_stations",
    "loso_infill_station",
]
