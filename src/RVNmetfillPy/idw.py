# src/RVNmetfillPy/idw.py
# =============================================================================
# MIT License
#
# (c) 2025 The RVNmetfillPy authors.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.
# =============================================================================
"""
Inverse-distance weighted infilling of daily station records.

The main entry point is :func:`met_spatial_interpolation`. Given a long
table with one row per station and date, it fills missing values of the
requested variables at the *key* stations using the values observed at
every other station on the same date:

.. math::

    \\hat{v} = \\frac{\\sum_i v_i / d_i^p}{\\sum_i 1 / d_i^p}

where :math:`d_i` is the planar distance (projected CRS units, metres for
UTM) between the target row and donor :math:`i`.

Rules applied per missing cell
------------------------------
- no donor on that date: the cell stays missing and a
  :class:`~RVNmetfillPy.errors.MissingDataWarning` is issued;
- exactly one donor: its value is copied as is;
- a donor at distance 0: the estimate is the mean of the zero-distance
  donors;
- otherwise: the weighted mean above.

Estimates only use values present in the *input*; cells filled during the
same call never act as donors, so the result does not depend on the order
in which variables or rows are processed. Running the function again on its
own output can fill more cells, but that loop is left to the caller.

No quality control of observed or infilled values is performed (for
instance ``max_temp >= min_temp``).

Runtime dependencies
--------------------
- numpy
- pandas
- pyproj (through :mod:`RVNmetfillPy.projection`)
- joblib (optional parallel run over variables)
- tqdm
"""

from __future__ import annotations

import warnings
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm.auto import tqdm

from .config import (
    DATE_COL,
    DEFAULT_PPEXP,
    DEFAULT_PROJ_ID,
    DEFAULT_SOURCE_CRS,
    DEFAULT_VARIABLES,
    LAT_COL,
    LON_COL,
    STATION_COL,
    X_COL,
    Y_COL,
    InterpolationConfig,
    check_exponent,
)
from .errors import MissingDataWarning
from .projection import ProjectionSpec, reproject_stations


__all__ = [
    "idw_estimate",
    "build_donor_index",
    "find_donors",
    "infill_projected",
    "met_spatial_interpolation",
    "interpolate_with_config",
    "summarize_missing",
]

# date -> (station ids, x, y, values) of the rows with a present value
DonorIndex = Dict[object, Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]]


# ---------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------


def _as_list(values) -> List:
    if values is None:
        return []
    if isinstance(values, (str, bytes, int, np.integer)):
        return [values]
    return list(values)


def _check_columns(data: pd.DataFrame, required: Sequence[str]) -> None:
    missing = [c for c in required if c not in data.columns]
    if missing:
        raise ValueError(f"Input is missing required columns: {missing}")


def _missing_message(date, station, variable: str) -> str:
    return (
        f"missing data for {date} (station {station}, variable '{variable}'); "
        "more stations may be required"
    )


# ---------------------------------------------------------------------
# Estimation
# ---------------------------------------------------------------------


def idw_estimate(
    values: Iterable[float],
    distances: Iterable[float],
    ppexp: float = DEFAULT_PPEXP,
) -> float:
    """
    Inverse-distance weighted mean of donor values.

    Parameters
    ----------
    values : iterable of float
        Donor values.
    distances : iterable of float
        Non-negative distances from the target to each donor.
    ppexp : float, default 2
        Distance exponent. Not validated here.

    Returns
    -------
    float
        ``nan`` without donors; the donor value with a single donor; the
        mean of the zero-distance donors when any distance is 0; the
        weighted mean otherwise.
    """
    v = np.asarray(values, dtype=float).ravel()
    d = np.asarray(distances, dtype=float).ravel()
    if v.shape != d.shape:
        raise ValueError(
            f"Shapes of values {v.shape} and distances {d.shape} do not match."
        )
    if v.size == 0:
        return np.nan
    if v.size == 1:
        return float(v[0])

    at_target = d == 0.0
    if at_target.any():
        return float(v[at_target].mean())

    # scale by the nearest (farthest for p < 0) donor so weights stay <= 1
    p = float(ppexp)
    ref = d.min() if p >= 0.0 else d.max()
    with np.errstate(invalid="ignore"):
        w = (ref / d) ** p
        return float(np.sum(w * v) / np.sum(w))


# ---------------------------------------------------------------------
# Donor search
# ---------------------------------------------------------------------


def build_donor_index(
    data: pd.DataFrame,
    variable: str,
    *,
    id_col: str = STATION_COL,
    date_col: str = DATE_COL,
    x_col: str = X_COL,
    y_col: str = Y_COL,
) -> DonorIndex:
    """
    Group the rows with a present *variable* value by date.

    Parameters
    ----------
    data : DataFrame
        Full reprojected table (all stations, not only key stations).
    variable : str
        Column whose present values make a row a donor.

    Returns
    -------
    dict
        ``{date: (station_ids, x, y, values)}`` with NumPy arrays in input
        row order.
    """
    valid = data[variable].notna()
    sub = data.loc[valid, [date_col, id_col, x_col, y_col, variable]]

    index: DonorIndex = {}
    for date, grp in sub.groupby(date_col, sort=False):
        index[date] = (
            grp[id_col].to_numpy(),
            grp[x_col].to_numpy(dtype=float),
            grp[y_col].to_numpy(dtype=float),
            grp[variable].astype(float).to_numpy(),
        )
    return index


def _donors_at(
    donor_index: DonorIndex,
    date,
    x: float,
    y: float,
) -> Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]]:
    """(stations, values, distances) of the donors on *date*, or None.

    Donors without a finite distance (unprojectable coordinates) are dropped
    when at least one donor has a finite distance.
    """
    entry = donor_index.get(date)
    if entry is None:
        return None
    stations, dx, dy, vals = entry
    dist = np.hypot(dx - float(x), dy - float(y))
    finite = np.isfinite(dist)
    if finite.any() and not finite.all():
        return stations[finite], vals[finite], dist[finite]
    return stations, vals, dist


def find_donors(
    donor_index: DonorIndex,
    date,
    x: float,
    y: float,
) -> pd.DataFrame:
    """
    Donor rows for a target at (*x*, *y*) on *date*.

    Returns a DataFrame with columns ``station``, ``value`` and
    ``distance`` (planar Euclidean), empty when nobody reported on *date*.
    Donors with unprojectable coordinates are left out whenever another
    donor has a finite distance.
    """
    donors = _donors_at(donor_index, date, x, y)
    if donors is None:
        return pd.DataFrame(
            {
                "station": pd.Series(dtype=object),
                "value": pd.Series(dtype=float),
                "distance": pd.Series(dtype=float),
            }
        )
    stations, vals, dist = donors
    return pd.DataFrame({"station": stations, "value": vals, "distance": dist})


def _infill_variable(
    full: pd.DataFrame,
    target: pd.DataFrame,
    variable: str,
    ppexp: float,
    id_col: str,
    date_col: str,
    x_col: str,
    y_col: str,
) -> Tuple[Optional[np.ndarray], int, List[int]]:
    """
    Estimate every missing *variable* cell of *target*.

    Reads *full* and *target* only. Returns the new column values (or
    ``None`` when nothing was missing), the number of cells filled and the
    positions of cells left missing.
    """
    missing_pos = np.flatnonzero(target[variable].isna().to_numpy())
    if missing_pos.size == 0:
        return None, 0, []

    index = build_donor_index(
        full, variable, id_col=id_col, date_col=date_col, x_col=x_col, y_col=y_col
    )
    values = target[variable].astype("float64").to_numpy(copy=True)
    dates = target[date_col].tolist()
    xs = target[x_col].to_numpy(dtype=float)
    ys = target[y_col].to_numpy(dtype=float)

    n_filled = 0
    unfilled: List[int] = []
    for pos in missing_pos:
        donors = _donors_at(index, dates[pos], xs[pos], ys[pos])
        if donors is None:
            unfilled.append(int(pos))
            continue
        _, vals, dist = donors
        est = idw_estimate(vals, dist, ppexp)
        if np.isfinite(est):
            values[pos] = est
            n_filled += 1
        else:
            unfilled.append(int(pos))
    return values, n_filled, unfilled


# ---------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------


def infill_projected(
    data: pd.DataFrame,
    cc: Union[str, Sequence[str]] = DEFAULT_VARIABLES,
    key_stn_ids: Optional[Iterable] = None,
    ppexp: float = DEFAULT_PPEXP,
    *,
    strict: bool = False,
    id_col: str = STATION_COL,
    date_col: str = DATE_COL,
    x_col: str = X_COL,
    y_col: str = Y_COL,
    n_jobs: int = 1,
    warn: bool = True,
    return_report: bool = False,
    show_progress: bool = False,
) -> Union[pd.DataFrame, Tuple[pd.DataFrame, pd.DataFrame]]:
    """
    Infill missing values of a table that already has projected coordinates.

    Same as :func:`met_spatial_interpolation` without the reprojection
    step; *data* must carry ``x_col``/``y_col`` in planar units.

    Parameters
    ----------
    data : DataFrame
        Long table (one row per station and date). Not modified.
    cc : str or sequence of str
        Variables to infill.
    key_stn_ids : iterable, optional
        Stations that receive output. ``None`` keeps every station. All
        stations are donors either way.
    ppexp : float, default 2
        Inverse-distance exponent.
    strict : bool, default False
        Raise :class:`~RVNmetfillPy.errors.InvalidParameterError` for a
        non-finite or non-positive exponent instead of using it as given.
    n_jobs : int, default 1
        Workers (joblib threads) across variables. ``-1`` uses all cores.
    warn : bool, default True
        Issue one :class:`~RVNmetfillPy.errors.MissingDataWarning` per cell
        left missing.
    return_report : bool, default False
        Also return the table of cells left missing.
    show_progress : bool, default False
        Show a tqdm bar over variables and a summary line.

    Returns
    -------
    DataFrame or (DataFrame, DataFrame)
        Infilled copy (restricted to key stations when given, original index
        labels kept) and, when ``return_report`` is True, a report with
        columns ``[id_col, date_col, "variable"]``.
    """
    variables = _as_list(cc)
    _check_columns(data, [id_col, date_col, x_col, y_col] + variables)
    if strict:
        ppexp = check_exponent(ppexp)

    if key_stn_ids is None:
        out = data.copy()
    else:
        out = data.loc[data[id_col].isin(_as_list(key_stn_ids))].copy()

    iterator = (
        tqdm(variables, desc="Infilling variables", unit="var")
        if show_progress
        else variables
    )
    tasks = (
        delayed(_infill_variable)(
            data, out, var, ppexp, id_col, date_col, x_col, y_col
        )
        for var in iterator
    )
    if n_jobs == 1:
        results = [fn(*args, **kwargs) for fn, args, kwargs in tasks]
    else:
        results = Parallel(n_jobs=n_jobs, prefer="threads")(tasks)

    report_rows: List[Dict] = []
    n_filled_total = 0
    n_missing_total = 0
    stations = out[id_col].tolist()
    dates = out[date_col].tolist()
    for var, (values, n_filled, unfilled) in zip(variables, results):
        if values is None:
            continue
        out[var] = values
        n_filled_total += n_filled
        n_missing_total += n_filled + len(unfilled)
        for pos in unfilled:
            report_rows.append(
                {id_col: stations[pos], date_col: dates[pos], "variable": var}
            )
            if warn:
                warnings.warn(
                    _missing_message(dates[pos], stations[pos], var),
                    MissingDataWarning,
                    stacklevel=2,
                )

    if show_progress:
        tqdm.write(
            f"Filled {n_filled_total:,} of {n_missing_total:,} missing cells "
            f"({len(report_rows):,} left) across {len(variables)} variable(s)."
        )

    if return_report:
        report = pd.DataFrame(report_rows, columns=[id_col, date_col, "variable"])
        return out, report
    return out


def met_spatial_interpolation(
    weather_data: pd.DataFrame,
    cc: Union[str, Sequence[str]] = DEFAULT_VARIABLES,
    key_stn_ids: Optional[Iterable] = None,
    proj_id: Union[int, str] = DEFAULT_PROJ_ID,
    ppexp: float = DEFAULT_PPEXP,
    *,
    strict: bool = False,
    source_crs: str = DEFAULT_SOURCE_CRS,
    id_col: str = STATION_COL,
    date_col: str = DATE_COL,
    lon_col: str = LON_COL,
    lat_col: str = LAT_COL,
    x_col: str = X_COL,
    y_col: str = Y_COL,
    n_jobs: int = 1,
    warn: bool = True,
    return_report: bool = False,
    show_progress: bool = False,
) -> Union[pd.DataFrame, Tuple[pd.DataFrame, pd.DataFrame]]:
    """
    Infill missing meteorological values by inverse-distance weighting.

    All station coordinates are first projected to ``proj_id``; then, for
    each variable in *cc* and each key-station row where it is missing,
    the values reported by every other station on the same date are
    combined with weights ``1 / distance**ppexp``.

    Parameters
    ----------
    weather_data : DataFrame
        Long table with ``station_id``, ``date``, ``lon``, ``lat`` and the
        variable columns (the ``weathercan::weather_dl`` layout). Not
        modified.
    cc : str or sequence of str, default ("max_temp", "min_temp", "total_precip")
        Variables to infill.
    key_stn_ids : iterable, optional
        Stations to infill and return. Other stations are only donors.
    proj_id : int or str, default 26917 (UTM 17N)
        Planar projection for the distance calculation. Choose one that
        suits the stations; the default is wrong outside UTM zone 17N and
        skews the weights without any error.
    ppexp : float, default 2
        Inverse-distance exponent.
    strict : bool, default False
        Validate the exponent (see :func:`infill_projected`).
    source_crs : str, default "EPSG:4326"
        CRS of ``lon``/``lat``.
    id_col, date_col, lon_col, lat_col : str
        Input column names.
    x_col, y_col : str
        Names of the projected coordinate columns added to the output.
    n_jobs, warn, return_report, show_progress :
        See :func:`infill_projected`.

    Returns
    -------
    DataFrame or (DataFrame, DataFrame)
        Infilled table with the projected coordinates added and, when
        ``return_report`` is True, the cells left missing.

    Raises
    ------
    InvalidProjectionError
        ``proj_id`` is unknown or not a planar projection.
    InvalidParameterError
        ``strict=True`` and the exponent is not finite and positive.
    ValueError
        Required or variable columns are missing.

    Examples
    --------
    >>> new_wd = met_spatial_interpolation(weather_data, key_stn_ids=[4607, 4648])
    >>> new_wd, left = met_spatial_interpolation(
    ...     weather_data, cc=["total_precip"], proj_id=32618, return_report=True
    ... )
    >>> # a second pass may fill some of the cells still missing
    >>> new_wd2 = met_spatial_interpolation(new_wd, key_stn_ids=[4607, 4648])
    """
    variables = _as_list(cc)
    _check_columns(weather_data, [id_col, date_col, lon_col, lat_col] + variables)
    if strict:
        ppexp = check_exponent(ppexp)

    wd = reproject_stations(
        weather_data,
        ProjectionSpec(proj_id=proj_id, source_crs=source_crs),
        lon_col=lon_col,
        lat_col=lat_col,
        x_col=x_col,
        y_col=y_col,
    )
    return infill_projected(
        wd,
        variables,
        key_stn_ids,
        ppexp,
        strict=strict,
        id_col=id_col,
        date_col=date_col,
        x_col=x_col,
        y_col=y_col,
        n_jobs=n_jobs,
        warn=warn,
        return_report=return_report,
        show_progress=show_progress,
    )


def interpolate_with_config(
    weather_data: pd.DataFrame,
    config: InterpolationConfig,
    **kwargs,
) -> Union[pd.DataFrame, Tuple[pd.DataFrame, pd.DataFrame]]:
    """Run :func:`met_spatial_interpolation` with the settings of *config*.

    Extra keyword arguments (column names, ``n_jobs``, ``return_report``...)
    are passed through.
    """
    config.validate()
    return met_spatial_interpolation(
        weather_data,
        cc=list(config.variables),
        key_stn_ids=config.key_stn_ids,
        proj_id=config.proj_id,
        ppexp=config.ppexp,
        strict=config.strict,
        **kwargs,
    )


# ---------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------


def summarize_missing(
    data: pd.DataFrame,
    cc: Union[str, Sequence[str]] = DEFAULT_VARIABLES,
    *,
    id_col: str = STATION_COL,
) -> pd.DataFrame:
    """
    Count missing values per station and variable.

    Useful before and after :func:`met_spatial_interpolation` to decide
    whether more donor stations or a second pass are needed.

    Returns
    -------
    DataFrame
        Columns ``[id_col, "variable", "n_rows", "n_missing",
        "pct_missing"]``, one row per (station, variable), stations sorted,
        variables in the order of *cc*.
    """
    variables = _as_list(cc)
    _check_columns(data, [id_col] + variables)

    sizes = data.groupby(id_col, sort=True).size()
    parts = []
    for var in variables:
        n_missing = data[var].isna().groupby(data[id_col], sort=True).sum()
        parts.append(
            pd.DataFrame(
                {
                    id_col: sizes.index.to_numpy(),
                    "variable": var,
                    "n_rows": sizes.to_numpy().astype(int),
                    "n_missing": n_missing.reindex(sizes.index)
                    .fillna(0)
                    .to_numpy()
                    .astype(int),
                }
            )
        )
    if not parts:
        return pd.DataFrame(columns=[id_col, "variable", "n_rows", "n_missing", "pct_missing"])

    out = pd.concat(parts, ignore_index=True)
    out["pct_missing"] = 100.0 * out["n_missing"] / out["n_rows"]
    return out.sort_values(id_col, kind="stable").reset_index(drop=True)
