# SPDX-License-Identifier: MIT
"""
Leave-one-station-out (LOSO) evaluation of the IDW infilling.

For a station and a variable, every observed value of that station is
hidden, re-estimated from the other stations with the same inverse-distance
scheme used by :func:`~RVNmetfillPy.idw.met_spatial_interpolation`, and
compared with the observation. This gives an honest picture of how well a
donor network can infill a station before trusting the filled record.

Main entry points
-----------------
- :func:`loso_infill_station` — one station, one variable.
- :func:`evaluate_all_stations` — every (station, variable) pair, one row
  each, with daily and aggregated scores.
"""

from __future__ import annotations

import os
import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd
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
)
from .idw import infill_projected
from .metrics import aggregate_and_score, infill_metrics
from .projection import ProjectionSpec, reproject_stations


__all__ = ["loso_infill_station", "evaluate_all_stations"]


# ---------------------------------------------------------------------
# Small I/O helpers
# ---------------------------------------------------------------------


def _check_table_path(path: Optional[str]) -> Optional[str]:
    if path is None:
        return None
    ext = os.path.splitext(str(path))[1].lower()
    if ext not in (".csv", ".parquet"):
        raise ValueError(f"Unsupported extension: {ext!r} (use .csv or .parquet)")
    return ext


def _save_df(
    df: pd.DataFrame,
    path: Optional[str],
    *,
    parquet_compression: str = "snappy",
) -> Optional[str]:
    ext = _check_table_path(path)
    if ext is None:
        return None
    os.makedirs(os.path.dirname(str(path)) or ".", exist_ok=True)
    if ext == ".csv":
        df.to_csv(path, index=False)
    else:
        df.to_parquet(path, index=False, compression=parquet_compression)
    return str(path)


def _default_agg(variable: str) -> str:
    # totals for precipitation-like variables, means for the rest
    return "sum" if "precip" in variable.lower() or "rain" in variable.lower() else "mean"


# ---------------------------------------------------------------------
# Single station
# ---------------------------------------------------------------------


def _loso_projected(
    wd: pd.DataFrame,
    station_id,
    variable: str,
    ppexp: float,
    *,
    id_col: str,
    date_col: str,
    x_col: str,
    y_col: str,
) -> Tuple[pd.DataFrame, Dict[str, float]]:
    is_target = (wd[id_col] == station_id).to_numpy()
    observed = wd.loc[is_target, variable].astype(float)

    masked = wd.copy()
    masked[variable] = masked[variable].astype(float).where(~is_target)

    filled = infill_projected(
        masked,
        [variable],
        key_stn_ids=[station_id],
        ppexp=ppexp,
        id_col=id_col,
        date_col=date_col,
        x_col=x_col,
        y_col=y_col,
        warn=False,
    )

    df_pred = pd.DataFrame(
        {
            date_col: wd.loc[is_target, date_col].to_numpy(),
            "y_true": observed.to_numpy(),
            "y_pred": filled[variable].to_numpy(dtype=float),
        }
    )
    df_pred = df_pred.loc[df_pred["y_true"].notna()].reset_index(drop=True)
    return df_pred, infill_metrics(df_pred["y_true"], df_pred["y_pred"])


def loso_infill_station(
    data: pd.DataFrame,
    station_id,
    variable: str,
    *,
    proj_id: Union[int, str] = DEFAULT_PROJ_ID,
    ppexp: float = DEFAULT_PPEXP,
    source_crs: str = DEFAULT_SOURCE_CRS,
    id_col: str = STATION_COL,
    date_col: str = DATE_COL,
    lon_col: str = LON_COL,
    lat_col: str = LAT_COL,
    x_col: str = X_COL,
    y_col: str = Y_COL,
) -> Tuple[pd.DataFrame, Dict[str, float]]:
    """
    Hide a station's *variable* record and re-estimate it from the others.

    Returns
    -------
    df_pred : DataFrame
        ``[date_col, "y_true", "y_pred"]`` for every date the station
        observed; ``y_pred`` is NaN where no other station reported.
    metrics : dict
        Output of :func:`~RVNmetfillPy.metrics.infill_metrics`.
    """
    if not (data[id_col] == station_id).any():
        raise ValueError(f"No rows for station {station_id}.")
    if variable not in data.columns:
        raise ValueError(f"Input is missing variable column: {variable!r}")

    wd = reproject_stations(
        data,
        ProjectionSpec(proj_id=proj_id, source_crs=source_crs),
        lon_col=lon_col,
        lat_col=lat_col,
        x_col=x_col,
        y_col=y_col,
    )
    return _loso_projected(
        wd,
        station_id,
        variable,
        ppexp,
        id_col=id_col,
        date_col=date_col,
        x_col=x_col,
        y_col=y_col,
    )


# ---------------------------------------------------------------------
# All stations
# ---------------------------------------------------------------------


def evaluate_all_stations(
    data: pd.DataFrame,
    cc: Union[str, Sequence[str]] = DEFAULT_VARIABLES,
    *,
    station_ids: Optional[Iterable] = None,
    proj_id: Union[int, str] = DEFAULT_PROJ_ID,
    ppexp: float = DEFAULT_PPEXP,
    source_crs: str = DEFAULT_SOURCE_CRS,
    agg: Optional[Dict[str, str]] = None,
    freq: str = "M",
    id_col: str = STATION_COL,
    date_col: str = DATE_COL,
    lon_col: str = LON_COL,
    lat_col: str = LAT_COL,
    x_col: str = X_COL,
    y_col: str = Y_COL,
    show_progress: bool = True,
    save_table_path: Optional[str] = None,
    parquet_compression: str = "snappy",
) -> pd.DataFrame:
    """
    LOSO scores for every (station, variable) pair.

    Coordinates are projected once for the whole table.

    Parameters
    ----------
    data : DataFrame
        Long station table (see :func:`~RVNmetfillPy.idw.met_spatial_interpolation`).
    cc : str or sequence of str
        Variables to evaluate.
    station_ids : iterable, optional
        Stations to evaluate (default: all). Every station remains a donor.
    agg : dict, optional
        ``{variable: "sum" | "mean" | "median"}`` for the aggregated scores.
        Defaults to ``sum`` for precipitation-like names and ``mean`` else.
    freq : str, default "M"
        Aggregation period for the ``*_m`` columns.
    show_progress : bool, default True
        tqdm bar over stations plus one line per station.
    save_table_path : str, optional
        ``.csv`` or ``.parquet`` path for the result table.

    Returns
    -------
    DataFrame
        One row per (station, variable) with ``n_rows`` (observed days),
        ``n_filled`` (days re-estimated), daily ``MAE``, ``RMSE``,
        ``BIAS``, ``R2``, ``KGE``, ``NSE``, aggregated ``MAE_m``,
        ``RMSE_m``, ``R2_m``, ``KGE_m`` and ``seconds``.
    """
    variables = [cc] if isinstance(cc, str) else list(cc)
    missing = [c for c in [id_col, date_col] + variables if c not in data.columns]
    if missing:
        raise ValueError(f"Input is missing required columns: {missing}")
    _check_table_path(save_table_path)
    agg = agg or {}

    t_all0 = time.time()
    wd = reproject_stations(
        data,
        ProjectionSpec(proj_id=proj_id, source_crs=source_crs),
        lon_col=lon_col,
        lat_col=lat_col,
        x_col=x_col,
        y_col=y_col,
    )

    if station_ids is None:
        stations = list(pd.unique(wd[id_col].dropna()))
    else:
        stations = list(station_ids)

    rows: List[Dict] = []
    iterator = (
        tqdm(stations, desc="Evaluating stations", unit="st")
        if show_progress
        else stations
    )
    for sid in iterator:
        for var in variables:
            t0 = time.time()
            df_pred, daily = _loso_projected(
                wd,
                sid,
                var,
                ppexp,
                id_col=id_col,
                date_col=date_col,
                x_col=x_col,
                y_col=y_col,
            )
            monthly, _ = aggregate_and_score(
                df_pred,
                date_col=date_col,
                freq=freq,
                agg=agg.get(var, _default_agg(var)),
            )
            rows.append(
                {
                    id_col: sid,
                    "variable": var,
                    "n_rows": int(len(df_pred)),
                    "n_filled": int(df_pred["y_pred"].notna().sum()),
                    "MAE": daily["MAE"],
                    "RMSE": daily["RMSE"],
                    "BIAS": daily["BIAS"],
                    "R2": daily["R2"],
                    "KGE": daily["KGE"],
                    "NSE": daily["NSE"],
                    "MAE_m": monthly["MAE"],
                    "RMSE_m": monthly["RMSE"],
                    "R2_m": monthly["R2"],
                    "KGE_m": monthly["KGE"],
                    "seconds": time.time() - t0,
                }
            )
            if show_progress and df_pred.empty:
                tqdm.write(f"Station {sid} [{var}]: 0 observed rows (skipped)")
            elif show_progress:
                tqdm.write(
                    f"Station {sid} [{var}]: {len(df_pred):,} observed, "
                    f"MAE={daily['MAE']:.3f}"
                )

    result = pd.DataFrame(rows)
    _save_df(result, save_table_path, parquet_compression=parquet_compression)

    if show_progress:
        total = time.time() - t_all0
        tqdm.write(
            f"Done. {len(stations)} stations × {len(variables)} variables "
            f"in {total:.1f}s."
        )
    return result
