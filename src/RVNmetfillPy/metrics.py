# src/RVNmetfillPy/metrics.py
# SPDX-License-Identifier: MIT
"""
Scores for infilled values against withheld observations.

Used by :mod:`RVNmetfillPy.evaluate` to judge how well the inverse-distance
estimates reproduce a station's own record:

- :func:`infill_metrics` — n, MAE, RMSE, bias, R², KGE and NSE in one dict.
- :func:`kge`, :func:`nse` — hydrological efficiencies.
- :func:`aggregate_and_score` — the same scores on monthly/annual totals
  or means.

Pairs where either side is missing are dropped first (an infilled cell can
stay missing when no donor reported). Undefined scores are ``np.nan``.
R² is the squared Pearson correlation, not ``sklearn.metrics.r2_score``.
"""

from __future__ import annotations

from typing import Dict, Iterable, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error


_METRIC_KEYS = ("n", "MAE", "RMSE", "BIAS", "R2", "KGE", "NSE")

_FREQ_ALIAS = {"M": "ME", "A": "YE", "Y": "YE", "Q": "QE"}


def _paired(
    y_true: Iterable[float],
    y_pred: Iterable[float],
) -> Tuple[np.ndarray, np.ndarray]:
    """Float arrays of the pairs where both values are finite."""
    yt = np.asarray(y_true, dtype=float).ravel()
    yp = np.asarray(y_pred, dtype=float).ravel()
    if yt.shape != yp.shape:
        raise ValueError(
            f"Shapes of y_true {yt.shape} and y_pred {yp.shape} do not match."
        )
    keep = np.isfinite(yt) & np.isfinite(yp)
    return yt[keep], yp[keep]


def _empty_scores() -> Dict[str, float]:
    out = {k: np.nan for k in _METRIC_KEYS}
    out["n"] = 0
    return out


def kge(y_true: Iterable[float], y_pred: Iterable[float]) -> float:
    """
    Kling–Gupta efficiency, ``1 - sqrt((r-1)² + (α-1)² + (β-1)²)``.

    ``nan`` with fewer than two pairs, a constant series on either side or
    a zero observed mean.
    """
    yt, yp = _paired(y_true, y_pred)
    if yt.size < 2:
        return np.nan
    mu_t, mu_p = float(yt.mean()), float(yp.mean())
    sd_t, sd_p = float(yt.std(ddof=1)), float(yp.std(ddof=1))
    if sd_t == 0.0 or sd_p == 0.0 or mu_t == 0.0:
        return np.nan
    r = float(np.corrcoef(yt, yp)[0, 1])
    alpha = sd_p / sd_t
    beta = mu_p / mu_t
    val = 1.0 - np.sqrt((r - 1.0) ** 2 + (alpha - 1.0) ** 2 + (beta - 1.0) ** 2)
    return float(val) if np.isfinite(val) else np.nan


def nse(y_true: Iterable[float], y_pred: Iterable[float]) -> float:
    """Nash–Sutcliffe efficiency; ``nan`` for < 2 pairs or constant observations."""
    yt, yp = _paired(y_true, y_pred)
    if yt.size < 2:
        return np.nan
    denom = float(np.sum((yt - yt.mean()) ** 2))
    if denom == 0.0:
        return np.nan
    return float(1.0 - np.sum((yt - yp) ** 2) / denom)


def infill_metrics(y_true: Iterable[float], y_pred: Iterable[float]) -> Dict[str, float]:
    """
    Score infilled values against the observations they replace.

    Returns
    -------
    dict
        ``n`` (pairs used), ``MAE``, ``RMSE``, ``BIAS`` (mean of
        ``y_pred - y_true``), ``R2`` (squared Pearson r), ``KGE``, ``NSE``.
        With no usable pairs every score is ``nan`` and ``n`` is 0.
    """
    yt, yp = _paired(y_true, y_pred)
    if yt.size == 0:
        return _empty_scores()

    r2 = np.nan
    if yt.size >= 2 and yt.std() > 0.0 and yp.std() > 0.0:
        r2 = float(np.corrcoef(yt, yp)[0, 1] ** 2)

    return {
        "n": int(yt.size),
        "MAE": float(mean_absolute_error(yt, yp)),
        "RMSE": float(np.sqrt(mean_squared_error(yt, yp))),
        "BIAS": float(np.mean(yp - yt)),
        "R2": r2,
        "KGE": kge(yt, yp),
        "NSE": nse(yt, yp),
    }


def aggregate_and_score(
    df_pred: pd.DataFrame,
    *,
    date_col: str = "date",
    y_col: str = "y_true",
    yhat_col: str = "y_pred",
    freq: str = "M",
    agg: str = "sum",
) -> Tuple[Dict[str, float], pd.DataFrame]:
    """
    Resample daily pairs to *freq* and score the aggregated series.

    Only days where both values are present enter the aggregation, so a
    month with unfilled days is compared on the same days on both sides.

    Parameters
    ----------
    df_pred : DataFrame
        Table with ``[date_col, y_col, yhat_col]``.
    freq : str, default "M"
        pandas offset; ``M``/``A``/``Y``/``Q`` are mapped to their
        end-anchored aliases.
    agg : {"sum", "mean", "median"}
        ``sum`` for precipitation totals, ``mean`` for temperatures.

    Returns
    -------
    (dict, DataFrame)
        Scores from :func:`infill_metrics` and the aggregated table.
    """
    agg = agg.lower()
    if agg not in {"sum", "mean", "median"}:
        raise ValueError("agg must be one of: 'sum', 'mean', or 'median'.")
    freq = _FREQ_ALIAS.get(freq, freq)

    df = df_pred[[date_col, y_col, yhat_col]].copy()
    df[date_col] = pd.to_datetime(df[date_col], errors="coerce")
    df = df.dropna()
    if df.empty:
        return _empty_scores(), df

    agg_df = df.set_index(date_col).sort_index().resample(freq).agg(agg)
    # resample inserts empty periods; drop them rather than scoring zeros
    counts = df.set_index(date_col).sort_index()[y_col].resample(freq).count()
    agg_df = agg_df.loc[counts > 0]
    return infill_metrics(agg_df[y_col], agg_df[yhat_col]), agg_df


__all__ = ["kge", "nse", "infill_metrics", "aggregate_and_score"]
